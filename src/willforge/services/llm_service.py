"""
Conversational model service.

Supports Claude (Anthropic) and GPT (OpenAI) with automatic fallback. Replies
are untrusted free text: callers run them through the extractor like any other
utterance.
"""

from functools import lru_cache
from typing import Any

import structlog
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from pydantic import BaseModel, Field
from tenacity import retry, stop_after_attempt, wait_exponential

from willforge.config import get_settings
from willforge.models.conversation import Stage
from willforge.models.document import TemplateKind
from willforge.pipeline.extraction import split_structured_hints
from willforge.services.prompts import system_prompt

logger = structlog.get_logger(__name__)


class ModelReply(BaseModel):
    """Reply from the conversational model."""

    text: str
    structured_hints: dict[str, Any] = Field(default_factory=dict)
    model: str = ""


class LLMService:
    """
    Conversational model for the will assistant.

    Supports Claude Sonnet (primary) and GPT-4o-mini (fallback).
    """

    def __init__(self):
        settings = get_settings()
        self.settings = settings

        # Initialize clients
        self._anthropic: AsyncAnthropic | None = None
        self._openai: AsyncOpenAI | None = None

        if settings.anthropic_api_key:
            self._anthropic = AsyncAnthropic(api_key=settings.anthropic_api_key)
        if settings.openai_api_key:
            self._openai = AsyncOpenAI(api_key=settings.openai_api_key)

        self.primary_provider = settings.primary_llm_provider
        self.primary_model = settings.primary_llm_model
        self.fallback_provider = settings.fallback_llm_provider
        self.fallback_model = settings.fallback_llm_model

    @property
    def anthropic(self) -> AsyncAnthropic:
        if not self._anthropic:
            raise ValueError("Anthropic client not configured. Set WILLFORGE_ANTHROPIC_API_KEY.")
        return self._anthropic

    @property
    def openai(self) -> AsyncOpenAI:
        if not self._openai:
            raise ValueError("OpenAI client not configured. Set WILLFORGE_OPENAI_API_KEY.")
        return self._openai

    @property
    def is_configured(self) -> bool:
        return self._anthropic is not None or self._openai is not None

    # =========================================================================
    # Core LLM Calls
    # =========================================================================

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
    )
    async def _call_anthropic(
        self,
        system: str,
        messages: list[dict[str, str]],
        model: str,
    ) -> str:
        """Call Anthropic Claude API."""
        # Anthropic conversations must open with a user turn
        while messages and messages[0]["role"] != "user":
            messages = messages[1:]
        response = await self.anthropic.messages.create(
            model=model,
            max_tokens=self.settings.llm_max_tokens,
            temperature=self.settings.llm_temperature,
            system=system,
            messages=messages,
        )
        return response.content[0].text

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
    )
    async def _call_openai(
        self,
        system: str,
        messages: list[dict[str, str]],
        model: str,
    ) -> str:
        """Call OpenAI chat completions API."""
        response = await self.openai.chat.completions.create(
            model=model,
            max_tokens=self.settings.llm_max_tokens,
            temperature=self.settings.llm_temperature,
            messages=[{"role": "system", "content": system}, *messages],
        )
        return response.choices[0].message.content or ""

    async def _call(self, provider: str, model: str, system: str, messages: list[dict[str, str]]) -> str | None:
        if provider == "anthropic" and self._anthropic:
            return await self._call_anthropic(system, messages, model)
        if provider == "openai" and self._openai:
            return await self._call_openai(system, messages, model)
        return None

    async def generate(
        self,
        system: str,
        messages: list[dict[str, str]],
        use_fallback: bool = True,
    ) -> tuple[str, str]:
        """
        Generate a reply with automatic fallback.

        Returns (response_text, model_used).
        """
        # Try primary provider
        try:
            response = await self._call(self.primary_provider, self.primary_model, system, messages)
            if response is not None:
                return response, self.primary_model
        except Exception as e:
            logger.warning(
                "primary_llm_failed",
                provider=self.primary_provider,
                error=str(e),
            )
            if not use_fallback:
                raise

        # Try fallback provider
        try:
            response = await self._call(self.fallback_provider, self.fallback_model, system, messages)
            if response is not None:
                return response, self.fallback_model
        except Exception as e:
            logger.error(
                "fallback_llm_failed",
                provider=self.fallback_provider,
                error=str(e),
            )
            raise

        raise ValueError("No LLM provider available")

    # =========================================================================
    # Conversation
    # =========================================================================

    async def complete(
        self,
        conversation_history: list[dict[str, str]],
        template_kind: TemplateKind | str | None,
        stage: Stage = Stage.INFORMATION,
    ) -> ModelReply:
        """
        Produce the assistant's next reply.

        Structured hints found in a fenced JSON block are split off the text.
        """
        window = self.settings.llm_history_window
        messages = conversation_history[-window:] if window > 0 else list(conversation_history)
        prompt = system_prompt(template_kind, stage, self.settings.assistant_name)

        text, model = await self.generate(prompt, messages)
        text, hints = split_structured_hints(text)
        logger.info(
            "model_reply_received",
            model=model,
            stage=stage.value,
            hint_keys=sorted(hints),
        )
        return ModelReply(text=text, structured_hints=hints, model=model)


@lru_cache()
def get_llm_service() -> LLMService:
    """Get cached LLM service instance."""
    return LLMService()
