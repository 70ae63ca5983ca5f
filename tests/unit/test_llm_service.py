"""Tests for willforge/services/llm_service.py: generate, retry, fallback, hints."""

import pytest
from unittest.mock import AsyncMock, MagicMock
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from tenacity import wait_none

from willforge.config import Settings
from willforge.models.conversation import Stage
from willforge.services.llm_service import LLMService, ModelReply, get_llm_service


@pytest.fixture
def llm_service(monkeypatch):
    """LLMService with mocked Anthropic/OpenAI clients and no retry waits."""
    monkeypatch.setattr(LLMService._call_anthropic.retry, "wait", wait_none())
    monkeypatch.setattr(LLMService._call_openai.retry, "wait", wait_none())

    svc = LLMService.__new__(LLMService)
    svc.settings = Settings(_env_file=None, llm_history_window=4)
    svc.primary_provider = "anthropic"
    svc.primary_model = "claude-test"
    svc.fallback_provider = "openai"
    svc.fallback_model = "gpt-test"

    # Mock Anthropic client
    mock_anthropic = MagicMock()
    mock_response = MagicMock()
    mock_response.content = [MagicMock(text="Test response")]
    mock_anthropic.messages.create = AsyncMock(return_value=mock_response)
    svc._anthropic = mock_anthropic

    # Mock OpenAI client
    mock_openai = MagicMock()
    mock_oi_response = MagicMock()
    mock_oi_response.choices = [MagicMock(message=MagicMock(content="Fallback response"))]
    mock_openai.chat.completions.create = AsyncMock(return_value=mock_oi_response)
    svc._openai = mock_openai

    return svc


USER_TURN = [{"role": "user", "content": "My name is Jane Smith"}]


class TestGenerate:

    @pytest.mark.asyncio
    async def test_returns_text(self, llm_service):
        text, model = await llm_service.generate("system", USER_TURN)
        assert text == "Test response"
        assert model == "claude-test"

    @pytest.mark.asyncio
    async def test_retry_on_api_error(self, llm_service):
        """Simulate 1 failure then success."""
        call_count = {"n": 0}
        response = llm_service._anthropic.messages.create.return_value

        def side_effect(*args, **kwargs):
            call_count["n"] += 1
            if call_count["n"] == 1:
                raise Exception("API error")
            return response

        llm_service._anthropic.messages.create.side_effect = side_effect
        text, model = await llm_service.generate("system", USER_TURN)
        assert call_count["n"] == 2
        assert model == "claude-test"

    @pytest.mark.asyncio
    async def test_fallback_to_openai(self, llm_service):
        """Primary always fails, fallback succeeds."""
        llm_service._anthropic.messages.create.side_effect = Exception("Always fails")
        text, model = await llm_service.generate("system", USER_TURN, use_fallback=True)
        assert text == "Fallback response"
        assert model == "gpt-test"
        assert llm_service._anthropic.messages.create.call_count == 3

    @pytest.mark.asyncio
    async def test_no_fallback_raises(self, llm_service):
        llm_service._anthropic.messages.create.side_effect = Exception("Always fails")
        with pytest.raises(Exception):
            await llm_service.generate("system", USER_TURN, use_fallback=False)
        llm_service._openai.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_providers_fail(self, llm_service):
        llm_service._anthropic.messages.create.side_effect = Exception("fail 1")
        llm_service._openai.chat.completions.create.side_effect = Exception("fail 2")
        with pytest.raises(Exception):
            await llm_service.generate("system", USER_TURN)

    @pytest.mark.asyncio
    async def test_no_clients_configured(self, llm_service):
        llm_service._anthropic = None
        llm_service._openai = None
        with pytest.raises(ValueError, match="No LLM provider available"):
            await llm_service.generate("system", USER_TURN)

    @pytest.mark.asyncio
    async def test_primary_not_configured_uses_fallback(self, llm_service):
        llm_service._anthropic = None
        text, model = await llm_service.generate("system", USER_TURN)
        assert model == "gpt-test"


class TestProviderCalls:

    @pytest.mark.asyncio
    async def test_anthropic_drops_leading_assistant_turns(self, llm_service):
        messages = [{"role": "assistant", "content": "Hello!"}, *USER_TURN]
        await llm_service.generate("system prompt", messages)
        kwargs = llm_service._anthropic.messages.create.call_args.kwargs
        assert kwargs["messages"] == USER_TURN
        assert kwargs["system"] == "system prompt"
        assert kwargs["max_tokens"] == llm_service.settings.llm_max_tokens

    @pytest.mark.asyncio
    async def test_openai_gets_system_message(self, llm_service):
        llm_service._anthropic = None
        await llm_service.generate("system prompt", USER_TURN)
        kwargs = llm_service._openai.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "system prompt"}
        assert kwargs["messages"][1:] == USER_TURN

    def test_unconfigured_client_property(self, llm_service):
        llm_service._openai = None
        with pytest.raises(ValueError, match="OpenAI client not configured"):
            llm_service.openai


class TestComplete:

    @pytest.mark.asyncio
    async def test_splits_hints(self, llm_service):
        llm_service._anthropic.messages.create.return_value.content = [
            MagicMock(text='Nice to meet you, Jane!\n```json\n{"fullName": "Jane Smith"}\n```')
        ]
        reply = await llm_service.complete(USER_TURN, "traditional")
        assert isinstance(reply, ModelReply)
        assert reply.text == "Nice to meet you, Jane!"
        assert reply.structured_hints == {"fullName": "Jane Smith"}
        assert reply.model == "claude-test"

    @pytest.mark.asyncio
    async def test_history_window(self, llm_service):
        history = [{"role": "user", "content": str(i)} for i in range(10)]
        await llm_service.complete(history, "traditional")
        kwargs = llm_service._anthropic.messages.create.call_args.kwargs
        assert [m["content"] for m in kwargs["messages"]] == ["6", "7", "8", "9"]

    @pytest.mark.asyncio
    async def test_stage_prompt(self, llm_service):
        await llm_service.complete(USER_TURN, "family", Stage.CONTACTS)
        system = llm_service._anthropic.messages.create.call_args.kwargs["system"]
        assert "Family Protection Will" in system
        assert "email address or a phone number" in system
        assert "Make sure to collect" not in system


class TestSingleton:

    def test_get_llm_service_returns_singleton(self, monkeypatch):
        monkeypatch.delenv("WILLFORGE_ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("WILLFORGE_OPENAI_API_KEY", raising=False)
        assert get_llm_service() is get_llm_service()

    def test_unconfigured_service(self, monkeypatch):
        monkeypatch.setattr(
            "willforge.services.llm_service.get_settings",
            lambda: Settings(_env_file=None, anthropic_api_key="", openai_api_key=""),
        )
        assert not LLMService().is_configured

    def test_configured_clients_are_async(self, monkeypatch):
        monkeypatch.setattr(
            "willforge.services.llm_service.get_settings",
            lambda: Settings(_env_file=None, anthropic_api_key="sk-ant-test", openai_api_key="sk-test"),
        )
        svc = LLMService()
        assert isinstance(svc.anthropic, AsyncAnthropic)
        assert isinstance(svc.openai, AsyncOpenAI)
