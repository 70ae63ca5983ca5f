"""
Configuration management for willforge.

Loads settings from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_COMPLETION_PHRASES = [
    "your will is now complete",
    "your will draft is ready",
    "we've completed your will",
    "all necessary information has been collected",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WILLFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # LLM API Keys
    # ==========================================================================
    anthropic_api_key: str = Field(default="", description="Anthropic API key for Claude")
    openai_api_key: str = Field(default="", description="OpenAI API key")

    # ==========================================================================
    # Conversational Model
    # ==========================================================================
    primary_llm_provider: Literal["anthropic", "openai"] = "anthropic"
    primary_llm_model: str = "claude-sonnet-4-20250514"
    fallback_llm_provider: Literal["anthropic", "openai"] = "openai"
    fallback_llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 500
    llm_history_window: int = 20
    assistant_name: str = "Skyler"

    # ==========================================================================
    # Stage Heuristics
    # ==========================================================================
    default_template: str = "traditional"
    information_message_threshold: int = Field(default=12, ge=1)
    information_completion_phrases: list[str] = Field(
        default_factory=lambda: list(DEFAULT_COMPLETION_PHRASES)
    )

    # ==========================================================================
    # Contacts
    # ==========================================================================
    required_contact_roles: list[str] = Field(default_factory=lambda: ["Executor"])

    # ==========================================================================
    # Persistence
    # ==========================================================================
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "willforge"
    draft_ttl_seconds: int = 60 * 60 * 24 * 30
    save_max_attempts: int = Field(default=3, ge=1)
    save_retry_wait_seconds: float = 0.5

    @field_validator("information_completion_phrases", mode="after")
    @classmethod
    def lowercase_phrases(cls, v: list[str]) -> list[str]:
        """Completion phrases are matched case-insensitively."""
        return [p.strip().lower() for p in v if p.strip()]

    @field_validator("required_contact_roles", mode="after")
    @classmethod
    def strip_roles(cls, v: list[str]) -> list[str]:
        return [r.strip() for r in v if r.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
