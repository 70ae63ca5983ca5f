"""Tests for willforge/config.py: Settings, defaults, validators."""

import pytest
from pydantic import ValidationError

from willforge.config import DEFAULT_COMPLETION_PHRASES, Settings, get_settings


class TestSettings:

    def test_get_settings_returns_instance(self):
        assert isinstance(get_settings(), Settings)

    def test_get_settings_returns_singleton(self):
        assert get_settings() is get_settings()

    def test_primary_llm_provider_default(self, settings):
        assert settings.primary_llm_provider == "anthropic"
        assert settings.fallback_llm_provider == "openai"

    def test_assistant_name_default(self, settings):
        assert settings.assistant_name == "Skyler"

    def test_default_template(self, settings):
        assert settings.default_template == "traditional"

    def test_information_threshold_default(self):
        assert Settings(_env_file=None).information_message_threshold == 12

    def test_information_threshold_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, information_message_threshold=0)

    def test_required_roles_default(self, settings):
        assert settings.required_contact_roles == ["Executor"]

    def test_draft_ttl_is_thirty_days(self, settings):
        assert settings.draft_ttl_seconds == 30 * 24 * 3600


class TestValidators:

    def test_completion_phrases_default(self, settings):
        assert settings.information_completion_phrases == DEFAULT_COMPLETION_PHRASES

    def test_completion_phrases_lowercased(self):
        s = Settings(_env_file=None, information_completion_phrases=["  All Done  ", ""])
        assert s.information_completion_phrases == ["all done"]

    def test_required_roles_stripped(self):
        s = Settings(_env_file=None, required_contact_roles=[" Executor ", " ", "Guardian"])
        assert s.required_contact_roles == ["Executor", "Guardian"]

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("WILLFORGE_ASSISTANT_NAME", "Morgan")
        assert Settings(_env_file=None).assistant_name == "Morgan"
