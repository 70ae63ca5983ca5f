"""Shared pytest fixtures and mocks for the willforge test suite."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from willforge.config import Settings
from willforge.models.contact import Contact, ContactRole
from willforge.models.facts import (
    AssetCategory,
    AssetEntry,
    DigitalAssetEntry,
    FactModel,
    MaritalStatus,
)
from willforge.services.llm_service import ModelReply
from willforge.storage.memory_store import MemoryStore


# ---------------------------------------------------------------------------
# Singleton cache clearing (autouse)
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clear_singletons():
    """Clear all @lru_cache singletons between tests."""
    from willforge.config import get_settings
    from willforge.services.llm_service import get_llm_service
    from willforge.storage.redis_store import get_redis_store

    get_settings.cache_clear()
    get_llm_service.cache_clear()
    get_redis_store.cache_clear()
    yield
    get_settings.cache_clear()
    get_llm_service.cache_clear()
    get_redis_store.cache_clear()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    """Settings isolated from any local .env file, with instant save retries."""
    return Settings(
        _env_file=None,
        anthropic_api_key="",
        openai_api_key="",
        information_message_threshold=12,
        save_max_attempts=3,
        save_retry_wait_seconds=0,
    )


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def empty_facts():
    return FactModel()


@pytest.fixture
def full_facts():
    """A Fact Model with every field known."""
    return FactModel(
        full_name="Jane Smith",
        marital_status=MaritalStatus.MARRIED,
        spouse_name="John Smith",
        address="123 Main Street, Springfield, IL 62704",
        city="Springfield",
        state="IL",
        postal_code="62704",
        children=["Amy", "Ben"],
        executor="Robert Jones",
        alternate_executor="Mary Jones",
        guardian="Sarah Lee",
        alternate_guardian="Tom Lee",
        beneficiaries=["John Smith"],
        asset_entries=[
            AssetEntry(category=AssetCategory.REAL_ESTATE, descriptive_text="42 Oak Lane"),
        ],
        digital_asset_entries=[
            DigitalAssetEntry(asset_type="Cryptocurrency", details="Bitcoin on Coinbase"),
        ],
        final_wishes="I would like to be cremated",
    )


@pytest.fixture
def executor_contact():
    return Contact(name="Robert Jones", role=ContactRole.EXECUTOR, email="robert@example.com")


@pytest.fixture
def beneficiary_contact():
    return Contact(name="Anna Smith", role=ContactRole.BENEFICIARY, email="a@x.com")


# ---------------------------------------------------------------------------
# Collaborator mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def mock_llm():
    """LLM service stand-in whose complete() returns a canned reply."""
    llm = MagicMock()
    llm.complete = AsyncMock(
        return_value=ModelReply(text="Thank you. Are you married?", model="claude-test")
    )
    llm.is_configured = True
    return llm
