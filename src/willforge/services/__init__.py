"""
Services for willforge.
"""

from willforge.services.contact_roster import (
    ContactRemovalError,
    ContactRoster,
    RosterReport,
    can_remove,
    is_complete,
    suggest_contacts,
)
from willforge.services.persistence import (
    DraftNotFoundError,
    PersistenceBackend,
    PersistenceError,
    SaveQueue,
)
from willforge.services.prompts import system_prompt, welcome_message
from willforge.services.llm_service import LLMService, ModelReply, get_llm_service

__all__ = [
    "ContactRemovalError",
    "ContactRoster",
    "RosterReport",
    "can_remove",
    "is_complete",
    "suggest_contacts",
    "PersistenceBackend",
    "DraftNotFoundError",
    "PersistenceError",
    "SaveQueue",
    "system_prompt",
    "welcome_message",
    "LLMService",
    "ModelReply",
    "get_llm_service",
]
