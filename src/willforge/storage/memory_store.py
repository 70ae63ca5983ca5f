"""
In-memory persistence backend for tests and offline use.
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

import structlog

from willforge.models.contact import Contact
from willforge.models.conversation import Transcript
from willforge.models.facts import FactModel
from willforge.services.persistence import DraftNotFoundError

logger = structlog.get_logger(__name__)


class MemoryStore:
    """Dict-backed implementation of the persistence interface."""

    def __init__(self):
        self.drafts: dict[str, dict[str, Any]] = {}
        self.contacts: dict[str, list[dict[str, Any]]] = {}
        self.transcripts: dict[str, dict[str, Any]] = {}

    def save_draft(self, document_text: str, metadata: dict[str, Any]) -> str:
        draft_id = str(uuid4())
        now = datetime.utcnow().isoformat()
        self.drafts[draft_id] = {
            "id": draft_id,
            "content": document_text,
            "metadata": dict(metadata),
            "created_at": now,
            "updated_at": now,
        }
        logger.debug("draft_saved", draft_id=draft_id)
        return draft_id

    def update_draft(self, draft_id: str, fields: dict[str, Any]) -> None:
        if draft_id not in self.drafts:
            raise DraftNotFoundError(f"Draft {draft_id} not found")
        draft = self.drafts[draft_id]
        fields = dict(fields)
        if "content" in fields:
            draft["content"] = fields.pop("content")
        draft["metadata"].update(fields)
        draft["updated_at"] = datetime.utcnow().isoformat()

    def save_contacts(self, will_id: str, contacts: list[Contact]) -> None:
        self.contacts[will_id] = [c.model_dump(mode="json") for c in contacts]

    def save_conversation_transcript(
        self, will_id: str, transcript: Transcript, extracted_facts: FactModel
    ) -> None:
        self.transcripts[will_id] = {
            "transcript": transcript.model_dump(mode="json"),
            "facts": extracted_facts.model_dump(mode="json"),
        }

    def load_draft(self, draft_id: str) -> dict[str, Any] | None:
        return self.drafts.get(draft_id)

    def load_contacts(self, will_id: str) -> list[Contact]:
        return [Contact.model_validate(c) for c in self.contacts.get(will_id, [])]

    def load_transcript(self, will_id: str) -> tuple[Transcript, FactModel] | None:
        stored = self.transcripts.get(will_id)
        if stored is None:
            return None
        return (
            Transcript.model_validate(stored["transcript"]),
            FactModel.model_validate(stored["facts"]),
        )
