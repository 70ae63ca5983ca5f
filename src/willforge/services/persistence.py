"""
Persistence collaborator interface and the save queue.

The in-memory Fact Model and preview stay authoritative when saves fail:
failed saves stay queued and are retried on the next flush.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Protocol

import structlog
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from willforge.config import Settings, get_settings
from willforge.models.contact import Contact
from willforge.models.conversation import Transcript
from willforge.models.facts import FactModel

logger = structlog.get_logger(__name__)


class PersistenceError(RuntimeError):
    """A persistence backend could not complete a write."""


class DraftNotFoundError(PersistenceError):
    """The draft to update no longer exists (expired or deleted)."""


class PersistenceBackend(Protocol):
    """Storage operations the core calls. Implementations live in willforge.storage."""

    def save_draft(self, document_text: str, metadata: dict[str, Any]) -> str: ...

    def update_draft(self, draft_id: str, fields: dict[str, Any]) -> None: ...

    def save_contacts(self, will_id: str, contacts: list[Contact]) -> None: ...

    def save_conversation_transcript(
        self, will_id: str, transcript: Transcript, extracted_facts: FactModel
    ) -> None: ...

    def load_draft(self, draft_id: str) -> dict[str, Any] | None: ...

    def load_contacts(self, will_id: str) -> list[Contact]: ...

    def load_transcript(self, will_id: str) -> tuple[Transcript, FactModel] | None: ...


@dataclass
class PendingSave:
    """One queued write; a newer save of the same kind replaces it."""

    kind: str
    action: Callable[[], Any]
    queued_at: datetime
    attempts: int = 0


@dataclass
class SaveFailure:
    """A save that exhausted its retries in one flush. It remains queued."""

    kind: str
    error: str
    attempts: int


# Flush order: contacts carry required-role data
SAVE_ORDER = ("contacts", "draft", "transcript")


class SaveQueue:
    """
    Coalescing save queue for one will.

    Each kind (draft, contacts, transcript) holds at most one pending save.
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        will_id: str,
        settings: Settings | None = None,
    ):
        self.backend = backend
        self.will_id = will_id
        self.settings = settings or get_settings()
        self.draft_id: str | None = None
        self._pending: dict[str, PendingSave] = {}

    @property
    def pending_kinds(self) -> list[str]:
        return [kind for kind in SAVE_ORDER if kind in self._pending]

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def _enqueue(self, kind: str, action: Callable[[], Any]) -> None:
        replaced = kind in self._pending
        self._pending[kind] = PendingSave(kind=kind, action=action, queued_at=datetime.utcnow())
        logger.debug("save_enqueued", kind=kind, will_id=self.will_id, coalesced=replaced)

    def enqueue_draft(self, document_text: str, metadata: dict[str, Any] | None = None) -> None:
        metadata = dict(metadata or {})
        metadata.setdefault("will_id", self.will_id)

        def save() -> str:
            if self.draft_id is None:
                self.draft_id = self.backend.save_draft(document_text, metadata)
            else:
                try:
                    self.backend.update_draft(self.draft_id, {"content": document_text, **metadata})
                except DraftNotFoundError:
                    logger.info("draft_missing_resaving", draft_id=self.draft_id, will_id=self.will_id)
                    self.draft_id = self.backend.save_draft(document_text, metadata)
            return self.draft_id

        self._enqueue("draft", save)

    def enqueue_contacts(self, contacts: list[Contact]) -> None:
        snapshot = [c.model_copy() for c in contacts]
        self._enqueue("contacts", lambda: self.backend.save_contacts(self.will_id, snapshot))

    def enqueue_transcript(self, transcript: Transcript, facts: FactModel) -> None:
        transcript_snapshot = transcript.model_copy(deep=True)
        facts_snapshot = facts.model_copy(deep=True)
        self._enqueue(
            "transcript",
            lambda: self.backend.save_conversation_transcript(
                self.will_id, transcript_snapshot, facts_snapshot
            ),
        )

    def abandon(self, kind: str) -> bool:
        """Drop a pending save explicitly. Returns whether one was pending."""
        dropped = self._pending.pop(kind, None)
        if dropped is not None:
            logger.warning("save_abandoned", kind=kind, will_id=self.will_id)
        return dropped is not None

    async def _run(self, job: PendingSave) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.save_max_attempts),
            wait=wait_exponential(multiplier=self.settings.save_retry_wait_seconds, max=10),
            reraise=True,
        ):
            with attempt:
                job.attempts += 1
                job.action()

    async def flush(self) -> list[SaveFailure]:
        """
        Run every pending save.

        Returns the failures; failed saves stay queued for the next flush.
        """
        failures: list[SaveFailure] = []
        for kind in self.pending_kinds:
            job = self._pending[kind]
            try:
                await self._run(job)
            except Exception as e:
                logger.warning(
                    "save_failed",
                    kind=kind,
                    will_id=self.will_id,
                    attempts=job.attempts,
                    error=str(e),
                )
                failures.append(SaveFailure(kind=kind, error=str(e), attempts=job.attempts))
                continue
            # A newer save of this kind may have been queued meanwhile
            if self._pending.get(kind) is job:
                del self._pending[kind]
            logger.info("save_completed", kind=kind, will_id=self.will_id)
        return failures
