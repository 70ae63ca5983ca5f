"""
Conversation Orchestrator

Runs each utterance through extract -> merge -> render -> stage check.
Local processing is synchronous; model calls and saves are awaited separately
and never block the preview.
"""

from datetime import datetime
from typing import Any, Callable
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field

from willforge.config import Settings, get_settings
from willforge.models.contact import Contact, ContactRole
from willforge.models.conversation import Stage, Transcript
from willforge.models.document import RenderedDocument, TemplateKind
from willforge.models.facts import FactDelta, FactModel, Speaker
from willforge.pipeline.extraction import extract, hints_to_delta, rederive_facts
from willforge.pipeline.merge import merge_facts
from willforge.pipeline.stages import StageController
from willforge.pipeline.synthesis import completion_percentage, synthesize
from willforge.services.contact_roster import ContactRoster, RosterReport
from willforge.services.llm_service import LLMService, ModelReply, get_llm_service
from willforge.services.persistence import PersistenceBackend, SaveQueue
from willforge.services.prompts import welcome_message

logger = structlog.get_logger(__name__)

APOLOGY_REPLY = "I'm sorry, I couldn't generate a response. Let's try again."


class CollaboratorWarning(BaseModel):
    """Non-blocking failure of an external collaborator."""

    source: str = Field(..., description="'model' or 'persistence'")
    message: str
    kind: str | None = None
    occurred_at: datetime = Field(default_factory=datetime.utcnow)


class UtteranceResult(BaseModel):
    """Outcome of processing one utterance."""

    delta: FactDelta
    changed: bool
    changed_label: str | None = None
    preview: str | None = None
    stage_complete: bool = False


class ChatTurn(BaseModel):
    """A user message and the assistant reply it produced."""

    user: UtteranceResult
    reply_text: str
    reply: UtteranceResult | None = None
    model: str | None = None


class ConversationOrchestrator:
    """
    Orchestrates one will-in-progress.

    Coordinates:
    1. Transcript
    2. Extraction and monotonic merge
    3. Live preview rendering
    4. Stage completion signals
    5. Contact roster and opportunistic saves
    """

    def __init__(
        self,
        template_kind: TemplateKind | str | None = None,
        facts: FactModel | None = None,
        settings: Settings | None = None,
        llm_service: LLMService | None = None,
        backend: PersistenceBackend | None = None,
        will_id: str | None = None,
        contacts: list[Contact] | None = None,
    ):
        self.settings = settings or get_settings()
        self.template_kind = TemplateKind.resolve(template_kind or self.settings.default_template)
        self.will_id = will_id or str(uuid4())

        self.facts = facts or FactModel()
        self.transcript = Transcript()
        self.stages = StageController(settings=self.settings)
        self.roster = ContactRoster(contacts, self.stages.required_roles)
        self.warnings: list[CollaboratorWarning] = []

        self._llm: LLMService | None = llm_service
        self.save_queue = SaveQueue(backend, self.will_id, self.settings) if backend else None

        self._document: RenderedDocument = synthesize(self.template_kind, self.facts)

        # Callbacks
        self._preview_callback: Callable[[str], None] | None = None
        self._stage_callback: Callable[[Stage], None] | None = None

    @property
    def llm(self) -> LLMService:
        if self._llm is None:
            self._llm = get_llm_service()
        return self._llm

    @property
    def stage(self) -> Stage:
        return self.stages.stage

    @property
    def document(self) -> RenderedDocument:
        return self._document

    @property
    def preview(self) -> str:
        return self._document.text

    @property
    def progress(self) -> int:
        return completion_percentage(self.facts)

    def set_preview_callback(self, callback: Callable[[str], None]) -> None:
        """Set callback receiving every refreshed preview."""
        self._preview_callback = callback

    def set_stage_callback(self, callback: Callable[[Stage], None]) -> None:
        """Set callback receiving stage-complete signals."""
        self._stage_callback = callback

    # =========================================================================
    # Utterances
    # =========================================================================

    def start(self) -> str:
        """Open the conversation with the template's welcome message."""
        text = welcome_message(self.template_kind, self.settings.assistant_name)
        self.handle_utterance(text, Speaker.ASSISTANT)
        return text

    def handle_utterance(self, text: str, speaker: Speaker = Speaker.USER) -> UtteranceResult:
        """Process one submitted message or model reply."""
        self.transcript.append(speaker, text)
        self.stages.record_message(speaker, text)
        delta = extract(
            text,
            self.template_kind,
            self.facts,
            speaker=speaker,
            assistant_name=self.settings.assistant_name,
        )
        return self._apply(delta)

    def handle_keystroke(self, text: str) -> UtteranceResult:
        """
        Render a transient preview of the message being typed.

        The merged facts are never committed; only a submitted message
        (`handle_utterance`) updates the Fact Model.
        """
        delta = extract(
            text,
            self.template_kind,
            self.facts,
            speaker=Speaker.USER,
            preview=True,
            assistant_name=self.settings.assistant_name,
        )
        merged = merge_facts(self.facts, delta)
        preview = None
        if merged.changed:
            preview = synthesize(self.template_kind, merged.facts).text
            if self._preview_callback:
                self._preview_callback(preview)
        return UtteranceResult(
            delta=delta,
            changed=merged.changed,
            changed_label=merged.changed_label,
            preview=preview,
            stage_complete=False,
        )

    def apply_model_reply(self, reply: ModelReply) -> UtteranceResult:
        """Merge a model reply (text and structured hints) into the current facts."""
        result = self.handle_utterance(reply.text, Speaker.ASSISTANT)
        hints = hints_to_delta(reply.structured_hints, self.facts)
        if hints.is_empty():
            return result
        hinted = self._apply(hints)
        return UtteranceResult(
            delta=hints,
            changed=result.changed or hinted.changed,
            changed_label=hinted.changed_label or result.changed_label,
            preview=hinted.preview or result.preview,
            stage_complete=result.stage_complete or hinted.stage_complete,
        )

    def _apply(self, delta: FactDelta) -> UtteranceResult:
        # Always merged against the facts current at arrival time
        self.facts, changed, label = merge_facts(self.facts, delta)
        preview = None
        if changed:
            preview = self.refresh_preview()
            if self.save_queue is not None:
                self.save_queue.enqueue_draft(preview, self._draft_metadata())
        stage_complete = self._evaluate_stage()
        return UtteranceResult(
            delta=delta,
            changed=changed,
            changed_label=label,
            preview=preview,
            stage_complete=stage_complete,
        )

    def refresh_preview(self) -> str:
        self._document = synthesize(self.template_kind, self.facts)
        logger.debug(
            "preview_refreshed",
            will_id=self.will_id,
            articles=len(self._document.articles),
            last_updated=self.facts.last_updated_field,
        )
        if self._preview_callback:
            self._preview_callback(self._document.text)
        return self._document.text

    def rederive(self) -> FactModel:
        """Recovery: rebuild the facts from the whole transcript and re-render."""
        self.facts = rederive_facts(
            self.transcript.messages, self.template_kind, self.settings.assistant_name
        )
        self.refresh_preview()
        return self.facts

    # =========================================================================
    # Model
    # =========================================================================

    async def send(self, text: str) -> ChatTurn:
        """Process a user message, then ask the model for the next reply."""
        user_result = self.handle_utterance(text, Speaker.USER)
        history = self.transcript.history(self.settings.llm_history_window)

        try:
            reply = await self.llm.complete(history, self.template_kind, self.stage)
        except Exception as e:
            logger.warning("model_call_failed", will_id=self.will_id, error=str(e))
            self.warnings.append(CollaboratorWarning(source="model", message=str(e)))
            # The apology is logged to the transcript but never extracted from
            self.transcript.append(Speaker.ASSISTANT, APOLOGY_REPLY)
            return ChatTurn(user=user_result, reply_text=APOLOGY_REPLY)

        reply_result = self.apply_model_reply(reply)
        return ChatTurn(
            user=user_result,
            reply_text=reply.text,
            reply=reply_result,
            model=reply.model,
        )

    # =========================================================================
    # Stages
    # =========================================================================

    def _evaluate_stage(self) -> bool:
        if not self.stages.evaluate():
            return False
        logger.info("stage_complete_signaled", will_id=self.will_id, stage=self.stage.value)
        if self.save_queue is not None:
            self.save_queue.enqueue_draft(self.preview, self._draft_metadata())
            self.save_queue.enqueue_transcript(self.transcript, self.facts)
            if self.stage == Stage.CONTACTS:
                self.save_queue.enqueue_contacts(self.roster.contacts)
        if self._stage_callback:
            self._stage_callback(self.stage)
        return True

    def advance(self) -> Stage:
        """Move to the next stage on explicit user confirmation."""
        leaving = self.stage
        stage = self.stages.advance(self.roster.contacts)
        self._stage_changed(leaving)
        return stage

    def retreat(self) -> Stage:
        """Step back one stage; facts and contacts are kept."""
        leaving = self.stage
        stage = self.stages.retreat()
        self._stage_changed(leaving)
        return stage

    def _stage_changed(self, leaving: Stage) -> None:
        if leaving == self.stage:
            return
        if leaving == Stage.CONTACTS and self.save_queue is not None:
            self.save_queue.enqueue_contacts(self.roster.contacts)
        if self.stage == Stage.CONTACTS:
            # Contacts collected earlier count on arrival
            self.validate_contacts()
        else:
            self._evaluate_stage()

    def record_documents(self, count: int) -> bool:
        self.stages.record_documents(count)
        return self._evaluate_stage()

    def skip_documents(self) -> bool:
        self.stages.skip_documents()
        return self._evaluate_stage()

    def record_video(self, attached: bool = True) -> bool:
        self.stages.record_video(attached)
        return self._evaluate_stage()

    def skip_video(self) -> bool:
        self.stages.skip_video()
        return self._evaluate_stage()

    # =========================================================================
    # Contacts
    # =========================================================================

    def validate_contacts(self) -> RosterReport:
        """Validate the roster with the same predicate the stage uses."""
        report = self.stages.validate_contacts(self.roster.contacts)
        self._evaluate_stage()
        return report

    def add_contact(self, name: str, role: ContactRole | str, **fields: Any) -> Contact:
        contact = self.roster.add(name, role, **fields)
        self._contacts_changed()
        return contact

    def update_contact(self, contact_id: str, **fields: Any) -> Contact:
        contact = self.roster.update(contact_id, **fields)
        self._contacts_changed()
        return contact

    def remove_contact(self, contact_id: str) -> Contact:
        contact = self.roster.remove(contact_id)
        self._contacts_changed()
        return contact

    def _contacts_changed(self) -> None:
        if self.stage == Stage.CONTACTS:
            self.validate_contacts()

    # =========================================================================
    # Persistence
    # =========================================================================

    def save(self) -> None:
        """Queue every save explicitly (user-initiated)."""
        if self.save_queue is None:
            return
        self.save_queue.enqueue_draft(self.preview, self._draft_metadata())
        self.save_queue.enqueue_contacts(self.roster.contacts)
        self.save_queue.enqueue_transcript(self.transcript, self.facts)

    async def flush(self) -> list[CollaboratorWarning]:
        """Run pending saves; failures become warnings and stay queued."""
        if self.save_queue is None:
            return []
        new_warnings = [
            CollaboratorWarning(source="persistence", message=f.error, kind=f.kind)
            for f in await self.save_queue.flush()
        ]
        self.warnings.extend(new_warnings)
        return new_warnings

    def _draft_metadata(self) -> dict[str, Any]:
        return {
            "will_id": self.will_id,
            "template_kind": self.template_kind.value,
            "stage": self.stage.value,
            "title": self._document.title,
            "progress": self.progress,
        }
