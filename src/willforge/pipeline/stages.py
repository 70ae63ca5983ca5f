"""
Stage controller.

Finite-state machine over the collection stages with one completion predicate
per stage. The controller only reports completion; moving on is always an
explicit `advance()` call.
"""

from typing import Iterable

import structlog

from willforge.config import Settings, get_settings
from willforge.models.contact import Contact
from willforge.models.conversation import Stage
from willforge.models.facts import Speaker
from willforge.services.contact_roster import RosterReport, check_roster

logger = structlog.get_logger(__name__)


class StageBlockedError(ValueError):
    """Raised when advancing out of a stage whose blocking condition is unmet."""

    def __init__(self, stage: Stage, report: RosterReport | None = None):
        self.stage = stage
        self.report = report
        detail = report.message if report else "Contacts have not been validated."
        super().__init__(f"Cannot leave the {stage.value} stage: {detail}")


class StageController:
    """
    Tracks the active stage and evaluates its completion predicate.

    Information completion is heuristic (message count or completion phrase);
    Contacts completion comes only from the roster validator.
    """

    def __init__(
        self,
        stage: Stage = Stage.INFORMATION,
        settings: Settings | None = None,
        required_roles: Iterable[str] | None = None,
    ):
        self.settings = settings or get_settings()
        self.message_threshold = self.settings.information_message_threshold
        self.completion_phrases = list(self.settings.information_completion_phrases)
        self.required_roles = list(
            required_roles if required_roles is not None else self.settings.required_contact_roles
        )

        self._stage = stage
        self._signaled = False

        # Information
        self.message_count = 0
        self.completion_phrase_seen = False

        # Contacts: None until validated in the current visit to the stage
        self.roster_report: RosterReport | None = None

        # Media
        self.documents_count = 0
        self.documents_skipped = False
        self.video_recorded = False
        self.video_skipped = False

    @property
    def stage(self) -> Stage:
        return self._stage

    # =========================================================================
    # Inputs
    # =========================================================================

    def record_message(self, speaker: Speaker, text: str) -> None:
        """Count a conversational message and watch assistant replies for completion phrases."""
        if speaker == Speaker.SYSTEM:
            return
        self.message_count += 1
        if speaker == Speaker.ASSISTANT and self.contains_completion_phrase(text):
            self.completion_phrase_seen = True
            logger.info("completion_phrase_detected", message_count=self.message_count)

    def contains_completion_phrase(self, text: str) -> bool:
        lowered = text.lower()
        return any(phrase in lowered for phrase in self.completion_phrases)

    def validate_contacts(self, contacts: Iterable[Contact]) -> RosterReport:
        """Run the roster validator and remember the result for this visit to Contacts."""
        self.roster_report = check_roster(contacts, self.required_roles)
        return self.roster_report

    def record_documents(self, count: int) -> None:
        self.documents_count = max(0, count)

    def skip_documents(self) -> None:
        self.documents_skipped = True

    def record_video(self, attached: bool = True) -> None:
        self.video_recorded = attached

    def skip_video(self) -> None:
        self.video_skipped = True

    # =========================================================================
    # Predicates
    # =========================================================================

    def is_complete(self, stage: Stage | None = None) -> bool:
        stage = stage or self._stage
        if stage == Stage.INFORMATION:
            return self.message_count >= self.message_threshold or self.completion_phrase_seen
        if stage == Stage.CONTACTS:
            return self.roster_report is not None and self.roster_report.complete
        if stage == Stage.DOCUMENTS:
            return self.documents_count >= 1 or self.documents_skipped
        if stage == Stage.VIDEO:
            return self.video_recorded or self.video_skipped
        # Review is terminal
        return False

    def evaluate(self) -> bool:
        """
        Check the active stage.

        Returns True exactly once per visit to a stage, when its predicate first holds.
        """
        if self._signaled or not self.is_complete():
            return False
        self._signaled = True
        logger.info("stage_complete", stage=self._stage.value)
        return True

    # =========================================================================
    # Transitions
    # =========================================================================

    def advance(self, contacts: Iterable[Contact] | None = None) -> Stage:
        """
        Move to the next stage. Leaving Contacts requires a complete roster.

        When `contacts` is given the roster is re-validated before leaving Contacts.
        """
        next_stage = self._stage.next()
        if next_stage is None:
            return self._stage
        if self._stage == Stage.CONTACTS:
            if contacts is not None:
                self.validate_contacts(contacts)
            if not self.is_complete(Stage.CONTACTS):
                report = self.roster_report
                logger.warning(
                    "stage_advance_blocked",
                    stage=self._stage.value,
                    missing_roles=report.missing_roles if report else None,
                    unreachable=report.unreachable_contacts if report else None,
                )
                raise StageBlockedError(self._stage, report)
        self._enter(next_stage)
        return self._stage

    def retreat(self) -> Stage:
        """Step back one stage. Collected data is kept."""
        previous = self._stage.previous()
        if previous is not None:
            self._enter(previous)
        return self._stage

    def _enter(self, stage: Stage) -> None:
        if self._stage == Stage.CONTACTS:
            # Re-entering Contacts re-validates from scratch
            self.roster_report = None
        logger.info("stage_changed", from_stage=self._stage.value, to_stage=stage.value)
        self._stage = stage
        self._signaled = False
