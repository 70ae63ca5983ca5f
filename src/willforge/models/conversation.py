"""
Conversation models: collection stages and the transcript.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from willforge.models.facts import Speaker


class Stage(str, Enum):
    """Collection stages, in their fixed order."""

    INFORMATION = "information"
    CONTACTS = "contacts"
    DOCUMENTS = "documents"
    VIDEO = "video"
    REVIEW = "review"

    @property
    def index(self) -> int:
        return STAGE_ORDER.index(self)

    @property
    def is_terminal(self) -> bool:
        return self is Stage.REVIEW

    def next(self) -> "Stage | None":
        i = self.index
        return STAGE_ORDER[i + 1] if i + 1 < len(STAGE_ORDER) else None

    def previous(self) -> "Stage | None":
        i = self.index
        return STAGE_ORDER[i - 1] if i > 0 else None


STAGE_ORDER = [
    Stage.INFORMATION,
    Stage.CONTACTS,
    Stage.DOCUMENTS,
    Stage.VIDEO,
    Stage.REVIEW,
]


class Message(BaseModel):
    """One utterance in the conversation."""

    speaker: Speaker
    text: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    def as_chat(self) -> dict[str, str]:
        """Role/content dict in the shape chat-completion APIs expect."""
        return {"role": self.speaker.value, "content": self.text}


class Transcript(BaseModel):
    """Ordered conversation log, kept for persistence and recovery."""

    messages: list[Message] = Field(default_factory=list)

    def append(self, speaker: Speaker, text: str) -> Message:
        message = Message(speaker=speaker, text=text)
        self.messages.append(message)
        return message

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def conversational_count(self) -> int:
        """Messages exchanged between user and assistant (system notes excluded)."""
        return sum(1 for m in self.messages if m.speaker != Speaker.SYSTEM)

    def last_from(self, speaker: Speaker) -> Message | None:
        for message in reversed(self.messages):
            if message.speaker == speaker:
                return message
        return None

    def history(self, window: int | None = None) -> list[dict[str, str]]:
        """User/assistant turns as chat dicts, most recent `window` only."""
        turns = [m.as_chat() for m in self.messages if m.speaker != Speaker.SYSTEM]
        if window is not None and window > 0:
            turns = turns[-window:]
        return turns
