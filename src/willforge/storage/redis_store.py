"""
Redis persistence backend.

Values are JSON documents under `{prefix}:{kind}:{id}` keys; drafts expire
after the configured TTL.
"""

import json
from datetime import datetime
from functools import lru_cache
from typing import Any
from uuid import uuid4

import structlog
from pydantic import ValidationError
from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from willforge.config import get_settings
from willforge.models.contact import Contact
from willforge.models.conversation import Transcript
from willforge.models.facts import FactModel
from willforge.services.persistence import DraftNotFoundError, PersistenceError

logger = structlog.get_logger(__name__)


class RedisStore:
    """
    Redis implementation of the persistence interface.

    Writes raise PersistenceError so the save queue can retry them; reads log
    and return nothing.
    """

    def __init__(
        self,
        url: str | None = None,
        client: Redis | None = None,
        key_prefix: str | None = None,
    ):
        settings = get_settings()
        self.url = url or settings.redis_url
        self.key_prefix = key_prefix or settings.redis_key_prefix
        self.draft_ttl = settings.draft_ttl_seconds
        self._client: Redis | None = client

    def connect(self) -> Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = Redis.from_url(
                self.url,
                decode_responses=True,
            )
            logger.info("redis_connected", url=self.url)
        return self._client

    @property
    def client(self) -> Redis:
        """Get the Redis client."""
        return self.connect()

    def close(self) -> None:
        """Close the Redis connection."""
        if self._client:
            self._client.close()
            self._client = None

    def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            self.client.ping()
            return True
        except RedisConnectionError as e:
            logger.error("redis_health_check_failed", error=str(e))
            return False

    def key(self, kind: str, identifier: str) -> str:
        return f"{self.key_prefix}:{kind}:{identifier}"

    # =========================================================================
    # Basic Operations
    # =========================================================================

    def _write(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            serialized = json.dumps(value, default=str)
            if ttl:
                self.client.setex(key, ttl, serialized)
            else:
                self.client.set(key, serialized)
        except (RedisError, TypeError) as e:
            logger.warning("redis_write_failed", key=key, error=str(e))
            raise PersistenceError(f"Could not write {key}: {e}") from e

    def _read(self, key: str) -> Any | None:
        try:
            value = self.client.get(key)
            if value:
                return json.loads(value)
            return None
        except (RedisError, json.JSONDecodeError) as e:
            logger.warning("redis_read_failed", key=key, error=str(e))
            return None

    # =========================================================================
    # Drafts
    # =========================================================================

    def save_draft(self, document_text: str, metadata: dict[str, Any]) -> str:
        draft_id = str(uuid4())
        now = datetime.utcnow().isoformat()
        self._write(
            self.key("draft", draft_id),
            {
                "id": draft_id,
                "content": document_text,
                "metadata": metadata,
                "created_at": now,
                "updated_at": now,
            },
            ttl=self.draft_ttl,
        )
        logger.info("draft_saved", draft_id=draft_id)
        return draft_id

    def update_draft(self, draft_id: str, fields: dict[str, Any]) -> None:
        key = self.key("draft", draft_id)
        draft = self._read(key)
        if draft is None:
            raise DraftNotFoundError(f"Draft {draft_id} not found")
        fields = dict(fields)
        if "content" in fields:
            draft["content"] = fields.pop("content")
        draft["metadata"].update(fields)
        draft["updated_at"] = datetime.utcnow().isoformat()
        self._write(key, draft, ttl=self.draft_ttl)

    def load_draft(self, draft_id: str) -> dict[str, Any] | None:
        return self._read(self.key("draft", draft_id))

    # =========================================================================
    # Contacts and transcripts
    # =========================================================================

    def save_contacts(self, will_id: str, contacts: list[Contact]) -> None:
        self._write(
            self.key("contacts", will_id),
            [c.model_dump(mode="json") for c in contacts],
        )
        logger.info("contacts_saved", will_id=will_id, count=len(contacts))

    def load_contacts(self, will_id: str) -> list[Contact]:
        stored = self._read(self.key("contacts", will_id)) or []
        try:
            return [Contact.model_validate(c) for c in stored]
        except ValidationError as e:
            logger.warning("contacts_load_failed", will_id=will_id, error=str(e))
            return []

    def save_conversation_transcript(
        self, will_id: str, transcript: Transcript, extracted_facts: FactModel
    ) -> None:
        self._write(
            self.key("transcript", will_id),
            {
                "transcript": transcript.model_dump(mode="json"),
                "facts": extracted_facts.model_dump(mode="json"),
            },
        )

    def load_transcript(self, will_id: str) -> tuple[Transcript, FactModel] | None:
        stored = self._read(self.key("transcript", will_id))
        if stored is None:
            return None
        try:
            return (
                Transcript.model_validate(stored["transcript"]),
                FactModel.model_validate(stored["facts"]),
            )
        except (KeyError, ValidationError) as e:
            logger.warning("transcript_load_failed", will_id=will_id, error=str(e))
            return None


@lru_cache()
def get_redis_store() -> RedisStore:
    """Get cached Redis store instance."""
    return RedisStore()
