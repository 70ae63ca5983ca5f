"""Tests for willforge/services/persistence.py: the coalescing save queue."""

import fakeredis
import pytest
from unittest.mock import MagicMock

from willforge.models.contact import Contact
from willforge.models.conversation import Transcript
from willforge.models.facts import FactModel, Speaker
from willforge.services.persistence import SAVE_ORDER, PersistenceError, SaveQueue
from willforge.storage.redis_store import RedisStore


@pytest.fixture
def queue(memory_store, settings):
    return SaveQueue(memory_store, "will-1", settings)


@pytest.fixture
def failing_backend():
    backend = MagicMock()
    backend.save_draft.side_effect = PersistenceError("disk full")
    backend.save_contacts.side_effect = PersistenceError("disk full")
    backend.save_conversation_transcript.side_effect = PersistenceError("disk full")
    return backend


class TestEnqueue:

    def test_nothing_pending_initially(self, queue):
        assert not queue.has_pending
        assert queue.pending_kinds == []

    def test_kinds_in_flush_order(self, queue):
        queue.enqueue_transcript(Transcript(), FactModel())
        queue.enqueue_draft("text")
        queue.enqueue_contacts([])
        assert queue.pending_kinds == list(SAVE_ORDER)

    def test_same_kind_coalesces(self, queue):
        queue.enqueue_draft("first")
        queue.enqueue_draft("second")
        assert queue.pending_kinds == ["draft"]

    def test_abandon(self, queue):
        queue.enqueue_draft("text")
        assert queue.abandon("draft")
        assert not queue.abandon("draft")
        assert not queue.has_pending


class TestFlush:

    @pytest.mark.asyncio
    async def test_first_draft_save_then_update(self, queue, memory_store):
        queue.enqueue_draft("first", {"stage": "information"})
        assert await queue.flush() == []
        draft_id = queue.draft_id
        assert memory_store.drafts[draft_id]["content"] == "first"
        assert memory_store.drafts[draft_id]["metadata"]["will_id"] == "will-1"

        queue.enqueue_draft("second", {"stage": "contacts"})
        await queue.flush()
        assert queue.draft_id == draft_id
        assert len(memory_store.drafts) == 1
        assert memory_store.drafts[draft_id]["content"] == "second"
        assert memory_store.drafts[draft_id]["metadata"]["stage"] == "contacts"

    @pytest.mark.asyncio
    async def test_only_latest_coalesced_draft_is_written(self, queue, memory_store):
        queue.enqueue_draft("first")
        queue.enqueue_draft("second")
        await queue.flush()
        assert [d["content"] for d in memory_store.drafts.values()] == ["second"]

    @pytest.mark.asyncio
    async def test_contacts_and_transcript(self, queue, memory_store, executor_contact):
        transcript = Transcript()
        transcript.append(Speaker.USER, "My name is Jane Smith")
        queue.enqueue_contacts([executor_contact])
        queue.enqueue_transcript(transcript, FactModel(full_name="Jane Smith"))
        await queue.flush()

        assert memory_store.load_contacts("will-1")[0].id == executor_contact.id
        loaded_transcript, loaded_facts = memory_store.load_transcript("will-1")
        assert loaded_transcript.messages[0].text == "My name is Jane Smith"
        assert loaded_facts.full_name == "Jane Smith"
        assert not queue.has_pending

    @pytest.mark.asyncio
    async def test_snapshots_taken_at_enqueue(self, queue, memory_store):
        transcript = Transcript()
        transcript.append(Speaker.USER, "one")
        queue.enqueue_transcript(transcript, FactModel())
        transcript.append(Speaker.USER, "two")
        await queue.flush()
        loaded_transcript, _ = memory_store.load_transcript("will-1")
        assert len(loaded_transcript) == 1

    @pytest.mark.asyncio
    async def test_failures_reported_and_kept(self, failing_backend, settings):
        queue = SaveQueue(failing_backend, "will-1", settings)
        queue.enqueue_draft("text")
        queue.enqueue_contacts([])
        failures = await queue.flush()

        assert [f.kind for f in failures] == ["contacts", "draft"]
        assert all(f.attempts == settings.save_max_attempts for f in failures)
        assert failures[0].error == "disk full"
        assert queue.pending_kinds == ["contacts", "draft"]
        assert failing_backend.save_draft.call_count == settings.save_max_attempts

    @pytest.mark.asyncio
    async def test_retry_succeeds(self, settings, memory_store):
        backend = MagicMock(wraps=memory_store)
        backend.save_contacts.side_effect = [PersistenceError("blip"), None]
        queue = SaveQueue(backend, "will-1", settings)
        queue.enqueue_contacts([])
        assert await queue.flush() == []
        assert backend.save_contacts.call_count == 2
        assert not queue.has_pending

    @pytest.mark.asyncio
    async def test_failed_save_retried_on_next_flush(self, failing_backend, settings):
        queue = SaveQueue(failing_backend, "will-1", settings)
        queue.enqueue_contacts([])
        await queue.flush()
        failing_backend.save_contacts.side_effect = None
        assert await queue.flush() == []
        assert not queue.has_pending

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self, settings, memory_store):
        backend = MagicMock(wraps=memory_store)
        backend.save_contacts.side_effect = PersistenceError("down")
        queue = SaveQueue(backend, "will-1", settings)
        queue.enqueue_contacts([Contact(name="A", role="Executor")])
        queue.enqueue_draft("text")
        failures = await queue.flush()
        assert [f.kind for f in failures] == ["contacts"]
        assert len(memory_store.drafts) == 1
        assert queue.pending_kinds == ["contacts"]

    @pytest.mark.asyncio
    async def test_expired_draft_is_saved_again(self, queue, memory_store):
        queue.enqueue_draft("first")
        await queue.flush()
        expired_id = queue.draft_id
        del memory_store.drafts[expired_id]

        queue.enqueue_draft("second", {"stage": "contacts"})
        assert await queue.flush() == []
        assert queue.draft_id != expired_id
        assert memory_store.load_draft(queue.draft_id)["content"] == "second"
        assert not queue.has_pending

        queue.enqueue_draft("third")
        await queue.flush()
        assert len(memory_store.drafts) == 1
        assert memory_store.load_draft(queue.draft_id)["content"] == "third"


class TestRedisDraftExpiry:

    @pytest.mark.asyncio
    async def test_expired_redis_draft_is_saved_again(self, settings):
        store = RedisStore(client=fakeredis.FakeRedis(decode_responses=True), key_prefix="test")
        queue = SaveQueue(store, "will-1", settings)
        queue.enqueue_draft("first")
        await queue.flush()
        expired_id = queue.draft_id
        store.client.delete(store.key("draft", expired_id))

        queue.enqueue_draft("second")
        assert await queue.flush() == []
        assert store.load_draft(queue.draft_id)["content"] == "second"
