import json
import pytest
from unittest.mock import MagicMock, patch
from redis.exceptions import ConnectionError as RedisConnectionError

from hazardbot.store.models import ConversationRecord, ConversationSession
from hazardbot.store.session_repo import (
    InMemoryConversationStore,
    PersistenceFailure,
    RedisConversationStore,
    session_to_json,
)


def test_redis_save_writes_envelope_with_ttl():
    r = MagicMock()
    r.set.return_value = True
    store = RedisConversationStore(redis=r, ttl_sec=60)
    s = ConversationSession(conversationId="c1", record=ConversationRecord(identifier="123456782"))
    s.awaitingStage = "AWAIT_CATEGORY"

    store.save(s)

    key, payload = r.set.call_args.args
    assert key == "conversation:c1"
    assert r.set.call_args.kwargs == {"ex": 60}
    data = json.loads(payload)
    assert data["record"] == {"identifier": "123456782", "category": "", "description": ""}
    assert data["awaitingStage"] == "AWAIT_CATEGORY"
    assert data["completed"] is False


def test_redis_save_without_ttl():
    r = MagicMock()
    r.set.return_value = True
    RedisConversationStore(redis=r, ttl_sec=0).save(ConversationSession(conversationId="c1"))
    assert r.set.call_args.kwargs == {}


def test_redis_load_round_trip():
    s = ConversationSession(conversationId="c1", record=ConversationRecord(identifier="123456782", category="Mosquitoes"))
    s.repromptCount = 2
    r = MagicMock()
    r.get.return_value = session_to_json(s)

    loaded = RedisConversationStore(redis=r).load("c1")

    r.get.assert_called_with("conversation:c1")
    assert loaded.record == s.record
    assert loaded.repromptCount == 2
    assert isinstance(loaded.record, ConversationRecord)


def test_redis_load_missing_returns_none():
    r = MagicMock()
    r.get.return_value = None
    assert RedisConversationStore(redis=r).load("nope") is None


@patch("hazardbot.store.session_repo.log")
def test_legacy_record_is_migrated(mock_log):
    r = MagicMock()
    r.get.return_value = json.dumps({"Id": "123456782", "Problem": "Mosquitoes", "Descrcription": None})

    loaded = RedisConversationStore(redis=r).load("old")

    assert loaded.conversationId == "old"
    assert loaded.record == ConversationRecord(identifier="123456782", category="Mosquitoes", description="")
    assert loaded.awaitingStage is None
    assert mock_log.call_args.kwargs["event"] == "conversation_migrated"
    assert mock_log.call_args.kwargs["wrappedLegacyRecord"] is True


@patch("hazardbot.store.session_repo.log")
def test_undeclared_envelope_fields_are_dropped(mock_log):
    r = MagicMock()
    r.get.return_value = json.dumps({
        "conversationId": "c1",
        "record": {"identifier": "123456782", "colour": "blue"},
        "dialogStack": ["profileDialog"],
    })

    loaded = RedisConversationStore(redis=r).load("c1")

    assert loaded.record.identifier == "123456782"
    assert not hasattr(loaded, "dialogStack")
    assert mock_log.call_args.kwargs["removedFields"] == 1


def test_redis_errors_become_persistence_failures():
    r = MagicMock()
    r.get.side_effect = RedisConnectionError("refused")
    r.set.side_effect = RedisConnectionError("refused")
    store = RedisConversationStore(redis=r)
    with pytest.raises(PersistenceFailure):
        store.load("c1")
    with pytest.raises(PersistenceFailure):
        store.save(ConversationSession(conversationId="c1"))


def test_refused_set_is_a_failure():
    r = MagicMock()
    r.set.return_value = None
    with pytest.raises(PersistenceFailure):
        RedisConversationStore(redis=r).save(ConversationSession(conversationId="c1"))


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]"])
def test_corrupt_payload_is_a_failure(raw):
    r = MagicMock()
    r.get.return_value = raw
    with pytest.raises(PersistenceFailure):
        RedisConversationStore(redis=r).load("c1")


def test_memory_store_isolates_saved_state():
    store = InMemoryConversationStore()
    s = ConversationSession(conversationId="c1")
    store.save(s)

    s.record.identifier = "123456782"   # mutation after save is not visible
    assert store.load("c1").record.identifier == ""

    store.save(s)
    assert store.load("c1").record.identifier == "123456782"
    assert store.load("other") is None


def test_record_collected_helpers():
    rec = ConversationRecord(identifier="123456782", category="  ")
    assert rec.is_collected("identifier")
    assert not rec.is_collected("category")
    assert rec.missing_fields() == ["category", "description"]


def test_completed_entry_without_delivery_markers_counts_as_delivered():
    r = MagicMock()
    r.get.return_value = json.dumps({
        "conversationId": "c9",
        "record": {"identifier": "123456782", "category": "Mosquitoes", "description": "pond"},
        "completed": True,
        "caseReference": "2024-00042",
    })

    loaded = RedisConversationStore(redis=r).load("c9")

    assert loaded.confirmationSent is True
    assert loaded.dispatchQueued is True


def test_delivery_markers_round_trip():
    store = InMemoryConversationStore()
    s = ConversationSession(conversationId="c10", completed=True, confirmationSent=False, dispatchQueued=True)
    store.save(s)
    loaded = store.load("c10")
    assert loaded.confirmationSent is False
    assert loaded.dispatchQueued is True
