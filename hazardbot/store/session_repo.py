import json
import inspect
from dataclasses import asdict
from dataclasses import fields as dc_fields
from typing import Dict, Optional

from redis.exceptions import RedisError

from hazardbot.settings import settings
from hazardbot.store.redis_conn import get_redis
from hazardbot.store.models import ConversationRecord, ConversationSession
from hazardbot.observability.logging import log
from hazardbot.utils.time import now_ms

PREFIX = "conversation:"

# Keys written by the earlier dialog implementation (note the "Descrcription" typo)
LEGACY_RECORD_KEYS = {
    "Id": "identifier",
    "Problem": "category",
    "Descrcription": "description",
}


class PersistenceFailure(RuntimeError):
    """The store could not durably load or save a conversation."""


def _key(conversation_id: str) -> str:
    return f"{PREFIX}{conversation_id}"


def _migrate_record_data(raw) -> dict:
    """
    Map legacy record keys onto the canonical ones and keep only declared
    string fields. Returns a dict safe for ConversationRecord(**data).
    """
    if not isinstance(raw, dict):
        return {}
    data = dict(raw)
    for old, new in LEGACY_RECORD_KEYS.items():
        if old in data:
            if not data.get(new):
                data[new] = data[old]
            del data[old]
    allowed = {f.name for f in dc_fields(ConversationRecord)}
    return {k: ("" if v is None else str(v)) for k, v in data.items() if k in allowed}


def _migrate_session_data(data: dict, conversation_id: str) -> dict:
    """
    Backward-compat migration for stored conversations.

    Older entries stored the bare record (HazardState-shaped) rather than the
    envelope; those are wrapped, legacy keys are renamed and undeclared keys
    are dropped.
    """
    migrated = False
    if "record" not in data:
        data = {"conversationId": conversation_id, "record": data}
        migrated = True

    record = data.get("record")
    if isinstance(record, dict) and any(k in record for k in LEGACY_RECORD_KEYS):
        migrated = True
    data["record"] = _migrate_record_data(record)

    sig = inspect.signature(ConversationSession)
    allowed = set(sig.parameters.keys())
    removed = [k for k in list(data.keys()) if k not in allowed]
    for k in removed:
        del data[k]

    if not data.get("conversationId"):
        data["conversationId"] = conversation_id

    # Completed before delivery markers existed: treat both as done
    if data.get("completed") and "confirmationSent" not in data:
        data["confirmationSent"] = True
        data["dispatchQueued"] = True

    if migrated or removed:
        log(
            event="conversation_migrated",
            conversationId=conversation_id,
            wrappedLegacyRecord=migrated,
            removedFields=len(removed),
        )
    return data


def session_from_json(raw: str, conversation_id: str) -> ConversationSession:
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise PersistenceFailure(f"Corrupt conversation payload for {conversation_id}") from e
    if not isinstance(data, dict):
        raise PersistenceFailure(f"Unexpected conversation payload for {conversation_id}")
    data = _migrate_session_data(data, conversation_id)
    return ConversationSession(**data)


def session_to_json(session: ConversationSession) -> str:
    return json.dumps(asdict(session), ensure_ascii=False)


class RedisConversationStore:
    """Conversation envelopes as JSON strings under `conversation:<id>`."""

    def __init__(self, redis=None, ttl_sec: Optional[int] = None):
        self._redis = redis
        self.ttl_sec = settings.CONVERSATION_TTL_SEC if ttl_sec is None else ttl_sec

    @property
    def redis(self):
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def load(self, conversation_id: str) -> Optional[ConversationSession]:
        try:
            raw = self.redis.get(_key(conversation_id))
        except RedisError as e:
            raise PersistenceFailure(f"Could not load conversation {conversation_id}: {e}") from e
        if not raw:
            return None
        return session_from_json(raw, conversation_id)

    def save(self, session: ConversationSession) -> None:
        session.updatedAtMs = now_ms()
        payload = session_to_json(session)
        try:
            if self.ttl_sec and self.ttl_sec > 0:
                ok = self.redis.set(_key(session.conversationId), payload, ex=self.ttl_sec)
            else:
                ok = self.redis.set(_key(session.conversationId), payload)
        except RedisError as e:
            raise PersistenceFailure(f"Could not save conversation {session.conversationId}: {e}") from e
        if not ok:
            raise PersistenceFailure(f"Redis refused to save conversation {session.conversationId}")


class InMemoryConversationStore:
    """
    Process-local store for development and tests.
    Entries are kept serialized so callers never share mutable state with the store.
    """

    def __init__(self):
        self._data: Dict[str, str] = {}

    def load(self, conversation_id: str) -> Optional[ConversationSession]:
        raw = self._data.get(conversation_id)
        if raw is None:
            return None
        return session_from_json(raw, conversation_id)

    def save(self, session: ConversationSession) -> None:
        session.updatedAtMs = now_ms()
        self._data[session.conversationId] = session_to_json(session)


_default_store = None


def get_store():
    """Process-wide store selected by STORE_BACKEND."""
    global _default_store
    if _default_store is None:
        if settings.STORE_BACKEND == "memory":
            _default_store = InMemoryConversationStore()
        else:
            _default_store = RedisConversationStore()
    return _default_store
