from contextlib import contextmanager
import threading
import time
import uuid
from redis.exceptions import RedisError
from hazardbot.settings import settings
from hazardbot.store.redis_conn import get_redis

class ConversationBusy(RuntimeError):
    """Another turn of the same conversation holds the lock."""

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

@contextmanager
def conversation_lock(conversation_id: str, ttl_ms: int = 0, redis=None):
    """
    Distributed lock so only one turn of a conversation runs at a time.
    Raises ConversationBusy when the lock stays taken after a short spin.
    """
    r = redis if redis is not None else get_redis()
    ttl_ms = ttl_ms or settings.LOCK_TTL_MS
    key = f"lock:conversation:{conversation_id}"
    token = uuid.uuid4().hex
    acquired = r.set(key, token, px=ttl_ms, nx=True)

    try:
        if not acquired:
            for _ in range(5):
                time.sleep(0.1)
                if r.set(key, token, px=ttl_ms, nx=True):
                    acquired = True
                    break

            if not acquired:
                raise ConversationBusy(f"Could not acquire lock for conversation {conversation_id}")

        yield
    finally:
        if acquired:
            # Release only if we still own it; the TTL covers a failed release
            try:
                r.eval(_RELEASE_SCRIPT, 1, key, token)
            except RedisError:
                pass


# conversation_id -> [lock, holders + waiters]; entries go away with their last user
_local_locks = {}
_local_guard = threading.Lock()

@contextmanager
def local_conversation_lock(conversation_id: str, timeout: float = 0.5):
    """In-process equivalent of conversation_lock for the memory store backend."""
    with _local_guard:
        entry = _local_locks.setdefault(conversation_id, [threading.Lock(), 0])
        entry[1] += 1
    try:
        if not entry[0].acquire(timeout=timeout):
            raise ConversationBusy(f"Could not acquire lock for conversation {conversation_id}")
        try:
            yield
        finally:
            entry[0].release()
    finally:
        with _local_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _local_locks[conversation_id]

# A turn sends at most two messages: failure text + prompt, or the confirmation pair
MAX_SENDS_PER_TURN = 2
LOCK_MARGIN_MS = 5000

def turn_lock_ttl_ms() -> int:
    """Lock TTL that outlives a turn whose outbound sends all run into the webhook timeout."""
    ttl_ms = int(settings.LOCK_TTL_MS or 0)
    if settings.CHANNEL_WEBHOOK_URL:
        sends_ms = int(MAX_SENDS_PER_TURN * float(settings.WEBHOOK_TIMEOUT_SEC) * 1000)
        ttl_ms = max(ttl_ms, sends_ms + LOCK_MARGIN_MS)
    return ttl_ms

def turn_lock(conversation_id: str):
    if settings.STORE_BACKEND == "memory":
        return local_conversation_lock(conversation_id)
    return conversation_lock(conversation_id, ttl_ms=turn_lock_ttl_ms())
