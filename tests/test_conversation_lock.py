import pytest
from unittest.mock import MagicMock, patch

import hazardbot.utils.lock as lock_mod
from hazardbot.utils.lock import ConversationBusy, conversation_lock, local_conversation_lock, turn_lock


def test_redis_lock_acquire_and_release():
    r = MagicMock()
    r.set.return_value = True
    with conversation_lock("c1", ttl_ms=1000, redis=r):
        pass
    key, token = r.set.call_args.args
    assert key == "lock:conversation:c1"
    assert r.set.call_args.kwargs == {"px": 1000, "nx": True}
    assert r.eval.call_args.args[1:] == (1, key, token)


@patch("hazardbot.utils.lock.time.sleep")
def test_redis_lock_busy(mock_sleep):
    r = MagicMock()
    r.set.return_value = None
    with pytest.raises(ConversationBusy):
        with conversation_lock("c1", ttl_ms=1000, redis=r):
            pass
    assert mock_sleep.call_count == 5
    assert not r.eval.called


def test_local_lock_is_per_conversation():
    with local_conversation_lock("a"):
        with local_conversation_lock("b"):
            pass
        with pytest.raises(ConversationBusy):
            with local_conversation_lock("a", timeout=0.01):
                pass
    # released afterwards
    with local_conversation_lock("a", timeout=0.01):
        pass


def test_local_lock_entries_are_dropped_after_release():
    with local_conversation_lock("gone"):
        assert "gone" in lock_mod._local_locks
        with pytest.raises(ConversationBusy):
            with local_conversation_lock("gone", timeout=0.01):
                pass
        # the holder still owns the entry after a busy waiter gave up
        assert "gone" in lock_mod._local_locks
    assert "gone" not in lock_mod._local_locks


def test_turn_lock_ttl_outlives_webhook_sends():
    r = MagicMock()
    r.set.return_value = True
    with patch("hazardbot.utils.lock.settings") as mock_settings, \
         patch("hazardbot.utils.lock.get_redis", return_value=r):
        mock_settings.STORE_BACKEND = "redis"
        mock_settings.LOCK_TTL_MS = 5000
        mock_settings.CHANNEL_WEBHOOK_URL = "http://connector/messages"
        mock_settings.WEBHOOK_TIMEOUT_SEC = 5.0
        with turn_lock("c1"):
            pass
    px = r.set.call_args.kwargs["px"]
    assert px > lock_mod.MAX_SENDS_PER_TURN * 5000


def test_turn_lock_ttl_without_channel_webhook():
    with patch("hazardbot.utils.lock.settings") as mock_settings:
        mock_settings.LOCK_TTL_MS = 15000
        mock_settings.CHANNEL_WEBHOOK_URL = ""
        assert lock_mod.turn_lock_ttl_ms() == 15000
