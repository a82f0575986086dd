import httpx
import pytest
from unittest.mock import MagicMock

from hazardbot.messaging.reply_buffer import ReplyBuffer
from hazardbot.messaging.webhook import MessagingFailure, WebhookMessenger


def _client(status=200):
    client = MagicMock()
    client.post.return_value = MagicMock(status_code=status)
    return client


def test_prompt_is_posted_and_buffered():
    client = _client()
    buf = ReplyBuffer()
    m = WebhookMessenger(url="http://connector/send", buffer=buf, client=client)

    m.send_prompt("c1", "What kind of hazard?", ["A", "B"])

    url = client.post.call_args.args[0]
    body = client.post.call_args.kwargs["json"]
    assert url == "http://connector/send"
    assert body["conversationId"] == "c1"
    assert body["type"] == "prompt"
    assert body["choices"] == ["A", "B"]
    assert buf.messages[0]["choices"] == ["A", "B"]


def test_text_without_buffer():
    client = _client()
    m = WebhookMessenger(url="http://connector/send", client=client)
    m.send_text("c1", "Thanks")
    assert client.post.call_args.kwargs["json"]["type"] == "text"


def test_non_2xx_raises():
    buf = ReplyBuffer()
    m = WebhookMessenger(url="http://connector/send", buffer=buf, client=_client(502))
    with pytest.raises(MessagingFailure):
        m.send_text("c1", "Thanks")
    assert buf.messages == []


def test_transport_error_raises():
    client = MagicMock()
    client.post.side_effect = httpx.ConnectError("boom")
    m = WebhookMessenger(url="http://connector/send", client=client)
    with pytest.raises(MessagingFailure):
        m.send_prompt("c1", "hi")


def test_missing_url_raises():
    m = WebhookMessenger(url="", client=_client())
    with pytest.raises(MessagingFailure):
        m.send_text("c1", "hi")


def test_reply_buffer_records_order():
    buf = ReplyBuffer()
    buf.send_text("c1", "Invalid ID number.")
    buf.send_prompt("c1", "Please enter your ID number.")
    assert buf.texts() == ["Invalid ID number.", "Please enter your ID number."]
    assert [m["type"] for m in buf.messages] == ["text", "prompt"]
    assert buf.messages[1]["choices"] == []
