import time
from typing import Optional, Sequence

import httpx

from hazardbot.observability.logging import log
from hazardbot.settings import settings
from hazardbot.utils.time import now_ms


class MessagingFailure(RuntimeError):
    """Outbound message could not be delivered to the channel connector."""


class WebhookMessenger:
    """
    Pushes each outbound message to a channel connector over HTTP.

    Payload: {"conversationId", "type": "prompt"|"text", "text", "choices", "timestamp"}.
    When `buffer` is given, every delivered message is also recorded there so
    the HTTP turn response still carries it.
    """

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None, buffer=None, client=None):
        self.url = url if url is not None else settings.CHANNEL_WEBHOOK_URL
        self.timeout = timeout if timeout is not None else settings.WEBHOOK_TIMEOUT_SEC
        self.buffer = buffer
        self._client = client

    def _post(self, payload: dict) -> None:
        if not self.url:
            raise MessagingFailure("CHANNEL_WEBHOOK_URL is not set")
        start = time.time()
        try:
            if self._client is not None:
                resp = self._client.post(self.url, json=payload)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    resp = client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            log(event="channel_send_error", conversationId=payload.get("conversationId"), error=str(e))
            raise MessagingFailure(f"Channel webhook unreachable: {e}") from e

        elapsed_ms = int((time.time() - start) * 1000)
        if not (200 <= resp.status_code < 300):
            log(
                event="channel_send_rejected",
                conversationId=payload.get("conversationId"),
                statusCode=int(resp.status_code),
                elapsedMs=elapsed_ms,
            )
            raise MessagingFailure(f"Channel webhook returned {resp.status_code}")

    def send_prompt(self, conversation_id: str, text: str, choices: Optional[Sequence[str]] = None) -> None:
        self._post({
            "conversationId": conversation_id,
            "type": "prompt",
            "text": text,
            "choices": list(choices or []),
            "timestamp": now_ms(),
        })
        if self.buffer is not None:
            self.buffer.send_prompt(conversation_id, text, choices)

    def send_text(self, conversation_id: str, text: str) -> None:
        self._post({
            "conversationId": conversation_id,
            "type": "text",
            "text": text,
            "choices": [],
            "timestamp": now_ms(),
        })
        if self.buffer is not None:
            self.buffer.send_text(conversation_id, text)
