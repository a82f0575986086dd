from typing import Any, Dict, List, Optional, Sequence

from hazardbot.utils.time import now_ms


class ReplyBuffer:
    """
    Messenger that keeps the messages of one turn in memory.
    The HTTP route returns them in the response body; nothing leaves the process.
    """

    def __init__(self):
        self.messages: List[Dict[str, Any]] = []

    def send_prompt(self, conversation_id: str, text: str, choices: Optional[Sequence[str]] = None) -> None:
        self.messages.append({
            "conversationId": conversation_id,
            "type": "prompt",
            "text": text,
            "choices": list(choices or []),
            "timestamp": now_ms(),
        })

    def send_text(self, conversation_id: str, text: str) -> None:
        self.messages.append({
            "conversationId": conversation_id,
            "type": "text",
            "text": text,
            "choices": [],
            "timestamp": now_ms(),
        })

    def texts(self) -> List[str]:
        return [m["text"] for m in self.messages]
