from dataclasses import dataclass, field
from typing import Optional

from hazardbot.utils.time import now_ms

# Fields in collection order. Stage derivation walks this tuple.
RECORD_FIELDS = ("identifier", "category", "description")


@dataclass
class ConversationRecord:
    identifier: str = ""
    category: str = ""
    description: str = ""

    def is_collected(self, name: str) -> bool:
        """A field counts as collected iff it is non-empty after trimming."""
        return bool((getattr(self, name, "") or "").strip())

    def missing_fields(self):
        return [f for f in RECORD_FIELDS if not self.is_collected(f)]


@dataclass
class ConversationSession:
    """
    Persisted envelope for one conversation.

    `record` is the only source of truth for which stage comes next.
    `awaitingStage` just remembers which prompt was last issued, so the
    next reply is known to answer that stage and not some other one.
    """
    conversationId: str = ""
    record: ConversationRecord = field(default_factory=ConversationRecord)

    awaitingStage: Optional[str] = None

    # Latched when the finished record is saved; the flow never reopens.
    completed: bool = False
    caseReference: Optional[str] = None
    # Delivery markers for a completed session. Either one still unset is
    # retried on the next turn of the conversation.
    confirmationSent: bool = False
    dispatchQueued: bool = False

    createdAtMs: int = 0
    updatedAtMs: int = 0
    completedAtMs: Optional[int] = None

    # Validation failures so far (observability only)
    repromptCount: int = 0

    def __post_init__(self):
        if isinstance(self.record, dict):
            self.record = ConversationRecord(**self.record)
        if not self.createdAtMs:
            self.createdAtMs = now_ms()
        if not self.updatedAtMs:
            self.updatedAtMs = self.createdAtMs
