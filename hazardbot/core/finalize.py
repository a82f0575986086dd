import hashlib
from datetime import datetime, timezone
from typing import List, Optional

from hazardbot.core import prompts
from hazardbot.settings import settings


def case_reference(conversation_id: str, completed_at_ms: int, prefix: Optional[str] = None) -> str:
    """
    Stable case reference "<prefix><year>-<5 digits>".
    Derived from the conversation id, so re-running finalization for the
    same conversation yields the same reference.
    """
    if prefix is None:
        prefix = settings.CASE_REFERENCE_PREFIX or ""
    year = datetime.fromtimestamp(completed_at_ms / 1000.0, tz=timezone.utc).year
    digest = hashlib.sha256(conversation_id.encode("utf-8")).hexdigest()
    number = int(digest[:12], 16) % 100000
    return f"{prefix}{year}-{number:05d}"


def confirmation_messages(case_ref: str) -> List[str]:
    """Fixed confirmation sequence: case reference, then the thank-you line."""
    return [
        prompts.CASE_REFERENCE_TEXT.format(case_reference=case_ref),
        prompts.THANK_YOU_TEXT,
    ]
