"""
Field validators
----------------
Each validator is a pure function: raw reply text in, ValidationResult out.
On rejection the result carries a reason code (for logs/metrics) and a
one-line message that is shown to the resident before the prompt is repeated.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from hazardbot.core import prompts

INVALID_FORMAT = "INVALID_FORMAT"
INVALID_CHECKSUM = "INVALID_CHECKSUM"
NOT_IN_ENUMERATED_SET = "NOT_IN_ENUMERATED_SET"
EMPTY = "EMPTY"

IDENTIFIER_LENGTH = 9

# str.isdigit() also accepts superscripts and other scripts' digits
_ASCII_DIGITS = re.compile(r"^[0-9]+$")
_WS = re.compile(r"\s+")


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    value: Optional[str] = None
    reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def accept(cls, value: str) -> "ValidationResult":
        return cls(ok=True, value=value)

    @classmethod
    def reject(cls, reason: str, message: str) -> "ValidationResult":
        return cls(ok=False, reason=reason, message=message)


def identifier_checksum(digits: str) -> int:
    """
    Weighted digit sum: digits at odd positions are doubled and
    two-digit products are reduced by 9.
    """
    total = 0
    for i, ch in enumerate(digits):
        w = int(ch) * (1 if i % 2 == 0 else 2)
        total += w if w <= 9 else w - 9
    return total


def validate_identifier(raw: Optional[str]) -> ValidationResult:
    value = (raw or "").strip()
    if len(value) != IDENTIFIER_LENGTH or not _ASCII_DIGITS.match(value):
        return ValidationResult.reject(INVALID_FORMAT, prompts.INVALID_IDENTIFIER)
    if identifier_checksum(value) % 10 != 0:
        return ValidationResult.reject(INVALID_CHECKSUM, prompts.INVALID_IDENTIFIER)
    return ValidationResult.accept(value)


def _fold(s: str) -> str:
    return _WS.sub(" ", s).strip().casefold()


def validate_category(raw: Optional[str], categories: Sequence[str]) -> ValidationResult:
    """
    Resolve a reply against the category list and return the label verbatim.

    Accepts, in order: the exact label, the label ignoring case and repeated
    whitespace, or the 1-based option number as shown in the choice list.
    """
    value = (raw or "").strip()
    if not value:
        return ValidationResult.reject(EMPTY, prompts.UNKNOWN_CATEGORY)

    if value in categories:
        return ValidationResult.accept(value)

    folded = _fold(value)
    for label in categories:
        if _fold(label) == folded:
            return ValidationResult.accept(label)

    if _ASCII_DIGITS.match(value):
        idx = int(value)
        if 1 <= idx <= len(categories):
            return ValidationResult.accept(categories[idx - 1])

    return ValidationResult.reject(NOT_IN_ENUMERATED_SET, prompts.UNKNOWN_CATEGORY)


def validate_description(raw: Optional[str]) -> ValidationResult:
    value = (raw or "").strip()
    if not value:
        return ValidationResult.reject(EMPTY, prompts.EMPTY_DESCRIPTION)
    return ValidationResult.accept(value)
