from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from hazardbot.core import prompts
from hazardbot.core.validators import (
    ValidationResult,
    validate_category,
    validate_description,
    validate_identifier,
)

# Stage constants. A stage is derived from the record on every turn and is
# never stored as state of its own.

# Collects: identifier (9 digits, checksum-validated)
AWAIT_IDENTIFIER = "AWAIT_IDENTIFIER"

# Collects: category (one of the configured hazard labels, offered as choices)
AWAIT_CATEGORY = "AWAIT_CATEGORY"

# Collects: description (free text)
AWAIT_DESCRIPTION = "AWAIT_DESCRIPTION"

# Terminal: confirmation issued, conversation latched
DONE = "DONE"

STAGE_ORDER = (AWAIT_IDENTIFIER, AWAIT_CATEGORY, AWAIT_DESCRIPTION, DONE)


@dataclass(frozen=True)
class Step:
    stage: str
    field: str
    prompt: str
    validate: Callable[[Optional[str]], ValidationResult]
    choices: Tuple[str, ...] = ()


def derive_stage(record) -> str:
    """
    First stage whose field is still empty, or DONE.
    Pure function of the record contents.
    """
    if not record.is_collected("identifier"):
        return AWAIT_IDENTIFIER
    if not record.is_collected("category"):
        return AWAIT_CATEGORY
    if not record.is_collected("description"):
        return AWAIT_DESCRIPTION
    return DONE


def build_steps(categories: Sequence[str]) -> dict:
    """Stage -> Step table for the given category list."""
    cats = tuple(categories)
    return {
        AWAIT_IDENTIFIER: Step(
            stage=AWAIT_IDENTIFIER,
            field="identifier",
            prompt=prompts.IDENTIFIER_PROMPT,
            validate=validate_identifier,
        ),
        AWAIT_CATEGORY: Step(
            stage=AWAIT_CATEGORY,
            field="category",
            prompt=prompts.CATEGORY_PROMPT,
            validate=lambda raw: validate_category(raw, cats),
            choices=cats,
        ),
        AWAIT_DESCRIPTION: Step(
            stage=AWAIT_DESCRIPTION,
            field="description",
            prompt=prompts.DESCRIPTION_PROMPT,
            validate=validate_description,
        ),
    }


def is_stage(value) -> bool:
    return value in STAGE_ORDER
