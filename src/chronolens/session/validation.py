"""Validation utilities for session inputs."""

import logging
import re
from collections.abc import Iterable

from chronolens.core.errors import ValidationError
from chronolens.core.presets import FILTER_OPTIONS, Era

logger = logging.getLogger(__name__)

MAX_INSTRUCTION_LENGTH = 4000


def validate_instruction(text: str | None, max_length: int = MAX_INSTRUCTION_LENGTH) -> str:
    """Validate a free-text edit instruction.

    Args:
        text: Instruction as typed by the user
        max_length: Maximum allowed length after stripping

    Returns:
        The stripped instruction

    Raises:
        ValidationError: If the instruction is blank or too long
    """
    if text is None or not text.strip():
        raise ValidationError("Please describe the edit you want")

    text = text.strip()
    if len(text) > max_length:
        raise ValidationError(
            f"Instruction is too long ({len(text)} characters). Maximum is {max_length} characters."
        )
    return text


def validate_eras(eras: Iterable[Era | str]) -> list[Era]:
    """Resolve a selection of eras, keeping selection order.

    Repeated entries are kept once, at their first position.

    Raises:
        ValidationError: If the selection is empty or names an unknown era
    """
    selected: list[Era] = []
    unknown: list[str] = []
    for value in eras:
        era = Era.coerce(value)
        if era is None:
            unknown.append(str(value))
        elif era not in selected:
            selected.append(era)

    if unknown:
        logger.warning(f"Rejecting era selection with unknown eras: {unknown}")
        raise ValidationError(f"Unknown era: {', '.join(unknown)}")
    if not selected:
        raise ValidationError("Select at least one era")
    return selected


def resolve_filter(value: str) -> str:
    """Map a filter name or CSS value onto a known filter value.

    Raises:
        ValidationError: If the filter is unknown
    """
    if value in FILTER_OPTIONS.values():
        return value
    if value in FILTER_OPTIONS:
        return FILTER_OPTIONS[value]
    raise ValidationError(f"Unknown filter: {value}")


def result_filename(label: str | None, extension: str = "png") -> str:
    """Download filename for a result, e.g. ``chronolens-viking-age.png``."""
    slug = re.sub(r"\s+", "-", (label or "image").strip()).lower()
    # Remove potentially problematic characters
    for char in '<>:"/\\|?*':
        slug = slug.replace(char, "_")
    return f"chronolens-{slug[:100] or 'image'}.{extension}"
