"""Closed preset enumerations: eras, styles, resolution tiers, analysis modes.

Each enumeration is a ``str`` enum whose value is the human-readable label
shown to the user and persisted in the settings store. ``coerce`` maps a
persisted or user-supplied string (either the member name or its value,
case-insensitive) back onto the enumeration. Styles and resolutions have a
designated default member; unknown input falls back to it instead of raising.
"""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


def _lookup(enum_cls: type[Enum], value: object) -> Enum | None:
    """Find a member by identity, value or name (case-insensitive)."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None

    needle = value.strip().lower()
    for member in enum_cls:
        if needle in (member.value.lower(), member.name.lower()):
            return member
    return None


class AnalysisMode(str, Enum):
    """What the analysis model should look for."""

    CONTEXT = "CONTEXT"
    DAMAGE = "DAMAGE"


class Era(str, Enum):
    """Historical or futuristic themes for time-travel transformations."""

    VICTORIAN = "Victorian Era"
    ANCIENT_EGYPT = "Ancient Egypt"
    ROARING_20S = "Roaring 1920s"
    VIKING = "Viking Age"
    CYBERPUNK = "Cyberpunk Future"
    MEDIEVAL = "Medieval Knight"
    WESTERN = "Wild West"
    RENAISSANCE = "Renaissance Painting"

    @classmethod
    def coerce(cls, value: object) -> "Era | None":
        """Return the matching era, or None when nothing matches.

        Eras have no default: an unknown era is simply not selectable.
        """
        member = _lookup(cls, value)
        if member is None:
            logger.debug(f"Unknown era: {value!r}")
        return member


class ImageStyle(str, Enum):
    """Aesthetic presets applied to every transformation request."""

    REALISTIC = "Photorealistic"
    CINEMATIC = "Cinematic"
    VINTAGE = "Vintage Film"
    PAINTING = "Oil Painting"
    CYBER = "Cyberpunk/Neon"
    SKETCH = "Pencil Sketch"
    STUDIO = "Studio Lighting"
    STEAMPUNK = "Steampunk"
    ART_DECO = "Art Deco"
    RETRO_FUTURISM = "Retro Futurism"

    @classmethod
    def default(cls) -> "ImageStyle":
        return cls.REALISTIC

    @classmethod
    def coerce(cls, value: object) -> "ImageStyle":
        """Return the matching style, falling back to REALISTIC."""
        member = _lookup(cls, value)
        if member is None:
            logger.debug(f"Unknown style {value!r}, using {cls.default().value}")
            return cls.default()
        return member


class Resolution(str, Enum):
    """Output quality tiers."""

    STANDARD = "Standard"
    HIGH = "High Quality"
    ULTRA_4K = "4K Ultra"

    @classmethod
    def default(cls) -> "Resolution":
        return cls.STANDARD

    @classmethod
    def coerce(cls, value: object) -> "Resolution":
        """Return the matching resolution tier, falling back to STANDARD."""
        member = _lookup(cls, value)
        if member is None:
            logger.debug(f"Unknown resolution {value!r}, using {cls.default().value}")
            return cls.default()
        return member


# Detail level slider bounds and thresholds
MIN_DETAIL_LEVEL = 0
MAX_DETAIL_LEVEL = 100
DEFAULT_DETAIL_LEVEL = 50
SOFT_DETAIL_THRESHOLD = 30  # below: soft/low-detail clause
HIGH_DETAIL_THRESHOLD = 70  # above: high-fidelity clause


def coerce_detail_level(value: object, default: int = DEFAULT_DETAIL_LEVEL) -> int:
    """Parse and clamp a detail level into [0, 100].

    Strings (as read back from the settings store) are parsed. Anything that
    isn't a finite number yields ``default``.
    """
    if isinstance(value, bool):
        return default
    try:
        level = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if level != level or level in (float("inf"), float("-inf")):
        return default
    return int(min(MAX_DETAIL_LEVEL, max(MIN_DETAIL_LEVEL, round(level))))


# Export filter tags. Compositing happens outside this package; the session
# only records which one is active.
FILTER_OPTIONS = {
    "Original": "none",
    "B&W": "grayscale(100%)",
    "Sepia": "sepia(100%)",
    "Vintage": "sepia(50%) contrast(120%) brightness(90%)",
    "Warm": "sepia(30%) saturate(140%)",
    "Dramatic": "contrast(125%) saturate(0) brightness(110%)",
}
DEFAULT_FILTER = "none"
