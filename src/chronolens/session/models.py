"""Data models for a ChronoLens session."""

import logging
from dataclasses import dataclass, field
from enum import Enum

from chronolens.core.images import EncodedImage
from chronolens.core.pipeline import TransformationResult
from chronolens.core.presets import DEFAULT_DETAIL_LEVEL, DEFAULT_FILTER, ImageStyle, Resolution
from chronolens.core.request_builder import TransformationSettings

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Where the user is in their journey. Exactly one at any time."""

    HOME = "HOME"
    CAPTURE = "CAPTURE"
    PREVIEW = "PREVIEW"
    MASKING = "MASKING"
    PROCESSING = "PROCESSING"
    RESTORE = "RESTORE"
    RESULT = "RESULT"


# Phases during which a remote run is in flight
BUSY_PHASES = frozenset({Phase.PROCESSING, Phase.RESTORE})


@dataclass
class Configuration:
    """User-adjustable generation settings.

    Style, resolution and detail level are persisted; the instruction is
    per-photo and cleared whenever a new photo is captured.
    """

    style: ImageStyle = ImageStyle.REALISTIC
    resolution: Resolution = Resolution.STANDARD
    detail_level: int = DEFAULT_DETAIL_LEVEL
    instruction: str = ""

    def settings(self) -> TransformationSettings:
        """Snapshot of the settings applied to a run."""
        return TransformationSettings(
            style=self.style,
            resolution=self.resolution,
            detail_level=self.detail_level,
        )


@dataclass
class Session:
    """Mutable state of one user visit.

    Owned exclusively by SessionStateMachine. Each user gets their own
    Session instance.

    Attributes
    ----------
    phase : Phase
        Current phase of the journey
    source_image : EncodedImage | None
        Captured photo; present from capture until reset, never modified
    results : list[TransformationResult]
        Results of the latest run, in request order
    active_result_index : int
        Index of the result being shown
    configuration : Configuration
        Style, resolution, detail level and instruction
    analysis : str | None
        Context analysis of the source image
    active_filter : str
        Export filter applied to the shown result ("none" by default)
    last_error : str | None
        Message from the last failed action
    run_id : int
        Identifier of the current run; bumped by new runs and reset
    photo_id : int
        Identifier of the current photo; bumped by capture and reset
    generating_prompt : bool
        True while a creative prompt request is outstanding
    progress : tuple[int, int] | None
        (index, total) of the item being materialized during a run
    """

    phase: Phase = Phase.HOME
    source_image: EncodedImage | None = None
    results: list[TransformationResult] = field(default_factory=list)
    active_result_index: int = 0
    configuration: Configuration = field(default_factory=Configuration)
    analysis: str | None = None
    active_filter: str = DEFAULT_FILTER
    last_error: str | None = None
    run_id: int = 0
    photo_id: int = 0
    generating_prompt: bool = False
    progress: tuple[int, int] | None = None

    @property
    def is_busy(self) -> bool:
        return self.phase in BUSY_PHASES

    @property
    def active_result(self) -> TransformationResult | None:
        if not self.results:
            return None
        return self.results[self.active_result_index]

    def clear_results(self) -> None:
        """Drop results together with the index and filter that refer to them."""
        self.results = []
        self.active_result_index = 0
        self.active_filter = DEFAULT_FILTER
        self.progress = None

    def clear_photo_state(self) -> None:
        """Forget everything derived from the current photo."""
        self.photo_id += 1
        self.clear_results()
        self.analysis = None
        self.last_error = None
        self.configuration.instruction = ""

    def begin_run(self) -> int:
        """Start a new run: supersede any previous one and clear its output.

        Returns:
            The new run identifier
        """
        self.run_id += 1
        self.clear_results()
        self.last_error = None
        return self.run_id

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Session(phase={self.phase.value}, "
            f"has_image={self.source_image is not None}, "
            f"results={len(self.results)}, run={self.run_id})"
        )
