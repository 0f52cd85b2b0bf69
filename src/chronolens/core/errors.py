"""Exception hierarchy for ChronoLens.

Every exception carries a message intended to be shown to the user as-is.
The underlying SDK or I/O error, when there is one, is chained via
``raise ... from``.
"""

from __future__ import annotations


class ChronolensError(Exception):
    """Base class for all ChronoLens errors."""


class CapturePermissionError(ChronolensError):
    """The capture device refused access (raised by capture collaborators)."""


class ValidationError(ChronolensError):
    """User input failed validation."""


class AnalysisError(ChronolensError):
    """The remote analysis call failed."""


class PromptGenerationError(ChronolensError):
    """Creative prompt generation failed. Never surfaced to the user."""


class GenerationError(ChronolensError):
    """The remote image generation or edit call failed."""


class NoImageGeneratedError(GenerationError):
    """The remote call succeeded but its response carried no image."""

    def __init__(self, message: str = "No image generated.") -> None:
        super().__init__(message)


class MaskSubmissionError(ChronolensError):
    """A mask was submitted without strokes or without an instruction."""


class BatchFailure(ChronolensError):
    """A batch run aborted on one of its items.

    Attributes
    ----------
    completed : int
        Number of items that succeeded before the failure
    total : int
        Number of items requested in the run
    label : str
        Label of the item that failed
    cause : Exception
        The error raised by the failing item
    """

    def __init__(self, completed: int, total: int, label: str, cause: Exception) -> None:
        self.completed = completed
        self.total = total
        self.label = label
        self.cause = cause
        super().__init__(self._format())

    def _reason(self) -> str:
        # Only our own errors carry text meant for the user
        if isinstance(self.cause, ChronolensError):
            return str(self.cause)
        return ""

    def _format(self) -> str:
        return self._reason() or f"Failed to generate {self.label}."


class BatchPartialFailure(BatchFailure):
    """At least one item succeeded before the run aborted."""

    def _format(self) -> str:
        reason = self._reason() or "generation failed"
        return (
            f"{self.label} failed after {self.completed} of {self.total} "
            f"images were generated: {reason}"
        )


class BatchTotalFailure(BatchFailure):
    """The very first item failed; the run produced nothing."""
