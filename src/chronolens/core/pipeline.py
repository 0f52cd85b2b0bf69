"""Sequential batch transformation pipeline.

The pipeline drives an ordered list of transformation requests against a
generation client, one at a time. Item i+1 is requested only after item i
has resolved, so results always arrive in request order and the caller can
report "materializing item k of N" progress.

Each success is handed to ``on_result`` immediately, before the next item
is requested, allowing the session to show results as they land. The first
failure, whatever the client raised, aborts the run without retrying; what
has already succeeded is kept. A run is:

- **successful** when every item produced an image
- **partially successful** when k >= 1 items succeeded before item k+1 failed
  (BatchPartialFailure)
- **fully failed** when the first item failed (BatchTotalFailure)

Single-item runs (restoration, custom edit, masked edit) follow the same
contract with N = 1.

Stale Runs
----------
A run may be superseded while a remote call is outstanding (for example
the user resets the session). The optional ``is_current`` predicate is
checked before each request and again after each response; once it
returns False the pipeline requests nothing further and drops the late
result. The outcome is then flagged ``stale`` and callers should ignore it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .errors import BatchFailure, BatchPartialFailure, BatchTotalFailure, GenerationError, ValidationError
from .gemini_client import GenerationClientBase
from .images import EncodedImage
from .request_builder import TransformationRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformationResult:
    """One labeled output image. Immutable once produced."""

    label: str
    image: EncodedImage


@dataclass
class BatchOutcome:
    """Final state of one pipeline run.

    Attributes
    ----------
    results : list[TransformationResult]
        Results in request order (possibly empty)
    total : int
        Number of requests in the run
    error : BatchFailure | None
        The failure that aborted the run, if any
    stale : bool
        True when the run was superseded before it finished
    """

    total: int
    results: list[TransformationResult] = field(default_factory=list)
    error: BatchFailure | None = None
    stale: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.stale and len(self.results) == self.total

    @property
    def partial(self) -> bool:
        return isinstance(self.error, BatchPartialFailure)

    @property
    def has_results(self) -> bool:
        return bool(self.results)


ResultCallback = Callable[[TransformationResult], None]
ProgressCallback = Callable[[int, int], None]


class BatchPipeline:
    """Runs transformation requests sequentially against a generation client.

    Usage:
        >>> pipeline = BatchPipeline(client)
        >>> outcome = await pipeline.run(photo, requests, on_result=session_results.append)
        >>> outcome.partial
        False
    """

    def __init__(self, client: GenerationClientBase) -> None:
        self.client = client

    async def run(
        self,
        source_image: EncodedImage,
        requests: Sequence[TransformationRequest],
        on_result: ResultCallback | None = None,
        on_progress: ProgressCallback | None = None,
        is_current: Callable[[], bool] | None = None,
    ) -> BatchOutcome:
        """Execute ``requests`` in order.

        Args:
            source_image: Image every request transforms (never modified)
            requests: Ordered, non-empty list of requests
            on_result: Called with each result as soon as it lands
            on_progress: Called with (index, total) before each request
            is_current: Returns False once the run has been superseded

        Returns:
            BatchOutcome with the collected results and the aborting error

        Raises:
            ValidationError: If ``requests`` is empty
        """
        if not requests:
            raise ValidationError("A batch needs at least one transformation")

        total = len(requests)
        outcome = BatchOutcome(total=total)

        def still_current() -> bool:
            return is_current is None or is_current()

        logger.info(f"Starting batch of {total}: {[r.label for r in requests]}")

        for index, request in enumerate(requests):
            if not still_current():
                logger.info(f"Batch superseded before item {index + 1} of {total}")
                outcome.stale = True
                return outcome

            if on_progress is not None:
                on_progress(index, total)
            logger.info(f"Materializing {request.label} ({index + 1} of {total})")

            try:
                image = await self.client.transform(source_image, request.prompt, request.mask)
            except Exception as e:
                failure_cls = BatchPartialFailure if outcome.results else BatchTotalFailure
                outcome.error = failure_cls(len(outcome.results), total, request.label, e)
                outcome.stale = not still_current()
                logger.warning(
                    f"Batch aborted at {request.label} "
                    f"({len(outcome.results)} of {total} done): {e}",
                    exc_info=not isinstance(e, GenerationError),
                )
                return outcome

            if not still_current():
                logger.info(f"Dropping late result for {request.label}: batch superseded")
                outcome.stale = True
                return outcome

            result = TransformationResult(label=request.label, image=image)
            outcome.results.append(result)
            if on_result is not None:
                on_result(result)

        logger.info(f"Batch complete: {total} of {total} images")
        return outcome
