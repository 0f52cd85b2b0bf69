"""Session state machine: the single authority over a ChronoLens session.

The presentation layer dispatches typed actions (see ``actions``); the
machine maps each action to a phase transition, invoking the request
builder, the batch pipeline and the mask canvas as needed.

Phases and Transitions
----------------------
    HOME       --start-->            CAPTURE
    CAPTURE    --capture(image)-->   PREVIEW
    CAPTURE    --cancelCapture-->    HOME
    PREVIEW    --analyze-->          PROCESSING --> PREVIEW
    PREVIEW    --restore-->          RESTORE    --> RESULT | PREVIEW
    PREVIEW    --startBatch(eras)--> PROCESSING --> RESULT | PREVIEW
    PREVIEW    --customEdit-->       PROCESSING --> RESULT | PREVIEW
    PREVIEW    --startMask-->        MASKING
    MASKING    --cancel-->           PREVIEW
    MASKING    --confirm-->          PROCESSING --> RESULT | PREVIEW
    RESULT     --backToPreview-->    PREVIEW
    any        --reset-->            HOME

Actions not listed for the current phase are ignored.

Terminal Rule
-------------
Every run that produces images lands on RESULT if at least one result
exists; otherwise it returns to PREVIEW with ``last_error`` set. Results
collected before a mid-batch failure are kept and shown along with the
error.

Superseded Runs
---------------
Each run is tagged with the session's ``run_id``. Reset and every new run
bump the identifier. A run whose identifier is no longer current drops its
late results and leaves phase and ``last_error`` alone, so a reset issued
while a batch is in flight always wins.

Usage Example
-------------
    >>> machine = SessionStateMachine(GeminiClient(config), SQLiteSettingsStore(path))
    >>> await machine.start()
    >>> await machine.capture(EncodedImage.from_path("me.jpg"))
    >>> await machine.start_batch([Era.VIKING, Era.CYBERPUNK])
    >>> machine.phase
    <Phase.RESULT: 'RESULT'>
"""

import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence

from chronolens.core.config import ChronolensConfig
from chronolens.core.config import config as default_config
from chronolens.core.errors import ChronolensError, MaskSubmissionError, ValidationError
from chronolens.core.gemini_client import GenerationClientBase
from chronolens.core.images import EncodedImage
from chronolens.core.mask import MaskCanvas
from chronolens.core.pipeline import BatchPipeline, TransformationResult
from chronolens.core.presets import AnalysisMode, Era, ImageStyle, Resolution, coerce_detail_level
from chronolens.core.request_builder import (
    TransformationRequest,
    build_custom_edit_request,
    build_mask_edit_request,
    build_restoration_request,
    build_time_travel_request,
)
from chronolens.core.settings_store import (
    DETAIL_KEY,
    RESOLUTION_KEY,
    STYLE_KEY,
    InMemorySettingsStore,
    SettingsStore,
)

from . import actions as act
from .models import Configuration, Phase, Session
from .validation import resolve_filter, validate_eras, validate_instruction

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again."


def _error_message(error: Exception) -> str:
    """User-facing text for an error raised during a remote operation."""
    if isinstance(error, ChronolensError) and str(error):
        return str(error)
    return GENERIC_ERROR


class SessionStateMachine:
    """Owns a Session and applies actions to it.

    Attributes
    ----------
    client : GenerationClientBase
        Remote generation/analysis service
    store : SettingsStore
        Persistence for style, resolution and detail level
    pipeline : BatchPipeline
        Sequential driver for transformation runs
    config : ChronolensConfig
        Defaults for settings and mask brush size
    session : Session
        The state being managed
    """

    def __init__(
        self,
        client: GenerationClientBase,
        store: SettingsStore | None = None,
        config: ChronolensConfig | None = None,
        pipeline: BatchPipeline | None = None,
    ) -> None:
        self.client = client
        self.store = store if store is not None else InMemorySettingsStore()
        self.config = config or default_config
        self.pipeline = pipeline or BatchPipeline(client)
        self.session = Session(configuration=self._load_configuration())
        self._mask_canvas: MaskCanvas | None = None

        self._handlers: dict[type[act.Action], Callable[[act.Action], Awaitable[None]]] = {
            act.Start: self._on_start,
            act.CancelCapture: self._on_cancel_capture,
            act.Capture: self._on_capture,
            act.Reset: self._on_reset,
            act.BackToPreview: self._on_back_to_preview,
            act.Analyze: self._on_analyze,
            act.GeneratePrompt: self._on_generate_prompt,
            act.Restore: self._on_restore,
            act.StartBatch: self._on_start_batch,
            act.CustomEdit: self._on_custom_edit,
            act.StartMask: self._on_start_mask,
            act.ClearMask: self._on_clear_mask,
            act.CancelMask: self._on_cancel_mask,
            act.ConfirmMask: self._on_confirm_mask,
            act.SelectResult: self._on_select_result,
            act.NextResult: self._on_step_result,
            act.PreviousResult: self._on_step_result,
            act.SelectFilter: self._on_select_filter,
            act.SetStyle: self._on_configure,
            act.SetResolution: self._on_configure,
            act.SetDetailLevel: self._on_configure,
            act.SetInstruction: self._on_configure,
        }

        logger.info(f"Session state machine ready: {self.session}")

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def results(self) -> list[TransformationResult]:
        return list(self.session.results)

    @property
    def active_result_index(self) -> int:
        return self.session.active_result_index

    @property
    def active_result(self) -> TransformationResult | None:
        return self.session.active_result

    @property
    def last_error(self) -> str | None:
        return self.session.last_error

    @property
    def configuration(self) -> Configuration:
        return self.session.configuration

    @property
    def analysis(self) -> str | None:
        return self.session.analysis

    @property
    def source_image(self) -> EncodedImage | None:
        return self.session.source_image

    @property
    def mask_canvas(self) -> MaskCanvas | None:
        """Canvas receiving pointer strokes; only present while MASKING."""
        return self._mask_canvas

    @property
    def is_busy(self) -> bool:
        return self.session.is_busy

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, action: act.Action) -> None:
        """Apply one action to the session.

        Raises:
            TypeError: If ``action`` is not a known action type
        """
        handler = self._handlers.get(type(action))
        if handler is None:
            raise TypeError(f"Unknown action: {action!r}")
        await handler(action)

    def _ignore(self, action: act.Action, reason: str = "") -> None:
        detail = f" ({reason})" if reason else ""
        logger.debug(f"Ignoring {type(action).__name__} in {self.phase.value}{detail}")

    def _transition(self, phase: Phase) -> None:
        if phase != self.session.phase:
            logger.info(f"Phase {self.session.phase.value} -> {phase.value}")
        self.session.phase = phase

    # Convenience wrappers, one per action

    async def start(self) -> None:
        await self.dispatch(act.Start())

    async def cancel_capture(self) -> None:
        await self.dispatch(act.CancelCapture())

    async def capture(self, image: EncodedImage) -> None:
        await self.dispatch(act.Capture(image))

    async def reset(self) -> None:
        await self.dispatch(act.Reset())

    async def back_to_preview(self) -> None:
        await self.dispatch(act.BackToPreview())

    async def analyze(self) -> None:
        await self.dispatch(act.Analyze())

    async def generate_prompt(self) -> None:
        await self.dispatch(act.GeneratePrompt())

    async def restore(self) -> None:
        await self.dispatch(act.Restore())

    async def start_batch(self, eras: Iterable[Era | str]) -> None:
        await self.dispatch(act.StartBatch(tuple(eras)))

    async def custom_edit(self, prompt: str) -> None:
        await self.dispatch(act.CustomEdit(prompt))

    async def start_mask(self, display_size: tuple[float, float] | None = None) -> None:
        await self.dispatch(act.StartMask(display_size))

    async def clear_mask(self) -> None:
        await self.dispatch(act.ClearMask())

    async def cancel_mask(self) -> None:
        await self.dispatch(act.CancelMask())

    async def confirm_mask(self, instruction: str) -> None:
        await self.dispatch(act.ConfirmMask(instruction))

    async def select_result(self, index: int) -> None:
        await self.dispatch(act.SelectResult(index))

    async def next_result(self) -> None:
        await self.dispatch(act.NextResult())

    async def previous_result(self) -> None:
        await self.dispatch(act.PreviousResult())

    async def select_filter(self, value: str) -> None:
        await self.dispatch(act.SelectFilter(value))

    async def set_style(self, style: ImageStyle | str) -> None:
        await self.dispatch(act.SetStyle(style))

    async def set_resolution(self, resolution: Resolution | str) -> None:
        await self.dispatch(act.SetResolution(resolution))

    async def set_detail_level(self, level: int | float | str) -> None:
        await self.dispatch(act.SetDetailLevel(level))

    async def set_instruction(self, instruction: str) -> None:
        await self.dispatch(act.SetInstruction(instruction))

    # ------------------------------------------------------------------
    # Configuration persistence
    # ------------------------------------------------------------------

    def _load_configuration(self) -> Configuration:
        """Read persisted settings once, falling back to config defaults."""
        style = self.store.get(STYLE_KEY) or self.config.default_style
        resolution = self.store.get(RESOLUTION_KEY) or self.config.default_resolution
        detail = self.store.get(DETAIL_KEY)

        configuration = Configuration(
            style=ImageStyle.coerce(style),
            resolution=Resolution.coerce(resolution),
            detail_level=coerce_detail_level(detail, default=self.config.default_detail_level),
        )
        logger.info(
            f"Loaded configuration: style={configuration.style.value}, "
            f"resolution={configuration.resolution.value}, detail={configuration.detail_level}"
        )
        return configuration

    def save_configuration(self) -> None:
        """Write style, resolution and detail level to the settings store."""
        configuration = self.session.configuration
        self.store.set(STYLE_KEY, configuration.style.value)
        self.store.set(RESOLUTION_KEY, configuration.resolution.value)
        self.store.set(DETAIL_KEY, str(configuration.detail_level))

    async def _on_configure(self, action: act.Action) -> None:
        if self.is_busy:
            self._ignore(action, "run in flight")
            return

        configuration = self.session.configuration
        if isinstance(action, act.SetInstruction):
            configuration.instruction = action.instruction or ""
            return

        if isinstance(action, act.SetStyle):
            configuration.style = ImageStyle.coerce(action.style)
        elif isinstance(action, act.SetResolution):
            configuration.resolution = Resolution.coerce(action.resolution)
        elif isinstance(action, act.SetDetailLevel):
            configuration.detail_level = coerce_detail_level(
                action.detail_level, default=configuration.detail_level
            )
        self.save_configuration()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def _on_start(self, action: act.Action) -> None:
        if self.phase != Phase.HOME:
            self._ignore(action)
            return
        self.session.last_error = None
        self._transition(Phase.CAPTURE)

    async def _on_cancel_capture(self, action: act.Action) -> None:
        if self.phase != Phase.CAPTURE:
            self._ignore(action)
            return
        self._transition(Phase.HOME)

    async def _on_capture(self, action: act.Capture) -> None:
        if self.phase != Phase.CAPTURE:
            self._ignore(action)
            return
        if not isinstance(action.image, EncodedImage):
            raise TypeError(f"Capture expects an EncodedImage, got {type(action.image).__name__}")

        self.session.source_image = action.image
        self.session.clear_photo_state()
        logger.info(f"Captured {action.image.mime_type} image, {len(action.image.data)} bytes")
        self._transition(Phase.PREVIEW)

    async def _on_reset(self, action: act.Action) -> None:
        session = self.session
        # Supersede anything still in flight
        session.run_id += 1
        session.source_image = None
        session.clear_photo_state()
        session.generating_prompt = False
        self._mask_canvas = None
        self._transition(Phase.HOME)

    async def _on_back_to_preview(self, action: act.Action) -> None:
        if self.phase != Phase.RESULT:
            self._ignore(action)
            return
        self.session.last_error = None
        self._transition(Phase.PREVIEW)

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    def _can_run(self, action: act.Action) -> bool:
        if self.phase != Phase.PREVIEW:
            self._ignore(action)
            return False
        if self.session.source_image is None:
            self._ignore(action, "no source image")
            return False
        return True

    def _is_current(self, run_id: int) -> bool:
        return self.session.run_id == run_id

    def _fail(self, run_id: int, error: Exception, phase: Phase = Phase.PREVIEW) -> None:
        """Record a failed operation unless its run has been superseded."""
        if not self._is_current(run_id):
            logger.info(f"Ignoring failure of superseded run {run_id}: {error}")
            return
        self.session.progress = None
        self.session.last_error = _error_message(error)
        self._transition(phase)

    async def _on_analyze(self, action: act.Action) -> None:
        if not self._can_run(action):
            return

        image = self.session.source_image
        run_id = self.session.begin_run()
        self._transition(Phase.PROCESSING)

        try:
            text = await self.client.analyze(image, AnalysisMode.CONTEXT)
        except Exception as e:
            logger.error(f"Context analysis failed: {e}", exc_info=not isinstance(e, ChronolensError))
            self._fail(run_id, e)
            return

        if not self._is_current(run_id):
            logger.info("Discarding analysis of superseded run")
            return
        self.session.analysis = text
        self._transition(Phase.PREVIEW)

    async def _on_generate_prompt(self, action: act.Action) -> None:
        if not self._can_run(action):
            return
        if self.session.generating_prompt:
            self._ignore(action, "already generating")
            return

        image = self.session.source_image
        photo_id = self.session.photo_id
        self.session.last_error = None
        self.session.generating_prompt = True
        try:
            prompt = await self.client.generate_creative_prompt(image)
        except Exception as e:
            # Best effort: never surfaced to the user
            logger.warning(f"Creative prompt generation failed: {e}")
            return
        finally:
            if self.session.photo_id == photo_id:
                self.session.generating_prompt = False

        if self.session.photo_id != photo_id:
            logger.info("Discarding creative prompt for a replaced photo")
            return
        if prompt:
            self.session.configuration.instruction = prompt

    async def _on_restore(self, action: act.Action) -> None:
        if not self._can_run(action):
            return

        image = self.session.source_image
        run_id = self.session.begin_run()
        self._transition(Phase.RESTORE)

        try:
            damage_report = await self.client.analyze(image, AnalysisMode.DAMAGE)
        except Exception as e:
            logger.error(f"Damage analysis failed: {e}", exc_info=not isinstance(e, ChronolensError))
            self._fail(run_id, e)
            return

        if not self._is_current(run_id):
            return
        await self._run(run_id, image, [build_restoration_request(damage_report)])

    async def _on_start_batch(self, action: act.StartBatch) -> None:
        if not self._can_run(action):
            return
        if not action.eras:
            self._ignore(action, "no era selected")
            return
        try:
            eras = validate_eras(action.eras)
        except ValidationError as e:
            self.session.last_error = str(e)
            self._ignore(action, str(e))
            return

        settings = self.session.configuration.settings()
        requests = [build_time_travel_request(era, settings) for era in eras]
        await self._start_run(self.session.source_image, requests)

    async def _on_custom_edit(self, action: act.CustomEdit) -> None:
        if not self._can_run(action):
            return
        try:
            prompt = validate_instruction(action.prompt)
        except ValidationError as e:
            self._ignore(action, str(e))
            return

        configuration = self.session.configuration
        configuration.instruction = prompt
        request = build_custom_edit_request(prompt, configuration.settings())
        await self._start_run(self.session.source_image, [request])

    async def _start_run(self, image: EncodedImage, requests: Sequence[TransformationRequest]) -> None:
        run_id = self.session.begin_run()
        self._transition(Phase.PROCESSING)
        await self._run(run_id, image, requests)

    async def _run(
        self,
        run_id: int,
        image: EncodedImage,
        requests: Sequence[TransformationRequest],
    ) -> None:
        """Drive the pipeline for one run and resolve the terminal phase."""
        session = self.session

        def on_result(result: TransformationResult) -> None:
            session.results.append(result)

        def on_progress(index: int, total: int) -> None:
            session.progress = (index, total)

        try:
            outcome = await self.pipeline.run(
                image,
                requests,
                on_result=on_result,
                on_progress=on_progress,
                is_current=lambda: self._is_current(run_id),
            )
        except Exception as e:
            logger.error(f"Run {run_id} crashed: {e}", exc_info=True)
            if self._is_current(run_id):
                self._finish_run(_error_message(e))
            return

        if outcome.stale or not self._is_current(run_id):
            logger.info(f"Run {run_id} superseded; leaving session untouched")
            return

        self._finish_run(str(outcome.error) if outcome.error else None)

    def _finish_run(self, error: str | None) -> None:
        """Apply the terminal rule: RESULT iff anything was produced."""
        session = self.session
        session.progress = None
        session.last_error = error
        session.active_result_index = 0
        if session.results:
            self._transition(Phase.RESULT)
        else:
            self._transition(Phase.PREVIEW)

    # ------------------------------------------------------------------
    # Masked editing
    # ------------------------------------------------------------------

    async def _on_start_mask(self, action: act.StartMask) -> None:
        if not self._can_run(action):
            return
        image = self.session.source_image
        try:
            canvas = MaskCanvas.for_image(
                image, display_size=action.display_size, brush_size=self.config.default_brush_size
            )
        except ValidationError as e:
            # Viewport not laid out yet; map pointer coordinates 1:1
            logger.warning(f"Invalid mask display size {action.display_size}: {e}")
            canvas = MaskCanvas.for_image(image, brush_size=self.config.default_brush_size)
        self._mask_canvas = canvas
        self.session.last_error = None
        self._transition(Phase.MASKING)

    async def _on_clear_mask(self, action: act.Action) -> None:
        if self.phase != Phase.MASKING or self._mask_canvas is None:
            self._ignore(action)
            return
        self._mask_canvas.clear()

    async def _on_cancel_mask(self, action: act.Action) -> None:
        if self.phase != Phase.MASKING:
            self._ignore(action)
            return
        self._mask_canvas = None
        self._transition(Phase.PREVIEW)

    async def _on_confirm_mask(self, action: act.ConfirmMask) -> None:
        if self.phase != Phase.MASKING or self._mask_canvas is None:
            self._ignore(action)
            return
        if not self._mask_canvas.can_submit(action.instruction):
            self._ignore(action, "mask or instruction missing")
            return

        try:
            submission = self._mask_canvas.submit(action.instruction)
        except MaskSubmissionError as e:
            self._ignore(action, str(e))
            return

        self._mask_canvas = None
        self.session.configuration.instruction = submission.instruction
        request = build_mask_edit_request(submission.instruction, submission.mask.to_png())
        await self._start_run(self.session.source_image, [request])

    # ------------------------------------------------------------------
    # Result browsing
    # ------------------------------------------------------------------

    async def _on_select_result(self, action: act.SelectResult) -> None:
        if self.phase != Phase.RESULT or not self.session.results:
            self._ignore(action)
            return
        last = len(self.session.results) - 1
        self.session.active_result_index = min(last, max(0, int(action.index)))

    async def _on_step_result(self, action: act.Action) -> None:
        if self.phase != Phase.RESULT or not self.session.results:
            self._ignore(action)
            return
        step = 1 if isinstance(action, act.NextResult) else -1
        count = len(self.session.results)
        self.session.active_result_index = (self.session.active_result_index + step) % count

    async def _on_select_filter(self, action: act.SelectFilter) -> None:
        if self.phase != Phase.RESULT:
            self._ignore(action)
            return
        try:
            self.session.active_filter = resolve_filter(action.filter)
        except ValidationError as e:
            self._ignore(action, str(e))
