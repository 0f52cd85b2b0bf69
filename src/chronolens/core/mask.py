"""Interactive mask capture and binarization.

The user paints over the source image with a round brush. Strokes are
collected in display coordinates while the pointer is held and rendered
as a semi-transparent overlay at the image's native resolution, so the
final mask does not depend on the viewport size.

On submission the overlay is composited over an opaque black canvas and
every pixel that received any ink becomes opaque white. The resulting
mask holds exactly two colors, which is what the remote inpainting model
expects: white marks the region to replace, black the region to keep.

Binarization is a pure function over ``PixelBuffer`` values and can be
tested without any drawing surface:

    >>> buf = PixelBuffer.filled(4, 4, (0, 0, 0, 0))
    >>> binarize(buf).unique_colors()
    {(0, 0, 0, 255)}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
from PIL import Image, ImageDraw

from .errors import MaskSubmissionError, ValidationError
from .images import EncodedImage

logger = logging.getLogger(__name__)

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)
TRANSPARENT = (0, 0, 0, 0)

# Semi-transparent pink used for on-screen feedback
STROKE_COLOR = (255, 0, 100, 128)

MIN_BRUSH_SIZE = 5
MAX_BRUSH_SIZE = 100
DEFAULT_BRUSH_SIZE = 20


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """An RGBA pixel buffer: ``pixels`` has shape (height, width, 4), dtype uint8."""

    width: int
    height: int
    pixels: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValidationError(f"Invalid buffer size {self.width}x{self.height}")
        if self.pixels.shape != (self.height, self.width, 4):
            raise ValidationError(
                f"Pixel array shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )
        if self.pixels.dtype != np.uint8:
            raise ValidationError(f"Pixel array must be uint8, got {self.pixels.dtype}")

    @classmethod
    def filled(cls, width: int, height: int, color: tuple[int, int, int, int]) -> "PixelBuffer":
        """Create a buffer with every pixel set to ``color``."""
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = color
        return cls(width, height, pixels)

    @classmethod
    def from_pil(cls, image: Image.Image) -> "PixelBuffer":
        rgba = image.convert("RGBA")
        return cls(rgba.width, rgba.height, np.array(rgba, dtype=np.uint8))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def to_png(self) -> EncodedImage:
        """Encode as PNG for upload."""
        return EncodedImage.from_pil(self.to_pil(), format="PNG")

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        return tuple(int(c) for c in self.pixels[y, x])  # type: ignore[return-value]

    def unique_colors(self) -> set[tuple[int, int, int, int]]:
        flat = self.pixels.reshape(-1, 4)
        return {tuple(int(c) for c in row) for row in np.unique(flat, axis=0)}  # type: ignore[misc]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.pixels, other.pixels)
        )

    __hash__ = None  # type: ignore[assignment]


def binarize(buffer: PixelBuffer) -> PixelBuffer:
    """Collapse a composited buffer into a strict black/white mask.

    A pixel becomes opaque white if any of its color channels is non-zero,
    regardless of how much opacity the ink accumulated. All other pixels
    become opaque black. Alpha of the input is ignored.

    Args:
        buffer: Stroke layer already composited over opaque black

    Returns:
        New buffer containing only BLACK and WHITE pixels
    """
    inked = buffer.pixels[..., :3].any(axis=-1)
    out = np.empty_like(buffer.pixels)
    out[...] = BLACK
    out[inked] = WHITE
    return PixelBuffer(buffer.width, buffer.height, out)


def is_binary_mask(buffer: PixelBuffer) -> bool:
    """True when every pixel is exactly BLACK or WHITE."""
    flat = buffer.pixels.reshape(-1, 4)
    black = np.all(flat == BLACK, axis=1)
    white = np.all(flat == WHITE, axis=1)
    return bool(np.all(black | white))


def compose_mask(overlay: PixelBuffer) -> PixelBuffer:
    """Composite a stroke overlay over opaque black, then binarize."""
    base = Image.new("RGBA", (overlay.width, overlay.height), BLACK)
    composite = Image.alpha_composite(base, overlay.to_pil())
    return binarize(PixelBuffer.from_pil(composite))


@dataclass
class Stroke:
    """One pointer-down/up cycle.

    Points are in display coordinates; ``scale_x``/``scale_y`` are the
    native/display ratios in effect when the stroke was drawn.
    """

    brush_size: int
    scale_x: float = 1.0
    scale_y: float = 1.0
    points: list[tuple[float, float]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.points

    def native_points(self) -> list[tuple[float, float]]:
        return [(x * self.scale_x, y * self.scale_y) for x, y in self.points]


def draw_stroke(draw: ImageDraw.ImageDraw, stroke: Stroke, color=STROKE_COLOR) -> None:
    """Render one stroke with round caps and joins."""
    points = stroke.native_points()
    if not points:
        return

    radius = stroke.brush_size / 2
    if len(points) > 1:
        draw.line(points, fill=color, width=stroke.brush_size, joint="curve")
    # Round caps; a single point is a dot
    for x, y in (points[0], points[-1]):
        draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=color)


@dataclass(frozen=True)
class MaskSubmission:
    """A binarized mask ready for the inpainting request."""

    mask: PixelBuffer
    instruction: str


class MaskCanvas:
    """Collects brush strokes over an image and produces a binary mask.

    The canvas is sized to the source image's native resolution. The
    display size is the size at which the image is currently shown; pointer
    coordinates are in display space and scaled on each axis.

    Usage:
        >>> canvas = MaskCanvas(1024, 768, display_width=512, display_height=384)
        >>> canvas.pointer_down(10, 10)
        >>> canvas.pointer_move(100, 40)
        >>> canvas.pointer_up()
        >>> submission = canvas.submit("replace with a hat")
    """

    def __init__(
        self,
        native_width: int,
        native_height: int,
        display_width: float | None = None,
        display_height: float | None = None,
        brush_size: int = DEFAULT_BRUSH_SIZE,
    ) -> None:
        if native_width <= 0 or native_height <= 0:
            raise ValidationError(f"Invalid image size {native_width}x{native_height}")

        self.native_width = native_width
        self.native_height = native_height
        self._brush_size = DEFAULT_BRUSH_SIZE
        self.brush_size = brush_size
        self.set_display_size(display_width or native_width, display_height or native_height)

        self._strokes: list[Stroke] = []
        self._current: Stroke | None = None

    @classmethod
    def for_image(
        cls,
        image: EncodedImage,
        display_size: tuple[float, float] | None = None,
        brush_size: int = DEFAULT_BRUSH_SIZE,
    ) -> "MaskCanvas":
        """Create a canvas matching an encoded image's native size."""
        width, height = image.size
        display_width, display_height = display_size or (width, height)
        return cls(width, height, display_width, display_height, brush_size=brush_size)

    @property
    def brush_size(self) -> int:
        return self._brush_size

    @brush_size.setter
    def brush_size(self, value: int) -> None:
        self._brush_size = int(min(MAX_BRUSH_SIZE, max(MIN_BRUSH_SIZE, value)))

    def set_display_size(self, width: float, height: float) -> None:
        """Update the on-screen size used to map pointer coordinates."""
        if width <= 0 or height <= 0:
            raise ValidationError(f"Invalid display size {width}x{height}")
        self.display_width = float(width)
        self.display_height = float(height)

    @property
    def scale(self) -> tuple[float, float]:
        """Native pixels per display unit on each axis."""
        return (
            self.native_width / self.display_width,
            self.native_height / self.display_height,
        )

    @property
    def is_drawing(self) -> bool:
        return self._current is not None

    @property
    def strokes(self) -> tuple[Stroke, ...]:
        """Completed strokes plus the one in progress, in drawing order."""
        if self._current is not None:
            return (*self._strokes, self._current)
        return tuple(self._strokes)

    @property
    def has_strokes(self) -> bool:
        return any(not stroke.is_empty() for stroke in self.strokes)

    def pointer_down(self, x: float, y: float) -> None:
        if self._current is not None:
            self.pointer_up()
        scale_x, scale_y = self.scale
        self._current = Stroke(brush_size=self.brush_size, scale_x=scale_x, scale_y=scale_y)
        self._current.points.append((x, y))

    def pointer_move(self, x: float, y: float) -> None:
        # Hover without a held pointer leaves no ink
        if self._current is None:
            return
        self._current.points.append((x, y))

    def pointer_up(self) -> None:
        if self._current is None:
            return
        if not self._current.is_empty():
            self._strokes.append(self._current)
        self._current = None

    def clear(self) -> None:
        """Discard every stroke, including one in progress."""
        self._strokes.clear()
        self._current = None
        logger.debug("Mask canvas cleared")

    def render_overlay(self) -> PixelBuffer:
        """Render the semi-transparent feedback layer at native resolution."""
        layer = Image.new("RGBA", (self.native_width, self.native_height), TRANSPARENT)
        draw = ImageDraw.Draw(layer)
        for stroke in self.strokes:
            draw_stroke(draw, stroke)
        return PixelBuffer.from_pil(layer)

    def can_submit(self, instruction: str | None) -> bool:
        return self.has_strokes and bool(instruction and instruction.strip())

    def submit(self, instruction: str | None) -> MaskSubmission:
        """Binarize the strokes and hand them off with the instruction.

        Strokes are discarded once the mask has been produced.

        Raises:
            MaskSubmissionError: If there are no strokes or the instruction is blank
        """
        if not self.has_strokes:
            raise MaskSubmissionError("Draw on the area you want to change first")
        if not instruction or not instruction.strip():
            raise MaskSubmissionError("Describe what should replace the highlighted area")

        self.pointer_up()
        mask = compose_mask(self.render_overlay())
        logger.info(
            f"Mask submitted: {len(self._strokes)} strokes, "
            f"{self.native_width}x{self.native_height}"
        )
        self._strokes.clear()
        return MaskSubmission(mask=mask, instruction=instruction.strip())
