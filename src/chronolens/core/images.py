"""Encoded image value type shared by capture, pipeline and results."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import ValidationError

logger = logging.getLogger(__name__)

_DATA_URI_RE = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


def _detect_mime(data: bytes) -> str:
    """Sniff the mime type of encoded image bytes."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format, "image/png")
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError(f"Unsupported image data: {e}") from e


@dataclass(frozen=True)
class EncodedImage:
    """An immutable encoded still (JPEG, PNG, WebP...).

    Captured photos, generated outputs and submitted masks all travel as
    EncodedImage. Decoding to pixels happens on demand via ``to_pil``.
    """

    data: bytes = field(repr=False)
    mime_type: str = "image/png"

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str | None = None) -> "EncodedImage":
        """Wrap encoded bytes, detecting the mime type when not given.

        Raises:
            ValidationError: If the bytes are empty or not a decodable image
        """
        if not data:
            raise ValidationError("Image data is empty")
        return cls(data=bytes(data), mime_type=mime_type or _detect_mime(data))

    @classmethod
    def from_path(cls, path: str | Path) -> "EncodedImage":
        """Read an image file from disk."""
        return cls.from_bytes(Path(path).read_bytes())

    @classmethod
    def from_data_uri(cls, uri: str) -> "EncodedImage":
        """Parse a ``data:image/...;base64,...`` URI.

        Raises:
            ValidationError: If the URI is malformed
        """
        match = _DATA_URI_RE.match(uri.strip())
        if match is None:
            raise ValidationError("Not an image data URI")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(f"Invalid base64 image data: {e}") from e
        return cls.from_bytes(data, mime_type=match.group("mime"))

    @classmethod
    def from_pil(cls, image: Image.Image, format: str = "PNG") -> "EncodedImage":
        """Encode a PIL image."""
        buffer = io.BytesIO()
        image.save(buffer, format=format)
        mime_type = Image.MIME.get(format.upper(), "image/png")
        return cls(data=buffer.getvalue(), mime_type=mime_type)

    @property
    def data_uri(self) -> str:
        """The image as a ``data:`` URI."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def to_pil(self) -> Image.Image:
        """Decode into a fully loaded PIL image."""
        image = Image.open(io.BytesIO(self.data))
        image.load()
        return image

    @property
    def size(self) -> tuple[int, int]:
        """Native (width, height) in pixels."""
        with Image.open(io.BytesIO(self.data)) as img:
            return img.size
