"""Remote generation and analysis collaborators.

This module defines the interface the session core consumes and its Gemini
implementation built on the ``google-genai`` SDK.

Client Interface
----------------
Every client provides three coroutines:

- **analyze(image, mode)**: text description of the image; CONTEXT mode
  describes the subject and their vibe, DAMAGE mode lists defects to repair
- **generate_creative_prompt(image)**: a text prompt that would recreate the
  image; best effort, callers ignore failures
- **transform(image, prompt, mask=None)**: a new image produced from the
  source image, the instruction and an optional binary inpainting mask

Failures are normalized into the ChronoLens error hierarchy. A response
without image data is reported as NoImageGeneratedError rather than as an
empty success.

Usage Example
-------------
    >>> from chronolens.core.config import config
    >>> from chronolens.core.gemini_client import GeminiClient
    >>>
    >>> client = GeminiClient(config)
    >>> output = await client.transform(photo, "Turn the sky into a sunset.")

See Also
--------
- BatchPipeline: Sequential driver for transform() calls
- request_builder: Prompt construction
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from google import genai
from google.genai import types

from .config import ChronolensConfig
from .errors import AnalysisError, GenerationError, NoImageGeneratedError, PromptGenerationError
from .images import EncodedImage
from .presets import AnalysisMode
from .request_builder import CREATIVE_PROMPT_INSTRUCTION, analysis_prompt

logger = logging.getLogger(__name__)

NO_ANALYSIS_TEXT = "No analysis available."


class GenerationClientBase(ABC):
    """Abstract base class for remote generation/analysis services.

    Attributes
    ----------
    name : str
        Human-readable name of the service
    """

    name: str = "Base Generation Client"

    @abstractmethod
    async def analyze(self, image: EncodedImage, mode: AnalysisMode = AnalysisMode.CONTEXT) -> str:
        """Describe the image.

        Raises
        ------
        AnalysisError
            If the remote call fails
        """

    @abstractmethod
    async def generate_creative_prompt(self, image: EncodedImage) -> str:
        """Produce a prompt that would recreate the image.

        Raises
        ------
        PromptGenerationError
            If the remote call fails
        """

    @abstractmethod
    async def transform(
        self,
        image: EncodedImage,
        prompt: str,
        mask: EncodedImage | None = None,
    ) -> EncodedImage:
        """Generate a new image from ``image`` following ``prompt``.

        Raises
        ------
        GenerationError
            If the remote call fails
        NoImageGeneratedError
            If the response carries no image payload
        """


class GeminiClient(GenerationClientBase):
    """Gemini implementation using the async ``google-genai`` client.

    Analysis and creative prompts go to ``config.analysis_model``; image
    transformations go to ``config.image_model``. The SDK client is created
    lazily so constructing a GeminiClient never touches the network.
    """

    name = "Gemini"

    def __init__(self, config: ChronolensConfig, client: genai.Client | None = None) -> None:
        self.config = config
        self._client = client
        logger.info(
            f"Initialized {self.name} client "
            f"(analysis={config.analysis_model}, image={config.image_model})"
        )

    def _get_client(self) -> genai.Client:
        if self._client is None:
            http_options = types.HttpOptions(timeout=int(self.config.request_timeout * 1000))
            if self.config.api_key:
                self._client = genai.Client(api_key=self.config.api_key, http_options=http_options)
            else:
                # Falls back to GOOGLE_API_KEY / GEMINI_API_KEY
                self._client = genai.Client(http_options=http_options)
        return self._client

    @staticmethod
    def _image_part(image: EncodedImage) -> types.Part:
        return types.Part.from_bytes(data=image.data, mime_type=image.mime_type)

    @staticmethod
    def _parts(response: Any) -> list[Any]:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return []
        content = getattr(candidates[0], "content", None)
        return list(getattr(content, "parts", None) or [])

    @classmethod
    def _extract_text(cls, response: Any) -> str:
        texts = [part.text for part in cls._parts(response) if getattr(part, "text", None)]
        return "".join(texts).strip()

    @classmethod
    def _extract_image(cls, response: Any) -> EncodedImage | None:
        for part in cls._parts(response):
            inline = getattr(part, "inline_data", None)
            if inline is None or not inline.data:
                continue
            data = inline.data
            if isinstance(data, str):
                data = base64.b64decode(data, validate=True)
            return EncodedImage(data=data, mime_type=inline.mime_type or "image/png")
        return None

    async def _generate(self, model: str, parts: list[types.Part], modalities: list[str]) -> Any:
        client = self._get_client()
        start = time.monotonic()
        response = await client.aio.models.generate_content(
            model=model,
            contents=[types.Content(role="user", parts=parts)],
            config=types.GenerateContentConfig(response_modalities=modalities),
        )
        logger.info(f"{model} responded in {time.monotonic() - start:.2f}s")
        return response

    async def analyze(self, image: EncodedImage, mode: AnalysisMode = AnalysisMode.CONTEXT) -> str:
        parts = [self._image_part(image), types.Part.from_text(text=analysis_prompt(mode))]
        try:
            response = await self._generate(self.config.analysis_model, parts, ["TEXT"])
        except Exception as e:
            logger.error(f"Analysis failed: {e}", exc_info=True)
            raise AnalysisError("Failed to analyze image. Please try again.") from e

        return self._extract_text(response) or NO_ANALYSIS_TEXT

    async def generate_creative_prompt(self, image: EncodedImage) -> str:
        parts = [self._image_part(image), types.Part.from_text(text=CREATIVE_PROMPT_INSTRUCTION)]
        try:
            response = await self._generate(self.config.analysis_model, parts, ["TEXT"])
        except Exception as e:
            logger.error(f"Prompt generation failed: {e}")
            raise PromptGenerationError("Failed to generate prompt.") from e

        return self._extract_text(response)

    async def transform(
        self,
        image: EncodedImage,
        prompt: str,
        mask: EncodedImage | None = None,
    ) -> EncodedImage:
        parts = [self._image_part(image)]
        if mask is not None:
            parts.append(self._image_part(mask))
        parts.append(types.Part.from_text(text=prompt))

        try:
            response = await self._generate(self.config.image_model, parts, ["IMAGE", "TEXT"])
        except Exception as e:
            logger.error(f"Image generation failed: {e}", exc_info=True)
            raise GenerationError("Failed to generate image. Please try again.") from e

        try:
            output = self._extract_image(response)
        except (binascii.Error, ValueError) as e:
            logger.error(f"{self.config.image_model} returned undecodable image data: {e}")
            raise GenerationError("Failed to generate image. Please try again.") from e

        if output is None:
            logger.error(f"{self.config.image_model} returned no image data")
            raise NoImageGeneratedError()

        logger.debug(f"Received {output.mime_type} image, {len(output.data)} bytes")
        return output
