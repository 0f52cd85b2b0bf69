"""Shared pytest fixtures for ChronoLens tests."""

import asyncio
import io
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from PIL import Image

from chronolens.core.config import ChronolensConfig
from chronolens.core.errors import AnalysisError, NoImageGeneratedError, PromptGenerationError
from chronolens.core.gemini_client import GenerationClientBase
from chronolens.core.images import EncodedImage
from chronolens.core.presets import AnalysisMode
from chronolens.core.settings_store import InMemorySettingsStore
from chronolens.session.machine import SessionStateMachine


def make_image(width: int = 64, height: int = 48, color=(120, 80, 40), format: str = "PNG") -> EncodedImage:
    """Encode a solid-color test image."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=format)
    return EncodedImage.from_bytes(buffer.getvalue())


class ScriptedClient(GenerationClientBase):
    """Generation client double driven by a script of outcomes.

    ``transform_script`` holds one entry per expected transform call: an
    EncodedImage to return or an exception to raise. When the script runs
    out, a fresh image is returned. Setting ``gate`` to an asyncio.Event
    makes every remote call wait until the event is set.
    """

    name = "Scripted"

    def __init__(self, transform_script=None, analysis="A person in a hoodie.", prompt="A portrait."):
        self.transform_script = list(transform_script or [])
        self.analysis = analysis
        self.prompt = prompt
        self.gate: asyncio.Event | None = None
        self.transform_calls: list[tuple[EncodedImage, str, EncodedImage | None]] = []
        self.analyze_calls: list[AnalysisMode] = []
        self.prompt_calls = 0
        self.started = 0

    async def _wait(self) -> None:
        self.started += 1
        if self.gate is not None:
            await self.gate.wait()

    async def analyze(self, image, mode=AnalysisMode.CONTEXT):
        self.analyze_calls.append(mode)
        await self._wait()
        if isinstance(self.analysis, Exception):
            raise self.analysis
        return self.analysis

    async def generate_creative_prompt(self, image):
        self.prompt_calls += 1
        await self._wait()
        if isinstance(self.prompt, Exception):
            raise self.prompt
        return self.prompt

    async def transform(self, image, prompt, mask=None):
        self.transform_calls.append((image, prompt, mask))
        await self._wait()
        outcome = self.transform_script.pop(0) if self.transform_script else None
        if isinstance(outcome, Exception):
            raise outcome
        return outcome or make_image(color=(len(self.transform_calls) * 30 % 256, 0, 0))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> ChronolensConfig:
    """Configuration pointing at a temporary data directory."""
    return ChronolensConfig(
        _env_file=None,
        api_key="test-key",
        data_dir=str(temp_dir / "data"),
        default_style="Photorealistic",
        default_resolution="Standard",
        default_detail_level=50,
        default_brush_size=20,
    )


@pytest.fixture
def source_image() -> EncodedImage:
    """A 64x48 PNG standing in for a captured photo."""
    return make_image()


@pytest.fixture
def image_factory() -> Callable[..., EncodedImage]:
    return make_image


@pytest.fixture
def client_factory() -> Callable[..., ScriptedClient]:
    return ScriptedClient


@pytest.fixture
def client() -> ScriptedClient:
    return ScriptedClient()


@pytest.fixture
def store() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def machine(client: ScriptedClient, store: InMemorySettingsStore, test_config: ChronolensConfig) -> SessionStateMachine:
    """State machine wired to the scripted client and an in-memory store."""
    return SessionStateMachine(client, store, config=test_config)


@pytest.fixture
def preview_machine(machine: SessionStateMachine, source_image: EncodedImage) -> SessionStateMachine:
    """State machine already in PREVIEW with a captured photo."""

    async def _prepare():
        await machine.start()
        await machine.capture(source_image)

    asyncio.run(_prepare())
    return machine


@pytest.fixture
def no_image_error() -> NoImageGeneratedError:
    return NoImageGeneratedError()


@pytest.fixture
def analysis_error() -> AnalysisError:
    return AnalysisError("Failed to analyze image. Please try again.")


@pytest.fixture
def prompt_error() -> PromptGenerationError:
    return PromptGenerationError("Failed to generate prompt.")
