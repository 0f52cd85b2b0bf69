"""ChronoLens - session orchestration for AI photo time travel and editing."""

__version__ = "0.1.0"

from chronolens.core.config import ChronolensConfig, config
from chronolens.core.gemini_client import GeminiClient, GenerationClientBase
from chronolens.core.presets import Era, ImageStyle, Resolution
from chronolens.session.machine import SessionStateMachine
from chronolens.session.models import Phase, Session

__all__ = [
    "ChronolensConfig",
    "config",
    "Era",
    "GeminiClient",
    "GenerationClientBase",
    "ImageStyle",
    "Phase",
    "Resolution",
    "Session",
    "SessionStateMachine",
]
