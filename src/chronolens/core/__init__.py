"""Core building blocks for ChronoLens.

This package holds everything the session state machine orchestrates:

- **Configuration** (config.py): Pydantic Settings, CHRONOLENS_ prefix
- **Presets** (presets.py): eras, styles, resolution tiers, detail thresholds
- **Request Builder** (request_builder.py): pure prompt construction
- **Generation Client** (gemini_client.py): remote analysis and image
  generation through google-genai
- **Batch Pipeline** (pipeline.py): sequential runs with partial-failure
  recovery and progressive results
- **Mask Capture** (mask.py): stroke collection and binarization
- **Settings Store** (settings_store.py): persisted configuration

Usage Example
-------------
    from chronolens.core import BatchPipeline, GeminiClient, config

    pipeline = BatchPipeline(GeminiClient(config))
    outcome = await pipeline.run(photo, requests)
"""

from chronolens.core.config import ChronolensConfig, config
from chronolens.core.gemini_client import GeminiClient, GenerationClientBase
from chronolens.core.mask import MaskCanvas, PixelBuffer, binarize
from chronolens.core.pipeline import BatchOutcome, BatchPipeline, TransformationResult
from chronolens.core.settings_store import InMemorySettingsStore, SettingsStore, SQLiteSettingsStore

__all__ = [
    "BatchOutcome",
    "BatchPipeline",
    "ChronolensConfig",
    "config",
    "GeminiClient",
    "GenerationClientBase",
    "InMemorySettingsStore",
    "MaskCanvas",
    "PixelBuffer",
    "SettingsStore",
    "SQLiteSettingsStore",
    "TransformationResult",
    "binarize",
]
