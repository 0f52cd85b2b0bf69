"""Configuration management for ChronoLens.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the CHRONOLENS_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (CHRONOLENS_* prefix)
2. .env file in the project root
3. Default values defined in ChronolensConfig

Example .env file:
    CHRONOLENS_API_KEY=your-gemini-key
    CHRONOLENS_IMAGE_MODEL=gemini-2.5-flash-image
    CHRONOLENS_DEFAULT_DETAIL_LEVEL=50

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Session state machines fall back to it when no configuration is injected.

Usage Example
-------------
    from chronolens.core.config import config

    print(config.image_model)
    print(config.settings_db_path)

Remote Models
-------------
Two Gemini models are used:
- analysis_model: visual understanding (context and damage analysis,
  creative prompt generation)
- image_model: image generation and editing (time travel, custom edits,
  restoration, masked edits)

Persisted settings (style, resolution, detail level) are NOT configured
here; the values below only seed the settings store on first run.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChronolensConfig(BaseSettings):
    """Main configuration for ChronoLens.

    Attributes
    ----------
    Remote Service:
        api_key : str
            Gemini API key (empty means the SDK reads GOOGLE_API_KEY/GEMINI_API_KEY)
        analysis_model : str
            Model used for analysis and creative prompt generation
        image_model : str
            Model used for image generation and editing
        request_timeout : float
            Timeout for a single remote call, in seconds

    Persistence:
        data_dir : Path
            Directory holding the settings database
        settings_db_name : str
            Filename of the SQLite settings database inside data_dir

    Session Defaults:
        default_style : str
            Style used when nothing has been persisted yet
        default_resolution : str
            Resolution tier used when nothing has been persisted yet
        default_detail_level : int
            Detail level (0-100) used when nothing has been persisted yet
        default_brush_size : int
            Brush diameter in native pixels for new mask canvases (5-100)

    Notes
    -----
    - data_dir is created automatically if it doesn't exist
    - Configuration is immutable after initialization

    Examples
    --------
        >>> custom_config = ChronolensConfig(
        ...     api_key="test",
        ...     default_detail_level=80,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CHRONOLENS_",
        case_sensitive=False,
        extra="ignore",
    )

    # Remote service
    api_key: str = Field(
        default="",
        description="Gemini API key",
    )
    analysis_model: str = Field(
        default="gemini-3-pro-preview",
        description="Model for context/damage analysis and creative prompts",
    )
    image_model: str = Field(
        default="gemini-2.5-flash-image",
        description="Model for image generation and editing",
    )
    request_timeout: float = Field(
        default=180.0,
        description="Timeout for one remote call in seconds",
        gt=0,
    )

    # Persistence
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the settings database",
    )
    settings_db_name: str = Field(
        default="chronolens_settings.db",
        description="SQLite filename for persisted settings",
    )

    # Session defaults
    default_style: str = Field(default="Photorealistic")
    default_resolution: str = Field(default="Standard")
    default_detail_level: int = Field(default=50, ge=0, le=100)
    default_brush_size: int = Field(default=20, ge=5, le=100)

    def __init__(self, **kwargs):
        """Initialize configuration and create the data directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def settings_db_path(self) -> Path:
        """Full path to the SQLite settings database."""
        return self.data_dir / self.settings_db_name


# Global configuration instance
config = ChronolensConfig()
