"""Configuration management for Yachtshot.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the YACHTSHOT_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (YACHTSHOT_* prefix)
2. .env file in the project root
3. Default values defined in YachtshotConfig

Example .env file:
    YACHTSHOT_IMAGE_MODEL=gemini-2.5-flash-image-preview
    YACHTSHOT_GOOGLE_API_KEY=...
    YACHTSHOT_ENVIRONMENT=production
    YACHTSHOT_MODEL_TIMEOUT=90

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from yachtshot.core.config import config

    print(config.image_model)
    print(config.base_scene_url)

Upload Limits
-------------
The upload limits mirror what the page enforces before anything is stored
in a visitor's session:
- max_upload_bytes: ceiling applied both before and after processing (10 MiB)
- max_dimension: longest side after downscaling (2048px)
- heic_quality / downscale_quality: JPEG/WebP export quality (0-100)
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"

DEFAULT_BASE_SCENE_URL = (
    "https://g5bkk9ebz3.ufs.sh/f/PZXJIaSDIN6E1nPqf0BSDfhvcJ0BTPx8EmYrkIAGRjw6Ho7n"
)


class YachtshotConfig(BaseSettings):
    """Main configuration for Yachtshot.

    This class uses Pydantic Settings to manage all application configuration.
    Values are loaded from environment variables with the YACHTSHOT_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Model Settings:
        image_model : str
            Provider model identifier used for generation
        google_api_key : str | None
            API key for the Gemini API (falls back to GOOGLE_API_KEY handling
            inside the google-genai client when unset)
        response_modalities : list[str]
            Output modalities requested from the model

    Generation Settings:
        base_scene_url : str
            Fixed background image every generation starts from
        require_prompt : bool
            Reject requests whose prompt is blank with 400
        fetch_timeout : float
            Deadline in seconds for fetching base/user images
        model_timeout : float
            Deadline in seconds for the model call

    Upload Settings:
        max_upload_bytes : int
            Size ceiling before and after processing
        max_dimension : int
            Longest image side after downscaling
        heic_quality : int
            JPEG quality used when transcoding HEIC/HEIF
        downscale_quality : int
            Quality used when re-exporting a downscaled image
        slot_quota_bytes : int | None
            Maximum data URL length the session upload slot accepts

    Server Settings:
        environment : Literal["development", "production"]
            Error details are only returned outside production
        server_host : str
            Server bind address
        server_port : int
            Server port (1024-65535)
        serve_ui : bool
            Mount the Gradio page at ``/``
        api_base_url : str | None
            Where the page sends generation requests (defaults to
            ``http://127.0.0.1:<server_port>``)
        log_level : str
            Root logging level for the CLI entry point

    Examples
    --------
        >>> custom_config = YachtshotConfig(
        ...     environment="production",
        ...     model_timeout=30.0,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="YACHTSHOT_",
        case_sensitive=False,
    )

    # Model settings
    image_model: str = Field(
        default=DEFAULT_IMAGE_MODEL,
        description="Provider model identifier used for image generation",
    )
    google_api_key: str | None = Field(
        default=None,
        description="Gemini API key (None lets google-genai read GOOGLE_API_KEY)",
    )
    response_modalities: list[str] = Field(
        default_factory=lambda: ["IMAGE", "TEXT"],
        description="Output modalities requested from the model",
    )

    # Generation settings
    base_scene_url: str = Field(
        default=DEFAULT_BASE_SCENE_URL,
        description="Fixed base scene image URL",
    )
    require_prompt: bool = Field(
        default=False,
        description="Reject requests without a prompt",
    )
    fetch_timeout: float = Field(
        default=20.0,
        description="Timeout in seconds for image fetches",
        gt=0,
    )
    model_timeout: float = Field(
        default=120.0,
        description="Timeout in seconds for the model call",
        gt=0,
    )

    # Upload settings
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    max_dimension: int = Field(default=2048, ge=64)
    heic_quality: int = Field(default=90, ge=1, le=100)
    downscale_quality: int = Field(default=85, ge=1, le=100)
    slot_quota_bytes: int | None = Field(
        default=None,
        description="Maximum stored data URL length (None = unlimited)",
    )

    # Server settings
    environment: Literal["development", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    serve_ui: bool = Field(
        default=True,
        description="Mount the Gradio page at / alongside the API",
    )
    api_base_url: str | None = Field(
        default=None,
        description="Base URL the page uses to reach POST /api/generate "
        "(None = this server on 127.0.0.1:server_port)",
    )
    log_level: str = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and derive the page's API address.

        When ``api_base_url`` is not set it points at this server on the
        loopback interface, so changing ``server_port`` alone keeps the
        page and the API in step.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        if not self.api_base_url:
            self.api_base_url = f"http://127.0.0.1:{self.server_port}"

    @property
    def is_production(self) -> bool:
        """Whether error details must be withheld from responses."""
        return self.environment == "production"


# Global configuration instance
# It loads values from environment variables (YACHTSHOT_* prefix) and .env file.
config = YachtshotConfig()
