"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional, List, Union, Literal, Any
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path


DEFAULT_TAILWIND_SCRIPT_URL = "https://cdn.tailwindcss.com"
DEFAULT_MATERIAL_ICONS_URL = "https://fonts.googleapis.com/icon?family=Material+Icons"
DEFAULT_MATERIAL_SYMBOLS_URL = (
    "https://fonts.googleapis.com/css2?family=Material+Symbols+Rounded"
    ":opsz,wght,FILL,GRAD@24,400,0,0&display=swap"
)
DEFAULT_COMMON_FONTS_URL = (
    "https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700"
    "&family=Nunito:wght@400;600;700;800&family=JetBrains+Mono:wght@400;500;600"
    "&family=Space+Grotesk:wght@400;500;700&family=Noto+Sans+SC:wght@400;500;700&display=swap"
)


def _clamp(value: Any, fallback: float, minimum: float, maximum: float) -> float:
    """Clamp a numeric setting, using the fallback for non-numeric input."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return fallback
    if parsed != parsed:  # NaN
        return fallback
    return min(maximum, max(minimum, parsed))


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Card Render Service", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8080, ge=1, le=65535, description="Server port")

    # Storage Configuration
    storage_path: Path = Field(default=Path("./storage"), description="Storage directory path")

    # Export Configuration
    export_pixel_ratio: float = Field(default=2.0, description="Output pixel ratio (1-4)")
    bottom_reserved_px: int = Field(default=100, description="Footer space reserved in px (0-600)")
    png_renderer: Literal["local", "remote"] = Field(
        default="local", description="Preferred raster backend"
    )
    background_color: Optional[str] = Field(default=None, description="Capture background fill")
    layout_settle_ms: int = Field(default=320, description="Settle delay after mounting a target")
    document_settle_ms: int = Field(default=220, description="Settle delay before serializing")
    font_wait_timeout_ms: int = Field(default=1500, description="Upper bound for font readiness")
    capture_min_png_bytes: int = Field(
        default=1000, description="Below this size a vector-raster PNG is treated as suspicious"
    )

    # Remote Render API Configuration
    render_api_base_url: str = Field(
        default="http://127.0.0.1:8080/api", description="Render API base URL"
    )
    render_api_timeout_ms: int = Field(default=12000, description="Render API timeout (ms)")
    render_api_bearer_token: Optional[str] = Field(
        default=None, description="Bearer token sent to the render API"
    )

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    set_content_timeout_ms: int = Field(
        default=12000, description="Headless document load timeout (ms)"
    )
    post_font_wait_ms: int = Field(default=180, description="Settle delay after fonts are ready")
    chromium_no_sandbox: bool = Field(default=False, description="Pass --no-sandbox to Chromium")
    chromium_disable_dev_shm: bool = Field(
        default=True, description="Pass --disable-dev-shm-usage to Chromium"
    )
    chromium_disable_gpu: bool = Field(default=True, description="Pass --disable-gpu to Chromium")
    chromium_executable_path: Optional[Path] = Field(
        default=None, description="Custom Chromium executable"
    )
    local_font_path: Optional[Path] = Field(
        default=None, description="TTF injected into headless renders as CustomPreviewFont"
    )

    # Security Configuration
    allowed_origins: List[str] = Field(default=["*"], description="Allowed origins for CORS")
    api_bearer_token: Optional[str] = Field(default=None, description="Bearer token for writes")
    allow_unauthenticated_write: Optional[bool] = Field(
        default=None, description="Allow writes without a token (defaults to non-production)"
    )

    # Asset Configuration
    tailwind_script_url: str = Field(default=DEFAULT_TAILWIND_SCRIPT_URL)
    material_icons_url: str = Field(default=DEFAULT_MATERIAL_ICONS_URL)
    material_symbols_url: str = Field(default=DEFAULT_MATERIAL_SYMBOLS_URL)
    common_fonts_url: str = Field(default=DEFAULT_COMMON_FONTS_URL)

    # Monitoring Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse allowed origins from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string: ["*"] or ["host1", "host2"]
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Handle comma-separated string: "*" or "host1,host2"
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("export_pixel_ratio", mode="before")
    @classmethod
    def clamp_pixel_ratio(cls, v: Any) -> float:
        """Clamp pixel ratio to 1..4."""
        return _clamp(v, 2.0, 1.0, 4.0)

    @field_validator("bottom_reserved_px", mode="before")
    @classmethod
    def clamp_bottom_reserved(cls, v: Any) -> int:
        """Clamp reserved footer space to 0..600 px."""
        return int(round(_clamp(v, 100, 0, 600)))

    @field_validator("render_api_timeout_ms", mode="before")
    @classmethod
    def clamp_render_api_timeout(cls, v: Any) -> int:
        """Clamp remote render timeout to 1s..60s."""
        return int(round(_clamp(v, 12000, 1000, 60000)))

    @field_validator("set_content_timeout_ms", mode="before")
    @classmethod
    def clamp_set_content_timeout(cls, v: Any) -> int:
        """Clamp headless load timeout to 1s..120s."""
        return int(round(_clamp(v, 12000, 1000, 120000)))

    @field_validator("render_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL."""
        return v.strip().rstrip("/")

    @field_validator("background_color", "api_bearer_token", "render_api_bearer_token")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank strings as unset."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("storage_path")
    @classmethod
    def create_directories(cls, v: Path) -> Path:
        """Ensure directories exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @model_validator(mode="after")
    def resolve_write_policy(self) -> "Settings":
        """Unauthenticated writes default to on outside production."""
        if self.allow_unauthenticated_write is None:
            self.allow_unauthenticated_write = self.environment != "production"
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def chromium_args(self) -> List[str]:
        """Chromium command-line flags derived from configuration."""
        args: List[str] = []
        if self.chromium_no_sandbox:
            args.extend(["--no-sandbox", "--disable-setuid-sandbox"])
        if self.chromium_disable_dev_shm:
            args.append("--disable-dev-shm-usage")
        if self.chromium_disable_gpu:
            args.append("--disable-gpu")
        return args

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="CARDRENDER_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
