"""
Pydantic Models and Schemas
===========================

Core data models for card content, layout plans, export jobs, and the
render API wire format. Content models validate once at construction.
"""

from typing import Optional, List, Literal, Any
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cardrender.core.content import normalize_icon, is_valid_icon, sanitize_desc_html

CANVAS_WIDTH = 1920
CANVAS_HEIGHT = 1080
MIN_CARDS = 1
MAX_CARDS = 8


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class ExportFormat(str, Enum):
    """Image export formats."""
    PNG = "png"
    SVG = "svg"


class PngRenderer(str, Enum):
    """Raster backend preference."""
    LOCAL = "local"
    REMOTE = "remote"


class ExportState(str, Enum):
    """Lifecycle of a single export call."""
    IDLE = "idle"
    MOUNTING = "mounting"
    SETTLING = "settling"
    CAPTURING = "capturing"
    FALLBACK_CAPTURING = "fallback_capturing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TEARDOWN = "teardown"


# Content Models
class Card(BaseModel):
    """One card: title, restricted-HTML description, icon token."""
    title: str = Field(..., min_length=1, description="Card title")
    desc: str = Field("", description="Description limited to <strong>, <code>, <br/>")
    icon: str = Field(..., description="Icon token")

    model_config = ConfigDict(frozen=True)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) else v

    @field_validator("desc", mode="before")
    @classmethod
    def sanitize_desc(cls, v: Any) -> str:
        """Sanitize description HTML once, at construction."""
        return sanitize_desc_html(v)

    @field_validator("icon", mode="before")
    @classmethod
    def validate_icon(cls, v: Any) -> str:
        """Icons must match the token charset after normalization."""
        token = normalize_icon(v, fallback="")
        if not token or not is_valid_icon(token):
            raise ValueError(f"Invalid icon token: {v!r}")
        return token


class CardContent(BaseModel):
    """Main title plus 1-8 cards."""
    main_title: str = Field(..., min_length=1, alias="mainTitle", description="Main title")
    cards: List[Card] = Field(..., min_length=MIN_CARDS, max_length=MAX_CARDS)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("main_title", mode="before")
    @classmethod
    def strip_main_title(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) else v

    @property
    def card_count(self) -> int:
        return len(self.cards)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire field names."""
        return self.model_dump(by_alias=True)


# Layout Models
class TitleConfig(BaseModel):
    """Title autosize bounds in px."""
    initial_font_size: int = Field(..., gt=0)
    min_font_size: int = Field(..., gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class LayoutPlan(BaseModel):
    """Deterministic layout derived from the card count."""
    wrapper_gap: str
    wrapper_padding_x: Optional[str] = None
    container_gap: str
    card_padding: str
    card_width_class: str
    icon_size: str
    title_size_class: str
    desc_size_class: str
    title_config: TitleConfig

    model_config = ConfigDict(frozen=True)


# Export Models
class ExportJob(BaseModel):
    """Transient parameters for one export call."""
    format: ExportFormat = Field(ExportFormat.PNG, description="Output format")
    pixel_ratio: float = Field(2.0, description="Output pixel ratio, clamped to 1..4")
    background_color: Optional[str] = Field(None, description="Background fill, None keeps transparency")
    template_id: Optional[str] = Field(None, description="Filename prefix, defaults to the theme id")
    bottom_reserved_px: int = Field(100, description="Footer space, clamped to 0..600")
    renderer: Optional[PngRenderer] = Field(None, description="Raster backend override")
    wait_for_layout_ms: Optional[int] = Field(None, ge=0, description="Settle delay override")

    @field_validator("pixel_ratio", mode="before")
    @classmethod
    def clamp_pixel_ratio(cls, v: Any) -> float:
        try:
            parsed = float(v)
        except (TypeError, ValueError):
            return 2.0
        return min(4.0, max(1.0, parsed))

    @field_validator("bottom_reserved_px", mode="before")
    @classmethod
    def clamp_bottom_reserved(cls, v: Any) -> int:
        try:
            parsed = float(v)
        except (TypeError, ValueError):
            return 100
        return int(round(min(600.0, max(0.0, parsed))))


class CaptureOptions(BaseModel):
    """Options for one capture call."""
    width: int = Field(..., gt=0, description="Capture width in CSS px")
    height: int = Field(..., gt=0, description="Capture height in CSS px")
    pixel_ratio: float = Field(1.0, gt=0, le=8.0, description="Raster scale")
    background_color: Optional[str] = Field(None, description="Background fill")
    format: ExportFormat = Field(ExportFormat.PNG, description="Output format")
    settle_ms: int = Field(320, ge=0, description="Requested layout settle delay")


class ExportResult(BaseModel):
    """Final artifact of an image export."""
    data: bytes = Field(..., description="Image bytes", exclude=True)
    format: ExportFormat = Field(..., description="Image format")
    filename: str = Field(..., description="Suggested download filename")
    media_type: str = Field(..., description="MIME type")
    backend: str = Field(..., description="Strategy or service that produced the bytes")

    @property
    def file_size(self) -> int:
        return len(self.data)


# Render API Models
class RenderCardPayload(BaseModel):
    """Card as received over the wire, before normalization."""
    title: str = ""
    desc: str = ""
    icon: str = ""


class HeadlessRenderRequest(BaseModel):
    """Normalized render API request."""
    template_id: str = Field(..., alias="templateId")
    main_title: str = Field(..., alias="mainTitle")
    cards: List[RenderCardPayload] = Field(default_factory=list)
    dpr: Literal[1, 2] = 1

    model_config = ConfigDict(populate_by_name=True)

    def to_content(self) -> CardContent:
        return CardContent(
            main_title=self.main_title,
            cards=[Card(title=c.title, desc=c.desc, icon=c.icon) for c in self.cards],
        )


class ThemeSummary(BaseModel):
    """Public description of a registered theme."""
    id: str
    name: str
    description: Optional[str] = None
    self_contained: bool = False
    headless: bool = False


class ThemesResponse(BaseModel):
    ok: bool = True
    themes: List[ThemeSummary] = Field(default_factory=list)


class HealthStatus(BaseModel):
    """Health check status."""
    status: Literal["ok", "degraded"] = Field("ok", description="Overall status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Application version")
    now: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    themes: int = Field(0, ge=0, description="Number of headless-renderable themes")


# Error Models
class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
