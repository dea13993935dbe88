"""Data models for parsed events, scraped page data and poster templates.

Attributes are snake_case in Python; the wire format (what the persistence
layer stores) uses the camelCase aliases generated below.
"""
import re
from datetime import date
from typing import Any, List, Literal, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated


# ============================================================================
# COLOR HELPERS
# ============================================================================

_HEX_PATTERN = re.compile(r'#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})')
_RGB_PATTERN = re.compile(r'rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*[\d.]+\s*)?\)')


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Convert RGB components to an uppercase #RRGGBB string."""
    return f"#{r:02X}{g:02X}{b:02X}"


def normalize_hex(value: Any) -> Optional[str]:
    """Parse #RGB, #RRGGBB or rgb()/rgba() into uppercase #RRGGBB; None if unparseable."""
    if not isinstance(value, str):
        return None
    color_val = value.strip()

    hex_match = _HEX_PATTERN.fullmatch(color_val)
    if hex_match and (color_val.startswith('#') or len(color_val) == 6):
        digits = hex_match.group(1)
        if len(digits) == 3:
            digits = ''.join(c * 2 for c in digits)
        return f"#{digits.upper()}"

    rgb_match = _RGB_PATTERN.fullmatch(color_val.lower())
    if rgb_match:
        r, g, b = (int(rgb_match.group(i)) for i in (1, 2, 3))
        if max(r, g, b) <= 255:
            return rgb_to_hex(r, g, b)

    return None


def _require_hex(value: Any) -> str:
    normalized = normalize_hex(value)
    if normalized is None:
        raise ValueError(f"not a hex color: {value!r}")
    return normalized


HexColor = Annotated[str, BeforeValidator(_require_hex)]


def _optional_hex(value: Any) -> Optional[str]:
    return normalize_hex(value) if value is not None else None


OptionalHexColor = Annotated[Optional[str], BeforeValidator(_optional_hex)]


class WireModel(BaseModel):
    """Immutable model that reads and writes camelCase field names."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "frozen": True,
    }

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys and unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _drop_if_invalid(value: Any, handler):
    """Wrap-validator body: keep the value when it validates, else drop it."""
    try:
        return handler(value)
    except ValidationError:
        return None


# ============================================================================
# VISUAL STYLE MODELS
# ============================================================================

class BrandColors(WireModel):
    """Brand palette; every entry is #RRGGBB."""
    primary: HexColor = Field(description="Dominant brand color")
    secondary: OptionalHexColor = Field(default=None, description="Secondary color")
    accent: OptionalHexColor = Field(default=None, description="Accent/CTA color")
    background: OptionalHexColor = Field(default=None, description="Main background")
    text: OptionalHexColor = Field(default=None, description="Main text color")


class Typography(WireModel):
    """Typography class of the page."""
    heading_style: Literal["sans-serif", "serif", "display", "monospace"] = "sans-serif"
    body_style: Literal["sans-serif", "serif"] = "sans-serif"
    weight: Literal["light", "regular", "bold", "heavy"] = "regular"
    letter_spacing: Optional[Literal["tight", "normal", "wide"]] = None


class GradientStyle(WireModel):
    """Gradient used for backgrounds or element fills."""
    type: Literal["linear", "radial"]
    angle: Optional[float] = Field(default=None, ge=0, le=360, description="0 = top to bottom, 90 = left to right")
    colors: List[HexColor] = Field(min_length=1)
    positions: Optional[List[float]] = None


class ShadowStyle(WireModel):
    """Shadow applied to cards, photos and badges."""
    type: Literal["soft", "hard", "glow", "none"]
    color: HexColor = "#000000"
    blur: float = 0
    offset_x: float = 0
    offset_y: float = 0


class DecorativeElement(WireModel):
    """Decorative shape observed in the design."""
    type: Literal["line", "circle", "rectangle", "blob", "dots", "grid"]
    position: Literal["top-left", "top-right", "bottom-left", "bottom-right", "background", "border"]
    color: HexColor
    opacity: float = Field(default=1.0, ge=0, le=1)
    size: Optional[float] = Field(default=None, description="Size relative to canvas (0-100)")


class VisualStyle(WireModel):
    """Visual language of an event page."""
    style: Literal["modern", "classic", "minimal", "bold", "playful", "corporate"]
    typography: Typography = Field(default_factory=Typography)
    gradient: Optional[GradientStyle] = None
    shadow: Optional[ShadowStyle] = None
    decorative_elements: Optional[List[DecorativeElement]] = None
    design_elements: List[str] = Field(default_factory=list)

    @field_validator("gradient", "shadow", mode="wrap")
    @classmethod
    def _lenient_effects(cls, value, handler):
        return _drop_if_invalid(value, handler)

    @field_validator("decorative_elements", mode="before")
    @classmethod
    def _keep_valid_decorations(cls, value):
        if not isinstance(value, list):
            return None
        kept = []
        for item in value:
            try:
                kept.append(DecorativeElement.model_validate(item))
            except ValidationError:
                continue
        return kept

    @field_validator("design_elements", mode="before")
    @classmethod
    def _string_list(cls, value):
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None]


# ============================================================================
# EVENT MODELS
# ============================================================================

class EventLocation(WireModel):
    """Where the event happens."""
    venue: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_virtual: bool = False


class ParsedEventData(WireModel):
    """Structured, brand-consistent description of an event."""
    name: str = Field(min_length=1, description="Event name")
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: Optional[EventLocation] = None
    brand_colors: Optional[BrandColors] = None
    logo_url: Optional[str] = None
    organizer_name: Optional[str] = None
    visual_style: Optional[VisualStyle] = None
    hero_image_url: Optional[str] = None

    @field_validator("start_date", "end_date", "brand_colors", "visual_style", "location", mode="wrap")
    @classmethod
    def _lenient_optional(cls, value, handler):
        return _drop_if_invalid(value, handler)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


# ============================================================================
# SCRAPED DATA MODELS
# ============================================================================

class ScrapedLink(WireModel):
    """Anchor that looked event-relevant."""
    text: str
    href: str


class ScrapedData(WireModel):
    """Facts derived heuristically from page markup."""
    title: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    og_image: Optional[str] = None
    colors: List[str] = Field(default_factory=list, max_length=10)
    font_families: List[str] = Field(default_factory=list, max_length=5)
    links: List[ScrapedLink] = Field(default_factory=list, max_length=10)


# ============================================================================
# TEMPLATE MODELS
# ============================================================================

REQUIRED_ELEMENT_IDS = ("event-name", "user-photo")


class ElementProperties(WireModel):
    """Position (percentages of the canvas) plus optional styling."""
    model_config = {"extra": "allow"}

    x: float
    y: float
    width: float
    height: float

    # Text
    content: Optional[str] = None
    fill: OptionalHexColor = None
    font_size: Optional[float] = None
    font_family: Optional[str] = None
    font_weight: Optional[str] = None
    letter_spacing: Optional[float] = None
    text_align: Optional[Literal["left", "center", "right"]] = None

    # Effects
    gradient: Optional[GradientStyle] = None
    shadow: Optional[ShadowStyle] = None

    # Shapes
    shape_type: Optional[str] = None
    border_radius: Optional[float] = None
    stroke_color: OptionalHexColor = None
    stroke_width: Optional[float] = None

    opacity: Optional[float] = Field(default=None, ge=0, le=1)
    rotation: Optional[float] = None

    @field_validator("font_weight", mode="before")
    @classmethod
    def _weight_as_text(cls, value):
        return str(value) if isinstance(value, (int, float)) else value

    @field_validator("gradient", "shadow", "text_align", "opacity", mode="wrap")
    @classmethod
    def _lenient_styling(cls, value, handler):
        return _drop_if_invalid(value, handler)


class TemplateElement(WireModel):
    """Positioned visual element of a poster template."""
    id: str
    type: Literal["text", "image", "shape", "logo", "gradient-bg", "decorative"]
    z_index: Optional[int] = None
    properties: ElementProperties


class GeneratedTemplate(WireModel):
    """Poster template ready for rendering."""
    name: str
    layout: Literal["classic", "modern", "minimal", "bold"]
    background_color: HexColor
    background_image_url: Optional[str] = None
    elements: List[TemplateElement]

    @model_validator(mode="after")
    def _check_required_elements(self):
        ids = {element.id for element in self.elements}
        missing = [element_id for element_id in REQUIRED_ELEMENT_IDS if element_id not in ids]
        if missing:
            raise ValueError(f"template '{self.name}' is missing elements: {', '.join(missing)}")
        return self


class TemplateGenerationResult(WireModel):
    """Envelope returned by the template-generation prompt."""
    templates: List[GeneratedTemplate]

    @field_validator("templates", mode="before")
    @classmethod
    def _keep_valid_templates(cls, value):
        """Drop malformed templates; fail only when none of them survive."""
        if not isinstance(value, list) or not value:
            return value
        kept = []
        errors = []
        for item in value:
            try:
                kept.append(GeneratedTemplate.model_validate(item))
            except ValidationError as e:
                errors.append(f"{e.error_count()} error(s)")
        if not kept:
            raise ValueError(f"no valid templates among {len(value)} ({'; '.join(errors)})")
        return kept


# ============================================================================
# API REQUEST/RESPONSE MODELS
# ============================================================================

class ParseEventRequest(WireModel):
    """Request model for event parsing."""
    url: str = Field(description="Event page URL (already validated upstream)")


class GenerateTemplatesRequest(WireModel):
    """Request model for template generation."""
    event_data: ParsedEventData
    count: int = Field(default=3, ge=0, le=10)


class GenerateTemplatesResponse(WireModel):
    """Response model for template generation."""
    templates: List[GeneratedTemplate]


class BackgroundImageRequest(WireModel):
    """Request model for background image generation."""
    event_data: ParsedEventData
    style: Literal["modern", "minimal", "bold"] = "modern"


class BackgroundImageResponse(WireModel):
    """Response model for background image generation."""
    image_url: str


class ErrorResponse(WireModel):
    """Client-facing error payload."""
    code: str
    message: str
    retry_after: Optional[float] = None
