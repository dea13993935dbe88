"""Prompt templates for event parsing and poster template generation.

Each template builds the prompt text and parses the model's reply into the
matching pydantic model. Replies are expected to be bare JSON, but markdown
code fences are tolerated.
"""
import json
import re
from typing import List, Optional, Type

from pydantic import BaseModel, ValidationError

from posterkit.app.errors import ErrorKind, PipelineError
from posterkit.app.models import (
    ParsedEventData,
    ScrapedData,
    TemplateGenerationResult,
)

_FENCE_PATTERN = re.compile(r'```(?:json)?\n?')

DEFAULT_LAYOUTS = ['classic', 'modern', 'minimal', 'bold']


class JsonPromptTemplate:
    """Base class for prompts whose answer is a JSON document."""

    id: str = ''
    name: str = ''
    description: str = ''
    output_model: Type[BaseModel] = BaseModel

    def build(self, *args, **kwargs) -> str:
        raise NotImplementedError

    def parse(self, response: str):
        """Decode the reply and validate it into ``output_model``."""
        return self._validate(self._decode(response), response)

    def _decode(self, response: str):
        json_str = _FENCE_PATTERN.sub('', response or '').strip()
        try:
            return json.loads(json_str)
        except json.JSONDecodeError as e:
            raise PipelineError(ErrorKind.PARSING, self._parse_error_message(response)) from e

    def _validate(self, data, response: str):
        try:
            return self.output_model.model_validate(data)
        except ValidationError as e:
            raise PipelineError(
                ErrorKind.PARSING,
                f"{self._parse_error_message(response)} ({e.error_count()} validation errors)",
            ) from e

    @staticmethod
    def _parse_error_message(response: str) -> str:
        return f"Failed to parse AI response as JSON: {(response or '')[:100]}..."

    @staticmethod
    def _json_instructions(schema_example: str) -> str:
        return (
            "Return ONLY valid JSON (no markdown code blocks, no explanations).\n"
            "Expected format:\n"
            f"{schema_example}"
        )


# ============================================================================
# EVENT PARSING
# ============================================================================

EVENT_SCHEMA_EXAMPLE = """{
  "name": "Event name",
  "description": "Brief description",
  "startDate": "YYYY-MM-DD",
  "endDate": "YYYY-MM-DD or null",
  "location": {
    "venue": "Venue name or null",
    "city": "City",
    "country": "Country",
    "isVirtual": true/false
  },
  "brandColors": {
    "primary": "#hexcolor",
    "secondary": "#hexcolor or null"
  },
  "logoUrl": "URL or null",
  "organizerName": "Organizer name or null"
}"""

EVENT_TEXT_PROMPT = """You are an event information extractor. Given an event URL, extract event details.

URL: {url}

Instructions:
- Extract all available information about the event
- If a field cannot be determined, use null
- For brand colors, try to identify from the event website design
- Dates should be in YYYY-MM-DD format

{json_instructions}"""

SCRAPED_HINTS = """
Pre-extracted data from HTML:
- Title: {title}
- Description: {description}
- Logo URL: {logo_url}
- Hero/OG Image: {og_image}
- Colors found in CSS: {colors}
- Fonts: {fonts}
"""

VISION_SCHEMA = """{
  "name": "Event name (required)",
  "description": "Brief 1-2 sentence description",
  "startDate": "YYYY-MM-DD or null",
  "endDate": "YYYY-MM-DD or null",
  "location": {
    "venue": "Venue name or null",
    "city": "City name",
    "country": "Country name",
    "isVirtual": true/false
  },
  "brandColors": {
    "primary": "#HEXCODE - dominant brand color",
    "secondary": "#HEXCODE - secondary color or null",
    "accent": "#HEXCODE - accent/CTA color or null",
    "background": "#HEXCODE - main background",
    "text": "#HEXCODE - main text color"
  },
  "logoUrl": "Logo URL or null",
  "organizerName": "Organizer name or null",
  "visualStyle": {
    "style": "modern|classic|minimal|bold|playful|corporate",
    "typography": {
      "headingStyle": "sans-serif|serif|display|monospace",
      "bodyStyle": "sans-serif|serif",
      "weight": "light|regular|bold|heavy",
      "letterSpacing": "tight|normal|wide"
    },
    "gradient": {
      "type": "linear|radial",
      "angle": 135,
      "colors": ["#start", "#end"],
      "positions": [0, 1]
    },
    "shadow": {
      "type": "soft|hard|glow|none",
      "color": "#000000",
      "blur": 20,
      "offsetX": 0,
      "offsetY": 10
    },
    "decorativeElements": [
      {
        "type": "line|circle|rectangle|blob|dots|grid",
        "position": "top-left|top-right|bottom-left|bottom-right|background|border",
        "color": "#HEXCODE",
        "opacity": 0.5,
        "size": 30
      }
    ],
    "designElements": ["gradient", "rounded-corners", "cards", etc.]
  },
  "heroImageUrl": "Hero image URL or null"
}"""

VISUAL_ANALYSIS_GUIDE = """=== VISUAL ANALYSIS GUIDE ===

1. GRADIENTS (Critical for capturing vibe):
   - Look at hero sections, buttons, overlays
   - "linear" = color transitions in one direction (specify angle: 0=top-down, 90=left-right, 135=diagonal)
   - "radial" = color radiates from center
   - Capture the exact colors in the gradient (usually 2-3 colors)
   - If NO gradient visible, set gradient to null

2. SHADOWS (Creates depth and style):
   - "soft" = blurry, subtle shadow (modern look)
   - "hard" = crisp, defined shadow (bold look)
   - "glow" = colored glow around elements (playful/tech look)
   - "none" = flat design, no shadows
   - Look at cards, buttons, images for shadow style

3. DECORATIVE ELEMENTS (Creates uniqueness):
   - Look for geometric shapes (circles, lines, blobs)
   - Note their position (corner decorations, background patterns)
   - Capture their color and transparency
   - Examples: floating circles, diagonal lines, dot patterns, grid backgrounds

4. TYPOGRAPHY:
   - "display" = decorative/unique headline fonts
   - "heavy" = extra bold, impactful
   - "tight" letterSpacing = modern tech feel
   - "wide" letterSpacing = elegant, spaced out

5. OVERALL STYLE:
   - "modern" = gradients, soft shadows, sans-serif, whitespace
   - "bold" = high contrast, strong colors, hard shadows
   - "playful" = rounded shapes, bright colors, glows
   - "minimal" = few colors, no decorations, lots of space
   - "corporate" = muted colors, structured, professional
   - "classic" = serif fonts, traditional layout"""

VISION_PROMPT = """Analyze this event/conference website screenshot. Your goal is to capture the VISUAL VIBE so we can create posters that feel like they belong to this event.

URL: {url}
{scraped_hints}
IMPORTANT: Respond with ONLY valid JSON, no other text.

{schema}

{guide}"""


class EventParsingTemplate(JsonPromptTemplate):
    """Turns an event page (URL, optionally screenshot + scraped hints) into ParsedEventData."""

    id = 'event-parsing'
    name = 'Event URL Parser'
    description = 'Extracts event information from a URL'
    output_model = ParsedEventData

    def build(self, url: str) -> str:
        """Text-only prompt, used when no screenshot is available."""
        return EVENT_TEXT_PROMPT.format(
            url=url,
            json_instructions=self._json_instructions(EVENT_SCHEMA_EXAMPLE),
        )

    def build_vision_prompt(self, url: str, scraped: Optional[ScrapedData] = None) -> str:
        """Prompt that accompanies the page screenshot."""
        hints = ''
        if scraped is not None:
            hints = SCRAPED_HINTS.format(
                title=scraped.title or 'Not found',
                description=scraped.description or 'Not found',
                logo_url=scraped.logo_url or 'Not found',
                og_image=scraped.og_image or 'Not found',
                colors=', '.join(scraped.colors) if scraped.colors else 'None',
                fonts=', '.join(scraped.font_families) if scraped.font_families else 'None',
            )

        return VISION_PROMPT.format(
            url=url,
            scraped_hints=hints,
            schema=VISION_SCHEMA,
            guide=VISUAL_ANALYSIS_GUIDE,
        )

    def parse(self, response: str) -> ParsedEventData:
        return super().parse(response)


# ============================================================================
# TEMPLATE GENERATION
# ============================================================================

# Few-shot examples, one per visual family
FEW_SHOT_EXAMPLES = """=== EXAMPLE 1: MODERN TECH (with gradient background + glow) ===
Input Event:
{
  "name": "TechConf 2024",
  "brandColors": { "primary": "#6C5CE7", "secondary": "#A29BFE" },
  "visualStyle": {
    "style": "modern",
    "gradient": { "type": "linear", "angle": 135, "colors": ["#6C5CE7", "#A29BFE"] },
    "shadow": { "type": "glow", "color": "#A29BFE", "blur": 30, "offsetX": 0, "offsetY": 0 }
  }
}

Output Template:
{
  "name": "Gradient Glow",
  "layout": "modern",
  "backgroundColor": "#6C5CE7",
  "elements": [
    { "id": "background-gradient", "type": "gradient-bg", "zIndex": 0, "properties": { "x": 0, "y": 0, "width": 100, "height": 100, "gradient": { "type": "linear", "angle": 135, "colors": ["#6C5CE7", "#A29BFE"] } } },
    { "id": "decorative-circle-1", "type": "decorative", "zIndex": 1, "properties": { "x": -10, "y": -10, "width": 40, "height": 40, "shapeType": "circle", "fill": "#FFFFFF", "opacity": 0.1 } },
    { "id": "decorative-circle-2", "type": "decorative", "zIndex": 1, "properties": { "x": 80, "y": 70, "width": 30, "height": 30, "shapeType": "circle", "fill": "#FFFFFF", "opacity": 0.08 } },
    { "id": "event-name", "type": "text", "zIndex": 10, "properties": { "x": 5, "y": 8, "width": 90, "height": 12, "content": "TechConf 2024", "fill": "#FFFFFF", "fontSize": 42, "fontFamily": "Inter", "fontWeight": "800", "shadow": { "type": "glow", "color": "#A29BFE", "blur": 20, "offsetX": 0, "offsetY": 0 } } },
    { "id": "event-date", "type": "text", "zIndex": 10, "properties": { "x": 5, "y": 22, "width": 90, "height": 6, "content": "March 15-17, 2024", "fill": "#FFFFFF", "fontSize": 20, "fontFamily": "Inter", "fontWeight": "500", "opacity": 0.9 } },
    { "id": "attending-badge", "type": "shape", "zIndex": 10, "properties": { "x": 5, "y": 75, "width": 42, "height": 12, "fill": "#FFFFFF", "borderRadius": 8, "content": "I'm Attending!", "fontSize": 18, "fontFamily": "Inter", "fontWeight": "700", "shadow": { "type": "soft", "color": "#000000", "blur": 15, "offsetX": 0, "offsetY": 5 } } },
    { "id": "user-photo", "type": "image", "zIndex": 10, "properties": { "x": 58, "y": 32, "width": 38, "height": 48, "borderRadius": 12, "shadow": { "type": "soft", "color": "#000000", "blur": 20, "offsetX": 0, "offsetY": 10 } } },
    { "id": "user-name", "type": "text", "zIndex": 10, "properties": { "x": 5, "y": 88, "width": 50, "height": 6, "content": "", "fill": "#FFFFFF", "fontSize": 16, "fontFamily": "Inter", "fontWeight": "600" } },
    { "id": "event-logo", "type": "logo", "zIndex": 10, "properties": { "x": 80, "y": 5, "width": 15, "height": 10 } }
  ]
}

=== EXAMPLE 2: MINIMAL ELEGANT (clean, subtle shadow) ===
Input Event:
{
  "name": "Design Summit",
  "brandColors": { "primary": "#2D3436", "secondary": "#E17055" },
  "visualStyle": {
    "style": "minimal",
    "shadow": { "type": "soft", "color": "#000000", "blur": 20, "offsetX": 0, "offsetY": 8 },
    "decorativeElements": [{ "type": "line", "position": "border", "color": "#E17055" }]
  }
}

Output Template:
{
  "name": "Clean Minimal",
  "layout": "minimal",
  "backgroundColor": "#FAFAFA",
  "elements": [
    { "id": "accent-line", "type": "decorative", "zIndex": 1, "properties": { "x": 0, "y": 0, "width": 100, "height": 1, "shapeType": "rectangle", "fill": "#E17055" } },
    { "id": "event-name", "type": "text", "zIndex": 10, "properties": { "x": 10, "y": 18, "width": 80, "height": 10, "content": "Design Summit", "fill": "#2D3436", "fontSize": 36, "fontFamily": "Playfair Display", "fontWeight": "500", "letterSpacing": 1 } },
    { "id": "event-date", "type": "text", "zIndex": 10, "properties": { "x": 10, "y": 30, "width": 80, "height": 5, "content": "June 20, 2024", "fill": "#636E72", "fontSize": 14, "fontFamily": "Inter", "fontWeight": "400" } },
    { "id": "divider", "type": "shape", "zIndex": 10, "properties": { "x": 10, "y": 38, "width": 15, "height": 0.3, "fill": "#E17055" } },
    { "id": "attending-badge", "type": "text", "zIndex": 10, "properties": { "x": 10, "y": 44, "width": 80, "height": 6, "content": "I'm Attending", "fill": "#2D3436", "fontSize": 16, "fontFamily": "Inter", "fontWeight": "500" } },
    { "id": "user-photo", "type": "image", "zIndex": 10, "properties": { "x": 10, "y": 54, "width": 28, "height": 35, "borderRadius": 4, "shadow": { "type": "soft", "color": "#000000", "blur": 15, "offsetX": 0, "offsetY": 6 } } },
    { "id": "user-name", "type": "text", "zIndex": 10, "properties": { "x": 44, "y": 65, "width": 46, "height": 6, "content": "", "fill": "#2D3436", "fontSize": 18, "fontFamily": "Playfair Display", "fontWeight": "500" } },
    { "id": "event-logo", "type": "logo", "zIndex": 10, "properties": { "x": 78, "y": 85, "width": 12, "height": 8 } }
  ]
}

=== EXAMPLE 3: BOLD PLAYFUL (strong colors, hard shadows, shapes) ===
Input Event:
{
  "name": "Startup Week",
  "brandColors": { "primary": "#00B894", "accent": "#FDCB6E" },
  "visualStyle": {
    "style": "bold",
    "shadow": { "type": "hard", "color": "#000000", "blur": 0, "offsetX": 4, "offsetY": 4 },
    "decorativeElements": [{ "type": "rectangle", "position": "background", "color": "#FDCB6E", "opacity": 0.3 }]
  }
}

Output Template:
{
  "name": "Bold Impact",
  "layout": "bold",
  "backgroundColor": "#00B894",
  "elements": [
    { "id": "decorative-block", "type": "decorative", "zIndex": 1, "properties": { "x": 60, "y": 0, "width": 40, "height": 100, "shapeType": "rectangle", "fill": "#FDCB6E", "opacity": 0.25 } },
    { "id": "decorative-dots", "type": "decorative", "zIndex": 1, "properties": { "x": 85, "y": 75, "width": 12, "height": 20, "shapeType": "dots", "fill": "#FFFFFF", "opacity": 0.3 } },
    { "id": "event-name", "type": "text", "zIndex": 10, "properties": { "x": 5, "y": 5, "width": 55, "height": 18, "content": "STARTUP WEEK", "fill": "#FFFFFF", "fontSize": 44, "fontFamily": "Montserrat", "fontWeight": "900", "shadow": { "type": "hard", "color": "#000000", "blur": 0, "offsetX": 3, "offsetY": 3 } } },
    { "id": "attending-badge", "type": "shape", "zIndex": 10, "properties": { "x": 5, "y": 26, "width": 48, "height": 10, "fill": "#FDCB6E", "content": "I'M ATTENDING!", "fontSize": 18, "fontFamily": "Montserrat", "fontWeight": "800", "shadow": { "type": "hard", "color": "#000000", "blur": 0, "offsetX": 3, "offsetY": 3 } } },
    { "id": "user-photo", "type": "image", "zIndex": 10, "properties": { "x": 5, "y": 42, "width": 45, "height": 48, "borderRadius": 0, "shadow": { "type": "hard", "color": "#000000", "blur": 0, "offsetX": 5, "offsetY": 5 } } },
    { "id": "user-name", "type": "text", "zIndex": 10, "properties": { "x": 55, "y": 50, "width": 40, "height": 8, "content": "", "fill": "#FFFFFF", "fontSize": 20, "fontFamily": "Montserrat", "fontWeight": "700" } },
    { "id": "event-logo", "type": "logo", "zIndex": 10, "properties": { "x": 55, "y": 65, "width": 20, "height": 14 } }
  ]
}"""

STYLE_GUIDANCE = """
=== VISUAL VIBE TO CAPTURE ===
The event website has this visual language. APPLY these styles to the templates:

Overall Style: {style}
Typography: {typography}

GRADIENT: {gradient}
→ If gradient detected, use "gradient-bg" element as background layer (zIndex: 0)

SHADOWS: {shadow}
→ Apply this shadow style to cards, photos, and badges

DECORATIVE ELEMENTS: {decorative}
→ Add similar decorative shapes to match the event's aesthetic

Design Elements: {design_elements}
"""

TEMPLATE_OUTPUT_SCHEMA = """{
  "templates": [
    {
      "name": "Template Name",
      "layout": "classic|modern|minimal|bold",
      "backgroundColor": "#HEXCODE",
      "elements": [
        {
          "id": "element-id",
          "type": "text|image|shape|logo|gradient-bg|decorative",
          "zIndex": 0,
          "properties": {
            "x": 0-100, "y": 0-100, "width": 0-100, "height": 0-100,
            "content": "text",
            "fill": "#hex",
            "fontSize": 24,
            "fontFamily": "Font Name",
            "fontWeight": "400-900",
            "opacity": 0-1,
            "borderRadius": 0-50,
            "gradient": { "type": "linear|radial", "angle": 0-360, "colors": ["#hex", "#hex"] },
            "shadow": { "type": "soft|hard|glow", "color": "#hex", "blur": 0-50, "offsetX": 0-20, "offsetY": 0-20 }
          }
        }
      ]
    }
  ]
}"""

TEMPLATE_GENERATION_PROMPT = """You are an expert poster designer. Create {count} UNIQUE "I'm attending" poster templates that CAPTURE THE VISUAL VIBE of this event.

{examples}

=== NOW GENERATE FOR THIS EVENT ===

Event Details:
{event_json}
{style_guidance}{color_guidance}

REQUIREMENTS:

1. CREATE {count} VISUALLY DISTINCT TEMPLATES
   Each template should have a different layout: {layouts}

2. APPLY THE VISUAL VIBE:
   - If gradient was detected → Add a "gradient-bg" element as background (zIndex: 0)
   - Apply the detected shadow style to user-photo, badges, and cards
   - Include decorative elements (circles, lines, shapes) matching the event's aesthetic
   - Use the detected typography style (font weight, letter spacing)

3. REQUIRED ELEMENTS (every template must have):
   - "event-name" (text): Event title
   - "event-date" (text): Date
   - "attending-badge" (text/shape): "I'm Attending!" message
   - "user-photo" (image): id MUST be "user-photo"
   - "user-name" (text): Placeholder for user name
   - "event-logo" (logo): id MUST be "event-logo"

4. ELEMENT TYPES:
   - "gradient-bg": Full-width gradient background (x:0, y:0, width:100, height:100)
   - "decorative": Shapes, lines, circles for visual interest
   - "text": Text content with optional shadow/gradient
   - "shape": Badges, buttons with borderRadius
   - "image": User photo placeholder
   - "logo": Event logo

5. LAYER ORDER (zIndex):
   - 0: Background gradients
   - 1-5: Decorative elements
   - 10+: Content (text, photos, logos)

6. Positions use PERCENTAGE (0-100)

RESPOND WITH ONLY VALID JSON:
{schema}"""


class TemplateGenerationTemplate(JsonPromptTemplate):
    """Asks for N poster templates that carry the event's visual language."""

    id = 'template-generation'
    name = 'Poster Template Generator'
    description = 'Generates poster templates based on event data'
    output_model = TemplateGenerationResult

    def build(self, event_data: ParsedEventData, count: int, layouts: Optional[List[str]] = None) -> str:
        layouts = layouts or DEFAULT_LAYOUTS
        return TEMPLATE_GENERATION_PROMPT.format(
            count=count,
            examples=FEW_SHOT_EXAMPLES,
            event_json=json.dumps(event_data.to_wire(), indent=2),
            style_guidance=self._style_guidance(event_data),
            color_guidance=self._color_guidance(event_data),
            layouts=', '.join(layouts[:count]),
            schema=TEMPLATE_OUTPUT_SCHEMA,
        )

    @staticmethod
    def _style_guidance(event_data: ParsedEventData) -> str:
        visual_style = event_data.visual_style
        if visual_style is None:
            return ''

        typography = visual_style.typography
        typography_info = f"{typography.heading_style} headings, {typography.weight} weight"
        if typography.letter_spacing:
            typography_info += f", {typography.letter_spacing} spacing"

        gradient_info = 'No gradient detected'
        if visual_style.gradient is not None:
            g = visual_style.gradient
            gradient_info = f"{g.type} gradient at {g.angle or 0:g}°, colors: {' → '.join(g.colors)}"

        shadow_info = 'No shadow style detected'
        if visual_style.shadow is not None:
            s = visual_style.shadow
            shadow_info = (
                f"{s.type} shadow (blur: {s.blur:g}, offset: {s.offset_x:g},{s.offset_y:g}, color: {s.color})"
            )

        decorative_info = 'No decorative elements'
        if visual_style.decorative_elements:
            decorative_info = '; '.join(
                f"{d.type} at {d.position} ({d.color}, opacity: {d.opacity:g})"
                for d in visual_style.decorative_elements
            )

        return STYLE_GUIDANCE.format(
            style=visual_style.style,
            typography=typography_info,
            gradient=gradient_info,
            shadow=shadow_info,
            decorative=decorative_info,
            design_elements=', '.join(visual_style.design_elements) or 'none specified',
        )

    @staticmethod
    def _color_guidance(event_data: ParsedEventData) -> str:
        colors = event_data.brand_colors
        if colors is None:
            return ''

        lines = [f"Primary: {colors.primary}"]
        if colors.secondary:
            lines.append(f"Secondary: {colors.secondary}")
        if colors.accent:
            lines.append(f"Accent: {colors.accent}")
        if colors.background:
            lines.append(f"Background: {colors.background}")
        return "\nBrand Colors (USE THESE!):\n- " + "\n- ".join(lines) + "\n"

    def parse(self, response: str) -> TemplateGenerationResult:
        data = self._decode(response)
        # Models sometimes answer with the bare array
        if isinstance(data, list):
            data = {'templates': data}
        return self._validate(data, response)


event_parsing_template = EventParsingTemplate()
template_generation_template = TemplateGenerationTemplate()
