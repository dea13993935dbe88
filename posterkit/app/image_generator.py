"""Poster template and background image generation."""
from typing import List, Literal, Optional

from posterkit.agents.ai_gateway import AIGateway
from posterkit.agents.event_extractor import PipelineState, log_transition
from posterkit.agents.mock_data import DEFAULT_PRIMARY, DEFAULT_SECONDARY, MockDataGenerator
from posterkit.agents.prompt_template import template_generation_template
from posterkit.app.errors import ErrorKind, PipelineError
from posterkit.app.logger import logger
from posterkit.app.models import GeneratedTemplate, ParsedEventData

BackgroundStyle = Literal["modern", "minimal", "bold"]

PLACEHOLDER_URL = "https://placehold.co/1080x1350/{primary}/{secondary}?text="

# First match wins
THEMES = [
    (['ai', 'artificial intelligence', 'machine learning'],
     'AI and machine learning technology, neural networks, data flows'),
    (['web', 'frontend', 'javascript'],
     'web development, digital interfaces, code aesthetics'),
    (['startup', 'entrepreneur'],
     'innovation, growth, entrepreneurship, dynamic energy'),
    (['design', 'ux', 'ui'],
     'design thinking, creative flow, user experience'),
    (['devops', 'cloud', 'infrastructure'],
     'cloud computing, infrastructure, connected systems'),
    (['data', 'analytics'],
     'data visualization, analytics, information flow'),
    (['security', 'cyber'],
     'cybersecurity, digital protection, encrypted networks'),
    (['mobile', 'app'],
     'mobile technology, app interfaces, connected devices'),
    (['game', 'gaming'],
     'gaming, interactive entertainment, digital worlds'),
]
DEFAULT_THEME = 'professional technology conference'

STYLE_DESCRIPTIONS = {
    'modern': 'modern and sleek with smooth gradients, soft glows, and flowing organic shapes',
    'minimal': 'minimal and clean with subtle textures, fine lines, and elegant simplicity',
    'bold': 'bold and vibrant with high contrast, strong geometric shapes, and dynamic energy',
}

BACKGROUND_PROMPT = """Create a full-bleed abstract background for "{event_name}" event poster.

EVENT THEME: {theme}

COLOR PALETTE (MUST USE):
- PRIMARY: {primary} (dominant, 60-70%)
- SECONDARY: {secondary} (accent, 20-30%)

VISUAL STYLE: {style}

REQUIREMENTS:
- Abstract design inspired by the event theme - evoke the spirit of {theme}
- FULL BLEED: extends to ALL edges, NO borders, NO frames, NO margins
- NO text, NO logos, NO people, NO faces
- Vertical/portrait orientation
- Slightly lighter/softer area in center-bottom for text overlay
- Professional, high-end conference aesthetic
- Seamless edge-to-edge design"""


class ImageGenerator:
    """Generate poster templates and background images for an event."""

    def __init__(self, gateway: Optional[AIGateway]):
        self.gateway = gateway
        if gateway is None:
            logger.warning("AI API key not found, templates and backgrounds will be mocked")

    async def generate_templates(self, event_data: ParsedEventData, count: int = 3) -> List[GeneratedTemplate]:
        logger.info(f"Generating {count} templates for event: {event_data.name}")

        if self.gateway is None:
            log_transition(PipelineState.NO_CREDENTIAL, event_data.name)
            return MockDataGenerator.generate_templates(event_data, count)

        if count <= 0:
            return []

        try:
            prompt = template_generation_template.build(event_data, count)
            response = await self.gateway.complete_text(prompt, json_mode=True)
            result = template_generation_template.parse(response)
        except PipelineError as e:
            log_transition(PipelineState.FAILED, event_data.name)
            logger.error(f"Failed to generate templates for event: {event_data.name}: {e.detail}", exc_info=True)
            if e.kind.is_terminal:
                raise
            raise PipelineError(ErrorKind.TEMPLATE_GENERATION_FAILED, e.detail) from e
        except Exception as e:
            log_transition(PipelineState.FAILED, event_data.name)
            logger.error(f"Failed to generate templates for event: {event_data.name}: {e}", exc_info=True)
            raise PipelineError(ErrorKind.TEMPLATE_GENERATION_FAILED, str(e)) from e

        log_transition(PipelineState.DONE, event_data.name)
        return result.templates[:count]

    async def generate_background_image(
        self,
        event_data: ParsedEventData,
        style: BackgroundStyle = "modern",
    ) -> str:
        """Return an image URL (data URL when generated). Never raises for provider errors."""
        logger.info(f"Generating {style} background image for event: {event_data.name}")

        if self.gateway is None:
            log_transition(PipelineState.NO_CREDENTIAL, event_data.name)
            return self.placeholder_url(event_data)

        log_transition(PipelineState.ATTEMPT_IMAGE_GEN, event_data.name)
        prompt = self.build_background_prompt(event_data, style)
        logger.debug(f"Full prompt: {prompt}")

        try:
            image_url = await self.gateway.generate_image(prompt)
        except Exception as e:
            log_transition(PipelineState.FALLBACK_PLACEHOLDER, event_data.name)
            logger.error(f"Failed to generate background for event: {event_data.name}: {e}", exc_info=True)
            return self.placeholder_url(event_data)

        log_transition(PipelineState.DONE, event_data.name)
        return image_url

    @staticmethod
    def placeholder_url(event_data: ParsedEventData) -> str:
        colors = event_data.brand_colors
        primary = (colors.primary if colors else None) or DEFAULT_PRIMARY
        secondary = (colors.secondary if colors else None) or DEFAULT_SECONDARY
        return PLACEHOLDER_URL.format(primary=primary.lstrip('#'), secondary=secondary.lstrip('#'))

    def build_background_prompt(self, event_data: ParsedEventData, style: BackgroundStyle) -> str:
        colors = event_data.brand_colors
        primary = colors.primary if colors else DEFAULT_PRIMARY
        secondary = (colors.secondary if colors else None) or primary
        context = f"{event_data.name} {event_data.description or ''}".lower()

        return BACKGROUND_PROMPT.format(
            event_name=event_data.name,
            theme=self.detect_theme(context),
            primary=primary,
            secondary=secondary,
            style=STYLE_DESCRIPTIONS[style],
        )

    @staticmethod
    def detect_theme(context: str) -> str:
        """Map event text to a visual theme by substring keyword match."""
        context = context.lower()
        for keywords, theme in THEMES:
            if any(keyword in context for keyword in keywords):
                return theme
        return DEFAULT_THEME
