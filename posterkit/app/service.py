"""Facade over the extraction and generation pipelines."""
from typing import List, Optional

from posterkit.agents.ai_gateway import AIGateway
from posterkit.agents.event_extractor import EventExtractionAgent
from posterkit.agents.tools import BrowserSession, HtmlScraper
from posterkit.app.config import Settings
from posterkit.app.image_generator import BackgroundStyle, ImageGenerator
from posterkit.app.logger import logger
from posterkit.app.models import GeneratedTemplate, ParsedEventData


class PosterService:
    """Owns the shared browser and the AI gateway; exposes the three inbound operations."""

    def __init__(self, gateway: Optional[AIGateway], browser: Optional[BrowserSession] = None):
        self.gateway = gateway
        self.browser = browser or BrowserSession()
        self.event_extractor = EventExtractionAgent(gateway, browser=self.browser, scraper=HtmlScraper())
        self.image_generator = ImageGenerator(gateway)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PosterService":
        gateway = AIGateway.from_settings(settings)
        if gateway is None:
            logger.warning("Running without AI credentials: mock data mode")
        return cls(gateway, BrowserSession(settings))

    @property
    def ai_enabled(self) -> bool:
        return self.gateway is not None

    async def parse_event_from_url(self, url: str) -> ParsedEventData:
        return await self.event_extractor.parse_event_from_url(url)

    async def generate_templates(self, event_data: ParsedEventData, count: int = 3) -> List[GeneratedTemplate]:
        return await self.image_generator.generate_templates(event_data, count)

    async def generate_background_image(self, event_data: ParsedEventData, style: BackgroundStyle = "modern") -> str:
        return await self.image_generator.generate_background_image(event_data, style)

    async def teardown(self) -> None:
        await self.browser.teardown()
