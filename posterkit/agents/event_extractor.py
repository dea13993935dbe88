"""Event extraction agent: URL in, ParsedEventData out, degrading gracefully."""
import base64
from enum import Enum
from typing import Optional

from posterkit.agents.ai_gateway import AIGateway
from posterkit.agents.merge import merge_event_data
from posterkit.agents.mock_data import MockDataGenerator
from posterkit.agents.prompt_template import event_parsing_template
from posterkit.agents.tools import BrowserSession, HtmlScraper
from posterkit.app.errors import ErrorKind, PipelineError
from posterkit.app.logger import logger
from posterkit.app.models import ParsedEventData


class PipelineState(str, Enum):
    """Stages of the extraction and generation pipelines."""
    NO_CREDENTIAL = "no_credential"
    ATTEMPT_VISION = "attempt_vision"
    FALLBACK_TEXT_ONLY = "fallback_text_only"
    DONE = "done"
    FAILED = "failed"
    ATTEMPT_IMAGE_GEN = "attempt_image_gen"
    FALLBACK_PLACEHOLDER = "fallback_placeholder"


def log_transition(state: PipelineState, subject: str) -> None:
    logger.info(f"[{state.value}] {subject}")


class EventExtractionAgent:
    """
    Extract event details from a URL.

    Strategy, in order:
    1. No AI credential: deterministic mock data
    2. Screenshot + HTML hints, analysed by the vision model
    3. Text-only prompt from the URL alone

    Operator-actionable failures (bad credential, rate limit, provider down)
    propagate at any stage. Anything else degrades to the next strategy.
    """

    def __init__(
        self,
        gateway: Optional[AIGateway],
        browser: Optional[BrowserSession] = None,
        scraper: Optional[HtmlScraper] = None,
    ):
        self.gateway = gateway
        self.browser = browser or BrowserSession()
        self.scraper = scraper or HtmlScraper()

    async def parse_event_from_url(self, url: str) -> ParsedEventData:
        logger.info(f"Parsing event from URL: {url}")

        if self.gateway is None:
            log_transition(PipelineState.NO_CREDENTIAL, url)
            logger.warning("AI API key not configured, returning mock data")
            result = MockDataGenerator.generate_event_data(url)
            log_transition(PipelineState.DONE, url)
            return result

        try:
            log_transition(PipelineState.ATTEMPT_VISION, url)
            result = await self._parse_with_vision(url)
        except PipelineError as e:
            if e.kind.is_terminal:
                log_transition(PipelineState.FAILED, url)
                logger.error(f"Failed to parse event from URL: {url}: {e.detail}", exc_info=True)
                raise
            logger.warning(f"Vision parsing failed ({e.kind.value}), falling back to text-only: {e.detail}")
            result = await self._parse_text_only(url)
        except Exception as e:
            logger.warning(f"Vision parsing failed, falling back to text-only: {e}")
            result = await self._parse_text_only(url)

        log_transition(PipelineState.DONE, url)
        return result

    async def _parse_with_vision(self, url: str) -> ParsedEventData:
        # The page is closed by the time capture() returns
        capture = await self.browser.capture(url)
        scraped = self.scraper.scrape(capture.html, url)
        logger.info(
            f'Scraped: title="{scraped.title or "unknown"}", '
            f"colors={len(scraped.colors)}, fonts={len(scraped.font_families)}"
        )

        prompt = event_parsing_template.build_vision_prompt(url, scraped)
        image_b64 = base64.b64encode(capture.screenshot).decode('ascii')
        response = await self.gateway.complete_vision(prompt, image_b64)

        parsed = event_parsing_template.parse(response)
        return merge_event_data(parsed, scraped)

    async def _parse_text_only(self, url: str) -> ParsedEventData:
        log_transition(PipelineState.FALLBACK_TEXT_ONLY, url)
        try:
            prompt = event_parsing_template.build(url)
            response = await self.gateway.complete_text(prompt, json_mode=True)
            return event_parsing_template.parse(response)
        except PipelineError as e:
            log_transition(PipelineState.FAILED, url)
            logger.error(f"Text-only parsing also failed: {e.detail}", exc_info=True)
            if e.kind.is_terminal:
                raise
            raise PipelineError(ErrorKind.EXTRACTION_FAILED, f"Could not parse {url}: {e.detail}") from e
        except Exception as e:
            log_transition(PipelineState.FAILED, url)
            logger.error(f"Text-only parsing also failed: {e}", exc_info=True)
            raise PipelineError(ErrorKind.EXTRACTION_FAILED, f"Could not parse {url}: {e}") from e
