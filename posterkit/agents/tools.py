"""Tools for the event extraction agent: browser capture and HTML heuristics."""
import asyncio
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional
from urllib.parse import unquote_plus, urlparse

from bs4 import BeautifulSoup
from playwright.async_api import Browser, Page, Playwright, async_playwright

from posterkit.app.config import Settings
from posterkit.app.logger import logger
from posterkit.app.models import (
    BrandColors,
    ScrapedData,
    ScrapedLink,
    normalize_hex,
    rgb_to_hex,
)


# ============================================================================
# BROWSER SESSION
# ============================================================================

VIEWPORT = {"width": 1280, "height": 800}
USER_AGENT = (
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)
LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-gpu',
]

# Removes cookie banners, consent dialogs, newsletter popups and fixed overlays.
# Sweeps until nothing more matches, so running it again removes nothing.
POPUP_CLEANUP_SCRIPT = """
() => {
    const selectors = [
        '[class*="cookie"]',
        '[id*="cookie"]',
        '[class*="consent"]',
        '[id*="consent"]',
        '[class*="gdpr"]',
        '[id*="gdpr"]',
        '[class*="popup"]',
        '[class*="modal"]',
        '[class*="overlay"]',
        '[class*="newsletter"]',
        '[class*="subscribe"]',
        '#onetrust-consent-sdk',
        '#CybotCookiebotDialog',
        '.cc-banner',
        '.cookie-banner',
        '.cookie-notice',
        '[style*="position: fixed"]',
    ];
    const isProtected = (el) => el === document.documentElement || el === document.body;
    const looksLikePopup = (el) => {
        const rect = el.getBoundingClientRect();
        return rect.height < 300 || rect.width === window.innerWidth || el.style.position === 'fixed';
    };
    const looksLikeOverlay = (el) => {
        const style = window.getComputedStyle(el);
        if (style.position !== 'fixed') return false;
        const classes = el.classList.toString();
        return style.zIndex === '9999'
            || parseInt(style.zIndex, 10) > 1000
            || classes.includes('modal')
            || classes.includes('overlay');
    };

    let total = 0;
    for (let sweep = 0; sweep < 50; sweep++) {
        let removed = 0;
        for (const selector of selectors) {
            document.querySelectorAll(selector).forEach((el) => {
                if (el.isConnected && !isProtected(el) && looksLikePopup(el)) {
                    el.remove();
                    removed++;
                }
            });
        }
        document.querySelectorAll('body *').forEach((el) => {
            if (el.isConnected && looksLikeOverlay(el)) {
                el.remove();
                removed++;
            }
        });
        total += removed;
        if (removed === 0) break;
    }
    return total;
}
"""


@dataclass(frozen=True)
class CaptureResult:
    """Viewport screenshot and rendered markup of a page."""
    screenshot: bytes
    html: str
    url: str


class BrowserSession:
    """One shared headless Chromium, launched lazily, with a fresh page per capture."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        launcher: Optional[Callable[[], Awaitable[Any]]] = None,
    ):
        self.settings = settings or Settings()
        self._launcher = launcher or self._launch_chromium
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launching: Optional[asyncio.Task] = None

    async def _launch_chromium(self) -> Browser:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        logger.info("Launching headless Chromium")
        return await self._playwright.chromium.launch(
            headless=True,
            args=LAUNCH_ARGS,
            executable_path=self.settings.browser_executable_path or None,
        )

    async def _launch(self):
        try:
            self._browser = await self._launcher()
            return self._browser
        finally:
            self._launching = None

    async def acquire(self):
        """Return the connected browser, launching it at most once for concurrent callers."""
        if self._browser is not None and self._browser.is_connected():
            return self._browser

        if self._launching is None:
            self._launching = asyncio.ensure_future(self._launch())

        # A cancelled waiter must not cancel the launch the other waiters share
        return await asyncio.shield(self._launching)

    async def capture(self, url: str) -> CaptureResult:
        """Render ``url`` and return its viewport screenshot and HTML."""
        logger.info(f"Capturing screenshot for: {url}")
        browser = await self.acquire()
        page = await browser.new_page(viewport=VIEWPORT, user_agent=USER_AGENT)

        try:
            await page.goto(url, wait_until='networkidle', timeout=self.settings.navigation_timeout_ms)

            removed = await self.remove_popups(page)
            if removed:
                logger.debug(f"Removed {removed} popup elements from {url}")

            # Let animations settle
            await page.wait_for_timeout(self.settings.settle_delay_ms)

            screenshot = await page.screenshot(type='png', full_page=False)
            html = await page.content()
            return CaptureResult(screenshot=screenshot, html=html, url=url)
        finally:
            await page.close()

    async def remove_popups(self, page: Page) -> int:
        """Best-effort removal of banners and overlays; returns how many elements went."""
        try:
            removed = await page.evaluate(POPUP_CLEANUP_SCRIPT)
            return int(removed or 0)
        except Exception as e:
            logger.debug(f"Could not remove some popups: {e}")
            return 0

    async def teardown(self) -> None:
        """Close the browser and stop Playwright. Safe to call more than once."""
        launching = self._launching
        if launching is not None:
            # Let an in-flight launch land so its browser is closed below
            await asyncio.wait({launching})
            if not launching.cancelled() and launching.exception() is not None:
                logger.debug(f"Browser launch failed before teardown: {launching.exception()}")

        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None

        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.debug(f"Browser close failed: {e}")
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.debug(f"Playwright stop failed: {e}")


# ============================================================================
# HTML HEURISTICS
# ============================================================================

# Black, white and greys that say nothing about a brand
COMMON_COLORS = {
    '#000000', '#FFFFFF', '#333333', '#666666', '#999999',
    '#CCCCCC', '#F5F5F5', '#EEEEEE', '#DDDDDD',
}
GENERIC_FONTS = {'sans-serif', 'serif', 'monospace', 'cursive', 'fantasy'}
LINK_KEYWORDS = [
    'register', 'ticket', 'schedule', 'agenda', 'speaker',
    'venue', 'location', 'date', 'when', 'where',
]
LOGO_SELECTORS = [
    'link[rel="icon"]',
    'link[rel="shortcut icon"]',
    'link[rel="apple-touch-icon"]',
    '[class*="logo"] img',
    '[id*="logo"] img',
    'header img',
    'nav img',
    '.navbar img',
]

MAX_COLORS = 10
MAX_FONTS = 5
MAX_LINKS = 10


class ColorPaletteExtractor:
    """Extract candidate brand colors from CSS in the HTML."""

    hex_pattern = re.compile(r'#([0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})\b')
    rgb_pattern = re.compile(r'rgb\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)')

    def extract_from_css(self, soup: BeautifulSoup) -> List[str]:
        """Colors from <style> blocks, inline styles and theme-color, in that order."""
        colors: List[str] = []

        for style_tag in soup.find_all('style'):
            self._collect(style_tag.get_text(), colors)

        for element in soup.find_all(style=True):
            self._collect(element.get('style', ''), colors)

        theme = soup.find('meta', attrs={'name': 'theme-color'})
        if theme is not None:
            self._add(normalize_hex(theme.get('content', '')), colors)

        return colors[:MAX_COLORS]

    def _collect(self, css: str, colors: List[str]) -> None:
        for match in self.hex_pattern.finditer(css):
            self._add(normalize_hex(match.group(0)), colors)

        for match in self.rgb_pattern.finditer(css):
            r, g, b = (int(match.group(i)) for i in (1, 2, 3))
            if max(r, g, b) <= 255:
                self._add(rgb_to_hex(r, g, b), colors)

    @staticmethod
    def _add(hex_color: Optional[str], colors: List[str]) -> None:
        if hex_color and hex_color not in COMMON_COLORS and hex_color not in colors:
            colors.append(hex_color)


class TypographyExtractor:
    """Extract font families from Google Fonts links and CSS declarations."""

    family_param = re.compile(r'family=([^&]+)')
    font_pattern = re.compile(r'font-family\s*:\s*([^;}]+)', re.IGNORECASE)

    def extract_fonts(self, soup: BeautifulSoup) -> List[str]:
        fonts: List[str] = []

        for link in soup.select('link[href*="fonts.googleapis.com"]'):
            href = link.get('href', '')
            for match in self.family_param.finditer(href):
                # css2 API repeats family=, the legacy API joins them with |
                for family in unquote_plus(match.group(1)).split('|'):
                    self._add(family.split(':')[0], fonts)

        for style_tag in soup.find_all('style'):
            self._collect(style_tag.get_text(), fonts)

        for element in soup.find_all(style=True):
            self._collect(element.get('style', ''), fonts)

        return fonts[:MAX_FONTS]

    def _collect(self, css: str, fonts: List[str]) -> None:
        for match in self.font_pattern.finditer(css):
            # First family of the stack, e.g. "'Inter', Arial, sans-serif" -> Inter
            self._add(match.group(1).split(',')[0], fonts)

    @staticmethod
    def _add(font: str, fonts: List[str]) -> None:
        font = font.strip().strip('\'"').strip()
        if not font or font.lower() in GENERIC_FONTS or font.lower().startswith('var('):
            return
        if font not in fonts:
            fonts.append(font)


class HtmlScraper:
    """Cheap, deterministic facts from page markup. Never raises."""

    def __init__(self):
        self.color_extractor = ColorPaletteExtractor()
        self.typography_extractor = TypographyExtractor()

    def scrape(self, html: str, base_url: str) -> ScrapedData:
        try:
            soup = BeautifulSoup(html or '', 'html.parser')
        except Exception as e:
            logger.debug(f"HTML parsing failed for {base_url}: {e}")
            return ScrapedData()

        return ScrapedData(
            title=self._guarded(self._extract_title, soup),
            description=self._guarded(self._extract_description, soup),
            logo_url=self._guarded(self._extract_logo, soup, base_url),
            og_image=self._guarded(self._extract_og_image, soup, base_url),
            colors=self._guarded(self.color_extractor.extract_from_css, soup) or [],
            font_families=self._guarded(self.typography_extractor.extract_fonts, soup) or [],
            links=self._guarded(self._extract_links, soup) or [],
        )

    @staticmethod
    def _guarded(extractor, *args):
        try:
            return extractor(*args)
        except Exception as e:
            logger.debug(f"{extractor.__name__} failed: {e}")
            return None

    @staticmethod
    def _meta_content(soup: BeautifulSoup, attr: str, value: str) -> Optional[str]:
        tag = soup.find('meta', attrs={attr: value})
        if tag is None:
            return None
        content = (tag.get('content') or '').strip()
        return content or None

    def _extract_title(self, soup: BeautifulSoup) -> Optional[str]:
        title = (
            self._meta_content(soup, 'property', 'og:title')
            or self._meta_content(soup, 'name', 'twitter:title')
        )
        if title:
            return title

        title_tag = soup.find('title')
        if title_tag is not None and title_tag.get_text().strip():
            return title_tag.get_text().strip()

        h1 = soup.find('h1')
        if h1 is not None and h1.get_text().strip():
            return h1.get_text().strip()
        return None

    def _extract_description(self, soup: BeautifulSoup) -> Optional[str]:
        return (
            self._meta_content(soup, 'property', 'og:description')
            or self._meta_content(soup, 'name', 'description')
            or self._meta_content(soup, 'name', 'twitter:description')
        )

    def _extract_logo(self, soup: BeautifulSoup, base_url: str) -> Optional[str]:
        for selector in LOGO_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            src = (element.get('src') or element.get('href') or '').strip()
            if src:
                return self.resolve_url(src, base_url)
        return None

    def _extract_og_image(self, soup: BeautifulSoup, base_url: str) -> Optional[str]:
        image = (
            self._meta_content(soup, 'property', 'og:image')
            or self._meta_content(soup, 'name', 'twitter:image')
        )
        return self.resolve_url(image, base_url) if image else None

    def _extract_links(self, soup: BeautifulSoup) -> List[ScrapedLink]:
        links = []
        for anchor in soup.find_all('a'):
            href = (anchor.get('href') or '').strip()
            text = ' '.join(anchor.get_text().split())
            if href and any(keyword in text.lower() for keyword in LINK_KEYWORDS):
                links.append(ScrapedLink(text=text, href=href))
                if len(links) >= MAX_LINKS:
                    break
        return links

    @staticmethod
    def resolve_url(url: str, base_url: str) -> str:
        """Resolve a page-relative or protocol-relative URL against the page origin."""
        if url.startswith('http://') or url.startswith('https://'):
            return url
        if url.startswith('//'):
            return 'https:' + url

        parsed = urlparse(base_url)
        origin = f"{parsed.scheme}://{parsed.netloc}"
        if url.startswith('/'):
            return f"{origin}{url}"
        return f"{origin}/{url}"

    @staticmethod
    def to_brand_colors(colors: List[str]) -> Optional[BrandColors]:
        """First three scraped colors as primary, secondary and accent."""
        if not colors:
            return None
        return BrandColors(
            primary=colors[0],
            secondary=colors[1] if len(colors) > 1 else None,
            accent=colors[2] if len(colors) > 2 else None,
        )
