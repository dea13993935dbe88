"""
Tests for the shared browser session.

Most tests drive BrowserSession through a fake launcher. The popup cleanup
test at the bottom launches real Chromium and is skipped when that is not
possible (no browser binaries installed).
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from posterkit.agents.tools import USER_AGENT, VIEWPORT, BrowserSession
from posterkit.app.config import Settings


def fake_browser(page=None, connected=True):
    browser = MagicMock()
    browser.is_connected.return_value = connected
    browser.new_page = AsyncMock(return_value=page or fake_page())
    browser.close = AsyncMock()
    return browser


def fake_page():
    page = MagicMock()
    page.goto = AsyncMock()
    page.evaluate = AsyncMock(return_value=2)
    page.wait_for_timeout = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"png")
    page.content = AsyncMock(return_value="<html></html>")
    page.close = AsyncMock()
    return page


class CountingLauncher:
    """Launcher that yields to the loop before returning, to expose races."""

    def __init__(self, browser=None, error=None):
        self.browser = browser or fake_browser()
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0.01)
        if self.error is not None:
            raise self.error
        return self.browser


# ===========================================================================
# ACQUIRE
# ===========================================================================

class TestAcquire:
    """Tests for BrowserSession.acquire."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_launch(self):
        launcher = CountingLauncher()
        session = BrowserSession(launcher=launcher)

        browsers = await asyncio.gather(*(session.acquire() for _ in range(5)))

        assert launcher.calls == 1
        assert all(b is launcher.browser for b in browsers)

    @pytest.mark.asyncio
    async def test_connected_browser_reused(self):
        launcher = CountingLauncher()
        session = BrowserSession(launcher=launcher)

        await session.acquire()
        await session.acquire()

        assert launcher.calls == 1

    @pytest.mark.asyncio
    async def test_disconnected_browser_relaunched(self):
        launcher = CountingLauncher()
        session = BrowserSession(launcher=launcher)

        await session.acquire()
        launcher.browser.is_connected.return_value = False
        await session.acquire()

        assert launcher.calls == 2

    @pytest.mark.asyncio
    async def test_failed_launch_propagates_and_is_retried(self):
        launcher = CountingLauncher(error=RuntimeError("Executable doesn't exist"))
        session = BrowserSession(launcher=launcher)

        with pytest.raises(RuntimeError):
            await session.acquire()

        launcher.error = None
        assert await session.acquire() is launcher.browser
        assert launcher.calls == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_launch(self):
        launcher = CountingLauncher()
        session = BrowserSession(launcher=launcher)

        first = asyncio.ensure_future(session.acquire())
        second = asyncio.ensure_future(session.acquire())
        await asyncio.sleep(0)
        first.cancel()

        assert await second is launcher.browser
        assert launcher.calls == 1


# ===========================================================================
# CAPTURE
# ===========================================================================

class TestCapture:
    """Tests for BrowserSession.capture."""

    @pytest.mark.asyncio
    async def test_capture(self):
        page = fake_page()
        settings = Settings(navigation_timeout_ms=5000, settle_delay_ms=250)
        session = BrowserSession(settings, launcher=CountingLauncher(fake_browser(page)))

        result = await session.capture("https://devconf.io")

        assert result.screenshot == b"png"
        assert result.html == "<html></html>"
        assert result.url == "https://devconf.io"
        session._browser.new_page.assert_awaited_once_with(viewport=VIEWPORT, user_agent=USER_AGENT)
        page.goto.assert_awaited_once_with("https://devconf.io", wait_until="networkidle", timeout=5000)
        page.wait_for_timeout.assert_awaited_once_with(250)
        page.screenshot.assert_awaited_once_with(type="png", full_page=False)
        page.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_page_closed_when_navigation_fails(self):
        page = fake_page()
        page.goto.side_effect = TimeoutError("Timeout 30000ms exceeded")
        session = BrowserSession(launcher=CountingLauncher(fake_browser(page)))

        with pytest.raises(TimeoutError):
            await session.capture("https://slow.example")

        page.close.assert_awaited_once()
        page.screenshot.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_popup_cleanup_failure_is_ignored(self):
        page = fake_page()
        page.evaluate.side_effect = Exception("Execution context was destroyed")
        session = BrowserSession(launcher=CountingLauncher(fake_browser(page)))

        assert await session.remove_popups(page) == 0
        assert (await session.capture("https://devconf.io")).screenshot == b"png"


# ===========================================================================
# TEARDOWN
# ===========================================================================

class TestTeardown:
    """Tests for BrowserSession.teardown."""

    @pytest.mark.asyncio
    async def test_teardown_is_idempotent(self):
        launcher = CountingLauncher()
        session = BrowserSession(launcher=launcher)
        await session.acquire()

        await session.teardown()
        await session.teardown()

        launcher.browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_teardown_before_launch(self):
        await BrowserSession(launcher=CountingLauncher()).teardown()

    @pytest.mark.asyncio
    async def test_teardown_during_launch_closes_new_browser(self):
        launcher = CountingLauncher()
        session = BrowserSession(launcher=launcher)
        pending = asyncio.ensure_future(session.acquire())
        await asyncio.sleep(0)

        await session.teardown()

        launcher.browser.close.assert_awaited_once()
        assert session._browser is None
        assert await pending is launcher.browser

    @pytest.mark.asyncio
    async def test_teardown_during_failed_launch(self):
        launcher = CountingLauncher(error=RuntimeError("Executable doesn't exist"))
        session = BrowserSession(launcher=launcher)
        pending = asyncio.ensure_future(session.acquire())
        await asyncio.sleep(0)

        await session.teardown()

        with pytest.raises(RuntimeError):
            await pending
        assert session._browser is None
        launcher.browser.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_relaunch_after_teardown(self):
        launcher = CountingLauncher()
        session = BrowserSession(launcher=launcher)
        await session.acquire()
        await session.teardown()

        await session.acquire()

        assert launcher.calls == 2


# ===========================================================================
# REAL CHROMIUM
# ===========================================================================

POPUP_PAGE = """
<html>
<body class="cookie-consent-active">
  <div class="cookie-banner" style="height: 80px">We use cookies</div>
  <div id="newsletter-modal" class="modal"
       style="position: fixed; top: 0; left: 0; width: 100%; height: 100%; z-index: 5000">
    <div class="overlay">Subscribe!</div>
  </div>
  <main style="height: 2000px"><h1>DevConf</h1></main>
</body>
</html>
"""


class TestPopupCleanupInChromium:
    """Runs the cleanup script in a real page."""

    @pytest.mark.asyncio
    async def test_cleanup_removes_overlays_and_is_idempotent(self):
        session = BrowserSession()
        try:
            browser = await session.acquire()
        except Exception as e:
            await session.teardown()
            pytest.skip(f"Chromium not available: {e}")

        page = await browser.new_page()
        try:
            await page.set_content(POPUP_PAGE)

            assert await session.remove_popups(page) >= 2
            assert await session.remove_popups(page) == 0
            assert await page.query_selector("main h1") is not None
            assert await page.query_selector("body") is not None
            assert await page.query_selector(".cookie-banner") is None
            assert await page.query_selector("#newsletter-modal") is None
        finally:
            await page.close()
            await session.teardown()
