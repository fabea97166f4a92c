"""
Browser automation for the acquirer.

Uses Playwright to read page text and run live searches, plus a
fixed-capacity pool that bounds how many browsers run at once.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Callable, Optional
from urllib.parse import quote_plus

from playwright.async_api import async_playwright, Browser, BrowserContext, Route

from shared.logging import get_logger

log = get_logger("acquirer", "browser")

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
]

# Requests aborted while reading page text
BLOCKED_RESOURCE_TYPES = {"image", "stylesheet", "font", "media"}

EXTRACT_TEXT_JS = """
    () => {
        const elements = document.querySelectorAll('script, style, noscript, nav, footer, aside');
        elements.forEach(el => el.remove());

        const main = document.querySelector('article, main, [role="main"]') || document.body;
        return main ? main.innerText : '';
    }
"""

EXTRACT_SEARCH_LINKS_JS = """
    () => {
        const anchors = Array.from(document.querySelectorAll(
            'div.g h3.r > a, div.g div.yuRUbf > a, div#search div.g a[href^="http"], div#search a[href^="http"]:has(h3)'
        ));
        return anchors.map(a => a.getAttribute('href')).filter(href => href);
    }
"""

HIDE_WEBDRIVER_JS = "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"


class FetchBrowser:
    """
    A headless Chromium instance with one browsing context.

    Every fetch opens its own page so concurrent fetches on different
    browsers never share navigation state.
    """

    def __init__(self, headless: bool = True, user_agent: str = USER_AGENT):
        """
        Initialize browser.

        Args:
            headless: Run browser in headless mode (no visible window)
            user_agent: User-Agent presented to sites
        """
        self.headless = headless
        self.user_agent = user_agent
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self):
        """Start browser and create the browsing context."""
        if self._connected:
            return

        self.playwright = await async_playwright().start()
        try:
            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                args=LAUNCH_ARGS,
            )
            self.context = await self.browser.new_context(
                user_agent=self.user_agent,
                viewport={"width": 1920, "height": 1080},
                locale="en-US",
            )
            await self.context.add_init_script(HIDE_WEBDRIVER_JS)
        except Exception:
            await self.disconnect()
            raise

        self._connected = True
        log.debug("browser.connected", headless=self.headless)

    async def disconnect(self):
        """Close browser."""
        try:
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
        finally:
            if self.playwright:
                await self.playwright.stop()
            self.context = None
            self.browser = None
            self.playwright = None
            self._connected = False
        log.debug("browser.disconnected")

    @staticmethod
    async def _block_heavy_resources(route: Route):
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    async def fetch_text(self, url: str, timeout_seconds: float = 15) -> str:
        """
        Load a page and return its visible text.

        Args:
            url: URL to fetch
            timeout_seconds: Navigation timeout

        Returns:
            Visible text of the main content region (or body)

        Raises:
            Playwright errors on navigation failure or timeout
        """
        if not self._connected:
            await self.connect()

        page = await self.context.new_page()
        try:
            await page.route("**/*", self._block_heavy_resources)
            response = await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=timeout_seconds * 1000,
            )
            if response is not None and response.status >= 400:
                log.warning("browser.fetch_status", url=url[:60], status=response.status)
                return ""
            return await page.evaluate(EXTRACT_TEXT_JS) or ""
        finally:
            await page.close()

    async def search_links(self, query: str, timeout_seconds: float = 20) -> list[str]:
        """
        Perform a Google search and return result hrefs in page order.

        Args:
            query: Search query
            timeout_seconds: Navigation timeout

        Returns:
            Raw hrefs from result containers (not yet filtered)
        """
        if not self._connected:
            await self.connect()

        page = await self.context.new_page()
        try:
            search_url = f"https://www.google.com/search?q={quote_plus(query)}&hl=en"
            log.debug("browser.google_search", query=query[:50])
            await page.goto(search_url, wait_until="domcontentloaded", timeout=timeout_seconds * 1000)
            try:
                await page.wait_for_selector("div#search", timeout=5000)
            except Exception:
                log.debug("browser.google_search.no_results_container", query=query[:50])
            return await page.evaluate(EXTRACT_SEARCH_LINKS_JS) or []
        finally:
            await page.close()


class BrowserPool:
    """
    Fixed-capacity pool of browser instances.

    Browsers are launched lazily up to `size`. acquire() hands out an idle
    browser, launches a new one while under capacity, and otherwise waits
    for a release. shutdown() closes every browser the pool launched.
    """

    def __init__(
        self,
        size: int = 5,
        headless: bool = True,
        browser_factory: Optional[Callable[[], FetchBrowser]] = None,
        acquire_timeout: float = 30,
    ):
        """
        Initialize browser pool.

        Args:
            size: Maximum number of browser instances
            headless: Run in headless mode
            browser_factory: Builds an unconnected browser (defaults to FetchBrowser)
            acquire_timeout: Longest wait for a free browser, in seconds
        """
        self.size = max(1, int(size))
        self.headless = headless
        self.acquire_timeout = acquire_timeout
        self._factory = browser_factory or (lambda: FetchBrowser(headless=self.headless))
        self._browsers: list = []
        self._available: asyncio.Queue = asyncio.Queue()
        self._launch_lock = asyncio.Lock()
        self._in_use = 0

    @property
    def open_count(self) -> int:
        """Number of browsers currently launched."""
        return len(self._browsers)

    @property
    def in_use(self) -> int:
        """Number of browsers currently leased."""
        return self._in_use

    async def acquire(self):
        """Get a browser, waiting if the pool is at capacity."""
        if self._available.empty():
            async with self._launch_lock:
                if self._available.empty() and len(self._browsers) < self.size:
                    browser = self._factory()
                    await browser.connect()
                    self._browsers.append(browser)
                    self._in_use += 1
                    log.debug("browser_pool.launched", open=len(self._browsers), size=self.size)
                    return browser

        browser = await asyncio.wait_for(self._available.get(), timeout=self.acquire_timeout)
        self._in_use += 1
        return browser

    async def release(self, browser):
        """Return a browser to the pool."""
        self._in_use = max(0, self._in_use - 1)
        if browser in self._browsers:
            await self._available.put(browser)
        else:
            # Pool was shut down while this browser was leased
            await browser.disconnect()

    @asynccontextmanager
    async def lease(self):
        """Acquire a browser for the duration of an async with block."""
        browser = await self.acquire()
        try:
            yield browser
        finally:
            await self.release(browser)

    async def shutdown(self):
        """Shut down all browsers."""
        browsers = list(self._browsers)
        self._browsers.clear()
        self._available = asyncio.Queue()

        errors = 0
        for browser in browsers:
            try:
                await browser.disconnect()
            except Exception as e:
                errors += 1
                log.warning("browser_pool.disconnect_failed", error=str(e))

        if browsers:
            log.info("browser_pool.shutdown", closed=len(browsers), errors=errors)
