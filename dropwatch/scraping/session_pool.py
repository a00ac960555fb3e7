"""
Shared headless browser for order page scraping.

One Chromium process serves every tracker. Each job gets its own browser
context and page, which it keeps for its whole life so the client-side app
stays loaded between polls.
"""

import asyncio
import logging
import re

from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from dropwatch.config import LOGIN_HOST_PATTERN
from dropwatch.models.snapshot import ScrapeSnapshot
from dropwatch.scraping.extractor import extract

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124 Safari/537.36"
)
BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-zygote",
]
BLOCKED_RESOURCE_TYPES = frozenset({"image", "media", "font"})

NAVIGATION_TIMEOUT_MS = 60_000
OPERATION_TIMEOUT_MS = 30_000
SAME_PAGE_SETTLE_CAP = 1.0
DETACHED_RETRY_DELAY = 0.4

_LOGIN_RX = re.compile(LOGIN_HOST_PATTERN, re.IGNORECASE)
_DETACHED_RX = re.compile(
    r"detached frame|frame was detached|frame got detached|execution context was destroyed",
    re.IGNORECASE,
)


class TransientScrapeError(Exception):
    """The page could not be read this time; the job should try again later."""


def is_detached_frame_error(error: BaseException) -> bool:
    """True for the navigation-frame faults the order app throws while re-rendering."""
    return bool(_DETACHED_RX.search(str(error)))


async def _block_heavy_resources(route: Route) -> None:
    """Abort images, media and fonts; let everything else through."""
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class SessionPool:
    """
    Lazily started browser shared by all jobs, one isolated page per job.

    Usage:
        pool = SessionPool(settle_delay=2.5)
        page = await pool.new_page()
        snapshot = await pool.fetch_snapshot(page, url)
        await pool.close_page(page)
        await pool.close()
    """

    def __init__(
        self,
        settle_delay: float = 2.5,
        executable_path: str | None = None,
        headless: bool = True,
    ):
        self.settle_delay = settle_delay
        self.executable_path = executable_path
        self.headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._launch_lock = asyncio.Lock()
        self._contexts: dict[Page, BrowserContext] = {}

    @property
    def is_started(self) -> bool:
        return self._browser is not None

    async def get_browser(self) -> Browser:
        """Launch the shared browser on first use and return it."""
        if self._browser is not None:
            return self._browser

        async with self._launch_lock:
            if self._browser is None:
                logger.info(
                    "Launching Chromium (%s)",
                    "system executable" if self.executable_path else "bundled",
                )
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    executable_path=self.executable_path,
                    args=BROWSER_ARGS,
                )
                logger.info("Chromium launched")
        return self._browser

    async def new_page(self) -> Page:
        """Open a page in its own context with heavy resources blocked."""
        browser = await self.get_browser()
        context = await browser.new_context(user_agent=USER_AGENT)
        try:
            await context.route("**/*", _block_heavy_resources)
            page = await context.new_page()
        except BaseException:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.debug("Context close failed: %s", e)
            raise

        page.set_default_navigation_timeout(NAVIGATION_TIMEOUT_MS)
        page.set_default_timeout(OPERATION_TIMEOUT_MS)
        self._contexts[page] = context
        return page

    async def close_page(self, page: Page) -> None:
        """Close a job's page and its context. Errors are logged, not raised."""
        context = self._contexts.pop(page, None)
        try:
            await page.close(run_before_unload=True)
        except PlaywrightError as e:
            logger.debug("Page close failed: %s", e)
        if context is not None:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.debug("Context close failed: %s", e)

    async def _goto_if_needed(self, page: Page, url: str) -> None:
        current = page.url
        if current != url:
            logger.debug("Navigating", extra={"json_fields": {"from": current, "to": url}})
            await page.goto(url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
            await asyncio.sleep(self.settle_delay)
        else:
            # The order app re-renders in place; just let it settle
            await asyncio.sleep(min(SAME_PAGE_SETTLE_CAP, self.settle_delay))

    async def _read_once(self, page: Page, url: str) -> ScrapeSnapshot:
        await self._goto_if_needed(page, url)
        if _LOGIN_RX.search(page.url):
            return ScrapeSnapshot.login_wall()
        await asyncio.sleep(self.settle_delay)
        html = await page.content()
        return extract(html)

    async def fetch_snapshot(self, page: Page, url: str) -> ScrapeSnapshot:
        """
        Load (or refresh) the order page and extract a snapshot.

        A detached-frame fault is retried once after a short pause.

        Args:
            page: The job's own page
            url: Order page URL

        Returns:
            ScrapeSnapshot, with only ``requires_login`` set on a login redirect

        Raises:
            TransientScrapeError: If the page could not be read
        """
        try:
            return await self._read_once(page, url)
        except PlaywrightError as e:
            if not is_detached_frame_error(e):
                raise TransientScrapeError(str(e)) from e
            logger.debug("Detached frame while reading %s, retrying once", url)

        await asyncio.sleep(DETACHED_RETRY_DELAY)
        try:
            return await self._read_once(page, url)
        except PlaywrightError as e:
            raise TransientScrapeError(str(e)) from e

    async def close(self) -> None:
        """Close every open page, then the browser and Playwright."""
        for page in list(self._contexts):
            await self.close_page(page)

        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug("Browser close failed: %s", e)
            self._browser = None

        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
