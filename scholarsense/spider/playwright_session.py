"""
Playwright-backed page sessions
Concrete rendering engine behind the PageSession capability
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from playwright.async_api import (
    Browser,
    ElementHandle,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
    TimeoutError as PlaywrightTimeoutError,
)

from scholarsense.config import config
from scholarsense.exceptions import ExtractionError, NavigationError, WaitTimeoutError
from scholarsense.spider.session import ElementRef, PageSession, SessionProvider
from scholarsense.utils.logger import get_logger

_HREF_SCRIPT = """
(el, selector) => {
    const target = selector ? el.querySelector(selector) : el;
    return target && target.href ? target.href : null;
}
"""

_ENABLED_SCRIPT = """
(selector) => {
    const el = document.querySelector(selector);
    return !!el && !el.disabled;
}
"""


class PlaywrightElement(ElementRef):
    """ElementRef over a Playwright ElementHandle"""

    def __init__(self, handle: ElementHandle):
        self._handle = handle

    async def text(self, selector: Optional[str] = None) -> str:
        try:
            target = self._handle
            if selector:
                target = await self._handle.query_selector(selector)
                if target is None:
                    return ""
            return (await target.inner_text()).strip()
        except PlaywrightError as e:
            raise ExtractionError(f"Failed to read text ({selector or 'element'}): {e}") from e

    async def href(self, selector: Optional[str] = None) -> Optional[str]:
        try:
            return await self._handle.evaluate(_HREF_SCRIPT, selector)
        except PlaywrightError as e:
            raise ExtractionError(f"Failed to read link ({selector or 'element'}): {e}") from e

    async def is_enabled(self) -> bool:
        try:
            return await self._handle.is_enabled()
        except PlaywrightError:
            return False


class PlaywrightPageSession(PageSession):
    """PageSession over one Playwright page"""

    def __init__(self, page: Page, navigation_timeout: Optional[float] = None):
        self._page = page
        self.navigation_timeout = navigation_timeout or config.spider.navigation_timeout

    async def navigate(self, url: str) -> None:
        try:
            await self._page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout * 1000,
            )
        except PlaywrightTimeoutError as e:
            raise NavigationError(
                f"Timed out after {self.navigation_timeout}s loading {url}", url=url
            ) from e
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}", url=url) from e

    async def text(self, selector: str) -> str:
        try:
            element = await self._page.query_selector(selector)
            if element is None:
                return ""
            return (await element.inner_text()).strip()
        except PlaywrightError as e:
            raise ExtractionError(f"Failed to read text for selector {selector}: {e}") from e

    async def all(self, selector: str) -> List[ElementRef]:
        try:
            handles = await self._page.query_selector_all(selector)
        except PlaywrightError as e:
            raise ExtractionError(f"Failed to query selector {selector}: {e}") from e
        return [PlaywrightElement(handle) for handle in handles]

    async def wait_for(self, selector: str, timeout: float, enabled: bool = False) -> None:
        try:
            if enabled:
                await self._page.wait_for_function(
                    _ENABLED_SCRIPT, arg=selector, timeout=timeout * 1000
                )
            else:
                await self._page.wait_for_selector(
                    selector, state="attached", timeout=timeout * 1000
                )
        except PlaywrightTimeoutError as e:
            raise WaitTimeoutError(
                f"Timeout after {timeout}s waiting for selector: {selector}",
                url=self._page.url,
            ) from e
        except PlaywrightError as e:
            raise NavigationError(
                f"Page failed while waiting for selector {selector}: {e}",
                url=self._page.url,
            ) from e

    async def click(self, selector: str) -> None:
        try:
            element = await self._page.query_selector(selector)
            if element is None:
                raise ExtractionError(f"Nothing to click for selector: {selector}")
            await element.click()
        except PlaywrightError as e:
            raise ExtractionError(f"Failed to click {selector}: {e}") from e


class PlaywrightSessionProvider(SessionProvider):
    """
    Launches Chromium and hands out one isolated browser context per session

    Example:
        >>> async with PlaywrightSessionProvider() as provider:
        ...     async with provider.acquire() as session:
        ...         await session.navigate("https://scholar.google.com")
    """

    def __init__(
        self,
        headless: Optional[bool] = None,
        navigation_timeout: Optional[float] = None,
    ):
        """
        Initialize provider

        Args:
            headless: Run browser in headless mode (default from config)
            navigation_timeout: Per-navigation timeout in seconds (default from config)
        """
        self.headless = config.spider.headless if headless is None else headless
        self.navigation_timeout = navigation_timeout or config.spider.navigation_timeout
        self.logger = get_logger("spider.playwright")

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def start(self) -> None:
        """Start the browser"""
        if self._browser is not None:
            return
        try:
            self.logger.info("Starting browser...")
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
            self.logger.info("Browser started successfully")
        except Exception as e:
            self.logger.error(f"Failed to start browser: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the browser and clean up resources"""
        self.logger.info("Stopping browser...")
        try:
            if self._browser:
                await self._browser.close()
        finally:
            self._browser = None
            if self._playwright:
                await self._playwright.stop()
            self._playwright = None
        self.logger.info("Browser stopped")

    @asynccontextmanager
    async def acquire(self):
        if self._browser is None:
            raise RuntimeError("PlaywrightSessionProvider.start() must be called before acquire()")

        try:
            context = await self._browser.new_context()
        except PlaywrightError as e:
            raise NavigationError(f"Failed to open browser context: {e}") from e

        try:
            try:
                page = await context.new_page()
            except PlaywrightError as e:
                raise NavigationError(f"Failed to open page: {e}") from e
            page.set_default_timeout(self.navigation_timeout * 1000)
            yield PlaywrightPageSession(page, navigation_timeout=self.navigation_timeout)
        finally:
            try:
                await context.close()
            except PlaywrightError as e:
                self.logger.warning(f"Failed to close browser context: {e}")
