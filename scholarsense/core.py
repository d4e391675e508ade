"""
Core ScholarScraper class - Main entry point for the system
核心爬取流程：主页分页 → 详情页并发抓取 → 结果聚合
"""

import asyncio
from typing import Awaitable, List, Optional, Tuple, TypeVar

from scholarsense.config import Config, config as default_config
from scholarsense.exceptions import PaginationStalledError, ScrapeCancelledError
from scholarsense.models import ProfileSummary, PublicationRef, ScrapeResult
from scholarsense.spider.aggregator import aggregate
from scholarsense.spider.crawler import DetailExtractor, WorkerPoolCrawler
from scholarsense.spider.pagination import PaginationExpander, PaginationOutcome, PaginationState
from scholarsense.spider.profile import ProfileExtractor
from scholarsense.spider.session import SessionProvider
from scholarsense.utils.logger import get_logger
from scholarsense.utils.validators import validate_profile_url

logger = get_logger(__name__)

T = TypeVar("T")


async def _run_cancellable(awaitable: Awaitable[T], cancel_event: asyncio.Event) -> T:
    """Await a coroutine, cancelling it if cancel_event fires first"""
    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    if task.cancelled():
        raise ScrapeCancelledError("Scrape cancelled before the publication list was discovered")
    return task.result()


class ScholarScraper:
    """
    ScholarScraper - researcher profile scraping pipeline

    Phase 1 opens one session on the profile page, expands the publication
    list and reads the profile fields; the session is released before
    phase 2 fans the detail pages out over the worker pool.

    Example:
        >>> async with PlaywrightSessionProvider() as provider:
        ...     scraper = ScholarScraper(provider)
        ...     result = await scraper.scrape_async(
        ...         "https://scholar.google.com/citations?user=XXXX"
        ...     )
    """

    def __init__(
        self,
        provider: Optional[SessionProvider] = None,
        settings: Optional[Config] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize scraper

        Args:
            provider: Session provider (default: Playwright)
            settings: Configuration (default: global config)
            max_workers: Worker pool size override
        """
        self.settings = settings or default_config
        spider = self.settings.spider
        selectors = self.settings.selectors

        if provider is None:
            from scholarsense.spider.playwright_session import PlaywrightSessionProvider
            provider = PlaywrightSessionProvider(
                headless=spider.headless,
                navigation_timeout=spider.navigation_timeout,
            )
        self.provider = provider

        self.expander = PaginationExpander(
            selectors=selectors,
            timeout=spider.pagination_timeout,
            max_rounds=spider.max_pagination_rounds,
        )
        self.profile_extractor = ProfileExtractor(selectors=selectors)
        self.crawler = WorkerPoolCrawler(
            provider,
            max_workers=spider.concurrent_tasks if max_workers is None else max_workers,
            extractor=DetailExtractor(selectors=selectors, timeout=spider.element_timeout),
        )

    async def discover(
        self, url: str
    ) -> Tuple[ProfileSummary, List[PublicationRef], PaginationOutcome]:
        """
        Phase 1: load the profile, expand the list, read profile fields

        Raises:
            NavigationError: Profile page could not be loaded
            PaginationStalledError: Expansion stalled and stall_policy is 'fail'
        """
        async with self.provider.acquire() as session:
            await session.navigate(url)
            outcome = await self.expander.expand(session)

            if outcome.state is PaginationState.STALLED:
                if self.settings.spider.stall_policy == "fail":
                    raise PaginationStalledError(
                        f"Load-more control stalled after {outcome.rounds} rounds", url=url
                    )
                logger.warning(
                    f"Pagination stalled after {outcome.rounds} rounds; "
                    f"continuing with {outcome.visible_after} visible publications"
                )

            profile, refs = await self.profile_extractor.extract(session)

        return profile, refs, outcome

    async def scrape_async(
        self,
        url: Optional[str],
        deadline: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
        all_or_nothing: bool = False,
        sort_by_discovery: Optional[bool] = None,
    ) -> ScrapeResult:
        """
        Scrape one researcher profile

        Args:
            url: Profile URL
            deadline: Seconds after which the scrape is cancelled
            cancel_event: External cancellation signal
            all_or_nothing: Raise instead of returning partial results on cancellation
            sort_by_discovery: Order publications by profile-list position (default from config)

        Returns:
            ScrapeResult

        Raises:
            ValidationError: URL missing or malformed (nothing is navigated)
            NavigationError / WaitTimeoutError: Profile page failed
            PaginationStalledError: Stall with stall_policy 'fail'
            ScrapeCancelledError: Cancelled during phase 1, or during phase 2 with all_or_nothing
        """
        url = validate_profile_url(url, self.settings.profile_url_pattern)
        if sort_by_discovery is None:
            sort_by_discovery = self.settings.sort_by_discovery

        cancel_event = cancel_event or asyncio.Event()
        timer = None
        if deadline is not None:
            timer = asyncio.get_running_loop().call_later(deadline, cancel_event.set)

        logger.info(f"Starting scrape: {url}")
        try:
            profile, refs, outcome = await _run_cancellable(self.discover(url), cancel_event)

            report = await self.crawler.crawl(refs, cancel_event=cancel_event)
            if report.cancelled and all_or_nothing:
                raise ScrapeCancelledError(
                    f"Scrape cancelled with {len(report.entries)} of {len(refs)} publications extracted",
                    url=url,
                )
        finally:
            if timer is not None:
                timer.cancel()

        result = aggregate(profile, report, pagination=outcome, sort_by_discovery=sort_by_discovery)
        logger.info(
            f"Scrape finished: {len(result.publications)}/{profile.publication_count} publications"
            f" ({result.dropped_count} dropped{', cancelled' if result.cancelled else ''})"
        )
        return result

    def scrape(self, url: Optional[str], **kwargs) -> ScrapeResult:
        """
        Synchronous scrape; starts and stops the session provider around the run

        Args:
            url: Profile URL
            **kwargs: Forwarded to scrape_async

        Returns:
            ScrapeResult
        """
        async def _run() -> ScrapeResult:
            validate_profile_url(url, self.settings.profile_url_pattern)
            async with self.provider.running():
                return await self.scrape_async(url, **kwargs)

        return asyncio.run(_run())

    def get_stats(self):
        """Worker pool statistics for the last scrape"""
        return self.crawler.get_stats()

    def __repr__(self) -> str:
        return f"<ScholarScraper(provider={self.provider!r}, crawler={self.crawler!r})>"
