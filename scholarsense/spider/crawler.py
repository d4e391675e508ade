"""
Worker pool crawler for publication detail pages
Fans the publication URL list out over N independent page sessions
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from scholarsense.config import SelectorConfig, config
from scholarsense.exceptions import ExtractionError, ScrapeError
from scholarsense.models import (
    DroppedPublication,
    PublicationDetail,
    PublicationRef,
    PublicationType,
)
from scholarsense.spider.session import ElementRef, PageSession, SessionProvider
from scholarsense.utils.logger import get_logger


class DetailExtractor:
    """
    Builds a PublicationDetail from one rendered detail page

    The first Conference/Journal/Book label sets the type and venue; later
    reserved labels on the same page are ignored.
    """

    def __init__(
        self,
        selectors: Optional[SelectorConfig] = None,
        timeout: Optional[float] = None,
    ):
        self.selectors = selectors or config.selectors
        self.timeout = timeout or config.spider.element_timeout
        self.logger = get_logger("spider.detail")

    async def _canonical_url(self, session: PageSession) -> Optional[str]:
        titles = await session.all(self.selectors.detail_title)
        if not titles:
            return None
        try:
            return await titles[0].href(self.selectors.detail_title_link)
        except ExtractionError as e:
            self.logger.warning(f"Failed to read canonical link: {e}")
            return None

    async def _read_block(self, block: ElementRef) -> Tuple[str, str]:
        try:
            label = await block.text(self.selectors.field_label)
            value = await block.text(self.selectors.field_value)
        except ExtractionError as e:
            self.logger.warning(f"Skipping unreadable field block: {e}")
            return "", ""
        return label, value

    async def extract(self, session: PageSession, url: str) -> PublicationDetail:
        """
        Navigate to a detail page and extract its record

        Args:
            session: Session owned by the calling worker
            url: Detail page URL

        Returns:
            PublicationDetail

        Raises:
            NavigationError: Page could not be loaded
            WaitTimeoutError: Title marker never appeared
        """
        await session.navigate(url)
        await session.wait_for(self.selectors.detail_title, self.timeout)

        try:
            title = await session.text(self.selectors.detail_title)
        except ExtractionError as e:
            self.logger.warning(f"Failed to read title on {url}: {e}")
            title = ""

        canonical_url = await self._canonical_url(session)

        pub_type: Optional[PublicationType] = None
        venue: Optional[str] = None
        fields: Dict[str, str] = {}

        try:
            blocks = await session.all(self.selectors.field_block)
        except ExtractionError as e:
            self.logger.warning(f"Failed to enumerate fields on {url}: {e}")
            blocks = []

        for block in blocks:
            label, value = await self._read_block(block)
            if not label or not value:
                continue

            reserved = PublicationType.from_label(label)
            if reserved is None:
                fields[label] = value
            elif pub_type is None:
                pub_type = reserved
                venue = value
            else:
                self.logger.debug(f"Ignoring extra classification label '{label}' on {url}")

        return PublicationDetail(
            title=title,
            canonical_url=canonical_url,
            type=pub_type or PublicationType.UNKNOWN,
            fields=fields,
            venue=venue,
        )


class ResultCollector:
    """
    Lock-guarded accumulator shared by all workers

    Entries are appended only; readers get snapshots.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._entries: List[Tuple[PublicationRef, PublicationDetail]] = []
        self._dropped: List[DroppedPublication] = []

    async def add(self, ref: PublicationRef, detail: PublicationDetail) -> None:
        async with self._lock:
            self._entries.append((ref, detail))

    async def drop(self, ref: PublicationRef, reason: str, category: str) -> None:
        async with self._lock:
            self._dropped.append(
                DroppedPublication(url=ref.url, index=ref.index, reason=reason, category=category)
            )

    def entries(self) -> Tuple[Tuple[PublicationRef, PublicationDetail], ...]:
        return tuple(self._entries)

    def dropped(self) -> Tuple[DroppedPublication, ...]:
        return tuple(self._dropped)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class CrawlReport:
    """Everything the pool produced once drained or torn down"""
    entries: Tuple[Tuple[PublicationRef, PublicationDetail], ...]
    dropped: Tuple[DroppedPublication, ...]
    cancelled: bool = False

    @property
    def details(self) -> Tuple[PublicationDetail, ...]:
        return tuple(detail for _, detail in self.entries)


class WorkerPoolCrawler:
    """
    Bounded-concurrency crawler over publication detail pages

    Features:
    - At most N workers, each holding one session for its whole life
    - Per-task failure isolation (failed URLs are dropped and reported)
    - A worker that cannot open a session stops; the others drain the queue
    - Single lock-guarded result collector
    - Cooperative cancellation with partial results
    """

    def __init__(
        self,
        provider: SessionProvider,
        max_workers: Optional[int] = None,
        extractor: Optional[DetailExtractor] = None,
    ):
        """
        Initialize crawler

        Args:
            provider: Source of page sessions
            max_workers: Pool size N (default from config)
            extractor: Detail page extractor
        """
        self.provider = provider
        self.max_workers = config.spider.concurrent_tasks if max_workers is None else max_workers
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        self.extractor = extractor or DetailExtractor()
        self.logger = get_logger("spider.crawler")

        self._stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            "total_tasks": 0,
            "completed_tasks": 0,
            "failed_tasks": 0,
            "active_tasks": 0,
            "peak_concurrency": 0,
            "workers": 0,
        }

    async def _run_task(
        self,
        worker_id: int,
        session: PageSession,
        ref: PublicationRef,
        collector: ResultCollector,
    ) -> None:
        self._stats["active_tasks"] += 1
        self._stats["peak_concurrency"] = max(
            self._stats["peak_concurrency"], self._stats["active_tasks"]
        )
        try:
            detail = await self.extractor.extract(session, ref.url)
        except ScrapeError as e:
            self._stats["failed_tasks"] += 1
            self.logger.warning(f"[worker-{worker_id}] Dropping {ref.url}: {e.message}")
            await collector.drop(ref, e.message, e.category)
        else:
            self._stats["completed_tasks"] += 1
            await collector.add(ref, detail)
        finally:
            self._stats["active_tasks"] -= 1

    async def _worker(
        self,
        worker_id: int,
        queue: asyncio.Queue,
        collector: ResultCollector,
        in_flight: Dict[int, PublicationRef],
        session_failures: List[ScrapeError],
    ) -> None:
        try:
            async with self.provider.acquire() as session:
                while True:
                    try:
                        ref = queue.get_nowait()
                    except asyncio.QueueEmpty:
                        break

                    in_flight[worker_id] = ref
                    await self._run_task(worker_id, session, ref, collector)
                    del in_flight[worker_id]
        except ScrapeError as e:
            # Task errors are handled in _run_task; this is the session itself
            self.logger.warning(f"[worker-{worker_id}] Session unavailable, worker stopping: {e.message}")
            session_failures.append(e)
            return

        self.logger.debug(f"[worker-{worker_id}] Queue empty, session released")

    async def crawl(
        self,
        refs: Iterable[PublicationRef],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CrawlReport:
        """
        Crawl every detail page and collect the records

        Args:
            refs: Publication refs discovered on the profile page
            cancel_event: When set, in-flight work is aborted and partial results returned

        Returns:
            CrawlReport with completed entries, dropped URLs and the cancelled flag
        """
        refs = list(refs)
        self._stats = self._empty_stats()
        self._stats["total_tasks"] = len(refs)
        collector = ResultCollector()

        if not refs:
            return CrawlReport(entries=(), dropped=())

        queue: asyncio.Queue = asyncio.Queue()
        for ref in refs:
            queue.put_nowait(ref)

        in_flight: Dict[int, PublicationRef] = {}
        session_failures: List[ScrapeError] = []
        worker_count = min(self.max_workers, len(refs))
        self._stats["workers"] = worker_count
        self.logger.info(f"Crawling {len(refs)} publications with {worker_count} workers")

        workers = [
            asyncio.create_task(self._worker(i, queue, collector, in_flight, session_failures))
            for i in range(worker_count)
        ]
        drain = asyncio.gather(*workers, return_exceptions=True)
        waiter: Optional[asyncio.Future] = None
        cancelled = False

        try:
            if cancel_event is not None:
                waiter = asyncio.ensure_future(cancel_event.wait())
                await asyncio.wait({drain, waiter}, return_when=asyncio.FIRST_COMPLETED)
                if not drain.done():
                    cancelled = True
                    self.logger.warning("Cancellation requested, tearing down worker pool")
                    for worker in workers:
                        worker.cancel()
            results = await drain
        finally:
            if waiter is not None:
                waiter.cancel()
            for worker in workers:
                if not worker.done():
                    worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        errors = [r for r in results if isinstance(r, Exception)]

        # Anything still queued or in flight never produced a record
        if cancelled:
            reason, category = "cancelled", "cancelled"
        elif session_failures:
            reason, category = session_failures[0].message, session_failures[0].category
        else:
            reason, category = "worker stopped", "error"
        leftovers = list(in_flight.values())
        while not queue.empty():
            leftovers.append(queue.get_nowait())
        for ref in leftovers:
            await collector.drop(ref, reason, category)

        self.logger.info(
            f"Crawl finished: {len(collector)} extracted, "
            f"{len(collector.dropped())} dropped (peak concurrency "
            f"{self._stats['peak_concurrency']})"
        )

        if errors:
            for error in errors:
                self.logger.opt(exception=error).error(f"Worker failed: {error}")
            raise errors[0]

        return CrawlReport(
            entries=collector.entries(),
            dropped=collector.dropped(),
            cancelled=cancelled,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics for the last crawl"""
        return dict(self._stats)

    def __repr__(self) -> str:
        return f"<WorkerPoolCrawler(max_workers={self.max_workers})>"
