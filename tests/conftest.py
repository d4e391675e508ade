"""
Pytest configuration and fixtures for the ScholarSense test suite
Provides a deterministic fake rendering target behind the PageSession interface
"""

import asyncio
import shutil
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union

import pytest

from scholarsense.config import Config, SelectorConfig, SpiderConfig
from scholarsense.exceptions import ExtractionError, NavigationError, WaitTimeoutError
from scholarsense.spider.session import ElementRef, PageSession, SessionProvider

SELECTORS = SelectorConfig()
PROFILE_URL = "https://scholar.google.com/citations?user=abc123XYZ&hl=en"


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "requires_browser: Tests requiring browser")


# ==================== Fake Rendering Target ====================

class FakeElement(ElementRef):
    """In-memory element with optional named children"""

    def __init__(
        self,
        text: str = "",
        href: Optional[str] = None,
        children: Optional[Dict[str, "FakeElement"]] = None,
        enabled: bool = True,
        broken: bool = False,
    ):
        self._text = text
        self._href = href
        self.children = children or {}
        self.enabled = enabled
        self.broken = broken

    def _target(self, selector: Optional[str]) -> Optional["FakeElement"]:
        if selector is None:
            return self
        return self.children.get(selector)

    async def text(self, selector: Optional[str] = None) -> str:
        if self.broken:
            raise ExtractionError("element detached")
        target = self._target(selector)
        return target._text.strip() if target else ""

    async def href(self, selector: Optional[str] = None) -> Optional[str]:
        if self.broken:
            raise ExtractionError("element detached")
        target = self._target(selector)
        return target._href if target else None

    async def is_enabled(self) -> bool:
        return self.enabled


@dataclass
class FakeProfilePage:
    """
    Profile page whose publication list is revealed in batches

    batches[0] is visible after navigation; each successful load-more click
    reveals the next batch. Once every batch is shown the control stays in
    the DOM but disabled, unless remove_control_when_done is set.
    """
    texts: Dict[str, str]
    batches: List[List[str]]
    show_control: bool = True
    remove_control_when_done: bool = False
    stall_on_click: Optional[int] = None
    delay: float = 0.0


@dataclass
class FakeDetailPage:
    """Publication detail page; title=None means the title marker never renders"""
    title: Optional[str]
    link: Optional[str] = None
    fields: List[Tuple[str, str]] = field(default_factory=list)
    delay: float = 0.0


Page = Union[FakeProfilePage, FakeDetailPage]


class FakeSite:
    """A fixed set of pages plus failure injection"""

    def __init__(self, pages: Optional[Dict[str, Page]] = None, failing: Optional[Set[str]] = None):
        self.pages: Dict[str, Page] = pages or {}
        self.failing: Set[str] = failing or set()
        self.navigations: List[str] = []


class FakePageSession(PageSession):
    """PageSession over a FakeSite"""

    def __init__(self, site: FakeSite):
        self.site = site
        self.current: Optional[Page] = None
        self.loaded = 0
        self.clicks = 0
        self.stalled = False

    # ---- profile page state ----

    def _done(self) -> bool:
        return self.loaded >= len(self.current.batches)

    def _visible_urls(self) -> List[str]:
        return [url for batch in self.current.batches[:self.loaded] for url in batch]

    def _control(self) -> List[ElementRef]:
        page = self.current
        if not page.show_control:
            return []
        if self._done() and page.remove_control_when_done:
            return []
        return [FakeElement(text="Show more", enabled=not self._done() and not self.stalled)]

    # ---- PageSession ----

    async def navigate(self, url: str) -> None:
        self.site.navigations.append(url)
        page = self.site.pages.get(url)
        if page is not None and page.delay:
            await asyncio.sleep(page.delay)
        if url in self.site.failing or page is None:
            raise NavigationError(f"Failed to load {url}", url=url)
        self.current = page
        self.loaded = 1
        self.clicks = 0
        self.stalled = False

    async def text(self, selector: str) -> str:
        page = self.current
        if isinstance(page, FakeProfilePage):
            return page.texts.get(selector, "").strip()
        if isinstance(page, FakeDetailPage) and selector == SELECTORS.detail_title:
            return (page.title or "").strip()
        return ""

    async def all(self, selector: str) -> List[ElementRef]:
        page = self.current
        if isinstance(page, FakeProfilePage):
            if selector == SELECTORS.publication_anchor:
                return [FakeElement(text=url, href=url) for url in self._visible_urls()]
            if selector == SELECTORS.load_more:
                return self._control()
            return []

        if isinstance(page, FakeDetailPage):
            if selector == SELECTORS.detail_title and page.title is not None:
                children = {}
                if page.link:
                    children[SELECTORS.detail_title_link] = FakeElement(href=page.link)
                return [FakeElement(text=page.title, children=children)]
            if selector == SELECTORS.field_block:
                return [
                    FakeElement(children={
                        SELECTORS.field_label: FakeElement(text=label),
                        SELECTORS.field_value: FakeElement(text=value),
                    })
                    for label, value in page.fields
                ]
        return []

    async def wait_for(self, selector: str, timeout: float, enabled: bool = False) -> None:
        page = self.current
        if isinstance(page, FakeProfilePage) and selector == SELECTORS.load_more:
            controls = self._control()
            if controls and (not enabled or await controls[0].is_enabled()):
                return
            raise WaitTimeoutError(f"Timeout after {timeout}s waiting for selector: {selector}")

        if isinstance(page, FakeDetailPage) and selector == SELECTORS.detail_title:
            if page.title is not None:
                return
        raise WaitTimeoutError(f"Timeout after {timeout}s waiting for selector: {selector}")

    async def click(self, selector: str) -> None:
        page = self.current
        if not isinstance(page, FakeProfilePage) or not self._control():
            raise ExtractionError(f"Nothing to click for selector: {selector}")
        self.clicks += 1
        if page.stall_on_click is not None and self.clicks >= page.stall_on_click:
            self.stalled = True
            return
        if not self._done():
            self.loaded += 1


class FakeSessionProvider(SessionProvider):
    """
    Hands out FakePageSessions and records acquisition/release order

    With acquire_error set, every acquire after the first healthy_sessions
    raises it instead of yielding a session.
    """

    def __init__(
        self,
        site: FakeSite,
        acquire_error: Optional[Exception] = None,
        healthy_sessions: int = 0,
    ):
        self.site = site
        self.acquire_error = acquire_error
        self.healthy_sessions = healthy_sessions
        self.failed_acquires = 0
        self.active = 0
        self.peak_active = 0
        self.acquired = 0
        self.events: List[Tuple[str, int]] = []
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    @asynccontextmanager
    async def acquire(self):
        if self.acquire_error is not None and self.acquired >= self.healthy_sessions:
            self.failed_acquires += 1
            raise self.acquire_error
        session_id = self.acquired
        self.acquired += 1
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        self.events.append(("acquire", session_id))
        try:
            yield FakePageSession(self.site)
        finally:
            self.active -= 1
            self.events.append(("release", session_id))


# ==================== Site Builders ====================

def detail_url(n: int) -> str:
    return f"https://scholar.google.com/citations?view_op=view_citation&citation_for_view=abc123XYZ:{n:04d}"


def make_detail(n: int, kind: Optional[str] = "Journal", delay: float = 0.0) -> FakeDetailPage:
    fields = [
        ("Authors", f"A. Author, B. Author {n}"),
        ("Publication date", f"20{n % 100:02d}/1/1"),
    ]
    if kind:
        fields.insert(1, (kind, f"Venue {n}"))
    return FakeDetailPage(
        title=f"Paper {n}",
        link=f"https://example.org/papers/{n}",
        fields=fields,
        delay=delay,
    )


def build_site(
    batch_sizes: List[int],
    detail_delay: float = 0.0,
    profile_delay: float = 0.0,
    failing: Optional[Set[str]] = None,
    **profile_kwargs,
) -> FakeSite:
    """Profile page with publications split into batches, plus one detail page each"""
    batches: List[List[str]] = []
    pages: Dict[str, Page] = {}
    n = 0
    for size in batch_sizes:
        batch = []
        for _ in range(size):
            url = detail_url(n)
            batch.append(url)
            pages[url] = make_detail(n, delay=detail_delay)
            n += 1
        batches.append(batch)

    pages[PROFILE_URL] = FakeProfilePage(
        texts={
            SELECTORS.profile_name: "Ada Lovelace",
            SELECTORS.profile_institution: "University of London",
            SELECTORS.citation_count: "12,345",
            SELECTORS.h_index: "42",
        },
        batches=batches,
        delay=profile_delay,
        **profile_kwargs,
    )
    return FakeSite(pages=pages, failing=failing)


# ==================== Configuration Fixtures ====================

@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir):
    """Create test configuration"""
    return Config(
        debug=True,
        log_level="DEBUG",
        log_file=str(temp_dir / "logs" / "test.log"),
        spider=SpiderConfig(
            concurrent_tasks=5,
            navigation_timeout=5,
            element_timeout=1,
            pagination_timeout=0.1,
            max_pagination_rounds=50,
        ),
    )


@pytest.fixture
def site():
    """Profile with 12 publications revealed in three batches"""
    return build_site([5, 5, 2])


@pytest.fixture
def provider(site):
    return FakeSessionProvider(site)
