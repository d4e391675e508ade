"""
End-to-end tests for ScholarScraper
Runs the full two-phase pipeline against the fake rendering target
"""

import asyncio

import pytest

from scholarsense import ScholarScraper
from scholarsense.exceptions import (
    NavigationError,
    PaginationStalledError,
    ScrapeCancelledError,
    ValidationError,
)
from scholarsense.models import PublicationType
from scholarsense.spider.pagination import PaginationState

from conftest import PROFILE_URL, FakeSessionProvider, build_site, detail_url


class TestScrapeAsync:
    """Test the asynchronous pipeline"""

    @pytest.mark.asyncio
    async def test_end_to_end(self, provider, test_config):
        scraper = ScholarScraper(provider, settings=test_config)

        result = await scraper.scrape_async(PROFILE_URL)

        assert result.profile.name == "Ada Lovelace"
        assert result.profile.institution == "University of London"
        assert result.profile.citation_count == "12,345"
        assert result.profile.h_index == "42"
        assert result.profile.publication_count == 12
        assert len(result.publications) == 12
        assert {p.title for p in result.publications} == {f"Paper {i}" for i in range(12)}
        assert all(p.type is PublicationType.JOURNAL for p in result.publications)
        assert result.dropped == ()
        assert result.cancelled is False
        assert result.pagination.state is PaginationState.EXHAUSTED
        assert result.pagination.rounds == 2

    @pytest.mark.asyncio
    async def test_profile_session_released_before_crawl(self, provider, test_config):
        """Phase 1 holds exactly one session and releases it before phase 2"""
        scraper = ScholarScraper(provider, settings=test_config)

        await scraper.scrape_async(PROFILE_URL)

        assert provider.events[:2] == [("acquire", 0), ("release", 0)]
        assert provider.acquired == 1 + 5
        assert provider.active == 0

    @pytest.mark.asyncio
    async def test_rerun_is_identical(self, provider, test_config):
        """Same page state gives the same profile and the same publication set"""
        scraper = ScholarScraper(provider, settings=test_config)

        first = await scraper.scrape_async(PROFILE_URL)
        second = await scraper.scrape_async(PROFILE_URL)

        assert first.profile == second.profile
        assert set(first.publications) == set(second.publications)

    @pytest.mark.asyncio
    async def test_partial_failure(self, test_config):
        site = build_site([5], failing={detail_url(3)})
        scraper = ScholarScraper(FakeSessionProvider(site), settings=test_config)

        result = await scraper.scrape_async(PROFILE_URL)

        assert result.profile.publication_count == 5
        assert len(result.publications) == 4
        assert result.dropped_count == 1
        assert result.dropped[0].url == detail_url(3)

    @pytest.mark.asyncio
    async def test_sort_by_discovery(self, test_config):
        site = build_site([8])
        scraper = ScholarScraper(FakeSessionProvider(site), settings=test_config)

        result = await scraper.scrape_async(PROFILE_URL, sort_by_discovery=True)

        assert [p.title for p in result.publications] == [f"Paper {i}" for i in range(8)]

    @pytest.mark.asyncio
    async def test_max_workers_override(self, provider, test_config):
        scraper = ScholarScraper(provider, settings=test_config, max_workers=2)

        await scraper.scrape_async(PROFILE_URL)

        assert scraper.get_stats()["workers"] == 2
        assert provider.peak_active <= 2


class TestPhaseOneFailures:
    """Errors that abort the whole scrape"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [None, "", "https://example.com/citations?user=abc"])
    async def test_validation_prevents_navigation(self, provider, site, test_config, url):
        scraper = ScholarScraper(provider, settings=test_config)

        with pytest.raises(ValidationError):
            await scraper.scrape_async(url)

        assert site.navigations == []
        assert provider.acquired == 0

    @pytest.mark.asyncio
    async def test_profile_navigation_failure(self, test_config):
        site = build_site([3], failing={PROFILE_URL})
        provider = FakeSessionProvider(site)
        scraper = ScholarScraper(provider, settings=test_config)

        with pytest.raises(NavigationError):
            await scraper.scrape_async(PROFILE_URL)

        assert site.navigations == [PROFILE_URL]
        assert provider.active == 0

    @pytest.mark.asyncio
    async def test_stall_accepted_by_default(self, test_config):
        site = build_site([5, 5, 2], stall_on_click=2)
        scraper = ScholarScraper(FakeSessionProvider(site), settings=test_config)

        result = await scraper.scrape_async(PROFILE_URL)

        assert result.pagination.state is PaginationState.STALLED
        assert result.profile.publication_count == 10
        assert len(result.publications) == 10

    @pytest.mark.asyncio
    async def test_stall_policy_fail(self, test_config):
        settings = test_config.model_copy(
            update={"spider": test_config.spider.model_copy(update={"stall_policy": "fail"})}
        )
        site = build_site([5, 5, 2], stall_on_click=2)
        scraper = ScholarScraper(FakeSessionProvider(site), settings=settings)

        with pytest.raises(PaginationStalledError) as exc_info:
            await scraper.scrape_async(PROFILE_URL)

        assert exc_info.value.category == "pagination_stalled"
        assert not any(url != PROFILE_URL for url in site.navigations)


class TestCancellation:
    """Deadlines and external cancellation"""

    @pytest.mark.asyncio
    async def test_deadline_during_discovery(self, test_config):
        site = build_site([3], profile_delay=0.5)
        provider = FakeSessionProvider(site)
        scraper = ScholarScraper(provider, settings=test_config)

        with pytest.raises(ScrapeCancelledError):
            await scraper.scrape_async(PROFILE_URL, deadline=0.05)

        assert provider.active == 0

    @pytest.mark.asyncio
    async def test_deadline_during_crawl_keeps_partial_results(self, test_config):
        site = build_site([6], detail_delay=0.5)
        provider = FakeSessionProvider(site)
        scraper = ScholarScraper(provider, settings=test_config, max_workers=2)

        result = await scraper.scrape_async(PROFILE_URL, deadline=0.1)

        assert result.cancelled is True
        assert result.profile.publication_count == 6
        assert len(result.publications) + result.dropped_count == 6
        assert {d.category for d in result.dropped} == {"cancelled"}
        assert provider.active == 0

    @pytest.mark.asyncio
    async def test_deadline_keeps_finished_publications(self, test_config):
        site = build_site([6], detail_delay=1.0)
        site.pages[detail_url(0)].delay = 0
        site.pages[detail_url(1)].delay = 0
        scraper = ScholarScraper(FakeSessionProvider(site), settings=test_config, max_workers=2)

        result = await scraper.scrape_async(PROFILE_URL, deadline=0.2, sort_by_discovery=True)

        assert result.cancelled is True
        assert [p.title for p in result.publications] == ["Paper 0", "Paper 1"]
        assert [d.index for d in result.dropped] == [2, 3, 4, 5]
        assert {d.category for d in result.dropped} == {"cancelled"}

    @pytest.mark.asyncio
    async def test_all_or_nothing(self, test_config):
        site = build_site([6], detail_delay=0.5)
        scraper = ScholarScraper(FakeSessionProvider(site), settings=test_config, max_workers=2)

        with pytest.raises(ScrapeCancelledError):
            await scraper.scrape_async(PROFILE_URL, deadline=0.1, all_or_nothing=True)

    @pytest.mark.asyncio
    async def test_external_cancel_event(self, test_config):
        site = build_site([6], detail_delay=0.5)
        scraper = ScholarScraper(FakeSessionProvider(site), settings=test_config, max_workers=2)
        cancel_event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.1, cancel_event.set)

        result = await scraper.scrape_async(PROFILE_URL, cancel_event=cancel_event)

        assert result.cancelled is True


class TestSyncScrape:
    """Test the synchronous wrapper"""

    def test_scrape_starts_and_stops_provider(self, provider, test_config):
        scraper = ScholarScraper(provider, settings=test_config)

        result = scraper.scrape(PROFILE_URL)

        assert len(result.publications) == 12
        assert provider.started is True
        assert provider.stopped is True

    def test_validation_before_start(self, provider, test_config):
        scraper = ScholarScraper(provider, settings=test_config)

        with pytest.raises(ValidationError):
            scraper.scrape("not a url")

        assert provider.started is False

    def test_repr(self, provider, test_config):
        assert "ScholarScraper" in repr(ScholarScraper(provider, settings=test_config))
