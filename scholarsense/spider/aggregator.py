"""
Aggregator
Merges the profile summary with the worker pool's records
"""

from typing import Optional

from scholarsense.models import ProfileSummary, ScrapeResult
from scholarsense.spider.crawler import CrawlReport
from scholarsense.spider.pagination import PaginationOutcome


def aggregate(
    profile: ProfileSummary,
    report: CrawlReport,
    pagination: Optional[PaginationOutcome] = None,
    sort_by_discovery: bool = False,
) -> ScrapeResult:
    """
    Build the final ScrapeResult

    Publications keep completion order unless sort_by_discovery is set, in
    which case they follow their position in the profile list. Dropped URLs
    are always listed in discovery order.

    Args:
        profile: Profile extracted in phase 1
        report: Worker pool output
        pagination: How list expansion ended
        sort_by_discovery: Stable-sort publications by discovery index

    Returns:
        ScrapeResult
    """
    entries = report.entries
    if sort_by_discovery:
        entries = tuple(sorted(entries, key=lambda entry: entry[0].index))

    return ScrapeResult(
        profile=profile,
        publications=tuple(detail for _, detail in entries),
        dropped=tuple(sorted(report.dropped, key=lambda dropped: dropped.index)),
        pagination=pagination,
        cancelled=report.cancelled,
    )
