"""
Spider package: page sessions, list expansion, profile and detail extraction
"""

from scholarsense.spider.aggregator import aggregate
from scholarsense.spider.crawler import CrawlReport, DetailExtractor, ResultCollector, WorkerPoolCrawler
from scholarsense.spider.pagination import PaginationExpander, PaginationOutcome, PaginationState
from scholarsense.spider.profile import ProfileExtractor
from scholarsense.spider.session import ElementRef, PageSession, SessionProvider

__all__ = [
    "aggregate",
    "CrawlReport",
    "DetailExtractor",
    "ResultCollector",
    "WorkerPoolCrawler",
    "PaginationExpander",
    "PaginationOutcome",
    "PaginationState",
    "ProfileExtractor",
    "ElementRef",
    "PageSession",
    "SessionProvider",
]
