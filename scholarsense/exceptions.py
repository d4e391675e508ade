"""
Error taxonomy for ScholarSense
"""

from typing import Any, Dict, Optional


class ScrapeError(Exception):
    """Base class for every error raised by the scrape pipeline"""

    category = "scrape"

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url

    def to_dict(self) -> Dict[str, Any]:
        """Structured failure description"""
        data = {"error": self.category, "message": self.message}
        if self.url:
            data["url"] = self.url
        return data


class ValidationError(ScrapeError):
    """Input URL missing or malformed; raised before any navigation"""

    category = "validation"


class NavigationError(ScrapeError):
    """A page could not be loaded"""

    category = "navigation"


class WaitTimeoutError(ScrapeError):
    """A required element or state did not appear in time"""

    category = "timeout"


class ExtractionError(ScrapeError):
    """An optional value could not be read; always recovered by the caller"""

    category = "extraction"


class PaginationStalledError(ScrapeError):
    """The load-more control stopped responding and the stall policy is 'fail'"""

    category = "pagination_stalled"


class ScrapeCancelledError(ScrapeError):
    """The caller's deadline or cancellation signal fired"""

    category = "cancelled"
