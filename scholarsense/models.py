"""
Data models for scraped researcher profiles
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from scholarsense.spider.pagination import PaginationOutcome


class PublicationType(str, Enum):
    """Publication classification derived from reserved field labels"""
    CONFERENCE = "Conference"
    JOURNAL = "Journal"
    BOOK = "Book"
    UNKNOWN = "Unknown"

    @classmethod
    def from_label(cls, label: str) -> Optional["PublicationType"]:
        """Return the type for a reserved label (exact, case-sensitive), else None"""
        for member in (cls.CONFERENCE, cls.JOURNAL, cls.BOOK):
            if member.value == label:
                return member
        return None


@dataclass(frozen=True)
class ProfileSummary:
    """Researcher identity and citation metrics, kept as raw page text"""
    name: str
    institution: str
    citation_count: str
    h_index: str
    publication_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "institution": self.institution,
            "citation_count": self.citation_count,
            "h_index": self.h_index,
            "publication_count": self.publication_count,
        }


@dataclass(frozen=True)
class PublicationRef:
    """A publication detail-page URL and its position in the profile list"""
    url: str
    index: int = 0


@dataclass(frozen=True)
class PublicationDetail:
    """
    Bibliographic record for one publication

    `fields` holds every non-reserved label found on the detail page. The
    classification lives in `type`, so a scraped label can never overwrite it.
    """
    title: str
    canonical_url: Optional[str]
    type: PublicationType = PublicationType.UNKNOWN
    fields: Mapping[str, str] = field(default_factory=dict)
    venue: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __eq__(self, other):
        if not isinstance(other, PublicationDetail):
            return NotImplemented
        return (
            self.title == other.title
            and self.canonical_url == other.canonical_url
            and self.type == other.type
            and self.venue == other.venue
            and dict(self.fields) == dict(other.fields)
        )

    def __hash__(self):
        return hash((
            self.title,
            self.canonical_url,
            self.type,
            self.venue,
            frozenset(self.fields.items()),
        ))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "canonical_url": self.canonical_url,
            "type": self.type.value,
            "venue": self.venue,
            "fields": dict(self.fields),
        }


@dataclass(frozen=True)
class DroppedPublication:
    """A discovered publication that did not make it into the result"""
    url: str
    index: int
    reason: str
    category: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "index": self.index,
            "reason": self.reason,
            "category": self.category,
        }


@dataclass(frozen=True)
class ScrapeResult:
    """Aggregated profile and publication records for one scrape"""
    profile: ProfileSummary
    publications: Tuple[PublicationDetail, ...]
    dropped: Tuple[DroppedPublication, ...] = ()
    pagination: Optional["PaginationOutcome"] = None
    cancelled: bool = False

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": self.profile.to_dict(),
            "publications": [p.to_dict() for p in self.publications],
            "dropped": [d.to_dict() for d in self.dropped],
            "dropped_count": self.dropped_count,
            "pagination": self.pagination.to_dict() if self.pagination is not None else None,
            "cancelled": self.cancelled,
        }
