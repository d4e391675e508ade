"""
Profile extractor
Reads researcher identity, citation metrics and publication links from a profile page
"""

from typing import List, Optional, Tuple

from scholarsense.config import SelectorConfig, config
from scholarsense.exceptions import ExtractionError
from scholarsense.models import ProfileSummary, PublicationRef
from scholarsense.spider.session import PageSession
from scholarsense.utils.logger import get_logger


class ProfileExtractor:
    """Extracts a ProfileSummary and the publication URL list from one session"""

    def __init__(self, selectors: Optional[SelectorConfig] = None):
        self.selectors = selectors or config.selectors
        self.logger = get_logger("spider.profile")

    async def _read_field(self, session: PageSession, field: str, selector: str) -> str:
        """Read one optional text field; absence yields an empty string"""
        try:
            value = await session.text(selector)
        except ExtractionError as e:
            self.logger.warning(f"Failed to read {field} ({selector}): {e}")
            return ""

        if not value:
            self.logger.warning(f"Element not found for {field}: {selector}")
        return value

    async def extract_publication_refs(self, session: PageSession) -> List[PublicationRef]:
        """Resolve every publication anchor to an absolute URL, in DOM order"""
        refs: List[PublicationRef] = []
        anchors = await session.all(self.selectors.publication_anchor)

        for position, anchor in enumerate(anchors):
            try:
                url = await anchor.href()
            except ExtractionError as e:
                self.logger.warning(f"Failed to resolve publication link #{position}: {e}")
                continue
            if not url:
                self.logger.warning(f"Publication link #{position} has no target")
                continue
            refs.append(PublicationRef(url=url, index=len(refs)))

        return refs

    async def extract(self, session: PageSession) -> Tuple[ProfileSummary, List[PublicationRef]]:
        """
        Extract profile fields and publication links

        Args:
            session: Session showing the fully expanded profile page

        Returns:
            Tuple of (ProfileSummary, publication refs in DOM order)
        """
        name = await self._read_field(session, "name", self.selectors.profile_name)
        institution = await self._read_field(session, "institution", self.selectors.profile_institution)
        citation_count = await self._read_field(session, "citation count", self.selectors.citation_count)
        h_index = await self._read_field(session, "h-index", self.selectors.h_index)

        refs = await self.extract_publication_refs(session)

        profile = ProfileSummary(
            name=name,
            institution=institution,
            citation_count=citation_count,
            h_index=h_index,
            publication_count=len(refs),
        )
        self.logger.info(f"Profile extracted: {name or 'Unknown'} ({len(refs)} publications)")
        return profile, refs
