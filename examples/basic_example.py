"""
Example: Scrape one researcher profile

This example shows how to:
1. Share one browser between several scrapes
2. Put a deadline on a scrape and inspect partial results
3. Save the result as JSON
"""

import asyncio
import json
import sys

from scholarsense import ScholarScraper
from scholarsense.spider.playwright_session import PlaywrightSessionProvider

PROFILE_URL = "https://scholar.google.com/citations?user=JicYPdAAAAAJ&hl=en"


async def main(url: str):
    async with PlaywrightSessionProvider() as provider:
        scraper = ScholarScraper(provider)

        print("=" * 50)
        print("Example 1: Full scrape")
        print("=" * 50)

        result = await scraper.scrape_async(url, sort_by_discovery=True)
        print(f"✓ {result.profile.name} ({result.profile.institution})")
        print(f"Citations: {result.profile.citation_count}, h-index: {result.profile.h_index}")
        print(f"Publications: {len(result.publications)}/{result.profile.publication_count}")
        print(f"Pagination: {result.pagination.state.value} after {result.pagination.rounds} rounds")

        for dropped in result.dropped:
            print(f"✗ {dropped.url}: {dropped.category} ({dropped.reason})")

        print("\n" + "=" * 50)
        print("Example 2: Scrape with a 20 second deadline")
        print("=" * 50)

        partial = await scraper.scrape_async(url, deadline=20)
        if partial.cancelled:
            print(f"Deadline hit: kept {len(partial.publications)}, dropped {partial.dropped_count}")
        else:
            print(f"✓ Finished in time with {len(partial.publications)} publications")

    with open("profile.json", "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)
    print("\n✓ Saved to profile.json")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else PROFILE_URL))
