"""
Input validation helpers
"""

import re
from typing import Optional

from scholarsense.config import config
from scholarsense.exceptions import ValidationError

URL_REQUIRED_MESSAGE = "Google Scholar URL is required"
INVALID_URL_MESSAGE = "Invalid URL format. Please provide a valid Google Scholar URL."


def validate_profile_url(url: Optional[str], pattern: Optional[str] = None) -> str:
    """
    Check a profile URL before any navigation happens

    Args:
        url: Candidate profile URL
        pattern: Prefix regex (default from config)

    Returns:
        The stripped URL

    Raises:
        ValidationError: URL is empty or does not match the profile prefix
    """
    if url is None or not url.strip():
        raise ValidationError(URL_REQUIRED_MESSAGE)

    url = url.strip()
    if not re.match(pattern or config.profile_url_pattern, url):
        raise ValidationError(INVALID_URL_MESSAGE, url=url)

    return url
