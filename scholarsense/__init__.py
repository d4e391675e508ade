"""
ScholarSense - Researcher Profile Scraping
学者主页数据采集

License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

from scholarsense.core import ScholarScraper
from scholarsense.config import Config

__all__ = ["ScholarScraper", "Config"]
