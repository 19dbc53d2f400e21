# src/pricewatch/adapters/crawlers/__init__.py
"""
Web crawlers for scraped price pages.
"""

from pricewatch.adapters.crawlers.banklive_crawler import BankLiveCrawler
from pricewatch.adapters.crawlers.base import BaseCrawler, KaratTableCrawler
from pricewatch.adapters.crawlers.goldpricenow_crawler import GoldPriceNowCrawler
from pricewatch.adapters.crawlers.investing_crawler import InvestingCrawler
from pricewatch.adapters.crawlers.xe_crawler import XECrawler

__all__ = [
    "BaseCrawler",
    "KaratTableCrawler",
    "GoldPriceNowCrawler",
    "BankLiveCrawler",
    "XECrawler",
    "InvestingCrawler",
]
