# src/pricewatch/adapters/crawlers/investing_crawler.py
"""
investing.com Currency Crawler

Crawler for the last traded price shown on investing.com currency pages
(e.g. /currencies/usd-egp).

Files that USE this module:
- pricewatch.app (third FX source in the fallback order)
- tests.test_crawlers (unit tests)

Files that this module USES:
- pricewatch.adapters.crawlers.base (BaseCrawler base class)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import logging  # Standard library for logging messages

from typing import Optional  # Type hints for optional return values

from bs4 import BeautifulSoup  # HTML parsing library

from pricewatch.adapters.crawlers.base import BaseCrawler  # Base crawler class
from pricewatch.domain.models import Instrument, InstrumentKind  # Domain types

log = logging.getLogger(__name__)  # Create logger for this module

PRICE_SELECTORS = (
    'span[data-test="instrument-price-last"]',
    'div[data-test="instrument-price-last"]',
    "#last_last",
    ".instrument-price_last__KQzyA",
)


class InvestingCrawler(BaseCrawler):
    """Crawler for investing.com; plausible rates lie below 1000."""

    name = "investing"
    kinds = (InstrumentKind.FX,)
    ceiling = 1_000.0

    def __init__(self, base_url: str = "https://www.investing.com/currencies",
                 timeout: int = 10, throttle=None):
        super().__init__(timeout=timeout, throttle=throttle)
        self.base_url = base_url.rstrip("/")

    def _url_for(self, instrument: Instrument) -> str:
        return f"{self.base_url}/{instrument.symbol.lower()}-{instrument.market.lower()}"

    def _strategies(self):
        return [self._from_selectors, self._from_meta]

    def _from_selectors(self, soup: BeautifulSoup, instrument: Instrument) -> Optional[float]:
        for selector in PRICE_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            value = self._parse_price(element.get_text(strip=True))
            if value is not None:
                return value
        return None

    def _from_meta(self, soup: BeautifulSoup, instrument: Instrument) -> Optional[float]:
        meta = soup.find("meta", attrs={"itemprop": "price"})
        if meta is None:
            return None
        return self._parse_price(meta.get("content", ""))
