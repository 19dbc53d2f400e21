# src/pricewatch/adapters/crawlers/goldpricenow_crawler.py
"""
goldpricenow.live Crawler

Crawler for per-country gold prices. The site lists one row per karat
(24k, 22k, 21k, 18k) with the price per gram in the country's currency.

Files that USE this module:
- pricewatch.app (second commodity source in the fallback order)
- tests.test_crawlers (unit tests)

Files that this module USES:
- pricewatch.adapters.crawlers.base (KaratTableCrawler base class)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import logging  # Standard library for logging messages
import re  # Regular expressions for finding karat labels

from typing import Dict  # Type hints

from bs4 import BeautifulSoup  # HTML parsing library for extracting data from web pages

from pricewatch.adapters.crawlers.base import KaratTableCrawler  # Karat table base class
from pricewatch.domain.models import Instrument, InstrumentKind  # Domain types

log = logging.getLogger(__name__)  # Create logger for this module

KARAT_RE = re.compile(r"(\d{1,2})\s*(?:k\b|karat|عيار)", re.I)
KARAT_TEXT_RE = re.compile(r"(\d{1,2})\s*(?:k\b|karat|عيار)[^\d]{0,40}?(\d[\d,]*(?:\.\d+)?)", re.I)


class GoldPriceNowCrawler(KaratTableCrawler):
    """
    Crawler for goldpricenow.live.

    Strategy 1 reads table rows; strategy 2 scans the page text for
    "<karat> ... <price>" pairs when the layout has no table.
    """

    name = "goldpricenow"
    kinds = (InstrumentKind.COMMODITY,)
    ceiling = 1_000_000.0

    def __init__(self, base_url: str = "https://goldpricenow.live", timeout: int = 10, throttle=None):
        super().__init__(timeout=timeout, throttle=throttle)
        self.base_url = base_url.rstrip("/")

    def supports(self, instrument: Instrument) -> bool:
        return super().supports(instrument) and instrument.symbol == "gold"

    def _url_for(self, instrument: Instrument) -> str:
        return f"{self.base_url}/{instrument.market}/"

    def _karat_strategies(self):
        return [self._from_rows, self._from_text]

    def _from_rows(self, soup: BeautifulSoup, instrument: Instrument) -> Dict[int, float]:
        """
        Parse rows like "24K Gold | 3,250.00" into a karat table.

        The price is the last number in the row that isn't the karat itself.
        """
        prices: Dict[int, float] = {}
        for row in soup.select("tr, .price-row"):
            text = row.get_text(" ", strip=True)
            karat_match = KARAT_RE.search(text)
            if not karat_match:
                continue
            karat = int(karat_match.group(1))
            rest = text[karat_match.end():]
            numbers = self._all_numbers(rest)
            if numbers and karat not in prices:
                prices[karat] = numbers[-1]
        return prices

    def _from_text(self, soup: BeautifulSoup, instrument: Instrument) -> Dict[int, float]:
        prices: Dict[int, float] = {}
        text = soup.get_text(" ", strip=True)
        for karat, raw in KARAT_TEXT_RE.findall(text):
            price = self._parse_price(raw)
            if price is not None and int(karat) not in prices:
                prices[int(karat)] = price
        return prices
