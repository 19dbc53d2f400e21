# src/pricewatch/adapters/crawlers/banklive_crawler.py
"""
banklive.net Crawler

Crawler for Egyptian gold prices. The page carries a table with one row per
karat and separate buy and sell columns; the sell price is quoted.

Files that USE this module:
- pricewatch.app (third commodity source in the fallback order)
- tests.test_crawlers (unit tests)

Files that this module USES:
- pricewatch.adapters.crawlers.base (KaratTableCrawler base class)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import logging  # Standard library for logging messages
import re  # Regular expressions for karat labels

from typing import Dict, Optional  # Type hints

from bs4 import BeautifulSoup  # HTML parsing library

from pricewatch.adapters.crawlers.base import KaratTableCrawler  # Karat table base class
from pricewatch.domain.models import Instrument, InstrumentKind  # Domain types

log = logging.getLogger(__name__)  # Create logger for this module

KARAT_NAME_RE = re.compile(r"(\d+)\s*Karat", re.I)


class BankLiveCrawler(KaratTableCrawler):
    """Crawler for banklive.net (Egypt only)."""

    name = "banklive"
    kinds = (InstrumentKind.COMMODITY,)
    ceiling = 1_000_000.0

    def __init__(self, url: str = "https://banklive.net/en/gold-price-today-in-egypt",
                 timeout: int = 10, throttle=None):
        super().__init__(timeout=timeout, throttle=throttle)
        self.url = url

    def supports(self, instrument: Instrument) -> bool:
        return super().supports(instrument) and instrument.symbol == "gold" and instrument.market == "egypt"

    def _url_for(self, instrument: Instrument) -> str:
        return self.url

    def _karat_strategies(self):
        return [self._from_sell_column, self._from_buy_column]

    def _cell_price(self, cell) -> Optional[float]:
        rate = cell.select_one(".rate")
        text = rate.get_text(strip=True) if rate else cell.get_text(strip=True)
        return self._parse_price(text)

    def _rows(self, soup: BeautifulSoup):
        for row in soup.find_all("tr"):
            cells = row.find_all("td")
            if len(cells) < 3:
                continue
            match = KARAT_NAME_RE.search(cells[0].get_text(strip=True))
            if not match:
                continue
            buy = self._cell_price(cells[1])
            sell = self._cell_price(cells[2])
            yield int(match.group(1)), buy, sell

    def _from_sell_column(self, soup: BeautifulSoup, instrument: Instrument) -> Dict[int, float]:
        """Sell prices, kept only where sell >= buy."""
        prices: Dict[int, float] = {}
        for karat, buy, sell in self._rows(soup):
            if sell is None:
                continue
            if buy is not None and sell < buy:
                log.debug("banklive: %dk sell %.2f below buy %.2f, skipping", karat, sell, buy)
                continue
            prices.setdefault(karat, sell)
        return prices

    def _from_buy_column(self, soup: BeautifulSoup, instrument: Instrument) -> Dict[int, float]:
        prices: Dict[int, float] = {}
        for karat, buy, _ in self._rows(soup):
            if buy is not None:
                prices.setdefault(karat, buy)
        return prices
