# src/pricewatch/adapters/crawlers/xe_crawler.py
"""
xe.com Currency Converter Crawler

Crawler for currency pair rates from the xe.com converter page. The rate is
read from the rendered result element, or from the JSON state embedded in a
script tag when the markup changes.

Files that USE this module:
- pricewatch.app (second FX source in the fallback order)
- tests.test_crawlers (unit tests)

Files that this module USES:
- pricewatch.adapters.crawlers.base (BaseCrawler base class)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import logging  # Standard library for logging messages
import re  # Regular expressions for embedded JSON state

from typing import Optional  # Type hints for optional return values

from bs4 import BeautifulSoup  # HTML parsing library

from pricewatch.adapters.crawlers.base import BaseCrawler  # Base crawler class
from pricewatch.domain.models import Instrument, InstrumentKind  # Domain types

log = logging.getLogger(__name__)  # Create logger for this module

RATE_SELECTORS = (
    "p.result__BigRate-sc-1bsijpp-1",
    "[data-testid='conversion'] p",
    ".converterresult-toAmount",
    ".uccResultAmount",
)
SCRIPT_RATE_RE = re.compile(r'"rate"\s*:\s*([\d.]+)')


class XECrawler(BaseCrawler):
    """Crawler for xe.com; plausible rates lie between 0.001 and 10000."""

    name = "xe"
    kinds = (InstrumentKind.FX,)
    ceiling = 10_000.0
    floor = 0.001

    def __init__(self, base_url: str = "https://www.xe.com/currencyconverter/convert/",
                 timeout: int = 10, throttle=None):
        super().__init__(timeout=timeout, throttle=throttle)
        self.base_url = base_url

    def _url_for(self, instrument: Instrument) -> str:
        return f"{self.base_url}?Amount=1&From={instrument.symbol}&To={instrument.market}"

    def _strategies(self):
        return [self._from_selectors, self._from_scripts]

    def _in_band(self, value: Optional[float]) -> bool:
        return value is not None and self.floor < value < self.ceiling

    def _from_selectors(self, soup: BeautifulSoup, instrument: Instrument) -> Optional[float]:
        for selector in RATE_SELECTORS:
            for element in soup.select(selector):
                for number in self._all_numbers(element.get_text(" ", strip=True)):
                    # "1.00 USD =" precedes the rate on the result line
                    if number == 1.0 and instrument.symbol in element.get_text():
                        continue
                    if self._in_band(number):
                        return number
        return None

    def _from_scripts(self, soup: BeautifulSoup, instrument: Instrument) -> Optional[float]:
        for script in soup.find_all("script"):
            content = script.string or script.get_text()
            if not content or instrument.symbol not in content or instrument.market not in content:
                continue
            match = SCRIPT_RATE_RE.search(content)
            if match:
                value = self._parse_price(match.group(1))
                if self._in_band(value):
                    return value
        return None
