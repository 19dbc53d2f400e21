# src/pricewatch/adapters/crawlers/base.py
"""
Base Crawler for Scraped Price Pages

This module provides the base class for web crawlers. A crawler is a
SourceAdapter that downloads one HTML page per instrument and runs a list of
extraction strategies over it; the first strategy that yields a value wins.
Caching lives in the application layer (QuoteCache), not here.

Files that USE this module:
- pricewatch.adapters.crawlers.goldpricenow_crawler (extends KaratTableCrawler)
- pricewatch.adapters.crawlers.banklive_crawler (extends KaratTableCrawler)
- pricewatch.adapters.crawlers.xe_crawler (extends BaseCrawler)
- pricewatch.adapters.crawlers.investing_crawler (extends BaseCrawler)

Files that this module USES:
- pricewatch.adapters.providers.base (SourceAdapter base class)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import logging  # Standard library for logging messages
import re  # Regular expressions for parsing text patterns
from abc import abstractmethod  # Abstract methods for the crawler contract
from typing import Callable, Dict, List, Optional  # Type hints

from bs4 import BeautifulSoup  # HTML parsing library

from pricewatch.adapters.providers.base import SourceAdapter  # Source contract and HTTP helper
from pricewatch.domain.errors import SourceUnavailableError  # Raised when nothing usable is found
from pricewatch.domain.models import Instrument, Quote  # Domain types

log = logging.getLogger(__name__)  # Create logger for this module

# Eastern Arabic digits appear on Arabic-language price pages
ARABIC_DIGITS = str.maketrans("٠١٢٣٤٥٦٧٨٩", "0123456789")

_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")

Strategy = Callable[[BeautifulSoup, Instrument], Optional[float]]


class BaseCrawler(SourceAdapter):
    """
    Base class for HTML scraping sources.

    Subclasses implement _url_for() and _strategies(); fetch() downloads the
    page once and tries each strategy in order.
    """

    accept_language = "en-US,en;q=0.9"

    @abstractmethod
    def _url_for(self, instrument: Instrument) -> str:
        """Page URL that carries the price for this instrument."""
        raise NotImplementedError

    @abstractmethod
    def _strategies(self) -> List[Strategy]:
        """Extraction strategies in preference order."""
        raise NotImplementedError

    def _fetch_html(self, url: str) -> str:
        """
        Fetch HTML content from the URL.

        Raises:
            SourceUnavailableError: If request fails or times out
        """
        resp = self._get(
            url,
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": self.accept_language,
            },
        )
        return resp.text

    def _parse_html(self, html: str, instrument: Instrument) -> Optional[float]:
        """
        Run every strategy over the parsed page.

        Returns:
            First plausible value, or None if no strategy produced one
        """
        soup = BeautifulSoup(html, "html.parser")
        for strategy in self._strategies():
            try:
                value = strategy(soup, instrument)
            except (AttributeError, TypeError, ValueError, KeyError, IndexError) as e:
                log.debug("%s: strategy %s failed: %s", self.name, strategy.__name__, e)
                continue
            if value is not None and self.is_plausible(value):
                log.debug("%s: strategy %s found %s for %s", self.name, strategy.__name__, value, instrument)
                return value
        return None

    def fetch(self, instrument: Instrument) -> Quote:
        """
        Fetch and parse the price page for one instrument.

        Raises:
            SourceUnavailableError: If the page cannot be fetched or parsed
        """
        if not self.supports(instrument):
            raise SourceUnavailableError(f"{self.name} does not support {instrument}")
        url = self._url_for(instrument)
        log.info("%s: fetching %s from %s", self.name, instrument, url)
        html = self._fetch_html(url)
        value = self._parse_html(html, instrument)
        if value is None:
            log.warning("%s: could not extract a price for %s", self.name, instrument)
        return self._quote(instrument, value)

    @staticmethod
    def _parse_price(text: str) -> Optional[float]:
        """
        Parse a price from a text string.

        Handles thousands separators, Arabic commas and Eastern Arabic digits.

        Args:
            text: Text containing price

        Returns:
            Float price or None if parsing fails
        """
        if not text:
            return None

        text = text.translate(ARABIC_DIGITS).replace("،", ",").replace("٫", ".")
        match = _NUMBER_RE.search(text)
        if not match:
            return None
        try:
            return float(match.group(0).replace(",", ""))
        except ValueError:
            return None

    @staticmethod
    def _all_numbers(text: str) -> List[float]:
        """Every number in text, in order of appearance."""
        text = text.translate(ARABIC_DIGITS).replace("،", ",").replace("٫", ".")
        numbers = []
        for raw in _NUMBER_RE.findall(text):
            try:
                numbers.append(float(raw.replace(",", "")))
            except ValueError:
                continue
        return numbers


class KaratTableCrawler(BaseCrawler):
    """
    Base for gold pages that list one price per karat.

    Subclasses collect a {karat: price_per_gram} mapping per strategy; the
    mapping is accepted only if it is internally consistent, and the quote is
    the 24k price (derived from the purest karat listed when 24k is absent).
    """

    min_karats = 2

    @abstractmethod
    def _karat_strategies(self) -> List[Callable[[BeautifulSoup, Instrument], Dict[int, float]]]:
        raise NotImplementedError

    def _strategies(self) -> List[Strategy]:
        def wrap(collect):
            def strategy(soup: BeautifulSoup, instrument: Instrument) -> Optional[float]:
                prices = collect(soup, instrument)
                if not self._karats_consistent(prices):
                    log.debug("%s: inconsistent karat table %s", self.name, prices)
                    return None
                return self._price_24k(prices)
            strategy.__name__ = collect.__name__
            return strategy
        return [wrap(collect) for collect in self._karat_strategies()]

    def _karats_consistent(self, prices: Dict[int, float]) -> bool:
        """
        Higher karats must cost more, and each price must stay close to its
        purity ratio against the purest karat listed.
        """
        if len(prices) < self.min_karats:
            return False
        karats = sorted(prices)
        if any(k <= 0 or k > 24 for k in karats):
            return False
        for lower, higher in zip(karats, karats[1:]):
            if prices[lower] >= prices[higher]:
                return False
        top = karats[-1]
        for k in karats[:-1]:
            expected = prices[top] * k / top
            if abs(prices[k] - expected) > expected * 0.15:
                return False
        return True

    @staticmethod
    def _price_24k(prices: Dict[int, float]) -> Optional[float]:
        if not prices:
            return None
        if 24 in prices:
            return prices[24]
        top = max(prices)
        return round(prices[top] * 24 / top, 2)
