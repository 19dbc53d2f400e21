# src/pricewatch/adapters/providers/base.py
"""
Base Source Adapter Interface

This module defines the abstract base class for every price source, whether
it is a JSON API or a scraped web page. It establishes the contract all
adapters follow: declare which instruments they can price, fetch one quote
or raise SourceUnavailableError, and never hand back an implausible value.

Files that USE this module:
- pricewatch.adapters.providers.metalpriceapi (MetalPriceAPIProvider extends SourceAdapter)
- pricewatch.adapters.providers.exchangerate_api (ExchangeRateAPIProvider extends SourceAdapter)
- pricewatch.adapters.crawlers.base (BaseCrawler extends SourceAdapter)
- pricewatch.application.fetcher (FallbackFetcher drives a list of SourceAdapters)

Files that this module USES:
- pricewatch.domain.models (Instrument, InstrumentKind, Quote)
- pricewatch.domain.errors (SourceUnavailableError, InvalidQuoteError)
- pricewatch.shared.rate_limiter (HostThrottle for per-host spacing)
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import requests

from pricewatch.domain import catalog
from pricewatch.domain.errors import InvalidQuoteError, SourceUnavailableError
from pricewatch.domain.models import Instrument, InstrumentKind, Quote
from pricewatch.shared.rate_limiter import HostThrottle

log = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class SourceAdapter(ABC):
    """
    Uniform wrapper around one external price source.

    Subclasses set:
        name: Provenance id recorded on every quote
        kinds: Instrument classes the source can price
        ceiling: Exclusive upper bound of plausible values for this source
    """

    name: str = "source"
    kinds: Tuple[InstrumentKind, ...] = ()
    ceiling: float = 1_000_000.0

    def __init__(self, timeout: int = 10, throttle: Optional[HostThrottle] = None):
        """
        Args:
            timeout: HTTP request timeout in seconds
            throttle: Optional per-host spacing shared with other adapters
        """
        self.timeout = timeout
        self.throttle = throttle

    def supports(self, instrument: Instrument) -> bool:
        """Whether this source can price the instrument at all."""
        return instrument.kind in self.kinds

    def is_plausible(self, value: Any) -> bool:
        """Sanity band check: finite and 0 < value < ceiling."""
        try:
            value = float(value)
        except (TypeError, ValueError):
            return False
        return math.isfinite(value) and 0 < value < self.ceiling

    @abstractmethod
    def fetch(self, instrument: Instrument) -> Quote:
        """
        Fetch one quote for the instrument.

        Raises:
            SourceUnavailableError: If the source failed or produced no usable value
        """
        raise NotImplementedError

    def _quote(self, instrument: Instrument, value: Optional[float]) -> Quote:
        """
        Turn an extracted value into a Quote, rejecting anything implausible.

        Raises:
            SourceUnavailableError: If value is missing or outside the sane band
        """
        if value is None:
            raise SourceUnavailableError(f"{self.name}: no value for {instrument}")
        if not self.is_plausible(value):
            raise SourceUnavailableError(f"{self.name}: implausible value {value!r} for {instrument}")
        try:
            return Quote(
                instrument=instrument,
                value=float(value),
                unit_currency=catalog.unit_currency(instrument),
                retrieved_at=datetime.now(timezone.utc),
                source_id=self.name,
            )
        except InvalidQuoteError as e:
            raise SourceUnavailableError(f"{self.name}: {e}") from e

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None,
             headers: Optional[Dict[str, str]] = None) -> requests.Response:
        """
        Perform a throttled GET request.

        Returns:
            Response with a 2xx status

        Raises:
            SourceUnavailableError: On timeout, connection failure or HTTP error
        """
        if self.throttle is not None:
            self.throttle.wait(url)
        request_headers = {"User-Agent": USER_AGENT}
        if headers:
            request_headers.update(headers)
        try:
            log.debug("%s: GET %s", self.name, url)
            resp = requests.get(url, params=params, headers=request_headers, timeout=self.timeout)
            resp.raise_for_status()
            return resp
        except requests.exceptions.Timeout:
            log.warning("%s: timeout after %d seconds for %s", self.name, self.timeout, url)
            raise SourceUnavailableError(f"{self.name} timeout after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            log.warning("%s: request failed for %s: %s", self.name, url, e)
            raise SourceUnavailableError(f"{self.name} request failed: {e}") from e

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET a JSON object.

        Raises:
            SourceUnavailableError: On request failure, invalid JSON or a non-object body
        """
        resp = self._get(url, params=params)
        try:
            data = resp.json()
        except ValueError as e:
            log.warning("%s: invalid JSON from %s: %s", self.name, url, e)
            raise SourceUnavailableError(f"{self.name} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise SourceUnavailableError(f"{self.name} returned non-dict JSON")
        return data

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"
