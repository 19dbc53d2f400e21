# src/pricewatch/adapters/providers/metalpriceapi.py
"""
MetalpriceAPI Provider for Gold and Silver Prices

This module implements the MetalpriceAPI client for fetching spot gold and
silver prices quoted in a country's currency, converted from troy ounces to
grams.

Files that USE this module:
- pricewatch.app (first commodity source in the fallback order)
- tests.test_sources (unit tests)

Files that this module USES:
- pricewatch.adapters.providers.base (SourceAdapter base class)
- pricewatch.domain.catalog (unit currency, troy ounce conversion)
"""
import logging
from typing import Optional

from pricewatch.adapters.providers.base import SourceAdapter
from pricewatch.domain import catalog
from pricewatch.domain.errors import SourceUnavailableError
from pricewatch.domain.models import Instrument, InstrumentKind, Quote
from pricewatch.shared.rate_limiter import HostThrottle

log = logging.getLogger(__name__)

METAL_CODES = {"gold": "XAU", "silver": "XAG"}


class MetalPriceAPIProvider(SourceAdapter):
    """
    MetalpriceAPI client.

    The API quotes metals as "units of metal per 1 base currency" (rates.XAU)
    and, on newer plans, also the inverse as rates.<BASE><CODE>. Either is
    converted to a price per gram in the base currency.
    """

    name = "metalpriceapi"
    kinds = (InstrumentKind.COMMODITY,)
    ceiling = 1_000_000.0

    def __init__(self, api_key: str, base_url: str = "https://api.metalpriceapi.com/v1/latest",
                 timeout: int = 10, throttle: Optional[HostThrottle] = None):
        """
        Args:
            api_key: MetalpriceAPI key; without one the provider is skipped
            base_url: Latest-rates endpoint
            timeout: HTTP timeout in seconds
            throttle: Optional per-host spacing
        """
        super().__init__(timeout=timeout, throttle=throttle)
        self.api_key = api_key
        self.url = base_url

    def supports(self, instrument: Instrument) -> bool:
        return bool(self.api_key) and super().supports(instrument) and instrument.symbol in METAL_CODES

    def fetch(self, instrument: Instrument) -> Quote:
        """
        Fetch the spot price per gram for a metal in a country's currency.

        Raises:
            SourceUnavailableError: If the API fails or the response lacks the metal
        """
        currency = catalog.unit_currency(instrument)
        code = METAL_CODES[instrument.symbol]
        data = self._get_json(
            self.url,
            params={"api_key": self.api_key, "base": currency, "currencies": f"{code},USD,EUR"},
        )
        if not data.get("success"):
            error = data.get("error") or {}
            raise SourceUnavailableError(f"metalpriceapi error: {error.get('info') or error or 'unknown'}")

        rates = data.get("rates") or {}
        price_per_ounce: Optional[float] = None
        try:
            inverse = rates.get(f"{currency}{code}")
            if inverse is not None:
                price_per_ounce = float(inverse)
            elif rates.get(code):
                price_per_ounce = 1.0 / float(rates[code])
        except (TypeError, ValueError, ZeroDivisionError) as e:
            raise SourceUnavailableError(f"metalpriceapi schema error: {e}") from e

        if price_per_ounce is None:
            raise SourceUnavailableError(f"metalpriceapi response missing rates.{code}")

        price_per_gram = round(price_per_ounce / catalog.TROY_OUNCE_GRAMS, 4)
        log.info("MetalpriceAPI: %s = %s %s/g", instrument, price_per_gram, currency)
        return self._quote(instrument, price_per_gram)
