# src/pricewatch/adapters/providers/exchangerate_api.py
"""
ExchangeRate-API Provider for Currency Pairs

This module implements the open ExchangeRate-API client (no key required)
for fetching the latest mid rate of a currency pair.

Files that USE this module:
- pricewatch.app (first FX source in the fallback order)
- tests.test_sources (unit tests)

Files that this module USES:
- pricewatch.adapters.providers.base (SourceAdapter base class)
"""
import logging
from typing import Optional

from pricewatch.adapters.providers.base import SourceAdapter
from pricewatch.domain.errors import SourceUnavailableError
from pricewatch.domain.models import Instrument, InstrumentKind, Quote
from pricewatch.shared.rate_limiter import HostThrottle

log = logging.getLogger(__name__)


class ExchangeRateAPIProvider(SourceAdapter):
    """
    ExchangeRate-API client.

    Expects: {"result": "success", "base_code": "USD", "rates": {"EGP": 48.6, ...}}
    """

    name = "exchangerate-api"
    kinds = (InstrumentKind.FX,)
    ceiling = 100_000.0

    def __init__(self, base_url: str = "https://open.er-api.com/v6/latest",
                 timeout: int = 10, throttle: Optional[HostThrottle] = None):
        super().__init__(timeout=timeout, throttle=throttle)
        self.base_url = base_url.rstrip("/")

    def fetch(self, instrument: Instrument) -> Quote:
        """
        Fetch units of quote currency per one unit of base currency.

        Raises:
            SourceUnavailableError: If the API fails or the pair is missing
        """
        data = self._get_json(f"{self.base_url}/{instrument.symbol}")
        if data.get("result") != "success":
            raise SourceUnavailableError(
                f"exchangerate-api error: {data.get('error-type') or data.get('result')}"
            )
        rates = data.get("rates")
        if not isinstance(rates, dict) or instrument.market not in rates:
            raise SourceUnavailableError(f"exchangerate-api response missing rates.{instrument.market}")
        try:
            rate = float(rates[instrument.market])
        except (TypeError, ValueError) as e:
            raise SourceUnavailableError(f"exchangerate-api schema error: {e}") from e

        log.info("ExchangeRate-API: %s = %s", instrument, rate)
        return self._quote(instrument, rate)
