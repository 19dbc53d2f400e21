# src/pricewatch/application/fetcher.py
"""
Fallback Fetcher - Multi-source Quote Acquisition

This module tries the configured source adapters for an instrument in a fixed
order and returns the first plausible quote. When every source fails it
returns the catalog's static default, tagged source_id="fallback", so a
collection cycle always has a value to record.

Adapters are synchronous (requests + BeautifulSoup); each call runs in a
worker thread bounded by a per-source timeout.

Files that USE this module:
- pricewatch.application.quote_cache (QuoteCache calls fetch_quote on a miss)
- pricewatch.app (builds the fetcher with the ordered adapter list)
- tests.test_fetcher (unit tests)

Files that this module USES:
- pricewatch.adapters.providers.base (SourceAdapter interface)
- pricewatch.domain.catalog (static default quotes)
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Sequence

from pricewatch.adapters.providers.base import SourceAdapter
from pricewatch.domain import catalog
from pricewatch.domain.models import Instrument, Quote

log = logging.getLogger(__name__)


class FallbackFetcher:
    """
    Ordered chain of source adapters with a static last resort.

    The order of the adapter list is the fallback order; adapters that don't
    support an instrument are skipped.
    """

    def __init__(self, adapters: Sequence[SourceAdapter], source_timeout: float = 15.0):
        """
        Args:
            adapters: Adapters in preference order, any mix of commodity and FX sources
            source_timeout: Seconds to wait for one adapter before moving on
        """
        self.adapters = list(adapters)
        self.source_timeout = source_timeout

    def adapters_for(self, instrument: Instrument) -> List[SourceAdapter]:
        return [adapter for adapter in self.adapters if adapter.supports(instrument)]

    async def fetch_quote(self, instrument: Instrument) -> Quote:
        """
        Get a quote for one instrument.

        Source failures never propagate: every rejected source is logged at
        WARNING and the chain moves on. Does not touch the cache or history.

        The instrument must be in the catalog; Settings and the /alert
        command only admit catalog instruments.

        Returns:
            First plausible quote, or the static default if all sources failed

        Raises:
            ValueError: If the instrument is not in the catalog, before any source is tried
        """
        if not catalog.is_supported(instrument):
            raise ValueError(f"{instrument} is not in the catalog, no static default exists")

        for adapter in self.adapters_for(instrument):
            try:
                quote = await asyncio.wait_for(
                    asyncio.to_thread(adapter.fetch, instrument),
                    timeout=self.source_timeout,
                )
            except asyncio.TimeoutError:
                log.warning("Source %s timed out after %.1fs for %s", adapter.name, self.source_timeout, instrument)
                continue
            except Exception as e:
                log.warning("Source %s failed for %s: %s", adapter.name, instrument, e)
                continue

            if quote.instrument != instrument or not adapter.is_plausible(quote.value):
                log.warning(
                    "Source %s returned an implausible quote for %s: %r (ceiling %s)",
                    adapter.name, instrument, quote.value, adapter.ceiling,
                )
                continue

            log.debug("Quote for %s from %s: %s", instrument, adapter.name, quote.value)
            return quote

        log.warning("All sources failed for %s, using static default", instrument)
        return catalog.default_quote(instrument)
