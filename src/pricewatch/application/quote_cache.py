# src/pricewatch/application/quote_cache.py
"""
Quote Cache - Per-instrument TTL Cache in Front of the Fetcher

Keeps the most recent quote per instrument so repeated reads within the TTL
window don't hit upstream sources. Commodity and FX quotes have separate
TTLs. Fallback quotes are cached like any other.

Files that USE this module:
- pricewatch.application.scheduler (collection cycle reads through the cache)
- pricewatch.adapters.telegram.handlers (/refresh clears it)
- tests.test_fetcher (unit tests)

Files that this module USES:
- pricewatch.application.fetcher (FallbackFetcher on miss or expiry)
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Mapping, Optional

from pricewatch.application.fetcher import FallbackFetcher
from pricewatch.domain.models import Instrument, InstrumentKind, Quote

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    quote: Quote
    fetched_at: datetime


class QuoteCache:
    """TTL cache keyed by instrument; concurrent readers of one key share one fetch."""

    def __init__(
        self,
        fetcher: FallbackFetcher,
        ttls: Mapping[InstrumentKind, timedelta],
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.fetcher = fetcher
        self.ttls = dict(ttls)
        self._clock = clock
        self._entries: Dict[Instrument, CacheEntry] = {}
        self._locks: Dict[Instrument, asyncio.Lock] = {}

    def _ttl(self, instrument: Instrument) -> timedelta:
        return self.ttls.get(instrument.kind, timedelta(0))

    def _valid(self, entry: Optional[CacheEntry], instrument: Instrument) -> bool:
        return entry is not None and self._clock() - entry.fetched_at < self._ttl(instrument)

    def peek(self, instrument: Instrument) -> Optional[Quote]:
        """Cached quote if still valid, without fetching."""
        entry = self._entries.get(instrument)
        return entry.quote if self._valid(entry, instrument) else None

    async def get_or_fetch(self, instrument: Instrument) -> Quote:
        """
        Return the cached quote while valid, otherwise fetch and overwrite it.

        Returns:
            A quote (possibly the static fallback)
        """
        lock = self._locks.setdefault(instrument, asyncio.Lock())
        async with lock:
            entry = self._entries.get(instrument)
            if self._valid(entry, instrument):
                log.debug("Cache hit for %s", instrument)
                return entry.quote

            quote = await self.fetcher.fetch_quote(instrument)
            self._entries[instrument] = CacheEntry(quote=quote, fetched_at=self._clock())
            log.debug("Cache updated for %s (ttl=%s)", instrument, self._ttl(instrument))
            return quote

    def clear(self, kind: Optional[InstrumentKind] = None) -> int:
        """
        Drop cached quotes.

        Args:
            kind: Only drop entries of this instrument class; None drops everything

        Returns:
            Number of entries removed
        """
        if kind is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            stale = [instrument for instrument in self._entries if instrument.kind is kind]
            for instrument in stale:
                del self._entries[instrument]
            removed = len(stale)
        log.info("Cache cleared (%s): %d entries", kind.value if kind else "all", removed)
        return removed

    def __len__(self) -> int:
        return len(self._entries)
