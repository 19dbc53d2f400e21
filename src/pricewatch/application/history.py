# src/pricewatch/application/history.py
"""
History Store - Diffed, Bounded Observation Series

This module turns quotes into Observations (delta and percent change against
the previous observation of the same instrument), persists them, and keeps
at most retention_limit observations per instrument. Writes for one
instrument are serialized; different instruments proceed in parallel.

Files that USE this module:
- pricewatch.application.scheduler (record, prune_all, latest)
- pricewatch.adapters.telegram.handlers (/prices and the history button)
- tests.test_history (unit tests)

Files that this module USES:
- pricewatch.adapters.persistence.base (DocumentStore boundary)
- pricewatch.domain.models (Observation, Quote)
- pricewatch.domain.errors (PersistenceError)
"""
from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from pricewatch.adapters.persistence.base import DocumentStore
from pricewatch.domain.errors import PersistenceError
from pricewatch.domain.models import Instrument, Observation, Quote

log = logging.getLogger(__name__)

DEFAULT_RETENTION_LIMIT = 100


async def call_store(fn: Callable[..., Any], *args: Any, timeout: float = 10.0) -> Any:
    """
    Run a synchronous store call in a worker thread with a timeout.

    Raises:
        PersistenceError: On timeout or any I/O failure in the store
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise PersistenceError(f"{getattr(fn, '__name__', 'store call')} timed out after {timeout}s") from e
    except PersistenceError:
        raise
    except OSError as e:
        raise PersistenceError(f"{getattr(fn, '__name__', 'store call')} failed: {e}") from e


class HistoryStore:
    """Observation series per instrument, bounded to the newest retention_limit entries."""

    def __init__(self, store: DocumentStore, retention_limit: int = DEFAULT_RETENTION_LIMIT,
                 timeout: float = 10.0):
        if retention_limit < 1:
            raise ValueError("retention_limit must be at least 1")
        self.store = store
        self.retention_limit = retention_limit
        self.timeout = timeout
        self._locks: Dict[Instrument, asyncio.Lock] = {}

    def _lock_for(self, instrument: Instrument) -> asyncio.Lock:
        return self._locks.setdefault(instrument, asyncio.Lock())

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        return await call_store(fn, *args, timeout=self.timeout)

    async def record(self, instrument: Instrument, quote: Quote) -> Observation:
        """
        Record a quote as the newest observation of an instrument.

        The first observation of an instrument has delta and percent change 0.
        A quote not strictly newer than the previous observation is stamped one
        microsecond after it, keeping the series strictly ordered.

        Returns:
            The persisted Observation

        Raises:
            ValueError: If the quote belongs to another instrument
            PersistenceError: If the store fails or times out
        """
        if quote.instrument != instrument:
            raise ValueError(f"Quote for {quote.instrument} cannot be recorded under {instrument}")

        async with self._lock_for(instrument):
            previous: Optional[Observation] = await self._call(self.store.query_latest, instrument)

            observed_at = quote.retrieved_at
            if previous is None:
                delta = 0.0
                percent = 0.0
                previous_value = None
            else:
                if observed_at <= previous.observed_at:
                    observed_at = previous.observed_at + timedelta(microseconds=1)
                previous_value = previous.value
                delta = quote.value - previous.value
                percent = delta / previous.value * 100 if previous.value else 0.0

            observation = Observation(
                instrument=instrument,
                value=quote.value,
                unit_currency=quote.unit_currency,
                previous_value=previous_value,
                delta=delta,
                percent_delta=percent,
                observed_at=observed_at,
                source_id=quote.source_id,
            )
            await self._call(self.store.insert_observation, observation)
            pruned = await self._call(self.store.delete_older_than_top_k, instrument, self.retention_limit)

        log.info(
            "Recorded %s = %s %s (%+.2f%%, source=%s, pruned=%d)",
            instrument, observation.value, observation.unit_currency,
            observation.percent_delta, observation.source_id, pruned,
        )
        return observation

    async def latest(self, instrument: Instrument) -> Optional[Observation]:
        return await self._call(self.store.query_latest, instrument)

    async def history(self, instrument: Instrument, limit: Optional[int] = None) -> List[Observation]:
        """
        Newest-first observations of one instrument.

        Args:
            limit: Maximum entries; defaults to (and is capped at) the retention limit
        """
        limit = self.retention_limit if limit is None else min(limit, self.retention_limit)
        if limit <= 0:
            return []
        return await self._call(self.store.query_history, instrument, limit)

    async def prune(self, instrument: Instrument) -> int:
        async with self._lock_for(instrument):
            return await self._call(self.store.delete_older_than_top_k, instrument, self.retention_limit)

    async def prune_all(self) -> int:
        """
        Enforce the retention limit on every stored instrument.

        Idempotent: a second run right after the first deletes nothing.

        Returns:
            Total number of observations deleted
        """
        instruments = await self._call(self.store.list_instruments)
        total = 0
        for instrument in instruments:
            total += await self.prune(instrument)
        log.info("Retention sweep: %d instruments, %d observations deleted", len(instruments), total)
        return total
