# src/pricewatch/application/scheduler.py
"""
Collection Scheduler - Periodic Collection, Retention and Digest Runs

This module holds the three scheduled use-cases. Each has its own lock; a
tick that arrives while the previous run of the same schedule is still in
flight is skipped. Failures are isolated per instrument and per
subscription, and a run never raises.

Timers live in pricewatch.adapters.telegram.jobs (python-telegram-bot JobQueue).

Files that USE this module:
- pricewatch.adapters.telegram.jobs (collection_job, retention_job, digest_job)
- pricewatch.app (builds the scheduler)
- tests.test_scheduler (unit tests)

Files that this module USES:
- pricewatch.application.quote_cache (QuoteCache)
- pricewatch.application.history (HistoryStore)
- pricewatch.application.alerts (AlertEvaluator)
- pricewatch.application.dispatcher (NotificationDispatcher)
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from pricewatch.application.alerts import AlertEvaluator
from pricewatch.application.dispatcher import NotificationDispatcher
from pricewatch.application.history import HistoryStore
from pricewatch.application.quote_cache import QuoteCache
from pricewatch.domain.errors import DeliveryTransientError
from pricewatch.domain.models import AlertMatch, CycleReport, DeliveryStatus, Instrument, Observation

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CollectionScheduler:
    def __init__(
        self,
        instruments: Sequence[Instrument],
        cache: QuoteCache,
        history: HistoryStore,
        evaluator: AlertEvaluator,
        dispatcher: NotificationDispatcher,
        max_workers: int = 4,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.instruments = list(instruments)
        self.cache = cache
        self.history = history
        self.evaluator = evaluator
        self.dispatcher = dispatcher
        self.max_workers = max(1, max_workers)
        self._clock = clock
        self._collection_lock = asyncio.Lock()
        self._retention_lock = asyncio.Lock()
        self._digest_lock = asyncio.Lock()
        self.last_report: Optional[CycleReport] = None

    # ---------- collection ----------

    async def run_collection_cycle(self) -> Optional[CycleReport]:
        """
        Fetch and record every instrument, evaluate alerts, dispatch matches.

        Returns:
            CycleReport, or None if the previous cycle was still running
        """
        if self._collection_lock.locked():
            log.warning("Collection cycle skipped: previous cycle still running")
            return None

        async with self._collection_lock:
            report = CycleReport(started_at=self._clock(), instruments=len(self.instruments))
            semaphore = asyncio.Semaphore(self.max_workers)

            results = await asyncio.gather(
                *(self._collect_one(instrument, semaphore, report) for instrument in self.instruments)
            )
            observations = [o for o in results if o is not None]
            report.recorded = len(observations)

            try:
                matches = await self.evaluator.evaluate_all(observations)
            except Exception as e:
                log.error("Alert evaluation failed: %s", e, exc_info=True)
                report.failures += 1
                matches = []
            report.matched = len(matches)

            await asyncio.gather(*(self._dispatch_one(match, semaphore, report) for match in matches))

            log.info(
                "Collection cycle: %d instruments, %d recorded (%d fallback), %d matched, "
                "%d delivered, %d tokens pruned, %d failures",
                report.instruments, report.recorded, report.fallback_quotes, report.matched,
                report.delivered, report.tokens_pruned, report.failures,
            )
            self.last_report = report
            return report

    async def _collect_one(self, instrument: Instrument, semaphore: asyncio.Semaphore,
                           report: CycleReport) -> Optional[Observation]:
        async with semaphore:
            try:
                quote = await self.cache.get_or_fetch(instrument)
                if quote.is_fallback:
                    report.fallback_quotes += 1
                return await self.history.record(instrument, quote)
            except Exception as e:
                report.failures += 1
                log.warning("Collection failed for %s: %s", instrument, e)
                return None

    async def _dispatch_one(self, match: AlertMatch, semaphore: asyncio.Semaphore,
                            report: CycleReport) -> None:
        async with semaphore:
            try:
                result = await self.dispatcher.dispatch(match.subscription, match.rule, match.observation)
            except DeliveryTransientError as e:
                report.failures += 1
                log.warning("Alert for %s not delivered, will retry on a later change: %s",
                            match.subscription.user_id, e)
                return
            except Exception as e:
                report.failures += 1
                log.error("Dispatch failed for %s: %s", match.subscription.user_id, e, exc_info=True)
                return
        if result.ok:
            report.delivered += 1
        elif result.status is DeliveryStatus.PERMANENT_FAILURE:
            report.tokens_pruned += 1

    # ---------- retention ----------

    async def run_retention_sweep(self) -> Optional[int]:
        """
        Prune every instrument to the retention limit.

        Returns:
            Observations deleted, or None if skipped or failed
        """
        if self._retention_lock.locked():
            log.warning("Retention sweep skipped: previous sweep still running")
            return None
        async with self._retention_lock:
            try:
                return await self.history.prune_all()
            except Exception as e:
                log.error("Retention sweep failed: %s", e, exc_info=True)
                return None

    # ---------- digest ----------

    async def run_digest_cycle(self) -> Optional[int]:
        """
        Send the latest observation of every instrument to every eligible subscriber.

        Returns:
            Digests delivered, or None if skipped or nothing could be loaded
        """
        if self._digest_lock.locked():
            log.warning("Digest cycle skipped: previous digest still running")
            return None

        async with self._digest_lock:
            observations: List[Observation] = []
            for instrument in self.instruments:
                try:
                    latest = await self.history.latest(instrument)
                except Exception as e:
                    log.warning("Digest: cannot load latest %s: %s", instrument, e)
                    continue
                if latest is not None:
                    observations.append(latest)

            try:
                subscriptions = await self.evaluator.eligible_subscriptions()
            except Exception as e:
                log.error("Digest: cannot load subscriptions: %s", e, exc_info=True)
                return None

            semaphore = asyncio.Semaphore(self.max_workers)

            async def send(subscription) -> bool:
                async with semaphore:
                    try:
                        result = await self.dispatcher.dispatch_digest(subscription, observations)
                    except DeliveryTransientError as e:
                        log.warning("Digest for %s not delivered: %s", subscription.user_id, e)
                        return False
                    except Exception as e:
                        log.error("Digest failed for %s: %s", subscription.user_id, e, exc_info=True)
                        return False
                return result is not None and result.ok

            delivered = sum(await asyncio.gather(*(send(s) for s in subscriptions)))
            log.info("Digest cycle: %d instruments, %d/%d delivered",
                     len(observations), delivered, len(subscriptions))
            return delivered
