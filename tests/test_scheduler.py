# tests/test_scheduler.py
"""
Scheduler Tests - Collection Cycles, Retention Sweeps and Digests

Files that this module USES:
- pricewatch.application.scheduler (CollectionScheduler)
- pricewatch.application.history / alerts / dispatcher (real services over a temp file store)
- unittest.mock (AsyncMock delivery)
- pytest (testing framework)
"""
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from pricewatch.application.alerts import AlertEvaluator
from pricewatch.application.dispatcher import NotificationDispatcher
from pricewatch.application.history import HistoryStore
from pricewatch.application.scheduler import CollectionScheduler
from pricewatch.domain.errors import SourceUnavailableError
from pricewatch.domain.models import DeliveryResult, Quote, Rule, Subscription


class FakeCache:
    """Stands in for QuoteCache: returns configured values, or raises configured errors."""

    def __init__(self, values, source="test"):
        self.values = dict(values)
        self.source = source

    async def get_or_fetch(self, instrument):
        value = self.values[instrument.key]
        if isinstance(value, Exception):
            raise value
        return Quote(instrument, value, "EGP", datetime.now(timezone.utc), self.source)


def _scheduler(store, instruments, cache, result=None):
    delivery = AsyncMock()
    delivery.send.return_value = result or DeliveryResult.success()
    scheduler = CollectionScheduler(
        instruments,
        cache,
        HistoryStore(store, retention_limit=3),
        AlertEvaluator(store),
        NotificationDispatcher(store, delivery),
        max_workers=2,
    )
    return scheduler, delivery


class TestCollectionCycle:
    def test_records_every_instrument(self, store, gold, usd_egp):
        cache = FakeCache({gold.key: 3300.0, usd_egp.key: 48.0})
        scheduler, _ = _scheduler(store, [gold, usd_egp], cache)

        report = asyncio.run(scheduler.run_collection_cycle())

        assert report.instruments == 2
        assert report.recorded == 2
        assert report.failures == 0
        assert store.query_latest(gold).value == 3300.0
        assert scheduler.last_report is report

    def test_failing_instrument_is_isolated(self, store, gold, usd_egp):
        cache = FakeCache({gold.key: RuntimeError("boom"), usd_egp.key: 48.0})
        scheduler, _ = _scheduler(store, [gold, usd_egp], cache)

        report = asyncio.run(scheduler.run_collection_cycle())

        assert report.recorded == 1
        assert report.failures == 1
        assert store.query_latest(usd_egp).value == 48.0

    def test_fallback_quotes_counted(self, store, gold):
        scheduler, _ = _scheduler(store, [gold], FakeCache({gold.key: 3250.0}, source="fallback"))

        report = asyncio.run(scheduler.run_collection_cycle())

        assert report.fallback_quotes == 1
        assert store.query_latest(gold).source_id == "fallback"

    def test_price_change_notifies_subscriber(self, store, gold):
        store.save_subscription(Subscription(user_id="1", delivery_token="100", rules=[Rule(gold, 0.0)]))
        cache = FakeCache({gold.key: 3300.0})
        scheduler, delivery = _scheduler(store, [gold], cache)

        async def two_cycles():
            first = await scheduler.run_collection_cycle()
            cache.values[gold.key] = 3350.0
            second = await scheduler.run_collection_cycle()
            return first, second

        first, second = asyncio.run(two_cycles())

        # the first observation has no predecessor, so nothing changed yet
        assert first.matched == 0
        assert second.matched == 1
        assert second.delivered == 1
        delivery.send.assert_awaited_once()
        assert store.find_subscription("1").cooldown.last_notified_at is not None

    def test_permanent_failure_prunes_token(self, store, gold):
        store.save_subscription(Subscription(user_id="1", delivery_token="100", rules=[Rule(gold, 0.0)]))
        cache = FakeCache({gold.key: 3300.0})
        scheduler, _ = _scheduler(store, [gold], cache, DeliveryResult.permanent("token-not-registered"))

        async def two_cycles():
            await scheduler.run_collection_cycle()
            cache.values[gold.key] = 3350.0
            return await scheduler.run_collection_cycle()

        report = asyncio.run(two_cycles())

        assert report.tokens_pruned == 1
        assert store.find_subscription("1").delivery_token is None

    def test_transient_failure_does_not_raise(self, store, gold):
        store.save_subscription(Subscription(user_id="1", delivery_token="100", rules=[Rule(gold, 0.0)]))
        cache = FakeCache({gold.key: 3300.0})
        scheduler, _ = _scheduler(store, [gold], cache, DeliveryResult.transient("network-error"))

        async def two_cycles():
            await scheduler.run_collection_cycle()
            cache.values[gold.key] = 3350.0
            return await scheduler.run_collection_cycle()

        report = asyncio.run(two_cycles())

        assert report.delivered == 0
        assert report.failures == 1
        saved = store.find_subscription("1")
        assert saved.delivery_token == "100"
        assert saved.cooldown.last_notified_at is None

    def test_overlapping_cycle_is_skipped(self, store, gold):
        scheduler, _ = _scheduler(store, [gold], FakeCache({gold.key: 3300.0}))

        async def overlapping():
            async with scheduler._collection_lock:
                return await scheduler.run_collection_cycle()

        assert asyncio.run(overlapping()) is None
        assert store.query_latest(gold) is None


class TestRetentionAndDigest:
    def test_retention_sweep(self, store, gold):
        cache = FakeCache({gold.key: SourceUnavailableError("unused")})
        scheduler, _ = _scheduler(store, [gold], cache)
        history = HistoryStore(store, retention_limit=100)

        async def fill():
            for i in range(5):
                await history.record(gold, Quote(gold, 100.0 + i, "EGP", datetime.now(timezone.utc), "test"))

        asyncio.run(fill())

        assert asyncio.run(scheduler.run_retention_sweep()) == 2
        assert asyncio.run(scheduler.run_retention_sweep()) == 0
        assert len(store.query_history(gold, 10)) == 3

    def test_digest_goes_to_eligible_subscribers(self, store, gold, usd_egp):
        store.save_subscription(Subscription(user_id="1", delivery_token="100"))
        store.save_subscription(Subscription(user_id="2", delivery_token=None))
        cache = FakeCache({gold.key: 3300.0, usd_egp.key: 48.0})
        scheduler, delivery = _scheduler(store, [gold, usd_egp], cache)

        async def scenario():
            await scheduler.run_collection_cycle()
            return await scheduler.run_digest_cycle()

        assert asyncio.run(scenario()) == 1
        token, _, body, data = delivery.send.call_args.args
        assert token == "100"
        assert data["instruments"] == "gold:egypt,USD/EGP"

    def test_overlapping_digest_is_skipped(self, store, gold):
        scheduler, delivery = _scheduler(store, [gold], FakeCache({gold.key: 3300.0}))

        async def overlapping():
            async with scheduler._digest_lock:
                return await scheduler.run_digest_cycle()

        assert asyncio.run(overlapping()) is None
        delivery.send.assert_not_called()
