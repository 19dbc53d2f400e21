# tests/test_history.py
"""
History Tests - File Store Persistence, Delta Computation and Retention

Files that this module USES:
- pricewatch.adapters.persistence.file_store (FileDocumentStore)
- pricewatch.application.history (HistoryStore)
- unittest.mock (Mock for failing stores)
- pytest (testing framework)
"""
import asyncio
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from pricewatch.application.history import HistoryStore
from pricewatch.domain.errors import PersistenceError
from pricewatch.domain.models import Cooldown, Instrument, Observation, Quote, Subscription

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _quote(instrument, value, minutes=0, source="test"):
    return Quote(instrument, value, "EGP", T0 + timedelta(minutes=minutes), source)


def _observation(instrument, value, minutes):
    return Observation(instrument, value, "EGP", None, 0.0, 0.0, T0 + timedelta(minutes=minutes), "test")


class TestFileDocumentStore:
    def test_latest_and_history_order(self, store, gold):
        for i, value in enumerate([1.0, 2.0, 3.0]):
            store.insert_observation(_observation(gold, value, i))

        assert store.query_latest(gold).value == 3.0
        assert [o.value for o in store.query_history(gold, 2)] == [3.0, 2.0]

    def test_delete_older_than_top_k(self, store, gold):
        for i in range(5):
            store.insert_observation(_observation(gold, float(i + 1), i))

        assert store.delete_older_than_top_k(gold, 3) == 2
        assert store.delete_older_than_top_k(gold, 3) == 0
        assert [o.value for o in store.query_history(gold, 10)] == [5.0, 4.0, 3.0]

    def test_series_are_partitioned(self, store, gold, usd_egp):
        store.insert_observation(_observation(gold, 3300.0, 0))
        store.insert_observation(_observation(usd_egp, 48.0, 0))

        assert store.query_latest(gold).value == 3300.0
        assert set(store.list_instruments()) == {gold, usd_egp}

    def test_unknown_instrument_is_empty(self, store, gold):
        assert store.query_latest(gold) is None
        assert store.query_history(gold, 5) == []

    def test_corrupt_series_backed_up_and_treated_as_empty(self, store, gold):
        store.insert_observation(_observation(gold, 1.0, 0))
        path = store.observations_dir / f"{gold.slug}.json"
        path.write_text("{not json", encoding="utf-8")

        assert store.query_latest(gold) is None
        assert path.with_suffix(".json.corrupt").exists()

    def test_subscriptions(self, store):
        store.save_subscription(Subscription(user_id="1", delivery_token="100"))
        store.save_subscription(Subscription(user_id="2", delivery_token=None))
        store.save_subscription(Subscription(user_id="3", delivery_token="300", cooldown=Cooldown(enabled=False)))

        assert store.find_subscription("1").delivery_token == "100"
        assert store.find_subscription("404") is None
        assert [s.user_id for s in store.find_enabled_subscriptions()] == ["1"]
        assert {s.user_id for s in store.find_enabled_subscriptions(require_token=False)} == {"1", "2"}


class TestHistoryStore:
    def test_first_observation_has_zero_delta(self, store, gold):
        history = HistoryStore(store)

        obs = asyncio.run(history.record(gold, _quote(gold, 3300.0)))

        assert obs.previous_value is None
        assert obs.delta == 0
        assert obs.percent_delta == 0

    def test_delta_against_previous(self, store, gold):
        history = HistoryStore(store)

        async def scenario():
            await history.record(gold, _quote(gold, 100.0, 0))
            return await history.record(gold, _quote(gold, 101.0, 15))

        obs = asyncio.run(scenario())

        assert obs.previous_value == 100.0
        assert obs.delta == 101.0 - 100.0
        assert obs.percent_delta == pytest.approx(1.0)

    def test_delta_is_exact_difference(self, store):
        jpy_egp = Instrument.fx("JPY", "EGP")
        history = HistoryStore(store)

        async def scenario():
            await history.record(jpy_egp, _quote(jpy_egp, 0.1, 0))
            return await history.record(jpy_egp, _quote(jpy_egp, 0.3, 15))

        obs = asyncio.run(scenario())

        assert obs.delta == 0.3 - 0.1
        assert store.query_latest(jpy_egp).delta == 0.3 - 0.1

    def test_tiny_move_still_counts_as_change(self, store):
        jpy_egp = Instrument.fx("JPY", "EGP")
        history = HistoryStore(store)

        async def scenario():
            await history.record(jpy_egp, _quote(jpy_egp, 0.206, 0))
            return await history.record(jpy_egp, _quote(jpy_egp, 0.206 + 1e-11, 15))

        obs = asyncio.run(scenario())

        assert obs.changed
        assert obs.delta == (0.206 + 1e-11) - 0.206

    def test_fallback_provenance_kept(self, store, gold):
        history = HistoryStore(store)
        obs = asyncio.run(history.record(gold, _quote(gold, 3250.0, source="fallback")))
        assert obs.source_id == "fallback"
        assert store.query_latest(gold).source_id == "fallback"

    def test_retention_bound_and_descending_order(self, store, gold):
        history = HistoryStore(store, retention_limit=5)

        async def scenario():
            for i in range(8):
                await history.record(gold, _quote(gold, 100.0 + i, i))
            return await history.history(gold, 8)

        series = asyncio.run(scenario())

        assert len(series) == 5
        stamps = [o.observed_at for o in series]
        assert stamps == sorted(stamps, reverse=True)
        assert len(set(stamps)) == len(stamps)
        assert series[0].value == 107.0

    def test_history_shorter_than_retention(self, store, gold):
        history = HistoryStore(store, retention_limit=100)

        async def scenario():
            for i in range(3):
                await history.record(gold, _quote(gold, 100.0 + i, i))
            return await history.history(gold, 3)

        assert len(asyncio.run(scenario())) == 3

    def test_non_increasing_timestamp_is_bumped(self, store, gold):
        history = HistoryStore(store)

        async def scenario():
            first = await history.record(gold, _quote(gold, 100.0, 10))
            second = await history.record(gold, _quote(gold, 101.0, 5))
            return first, second

        first, second = asyncio.run(scenario())

        assert second.observed_at == first.observed_at + timedelta(microseconds=1)

    def test_concurrent_records_stay_ordered(self, store, gold):
        history = HistoryStore(store)

        async def scenario():
            await asyncio.gather(*(history.record(gold, _quote(gold, 100.0 + i, 0)) for i in range(5)))
            return await history.history(gold)

        series = asyncio.run(scenario())

        assert len(series) == 5
        stamps = [o.observed_at for o in series]
        assert len(set(stamps)) == 5
        # each observation is diffed against the one recorded just before it
        for newer, older in zip(series, series[1:]):
            assert newer.previous_value == older.value

    def test_prune_all_is_idempotent(self, store, gold, usd_egp):
        for i in range(6):
            store.insert_observation(_observation(gold, float(i + 1), i))
            store.insert_observation(_observation(usd_egp, float(i + 1), i))
        history = HistoryStore(store, retention_limit=4)

        first = asyncio.run(history.prune_all())
        second = asyncio.run(history.prune_all())

        assert first == 4
        assert second == 0
        assert len(store.query_history(gold, 10)) == 4

    def test_wrong_instrument_rejected(self, store, gold, usd_egp):
        with pytest.raises(ValueError):
            asyncio.run(HistoryStore(store).record(gold, _quote(usd_egp, 48.0)))

    def test_store_failure_surfaces_as_persistence_error(self, gold):
        broken = Mock()
        broken.query_latest.side_effect = OSError("disk full")

        with pytest.raises(PersistenceError):
            asyncio.run(HistoryStore(broken).record(gold, _quote(gold, 100.0)))

    def test_store_timeout_surfaces_as_persistence_error(self, gold):
        slow = Mock()
        slow.query_latest.side_effect = lambda instrument: time.sleep(0.3)

        with pytest.raises(PersistenceError, match="timed out"):
            asyncio.run(HistoryStore(slow, timeout=0.05).latest(gold))

    def test_invalid_retention_limit(self, store):
        with pytest.raises(ValueError):
            HistoryStore(store, retention_limit=0)
