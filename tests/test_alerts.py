# tests/test_alerts.py
"""
Alerting Tests - Evaluation Eligibility and Dispatch Outcome Handling

Files that this module USES:
- pricewatch.application.alerts (AlertEvaluator)
- pricewatch.application.dispatcher (NotificationDispatcher)
- unittest.mock (AsyncMock delivery)
- pytest (testing framework)
"""
import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from pricewatch.application.alerts import AlertEvaluator
from pricewatch.application.dispatcher import NotificationDispatcher
from pricewatch.domain.errors import DeliveryTransientError
from pricewatch.domain.models import (
    Cooldown,
    DeliveryResult,
    DeliveryStatus,
    Direction,
    Observation,
    Rule,
    Subscription,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _obs(instrument, value, previous):
    delta = value - previous
    return Observation(instrument, value, "EGP", previous, delta, delta / previous * 100, NOW, "test")


def _subscription(user_id, rules, last_notified_minutes_ago=None, token="100", language="en"):
    last = NOW - timedelta(minutes=last_notified_minutes_ago) if last_notified_minutes_ago is not None else None
    return Subscription(
        user_id=user_id,
        delivery_token=token,
        language=language,
        rules=rules,
        cooldown=Cooldown(min_interval_ms=300_000, last_notified_at=last),
    )


class TestAlertEvaluator:
    def _evaluator(self, store):
        return AlertEvaluator(store, clock=lambda: NOW)

    def test_above_threshold_fires(self, store, gold):
        store.save_subscription(_subscription("1", [Rule(gold, 100.0, Direction.ABOVE)]))

        matches = asyncio.run(self._evaluator(store).evaluate(_obs(gold, 101.0, 100.0)))

        assert [m.subscription.user_id for m in matches] == ["1"]

    def test_below_threshold_does_not_fire_above_rule(self, store, gold):
        store.save_subscription(_subscription("1", [Rule(gold, 100.0, Direction.ABOVE)]))

        assert asyncio.run(self._evaluator(store).evaluate(_obs(gold, 99.0, 100.0))) == []

    def test_cooldown_two_minutes_blocks(self, store, gold):
        store.save_subscription(_subscription("1", [Rule(gold, 0.0)], last_notified_minutes_ago=2))

        assert asyncio.run(self._evaluator(store).evaluate(_obs(gold, 101.0, 100.0))) == []

    def test_cooldown_six_minutes_allows(self, store, gold):
        store.save_subscription(_subscription("1", [Rule(gold, 0.0)], last_notified_minutes_ago=6))

        assert len(asyncio.run(self._evaluator(store).evaluate(_obs(gold, 101.0, 100.0)))) == 1

    def test_unchanged_observation_never_loads_subscriptions(self, gold):
        class ExplodingStore:
            def find_enabled_subscriptions(self, require_token=True):
                raise AssertionError("should not be called")

        unchanged = Observation(gold, 100.0, "EGP", 100.0, 0.0, 0.0, NOW, "test")
        assert asyncio.run(AlertEvaluator(ExplodingStore()).evaluate(unchanged)) == []

    def test_inert_and_disabled_subscriptions_skipped(self, store, gold):
        store.save_subscription(_subscription("1", [Rule(gold, 0.0)], token=None))
        paused = _subscription("2", [Rule(gold, 0.0)])
        paused.cooldown.enabled = False
        store.save_subscription(paused)

        assert asyncio.run(self._evaluator(store).evaluate(_obs(gold, 101.0, 100.0))) == []

    def test_one_match_per_subscription_per_pass(self, store, gold, usd_egp):
        store.save_subscription(_subscription("1", [Rule(gold, 0.0), Rule(usd_egp, 0.0)]))

        matches = asyncio.run(
            self._evaluator(store).evaluate_all([_obs(gold, 101.0, 100.0), _obs(usd_egp, 49.0, 48.0)])
        )

        assert len(matches) == 1
        assert matches[0].rule.target == gold


class TestNotificationDispatcher:
    def _dispatcher(self, store, result):
        delivery = AsyncMock()
        delivery.send.return_value = result
        return NotificationDispatcher(store, delivery, clock=lambda: NOW), delivery

    def test_success_advances_cooldown(self, store, gold):
        sub = _subscription("1", [Rule(gold, 0.0)])
        store.save_subscription(sub)
        dispatcher, delivery = self._dispatcher(store, DeliveryResult.success())

        result = asyncio.run(dispatcher.dispatch(sub, sub.rules[0], _obs(gold, 101.0, 100.0)))

        assert result.ok
        assert store.find_subscription("1").cooldown.last_notified_at == NOW
        token, title, body, data = delivery.send.call_args.args
        assert token == "100"
        assert "Egypt" in body and "+1.00%" in body
        assert data["instrument"] == "gold:egypt"

    def test_localized_rendering(self, store, gold):
        sub = _subscription("1", [Rule(gold, 0.0)], language="ar")
        dispatcher, delivery = self._dispatcher(store, DeliveryResult.success())

        asyncio.run(dispatcher.dispatch(sub, sub.rules[0], _obs(gold, 101.0, 100.0)))

        _, title, body, _ = delivery.send.call_args.args
        assert "مصر" in body

    def test_permanent_failure_clears_token_keeps_last_notified(self, store, gold):
        earlier = NOW - timedelta(hours=1)
        sub = _subscription("1", [Rule(gold, 0.0)])
        sub.cooldown.last_notified_at = earlier
        store.save_subscription(sub)
        dispatcher, _ = self._dispatcher(store, DeliveryResult.permanent("token-not-registered"))

        result = asyncio.run(dispatcher.dispatch(sub, sub.rules[0], _obs(gold, 101.0, 100.0)))

        assert result.status is DeliveryStatus.PERMANENT_FAILURE
        saved = store.find_subscription("1")
        assert saved.delivery_token is None
        assert saved.cooldown.last_notified_at == earlier

    def test_dead_token_code_is_permanent_even_if_reported_transient(self, store, gold):
        sub = _subscription("1", [Rule(gold, 0.0)])
        store.save_subscription(sub)
        dispatcher, _ = self._dispatcher(store, DeliveryResult.transient("invalid-token"))

        asyncio.run(dispatcher.dispatch(sub, sub.rules[0], _obs(gold, 101.0, 100.0)))

        assert store.find_subscription("1").delivery_token is None

    def test_transient_failure_raises_and_mutates_nothing(self, store, gold):
        sub = _subscription("1", [Rule(gold, 0.0)])
        store.save_subscription(sub)
        dispatcher, _ = self._dispatcher(store, DeliveryResult.transient("network-error"))

        with pytest.raises(DeliveryTransientError) as exc_info:
            asyncio.run(dispatcher.dispatch(sub, sub.rules[0], _obs(gold, 101.0, 100.0)))

        assert exc_info.value.code == "network-error"
        saved = store.find_subscription("1")
        assert saved.delivery_token == "100"
        assert saved.cooldown.last_notified_at is None

    def test_digest_skipped_while_cooling_down(self, store, gold):
        sub = _subscription("1", [], last_notified_minutes_ago=2)
        dispatcher, delivery = self._dispatcher(store, DeliveryResult.success())

        assert asyncio.run(dispatcher.dispatch_digest(sub, [_obs(gold, 101.0, 100.0)])) is None
        delivery.send.assert_not_called()

    def test_digest_delivered(self, store, gold, usd_egp):
        sub = _subscription("1", [])
        store.save_subscription(sub)
        dispatcher, delivery = self._dispatcher(store, DeliveryResult.success())

        result = asyncio.run(dispatcher.dispatch_digest(sub, [_obs(usd_egp, 49.0, 48.0), _obs(gold, 101.0, 100.0)]))

        assert result.ok
        _, _, body, data = delivery.send.call_args.args
        assert body.index("Gold") < body.index("USD/EGP")
        assert data["type"] == "digest"
