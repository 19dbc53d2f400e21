# src/pricewatch/application/alerts.py
"""
Alert Evaluator - Match Observations Against Subscriber Rules

Read-only: finds which subscriptions should be notified about new
observations. A subscription is eligible only if notifications are enabled,
it still has a delivery token and its cooldown has elapsed. At most one
match is produced per subscription per pass; the first rule that fires wins.

Files that USE this module:
- pricewatch.application.scheduler (evaluate_all per collection cycle, digest recipients)
- tests.test_alerts (unit tests)

Files that this module USES:
- pricewatch.adapters.persistence.base (DocumentStore for subscriptions)
- pricewatch.application.history (call_store timeout wrapper)
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List

from pricewatch.adapters.persistence.base import DocumentStore
from pricewatch.application.history import call_store
from pricewatch.domain.models import AlertMatch, Observation, Subscription

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertEvaluator:
    def __init__(self, store: DocumentStore, timeout: float = 10.0,
                 clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.timeout = timeout
        self._clock = clock

    async def eligible_subscriptions(self) -> List[Subscription]:
        """Subscriptions that may be notified right now."""
        subscriptions = await call_store(self.store.find_enabled_subscriptions, True, timeout=self.timeout)
        now = self._clock()
        return [s for s in subscriptions if s.can_notify(now)]

    async def evaluate(self, observation: Observation) -> List[AlertMatch]:
        return await self.evaluate_all([observation])

    async def evaluate_all(self, observations: Iterable[Observation]) -> List[AlertMatch]:
        """
        Evaluate a whole batch of observations in one pass.

        Observations without a price change are ignored before any
        subscription is loaded.

        Raises:
            PersistenceError: If subscriptions cannot be loaded
        """
        changed = [o for o in observations if o.changed]
        if not changed:
            return []

        matches: List[AlertMatch] = []
        for subscription in await self.eligible_subscriptions():
            match = self._first_match(subscription, changed)
            if match is not None:
                matches.append(match)

        log.info("Evaluated %d changed observations: %d matches", len(changed), len(matches))
        return matches

    @staticmethod
    def _first_match(subscription: Subscription, observations: List[Observation]):
        for rule in subscription.rules:
            for observation in observations:
                if rule.triggered_by(observation):
                    return AlertMatch(subscription=subscription, rule=rule, observation=observation)
        return None
