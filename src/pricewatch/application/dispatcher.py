# src/pricewatch/application/dispatcher.py
"""
Notification Dispatcher - Render, Deliver, Apply the Outcome

This module renders a notification in the subscriber's language, hands it to
the delivery capability and applies the outcome to the subscription:

- success: last_notified_at advances to now
- permanent failure (or a dead-token code): the delivery token is cleared,
  last_notified_at is left alone
- transient failure: nothing changes and DeliveryTransientError is raised

Files that USE this module:
- pricewatch.application.scheduler (dispatches matches and digests)
- tests.test_alerts (unit tests)

Files that this module USES:
- pricewatch.adapters.formatting.formatter (render_alert, render_digest)
- pricewatch.adapters.persistence.base (DocumentStore to save subscriptions)
- pricewatch.application.history (call_store timeout wrapper)
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Protocol, Sequence

from pricewatch.adapters.formatting.formatter import render_alert, render_digest
from pricewatch.adapters.persistence.base import DocumentStore
from pricewatch.application.history import call_store
from pricewatch.domain.errors import DeliveryTransientError
from pricewatch.domain.models import DeliveryResult, DeliveryStatus, Observation, Rule, Subscription

log = logging.getLogger(__name__)

# Failure codes that mean the token will never work again, whatever the status says
PERMANENT_CODES = frozenset({"token-not-registered", "invalid-token"})


class Delivery(Protocol):
    async def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> DeliveryResult: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDispatcher:
    def __init__(self, store: DocumentStore, delivery: Delivery, timeout: float = 10.0,
                 clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.delivery = delivery
        self.timeout = timeout
        self._clock = clock

    async def dispatch(self, subscription: Subscription, rule: Rule, observation: Observation) -> DeliveryResult:
        """
        Deliver one alert.

        Returns:
            Success, or a permanent failure after the token was cleared

        Raises:
            DeliveryTransientError: Delivery failed but may succeed later
            PersistenceError: The outcome could not be saved
        """
        title, body, data = render_alert(rule, observation, subscription.language)
        return await self._deliver(subscription, title, body, data)

    async def dispatch_digest(self, subscription: Subscription,
                              observations: Sequence[Observation]) -> Optional[DeliveryResult]:
        """
        Deliver the daily summary, honouring the same cooldown as alerts.

        Returns:
            None when the subscription is cooling down or inert, else the outcome

        Raises:
            DeliveryTransientError: Delivery failed but may succeed later
        """
        if not subscription.can_notify(self._clock()):
            log.debug("Digest skipped for %s (cooling down or inert)", subscription.user_id)
            return None
        title, body, data = render_digest(observations, subscription.language)
        return await self._deliver(subscription, title, body, data)

    async def _deliver(self, subscription: Subscription, title: str, body: str,
                       data: Dict[str, str]) -> DeliveryResult:
        token = subscription.delivery_token
        if not token:
            log.debug("Subscription %s has no delivery token", subscription.user_id)
            return DeliveryResult.permanent("invalid-token")

        result = await self.delivery.send(token, title, body, data)

        if result.ok:
            subscription.cooldown.last_notified_at = self._clock()
            await call_store(self.store.save_subscription, subscription, timeout=self.timeout)
            log.info("Notified %s: %s", subscription.user_id, title)
            return result

        if result.status is DeliveryStatus.PERMANENT_FAILURE or result.code in PERMANENT_CODES:
            subscription.delivery_token = None
            await call_store(self.store.save_subscription, subscription, timeout=self.timeout)
            log.warning("Cleared delivery token of %s (%s)", subscription.user_id, result.code)
            return DeliveryResult.permanent(result.code or "invalid-token")

        log.warning("Transient delivery failure for %s: %s", subscription.user_id, result.code)
        raise DeliveryTransientError(
            f"Delivery to {subscription.user_id} failed: {result.code}", code=result.code
        )
