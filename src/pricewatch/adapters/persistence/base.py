# src/pricewatch/adapters/persistence/base.py
"""
Document Store Boundary

The narrow storage interface the application layer depends on. Any backing
store (JSON files, a document database) can sit behind it as long as each
call is atomic for a single record.

Files that USE this module:
- pricewatch.application.history (HistoryStore reads and writes observations)
- pricewatch.application.alerts (AlertEvaluator reads subscriptions)
- pricewatch.application.dispatcher (NotificationDispatcher saves subscriptions)
- pricewatch.adapters.telegram.handlers (registration commands)

Files that this module USES:
- pricewatch.domain.models (Instrument, Observation, Subscription)
"""
from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from pricewatch.domain.models import Instrument, Observation, Subscription


@runtime_checkable
class DocumentStore(Protocol):
    """Synchronous storage calls; implementations raise PersistenceError on failure."""

    def insert_observation(self, observation: Observation) -> None: ...

    def query_latest(self, instrument: Instrument) -> Optional[Observation]: ...

    def query_history(self, instrument: Instrument, limit: int) -> List[Observation]:
        """Newest first, at most limit entries."""
        ...

    def delete_older_than_top_k(self, instrument: Instrument, k: int) -> int:
        """Keep the k newest observations; return how many were deleted."""
        ...

    def list_instruments(self) -> List[Instrument]: ...

    def find_subscription(self, user_id: str) -> Optional[Subscription]: ...

    def find_enabled_subscriptions(self, require_token: bool = True) -> List[Subscription]: ...

    def save_subscription(self, subscription: Subscription) -> None: ...
