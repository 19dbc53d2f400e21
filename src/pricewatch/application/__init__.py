# src/pricewatch/application/__init__.py
"""
Application Layer - Use Cases and Services

This package contains the application services:
- Fallback fetching and the quote cache
- Observation history with retention
- Alert evaluation and notification dispatch
- Scheduled collection, retention and digest runs
"""

from pricewatch.application.alerts import AlertEvaluator
from pricewatch.application.dispatcher import NotificationDispatcher
from pricewatch.application.fetcher import FallbackFetcher
from pricewatch.application.history import HistoryStore
from pricewatch.application.quote_cache import QuoteCache
from pricewatch.application.scheduler import CollectionScheduler

__all__ = [
    "AlertEvaluator",
    "CollectionScheduler",
    "FallbackFetcher",
    "HistoryStore",
    "NotificationDispatcher",
    "QuoteCache",
]
