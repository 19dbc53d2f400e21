# src/pricewatch/domain/__init__.py
"""
Domain Layer - Pure Business Objects

This package contains domain models, the instrument catalog and business rules.
No dependencies on infrastructure or external systems.
"""

from pricewatch.domain.models import (
    AlertMatch,
    Cooldown,
    CycleReport,
    DeliveryResult,
    DeliveryStatus,
    Direction,
    FALLBACK_SOURCE,
    Instrument,
    InstrumentKind,
    Observation,
    Quote,
    Rule,
    Subscription,
)
from pricewatch.domain.errors import (
    DeliveryTransientError,
    DomainError,
    InvalidQuoteError,
    PersistenceError,
    SourceUnavailableError,
)

__all__ = [
    "Instrument",
    "InstrumentKind",
    "Quote",
    "Observation",
    "Rule",
    "Direction",
    "Cooldown",
    "Subscription",
    "DeliveryResult",
    "DeliveryStatus",
    "AlertMatch",
    "CycleReport",
    "FALLBACK_SOURCE",
    "DomainError",
    "InvalidQuoteError",
    "SourceUnavailableError",
    "PersistenceError",
    "DeliveryTransientError",
]
