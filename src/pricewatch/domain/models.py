# src/pricewatch/domain/models.py
"""
Domain Models - Pure Business Objects

This module contains domain models representing core business concepts:
- Instruments (metal/country or currency pair)
- Quotes (one upstream reading, never persisted)
- Observations (persisted, diffed price records)
- Alert rules, cooldown state and subscriptions
- Delivery outcomes and alert work items

Files that USE this module:
- pricewatch.application.* (all services use domain models)
- pricewatch.adapters.* (adapters create and serialize domain models)
- tests.* (tests use domain models for test data)

Files that this module USES:
- pricewatch.domain.errors (InvalidQuoteError for quote validation)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import math  # Finite-number checks for quote values
from dataclasses import dataclass, field  # Decorators for creating data classes
from datetime import datetime, timedelta, timezone  # Date/time utilities for timestamps
from enum import Enum  # Enumerations for kinds, directions and statuses
from typing import Any, Dict, List, Optional  # Type hints

from pricewatch.domain.errors import InvalidQuoteError


def _ts_to_json(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None


def _ts_from_json(raw: Any) -> Optional[datetime]:
    """Parse an ISO timestamp, accepting both "...Z" and "+00:00"."""
    if not isinstance(raw, str) or not raw:
        return None
    ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class InstrumentKind(str, Enum):
    """Instrument class; cache TTLs and source lists are configured per class."""
    COMMODITY = "commodity"
    FX = "fx"


class Direction(str, Enum):
    """Direction of an alert rule."""
    ABOVE = "above"
    BELOW = "below"
    ANY = "any"


@dataclass(frozen=True)
class Instrument:
    """
    A trackable thing: a metal in a country or a currency pair.

    Attributes:
        kind: COMMODITY or FX
        symbol: Metal name ("gold", "silver") or base currency ("USD")
        market: Country ("egypt") or quote currency ("EGP")
    """
    kind: InstrumentKind
    symbol: str
    market: str

    @classmethod
    def commodity(cls, metal: str, country: str) -> Instrument:
        return cls(InstrumentKind.COMMODITY, metal.strip().lower(), country.strip().lower())

    @classmethod
    def fx(cls, base: str, quote: str) -> Instrument:
        return cls(InstrumentKind.FX, base.strip().upper(), quote.strip().upper())

    @classmethod
    def parse(cls, key: str) -> Instrument:
        """
        Parse a canonical instrument key.

        Args:
            key: "gold:egypt" for commodities or "USD/EGP" for currency pairs

        Returns:
            Instrument for the key

        Raises:
            ValueError: If the key has neither form
        """
        key = (key or "").strip()
        if "/" in key:
            base, quote = key.split("/", 1)
            if base and quote:
                return cls.fx(base, quote)
        elif ":" in key:
            metal, country = key.split(":", 1)
            if metal and country:
                return cls.commodity(metal, country)
        raise ValueError(f"Invalid instrument key: {key!r}")

    @property
    def is_fx(self) -> bool:
        return self.kind is InstrumentKind.FX

    @property
    def key(self) -> str:
        """Canonical key used for cache entries and history partitions."""
        if self.is_fx:
            return f"{self.symbol}/{self.market}"
        return f"{self.symbol}:{self.market}"

    @property
    def slug(self) -> str:
        """Filesystem-safe form of the key."""
        return f"{self.kind.value}-{self.symbol}-{self.market}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class Quote:
    """
    A single upstream price reading with provenance.

    Attributes:
        instrument: What was priced
        value: Finite, strictly positive price
        unit_currency: Currency the value is expressed in
        retrieved_at: When the reading was taken (UTC)
        source_id: Adapter name, or "fallback" for static defaults
    """
    instrument: Instrument
    value: float
    unit_currency: str
    retrieved_at: datetime
    source_id: str

    def __post_init__(self) -> None:
        value = self.value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidQuoteError(f"Quote value must be a number, got {value!r}")
        if not math.isfinite(value) or value <= 0:
            raise InvalidQuoteError(f"Quote value must be finite and positive, got {value!r}")

    @property
    def is_fallback(self) -> bool:
        return self.source_id == FALLBACK_SOURCE


FALLBACK_SOURCE = "fallback"


@dataclass(frozen=True)
class Observation:
    """
    A persisted, diffed price record.

    delta and percent_delta are computed once, against the immediately
    preceding Observation of the same instrument, and never recomputed.
    """
    instrument: Instrument
    value: float
    unit_currency: str
    previous_value: Optional[float]
    delta: float
    percent_delta: float
    observed_at: datetime
    source_id: str

    @property
    def changed(self) -> bool:
        return self.delta != 0

    def to_json(self) -> Dict[str, Any]:
        return {
            "instrument": self.instrument.key,
            "value": self.value,
            "unit_currency": self.unit_currency,
            "previous_value": self.previous_value,
            "delta": self.delta,
            "percent_delta": self.percent_delta,
            "observed_at": _ts_to_json(self.observed_at),
            "source_id": self.source_id,
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> Observation:
        previous = data.get("previous_value")
        return Observation(
            instrument=Instrument.parse(data["instrument"]),
            value=float(data["value"]),
            unit_currency=str(data.get("unit_currency", "")),
            previous_value=float(previous) if previous is not None else None,
            delta=float(data.get("delta", 0.0)),
            percent_delta=float(data.get("percent_delta", 0.0)),
            observed_at=_ts_from_json(data.get("observed_at")) or datetime.now(timezone.utc),
            source_id=str(data.get("source_id", "")),
        )


@dataclass(frozen=True)
class Rule:
    """One alert condition bound to a commodity instrument or a currency pair."""
    target: Instrument
    threshold_value: float
    direction: Direction = Direction.ANY

    def triggered_by(self, observation: Observation) -> bool:
        """
        Decide whether this rule fires for an observation.

        Observations without a price change never fire, whatever the direction.
        """
        if observation.instrument != self.target or not observation.changed:
            return False
        if self.direction is Direction.ABOVE:
            return observation.value > self.threshold_value
        if self.direction is Direction.BELOW:
            return observation.value < self.threshold_value
        return True

    def to_json(self) -> Dict[str, Any]:
        return {
            "target": self.target.key,
            "threshold_value": self.threshold_value,
            "direction": self.direction.value,
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> Rule:
        return Rule(
            target=Instrument.parse(data["target"]),
            threshold_value=float(data.get("threshold_value", 0.0)),
            direction=Direction(data.get("direction", Direction.ANY.value)),
        )


DEFAULT_MIN_INTERVAL_MS = 300_000  # 5 minutes


@dataclass
class Cooldown:
    """Per-user notification throttle (non-frozen: the dispatcher advances it)."""
    enabled: bool = True
    min_interval_ms: int = DEFAULT_MIN_INTERVAL_MS
    last_notified_at: Optional[datetime] = None

    def elapsed(self, now: datetime) -> bool:
        """True if the user has never been notified or the minimum interval has passed."""
        if self.last_notified_at is None:
            return True
        return now - self.last_notified_at >= timedelta(milliseconds=self.min_interval_ms)


@dataclass
class Subscription:
    """
    One user's alerting configuration plus cooldown state.

    Attributes:
        user_id: Unique user identifier (guaranteed unique by registration)
        delivery_token: Transport address; None once delivery reported it invalid
        language: Preferred locale ("en" or "ar")
        rules: Alert rules, any mix of commodity and FX targets
        cooldown: Enabled flag, minimum interval and last notification time
        created_at: Registration time
    """
    user_id: str
    delivery_token: Optional[str]
    language: str = "en"
    rules: List[Rule] = field(default_factory=list)
    cooldown: Cooldown = field(default_factory=Cooldown)
    created_at: Optional[datetime] = None

    @property
    def is_deliverable(self) -> bool:
        return self.cooldown.enabled and bool(self.delivery_token)

    def can_notify(self, now: datetime) -> bool:
        return self.is_deliverable and self.cooldown.elapsed(now)

    def to_json(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "delivery_token": self.delivery_token,
            "language": self.language,
            "rules": [rule.to_json() for rule in self.rules],
            "cooldown": {
                "enabled": self.cooldown.enabled,
                "min_interval_ms": self.cooldown.min_interval_ms,
                "last_notified_at": _ts_to_json(self.cooldown.last_notified_at),
            },
            "created_at": _ts_to_json(self.created_at),
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> Subscription:
        cooldown = data.get("cooldown") or {}
        return Subscription(
            user_id=str(data["user_id"]),
            delivery_token=data.get("delivery_token") or None,
            language=str(data.get("language") or "en"),
            rules=[Rule.from_json(r) for r in data.get("rules") or []],
            cooldown=Cooldown(
                enabled=bool(cooldown.get("enabled", True)),
                min_interval_ms=int(cooldown.get("min_interval_ms", DEFAULT_MIN_INTERVAL_MS)),
                last_notified_at=_ts_from_json(cooldown.get("last_notified_at")),
            ),
            created_at=_ts_from_json(data.get("created_at")),
        )


class DeliveryStatus(str, Enum):
    SUCCESS = "success"
    PERMANENT_FAILURE = "permanent_failure"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class DeliveryResult:
    """Tagged outcome of one delivery attempt."""
    status: DeliveryStatus
    code: Optional[str] = None

    @classmethod
    def success(cls) -> DeliveryResult:
        return cls(DeliveryStatus.SUCCESS)

    @classmethod
    def permanent(cls, code: str) -> DeliveryResult:
        return cls(DeliveryStatus.PERMANENT_FAILURE, code)

    @classmethod
    def transient(cls, code: str) -> DeliveryResult:
        return cls(DeliveryStatus.TRANSIENT_FAILURE, code)

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.SUCCESS


@dataclass(frozen=True)
class AlertMatch:
    """A subscription/rule pair triggered by an observation, to be dispatched."""
    subscription: Subscription
    rule: Rule
    observation: Observation


@dataclass
class CycleReport:
    """Counters for one collection cycle."""
    started_at: datetime
    instruments: int = 0
    recorded: int = 0
    fallback_quotes: int = 0
    matched: int = 0
    delivered: int = 0
    tokens_pruned: int = 0
    failures: int = 0


@dataclass(frozen=True)
class KaratPrice:
    """Dealer buy/sell price per gram for one gold karat."""
    karat: int
    purity: float
    buy_price: float
    sell_price: float
