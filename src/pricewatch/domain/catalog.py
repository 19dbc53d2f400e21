# src/pricewatch/domain/catalog.py
"""
Instrument Catalog - Known Markets, Units and Last-Known-Good Prices

This module lists the metals, countries and currencies the service knows how
to price, the currency each commodity market is quoted in, and the static
last-known-good prices used when every upstream source fails.

Files that USE this module:
- pricewatch.application.fetcher (default_quote for the static fallback)
- pricewatch.adapters.providers.* (unit_currency, TROY_OUNCE_GRAMS)
- pricewatch.adapters.crawlers.* (unit_currency)
- pricewatch.config.settings (validates tracked instruments)
- pricewatch.adapters.telegram.handlers (validates user-supplied targets)
- pricewatch.adapters.formatting.formatter (karat_prices for the gold breakdown)

Files that this module USES:
- pricewatch.domain.models (Instrument, Quote, KaratPrice)
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from pricewatch.domain.models import FALLBACK_SOURCE, Instrument, KaratPrice, Observation, Quote

TROY_OUNCE_GRAMS = 31.1035

METALS = ("gold", "silver")

COUNTRY_CURRENCIES: Dict[str, str] = {
    "egypt": "EGP",
    "usa": "USD",
    "germany": "EUR",
    "saudi-arabia": "SAR",
    "uae": "AED",
}

# Mid rates in EGP for one unit of each currency
DEFAULT_EGP_RATES: Dict[str, float] = {
    "EGP": 1.0,
    "USD": 30.90,
    "EUR": 33.57,
    "GBP": 38.62,
    "SAR": 8.24,
    "AED": 8.42,
    "KWD": 100.60,
    "CHF": 34.92,
    "JPY": 0.206,
    "CNY": 4.265,
    "CAD": 22.80,
    "AUD": 20.20,
}

# Price per gram in USD, converted for markets without an explicit default
DEFAULT_USD_PER_GRAM: Dict[str, float] = {
    "gold": 77.0,
    "silver": 0.95,
}

# Explicit per-gram defaults in local currency, taking precedence over conversion
DEFAULT_METAL_PRICES: Dict[Tuple[str, str], float] = {
    ("gold", "egypt"): 3250.0,
    ("silver", "egypt"): 45.0,
}


def is_supported(instrument: Instrument) -> bool:
    """Check whether the catalog can price an instrument (and so provide a fallback)."""
    if instrument.is_fx:
        return (
            instrument.symbol in DEFAULT_EGP_RATES
            and instrument.market in DEFAULT_EGP_RATES
            and instrument.symbol != instrument.market
        )
    return instrument.symbol in METALS and instrument.market in COUNTRY_CURRENCIES


def unit_currency(instrument: Instrument) -> str:
    """
    Currency an instrument's value is expressed in.

    Args:
        instrument: Commodity or FX instrument

    Returns:
        Quote currency for pairs, the country's currency for commodities
    """
    if instrument.is_fx:
        return instrument.market
    return COUNTRY_CURRENCIES.get(instrument.market, "USD")


def default_value(instrument: Instrument) -> Optional[float]:
    """
    Last-known-good value for an instrument.

    FX pairs are derived as cross rates from the EGP table; commodities use an
    explicit local price when one exists, otherwise the USD price per gram
    converted to the country's currency.

    Returns:
        Default value, or None if the instrument is not in the catalog
    """
    if not is_supported(instrument):
        return None
    if instrument.is_fx:
        return round(DEFAULT_EGP_RATES[instrument.symbol] / DEFAULT_EGP_RATES[instrument.market], 6)

    explicit = DEFAULT_METAL_PRICES.get((instrument.symbol, instrument.market))
    if explicit is not None:
        return explicit
    currency = unit_currency(instrument)
    usd_price = DEFAULT_USD_PER_GRAM[instrument.symbol]
    return round(usd_price * DEFAULT_EGP_RATES["USD"] / DEFAULT_EGP_RATES[currency], 4)


def default_quote(instrument: Instrument, now: Optional[datetime] = None) -> Quote:
    """
    Build the static fallback quote for an instrument.

    Raises:
        ValueError: If the instrument is not in the catalog
    """
    value = default_value(instrument)
    if value is None:
        raise ValueError(f"No default price for unsupported instrument {instrument}")
    return Quote(
        instrument=instrument,
        value=value,
        unit_currency=unit_currency(instrument),
        retrieved_at=now or datetime.now(timezone.utc),
        source_id=FALLBACK_SOURCE,
    )


# (karat, purity, dealer spread) for the per-karat breakdown of a 24k gram price
KARAT_TABLE: Tuple[Tuple[int, float, float], ...] = (
    (24, 1.000, 0.02),
    (22, 0.917, 0.025),
    (21, 0.875, 0.025),
    (18, 0.750, 0.03),
    (14, 0.583, 0.035),
    (12, 0.500, 0.04),
)


def karat_prices(observation: Observation) -> List[KaratPrice]:
    """
    Buy/sell prices per karat derived from a 24k gold observation.

    Each karat is priced at its purity share of the 24k value, with the
    dealer spread taken off (buy) or added on (sell), rounded to 2 places.

    Returns:
        One KaratPrice per KARAT_TABLE row, purest first; empty for
        anything other than a gold commodity
    """
    instrument = observation.instrument
    if instrument.is_fx or instrument.symbol != "gold":
        return []
    prices = []
    for karat, purity, spread in KARAT_TABLE:
        base = observation.value * purity
        prices.append(KaratPrice(
            karat=karat,
            purity=purity,
            buy_price=round(base * (1 - spread), 2),
            sell_price=round(base * (1 + spread), 2),
        ))
    return prices
