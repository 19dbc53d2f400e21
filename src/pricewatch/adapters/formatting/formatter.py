# src/pricewatch/adapters/formatting/formatter.py
"""
Message Formatter - Text Formatting and Presentation

This module renders every user-facing text: alert notifications (title,
body, data payload), the daily digest, and the /prices and history replies.
Commodity and FX instruments use different templates; both carry the
instrument identity, the value with its unit and the signed percent change.

Files that USE this module:
- pricewatch.application.dispatcher (render_alert, render_digest)
- pricewatch.adapters.telegram.handlers (format_prices, format_history)
- tests.test_formatter (unit tests)

Files that this module USES:
- pricewatch.domain.catalog (karat_prices for the gold breakdown)
- pricewatch.domain.models (Instrument, Observation, Rule)
- pricewatch.shared.language (translate and localized display names)
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from pricewatch.domain import catalog
from pricewatch.domain.models import Instrument, Observation, Rule
from pricewatch.shared.language import country_name, metal_name, resolve_language, translate

Rendered = Tuple[str, str, Dict[str, str]]


def format_value(value: float, instrument: Optional[Instrument] = None) -> str:
    """
    Format a price for display.

    Exchange rates keep four decimals, metal prices two, both with
    thousands separators.
    """
    if instrument is not None and instrument.is_fx:
        return f"{value:,.4f}"
    return f"{value:,.2f}"


def format_pct(percent: float) -> str:
    """
    Format a percent change with an explicit sign.

    Returns:
        '+1.23', '-0.50' or '0.00'
    """
    if percent > 0:
        return f"+{percent:.2f}"
    if percent < 0:
        return f"{percent:.2f}"
    return "0.00"


def _fmt_elapsed(seconds: int) -> str:
    """
    Format elapsed time as 'Xh:YYmin' or 'Ymin'.

    Args:
        seconds: Elapsed time in seconds (will be clamped to >= 0)
    """
    if seconds < 0:
        seconds = 0
    minutes = seconds // 60
    hours = minutes // 60
    mins_only = minutes % 60
    if hours > 0:
        return f"{hours}h:{mins_only:02d}min"
    return f"{mins_only}min"


def instrument_label(instrument: Instrument, lang: Optional[str] = None) -> str:
    """'Gold (Egypt)' for commodities, 'USD/EGP' for pairs."""
    if instrument.is_fx:
        return instrument.key
    return f"{metal_name(instrument.symbol, lang)} ({country_name(instrument.market, lang)})"


def _template_args(observation: Observation, lang: str) -> Dict[str, str]:
    instrument = observation.instrument
    return {
        "metal": metal_name(instrument.symbol, lang),
        "country": country_name(instrument.market, lang),
        "pair": instrument.key,
        "value": format_value(observation.value, instrument),
        "unit": observation.unit_currency,
        "change": format_pct(observation.percent_delta),
    }


def render_alert(rule: Rule, observation: Observation, lang: Optional[str] = None) -> Rendered:
    """
    Render one alert notification.

    Args:
        rule: The rule that fired
        observation: The observation that fired it
        lang: Subscriber locale; unsupported locales fall back to English

    Returns:
        (title, body, data) where data values are all strings
    """
    lang = resolve_language(lang)
    args = _template_args(observation, lang)
    prefix = "fx" if observation.instrument.is_fx else "commodity"
    title = translate(f"{prefix}_alert_title", lang, **args)
    body = translate(f"{prefix}_alert_body", lang, **args)
    data = {
        "type": f"{prefix}_alert",
        "instrument": observation.instrument.key,
        "value": str(observation.value),
        "direction": rule.direction.value,
        "percent_change": format_pct(observation.percent_delta),
    }
    return title, body, data


def _summary_line(observation: Observation, lang: str) -> str:
    args = _template_args(observation, lang)
    key = "digest_fx_line" if observation.instrument.is_fx else "digest_commodity_line"
    return translate(key, lang, **args)


def render_digest(observations: Sequence[Observation], lang: Optional[str] = None) -> Rendered:
    """
    Render the daily multi-instrument summary.

    Commodities are listed before currency pairs, each group in key order.
    """
    lang = resolve_language(lang)
    title = translate("digest_title", lang)
    ordered = sorted(observations, key=lambda o: (o.instrument.is_fx, o.instrument.key))
    if ordered:
        body = "\n".join(_summary_line(o, lang) for o in ordered)
    else:
        body = translate("digest_empty", lang)
    data = {
        "type": "digest",
        "instruments": ",".join(o.instrument.key for o in ordered),
    }
    return title, body, data


def format_prices(observations: Sequence[Observation], lang: Optional[str] = None) -> str:
    """Reply text for /prices."""
    lang = resolve_language(lang)
    if not observations:
        return translate("digest_empty", lang)
    ordered = sorted(observations, key=lambda o: (o.instrument.is_fx, o.instrument.key))
    lines = [translate("prices_header", lang)]
    lines.extend(f"— {_summary_line(o, lang)}" for o in ordered)
    return "\n".join(lines)


def format_history(instrument: Instrument, observations: List[Observation],
                   lang: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """
    Reply text for the history button: newest first, each with its age,
    followed by the per-karat breakdown of the newest price for gold.
    """
    lang = resolve_language(lang)
    target = instrument_label(instrument, lang)
    if not observations:
        return translate("no_history", lang, target=target)
    now = now or datetime.now(timezone.utc)
    lines = [translate("history_header", lang, target=target)]
    for o in observations:
        age = _fmt_elapsed(int((now - o.observed_at).total_seconds()))
        lines.append(
            f"— {format_value(o.value, instrument)} {o.unit_currency} "
            f"({format_pct(o.percent_delta)}%) · {age}"
        )
    lines.extend(format_karat_lines(observations[0], lang))
    return "\n".join(lines)


def format_karat_lines(observation: Observation, lang: Optional[str] = None) -> List[str]:
    """Buy/sell breakdown per karat for a gold observation; empty otherwise."""
    breakdown = catalog.karat_prices(observation)
    if not breakdown:
        return []
    lang = resolve_language(lang)
    lines = [translate("karat_header", lang)]
    for k in breakdown:
        lines.append("— " + translate(
            "karat_line", lang,
            karat=k.karat,
            buy=format_value(k.buy_price),
            sell=format_value(k.sell_price),
            unit=observation.unit_currency,
        ))
    return lines
