# tests/test_formatter.py
"""
Formatter Tests - Unit Tests for Message Formatting Functions

This module contains unit tests for the alert, digest, price list and
history renderers, including localized output, locale fallback and the
string-only data payload attached to every notification.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- pricewatch.adapters.formatting.formatter (all formatter functions for testing)
- pricewatch.domain.models (Observation, Rule for test data)
- pytest (testing framework)
"""
import pytest  # Testing framework for writing and running tests

from datetime import datetime, timedelta, timezone  # Date/time utilities for test data

from pricewatch.adapters.formatting.formatter import (
    _fmt_elapsed,  # Format elapsed time
    format_history,  # History button reply
    format_karat_lines,  # Gold breakdown per karat
    format_pct,  # Signed percent change
    format_prices,  # /prices reply
    format_value,  # Price with separators
    render_alert,  # Alert notification
    render_digest,  # Daily digest
)
from pricewatch.domain.models import Direction, Instrument, Observation, Rule

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _obs(instrument, value, percent, unit="EGP", minutes_ago=0):
    return Observation(
        instrument, value, unit, value, 1.0, percent, NOW - timedelta(minutes=minutes_ago), "test"
    )


class TestFormatNumbers:
    @pytest.mark.parametrize("percent,expected", [
        (1.234, "+1.23"),
        (-0.5, "-0.50"),
        (0.0, "0.00"),
    ])
    def test_format_pct(self, percent, expected):
        assert format_pct(percent) == expected

    def test_format_value_metal_and_fx(self, gold, usd_egp):
        assert format_value(3712.5, gold) == "3,712.50"
        assert format_value(48.61234, usd_egp) == "48.6123"

    @pytest.mark.parametrize("seconds,expected", [
        (-5, "0min"),
        (59, "0min"),
        (600, "10min"),
        (3900, "1h:05min"),
    ])
    def test_fmt_elapsed(self, seconds, expected):
        assert _fmt_elapsed(seconds) == expected


class TestRenderAlert:
    def test_commodity_alert_english(self, gold):
        title, body, data = render_alert(Rule(gold, 3300.0, Direction.ABOVE), _obs(gold, 3350.0, 1.5), "en")

        assert title == "Gold Price Alert - Egypt"
        assert body == "Gold price in Egypt is now 3,350.00 EGP (+1.50%)"
        assert data == {
            "type": "commodity_alert",
            "instrument": "gold:egypt",
            "value": "3350.0",
            "direction": "above",
            "percent_change": "+1.50",
        }

    def test_fx_alert_arabic(self, usd_egp):
        title, body, data = render_alert(Rule(usd_egp, 0.0), _obs(usd_egp, 48.5, -0.25), "ar")

        assert title == "تنبيه سعر الصرف"
        assert "USD/EGP" in body
        assert "-0.25%" in body
        assert data["type"] == "fx_alert"

    def test_unsupported_locale_falls_back_to_english(self, gold):
        title, _, _ = render_alert(Rule(gold, 0.0), _obs(gold, 3350.0, 1.5), "fr")
        assert title == "Gold Price Alert - Egypt"

    def test_region_qualified_locale(self, gold):
        _, body, _ = render_alert(Rule(gold, 0.0), _obs(gold, 3350.0, 1.5), "ar-EG")
        assert "مصر" in body

    def test_payload_values_are_strings(self, usd_egp):
        _, _, data = render_alert(Rule(usd_egp, 0.0), _obs(usd_egp, 48.5, 0.1), "en")
        assert all(isinstance(v, str) for v in data.values())


class TestRenderDigest:
    def test_commodities_before_pairs(self, gold, usd_egp):
        silver = Instrument.commodity("silver", "usa")
        title, body, data = render_digest(
            [_obs(usd_egp, 48.5, 0.1), _obs(silver, 1.05, -1.0, unit="USD"), _obs(gold, 3350.0, 1.5)], "en"
        )

        assert title == "Daily price digest"
        assert body.splitlines() == [
            "Gold (Egypt): 3,350.00 EGP (+1.50%)",
            "Silver (USA): 1.05 USD (-1.00%)",
            "USD/EGP: 48.5000 EGP (+0.10%)",
        ]
        assert data == {"type": "digest", "instruments": "gold:egypt,silver:usa,USD/EGP"}

    def test_empty_digest(self):
        _, body, data = render_digest([], "en")
        assert body == "No prices collected yet"
        assert data["instruments"] == ""


class TestReplies:
    def test_format_prices(self, gold, usd_egp):
        text = format_prices([_obs(usd_egp, 48.5, 0.1), _obs(gold, 3350.0, 1.5)], "en")
        lines = text.splitlines()
        assert lines[0] == "Latest prices:"
        assert lines[1].startswith("— Gold (Egypt)")

    def test_format_history_newest_first_with_age(self, gold):
        series = [_obs(gold, 3350.0, 1.5, minutes_ago=5), _obs(gold, 3300.0, 0.0, minutes_ago=75)]

        text = format_history(gold, series, "en", now=NOW)

        assert text.splitlines()[:3] == [
            "Recent prices for Gold (Egypt):",
            "— 3,350.00 EGP (+1.50%) · 5min",
            "— 3,300.00 EGP (0.00%) · 1h:15min",
        ]

    def test_gold_history_ends_with_karat_breakdown(self, gold):
        series = [_obs(gold, 3350.0, 1.5), _obs(gold, 3300.0, 0.0, minutes_ago=15)]

        lines = format_history(gold, series, "en", now=NOW).splitlines()

        assert lines[3] == "Per karat (buy / sell):"
        assert lines[4] == "— 24K: 3,283.00 / 3,417.00 EGP"
        assert len(lines) == 4 + 6

    def test_karat_breakdown_arabic(self, gold):
        lines = format_karat_lines(_obs(gold, 3350.0, 1.5), "ar")
        assert lines[0] == "حسب العيار (شراء / بيع):"
        assert lines[1].startswith("— عيار 24:")

    def test_no_karat_breakdown_for_pairs(self, usd_egp):
        text = format_history(usd_egp, [_obs(usd_egp, 48.5, 0.1)], "en", now=NOW)
        assert "karat" not in text

    def test_format_history_empty(self, usd_egp):
        assert format_history(usd_egp, [], "en") == "No history for USD/EGP yet."
