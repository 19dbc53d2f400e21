# tests/test_settings.py
"""
Settings Tests - Defaults, Derived Values and Validation

Files that this module USES:
- pricewatch.config.settings (Settings)
- pydantic (ValidationError)
- pytest (testing framework)
"""
from datetime import time, timedelta

import pytest
from pydantic import ValidationError

from pricewatch.config.settings import Settings
from pricewatch.domain.models import Instrument, InstrumentKind

ENV_VARS = (
    "BOT_TOKEN", "ADMIN_USERNAME", "TRACKED_METALS", "TRACKED_COUNTRIES", "TRACKED_PAIRS",
    "COMMODITY_CACHE_MINUTES", "FX_CACHE_MINUTES", "DIGEST_TIME", "RETENTION_SWEEP_TIME",
    "DEFAULT_LANGUAGE", "RETENTION_LIMIT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)

        assert s.retention_limit == 100
        assert s.cache_ttls == {
            InstrumentKind.COMMODITY: timedelta(minutes=5),
            InstrumentKind.FX: timedelta(minutes=60),
        }
        assert s.retention_sweep_at == time(0, 0)
        assert s.digest_at == time(9, 0)

    def test_instruments_commodities_first(self):
        s = Settings(_env_file=None, TRACKED_METALS="gold", TRACKED_COUNTRIES="egypt, uae", TRACKED_PAIRS="USD/EGP")

        assert s.instruments == [
            Instrument.commodity("gold", "egypt"),
            Instrument.commodity("gold", "uae"),
            Instrument.fx("USD", "EGP"),
        ]

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("FX_CACHE_MINUTES", "30")
        assert Settings(_env_file=None).cache_ttls[InstrumentKind.FX] == timedelta(minutes=30)

    @pytest.mark.parametrize("field,value", [
        ("TRACKED_PAIRS", "USD/XYZ"),
        ("TRACKED_PAIRS", "gold:egypt"),
        ("TRACKED_METALS", "platinum"),
        ("TRACKED_COUNTRIES", "atlantis"),
        ("DIGEST_TIME", "25:00"),
        ("DEFAULT_LANGUAGE", "fr"),
        ("BOT_TOKEN", "not-a-token"),
        ("RETENTION_LIMIT", "0"),
    ])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})
