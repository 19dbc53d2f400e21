# src/pricewatch/config/settings.py
"""
Settings - Pydantic-based Configuration Management

Provides centralized configuration management using Pydantic Settings.
Supports environment variables and a .env file with validation.

Files that USE this module:
- pricewatch.app (composition root reads every setting)
- pricewatch.adapters.telegram.handlers (admin username, default language)

Files that this module USES:
- pricewatch.shared.validators (validation functions for settings)
- pricewatch.domain.catalog (checks tracked instruments can be priced)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from datetime import time, timedelta  # Schedule times and cache windows
from pathlib import Path  # Object-oriented filesystem paths
from typing import List, Optional  # Type hints for optional values and lists

from pydantic import Field, field_validator  # Data validation and field configuration
from pydantic_settings import BaseSettings, SettingsConfigDict  # Settings management with Pydantic

from pricewatch.domain import catalog
from pricewatch.domain.models import Instrument, InstrumentKind
from pricewatch.shared.language import SUPPORTED_LANGUAGES
from pricewatch.shared.validators import (
    parse_clock_time,  # Parse "HH:MM" schedule times
    split_csv,  # Split comma-separated list settings
    validate_bot_token,  # Validate Telegram bot token format
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Telegram ---
    bot_token: str = Field(default="", alias="BOT_TOKEN")
    admin_username: str = Field(default="", alias="ADMIN_USERNAME")

    # --- API Providers ---
    metalpriceapi_key: str = Field(default="", alias="METAL_PRICE_API_KEY")

    # --- HTTP Settings ---
    http_timeout_seconds: int = Field(default=10, alias="HTTP_TIMEOUT_SECONDS", ge=1, le=60)
    source_timeout_seconds: float = Field(default=15.0, alias="SOURCE_TIMEOUT_SECONDS", gt=0, le=120)
    host_delay_seconds: float = Field(default=1.0, alias="HOST_DELAY_SECONDS", ge=0, le=30)

    # --- Cache Settings (in minutes) ---
    commodity_cache_minutes: int = Field(default=5, alias="COMMODITY_CACHE_MINUTES", ge=1, le=1440)
    fx_cache_minutes: int = Field(default=60, alias="FX_CACHE_MINUTES", ge=1, le=1440)

    # --- Persistence ---
    data_dir: Path = Field(default=Path("./data"), alias="DATA_DIR")
    retention_limit: int = Field(default=100, alias="RETENTION_LIMIT", ge=1, le=10_000)
    persistence_timeout_seconds: float = Field(default=10.0, alias="PERSISTENCE_TIMEOUT_SECONDS", gt=0, le=120)

    # --- Scheduling ---
    collection_interval_minutes: int = Field(default=15, alias="COLLECTION_INTERVAL_MINUTES", ge=1, le=1440)
    retention_sweep_time: str = Field(default="00:00", alias="RETENTION_SWEEP_TIME")  # UTC
    digest_time: str = Field(default="09:00", alias="DIGEST_TIME")  # UTC
    max_workers: int = Field(default=4, alias="MAX_WORKERS", ge=1, le=32)

    # --- Tracked instruments (comma-separated) ---
    tracked_metals: str = Field(default="gold,silver", alias="TRACKED_METALS")
    tracked_countries: str = Field(default="egypt,usa,germany", alias="TRACKED_COUNTRIES")
    tracked_pairs: str = Field(default="USD/EUR,USD/EGP,EUR/EGP", alias="TRACKED_PAIRS")

    # --- Notifications ---
    default_language: str = Field(default="en", alias="DEFAULT_LANGUAGE")
    default_min_interval_minutes: int = Field(default=5, alias="DEFAULT_MIN_INTERVAL_MINUTES", ge=0, le=1440)

    # --- Logging (for server deployment) ---
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_dir: Optional[str] = Field(default=None, alias="LOG_DIR")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")  # 10MB
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    @field_validator("bot_token")
    @classmethod
    def validate_bot_token(cls, v: str) -> str:
        """Validate bot token format (empty is allowed until the bot is started)."""
        if v and not validate_bot_token(v):
            raise ValueError("Invalid BOT_TOKEN format")
        return v

    @field_validator("default_language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        """Validate language code."""
        if v not in SUPPORTED_LANGUAGES:
            raise ValueError(f"DEFAULT_LANGUAGE must be one of {', '.join(SUPPORTED_LANGUAGES)}")
        return v

    @field_validator("retention_sweep_time", "digest_time")
    @classmethod
    def validate_clock_time(cls, v: str) -> str:
        """Validate HH:MM schedule times."""
        parse_clock_time(v)
        return v

    @field_validator("tracked_metals", "tracked_countries")
    @classmethod
    def validate_commodity_markets(cls, v: str, info) -> str:
        """Every tracked metal and country must be in the catalog."""
        known = catalog.METALS if info.field_name == "tracked_metals" else tuple(catalog.COUNTRY_CURRENCIES)
        unknown = [item for item in split_csv(v, lower=True) if item not in known]
        if unknown:
            raise ValueError(f"Unsupported {info.field_name}: {', '.join(unknown)}")
        return v

    @field_validator("tracked_pairs")
    @classmethod
    def validate_pairs(cls, v: str) -> str:
        """Every tracked pair must parse as BASE/QUOTE and be priceable."""
        for key in split_csv(v):
            instrument = Instrument.parse(key)
            if not instrument.is_fx or not catalog.is_supported(instrument):
                raise ValueError(f"Unsupported currency pair: {key}")
        return v

    @property
    def commodity_instruments(self) -> List[Instrument]:
        return [
            Instrument.commodity(metal, country)
            for metal in split_csv(self.tracked_metals, lower=True)
            for country in split_csv(self.tracked_countries, lower=True)
        ]

    @property
    def fx_instruments(self) -> List[Instrument]:
        return [Instrument.parse(key) for key in split_csv(self.tracked_pairs)]

    @property
    def instruments(self) -> List[Instrument]:
        """All tracked instruments, commodities first."""
        return self.commodity_instruments + self.fx_instruments

    @property
    def cache_ttls(self) -> dict[InstrumentKind, timedelta]:
        return {
            InstrumentKind.COMMODITY: timedelta(minutes=self.commodity_cache_minutes),
            InstrumentKind.FX: timedelta(minutes=self.fx_cache_minutes),
        }

    @property
    def retention_sweep_at(self) -> time:
        return parse_clock_time(self.retention_sweep_time)

    @property
    def digest_at(self) -> time:
        return parse_clock_time(self.digest_time)


# Global settings instance
settings = Settings()
