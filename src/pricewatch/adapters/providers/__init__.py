# src/pricewatch/adapters/providers/__init__.py
"""
Provider Adapters - External API Clients

This package contains source adapters for JSON price APIs.
All providers implement the SourceAdapter interface.
"""

from pricewatch.adapters.providers.base import SourceAdapter
from pricewatch.adapters.providers.exchangerate_api import ExchangeRateAPIProvider
from pricewatch.adapters.providers.metalpriceapi import MetalPriceAPIProvider

__all__ = [
    "SourceAdapter",
    "ExchangeRateAPIProvider",
    "MetalPriceAPIProvider",
]
