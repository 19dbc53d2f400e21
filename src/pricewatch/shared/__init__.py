# src/pricewatch/shared/__init__.py
"""
Shared Utilities - Cross-cutting Concerns

This package contains shared utilities used across all layers:
- Validation
- Rate limiting and per-host throttling
- Language management
- Logging configuration
"""

from pricewatch.shared.validators import (
    parse_clock_time,
    split_csv,
    validate_bot_token,
    validate_numeric_input,
)
from pricewatch.shared.rate_limiter import HostThrottle, RateLimiter, RATE_LIMITS
from pricewatch.shared.language import (
    resolve_language,
    translate,
    LANG_ARABIC,
    LANG_ENGLISH,
    SUPPORTED_LANGUAGES,
)

__all__ = [
    "validate_bot_token",
    "validate_numeric_input",
    "split_csv",
    "parse_clock_time",
    "HostThrottle",
    "RateLimiter",
    "RATE_LIMITS",
    "resolve_language",
    "translate",
    "LANG_ENGLISH",
    "LANG_ARABIC",
    "SUPPORTED_LANGUAGES",
]
