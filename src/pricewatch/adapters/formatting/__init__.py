# src/pricewatch/adapters/formatting/__init__.py
"""
Formatting Adapters - Message Formatting

This package renders notifications and bot replies.
"""

from pricewatch.adapters.formatting.formatter import (
    format_history,
    format_karat_lines,
    format_pct,
    format_prices,
    format_value,
    render_alert,
    render_digest,
)

__all__ = [
    "format_history",
    "format_karat_lines",
    "format_pct",
    "format_prices",
    "format_value",
    "render_alert",
    "render_digest",
]
