# src/pricewatch/adapters/__init__.py
"""
Adapters Layer - External Interfaces

This package contains all adapters for external systems:
- Providers (JSON price APIs)
- Crawlers (scraped price pages)
- Telegram (delivery and bot interface)
- Persistence (storage)
- Formatting (output)
"""

__all__ = []
