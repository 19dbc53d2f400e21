# src/pricewatch/adapters/telegram/__init__.py
"""
Telegram Adapters - Bot Interface and Delivery

This package contains Telegram-specific adapters:
- Delivery of notifications to subscriber chats
- Command handlers (registration boundary)
- JobQueue callbacks for scheduled runs
- Application builder
"""

from pricewatch.adapters.telegram.bot import build_application
from pricewatch.adapters.telegram.delivery import TelegramDelivery
from pricewatch.adapters.telegram.handlers import build_handlers

__all__ = ["build_application", "build_handlers", "TelegramDelivery"]
