# src/pricewatch/adapters/telegram/bot.py
"""
Telegram Bot - Application Builder

This module builds the python-telegram-bot Application, registers the
command handlers and exposes the shared components to them via bot_data.
"""

from __future__ import annotations

from typing import Any

from telegram.ext import Application

from pricewatch.adapters.telegram.handlers import build_handlers


def build_application(bot_token: str, **components: Any) -> Application:
    """
    Build Telegram bot application with handlers registered.

    Args:
        bot_token: Telegram bot token
        **components: Objects handlers read from bot_data
            (settings, store, history, cache, rate_limiter)

    Returns:
        Configured Application instance
    """
    app = Application.builder().token(bot_token).build()
    app.bot_data.update(components)
    for h in build_handlers():
        app.add_handler(h)
    return app
