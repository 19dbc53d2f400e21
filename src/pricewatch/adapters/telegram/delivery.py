# src/pricewatch/adapters/telegram/delivery.py
"""
Telegram Delivery - Push Notifications to Subscriber Chats

Implements the delivery capability used by the NotificationDispatcher. A
subscriber's delivery token is their Telegram chat id. Telegram errors are
mapped onto DeliveryResult instead of being raised:

- Forbidden (bot blocked / user deactivated) -> permanent "token-not-registered"
- BadRequest "chat not found"                -> permanent "invalid-token"
- other BadRequest                           -> transient "bad-request"
- RetryAfter                                 -> transient "rate-limited"
- TimedOut / NetworkError                    -> transient "network-error"

Files that USE this module:
- pricewatch.app (builds TelegramDelivery around the application's bot)
- tests.test_delivery (unit tests)

Files that this module USES:
- pricewatch.domain.models (DeliveryResult)
- pricewatch.shared.language (localized history button label)
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Union

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.error import BadRequest, Forbidden, NetworkError, RetryAfter, TelegramError, TimedOut

from pricewatch.domain.models import DeliveryResult
from pricewatch.shared.language import LANG_ARABIC, LANG_ENGLISH, translate

logger = logging.getLogger(__name__)

HISTORY_CALLBACK_PREFIX = "history:"
# Bilingual: delivery does not know the subscriber locale
HISTORY_BUTTON_LABEL = f"📊 {translate('history_button', LANG_ENGLISH)} | {translate('history_button', LANG_ARABIC)}"


def _chat_id(token: str) -> Union[int, str]:
    """Numeric chat ids go to the API as ints; @channel names stay strings."""
    stripped = token.strip()
    if stripped.lstrip("-").isdigit():
        return int(stripped)
    return stripped


def history_markup(data: Dict[str, str]) -> Optional[InlineKeyboardMarkup]:
    """Inline button that opens the instrument's recent history, if the payload names one."""
    instrument = data.get("instrument")
    if not instrument:
        return None
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(HISTORY_BUTTON_LABEL, callback_data=f"{HISTORY_CALLBACK_PREFIX}{instrument}")]]
    )


class TelegramDelivery:
    def __init__(self, bot: Bot):
        self.bot = bot

    async def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> DeliveryResult:
        """
        Send one notification.

        Returns:
            DeliveryResult; Telegram errors never propagate
        """
        text = f"{title}\n\n{body}"
        try:
            await self.bot.send_message(
                chat_id=_chat_id(token),
                text=text,
                reply_markup=history_markup(data),
            )
            return DeliveryResult.success()
        except Forbidden as e:
            logger.warning("Chat %s unreachable (forbidden): %s", token, e)
            return DeliveryResult.permanent("token-not-registered")
        except BadRequest as e:
            if "chat not found" in str(e).lower():
                logger.warning("Chat %s not found", token)
                return DeliveryResult.permanent("invalid-token")
            logger.warning("Bad request sending to %s: %s", token, e)
            return DeliveryResult.transient("bad-request")
        except RetryAfter as e:
            logger.warning("Rate limited by Telegram sending to %s, retry after %s", token, e.retry_after)
            return DeliveryResult.transient("rate-limited")
        except (TimedOut, NetworkError) as e:
            logger.warning("Network error sending to %s: %s", token, e)
            return DeliveryResult.transient("network-error")
        except TelegramError as e:
            logger.error("Telegram error sending to %s: %s", token, e)
            return DeliveryResult.transient("telegram-error")
