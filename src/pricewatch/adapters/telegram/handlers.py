# src/pricewatch/adapters/telegram/handlers.py
"""
Telegram Handlers - Registration Commands and User Interaction

This module is the registration boundary: subscribers create and edit their
subscription (delivery token, language, rules, cooldown) through bot
commands. It also serves the latest prices, the history button attached to
alerts and the admin-only manual cache refresh.

Components are read from application.bot_data, filled in by pricewatch.app:
    "settings", "store", "history", "cache", "rate_limiter"

Files that USE this module:
- pricewatch.adapters.telegram.bot (build_handlers registers all handlers)
- tests.test_handlers (unit tests)

Files that this module USES:
- pricewatch.adapters.formatting.formatter (format_prices, format_history)
- pricewatch.application.history (call_store timeout wrapper)
- pricewatch.shared.rate_limiter (RATE_LIMITS)
- pricewatch.shared.language (translate, resolve_language)
- pricewatch.shared.validators (validate_numeric_input)
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import CallbackQueryHandler, CommandHandler, ContextTypes

from pricewatch.adapters.formatting.formatter import format_history, format_prices, instrument_label
from pricewatch.adapters.telegram.delivery import HISTORY_CALLBACK_PREFIX
from pricewatch.application.history import call_store
from pricewatch.domain import catalog
from pricewatch.domain.errors import PersistenceError
from pricewatch.domain.models import Cooldown, Direction, Instrument, InstrumentKind, Rule, Subscription
from pricewatch.shared.language import LANG_ARABIC, SUPPORTED_LANGUAGES, resolve_language, translate
from pricewatch.shared.rate_limiter import RATE_LIMITS
from pricewatch.shared.validators import validate_numeric_input

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
MAX_INTERVAL_MINUTES = 1440


# --- helpers ---

def _check_rate_limit(update: Update, context: ContextTypes.DEFAULT_TYPE, limit_type: str) -> bool:
    """
    Check if user is within configured rate limits.

    Admin commands use their own bucket so they never share a window with
    public commands.
    """
    rate_limiter = context.bot_data.get("rate_limiter")
    config = RATE_LIMITS.get(limit_type)
    if rate_limiter is None or config is None:
        return True

    user_id = str(update.effective_user.id)
    prefix = "admin" if limit_type == "admin_command" else "public"
    identifier = f"{prefix}:user:{user_id}"

    if not rate_limiter.is_allowed(identifier, config):
        logger.warning(
            "Rate limit exceeded for %s (type=%s, reset_time=%s)",
            identifier, limit_type, rate_limiter.get_reset_time(identifier, config),
        )
        return False
    return True


def _is_admin(update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
    """The admin is the user whose username matches ADMIN_USERNAME; unset means nobody."""
    admin = (context.bot_data["settings"].admin_username or "").lstrip("@").lower()
    user = update.effective_user
    uname = (user.username or "").lstrip("@").lower()
    return bool(admin) and uname == admin


async def _load(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Optional[Subscription]:
    """Load the caller's subscription; replies and returns None if unregistered."""
    store = context.bot_data["store"]
    user_id = str(update.effective_user.id)
    subscription = await call_store(store.find_subscription, user_id)
    if subscription is None:
        lang = resolve_language(update.effective_user.language_code)
        await update.message.reply_text(translate("not_registered", lang))
    return subscription


async def _save(context: ContextTypes.DEFAULT_TYPE, subscription: Subscription) -> None:
    await call_store(context.bot_data["store"].save_subscription, subscription)


def _rule_line(rule: Rule, lang: str) -> str:
    return f"— {instrument_label(rule.target, lang)} {rule.direction.value} {rule.threshold_value:g}"


def _user_language(update: Update, default: str) -> str:
    """Arabic if the Telegram client is set to Arabic, otherwise the configured default."""
    if resolve_language(update.effective_user.language_code) == LANG_ARABIC:
        return LANG_ARABIC
    return default


# --- /start: register or re-register ---
async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /start - create the caller's subscription, or refresh its delivery
    token if it already exists (re-registering revives a cleared token).
    """
    if not _check_rate_limit(update, context, "user_command"):
        await update.message.reply_text(translate("rate_limited", update.effective_user.language_code))
        return

    settings = context.bot_data["settings"]
    store = context.bot_data["store"]
    user_id = str(update.effective_user.id)
    chat_id = str(update.effective_chat.id)

    try:
        subscription = await call_store(store.find_subscription, user_id)
        if subscription is None:
            subscription = Subscription(
                user_id=user_id,
                delivery_token=chat_id,
                language=_user_language(update, settings.default_language),
                cooldown=Cooldown(min_interval_ms=settings.default_min_interval_minutes * 60_000),
                created_at=datetime.now(timezone.utc),
            )
            logger.info("New subscription for user %s", user_id)
        else:
            subscription.delivery_token = chat_id
            logger.info("Subscription for user %s re-registered", user_id)
        await _save(context, subscription)
    except PersistenceError:
        logger.exception("Failed to register user %s", user_id)
        await update.message.reply_text(translate("storage_error", update.effective_user.language_code))
        return

    await update.message.reply_text(translate("registered", subscription.language))


# --- /alert <target> <above|below|any> <threshold> ---
async def alert_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, context, "user_command"):
        await update.message.reply_text(translate("rate_limited", update.effective_user.language_code))
        return

    try:
        subscription = await _load(update, context)
        if subscription is None:
            return
        lang = subscription.language

        args: List[str] = context.args or []
        if len(args) != 3:
            await update.message.reply_text(translate("usage_alert", lang))
            return
        raw_target, raw_direction, raw_threshold = args

        try:
            target = Instrument.parse(raw_target)
        except ValueError:
            target = None
        if target is None or not catalog.is_supported(target):
            await update.message.reply_text(translate("invalid_target", lang, target=raw_target))
            return

        try:
            direction = Direction(raw_direction.lower())
        except ValueError:
            await update.message.reply_text(translate("usage_alert", lang))
            return

        if not validate_numeric_input(raw_threshold, min_val=0):
            await update.message.reply_text(translate("invalid_threshold", lang, threshold=raw_threshold))
            return

        rule = Rule(target=target, threshold_value=float(raw_threshold), direction=direction)
        subscription.rules.append(rule)
        await _save(context, subscription)
    except PersistenceError:
        logger.exception("Failed to add alert for user %s", update.effective_user.id)
        await update.message.reply_text(translate("storage_error", update.effective_user.language_code))
        return

    await update.message.reply_text(
        translate("alert_added", lang, target=target.key, direction=direction.value,
                  threshold=f"{rule.threshold_value:g}")
    )


# --- /alerts ---
async def alerts_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, context, "user_command"):
        await update.message.reply_text(translate("rate_limited", update.effective_user.language_code))
        return
    try:
        subscription = await _load(update, context)
    except PersistenceError:
        logger.exception("Failed to load alerts for user %s", update.effective_user.id)
        await update.message.reply_text(translate("storage_error", update.effective_user.language_code))
        return
    if subscription is None:
        return

    lang = subscription.language
    if not subscription.rules:
        await update.message.reply_text(translate("no_alerts", lang))
        return
    lines = [translate("alerts_header", lang)]
    lines.extend(_rule_line(rule, lang) for rule in subscription.rules)
    await update.message.reply_text("\n".join(lines))


# --- /clearalerts ---
async def clearalerts_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, context, "user_command"):
        await update.message.reply_text(translate("rate_limited", update.effective_user.language_code))
        return
    try:
        subscription = await _load(update, context)
        if subscription is None:
            return
        subscription.rules = []
        await _save(context, subscription)
    except PersistenceError:
        logger.exception("Failed to clear alerts for user %s", update.effective_user.id)
        await update.message.reply_text(translate("storage_error", update.effective_user.language_code))
        return
    await update.message.reply_text(translate("alerts_cleared", subscription.language))


# --- /lang <en|ar> ---
async def lang_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, context, "user_command"):
        await update.message.reply_text(translate("rate_limited", update.effective_user.language_code))
        return
    try:
        subscription = await _load(update, context)
        if subscription is None:
            return
        args = context.args or []
        choice = args[0].lower() if args else ""
        if choice not in SUPPORTED_LANGUAGES:
            await update.message.reply_text(translate("usage_lang", subscription.language))
            return
        subscription.language = choice
        await _save(context, subscription)
    except PersistenceError:
        logger.exception("Failed to set language for user %s", update.effective_user.id)
        await update.message.reply_text(translate("storage_error", update.effective_user.language_code))
        return
    await update.message.reply_text(translate("language_set", choice))


# --- /interval <minutes> ---
async def interval_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, context, "user_command"):
        await update.message.reply_text(translate("rate_limited", update.effective_user.language_code))
        return
    try:
        subscription = await _load(update, context)
        if subscription is None:
            return
        args = context.args or []
        if len(args) != 1 or not validate_numeric_input(args[0], min_val=0, max_val=MAX_INTERVAL_MINUTES):
            await update.message.reply_text(translate("usage_interval", subscription.language))
            return
        minutes = float(args[0])
        subscription.cooldown.min_interval_ms = int(minutes * 60_000)
        await _save(context, subscription)
    except PersistenceError:
        logger.exception("Failed to set interval for user %s", update.effective_user.id)
        await update.message.reply_text(translate("storage_error", update.effective_user.language_code))
        return
    await update.message.reply_text(translate("interval_set", subscription.language, minutes=f"{minutes:g}"))


# --- /notify <on|off> ---
async def notify_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, context, "user_command"):
        await update.message.reply_text(translate("rate_limited", update.effective_user.language_code))
        return
    try:
        subscription = await _load(update, context)
        if subscription is None:
            return
        args = context.args or []
        choice = args[0].lower() if args else ""
        if choice not in ("on", "off"):
            await update.message.reply_text(translate("usage_notify", subscription.language))
            return
        subscription.cooldown.enabled = choice == "on"
        await _save(context, subscription)
    except PersistenceError:
        logger.exception("Failed to toggle notifications for user %s", update.effective_user.id)
        await update.message.reply_text(translate("storage_error", update.effective_user.language_code))
        return
    await update.message.reply_text(
        translate("notify_on" if subscription.cooldown.enabled else "notify_off", subscription.language)
    )


# --- /prices: latest recorded observation per instrument ---
async def prices_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _check_rate_limit(update, context, "user_command"):
        await update.message.reply_text(translate("rate_limited", update.effective_user.language_code))
        return

    settings = context.bot_data["settings"]
    history = context.bot_data["history"]
    store = context.bot_data["store"]
    lang = resolve_language(update.effective_user.language_code)

    try:
        subscription = await call_store(store.find_subscription, str(update.effective_user.id))
        if subscription is not None:
            lang = subscription.language
        observations = []
        for instrument in settings.instruments:
            latest = await history.latest(instrument)
            if latest is not None:
                observations.append(latest)
    except PersistenceError:
        logger.exception("Failed to load latest prices")
        await update.message.reply_text(translate("storage_error", lang))
        return

    keyboard = [
        [InlineKeyboardButton(instrument_label(o.instrument, lang),
                              callback_data=f"{HISTORY_CALLBACK_PREFIX}{o.instrument.key}")]
        for o in observations
    ]
    await update.message.reply_text(
        format_prices(observations, lang),
        reply_markup=InlineKeyboardMarkup(keyboard) if keyboard else None,
    )


# --- history button (callback_data = "history:<instrument key>") ---
async def history_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    lang = resolve_language(update.effective_user.language_code)
    try:
        instrument = Instrument.parse(query.data[len(HISTORY_CALLBACK_PREFIX):])
    except ValueError:
        logger.warning("Invalid history callback data: %r", query.data)
        return

    try:
        subscription = await call_store(context.bot_data["store"].find_subscription, str(update.effective_user.id))
        if subscription is not None:
            lang = subscription.language
        observations = await context.bot_data["history"].history(instrument, HISTORY_LIMIT)
    except PersistenceError:
        logger.exception("Failed to load history for %s", instrument)
        await query.message.reply_text(translate("storage_error", lang))
        return

    await query.message.reply_text(format_history(instrument, observations, lang))


# --- /refresh [commodity|fx]: admin-only manual cache control ---
async def refresh_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    lang = resolve_language(update.effective_user.language_code)
    if not _is_admin(update, context):
        await update.message.reply_text(translate("admin_only", lang))
        return
    if not _check_rate_limit(update, context, "admin_command"):
        await update.message.reply_text(translate("rate_limited", lang))
        return

    args = context.args or []
    kind: Optional[InstrumentKind] = None
    if args:
        try:
            kind = InstrumentKind(args[0].lower())
        except ValueError:
            await update.message.reply_text(translate("usage_refresh", lang))
            return

    removed = context.bot_data["cache"].clear(kind)
    logger.info("Admin %s cleared cache (%s): %d entries", update.effective_user.username, kind, removed)
    await update.message.reply_text(translate("cache_cleared", lang, scope=kind.value if kind else "all"))


def build_handlers():
    """
    Build and return list of Telegram bot handlers.

    Returns:
        List of handler instances for registration with bot
    """
    return [
        CommandHandler("start", start),
        CommandHandler("alert", alert_cmd),
        CommandHandler("alerts", alerts_cmd),
        CommandHandler("clearalerts", clearalerts_cmd),
        CommandHandler("lang", lang_cmd),
        CommandHandler("interval", interval_cmd),
        CommandHandler("notify", notify_cmd),
        CommandHandler("prices", prices_cmd),
        CommandHandler("refresh", refresh_cmd),  # Admin only - clears the quote cache
        CallbackQueryHandler(history_callback, pattern=f"^{HISTORY_CALLBACK_PREFIX}"),
    ]
