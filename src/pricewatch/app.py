# src/pricewatch/app.py
"""
Application Entry Point - Bot Initialization and Startup

This module serves as the composition root for the PriceWatch bot.
It wires sources, cache, history, alerting and delivery together, schedules
the collection, retention and digest jobs and starts polling.

Files that USE this module:
- pricewatch console script (pyproject.toml)

Files that this module USES:
- pricewatch.shared.logging_conf (setup_logging for logging configuration)
- pricewatch.config (settings for configuration management)
- pricewatch.adapters.* (sources, persistence, Telegram bot and delivery)
- pricewatch.application.* (fetcher, cache, history, alerts, dispatcher, scheduler)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations for forward references

import atexit  # Register cleanup functions to run when program exits
import logging  # Standard library for logging messages and errors
import os  # Operating system interface for environment variables and process management
import sys  # System-specific parameters and functions for exit codes
from datetime import timedelta, timezone  # Scheduling intervals and UTC job times
from pathlib import Path  # Object-oriented filesystem paths
from typing import List  # Type hints

from telegram.error import Conflict, NetworkError, TimedOut  # Telegram API error exceptions

from pricewatch.adapters.crawlers import BankLiveCrawler, GoldPriceNowCrawler, InvestingCrawler, XECrawler
from pricewatch.adapters.persistence import FileDocumentStore
from pricewatch.adapters.providers import ExchangeRateAPIProvider, MetalPriceAPIProvider, SourceAdapter
from pricewatch.adapters.telegram import TelegramDelivery, build_application
from pricewatch.adapters.telegram.jobs import collection_job, digest_job, retention_job
from pricewatch.application import (
    AlertEvaluator,
    CollectionScheduler,
    FallbackFetcher,
    HistoryStore,
    NotificationDispatcher,
    QuoteCache,
)
from pricewatch.shared.logging_conf import setup_logging  # Configure logging with file rotation
from pricewatch.shared.rate_limiter import HostThrottle, RateLimiter


def _get_pid_file() -> Path:
    """Get PID file path from PRICEWATCH_PID_FILE or the data directory."""
    pid_file = os.environ.get("PRICEWATCH_PID_FILE")
    if pid_file:
        return Path(pid_file)
    from pricewatch.config import settings
    return settings.data_dir / "bot.pid"


def _check_existing_instance() -> None:
    """
    Check if another bot instance is already running.

    Raises RuntimeError if PID file exists and process is still running.
    """
    pid_file = _get_pid_file()
    if pid_file.exists():
        try:
            old_pid = int(pid_file.read_text().strip())
            try:
                os.kill(old_pid, 0)  # Signal 0 only checks the process exists
                raise RuntimeError(
                    f"Another bot instance is already running (PID: {old_pid}).\n"
                    f"Please stop it first with: kill {old_pid}"
                )
            except ProcessLookupError:
                pid_file.unlink()
        except (ValueError, OSError):
            pid_file.unlink(missing_ok=True)


def _create_pid_file() -> None:
    pid_file = _get_pid_file()
    pid_file.parent.mkdir(parents=True, exist_ok=True)
    pid_file.write_text(str(os.getpid()))


def _remove_pid_file() -> None:
    try:
        _get_pid_file().unlink(missing_ok=True)
    except OSError:
        pass


def build_sources(settings, throttle: HostThrottle) -> List[SourceAdapter]:
    """
    Source adapters in fallback order.

    Commodities: MetalpriceAPI, goldpricenow.live, banklive.net.
    FX pairs: ExchangeRate-API, xe.com, investing.com.
    """
    timeout = settings.http_timeout_seconds
    return [
        MetalPriceAPIProvider(settings.metalpriceapi_key, timeout=timeout, throttle=throttle),
        GoldPriceNowCrawler(timeout=timeout, throttle=throttle),
        BankLiveCrawler(timeout=timeout, throttle=throttle),
        ExchangeRateAPIProvider(timeout=timeout, throttle=throttle),
        XECrawler(timeout=timeout, throttle=throttle),
        InvestingCrawler(timeout=timeout, throttle=throttle),
    ]


def main() -> None:
    """
    Initialize and start the Telegram bot application.

    This function:
    1. Sets up logging and validates configuration
    2. Wires sources, cache, history store, alerting and delivery
    3. Registers command handlers
    4. Schedules collection, retention and digest jobs
    5. Starts the bot polling loop
    """
    from pricewatch.config import settings

    setup_logging(
        level=logging.INFO,
        log_file=settings.log_file,
        log_dir=settings.log_dir,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )
    logger = logging.getLogger(__name__)
    logger.info("Working directory: %s", os.getcwd())
    logger.info("Data directory: %s", settings.data_dir)

    if not settings.bot_token:
        raise RuntimeError("BOT_TOKEN missing")

    try:
        _check_existing_instance()
        _create_pid_file()
        atexit.register(_remove_pid_file)
        logger.info("Bot instance lock acquired (PID: %d)", os.getpid())
    except RuntimeError as e:
        logger.error(str(e))
        sys.exit(1)

    # Acquisition
    throttle = HostThrottle(min_interval=settings.host_delay_seconds)
    fetcher = FallbackFetcher(build_sources(settings, throttle), source_timeout=settings.source_timeout_seconds)
    cache = QuoteCache(fetcher, settings.cache_ttls)

    # Persistence
    store = FileDocumentStore(settings.data_dir)
    history = HistoryStore(store, retention_limit=settings.retention_limit,
                           timeout=settings.persistence_timeout_seconds)

    # Telegram app + delivery
    app = build_application(
        settings.bot_token,
        settings=settings,
        store=store,
        history=history,
        cache=cache,
        rate_limiter=RateLimiter(),
    )
    delivery = TelegramDelivery(app.bot)

    # Alerting
    evaluator = AlertEvaluator(store, timeout=settings.persistence_timeout_seconds)
    dispatcher = NotificationDispatcher(store, delivery, timeout=settings.persistence_timeout_seconds)
    scheduler = CollectionScheduler(
        settings.instruments, cache, history, evaluator, dispatcher, max_workers=settings.max_workers,
    )

    app.job_queue.run_repeating(
        callback=collection_job,
        interval=timedelta(minutes=settings.collection_interval_minutes),
        first=0,  # start immediately at boot
        name="collection",
        data=scheduler,
    )
    app.job_queue.run_daily(
        callback=retention_job,
        time=settings.retention_sweep_at.replace(tzinfo=timezone.utc),
        name="retention_sweep",
        data=scheduler,
    )
    app.job_queue.run_daily(
        callback=digest_job,
        time=settings.digest_at.replace(tzinfo=timezone.utc),
        name="daily_digest",
        data=scheduler,
    )

    logger.info(
        "Starting bot polling… %d instruments, collection every %d minutes, "
        "retention sweep %s UTC, digest %s UTC",
        len(settings.instruments),
        settings.collection_interval_minutes,
        settings.retention_sweep_time,
        settings.digest_time,
    )

    try:
        app.run_polling(close_loop=False, drop_pending_updates=False)
    except Conflict as e:
        logger.error("Telegram Conflict error: %s (another instance is polling)", e, exc_info=True)
        _remove_pid_file()
        raise
    except (TimedOut, NetworkError) as e:
        logger.error("Network error during bot operation: %s (type: %s)", e, type(e).__name__, exc_info=True)
        _remove_pid_file()
        raise
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (KeyboardInterrupt)")
        _remove_pid_file()
        raise


if __name__ == "__main__":
    main()
