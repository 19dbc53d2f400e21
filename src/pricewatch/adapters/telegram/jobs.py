# src/pricewatch/adapters/telegram/jobs.py
"""
Telegram Jobs - JobQueue Callbacks for Scheduled Runs

Thin JobQueue callbacks around CollectionScheduler. The scheduler instance is
passed as the job's data when the job is registered in pricewatch.app.

Files that USE this module:
- pricewatch.app (registers the jobs on the application's JobQueue)

Files that this module USES:
- pricewatch.application.scheduler (CollectionScheduler)
"""
from __future__ import annotations

import logging

from telegram.ext import ContextTypes

from pricewatch.application.scheduler import CollectionScheduler

logger = logging.getLogger(__name__)


def _scheduler(context: ContextTypes.DEFAULT_TYPE) -> CollectionScheduler:
    return context.job.data


async def collection_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Every collection interval: fetch, record, evaluate, dispatch."""
    try:
        report = await _scheduler(context).run_collection_cycle()
        if report is not None and report.failures:
            logger.warning("collection_job finished with %d failures", report.failures)
    except Exception as e:
        logger.error("collection_job failed: %s", e, exc_info=True)


async def retention_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Daily: prune every instrument to the retention limit."""
    try:
        await _scheduler(context).run_retention_sweep()
    except Exception as e:
        logger.error("retention_job failed: %s", e, exc_info=True)


async def digest_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Daily: send the price digest to every eligible subscriber."""
    try:
        await _scheduler(context).run_digest_cycle()
    except Exception as e:
        logger.error("digest_job failed: %s", e, exc_info=True)
