"""Reservation Cleanup Job

Periodically releases stock reservations whose checkout never completed
(expires_at in the past, still ACTIVE) and reports variants running low.

Runs as a background task next to the application.
"""

import asyncio
import logging
from datetime import datetime, timedelta

import config
from services.background_tasks import BackgroundTaskService


logger = logging.getLogger(__name__)


async def run_cleanup_cycle() -> dict:
    """Execute one cleanup cycle and log its outcome."""
    logger.info("[Reservation Cleanup] Starting cleanup cycle...")
    results = await BackgroundTaskService.run_single_cleanup()
    logger.info(
        f"[Reservation Cleanup] Cycle complete "
        f"(released: {results['released_reservations']}, low stock: {results['low_stock_variants']}, "
        f"errors: {len(results['errors'])})"
    )
    return results


async def reservation_cleanup_scheduler(interval_seconds: int | None = None):
    """Scheduler that runs cleanup cycles at the configured interval.

    This function runs indefinitely and should be started as a background task.
    """
    interval_seconds = interval_seconds or config.RESERVATION_CLEANUP_INTERVAL_SECONDS
    logger.info(f"[Reservation Cleanup] Scheduler started (interval: {interval_seconds}s)")

    while True:
        try:
            await run_cleanup_cycle()
            logger.debug(
                f"[Reservation Cleanup] Next cycle at "
                f"{(datetime.now() + timedelta(seconds=interval_seconds)).strftime('%Y-%m-%d %H:%M:%S')}"
            )
            await asyncio.sleep(interval_seconds)

        except asyncio.CancelledError:
            logger.info("[Reservation Cleanup] Scheduler stopped")
            break
        except Exception as e:
            logger.error(f"[Reservation Cleanup] Scheduler error: {e}", exc_info=True)
            await asyncio.sleep(interval_seconds)
