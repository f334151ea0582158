import asyncio
import logging

from utils.logging_config import setup_logging

# Initialize centralized logging configuration
setup_logging()

import config
from db import create_db_and_tables
from jobs.reservation_cleanup_job import reservation_cleanup_scheduler


async def main() -> None:
    """
    Start the order core: create tables, then keep the reservation cleanup
    job running until the process is stopped. Request handlers call the
    services in-process.
    """
    logging.info(f"🔧 [run.py] Starting ({config.RUNTIME_ENVIRONMENT.value})")
    await create_db_and_tables()
    logging.info("[Startup] Database tables ready")

    cleanup_task = asyncio.create_task(reservation_cleanup_scheduler())
    logging.info("[Startup] Reservation cleanup job started")

    try:
        await cleanup_task
    finally:
        # Shutdown
        logging.warning('Shutting down..')
        if not cleanup_task.done():
            cleanup_task.cancel()
            try:
                await cleanup_task
            except asyncio.CancelledError:
                logging.info("[Shutdown] Reservation cleanup job stopped")


if __name__ == '__main__':
    asyncio.run(main())
