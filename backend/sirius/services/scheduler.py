"""Background task scheduler: runs the daily report retention cleanup.

Uses FastAPI's lifespan context to start/stop an asyncio background loop.
No external dependencies (no Celery, no APScheduler), just a simple
asyncio.sleep loop that fires once per day at the configured hour.

Configuration:
    REPORT_CLEANUP_HOUR=3      (run at 03:00 UTC daily, via .env)
    REPORT_CLEANUP_MODE=live   (or "test" to count without deleting)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from fastapi import FastAPI

from sirius.config import settings
from sirius.database import async_session
from sirius.wizards.registry import check_registry_consistency

logger = logging.getLogger("sirius.scheduler")


async def run_daily_cleanup() -> dict | None:
    """Run one retention pass in its own session."""
    from sirius.services.report_cleanup import delete_expired_reports

    logger.info("Starting report retention cleanup")
    try:
        async with async_session() as db:
            try:
                summary = await delete_expired_reports(db, settings.report_cleanup_mode)
                await db.commit()
                return summary
            except Exception:
                await db.rollback()
                raise
    except Exception:
        logger.exception("Report retention cleanup failed")
        return None


def seconds_until(hour: int, now: datetime | None = None) -> float:
    """Seconds from `now` until the next HH:00 UTC."""
    now = now or datetime.now(timezone.utc)
    next_run = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return (next_run - now).total_seconds()


async def _scheduler_loop() -> None:
    while True:
        wait_seconds = seconds_until(settings.report_cleanup_hour)
        logger.info("Next report cleanup in %.0f seconds", wait_seconds)

        await asyncio.sleep(wait_seconds)
        await run_daily_cleanup()

        # Small buffer to avoid running twice in the same minute
        await asyncio.sleep(60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan: start the scheduler on startup, cancel on shutdown."""
    check_registry_consistency()
    task = asyncio.create_task(_scheduler_loop())
    logger.info("Report cleanup scheduler started")
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Report cleanup scheduler stopped")
