"""Scraper scheduler: periodic ingestion of the live mohfw.gov.in snapshot."""

from datetime import datetime, timezone

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from covidapi.app.config import get_settings
from covidapi.app.database import async_session
from covidapi.app.errors import SnapshotError

logger = structlog.get_logger()
settings = get_settings()

scheduler = AsyncIOScheduler()


async def run_mohfw_ingest():
    """Scrape mohfw.gov.in and ingest the snapshot unless it is already stored."""
    from covidapi.ingestion.scrapers.india_mohfw import MohfwScraper

    async with async_session() as db:
        scraper = MohfwScraper()
        try:
            outcome = await scraper.run(db)
            logger.info("MoHFW ingest complete", status=outcome.status, updated_at=outcome.updated_at)
        except SnapshotError as e:
            logger.error("MoHFW ingest failed", error=str(e))
        finally:
            await scraper.close()


def start_scheduler():
    """Configure and start the scraper scheduler."""
    interval_hours = settings.scrape_interval_hours

    scheduler.add_job(
        run_mohfw_ingest,
        trigger=IntervalTrigger(hours=interval_hours),
        id="india_mohfw",
        name="MoHFW Snapshot Ingest",
        next_run_time=datetime.now(timezone.utc),  # Run immediately on startup
        max_instances=1,
    )

    scheduler.start()
    logger.info(
        "Scheduler started",
        jobs=len(scheduler.get_jobs()),
        interval_hours=interval_hours,
    )


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
