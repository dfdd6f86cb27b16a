from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from covidapi.app.database import get_db
from covidapi.app.schemas import ErrorOut, IngestOut, Snapshot
from covidapi.app.services.snapshots import SnapshotService
from covidapi.app.warehouse import SnapshotWarehouse
from covidapi.ingestion.scrapers.india_mohfw import MohfwScraper

router = APIRouter(tags=["data"])

ERROR_RESPONSES = {
    400: {"model": ErrorOut},
    404: {"model": ErrorOut},
    500: {"model": ErrorOut},
}


def get_snapshot_service(db: AsyncSession = Depends(get_db)) -> SnapshotService:
    return SnapshotService(SnapshotWarehouse(db))


async def get_scraper():
    scraper = MohfwScraper()
    try:
        yield scraper
    finally:
        await scraper.close()


@router.get("/data", response_model=Snapshot, responses=ERROR_RESPONSES)
async def read_data(
    date: str | None = Query(None, description="ISO-8601 instant; defaults to now"),
    service: SnapshotService = Depends(get_snapshot_service),
):
    """Snapshot as of ``date``: the most recent one not published after it."""
    return await service.read(date)


@router.put("/data", response_model=IngestOut, responses=ERROR_RESPONSES)
async def write_data(
    snapshot: Snapshot,
    service: SnapshotService = Depends(get_snapshot_service),
):
    """Store a snapshot. Idempotent: a snapshot already stored for the same second is skipped."""
    return await service.write(snapshot)


@router.get("/data/current", response_model=Snapshot, responses=ERROR_RESPONSES)
async def read_current_data(scraper: MohfwScraper = Depends(get_scraper)):
    return await scraper.fetch_latest()


@router.put("/data/current", response_model=IngestOut, responses=ERROR_RESPONSES)
async def write_current_data(
    scraper: MohfwScraper = Depends(get_scraper),
    service: SnapshotService = Depends(get_snapshot_service),
):
    snapshot = await scraper.fetch_latest()
    return await service.write(snapshot)
