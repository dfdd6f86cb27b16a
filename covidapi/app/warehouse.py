"""Query/insert interface to the snapshot table.

All statements are SQLAlchemy expressions, so timestamps travel as bound
parameters. Driver and engine failures surface as UpstreamError.
"""

from datetime import datetime

import structlog
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from covidapi.app.errors import UpstreamError
from covidapi.app.models import CaseSnapshotRow
from covidapi.app.services.normalization import SnapshotRow
from covidapi.app.timestamps import as_utc

logger = structlog.get_logger()


def _to_row(record: CaseSnapshotRow) -> SnapshotRow:
    return SnapshotRow(
        country_name=record.country_name,
        state_name=record.state_name,
        active=record.active,
        cured=record.cured,
        deaths=record.deaths,
        migrated=record.migrated,
        total=record.total,
        updated_at=as_utc(record.updated_at),
        ingested_at=as_utc(record.ingested_at),
    )


class SnapshotWarehouse:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def latest_instant_at_or_before(self, target: datetime) -> datetime | None:
        """Greatest stored ``updated_at`` that is <= ``target``, or None."""
        query = select(func.max(CaseSnapshotRow.updated_at)).where(
            CaseSnapshotRow.updated_at <= as_utc(target)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Warehouse query failed", error=str(e))
            raise UpstreamError(f"Error while querying the warehouse: {e}") from e
        instant = result.scalar()
        return as_utc(instant) if instant is not None else None

    async def fetch_rows(self, instant: datetime) -> list[SnapshotRow]:
        """Rows stored for ``instant``, in insertion order.

        If concurrent writes stored more than one batch for the same instant,
        only the most recently ingested batch is returned.
        """
        query = (
            select(CaseSnapshotRow)
            .where(CaseSnapshotRow.updated_at == as_utc(instant))
            .order_by(CaseSnapshotRow.id)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Warehouse query failed", error=str(e))
            raise UpstreamError(f"Error while querying the warehouse: {e}") from e
        rows = [_to_row(r) for r in result.scalars().all()]
        if not rows:
            return rows

        latest_batch = max(r.ingested_at for r in rows)
        batch = [r for r in rows if r.ingested_at == latest_batch]
        if len(batch) != len(rows):
            logger.warning(
                "Multiple ingestion batches share one updated_at",
                updated_at=instant.isoformat(),
                rows=len(rows),
                kept=len(batch),
            )
        return batch

    async def insert_rows(self, rows: list[SnapshotRow]) -> int:
        try:
            for r in rows:
                self.db.add(CaseSnapshotRow(
                    country_name=r.country_name,
                    state_name=r.state_name,
                    active=r.active,
                    cured=r.cured,
                    deaths=r.deaths,
                    migrated=r.migrated,
                    total=r.total,
                    updated_at=as_utc(r.updated_at),
                    ingested_at=as_utc(r.ingested_at),
                ))
            await self.db.flush()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Warehouse insert failed", error=str(e))
            raise UpstreamError(f"Error while writing to the warehouse: {e}") from e
        return len(rows)
