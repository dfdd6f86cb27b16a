"""Read and write orchestration for case snapshots.

Write: validated Snapshot -> flatten -> duplicate guard -> insert or skip.
Read: resolve the target instant -> as-of match -> unflatten.

The guard query and the insert are two statements with no lock between
them; two simultaneous writes of the same ``updatedAt`` can both pass the
guard and both insert. Reads tolerate this by returning only the latest
ingested batch for an instant.
"""

from datetime import datetime
from typing import Any, Callable

import pydantic
import structlog

from covidapi.app.errors import SnapshotNotFoundError, ValidationError
from covidapi.app.schemas import IngestOut, Snapshot
from covidapi.app.services.ingestion import GuardDecision, should_insert
from covidapi.app.services.matching import find_closest
from covidapi.app.services.normalization import flatten, unflatten
from covidapi.app.timestamps import parse_instant, to_iso, utcnow
from covidapi.app.warehouse import SnapshotWarehouse

logger = structlog.get_logger()

MSG_INGESTED = "Ingestion successful for {iso}"
MSG_DUPLICATE = "Data already exists. Write request is ignored"


def validate_snapshot(payload: Any) -> Snapshot:
    """Validate a raw payload (dict or Snapshot) against the snapshot schema."""
    if isinstance(payload, Snapshot):
        return payload
    try:
        return Snapshot.model_validate(payload)
    except pydantic.ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        ]
        logger.warning("Snapshot validation failed", errors=errors)
        raise ValidationError(errors) from e


def resolve_target(requested: str | None, now: Callable[[], datetime] = utcnow) -> datetime:
    """Parse the requested date; missing or blank means now."""
    if requested is None or not requested.strip():
        return now()
    return parse_instant(requested)


class SnapshotService:
    def __init__(self, warehouse: SnapshotWarehouse, clock: Callable[[], datetime] = utcnow):
        self.warehouse = warehouse
        self.clock = clock

    async def read(self, requested: str | None = None) -> Snapshot:
        target = resolve_target(requested, self.clock)
        iso = to_iso(target)
        logger.info("Reading snapshot", target=iso)

        match = await find_closest(self.warehouse, target)
        if match is None:
            raise SnapshotNotFoundError(iso)

        rows = await self.warehouse.fetch_rows(match.instant)
        if not rows:
            raise SnapshotNotFoundError(iso)
        logger.info("Rows received", count=len(rows), updated_at=to_iso(match.instant))
        return unflatten(rows)

    async def write(self, payload: Any) -> IngestOut:
        snapshot = validate_snapshot(payload)
        rows = flatten(snapshot, now=self.clock())
        iso = to_iso(snapshot.updated_at)

        decision = await should_insert(self.warehouse, snapshot.updated_at)
        if decision is GuardDecision.REJECT_DUPLICATE:
            return IngestOut(status="skipped", message=MSG_DUPLICATE, updated_at=iso)

        stored = await self.warehouse.insert_rows(rows)
        logger.info("Snapshot ingested", updated_at=iso, rows=stored)
        return IngestOut(status="ingested", message=MSG_INGESTED.format(iso=iso), updated_at=iso)
