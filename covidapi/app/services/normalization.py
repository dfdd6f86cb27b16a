"""Conversion between the nested snapshot shape and flat warehouse rows."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

import structlog

from covidapi.app.errors import IntegrityError
from covidapi.app.schemas import Cases, Snapshot, StateSnapshot
from covidapi.app.timestamps import as_utc, utcnow

logger = structlog.get_logger()


@dataclass
class SnapshotRow:
    """Flat, storage-ready counts for one geography of one snapshot."""
    country_name: str
    state_name: Optional[str]
    active: int
    cured: int
    deaths: int
    migrated: int
    total: int
    updated_at: datetime
    ingested_at: datetime


def _row(snapshot: Snapshot, state_name: str | None, cases: Cases, ingested_at: datetime) -> SnapshotRow:
    return SnapshotRow(
        country_name=snapshot.name,
        state_name=state_name,
        active=cases.active,
        cured=cases.cured,
        deaths=cases.deaths,
        migrated=cases.migrated,
        total=cases.total,
        updated_at=snapshot.updated_at,
        ingested_at=ingested_at,
    )


def _cases(row) -> Cases:
    return Cases(
        active=row.active,
        cured=row.cured,
        deaths=row.deaths,
        migrated=row.migrated,
        total=row.total,
    )


def flatten(snapshot: Snapshot, now: datetime | None = None) -> list[SnapshotRow]:
    """Country row first, then one row per state in input order.

    Every row of the batch shares a single ``ingested_at``.
    """
    ingested_at = as_utc(now) if now is not None else utcnow()
    rows = [_row(snapshot, None, snapshot.cases, ingested_at)]
    rows.extend(_row(snapshot, state.name, state.cases, ingested_at) for state in snapshot.states)
    logger.debug("Flattened snapshot", name=snapshot.name, rows=len(rows))
    return rows


def unflatten(rows: Sequence) -> Snapshot:
    """Rebuild a snapshot from the rows of one ``updated_at``.

    Accepts anything with the row attributes (SnapshotRow or ORM rows).
    Raises IntegrityError unless exactly one row is the country aggregate.
    """
    country_rows = [r for r in rows if r.state_name is None]
    if len(country_rows) != 1:
        raise IntegrityError(
            f"Expected exactly one country row, found {len(country_rows)} in {len(rows)} rows"
        )
    country = country_rows[0]

    states = [
        StateSnapshot(name=r.state_name, cases=_cases(r))
        for r in rows
        if r.state_name is not None
    ]
    return Snapshot(
        name=country.country_name,
        cases=_cases(country),
        updated_at=country.updated_at,
        states=states,
    )
