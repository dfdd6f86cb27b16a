"""As-of matching of a requested instant against stored snapshot instants."""

from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from covidapi.app.timestamps import as_utc, to_iso
from covidapi.app.warehouse import SnapshotWarehouse

logger = structlog.get_logger()

_ONE_SECOND = timedelta(seconds=1)


@dataclass(frozen=True)
class Match:
    instant: datetime
    distance_seconds: int


def distance_seconds(target: datetime, instant: datetime) -> int:
    """Whole seconds from ``instant`` up to ``target``, truncated."""
    return (as_utc(target) - as_utc(instant)) // _ONE_SECOND


async def find_closest(warehouse: SnapshotWarehouse, target: datetime) -> Match | None:
    """Most recent stored instant not after ``target``; None when nothing qualifies.

    Instants later than the target are never candidates, so an as-of read
    cannot see data published after the requested time.
    """
    instant = await warehouse.latest_instant_at_or_before(target)
    if instant is None:
        logger.info("No snapshot at or before target", target=to_iso(target))
        return None

    match = Match(instant=instant, distance_seconds=distance_seconds(target, instant))
    logger.info(
        "Closest snapshot found",
        target=to_iso(target),
        match=to_iso(match.instant),
        distance_seconds=match.distance_seconds,
    )
    return match
