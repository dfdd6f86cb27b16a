"""Duplicate guard for snapshot writes."""

import enum
from datetime import datetime

import structlog

from covidapi.app.services.matching import find_closest
from covidapi.app.timestamps import to_iso
from covidapi.app.warehouse import SnapshotWarehouse

logger = structlog.get_logger()


class GuardDecision(enum.Enum):
    ALLOW = "allow"
    REJECT_DUPLICATE = "reject_duplicate"


async def should_insert(warehouse: SnapshotWarehouse, target: datetime) -> GuardDecision:
    """Reject the write when a snapshot already exists for the same whole second.

    The source republishes the same figures between real updates, so a zero
    second distance to the closest stored instant means the write is a no-op.
    """
    match = await find_closest(warehouse, target)
    if match is not None and match.distance_seconds == 0:
        logger.info("Snapshot already stored", updated_at=to_iso(target))
        return GuardDecision.REJECT_DUPLICATE
    return GuardDecision.ALLOW
