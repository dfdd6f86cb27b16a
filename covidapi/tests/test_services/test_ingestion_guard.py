"""Tests for the duplicate write guard."""

from datetime import datetime, timedelta, timezone

import pytest

from covidapi.app.services.ingestion import GuardDecision, should_insert

T0 = datetime(2020, 4, 1, 10, 0, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
class TestShouldInsert:
    async def test_allows_first_write(self, warehouse):
        assert await should_insert(warehouse, T0) is GuardDecision.ALLOW

    async def test_rejects_same_second(self, warehouse, seeded_db):
        assert await should_insert(warehouse, T0) is GuardDecision.REJECT_DUPLICATE

    async def test_rejects_sub_second_skew(self, warehouse, seeded_db):
        target = T0 + timedelta(milliseconds=400)
        assert await should_insert(warehouse, target) is GuardDecision.REJECT_DUPLICATE

    async def test_allows_one_second_later(self, warehouse, seeded_db):
        assert await should_insert(warehouse, T0 + timedelta(seconds=1)) is GuardDecision.ALLOW

    async def test_allows_earlier_than_everything(self, warehouse, seeded_db):
        assert await should_insert(warehouse, T0 - timedelta(hours=1)) is GuardDecision.ALLOW
