"""Tests for instant parsing and formatting."""

from datetime import datetime, timedelta, timezone

import pytest

from covidapi.app.errors import DateParseError
from covidapi.app.timestamps import as_utc, parse_instant, to_iso


def test_to_iso_millisecond_precision():
    value = datetime(2020, 4, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
    assert to_iso(value) == "2020-04-01T10:00:00.123Z"


def test_to_iso_converts_offset():
    ist = timezone(timedelta(hours=5, minutes=30))
    assert to_iso(datetime(2020, 4, 1, 15, 30, tzinfo=ist)) == "2020-04-01T10:00:00.000Z"


def test_as_utc_naive():
    assert as_utc(datetime(2020, 4, 1)).tzinfo is timezone.utc


@pytest.mark.parametrize("text,expected", [
    ("2020-04-01T10:00:00Z", datetime(2020, 4, 1, 10, tzinfo=timezone.utc)),
    ("2020-04-01T10:00:00.500Z", datetime(2020, 4, 1, 10, 0, 0, 500000, tzinfo=timezone.utc)),
    ("2020-04-01T15:30:00+05:30", datetime(2020, 4, 1, 10, tzinfo=timezone.utc)),
    ("2020-04-01", datetime(2020, 4, 1, tzinfo=timezone.utc)),
    ("  2020-04-01T10:00:00  ", datetime(2020, 4, 1, 10, tzinfo=timezone.utc)),
])
def test_parse_instant(text, expected):
    assert parse_instant(text) == expected


def test_parse_instant_rejects_garbage():
    with pytest.raises(DateParseError) as exc_info:
        parse_instant("April-ish")
    assert exc_info.value.detail == "Invalid input: April-ish"


def test_parse_instant_out_of_utc_range():
    with pytest.raises(DateParseError):
        parse_instant("0001-01-01T00:00:00+05:30")
