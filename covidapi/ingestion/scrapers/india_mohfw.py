"""
India MoHFW scraper: Ministry of Health and Family Welfare COVID-19 dashboard.

Data source: https://www.mohfw.gov.in/
Provides national active/cured/deaths/migrated counts and a per-state table.
"""

import re
from datetime import datetime, timedelta, timezone

import structlog
from bs4 import BeautifulSoup

from covidapi.app.errors import UpstreamError
from covidapi.app.schemas import Cases, Snapshot, StateSnapshot
from covidapi.ingestion.base_scraper import BaseScraper

logger = structlog.get_logger()

COUNTRY_NAME = "India"
IST = timezone(timedelta(hours=5, minutes=30), "IST")

# e.g. "as on : 01 April 2020, 10:00 IST (GMT+5:30)"
_UPDATED_AT_RE = re.compile(r"(\d{1,2})\s+([A-Za-z]+)\s+(\d{4}),?\s+(\d{1,2}):(\d{2})")
_SERIAL_RE = re.compile(r"^\d+$")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")

STAT_CLASSES = {
    "active": "bg-blue",
    "cured": "bg-green",
    "deaths": "bg-red",
    "migrated": "bg-orange",
}


def _to_int(text: str) -> int | None:
    digits = "".join(c for c in text if c.isdigit())
    return int(digits) if digits else None


class MohfwScraper(BaseScraper):
    """Scraper for the mohfw.gov.in case dashboard."""

    source_name = "india_mohfw"

    def parse(self, html: str) -> Snapshot:
        soup = BeautifulSoup(html, "lxml")
        updated_at = self._parse_updated_at(soup)
        counts = self._parse_country_counts(soup)
        states = self._parse_states(soup)

        return Snapshot(
            name=COUNTRY_NAME,
            updated_at=updated_at,
            cases=Cases(
                total=sum(counts.values()),
                **counts,
            ),
            states=states,
        )

    @staticmethod
    def _parse_updated_at(soup: BeautifulSoup) -> datetime:
        span = soup.select_one("div.status-update h2 span")
        text = span.get_text(" ", strip=True) if span else ""
        match = _UPDATED_AT_RE.search(text)
        if not match:
            raise UpstreamError(f"Could not find update time in source page: {text!r}")

        day, month, year, hour, minute = match.groups()
        stamp = f"{day} {month} {year} {hour}:{minute}"
        for fmt in ("%d %B %Y %H:%M", "%d %b %Y %H:%M"):
            try:
                parsed = datetime.strptime(stamp, fmt)
                break
            except ValueError:
                continue
        else:
            raise UpstreamError(f"Unrecognized update time in source page: {text!r}")
        return parsed.replace(tzinfo=IST).astimezone(timezone.utc)

    @staticmethod
    def _parse_country_counts(soup: BeautifulSoup) -> dict[str, int]:
        stats = soup.select_one("div.site-stats-count ul")
        if stats is None:
            raise UpstreamError("Could not find case counts in source page")

        counts = {}
        for field, css_class in STAT_CLASSES.items():
            node = stats.select_one(f".{css_class} strong")
            value = _to_int(node.get_text(strip=True)) if node else None
            if value is None:
                # Migrated was dropped from later page layouts
                if field == "migrated":
                    value = 0
                else:
                    raise UpstreamError(f"Missing '{field}' count in source page")
            counts[field] = value
        return counts

    @staticmethod
    def _parse_states(soup: BeautifulSoup) -> list[StateSnapshot]:
        body = soup.select_one("div.data-table table tbody")
        if body is None:
            logger.warning("No state table found in source page")
            return []

        states = []
        for row in body.find_all("tr"):
            cols = [td.get_text(strip=True) for td in row.find_all("td")]
            # Skip totals/footnote rows, which have no serial number
            if len(cols) < 5 or not _SERIAL_RE.match(cols[0]):
                continue

            name = _PUNCTUATION_RE.sub("", cols[1]).strip()
            active, cured, deaths = (_to_int(c) or 0 for c in cols[2:5])
            if not name:
                continue
            states.append(StateSnapshot(
                name=name,
                cases=Cases(
                    active=active,
                    cured=cured,
                    deaths=deaths,
                    migrated=0,
                    total=active + cured + deaths,
                ),
            ))
        return states
