"""Base scraper abstraction for case snapshot ingestion."""

from abc import ABC, abstractmethod

import structlog
import httpx
from tenacity import RetryError, retry, stop_after_attempt, wait_exponential
from sqlalchemy.ext.asyncio import AsyncSession

from covidapi.app.config import get_settings
from covidapi.app.errors import UpstreamError
from covidapi.app.schemas import IngestOut, Snapshot
from covidapi.app.services.snapshots import SnapshotService
from covidapi.app.warehouse import SnapshotWarehouse

logger = structlog.get_logger()


class BaseScraper(ABC):
    """Abstract base class for snapshot scrapers."""

    source_name: str = ""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        settings = get_settings()
        self.base_url = base_url or settings.source_url
        self.client = httpx.AsyncClient(
            timeout=timeout or settings.scrape_timeout,
            follow_redirects=True,
            headers={"User-Agent": "Covid19IndiaAPI/1.0 (Public Health Research)"},
        )

    @abstractmethod
    def parse(self, html: str) -> Snapshot:
        """Turn the source page into a snapshot. Must be implemented by each scraper."""
        ...

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
    )
    async def _get(self, url: str, **kwargs) -> httpx.Response:
        """HTTP GET with automatic retries."""
        response = await self.client.get(url, **kwargs)
        response.raise_for_status()
        return response

    async def fetch_latest(self) -> Snapshot:
        """Download and parse the current snapshot from the source site."""
        try:
            response = await self._get(self.base_url)
        except (httpx.HTTPError, RetryError) as e:
            logger.error("Source fetch failed", scraper=self.source_name, error=str(e))
            raise UpstreamError(f"Error occurred while fetching data: {e}") from e

        logger.info(
            "Source fetched",
            scraper=self.source_name,
            status=response.status_code,
            bytes=len(response.content),
        )
        snapshot = self.parse(response.text)
        logger.info(
            "Source parsed",
            scraper=self.source_name,
            updated_at=snapshot.updated_at.isoformat(),
            states=len(snapshot.states),
        )
        return snapshot

    async def run(self, db: AsyncSession) -> IngestOut:
        """Fetch the current snapshot and ingest it through the duplicate guard."""
        snapshot = await self.fetch_latest()
        outcome = await SnapshotService(SnapshotWarehouse(db)).write(snapshot)
        logger.info(
            "Scraper completed",
            scraper=self.source_name,
            status=outcome.status,
            updated_at=outcome.updated_at,
        )
        return outcome

    async def close(self):
        await self.client.aclose()
