import asyncio
import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from covidapi.app.config import get_settings
from covidapi.app.database import Base
from covidapi.app.errors import SnapshotError
from covidapi.app.routers import data
from covidapi.app.schemas import HealthOut

settings = get_settings()
logger = structlog.get_logger()


def _configure_logging():
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


async def _init_db():
    """Create the snapshot table if it does not exist yet."""
    from covidapi.app.database import engine
    from covidapi.app.models import CaseSnapshotRow  # noqa: ensure models loaded
    from sqlalchemy import schema
    from sqlalchemy.exc import OperationalError

    def _is_retryable_db_error(exc: Exception) -> bool:
        current: BaseException | None = exc
        while current is not None:
            if isinstance(current, (OperationalError, OSError, ConnectionError)):
                return True
            message = str(current).lower()
            if (
                "name resolution" in message
                or "could not translate host name" in message
                or "connection refused" in message
                or "connection reset" in message
                or "timeout" in message
            ):
                return True
            current = current.__cause__ or current.__context__
        return False

    attempts = max(1, settings.db_startup_max_attempts)
    initial_backoff = max(1, settings.db_startup_initial_backoff_seconds)
    max_backoff = max(initial_backoff, settings.db_startup_max_backoff_seconds)

    for attempt in range(1, attempts + 1):
        try:
            async with engine.begin() as conn:
                if settings.warehouse_schema:
                    await conn.execute(schema.CreateSchema(settings.warehouse_schema, if_not_exists=True))
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Warehouse table ensured", table=settings.warehouse_table_ref)
            return
        except Exception as exc:
            if attempt >= attempts or not _is_retryable_db_error(exc):
                raise
            backoff = min(initial_backoff * (2 ** (attempt - 1)), max_backoff)
            logger.warning(
                "Database unavailable during startup; retrying",
                attempt=attempt,
                max_attempts=attempts,
                retry_in_seconds=backoff,
                error=str(exc),
            )
            await asyncio.sleep(backoff)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _configure_logging()
    logger.info("Starting COVID-19 India API", env=settings.app_env)
    await _init_db()
    if settings.scrape_enabled:
        from covidapi.ingestion.scheduler import start_scheduler, stop_scheduler
        start_scheduler()
        logger.info("Scraper scheduler started")
    yield
    if settings.scrape_enabled:
        stop_scheduler()
    logger.info("Shutting down COVID-19 India API")


app = FastAPI(
    title="COVID-19 India API",
    version="1.0.0",
    description="Historical and live COVID-19 case counts for India, sourced from mohfw.gov.in",
    docs_url="/v1/api-docs",
    openapi_url="/v1/openapi.json",
    redoc_url=None,
    lifespan=lifespan,
)


@app.exception_handler(SnapshotError)
async def snapshot_error_handler(request: Request, exc: SnapshotError):
    logger.info("Sending response", status=exc.status_code, error=type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    ]
    logger.info("Sending response", status=400, errors=errors)
    return JSONResponse(status_code=400, content={"error": errors})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        detail = "Requested URL does not exist"
    elif exc.status_code == 405:
        detail = "Unsupported HTTP method"
    else:
        detail = exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": detail})


app.include_router(data.router, prefix="/v1")


@app.get("/v1/health", response_model=HealthOut)
async def health_check():
    return {"status": "ok"}
