from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_serializer, field_validator

from covidapi.app.timestamps import as_utc, to_iso


# --- Snapshot schemas ---

# Counts are stored as BIGINT
MAX_COUNT = 2**63 - 1


class Cases(BaseModel):
    active: int = Field(ge=0, le=MAX_COUNT)
    cured: int = Field(ge=0, le=MAX_COUNT)
    deaths: int = Field(ge=0, le=MAX_COUNT)
    migrated: int = Field(ge=0, le=MAX_COUNT)
    total: int = Field(ge=0, le=MAX_COUNT)

    model_config = {"strict": True}


class StateSnapshot(BaseModel):
    name: str = Field(min_length=1)
    cases: Cases


class Snapshot(BaseModel):
    """Country totals as of ``updatedAt`` with per-state breakdowns."""

    name: str = Field(min_length=1)
    cases: Cases
    updated_at: datetime = Field(alias="updatedAt")
    states: list[StateSnapshot]

    model_config = {"populate_by_name": True}

    @field_validator("updated_at")
    @classmethod
    def _normalize_updated_at(cls, v: datetime) -> datetime:
        try:
            return as_utc(v)
        except OverflowError as e:
            raise ValueError("date value out of range") from e

    @field_serializer("updated_at")
    def _serialize_updated_at(self, v: datetime) -> str:
        return to_iso(v)


# --- Ingestion schemas ---

class IngestOut(BaseModel):
    status: Literal["ingested", "skipped"]
    message: str
    updated_at: str = Field(alias="updatedAt")

    model_config = {"populate_by_name": True}


# --- Error / health schemas ---

class ErrorOut(BaseModel):
    error: str | list


class HealthOut(BaseModel):
    status: str
