from sqlalchemy import Column, Integer, BigInteger, Text, DateTime, Index

from covidapi.app.config import get_settings
from covidapi.app.database import Base

settings = get_settings()


class CaseSnapshotRow(Base):
    """One geography's counts for one snapshot. ``state_name`` is NULL on the country row."""

    __tablename__ = settings.warehouse_table

    id = Column(Integer, primary_key=True, autoincrement=True)
    country_name = Column(Text, nullable=False)
    state_name = Column(Text)
    active = Column(BigInteger, nullable=False)
    cured = Column(BigInteger, nullable=False)
    deaths = Column(BigInteger, nullable=False)
    migrated = Column(BigInteger, nullable=False)
    total = Column(BigInteger, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    ingested_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(f"idx_{settings.warehouse_table}_updated_at", updated_at.desc()),
        {"schema": settings.warehouse_schema},
    )
