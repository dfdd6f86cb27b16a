"""Initial schema

Revision ID: 001
Revises: None
Create Date: 2020-04-01
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

from covidapi.app.config import get_settings

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

settings = get_settings()
TABLE = settings.warehouse_table
SCHEMA = settings.warehouse_schema


def upgrade() -> None:
    if SCHEMA:
        op.execute(sa.schema.CreateSchema(SCHEMA, if_not_exists=True))

    # One row per geography per snapshot; state_name IS NULL marks the country row.
    # Append-only: rows are never updated or deleted.
    op.create_table(
        TABLE,
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("country_name", sa.Text(), nullable=False),
        sa.Column("state_name", sa.Text()),
        sa.Column("active", sa.BigInteger(), nullable=False),
        sa.Column("cured", sa.BigInteger(), nullable=False),
        sa.Column("deaths", sa.BigInteger(), nullable=False),
        sa.Column("migrated", sa.BigInteger(), nullable=False),
        sa.Column("total", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ingested_at", sa.DateTime(timezone=True), nullable=False),
        schema=SCHEMA,
    )

    # As-of lookups scan updated_at <= target for the maximum
    op.create_index(
        f"idx_{TABLE}_updated_at",
        TABLE,
        [sa.text("updated_at DESC")],
        schema=SCHEMA,
    )


def downgrade() -> None:
    op.drop_index(f"idx_{TABLE}_updated_at", table_name=TABLE, schema=SCHEMA)
    op.drop_table(TABLE, schema=SCHEMA)
