"""add location_name, created_at and edited_at to events

The API shape carries these fields while the first schema did not.
All three are additive so existing rows stay valid; rows that predate
this revision report created_at = 0.

Revision ID: 20230501_event_wire_columns
Revises: 20230413_initial
Create Date: 2023-05-01
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = "20230501_event_wire_columns"
down_revision: Union[str, Sequence[str], None] = "20230413_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigInt = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    cols = {c["name"] for c in insp.get_columns("events")}
    indexes = {ix["name"] for ix in insp.get_indexes("events")}

    # Add only if missing
    if "location_name" not in cols:
        op.add_column("events", sa.Column("location_name", sa.String(length=255), nullable=True))
    if "created_at" not in cols:
        op.add_column(
            "events",
            sa.Column("created_at", BigInt, nullable=False, server_default="0"),
        )
    if "edited_at" not in cols:
        op.add_column("events", sa.Column("edited_at", BigInt, nullable=True))
    if "ix_events_start_date" not in indexes:
        op.create_index("ix_events_start_date", "events", ["start_date"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    cols = {c["name"] for c in insp.get_columns("events")}
    indexes = {ix["name"] for ix in insp.get_indexes("events")}

    if "ix_events_start_date" in indexes:
        op.drop_index("ix_events_start_date", table_name="events")
    # Drop only if present
    for name in ("edited_at", "created_at", "location_name"):
        if name in cols:
            op.drop_column("events", name)
