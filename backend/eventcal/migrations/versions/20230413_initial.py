"""create users and events tables

Revision ID: 20230413_initial
Revises:
Create Date: 2023-04-13 21:23:48
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20230413_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigInt = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("username", sa.String(length=64), primary_key=True),
        # lower-cased copy of username, unique so names clash case-insensitively
        sa.Column("username_key", sa.String(length=64), nullable=False, unique=True),
        sa.Column("created_at", BigInt, nullable=False),  # unix ts
    )
    op.create_table(
        "events",
        sa.Column("id", BigInt, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=7), nullable=True),
        sa.Column("start_date", BigInt, nullable=False),
        sa.Column("end_date", BigInt, nullable=False),
        sa.Column("location_lng", sa.Float(), nullable=True),
        sa.Column("location_lat", sa.Float(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("events")
    op.drop_table("users")
