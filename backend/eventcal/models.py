# backend/eventcal/models.py
from __future__ import annotations
from typing import Optional

from sqlalchemy import BigInteger, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base

# Sqlite integers are 64 bit; BigInteger keeps that width on Postgres too,
# with a plain INTEGER on sqlite so the id stays a rowid alias.
BigInt = BigInteger().with_variant(Integer(), "sqlite")


class User(Base):
    __tablename__ = "users"

    username:     Mapped[str] = mapped_column(String(64), primary_key=True)
    # lower-cased username; the unique constraint makes names case-insensitive
    username_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at:   Mapped[int] = mapped_column(BigInt, nullable=False)

    def __repr__(self) -> str:
        return f"User(username={self.username!r}, created_at={self.created_at})"


class Event(Base):
    __tablename__ = "events"

    id:          Mapped[int]           = mapped_column(BigInt, primary_key=True, autoincrement=True)
    title:       Mapped[str]           = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color:       Mapped[Optional[str]] = mapped_column(String(7), nullable=True)
    start_date:  Mapped[int]           = mapped_column(BigInt, nullable=False, index=True)
    end_date:    Mapped[int]           = mapped_column(BigInt, nullable=False)
    location_lng:  Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location_lat:  Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location_name: Mapped[Optional[str]]   = mapped_column(String(255), nullable=True)
    created_at:  Mapped[int]           = mapped_column(BigInt, nullable=False, server_default="0")
    edited_at:   Mapped[Optional[int]] = mapped_column(BigInt, nullable=True)

    def __repr__(self) -> str:
        return f"Event(id={self.id}, title={self.title!r}, start_date={self.start_date})"
