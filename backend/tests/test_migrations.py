"""
Tests for the Alembic revisions and the startup column check.
"""

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from eventcal.db import make_engine
from eventcal.errors import AlreadyExists
from eventcal.main import ensure_event_columns, run_migrations
from eventcal.storage import CalendarStore


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'migrated.db'}"


def test_upgrade_to_head_builds_full_schema(db_url):
    run_migrations(db_url)
    eng = make_engine(db_url)
    try:
        insp = inspect(eng)
        assert {"users", "events", "alembic_version"} <= set(insp.get_table_names())
        event_cols = {c["name"] for c in insp.get_columns("events")}
        assert {"location_name", "created_at", "edited_at"} <= event_cols
        assert "ix_events_start_date" in {ix["name"] for ix in insp.get_indexes("events")}
        with eng.connect() as conn:
            version = conn.execute(text("SELECT version_num FROM alembic_version")).scalar_one()
        assert version == "20230501_event_wire_columns"
    finally:
        eng.dispose()


def test_upgrade_is_idempotent(db_url):
    run_migrations(db_url)
    run_migrations(db_url)


def test_migrated_schema_enforces_invariants(db_url):
    run_migrations(db_url)
    eng = make_engine(db_url)
    try:
        with Session(eng) as session:
            store = CalendarStore(session, clock=lambda: 5)
            store.create_user("Alice", 1000)
            with pytest.raises(AlreadyExists):
                store.create_user("ALICE", 1001)
            ev = store.create_event({"title": "Standup", "start_date": 100, "end_date": 200})
            assert ev.created_at == 5
            assert store.update_event(ev.id, {"location_name": "Room 1"}).edited_at == 5
    finally:
        eng.dispose()


def test_ensure_event_columns_adds_missing_columns(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    try:
        with eng.begin() as conn:
            conn.exec_driver_sql(
                "CREATE TABLE events (id INTEGER PRIMARY KEY, title TEXT NOT NULL,"
                " description TEXT, color TEXT, start_date INTEGER NOT NULL,"
                " end_date INTEGER NOT NULL, location_lng REAL, location_lat REAL)"
            )
            conn.exec_driver_sql(
                "INSERT INTO events (title, start_date, end_date) VALUES ('old', 1, 2)"
            )

        ensure_event_columns(eng)
        ensure_event_columns(eng)

        cols = {c["name"] for c in inspect(eng).get_columns("events")}
        assert {"location_name", "created_at", "edited_at"} <= cols
        with eng.connect() as conn:
            row = conn.execute(text("SELECT created_at, edited_at FROM events")).one()
        assert tuple(row) == (0, None)
    finally:
        eng.dispose()


def test_ensure_event_columns_without_table(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    try:
        ensure_event_columns(eng)
        assert inspect(eng).get_table_names() == []
    finally:
        eng.dispose()
