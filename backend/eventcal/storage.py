# backend/eventcal/storage.py
"""
Storage layer: durable persistence of users and events.

Every mutating call runs in exactly one transaction on the given session;
on any failure the session is rolled back and the stored rows are untouched.
Raw SQLAlchemy errors never leave this module, they are translated to the
types in `eventcal.errors`.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import AlreadyExists, CalendarError, NotFound, StorageError, ValidationError
from .log import get_logger
from .models import Event, User

logger = get_logger(__name__)

# Columns a caller may set on create/update; id and the audit stamps are ours.
EVENT_FIELDS = (
    "title",
    "description",
    "color",
    "start_date",
    "end_date",
    "location_lng",
    "location_lat",
    "location_name",
)


# Timestamps and ids are stored as signed 64-bit integers.
MAX_INT64 = 2**63 - 1


def now_ts() -> int:
    """Seconds since UNIX epoch."""
    return int(time.time())


def username_key(username: str) -> str:
    """Canonical form used for case-insensitive uniqueness and lookups."""
    return username.lower()


def _check_event_row(row: Mapping[str, Any]) -> None:
    title = row.get("title")
    if title is None or not str(title).strip():
        raise ValidationError("title must not be empty", field="title")
    start, end = row.get("start_date"), row.get("end_date")
    if start is None:
        raise ValidationError("start_date is required", field="start_date")
    if end is None:
        raise ValidationError("end_date is required", field="end_date")
    for name, value in (("start_date", start), ("end_date", end)):
        if not 0 <= value <= MAX_INT64:
            raise ValidationError(f"{name} is out of range", field=name)
    if end < start:
        raise ValidationError("end_date must not be before start_date", field="end_date")
    if (row.get("location_lng") is None) != (row.get("location_lat") is None):
        raise ValidationError(
            "location_lng and location_lat must be given together", field="location_lat"
        )


class EventSequence:
    """
    Lazy, restartable view over the events matching a query.

    Nothing is read until iteration starts; every new iteration re-runs the
    query, so two passes yield the same rows in the same order unless
    something was written in between.
    """

    def __init__(self, session: Session, start: Optional[int] = None, end: Optional[int] = None):
        self._session = session
        self.start = start
        self.end = end

    def _query(self):
        q = select(Event)
        conds = []
        if self.end is not None:
            conds.append(Event.start_date <= self.end)
        if self.start is not None:
            conds.append(Event.end_date >= self.start)
        if conds:
            q = q.where(and_(*conds))
        return q.order_by(Event.start_date.asc(), Event.id.asc())

    def __iter__(self) -> Iterator[Event]:
        logger.debug("Loading events start=%s end=%s", self.start, self.end)
        try:
            result = self._session.execute(self._query().execution_options(yield_per=100))
            yield from result.scalars()
        except SQLAlchemyError as exc:
            logger.error("Failed to load events: %s", exc)
            raise StorageError("Failed to load events") from exc


class CalendarStore:
    """Transactional CRUD over the users and events tables."""

    def __init__(self, session: Session, clock: Callable[[], int] = now_ts):
        self.session = session
        self.clock = clock

    @contextmanager
    def _transaction(self, action: str, conflict: Optional[str] = None):
        try:
            yield
            self.session.commit()
        except CalendarError:
            self.session.rollback()
            raise
        except IntegrityError as exc:
            self.session.rollback()
            if conflict is not None:
                raise AlreadyExists(conflict) from exc
            logger.error("Integrity failure during %s: %s", action, exc)
            raise StorageError(f"Failed to {action}") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Storage failure during %s: %s", action, exc)
            raise StorageError(f"Failed to {action}") from exc

    # ── users ───────────────────────────────────────────────────────
    def _find_user(self, username: str) -> Optional[User]:
        q = select(User).where(User.username_key == username_key(username))
        return self.session.execute(q).scalar_one_or_none()

    def create_user(self, username: str, created_at: int) -> User:
        conflict = f"User {username!r} already exists"
        with self._transaction("insert user", conflict=conflict):
            # The unique index is the real guard, this just gives a clean error
            # without relying on the driver's constraint message.
            existing = self._find_user(username)
            logger.debug("Checked for existing users username=%s found=%s", username, existing is not None)
            if existing is not None:
                raise AlreadyExists(conflict)
            user = User(username=username, username_key=username_key(username), created_at=created_at)
            self.session.add(user)
            self.session.flush()
        logger.debug("Inserted user %s", username)
        return user

    def get_user(self, username: str) -> User:
        logger.debug("Trying to find user by name %s", username)
        try:
            user = self._find_user(username)
        except SQLAlchemyError as exc:
            raise StorageError("Failed to query user") from exc
        if user is None:
            raise NotFound(f"User {username!r} does not exist")
        return user

    def list_users(self) -> list[User]:
        logger.debug("Loading all users")
        try:
            q = select(User).order_by(User.created_at.asc(), User.username_key.asc())
            users = list(self.session.execute(q).scalars())
        except SQLAlchemyError as exc:
            raise StorageError("Failed to load users") from exc
        logger.debug("Returning %d users", len(users))
        return users

    # ── events ──────────────────────────────────────────────────────
    def create_event(self, fields: Mapping[str, Any]) -> Event:
        unknown = set(fields) - set(EVENT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")
        _check_event_row(fields)
        with self._transaction("insert event"):
            ev = Event(**fields, created_at=self.clock(), edited_at=None)
            self.session.add(ev)
            self.session.flush()
        logger.debug("Inserted event id=%s", ev.id)
        return ev

    def get_event(self, event_id: int) -> Event:
        logger.debug("Loading event with id %s", event_id)
        if not 0 <= event_id <= MAX_INT64:
            raise NotFound(f"Event {event_id} does not exist")
        try:
            ev = self.session.get(Event, event_id)
        except SQLAlchemyError as exc:
            raise StorageError("Failed to query event") from exc
        if ev is None:
            raise NotFound(f"Event {event_id} does not exist")
        return ev

    def update_event(self, event_id: int, changes: Mapping[str, Any]) -> Event:
        """Apply only the supplied fields and stamp `edited_at`."""
        unknown = set(changes) - set(EVENT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")
        with self._transaction("update event"):
            if not 0 <= event_id <= MAX_INT64:
                raise NotFound(f"Event {event_id} does not exist")
            # reload even if this session already holds the row, another
            # writer may have committed since
            q = (
                select(Event)
                .where(Event.id == event_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            ev = self.session.execute(q).scalar_one_or_none()
            if ev is None:
                raise NotFound(f"Event {event_id} does not exist")
            merged = {name: getattr(ev, name) for name in EVENT_FIELDS}
            merged.update(changes)
            _check_event_row(merged)
            for name, value in changes.items():
                setattr(ev, name, value)
            ev.edited_at = self._next_edit_stamp(ev.edited_at)
        logger.debug("Updated event id=%s fields=%s", event_id, sorted(changes))
        return ev

    def list_events(self, start: Optional[int] = None, end: Optional[int] = None) -> EventSequence:
        for name, value in (("start", start), ("end", end)):
            if value is not None and not 0 <= value <= MAX_INT64:
                raise ValidationError(f"{name} is out of range", field=name)
        return EventSequence(self.session, start, end)

    def _next_edit_stamp(self, previous: Optional[int]) -> int:
        now = self.clock()
        if previous is None:
            return now
        # two edits within the same second must still move forward
        return max(now, previous + 1)
