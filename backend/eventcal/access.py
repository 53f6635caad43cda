# backend/eventcal/access.py
"""
Access layer: validates wire-facing input and translates between the
pydantic shapes in `schemas` and the rows owned by `CalendarStore`.

Malformed input is rejected here, before anything reaches storage.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Iterator, Mapping, Optional

from .errors import ValidationError
from .log import get_logger
from .models import Event, User
from .schemas import EventIn, EventOut, EventPatch, UserIn, UserOut
from .storage import MAX_INT64, CalendarStore, EventSequence, now_ts

logger = get_logger(__name__)

DEFAULT_COLOR = "#87d45d"

MAX_USERNAME = 64
MAX_TITLE = 200
MAX_DESCRIPTION = 2000
MAX_LOCATION_NAME = 255

COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
WHITESPACE_RE = re.compile(r"\s")

# Nullable in the schema but not in the wire shape or the row invariants.
NON_NULLABLE = ("title", "color", "start_date", "end_date")


def check_length(field: str, value: Optional[str], maximum_length: int) -> None:
    if value is not None and len(value) > maximum_length:
        raise ValidationError(
            f"{field} must be at most {maximum_length} characters", field=field
        )


def _check_timestamp(field: str, value: Optional[int]) -> None:
    if value is None:
        return
    if value < 0:
        raise ValidationError(f"{field} must not be negative", field=field)
    if value > MAX_INT64:
        raise ValidationError(f"{field} must fit in a signed 64-bit integer", field=field)


def _check_coordinate(field: str, value: Optional[float], bound: float) -> None:
    if value is None:
        return
    if not math.isfinite(value) or abs(value) > bound:
        raise ValidationError(f"{field} must be within [-{bound:g}, {bound:g}]", field=field)


def validate_username(username: str) -> None:
    if not username:
        raise ValidationError("username must not be empty", field="username")
    if WHITESPACE_RE.search(username):
        raise ValidationError("username must not contain whitespace", field="username")
    check_length("username", username, MAX_USERNAME)


def validate_event_fields(fields: Mapping[str, Any]) -> None:
    """Per-field checks; works on a full create payload or on a patch."""
    for name in NON_NULLABLE:
        if name in fields and fields[name] is None:
            raise ValidationError(f"{name} must not be null", field=name)

    if "title" in fields:
        if not fields["title"].strip():
            raise ValidationError("title must not be empty", field="title")
        check_length("title", fields["title"], MAX_TITLE)
    check_length("description", fields.get("description"), MAX_DESCRIPTION)
    check_length("location_name", fields.get("location_name"), MAX_LOCATION_NAME)

    color = fields.get("color")
    if color is not None and not COLOR_RE.match(color):
        raise ValidationError("color must be a hex color like #87d45d", field="color")

    _check_timestamp("start_date", fields.get("start_date"))
    _check_timestamp("end_date", fields.get("end_date"))
    _check_coordinate("location_lng", fields.get("location_lng"), 180.0)
    _check_coordinate("location_lat", fields.get("location_lat"), 90.0)


def validate_event_row(row: Mapping[str, Any]) -> None:
    """Cross-field checks on a complete (possibly merged) event."""
    if row["end_date"] < row["start_date"]:
        raise ValidationError("end_date must not be before start_date", field="end_date")
    if (row.get("location_lng") is None) != (row.get("location_lat") is None):
        raise ValidationError(
            "location_lng and location_lat must be given together", field="location_lat"
        )


def user_to_wire(user: User) -> UserOut:
    return UserOut.model_validate(user)


def event_to_wire(ev: Event) -> EventOut:
    """Shape a stored row as the fixed wire record, nulls included."""
    return EventOut(
        id=ev.id,
        title=ev.title,
        description=ev.description,
        color=ev.color or DEFAULT_COLOR,
        start_date=ev.start_date,
        end_date=ev.end_date,
        location_lng=ev.location_lng,
        location_lat=ev.location_lat,
        location_name=ev.location_name,
        created_at=ev.created_at,
        edited_at=ev.edited_at,
    )


class WireEventSequence:
    """Restartable view of an `EventSequence` that yields wire records."""

    def __init__(self, rows: EventSequence):
        self._rows = rows

    def __iter__(self) -> Iterator[EventOut]:
        for ev in self._rows:
            yield event_to_wire(ev)


class CalendarService:
    def __init__(self, store: CalendarStore, clock: Callable[[], int] = now_ts):
        self.store = store
        self.clock = clock

    # ── users ───────────────────────────────────────────────────────
    def create_user(self, payload: UserIn) -> UserOut:
        validate_username(payload.username)
        user = self.store.create_user(payload.username, self.clock())
        logger.info("Created user %s", user.username)
        return user_to_wire(user)

    def get_user(self, username: str) -> UserOut:
        return user_to_wire(self.store.get_user(username))

    def list_users(self) -> list[UserOut]:
        return [user_to_wire(u) for u in self.store.list_users()]

    # ── events ──────────────────────────────────────────────────────
    def create_event(self, payload: EventIn) -> EventOut:
        fields = payload.model_dump()
        if fields["color"] is None:
            fields["color"] = DEFAULT_COLOR
        validate_event_fields(fields)
        validate_event_row(fields)
        ev = self.store.create_event(fields)
        logger.info("Created event id=%s", ev.id)
        return event_to_wire(ev)

    def get_event(self, event_id: int) -> EventOut:
        return event_to_wire(self.store.get_event(event_id))

    def update_event(self, event_id: int, patch: EventPatch) -> EventOut:
        changes = patch.changes()
        validate_event_fields(changes)
        current = self.store.get_event(event_id)
        merged = {
            "start_date": current.start_date,
            "end_date": current.end_date,
            "location_lng": current.location_lng,
            "location_lat": current.location_lat,
        }
        merged.update(changes)
        validate_event_row(merged)
        # storage re-checks the merged row after reloading it under the lock
        ev = self.store.update_event(event_id, changes)
        logger.info("Updated event id=%s", event_id)
        return event_to_wire(ev)

    def list_events(
        self, start: Optional[int] = None, end: Optional[int] = None
    ) -> WireEventSequence:
        _check_timestamp("start", start)
        _check_timestamp("end", end)
        if start is not None and end is not None and end < start:
            raise ValidationError("end must not be before start", field="end")
        return WireEventSequence(self.store.list_events(start, end))
