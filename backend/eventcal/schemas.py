# backend/eventcal/schemas.py
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict


class UserIn(BaseModel):
    """The user object required during creation; created_at is set by the backend."""
    model_config = ConfigDict(extra="forbid")

    username: str


class UserOut(BaseModel):
    username: str
    created_at: int  # unix ts
    model_config = ConfigDict(from_attributes=True)


class EventIn(BaseModel):
    """Request schema for event creation. Timestamps are unix seconds."""
    model_config = ConfigDict(extra="forbid")

    title: str
    description: Optional[str] = None
    color: Optional[str] = None
    start_date: int
    end_date: int
    location_lng: Optional[float] = None
    location_lat: Optional[float] = None
    location_name: Optional[str] = None


class EventPatch(BaseModel):
    """
    Partial update. Only fields present in the request body are applied;
    an explicit null clears a nullable field.
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    start_date: Optional[int] = None
    end_date: Optional[int] = None
    location_lng: Optional[float] = None
    location_lat: Optional[float] = None
    location_name: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class EventOut(BaseModel):
    """Wire shape of an event. Every field is always present, absent values as null."""
    id: int
    title: str
    description: Optional[str]
    color: str
    start_date: int
    end_date: int
    location_lng: Optional[float]
    location_lat: Optional[float]
    location_name: Optional[str]
    created_at: int
    edited_at: Optional[int]
