"""Pydantic data models for the upstream feed, derived listings and maps.

The upstream models mirror the planning API's JSON shape field for field.
Derived models (``RoomInfo``, ``FloorListing``) are what the dashboard
serves to the browser; they are rebuilt from scratch on every refresh.
Spatial models describe room overlays in a floor's own canvas coordinates.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import AwareDatetime, BaseModel, model_validator


class RoomRef(BaseModel):
    """A room attached to a reservation by the upstream feed."""

    id: int
    name: str


class Activity(BaseModel):
    """A single reservation record as published by the planning API."""

    id: str
    title: str
    second_title: Optional[str] = None
    unit_name: str
    start_date: AwareDatetime
    end_date: AwareDatetime
    room: Optional[List[RoomRef]] = None
    service_manager: Literal["intra", "my"]


class PlanningResponse(BaseModel):
    """Top-level upstream payload."""

    activities: List[Activity] = []


class RoomStatus(str, Enum):
    FREE = "free"
    SOON = "soon"
    OCCUPIED = "occupied"


class RoomType(str, Enum):
    ROOM = "room"
    OFFICE = "office"


class RoomDescriptor(BaseModel):
    """Static configuration for one room of the building."""

    name: str
    type: RoomType = RoomType.ROOM

    @property
    def bookable(self) -> bool:
        return self.type is RoomType.ROOM


class RoomInfo(BaseModel):
    """A room annotated with its reservations and current status."""

    name: str
    type: RoomType
    floor: int
    status: RoomStatus
    reservations: List[Activity] = []
    nextReservation: Optional[Activity] = None
    currentReservation: Optional[Activity] = None


class FloorListing(BaseModel):
    """Rooms of a single floor in registry order."""

    floor: int
    rooms: List[RoomInfo] = []


class Point(BaseModel):
    x: float
    y: float


class FloorCanvas(BaseModel):
    """Extent of a floor's local coordinate space."""

    floor: int
    w: float
    h: float


class Region(BaseModel):
    """Overlay region for a room, in its floor's canvas coordinates.

    A region is either a plain rectangle (``points`` left empty) or a
    polygon. When points are given the bounding box is always recomputed
    from them, so ``x/y/w/h`` can never disagree with the outline.
    """

    floor: int
    points: List[Point] = []
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0

    @model_validator(mode="after")
    def _derive_bounds(self) -> "Region":
        if self.points:
            xs = [p.x for p in self.points]
            ys = [p.y for p in self.points]
            self.x = min(xs)
            self.y = min(ys)
            self.w = max(xs) - self.x
            self.h = max(ys) - self.y
        return self

    def outline(self) -> List[Point]:
        """Return the polygon points, or the rectangle's corners in winding order."""
        if self.points:
            return list(self.points)
        return [
            Point(x=self.x, y=self.y),
            Point(x=self.x + self.w, y=self.y),
            Point(x=self.x + self.w, y=self.y + self.h),
            Point(x=self.x, y=self.y + self.h),
        ]


class DashboardSnapshot(BaseModel):
    """Payload returned by ``/api/floors``."""

    generatedAt: datetime
    date: Optional[str] = None
    lastUpdate: Optional[datetime] = None
    lastError: Optional[str] = None
    fullRefreshSeconds: int
    statusRefreshSeconds: int
    floors: List[FloorListing] = []
