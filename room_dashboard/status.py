"""Room status derivation and floor aggregation.

Everything here is a pure function of its arguments: the reference instant
``now`` is always passed in, never read from the wall clock, so callers
(and tests) control time explicitly.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import Activity, FloorListing, RoomDescriptor, RoomInfo, RoomStatus

# A room becomes "soon" when a reservation starts within this window.
SOON_WINDOW = timedelta(hours=1)

RoomRegistry = Mapping[int, Sequence[RoomDescriptor]]

_STATUS_TEXT = {
    RoomStatus.FREE: "Available",
    RoomStatus.SOON: "Soon occupied",
    RoomStatus.OCCUPIED: "Occupied",
}


def current_reservation(reservations: Iterable[Activity], now: datetime) -> Optional[Activity]:
    """Return the first reservation whose ``[start, end)`` interval covers ``now``."""
    for reservation in reservations:
        if reservation.start_date <= now < reservation.end_date:
            return reservation
    return None


def next_reservation(reservations: Iterable[Activity], now: datetime) -> Optional[Activity]:
    """Return the reservation with the earliest start strictly after ``now``.

    Ties on the start instant resolve to the first one in input order.
    """
    upcoming: Optional[Activity] = None
    for reservation in reservations:
        if reservation.start_date <= now:
            continue
        if upcoming is None or reservation.start_date < upcoming.start_date:
            upcoming = reservation
    return upcoming


def classify(
    reservations: Sequence[Activity], now: datetime
) -> Tuple[RoomStatus, Optional[Activity]]:
    """Compute a room's status and its next upcoming reservation.

    Args:
        reservations: the room's reservations, in any order.
        now: the reference instant (timezone-aware).

    Returns:
        ``(status, next_reservation)``. A reservation covering ``now``
        wins over everything else; otherwise a start within the next hour
        makes the room "soon"; otherwise it is free.
    """
    if not reservations:
        return RoomStatus.FREE, None

    upcoming = next_reservation(reservations, now)
    if current_reservation(reservations, now) is not None:
        return RoomStatus.OCCUPIED, upcoming

    horizon = now + SOON_WINDOW
    if any(now < r.start_date <= horizon for r in reservations):
        return RoomStatus.SOON, upcoming
    return RoomStatus.FREE, upcoming


def status_text(status: RoomStatus) -> str:
    """Human readable label for a status."""
    return _STATUS_TEXT[status]


def group_by_room(activities: Iterable[Activity]) -> Dict[str, List[Activity]]:
    """Group activities by the name of their first room, sorted by start.

    Activities without any room cannot be placed on a floor and are dropped.
    The sort is stable, so equal starts keep their feed order.
    """
    grouped: Dict[str, List[Activity]] = OrderedDict()
    for activity in activities:
        if not activity.room:
            continue
        grouped.setdefault(activity.room[0].name, []).append(activity)
    for reservations in grouped.values():
        reservations.sort(key=lambda r: r.start_date)
    return grouped


def annotate_room(
    descriptor: RoomDescriptor, floor: int, reservations: List[Activity], now: datetime
) -> RoomInfo:
    """Build the room entry shared by full rebuilds and status-only refreshes."""
    status, upcoming = classify(reservations, now)
    return RoomInfo(
        name=descriptor.name,
        type=descriptor.type,
        floor=floor,
        status=status,
        reservations=reservations,
        nextReservation=upcoming,
        currentReservation=current_reservation(reservations, now),
    )


def aggregate(
    activities: Iterable[Activity], registry: RoomRegistry, now: datetime
) -> List[FloorListing]:
    """Turn a flat activity feed into per-floor room listings.

    Floors and rooms come out in the registry's declared order regardless
    of the order of ``activities``. Activities booked against rooms the
    registry does not list are ignored.
    """
    grouped = group_by_room(activities)
    floors: List[FloorListing] = []
    for floor, descriptors in registry.items():
        rooms = [
            annotate_room(descriptor, floor, list(grouped.get(descriptor.name, [])), now)
            for descriptor in descriptors
        ]
        floors.append(FloorListing(floor=floor, rooms=rooms))
    return floors


def recompute_statuses(floors: Sequence[FloorListing], now: datetime) -> List[FloorListing]:
    """Re-derive status and next reservation from reservations already held.

    Used between network refreshes so boundaries (a meeting starting or
    ending) show up without re-fetching. Returns new listings; the input
    is left untouched.
    """
    refreshed: List[FloorListing] = []
    for floor in floors:
        rooms = [
            annotate_room(
                RoomDescriptor(name=room.name, type=room.type),
                floor.floor,
                list(room.reservations),
                now,
            )
            for room in floor.rooms
        ]
        refreshed.append(FloorListing(floor=floor.floor, rooms=rooms))
    return refreshed
