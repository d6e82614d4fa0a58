import datetime
import json
from typing import Callable, List, Optional

import httpx
import pytest

from room_dashboard.models import Activity, RoomRef

DAY = datetime.date(2024, 10, 14)
UTC = datetime.timezone.utc


def at(hour: int, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(DAY.year, DAY.month, DAY.day, hour, minute, tzinfo=UTC)


def activity_payload(
    activity_id: str,
    start: datetime.datetime,
    end: datetime.datetime,
    rooms: Optional[List[str]] = None,
    title: str = "Workshop",
) -> dict:
    return {
        "id": activity_id,
        "title": title,
        "second_title": None,
        "unit_name": "Pedagogy",
        "start_date": start.isoformat().replace("+00:00", "Z"),
        "end_date": end.isoformat().replace("+00:00", "Z"),
        "room": [{"id": i + 1, "name": name} for i, name in enumerate(rooms or [])],
        "service_manager": "intra",
    }


@pytest.fixture
def make_activity() -> Callable[..., Activity]:
    def _make(
        activity_id: str,
        start: datetime.datetime,
        end: datetime.datetime,
        room: Optional[str] = "Stark",
    ) -> Activity:
        return Activity(
            id=activity_id,
            title=f"Activity {activity_id}",
            unit_name="Pedagogy",
            start_date=start,
            end_date=end,
            room=[RoomRef(id=1, name=room)] if room else [],
            service_manager="intra",
        )

    return _make


def planning_transport(payload: dict, status_code: int = 200, calls: Optional[list] = None) -> httpx.MockTransport:
    """Mock transport answering every request with ``payload``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, content=json.dumps(payload).encode(), headers={"Content-Type": "application/json"})

    return httpx.MockTransport(handler)


def failing_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)
