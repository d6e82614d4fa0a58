"""Live dashboard state driven by two refresh timers.

``LiveDashboard`` holds the most recent floor listings. A slow timer
re-fetches the day's reservations and rebuilds the listings from scratch;
a fast timer only re-derives statuses from the reservations already held,
so "occupied until" and "soon" boundaries stay accurate between network
round-trips.

A failed fetch never clears what is on screen: the previous listings are
kept and the error is reported next to them until a refresh succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence, Union
from zoneinfo import ZoneInfo

import httpx

from .config import settings
from .models import DashboardSnapshot, FloorListing, RoomDescriptor
from .registry import ROOM_REGISTRY
from .status import aggregate, recompute_statuses
from .upstream import PlanningClient, UpstreamError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


class LiveDashboard:
    """Floor listings kept current by periodic refreshes."""

    def __init__(
        self,
        client: Optional[PlanningClient] = None,
        room_registry: Mapping[int, Sequence[RoomDescriptor]] = ROOM_REGISTRY,
        clock: Clock = _utcnow,
        tz: Optional[str] = None,
    ) -> None:
        self.client = client or PlanningClient()
        self.room_registry = room_registry
        self.clock = clock
        self.tz = ZoneInfo(tz or settings.timezone)
        self.floors: List[FloorListing] = []
        self.date: Optional[str] = None
        self.last_update: Optional[datetime] = None
        self.last_error: Optional[str] = None

    def today(self) -> str:
        """Today's date in the dashboard timezone, as ``YYYY-MM-DD``."""
        return self.clock().astimezone(self.tz).date().isoformat()

    @property
    def has_data(self) -> bool:
        return self.last_update is not None

    async def refresh(self) -> bool:
        """Fetch today's reservations and rebuild every floor listing.

        Returns True on success. On failure the previous listings are kept
        and ``last_error`` describes what went wrong.
        """
        day = self.today()
        try:
            planning = await self.client.fetch_activities(day, day)
        except UpstreamError as exc:
            self.last_error = f"{exc.message} (status {exc.status_code})"
            return False
        except httpx.RequestError as exc:
            logger.error("Could not reach planning API: %s", exc)
            self.last_error = f"Could not reach planning API: {exc.__class__.__name__}"
            return False
        now = self.clock()
        self.floors = aggregate(planning.activities, self.room_registry, now)
        self.date = day
        self.last_update = now
        self.last_error = None
        logger.info("Rebuilt floor listings from %d activities", len(planning.activities))
        return True

    def tick(self) -> None:
        """Re-derive statuses from held reservations without fetching."""
        if not self.floors:
            return
        self.floors = recompute_statuses(self.floors, self.clock())

    def snapshot(self) -> DashboardSnapshot:
        return DashboardSnapshot(
            generatedAt=self.clock(),
            date=self.date,
            lastUpdate=self.last_update,
            lastError=self.last_error,
            fullRefreshSeconds=settings.full_refresh_seconds,
            statusRefreshSeconds=settings.status_refresh_seconds,
            floors=self.floors,
        )


async def run_periodic(
    interval_seconds: float,
    func: Callable[[], Union[Awaitable[object], object]],
    *,
    name: str,
) -> None:
    """Call ``func`` every ``interval_seconds`` until cancelled.

    Exceptions from a single tick are logged and do not stop the loop.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            result = func()
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception("Periodic task %s failed", name)


def start_timers(dashboard: LiveDashboard) -> List[asyncio.Task]:
    """Start the full-refresh and status-refresh timers for ``dashboard``."""
    return [
        asyncio.create_task(
            run_periodic(settings.full_refresh_seconds, dashboard.refresh, name="full-refresh"),
            name="full-refresh",
        ),
        asyncio.create_task(
            run_periodic(settings.status_refresh_seconds, dashboard.tick, name="status-refresh"),
            name="status-refresh",
        ),
    ]


async def stop_timers(tasks: Sequence[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
