"""Main application entry point for the room availability dashboard.

This module defines the FastAPI application, configures logging, owns the
live dashboard state and its refresh timers, and serves both a JSON API and
the embedded HTML user interface.

Endpoints:
  - ``/api/rooms``: proxy to the upstream planning API for a date range.
  - ``/api/floors``: per-floor room listings with current statuses.
  - ``/api/refresh``: force a full re-fetch of today's reservations.
  - ``/api/regions``: overlay regions and floor canvas extents.
  - ``/healthz``: simple health check endpoint.
  - ``/``: serve the dashboard UI.
  - ``/dev/map-editor``: the region authoring tool (when enabled).

Errors from the planning API never clear the dashboard: the last good
listings are served together with a ``lastError`` field.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from . import editor_api
from .config import settings
from .dashboard import LiveDashboard, start_timers, stop_timers
from .models import DashboardSnapshot
from .pages import render_dashboard
from .registry import ROOM_REGISTRY, load_spatial_registry
from .status import aggregate
from .upstream import PlanningClient, UpstreamError, parse_date_param

logger = logging.getLogger("room_dashboard")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

NO_STORE = {"Cache-Control": "no-store, max-age=0"}

# Loaded once at import: a registry that disagrees with the room list stops
# the service here instead of silently dropping overlays.
spatial_registry = load_spatial_registry(settings.spatial_registry_path, ROOM_REGISTRY)
editor_api.start_session(spatial_registry)

dashboard = LiveDashboard()


def _utcnow() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def get_planning_client() -> PlanningClient:
    return dashboard.client


def get_dashboard() -> LiveDashboard:
    return dashboard


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=NO_STORE)


@asynccontextmanager
async def lifespan(_: FastAPI):
    tasks = []
    if settings.background_refresh:
        await dashboard.refresh()
        tasks = start_timers(dashboard)
        logger.info(
            "Refresh timers started (full every %ss, status every %ss)",
            settings.full_refresh_seconds,
            settings.status_refresh_seconds,
        )
    try:
        yield
    finally:
        await stop_timers(tasks)


app = FastAPI(title="Room Availability Dashboard", lifespan=lifespan)
app.include_router(editor_api.router)

# CORS configuration: disabled by default because the page and API share an origin.
if settings.enable_cors:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

if settings.floor_plan_dir and Path(settings.floor_plan_dir).is_dir():
    app.mount("/floorplans", StaticFiles(directory=settings.floor_plan_dir), name="floorplans")


@app.get("/api/rooms")
async def api_rooms(
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    client: PlanningClient = Depends(get_planning_client),
) -> Response:
    """Proxy the planning API for ``[startDate, endDate]`` without caching."""
    if not startDate or not endDate:
        return _error(400, "startDate and endDate are required")
    if parse_date_param(startDate) is None or parse_date_param(endDate) is None:
        return _error(400, "startDate and endDate must be dates formatted as YYYY-MM-DD")
    try:
        upstream = await client.get_planning(startDate, endDate)
    except httpx.RequestError:
        logger.exception("Error fetching room data from planning API")
        return _error(500, "Internal server error")
    if not upstream.is_success:
        logger.error("Planning API returned %s", upstream.status_code)
        return _error(upstream.status_code, "Failed to fetch room data")
    return Response(content=upstream.content, media_type="application/json", headers=NO_STORE)


@app.get("/api/floors")
async def api_floors(
    date: Optional[str] = None,
    live: LiveDashboard = Depends(get_dashboard),
) -> Response:
    """Return per-floor listings for today, or for ``date`` when given."""
    if date is not None and parse_date_param(date) is None:
        return _error(400, "date must be formatted as YYYY-MM-DD")
    if date is not None and date != live.today():
        return await _floors_for_day(date, live)
    # Held listings are for another day once midnight has passed.
    if not live.has_data or live.date != live.today():
        await live.refresh()
    if not live.has_data:
        return _error(503, live.last_error or "Room data is not available yet")
    return JSONResponse(live.snapshot().model_dump(mode="json"), headers=NO_STORE)


async def _floors_for_day(day: str, live: LiveDashboard) -> Response:
    """Build listings for another day on the fly; nothing is kept."""
    try:
        planning = await live.client.fetch_activities(day, day)
    except UpstreamError as exc:
        return _error(exc.status_code, exc.message)
    except httpx.RequestError:
        logger.exception("Error fetching room data for %s", day)
        return _error(500, "Internal server error")
    now = live.clock()
    snapshot = DashboardSnapshot(
        generatedAt=now,
        date=day,
        lastUpdate=now,
        fullRefreshSeconds=settings.full_refresh_seconds,
        statusRefreshSeconds=settings.status_refresh_seconds,
        floors=aggregate(planning.activities, live.room_registry, now),
    )
    return JSONResponse(snapshot.model_dump(mode="json"), headers=NO_STORE)


@app.post("/api/refresh")
async def api_refresh(live: LiveDashboard = Depends(get_dashboard)) -> Response:
    """Re-fetch today's reservations now. Concurrent calls are not deduplicated."""
    await live.refresh()
    if not live.has_data:
        return _error(503, live.last_error or "Room data is not available yet")
    return JSONResponse(live.snapshot().model_dump(mode="json"), headers=NO_STORE)


@app.get("/api/regions")
def api_regions() -> Dict[str, Any]:
    """Return overlay regions (editor export shape) and floor canvas extents."""
    return {
        "regions": spatial_registry.to_export(),
        "canvases": [spatial_registry.canvas_for(f).model_dump() for f in spatial_registry.floors()],
    }


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return {"ok": True, "time": _utcnow().isoformat().replace("+00:00", "Z")}


@app.get("/", response_class=HTMLResponse)
def dashboard_page() -> HTMLResponse:
    """Serve the single page dashboard."""
    return HTMLResponse(
        render_dashboard(
            settings.site_title,
            settings.status_refresh_seconds,
            floor_plans=bool(settings.floor_plan_dir),
        )
    )


def run() -> None:
    """Run the service with uvicorn."""
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
