"""Routes for the map editor authoring tool.

The editor is an internal tool: every route answers 404 unless
``ENABLE_MAP_EDITOR`` is set. A single editing session is kept in memory
for the lifetime of the process, seeded from the spatial registry the
dashboard is currently using.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse

from .config import settings
from .editor import EditorEvent, RegionEditor
from .pages import render_editor
from .registry import FLOOR_CANVASES, ROOM_REGISTRY, SpatialRegistry, SpatialRegistryError

logger = logging.getLogger(__name__)

_session: Dict[str, Optional[RegionEditor]] = {"editor": None}


def require_editor() -> None:
    if not settings.enable_map_editor:
        raise HTTPException(status_code=404, detail="Not Found")


router = APIRouter(prefix="/dev/map-editor", dependencies=[Depends(require_editor)])


def start_session(registry: Optional[SpatialRegistry] = None) -> RegionEditor:
    """Replace the current editing session with a fresh one."""
    editor = RegionEditor.from_registry(registry) if registry is not None else RegionEditor()
    _session["editor"] = editor
    return editor


def get_editor() -> RegionEditor:
    editor = _session["editor"]
    if editor is None:
        editor = start_session()
    return editor


@router.get("", response_class=HTMLResponse)
def editor_page() -> HTMLResponse:
    """Serve the editor page."""
    rooms = {floor: [d.name for d in descriptors] for floor, descriptors in ROOM_REGISTRY.items()}
    return HTMLResponse(
        render_editor(
            settings.site_title,
            rooms,
            sorted(FLOOR_CANVASES),
            floor_plans=bool(settings.floor_plan_dir),
        )
    )


@router.get("/state")
def editor_state(editor: RegionEditor = Depends(get_editor)) -> Dict[str, Any]:
    return editor.state()


@router.post("/events")
def editor_event(event: EditorEvent, editor: RegionEditor = Depends(get_editor)) -> Dict[str, Any]:
    """Apply one gesture and return the updated state."""
    editor.dispatch(event)
    return editor.state()


@router.delete("/regions/{index}")
def delete_region(index: int, editor: RegionEditor = Depends(get_editor)) -> Dict[str, Any]:
    try:
        removed = editor.delete_region(index)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    logger.info("Deleted region for %s on floor %s", removed.room_name, removed.floor)
    return editor.state()


@router.get("/export")
def export_regions(editor: RegionEditor = Depends(get_editor)) -> Dict[str, Any]:
    return editor.export()


@router.post("/save")
def save_regions(editor: RegionEditor = Depends(get_editor)) -> Dict[str, Any]:
    """Check the export against the room registry and write it to the registry file."""
    path = settings.spatial_registry_path
    if not path:
        raise HTTPException(status_code=409, detail="SPATIAL_REGISTRY_PATH is not configured")
    try:
        editor.to_registry().validate(ROOM_REGISTRY)
    except SpatialRegistryError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    try:
        editor.save(path)
    except OSError as exc:
        logger.error("Could not write spatial registry to %s: %s", path, exc)
        raise HTTPException(status_code=500, detail=f"Could not write {path}: {exc}") from exc
    return {"path": path, "count": len(editor.export())}
