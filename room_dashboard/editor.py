"""Interactive authoring of room overlay regions.

``RegionEditor`` holds the polygons an operator draws over a floor plan
and applies pointer/keyboard gestures to them. The browser page only
forwards raw gestures (client pixel coordinates plus the canvas element's
on-screen rectangle); all geometry happens here, in the floor's canvas
coordinate space.

Gestures:

- pick a room, then click the plan: drop a default rectangle centred on
  the click, replacing any region that room already had on this floor;
- Escape: leave placement mode without placing anything;
- press a vertex and move: drag it until the button is released;
- double-click near an edge: insert a vertex there;
- right-click a vertex: delete it, unless only three remain;
- hold Shift: magnify the plan around the pointer.

The result is exported in the spatial registry's JSON shape.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel

from .models import Point, Region
from .registry import DEFAULT_CANVAS, FLOOR_CANVASES, SpatialRegistry

logger = logging.getLogger(__name__)

# Default rectangle dropped on placement, as half extents around the click.
PLACEMENT_HALF_WIDTH = 60.0
PLACEMENT_HALF_HEIGHT = 40.0

# Maximum distance from an edge for a double-click to split it.
EDGE_SNAP_THRESHOLD = 12.0

MIN_POLYGON_POINTS = 3

# Shift-held magnifier: zoom factor and lens radius in screen pixels.
MAGNIFIER_ZOOM = 4.0
MAGNIFIER_RADIUS = 80.0


class AuthoredRegion(BaseModel):
    room_name: str
    floor: int
    points: List[Point]


class DragState(BaseModel):
    region_index: int
    vertex_index: int


class Viewport(BaseModel):
    """On-screen rectangle of the canvas element, in client pixels."""

    left: float
    top: float
    width: float
    height: float

    def to_local(self, client_x: float, client_y: float, canvas_w: float, canvas_h: float) -> Optional[Point]:
        """Convert client pixels into canvas coordinates.

        Assumes the canvas content is scaled uniformly and centred inside
        the element (SVG ``preserveAspectRatio="xMidYMid meet"``).
        Returns None when the element has no area.
        """
        if self.width <= 0 or self.height <= 0 or canvas_w <= 0 or canvas_h <= 0:
            return None
        scale = min(self.width / canvas_w, self.height / canvas_h)
        offset_x = self.left + (self.width - canvas_w * scale) / 2
        offset_y = self.top + (self.height - canvas_h * scale) / 2
        return Point(x=(client_x - offset_x) / scale, y=(client_y - offset_y) / scale)


def project_onto_segment(p: Point, a: Point, b: Point, threshold: float = EDGE_SNAP_THRESHOLD) -> Optional[float]:
    """Return the clamped projection parameter of ``p`` on ``ab`` if within threshold.

    The result is in ``[0, 1]``; None means ``p`` is farther than
    ``threshold`` from the segment, or the segment has zero length.
    """
    abx = b.x - a.x
    aby = b.y - a.y
    len2 = abx * abx + aby * aby
    if len2 == 0:
        return None
    t = ((p.x - a.x) * abx + (p.y - a.y) * aby) / len2
    t = max(0.0, min(1.0, t))
    dist = math.hypot(p.x - (a.x + t * abx), p.y - (a.y + t * aby))
    return t if dist <= threshold else None


def find_edge_insert_index(
    polygon: List[Point], p: Point, threshold: float = EDGE_SNAP_THRESHOLD
) -> Optional[int]:
    """Index of the vertex after which ``p`` splits an edge, or None.

    Edges are tested in winding order, closing edge last; the first edge
    within ``threshold`` wins.
    """
    n = len(polygon)
    for i in range(n):
        if project_onto_segment(p, polygon[i], polygon[(i + 1) % n], threshold) is not None:
            return i
    return None


def bounding_rect(points: List[Point]) -> Dict[str, float]:
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return {
        "x": min(xs),
        "y": min(ys),
        "w": max(xs) - min(xs),
        "h": max(ys) - min(ys),
    }


class EditorEvent(BaseModel):
    """A gesture forwarded by the editor page."""

    kind: Literal[
        "select_floor",
        "viewport",
        "begin_placement",
        "cancel_placement",
        "key",
        "key_up",
        "click",
        "vertex_down",
        "move",
        "release",
        "double_click",
        "vertex_context_menu",
    ]
    floor: Optional[int] = None
    room: Optional[str] = None
    key: Optional[str] = None
    client_x: Optional[float] = None
    client_y: Optional[float] = None
    region_index: Optional[int] = None
    vertex_index: Optional[int] = None
    viewport: Optional[Viewport] = None


class RegionEditor:
    """Mutable editing session over a set of authored regions."""

    def __init__(self, floor: int = 0) -> None:
        self.regions: List[AuthoredRegion] = []
        self.floor = floor
        self.placing_room: Optional[str] = None
        self.dragging: Optional[DragState] = None
        self.viewport: Optional[Viewport] = None
        self.cursor: Point = Point(x=0, y=0)
        self.magnifying = False

    @classmethod
    def from_registry(cls, registry: SpatialRegistry, floor: int = 0) -> "RegionEditor":
        """Start a session from existing regions; rectangles become 4-point polygons."""
        editor = cls(floor=floor)
        for name, region in registry.regions.items():
            editor.regions.append(
                AuthoredRegion(room_name=name, floor=region.floor, points=region.outline())
            )
        return editor

    # -- floor / viewport -------------------------------------------------

    def canvas_size(self) -> Tuple[float, float]:
        canvas = FLOOR_CANVASES.get(self.floor, DEFAULT_CANVAS)
        return canvas.w, canvas.h

    def select_floor(self, floor: int) -> None:
        self.floor = floor
        self.placing_room = None
        self.dragging = None

    def set_viewport(self, viewport: Optional[Viewport]) -> None:
        self.viewport = viewport

    def to_local(self, client_x: float, client_y: float) -> Optional[Point]:
        """Client pixels to canvas coordinates, or None without a usable viewport."""
        if self.viewport is None:
            return None
        w, h = self.canvas_size()
        return self.viewport.to_local(client_x, client_y, w, h)

    # -- placement --------------------------------------------------------

    def begin_placement(self, room_name: str) -> None:
        """Arm the next canvas click to place ``room_name``; toggles off if already armed."""
        self.placing_room = None if self.placing_room == room_name else room_name

    def cancel_placement(self) -> None:
        self.placing_room = None

    def handle_key(self, key: str) -> None:
        if key == "Escape":
            self.cancel_placement()
        elif key == "Shift":
            self.magnifying = True

    def handle_key_up(self, key: str) -> None:
        if key == "Shift":
            self.magnifying = False

    def magnifier(self) -> Optional[Dict[str, float]]:
        """Lens centred on the tracked cursor while Shift is held."""
        if not self.magnifying:
            return None
        return {"x": self.cursor.x, "y": self.cursor.y, "zoom": MAGNIFIER_ZOOM, "radius": MAGNIFIER_RADIUS}

    def place_at(self, center: Point) -> Optional[AuthoredRegion]:
        """Drop the default rectangle for the armed room centred on ``center``."""
        if self.placing_room is None:
            return None
        hw, hh = PLACEMENT_HALF_WIDTH, PLACEMENT_HALF_HEIGHT
        region = AuthoredRegion(
            room_name=self.placing_room,
            floor=self.floor,
            points=[
                Point(x=center.x - hw, y=center.y - hh),
                Point(x=center.x + hw, y=center.y - hh),
                Point(x=center.x + hw, y=center.y + hh),
                Point(x=center.x - hw, y=center.y + hh),
            ],
        )
        self.regions = [
            r for r in self.regions if not (r.room_name == region.room_name and r.floor == region.floor)
        ]
        self.regions.append(region)
        self.placing_room = None
        self.dragging = None
        logger.debug("Placed %s on floor %s", region.room_name, region.floor)
        return region

    def click(self, client_x: float, client_y: float) -> Optional[AuthoredRegion]:
        if self.placing_room is None:
            return None
        point = self.to_local(client_x, client_y)
        if point is None:
            return None
        return self.place_at(point)

    # -- vertex drag ------------------------------------------------------

    def _valid_vertex(self, region_index: int, vertex_index: int) -> bool:
        return 0 <= region_index < len(self.regions) and 0 <= vertex_index < len(
            self.regions[region_index].points
        )

    def press_vertex(self, region_index: int, vertex_index: int) -> bool:
        if self.dragging is not None or not self._valid_vertex(region_index, vertex_index):
            return False
        self.dragging = DragState(region_index=region_index, vertex_index=vertex_index)
        return True

    def move_to(self, point: Point) -> None:
        """Track the pointer; moves the dragged vertex, if any."""
        self.cursor = point
        if self.dragging is None:
            return
        region = self.regions[self.dragging.region_index]
        region.points[self.dragging.vertex_index] = point

    def move(self, client_x: float, client_y: float) -> None:
        point = self.to_local(client_x, client_y)
        if point is None:
            return
        self.move_to(point)

    def release(self) -> None:
        self.dragging = None

    # -- polygon edits ----------------------------------------------------

    def split_edge_at(
        self, region_index: int, point: Point, threshold: float = EDGE_SNAP_THRESHOLD
    ) -> Optional[int]:
        """Insert ``point`` into the first edge within ``threshold``.

        Returns the new vertex's index, or None when no edge is close enough.
        """
        if not 0 <= region_index < len(self.regions):
            return None
        region = self.regions[region_index]
        after = find_edge_insert_index(region.points, point, threshold)
        if after is None:
            return None
        region.points.insert(after + 1, point)
        return after + 1

    def double_click(self, region_index: int, client_x: float, client_y: float) -> Optional[int]:
        point = self.to_local(client_x, client_y)
        if point is None:
            return None
        return self.split_edge_at(region_index, point)

    def delete_vertex(self, region_index: int, vertex_index: int) -> bool:
        """Remove a vertex; refused when the polygon would drop below three points."""
        if not self._valid_vertex(region_index, vertex_index):
            return False
        region = self.regions[region_index]
        if len(region.points) <= MIN_POLYGON_POINTS:
            return False
        del region.points[vertex_index]
        self.dragging = None
        return True

    def delete_region(self, region_index: int) -> AuthoredRegion:
        """Remove a whole region.

        Raises:
            IndexError: if ``region_index`` is out of range.
        """
        if not 0 <= region_index < len(self.regions):
            raise IndexError(f"no region at index {region_index}")
        self.dragging = None
        return self.regions.pop(region_index)

    # -- dispatch ---------------------------------------------------------

    def dispatch(self, event: EditorEvent) -> None:
        """Apply one gesture forwarded by the editor page."""
        kind = event.kind
        if kind == "select_floor" and event.floor is not None:
            self.select_floor(event.floor)
        elif kind == "viewport":
            self.set_viewport(event.viewport)
        elif kind == "begin_placement" and event.room:
            self.begin_placement(event.room)
        elif kind == "cancel_placement":
            self.cancel_placement()
        elif kind == "key" and event.key:
            self.handle_key(event.key)
        elif kind == "key_up" and event.key:
            self.handle_key_up(event.key)
        elif kind == "release":
            self.release()
        elif kind == "vertex_down" and event.region_index is not None and event.vertex_index is not None:
            self.press_vertex(event.region_index, event.vertex_index)
        elif kind == "vertex_context_menu" and event.region_index is not None and event.vertex_index is not None:
            self.delete_vertex(event.region_index, event.vertex_index)
        elif event.client_x is None or event.client_y is None:
            return
        elif kind == "click":
            self.click(event.client_x, event.client_y)
        elif kind == "move":
            self.move(event.client_x, event.client_y)
        elif kind == "double_click" and event.region_index is not None:
            self.double_click(event.region_index, event.client_x, event.client_y)

    # -- export -----------------------------------------------------------

    def export(self) -> Dict[str, Dict[str, Any]]:
        """Serialise all regions in the spatial registry's shape, keyed by room."""
        result: Dict[str, Dict[str, Any]] = {}
        for region in self.regions:
            result[region.room_name] = {
                "floor": region.floor,
                "points": [p.model_dump() for p in region.points],
                **bounding_rect(region.points),
            }
        return result

    def export_json(self) -> str:
        return json.dumps(self.export(), indent=2)

    def to_registry(self) -> SpatialRegistry:
        """The exported regions as a spatial registry, for validation before saving."""
        return SpatialRegistry(
            {
                name: Region(floor=entry["floor"], points=entry["points"])
                for name, entry in self.export().items()
            }
        )

    def save(self, path: Union[str, Path]) -> None:
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(self.export_json())
        logger.info("Wrote %d map regions to %s", len(self.regions), path)

    def state(self) -> Dict[str, Any]:
        """Everything the editor page needs to redraw."""
        w, h = self.canvas_size()
        return {
            "floor": self.floor,
            "canvas": {"w": w, "h": h},
            "placingRoom": self.placing_room,
            "dragging": self.dragging.model_dump() if self.dragging else None,
            "magnifier": self.magnifier(),
            "regions": [
                {"index": i, "roomName": r.room_name, "floor": r.floor, "points": [p.model_dump() for p in r.points]}
                for i, r in enumerate(self.regions)
            ],
        }
