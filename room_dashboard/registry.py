"""Static building configuration: rooms per floor and their map regions.

Two tables are kept here. ``ROOM_REGISTRY`` lists the rooms of each floor
in display order. The spatial registry maps room names to overlay regions
drawn on top of each floor plan, expressed in the floor's own canvas
coordinates (the floor plan's SVG viewBox), never as percentages.

Both tables are joined by room name. ``load_spatial_registry`` checks the
join when the application starts: a region for a room the building does
not have, or placed on the wrong floor, is a configuration error.
"""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from .models import FloorCanvas, Region, RoomDescriptor, RoomType

logger = logging.getLogger(__name__)


def _rooms(*entries: tuple) -> List[RoomDescriptor]:
    return [RoomDescriptor(name=name, type=RoomType(kind)) for name, kind in entries]


ROOM_REGISTRY: Dict[int, List[RoomDescriptor]] = OrderedDict(
    [
        (
            0,
            _rooms(
                ("Stark", "room"),
                ("Pru'ha", "room"),
                ("Mei Hatsume", "room"),
                ("Eliot Alderson", "office"),
                ("Bulma", "office"),
            ),
        ),
        (
            1,
            _rooms(
                ("Microtech", "room"),
                ("Kanojedo", "room"),
                ("Arrakis", "room"),
                ("Pandora", "room"),
                ("Kaer Morhen", "room"),
                ("Krikkit", "room"),
                ("La Matrice", "room"),
                ("Gallifrey", "office"),
                ("Le Continental", "office"),
                ("Poudlar", "office"),
            ),
        ),
        (
            2,
            _rooms(
                ("Denis", "room"),
                ("MacAlistair", "room"),
                ("Ritchie", "room"),
                ("Ada Lovelace", "room"),
                ("Al Jazari", "room"),
                ("Roland Moreno", "room"),
                ("Gwen", "room"),
                ("Barzey", "room"),
                ("Hedy Lamarr", "office"),
            ),
        ),
    ]
)

# Floor plan viewBox sizes. Floor 3 has a plan but no registered rooms yet.
FLOOR_CANVASES: Dict[int, FloorCanvas] = {
    0: FloorCanvas(floor=0, w=1137, h=627),
    1: FloorCanvas(floor=1, w=1290, h=764),
    2: FloorCanvas(floor=2, w=1255, h=764),
    3: FloorCanvas(floor=3, w=750, h=432),
}
DEFAULT_CANVAS = FLOOR_CANVASES[0]


def _rect(floor: int, x: float, y: float, w: float, h: float) -> Region:
    return Region(floor=floor, x=x, y=y, w=w, h=h)


BUILTIN_REGIONS: Dict[str, Region] = {
    # Floor 0 (1137x627)
    "Bulma": _rect(0, 218.4, 3.5, 188.5, 103.5),
    "Eliot Alderson": _rect(0, 6.0, 3.5, 95.1, 153.0),
    "Stark": _rect(0, 219.0, 158.5, 187.5, 117.5),
    "Pru'ha": _rect(0, 6.0, 387.0, 401.0, 235.4),
    "Mei Hatsume": _rect(0, 410.0, 421.0, 170.0, 201.5),
    # Floor 1 (1290x764)
    "Microtech": _rect(1, 2.1, 141.5, 209.0, 152.5),
    "Pandora": _rect(1, 4.0, 614.0, 402.0, 146.0),
    "Poudlar": _rect(1, 925.7, 172.1, 266.5, 147.4),
    "Gallifrey": _rect(1, 410.0, 614.0, 165.0, 146.0),
    "Le Continental": _rect(1, 579.0, 614.0, 102.0, 146.0),
    "Kaer Morhen": _rect(1, 685.0, 614.0, 158.0, 145.9),
    "La Matrice": _rect(1, 1087.3, 464.5, 155.6, 149.0),
    "Krikkit": _rect(1, 1086.1, 359.6, 130.5, 156.1),
    # Floor 2 (1255x764)
    "Denis": _rect(2, 2.0, 141.0, 209.0, 153.0),
    "MacAlistair": _rect(2, 4.0, 298.0, 205.9, 260.0),
    "Ritchie": _rect(2, 214.0, 296.0, 188.5, 262.0),
    "Ada Lovelace": _rect(2, 4.0, 614.0, 339.0, 146.0),
    "Hedy Lamarr": _rect(2, 511.0, 614.0, 225.0, 146.0),
    "Al Jazari": _rect(2, 739.9, 614.0, 104.0, 146.0),
    "Roland Moreno": _rect(2, 877.1, 108.6, 85.0, 314.0),
    "Gwen": _rect(2, 977.9, 92.6, 149.8, 300.4),
    "Barzey": _rect(2, 1042.4, 343.1, 199.3, 269.9),
}


class SpatialRegistryError(ValueError):
    """Raised when the spatial table does not match the room registry."""


class SpatialRegistry:
    """Lookup table of overlay regions and floor canvas extents."""

    def __init__(
        self,
        regions: Mapping[str, Region],
        canvases: Optional[Mapping[int, FloorCanvas]] = None,
    ) -> None:
        self.regions: Dict[str, Region] = dict(regions)
        self.canvases: Dict[int, FloorCanvas] = dict(canvases if canvases is not None else FLOOR_CANVASES)

    def region_for(self, floor: int, room_name: str) -> Optional[Region]:
        """Return the region drawn for ``room_name`` on ``floor``, if any."""
        region = self.regions.get(room_name)
        if region is None or region.floor != floor:
            return None
        return region

    def canvas_for(self, floor: int) -> FloorCanvas:
        canvas = self.canvases.get(floor)
        if canvas is None:
            return FloorCanvas(floor=floor, w=DEFAULT_CANVAS.w, h=DEFAULT_CANVAS.h)
        return canvas

    def floors(self) -> List[int]:
        return sorted(self.canvases)

    def unmapped_rooms(self, room_registry: Mapping[int, Sequence[RoomDescriptor]]) -> List[str]:
        """Names of bookable rooms that have no region on their floor."""
        return [
            descriptor.name
            for floor, descriptors in room_registry.items()
            for descriptor in descriptors
            if descriptor.bookable and self.region_for(floor, descriptor.name) is None
        ]

    def validate(self, room_registry: Mapping[int, Sequence[RoomDescriptor]]) -> None:
        """Fail on regions naming unknown rooms or the wrong floor."""
        floors_by_name = {
            descriptor.name: floor
            for floor, descriptors in room_registry.items()
            for descriptor in descriptors
        }
        problems: List[str] = []
        for name, region in self.regions.items():
            if name not in floors_by_name:
                problems.append(f"unknown room {name!r}")
            elif floors_by_name[name] != region.floor:
                problems.append(
                    f"room {name!r} is on floor {floors_by_name[name]} but mapped on floor {region.floor}"
                )
        if problems:
            raise SpatialRegistryError("Spatial registry mismatch: " + "; ".join(problems))
        for name in self.unmapped_rooms(room_registry):
            logger.warning("Room %r has no map region and will not be drawn", name)

    def to_export(self) -> Dict[str, Dict[str, Any]]:
        """Serialise regions in the map editor's export shape."""
        return {
            name: {
                "floor": region.floor,
                "points": [p.model_dump() for p in region.outline()],
                "x": region.x,
                "y": region.y,
                "w": region.w,
                "h": region.h,
            }
            for name, region in self.regions.items()
        }


def parse_regions(data: Mapping[str, Any]) -> Dict[str, Region]:
    """Parse a ``{room name: region}`` mapping as written by the map editor."""
    regions: Dict[str, Region] = {}
    for name, raw in data.items():
        try:
            regions[name] = Region.model_validate(raw)
        except ValidationError as exc:
            raise SpatialRegistryError(f"Invalid region for room {name!r}: {exc}") from exc
    return regions


def load_spatial_registry(
    path: Optional[Union[str, Path]] = None,
    room_registry: Mapping[int, Sequence[RoomDescriptor]] = ROOM_REGISTRY,
) -> SpatialRegistry:
    """Load the spatial registry from ``path`` or fall back to built-in regions.

    A configured path that does not exist yet (the map editor has not saved
    to it) also falls back to the built-in regions.

    Raises:
        SpatialRegistryError: if the file is malformed or disagrees with
            ``room_registry``.
        OSError: if ``path`` cannot be read.
    """
    if path and not Path(path).exists():
        logger.warning("Spatial registry %s does not exist, using built-in regions", path)
        path = None
    if path:
        with open(path, "r", encoding="utf-8") as fh:
            try:
                data = json.load(fh)
            except json.JSONDecodeError as exc:
                raise SpatialRegistryError(f"Spatial registry {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise SpatialRegistryError(f"Spatial registry {path} must be a JSON object")
        regions = parse_regions(data)
        logger.info("Loaded %d map regions from %s", len(regions), path)
    else:
        regions = dict(BUILTIN_REGIONS)
    registry = SpatialRegistry(regions)
    registry.validate(room_registry)
    return registry
