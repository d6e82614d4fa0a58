import json

import pytest

from room_dashboard.editor import (
    EditorEvent,
    RegionEditor,
    Viewport,
    bounding_rect,
    find_edge_insert_index,
    project_onto_segment,
)
from room_dashboard.models import Point
from room_dashboard.registry import BUILTIN_REGIONS, SpatialRegistry, load_spatial_registry

SQUARE = [Point(x=0, y=0), Point(x=100, y=0), Point(x=100, y=100), Point(x=0, y=100)]


def pts(points):
    return [(p.x, p.y) for p in points]


@pytest.fixture
def editor() -> RegionEditor:
    # floor 0 canvas is 1137x627; a viewport of the same size maps 1:1
    ed = RegionEditor(floor=0)
    ed.set_viewport(Viewport(left=0, top=0, width=1137, height=627))
    return ed


@pytest.fixture
def square_editor(editor: RegionEditor) -> RegionEditor:
    editor.begin_placement("Stark")
    editor.place_at(Point(x=50, y=50))
    editor.regions[0].points = [p.model_copy() for p in SQUARE]
    return editor


def test_project_onto_segment():
    a, b = Point(x=0, y=0), Point(x=100, y=0)
    assert project_onto_segment(Point(x=50, y=2), a, b) == pytest.approx(0.5)
    assert project_onto_segment(Point(x=-5, y=0), a, b) == 0.0
    assert project_onto_segment(Point(x=50, y=30), a, b) is None
    assert project_onto_segment(Point(x=0, y=0), a, a) is None


def test_find_edge_insert_index_first_edge_wins():
    assert find_edge_insert_index(SQUARE, Point(x=50, y=2)) == 0
    assert find_edge_insert_index(SQUARE, Point(x=99, y=50)) == 1
    assert find_edge_insert_index(SQUARE, Point(x=1, y=50)) == 3
    # the corner is within reach of edges 0 and 1; edge 0 is tested first
    assert find_edge_insert_index(SQUARE, Point(x=100, y=0)) == 0
    assert find_edge_insert_index(SQUARE, Point(x=50, y=50)) is None


def test_place_creates_default_rectangle(editor: RegionEditor):
    editor.begin_placement("Stark")
    editor.click(200, 100)
    assert editor.placing_room is None
    assert len(editor.regions) == 1
    region = editor.regions[0]
    assert (region.room_name, region.floor) == ("Stark", 0)
    assert pts(region.points) == [(140, 60), (260, 60), (260, 140), (140, 140)]


def test_click_without_placement_does_nothing(editor: RegionEditor):
    editor.click(200, 100)
    assert editor.regions == []


def test_place_replaces_existing_region_for_same_room_and_floor(editor: RegionEditor):
    editor.begin_placement("Stark")
    editor.click(200, 100)
    editor.begin_placement("Bulma")
    editor.click(400, 100)
    editor.begin_placement("Stark")
    editor.click(600, 300)
    assert [r.room_name for r in editor.regions] == ["Bulma", "Stark"]
    assert pts(editor.regions[1].points)[0] == (540, 260)


def test_same_room_on_other_floor_is_kept(editor: RegionEditor):
    editor.begin_placement("Stark")
    editor.click(200, 100)
    editor.select_floor(1)
    editor.begin_placement("Stark")
    editor.click(200, 100)
    assert [(r.room_name, r.floor) for r in editor.regions] == [("Stark", 0), ("Stark", 1)]


def test_escape_cancels_placement(editor: RegionEditor):
    editor.begin_placement("Stark")
    editor.handle_key("Escape")
    editor.click(200, 100)
    assert editor.placing_room is None
    assert editor.regions == []


def test_begin_placement_toggles(editor: RegionEditor):
    editor.begin_placement("Stark")
    editor.begin_placement("Stark")
    assert editor.placing_room is None


def test_select_floor_cancels_placement(editor: RegionEditor):
    editor.begin_placement("Stark")
    editor.select_floor(2)
    assert editor.placing_room is None
    assert editor.floor == 2


def test_pointer_events_ignored_without_viewport():
    editor = RegionEditor()
    editor.begin_placement("Stark")
    editor.click(200, 100)
    assert editor.regions == []
    assert editor.placing_room == "Stark"


def test_viewport_letterboxing():
    # 1137x627 canvas in a 2274x2000 box: scale 2, centred vertically
    viewport = Viewport(left=10, top=20, width=2274, height=2000)
    offset_y = 20 + (2000 - 627 * 2) / 2
    p = viewport.to_local(10 + 200, offset_y + 100, 1137, 627)
    assert (p.x, p.y) == pytest.approx((100, 50))
    assert Viewport(left=0, top=0, width=0, height=10).to_local(1, 1, 1137, 627) is None


def test_drag_vertex_tracks_pointer(square_editor: RegionEditor):
    assert square_editor.press_vertex(0, 2)
    square_editor.move(130, 140)
    square_editor.move(150, 160)
    square_editor.release()
    square_editor.move(500, 500)
    assert pts(square_editor.regions[0].points)[2] == (150, 160)
    assert square_editor.dragging is None


def test_only_one_vertex_dragged_at_a_time(square_editor: RegionEditor):
    assert square_editor.press_vertex(0, 0)
    assert not square_editor.press_vertex(0, 1)
    square_editor.move(5, 5)
    assert pts(square_editor.regions[0].points)[:2] == [(5, 5), (100, 0)]


def test_press_invalid_vertex(square_editor: RegionEditor):
    assert not square_editor.press_vertex(0, 9)
    assert not square_editor.press_vertex(3, 0)


def test_split_edge_inserts_click_point(square_editor: RegionEditor):
    index = square_editor.split_edge_at(0, Point(x=50, y=2))
    assert index == 1
    assert pts(square_editor.regions[0].points) == [(0, 0), (50, 2), (100, 0), (100, 100), (0, 100)]


def test_split_edge_too_far(square_editor: RegionEditor):
    assert square_editor.split_edge_at(0, Point(x=50, y=50)) is None
    assert len(square_editor.regions[0].points) == 4


def test_double_click_converts_client_coordinates(square_editor: RegionEditor):
    square_editor.double_click(0, 50, 98)
    assert pts(square_editor.regions[0].points)[3] == (50, 98)


def test_delete_vertex(square_editor: RegionEditor):
    assert square_editor.delete_vertex(0, 1)
    assert pts(square_editor.regions[0].points) == [(0, 0), (100, 100), (0, 100)]


def test_delete_vertex_refused_at_three_points(square_editor: RegionEditor):
    square_editor.delete_vertex(0, 0)
    assert not square_editor.delete_vertex(0, 0)
    assert len(square_editor.regions[0].points) == 3


def test_delete_region(square_editor: RegionEditor):
    removed = square_editor.delete_region(0)
    assert removed.room_name == "Stark"
    assert square_editor.regions == []
    with pytest.raises(IndexError):
        square_editor.delete_region(0)


def test_export_bounding_boxes(square_editor: RegionEditor):
    square_editor.split_edge_at(0, Point(x=50, y=2))
    square_editor.press_vertex(0, 3)
    square_editor.move(130, 140)
    square_editor.release()
    square_editor.begin_placement("Bulma")
    square_editor.click(400, 300)

    exported = square_editor.export()
    assert set(exported) == {"Stark", "Bulma"}
    for entry in exported.values():
        points = [Point(**p) for p in entry["points"]]
        assert {k: entry[k] for k in ("x", "y", "w", "h")} == bounding_rect(points)
        assert entry["floor"] == 0
    assert exported["Stark"]["w"] == 130
    assert exported["Stark"]["h"] == 140
    assert json.loads(square_editor.export_json()) == exported


def test_export_loads_as_spatial_registry(square_editor: RegionEditor, tmp_path):
    path = tmp_path / "regions.json"
    square_editor.save(path)
    registry = load_spatial_registry(path)
    assert pts(registry.region_for(0, "Stark").points) == pts(SQUARE)


def test_to_registry(square_editor: RegionEditor):
    registry = square_editor.to_registry()
    region = registry.region_for(0, "Stark")
    assert (region.x, region.y, region.w, region.h) == (0, 0, 100, 100)


def test_from_registry_turns_rectangles_into_polygons():
    editor = RegionEditor.from_registry(SpatialRegistry(BUILTIN_REGIONS))
    assert len(editor.regions) == len(BUILTIN_REGIONS)
    assert all(len(r.points) == 4 for r in editor.regions)
    stark = next(r for r in editor.regions if r.room_name == "Stark")
    assert stark.floor == 0
    assert stark.points[0].x == BUILTIN_REGIONS["Stark"].x


def test_dispatch_sequence():
    editor = RegionEditor()
    events = [
        {"kind": "viewport", "viewport": {"left": 0, "top": 0, "width": 1137, "height": 627}},
        {"kind": "begin_placement", "room": "Stark"},
        {"kind": "click", "client_x": 200, "client_y": 100},
        {"kind": "vertex_down", "region_index": 0, "vertex_index": 0},
        {"kind": "move", "client_x": 120, "client_y": 50},
        {"kind": "release"},
        {"kind": "double_click", "region_index": 0, "client_x": 200, "client_y": 140},
        {"kind": "vertex_context_menu", "region_index": 0, "vertex_index": 1},
        {"kind": "begin_placement", "room": "Bulma"},
        {"kind": "key", "key": "Escape"},
    ]
    for event in events:
        editor.dispatch(EditorEvent(**event))
    assert editor.placing_room is None
    assert editor.dragging is None
    assert pts(editor.regions[0].points) == [(120, 50), (260, 140), (200, 140), (140, 140)]


def test_dispatch_ignores_pointer_event_without_coordinates(editor: RegionEditor):
    editor.begin_placement("Stark")
    editor.dispatch(EditorEvent(kind="click"))
    assert editor.regions == []


def test_state_reports_regions(square_editor: RegionEditor):
    state = square_editor.state()
    assert state["floor"] == 0
    assert state["canvas"] == {"w": 1137, "h": 627}
    assert state["regions"][0]["roomName"] == "Stark"
    assert state["regions"][0]["index"] == 0


def test_shift_magnifies_around_cursor(editor: RegionEditor):
    assert editor.state()["magnifier"] is None
    editor.dispatch(EditorEvent(kind="key", key="Shift"))
    editor.dispatch(EditorEvent(kind="move", client_x=300, client_y=200))
    assert editor.state()["magnifier"] == {"x": 300, "y": 200, "zoom": 4.0, "radius": 80.0}
    assert editor.regions == []

    editor.dispatch(EditorEvent(kind="key_up", key="Shift"))
    assert editor.state()["magnifier"] is None


def test_cursor_tracked_without_drag(square_editor: RegionEditor):
    square_editor.move(40, 60)
    assert (square_editor.cursor.x, square_editor.cursor.y) == (40, 60)
    assert pts(square_editor.regions[0].points) == pts(SQUARE)
