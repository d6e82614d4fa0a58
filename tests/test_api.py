import datetime
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from room_dashboard import main
from room_dashboard.config import settings
from room_dashboard.dashboard import LiveDashboard
from room_dashboard.upstream import PlanningClient
from tests.conftest import activity_payload, at, failing_transport, planning_transport

PAYLOAD = {
    "activities": [
        activity_payload("1", at(9), at(10), ["Stark"], title="Algorithms"),
        activity_payload("2", at(10, 30), at(12), ["Gwen"]),
    ]
}


@pytest.fixture
def wire():
    """Install a fake planning API behind the app's dependencies."""

    def _wire(transport) -> LiveDashboard:
        client = PlanningClient(base_url="https://planning.test/api/v1/planning", transport=transport)
        dashboard = LiveDashboard(client=client, clock=lambda: at(9, 45), tz="UTC")
        main.app.dependency_overrides[main.get_planning_client] = lambda: client
        main.app.dependency_overrides[main.get_dashboard] = lambda: dashboard
        return dashboard

    yield _wire
    main.app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(main.app)


@pytest.mark.parametrize(
    "query",
    ["", "?startDate=2024-10-14", "?endDate=2024-10-14", "?startDate=&endDate=2024-10-14"],
)
def test_rooms_requires_both_dates(client, wire, query):
    wire(planning_transport(PAYLOAD))
    response = client.get(f"/api/rooms{query}")
    assert response.status_code == 400
    assert response.json() == {"error": "startDate and endDate are required"}


def test_rooms_rejects_malformed_dates(client, wire):
    wire(planning_transport(PAYLOAD))
    response = client.get("/api/rooms?startDate=14/10/2024&endDate=2024-10-14")
    assert response.status_code == 400
    assert "YYYY-MM-DD" in response.json()["error"]


def test_rooms_proxies_body_verbatim(client, wire):
    calls = []
    wire(planning_transport(PAYLOAD, calls=calls))
    response = client.get("/api/rooms?startDate=2024-10-14&endDate=2024-10-15")
    assert response.status_code == 200
    assert response.json() == PAYLOAD
    assert response.headers["cache-control"].startswith("no-store")
    assert calls[0].url.params["startDate"] == "2024-10-14"
    assert calls[0].url.params["endDate"] == "2024-10-15"


def test_rooms_propagates_upstream_status(client, wire):
    wire(planning_transport({"message": "nope"}, status_code=404))
    response = client.get("/api/rooms?startDate=2024-10-14&endDate=2024-10-14")
    assert response.status_code == 404
    assert response.json() == {"error": "Failed to fetch room data"}


def test_rooms_network_failure_is_500(client, wire):
    wire(failing_transport())
    response = client.get("/api/rooms?startDate=2024-10-14&endDate=2024-10-14")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def moved_transport(calls: list) -> httpx.MockTransport:
    """Planning API that moved from ``/api/v1`` to ``/api/v2``."""

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/api/v1/planning":
            moved = request.url.copy_with(path="/api/v2/planning")
            return httpx.Response(301, headers={"Location": str(moved)})
        return httpx.Response(200, json=PAYLOAD)

    return httpx.MockTransport(handler)


def test_rooms_follows_upstream_redirects(client, wire):
    calls = []
    wire(moved_transport(calls))
    response = client.get("/api/rooms?startDate=2024-10-14&endDate=2024-10-14")
    assert response.status_code == 200
    assert response.json() == PAYLOAD
    assert calls[-1].url.path == "/api/v2/planning"
    assert calls[-1].url.params["startDate"] == "2024-10-14"


def test_floors_follow_upstream_redirects(client, wire):
    wire(moved_transport([]))
    response = client.get("/api/floors")
    assert response.status_code == 200
    assert response.json()["lastError"] is None


def test_floors_refreshes_lazily(client, wire):
    wire(planning_transport(PAYLOAD))
    response = client.get("/api/floors")
    assert response.status_code == 200
    data = response.json()
    assert data["date"] == "2024-10-14"
    assert data["lastError"] is None
    assert [f["floor"] for f in data["floors"]] == [0, 1, 2]
    stark = data["floors"][0]["rooms"][0]
    assert stark["name"] == "Stark"
    assert stark["status"] == "occupied"
    assert stark["currentReservation"]["title"] == "Algorithms"
    gwen = next(r for r in data["floors"][2]["rooms"] if r["name"] == "Gwen")
    assert gwen["status"] == "soon"
    assert gwen["nextReservation"]["id"] == "2"


def test_floors_without_any_data_is_503(client, wire):
    wire(failing_transport())
    response = client.get("/api/floors")
    assert response.status_code == 503
    assert "error" in response.json()


def test_floors_serves_stale_data_with_error(client, wire):
    dashboard = wire(planning_transport(PAYLOAD))
    assert client.post("/api/refresh").status_code == 200
    dashboard.client.transport = planning_transport({}, status_code=502)
    response = client.post("/api/refresh")
    assert response.status_code == 200
    data = response.json()
    assert "502" in data["lastError"]
    assert data["floors"][0]["rooms"][0]["status"] == "occupied"


def test_floors_refetch_after_midnight(client, wire):
    calls = []
    dashboard = wire(planning_transport(PAYLOAD, calls=calls))
    assert client.get("/api/floors").json()["date"] == "2024-10-14"
    assert client.get("/api/floors").status_code == 200
    assert len(calls) == 1

    dashboard.clock = lambda: at(9, 45) + datetime.timedelta(days=1)
    response = client.get("/api/floors")
    assert response.status_code == 200
    assert response.json()["date"] == "2024-10-15"
    assert len(calls) == 2
    assert calls[-1].url.params["startDate"] == "2024-10-15"


def test_floors_for_another_day(client, wire):
    calls = []
    dashboard = wire(planning_transport(PAYLOAD, calls=calls))
    response = client.get("/api/floors?date=2024-10-20")
    assert response.status_code == 200
    assert response.json()["date"] == "2024-10-20"
    assert calls[0].url.params["startDate"] == "2024-10-20"
    assert not dashboard.has_data


def test_floors_for_another_day_upstream_error(client, wire):
    wire(planning_transport({}, status_code=500))
    response = client.get("/api/floors?date=2024-10-20")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch room data"}


def test_floors_rejects_bad_date(client, wire):
    wire(planning_transport(PAYLOAD))
    assert client.get("/api/floors?date=tomorrow").status_code == 400


def test_regions(client):
    data = client.get("/api/regions").json()
    assert data["regions"]["Stark"]["floor"] == 0
    assert len(data["regions"]["Stark"]["points"]) == 4
    assert [c["floor"] for c in data["canvases"]] == [0, 1, 2, 3]
    assert data["canvases"][1] == {"floor": 1, "w": 1290, "h": 764}


def test_healthz(client):
    data = client.get("/healthz").json()
    assert data["ok"] is True
    assert data["time"].endswith("Z")


def test_dashboard_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert settings.site_title in response.text
    assert "{title}" not in response.text
    assert "/api/floors" in response.text
    assert '"soon": "Soon occupied"' in response.text
    assert "{status_text}" not in response.text


class TestEditorRoutes:
    @pytest.fixture(autouse=True)
    def enabled(self, monkeypatch):
        monkeypatch.setattr(settings, "enable_map_editor", True)
        main.editor_api.start_session()

    def post(self, client, **event):
        response = client.post("/dev/map-editor/events", json=event)
        assert response.status_code == 200
        return response.json()

    def test_disabled_editor_is_hidden(self, client, monkeypatch):
        monkeypatch.setattr(settings, "enable_map_editor", False)
        assert client.get("/dev/map-editor").status_code == 404
        assert client.get("/dev/map-editor/state").status_code == 404

    def test_page(self, client):
        response = client.get("/dev/map-editor")
        assert response.status_code == 200
        assert "Map Editor" in response.text
        assert "Kanojedo" in response.text

    def test_place_edit_and_export(self, client):
        self.post(client, kind="viewport", viewport={"left": 0, "top": 0, "width": 1137, "height": 627})
        self.post(client, kind="begin_placement", room="Stark")
        state = self.post(client, kind="click", client_x=200, client_y=100)
        assert state["placingRoom"] is None
        assert len(state["regions"]) == 1
        state = self.post(client, kind="double_click", region_index=0, client_x=200, client_y=62)
        assert len(state["regions"][0]["points"]) == 5

        exported = client.get("/dev/map-editor/export").json()
        assert exported["Stark"]["x"] == 140
        assert exported["Stark"]["w"] == 120
        assert exported["Stark"]["floor"] == 0

    def test_invalid_event(self, client):
        response = client.post("/dev/map-editor/events", json={"kind": "teleport"})
        assert response.status_code == 422

    def test_delete_region(self, client):
        self.post(client, kind="viewport", viewport={"left": 0, "top": 0, "width": 1137, "height": 627})
        self.post(client, kind="begin_placement", room="Stark")
        self.post(client, kind="click", client_x=200, client_y=100)
        response = client.delete("/dev/map-editor/regions/0")
        assert response.status_code == 200
        assert response.json()["regions"] == []
        assert client.delete("/dev/map-editor/regions/0").status_code == 404

    def test_save_requires_path(self, client, monkeypatch):
        monkeypatch.setattr(settings, "spatial_registry_path", None)
        assert client.post("/dev/map-editor/save").status_code == 409

    def test_save_writes_export(self, client, monkeypatch, tmp_path):
        path = tmp_path / "regions.json"
        monkeypatch.setattr(settings, "spatial_registry_path", str(path))
        self.post(client, kind="viewport", viewport={"left": 0, "top": 0, "width": 1137, "height": 627})
        self.post(client, kind="begin_placement", room="Stark")
        self.post(client, kind="click", client_x=200, client_y=100)
        response = client.post("/dev/map-editor/save")
        assert response.status_code == 200
        assert response.json() == {"path": str(path), "count": 1}
        assert json.loads(path.read_text(encoding="utf-8"))["Stark"]["floor"] == 0

    def test_save_rejects_room_on_wrong_floor(self, client, monkeypatch, tmp_path):
        path = tmp_path / "regions.json"
        monkeypatch.setattr(settings, "spatial_registry_path", str(path))
        self.post(client, kind="viewport", viewport={"left": 0, "top": 0, "width": 1137, "height": 627})
        self.post(client, kind="begin_placement", room="Denis")
        self.post(client, kind="click", client_x=200, client_y=100)
        response = client.post("/dev/map-editor/save")
        assert response.status_code == 422
        assert "Denis" in response.json()["detail"]
        assert not path.exists()

    def test_magnifier_follows_pointer_while_shift_held(self, client):
        self.post(client, kind="viewport", viewport={"left": 0, "top": 0, "width": 1137, "height": 627})
        self.post(client, kind="key", key="Shift")
        state = self.post(client, kind="move", client_x=500, client_y=300)
        assert state["magnifier"]["x"] == 500
        assert state["magnifier"]["zoom"] == 4
        state = self.post(client, kind="key_up", key="Shift")
        assert state["magnifier"] is None
