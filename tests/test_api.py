"""Tests for the HTTP API over the global connection controller."""
import pytest
from fastapi.testclient import TestClient

from conftest import FakeSocket, FakeSocketFactory, make_frame, wait_until
from pressure_monitor.core.processing.wire_decoder import decode
from pressure_monitor.main import app


@pytest.fixture
def client(global_controller):
    """Create a test client (lifespan not started: no emulator, no real device)."""
    return TestClient(app)


def stream(global_controller, *frames, hold_open=True):
    global_controller.socket_factory = FakeSocketFactory(FakeSocket(frames, hold_open=hold_open))


def connected(client):
    return client.get("/api/connection/state").json()["status"] == "connected"


class TestMeta:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Pressure Monitor API"}

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "app": "Pressure Monitor API"}


class TestConnectionEndpoints:

    def test_initial_state(self, client):
        response = client.get("/api/connection/state")
        assert response.status_code == 200
        assert response.json() == {"status": "disconnected", "message": None}

    def test_connect_then_disconnect(self, client, global_controller, memory_writer):
        stream(global_controller, make_frame(1000))

        response = client.post("/api/connection/connect", json={"address": "192.168.1.50"})
        assert response.status_code == 204
        assert wait_until(lambda: connected(client))
        assert global_controller.socket_factory.calls[0][0] == ("192.168.1.50", 9000)

        response = client.put("/api/connection/disconnect")
        assert response.status_code == 204
        assert client.get("/api/connection/state").json()["status"] == "disconnected"
        assert memory_writer.only_log().was_closed

    def test_second_connect_conflicts(self, client, global_controller):
        stream(global_controller, make_frame(1))
        assert client.post("/api/connection/connect", json={"address": "10.0.0.2"}).status_code == 204
        assert wait_until(lambda: connected(client))

        response = client.post("/api/connection/connect", json={"address": "10.0.0.3"})
        assert response.status_code == 409
        assert response.json()["detail"] == "Already connecting or connected"

    def test_empty_address_rejected(self, client):
        response = client.post("/api/connection/connect", json={"address": "  "})
        assert response.status_code == 400
        assert response.json()["detail"] == "Device address must not be empty"

    def test_missing_address_is_validation_error(self, client):
        assert client.post("/api/connection/connect", json={}).status_code == 422

    def test_connect_failure_reported_in_state(self, client, global_controller):
        global_controller.socket_factory = FakeSocketFactory(error=ConnectionRefusedError("refused"))
        assert client.post("/api/connection/connect", json={"address": "10.0.0.9"}).status_code == 204
        assert wait_until(lambda: client.get("/api/connection/state").json()["status"] == "error")

        body = client.get("/api/connection/state").json()
        assert "refused" in body["message"]

    def test_disconnect_when_idle(self, client):
        response = client.put("/api/connection/disconnect")
        assert response.status_code == 204


class TestPressureEndpoints:

    def test_latest_before_any_reading(self, client):
        response = client.get("/api/pressure/latest")
        assert response.status_code == 404
        assert response.json()["detail"] == "No reading received yet"

    def test_empty_history(self, client):
        response = client.get("/api/pressure/history")
        assert response.status_code == 200
        assert response.json() == {"list": [], "count": 0, "capacity": 5000}

    def test_latest_and_history(self, client, global_controller):
        frames = [make_frame(0, 100, 200), make_frame(4095)]
        stream(global_controller, *frames)
        client.post("/api/connection/connect", json={"address": "10.0.0.2"})
        assert wait_until(lambda: len(global_controller.get_history()) == 20)

        latest = client.get("/api/pressure/latest")
        assert latest.status_code == 200
        assert latest.json()["value"] == pytest.approx(17.0411)

        history = client.get("/api/pressure/history").json()
        assert history["count"] == 20
        assert history["list"] == pytest.approx(decode(frames[0]) + decode(frames[1]))

    def test_history_with_window(self, client, global_controller):
        stream(global_controller, make_frame(1000))
        client.post("/api/connection/connect", json={"address": "10.0.0.2"})
        assert wait_until(lambda: len(global_controller.get_history()) == 10)

        body = client.get("/api/pressure/history", params={"window": 4}).json()
        assert body["count"] == 7
        assert body["list"] == pytest.approx([decode(make_frame(1000))[0]] * 7)

    @pytest.mark.parametrize("window", [0, -1])
    def test_history_invalid_window(self, client, window):
        response = client.get("/api/pressure/history", params={"window": window})
        assert response.status_code == 400
