"""
API Tests
=========

Tests for the FastAPI endpoints and the /ws/layers stream.

The client is used without its context manager so the lifespan (which
opens the camera and starts the background loop) does not run; components
are wired directly with init_components().
"""

import asyncio

import numpy as np
import pytest
from fastapi.testclient import TestClient

from particle_vision import main
from particle_vision.engine import ParticleEngine
from particle_vision.models.layer import LayerKind
from particle_vision.render import decode_buffer
from particle_vision.video import ArrayVideoSource

from conftest import uniform_rgb


@pytest.fixture
def source():
    return ArrayVideoSource(uniform_rgb(90))


@pytest.fixture
def client(small_layers, source):
    main.init_components(engine=ParticleEngine(layers=small_layers), source=source)
    yield TestClient(main.app)
    asyncio.run(main.get_tick_loop().stop())


class TestProbes:
    """Tests for service, health and readiness endpoints."""

    def test_root(self, client):
        """Root lists the layers back-to-front."""
        body = client.get("/").json()
        assert body["service"] == "Particle Vision"
        assert body["layers"] == ["background", "static", "motion"]

    def test_health(self, client):
        """Liveness always succeeds."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        """Ready while the source has a frame."""
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["dimensions"] == [128, 72]

    def test_not_ready(self, client, source):
        """503 once the source has no frame."""
        source.clear()
        response = client.get("/ready")
        assert response.status_code == 503
        assert response.json()["source_ready"] is False

    def test_metrics(self, client):
        """Metrics include loop, engine and publish counters."""
        main.get_engine().tick()
        body = client.get("/metrics").json()

        assert body["engine"]["tick_count"] == 1
        assert body["engine"]["source_bound"] is True
        assert body["snapshots_published"] == 1
        assert body["loop"]["running"] is False


class TestControls:
    """Tests for GET and PUT /controls."""

    def test_get(self, client):
        """Controls serialize to JSON."""
        body = client.get("/controls").json()
        assert body["hide_static"] is False
        assert body["motion"]["color"] == "#60A5FA"

    def test_put_partial(self, client):
        """Partial updates merge and apply to the engine."""
        response = client.put(
            "/controls",
            json={"hide_static": True, "static": {"visible": False}},
        )
        assert response.status_code == 200

        controls = main.get_engine().controls
        assert controls.hide_static is True
        assert controls.static.visible is False
        assert controls.static.color == "#EC4899"

    def test_put_invalid(self, client):
        """Invalid updates return 422 and change nothing."""
        before = main.get_engine().controls
        response = client.put("/controls", json={"motion": {"color": "not-a-color"}})

        assert response.status_code == 422
        assert response.json()["error"] == "Invalid controls"
        assert main.get_engine().controls is before


class TestPointer:
    """Tests for POST /pointer."""

    def test_set(self, client):
        """A normalized position maps to world units."""
        response = client.post("/pointer", json={"x": 0.5, "y": -0.2})
        assert response.status_code == 200
        assert response.json()["world"] == pytest.approx([2.5, -1.0])
        assert main.get_pointer().world() == pytest.approx((2.5, -1.0))

    def test_release(self, client):
        """active=false clears the pointer."""
        client.post("/pointer", json={"x": 0.0, "y": 0.0})
        response = client.post("/pointer", json={"active": False})
        assert response.json() == {"active": False}
        assert main.get_pointer().world() is None

    def test_missing_coordinates(self, client):
        """An active pointer needs both coordinates."""
        assert client.post("/pointer", json={"x": 0.1}).status_code == 422

    def test_out_of_range(self, client):
        """Coordinates outside [-1, 1] are rejected."""
        assert client.post("/pointer", json={"x": 1.5, "y": 0.0}).status_code == 422


class TestLayerStream:
    """Tests for the /ws/layers WebSocket."""

    def test_receives_latest_snapshots(self, client):
        """The stream sends the most recent published snapshots."""
        main.get_engine().tick()

        with client.websocket_connect("/ws/layers") as websocket:
            payload = websocket.receive_json()

        assert payload["sequence"] == 1
        kinds = [layer["kind"] for layer in payload["layers"]]
        assert kinds == ["background", "static", "motion"]

        motion = payload["layers"][-1]
        positions = decode_buffer(motion["positions"])
        assert motion["count"] == 2500
        assert positions.shape == (7500,)
        np.testing.assert_array_equal(
            positions, main.get_engine().layer(LayerKind.MOTION).positions
        )
