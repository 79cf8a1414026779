"""
Service API Tests
=================

Tests for the FastAPI endpoints, with the session wired to a static
video source and a scripted oracle.
"""

import base64
import time

import pytest
from fastapi.testclient import TestClient

from conftest import make_jpeg, make_judgment

from sentinel_id import main
from sentinel_id.capture.source import StaticVideoSource
from sentinel_id.oracle.client import MockOracleClient
from sentinel_id.pipeline.banner import MatchBanner
from sentinel_id.session import MonitoringSession
from sentinel_id.store.references import ReferenceRepository


@pytest.fixture
def oracle():
    return MockOracleClient()


@pytest.fixture
def client(monkeypatch, oracle):
    """Provide a TestClient whose lifespan builds a test session."""

    def _build_session(config):
        return MonitoringSession(
            source=StaticVideoSource(make_jpeg()),
            oracle=oracle,
            references=ReferenceRepository(),
            banner=MatchBanner(display_seconds=0.2),
            capture_interval=0.01,
        )

    monkeypatch.setattr(main, "build_session", _build_session)
    with TestClient(main.app) as test_client:
        yield test_client


def _upload(name: str, image: bytes = None) -> dict:
    data = image if image is not None else make_jpeg()
    return {"name": name, "image_base64": base64.b64encode(data).decode("ascii")}


class TestProbes:
    """Tests for service information and probes."""

    def test_root(self, client):
        """Verify service information."""
        response = client.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body["service"] == "SentinelID"
        assert body["session_state"] == "IDLE"
        assert body["warnings"] == []

    def test_health_and_ready(self, client):
        """Verify liveness and readiness once started."""
        assert client.get("/health").json()["status"] == "healthy"

        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_metrics(self, client):
        """Verify the metrics document sections."""
        body = client.get("/metrics").json()

        for section in ("pipeline", "sampler", "activity_log", "cooldown", "banner"):
            assert section in body


class TestReferencesApi:
    """Tests for reference face management."""

    def test_add_list_remove(self, client):
        """Verify the reference CRUD round trip."""
        response = client.post("/references", json=[_upload("Alice"), _upload("Bob")])
        assert response.status_code == 201
        added = response.json()
        assert [r["name"] for r in added] == ["Alice", "Bob"]

        listed = client.get("/references").json()
        assert len(listed) == 2

        response = client.delete(f"/references/{added[0]['id']}")
        assert response.status_code == 200
        assert [r["name"] for r in client.get("/references").json()] == ["Bob"]

    def test_remove_unknown_is_404(self, client):
        """Verify deleting an unknown id."""
        assert client.delete("/references/nope").status_code == 404

    def test_data_url_prefix_accepted(self, client):
        """Verify a browser-style data URL is accepted."""
        upload = _upload("Alice")
        upload["image_base64"] = "data:image/jpeg;base64," + upload["image_base64"]

        assert client.post("/references", json=[upload]).status_code == 201

    def test_invalid_base64_is_400(self, client):
        """Verify non-base64 payloads are rejected."""
        upload = {"name": "Alice", "image_base64": "%%% not base64 %%%"}

        response = client.post("/references", json=[upload])

        assert response.status_code == 400
        assert client.get("/references").json() == []

    def test_blank_name_is_400(self, client):
        """Verify a whitespace-only name is rejected and nothing is enrolled."""
        response = client.post("/references", json=[_upload("Alice"), _upload("   ")])

        assert response.status_code == 400
        assert client.get("/references").json() == []

    def test_undecodable_image_is_400(self, client):
        """Verify bytes that are not an image are rejected."""
        response = client.post("/references", json=[_upload("Alice", b"plain text")])

        assert response.status_code == 400

    def test_wide_image_is_downscaled(self, client):
        """Verify enrolled images are resized to the configured width."""
        response = client.post("/references", json=[_upload("Wide", make_jpeg(width=1024, height=512))])

        assert response.status_code == 201
        assert response.json()[0]["mime_type"] == "image/jpeg"


class TestSessionApi:
    """Tests for session control and the activity log."""

    def test_start_without_references_is_409(self, client):
        """Verify monitoring cannot start with an empty database."""
        response = client.post("/session/start")

        assert response.status_code == 409
        assert client.get("/session").json()["state"] == "IDLE"

    def test_start_stop(self, client):
        """Verify the IDLE -> MONITORING -> IDLE round trip."""
        client.post("/references", json=[_upload("Alice")])

        response = client.post("/session/start")
        assert response.status_code == 200
        assert response.json()["state"] == "MONITORING"

        response = client.post("/session/stop")
        assert response.json()["state"] == "IDLE"

    def test_clear_references_stops_session(self, client):
        """Verify clearing references returns the session to IDLE."""
        client.post("/references", json=[_upload("Alice")])
        client.post("/session/start")

        body = client.delete("/references").json()

        assert body["cleared"] == 1
        assert body["session_state"] == "IDLE"

    def test_logs_list_and_clear(self, client, oracle):
        """Verify entries appear in /logs and DELETE /logs empties it."""
        oracle.default = [make_judgment("Alice")]
        client.post("/references", json=[_upload("Alice")])
        client.post("/session/start")

        entries = []
        for _ in range(200):
            entries = client.get("/logs", params={"include_thumbnails": False}).json()
            if entries:
                break
            time.sleep(0.01)
        client.post("/session/stop")

        assert len(entries) == 1
        assert entries[0]["matched_name"] == "Alice"
        assert "thumbnail" not in entries[0]

        assert client.delete("/logs").json()["cleared"] == 1
        assert client.delete("/logs").json()["cleared"] == 0
        assert client.get("/logs").json() == []


class TestFactories:
    """Tests for component factories."""

    def test_mock_oracle_backend(self):
        """Verify the mock backend is selectable."""
        from sentinel_id.config import Settings

        settings = Settings.model_validate({"oracle": {"backend": "mock"}})
        assert isinstance(main.create_oracle_client(settings), MockOracleClient)

    def test_unknown_backends_fail_fast(self):
        """Verify unknown backends raise."""
        from sentinel_id.config import Settings

        with pytest.raises(ValueError):
            main.create_oracle_client(Settings.model_validate({"oracle": {"backend": "nope"}}))
        with pytest.raises(ValueError):
            main.create_video_source(Settings.model_validate({"capture": {"backend": "nope"}}))

    def test_static_source_requires_path(self):
        """Verify the static backend needs an image path."""
        from sentinel_id.config import Settings

        with pytest.raises(ValueError):
            main.create_video_source(Settings.model_validate({"capture": {"backend": "static"}}))

    def test_build_session_preloads_directory(self, tmp_path):
        """Verify reference faces are preloaded from the configured directory."""
        from sentinel_id.config import Settings

        (tmp_path / "Alice.jpg").write_bytes(make_jpeg())
        image_path = tmp_path / "frame.jpg"
        image_path.write_bytes(make_jpeg())
        settings = Settings.model_validate({
            "capture": {"backend": "static", "static_image_path": str(image_path)},
            "oracle": {"backend": "mock"},
            "references": {"directory": str(tmp_path)},
        })

        session = main.build_session(settings)

        assert [r.name for r in session.references.list()] == ["Alice", "frame"]


class TestEventStream:
    """Tests for the /ws/events WebSocket."""

    def _listeners(self, client) -> int:
        return client.get("/metrics").json()["activity_log"]["listeners"]

    def _wait_for_listeners(self, client, expected: int) -> int:
        for _ in range(300):
            count = self._listeners(client)
            if count == expected:
                break
            time.sleep(0.01)
        return count

    def test_pushes_entry_and_banner(self, client, oracle):
        """Verify an admission pushes a log entry, a banner, then its clear."""
        oracle.default = [make_judgment("Alice", confidence=0.9)]
        client.post("/references", json=[_upload("Alice")])

        with client.websocket_connect("/ws/events") as websocket:
            assert self._wait_for_listeners(client, 1) == 1
            client.post("/session/start")

            entry_message = None
            raised_message = None
            while entry_message is None or raised_message is None:
                message = websocket.receive_json()
                if message["type"] == "log_entry":
                    entry_message = message
                elif message["match"] is not None:
                    raised_message = message

            cleared_message = websocket.receive_json()
            client.post("/session/stop")

        assert entry_message["entry"]["matched_name"] == "Alice"
        assert isinstance(entry_message["entry"]["thumbnail"], str)
        assert raised_message["match"]["label"] == "Alice"
        assert cleared_message == {"type": "match", "match": None}

    def test_listener_removed_on_disconnect(self, client):
        """Verify an idle client's subscription is dropped when it leaves."""
        with client.websocket_connect("/ws/events"):
            assert self._wait_for_listeners(client, 1) == 1

        assert self._wait_for_listeners(client, 0) == 0
