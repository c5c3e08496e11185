"""
API tests for the health and lip-track endpoints.
"""

import asyncio
from dataclasses import asdict

import pytest
from fastapi.testclient import TestClient

from liptrack.config import get_settings
from liptrack.main import app
from liptrack.routers import lip_track
from liptrack.schemas.requests import AnalyzeRequest, FrameInput, LipTrackOptionsOverride
from liptrack.services.frame_decoder import encode_frame
from liptrack.services.session_store import SessionStore

STEP = 100_000


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_frame(face_landmarks, sample_image, left_box):
    """Build a JSON frame with one face at left_box."""
    image_base64 = encode_frame(sample_image)

    def _make(timestamp, ratio=None, box=None):
        frame = {"timestamp": timestamp, "image_base64": image_base64}
        if ratio is not None:
            frame["landmarks"] = [[asdict(p) for p in face_landmarks(ratio)]]
            frame["detections"] = [asdict(box or left_box)]
        return frame

    return _make


class TestHealth:
    """Tests for health endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["ready"] is True
        assert data["max_sessions"] == get_settings().max_sessions


class TestAnalyze:
    """Tests for the one-shot analyze endpoint."""

    def test_speaker_detected(self, client, make_frame, options):
        frames = [make_frame(i * STEP, ratio) for i, ratio in enumerate([0.1, 0.3, 0.5])]
        response = client.post(
            "/lip-track/analyze",
            json={"frames": frames, "options": options.model_dump()},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_frames"] == 3
        assert [f["timestamp"] for f in data["frames"]] == [0, STEP, 2 * STEP]
        assert all(len(f["speakers"]) == 1 for f in data["frames"])
        assert data["frames"][0]["speakers"][0]["xmin"] == pytest.approx(0.3)
        assert data["frames"][2]["mouth_aspect_ratios"][0] == pytest.approx(0.5)
        assert data["shot_signals"] == [{"timestamp": 0, "is_speaker_change": True}]
        assert data["windows"][0]["dominant_meta_face_id"] == 0

    def test_trailing_frames_are_flushed(self, client, make_frame, options):
        frames = [make_frame(i * STEP, 0.1) for i in range(5)]
        response = client.post(
            "/lip-track/analyze",
            json={"frames": frames, "options": options.model_dump()},
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["frames"]) == 5
        assert [w["num_frames"] for w in data["windows"]] == [3, 2]
        assert all(f["speakers"] == [] for f in data["frames"])

    def test_frames_without_faces(self, client, make_frame):
        response = client.post("/lip-track/analyze", json={"frames": [make_frame(0)]})
        assert response.status_code == 200
        assert response.json()["frames"][0]["speakers"] == []

    def test_missing_image_rejected(self, client):
        response = client.post("/lip-track/analyze", json={"frames": [{"timestamp": 0}]})
        assert response.status_code == 400
        assert "No VIDEO input" in response.json()["detail"]

    def test_invalid_image_rejected(self, client):
        response = client.post(
            "/lip-track/analyze",
            json={"frames": [{"timestamp": 0, "image_base64": "not-an-image"}]},
        )
        assert response.status_code == 400

    def test_empty_frames_rejected(self, client):
        response = client.post("/lip-track/analyze", json={"frames": []})
        assert response.status_code == 422

    def test_invalid_option_rejected(self, client, make_frame):
        response = client.post(
            "/lip-track/analyze",
            json={"frames": [make_frame(0)], "options": {"iou_threshold": 2.0}},
        )
        assert response.status_code == 422


class TestSessions:
    """Tests for the streaming session endpoints."""

    def test_session_flow(self, client, make_frame, options):
        response = client.post("/lip-track/sessions", json={"options": options.model_dump()})
        assert response.status_code == 200
        session_id = response.json()["session_id"]

        first = client.post(f"/lip-track/sessions/{session_id}/frames", json=make_frame(0, 0.1))
        assert first.status_code == 200
        assert first.json()["frames"] == []
        assert first.json()["buffered_frames"] == 1

        client.post(f"/lip-track/sessions/{session_id}/frames", json=make_frame(STEP, 0.3))
        third = client.post(f"/lip-track/sessions/{session_id}/frames", json=make_frame(2 * STEP, 0.5))
        assert len(third.json()["frames"]) == 3
        assert third.json()["buffered_frames"] == 0

        client.post(f"/lip-track/sessions/{session_id}/frames", json=make_frame(3 * STEP, 0.1))
        sessions = client.get("/lip-track/sessions").json()
        assert [s["frames_received"] for s in sessions] == [4]

        closed = client.post(f"/lip-track/sessions/{session_id}/close")
        assert closed.status_code == 200
        assert [f["timestamp"] for f in closed.json()["frames"]] == [3 * STEP]

        # Closed sessions are gone
        again = client.post(f"/lip-track/sessions/{session_id}/close")
        assert again.status_code == 404

    def test_create_session_without_body(self, client):
        response = client.post("/lip-track/sessions")
        assert response.status_code == 200
        assert response.json()["buffered_frames"] == 0

    def test_unknown_session(self, client, make_frame):
        response = client.post("/lip-track/sessions/missing/frames", json=make_frame(0))
        assert response.status_code == 404

    def test_session_limit(self, client, monkeypatch):
        store = client.app.state.session_store
        monkeypatch.setattr(store, "max_sessions", 1)

        assert client.post("/lip-track/sessions").status_code == 200
        assert client.post("/lip-track/sessions").status_code == 429


class TestApiKey:
    """Tests for API key authentication."""

    def test_missing_key(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "liptrack_api_key", "secret")
        response = client.get("/lip-track/sessions")
        assert response.status_code == 401

    def test_invalid_key(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "liptrack_api_key", "secret")
        response = client.get("/lip-track/sessions", headers={"X-LipTrack-API-Key": "wrong"})
        assert response.status_code == 401

    def test_valid_key(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "liptrack_api_key", "secret")
        response = client.get("/lip-track/sessions", headers={"X-LipTrack-API-Key": "secret"})
        assert response.status_code == 200

    def test_health_is_open(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "liptrack_api_key", "secret")
        assert client.get("/health").status_code == 200


class TestSchemas:
    """Tests for request schemas."""

    def test_frame_conversion(self):
        frame = FrameInput(
            timestamp=0,
            landmarks=[[{"x": 0.1, "y": 0.2}]],
            detections=[{"xmin": 0.1, "ymin": 0.2, "width": 0.3, "height": 0.4}],
        )
        landmarks = frame.to_landmark_lists()
        detections = frame.to_detections()
        assert landmarks[0][0].z == 0.0
        assert detections[0].score == 1.0
        assert detections[0].width == 0.3

    def test_frame_without_faces(self):
        frame = FrameInput(timestamp=0)
        assert frame.to_landmark_lists() is None
        assert frame.to_detections() is None

    def test_options_override(self):
        override = LipTrackOptionsOverride(min_shot_span=0.5)
        options = get_settings().get_lip_track_options().merged(override.model_dump(exclude_none=True))
        assert options.min_shot_span == 0.5
        assert options.variance_history == get_settings().variance_history

    def test_analyze_request_requires_frames(self):
        with pytest.raises(ValueError):
            AnalyzeRequest(frames=[])


class TestLifespan:
    """Tests for startup and shutdown."""

    def test_shutdown_closes_open_sessions(self, mocker):
        spy = mocker.spy(SessionStore, "close_all")
        with TestClient(app) as test_client:
            test_client.post("/lip-track/sessions")
            assert len(test_client.app.state.session_store) == 1
        spy.assert_called_once()
        assert app.state.session_store is None


class TestOffloading:
    """Frame decoding and window evaluation run in the executor."""

    @staticmethod
    def _record_loop(calls, wrapped):
        def record(*args):
            try:
                asyncio.get_running_loop()
                calls.append("event loop")
            except RuntimeError:
                calls.append("executor")
            return wrapped(*args)
        return record

    def test_analyze_runs_off_the_event_loop(self, client, make_frame, mocker):
        calls = []
        mocker.patch.object(
            lip_track, "run_frames", side_effect=self._record_loop(calls, lip_track.run_frames)
        )
        response = client.post("/lip-track/analyze", json={"frames": [make_frame(0, 0.1)]})

        assert response.status_code == 200
        assert calls == ["executor"]

    def test_session_frames_run_off_the_event_loop(self, client, make_frame, mocker):
        calls = []
        session_id = client.post("/lip-track/sessions").json()["session_id"]
        mocker.patch.object(
            lip_track, "push_frame", side_effect=self._record_loop(calls, lip_track.push_frame)
        )
        response = client.post(f"/lip-track/sessions/{session_id}/frames", json=make_frame(0, 0.1))

        assert response.status_code == 200
        assert calls == ["executor"]


class TestSessionExpiry:
    """Abandoned sessions are dropped."""

    def test_abandoned_session_frees_its_slot(self, client, monkeypatch):
        store = client.app.state.session_store
        monkeypatch.setattr(store, "max_sessions", 1)

        abandoned_id = client.post("/lip-track/sessions").json()["session_id"]
        store.get(abandoned_id).last_seen -= store.idle_timeout_seconds + 1

        assert client.get("/health/ready").json()["ready"] is True
        assert client.post("/lip-track/sessions").status_code == 200
        response = client.post(f"/lip-track/sessions/{abandoned_id}/close")
        assert response.status_code == 404
