import pytest
from fastapi.testclient import TestClient

from videogen.config import settings
from videogen.domain.errors import ProviderError
from videogen.main import create_app

from conftest import FakeProvider, blocking_sleep, build_service


def _client(provider):
    service = build_service(provider, sleep=blocking_sleep())
    return TestClient(create_app(job_service=service))


def test_health():
    with _client(FakeProvider()) as client:
        r = client.get("/api/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["service"] == "svc-videogen"
        assert body["provider"] == "runway"
        assert body["active_polls"] == 0

        client.post("/api/videos/jobs", json={"prompt": "ocean", "duration": 5})
        assert client.get("/api/health").json()["active_polls"] == 1


def test_create_and_get_job():
    with _client(FakeProvider()) as client:
        r = client.post("/api/videos/jobs", json={"prompt": "ocean waves", "duration": 5, "ratio": "9:16"})
        assert r.status_code == 202
        body = r.json()
        assert body["status"] == "pending"
        assert body["provider_job_id"] == "abc123"
        assert body["video_url"] is None
        assert body["params"]["ratio"] == "720:1280"

        r = client.get(f"/api/videos/jobs/{body['job_id']}")
        assert r.status_code == 200
        assert r.json()["job_id"] == body["job_id"]


def test_validation_error_is_400():
    with _client(FakeProvider()) as client:
        r = client.post("/api/videos/jobs", json={"prompt": "   ", "duration": 5, "ratio": "16:9"})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "EMPTY_PROMPT"


def test_submit_failure_is_502_with_failed_job():
    provider = FakeProvider(submit_error=ProviderError("Runway submit failed 401: bad key", http_status=401, body="bad key"))
    with _client(provider) as client:
        r = client.post("/api/videos/jobs", json={"prompt": "ocean", "duration": 5, "ratio": "16:9"})
        assert r.status_code == 502
        job_id = r.json()["detail"]["job_id"]

        r = client.get(f"/api/videos/jobs/{job_id}")
        assert r.json()["status"] == "failed"
        assert "bad key" in r.json()["error_message"]


def test_unknown_job_is_404():
    with _client(FakeProvider()) as client:
        assert client.get("/api/videos/jobs/nope").status_code == 404
        assert client.post("/api/videos/jobs/nope/cancel").status_code == 404


def test_cancel_job():
    provider = FakeProvider()
    with _client(provider) as client:
        job_id = client.post("/api/videos/jobs", json={"prompt": "ocean", "duration": 5}).json()["job_id"]
        r = client.post(f"/api/videos/jobs/{job_id}/cancel")
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert provider.cancelled == ["abc123"]


def test_feature_flag(monkeypatch):
    monkeypatch.setattr(settings, "VIDEO_STUDIO_ENABLED", False)
    with _client(FakeProvider()) as client:
        r = client.post("/api/videos/jobs", json={"prompt": "ocean", "duration": 5})
    assert r.status_code == 403


@pytest.mark.parametrize("duration", ["²", "5²", True, 2.5, "9" * 20])
def test_bad_duration_is_400(duration):
    provider = FakeProvider()
    with _client(provider) as client:
        r = client.post("/api/videos/jobs", json={"prompt": "fox", "duration": duration, "ratio": "16:9"})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_DURATION"
    assert provider.submitted == []
