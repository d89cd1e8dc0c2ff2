"""
Tests for the HTTP surface
Runs the FastAPI app over an in-memory service container
"""
import asyncio
import json
from urllib.parse import urlparse

import pytest
from fastapi.testclient import TestClient

from callqa.core.config import Settings
from callqa.core.container import build_container
from callqa.infrastructure.transcription.mock import MockTranscriptionProvider
from callqa.main import create_app


WEBHOOK_SECRET = "api-test-secret"


def make_settings(environment: str = "development") -> Settings:
    return Settings(
        environment=environment,
        supabase_url=None,
        supabase_service_key=None,
        assemblyai_api_key=None,
        groq_api_key=None,
        redis_url=None,
        public_base_url="https://qa.example.com",
        transcription_webhook_secret=WEBHOOK_SECRET,
        webhook_signature_required=None,
        mock_transcription_latency_seconds=0,
    )


def make_client(environment: str = "development") -> TestClient:
    settings = make_settings(environment)
    container = asyncio.run(build_container(settings))
    return TestClient(create_app(settings, container=container))


def signed(body: dict) -> tuple:
    signer = MockTranscriptionProvider()
    asyncio.run(signer.initialize({"webhook_secret": WEBHOOK_SECRET}))
    raw = json.dumps(body).encode("utf-8")
    return raw, {"x-webhook-signature": signer.generate_webhook_signature(raw), "content-type": "application/json"}


def create_and_start(client: TestClient) -> tuple:
    created = client.post("/api/v1/calls", json={"fileName": "call1.mp3", "contentType": "audio/mpeg"})
    call_id = created.json()["callId"]
    started = client.post(f"/api/v1/calls/{call_id}/start-transcription")
    return call_id, started.json()["jobId"]


def completed_payload(job_id: str) -> dict:
    return {
        "jobId": job_id,
        "status": "completed",
        "transcript": {
            "text": "Hello",
            "segments": [{"start": 0, "end": 5, "speaker": "tech", "text": "Hello"}],
            "provider": "other",
        },
    }


class TestCallsEndpoint:
    """Tests for /api/v1/calls"""

    def test_create_call_returns_201(self):
        with make_client() as client:
            response = client.post(
                "/api/v1/calls",
                json={"fileName": "call1.mp3", "contentType": "audio/mpeg", "callType": "repair"},
                headers={"x-user-id": "user-7"},
            )

            assert response.status_code == 201
            data = response.json()
            assert set(data) >= {"callId", "uploadUrl", "storagePath"}
            assert data["storagePath"] == f"audio/user-7/{data['callId']}/call1.mp3"

            detail = client.get(f"/api/v1/calls/{data['callId']}").json()
            assert detail["status"] == "created"
            assert detail["callType"] == "repair"
            assert detail["userId"] == "user-7"

    def test_create_call_validation_error(self):
        with make_client() as client:
            response = client.post("/api/v1/calls", json={"fileName": ""})

            assert response.status_code == 400
            body = response.json()
            assert body["code"] == "validation_error"
            assert "contentType" in body["details"]

    def test_unknown_call_is_404(self):
        with make_client() as client:
            assert client.get("/api/v1/calls/call-missing").status_code == 404
            assert client.post("/api/v1/calls/call-missing/start-transcription").status_code == 404

    def test_list_and_delete(self):
        with make_client() as client:
            call_id, _ = create_and_start(client)

            listed = client.get("/api/v1/calls").json()
            assert [c["id"] for c in listed] == [call_id]

            assert client.delete(f"/api/v1/calls/{call_id}").status_code == 204
            assert client.get("/api/v1/calls").json() == []

    def test_start_and_poll(self):
        with make_client() as client:
            call_id, job_id = create_and_start(client)
            assert job_id.startswith("mock-job-")

            poll = client.get(f"/api/v1/calls/{call_id}/poll-transcription")

            assert poll.status_code == 200
            assert poll.json()["status"] == "completed"
            assert len(poll.json()["transcript"]["segments"]) == 16

    def test_poll_before_start_is_400(self):
        with make_client() as client:
            call_id = client.post(
                "/api/v1/calls", json={"fileName": "a.mp3", "contentType": "audio/mpeg"}
            ).json()["callId"]

            assert client.get(f"/api/v1/calls/{call_id}/poll-transcription").status_code == 400


class TestTranscriptionWebhook:
    """Tests for /api/v1/webhooks/transcription"""

    def test_completed_then_duplicate(self):
        with make_client() as client:
            call_id, job_id = create_and_start(client)
            raw, headers = signed(completed_payload(job_id))

            first = client.post("/api/v1/webhooks/transcription", content=raw, headers=headers)
            second = client.post("/api/v1/webhooks/transcription", content=raw, headers=headers)

            assert first.status_code == 200
            assert first.json()["status"] == "processed"
            assert second.status_code == 200
            assert second.json()["status"] == "already_processed"

            call = client.get(f"/api/v1/calls/{call_id}").json()
            assert len(call["transcript"]["segments"]) == 1
            assert call["status"] in ("transcribed", "analyzing", "complete")

    def test_failed_job(self):
        with make_client() as client:
            call_id, job_id = create_and_start(client)
            raw, headers = signed({"jobId": job_id, "status": "failed", "error": "timeout"})

            response = client.post("/api/v1/webhooks/transcription", content=raw, headers=headers)

            assert response.status_code == 200
            call = client.get(f"/api/v1/calls/{call_id}").json()
            assert call["status"] == "failed"
            assert "transcript" not in call

    def test_bad_signature_rejected_in_production(self):
        with make_client("production") as client:
            _, job_id = create_and_start(client)
            raw, headers = signed(completed_payload(job_id))
            headers["x-webhook-signature"] = "forged"

            response = client.post("/api/v1/webhooks/transcription", content=raw, headers=headers)

            assert response.status_code == 401
            assert response.json()["code"] == "webhook_auth_error"

    def test_unknown_job_is_404(self):
        with make_client() as client:
            raw, headers = signed(completed_payload("job-unknown"))
            response = client.post("/api/v1/webhooks/transcription", content=raw, headers=headers)
            assert response.status_code == 404


class TestAnalysisEndpoints:
    """Tests for /api/v1/analysis"""

    def test_run_without_transcript_is_400(self):
        with make_client() as client:
            call_id = client.post(
                "/api/v1/calls", json={"fileName": "a.mp3", "contentType": "audio/mpeg"}
            ).json()["callId"]

            response = client.post("/api/v1/analysis/run", json={"callId": call_id})

            assert response.status_code == 400
            assert client.get(f"/api/v1/calls/{call_id}").json()["status"] == "created"

    def test_run_after_transcription(self):
        with make_client() as client:
            call_id, _ = create_and_start(client)
            client.get(f"/api/v1/calls/{call_id}/poll-transcription")
            # Let the background run finish before the manual one
            client.portal.call(client.app.state.container.orchestrator.dispatcher.wait, call_id, 5)

            response = client.post("/api/v1/analysis/run", json={"callId": call_id})

            assert response.status_code == 200
            assert response.json()["success"] is True
            assert response.json()["callId"] == call_id
            call = client.get(f"/api/v1/calls/{call_id}").json()
            assert call["status"] == "complete"
            assert len(call["analysis"]["checklist"]) == 10

            status = client.get(f"/api/v1/analysis/{call_id}/status").json()
            assert status["callStatus"] == "complete"
            assert status["task"]["state"] == "succeeded"

    def test_model_info(self):
        with make_client() as client:
            assert client.get("/api/v1/analysis/model").json() == {
                "provider": "mock",
                "model": "keyword-heuristics",
                "version": "1",
            }


class TestMockUpload:
    """Tests for /api/v1/mock-upload"""

    def test_upload_with_issued_url(self):
        with make_client() as client:
            created = client.post(
                "/api/v1/calls", json={"fileName": "a.mp3", "contentType": "audio/mpeg"}
            ).json()
            url = urlparse(created["uploadUrl"])

            response = client.put(f"{url.path}?{url.query}", content=b"ID3audio", headers={"content-type": "audio/mpeg"})

            assert response.status_code == 200
            assert response.json()["size"] == 8

    def test_bad_signature_is_401(self):
        with make_client() as client:
            response = client.put(
                "/api/v1/mock-upload",
                params={"path": "audio/u/c/a.mp3", "expires": 9999999999, "signature": "forged"},
                content=b"x",
            )
            assert response.status_code == 401

    def test_expired_is_410(self):
        with make_client() as client:
            storage = client.app.state.container.storage
            path, expires = "audio/u/c/a.mp3", 1000
            response = client.put(
                "/api/v1/mock-upload",
                params={"path": path, "expires": expires, "signature": storage.sign(path, expires)},
                content=b"x",
            )
            assert response.status_code == 410

    def test_preflight(self):
        with make_client() as client:
            assert client.options("/api/v1/mock-upload").status_code == 204


def test_health_reports_adapters():
    with make_client() as client:
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["adapters"]["transcription"] == "mock"
        assert body["adapters"]["idempotency"] == "memory"


@pytest.mark.parametrize("path", ["/", "/health"])
def test_root_endpoints(path):
    with make_client() as client:
        assert client.get(path).status_code == 200
