"""
Unit tests for transcription providers
Mock provider signatures and the AssemblyAI REST adapter over httpx.MockTransport
"""
import json

import httpx
import pytest

from callqa.domain.exceptions import TranscriptionStartError, ValidationError
from callqa.domain.models.transcript import SpeakerLabel, TranscriptProvider
from callqa.domain.models.webhook import TranscriptionJobRequest, TranscriptionJobStatus
from callqa.infrastructure.transcription.assemblyai import AssemblyAITranscriptionProvider
from callqa.infrastructure.transcription.factory import TranscriptionFactory
from callqa.infrastructure.transcription.mock import (
    MockTranscriptionProvider,
    generate_mock_transcript,
)


class TestMockTranscription:
    """Test the development provider"""

    @pytest.mark.asyncio
    async def test_signature_round_trip(self, transcription):
        body = b'{"jobId": "job-1", "status": "completed"}'
        signature = transcription.generate_webhook_signature(body)

        assert transcription.verify_webhook(signature, body)
        assert not transcription.verify_webhook(signature, body + b" ")
        assert not transcription.verify_webhook(None, body)

    @pytest.mark.asyncio
    async def test_signature_depends_on_secret(self, transcription):
        other = MockTranscriptionProvider()
        await other.initialize({"webhook_secret": "different"})
        body = b"{}"
        assert not transcription.verify_webhook(other.generate_webhook_signature(body), body)

    def test_mock_transcript_shape(self):
        transcript = generate_mock_transcript()

        assert len(transcript.segments) == 16
        assert transcript.provider == TranscriptProvider.OTHER
        assert transcript.segments[0].speaker == SpeakerLabel.TECH
        assert all(s.start <= s.end for s in transcript.segments)

    @pytest.mark.asyncio
    async def test_parse_webhook_payload(self, transcription):
        result = await transcription.parse_webhook_payload({"jobId": "job-1", "status": "failed", "error": "timeout"})
        assert result.status == TranscriptionJobStatus.FAILED
        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_parse_invalid_payload(self, transcription):
        with pytest.raises(ValidationError):
            await transcription.parse_webhook_payload({"status": "completed"})

    @pytest.mark.asyncio
    async def test_polling_waits_for_latency(self):
        provider = MockTranscriptionProvider()
        await provider.initialize({"latency_seconds": 3600})
        job = await provider.start_job(TranscriptionJobRequest(audio_url="https://a/b.mp3", webhook_url="https://w"))

        result = await provider.get_job_status(job.job_id)
        assert result.status == TranscriptionJobStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_resolve_attaches_transcript_and_forgets_job(self, transcription):
        job = await transcription.start_job(TranscriptionJobRequest(audio_url="https://a/b.mp3", webhook_url="https://w"))

        polled = await transcription.get_job_status(job.job_id)
        assert polled.status == TranscriptionJobStatus.COMPLETED
        assert polled.transcript is None

        result = await transcription.resolve_result(polled)

        assert len(result.transcript.segments) == 16
        assert (await transcription.get_job_status(job.job_id)).status == TranscriptionJobStatus.PROCESSING

    def test_factory(self):
        assert "assemblyai" in TranscriptionFactory.list_providers()
        assert isinstance(TranscriptionFactory.create("mock"), MockTranscriptionProvider)
        with pytest.raises(ValueError):
            TranscriptionFactory.create("deepgram")


UTTERANCE_TRANSCRIPT = {
    "id": "aai-123",
    "status": "completed",
    "text": "Hello this is Sam. Hi Sam.",
    "confidence": 0.91,
    "utterances": [
        {"speaker": "A", "start": 0, "end": 1800, "text": "Hello this is Sam."},
        {"speaker": "B", "start": 2000, "end": 2600, "text": "Hi Sam."},
    ],
}


def make_provider_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="https://api.assemblyai.test", transport=httpx.MockTransport(handler))


async def make_assemblyai(handler) -> AssemblyAITranscriptionProvider:
    provider = AssemblyAITranscriptionProvider()
    await provider.initialize({
        "api_key": "aai-key",
        "webhook_secret": "hook-secret",
        "webhook_header": "x-webhook-signature",
        "http_client": make_provider_client(handler),
    })
    return provider


class TestAssemblyAI:
    """Test the AssemblyAI adapter"""

    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        with pytest.raises(ValueError):
            await AssemblyAITranscriptionProvider().initialize({})

    @pytest.mark.asyncio
    async def test_start_job_request_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "aai-123", "status": "queued"})

        provider = await make_assemblyai(handler)
        job = await provider.start_job(TranscriptionJobRequest(
            audio_url="https://storage/audio.mp3",
            webhook_url="https://qa.example.com/api/v1/webhooks/transcription",
            language_code="en_us",
        ))

        assert job.job_id == "aai-123"
        assert job.status == TranscriptionJobStatus.QUEUED
        assert seen["path"] == "/v2/transcript"
        assert seen["body"]["speaker_labels"] is True
        assert seen["body"]["speech_model"] == "universal"
        assert seen["body"]["language_code"] == "en_us"
        assert seen["body"]["webhook_auth_header_name"] == "x-webhook-signature"
        assert seen["body"]["webhook_auth_header_value"] == "hook-secret"

    @pytest.mark.asyncio
    async def test_start_job_rejected(self):
        provider = await make_assemblyai(lambda request: httpx.Response(401, json={"error": "bad key"}))

        with pytest.raises(TranscriptionStartError) as exc_info:
            await provider.start_job(TranscriptionJobRequest(audio_url="https://a", webhook_url="https://w"))
        assert exc_info.value.details == {"status": 401}

    @pytest.mark.asyncio
    async def test_verify_webhook_compares_shared_secret(self):
        provider = await make_assemblyai(lambda request: httpx.Response(200))

        assert provider.verify_webhook("hook-secret", b"{}")
        assert not provider.verify_webhook("wrong", b"{}")
        assert not provider.verify_webhook(None, b"{}")

    @pytest.mark.asyncio
    async def test_completed_webhook_fetches_transcript_on_resolve(self):
        """Test id-only webhooks parse offline and resolve pulls the full transcript"""
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, json=UTTERANCE_TRANSCRIPT)

        provider = await make_assemblyai(handler)
        parsed = await provider.parse_webhook_payload({"transcript_id": "aai-123", "status": "completed"})

        assert requested == []
        assert parsed.status == TranscriptionJobStatus.COMPLETED
        assert parsed.transcript is None

        result = await provider.resolve_result(parsed)

        assert requested == ["/v2/transcript/aai-123"]
        segments = result.transcript.segments
        assert [(s.start, s.end) for s in segments] == [(0.0, 1.8), (2.0, 2.6)]
        assert [s.speaker for s in segments] == [SpeakerLabel.TECH, SpeakerLabel.CUSTOMER]
        assert result.transcript.provider == TranscriptProvider.ASSEMBLYAI
        assert result.transcript.confidence == 0.91

    @pytest.mark.asyncio
    async def test_polled_transcript_resolves_without_refetch(self):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(request.url.path)
            return httpx.Response(200, json=UTTERANCE_TRANSCRIPT)

        provider = await make_assemblyai(handler)
        polled = await provider.get_job_status("aai-123")
        result = await provider.resolve_result(polled)

        assert requested == ["/v2/transcript/aai-123"]
        assert len(result.transcript.segments) == 2

    @pytest.mark.asyncio
    async def test_failed_webhook_without_detail(self):
        """Test a failed job keeps a generic error when the detail fetch fails"""
        provider = await make_assemblyai(lambda request: httpx.Response(503, text="unavailable"))
        parsed = await provider.parse_webhook_payload({"transcript_id": "aai-9", "status": "error"})

        result = await provider.resolve_result(parsed)

        assert result.status == TranscriptionJobStatus.FAILED
        assert result.error == "Transcription failed"

    @pytest.mark.asyncio
    async def test_words_are_merged_without_utterances(self):
        provider = await make_assemblyai(lambda request: httpx.Response(500))
        transcript = await provider.convert_transcript({
            "words": [
                {"speaker": "A", "start": 0, "end": 300, "text": "Good"},
                {"speaker": "A", "start": 350, "end": 700, "text": "morning"},
                {"speaker": "B", "start": 900, "end": 1200, "text": "Hi"},
            ],
        })

        assert [s.text for s in transcript.segments] == ["Good morning", "Hi"]
        assert transcript.text == "Good morning Hi"

    @pytest.mark.asyncio
    async def test_error_status_maps_to_failed(self):
        provider = await make_assemblyai(lambda request: httpx.Response(500))
        result = await provider.parse_webhook_payload({"transcript_id": "aai-9", "status": "error", "error": "bad audio"})

        assert result.status == TranscriptionJobStatus.FAILED
        assert result.error == "bad audio"

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self):
        provider = await make_assemblyai(lambda request: httpx.Response(500))
        with pytest.raises(ValidationError):
            await provider.parse_webhook_payload({"transcript_id": "aai-9", "status": "exploded"})

    @pytest.mark.asyncio
    async def test_polling_processing(self):
        provider = await make_assemblyai(lambda request: httpx.Response(200, json={"id": "aai-1", "status": "processing"}))
        result = await provider.get_job_status("aai-1")

        assert result.status == TranscriptionJobStatus.PROCESSING
        assert result.transcript is None
