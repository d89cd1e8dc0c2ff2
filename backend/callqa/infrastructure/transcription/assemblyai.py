"""
AssemblyAI Transcription Provider
Async transcription with speaker diarization and webhook callbacks,
using the AssemblyAI v2 REST API.
"""
import hmac
import logging
from typing import Any, Dict, List, Optional

import httpx

from callqa.domain.exceptions import (
    TranscriptionProviderError,
    TranscriptionStartError,
    ValidationError,
)
from callqa.domain.interfaces.transcription_provider import TranscriptionProvider
from callqa.domain.models.transcript import DiarizedSegment, Transcript, TranscriptProvider
from callqa.domain.models.webhook import (
    TranscriptionJob,
    TranscriptionJobRequest,
    TranscriptionJobResult,
    TranscriptionJobStatus,
)
from callqa.domain.services.speaker_roles import SpeakerRoleResolver
from callqa.infrastructure.transcription.segments import UNLABELLED_SPEAKER, merge_words, ms_to_seconds

logger = logging.getLogger(__name__)


STATUS_MAP = {
    "queued": TranscriptionJobStatus.QUEUED,
    "processing": TranscriptionJobStatus.PROCESSING,
    "completed": TranscriptionJobStatus.COMPLETED,
    "error": TranscriptionJobStatus.FAILED,
}


class AssemblyAITranscriptionProvider(TranscriptionProvider):
    """
    AssemblyAI provider

    AssemblyAI echoes a header of our choosing on webhook calls, so the
    shared secret is sent as that header's value and compared on receipt.
    """

    def __init__(self):
        self._client: Optional[httpx.AsyncClient] = None
        self._api_key: Optional[str] = None
        self._webhook_secret = ""
        self._webhook_header = "x-webhook-signature"
        self._speech_model = "universal"
        self._role_resolver = SpeakerRoleResolver()

    async def initialize(self, config: dict) -> None:
        self._api_key = config.get("api_key")
        if not self._api_key:
            raise ValueError("AssemblyAI API key is required")

        self._webhook_secret = config.get("webhook_secret", "")
        self._webhook_header = config.get("webhook_header", self._webhook_header)
        self._speech_model = config.get("speech_model", self._speech_model)
        self._role_resolver = config.get("role_resolver") or self._role_resolver
        self._client = config.get("http_client") or httpx.AsyncClient(
            base_url=config.get("base_url", "https://api.assemblyai.com"),
            headers={"authorization": self._api_key},
            timeout=config.get("timeout", 30.0),
        )
        logger.info(f"AssemblyAI initialized (roles: {self._role_resolver.strategy})")

    async def start_job(self, request: TranscriptionJobRequest) -> TranscriptionJob:
        if not self._client:
            raise TranscriptionStartError("AssemblyAI not initialized. Call initialize() first.")

        body: Dict[str, Any] = {
            "audio_url": request.audio_url,
            "speaker_labels": request.enable_diarization,
            "speech_model": self._speech_model,
            "webhook_url": request.webhook_url,
            "webhook_auth_header_name": self._webhook_header,
            "webhook_auth_header_value": self._webhook_secret,
        }
        if request.language_code:
            body["language_code"] = request.language_code

        try:
            response = await self._client.post("/v2/transcript", json=body)
        except httpx.HTTPError as e:
            logger.error(f"AssemblyAI submission failed: {e}")
            raise TranscriptionStartError(f"Failed to start AssemblyAI transcription: {str(e)}") from e

        if response.status_code >= 400:
            logger.error(f"AssemblyAI rejected job: {response.status_code} {response.text}")
            raise TranscriptionStartError(
                f"Failed to start AssemblyAI transcription: {response.text}",
                details={"status": response.status_code},
            )

        data = response.json()
        logger.info(f"AssemblyAI job {data['id']} submitted (status={data.get('status')})")
        return TranscriptionJob(
            job_id=data["id"],
            status=STATUS_MAP.get(data.get("status"), TranscriptionJobStatus.QUEUED),
        )

    def verify_webhook(self, signature: Optional[str], raw_payload: bytes) -> bool:
        if not signature or not self._webhook_secret:
            return False
        return hmac.compare_digest(signature, self._webhook_secret)

    async def parse_webhook_payload(self, payload: Dict[str, Any]) -> TranscriptionJobResult:
        job_id = payload.get("transcript_id") or payload.get("id")
        if not job_id:
            raise ValidationError("AssemblyAI webhook missing transcript_id")

        status = STATUS_MAP.get(payload.get("status"))
        if status is None:
            raise ValidationError(
                f"AssemblyAI webhook has unknown status {payload.get('status')!r}",
                details={"jobId": job_id},
            )

        return TranscriptionJobResult(
            job_id=job_id,
            status=status,
            error=payload.get("error") if status == TranscriptionJobStatus.FAILED else None,
            raw=payload,
        )

    async def get_job_status(self, job_id: str) -> TranscriptionJobResult:
        data = await self._fetch_transcript(job_id)
        status = STATUS_MAP.get(data.get("status"), TranscriptionJobStatus.PROCESSING)
        result = TranscriptionJobResult(job_id=job_id, status=status, raw=data)
        if status == TranscriptionJobStatus.FAILED:
            result.error = data.get("error") or "Transcription failed"
        return result

    async def resolve_result(self, result: TranscriptionJobResult) -> TranscriptionJobResult:
        """
        Build the labelled transcript for a completed job.

        Poll results already hold the full transcript object. Webhooks
        normally carry only the id and status, so the transcript is fetched.
        """
        data = result.raw or {}

        if result.status == TranscriptionJobStatus.COMPLETED and result.transcript is None:
            if "utterances" not in data and "words" not in data:
                data = await self._fetch_transcript(result.job_id)
            transcript = await self.convert_transcript(data)
            return result.model_copy(update={"transcript": transcript, "raw": None})

        if result.status == TranscriptionJobStatus.FAILED and not result.error:
            error = None
            try:
                error = (await self._fetch_transcript(result.job_id)).get("error")
            except TranscriptionProviderError as e:
                logger.warning(f"Could not fetch error detail for job {result.job_id}: {e.message}")
            return result.model_copy(update={"error": error or "Transcription failed", "raw": None})

        return result

    async def _fetch_transcript(self, job_id: str) -> Dict[str, Any]:
        if not self._client:
            raise TranscriptionProviderError("AssemblyAI not initialized. Call initialize() first.")
        try:
            response = await self._client.get(f"/v2/transcript/{job_id}")
        except httpx.HTTPError as e:
            raise TranscriptionProviderError(f"AssemblyAI fetch failed: {str(e)}") from e
        if response.status_code >= 400:
            raise TranscriptionProviderError(
                f"AssemblyAI fetch failed for {job_id}: {response.text}",
                details={"status": response.status_code},
            )
        return response.json()

    async def convert_transcript(self, data: Dict[str, Any]) -> Transcript:
        """Convert an AssemblyAI transcript object into a labelled Transcript"""
        diarized = self._diarized_segments(data)
        segments = await self._role_resolver.label(diarized)
        text = data.get("text") or " ".join(segment.text for segment in segments)
        return Transcript(
            text=text,
            segments=segments,
            provider=TranscriptProvider.ASSEMBLYAI,
            confidence=data.get("confidence"),
        )

    @staticmethod
    def _diarized_segments(data: Dict[str, Any]) -> List[DiarizedSegment]:
        utterances = data.get("utterances") or []
        if utterances:
            return [
                DiarizedSegment(
                    start=ms_to_seconds(u.get("start")),
                    end=ms_to_seconds(u.get("end")),
                    speaker_tag=u.get("speaker") or UNLABELLED_SPEAKER,
                    text=u.get("text", ""),
                )
                for u in utterances
            ]

        words = [
            DiarizedSegment(
                start=ms_to_seconds(w.get("start")),
                end=ms_to_seconds(w.get("end")),
                speaker_tag=w.get("speaker") or UNLABELLED_SPEAKER,
                text=w.get("text", ""),
            )
            for w in data.get("words") or []
        ]
        return merge_words(words)

    async def cleanup(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def supports_polling(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return "assemblyai"

    def __repr__(self) -> str:
        return f"AssemblyAITranscriptionProvider(speech_model={self._speech_model})"
