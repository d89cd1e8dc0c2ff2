"""
Mock Transcription Provider
Development stand-in for a real transcription vendor.

Jobs are accepted and tracked in memory. Completion arrives either through
a signed webhook (see scripts/trigger_mock_webhook.py) or through polling
once the simulated latency has elapsed.
"""
import hashlib
import hmac
import logging
import time
import uuid
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from callqa.domain.exceptions import ValidationError
from callqa.domain.interfaces.transcription_provider import TranscriptionProvider
from callqa.domain.models.transcript import SpeakerLabel, Transcript, TranscriptProvider, TranscriptSegment
from callqa.domain.models.webhook import (
    TranscriptionJob,
    TranscriptionJobRequest,
    TranscriptionJobResult,
    TranscriptionJobStatus,
    TranscriptionWebhookPayload,
)

logger = logging.getLogger(__name__)


MOCK_CALL_SCRIPT = [
    (0.0, 5.2, SpeakerLabel.TECH, "Hello, this is Mike from ABC Service. Am I speaking with John Smith?"),
    (5.5, 7.8, SpeakerLabel.CUSTOMER, "Yes, that's me. Thanks for calling back."),
    (8.0, 12.5, SpeakerLabel.TECH, "Great! I understand you're having an issue with your HVAC system. Can you describe what's happening?"),
    (13.0, 18.2, SpeakerLabel.CUSTOMER, "Yeah, the air conditioning isn't cooling properly. It's been running but the house stays warm."),
    (18.5, 25.0, SpeakerLabel.TECH, "I see. Let me ask a few questions to help diagnose this. Is the unit making any unusual noises?"),
    (25.3, 28.0, SpeakerLabel.CUSTOMER, "No, it sounds normal. Just not cooling."),
    (28.5, 35.0, SpeakerLabel.TECH, "Okay, and when did you last have the system serviced or the filters changed?"),
    (35.5, 39.0, SpeakerLabel.CUSTOMER, "Hmm, probably about a year ago. Maybe longer."),
    (39.5, 48.0, SpeakerLabel.TECH, "That could definitely be part of the problem. Based on what you're describing, it sounds like you might have a refrigerant issue or a clogged filter. I can come out this afternoon to take a look."),
    (48.5, 50.5, SpeakerLabel.CUSTOMER, "That would be great, thank you."),
    (51.0, 60.0, SpeakerLabel.TECH, "Perfect. While I'm there, I'd also recommend setting up a preventive maintenance plan. Regular servicing can prevent issues like this and extend the life of your system. Would you be interested in hearing more about that?"),
    (60.5, 63.0, SpeakerLabel.CUSTOMER, "Sure, that sounds good."),
    (63.5, 70.0, SpeakerLabel.TECH, "Excellent. I'll bring information about our maintenance plans when I come by. Do you have any other questions for me right now?"),
    (70.5, 72.0, SpeakerLabel.CUSTOMER, "No, I think that covers it."),
    (72.5, 77.0, SpeakerLabel.TECH, "Great! I'll see you this afternoon between 2 and 4 PM. Thanks for choosing ABC Service!"),
    (77.5, 79.0, SpeakerLabel.CUSTOMER, "Thank you, see you then."),
]


def generate_mock_transcript() -> Transcript:
    """A realistic 16-turn HVAC service call"""
    segments = [
        TranscriptSegment(start=start, end=end, speaker=speaker, text=text)
        for start, end, speaker, text in MOCK_CALL_SCRIPT
    ]
    return Transcript(
        text=" ".join(segment.text for segment in segments),
        segments=segments,
        provider=TranscriptProvider.OTHER,
        confidence=0.92,
    )


class MockTranscriptionProvider(TranscriptionProvider):
    """Mock provider with HMAC-SHA256 webhook signatures"""

    def __init__(self):
        self._webhook_secret = "mock-secret-key"
        self._latency_seconds = 5.0
        self._jobs: Dict[str, float] = {}

    async def initialize(self, config: dict) -> None:
        self._webhook_secret = config.get("webhook_secret") or self._webhook_secret
        self._latency_seconds = config.get("latency_seconds", self._latency_seconds)
        logger.info("Mock transcription initialized")

    async def start_job(self, request: TranscriptionJobRequest) -> TranscriptionJob:
        job_id = f"mock-job-{uuid.uuid4()}"
        self._jobs[job_id] = time.monotonic()
        logger.info(f"[MockTranscription] Job started: {job_id} (audio={request.audio_url}, webhook={request.webhook_url})")
        return TranscriptionJob(job_id=job_id, status=TranscriptionJobStatus.PROCESSING)

    def generate_webhook_signature(self, payload: Union[str, bytes]) -> str:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return hmac.new(self._webhook_secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()

    def verify_webhook(self, signature: Optional[str], raw_payload: bytes) -> bool:
        if not signature:
            return False
        return hmac.compare_digest(signature, self.generate_webhook_signature(raw_payload))

    async def parse_webhook_payload(self, payload: Dict[str, Any]) -> TranscriptionJobResult:
        try:
            parsed = TranscriptionWebhookPayload.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid webhook payload",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e
        return parsed.to_result()

    async def get_job_status(self, job_id: str) -> TranscriptionJobResult:
        started = self._jobs.get(job_id)
        if started is None or time.monotonic() - started < self._latency_seconds:
            return TranscriptionJobResult(job_id=job_id, status=TranscriptionJobStatus.PROCESSING)
        return TranscriptionJobResult(job_id=job_id, status=TranscriptionJobStatus.COMPLETED)

    async def resolve_result(self, result: TranscriptionJobResult) -> TranscriptionJobResult:
        """Attach the scripted transcript and forget the finished job"""
        self._jobs.pop(result.job_id, None)
        if result.status == TranscriptionJobStatus.COMPLETED and result.transcript is None:
            return result.model_copy(update={"transcript": generate_mock_transcript()})
        return result

    @property
    def supports_polling(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return "mock"
