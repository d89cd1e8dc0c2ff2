"""
Transcription Job Models
Shapes exchanged with transcription providers (job submission, webhook, polling)
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from callqa.domain.models.base import CamelModel
from callqa.domain.models.transcript import Transcript


class TranscriptionJobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_final(self) -> bool:
        return self in (TranscriptionJobStatus.COMPLETED, TranscriptionJobStatus.FAILED)


class TranscriptionJobRequest(CamelModel):
    audio_url: str
    webhook_url: str
    language_code: Optional[str] = None
    enable_diarization: bool = True


class TranscriptionJob(CamelModel):
    job_id: str
    status: TranscriptionJobStatus = TranscriptionJobStatus.PROCESSING


class TranscriptionJobResult(CamelModel):
    """Normalised outcome of a webhook delivery or a status poll"""
    job_id: str
    status: TranscriptionJobStatus
    transcript: Optional[Transcript] = None
    error: Optional[str] = None
    # Provider body, kept until resolve_result builds the transcript
    raw: Optional[Dict[str, Any]] = Field(default=None, exclude=True, repr=False)


class TranscriptionWebhookPayload(CamelModel):
    """Webhook body in the service's own format (mock provider, scripts)"""
    job_id: str = Field(..., min_length=1)
    status: TranscriptionJobStatus
    transcript: Optional[Transcript] = None
    error: Optional[str] = None

    def to_result(self) -> TranscriptionJobResult:
        return TranscriptionJobResult(
            job_id=self.job_id,
            status=self.status,
            transcript=self.transcript,
            error=self.error,
        )
