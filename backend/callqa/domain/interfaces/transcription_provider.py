"""
Transcription Provider Interface
Abstract base class for asynchronous, webhook-driven transcription services
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from callqa.domain.models.webhook import (
    TranscriptionJob,
    TranscriptionJobRequest,
    TranscriptionJobResult,
)


class TranscriptionProvider(ABC):
    """Abstract base class for transcription providers"""

    @abstractmethod
    async def initialize(self, config: dict) -> None:
        """Initialize the provider with configuration"""
        pass

    @abstractmethod
    async def start_job(self, request: TranscriptionJobRequest) -> TranscriptionJob:
        """
        Submit an audio file for transcription

        Args:
            request: Audio URL, callback URL and diarization options

        Returns:
            TranscriptionJob: Provider job id used to correlate the webhook

        Raises:
            TranscriptionStartError: If the provider rejects the submission
        """
        pass

    @abstractmethod
    def verify_webhook(self, signature: Optional[str], raw_payload: bytes) -> bool:
        """Check a webhook's signature header against the shared secret"""
        pass

    @abstractmethod
    async def parse_webhook_payload(self, payload: Dict[str, Any]) -> TranscriptionJobResult:
        """
        Read the job id and status from a provider webhook body

        Must not contact the provider; the transcript is built later by
        resolve_result.

        Raises:
            ValidationError: If required fields are missing
        """
        pass

    async def get_job_status(self, job_id: str) -> TranscriptionJobResult:
        """Poll the provider for a job's state"""
        raise NotImplementedError(f"{self.name} does not support polling")

    async def resolve_result(self, result: TranscriptionJobResult) -> TranscriptionJobResult:
        """
        Complete a final result with its transcript or error message

        Called at most once per job, after the job id has been claimed.
        Fetching the full transcript and speaker-role inference belong here.

        Raises:
            TranscriptionProviderError: If the transcript cannot be fetched
        """
        return result

    async def cleanup(self) -> None:
        """Release resources"""
        pass

    @property
    def supports_polling(self) -> bool:
        """Whether get_job_status is implemented"""
        return False

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name"""
        pass
