"""
Call Orchestrator
Drives a call through upload -> transcription -> analysis.

The webhook and polling paths converge on ingest_transcription_result,
which claims the transcription job id in the idempotency store before
touching the call, so duplicate deliveries become a no-op.
"""
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from callqa.domain.exceptions import (
    AnalysisError,
    CallQAError,
    NotFoundError,
    PreconditionFailedError,
    ServerConfigurationError,
    StorageError,
    ValidationError,
    WebhookAuthError,
)
from callqa.domain.interfaces.analysis_provider import AnalysisProvider
from callqa.domain.interfaces.call_repository import CallRepository
from callqa.domain.interfaces.idempotency_store import IdempotencyStore
from callqa.domain.interfaces.storage_provider import StorageProvider
from callqa.domain.interfaces.transcription_provider import TranscriptionProvider
from callqa.domain.models.analysis import Analysis, AnalysisMetadata, AnalysisRequest, CallType, ModelInfo
from callqa.domain.models.base import now_ms
from callqa.domain.models.call import Call, CallStatus
from callqa.domain.models.storage import UploadTarget
from callqa.domain.models.transcript import Transcript
from callqa.domain.models.webhook import (
    TranscriptionJob,
    TranscriptionJobRequest,
    TranscriptionJobResult,
    TranscriptionJobStatus,
)
from callqa.domain.services.analysis_dispatcher import AnalysisDispatcher, DispatchRecord
from callqa.domain.services.analysis_normalizer import prune_none

logger = logging.getLogger(__name__)


PROCESSED = "processed"
ALREADY_PROCESSED = "already_processed"
IGNORED = "ignored"


@dataclass
class CreatedCall:
    call: Call
    upload: UploadTarget


@dataclass
class IngestionOutcome:
    """Result of handling one webhook delivery or final poll"""
    status: str
    job_id: str
    job_status: TranscriptionJobStatus
    call_id: Optional[str] = None
    call_status: Optional[CallStatus] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": True,
            "status": self.status,
            "jobId": self.job_id,
            "jobStatus": self.job_status.value,
        }
        if self.call_id:
            body["callId"] = self.call_id
        if self.call_status:
            body["callStatus"] = self.call_status.value
        return body


@dataclass
class PollResult:
    status: TranscriptionJobStatus
    call_status: CallStatus
    transcript: Optional[Transcript] = None


class CallOrchestrator:
    """
    Call processing state machine

    All collaborators are injected; nothing here reads configuration or
    constructs clients.
    """

    def __init__(
        self,
        repository: CallRepository,
        storage: StorageProvider,
        transcription: TranscriptionProvider,
        analysis: AnalysisProvider,
        idempotency: IdempotencyStore,
        dispatcher: Optional[AnalysisDispatcher] = None,
        enforce_webhook_signature: bool = False,
        webhook_base_url: Optional[str] = None,
        webhook_path: str = "/api/v1/webhooks/transcription",
        language_code: Optional[str] = None,
        list_limit: int = 50,
    ):
        self.repository = repository
        self.storage = storage
        self.transcription = transcription
        self.analysis = analysis
        self.idempotency = idempotency
        self.dispatcher = dispatcher or AnalysisDispatcher(self.run_analysis)
        self.enforce_webhook_signature = enforce_webhook_signature
        self.webhook_base_url = webhook_base_url
        self.webhook_path = webhook_path
        self.language_code = language_code
        self.list_limit = list_limit

    # ------------------------------------------------------------------
    # Creation and queries
    # ------------------------------------------------------------------

    async def create_call(
        self,
        file_name: str,
        content_type: str,
        user_id: str,
        call_type: Optional[CallType] = None,
        duration_sec: Optional[float] = None
    ) -> CreatedCall:
        """
        Create a call record and issue an upload URL for its audio

        Raises:
            ValidationError: Missing file name or content type
            ServerConfigurationError: Storage backend unavailable
        """
        errors = {}
        if not file_name or not file_name.strip():
            errors["fileName"] = "must not be empty"
        if not content_type or not content_type.strip():
            errors["contentType"] = "must not be empty"
        if errors:
            raise ValidationError("Invalid request body", details=errors)

        call_id = f"call-{now_ms()}-{uuid.uuid4().hex[:8]}"

        try:
            upload = await self.storage.get_upload_url(
                file_name=file_name,
                content_type=content_type,
                user_id=user_id,
                call_id=call_id,
            )
        except StorageError as e:
            raise ServerConfigurationError(
                f"Storage backend unavailable: {e.message}",
                details={"provider": self.storage.name},
            ) from e

        call = Call(
            id=call_id,
            user_id=user_id,
            audio_path=upload.storage_path,
            call_type=call_type,
            duration_sec=duration_sec,
            status=CallStatus.CREATED,
        )
        await self.repository.create(call)
        logger.info(f"Call {call_id} created for user {user_id} at {upload.storage_path}")
        return CreatedCall(call=call, upload=upload)

    async def get_call(self, call_id: str) -> Call:
        call = await self.repository.get(call_id)
        if call is None:
            raise NotFoundError(f"Call {call_id} not found", details={"callId": call_id})
        return call

    async def list_calls(self, user_id: str, limit: Optional[int] = None) -> List[Call]:
        return await self.repository.list_for_user(user_id, limit or self.list_limit)

    async def delete_call(self, call_id: str) -> None:
        """Delete a call with its transcript, analysis and stored audio"""
        call = await self.get_call(call_id)
        try:
            await self.storage.delete_file(call.audio_path)
        except StorageError as e:
            logger.warning(f"Could not delete audio for call {call_id}: {e.message}")
        await self.repository.delete(call_id)
        logger.info(f"Call {call_id} deleted")

    # ------------------------------------------------------------------
    # Transcription
    # ------------------------------------------------------------------

    def build_webhook_url(self, request_base_url: Optional[str] = None) -> str:
        base = self.webhook_base_url or request_base_url
        if not base:
            raise ServerConfigurationError("No public base URL configured for transcription webhooks")
        return f"{base.rstrip('/')}{self.webhook_path}"

    async def start_transcription(
        self,
        call_id: str,
        request_base_url: Optional[str] = None
    ) -> TranscriptionJob:
        """
        Submit the call's audio for transcription

        Raises:
            NotFoundError: Unknown call
            PreconditionFailedError: Audio not uploaded yet, or call already past transcription
            TranscriptionStartError: Provider rejected the job; status is left unchanged
        """
        call = await self.get_call(call_id)

        if call.status == CallStatus.TRANSCRIBING and call.transcription_job_id:
            logger.info(f"Call {call_id} already transcribing as job {call.transcription_job_id}")
            return TranscriptionJob(job_id=call.transcription_job_id)

        if call.status not in (CallStatus.CREATED, CallStatus.UPLOADING):
            raise PreconditionFailedError(
                f"Call {call_id} is {call.status.value}; transcription can only start after upload",
                details={"status": call.status.value},
            )

        if self.storage.supports_existence_check:
            if not await self.storage.file_exists(call.audio_path):
                raise PreconditionFailedError(
                    "Audio file has not been uploaded yet",
                    details={"storagePath": call.audio_path},
                )

        audio_url = await self.storage.get_download_url(call.audio_path)
        job = await self.transcription.start_job(
            TranscriptionJobRequest(
                audio_url=audio_url,
                webhook_url=self.build_webhook_url(request_base_url),
                language_code=self.language_code,
                enable_diarization=True,
            )
        )

        call.transcription_job_id = job.job_id
        call.transition_to(CallStatus.TRANSCRIBING)
        await self.repository.update(call)
        logger.info(f"Transcription job {job.job_id} started for call {call_id} via {self.transcription.name}")
        return job

    async def handle_webhook(self, raw_body: bytes, signature: Optional[str]) -> IngestionOutcome:
        """
        Verify, parse and ingest a transcription webhook

        Raises:
            WebhookAuthError: Bad signature while enforcement is on
            ValidationError: Body is not a valid payload
        """
        if not self.transcription.verify_webhook(signature, raw_body):
            if self.enforce_webhook_signature:
                raise WebhookAuthError("Invalid webhook signature")
            logger.warning("Webhook signature invalid, accepting because enforcement is off")

        try:
            payload = json.loads(raw_body or b"null")
        except ValueError as e:
            raise ValidationError("Webhook body is not valid JSON") from e
        if not isinstance(payload, dict):
            raise ValidationError("Webhook body must be a JSON object")

        result = await self.transcription.parse_webhook_payload(payload)
        return await self.ingest_transcription_result(result)

    async def ingest_transcription_result(self, result: TranscriptionJobResult) -> IngestionOutcome:
        """
        Apply a final transcription outcome to its call, at most once per job id

        The claim comes before resolve_result, so duplicate deliveries never
        refetch the transcript or rerun speaker-role inference.
        """
        if not result.status.is_final:
            logger.info(f"Job {result.job_id} reported {result.status.value}, nothing to do")
            return IngestionOutcome(status=IGNORED, job_id=result.job_id, job_status=result.status)

        if not await self.idempotency.claim(result.job_id):
            logger.info(f"Job {result.job_id} already processed, acknowledging duplicate delivery")
            return IngestionOutcome(status=ALREADY_PROCESSED, job_id=result.job_id, job_status=result.status)

        try:
            call = await self.repository.get_by_job_id(result.job_id)
            if call is None:
                raise NotFoundError(
                    f"No call found for transcription job {result.job_id}",
                    details={"jobId": result.job_id},
                )

            if call.transcript is not None or call.status != CallStatus.TRANSCRIBING:
                logger.info(f"Call {call.id} is {call.status.value}, ignoring job {result.job_id}")
                return IngestionOutcome(
                    status=ALREADY_PROCESSED,
                    job_id=result.job_id,
                    job_status=result.status,
                    call_id=call.id,
                    call_status=call.status,
                )

            result = await self.transcription.resolve_result(result)

            if result.status == TranscriptionJobStatus.COMPLETED:
                if result.transcript is None:
                    raise ValidationError(
                        "Completed transcription carries no transcript",
                        details={"jobId": result.job_id},
                    )
                call.transcript = result.transcript
                call.transition_to(CallStatus.TRANSCRIBED)
                await self.repository.update(call)
                logger.info(
                    f"Transcript saved for call {call.id} "
                    f"({len(result.transcript.segments)} segments)"
                )
            else:
                call.transition_to(CallStatus.FAILED)
                await self.repository.update(call)
                logger.error(f"Transcription failed for call {call.id}: {result.error or 'unknown error'}")
        except Exception:
            await self.idempotency.release(result.job_id)
            raise

        if call.status == CallStatus.TRANSCRIBED:
            self._trigger_analysis(call.id)

        return IngestionOutcome(
            status=PROCESSED,
            job_id=result.job_id,
            job_status=result.status,
            call_id=call.id,
            call_status=call.status,
        )

    async def poll_transcription(self, call_id: str) -> PollResult:
        """
        Pull the job state from the provider, ingesting it if final

        Safe to call repeatedly and concurrently with webhook delivery.
        """
        call = await self.get_call(call_id)

        if call.transcript is not None:
            return PollResult(
                status=TranscriptionJobStatus.COMPLETED,
                call_status=call.status,
                transcript=call.transcript,
            )
        if not call.transcription_job_id:
            raise PreconditionFailedError(
                f"Transcription has not been started for call {call_id}",
                details={"status": call.status.value},
            )
        if call.status == CallStatus.FAILED:
            return PollResult(status=TranscriptionJobStatus.FAILED, call_status=call.status)
        if not self.transcription.supports_polling:
            return PollResult(status=TranscriptionJobStatus.PROCESSING, call_status=call.status)

        result = await self.transcription.get_job_status(call.transcription_job_id)
        if not result.status.is_final:
            return PollResult(status=result.status, call_status=call.status)

        await self.ingest_transcription_result(result)
        call = await self.get_call(call_id)
        if call.transcript is not None:
            status = TranscriptionJobStatus.COMPLETED
        elif call.status == CallStatus.FAILED:
            status = TranscriptionJobStatus.FAILED
        else:
            # A concurrent webhook holds the claim and has not saved yet
            status = TranscriptionJobStatus.PROCESSING
        return PollResult(status=status, call_status=call.status, transcript=call.transcript)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def _trigger_analysis(self, call_id: str) -> None:
        """Hand off to the dispatcher; failures are logged, never raised"""
        try:
            self.dispatcher.submit(call_id)
        except Exception as e:
            logger.error(f"Failed to dispatch analysis for call {call_id}: {e}", exc_info=True)

    def get_dispatch_record(self, call_id: str) -> Optional[DispatchRecord]:
        return self.dispatcher.get(call_id)

    def get_model_info(self) -> ModelInfo:
        return self.analysis.get_model_info()

    async def run_analysis(self, call_id: str) -> Call:
        """
        Analyse a transcribed call

        Raises:
            NotFoundError: Unknown call
            PreconditionFailedError: No transcript yet (status untouched)
            AnalysisError: Analysis failed; the call is marked failed first
        """
        call = await self.get_call(call_id)
        if call.transcript is None:
            raise PreconditionFailedError(
                f"Call {call_id} has no transcript yet",
                details={"status": call.status.value},
            )

        call.analysis = None
        call.transition_to(CallStatus.ANALYZING)
        await self.repository.update(call)
        logger.info(f"Analyzing call {call_id} with {self.analysis.name}")

        try:
            analysis = await self.analysis.analyze(
                AnalysisRequest(
                    segments=list(call.transcript.segments),
                    full_text=call.transcript.text,
                    metadata=AnalysisMetadata(
                        duration_sec=call.duration_sec,
                        call_type=call.call_type,
                    ),
                )
            )
            call.analysis = self._finalize_analysis(analysis)
            call.transition_to(CallStatus.COMPLETE)
            await self.repository.update(call)
        except Exception as e:
            logger.error(f"Analysis failed for call {call_id}: {e}")
            await self._mark_failed(call)
            if isinstance(e, CallQAError):
                raise
            raise AnalysisError(f"Analysis failed: {e}") from e

        logger.info(f"Analysis complete for call {call_id}")
        return call

    def _finalize_analysis(self, analysis: Analysis) -> Analysis:
        """Stamp completion time and drop any residual empty fields"""
        stamped = analysis.model_copy(update={"created_at": now_ms()})
        return Analysis.model_validate(prune_none(stamped.to_wire()))

    async def _mark_failed(self, call: Call) -> None:
        # The stored record is still analyzing even if the in-memory copy moved on
        call.analysis = None
        call.status = CallStatus.FAILED
        call.touch()
        await self.repository.update(call)
