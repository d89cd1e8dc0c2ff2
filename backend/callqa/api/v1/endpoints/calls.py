"""
Call Lifecycle Endpoints
Create calls, start and poll transcription, list and delete
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import Field

from callqa.api.v1.dependencies import get_orchestrator, get_user_id
from callqa.domain.models.analysis import CallType
from callqa.domain.models.base import CamelModel
from callqa.domain.models.transcript import Transcript
from callqa.domain.services.call_orchestrator import CallOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calls", tags=["calls"])


class CreateCallRequest(CamelModel):
    """Body of POST /calls"""
    file_name: str = Field(..., min_length=1)
    content_type: str = Field(..., min_length=1)
    call_type: Optional[CallType] = None
    duration_sec: Optional[float] = Field(default=None, ge=0)


class CreateCallResponse(CamelModel):
    call_id: str
    upload_url: str
    storage_path: str
    expires_at: Optional[int] = None


class StartTranscriptionResponse(CamelModel):
    job_id: str


class PollTranscriptionResponse(CamelModel):
    status: str
    call_status: str
    transcript: Optional[Transcript] = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_call(
    body: CreateCallRequest,
    user_id: str = Depends(get_user_id),
    orchestrator: CallOrchestrator = Depends(get_orchestrator)
):
    """
    Create a call and return a signed URL to upload its audio to.

    The client PUTs the audio bytes to `uploadUrl`, then calls
    start-transcription.
    """
    created = await orchestrator.create_call(
        file_name=body.file_name,
        content_type=body.content_type,
        user_id=user_id,
        call_type=body.call_type,
        duration_sec=body.duration_sec,
    )
    return CreateCallResponse(
        call_id=created.call.id,
        upload_url=created.upload.upload_url,
        storage_path=created.upload.storage_path,
        expires_at=created.upload.expires_at,
    ).to_wire()


@router.get("")
async def list_calls(
    limit: Optional[int] = None,
    user_id: str = Depends(get_user_id),
    orchestrator: CallOrchestrator = Depends(get_orchestrator)
) -> List[dict]:
    """List the caller's calls, newest first"""
    calls = await orchestrator.list_calls(user_id, limit)
    return [call.to_wire() for call in calls]


@router.get("/{call_id}")
async def get_call(
    call_id: str,
    orchestrator: CallOrchestrator = Depends(get_orchestrator)
):
    call = await orchestrator.get_call(call_id)
    return call.to_wire()


@router.delete("/{call_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_call(
    call_id: str,
    orchestrator: CallOrchestrator = Depends(get_orchestrator)
):
    await orchestrator.delete_call(call_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{call_id}/start-transcription")
async def start_transcription(
    call_id: str,
    request: Request,
    orchestrator: CallOrchestrator = Depends(get_orchestrator)
):
    """
    Submit the uploaded audio for diarized transcription.

    The provider reports completion to the webhook endpoint. The request's
    own base URL is used for the callback when no public URL is configured.
    """
    job = await orchestrator.start_transcription(call_id, request_base_url=str(request.base_url))
    return StartTranscriptionResponse(job_id=job.job_id).to_wire()


@router.get("/{call_id}/poll-transcription")
async def poll_transcription(
    call_id: str,
    orchestrator: CallOrchestrator = Depends(get_orchestrator)
):
    """Fallback for environments where the provider cannot reach the webhook"""
    result = await orchestrator.poll_transcription(call_id)
    return PollTranscriptionResponse(
        status=result.status.value,
        call_status=result.call_status.value,
        transcript=result.transcript,
    ).to_wire()
