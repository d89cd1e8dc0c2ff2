"""
Webhooks API Endpoints
Receives job completion callbacks from the transcription provider
"""
import logging

from fastapi import APIRouter, Depends, Request

from callqa.api.v1.dependencies import get_container
from callqa.core.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/transcription")
async def transcription_webhook(
    request: Request,
    container: ServiceContainer = Depends(get_container)
):
    """
    Handle a transcription job callback.

    The signature is checked against the raw body, so the body is read
    before any JSON parsing. Duplicate deliveries for a job that was
    already applied answer 200 with status `already_processed`.
    """
    raw_body = await request.body()
    signature = request.headers.get(container.settings.webhook_signature_header)

    outcome = await container.orchestrator.handle_webhook(raw_body, signature)
    logger.info(f"Transcription webhook for job {outcome.job_id}: {outcome.status}")
    return outcome.to_dict()
