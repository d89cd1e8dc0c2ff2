"""
Trigger Mock Webhook
Sends a signed "completed" transcription webhook for a mock job, the way
a real provider would once it finished transcribing.

Usage:
    python scripts/trigger_mock_webhook.py mock-job-<uuid>
    python scripts/trigger_mock_webhook.py mock-job-<uuid> --status failed --error "bad audio"
"""
import argparse
import asyncio
import json
import logging
import sys

import httpx

from callqa.core.config import get_settings
from callqa.core.logging_config import configure_logging
from callqa.domain.models.webhook import TranscriptionJobStatus, TranscriptionWebhookPayload
from callqa.infrastructure.transcription.mock import MockTranscriptionProvider, generate_mock_transcript

logger = logging.getLogger("trigger_mock_webhook")


def build_payload(job_id: str, status: TranscriptionJobStatus, error: str = None) -> bytes:
    payload = TranscriptionWebhookPayload(
        job_id=job_id,
        status=status,
        transcript=generate_mock_transcript() if status == TranscriptionJobStatus.COMPLETED else None,
        error=error,
    )
    return json.dumps(payload.to_wire()).encode("utf-8")


async def send_webhook(base_url: str, job_id: str, status: TranscriptionJobStatus, error: str = None) -> int:
    settings = get_settings()
    provider = MockTranscriptionProvider()
    await provider.initialize({"webhook_secret": settings.transcription_webhook_secret})

    body = build_payload(job_id, status, error)
    url = f"{base_url.rstrip('/')}{settings.api_prefix}{settings.transcription_webhook_path}"
    headers = {
        "Content-Type": "application/json",
        settings.webhook_signature_header: provider.generate_webhook_signature(body),
    }

    logger.info(f"POST {url} (job={job_id}, status={status.value})")
    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(url, content=body, headers=headers)

    logger.info(f"Response {response.status_code}: {response.text}")
    return response.status_code


def main() -> int:
    parser = argparse.ArgumentParser(description="Send a signed mock transcription webhook")
    parser.add_argument("job_id", help="Transcription job id returned by start-transcription")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API server base URL")
    parser.add_argument(
        "--status",
        choices=[TranscriptionJobStatus.COMPLETED.value, TranscriptionJobStatus.FAILED.value],
        default=TranscriptionJobStatus.COMPLETED.value,
    )
    parser.add_argument("--error", default=None, help="Error message for a failed job")
    args = parser.parse_args()

    configure_logging(get_settings().log_level)
    status_code = asyncio.run(
        send_webhook(args.base_url, args.job_id, TranscriptionJobStatus(args.status), args.error)
    )
    return 0 if status_code < 400 else 1


if __name__ == "__main__":
    sys.exit(main())
