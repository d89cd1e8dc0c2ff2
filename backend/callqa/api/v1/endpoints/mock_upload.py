"""
Mock Upload Endpoint
Accepts audio PUTs against the signed URLs issued by the mock storage adapter
"""
import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status

from callqa.api.v1.dependencies import get_container
from callqa.core.container import ServiceContainer
from callqa.domain.exceptions import NotFoundError
from callqa.infrastructure.storage.mock_storage import MockStorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mock-upload", tags=["mock-upload"])

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "PUT, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def get_mock_storage(container: ServiceContainer = Depends(get_container)) -> MockStorageProvider:
    if not isinstance(container.storage, MockStorageProvider):
        raise NotFoundError("Mock uploads are disabled while real storage is configured")
    return container.storage


@router.put("")
async def mock_upload(
    request: Request,
    path: str = Query(..., min_length=1),
    expires: int = Query(...),
    signature: str = Query(...),
    storage: MockStorageProvider = Depends(get_mock_storage)
):
    """
    Store the request body under `path`.

    Returns 401 for a bad signature and 410 once the URL has expired.
    """
    storage.verify_upload(path, expires, signature)
    data = await request.body()
    storage.put_object(path, data, request.headers.get("content-type", "application/octet-stream"))
    return {"success": True, "path": path, "size": len(data)}


@router.options("")
async def mock_upload_preflight():
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=PREFLIGHT_HEADERS)
