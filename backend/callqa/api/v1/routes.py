"""
API Router
Combines all endpoint routers
"""
from fastapi import APIRouter

from callqa.api.v1.endpoints import (
    analysis,
    calls,
    mock_upload,
    webhooks,
)

api_router = APIRouter()

api_router.include_router(calls.router)
api_router.include_router(webhooks.router)
api_router.include_router(analysis.router)

# Only serves requests while the mock storage adapter is active
api_router.include_router(mock_upload.router)
