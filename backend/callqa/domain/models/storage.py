"""
Storage Models
"""
from typing import Optional

from callqa.domain.models.base import CamelModel


class UploadTarget(CamelModel):
    """Where and how a client uploads raw audio"""
    upload_url: str
    storage_path: str
    public_url: Optional[str] = None
    expires_at: Optional[int] = None
