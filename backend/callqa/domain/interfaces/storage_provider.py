"""
Storage Provider Interface
Abstract base class for audio object stores
"""
import re
import uuid
from abc import ABC, abstractmethod
from typing import Optional

from callqa.domain.models.storage import UploadTarget


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class StorageProvider(ABC):
    """Abstract base class for storage providers"""

    @abstractmethod
    async def initialize(self, config: dict) -> None:
        """Initialize the provider with configuration"""
        pass

    @abstractmethod
    async def get_upload_url(
        self,
        file_name: str,
        content_type: str,
        user_id: str,
        call_id: Optional[str] = None
    ) -> UploadTarget:
        """
        Issue a time-bounded URL the client can upload raw audio to

        Args:
            file_name: Original file name from the client
            content_type: MIME type the upload must carry
            user_id: Owner of the call
            call_id: Call the file belongs to

        Returns:
            UploadTarget: Upload URL and the deterministic storage path
        """
        pass

    @abstractmethod
    async def get_download_url(self, storage_path: str) -> str:
        """Issue a time-bounded read URL for a stored object"""
        pass

    @abstractmethod
    async def delete_file(self, storage_path: str) -> None:
        """Remove a stored object"""
        pass

    async def file_exists(self, storage_path: str) -> bool:
        """Whether an object is present at the path"""
        raise NotImplementedError(f"{self.name} does not support existence checks")

    async def cleanup(self) -> None:
        """Release resources"""
        pass

    @property
    def supports_existence_check(self) -> bool:
        """Whether file_exists is implemented"""
        return False

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name"""
        pass

    @staticmethod
    def build_storage_path(user_id: str, call_id: Optional[str], file_name: str) -> str:
        """
        Deterministic object path for (user_id, call_id, file_name).

        Path segments are sanitised so user input cannot escape the prefix.
        """
        safe_user = _UNSAFE_CHARS.sub("_", user_id) or "unknown"
        safe_call = _UNSAFE_CHARS.sub("_", call_id or uuid.uuid4().hex)
        safe_name = _UNSAFE_CHARS.sub("_", file_name.rsplit("/", 1)[-1]).lstrip(".") or "audio"
        return f"audio/{safe_user}/{safe_call}/{safe_name}"
