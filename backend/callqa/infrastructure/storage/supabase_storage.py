"""
Supabase Storage Provider
Signed upload/download URLs against a private Supabase Storage bucket
"""
import logging
import time
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from supabase import Client

from callqa.domain.exceptions import StorageError
from callqa.domain.interfaces.storage_provider import StorageProvider
from callqa.domain.models.storage import UploadTarget

logger = logging.getLogger(__name__)

# Supabase fixes the lifetime of signed upload URLs
SIGNED_UPLOAD_URL_TTL_SECONDS = 2 * 3600


class SupabaseStorageProvider(StorageProvider):
    """
    Audio storage on Supabase Storage

    Upload URLs live for Supabase's fixed two hours rather than the
    15-minute upload_url_ttl_seconds applied by the mock adapter;
    `expiresAt` reports the two-hour deadline. Download URL lifetime is
    configurable.
    """

    def __init__(self):
        self._client: Optional[Client] = None
        self._bucket_name = "call-audio"
        self._download_ttl_seconds = 3600

    async def initialize(self, config: dict) -> None:
        self._client = config.get("client")
        if self._client is None:
            raise ValueError("Supabase client is required for SupabaseStorageProvider")
        self._bucket_name = config.get("bucket", self._bucket_name)
        self._download_ttl_seconds = config.get("download_ttl_seconds", self._download_ttl_seconds)
        logger.info(f"Supabase storage initialized (bucket={self._bucket_name})")

    @property
    def _bucket(self):
        if self._client is None:
            raise StorageError("Supabase storage not initialized")
        return self._client.storage.from_(self._bucket_name)

    async def get_upload_url(
        self,
        file_name: str,
        content_type: str,
        user_id: str,
        call_id: Optional[str] = None
    ) -> UploadTarget:
        path = self.build_storage_path(user_id, call_id, file_name)
        try:
            result = await run_in_threadpool(self._bucket.create_signed_upload_url, path)
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to create signed upload URL for {path}: {e}")
            raise StorageError(f"Could not create upload URL: {str(e)}") from e

        upload_url = result.get("signed_url") or result.get("signedUrl")
        if not upload_url:
            raise StorageError("Supabase returned no signed upload URL")

        return UploadTarget(
            upload_url=upload_url,
            storage_path=path,
            expires_at=int((time.time() + SIGNED_UPLOAD_URL_TTL_SECONDS) * 1000),
        )

    async def get_download_url(self, storage_path: str) -> str:
        try:
            result = await run_in_threadpool(
                self._bucket.create_signed_url,
                storage_path,
                self._download_ttl_seconds,
            )
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to create signed URL for {storage_path}: {e}")
            raise StorageError(f"Could not create download URL: {str(e)}") from e

        url = result.get("signedURL") or result.get("signedUrl")
        if not url:
            raise StorageError("Supabase returned no signed download URL")
        return url

    async def delete_file(self, storage_path: str) -> None:
        try:
            await run_in_threadpool(self._bucket.remove, [storage_path])
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Could not delete {storage_path}: {str(e)}") from e

    async def file_exists(self, storage_path: str) -> bool:
        folder, _, name = storage_path.rpartition("/")
        try:
            entries = await run_in_threadpool(self._bucket.list, folder, {"search": name})
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Could not list {folder}: {str(e)}") from e
        return any(entry.get("name") == name for entry in entries or [])

    @property
    def supports_existence_check(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return "supabase"
