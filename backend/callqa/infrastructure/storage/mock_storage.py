"""
Mock Storage Provider
Issues HMAC-signed upload URLs served by the local mock-upload endpoint and
keeps uploaded bytes in memory. Lets the pipeline run without object storage.
"""
import hashlib
import hmac
import logging
import time
from typing import Dict, Optional, Tuple
from urllib.parse import urlencode

from callqa.domain.exceptions import UploadExpiredError, UploadSignatureError
from callqa.domain.interfaces.storage_provider import StorageProvider
from callqa.domain.models.storage import UploadTarget

logger = logging.getLogger(__name__)


class MockStorageProvider(StorageProvider):
    """
    In-memory storage with signed, expiring upload URLs

    By default every path is reported as present so start-transcription
    works without a real upload. Set require_upload to check the registry.
    """

    def __init__(self):
        self._secret: bytes = b"mock-upload-secret"
        self._upload_base = "/api/v1/mock-upload"
        self._public_base = "https://mock-storage.example.com"
        self._upload_ttl_seconds = 900
        self._require_upload = False
        self._objects: Dict[str, Tuple[bytes, str]] = {}

    async def initialize(self, config: dict) -> None:
        self._secret = config.get("upload_secret", "mock-upload-secret").encode("utf-8")
        self._upload_base = config.get("upload_base", self._upload_base)
        self._public_base = config.get("public_base", self._public_base).rstrip("/")
        self._upload_ttl_seconds = config.get("upload_ttl_seconds", self._upload_ttl_seconds)
        self._require_upload = config.get("require_upload", False)
        logger.info("Mock storage initialized (uploads kept in memory)")

    def sign(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def verify_upload(
        self,
        path: str,
        expires: int,
        signature: Optional[str],
        now: Optional[float] = None
    ) -> None:
        """
        Check an upload URL's signature and expiry

        Raises:
            UploadSignatureError: Signature does not match
            UploadExpiredError: URL is past its expiry
        """
        expected = self.sign(path, expires)
        if not signature or not hmac.compare_digest(signature, expected):
            raise UploadSignatureError("Upload URL signature is invalid", details={"path": path})
        if (now if now is not None else time.time()) > expires:
            raise UploadExpiredError("Upload URL has expired", details={"path": path, "expires": expires})

    async def get_upload_url(
        self,
        file_name: str,
        content_type: str,
        user_id: str,
        call_id: Optional[str] = None
    ) -> UploadTarget:
        path = self.build_storage_path(user_id, call_id, file_name)
        expires = int(time.time()) + self._upload_ttl_seconds
        query = urlencode({"path": path, "expires": expires, "signature": self.sign(path, expires)})
        return UploadTarget(
            upload_url=f"{self._upload_base}?{query}",
            storage_path=path,
            public_url=f"{self._public_base}/{path}",
            expires_at=expires * 1000,
        )

    def put_object(self, path: str, data: bytes, content_type: str) -> None:
        self._objects[path] = (data, content_type)
        logger.info(f"Mock storage received {len(data)} bytes at {path}")

    def get_object(self, path: str) -> Optional[Tuple[bytes, str]]:
        return self._objects.get(path)

    async def get_download_url(self, storage_path: str) -> str:
        return f"{self._public_base}/{storage_path}"

    async def delete_file(self, storage_path: str) -> None:
        self._objects.pop(storage_path, None)

    async def file_exists(self, storage_path: str) -> bool:
        if not self._require_upload:
            return True
        return storage_path in self._objects

    @property
    def supports_existence_check(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return "mock"
