"""
Call QA Exceptions
Error taxonomy shared by the orchestrator, adapters and HTTP layer
"""
from typing import Any, Dict, Optional


class CallQAError(Exception):
    """Base class for all pipeline errors surfaced to callers"""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(CallQAError):
    """Malformed caller input. Never advances call status."""
    status_code = 400
    error_code = "validation_error"


class NotFoundError(CallQAError):
    """Referenced call or job does not exist"""
    status_code = 404
    error_code = "not_found"


class PreconditionFailedError(CallQAError):
    """Operation attempted out of order"""
    status_code = 400
    error_code = "precondition_failed"


class InvalidTransitionError(PreconditionFailedError):
    """Call status change not permitted by the state machine"""
    error_code = "invalid_transition"


class ServerConfigurationError(CallQAError):
    """Required backend credential or configuration missing"""
    status_code = 500
    error_code = "server_configuration_error"


class ProviderError(CallQAError):
    """Upstream service failure"""
    status_code = 500
    error_code = "provider_error"


class StorageError(ProviderError):
    error_code = "storage_error"


class TranscriptionStartError(ProviderError):
    error_code = "transcription_start_error"


class TranscriptionProviderError(ProviderError):
    error_code = "transcription_provider_error"


class AnalysisError(ProviderError):
    error_code = "analysis_error"


class AnalysisSchemaError(AnalysisError):
    """LLM output failed validation, including after the repair attempt"""
    error_code = "analysis_schema_error"


class WebhookAuthError(CallQAError):
    """Webhook signature mismatch"""
    status_code = 401
    error_code = "webhook_auth_error"


class UploadExpiredError(CallQAError):
    """Signed upload URL used after its expiry"""
    status_code = 410
    error_code = "upload_expired"


class UploadSignatureError(CallQAError):
    """Signed upload URL was tampered with"""
    status_code = 401
    error_code = "invalid_upload_signature"
