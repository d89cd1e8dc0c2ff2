"""
Provider Validation Module
Reports which adapter each port will use and validates configuration on startup
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from callqa.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_SECRET = "mock-secret-key"


class Severity(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ValidationResult:
    """Outcome of one configuration check."""
    port: str
    setting: str
    severity: Severity
    message: str

    @property
    def is_valid(self) -> bool:
        return self.severity != Severity.ERROR


class ProviderValidator:
    """
    Validates provider configurations at startup.

    Missing credentials select mock adapters. That is a warning in
    development and an error in strict (production) mode.
    """

    def __init__(self, settings: Settings, strict: bool = False):
        """
        Args:
            settings: Application settings
            strict: If True, fallbacks to mock adapters are errors
        """
        self.settings = settings
        self.strict = strict
        self.results: List[ValidationResult] = []

    def validate_all(self) -> Tuple[bool, List[ValidationResult]]:
        """
        Check every port.

        Returns:
            Tuple of (all_valid, list of results)
        """
        self.results = []
        s = self.settings

        self._check(
            "storage", "SUPABASE_URL", s.supabase_configured,
            f"Supabase storage configured (bucket={s.supabase_storage_bucket})",
            "Supabase not configured (mock storage will be used)",
        )
        self._check(
            "database", "SUPABASE_SERVICE_KEY", s.supabase_configured,
            f"Supabase table '{s.calls_table}' configured",
            "Supabase not configured (in-memory call store will be used)",
        )
        self._check(
            "transcription", "ASSEMBLYAI_API_KEY", bool(s.assemblyai_api_key),
            "AssemblyAI transcription configured",
            "AssemblyAI not configured (mock transcription will be used)",
        )
        self._check(
            "transcription", "TRANSCRIPTION_WEBHOOK_SECRET",
            bool(s.transcription_webhook_secret) and s.transcription_webhook_secret != DEFAULT_WEBHOOK_SECRET,
            "Webhook secret configured",
            "Webhook secret is missing or the development default",
        )
        self._check(
            "analysis", "GROQ_API_KEY", bool(s.groq_api_key),
            f"Groq analysis configured (model={s.analysis_model})",
            "Groq not configured (mock analysis will be used)",
        )
        self._check(
            "idempotency", "REDIS_URL", bool(s.redis_url),
            "Redis dedup store configured",
            "Redis not configured (in-memory dedup store will be used)",
        )

        # Request origin is an acceptable fallback even in production
        if not s.public_base_url:
            self.results.append(ValidationResult(
                port="webhooks",
                setting="PUBLIC_BASE_URL",
                severity=Severity.WARNING,
                message="Public base URL not set (request origin will be used)",
            ))

        return all(r.is_valid for r in self.results), self.results

    def _check(self, port: str, setting: str, configured: bool, ok_message: str, fallback_message: str):
        if configured:
            severity, message = Severity.OK, ok_message
        else:
            severity = Severity.ERROR if self.strict else Severity.WARNING
            message = fallback_message
        self.results.append(ValidationResult(port=port, setting=setting, severity=severity, message=message))

    def log_results(self):
        log_level = {
            Severity.OK: logging.INFO,
            Severity.WARNING: logging.WARNING,
            Severity.ERROR: logging.ERROR,
        }
        for r in self.results:
            logger.log(log_level[r.severity], f"[{r.port}] {r.setting}: {r.message}")

    def get_error_summary(self) -> Optional[str]:
        errors = [r for r in self.results if not r.is_valid]
        if not errors:
            return None
        return "Provider configuration errors:\n" + "\n".join(
            f"  - {r.setting}: {r.message}" for r in errors
        )


def validate_providers_on_startup(settings: Settings, strict: bool = False) -> None:
    """
    Validate all providers at startup.

    Raises:
        RuntimeError: If configuration is invalid in strict mode
    """
    validator = ProviderValidator(settings, strict=strict)
    all_valid, _ = validator.validate_all()
    validator.log_results()

    if not all_valid:
        raise RuntimeError(validator.get_error_summary())

    logger.info("Provider configuration check complete")
