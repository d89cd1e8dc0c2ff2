"""
Configuration Management
Loads settings from environment variables and rubric YAML files
"""
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # API Settings
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = ["http://localhost:3000"]
    public_base_url: Optional[str] = None

    # Supabase (database + storage)
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    supabase_storage_bucket: str = "call-audio"
    calls_table: str = "calls"

    # Transcription
    assemblyai_api_key: Optional[str] = None
    assemblyai_base_url: str = "https://api.assemblyai.com"
    transcription_webhook_secret: str = "mock-secret-key"
    transcription_webhook_path: str = "/webhooks/transcription"
    transcription_language_code: Optional[str] = None
    webhook_signature_header: str = "x-webhook-signature"
    webhook_signature_required: Optional[bool] = None
    mock_transcription_latency_seconds: float = 5.0

    # Analysis (Groq)
    groq_api_key: Optional[str] = None
    analysis_model: str = "llama-3.3-70b-versatile"
    analysis_temperature: float = 0.2
    analysis_repair_temperature: float = 0.1
    analysis_max_tokens: int = 4096
    speaker_role_model: str = "llama-3.1-8b-instant"
    speaker_role_inference_enabled: bool = True

    # Redis/Idempotency
    redis_url: Optional[str] = None
    idempotency_ttl_seconds: int = 7 * 24 * 3600

    # Signed URLs
    upload_url_ttl_seconds: int = 900
    download_url_ttl_seconds: int = 3600
    mock_upload_secret: str = "mock-upload-secret"
    mock_storage_public_base: str = "https://mock-storage.example.com"

    # Caller identity (authentication is out of scope)
    default_user_id: str = "anonymous-user"
    user_id_header: str = "x-user-id"

    list_calls_limit: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def enforce_webhook_signature(self) -> bool:
        """Explicit setting wins; otherwise only production rejects bad signatures"""
        if self.webhook_signature_required is not None:
            return self.webhook_signature_required
        return self.is_production

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


@lru_cache()
def get_settings() -> Settings:
    return Settings()


class ConfigManager:
    """Manages loading and merging rubric configuration from YAML files"""

    def __init__(self, env: str = "development", config_dir: Optional[Path] = None):
        self.env = env
        self.config_dir = config_dir or Path(__file__).parent.parent / "config"
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration files in order of precedence"""
        rubric_path = self.config_dir / "rubric.yaml"
        if rubric_path.exists():
            self._config = self._load_yaml(rubric_path)

        # Environment-specific overrides
        env_path = self.config_dir / f"rubric.{self.env}.yaml"
        if env_path.exists():
            self._deep_merge(self._config, self._load_yaml(env_path))

        self._substitute_env_vars(self._config)

    def _load_yaml(self, path: Path) -> Dict:
        """Load YAML file"""
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _substitute_env_vars(self, config: Dict) -> None:
        """Replace ${VAR_NAME} with environment variable values"""
        for key, value in config.items():
            if isinstance(value, dict):
                self._substitute_env_vars(value)
            elif isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                env_var = value[2:-1]
                config[key] = os.getenv(env_var, value)

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override into base"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: config.get("rubric.checklist") -> [...]
        """
        keys = key_path.split(".")
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_rubric(self) -> Dict[str, Any]:
        """Get the active analysis rubric"""
        rubric = self.get("rubric")
        if not rubric:
            raise ValueError(f"No analysis rubric configured in {self.config_dir}")
        return rubric
