"""
Service Container
Builds every adapter once from Settings and wires them into the orchestrator.

Adapter choice happens here, at construction time: a port gets its real
vendor adapter when credentials are configured and its mock adapter
otherwise. Anything passed in explicitly (tests, scripts) is used as-is.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from groq import AsyncGroq
from supabase import Client, create_client

from callqa.core.config import ConfigManager, Settings
from callqa.domain.interfaces.analysis_provider import AnalysisProvider
from callqa.domain.interfaces.call_repository import CallRepository
from callqa.domain.interfaces.idempotency_store import IdempotencyStore
from callqa.domain.interfaces.storage_provider import StorageProvider
from callqa.domain.interfaces.transcription_provider import TranscriptionProvider
from callqa.domain.services.call_orchestrator import CallOrchestrator
from callqa.domain.services.prompt_manager import PromptManager
from callqa.domain.services.speaker_roles import SpeakerRoleResolver
from callqa.infrastructure.idempotency.memory_store import InMemoryIdempotencyStore
from callqa.infrastructure.idempotency.redis_store import RedisIdempotencyStore
from callqa.infrastructure.llm.factory import AnalysisFactory
from callqa.infrastructure.llm.groq_speaker_roles import GroqSpeakerRoleClassifier
from callqa.infrastructure.persistence.memory_repository import InMemoryCallRepository
from callqa.infrastructure.persistence.supabase_repository import SupabaseCallRepository
from callqa.infrastructure.storage.factory import StorageFactory
from callqa.infrastructure.transcription.factory import TranscriptionFactory

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    repository: CallRepository
    storage: StorageProvider
    transcription: TranscriptionProvider
    analysis: AnalysisProvider
    idempotency: IdempotencyStore
    orchestrator: CallOrchestrator
    prompts: PromptManager

    def describe(self) -> Dict[str, Any]:
        """Active adapter per port, for health output"""
        return {
            "repository": self.repository.name,
            "storage": self.storage.name,
            "transcription": self.transcription.name,
            "analysis": self.analysis.name,
            "idempotency": self.idempotency.backend,
            "activeAnalysisTasks": self.orchestrator.dispatcher.active_count(),
        }

    async def shutdown(self) -> None:
        await self.orchestrator.dispatcher.shutdown()
        await self.transcription.cleanup()
        await self.analysis.cleanup()
        await self.storage.cleanup()
        await self.idempotency.close()


def create_supabase_client(settings: Settings) -> Client:
    if not settings.supabase_configured:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
    return create_client(settings.supabase_url, settings.supabase_service_key)


def build_prompt_manager(settings: Settings) -> PromptManager:
    return PromptManager(ConfigManager(env=settings.environment).get_rubric())


async def build_storage(settings: Settings, supabase: Optional[Client]) -> StorageProvider:
    if supabase is not None:
        storage = StorageFactory.create("supabase")
        await storage.initialize({
            "client": supabase,
            "bucket": settings.supabase_storage_bucket,
            "download_ttl_seconds": settings.download_url_ttl_seconds,
        })
        return storage

    storage = StorageFactory.create("mock")
    await storage.initialize({
        "upload_secret": settings.mock_upload_secret,
        "upload_base": f"{(settings.public_base_url or '').rstrip('/')}{settings.api_prefix}/mock-upload",
        "public_base": settings.mock_storage_public_base,
        "upload_ttl_seconds": settings.upload_url_ttl_seconds,
    })
    return storage


async def build_transcription(settings: Settings, resolver: SpeakerRoleResolver) -> TranscriptionProvider:
    if settings.assemblyai_api_key:
        transcription = TranscriptionFactory.create("assemblyai")
        await transcription.initialize({
            "api_key": settings.assemblyai_api_key,
            "base_url": settings.assemblyai_base_url,
            "webhook_secret": settings.transcription_webhook_secret,
            "webhook_header": settings.webhook_signature_header,
            "role_resolver": resolver,
        })
        return transcription

    transcription = TranscriptionFactory.create("mock")
    await transcription.initialize({
        "webhook_secret": settings.transcription_webhook_secret,
        "latency_seconds": settings.mock_transcription_latency_seconds,
    })
    return transcription


async def build_analysis(
    settings: Settings,
    prompts: PromptManager,
    groq_client: Optional[AsyncGroq]
) -> AnalysisProvider:
    if groq_client is not None:
        analysis = AnalysisFactory.create("groq")
        await analysis.initialize({
            "api_key": settings.groq_api_key,
            "client": groq_client,
            "prompt_manager": prompts,
            "model": settings.analysis_model,
            "temperature": settings.analysis_temperature,
            "repair_temperature": settings.analysis_repair_temperature,
            "max_tokens": settings.analysis_max_tokens,
        })
        return analysis

    analysis = AnalysisFactory.create("mock")
    await analysis.initialize({"prompt_manager": prompts})
    return analysis


async def build_idempotency(settings: Settings) -> IdempotencyStore:
    if settings.redis_url:
        store = RedisIdempotencyStore(settings.redis_url, ttl_seconds=settings.idempotency_ttl_seconds)
    else:
        store = InMemoryIdempotencyStore()
    await store.initialize()
    return store


async def build_container(
    settings: Settings,
    repository: Optional[CallRepository] = None,
    storage: Optional[StorageProvider] = None,
    transcription: Optional[TranscriptionProvider] = None,
    analysis: Optional[AnalysisProvider] = None,
    idempotency: Optional[IdempotencyStore] = None,
) -> ServiceContainer:
    """Construct and initialize all adapters for the given settings"""
    prompts = build_prompt_manager(settings)

    needs_supabase = settings.supabase_configured and (repository is None or storage is None)
    supabase = create_supabase_client(settings) if needs_supabase else None

    groq_client = AsyncGroq(api_key=settings.groq_api_key) if settings.groq_api_key else None
    classifier = None
    if groq_client is not None and settings.speaker_role_inference_enabled:
        classifier = GroqSpeakerRoleClassifier(groq_client, prompts, model=settings.speaker_role_model)
    resolver = SpeakerRoleResolver(classifier)

    if repository is None:
        repository = (
            SupabaseCallRepository(supabase, table=settings.calls_table)
            if supabase is not None
            else InMemoryCallRepository()
        )
    storage = storage or await build_storage(settings, supabase)
    transcription = transcription or await build_transcription(settings, resolver)
    analysis = analysis or await build_analysis(settings, prompts, groq_client)
    idempotency = idempotency or await build_idempotency(settings)

    orchestrator = CallOrchestrator(
        repository=repository,
        storage=storage,
        transcription=transcription,
        analysis=analysis,
        idempotency=idempotency,
        enforce_webhook_signature=settings.enforce_webhook_signature,
        webhook_base_url=settings.public_base_url,
        webhook_path=f"{settings.api_prefix}{settings.transcription_webhook_path}",
        language_code=settings.transcription_language_code,
        list_limit=settings.list_calls_limit,
    )

    container = ServiceContainer(
        settings=settings,
        repository=repository,
        storage=storage,
        transcription=transcription,
        analysis=analysis,
        idempotency=idempotency,
        orchestrator=orchestrator,
        prompts=prompts,
    )
    logger.info(f"Service container ready: {container.describe()}")
    return container
