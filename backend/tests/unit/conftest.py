"""
Shared fixtures for unit tests
In-memory adapters wired into a real CallOrchestrator
"""
import copy
from typing import Any, Dict

import pytest
import pytest_asyncio

from callqa.domain.models.analysis import Analysis, AnalysisRequest, ModelInfo
from callqa.domain.interfaces.analysis_provider import AnalysisProvider
from callqa.domain.services.analysis_normalizer import normalize_null_optionals
from callqa.domain.services.call_orchestrator import CallOrchestrator
from callqa.infrastructure.idempotency.memory_store import InMemoryIdempotencyStore
from callqa.infrastructure.persistence.memory_repository import InMemoryCallRepository
from callqa.infrastructure.storage.mock_storage import MockStorageProvider
from callqa.infrastructure.transcription.mock import MockTranscriptionProvider


WEBHOOK_SECRET = "test-webhook-secret"


def _stage(present: bool = True) -> Dict[str, Any]:
    return {
        "present": present,
        "quality": "good" if present else "poor",
        "evidence": [{"quote": "Hello, this is Mike", "timestamp": None}] if present else [],
        "notes": None,
    }


ANALYSIS_PAYLOAD: Dict[str, Any] = {
    "summary": "Customer reported an AC not cooling; tech scheduled a same-day visit.",
    "generalFeedback": "Strong diagnosis. Offer the maintenance plan earlier.",
    "scores": {"complianceOverall": 82, "clarity": 90, "empathy": 75, "professionalism": 88},
    "callTypePrediction": "HVAC Repair - No Cooling",
    "stages": {
        "introduction": _stage(),
        "diagnosis": _stage(),
        "solutionExplanation": _stage(),
        "upsell": _stage(),
        "maintenancePlan": _stage(False),
        "closing": _stage(),
    },
    "salesInsights": [
        {"snippet": "I'd also recommend a maintenance plan", "timestamp": None, "note": "Good upsell", "severity": "med"}
    ],
    "missedOpportunities": [
        {"recommendation": "Mention filter subscription", "snippet": None, "timestamp": None}
    ],
    "checklist": [
        {"id": "tech-introduced-self", "label": "Introduced self", "passed": True, "evidence": "this is Mike", "timestamp": 0.0},
        {"id": "asked-for-questions", "label": "Asked for questions", "passed": False, "evidence": None, "timestamp": None},
    ],
}


@pytest.fixture
def analysis_payload() -> Dict[str, Any]:
    """Analysis-shaped JSON with null optionals, as an LLM tends to return it"""
    return copy.deepcopy(ANALYSIS_PAYLOAD)


class StubAnalysisProvider(AnalysisProvider):
    """Returns a fixed analysis, or raises the configured error"""

    def __init__(self, error: Exception = None):
        self.error = error
        self.requests = []

    async def initialize(self, config: dict) -> None:
        pass

    async def analyze(self, request: AnalysisRequest) -> Analysis:
        self.requests.append(request)
        if self.error:
            raise self.error
        return Analysis.model_validate(normalize_null_optionals(copy.deepcopy(ANALYSIS_PAYLOAD)))

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(provider="stub", model="fixed", version="1")

    @property
    def name(self) -> str:
        return "stub"


@pytest_asyncio.fixture
async def storage() -> MockStorageProvider:
    provider = MockStorageProvider()
    await provider.initialize({"upload_secret": "upload-secret", "upload_base": "/api/v1/mock-upload"})
    return provider


@pytest_asyncio.fixture
async def transcription() -> MockTranscriptionProvider:
    provider = MockTranscriptionProvider()
    await provider.initialize({"webhook_secret": WEBHOOK_SECRET, "latency_seconds": 0})
    return provider


@pytest.fixture
def analysis() -> StubAnalysisProvider:
    return StubAnalysisProvider()


@pytest.fixture
def repository() -> InMemoryCallRepository:
    return InMemoryCallRepository()


@pytest.fixture
def idempotency() -> InMemoryIdempotencyStore:
    return InMemoryIdempotencyStore()


@pytest.fixture
def orchestrator(repository, storage, transcription, analysis, idempotency) -> CallOrchestrator:
    return CallOrchestrator(
        repository=repository,
        storage=storage,
        transcription=transcription,
        analysis=analysis,
        idempotency=idempotency,
        enforce_webhook_signature=True,
        webhook_base_url="https://qa.example.com",
    )
