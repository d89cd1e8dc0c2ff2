"""
Analysis Domain Models
Structured QA assessment produced by the analysis provider
"""
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import ConfigDict, Field, field_validator

from callqa.domain.models.base import CamelModel
from callqa.domain.models.transcript import TranscriptSegment


Score = Annotated[int, Field(ge=0, le=100)]

STAGE_KEYS = (
    "introduction",
    "diagnosis",
    "solutionExplanation",
    "upsell",
    "maintenancePlan",
    "closing",
)


class StageQuality(str, Enum):
    POOR = "poor"
    OK = "ok"
    GOOD = "good"
    EXCELLENT = "excellent"


class InsightSeverity(str, Enum):
    LOW = "low"
    MED = "med"
    HIGH = "high"


class CallType(str, Enum):
    """Suspected call category supplied at creation"""
    REPAIR = "repair"
    MAINTENANCE = "maintenance"
    INSTALLATION = "installation"
    OTHER = "other"


class Evidence(CamelModel):
    quote: str
    timestamp: Optional[float] = Field(default=None, description="Seconds into the call")


class StageEvaluation(CamelModel):
    present: bool
    quality: StageQuality
    evidence: List[Evidence] = Field(default_factory=list)
    notes: Optional[str] = None


class Stages(CamelModel):
    """The six fixed conversation stages, all required"""
    introduction: StageEvaluation
    diagnosis: StageEvaluation
    solution_explanation: StageEvaluation
    upsell: StageEvaluation
    maintenance_plan: StageEvaluation
    closing: StageEvaluation


class Scores(CamelModel):
    compliance_overall: Score
    clarity: Score
    empathy: Score
    professionalism: Score


class SalesInsight(CamelModel):
    snippet: str
    timestamp: Optional[float] = None
    note: str
    severity: Optional[InsightSeverity] = None


class MissedOpportunity(CamelModel):
    recommendation: str
    snippet: Optional[str] = None
    timestamp: Optional[float] = None


class ChecklistItem(CamelModel):
    id: str
    label: str
    passed: bool
    evidence: Optional[str] = None
    timestamp: Optional[float] = None


class Analysis(CamelModel):
    """QA assessment of one call"""

    model_config = ConfigDict(frozen=True)

    summary: str
    general_feedback: str
    scores: Scores
    call_type_prediction: str
    stages: Stages
    sales_insights: List[SalesInsight] = Field(default_factory=list)
    missed_opportunities: List[MissedOpportunity] = Field(default_factory=list)
    checklist: List[ChecklistItem] = Field(default_factory=list)
    created_at: Optional[int] = Field(default=None, description="Epoch ms, stamped on completion")

    @field_validator("checklist")
    @classmethod
    def _unique_checklist_ids(cls, items: List[ChecklistItem]) -> List[ChecklistItem]:
        seen = set()
        duplicates = []
        for item in items:
            if item.id in seen:
                duplicates.append(item.id)
            seen.add(item.id)
        if duplicates:
            raise ValueError(f"duplicate checklist ids: {', '.join(sorted(set(duplicates)))}")
        return items


class AnalysisMetadata(CamelModel):
    """Known facts about the call passed alongside the transcript"""
    duration_sec: Optional[float] = None
    call_type: Optional[CallType] = None


class AnalysisRequest(CamelModel):
    segments: List[TranscriptSegment]
    full_text: str
    metadata: Optional[AnalysisMetadata] = None


class ModelInfo(CamelModel):
    provider: str
    model: str
    version: Optional[str] = None
