"""
Mock Analysis Provider
Deterministic keyword-based scoring for environments without an LLM key.
Produces a schema-valid Analysis so the pipeline can run end to end.
"""
import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from callqa.domain.interfaces.analysis_provider import AnalysisProvider
from callqa.domain.models.analysis import (
    Analysis,
    AnalysisRequest,
    ChecklistItem,
    Evidence,
    InsightSeverity,
    MissedOpportunity,
    ModelInfo,
    SalesInsight,
    Scores,
    StageEvaluation,
    StageQuality,
    Stages,
)
from callqa.domain.models.transcript import SpeakerLabel, TranscriptSegment

logger = logging.getLogger(__name__)


STAGE_PATTERNS: Dict[str, str] = {
    "introduction": r"\b(this is|my name is|calling from|from .* service)\b",
    "diagnosis": r"\b(can you describe|what's happening|when did|any unusual|how long)\b",
    "solution_explanation": r"\b(sounds like|the problem|the issue|we'll|i can come|replace|repair)\b",
    "upsell": r"\b(recommend|upgrade|would you be interested|also offer)\b",
    "maintenance_plan": r"\b(maintenance plan|preventive|regular servicing|annual service)\b",
    "closing": r"\b(thanks for choosing|see you|any other questions|have a great)\b",
}

CHECKLIST_PATTERNS: Dict[str, str] = {
    "tech-introduced-self": r"\b(this is|my name is) [A-Z]?\w+",
    "tech-stated-company": r"\bfrom [\w ]+(service|company|heating|plumbing|electric)",
    "confirmed-customer-info": r"\b(am i speaking with|is this|confirm your)\b",
    "asked-diagnostic-questions": r"\?",
    "explained-problem-clearly": r"\b(sounds like|the problem is|the issue is|could be)\b",
    "explained-solution": r"\b(i can|we'll|we will|i'll)\b",
    "provided-next-steps": r"\b(this afternoon|tomorrow|between \d|i'll bring|next step)\b",
    "asked-for-questions": r"\bany (other )?questions\b",
    "professional-tone": r"\b(thank|thanks|please|great)\b",
    "clear-communication": r".",
}

CHECKLIST_LABELS: Dict[str, str] = {
    "tech-introduced-self": "Introduced themselves by name",
    "tech-stated-company": "Mentioned the company name",
    "confirmed-customer-info": "Confirmed customer name or address",
    "asked-diagnostic-questions": "Asked questions to understand the problem",
    "explained-problem-clearly": "Explained the issue in clear, understandable terms",
    "explained-solution": "Clearly described the solution or work performed",
    "provided-next-steps": "Explained what happens next or follow-up actions",
    "asked-for-questions": "Asked if the customer had any questions",
    "professional-tone": "Maintained a professional and courteous tone throughout",
    "clear-communication": "Communicated clearly without unexplained technical jargon",
}


def _find(segments: Sequence[TranscriptSegment], pattern: str) -> List[TranscriptSegment]:
    regex = re.compile(pattern, re.IGNORECASE)
    return [seg for seg in segments if regex.search(seg.text)]


def _quality(hits: int) -> StageQuality:
    if hits >= 3:
        return StageQuality.EXCELLENT
    if hits == 2:
        return StageQuality.GOOD
    if hits == 1:
        return StageQuality.OK
    return StageQuality.POOR


class MockAnalysisProvider(AnalysisProvider):
    """Keyword heuristics over the technician's turns"""

    def __init__(self):
        self._checklist_labels = dict(CHECKLIST_LABELS)

    async def initialize(self, config: dict) -> None:
        prompts = config.get("prompt_manager")
        if prompts is not None:
            for item in prompts.rubric.get("checklist", []):
                self._checklist_labels.setdefault(item["id"], item["label"])
        logger.info("Mock analysis initialized (keyword heuristics)")

    async def analyze(self, request: AnalysisRequest) -> Analysis:
        tech = [s for s in request.segments if s.speaker == SpeakerLabel.TECH] or list(request.segments)
        customer = [s for s in request.segments if s.speaker == SpeakerLabel.CUSTOMER]

        stages = {}
        for key, pattern in STAGE_PATTERNS.items():
            hits = _find(tech, pattern)
            stages[key] = StageEvaluation(
                present=bool(hits),
                quality=_quality(len(hits)),
                evidence=[Evidence(quote=h.text, timestamp=h.start) for h in hits[:3]],
                notes=None if hits else "No matching language found in the technician's turns",
            )

        checklist = []
        for item_id, label in self._checklist_labels.items():
            pattern = CHECKLIST_PATTERNS.get(item_id)
            hits = _find(tech, pattern) if pattern else []
            checklist.append(
                ChecklistItem(
                    id=item_id,
                    label=label,
                    passed=bool(hits),
                    evidence=hits[0].text if hits else "Not observed in transcript",
                    timestamp=hits[0].start if hits else None,
                )
            )

        passed_ratio = sum(1 for item in checklist if item.passed) / max(len(checklist), 1)
        stage_ratio = sum(1 for stage in stages.values() if stage.present) / len(stages)
        questions = len(_find(tech, r"\?"))

        scores = Scores(
            compliance_overall=round(100 * (passed_ratio + stage_ratio) / 2),
            clarity=min(100, 60 + 10 * len(stages["solution_explanation"].evidence)),
            empathy=min(100, 50 + 10 * questions),
            professionalism=round(100 * passed_ratio),
        )

        insights, missed = self._sales_findings(tech, customer, stages)

        return Analysis(
            summary=self._summary(request, tech, customer),
            general_feedback=(
                f"{sum(1 for i in checklist if i.passed)} of {len(checklist)} checklist items observed. "
                "Generated by keyword heuristics; configure an LLM provider for full coaching feedback."
            ),
            scores=scores,
            call_type_prediction=(
                request.metadata.call_type.value.title()
                if request.metadata and request.metadata.call_type
                else "Service Call"
            ),
            stages=Stages(**stages),
            sales_insights=insights,
            missed_opportunities=missed,
            checklist=checklist,
        )

    @staticmethod
    def _summary(
        request: AnalysisRequest,
        tech: Sequence[TranscriptSegment],
        customer: Sequence[TranscriptSegment]
    ) -> str:
        opening = customer[0].text if customer else request.full_text[:160]
        return (
            f"Call with {len(tech)} technician turns and {len(customer)} customer turns. "
            f"Customer opened with: \"{opening}\""
        )

    @staticmethod
    def _sales_findings(
        tech: Sequence[TranscriptSegment],
        customer: Sequence[TranscriptSegment],
        stages: Dict[str, StageEvaluation]
    ) -> Tuple[List[SalesInsight], List[MissedOpportunity]]:
        insights = [
            SalesInsight(
                snippet=e.quote,
                timestamp=e.timestamp,
                note="Technician positioned an additional service",
                severity=InsightSeverity.MED,
            )
            for e in stages["upsell"].evidence + stages["maintenance_plan"].evidence
        ]
        missed: List[MissedOpportunity] = []
        if not stages["maintenance_plan"].present:
            pain: Optional[TranscriptSegment] = next(iter(_find(customer, r"\b(year|broke|again|old)\b")), None)
            missed.append(
                MissedOpportunity(
                    recommendation="Offer a preventive maintenance plan tied to the customer's issue",
                    snippet=pain.text if pain else None,
                    timestamp=pain.start if pain else None,
                )
            )
        return insights, missed

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(provider="mock", model="keyword-heuristics", version="1")

    @property
    def name(self) -> str:
        return "mock"
