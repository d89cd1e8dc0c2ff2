"""
Prompt Template System
Manages prompt templates for call analysis and speaker-role classification
"""
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from jinja2 import BaseLoader, Environment
from pydantic import BaseModel, Field

from callqa.domain.models.analysis import AnalysisMetadata
from callqa.domain.models.transcript import TranscriptSegment

logger = logging.getLogger(__name__)


REPAIR_INSTRUCTION = (
    "IMPORTANT: The previous response had schema validation errors. "
    "Please ensure strict adherence to the JSON schema with all required fields."
)

_ENV = Environment(loader=BaseLoader(), trim_blocks=True, lstrip_blocks=True)


class PromptTemplate(BaseModel):
    """Single prompt template"""
    name: str = Field(..., description="Template name")
    template: str = Field(..., description="Jinja2 template string")
    variables: List[str] = Field(default_factory=list, description="Required variables")

    def render(self, **kwargs) -> str:
        """Render template with provided variables"""
        missing = [v for v in self.variables if v not in kwargs]
        if missing:
            raise ValueError(f"Template {self.name} missing variables: {', '.join(missing)}")
        return _ENV.from_string(self.template).render(**kwargs)


def format_duration(duration_sec: Optional[float]) -> str:
    """'3 minutes 7 seconds', or 'unknown' when not known"""
    if not duration_sec:
        return "unknown"
    total = int(duration_sec)
    return f"{total // 60} minutes {total % 60} seconds"


def format_segments(segments: Sequence[TranscriptSegment]) -> str:
    """One '[12s] TECH: text' line per segment"""
    return "\n".join(
        f"[{math.floor(seg.start)}s] {seg.speaker.value.upper()}: {seg.text}"
        for seg in segments
    )


class PromptManager:
    """
    Manages prompt templates and rendering
    Rubric content (stages, checklist, scoring) comes from configuration
    """

    def __init__(self, rubric: Dict[str, Any]):
        """Initialize prompt manager with the analysis rubric"""
        self.rubric = rubric
        self.templates: Dict[str, PromptTemplate] = {}
        self._load_default_templates()

    def _load_default_templates(self):
        """Load default prompt templates"""

        self.templates["analysis_system"] = PromptTemplate(
            name="analysis_system",
            template="""{{ rubric.role }}

CRITICAL INSTRUCTIONS:
1. You MUST respond with valid JSON matching the exact structure below
2. ALWAYS provide direct quotes from the transcript as evidence
3. ALWAYS include accurate timestamps (in seconds) for all evidence
4. Be thorough, consistent, and objective in your analysis
5. Focus on specific, actionable insights rather than vague observations

JSON STRUCTURE (REQUIRED):
{
  "summary": "<2-3 sentence summary: what the customer needed, what the tech did, and the outcome>",
  "generalFeedback": "<coaching feedback for the technician: strengths and the most important improvements>",
  "scores": {
    "complianceOverall": <integer 0-100>,
    "clarity": <integer 0-100>,
    "empathy": <integer 0-100>,
    "professionalism": <integer 0-100>
  },
  "callTypePrediction": "<descriptive label such as 'HVAC Repair - No Cooling', including service category and reason>",
  "stages": {
{% for stage in rubric.stages %}
    "{{ stage.key }}": {"present": <boolean>, "quality": "<poor|ok|good|excellent>", "evidence": [{"quote": "<exact quote>", "timestamp": <seconds>}], "notes": "<explanation of quality assessment>"}{{ "," if not loop.last }}
{% endfor %}
  },
  "salesInsights": [
    {"snippet": "<exact quote showing sales moment>", "timestamp": <seconds>, "note": "<specific insight>", "severity": "<low|med|high>"}
  ],
  "missedOpportunities": [
    {"recommendation": "<specific, actionable recommendation>", "snippet": "<quote showing context>", "timestamp": <seconds>}
  ],
  "checklist": [
    {"id": "<checklist id>", "label": "<requirement description>", "passed": <boolean>, "evidence": "<quote or explanation>", "timestamp": <seconds or omit>}
  ]
}

STAGE DEFINITIONS & QUALITY CRITERIA:
{% for stage in rubric.stages %}

{{ loop.index }}. {{ stage.title }} ({{ stage.timing }}):
{% for quality, description in stage.criteria.items() %}
   - Quality "{{ quality }}": {{ description }}
{% endfor %}
   - Evidence: {{ stage.evidence }}
{% endfor %}

CHECKLIST REQUIREMENTS (provide evidence for each):
{% for item in rubric.checklist %}
{{ loop.index }}. {{ item.id }}: "{{ item.label }}"
{% endfor %}

SALES INSIGHTS GUIDELINES:
{% for line in rubric.sales_insights %}
- {{ line }}
{% endfor %}

MISSED OPPORTUNITIES GUIDELINES:
{% for line in rubric.missed_opportunities %}
- {{ line }}
{% endfor %}

SCORING GUIDELINES:
{% for key, description in rubric.scoring.items() %}
- {{ key }} (0-100): {{ description }}
{% endfor %}

CRITICAL REMINDERS:
{% for line in rubric.reminders %}
- {{ line }}
{% endfor %}""",
            variables=["rubric"]
        )

        self.templates["analysis_user"] = PromptTemplate(
            name="analysis_user",
            template="""Analyze this service call transcript with maximum accuracy and detail.

METADATA:
- Duration: {{ duration }}
- Suspected Call Type: {{ call_type }}

TRANSCRIPT (with speaker labels and timestamps in seconds):
{{ transcript }}

ANALYSIS REQUIREMENTS:
1. Read the ENTIRE transcript carefully before analyzing
2. For each stage, provide evidence with exact quotes and timestamps
3. For sales insights, identify every moment where value was or could have been positioned
4. For missed opportunities, be specific about what should have been said and when
5. For the checklist, verify each item against the transcript and provide supporting evidence
6. Ensure all timestamps correspond to actual moments in the transcript
7. When quoting, use the exact words from the transcript, not paraphrases

Provide your comprehensive analysis in valid JSON format following the schema exactly.""",
            variables=["duration", "call_type", "transcript"]
        )

        self.templates["speaker_role_system"] = PromptTemplate(
            name="speaker_role_system",
            template="""You label speakers in field-service phone calls.
One speaker is the technician: they introduce themselves or their company, ask diagnostic questions, explain problems and solutions, and schedule visits.
The other speaker is the customer describing their problem.

Respond with JSON only: {"technician": "<speaker tag>"}
The tag MUST be one of: {{ tags | join(", ") }}""",
            variables=["tags"]
        )

        self.templates["speaker_role_user"] = PromptTemplate(
            name="speaker_role_user",
            template="""{% for tag, lines in samples.items() %}
SPEAKER {{ tag }}:
{% for line in lines %}
- {{ line }}
{% endfor %}

{% endfor %}
Which speaker tag is the technician?""",
            variables=["samples"]
        )

    def render_analysis_system_prompt(self) -> str:
        prompt = self.templates["analysis_system"].render(rubric=self.rubric)
        logger.debug(f"Rendered analysis system prompt, length={len(prompt)}")
        return prompt

    def render_analysis_user_prompt(
        self,
        segments: Sequence[TranscriptSegment],
        metadata: Optional[AnalysisMetadata] = None
    ) -> str:
        """
        Render the transcript prompt

        Args:
            segments: Labelled transcript segments
            metadata: Known duration and suspected call type
        """
        metadata = metadata or AnalysisMetadata()
        return self.templates["analysis_user"].render(
            duration=format_duration(metadata.duration_sec),
            call_type=metadata.call_type.value if metadata.call_type else "unknown",
            transcript=format_segments(segments),
        )

    def render_repair_prompt(self, user_prompt: str) -> str:
        return f"{user_prompt}\n\n{REPAIR_INSTRUCTION}"

    def render_speaker_role_prompts(self, samples: Dict[str, List[str]]) -> tuple[str, str]:
        """System and user prompt for speaker-role classification"""
        system = self.templates["speaker_role_system"].render(tags=list(samples.keys()))
        user = self.templates["speaker_role_user"].render(samples=samples)
        return system, user

    def checklist_ids(self) -> List[str]:
        return [item["id"] for item in self.rubric.get("checklist", [])]
