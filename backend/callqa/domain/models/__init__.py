"""Domain models"""

from .analysis import (
    STAGE_KEYS,
    Analysis,
    AnalysisMetadata,
    AnalysisRequest,
    CallType,
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
from .base import CamelModel, now_ms
from .call import ALLOWED_TRANSITIONS, Call, CallStatus, can_transition
from .storage import UploadTarget
from .transcript import (
    DiarizedSegment,
    SpeakerLabel,
    Transcript,
    TranscriptProvider,
    TranscriptSegment,
)
from .webhook import (
    TranscriptionJob,
    TranscriptionJobRequest,
    TranscriptionJobResult,
    TranscriptionJobStatus,
    TranscriptionWebhookPayload,
)
