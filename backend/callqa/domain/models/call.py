"""
Call Domain Models
Root aggregate and its processing state machine
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import Field

from callqa.domain.exceptions import InvalidTransitionError
from callqa.domain.models.analysis import Analysis, CallType
from callqa.domain.models.base import CamelModel, now_ms
from callqa.domain.models.transcript import Transcript


class CallStatus(str, Enum):
    """Call processing status"""
    CREATED = "created"
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    TRANSCRIBED = "transcribed"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    FAILED = "failed"


# complete/failed -> analyzing is a manual re-run, outside the automatic flow
ALLOWED_TRANSITIONS: Dict[CallStatus, FrozenSet[CallStatus]] = {
    CallStatus.CREATED: frozenset({CallStatus.UPLOADING, CallStatus.TRANSCRIBING, CallStatus.FAILED}),
    CallStatus.UPLOADING: frozenset({CallStatus.TRANSCRIBING, CallStatus.FAILED}),
    CallStatus.TRANSCRIBING: frozenset({CallStatus.TRANSCRIBED, CallStatus.FAILED}),
    CallStatus.TRANSCRIBED: frozenset({CallStatus.ANALYZING, CallStatus.FAILED}),
    CallStatus.ANALYZING: frozenset({CallStatus.COMPLETE, CallStatus.FAILED}),
    CallStatus.COMPLETE: frozenset({CallStatus.ANALYZING}),
    CallStatus.FAILED: frozenset({CallStatus.ANALYZING}),
}


def can_transition(current: CallStatus, target: CallStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class Call(CamelModel):
    """Call record, one per uploaded recording"""
    id: str
    user_id: str
    audio_path: str = Field(..., description="Storage locator, immutable once set")
    duration_sec: Optional[float] = None
    call_type: Optional[CallType] = None
    status: CallStatus = CallStatus.CREATED
    transcription_job_id: Optional[str] = None
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
    transcript: Optional[Transcript] = None
    analysis: Optional[Analysis] = None

    def touch(self) -> None:
        """Advance updated_at, never backwards"""
        self.updated_at = max(now_ms(), self.updated_at)

    def transition_to(self, target: CallStatus) -> None:
        """
        Move to a new status.

        Raises:
            InvalidTransitionError: If the state machine forbids the move
        """
        if not can_transition(self.status, target):
            raise InvalidTransitionError(
                f"Call {self.id} cannot move from {self.status.value} to {target.value}",
                details={"from": self.status.value, "to": target.value},
            )
        self.status = target
        self.touch()
