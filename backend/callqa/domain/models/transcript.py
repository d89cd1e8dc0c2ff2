"""
Transcript Domain Models
"""
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field, model_validator

from callqa.domain.models.base import CamelModel


class SpeakerLabel(str, Enum):
    """Semantic speaker role"""
    TECH = "tech"
    CUSTOMER = "customer"
    UNKNOWN = "unknown"


class TranscriptProvider(str, Enum):
    """Transcription vendor that produced a transcript"""
    ASSEMBLYAI = "assemblyai"
    WHISPER = "whisper"
    OTHER = "other"


class DiarizedSegment(CamelModel):
    """
    Segment as returned by a diarizing provider.

    The speaker tag is anonymous ("A", "B", ...) until a role is inferred.
    """
    start: float = Field(..., ge=0, description="Start time in seconds")
    end: float = Field(..., ge=0, description="End time in seconds")
    speaker_tag: str = Field(..., description="Anonymous provider speaker tag")
    text: str


class TranscriptSegment(CamelModel):
    """One speaker turn with semantic role"""

    model_config = ConfigDict(frozen=True)

    start: float = Field(..., ge=0, description="Start time in seconds")
    end: float = Field(..., ge=0, description="End time in seconds")
    speaker: SpeakerLabel
    text: str

    @model_validator(mode="after")
    def _check_bounds(self) -> "TranscriptSegment":
        if self.start > self.end:
            raise ValueError(f"segment start {self.start} is after end {self.end}")
        return self


class Transcript(CamelModel):
    """Full transcript attached to a call, never modified after attachment"""

    model_config = ConfigDict(frozen=True)

    text: str
    segments: List[TranscriptSegment] = Field(default_factory=list)
    provider: TranscriptProvider
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
