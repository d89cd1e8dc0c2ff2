"""
Speaker Role Inference
Maps anonymous diarization tags ("A", "B", ...) to tech/customer roles.

Two strategies:
- positional: the first tag heard is the technician, the second the customer
- content-based: a classifier inspects sample utterances per tag

Content-based inference falls back to positional on any failure, so role
inference never aborts transcript ingestion.
"""
import logging
from typing import Dict, List, Optional, Sequence

from callqa.domain.interfaces.speaker_role_classifier import SpeakerRoleClassifier
from callqa.domain.models.transcript import DiarizedSegment, SpeakerLabel, TranscriptSegment

logger = logging.getLogger(__name__)


def ordered_tags(segments: Sequence[DiarizedSegment]) -> List[str]:
    """Distinct speaker tags in order of first appearance"""
    tags: List[str] = []
    for segment in segments:
        if segment.speaker_tag not in tags:
            tags.append(segment.speaker_tag)
    return tags


def assign_roles(tags: Sequence[str], tech_tag: Optional[str] = None) -> Dict[str, SpeakerLabel]:
    """
    Build the tag -> role map.

    tech_tag defaults to the first tag. The first remaining tag becomes the
    customer and any further tags stay unknown.
    """
    if not tags:
        return {}
    tech = tech_tag if tech_tag in tags else tags[0]
    roles = {tech: SpeakerLabel.TECH}
    others = [tag for tag in tags if tag != tech]
    if others:
        roles[others[0]] = SpeakerLabel.CUSTOMER
    for tag in others[1:]:
        roles[tag] = SpeakerLabel.UNKNOWN
    return roles


def collect_samples(
    segments: Sequence[DiarizedSegment],
    per_tag: int = 5,
    max_chars: int = 200
) -> Dict[str, List[str]]:
    """First few non-empty utterances per tag, truncated"""
    samples: Dict[str, List[str]] = {}
    for segment in segments:
        text = segment.text.strip()
        if not text:
            continue
        bucket = samples.setdefault(segment.speaker_tag, [])
        if len(bucket) < per_tag:
            bucket.append(text[:max_chars])
    return samples


class SpeakerRoleResolver:
    """Resolves speaker roles for diarized segments"""

    def __init__(
        self,
        classifier: Optional[SpeakerRoleClassifier] = None,
        samples_per_tag: int = 5,
        max_sample_chars: int = 200
    ):
        self._classifier = classifier
        self._samples_per_tag = samples_per_tag
        self._max_sample_chars = max_sample_chars

    @property
    def strategy(self) -> str:
        return self._classifier.name if self._classifier else "positional"

    async def resolve(self, segments: Sequence[DiarizedSegment]) -> Dict[str, SpeakerLabel]:
        tags = ordered_tags(segments)
        if self._classifier is None or len(tags) < 2:
            return assign_roles(tags)

        samples = collect_samples(segments, self._samples_per_tag, self._max_sample_chars)
        try:
            tech_tag = await self._classifier.classify(samples)
            if tech_tag not in tags:
                raise ValueError(f"classifier returned unknown tag {tech_tag!r}")
        except Exception as e:
            logger.warning(
                f"Speaker role inference via {self._classifier.name} failed, "
                f"using positional roles: {e}"
            )
            return assign_roles(tags)

        logger.info(f"Speaker role inference picked tag {tech_tag} as technician")
        return assign_roles(tags, tech_tag)

    async def label(self, segments: Sequence[DiarizedSegment]) -> List[TranscriptSegment]:
        """Resolve roles and convert to labelled transcript segments"""
        roles = await self.resolve(segments)
        return [
            TranscriptSegment(
                start=segment.start,
                end=max(segment.end, segment.start),
                speaker=roles.get(segment.speaker_tag, SpeakerLabel.UNKNOWN),
                text=segment.text,
            )
            for segment in segments
        ]
