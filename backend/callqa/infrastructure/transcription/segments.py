"""
Segment construction helpers shared by transcription providers
"""
from typing import Iterable, List, Optional

from callqa.domain.models.transcript import DiarizedSegment


UNLABELLED_SPEAKER = "?"


def ms_to_seconds(value: Optional[float]) -> float:
    return round((value or 0) / 1000.0, 3)


def merge_words(words: Iterable[DiarizedSegment]) -> List[DiarizedSegment]:
    """
    Rebuild speaker turns from word-level timings.

    Consecutive words with the same speaker tag collapse into one segment
    spanning the first word's start to the last merged word's end.
    """
    segments: List[DiarizedSegment] = []
    current: Optional[DiarizedSegment] = None

    for word in words:
        text = word.text.strip()
        if not text:
            continue
        if current is not None and current.speaker_tag == word.speaker_tag:
            current.text = f"{current.text} {text}"
            current.end = max(current.end, word.end)
            continue
        if current is not None:
            segments.append(current)
        current = DiarizedSegment(
            start=word.start,
            end=word.end,
            speaker_tag=word.speaker_tag,
            text=text,
        )

    if current is not None:
        segments.append(current)
    return segments
