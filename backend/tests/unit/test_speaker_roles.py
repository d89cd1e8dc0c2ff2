"""
Unit tests for speaker role inference and segment building
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from callqa.domain.models.transcript import DiarizedSegment, SpeakerLabel
from callqa.domain.services.speaker_roles import SpeakerRoleResolver, assign_roles, collect_samples, ordered_tags
from callqa.infrastructure.transcription.segments import merge_words, ms_to_seconds


def diarized(*turns):
    return [
        DiarizedSegment(start=i * 2.0, end=i * 2.0 + 1.5, speaker_tag=tag, text=text)
        for i, (tag, text) in enumerate(turns)
    ]


CUSTOMER_FIRST = diarized(
    ("A", "Hi, my furnace stopped working last night."),
    ("B", "This is Dana from Northside Heating. When did you first notice it?"),
    ("A", "Around ten."),
    ("B", "I can come by at two this afternoon."),
)


def classifier(result=None, error=None):
    mock = MagicMock()
    mock.name = "stub"
    mock.classify = AsyncMock(return_value=result, side_effect=error)
    return mock


class TestAssignRoles:

    def test_first_tag_is_tech_by_default(self):
        assert assign_roles(["A", "B"]) == {"A": SpeakerLabel.TECH, "B": SpeakerLabel.CUSTOMER}

    def test_explicit_tech_tag(self):
        assert assign_roles(["A", "B"], "B") == {"B": SpeakerLabel.TECH, "A": SpeakerLabel.CUSTOMER}

    def test_extra_speakers_are_unknown(self):
        roles = assign_roles(["A", "B", "C"])
        assert roles["C"] == SpeakerLabel.UNKNOWN

    def test_no_tags(self):
        assert assign_roles([]) == {}

    def test_ordered_tags_and_samples(self):
        assert ordered_tags(CUSTOMER_FIRST) == ["A", "B"]
        samples = collect_samples(CUSTOMER_FIRST, per_tag=1, max_chars=10)
        assert samples == {"A": ["Hi, my fur"], "B": ["This is Da"]}


class TestSpeakerRoleResolver:
    """Test content-based inference and its positional fallback"""

    @pytest.mark.asyncio
    async def test_positional_without_classifier(self):
        resolver = SpeakerRoleResolver()
        segments = await resolver.label(CUSTOMER_FIRST)

        assert resolver.strategy == "positional"
        assert [s.speaker for s in segments[:2]] == [SpeakerLabel.TECH, SpeakerLabel.CUSTOMER]

    @pytest.mark.asyncio
    async def test_classifier_choice_is_used(self):
        """Test the classifier can pick the second speaker as technician"""
        resolver = SpeakerRoleResolver(classifier(result="B"))
        segments = await resolver.label(CUSTOMER_FIRST)

        assert segments[0].speaker == SpeakerLabel.CUSTOMER
        assert segments[1].speaker == SpeakerLabel.TECH

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stub", [
        classifier(error=RuntimeError("missing credentials")),
        classifier(error=ValueError("malformed response")),
        classifier(result="Z"),
    ])
    async def test_failure_falls_back_to_positional(self, stub):
        """Test two tags always map to one tech and one customer"""
        roles = await SpeakerRoleResolver(stub).resolve(CUSTOMER_FIRST)

        assert sorted(roles.values()) == sorted([SpeakerLabel.TECH, SpeakerLabel.CUSTOMER])
        assert roles["A"] == SpeakerLabel.TECH

    @pytest.mark.asyncio
    async def test_single_speaker_skips_classifier(self):
        stub = classifier(result="A")
        roles = await SpeakerRoleResolver(stub).resolve(diarized(("A", "hello")))

        assert roles == {"A": SpeakerLabel.TECH}
        stub.classify.assert_not_called()


class TestMergeWords:
    """Test turn reconstruction from word timings"""

    def test_consecutive_words_merge(self):
        words = [
            DiarizedSegment(start=0.0, end=0.4, speaker_tag="A", text="Hello"),
            DiarizedSegment(start=0.5, end=0.9, speaker_tag="A", text="there"),
            DiarizedSegment(start=1.2, end=1.5, speaker_tag="B", text="Hi"),
            DiarizedSegment(start=1.6, end=2.0, speaker_tag="A", text="Okay"),
        ]

        merged = merge_words(words)

        assert [(m.speaker_tag, m.text) for m in merged] == [("A", "Hello there"), ("B", "Hi"), ("A", "Okay")]
        assert (merged[0].start, merged[0].end) == (0.0, 0.9)

    def test_blank_words_skipped(self):
        words = [DiarizedSegment(start=0, end=1, speaker_tag="A", text="  ")]
        assert merge_words(words) == []

    def test_ms_to_seconds(self):
        assert ms_to_seconds(1530) == 1.53
        assert ms_to_seconds(None) == 0.0
