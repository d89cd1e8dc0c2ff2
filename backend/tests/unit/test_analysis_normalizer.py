"""
Unit tests for analysis payload normalisation
"""
import json

import pytest

from callqa.domain.exceptions import AnalysisSchemaError
from callqa.domain.services.analysis_normalizer import normalize_null_optionals, parse_analysis, prune_none


class TestNormalizeNullOptionals:
    """Test null -> absent normalisation before validation"""

    def test_null_timestamps_removed_at_every_depth(self, analysis_payload):
        normalized = normalize_null_optionals(analysis_payload)

        assert "timestamp" not in normalized["checklist"][1]
        assert normalized["checklist"][0]["timestamp"] == 0.0
        assert "timestamp" not in normalized["salesInsights"][0]
        assert "timestamp" not in normalized["missedOpportunities"][0]
        assert "snippet" not in normalized["missedOpportunities"][0]
        for stage in normalized["stages"].values():
            for evidence in stage["evidence"]:
                assert "timestamp" not in evidence
            assert "notes" not in stage

    def test_required_nulls_are_kept(self):
        """Test nulls on required keys survive so validation reports them"""
        assert normalize_null_optionals({"summary": None}) == {"summary": None}

    def test_prune_none_is_recursive(self):
        assert prune_none({"a": None, "b": [{"c": None, "d": 1}, None]}) == {"b": [{"d": 1}]}


class TestParseAnalysis:
    """Test raw model output parsing"""

    def test_valid_payload_with_nulls_parses(self, analysis_payload):
        """Test normalisation then validation yields absent fields, not None"""
        analysis = parse_analysis(json.dumps(analysis_payload))

        assert analysis.checklist[1].timestamp is None
        wire = analysis.to_wire()
        assert "timestamp" not in wire["checklist"][1]
        assert "timestamp" not in wire["stages"]["introduction"]["evidence"][0]
        assert wire["scores"]["complianceOverall"] == 82

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_empty_output(self, content):
        with pytest.raises(AnalysisSchemaError, match="Empty"):
            parse_analysis(content)

    def test_invalid_json(self):
        with pytest.raises(AnalysisSchemaError, match="invalid JSON"):
            parse_analysis("{\"summary\": ")

    def test_non_object(self):
        with pytest.raises(AnalysisSchemaError):
            parse_analysis("[1, 2, 3]")

    def test_schema_mismatch_reports_errors(self, analysis_payload):
        analysis_payload["scores"]["clarity"] = 140

        with pytest.raises(AnalysisSchemaError) as exc_info:
            parse_analysis(json.dumps(analysis_payload))

        locations = [error["loc"] for error in exc_info.value.details["errors"]]
        assert ("scores", "clarity") in locations
