"""
Analysis Payload Normalisation
Cleans raw LLM output before schema validation and before persistence.
"""
import json
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from callqa.domain.exceptions import AnalysisSchemaError
from callqa.domain.models.analysis import Analysis

# Optional fields models tend to emit as null instead of omitting
NULLABLE_OPTIONAL_KEYS = frozenset({"timestamp", "notes", "snippet", "severity", "evidence"})


def normalize_null_optionals(data: Any) -> Any:
    """
    Drop optional keys whose value is null, recursively.

    Covers checklist[].timestamp, salesInsights[].timestamp,
    missedOpportunities[].timestamp and stages.*.evidence[].timestamp,
    plus the other optional scalars listed in NULLABLE_OPTIONAL_KEYS.
    """
    if isinstance(data, dict):
        return {
            key: normalize_null_optionals(value)
            for key, value in data.items()
            if not (value is None and key in NULLABLE_OPTIONAL_KEYS)
        }
    if isinstance(data, list):
        return [normalize_null_optionals(item) for item in data]
    return data


def prune_none(data: Any) -> Any:
    """Remove every None-valued key from nested dicts and None items from lists"""
    if isinstance(data, dict):
        return {key: prune_none(value) for key, value in data.items() if value is not None}
    if isinstance(data, list):
        return [prune_none(item) for item in data if item is not None]
    return data


def parse_analysis(content: Optional[str]) -> Analysis:
    """
    Parse and validate raw model output into an Analysis

    Raises:
        AnalysisSchemaError: Empty output, invalid JSON, or schema mismatch
    """
    if not content or not content.strip():
        raise AnalysisSchemaError("Empty response from analysis model")

    try:
        data = json.loads(content)
    except ValueError as e:
        raise AnalysisSchemaError(f"Analysis model returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisSchemaError("Analysis model returned a non-object JSON value")

    try:
        return Analysis.model_validate(normalize_null_optionals(data))
    except PydanticValidationError as e:
        raise AnalysisSchemaError(
            "LLM output does not match expected schema",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e
