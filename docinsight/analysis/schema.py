"""Validation of structured analysis returned by providers."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, List

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from docinsight.analysis.models import DOCUMENT_TYPES
from docinsight.exceptions import ProviderShapeError

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def _type_candidate(value: str) -> str:
    return re.sub(r"[\s\-]+", "_", value.strip().strip(".\"'`").strip().lower())


def is_known_document_type(value: str) -> bool:
    """True when ``value`` names a document type without clamping."""
    return _type_candidate(value) in DOCUMENT_TYPES


def normalize_document_type(value: str) -> str:
    """Map a provider label onto the closed set, clamping unknowns to ``other``."""
    candidate = _type_candidate(value)
    if candidate in DOCUMENT_TYPES:
        return candidate
    logger.info(f"Unknown document type {value!r}, using 'other'")
    return "other"


class ProviderAnalysis(BaseModel):
    """Shape every provider answer must satisfy before it is trusted."""

    model_config = ConfigDict(extra="ignore")

    summary: str = Field(..., min_length=1)
    key_points: List[str]
    document_type: str
    confidence: float
    topics: List[str]
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("summary")
    @classmethod
    def require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("summary must not be blank")
        return value

    @field_validator("document_type")
    @classmethod
    def clamp_document_type(cls, value: str) -> str:
        return normalize_document_type(value)

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("confidence must be a finite number")
        return min(1.0, max(0.0, value))

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, value: Any) -> Any:
        return {} if value is None else value


def load_json_answer(text: str) -> Any:
    """
    Decode a JSON answer, falling back to the body of a markdown code fence.

    The answer is decoded as-is first so fences quoted inside string values
    are left alone.
    """
    stripped = text.strip()
    try:
        return orjson.loads(stripped)
    except orjson.JSONDecodeError:
        match = _CODE_FENCE.search(stripped)
        if match is None:
            raise
        return orjson.loads(match.group(1).strip())


def parse_analysis(provider: str, text: str) -> ProviderAnalysis:
    """
    Parse and validate a provider's raw answer.

    Raises:
        ProviderShapeError: when the answer is not JSON or misses required keys
    """
    try:
        data = load_json_answer(text)
    except orjson.JSONDecodeError as exc:
        raise ProviderShapeError(provider, f"response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ProviderShapeError(provider, "response JSON is not an object")

    try:
        return ProviderAnalysis.model_validate(data)
    except ValidationError as exc:
        raise ProviderShapeError(
            provider, f"response failed validation: {exc.error_count()} error(s)"
        ) from exc
