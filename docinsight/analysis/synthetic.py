"""Deterministic stand-in analysis used when no provider succeeds."""

from __future__ import annotations

from docinsight.analysis.models import AnalysisRequest, AnalysisResult
from docinsight.analysis.prompts import content_label

SYNTHETIC_CONFIDENCE = 0.3


def plural(count: int, noun: str) -> str:
    """Return a pluralized string for the given count and noun."""
    suffix = noun if count == 1 else f"{noun}s"
    return f"{count} {suffix}"


def synthetic_result(request: AnalysisRequest) -> AnalysisResult:
    """
    Build an analysis purely from request metadata.

    The output depends only on the file name, media type and text length, so
    identical requests always produce identical results.
    """
    label = content_label(request.media_type)
    media_type = request.media_type or "unknown"
    length = len(request.text)
    document_type = "report" if "pdf" in request.media_type else "other"

    summary = (
        f'Automated analysis was unavailable for "{request.display_name}". '
        f"This {label} contains {plural(length, 'character')} and should be reviewed manually."
    )
    key_points = [
        f"File name: {request.display_name}",
        f"Media type: {media_type}",
        f"Content length: {plural(length, 'character')}",
        "Manual review recommended",
    ]
    topics = ["general_content", label.replace(" ", "_").lower()]

    return AnalysisResult(
        summary=summary,
        key_points=key_points,
        document_type=document_type,
        confidence=SYNTHETIC_CONFIDENCE,
        topics=topics,
        provenance="synthetic",
        metadata={
            "file_name": request.display_name,
            "media_type": media_type,
            "content_length": length,
        },
    )
