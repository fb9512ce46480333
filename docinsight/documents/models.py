"""Records kept for analysed documents and user feedback."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from docinsight.analysis.models import AnalysisRequest, AnalysisResult, Provenance


DocumentStatus = Literal["uploaded", "processing", "failed"]
FeedbackType = Literal["summary", "classification"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class DocumentRecord:
    file_id: str
    file_name: str
    mime_type: str
    size: int
    status: DocumentStatus = "uploaded"
    summary: Optional[str] = None
    document_type: Optional[str] = None
    confidence: Optional[float] = None
    key_points: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    provenance: Optional[Provenance] = None
    processing_ms: Optional[int] = None
    content_preview: Optional[str] = None
    analyzed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_analysis(
        cls,
        request: AnalysisRequest,
        result: AnalysisResult,
        processing_ms: int,
        preview_chars: int = 500,
    ) -> "DocumentRecord":
        now = utcnow()
        return cls(
            file_id=request.document_id,
            file_name=request.display_name,
            mime_type=request.media_type,
            size=len(request.text),
            status="uploaded",
            summary=result.summary,
            document_type=result.document_type,
            confidence=result.confidence,
            key_points=list(result.key_points),
            topics=list(result.topics),
            metadata=dict(result.metadata),
            provenance=result.provenance,
            processing_ms=processing_ms,
            content_preview=request.text[:preview_chars],
            analyzed_at=now,
            created_at=now,
            updated_at=now,
        )


@dataclass(slots=True)
class FeedbackRecord:
    file_id: str
    user_id: str
    feedback_type: FeedbackType
    original_value: Optional[str]
    correct_value: Optional[str]
    reason: Optional[str] = None
    applied: bool = False
    created_at: datetime = field(default_factory=utcnow)
