from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)

from docinsight.analysis.models import confidence_level

FeedbackLiteral = Literal["summary", "classification"]


class AnalyzeDocumentRequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("fileId", "documentId", "file_id"),
    )
    content: str = Field(..., description="Extracted document text; may be empty.")
    file_name: str = Field(
        default="untitled", validation_alias=AliasChoices("fileName", "file_name")
    )
    mime_type: str = Field(
        default="", validation_alias=AliasChoices("mimeType", "mime_type")
    )

    @field_validator("file_name", "mime_type", mode="before")
    @classmethod
    def default_when_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return "untitled" if info.field_name == "file_name" else ""
        return value


class AnalysisModel(BaseModel):
    summary: str
    key_points: List[str]
    document_type: str
    confidence: float
    confidence_level: str
    topics: List[str]
    metadata: Dict[str, Any] = Field(default_factory=dict)
    provenance: str

    @classmethod
    def from_domain(cls, result) -> "AnalysisModel":
        return cls(**result.to_dict())


class AnalyzeDocumentResponseModel(BaseModel):
    success: bool
    analysis: Optional[AnalysisModel] = None
    error: Optional[str] = None
    warning: Optional[str] = None


class FeedbackRequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    file_id: str = Field(..., min_length=1, validation_alias=AliasChoices("fileId", "file_id"))
    feedback_type: FeedbackLiteral = Field(
        ..., validation_alias=AliasChoices("feedbackType", "type", "feedback_type")
    )
    user_id: str = Field(..., min_length=1, validation_alias=AliasChoices("userId", "user_id"))
    correct_value: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("correctValue", "correct_value")
    )
    reason: Optional[str] = None


class FeedbackResponseModel(BaseModel):
    success: bool
    message: str
    improved: bool = False


class DocumentModel(BaseModel):
    file_id: str
    file_name: str
    mime_type: str
    size: int
    status: str
    summary: Optional[str] = None
    document_type: Optional[str] = None
    confidence: Optional[float] = None
    confidence_level: Optional[str] = None
    key_points: List[str] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    provenance: Optional[str] = None
    processing_ms: Optional[int] = None
    analyzed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, record) -> "DocumentModel":
        return cls(
            file_id=record.file_id,
            file_name=record.file_name,
            mime_type=record.mime_type,
            size=record.size,
            status=record.status,
            summary=record.summary,
            document_type=record.document_type,
            confidence=record.confidence,
            confidence_level=(
                confidence_level(record.confidence) if record.confidence is not None else None
            ),
            key_points=list(record.key_points),
            topics=list(record.topics),
            metadata=dict(record.metadata),
            provenance=record.provenance,
            processing_ms=record.processing_ms,
            analyzed_at=record.analyzed_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class DocumentListResponseModel(BaseModel):
    files: List[DocumentModel]
    total: int
    page: int
    limit: int


class MetricsResponseModel(BaseModel):
    total_files: int
    success_rate: float
    average_processing_time: float
    uploads_today: int
    feedback_count: int
    processing_queue: int
    documents_by_type: Dict[str, int]
    analyses_by_provenance: Dict[str, int]

    @classmethod
    def from_domain(cls, metrics) -> "MetricsResponseModel":
        return cls(
            total_files=metrics.total_files,
            success_rate=metrics.success_rate,
            average_processing_time=metrics.average_processing_time,
            uploads_today=metrics.uploads_today,
            feedback_count=metrics.feedback_count,
            processing_queue=metrics.processing_queue,
            documents_by_type=dict(metrics.documents_by_type),
            analyses_by_provenance=dict(metrics.analyses_by_provenance),
        )
