"""HTTP route handlers for the document insight API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

import orjson
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from docinsight.analysis.models import AnalysisRequest
from docinsight.analysis.orchestrator import AnalysisOrchestrator
from docinsight.analysis.service import analyze_document, get_orchestrator
from docinsight.config import Settings, get_settings
from docinsight.documents.feedback import FeedbackSubmission, process_feedback
from docinsight.documents.metrics import compute_metrics
from docinsight.documents.models import DocumentRecord
from docinsight.documents.store import DocumentStore, get_document_store
from docinsight.exceptions import DocumentNotFoundError, PersistenceError

from .schemas import (
    AnalysisModel,
    AnalyzeDocumentRequestModel,
    AnalyzeDocumentResponseModel,
    DocumentListResponseModel,
    DocumentModel,
    FeedbackRequestModel,
    FeedbackResponseModel,
    MetricsResponseModel,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SAVE_FAILED_WARNING = "Failed to save analysis to database"


def _failure(status_code: int, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code, detail={"success": False, "error": message}
    )


def _describe_validation_error(exc: ValidationError) -> str:
    missing = [
        ".".join(str(part) for part in error["loc"])
        for error in exc.errors()
        if error["type"] == "missing"
    ]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"Invalid request: {location}: {first['msg']}" if location else first["msg"]


async def _load_request_model(
    http_request: Request, model_cls: Type[BaseModel], settings: Settings
) -> BaseModel:
    header_length = http_request.headers.get("content-length")
    if header_length:
        try:
            content_length: Optional[int] = int(header_length)
        except ValueError:
            content_length = None
        if content_length is not None and content_length > settings.max_payload_bytes:
            raise _failure(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                f"Payload exceeds {settings.max_payload_bytes} bytes",
            )

    body_bytes = await http_request.body()
    if body_bytes and len(body_bytes) > settings.max_payload_bytes:
        raise _failure(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            f"Payload exceeds {settings.max_payload_bytes} bytes",
        )

    if not body_bytes:
        data: Any = {}
    else:
        try:
            data = orjson.loads(body_bytes)
        except orjson.JSONDecodeError as exc:
            raise _failure(
                status.HTTP_400_BAD_REQUEST, f"Request body is not valid JSON: {exc}"
            ) from exc

    if not isinstance(data, dict):
        raise _failure(status.HTTP_400_BAD_REQUEST, "Request body must be a JSON object")

    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise _failure(
            status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc)
        ) from exc


async def load_analyze_request(http_request: Request) -> AnalyzeDocumentRequestModel:
    settings = get_settings()
    return await _load_request_model(http_request, AnalyzeDocumentRequestModel, settings)


async def load_feedback_request(http_request: Request) -> FeedbackRequestModel:
    settings = get_settings()
    return await _load_request_model(http_request, FeedbackRequestModel, settings)


@router.post("/v1/analyze-document", response_model=AnalyzeDocumentResponseModel)
async def analyze_document_endpoint(
    body: AnalyzeDocumentRequestModel = Depends(load_analyze_request),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    store: DocumentStore = Depends(get_document_store),
):
    try:
        request = AnalysisRequest(
            document_id=body.file_id,
            text=body.content,
            display_name=body.file_name,
            media_type=body.mime_type,
        )
        logger.info(f"Analyzing document: {request.display_name} ({request.document_id})")
        timed = await analyze_document(request, orchestrator)

        warning = None
        try:
            await store.upsert(
                DocumentRecord.from_analysis(request, timed.result, timed.elapsed_ms)
            )
        except PersistenceError as exc:
            logger.error(f"Database update error for {request.document_id}: {exc}")
            warning = SAVE_FAILED_WARNING

        response_payload = AnalyzeDocumentResponseModel(
            success=True,
            analysis=AnalysisModel.from_domain(timed.result),
            warning=warning,
        )
        content = {
            key: value
            for key, value in response_payload.model_dump().items()
            if value is not None
        }
        return JSONResponse(content=content)
    except Exception as exc:
        logger.exception(f"Error in analyze-document for {body.file_id}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(exc) or type(exc).__name__},
        )


@router.post("/v1/feedback", response_model=FeedbackResponseModel)
async def submit_feedback(
    body: FeedbackRequestModel = Depends(load_feedback_request),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    store: DocumentStore = Depends(get_document_store),
):
    settings = get_settings()
    submission = FeedbackSubmission(
        file_id=body.file_id,
        user_id=body.user_id,
        feedback_type=body.feedback_type,
        correct_value=body.correct_value,
        reason=body.reason,
    )
    try:
        outcome = await process_feedback(
            submission,
            store,
            orchestrator,
            confidence_boost=settings.feedback_confidence_boost,
        )
    except DocumentNotFoundError:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"success": False, "error": "File not found"},
        )
    except PersistenceError as exc:
        logger.error(f"Failed to store feedback for {body.file_id}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Failed to save feedback"},
        )

    message = (
        "Feedback processed and analysis improved"
        if outcome.improved
        else "Feedback recorded"
    )
    return FeedbackResponseModel(success=True, message=message, improved=outcome.improved)


@router.get("/v1/documents", response_model=DocumentListResponseModel)
async def list_documents(
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    type_filter: Optional[str] = Query(default=None, alias="type"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    store: DocumentStore = Depends(get_document_store),
):
    records, total = await store.search(
        search=search,
        status=status_filter,
        document_type=type_filter,
        page=page,
        limit=limit,
    )
    return DocumentListResponseModel(
        files=[DocumentModel.from_domain(record) for record in records],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/v1/documents/{file_id}", response_model=DocumentModel)
async def get_document(file_id: str, store: DocumentStore = Depends(get_document_store)):
    record = await store.get(file_id)
    if record is None:
        raise DocumentNotFoundError(file_id)
    return DocumentModel.from_domain(record)


@router.delete("/v1/documents/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    file_id: str, store: DocumentStore = Depends(get_document_store)
) -> Response:
    await store.delete(file_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/v1/metrics", response_model=MetricsResponseModel)
async def get_metrics(store: DocumentStore = Depends(get_document_store)) -> Dict[str, Any]:
    metrics = await compute_metrics(store)
    return MetricsResponseModel.from_domain(metrics).model_dump()
