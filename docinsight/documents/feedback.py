"""Correction feedback: record it and, when possible, improve the analysis."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from docinsight.analysis.orchestrator import AnalysisOrchestrator
from docinsight.analysis.prompts import build_refine_prompt
from docinsight.analysis.schema import is_known_document_type, normalize_document_type
from docinsight.documents.models import DocumentRecord, FeedbackRecord, FeedbackType, utcnow
from docinsight.documents.store import DocumentStore
from docinsight.exceptions import DocumentNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5


@dataclass(slots=True)
class FeedbackSubmission:
    file_id: str
    user_id: str
    feedback_type: FeedbackType
    correct_value: Optional[str] = None
    reason: Optional[str] = None


@dataclass(slots=True)
class FeedbackOutcome:
    feedback: FeedbackRecord
    record: DocumentRecord
    improved: bool


def boosted_confidence(confidence: Optional[float], boost: float) -> float:
    base = DEFAULT_CONFIDENCE if confidence is None else confidence
    return min(1.0, base + boost)


def _apply_improvement(
    record: DocumentRecord, feedback_type: FeedbackType, improved_value: str, boost: float
) -> DocumentRecord:
    now = utcnow()
    metadata = dict(record.metadata)
    metadata["feedback_applied"] = True
    metadata["last_updated"] = now.isoformat()
    changes = {
        "confidence": boosted_confidence(record.confidence, boost),
        "metadata": metadata,
        "updated_at": now,
    }
    if feedback_type == "summary":
        changes["summary"] = improved_value
    else:
        changes["document_type"] = improved_value
    return replace(record, **changes)


def _resolve_classification(answer: str, correct_value: str) -> Optional[str]:
    """
    Pick the document type to store for a classification correction.

    A provider answer outside the vocabulary is not trusted; the user's value
    is used instead when it names a known type.
    """
    if is_known_document_type(answer):
        return normalize_document_type(answer)
    logger.warning(f"Provider classification {answer!r} is not a known document type")
    if is_known_document_type(correct_value):
        return normalize_document_type(correct_value)
    return None


async def process_feedback(
    submission: FeedbackSubmission,
    store: DocumentStore,
    orchestrator: AnalysisOrchestrator,
    confidence_boost: float = 0.1,
) -> FeedbackOutcome:
    """
    Store a correction and try to improve the stored analysis with it.

    Provider failures only mean the analysis is left as it was; the feedback
    itself is always recorded.

    Raises:
        DocumentNotFoundError: no record for ``submission.file_id``
        PersistenceError: the store rejected a write
    """
    record = await store.get(submission.file_id)
    if record is None:
        raise DocumentNotFoundError(submission.file_id)

    logger.info(
        f"Processing {submission.feedback_type} feedback for file "
        f"{submission.file_id} from user {submission.user_id}"
    )
    original_value = (
        record.summary if submission.feedback_type == "summary" else record.document_type
    )

    improved = False
    if submission.correct_value and orchestrator.ordered_providers():
        prompt = build_refine_prompt(
            submission.feedback_type,
            original_value,
            submission.correct_value,
            submission.reason,
            record.content_preview,
        )
        improved_value = await orchestrator.refine(prompt)
        if improved_value and submission.feedback_type == "classification":
            improved_value = _resolve_classification(
                improved_value, submission.correct_value
            )
        if improved_value:
            record = _apply_improvement(
                record, submission.feedback_type, improved_value, confidence_boost
            )
            record = await store.upsert(record)
            improved = True
            logger.info(f"Updated file {submission.file_id} with improved analysis")
        else:
            logger.warning(
                f"Could not improve analysis for file {submission.file_id}; "
                "feedback stored without changes"
            )

    feedback = FeedbackRecord(
        file_id=submission.file_id,
        user_id=submission.user_id,
        feedback_type=submission.feedback_type,
        original_value=original_value,
        correct_value=submission.correct_value,
        reason=submission.reason,
        applied=improved,
    )
    await store.add_feedback(feedback)
    return FeedbackOutcome(feedback=feedback, record=record, improved=improved)
