"""Aggregate usage metrics over stored documents."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from docinsight.documents.models import utcnow
from docinsight.documents.store import DocumentStore


@dataclass(slots=True)
class UsageMetrics:
    total_files: int
    success_rate: float
    average_processing_time: float
    uploads_today: int
    feedback_count: int
    # analyses run inline with the request, so nothing is ever queued
    processing_queue: int = 0
    documents_by_type: Dict[str, int] = field(default_factory=dict)
    analyses_by_provenance: Dict[str, int] = field(default_factory=dict)


async def compute_metrics(store: DocumentStore, now: Optional[datetime] = None) -> UsageMetrics:
    """
    Summarise the store.

    ``success_rate`` is the percentage of analysed documents whose analysis
    came from a provider rather than the synthetic fallback.
    """
    now = now or utcnow()
    records = await store.list_all()
    feedback = await store.list_feedback()

    analysed = [record for record in records if record.provenance is not None]
    provider_backed = sum(1 for record in analysed if record.provenance != "synthetic")
    success_rate = round(100.0 * provider_backed / len(analysed), 1) if analysed else 0.0

    timings = [record.processing_ms for record in records if record.processing_ms is not None]
    average = round(sum(timings) / len(timings), 1) if timings else 0.0

    today = now.date()
    uploads_today = sum(1 for record in records if record.created_at.date() == today)

    return UsageMetrics(
        total_files=len(records),
        success_rate=success_rate,
        average_processing_time=average,
        uploads_today=uploads_today,
        feedback_count=len(feedback),
        documents_by_type=dict(
            Counter(record.document_type for record in records if record.document_type)
        ),
        analyses_by_provenance=dict(Counter(record.provenance for record in analysed)),
    )
