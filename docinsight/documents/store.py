"""Document record storage."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from docinsight.documents.models import DocumentRecord, FeedbackRecord, utcnow
from docinsight.exceptions import DocumentNotFoundError

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Persistence for document records and feedback.

    Implementations raise ``PersistenceError`` when a write cannot be stored.
    """

    @abstractmethod
    async def upsert(self, record: DocumentRecord) -> DocumentRecord:
        """Insert or replace the record with the same ``file_id``."""

    @abstractmethod
    async def get(self, file_id: str) -> Optional[DocumentRecord]:
        """Return the record or None."""

    @abstractmethod
    async def delete(self, file_id: str) -> None:
        """Remove a record; raises DocumentNotFoundError when absent."""

    @abstractmethod
    async def list_all(self) -> List[DocumentRecord]:
        """Every record, newest first."""

    @abstractmethod
    async def add_feedback(self, feedback: FeedbackRecord) -> None:
        """Append a feedback entry."""

    @abstractmethod
    async def list_feedback(self, file_id: Optional[str] = None) -> List[FeedbackRecord]:
        """Feedback entries, optionally for one document."""

    async def search(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        document_type: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[DocumentRecord], int]:
        """
        Filter and paginate records.

        ``search`` matches file name or summary case-insensitively. ``page``
        is 1-based. Returns the page and the total number of matches.
        """
        records = await self.list_all()
        needle = search.lower() if search else None

        def _matches(record: DocumentRecord) -> bool:
            if status and record.status != status:
                return False
            if document_type and record.document_type != document_type:
                return False
            if needle:
                haystack = f"{record.file_name}\n{record.summary or ''}".lower()
                if needle not in haystack:
                    return False
            return True

        matched = [record for record in records if _matches(record)]
        start = (page - 1) * limit
        return matched[start : start + limit], len(matched)


class InMemoryDocumentStore(DocumentStore):
    """Process-local store, suitable for development and tests."""

    def __init__(self) -> None:
        self._records: Dict[str, DocumentRecord] = {}
        self._feedback: List[FeedbackRecord] = []

    async def upsert(self, record: DocumentRecord) -> DocumentRecord:
        existing = self._records.get(record.file_id)
        if existing is not None:
            record = replace(record, created_at=existing.created_at, updated_at=utcnow())
        self._records[record.file_id] = record
        logger.debug(f"Stored document {record.file_id}")
        return record

    async def get(self, file_id: str) -> Optional[DocumentRecord]:
        return self._records.get(file_id)

    async def delete(self, file_id: str) -> None:
        if self._records.pop(file_id, None) is None:
            raise DocumentNotFoundError(file_id)
        self._feedback = [fb for fb in self._feedback if fb.file_id != file_id]
        logger.info(f"Deleted document {file_id}")

    async def list_all(self) -> List[DocumentRecord]:
        return sorted(self._records.values(), key=lambda r: r.created_at, reverse=True)

    async def add_feedback(self, feedback: FeedbackRecord) -> None:
        self._feedback.append(feedback)

    async def list_feedback(self, file_id: Optional[str] = None) -> List[FeedbackRecord]:
        if file_id is None:
            return list(self._feedback)
        return [fb for fb in self._feedback if fb.file_id == file_id]


_store: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    """FastAPI dependency returning the process-wide store."""
    global _store
    if _store is None:
        _store = InMemoryDocumentStore()
    return _store
