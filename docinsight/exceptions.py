"""Exceptions raised inside the service."""

from typing import Optional


class DocInsightError(Exception):
    """Base exception for Document Insight."""


class ProviderError(DocInsightError):
    """A text-generation provider could not produce a usable answer."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


class ProviderTransportError(ProviderError):
    """Network failure, timeout or non-success status from a provider."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(provider, message)


class ProviderShapeError(ProviderError):
    """Provider answered, but not with the structured analysis we asked for."""


class DocumentNotFoundError(DocInsightError):
    """No document record exists for the identifier."""

    def __init__(self, file_id: str):
        self.file_id = file_id
        super().__init__(f"Document '{file_id}' not found")


class PersistenceError(DocInsightError):
    """The document store rejected a write."""
