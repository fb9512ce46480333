"""Domain models shared by the analysis providers and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional, Tuple

if TYPE_CHECKING:
    from docinsight.config import Settings


ProviderName = Literal["primary", "secondary"]
PROVIDER_NAMES: Tuple[ProviderName, ...] = ("primary", "secondary")
Provenance = Literal[
    "primary",
    "primary_fallback_to_secondary",
    "secondary",
    "secondary_fallback_to_primary",
    "synthetic",
]
ConfidenceLevel = Literal["low", "medium", "high"]

DOCUMENT_TYPES = (
    "report",
    "contract",
    "invoice",
    "letter",
    "presentation",
    "technical_doc",
    "academic",
    "legal",
    "financial",
    "other",
)

DISABLED_SENTINEL = "disabled"

LOW_CONFIDENCE_THRESHOLD = 0.7
HIGH_CONFIDENCE_THRESHOLD = 0.9


def confidence_level(confidence: float) -> ConfidenceLevel:
    """Bucket a confidence score the way the dashboard displays it."""
    if confidence >= HIGH_CONFIDENCE_THRESHOLD:
        return "high"
    if confidence >= LOW_CONFIDENCE_THRESHOLD:
        return "medium"
    return "low"


@dataclass(slots=True)
class AnalysisRequest:
    document_id: str
    text: str
    display_name: str
    media_type: str


@dataclass(slots=True)
class AnalysisResult:
    summary: str
    key_points: List[str]
    document_type: str
    confidence: float
    topics: List[str]
    provenance: Provenance
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def confidence_level(self) -> ConfidenceLevel:
        return confidence_level(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "key_points": list(self.key_points),
            "document_type": self.document_type,
            "confidence": self.confidence,
            "confidence_level": self.confidence_level,
            "topics": list(self.topics),
            "metadata": dict(self.metadata),
            "provenance": self.provenance,
        }


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    """Explicit provider configuration handed to the orchestrator."""

    preferred_provider: Optional[ProviderName] = None
    primary_endpoint: Optional[str] = None
    primary_model: str = "llama3.2"
    primary_temperature: float = 0.1
    primary_num_ctx: int = 8192
    secondary_api_key: Optional[str] = None
    secondary_model: str = "gpt-4o-mini"
    secondary_base_url: Optional[str] = None
    secondary_temperature: float = 0.3
    secondary_max_tokens: int = 1000
    truncation_limit: int = 8000
    timeout_seconds: float = 60.0

    @property
    def primary_enabled(self) -> bool:
        endpoint = (self.primary_endpoint or "").strip()
        return bool(endpoint) and endpoint.lower() != DISABLED_SENTINEL

    @property
    def secondary_enabled(self) -> bool:
        return bool(self.secondary_api_key)

    def is_enabled(self, provider: ProviderName) -> bool:
        if provider == "primary":
            return self.primary_enabled
        return self.secondary_enabled

    def resolve_preferred(self) -> ProviderName:
        """
        Pick the provider attempted first.

        An explicit preference wins only when that provider is configured;
        otherwise the primary is preferred whenever it is enabled.
        """
        if self.preferred_provider and self.is_enabled(self.preferred_provider):
            return self.preferred_provider
        return "primary" if self.primary_enabled else "secondary"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AnalysisConfig":
        return cls(
            preferred_provider=settings.preferred_provider,
            primary_endpoint=settings.ollama_base_url,
            primary_model=settings.ollama_model,
            primary_temperature=settings.ollama_temperature,
            primary_num_ctx=settings.ollama_num_ctx,
            secondary_api_key=settings.openai_api_key,
            secondary_model=settings.openai_model,
            secondary_base_url=settings.openai_base_url,
            secondary_temperature=settings.openai_temperature,
            secondary_max_tokens=settings.openai_max_tokens,
            truncation_limit=settings.analysis_truncation_limit,
            timeout_seconds=settings.provider_timeout_seconds,
        )
