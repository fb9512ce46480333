"""Prompt templates for document analysis and feedback refinement."""

from __future__ import annotations

from typing import Optional, Tuple

from docinsight.analysis.models import DOCUMENT_TYPES, AnalysisRequest

TRUNCATION_MARKER = "\n... (content truncated)"

SYSTEM_PROMPT = (
    "You are a document analysis expert. Analyze documents and provide "
    "structured insights in JSON format. Be accurate and concise."
)

REFINE_SYSTEM_PROMPT = (
    "You are a document analysis expert. Learn from user feedback and "
    "provide improved analysis."
)


def content_label(media_type: str) -> str:
    """Coarse, human-readable label for a MIME type."""
    if "pdf" in media_type:
        return "PDF document"
    if "text" in media_type:
        return "text document"
    if "image" in media_type:
        return "image document"
    return "document"


def truncate_text(text: str, limit: int) -> Tuple[str, bool]:
    """Cut ``text`` to its first ``limit`` characters."""
    if len(text) <= limit:
        return text, False
    return text[:limit], True


def build_analysis_prompt(request: AnalysisRequest, truncation_limit: int) -> str:
    """User prompt asking for the structured analysis of one document."""
    label = content_label(request.media_type)
    content, truncated = truncate_text(request.text, truncation_limit)
    marker = TRUNCATION_MARKER if truncated else ""
    types = ", ".join(DOCUMENT_TYPES)

    return f"""Analyze this {label} titled "{request.display_name}" and provide:

1. SUMMARY: A concise 2-3 sentence summary of the main content
2. KEY_POINTS: List 3-5 most important points or findings
3. DOCUMENT_TYPE: Classify as one of: {types}
4. CONFIDENCE: Rate your analysis confidence from 0.0 to 1.0
5. TOPICS: List 2-4 main topics/themes
6. METADATA: Optional object of extracted facts such as dates, names and amounts

Content to analyze:
{content}{marker}

Respond with valid JSON only, no markdown or explanations, using these exact keys:
{{
  "summary": "string",
  "key_points": ["string"],
  "document_type": "one of the types above",
  "confidence": 0.0,
  "topics": ["string"],
  "metadata": {{}}
}}"""


def build_primary_prompt(request: AnalysisRequest, truncation_limit: int) -> str:
    """Single-string prompt for completion endpoints without a system role."""
    return f"{SYSTEM_PROMPT}\n\n{build_analysis_prompt(request, truncation_limit)}"


def build_refine_prompt(
    feedback_type: str,
    previous_value: Optional[str],
    correct_value: str,
    reason: Optional[str],
    content_preview: Optional[str],
) -> str:
    """Prompt asking a provider to improve a summary or classification."""
    reason_text = reason or "not given"
    if feedback_type == "summary":
        prompt = (
            f'The previous summary was: "{previous_value or ""}". '
            f'User feedback indicates the correct summary should be: "{correct_value}". '
            f'Reason: "{reason_text}". '
            "Please provide an improved summary for this document. "
            "Reply with the summary text only."
        )
    else:
        prompt = (
            f'The previous classification was: "{previous_value or ""}". '
            f'User feedback indicates the correct classification should be: "{correct_value}". '
            f'Reason: "{reason_text}". '
            f"Please provide an improved classification, answering with exactly one of: "
            f"{', '.join(DOCUMENT_TYPES)}."
        )
    if content_preview:
        prompt += f"\n\nOriginal content: {content_preview}"
    return prompt
