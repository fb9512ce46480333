"""
Provider fallback for document analysis.

The preferred provider is tried once, then the other configured provider,
then a deterministic synthetic result. Provider failures never reach the
caller.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Tuple

import anyio

from docinsight.analysis.models import (
    AnalysisConfig,
    AnalysisRequest,
    AnalysisResult,
    PROVIDER_NAMES,
    ProviderName,
    Provenance,
)
from docinsight.analysis.prompts import (
    REFINE_SYSTEM_PROMPT,
    build_analysis_prompt,
    build_primary_prompt,
)
from docinsight.analysis.providers import AnalysisProvider, build_providers
from docinsight.analysis.schema import ProviderAnalysis, parse_analysis
from docinsight.analysis.synthetic import synthetic_result
from docinsight.exceptions import ProviderError

logger = logging.getLogger(__name__)

_PROVENANCE: Dict[Tuple[ProviderName, bool], Provenance] = {
    ("primary", False): "primary",
    ("primary", True): "secondary_fallback_to_primary",
    ("secondary", False): "secondary",
    ("secondary", True): "primary_fallback_to_secondary",
}


def _other(name: ProviderName) -> ProviderName:
    return "secondary" if name == "primary" else "primary"


class AnalysisOrchestrator:
    """Turns an analysis request into a well-formed result."""

    def __init__(
        self,
        config: AnalysisConfig,
        providers: Optional[Mapping[ProviderName, AnalysisProvider]] = None,
    ):
        """
        Args:
            config: Provider configuration
            providers: Providers keyed by "primary"/"secondary"; built from
                ``config`` when omitted. A provider is only used when the
                configuration enables it.
        """
        self.config = config
        if providers is None:
            providers = build_providers(config)
        self._providers: Dict[ProviderName, AnalysisProvider] = {
            name: provider
            for name, provider in providers.items()
            if name in PROVIDER_NAMES and config.is_enabled(name)
        }

    def ordered_providers(self) -> List[Tuple[ProviderName, AnalysisProvider]]:
        """Configured providers, preferred first."""
        first = self.config.resolve_preferred()
        ordered: List[Tuple[ProviderName, AnalysisProvider]] = []
        for name in (first, _other(first)):
            provider = self._providers.get(name)
            if provider is not None:
                ordered.append((name, provider))
        return ordered

    def prompt_for(self, name: ProviderName, request: AnalysisRequest) -> str:
        if name == "primary":
            return build_primary_prompt(request, self.config.truncation_limit)
        return build_analysis_prompt(request, self.config.truncation_limit)

    async def _attempt(
        self,
        name: ProviderName,
        provider: AnalysisProvider,
        request: AnalysisRequest,
    ) -> Optional[ProviderAnalysis]:
        prompt = self.prompt_for(name, request)
        try:
            with anyio.fail_after(self.config.timeout_seconds):
                raw = await provider.complete(prompt)
            return parse_analysis(name, raw)
        except TimeoutError:
            logger.warning(
                f"Provider {name} timed out after {self.config.timeout_seconds}s "
                f"for document {request.document_id}"
            )
        except ProviderError as exc:
            logger.warning(
                f"Provider {name} failed for document {request.document_id}: {exc.message}"
            )
        except Exception:
            logger.exception(
                f"Unexpected error from provider {name} for document {request.document_id}"
            )
        return None

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Analyze one document.

        Each configured provider is attempted at most once, in preference
        order. Never raises for a well-shaped request.
        """
        for index, (name, provider) in enumerate(self.ordered_providers()):
            analysis = await self._attempt(name, provider, request)
            if analysis is None:
                continue
            provenance = _PROVENANCE[(name, index > 0)]
            logger.info(
                f"Analyzed document {request.document_id} via {provenance} "
                f"(type={analysis.document_type}, confidence={analysis.confidence:.2f})"
            )
            return AnalysisResult(
                summary=analysis.summary,
                key_points=list(analysis.key_points),
                document_type=analysis.document_type,
                confidence=analysis.confidence,
                topics=list(analysis.topics),
                provenance=provenance,
                metadata=dict(analysis.metadata),
            )

        logger.warning(
            f"No provider produced an analysis for document {request.document_id}, "
            "using synthetic result"
        )
        return synthetic_result(request)

    async def refine(self, prompt: str) -> Optional[str]:
        """
        Ask the providers, preferred first, for a plain-text answer.

        Returns None when every configured provider fails.
        """
        for name, provider in self.ordered_providers():
            rendered = f"{REFINE_SYSTEM_PROMPT}\n\n{prompt}" if name == "primary" else prompt
            try:
                with anyio.fail_after(self.config.timeout_seconds):
                    answer = await provider.complete(rendered, json_output=False)
            except TimeoutError:
                logger.warning(f"Provider {name} timed out while refining feedback")
                continue
            except ProviderError as exc:
                logger.warning(f"Provider {name} failed while refining feedback: {exc.message}")
                continue
            except Exception:
                logger.exception(f"Unexpected error from provider {name} while refining feedback")
                continue
            answer = answer.strip()
            if answer:
                return answer
        return None


async def analyze(
    request: AnalysisRequest,
    config: AnalysisConfig,
    providers: Optional[Mapping[ProviderName, AnalysisProvider]] = None,
) -> AnalysisResult:
    """Analyze ``request`` with a one-off orchestrator."""
    return await AnalysisOrchestrator(config, providers).analyze(request)
