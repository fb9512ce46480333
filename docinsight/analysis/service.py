"""Orchestrator wiring and the analysis entry point used by the API."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from docinsight.analysis.models import AnalysisConfig, AnalysisRequest, AnalysisResult
from docinsight.analysis.orchestrator import AnalysisOrchestrator
from docinsight.config import Settings, get_settings

logger = logging.getLogger(__name__)


class OrchestratorRegistry:
    """Builds the orchestrator lazily, once per settings object."""

    def __init__(self) -> None:
        self._orchestrator: Optional[AnalysisOrchestrator] = None
        self._settings: Optional[Settings] = None

    def resolve(self, settings: Settings) -> AnalysisOrchestrator:
        if self._orchestrator is None or self._settings is not settings:
            config = AnalysisConfig.from_settings(settings)
            self._orchestrator = AnalysisOrchestrator(config)
            self._settings = settings
            logger.info(
                f"Analysis providers: primary={config.primary_enabled}, "
                f"secondary={config.secondary_enabled}, "
                f"preferred={config.resolve_preferred()}"
            )
        return self._orchestrator


registry = OrchestratorRegistry()


def get_orchestrator() -> AnalysisOrchestrator:
    """FastAPI dependency returning the configured orchestrator."""
    return registry.resolve(get_settings())


@dataclass(slots=True)
class TimedAnalysis:
    result: AnalysisResult
    elapsed_ms: int


async def analyze_document(
    request: AnalysisRequest, orchestrator: AnalysisOrchestrator
) -> TimedAnalysis:
    """Run the orchestrator and measure how long the analysis took."""
    start_time = time.perf_counter()
    result = await orchestrator.analyze(request)
    elapsed_ms = int((time.perf_counter() - start_time) * 1000)
    return TimedAnalysis(result=result, elapsed_ms=elapsed_ms)
