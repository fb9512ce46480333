"""Pytest configuration for tests."""

import json
from typing import List, Optional, Sequence, Union

import anyio
import pytest

from docinsight.analysis.models import AnalysisConfig
from docinsight.analysis.providers import AnalysisProvider
from docinsight.exceptions import ProviderTransportError


VALID_ANALYSIS = {
    "summary": "Quarterly revenue grew 12 percent. Costs were flat.",
    "key_points": ["Revenue up 12%", "Costs flat", "Outlook positive"],
    "document_type": "financial",
    "confidence": 0.92,
    "topics": ["revenue", "costs"],
    "metadata": {"quarter": "Q3"},
}


class FakeProvider(AnalysisProvider):
    """Scripted provider that records every prompt it receives."""

    def __init__(
        self,
        name: str,
        responses: Sequence[Union[str, Exception]],
        delay: Optional[float] = None,
    ):
        self.name = name
        self._responses = list(responses)
        self.delay = delay
        self.prompts: List[str] = []
        self.json_flags: List[bool] = []

    def script(self, *responses: Union[str, Exception]) -> None:
        self._responses = list(responses)

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def complete(self, prompt: str, json_output: bool = True) -> str:
        self.prompts.append(prompt)
        self.json_flags.append(json_output)
        if self.delay:
            await anyio.sleep(self.delay)
        response = self._responses[min(len(self.prompts), len(self._responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"


@pytest.fixture
def analysis_payload() -> dict:
    return json.loads(json.dumps(VALID_ANALYSIS))


@pytest.fixture
def valid_answer(analysis_payload) -> str:
    return json.dumps(analysis_payload)


@pytest.fixture
def both_config() -> AnalysisConfig:
    return AnalysisConfig(
        primary_endpoint="http://ollama.test",
        secondary_api_key="sk-test",
        timeout_seconds=5.0,
    )


@pytest.fixture
def make_provider():
    def _make(name: str, *responses: Union[str, Exception], delay: Optional[float] = None):
        return FakeProvider(name, responses or [ProviderTransportError(name, "down")], delay)

    return _make
