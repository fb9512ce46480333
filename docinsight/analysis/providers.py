"""
Text-generation providers used by the analysis orchestrator.

Each provider performs exactly one outbound request per call and reports
every failure as a ``ProviderError`` subclass; retries and fallback are the
orchestrator's concern.
"""

from typing import Any, Dict, Optional
import logging
from abc import ABC, abstractmethod

import httpx
import openai
import orjson

from docinsight.analysis.models import AnalysisConfig
from docinsight.analysis.prompts import REFINE_SYSTEM_PROMPT, SYSTEM_PROMPT
from docinsight.exceptions import ProviderShapeError, ProviderTransportError

logger = logging.getLogger(__name__)


class AnalysisProvider(ABC):
    """Abstract base class for text-generation providers."""

    name: str

    @abstractmethod
    async def complete(self, prompt: str, json_output: bool = True) -> str:
        """
        Send one prompt and return the model's text answer.

        Args:
            prompt: Fully rendered prompt
            json_output: Ask the provider for structured JSON output

        Raises:
            ProviderTransportError: network failure or non-success status
            ProviderShapeError: the response envelope is not what the API documents
        """


class OllamaProvider(AnalysisProvider):
    """Ollama-compatible generate endpoint, the primary provider."""

    name = "primary"

    def __init__(
        self,
        base_url: str,
        model: str = "llama3.2",
        temperature: float = 0.1,
        num_ctx: int = 8192,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Ollama provider.

        Args:
            base_url: Ollama server URL (e.g. http://localhost:11434)
            model: Ollama model name (e.g., llama3.2, mistral)
            temperature: Sampling temperature
            num_ctx: Context window requested from the server
            timeout: Request timeout in seconds
            client: Optional shared client; one is created per call otherwise
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.num_ctx = num_ctx
        self.timeout = timeout
        self._client = client
        logger.info(f"Initialized Ollama provider with model: {model} at {self.base_url}")

    def build_payload(self, prompt: str, json_output: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_ctx": self.num_ctx,
            },
        }
        if json_output:
            payload["format"] = "json"
        return payload

    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        response = await client.post(f"{self.base_url}/api/generate", json=payload)
        response.raise_for_status()
        return response

    async def complete(self, prompt: str, json_output: bool = True) -> str:
        payload = self.build_payload(prompt, json_output)
        try:
            if self._client is not None:
                response = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, payload)
        except httpx.HTTPStatusError as exc:
            raise ProviderTransportError(
                self.name,
                f"Ollama returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderTransportError(self.name, f"Ollama request failed: {exc}") from exc

        try:
            result = orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            raise ProviderShapeError(self.name, "Ollama body is not JSON") from exc

        content = result.get("response") if isinstance(result, dict) else None
        if not isinstance(content, str):
            raise ProviderShapeError(self.name, "Ollama body has no 'response' text")
        return content


class OpenAIProvider(AnalysisProvider):
    """OpenAI chat completions API, the secondary provider."""

    name = "secondary"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 1000,
        timeout: float = 60.0,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(self, prompt: str, json_output: bool = True) -> str:
        system_prompt = SYSTEM_PROMPT if json_output else REFINE_SYSTEM_PROMPT
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APIStatusError as exc:
            raise ProviderTransportError(
                self.name,
                f"OpenAI API error: {exc.status_code}",
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise ProviderTransportError(self.name, f"OpenAI request failed: {exc}") from exc

        if not response.choices:
            raise ProviderShapeError(self.name, "OpenAI response has no choices")
        content = response.choices[0].message.content
        if not isinstance(content, str):
            raise ProviderShapeError(self.name, "OpenAI response has no message content")
        return content


def build_providers(
    config: AnalysisConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, AnalysisProvider]:
    """Instantiate every provider the configuration enables."""
    providers: Dict[str, AnalysisProvider] = {}
    if config.primary_enabled:
        providers["primary"] = OllamaProvider(
            base_url=config.primary_endpoint or "",
            model=config.primary_model,
            temperature=config.primary_temperature,
            num_ctx=config.primary_num_ctx,
            timeout=config.timeout_seconds,
            client=http_client,
        )
    if config.secondary_enabled:
        providers["secondary"] = OpenAIProvider(
            api_key=config.secondary_api_key or "",
            model=config.secondary_model,
            temperature=config.secondary_temperature,
            max_tokens=config.secondary_max_tokens,
            timeout=config.timeout_seconds,
            base_url=config.secondary_base_url,
            http_client=http_client,
        )
        logger.info(f"Initialized OpenAI provider with model: {config.secondary_model}")
    return providers
