import json

import httpx
import pytest

from docinsight.analysis.models import AnalysisConfig
from docinsight.analysis.providers import OllamaProvider, OpenAIProvider, build_providers
from docinsight.exceptions import ProviderShapeError, ProviderTransportError


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _chat_completion(content):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


@pytest.mark.anyio
async def test_ollama_sends_generate_request(valid_answer):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"model": "llama3.2", "response": valid_answer, "done": True})

    async with _client(handler) as client:
        provider = OllamaProvider(
            "http://ollama.test/", model="llama3.2", temperature=0.1, num_ctx=4096, client=client
        )
        answer = await provider.complete("PROMPT")

    assert answer == valid_answer
    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "http://ollama.test/api/generate"
    body = json.loads(seen[0].content)
    assert body == {
        "model": "llama3.2",
        "prompt": "PROMPT",
        "format": "json",
        "stream": False,
        "options": {"temperature": 0.1, "num_ctx": 4096},
    }


@pytest.mark.anyio
async def test_ollama_plain_text_mode_omits_format():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "format" not in json.loads(request.content)
        return httpx.Response(200, json={"response": "plain answer"})

    async with _client(handler) as client:
        provider = OllamaProvider("http://ollama.test", client=client)
        assert await provider.complete("PROMPT", json_output=False) == "plain answer"


@pytest.mark.anyio
async def test_ollama_error_status_is_transport_error():
    async with _client(lambda request: httpx.Response(503, text="busy")) as client:
        provider = OllamaProvider("http://ollama.test", client=client)
        with pytest.raises(ProviderTransportError) as excinfo:
            await provider.complete("PROMPT")
    assert excinfo.value.status_code == 503


@pytest.mark.anyio
async def test_ollama_connection_failure_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        provider = OllamaProvider("http://ollama.test", client=client)
        with pytest.raises(ProviderTransportError):
            await provider.complete("PROMPT")


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json={"done": True}),
        httpx.Response(200, json=["response"]),
    ],
)
async def test_ollama_bad_envelope_is_shape_error(response):
    async with _client(lambda request: response) as client:
        provider = OllamaProvider("http://ollama.test", client=client)
        with pytest.raises(ProviderShapeError):
            await provider.complete("PROMPT")


@pytest.mark.anyio
async def test_openai_sends_chat_completion(valid_answer):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_chat_completion(valid_answer))

    async with _client(handler) as client:
        provider = OpenAIProvider(
            "sk-test", model="gpt-4o-mini", temperature=0.3, max_tokens=1000, http_client=client
        )
        answer = await provider.complete("PROMPT")

    assert answer == valid_answer
    assert len(seen) == 1
    request = seen[0]
    assert request.url.path.endswith("/chat/completions")
    assert request.headers["authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o-mini"
    assert body["temperature"] == 0.3
    assert body["max_tokens"] == 1000
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert body["messages"][1]["content"] == "PROMPT"


@pytest.mark.anyio
async def test_openai_error_status_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(401, json={"error": {"message": "bad key", "type": "invalid_request_error"}})

    async with _client(handler) as client:
        provider = OpenAIProvider("sk-bad", http_client=client)
        with pytest.raises(ProviderTransportError) as excinfo:
            await provider.complete("PROMPT")

    assert excinfo.value.status_code == 401
    assert len(calls) == 1


@pytest.mark.anyio
async def test_openai_missing_content_is_shape_error():
    async with _client(lambda request: httpx.Response(200, json=_chat_completion(None))) as client:
        provider = OpenAIProvider("sk-test", http_client=client)
        with pytest.raises(ProviderShapeError):
            await provider.complete("PROMPT")


def test_build_providers_respects_configuration():
    assert build_providers(AnalysisConfig()) == {}
    assert build_providers(AnalysisConfig(primary_endpoint="DISABLED")) == {}

    providers = build_providers(
        AnalysisConfig(primary_endpoint="http://ollama.test", secondary_api_key="sk-test")
    )
    assert isinstance(providers["primary"], OllamaProvider)
    assert isinstance(providers["secondary"], OpenAIProvider)
