from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from catdoc.config import ConfigurationError, GeneratorConfig
from catdoc.docs import ChatCompletionClient, GenerationError, SummaryGenerator
from catdoc.docs.generator import TRUNCATION_MARKER

CONFIG = GeneratorConfig(model="test-model", base_url="https://llm.test/v1", api_key_env="K")


def _completion(text: str) -> dict[str, object]:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def _client(handler: httpx.MockTransport) -> ChatCompletionClient:
    return ChatCompletionClient(CONFIG, api_key="test-key", transport=handler)


def test_client_posts_chat_completion_request() -> None:
    seen: list[httpx.Request] = []

    def handle(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_completion("  - summary  "))

    async def run() -> str:
        client = _client(httpx.MockTransport(handle))
        try:
            return await client.generate("prompt text")
        finally:
            await client.aclose()

    assert asyncio.run(run()) == "- summary"
    (request,) = seen
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-key"
    body = json.loads(request.content)
    assert body["model"] == "test-model"
    assert body["messages"] == [{"role": "user", "content": "prompt text"}]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="upstream down"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json=_completion("   ")),
    ],
)
def test_client_failures_become_generation_errors(response: httpx.Response) -> None:
    async def run() -> None:
        client = _client(httpx.MockTransport(lambda request: response))
        try:
            await client.generate("prompt")
        finally:
            await client.aclose()

    with pytest.raises(GenerationError):
        asyncio.run(run())


def test_transport_errors_become_generation_errors() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def run() -> None:
        client = _client(httpx.MockTransport(refuse))
        try:
            await client.generate("prompt")
        finally:
            await client.aclose()

    with pytest.raises(GenerationError, match="connection refused"):
        asyncio.run(run())


def test_missing_api_key_fails_at_construction(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("K", raising=False)

    with pytest.raises(ConfigurationError):
        ChatCompletionClient(CONFIG)


class _RecordingGenerator:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return "- summary"


def test_prompt_names_file_type_and_is_capped() -> None:
    summarizer = SummaryGenerator(_RecordingGenerator(), max_prompt_chars=600)

    short = summarizer.build_prompt("ts", "const a = 1;")
    long = summarizer.build_prompt("py", "x" * 5000)

    assert "concise technical summary of this ts code file" in short
    assert short.endswith("const a = 1;")
    assert len(long) <= 600
    assert long.endswith(TRUNCATION_MARKER)


def test_summarize_builds_record_with_preview_and_hash() -> None:
    generator = _RecordingGenerator()
    summarizer = SummaryGenerator(generator)
    content = "def foo():\n    pass\n"

    doc = asyncio.run(
        summarizer.summarize(
            "src/a.py",
            content,
            content_hash="hash-1",
            last_modified="2024-01-01T00:00:00.000Z",
        )
    )

    assert doc.path == "src/a.py"
    assert doc.type == "py"
    assert doc.summary == "- summary"
    assert doc.preview == "def foo():\n    pass\n"
    assert doc.content_hash == "hash-1"
    assert doc.content == content
    assert "def foo():" in generator.prompts[0]
