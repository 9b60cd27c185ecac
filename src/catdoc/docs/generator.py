"""Summary generation through an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

import httpx

from catdoc.config import GeneratorConfig
from catdoc.docs.models import FileDocumentation, build_preview

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Please provide a concise technical summary of this {file_type} code file. \
Focus only on:
1. The main purpose of the file
2. Each method/function with a one-line description
3. Key data structures or types
Keep the summary under 200 words and use bullet points for clarity.

Code:
{content}"""

TRUNCATION_MARKER = "\n... [truncated]"


class GenerationError(Exception):
    """Raised when the text generation service fails or returns nothing usable."""


class TextGenerator(Protocol):
    """Anything that turns a prompt into generated text."""

    async def generate(self, prompt: str) -> str: ...


class ChatCompletionClient:
    """Async client for ``POST {base_url}/chat/completions``.

    Construction fails with ``ConfigurationError`` when no API key is
    available, so a missing credential surfaces at startup.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        *,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        key = api_key if api_key is not None else config.api_key()
        self._model = config.model
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Authorization": f"Bearer {key}"},
            timeout=config.request_timeout_seconds,
            transport=transport,
        )

    async def generate(self, prompt: str) -> str:
        payload = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            response = await self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise GenerationError(
                f"Generation request failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise GenerationError(f"Generation request failed: {exc}") from exc
        except ValueError as exc:
            raise GenerationError("Generation response was not valid JSON.") from exc
        return _completion_text(body)

    async def aclose(self) -> None:
        await self._client.aclose()


class SummaryGenerator:
    """Builds the summary prompt for a file and wraps the result as a record."""

    def __init__(self, generator: TextGenerator, *, max_prompt_chars: int = 24_000) -> None:
        self._generator = generator
        self._max_prompt_chars = max_prompt_chars

    def build_prompt(self, file_type: str, content: str) -> str:
        """Render the prompt, truncating file content so the prompt fits the cap."""
        overhead = len(PROMPT_TEMPLATE.format(file_type=file_type, content=""))
        room = max(0, self._max_prompt_chars - overhead)
        if len(content) > room:
            cut = max(0, room - len(TRUNCATION_MARKER))
            content = content[:cut] + TRUNCATION_MARKER
        return PROMPT_TEMPLATE.format(file_type=file_type, content=content)

    async def summarize(
        self,
        relative_path: str,
        content: str,
        *,
        content_hash: str,
        last_modified: str,
    ) -> FileDocumentation:
        file_type = Path(relative_path).suffix.lstrip(".")
        prompt = self.build_prompt(file_type, content)
        logger.debug("Requesting summary for %s (%d prompt chars)", relative_path, len(prompt))
        summary = await self._generator.generate(prompt)
        return FileDocumentation(
            path=relative_path,
            summary=summary,
            preview=build_preview(content),
            type=file_type,
            content_hash=content_hash,
            last_modified=last_modified,
            last_updated=datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace(
                "+00:00", "Z"
            ),
            content=content,
        )


def _completion_text(body: object) -> str:
    if not isinstance(body, dict):
        raise GenerationError("Generation response must be a JSON object.")
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        raise GenerationError("Generation response contained no choices.")
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    text = message.get("content") if isinstance(message, dict) else None
    if not isinstance(text, str) or not text.strip():
        raise GenerationError("Generation response was empty.")
    return text.strip()
