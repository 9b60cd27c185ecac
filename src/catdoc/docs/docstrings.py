"""Generated docstrings written back into changed source files."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Literal

from catdoc.docs.generator import GenerationError, TextGenerator
from catdoc.index.discovery import md5_bytes
from catdoc.index.manager import ScanManager
from catdoc.jsonio import atomic_write_text
from catdoc.workspace.paths import to_workspace_relative

logger = logging.getLogger(__name__)

DocstringOutcome = Literal["written", "unchanged", "skipped", "failed"]

FILE_TYPES = {
    "py": "Python",
    "js": "JavaScript",
    "jsx": "JSX",
    "ts": "TypeScript",
    "tsx": "TSX",
}

DOCSTRING_PROMPT_TEMPLATE = """Add docstrings to the following {file_type} source file.

Document only what a reader would not get from the code itself: public APIs, \
complex logic, non-obvious parameters, return values and error cases. Leave \
simple, self-explanatory functions, getters and trivial components alone.

- TypeScript, TSX, JavaScript and JSX: JSDoc comments (/** ... */) with \
@param and @returns where they add information.
- Python: Google-style triple-quoted docstrings following PEP 257.

Improve an existing docstring only when it is missing something important. \
Do not change any code. Return the complete source file as plain text, \
without Markdown code fences.

Code:
{content}"""

_WRAPPING_FENCE = re.compile(r"\A\s*```[\w+-]*[ \t]*\n(.*?)\n?```\s*\Z", re.DOTALL)
_FENCE_LINE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*(?:\n|\Z)", re.MULTILINE)


def strip_code_fences(text: str) -> str:
    """Return the code inside a fenced response and drop any stray fence lines."""
    match = _WRAPPING_FENCE.match(text)
    if match is not None:
        text = match.group(1)
    return _FENCE_LINE.sub("", text)


class DocstringWriter:
    """Asks the generator for a documented copy of a file and writes it in place.

    A file whose content hash equals its entry in the tree snapshot is left
    alone unless forced. After a batch, the snapshot hashes of rewritten files
    are refreshed so the rewrite is not picked up as a pending change.
    """

    def __init__(
        self,
        generator: TextGenerator,
        scanner: ScanManager,
        *,
        max_prompt_chars: int = 24_000,
        concurrency: int = 3,
    ) -> None:
        self._generator = generator
        self._scanner = scanner
        self._root = scanner.root
        self._max_prompt_chars = max_prompt_chars
        self._concurrency = max(1, concurrency)

    def build_prompt(self, relative_path: str, content: str) -> str:
        extension = Path(relative_path).suffix.lstrip(".").lower()
        file_type = FILE_TYPES.get(extension, "Unknown")
        return DOCSTRING_PROMPT_TEMPLATE.format(file_type=file_type, content=content)

    async def write(self, path: str, *, force: bool = False) -> DocstringOutcome:
        """Document one file; the snapshot is not refreshed here."""
        relative = to_workspace_relative(self._root, path)
        target = self._root / relative
        try:
            original = await asyncio.to_thread(target.read_bytes)
        except OSError as exc:
            logger.warning("Could not read %s for docstrings: %s", relative, exc)
            return "failed"

        content_hash = md5_bytes(original)
        if not force:
            recorded = await asyncio.to_thread(self._scanner.find_file, relative)
            if recorded is not None and recorded.content_hash == content_hash:
                logger.debug("Skipping docstrings for %s: unchanged since last scan", relative)
                return "unchanged"

        content = original.decode("utf-8", errors="replace")
        prompt = self.build_prompt(relative, content)
        if len(prompt) > self._max_prompt_chars:
            # The whole file must come back, so it cannot be truncated.
            logger.warning(
                "Skipping docstrings for %s: prompt of %d chars exceeds the %d char cap",
                relative,
                len(prompt),
                self._max_prompt_chars,
            )
            return "skipped"

        try:
            response = await self._generator.generate(prompt)
        except GenerationError as exc:
            logger.error("Docstring generation failed for %s: %s", relative, exc)
            return "failed"
        documented = strip_code_fences(response)
        if not documented.strip():
            logger.error("Docstring generation for %s returned no code", relative)
            return "failed"
        if content.endswith("\n") and not documented.endswith("\n"):
            documented += "\n"

        current = await asyncio.to_thread(_read_if_present, target)
        if current is None or md5_bytes(current) != content_hash:
            logger.warning("Not writing docstrings into %s: file changed meanwhile", relative)
            return "skipped"
        await asyncio.to_thread(atomic_write_text, target, documented)
        logger.info("Wrote docstrings into %s", relative)
        return "written"

    async def write_many(
        self, paths: Iterable[str], *, force: bool = False
    ) -> dict[str, DocstringOutcome]:
        """Document the given files with bounded concurrency, then refresh snapshot hashes."""
        relatives = list(dict.fromkeys(to_workspace_relative(self._root, p) for p in paths))
        semaphore = asyncio.Semaphore(self._concurrency)

        async def run_one(relative: str) -> tuple[str, DocstringOutcome]:
            async with semaphore:
                return relative, await self.write(relative, force=force)

        outcomes = dict(await asyncio.gather(*(run_one(relative) for relative in relatives)))
        written = [relative for relative, outcome in outcomes.items() if outcome == "written"]
        if written:
            refreshed = await asyncio.to_thread(self._scanner.refresh_hashes, written)
            logger.info(
                "Wrote docstrings into %d files; refreshed %d snapshot hashes",
                len(written),
                refreshed,
            )
        return outcomes


def _read_if_present(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None
