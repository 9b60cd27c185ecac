"""Command line entry point: scan, detect changes, generate, write docstrings and watch."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from catdoc.config import CatdocConfig, CliOverrides, ConfigurationError, load_effective_config
from catdoc.docs.docstrings import DocstringWriter
from catdoc.docs.generator import ChatCompletionClient
from catdoc.docs.html import write_html
from catdoc.docs.store import DocumentationStore
from catdoc.index.manager import ScanManager
from catdoc.logging.events import JsonlEventLog
from catdoc.logging.setup import configure_logging
from catdoc.pipeline.service import DocumentationPipeline, build_context
from catdoc.workspace.paths import PathOutsideWorkspaceError
from catdoc.workspace.vcs import git_changed_paths

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for the catdoc command."""
    parser = argparse.ArgumentParser(prog="catdoc")
    parser.add_argument("--workspace", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--concurrency", type=int, required=False, default=None)
    parser.add_argument("--model", required=False, default=None)
    parser.add_argument("--debug", action="store_true", default=None)
    commands = parser.add_subparsers(dest="command", required=True)

    scan = commands.add_parser("scan", help="Extract code structure into the tree snapshot.")
    scan.add_argument("--force", action="store_true")

    changed = commands.add_parser("changed", help="List files changed since the last scan.")
    changed.add_argument("--git", action="store_true", help="Ask git status instead of hashes.")

    generate = commands.add_parser("generate", help="Generate summaries for changed files.")
    generate.add_argument("--all", action="store_true", help="Regenerate every eligible file.")
    generate.add_argument("paths", nargs="*")

    docstrings = commands.add_parser(
        "docstrings", help="Write generated docstrings into changed source files."
    )
    docstrings.add_argument("--force", action="store_true", help="Ignore the snapshot hash.")
    docstrings.add_argument("paths", nargs="*")

    commands.add_parser("watch", help="Watch the workspace and keep summaries current.")
    commands.add_parser("html", help="Write a static HTML index of the summaries.")

    events = commands.add_parser("events", help="Show recent generation events.")
    events.add_argument("--since", default=None)
    events.add_argument("--limit", type=int, default=50)
    return parser


def _emit(payload: object) -> None:
    print(json.dumps(payload, sort_keys=True, indent=2))


def _run_scan(config: CatdocConfig, force: bool) -> int:
    result = ScanManager(config).scan(force=force)
    _emit(
        {
            "file_count": result.file_count,
            "updated_paths": list(result.updated_paths),
            "changed_paths": list(result.changed_paths),
            "removed_paths": list(result.removed_paths),
            "duration_ms": result.duration_ms,
            "timestamp": result.timestamp,
        }
    )
    return 0


def _run_changed(config: CatdocConfig, use_git: bool) -> int:
    if use_git:
        paths = list(git_changed_paths(config.workspace_root))
    else:
        paths = ScanManager(config).changed_files()
    for path in paths:
        print(path)
    return 0


async def _generate(config: CatdocConfig, paths: list[str], regenerate: bool) -> int:
    client = ChatCompletionClient(config.generator)
    pipeline = DocumentationPipeline(build_context(config, client))
    try:
        if regenerate:
            await pipeline.regenerate_all()
        elif paths:
            pipeline.enqueue_many(paths, force=True)
        else:
            await pipeline.scan_and_enqueue()
        await pipeline.drain()
    finally:
        await pipeline.stop()
        await client.aclose()
    logger.info("Documentation store holds %d files", len(pipeline.store.paths()))
    return 0


async def _docstrings(config: CatdocConfig, paths: list[str], force: bool) -> int:
    client = ChatCompletionClient(config.generator)
    scanner = ScanManager(config)
    writer = DocstringWriter(
        client,
        scanner,
        max_prompt_chars=config.generator.max_prompt_chars,
        concurrency=config.pipeline.concurrency,
    )
    try:
        targets = paths or await asyncio.to_thread(scanner.changed_files)
        outcomes = await writer.write_many(targets, force=force)
    finally:
        await client.aclose()
    _emit(outcomes)
    return 0


async def _watch(config: CatdocConfig) -> int:
    client = ChatCompletionClient(config.generator)
    pipeline = DocumentationPipeline(build_context(config, client))
    try:
        pipeline.start()
        await pipeline.scan_and_enqueue()
        await asyncio.Event().wait()
    finally:
        await pipeline.stop()
        await client.aclose()
    return 0


def _run_html(config: CatdocConfig) -> int:
    store = DocumentationStore(config.docs_path, config.doc_files_dir)
    target = write_html(store.load(), config.html_dir)
    print(target)
    return 0


def _run_events(config: CatdocConfig, since: str | None, limit: int) -> int:
    _emit(JsonlEventLog(config.events_path).read(since=since, limit=limit))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the catdoc command."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = CliOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        concurrency=args.concurrency,
        model=args.model,
        debug=args.debug,
    )
    try:
        config = load_effective_config(Path(args.workspace), overrides)
    except ValueError as exc:
        print(f"catdoc: invalid configuration: {exc}", file=sys.stderr)
        return 2
    log_path = configure_logging(config.debug, config.data_dir / "logs")
    if log_path is not None:
        logger.debug("Debug log at %s", log_path)

    try:
        if args.command == "scan":
            return _run_scan(config, args.force)
        if args.command == "changed":
            return _run_changed(config, args.git)
        if args.command == "generate":
            return asyncio.run(_generate(config, args.paths, args.all))
        if args.command == "docstrings":
            return asyncio.run(_docstrings(config, args.paths, args.force))
        if args.command == "watch":
            return asyncio.run(_watch(config))
        if args.command == "html":
            return _run_html(config)
        return _run_events(config, args.since, args.limit)
    except ConfigurationError as exc:
        print(f"catdoc: {exc}", file=sys.stderr)
        return 2
    except PathOutsideWorkspaceError as exc:
        print(f"catdoc: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
