"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "catdoc.toml"
DEFAULT_DATA_DIR_NAME = ".catdoc"

MAX_CONCURRENCY_CAP = 32
MAX_PROMPT_CHARS_CAP = 500_000

DEFAULT_INCLUDE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".py")
DEFAULT_EXCLUDE_GLOBS = (
    "**/__pycache__/**",
    "**/.venv/**",
    "*.tree.json",
    "*.cache.json",
)

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai"
DEFAULT_API_KEY_ENV = "GOOGLE_API_KEY"


class ConfigurationError(Exception):
    """Raised when required runtime configuration (such as a credential) is missing."""


@dataclass(slots=True, frozen=True)
class IndexConfig:
    """Workspace scanning settings."""

    include_extensions: tuple[str, ...] = DEFAULT_INCLUDE_EXTENSIONS
    exclude_globs: tuple[str, ...] = DEFAULT_EXCLUDE_GLOBS
    respect_gitignore: bool = True
    follow_symlinks: bool = True


@dataclass(slots=True, frozen=True)
class PipelineConfig:
    """Watch/queue/persistence timing and concurrency settings."""

    concurrency: int = 3
    watch_debounce_seconds: float = 1.0
    save_debounce_seconds: float = 2.0
    generation_timeout_seconds: float = 120.0
    shutdown_grace_seconds: float = 5.0


@dataclass(slots=True, frozen=True)
class GeneratorConfig:
    """Summary generation endpoint settings."""

    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    api_key_env: str = DEFAULT_API_KEY_ENV
    max_prompt_chars: int = 24_000
    request_timeout_seconds: float = 60.0

    def api_key(self, environ: Mapping[str, str] | None = None) -> str:
        """Return the API key from the environment or raise ConfigurationError."""
        env = os.environ if environ is None else environ
        value = env.get(self.api_key_env, "").strip()
        if not value:
            raise ConfigurationError(
                f"{self.api_key_env} is not set; summary generation needs an API key."
            )
        return value


@dataclass(slots=True, frozen=True)
class CatdocConfig:
    """Fully merged configuration."""

    workspace_root: Path
    data_dir: Path
    index: IndexConfig
    pipeline: PipelineConfig
    generator: GeneratorConfig
    debug: bool = False

    @property
    def docs_path(self) -> Path:
        """Path of the persisted documentation store."""
        return self.data_dir / "docs.json"

    @property
    def doc_files_dir(self) -> Path:
        """Directory holding one documentation artifact per file."""
        return self.data_dir / "files"

    @property
    def html_dir(self) -> Path:
        return self.data_dir / "html"

    @property
    def events_path(self) -> Path:
        return self.data_dir / "events.jsonl"

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot."""
        return {
            "workspace_root": str(self.workspace_root),
            "data_dir": str(self.data_dir),
            "debug": self.debug,
            "index": {
                "include_extensions": list(self.index.include_extensions),
                "exclude_globs": list(self.index.exclude_globs),
                "respect_gitignore": self.index.respect_gitignore,
                "follow_symlinks": self.index.follow_symlinks,
            },
            "pipeline": {
                "concurrency": self.pipeline.concurrency,
                "watch_debounce_seconds": self.pipeline.watch_debounce_seconds,
                "save_debounce_seconds": self.pipeline.save_debounce_seconds,
                "generation_timeout_seconds": self.pipeline.generation_timeout_seconds,
                "shutdown_grace_seconds": self.pipeline.shutdown_grace_seconds,
            },
            "generator": {
                "model": self.generator.model,
                "base_url": self.generator.base_url,
                "api_key_env": self.generator.api_key_env,
                "max_prompt_chars": self.generator.max_prompt_chars,
                "request_timeout_seconds": self.generator.request_timeout_seconds,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    concurrency: int | None = None
    model: str | None = None
    debug: bool | None = None


def default_config(workspace_root: Path) -> CatdocConfig:
    """Build default config for a given workspace root."""
    resolved_root = workspace_root.resolve()
    return CatdocConfig(
        workspace_root=resolved_root,
        data_dir=resolved_root / DEFAULT_DATA_DIR_NAME,
        index=IndexConfig(),
        pipeline=PipelineConfig(),
        generator=GeneratorConfig(),
    )


def load_config_file(workspace_root: Path) -> dict[str, object]:
    """Load optional catdoc.toml from the workspace root."""
    config_path = workspace_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _normalize_extensions(values: tuple[str, ...]) -> tuple[str, ...]:
    output: list[str] = []
    for value in values:
        lowered = value.strip().lower()
        if not lowered:
            continue
        if not lowered.startswith("."):
            lowered = f".{lowered}"
        if lowered not in output:
            output.append(lowered)
    return tuple(output)


def merge_config(
    base: CatdocConfig, payload: dict[str, object], overrides: CliOverrides
) -> CatdocConfig:
    """Merge defaults, workspace config file, then startup overrides."""
    index_payload = _get_table(payload, "index")
    pipeline_payload = _get_table(payload, "pipeline")
    generator_payload = _get_table(payload, "generator")

    include_extensions = base.index.include_extensions
    if "include_extensions" in index_payload:
        include_extensions = _normalize_extensions(
            _tuple_of_strings(index_payload["include_extensions"], "index", "include_extensions")
        )
    exclude_globs = base.index.exclude_globs
    if "exclude_globs" in index_payload:
        exclude_globs = _tuple_of_strings(index_payload["exclude_globs"], "index", "exclude_globs")
    respect_gitignore = _optional_bool(
        index_payload.get("respect_gitignore"),
        "index.respect_gitignore",
        base.index.respect_gitignore,
    )
    follow_symlinks = _optional_bool(
        index_payload.get("follow_symlinks"),
        "index.follow_symlinks",
        base.index.follow_symlinks,
    )

    pipeline = PipelineConfig(
        concurrency=_optional_positive_int_with_cap(
            pipeline_payload.get("concurrency"),
            "pipeline.concurrency",
            base.pipeline.concurrency,
            MAX_CONCURRENCY_CAP,
        ),
        watch_debounce_seconds=_optional_non_negative_float(
            pipeline_payload.get("watch_debounce_seconds"),
            "pipeline.watch_debounce_seconds",
            base.pipeline.watch_debounce_seconds,
        ),
        save_debounce_seconds=_optional_non_negative_float(
            pipeline_payload.get("save_debounce_seconds"),
            "pipeline.save_debounce_seconds",
            base.pipeline.save_debounce_seconds,
        ),
        generation_timeout_seconds=_optional_positive_float(
            pipeline_payload.get("generation_timeout_seconds"),
            "pipeline.generation_timeout_seconds",
            base.pipeline.generation_timeout_seconds,
        ),
        shutdown_grace_seconds=_optional_non_negative_float(
            pipeline_payload.get("shutdown_grace_seconds"),
            "pipeline.shutdown_grace_seconds",
            base.pipeline.shutdown_grace_seconds,
        ),
    )

    generator = GeneratorConfig(
        model=_optional_str(
            generator_payload.get("model"), "generator.model", base.generator.model
        ),
        base_url=_optional_str(
            generator_payload.get("base_url"), "generator.base_url", base.generator.base_url
        ).rstrip("/"),
        api_key_env=_optional_str(
            generator_payload.get("api_key_env"),
            "generator.api_key_env",
            base.generator.api_key_env,
        ),
        max_prompt_chars=_optional_positive_int_with_cap(
            generator_payload.get("max_prompt_chars"),
            "generator.max_prompt_chars",
            base.generator.max_prompt_chars,
            MAX_PROMPT_CHARS_CAP,
        ),
        request_timeout_seconds=_optional_positive_float(
            generator_payload.get("request_timeout_seconds"),
            "generator.request_timeout_seconds",
            base.generator.request_timeout_seconds,
        ),
    )

    merged = CatdocConfig(
        workspace_root=base.workspace_root,
        data_dir=base.data_dir,
        index=IndexConfig(
            include_extensions=include_extensions,
            exclude_globs=exclude_globs,
            respect_gitignore=respect_gitignore,
            follow_symlinks=follow_symlinks,
        ),
        pipeline=pipeline,
        generator=generator,
        debug=_optional_bool(payload.get("debug"), "debug", base.debug),
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: CatdocConfig, overrides: CliOverrides) -> CatdocConfig:
    """Apply startup overrides at highest precedence."""
    concurrency = _optional_positive_int_with_cap(
        overrides.concurrency,
        "overrides.concurrency",
        config.pipeline.concurrency,
        MAX_CONCURRENCY_CAP,
    )
    pipeline = PipelineConfig(
        concurrency=concurrency,
        watch_debounce_seconds=config.pipeline.watch_debounce_seconds,
        save_debounce_seconds=config.pipeline.save_debounce_seconds,
        generation_timeout_seconds=config.pipeline.generation_timeout_seconds,
        shutdown_grace_seconds=config.pipeline.shutdown_grace_seconds,
    )
    generator = GeneratorConfig(
        model=_optional_str(overrides.model, "overrides.model", config.generator.model),
        base_url=config.generator.base_url,
        api_key_env=config.generator.api_key_env,
        max_prompt_chars=config.generator.max_prompt_chars,
        request_timeout_seconds=config.generator.request_timeout_seconds,
    )
    data_dir = overrides.data_dir or config.data_dir
    return CatdocConfig(
        workspace_root=config.workspace_root,
        data_dir=data_dir.resolve(),
        index=config.index,
        pipeline=pipeline,
        generator=generator,
        debug=overrides.debug if overrides.debug is not None else config.debug,
    )


def load_effective_config(
    workspace_root: Path, overrides: CliOverrides | None = None
) -> CatdocConfig:
    """Load effective config using merge order defaults -> catdoc.toml -> overrides."""
    resolved_root = workspace_root.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())


def _optional_bool(value: object, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"Config field '{name}' must be a boolean.")
    return value


def _optional_str(value: object, name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Config field '{name}' must be a non-empty string.")
    return value.strip()


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value


def _optional_positive_float(value: object, name: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"Config field '{name}' must be a positive number.")
    return float(value)


def _optional_non_negative_float(value: object, name: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValueError(f"Config field '{name}' must be a non-negative number.")
    return float(value)
