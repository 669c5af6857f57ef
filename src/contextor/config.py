"""contextor configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (CONTEXTOR_EMBEDDING_MODEL, CONTEXTOR_DB)
  3. Per-project contextor.yaml  (current working directory)
  4. Global ~/.contextor/config.yaml  (defaults only — no API keys)
  5. Hardcoded defaults

Credentials (OPENAI_API_KEY, AIRTABLE_API_KEY, AIRTABLE_BASE_ID) are read from
the environment only. ``load_environment()`` fills the environment from
``.env.local`` / ``.env`` without overriding variables that are already set.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from contextor.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_PATH: Path = Path.home() / ".contextor" / "config.yaml"
_PROJECT_CONFIG_NAME: str = "contextor.yaml"
_ENV_FILES: tuple[str, ...] = (".env.local", ".env")

# Matches api_key, api-key, api_secret, *_token, token, *_secret, secret,
# password, passwd, credential(s). Does NOT match batch_size, max_input_chars.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["embedding", "chunker", "retrieval", "sources", "output", "database"]
)

DEFAULT_EXTENSIONS: tuple[str, ...] = (
    ".ts", ".tsx", ".js", ".jsx",
    ".py", ".java", ".cpp", ".c",
    ".md", ".mdx", ".txt",
    ".json", ".yaml", ".yml",
    ".sql", ".prisma",
)

DEFAULT_IGNORE: tuple[str, ...] = (
    "node_modules/",
    ".git/",
    "dist/",
    "build/",
    ".next/",
    "coverage/",
    "*.log",
    "*.lock",
    "package-lock.json",
    "yarn.lock",
)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (contextor.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 100
    max_input_chars: int = 8_000
    batch_delay: float = 1.0


@dataclass
class ChunkerCfg:
    """Text splitter configuration, in characters (contextor.yaml: chunker:)."""

    chunk_size: int = 1_000
    overlap: int = 200


@dataclass
class RetrievalCfg:
    """Similarity search defaults (contextor.yaml: retrieval:).

    ``threshold``/``limit`` apply to interactive search; the ``context_*``
    pair applies when rendering a context document.
    """

    threshold: float = 0.6
    limit: int = 10
    context_threshold: float = 0.6
    context_limit: int = 20


@dataclass
class SourcesCfg:
    """File-tree walker filters (contextor.yaml: sources:)."""

    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    ignore: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE))


@dataclass
class OutputCfg:
    """Where rendered context documents are written (contextor.yaml: output:)."""

    knowledge_base_dir: str = "knowledge-base"


@dataclass
class DatabaseCfg:
    """Vector store location (contextor.yaml: database:)."""

    path: str = ".contextor.db"


@dataclass
class ContextorConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunker: ChunkerCfg = field(default_factory=ChunkerCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    sources: SourcesCfg = field(default_factory=SourcesCfg)
    output: OutputCfg = field(default_factory=OutputCfg)
    database: DatabaseCfg = field(default_factory=DatabaseCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigurationError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigurationError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: ContextorConfig) -> None:
    if cfg.chunker.chunk_size < 1:
        raise ConfigurationError("chunker.chunk_size must be >= 1")
    if not 0 <= cfg.chunker.overlap < cfg.chunker.chunk_size:
        raise ConfigurationError("chunker.overlap must be in [0, chunk_size)")
    if cfg.embedding.batch_size < 1:
        raise ConfigurationError("embedding.batch_size must be >= 1")
    if cfg.embedding.dimensions < 1:
        raise ConfigurationError("embedding.dimensions must be >= 1")
    for name in ("threshold", "context_threshold"):
        value = getattr(cfg.retrieval, name)
        if not 0.0 <= value <= 1.0:
            raise ConfigurationError(f"retrieval.{name} must be in [0.0, 1.0], got {value}")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> ContextorConfig:
    """Build a *ContextorConfig* from a merged raw YAML dict."""
    cfg = ContextorConfig()

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
            batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
            max_input_chars=int(e.get("max_input_chars", cfg.embedding.max_input_chars)),
            batch_delay=float(e.get("batch_delay", cfg.embedding.batch_delay)),
        )

    if "chunker" in data:
        c = data["chunker"] or {}
        cfg.chunker = ChunkerCfg(
            chunk_size=int(c.get("chunk_size", cfg.chunker.chunk_size)),
            overlap=int(c.get("overlap", cfg.chunker.overlap)),
        )

    if "retrieval" in data:
        r = data["retrieval"] or {}
        cfg.retrieval = RetrievalCfg(
            threshold=float(r.get("threshold", cfg.retrieval.threshold)),
            limit=int(r.get("limit", cfg.retrieval.limit)),
            context_threshold=float(
                r.get("context_threshold", cfg.retrieval.context_threshold)
            ),
            context_limit=int(r.get("context_limit", cfg.retrieval.context_limit)),
        )

    if "sources" in data:
        s = data["sources"] or {}
        cfg.sources = SourcesCfg(
            extensions=[str(x) for x in s.get("extensions", cfg.sources.extensions)],
            ignore=[str(x) for x in s.get("ignore", cfg.sources.ignore)],
        )

    if "output" in data:
        o = data["output"] or {}
        cfg.output = OutputCfg(
            knowledge_base_dir=str(
                o.get("knowledge_base_dir", cfg.output.knowledge_base_dir)
            ),
        )

    if "database" in data:
        d = data["database"] or {}
        cfg.database = DatabaseCfg(path=str(d.get("path", cfg.database.path)))

    return cfg


def _apply_env_overrides(cfg: ContextorConfig) -> ContextorConfig:
    """Apply CONTEXTOR_* environment variable overrides."""
    if model := os.environ.get("CONTEXTOR_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("CONTEXTOR_DB"):
        cfg.database.path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_environment(project_dir: Path | None = None) -> list[Path]:
    """Load ``.env.local`` and ``.env`` from *project_dir* into ``os.environ``.

    Existing environment variables win. Returns the files that were loaded.
    """
    search_dir = project_dir if project_dir is not None else Path.cwd()
    loaded: list[Path] = []
    for name in _ENV_FILES:
        env_file = search_dir / name
        if env_file.is_file():
            load_dotenv(env_file, override=False)
            loaded.append(env_file)
    return loaded


def require_env(name: str) -> str:
    """Return the value of environment variable *name*.

    Raises:
        ConfigurationError: If the variable is unset or empty.
    """
    value = os.environ.get(name, "").strip()
    if not value:
        raise ConfigurationError(
            f"Missing required environment variable {name}. "
            f"Set it in your shell or in .env.local."
        )
    return value


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> ContextorConfig:
    """Load and return a merged *ContextorConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *contextor.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigurationError: If the global config contains API-key-like fields
            or a value is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    try:
        cfg = _cfg_from_dict(merged)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid config value: {exc}") from exc

    cfg = _apply_env_overrides(cfg)
    _validate(cfg)
    return cfg
