"""Configuration loading for repocache (.repocache.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".repocache.yml"
DB_ENV_VAR = "REPOCACHE_DB"
_DEFAULT_DB_RELATIVE = Path(".repocache") / "cache.db"


@dataclass
class CacheConfig:
    """Effective settings for the strategy cache."""

    root: Path
    database_path: Path
    similarity_threshold: float = 0.85
    candidate_limit: int = 10
    fallback_pool_size: int = 50
    max_entries: int = 1000
    ttl_hours: float = 24.0
    retry_attempts: int = 3
    retry_backoff: float = 0.05
    busy_timeout: float = 5.0
    exclude_patterns: List[str] = field(default_factory=list)
    log_file: Optional[Path] = None

    @property
    def ttl_ms(self) -> int:
        return int(self.ttl_hours * 3600 * 1000)


def load_config(config_path: Path) -> CacheConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    database_path = _resolve_database_path(root, _as_str(data.get("database_path")))
    defaults = CacheConfig(root=root, database_path=database_path)

    config = CacheConfig(
        root=root,
        database_path=database_path,
        similarity_threshold=_as_float(data.get("similarity_threshold"), defaults.similarity_threshold),
        candidate_limit=_as_int(data.get("candidate_limit"), defaults.candidate_limit),
        fallback_pool_size=_as_int(data.get("fallback_pool_size"), defaults.fallback_pool_size),
        max_entries=_as_int(data.get("max_entries"), defaults.max_entries),
        ttl_hours=_as_float(data.get("ttl_hours"), defaults.ttl_hours),
        retry_attempts=_as_int(data.get("retry_attempts"), defaults.retry_attempts),
        retry_backoff=_as_float(data.get("retry_backoff"), defaults.retry_backoff),
        busy_timeout=_as_float(data.get("busy_timeout"), defaults.busy_timeout),
        exclude_patterns=_as_str_list(data.get("exclude_patterns")),
        log_file=_resolve_relative(root, _as_str(data.get("log_file"))),
    )
    _validate(config)
    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _resolve_database_path(root: Path, configured: Optional[str]) -> Path:
    env_value = os.environ.get(DB_ENV_VAR, "").strip()
    if env_value:
        return Path(env_value).expanduser()
    return _resolve_relative(root, configured) or root / _DEFAULT_DB_RELATIVE


def _resolve_relative(root: Path, configured: Optional[str]) -> Optional[Path]:
    if not configured:
        return None
    candidate = Path(configured).expanduser()
    return candidate if candidate.is_absolute() else root / candidate


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _validate(config: CacheConfig) -> None:
    if not 0.0 <= config.similarity_threshold <= 1.0:
        raise ConfigError("similarity_threshold must be within [0, 1]")
    for name in ("candidate_limit", "fallback_pool_size", "max_entries", "retry_attempts"):
        if getattr(config, name) < 1:
            raise ConfigError(f"{name} must be at least 1")
    if config.retry_backoff < 0 or config.busy_timeout < 0 or config.ttl_hours < 0:
        raise ConfigError("retry_backoff, busy_timeout and ttl_hours must be non-negative")


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = ["CONFIG_FILENAME", "DB_ENV_VAR", "CacheConfig", "load_config"]
