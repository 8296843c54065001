"""Tests for repocache.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from repocache.config import CONFIG_FILENAME, DB_ENV_VAR, CacheConfig, load_config
from repocache.errors import CacheError, ConfigError


@pytest.fixture(autouse=True)
def _clear_db_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(DB_ENV_VAR, raising=False)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, CacheConfig)
    assert config.root == tmp_path.resolve()
    assert config.database_path == tmp_path.resolve() / ".repocache" / "cache.db"
    assert config.similarity_threshold == 0.85
    assert config.candidate_limit == 10
    assert config.fallback_pool_size == 50
    assert config.max_entries == 1000
    assert config.ttl_ms == 24 * 60 * 60 * 1000
    assert config.exclude_patterns == []


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(
        """
database_path: "state/strategies.db"
similarity_threshold: 0.9
candidate_limit: 5
fallback_pool_size: 25
max_entries: 200
ttl_hours: 12
retry_attempts: 5
retry_backoff: 0.1
busy_timeout: 2
exclude_patterns:
  - "fixtures"
  - "*.snap"
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.database_path == tmp_path.resolve() / "state" / "strategies.db"
    assert config.similarity_threshold == 0.9
    assert config.candidate_limit == 5
    assert config.fallback_pool_size == 25
    assert config.max_entries == 200
    assert config.ttl_ms == 12 * 60 * 60 * 1000
    assert config.retry_attempts == 5
    assert config.retry_backoff == 0.1
    assert config.busy_timeout == 2.0
    assert config.exclude_patterns == ["fixtures", "*.snap"]


def test_load_config_accepts_file_path(tmp_path: Path) -> None:
    config_file = tmp_path / "custom.yml"
    config_file.write_text("max_entries: 3\n", encoding="utf-8")

    config = load_config(config_file)

    assert config.max_entries == 3
    assert config.root == tmp_path.resolve()


def test_environment_overrides_database_path(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("database_path: ignored.db\n", encoding="utf-8")
    override = tmp_path / "elsewhere" / "cache.db"
    monkeypatch.setenv(DB_ENV_VAR, str(override))

    assert load_config(tmp_path).database_path == override


def test_empty_config_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).max_entries == 1000


def test_non_mapping_root_is_rejected(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("- one\n- two\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_malformed_yaml_is_rejected(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("max_entries: [1, 2\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_out_of_range_threshold_is_rejected(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("similarity_threshold: 1.5\n", encoding="utf-8")

    with pytest.raises(CacheError):
        load_config(tmp_path)


def test_non_positive_limits_are_rejected(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("fallback_pool_size: 0\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="fallback_pool_size"):
        load_config(tmp_path)


def test_log_file_is_resolved_against_config_root(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("log_file: logs/repocache.log\n", encoding="utf-8")

    assert load_config(tmp_path).log_file == tmp_path.resolve() / "logs" / "repocache.log"
    assert load_config(tmp_path / "missing-dir-config.yml").log_file is None
