"""Tests for repocache.scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from repocache.scanner import RepoScanner, parse_ignore_rule


def _write(path: Path, content: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_list_files_returns_sorted_relative_paths(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "app.py")
    _write(tmp_path / "README.md")
    _write(tmp_path / ".venv" / "lib" / "site.py")
    _write(tmp_path / "node_modules" / "pkg" / "index.js")
    _write(tmp_path / ".DS_Store")

    assert RepoScanner().list_files(tmp_path) == ["README.md", "src/app.py"]


def test_gitignore_rules_are_honoured(tmp_path: Path) -> None:
    _write(tmp_path / ".gitignore", "*.log\nbuild/\n!keep.log\n/secrets.txt\n")
    _write(tmp_path / "app.log")
    _write(tmp_path / "keep.log")
    _write(tmp_path / "build" / "out.bin")
    _write(tmp_path / "secrets.txt")
    _write(tmp_path / "docs" / "secrets.txt")
    _write(tmp_path / "main.py")

    files = RepoScanner().list_files(tmp_path)

    assert files == [".gitignore", "docs/secrets.txt", "keep.log", "main.py"]


def test_extra_excludes_extend_gitignore(tmp_path: Path) -> None:
    _write(tmp_path / "vendor" / "lib.py")
    _write(tmp_path / "main.py")

    assert RepoScanner(["vendor/"]).list_files(tmp_path) == ["main.py"]


def test_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        RepoScanner().list_files(tmp_path / "absent")


def test_file_path_raises(tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    _write(target)

    with pytest.raises(NotADirectoryError):
        RepoScanner().list_files(target)


def test_parse_ignore_rule_skips_comments_and_blanks() -> None:
    assert parse_ignore_rule("# comment") is None
    assert parse_ignore_rule("   ") is None
    assert parse_ignore_rule("/") is None

    rule = parse_ignore_rule("!/dist/")
    assert rule is not None
    assert rule.negate and rule.anchored and rule.directory_only
    assert rule.pattern == "dist"
