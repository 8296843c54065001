"""Local repository walking for signature construction."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "env",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    ".repocache",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}


@dataclass
class IgnoreRule:
    """A single .gitignore-style pattern."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.anchored or "/" in self.pattern:
            return fnmatchcase(rel_path, self.pattern)
        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def parse_ignore_rule(raw: str) -> IgnoreRule | None:
    line = raw.strip()
    if not line or line.startswith("#"):
        return None
    negate = line.startswith("!")
    if negate:
        line = line[1:]
    directory_only = line.endswith("/")
    line = line.rstrip("/")
    anchored = line.startswith("/")
    line = line.lstrip("/")
    if not line:
        return None
    return IgnoreRule(
        pattern=line, directory_only=directory_only, anchored=anchored, negate=negate
    )


def _load_gitignore(root: Path) -> List[IgnoreRule]:
    path = root / ".gitignore"
    if not path.exists():
        return []
    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        rule = parse_ignore_rule(raw_line)
        if rule is not None:
            rules.append(rule)
    return rules


def _is_ignored(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class RepoScanner:
    """Lists the files of a local checkout as sorted, root-relative POSIX paths."""

    def __init__(self, extra_excludes: Sequence[str] = ()) -> None:
        self._extra_rules = [
            rule for rule in (parse_ignore_rule(p) for p in extra_excludes) if rule
        ]

    def list_files(self, root: str | Path) -> List[str]:
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {root}")

        rules = _load_gitignore(root_path) + self._extra_rules
        return sorted(self._iter_files(root_path, rules))

    def _iter_files(self, root: Path, rules: Sequence[IgnoreRule]) -> Iterator[str]:
        for dirpath, dirnames, filenames in os.walk(root):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            kept = []
            for name in dirnames:
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if not _is_ignored(rel_path, True, rules):
                    kept.append(name)
            dirnames[:] = kept

            for filename in filenames:
                if filename in _EXCLUDED_FILES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if not _is_ignored(rel_path, False, rules):
                    yield rel_path


__all__ = ["IgnoreRule", "RepoScanner", "parse_ignore_rule"]
