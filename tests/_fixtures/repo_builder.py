"""Helper utilities for constructing temporary repositories in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Iterable, Mapping

from repocache.models import RepositorySignature
from repocache.signature import SignatureBuilder


class RepoBuilder:
    """Writes files into a throwaway repository and fingerprints it."""

    def __init__(self, tmp_path: Path, name: str = "repo") -> None:
        self.root = tmp_path / name
        self.root.mkdir()
        self._builder = SignatureBuilder()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the repository."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")

    def touch(self, paths: Iterable[str]) -> None:
        self.write({path: "" for path in paths})

    def signature(self) -> RepositorySignature:
        return self._builder.scan(self.root)

    def path(self) -> Path:
        return self.root


__all__ = ["RepoBuilder"]
