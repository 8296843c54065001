from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator

import pytest

from repocache.cache import StrategyCache
from repocache.models import RepositorySignature
from repocache.stores import Database
from tests._fixtures.clock import FakeClock
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def database(tmp_path: Path) -> Iterator[Database]:
    db = Database(tmp_path / "cache.db", retry_backoff=0.0)
    yield db
    db.close()


@pytest.fixture
def cache(database: Database, clock: FakeClock) -> StrategyCache:
    return StrategyCache(database, clock=clock)


@pytest.fixture
def make_signature() -> Callable[..., RepositorySignature]:
    def _make(
        pattern_hash: str = "h1",
        *,
        directories: tuple[str, ...] = ("src", "tests"),
        technologies: tuple[str, ...] = ("python",),
        file_types: dict[str, int] | None = None,
        size_category: str = "small",
    ) -> RepositorySignature:
        return RepositorySignature(
            directory_structure=list(directories),
            technologies=list(technologies),
            file_types=file_types if file_types is not None else {"py": 4},
            size_category=size_category,  # type: ignore[arg-type]
            pattern_hash=pattern_hash,
        )

    return _make


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)
