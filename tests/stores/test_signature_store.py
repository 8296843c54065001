"""Tests for the signature store."""

from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from repocache.errors import StoreUnavailable
from repocache.stores import Database, SignatureStore
from tests._fixtures.clock import FakeClock


def _count_rows(database: Database) -> int:
    return database.run(
        lambda conn: conn.execute("SELECT COUNT(*) FROM repository_signatures").fetchone()[0]
    )


def test_store_inserts_new_pair(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)

    signature_id = store.store("https://github.com/a/repo", "course-1", make_signature("h1"))

    stored = store.get(signature_id)
    assert stored is not None
    assert stored.repo_url == "https://github.com/a/repo"
    assert stored.course_id == "course-1"
    assert stored.signature == make_signature("h1")
    assert stored.created_at == stored.last_used == clock.now


def test_store_is_idempotent_and_keeps_first_shape(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)
    first = make_signature("h1", technologies=("python",))
    signature_id = store.store("repo", "course-1", first)
    created = store.get(signature_id)
    assert created is not None

    clock.advance(1_000)
    changed = make_signature("h2", technologies=("go", "docker"), size_category="large")
    again = store.store("repo", "course-1", changed)

    assert again == signature_id
    assert _count_rows(database) == 1
    refreshed = store.get(signature_id)
    assert refreshed is not None
    assert refreshed.signature == first
    assert refreshed.created_at == created.created_at
    assert refreshed.last_used > created.last_used


def test_same_repository_in_two_courses_gets_two_rows(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)

    first = store.store("repo", "course-1", make_signature())
    second = store.store("repo", "course-2", make_signature())

    assert first != second
    assert _count_rows(database) == 2


def test_concurrent_first_submissions_do_not_duplicate(database, make_signature) -> None:
    store = SignatureStore(database, clock=FakeClock())

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(
            pool.map(lambda _: store.store("repo", "course-1", make_signature()), range(16))
        )

    assert len(set(ids)) == 1
    assert _count_rows(database) == 1


def test_unique_constraint_guards_the_pair(database, clock, make_signature) -> None:
    SignatureStore(database, clock=clock).store("repo", "course-1", make_signature())

    def _duplicate(conn: sqlite3.Connection) -> None:
        conn.execute(
            """INSERT INTO repository_signatures (
                repo_url, course_id, directory_structure, technologies, file_types,
                size_category, pattern_hash, created_at, last_used
            ) VALUES ('repo', 'course-1', '[]', '[]', '{}', 'small', 'h', 0, 0)"""
        )

    with pytest.raises(StoreUnavailable) as excinfo:
        database.run(_duplicate)

    assert isinstance(excinfo.value.__cause__, sqlite3.IntegrityError)
    assert _count_rows(database) == 1


def test_get_unknown_signature_returns_none(database) -> None:
    assert SignatureStore(database).get(404) is None


def test_restore_within_one_clock_tick_still_advances_last_used(
    database, clock, make_signature
) -> None:
    store = SignatureStore(database, clock=clock)
    signature_id = store.store("repo", "course-1", make_signature())

    seen = []
    for _ in range(3):
        store.store("repo", "course-1", make_signature())
        refreshed = store.get(signature_id)
        assert refreshed is not None
        seen.append(refreshed.last_used)

    assert seen == [clock.now + 1, clock.now + 2, clock.now + 3]


def test_find_reads_pair_without_touching(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)
    signature_id = store.store("repo", "course-1", make_signature())
    clock.advance(1_000)

    found = store.find("repo", "course-1")

    assert found is not None
    assert found.id == signature_id
    assert found.last_used == clock.now - 1_000
    assert store.find("repo", "course-2") is None
