"""Tests for the transaction and retry behaviour of the database handle."""

from __future__ import annotations

import sqlite3

import pytest

from repocache.errors import ConcurrencyConflict, StoreUnavailable, TransientStoreError
from repocache.stores import Database


def test_run_retries_conflicts_until_success(database: Database) -> None:
    attempts = []

    def _flaky(conn: sqlite3.Connection) -> str:
        attempts.append(1)
        if len(attempts) < 3:
            raise ConcurrencyConflict("lost the race")
        return "done"

    assert database.run(_flaky) == "done"
    assert len(attempts) == 3


def test_run_gives_up_after_bounded_attempts(database: Database) -> None:
    attempts = []

    def _always_conflicts(conn: sqlite3.Connection) -> None:
        attempts.append(1)
        raise ConcurrencyConflict("lost the race")

    with pytest.raises(TransientStoreError):
        database.run(_always_conflicts)
    assert len(attempts) == database.retry_attempts == 3


def test_busy_database_is_treated_as_contention(database: Database) -> None:
    def _busy(conn: sqlite3.Connection) -> None:
        raise sqlite3.OperationalError("database is locked")

    with pytest.raises(TransientStoreError):
        database.run(_busy)


def test_other_store_errors_surface_as_unavailable(database: Database) -> None:
    with pytest.raises(StoreUnavailable):
        database.run(lambda conn: conn.execute("SELECT * FROM no_such_table"))


def test_failed_operation_rolls_back(database: Database) -> None:
    def _insert_then_fail(conn: sqlite3.Connection) -> None:
        conn.execute(
            """INSERT INTO benchmark_results (
                test_suite_id, system_type, file_selection_accuracy, processing_speed,
                token_efficiency, evaluation_quality, error_rate, timestamp
            ) VALUES ('s', 'current', 0, 0, 0, 0, 0, 0)"""
        )
        raise ValueError("boom")

    with pytest.raises(ValueError):
        database.run(_insert_then_fail)

    count = database.run(
        lambda conn: conn.execute("SELECT COUNT(*) FROM benchmark_results").fetchone()[0]
    )
    assert count == 0


def test_closed_handle_refuses_work(tmp_path) -> None:
    db = Database(tmp_path / "closed.db")
    db.close()

    with pytest.raises(StoreUnavailable):
        db.run(lambda conn: conn.execute("SELECT 1"))


def test_foreign_keys_cascade_strategy_rows(database: Database) -> None:
    def _seed(conn: sqlite3.Connection) -> None:
        conn.execute(
            """INSERT INTO repository_signatures (
                id, repo_url, course_id, directory_structure, technologies, file_types,
                size_category, pattern_hash, created_at, last_used
            ) VALUES (1, 'r', 'c', '[]', '[]', '{}', 'small', 'h', 0, 0)"""
        )
        conn.execute(
            """INSERT INTO cached_strategies (
                signature_id, course_id, selected_files, method, confidence, discovery_time,
                accuracy, evaluation_quality, usage_count, success_rate, processing_time,
                created_at, last_used, last_updated, version
            ) VALUES (1, 'c', '[]', 'm', 0.5, 0, 0, 0, 0, 0, 0, 0, 0, 0, '1.0')"""
        )
        conn.execute("DELETE FROM repository_signatures WHERE id = 1")

    database.run(_seed)

    count = database.run(
        lambda conn: conn.execute("SELECT COUNT(*) FROM cached_strategies").fetchone()[0]
    )
    assert count == 0
