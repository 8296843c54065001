"""Signature Store: one fingerprint per (repository, course) pair."""

from __future__ import annotations

import json
import sqlite3
from typing import Callable, Optional

from ..logging import get_logger
from ..models import RepositorySignature, StoredSignature
from .database import Database, now_ms

_SELECT_COLUMNS = (
    "id, repo_url, course_id, directory_structure, technologies, file_types, "
    "size_category, pattern_hash, created_at, last_used"
)


def signature_from_row(row: sqlite3.Row) -> StoredSignature:
    return StoredSignature(
        id=int(row["id"]),
        repo_url=row["repo_url"],
        course_id=row["course_id"],
        signature=RepositorySignature(
            directory_structure=json.loads(row["directory_structure"]),
            technologies=json.loads(row["technologies"]),
            file_types=json.loads(row["file_types"]),
            size_category=row["size_category"],
            pattern_hash=row["pattern_hash"],
        ),
        created_at=int(row["created_at"]),
        last_used=int(row["last_used"]),
    )


class SignatureStore:
    """Persists signatures, deduplicated by (repo_url, course_id).

    The first shape seen for a pair wins: re-storing only refreshes
    ``last_used`` and never rewrites the structural fields.
    """

    def __init__(self, database: Database, *, clock: Callable[[], int] = now_ms) -> None:
        self._db = database
        self._clock = clock
        self.logger = get_logger("stores.signatures")

    def store(self, repo_url: str, course_id: str, signature: RepositorySignature) -> int:
        def _store(conn: sqlite3.Connection) -> int:
            now = self._clock()
            existing = self._touch(conn, repo_url, course_id, now)
            if existing is not None:
                return existing
            try:
                cursor = conn.execute(
                    """INSERT INTO repository_signatures (
                        repo_url, course_id, directory_structure, technologies,
                        file_types, size_category, pattern_hash, created_at, last_used
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        repo_url,
                        course_id,
                        json.dumps(signature.directory_structure),
                        json.dumps(signature.technologies),
                        json.dumps(signature.file_types, sort_keys=True),
                        signature.size_category,
                        signature.pattern_hash,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError:
                # Another writer inserted the pair first; reuse its row.
                existing = self._touch(conn, repo_url, course_id, now)
                if existing is None:
                    raise
                return existing
            signature_id = cursor.lastrowid
            assert signature_id is not None
            self.logger.debug(
                "Stored signature %d for %s (course %s, hash %s)",
                signature_id,
                repo_url,
                course_id,
                signature.pattern_hash,
            )
            return signature_id

        return self._db.run(_store, label="store signature")

    def get(self, signature_id: int) -> Optional[StoredSignature]:
        def _get(conn: sqlite3.Connection) -> Optional[StoredSignature]:
            row = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM repository_signatures WHERE id = ?",
                (signature_id,),
            ).fetchone()
            return signature_from_row(row) if row is not None else None

        return self._db.run(_get, label="get signature")

    def find(self, repo_url: str, course_id: str) -> Optional[StoredSignature]:
        """Read the signature for a pair without refreshing ``last_used``."""

        def _find(conn: sqlite3.Connection) -> Optional[StoredSignature]:
            row = conn.execute(
                f"""SELECT {_SELECT_COLUMNS} FROM repository_signatures
                    WHERE repo_url = ? AND course_id = ?""",
                (repo_url, course_id),
            ).fetchone()
            return signature_from_row(row) if row is not None else None

        return self._db.run(_find, label="find signature")

    def _touch(
        self, conn: sqlite3.Connection, repo_url: str, course_id: str, now: int
    ) -> Optional[int]:
        row = conn.execute(
            """SELECT id, last_used FROM repository_signatures
               WHERE repo_url = ? AND course_id = ?""",
            (repo_url, course_id),
        ).fetchone()
        if row is None:
            return None
        # last_used moves forward on every re-store, even within one clock tick.
        conn.execute(
            "UPDATE repository_signatures SET last_used = ? WHERE id = ?",
            (max(now, int(row["last_used"]) + 1), row["id"]),
        )
        return int(row["id"])


__all__ = ["SignatureStore", "signature_from_row"]
