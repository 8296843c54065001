"""Similarity Matcher: bounded candidate lookup for a query signature."""

from __future__ import annotations

import sqlite3
from typing import List, Sequence

from ..logging import get_logger
from ..models import StoredSignature
from .database import Database
from .signatures import _SELECT_COLUMNS, signature_from_row

DEFAULT_LIMIT = 10
DEFAULT_POOL_SIZE = 50


class SignatureMatcher:
    """Returns candidate signatures within a single course.

    Exact ``pattern_hash`` matches win outright, in insertion order. Without
    one, a bounded pool of the course's most recently used signatures is
    returned unranked; scoring it is the caller's job.
    """

    def __init__(self, database: Database, *, pool_size: int = DEFAULT_POOL_SIZE) -> None:
        self._db = database
        self._pool_size = pool_size
        self.logger = get_logger("stores.matcher")

    def find_candidates(
        self,
        course_id: str,
        pattern_hash: str,
        technologies: Sequence[str] = (),
        size_category: str | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[StoredSignature]:
        # technologies and size_category travel with the query so callers can
        # rank the fallback pool; selection itself only uses the course and hash.
        if limit <= 0:
            limit = DEFAULT_LIMIT

        def _find(conn: sqlite3.Connection) -> List[StoredSignature]:
            exact = conn.execute(
                f"""SELECT {_SELECT_COLUMNS} FROM repository_signatures
                    WHERE course_id = ? AND pattern_hash = ?
                    ORDER BY id ASC LIMIT ?""",
                (course_id, pattern_hash, limit),
            ).fetchall()
            if exact:
                self.logger.debug(
                    "Exact match for hash %s in course %s: %d signature(s)",
                    pattern_hash,
                    course_id,
                    len(exact),
                )
                return [signature_from_row(row) for row in exact]

            pool = conn.execute(
                f"""SELECT {_SELECT_COLUMNS} FROM repository_signatures
                    WHERE course_id = ?
                    ORDER BY last_used DESC, id DESC LIMIT ?""",
                (course_id, self._pool_size),
            ).fetchall()
            self.logger.debug(
                "No exact match for hash %s in course %s; %d fallback candidate(s)",
                pattern_hash,
                course_id,
                len(pool),
            )
            return [signature_from_row(row) for row in pool]

        return self._db.run(_find, label="find candidates")


__all__ = ["DEFAULT_LIMIT", "DEFAULT_POOL_SIZE", "SignatureMatcher"]
