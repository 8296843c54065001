"""Strategy Store: file-selection strategies anchored to stored signatures."""

from __future__ import annotations

import json
import sqlite3
from typing import Callable, List, Optional

from ..errors import NotFoundError
from ..logging import get_logger
from ..models import (
    STRATEGY_VERSION,
    CachedStrategy,
    Performance,
    StrategyMetadata,
    StrategyProposal,
)
from .database import Database, now_ms

STRATEGY_COLUMNS = (
    "id, signature_id, course_id, selected_files, method, confidence, discovery_time, "
    "accuracy, evaluation_quality, usage_count, success_rate, processing_time, "
    "created_at, last_used, last_updated, version, revision"
)


def strategy_from_row(row: sqlite3.Row) -> CachedStrategy:
    return CachedStrategy(
        id=int(row["id"]),
        signature_id=int(row["signature_id"]),
        course_id=row["course_id"],
        strategy=StrategyProposal(
            selected_files=json.loads(row["selected_files"]),
            method=row["method"],
            confidence=float(row["confidence"]),
            processing_time=float(row["discovery_time"]),
        ),
        performance=Performance(
            accuracy=float(row["accuracy"]),
            evaluation_quality=float(row["evaluation_quality"]),
            usage_count=int(row["usage_count"]),
            success_rate=float(row["success_rate"]),
            processing_time=float(row["processing_time"]),
        ),
        metadata=StrategyMetadata(
            created_at=int(row["created_at"]),
            last_used=int(row["last_used"]),
            last_updated=int(row["last_updated"]),
            version=row["version"],
        ),
        revision=int(row["revision"]),
    )


class StrategyStore:
    """Persists strategies. A strategy's proposal never changes after insert."""

    def __init__(self, database: Database, *, clock: Callable[[], int] = now_ms) -> None:
        self._db = database
        self._clock = clock
        self.logger = get_logger("stores.strategies")

    def store_strategy(
        self,
        signature_id: int,
        course_id: str,
        strategy: StrategyProposal,
        performance: Performance,
    ) -> int:
        """Insert a strategy for an existing signature.

        ``performance.processing_time`` is not persisted: ongoing-use timing
        starts at zero and the proposal keeps its own one-time discovery cost.
        """

        def _store(conn: sqlite3.Connection) -> int:
            exists = conn.execute(
                "SELECT 1 FROM repository_signatures WHERE id = ?", (signature_id,)
            ).fetchone()
            if exists is None:
                raise NotFoundError(f"Signature {signature_id} does not exist")
            now = self._clock()
            cursor = conn.execute(
                """INSERT INTO cached_strategies (
                    signature_id, course_id, selected_files, method, confidence,
                    discovery_time, accuracy, evaluation_quality, usage_count,
                    success_rate, processing_time, created_at, last_used,
                    last_updated, version, revision
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?, ?, 0)""",
                (
                    signature_id,
                    course_id,
                    json.dumps(strategy.selected_files),
                    strategy.method,
                    strategy.confidence,
                    strategy.processing_time,
                    performance.accuracy,
                    performance.evaluation_quality,
                    performance.usage_count,
                    performance.success_rate,
                    now,
                    now,
                    now,
                    STRATEGY_VERSION,
                ),
            )
            strategy_id = cursor.lastrowid
            assert strategy_id is not None
            return strategy_id

        strategy_id = self._db.run(_store, label="store strategy")
        self.logger.debug(
            "Stored strategy %d (%s, %d files) for signature %d",
            strategy_id,
            strategy.method,
            len(strategy.selected_files),
            signature_id,
        )
        return strategy_id

    def get_strategies(self, signature_id: int) -> List[CachedStrategy]:
        def _list(conn: sqlite3.Connection) -> List[CachedStrategy]:
            rows = conn.execute(
                f"SELECT {STRATEGY_COLUMNS} FROM cached_strategies "
                "WHERE signature_id = ? ORDER BY id ASC",
                (signature_id,),
            ).fetchall()
            return [strategy_from_row(row) for row in rows]

        return self._db.run(_list, label="get strategies")

    def get(self, strategy_id: int) -> Optional[CachedStrategy]:
        def _get(conn: sqlite3.Connection) -> Optional[CachedStrategy]:
            row = conn.execute(
                f"SELECT {STRATEGY_COLUMNS} FROM cached_strategies WHERE id = ?",
                (strategy_id,),
            ).fetchone()
            return strategy_from_row(row) if row is not None else None

        return self._db.run(_get, label="get strategy")


__all__ = ["STRATEGY_COLUMNS", "StrategyStore", "strategy_from_row"]
