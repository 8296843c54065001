"""Statistics Tracker: running usage statistics for cached strategies."""

from __future__ import annotations

import sqlite3
from typing import Callable, Optional

from ..errors import ConcurrencyConflict
from ..logging import get_logger
from .database import Database, now_ms


def incremental_mean(previous: float, count: int, sample: float) -> float:
    """Fold ``sample`` into a mean of ``count`` prior observations.

    The prior mean is weighted by the pre-increment count, the new sample by
    one, and the sum divided by the new total.
    """
    return (previous * count + sample) / (count + 1)


class StatisticsTracker:
    """Applies usage reports to strategies with optimistic concurrency."""

    def __init__(self, database: Database, *, clock: Callable[[], int] = now_ms) -> None:
        self._db = database
        self._clock = clock
        self.logger = get_logger("stores.statistics")

    def record_usage(
        self,
        strategy_id: int,
        success: bool,
        evaluation_quality: Optional[float] = None,
    ) -> None:
        """Count one use of a strategy. Unknown ids are ignored."""

        def _record(conn: sqlite3.Connection) -> bool:
            row = conn.execute(
                """SELECT usage_count, success_rate, evaluation_quality, revision
                   FROM cached_strategies WHERE id = ?""",
                (strategy_id,),
            ).fetchone()
            if row is None:
                return False

            count = int(row["usage_count"])
            success_rate = min(
                1.0, incremental_mean(float(row["success_rate"]), count, 1.0 if success else 0.0)
            )
            quality = float(row["evaluation_quality"])
            if evaluation_quality is not None:
                quality = incremental_mean(quality, count, float(evaluation_quality))
            now = self._clock()

            cursor = conn.execute(
                """UPDATE cached_strategies
                   SET usage_count = ?, success_rate = ?, evaluation_quality = ?,
                       last_used = ?, last_updated = ?, revision = revision + 1
                   WHERE id = ? AND revision = ?""",
                (count + 1, success_rate, quality, now, now, strategy_id, row["revision"]),
            )
            if cursor.rowcount == 0:
                raise ConcurrencyConflict(
                    f"Strategy {strategy_id} changed while recording usage"
                )
            return True

        recorded = self._db.run(_record, label="record usage")
        if not recorded:
            self.logger.debug("Usage for strategy %s ignored: strategy no longer cached", strategy_id)


__all__ = ["StatisticsTracker", "incremental_mean"]
