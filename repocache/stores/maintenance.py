"""Cache Maintenance: health reporting and strategy eviction.

Eviction only ever removes strategies. Signatures whose strategies are all
gone stay in place, since a signature is cheap to keep and a strategy is
expensive to rediscover.
"""

from __future__ import annotations

import sqlite3
from typing import Callable, List

from ..logging import get_logger
from ..models import CacheStats
from .database import Database, now_ms


class CacheMaintenance:
    def __init__(self, database: Database, *, clock: Callable[[], int] = now_ms) -> None:
        self._db = database
        self._clock = clock
        self.logger = get_logger("stores.maintenance")

    def get_stats(self) -> CacheStats:
        """Aggregate over every signature and strategy.

        ``average_success_rate`` is the plain mean of per-strategy rates; it is
        not weighted by usage.
        """

        def _stats(conn: sqlite3.Connection) -> CacheStats:
            total_signatures = conn.execute(
                "SELECT COUNT(*) FROM repository_signatures"
            ).fetchone()[0]
            row = conn.execute(
                """SELECT COUNT(*) AS strategies,
                          COALESCE(SUM(usage_count), 0) AS usage,
                          COALESCE(AVG(success_rate), 0.0) AS success
                   FROM cached_strategies"""
            ).fetchone()
            return CacheStats(
                total_signatures=int(total_signatures),
                total_strategies=int(row["strategies"]),
                total_usage=int(row["usage"]),
                average_success_rate=float(row["success"]),
                cache_size=int(row["strategies"]),
            )

        return self._db.run(_stats, label="cache stats")

    def evict(self, max_age_ms: int, max_entries: int) -> int:
        """Delete up to ``max_entries`` strategies unused for ``max_age_ms``, oldest first."""
        if max_entries <= 0:
            return 0
        cutoff = self._clock() - max_age_ms

        def _evict(conn: sqlite3.Connection) -> int:
            rows = conn.execute(
                """SELECT id FROM cached_strategies
                   WHERE last_used < ?
                   ORDER BY last_used ASC, id ASC LIMIT ?""",
                (cutoff, max_entries),
            ).fetchall()
            return self._delete(conn, [int(row["id"]) for row in rows])

        deleted = self._db.run(_evict, label="evict stale strategies")
        if deleted:
            self.logger.info("Evicted %d strategies unused since %d", deleted, cutoff)
        return deleted

    def trim_to_capacity(self, max_strategies: int) -> int:
        """Delete the least recently used strategies beyond ``max_strategies``."""

        def _trim(conn: sqlite3.Connection) -> int:
            total = conn.execute("SELECT COUNT(*) FROM cached_strategies").fetchone()[0]
            excess = int(total) - max(0, max_strategies)
            if excess <= 0:
                return 0
            rows = conn.execute(
                """SELECT id FROM cached_strategies
                   ORDER BY last_used ASC, id ASC LIMIT ?""",
                (excess,),
            ).fetchall()
            return self._delete(conn, [int(row["id"]) for row in rows])

        deleted = self._db.run(_trim, label="trim cache")
        if deleted:
            self.logger.info(
                "Trimmed %d least recently used strategies (capacity %d)",
                deleted,
                max_strategies,
            )
        return deleted

    @staticmethod
    def _delete(conn: sqlite3.Connection, strategy_ids: List[int]) -> int:
        if not strategy_ids:
            return 0
        conn.executemany(
            "DELETE FROM cached_strategies WHERE id = ?",
            [(strategy_id,) for strategy_id in strategy_ids],
        )
        return len(strategy_ids)


__all__ = ["CacheMaintenance"]
