"""Benchmark Recorder: append-only baseline vs. cached-system comparisons."""

from __future__ import annotations

import sqlite3
from statistics import fmean
from typing import Dict, List, Optional, Sequence

from ..logging import get_logger
from ..models import (
    SYSTEM_TYPES,
    BenchmarkComparison,
    BenchmarkMetrics,
    BenchmarkResult,
)
from .database import Database


def _result_from_row(row: sqlite3.Row) -> BenchmarkResult:
    cache_hit_rate = row["cache_hit_rate"]
    return BenchmarkResult(
        id=int(row["id"]),
        test_suite_id=row["test_suite_id"],
        system_type=row["system_type"],
        metrics=BenchmarkMetrics(
            file_selection_accuracy=float(row["file_selection_accuracy"]),
            processing_speed=float(row["processing_speed"]),
            token_efficiency=float(row["token_efficiency"]),
            evaluation_quality=float(row["evaluation_quality"]),
            error_rate=float(row["error_rate"]),
            cache_hit_rate=float(cache_hit_rate) if cache_hit_rate is not None else None,
        ),
        timestamp=int(row["timestamp"]),
    )


def average_metrics(results: Sequence[BenchmarkMetrics]) -> Optional[BenchmarkMetrics]:
    if not results:
        return None
    hit_rates = [m.cache_hit_rate for m in results if m.cache_hit_rate is not None]
    return BenchmarkMetrics(
        file_selection_accuracy=fmean(m.file_selection_accuracy for m in results),
        processing_speed=fmean(m.processing_speed for m in results),
        token_efficiency=fmean(m.token_efficiency for m in results),
        evaluation_quality=fmean(m.evaluation_quality for m in results),
        error_rate=fmean(m.error_rate for m in results),
        cache_hit_rate=fmean(hit_rates) if hit_rates else None,
    )


class BenchmarkRecorder:
    def __init__(self, database: Database) -> None:
        self._db = database
        self.logger = get_logger("stores.benchmarks")

    def record(
        self,
        test_suite_id: str,
        system_type: str,
        metrics: BenchmarkMetrics,
        timestamp: int,
    ) -> int:
        if system_type not in SYSTEM_TYPES:
            raise ValueError(
                f"system_type must be one of {', '.join(SYSTEM_TYPES)}, got {system_type!r}"
            )

        def _record(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                """INSERT INTO benchmark_results (
                    test_suite_id, system_type, file_selection_accuracy,
                    processing_speed, token_efficiency, cache_hit_rate,
                    evaluation_quality, error_rate, timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    test_suite_id,
                    system_type,
                    metrics.file_selection_accuracy,
                    metrics.processing_speed,
                    metrics.token_efficiency,
                    metrics.cache_hit_rate,
                    metrics.evaluation_quality,
                    metrics.error_rate,
                    timestamp,
                ),
            )
            result_id = cursor.lastrowid
            assert result_id is not None
            return result_id

        return self._db.run(_record, label="record benchmark")

    def get_results(self, test_suite_id: str) -> List[BenchmarkResult]:
        def _results(conn: sqlite3.Connection) -> List[BenchmarkResult]:
            rows = conn.execute(
                "SELECT * FROM benchmark_results WHERE test_suite_id = ?",
                (test_suite_id,),
            ).fetchall()
            return [_result_from_row(row) for row in rows]

        return self._db.run(_results, label="get benchmarks")

    def compare(self, test_suite_id: str) -> BenchmarkComparison:
        """Average each variant's runs and report how the hybrid system fared."""
        by_system: Dict[str, List[BenchmarkMetrics]] = {name: [] for name in SYSTEM_TYPES}
        for result in self.get_results(test_suite_id):
            by_system[result.system_type].append(result.metrics)

        current = average_metrics(by_system["current"])
        hybrid = average_metrics(by_system["hybrid"])
        improvements: Dict[str, float] = {}
        if current is not None and hybrid is not None:
            improvements["accuracy"] = (
                hybrid.file_selection_accuracy - current.file_selection_accuracy
            )
            if current.processing_speed:
                improvements["speed"] = (
                    current.processing_speed - hybrid.processing_speed
                ) / current.processing_speed
            improvements["token_reduction"] = hybrid.token_efficiency
            improvements["quality"] = hybrid.evaluation_quality - current.evaluation_quality
        return BenchmarkComparison(
            test_suite_id=test_suite_id,
            current=current,
            hybrid=hybrid,
            improvements=improvements,
        )


__all__ = ["BenchmarkRecorder", "average_metrics"]
