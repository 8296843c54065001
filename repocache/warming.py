"""Cache warming: seed strategies for well-known course project layouts.

Each pattern describes the files a typical project of one kind contains.
Warming fingerprints that file list, stores it under a
``synthetic://<repo_type>`` locator and caches the list itself as the
strategy, so a student repository with the same shape hits the cache on its
first evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from .cache import StrategyCache
from .errors import CacheError
from .logging import get_logger
from .signature import SignatureBuilder
from .stores import now_ms

HOUR_MS = 60 * 60 * 1000
SYNTHETIC_SCHEME = "synthetic://"
WARMING_METHOD = "warmed"
WARMED_ACCURACY = 0.9
WARMED_EVALUATION_QUALITY = 0.85
WARMED_DISCOVERY_TIME = 1.5


@dataclass
class WarmingPattern:
    """A known project layout and how many times a day it should be re-seeded."""

    course_id: str
    repo_type: str
    common_files: List[str]
    frequency: float
    last_warmed: int = 0

    def __post_init__(self) -> None:
        if self.frequency <= 0:
            raise ValueError(f"frequency must be positive, got {self.frequency}")
        if not self.common_files:
            raise ValueError("common_files must list at least one file")
        self.common_files = list(self.common_files)

    @property
    def interval_ms(self) -> int:
        return int(24 / self.frequency * HOUR_MS)

    @property
    def repo_url(self) -> str:
        return f"{SYNTHETIC_SCHEME}{self.repo_type}"


@dataclass
class WarmingStats:
    total_warmed: int = 0
    successful_warming: int = 0
    failed_warming: int = 0
    average_warming_time: float = 0.0
    last_warming_run: int = 0


def default_patterns() -> Dict[str, WarmingPattern]:
    return {
        "mlops-standard": WarmingPattern(
            course_id="mlops",
            repo_type="mlops-project",
            common_files=[
                "README.md",
                "src/pipeline/data_ingestion.py",
                "src/pipeline/model_training.py",
                "src/pipeline/orchestrate.py",
                "model.py",
                "lambda_function.py",
                "requirements.txt",
                "Dockerfile",
            ],
            frequency=10,
        ),
        "data-eng-dbt": WarmingPattern(
            course_id="data-engineering",
            repo_type="data-engineering",
            common_files=[
                "README.md",
                "dbt/models/staging/users.sql",
                "dbt/models/core/fact_trips.sql",
                "terraform/main.tf",
                "orchestration/dags/etl_dag.py",
                "requirements.txt",
            ],
            frequency=8,
        ),
        "llm-rag": WarmingPattern(
            course_id="llm",
            repo_type="llm-project",
            common_files=[
                "README.md",
                "backend/rag/ingest.py",
                "backend/api/search.py",
                "prep.py",
                "requirements.txt",
                "docker-compose.yml",
            ],
            frequency=6,
        ),
    }


class CacheWarmer:
    """Seeds the cache from warming patterns whose interval has elapsed."""

    def __init__(
        self,
        cache: StrategyCache,
        patterns: Optional[Dict[str, WarmingPattern]] = None,
        *,
        clock: Callable[[], int] = now_ms,
        builder: SignatureBuilder | None = None,
    ) -> None:
        self.cache = cache
        self._patterns = dict(patterns) if patterns is not None else default_patterns()
        self._clock = clock
        self._builder = builder or SignatureBuilder()
        self._stats = WarmingStats()
        self.logger = get_logger("warming")

    @property
    def patterns(self) -> Dict[str, WarmingPattern]:
        return dict(self._patterns)

    def add_pattern(self, pattern_id: str, pattern: WarmingPattern) -> None:
        self._patterns[pattern_id] = pattern
        self.logger.info("Added warming pattern %s (course %s)", pattern_id, pattern.course_id)

    def remove_pattern(self, pattern_id: str) -> bool:
        removed = self._patterns.pop(pattern_id, None) is not None
        if removed:
            self.logger.info("Removed warming pattern %s", pattern_id)
        return removed

    def stats(self) -> WarmingStats:
        return replace(self._stats)

    def is_due(self, pattern: WarmingPattern, now: int) -> bool:
        return now - pattern.last_warmed > pattern.interval_ms

    def warm(self) -> WarmingStats:
        """Seed every due pattern and fold the run into the cumulative stats.

        A pattern that fails to store is counted and logged; the remaining
        patterns are still warmed.
        """
        started = self._clock()
        warmed = succeeded = failed = 0

        for pattern_id, pattern in self._patterns.items():
            if not pattern.last_warmed:
                pattern.last_warmed = self._last_seeded(pattern)
            if not self.is_due(pattern, self._clock()):
                self.logger.debug("Pattern %s warmed recently; skipping", pattern_id)
                continue

            warmed += 1
            try:
                strategy_id = self._seed(pattern)
            except CacheError as exc:
                failed += 1
                self.logger.warning("Failed to warm pattern %s: %s", pattern_id, exc)
                continue
            succeeded += 1
            pattern.last_warmed = self._clock()
            self.logger.info(
                "Warmed pattern %s as strategy %d (course %s)",
                pattern_id,
                strategy_id,
                pattern.course_id,
            )

        finished = self._clock()
        self._stats = WarmingStats(
            total_warmed=self._stats.total_warmed + warmed,
            successful_warming=self._stats.successful_warming + succeeded,
            failed_warming=self._stats.failed_warming + failed,
            average_warming_time=(finished - started) / warmed if warmed else 0.0,
            last_warming_run=finished,
        )
        self.logger.info("Cache warming finished: %d/%d patterns warmed", succeeded, warmed)
        return self.stats()

    def _seed(self, pattern: WarmingPattern) -> int:
        signature = self._builder.build(pattern.common_files)
        return self.cache.remember(
            pattern.repo_url,
            pattern.course_id,
            signature,
            pattern.common_files,
            method=WARMING_METHOD,
            discovery_time=WARMED_DISCOVERY_TIME,
            accuracy=WARMED_ACCURACY,
            evaluation_quality=WARMED_EVALUATION_QUALITY,
        )

    def _last_seeded(self, pattern: WarmingPattern) -> int:
        # Recover the last warm-up from the store so a fresh process does not re-seed.
        stored = self.cache.find_signature(pattern.repo_url, pattern.course_id)
        if stored is None:
            return 0
        strategies = self.cache.get_strategies_for(stored.id)
        return max((cached.metadata.created_at for cached in strategies), default=0)


__all__ = [
    "CacheWarmer",
    "WarmingPattern",
    "WarmingStats",
    "default_patterns",
]
