"""Strategy cache facade consumed by the evaluation pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import CacheConfig, load_config
from .logging import get_logger
from .models import (
    BenchmarkComparison,
    BenchmarkMetrics,
    BenchmarkResult,
    CacheHit,
    CacheStats,
    CachedStrategy,
    EvictionResult,
    Performance,
    RepositorySignature,
    StoredSignature,
    StrategyProposal,
)
from .similarity import rank_matches
from .stores import (
    BenchmarkRecorder,
    CacheMaintenance,
    Database,
    SignatureMatcher,
    SignatureStore,
    StatisticsTracker,
    StrategyStore,
    now_ms,
)


class StrategyCache:
    """Memoizes file-selection strategies keyed by repository signature.

    All components share the injected ``Database`` handle; nothing is held in
    module state. Open with :meth:`open` at process start and release with
    :meth:`close` at shutdown.
    """

    def __init__(
        self,
        database: Database,
        config: CacheConfig | None = None,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.database = database
        self.config = config
        self.similarity_threshold = config.similarity_threshold if config else 0.85
        self.candidate_limit = config.candidate_limit if config else 10
        self.max_entries = config.max_entries if config else 1000
        pool_size = config.fallback_pool_size if config else 50

        self.signatures = SignatureStore(database, clock=clock)
        self.matcher = SignatureMatcher(database, pool_size=pool_size)
        self.strategies = StrategyStore(database, clock=clock)
        self.statistics = StatisticsTracker(database, clock=clock)
        self.maintenance = CacheMaintenance(database, clock=clock)
        self.benchmarks = BenchmarkRecorder(database)
        self.logger = get_logger("cache")

    @classmethod
    def open(cls, config: CacheConfig | Path | str = Path(".")) -> "StrategyCache":
        if not isinstance(config, CacheConfig):
            config = load_config(Path(config))
        database = Database(
            config.database_path,
            busy_timeout=config.busy_timeout,
            retry_attempts=config.retry_attempts,
            retry_backoff=config.retry_backoff,
        )
        return cls(database, config)

    def close(self) -> None:
        self.database.close()

    def __enter__(self) -> "StrategyCache":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Store operations

    def store_signature(
        self, repo_url: str, course_id: str, signature: RepositorySignature
    ) -> int:
        return self.signatures.store(repo_url, course_id, signature)

    def find_signature(self, repo_url: str, course_id: str) -> Optional[StoredSignature]:
        return self.signatures.find(repo_url, course_id)

    def find_similar_signatures(
        self,
        course_id: str,
        pattern_hash: str,
        technologies: Sequence[str] = (),
        size_category: str | None = None,
        limit: Optional[int] = None,
    ) -> List[StoredSignature]:
        return self.matcher.find_candidates(
            course_id,
            pattern_hash,
            technologies,
            size_category,
            limit=limit if limit is not None and limit > 0 else self.candidate_limit,
        )

    def store_strategy(
        self,
        signature_id: int,
        course_id: str,
        strategy: StrategyProposal,
        performance: Performance,
    ) -> int:
        return self.strategies.store_strategy(signature_id, course_id, strategy, performance)

    def get_strategies_for(self, signature_id: int) -> List[CachedStrategy]:
        return self.strategies.get_strategies(signature_id)

    def record_usage(
        self,
        strategy_id: int,
        success: bool,
        evaluation_quality: Optional[float] = None,
    ) -> None:
        self.statistics.record_usage(strategy_id, success, evaluation_quality)

    def get_cache_stats(self) -> CacheStats:
        return self.maintenance.get_stats()

    def evict_stale(self, max_age_ms: int, max_entries: int) -> EvictionResult:
        return EvictionResult(deleted_count=self.maintenance.evict(max_age_ms, max_entries))

    def record_benchmark(
        self,
        test_suite_id: str,
        system_type: str,
        metrics: BenchmarkMetrics,
        timestamp: int,
    ) -> int:
        return self.benchmarks.record(test_suite_id, system_type, metrics, timestamp)

    def get_benchmarks(self, test_suite_id: str) -> List[BenchmarkResult]:
        return self.benchmarks.get_results(test_suite_id)

    def compare_benchmarks(self, test_suite_id: str) -> BenchmarkComparison:
        return self.benchmarks.compare(test_suite_id)

    # ------------------------------------------------------------------
    # Pipeline helpers

    def lookup(self, signature: RepositorySignature, course_id: str) -> Optional[CacheHit]:
        """Return the best reusable strategy for a repository, or ``None`` on a miss.

        Usage is not recorded here; the caller reports the outcome through
        :meth:`record_usage` once the evaluation finishes.
        """
        candidates = self.find_similar_signatures(
            course_id,
            signature.pattern_hash,
            signature.technologies,
            signature.size_category,
        )
        if not candidates:
            self.logger.debug("Cold start for course %s: no signatures cached", course_id)
            return None

        scored = [
            (candidate, self.strategies.get_strategies(candidate.id))
            for candidate in candidates
        ]
        matches = rank_matches(
            signature, scored, minimum_similarity=self.similarity_threshold
        )
        if not matches:
            self.logger.info(
                "Cache miss for hash %s (course %s): %d candidate(s) below %.2f similarity",
                signature.pattern_hash,
                course_id,
                len(candidates),
                self.similarity_threshold,
            )
            return None

        best = matches[0]
        self.logger.info(
            "Cache hit: strategy %d at %.1f%% similarity",
            best.strategy.id,
            best.similarity * 100,
        )
        features = list(best.matched_features)
        return CacheHit(
            strategy_id=best.strategy.id,
            selected_files=list(best.strategy.strategy.selected_files),
            method=best.strategy.strategy.method,
            similarity=best.similarity,
            confidence=best.confidence,
            matched_features=features,
            reasoning=(
                f"Found cached strategy with {best.similarity * 100:.1f}% similarity. "
                f"Matched features: {', '.join(features) or 'none'}."
            ),
        )

    def remember(
        self,
        repo_url: str,
        course_id: str,
        signature: RepositorySignature,
        selected_files: Sequence[str],
        *,
        method: str = "hybrid",
        confidence: float = 0.9,
        discovery_time: float = 0.0,
        accuracy: float = 0.0,
        evaluation_quality: float = 0.0,
    ) -> int:
        """Cache a freshly computed strategy after a miss."""
        signature_id = self.store_signature(repo_url, course_id, signature)
        strategy_id = self.store_strategy(
            signature_id,
            course_id,
            StrategyProposal(
                selected_files=list(selected_files),
                method=method,
                confidence=confidence,
                processing_time=discovery_time,
            ),
            Performance(
                accuracy=accuracy,
                evaluation_quality=evaluation_quality,
                usage_count=1,
                success_rate=1.0,
            ),
        )
        self.maintenance.trim_to_capacity(self.max_entries)
        self.logger.info(
            "Cached strategy %d for %s (%d files)", strategy_id, repo_url, len(selected_files)
        )
        return strategy_id


__all__ = ["StrategyCache"]
