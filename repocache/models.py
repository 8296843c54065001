"""Core data models shared across repocache components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence

SizeCategory = Literal["small", "medium", "large"]
SystemType = Literal["current", "hybrid"]

SIZE_CATEGORIES: tuple[str, ...] = ("small", "medium", "large")
SYSTEM_TYPES: tuple[str, ...] = ("current", "hybrid")
STRATEGY_VERSION = "1.0"


@dataclass(frozen=True)
class RepositorySignature:
    """Structural fingerprint of a repository at a point in time."""

    directory_structure: List[str]
    technologies: List[str]
    file_types: Dict[str, int]
    size_category: SizeCategory
    pattern_hash: str

    def __post_init__(self) -> None:
        if self.size_category not in SIZE_CATEGORIES:
            raise ValueError(
                f"size_category must be one of {', '.join(SIZE_CATEGORIES)}, "
                f"got {self.size_category!r}"
            )
        if not self.pattern_hash:
            raise ValueError("pattern_hash must be a non-empty string")
        object.__setattr__(self, "file_types", validate_file_types(self.file_types))
        object.__setattr__(self, "directory_structure", list(self.directory_structure))
        object.__setattr__(self, "technologies", sorted(set(self.technologies)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directory_structure": list(self.directory_structure),
            "technologies": list(self.technologies),
            "file_types": dict(self.file_types),
            "size_category": self.size_category,
            "pattern_hash": self.pattern_hash,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RepositorySignature":
        return cls(
            directory_structure=[str(item) for item in data.get("directory_structure", [])],
            technologies=[str(item) for item in data.get("technologies", [])],
            file_types=dict(data.get("file_types") or {}),
            size_category=data.get("size_category", ""),  # type: ignore[arg-type]
            pattern_hash=str(data.get("pattern_hash", "")),
        )


def validate_file_types(value: object) -> Dict[str, int]:
    """Return an extension histogram, rejecting anything but ``str -> int >= 0``."""
    if not isinstance(value, Mapping):
        raise ValueError("file_types must be a mapping of extension to count")
    result: Dict[str, int] = {}
    for key, count in value.items():
        if not isinstance(key, str):
            raise ValueError(f"file_types key must be a string, got {key!r}")
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValueError(f"file_types[{key!r}] must be a non-negative integer")
        result[key] = count
    return result


@dataclass
class StoredSignature:
    """A signature persisted for one (repository, course) pair."""

    id: int
    repo_url: str
    course_id: str
    signature: RepositorySignature
    created_at: int
    last_used: int


@dataclass(frozen=True)
class StrategyProposal:
    """File-selection approach proposed for a signature. Immutable once stored."""

    selected_files: List[str]
    method: str
    confidence: float
    processing_time: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        object.__setattr__(self, "selected_files", list(self.selected_files))


@dataclass
class Performance:
    """Running usage statistics for a cached strategy."""

    accuracy: float = 0.0
    evaluation_quality: float = 0.0
    usage_count: int = 0
    success_rate: float = 0.0
    processing_time: float = 0.0

    def __post_init__(self) -> None:
        if self.usage_count < 0:
            raise ValueError("usage_count must be non-negative")
        if not 0.0 <= self.success_rate <= 1.0:
            raise ValueError(f"success_rate must be within [0, 1], got {self.success_rate}")


@dataclass
class StrategyMetadata:
    created_at: int
    last_used: int
    last_updated: int
    version: str = STRATEGY_VERSION


@dataclass
class CachedStrategy:
    """A stored strategy together with its evolving performance and metadata."""

    id: int
    signature_id: int
    course_id: str
    strategy: StrategyProposal
    performance: Performance
    metadata: StrategyMetadata
    revision: int = 0


@dataclass(frozen=True)
class BenchmarkMetrics:
    file_selection_accuracy: float
    processing_speed: float
    token_efficiency: float
    evaluation_quality: float
    error_rate: float
    cache_hit_rate: Optional[float] = None


@dataclass(frozen=True)
class BenchmarkResult:
    """Append-only comparison record between the baseline and cached systems."""

    id: int
    test_suite_id: str
    system_type: SystemType
    metrics: BenchmarkMetrics
    timestamp: int


@dataclass(frozen=True)
class BenchmarkComparison:
    """Average metrics per system variant and the hybrid system's improvements."""

    test_suite_id: str
    current: Optional[BenchmarkMetrics]
    hybrid: Optional[BenchmarkMetrics]
    improvements: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class CacheStats:
    total_signatures: int
    total_strategies: int
    total_usage: int
    average_success_rate: float
    cache_size: int


@dataclass(frozen=True)
class EvictionResult:
    deleted_count: int


@dataclass(frozen=True)
class SimilarityMatch:
    """A candidate strategy scored against a query signature."""

    strategy: CachedStrategy
    signature: StoredSignature
    similarity: float
    confidence: float
    matched_features: Sequence[str] = ()


@dataclass(frozen=True)
class CacheHit:
    """Strategy reused for a repository, returned by ``StrategyCache.lookup``."""

    strategy_id: int
    selected_files: List[str]
    method: str
    similarity: float
    confidence: float
    matched_features: List[str]
    reasoning: str


__all__ = [
    "BenchmarkComparison",
    "BenchmarkMetrics",
    "BenchmarkResult",
    "CacheHit",
    "CacheStats",
    "CachedStrategy",
    "EvictionResult",
    "Performance",
    "RepositorySignature",
    "SIZE_CATEGORIES",
    "STRATEGY_VERSION",
    "SYSTEM_TYPES",
    "SimilarityMatch",
    "SizeCategory",
    "StoredSignature",
    "StrategyMetadata",
    "StrategyProposal",
    "SystemType",
    "validate_file_types",
]
