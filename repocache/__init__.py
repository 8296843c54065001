"""Repository file-selection strategy cache."""

from .cache import StrategyCache
from .errors import (
    CacheError,
    ConfigError,
    NotFoundError,
    StoreUnavailable,
    TransientStoreError,
)
from .models import (
    BenchmarkMetrics,
    CachedStrategy,
    Performance,
    RepositorySignature,
    StrategyProposal,
)
from .signature import SignatureBuilder

__all__ = [
    "BenchmarkMetrics",
    "CacheError",
    "CachedStrategy",
    "ConfigError",
    "NotFoundError",
    "Performance",
    "RepositorySignature",
    "SignatureBuilder",
    "StoreUnavailable",
    "StrategyCache",
    "StrategyProposal",
    "TransientStoreError",
]
