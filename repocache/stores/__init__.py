"""SQLite-backed stores for signatures, strategies and benchmarks."""

from .benchmarks import BenchmarkRecorder
from .database import Database, now_ms
from .maintenance import CacheMaintenance
from .matcher import SignatureMatcher
from .signatures import SignatureStore
from .statistics import StatisticsTracker
from .strategies import StrategyStore

__all__ = [
    "BenchmarkRecorder",
    "CacheMaintenance",
    "Database",
    "SignatureMatcher",
    "SignatureStore",
    "StatisticsTracker",
    "StrategyStore",
    "now_ms",
]
