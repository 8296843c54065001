"""Error taxonomy for the strategy cache."""

from __future__ import annotations


class CacheError(RuntimeError):
    """Base class for strategy cache failures."""


class ConfigError(CacheError):
    """Raised when the configuration file cannot be parsed."""


class NotFoundError(CacheError, LookupError):
    """Raised when a write references a signature or strategy that does not exist."""


class ConcurrencyConflict(CacheError):
    """Raised when an optimistic write loses a race; retried internally."""


class TransientStoreError(CacheError):
    """Raised once internal retries are exhausted. Callers may retry the operation."""


class StoreUnavailable(CacheError):
    """Raised when the backing store fails for reasons other than contention."""


__all__ = [
    "CacheError",
    "ConcurrencyConflict",
    "ConfigError",
    "NotFoundError",
    "StoreUnavailable",
    "TransientStoreError",
]
