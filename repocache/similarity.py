"""Similarity scoring between repository signatures.

The matcher only bounds the candidate pool; ranking happens here, on the
caller's side of the store.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .models import (
    CachedStrategy,
    Performance,
    RepositorySignature,
    SimilarityMatch,
    StoredSignature,
)

HASH_WEIGHT = 0.4
TECHNOLOGY_WEIGHT = 0.3
DIRECTORY_WEIGHT = 0.2
SIZE_WEIGHT = 0.1
FEATURE_OVERLAP_THRESHOLD = 0.5


def jaccard(left: Iterable[str], right: Iterable[str]) -> float:
    a, b = set(left), set(right)
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def signature_similarity(left: RepositorySignature, right: RepositorySignature) -> float:
    """Weighted similarity in [0, 1]."""
    score = 0.0
    if left.pattern_hash == right.pattern_hash:
        score += HASH_WEIGHT
    score += TECHNOLOGY_WEIGHT * jaccard(left.technologies, right.technologies)
    score += DIRECTORY_WEIGHT * jaccard(left.directory_structure, right.directory_structure)
    if left.size_category == right.size_category:
        score += SIZE_WEIGHT
    # Rounded so identical signatures score exactly 1.0.
    return min(round(score, 9), 1.0)


def matched_features(left: RepositorySignature, right: RepositorySignature) -> List[str]:
    features: List[str] = []
    if left.pattern_hash == right.pattern_hash:
        features.append("pattern_hash")
    if left.size_category == right.size_category:
        features.append("size_category")
    if jaccard(left.technologies, right.technologies) > FEATURE_OVERLAP_THRESHOLD:
        features.append("technologies")
    if jaccard(left.directory_structure, right.directory_structure) > FEATURE_OVERLAP_THRESHOLD:
        features.append("directory_structure")
    return features


def strategy_confidence(similarity: float, performance: Performance) -> float:
    """Blend signature similarity with the strategy's track record."""
    confidence = similarity
    confidence += performance.success_rate * 0.1
    confidence += min(performance.usage_count / 10, 0.1)
    return min(confidence, 1.0)


def rank_matches(
    query: RepositorySignature,
    candidates: Sequence[tuple[StoredSignature, Sequence[CachedStrategy]]],
    *,
    minimum_similarity: float = 0.0,
) -> List[SimilarityMatch]:
    """Score every strategy of every candidate signature, best first."""
    matches: List[SimilarityMatch] = []
    for stored, strategies in candidates:
        similarity = signature_similarity(query, stored.signature)
        if similarity < minimum_similarity:
            continue
        features = matched_features(query, stored.signature)
        for strategy in strategies:
            matches.append(
                SimilarityMatch(
                    strategy=strategy,
                    signature=stored,
                    similarity=similarity,
                    confidence=strategy_confidence(similarity, strategy.performance),
                    matched_features=tuple(features),
                )
            )
    matches.sort(key=lambda match: (match.similarity, match.confidence), reverse=True)
    return matches


__all__ = [
    "jaccard",
    "matched_features",
    "rank_matches",
    "signature_similarity",
    "strategy_confidence",
]
