"""Tests for the similarity matcher."""

from __future__ import annotations

from repocache.stores import Database, SignatureMatcher, SignatureStore


def test_exact_hash_match_takes_precedence(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)
    a = store.store("repo-a", "course-1", make_signature("h1", technologies=("python",)))
    store.store(
        "repo-b",
        "course-1",
        make_signature("h2", technologies=("python", "docker"), size_category="small"),
    )

    found = SignatureMatcher(database).find_candidates(
        "course-1", "h1", ["python", "docker"], "small"
    )

    assert [candidate.id for candidate in found] == [a]


def test_exact_matches_are_in_insertion_order_and_limited(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)
    ids = []
    for index in range(5):
        clock.advance(10)
        ids.append(store.store(f"repo-{index}", "course-1", make_signature("same")))

    matcher = SignatureMatcher(database)
    assert [c.id for c in matcher.find_candidates("course-1", "same")] == ids
    assert [c.id for c in matcher.find_candidates("course-1", "same", limit=2)] == ids[:2]


def test_fallback_pool_is_bounded(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)
    for index in range(1000):
        store.store(f"repo-{index}", "course-1", make_signature(f"h{index}"))

    found = SignatureMatcher(database).find_candidates("course-1", "missing", [], "large")

    assert 0 < len(found) <= 50


def test_fallback_never_crosses_courses(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)
    store.store("repo-a", "course-1", make_signature("h1"))
    other = store.store("repo-b", "course-2", make_signature("h2"))

    matcher = SignatureMatcher(database)
    assert matcher.find_candidates("course-1", "h2") != []
    assert all(c.course_id == "course-1" for c in matcher.find_candidates("course-1", "h2"))
    assert [c.id for c in matcher.find_candidates("course-2", "zzz")] == [other]


def test_cold_start_returns_empty(database: Database) -> None:
    assert SignatureMatcher(database).find_candidates("course-1", "h1", ["python"], "small") == []


def test_fallback_pool_size_is_configurable(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)
    for index in range(10):
        store.store(f"repo-{index}", "course-1", make_signature(f"h{index}"))

    found = SignatureMatcher(database, pool_size=3).find_candidates("course-1", "missing")

    assert len(found) == 3


def test_zero_limit_keeps_exact_match_precedence(database, clock, make_signature) -> None:
    store = SignatureStore(database, clock=clock)
    a = store.store("repo-a", "course-1", make_signature("h1"))
    store.store("repo-b", "course-1", make_signature("h2"))

    matcher = SignatureMatcher(database)

    assert [c.id for c in matcher.find_candidates("course-1", "h1", limit=0)] == [a]
    assert [c.id for c in matcher.find_candidates("course-1", "h1", limit=-3)] == [a]


def test_facade_treats_non_positive_limit_as_default(cache, make_signature) -> None:
    ids = [
        cache.store_signature(f"repo-{index}", "course-1", make_signature("same"))
        for index in range(12)
    ]
    cache.store_signature("repo-other", "course-1", make_signature("other"))

    found = cache.find_similar_signatures("course-1", "same", limit=0)

    assert [c.id for c in found] == ids[: cache.candidate_limit]
