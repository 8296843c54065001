"""FastAPI application exposing the strategy cache over HTTP."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import partial
from typing import Any, AsyncIterator, Callable, Dict, List, Literal, Optional, TypeVar

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..cache import StrategyCache
from ..errors import NotFoundError, StoreUnavailable, TransientStoreError
from ..models import (
    BenchmarkMetrics,
    BenchmarkResult,
    CachedStrategy,
    Performance,
    RepositorySignature,
    StoredSignature,
    StrategyProposal,
)

T = TypeVar("T")


class SignaturePayload(BaseModel):
    directory_structure: List[str]
    technologies: List[str]
    file_types: Dict[str, int]
    size_category: Literal["small", "medium", "large"]
    pattern_hash: str = Field(min_length=1)


class StoreSignatureRequest(BaseModel):
    repo_url: str
    course_id: str
    signature: SignaturePayload


class StoreSignatureResponse(BaseModel):
    signature_id: int


class FindSimilarRequest(BaseModel):
    course_id: str
    pattern_hash: str
    technologies: List[str] = Field(default_factory=list)
    size_category: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)


class StoredSignatureResponse(BaseModel):
    id: int
    repo_url: str
    course_id: str
    signature: SignaturePayload
    created_at: int
    last_used: int


class StrategyPayload(BaseModel):
    selected_files: List[str]
    method: str
    confidence: float = Field(ge=0.0, le=1.0)
    processing_time: float = 0.0


class PerformancePayload(BaseModel):
    accuracy: float = 0.0
    evaluation_quality: float = 0.0
    usage_count: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    processing_time: float = 0.0


class StoreStrategyRequest(BaseModel):
    signature_id: int
    course_id: str
    strategy: StrategyPayload
    performance: PerformancePayload


class StoreStrategyResponse(BaseModel):
    strategy_id: int


class MetadataPayload(BaseModel):
    created_at: int
    last_used: int
    last_updated: int
    version: str


class CachedStrategyResponse(BaseModel):
    id: int
    signature_id: int
    course_id: str
    strategy: StrategyPayload
    performance: PerformancePayload
    metadata: MetadataPayload


class UsageRequest(BaseModel):
    success: bool
    evaluation_quality: Optional[float] = None


class StatusResponse(BaseModel):
    status: str


class CacheStatsResponse(BaseModel):
    total_signatures: int
    total_strategies: int
    total_usage: int
    average_success_rate: float
    cache_size: int


class EvictRequest(BaseModel):
    max_age_ms: int = Field(ge=0)
    max_entries: int = Field(ge=0)


class EvictResponse(BaseModel):
    deleted_count: int


class MetricsPayload(BaseModel):
    file_selection_accuracy: float
    processing_speed: float
    token_efficiency: float
    evaluation_quality: float
    error_rate: float
    cache_hit_rate: Optional[float] = None


class RecordBenchmarkRequest(BaseModel):
    test_suite_id: str
    system_type: Literal["current", "hybrid"]
    metrics: MetricsPayload
    timestamp: int


class RecordBenchmarkResponse(BaseModel):
    id: int


class BenchmarkResultResponse(BaseModel):
    id: int
    test_suite_id: str
    system_type: str
    metrics: MetricsPayload
    timestamp: int


def _signature_response(stored: StoredSignature) -> StoredSignatureResponse:
    return StoredSignatureResponse(
        id=stored.id,
        repo_url=stored.repo_url,
        course_id=stored.course_id,
        signature=SignaturePayload(**stored.signature.to_dict()),
        created_at=stored.created_at,
        last_used=stored.last_used,
    )


def _strategy_response(cached: CachedStrategy) -> CachedStrategyResponse:
    return CachedStrategyResponse(
        id=cached.id,
        signature_id=cached.signature_id,
        course_id=cached.course_id,
        strategy=StrategyPayload(
            selected_files=cached.strategy.selected_files,
            method=cached.strategy.method,
            confidence=cached.strategy.confidence,
            processing_time=cached.strategy.processing_time,
        ),
        performance=PerformancePayload(
            accuracy=cached.performance.accuracy,
            evaluation_quality=cached.performance.evaluation_quality,
            usage_count=cached.performance.usage_count,
            success_rate=cached.performance.success_rate,
            processing_time=cached.performance.processing_time,
        ),
        metadata=MetadataPayload(
            created_at=cached.metadata.created_at,
            last_used=cached.metadata.last_used,
            last_updated=cached.metadata.last_updated,
            version=cached.metadata.version,
        ),
    )


def _benchmark_response(result: BenchmarkResult) -> BenchmarkResultResponse:
    metrics = result.metrics
    return BenchmarkResultResponse(
        id=result.id,
        test_suite_id=result.test_suite_id,
        system_type=result.system_type,
        metrics=MetricsPayload(
            file_selection_accuracy=metrics.file_selection_accuracy,
            processing_speed=metrics.processing_speed,
            token_efficiency=metrics.token_efficiency,
            evaluation_quality=metrics.evaluation_quality,
            error_rate=metrics.error_rate,
            cache_hit_rate=metrics.cache_hit_rate,
        ),
        timestamp=result.timestamp,
    )


async def _run_blocking(func: Callable[..., T], *args: Any) -> T:
    # Store calls block on sqlite; keep them off the event loop.
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args))


def create_app(cache_factory: Callable[[], StrategyCache] = StrategyCache.open) -> FastAPI:
    """Create the FastAPI application exposing strategy cache operations."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        cache = getattr(app.state, "cache", None)
        if cache is not None:
            cache.close()

    app = FastAPI(title="Repository Strategy Cache", version="1.0.0", lifespan=lifespan)
    app.state.cache = cache_factory()

    async def get_cache(request: Request) -> StrategyCache:
        return request.app.state.cache

    @app.get("/health", response_model=StatusResponse)
    async def health() -> StatusResponse:
        return StatusResponse(status="ok")

    @app.post("/signatures", response_model=StoreSignatureResponse)
    async def store_signature(
        payload: StoreSignatureRequest, cache: StrategyCache = Depends(get_cache)
    ) -> StoreSignatureResponse:
        signature = RepositorySignature(**payload.signature.model_dump())
        signature_id = await _run_blocking(
            cache.store_signature, payload.repo_url, payload.course_id, signature
        )
        return StoreSignatureResponse(signature_id=signature_id)

    @app.post("/signatures/similar", response_model=List[StoredSignatureResponse])
    async def find_similar(
        payload: FindSimilarRequest, cache: StrategyCache = Depends(get_cache)
    ) -> List[StoredSignatureResponse]:
        found = await _run_blocking(
            cache.find_similar_signatures,
            payload.course_id,
            payload.pattern_hash,
            payload.technologies,
            payload.size_category,
            payload.limit,
        )
        return [_signature_response(stored) for stored in found]

    @app.get(
        "/signatures/{signature_id}/strategies",
        response_model=List[CachedStrategyResponse],
    )
    async def strategies_for(
        signature_id: int, cache: StrategyCache = Depends(get_cache)
    ) -> List[CachedStrategyResponse]:
        found = await _run_blocking(cache.get_strategies_for, signature_id)
        return [_strategy_response(cached) for cached in found]

    @app.post("/strategies", response_model=StoreStrategyResponse)
    async def store_strategy(
        payload: StoreStrategyRequest, cache: StrategyCache = Depends(get_cache)
    ) -> StoreStrategyResponse:
        strategy_id = await _run_blocking(
            cache.store_strategy,
            payload.signature_id,
            payload.course_id,
            StrategyProposal(**payload.strategy.model_dump()),
            Performance(**payload.performance.model_dump()),
        )
        return StoreStrategyResponse(strategy_id=strategy_id)

    @app.post("/strategies/{strategy_id}/usage", response_model=StatusResponse)
    async def record_usage(
        strategy_id: int, payload: UsageRequest, cache: StrategyCache = Depends(get_cache)
    ) -> StatusResponse:
        await _run_blocking(
            cache.record_usage, strategy_id, payload.success, payload.evaluation_quality
        )
        return StatusResponse(status="ok")

    @app.get("/stats", response_model=CacheStatsResponse)
    async def stats(cache: StrategyCache = Depends(get_cache)) -> CacheStatsResponse:
        result = await _run_blocking(cache.get_cache_stats)
        return CacheStatsResponse(
            total_signatures=result.total_signatures,
            total_strategies=result.total_strategies,
            total_usage=result.total_usage,
            average_success_rate=result.average_success_rate,
            cache_size=result.cache_size,
        )

    @app.post("/maintenance/evict", response_model=EvictResponse)
    async def evict(
        payload: EvictRequest, cache: StrategyCache = Depends(get_cache)
    ) -> EvictResponse:
        result = await _run_blocking(cache.evict_stale, payload.max_age_ms, payload.max_entries)
        return EvictResponse(deleted_count=result.deleted_count)

    @app.post("/benchmarks", response_model=RecordBenchmarkResponse)
    async def record_benchmark(
        payload: RecordBenchmarkRequest, cache: StrategyCache = Depends(get_cache)
    ) -> RecordBenchmarkResponse:
        result_id = await _run_blocking(
            cache.record_benchmark,
            payload.test_suite_id,
            payload.system_type,
            BenchmarkMetrics(**payload.metrics.model_dump()),
            payload.timestamp,
        )
        return RecordBenchmarkResponse(id=result_id)

    @app.get("/benchmarks/{test_suite_id}", response_model=List[BenchmarkResultResponse])
    async def benchmarks(
        test_suite_id: str, cache: StrategyCache = Depends(get_cache)
    ) -> List[BenchmarkResultResponse]:
        results = await _run_blocking(cache.get_benchmarks, test_suite_id)
        return [_benchmark_response(result) for result in results]

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_: Any, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(TransientStoreError)
    async def transient_handler(_: Any, exc: TransientStoreError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc), "retry": True})

    @app.exception_handler(StoreUnavailable)
    async def unavailable_handler(_: Any, exc: StoreUnavailable) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1",
    port: int = 8000,
    cache_factory: Callable[[], StrategyCache] = StrategyCache.open,
) -> None:  # pragma: no cover - integration path
    import uvicorn

    # log_config=None keeps the handlers installed by configure_logging(service=True).
    uvicorn.run(create_app(cache_factory), host=host, port=port, log_config=None)


__all__ = ["create_app", "run_service"]
