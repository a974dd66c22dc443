from __future__ import annotations

import logging
import random
import time
import uuid
from collections import deque
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from app.clients.finnhub_client import FinnhubClient
from app.config.settings import settings
from app.internal_metrics import MetricsCollector
from app.observability import observability
from app.schemas.stock import RecordTier, StocksResponse
from app.services.batch_service import BatchQuoteService, synthesize_record
from app.services.pacing import PacingPolicy
from app.utils.symbol_normalizer import parse_symbol_list

logger = logging.getLogger(__name__)
router = APIRouter()

PARTIAL_DATA_ERROR = "Some stock data unavailable"
TOTAL_FAILURE_ERROR = "Failed to fetch real stock data"
RATE_WINDOW_SECONDS = 60

metrics = MetricsCollector()
finnhub_client = FinnhubClient(
    base_url=settings.finnhub_base_url,
    api_key=settings.finnhub_api_key,
    timeout_seconds=settings.request_timeout_seconds,
    metrics=metrics,
)
batch_service = BatchQuoteService(
    quote_client=finnhub_client,
    profile_client=finnhub_client,
    pacing=PacingPolicy.from_milliseconds(settings.pacing_interval_ms),
    rng=random.Random(settings.synthetic_seed),
    metrics=metrics,
)

_request_buckets: dict[str, deque[float]] = {}


def error_response(error_code: str, message: str, status_code: int = 400):
    payload = {
        "schema_version": settings.schema_version,
        "status": "error",
        "error_code": error_code,
        "message": message,
    }
    return JSONResponse(payload, status_code=status_code)


def allow_request(ip: str, now: float) -> bool:
    """Sliding one-minute window per client IP; buckets that drain are dropped."""
    cutoff = now - RATE_WINDOW_SECONDS
    for key in list(_request_buckets):
        bucket = _request_buckets[key]
        while bucket and bucket[0] < cutoff:
            bucket.popleft()
        if not bucket:
            del _request_buckets[key]

    bucket = _request_buckets.setdefault(ip, deque())
    if len(bucket) >= settings.rate_limit_requests_per_minute:
        return False
    bucket.append(now)
    return True


async def unhandled_exception(request: Request, exc: Exception):
    logger.error(f"Unhandled error in {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse({"error": "Internal server error", "message": str(exc)}, status_code=500)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, version=settings.app_version)

    if not finnhub_client.has_credentials:
        logger.warning("FINNHUB_API_KEY is not set; every stock will be served from synthetic data")

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        ip = request.client.host if request.client else "unknown"
        if not allow_request(ip, time.time()):
            response = error_response("RATE_LIMITED", "Too many requests", status_code=429)
            response.headers["x-request-id"] = request_id
            return response

        response = None
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            latency_ms = round((time.perf_counter() - start) * 1000, 2)
            observability.record_request(latency_ms)
            logger.info(
                "request_complete",
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "status_code": response.status_code if response else 500,
                    "latency_ms": latency_ms,
                },
            )

    app.add_exception_handler(Exception, unhandled_exception)
    app.include_router(router)
    return app


@router.get("/health")
def health():
    return {
        "schema_version": settings.schema_version,
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime_seconds": round(observability.uptime_seconds(), 3),
        "api_key_configured": finnhub_client.has_credentials,
    }


@router.get("/metrics")
def all_metrics():
    output = metrics.global_metrics()
    output["runtime"] = observability.status()
    output["seconds_since_last_batch"] = observability.seconds_since_last_batch()
    output["schema_version"] = settings.schema_version
    return output


@router.get("/api/stocks", response_model=StocksResponse)
def stocks(symbols: str | None = Query(None, description="Comma separated tickers")):
    start = time.perf_counter()
    try:
        requested = parse_symbol_list(symbols) if symbols else list(settings.default_symbols)
        records = batch_service.fetch_batch(requested)
        degraded = any(r.data_source == RecordTier.SYNTHETIC for r in records)
        error = PARTIAL_DATA_ERROR if degraded else None
    except Exception as exc:
        logger.error(f"Unhandled error in stocks API: {exc}", exc_info=True)
        records = [synthesize_record(symbol, batch_service.rng) for symbol in settings.default_symbols]
        for _ in records:
            metrics.record_tier(RecordTier.SYNTHETIC)
        error = TOTAL_FAILURE_ERROR

    elapsed_ms = (time.perf_counter() - start) * 1000
    observability.mark_batch_complete(records, elapsed_ms)
    logger.info(f"Stock data process completed in {elapsed_ms:.0f}ms")
    return StocksResponse(stocks=records, timestamp=int(time.time() * 1000), error=error)
