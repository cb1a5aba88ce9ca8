"""
Market endpoints: `/api/prices` and `/api/history`.

Both run the same pipeline, stopping at the first failure:

    query length -> rate limit -> validate -> provider call -> normalise -> respond

Every failure is logged and turned into an `ErrorBody` with the status that
matches its code. Upstream details only ever reach the logs.
"""

import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..config.settings import Settings
from ..models.errors import ApiError, InternalError, ProviderError, RateLimitExceeded
from ..services.market_service import MarketService
from ..services.rate_limiter import RateLimiter, RateLimitResult
from ..services.validation import check_query_length, parse_history_query, parse_prices_query
from ..utils.logger import log
from .dependencies import client_address, get_market_service, get_rate_limiter, get_settings

logger = log

router = APIRouter(prefix="/api", tags=["market"])

Handler = Callable[[Mapping[str, str]], Awaitable[Dict[str, Any]]]


def error_response(exc: ApiError, rate_limit: Optional[RateLimitResult] = None) -> JSONResponse:
    headers = rate_limit.headers() if rate_limit is not None else {}
    if isinstance(exc, RateLimitExceeded):
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(exc.to_body().to_wire(), status_code=exc.status_code, headers=headers)


def _log_failure(exc: ApiError, endpoint: str, request: Request, started: float):
    extra = {
        "endpoint": endpoint,
        "request_id": request.headers.get("x-request-id"),
        "status_code": exc.status_code,
        "duration": round((time.perf_counter() - started) * 1000, 2),
        "error": {"message": exc.message, "code": exc.code.value},
        "context": {"query": request.url.query},
    }
    if isinstance(exc, ProviderError):
        extra["context"].update(
            upstreamStatus=exc.status,
            transport=exc.transport,
            detail=exc.detail,
        )
        logger.error(f"Provider failure on {endpoint}", extra=extra)
    elif isinstance(exc, InternalError):
        logger.error(f"Unexpected error on {endpoint}", exc_info=True, extra=extra)
    else:
        logger.warning(f"{exc.error} on {endpoint}", extra=extra)


async def run_pipeline(
    request: Request,
    *,
    endpoint: str,
    scope: str,
    settings: Settings,
    limiter: RateLimiter,
    handle: Handler,
) -> JSONResponse:
    started = time.perf_counter()
    rate_limit = None

    try:
        check_query_length(request.url.query)

        rate_limit = await limiter.consume(f"{scope}:{client_address(request)}")
        if not rate_limit.allowed:
            raise RateLimitExceeded(rate_limit.limit, rate_limit.retry_after_seconds)

        body = await handle(request.query_params)
    except ApiError as exc:
        _log_failure(exc, endpoint, request, started)
        return error_response(exc, rate_limit)
    except Exception:
        exc = InternalError()
        _log_failure(exc, endpoint, request, started)
        return error_response(exc, rate_limit)

    logger.info(
        f"{endpoint} OK",
        extra={
            "endpoint": endpoint,
            "request_id": request.headers.get("x-request-id"),
            "status_code": 200,
            "duration": round((time.perf_counter() - started) * 1000, 2),
        },
    )
    headers = {"Cache-Control": settings.cache_control, **rate_limit.headers()}
    return JSONResponse(body, status_code=200, headers=headers)


# -----------------------------
# Spot prices
# -----------------------------
@router.get("/prices")
async def get_prices(
    request: Request,
    settings: Settings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: MarketService = Depends(get_market_service),
):
    async def handle(params: Mapping[str, str]) -> Dict[str, Any]:
        query = parse_prices_query(params, default_symbols=settings.DEFAULT_SYMBOLS)
        tickers = await service.get_spot_prices(query)
        return {symbol: ticker.to_wire() for symbol, ticker in tickers.items()}

    return await run_pipeline(
        request, endpoint="/api/prices", scope="prices", settings=settings, limiter=limiter, handle=handle
    )


# -----------------------------
# Historical series
# -----------------------------
@router.get("/history")
async def get_history(
    request: Request,
    settings: Settings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: MarketService = Depends(get_market_service),
):
    async def handle(params: Mapping[str, str]) -> Dict[str, Any]:
        query = parse_history_query(params)
        history = await service.get_history(query)
        return history.model_dump(mode="json")

    return await run_pipeline(
        request, endpoint="/api/history", scope="history", settings=settings, limiter=limiter, handle=handle
    )
