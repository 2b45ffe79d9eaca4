"""Shared HTTP helpers: Result to HTTPException mapping and per-client rate limiting."""
from __future__ import annotations
from typing import Callable

from fastapi import Depends, HTTPException, Request, status

from childupdates.container import get_rate_limiter
from childupdates.core.config import RATE_LIMITS
from childupdates.domain.common.result import ErrorCode, Result
from childupdates.domain.throttling.rate_limiter import (
    RateLimitConfig,
    SlidingWindowRateLimiter,
    check_rate_limit,
)

_STATUS_BY_CODE = {
    ErrorCode.INVALID_ARGS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN_ACTOR: status.HTTP_403_FORBIDDEN,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DUPLICATE_UPDATE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.PUBLISHED_IMMUTABLE: status.HTTP_409_CONFLICT,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.NOTIFICATION_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.STORE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_for_result(result: Result) -> None:
    if result.is_success:
        return
    code = result.code or ErrorCode.INVALID_ARGS
    raise HTTPException(
        status_code=_STATUS_BY_CODE.get(code, status.HTTP_400_BAD_REQUEST),
        detail={"code": code.value, "message": result.error},
    )


def client_identifier(request: Request) -> str:
    for header in ("cf-connecting-ip", "x-real-ip"):
        value = request.headers.get(header)
        if value:
            return value
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limited(namespace: str) -> Callable[..., None]:
    """Dependency factory: 429 once the caller exhausts the namespace's window."""
    limit = RateLimitConfig.from_config(RATE_LIMITS[namespace])

    def dependency(
        request: Request,
        limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
    ) -> None:
        decision = check_rate_limit(limiter, namespace, client_identifier(request), limit)
        if not decision.allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"code": ErrorCode.RATE_LIMITED.value, "message": "Too many requests. Try again later."},
                headers={"Retry-After": str(decision.retry_after)},
            )

    return dependency
