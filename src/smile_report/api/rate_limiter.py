"""In-memory sliding window rate limiter."""

from __future__ import annotations

import time
from collections import defaultdict

from fastapi import Depends, HTTPException, Request, status

from smile_report.api.auth import verify_token
from smile_report.observability.logger import get_logger

logger = get_logger("rate_limiter")


class SlidingWindowRateLimiter:
    """Per-key request timestamps within a rolling window."""

    def __init__(self, window_seconds: int = 60) -> None:
        self.window_seconds = window_seconds
        self._requests: dict[str, list[float]] = defaultdict(list)

    def check(self, key: str, max_requests: int) -> bool:
        """Return True if the request is allowed, False if rate-limited."""
        now = time.monotonic()
        cutoff = now - self.window_seconds
        recent = [t for t in self._requests[key] if t > cutoff]
        if len(recent) >= max_requests:
            self._requests[key] = recent
            return False
        recent.append(now)
        self._requests[key] = recent
        return True

    def reset(self) -> None:
        self._requests.clear()


async def rate_limit(request: Request, token_payload: dict = Depends(verify_token)) -> dict:
    """Chains verify_token and enforces the per-subject request budget."""
    settings = request.app.state.settings
    limiter: SlidingWindowRateLimiter = request.app.state.rate_limiter
    key = token_payload.get("sub", "anonymous")

    if not limiter.check(key, settings.rate_limit_requests_per_minute):
        logger.warning("rate_limited", key=key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Try again later.",
            headers={"Retry-After": str(limiter.window_seconds)},
        )
    return token_payload
