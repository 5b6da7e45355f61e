"""
Sliding-window rate limiting for named action classes.

Each action class (``auth``, ``api``, ``strict``, ``booking``) allows a fixed
number of requests per rolling window. Requests are tracked in a Redis sorted
set when Redis is enabled and in process memory otherwise. A backend failure
never blocks a request: the check fails open and the error is logged.
"""
import logging
import math
import secrets
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Mapping, Optional

from redis.exceptions import RedisError

from xplorium.core.exceptions import RateLimitedError
from xplorium.core.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limit configuration"""

    max_requests: int
    window_seconds: int
    prefix: str


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: int  # epoch seconds at which a slot frees up
    retry_after: int = 0

    def headers(self) -> Dict[str, str]:
        """Generate rate limit headers"""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }
        if not self.success:
            headers["Retry-After"] = str(self.retry_after)
        return headers


def _build_limits() -> Dict[str, RateLimitConfig]:
    rl = settings.rate_limit
    return {
        "auth": RateLimitConfig(rl.AUTH_MAX_REQUESTS, rl.AUTH_WINDOW_MINUTES * 60, "auth"),
        "api": RateLimitConfig(rl.API_MAX_REQUESTS, rl.API_WINDOW_MINUTES * 60, "api"),
        "strict": RateLimitConfig(
            rl.STRICT_MAX_REQUESTS, rl.STRICT_WINDOW_MINUTES * 60, "strict"
        ),
        "booking": RateLimitConfig(
            rl.BOOKING_MAX_REQUESTS, rl.BOOKING_WINDOW_MINUTES * 60, "booking"
        ),
    }


RATE_LIMITS: Dict[str, RateLimitConfig] = _build_limits()


def _blocked(config: RateLimitConfig, oldest: float, now: float) -> RateLimitResult:
    reset_at = oldest + config.window_seconds
    return RateLimitResult(
        success=False,
        limit=config.max_requests,
        remaining=0,
        reset=math.ceil(reset_at),
        retry_after=max(1, math.ceil(reset_at - now)),
    )


def _allowed(config: RateLimitConfig, used: int, oldest: float) -> RateLimitResult:
    return RateLimitResult(
        success=True,
        limit=config.max_requests,
        remaining=max(0, config.max_requests - used),
        reset=math.ceil(oldest + config.window_seconds),
    )


class InMemorySlidingWindowLimiter:
    """Per-process sliding window; request timestamps kept in deques"""

    sweep_interval = 60.0

    def __init__(self) -> None:
        self._hits: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, int] = {}
        self._last_sweep = 0.0

    async def hit(self, key: str, config: RateLimitConfig, now: float) -> RateLimitResult:
        if now - self._last_sweep >= self.sweep_interval:
            self._sweep(now)

        hits = self._hits.setdefault(key, deque())
        self._windows[key] = config.window_seconds
        window_start = now - config.window_seconds
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= config.max_requests:
            return _blocked(config, hits[0], now)

        hits.append(now)
        return _allowed(config, len(hits), hits[0])

    def _sweep(self, now: float) -> None:
        """Forget identifiers whose every hit has left the window"""
        for key in list(self._hits):
            hits = self._hits[key]
            if not hits or hits[-1] <= now - self._windows[key]:
                del self._hits[key]
                del self._windows[key]
        self._last_sweep = now

    def __len__(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()
        self._windows.clear()


class RedisSlidingWindowLimiter:
    """Sliding window using Redis sorted sets scored by request time"""

    def __init__(self, client: Any) -> None:
        self.client = client

    async def hit(self, key: str, config: RateLimitConfig, now: float) -> RateLimitResult:
        window_start = now - config.window_seconds
        member = f"{now:.6f}:{secrets.token_hex(4)}"

        # Trim, record and count in one MULTI/EXEC; a hit over the limit is withdrawn
        pipe = self.client.pipeline(transaction=True)
        pipe.zremrangebyscore(key, 0, window_start)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.zrange(key, 0, 0, withscores=True)
        pipe.expire(key, config.window_seconds)
        _, _, count, oldest_entries, _ = await pipe.execute()

        oldest = float(oldest_entries[0][1]) if oldest_entries else now
        if count > config.max_requests:
            await self.client.zrem(key, member)
            return _blocked(config, oldest, now)

        return _allowed(config, count, oldest)


_limiter: Optional[Any] = None


def get_limiter() -> Any:
    """Redis-backed limiter when Redis is enabled, in-memory otherwise"""
    global _limiter
    if _limiter is None:
        if settings.redis.ENABLED:
            from xplorium.redis import redis_client

            _limiter = RedisSlidingWindowLimiter(redis_client)
        else:
            if settings.is_production:
                logger.warning(
                    "Redis is disabled; rate limits are tracked per process only"
                )
            _limiter = InMemorySlidingWindowLimiter()
    return _limiter


def set_limiter(limiter: Optional[Any]) -> None:
    """Swap the process-wide limiter; None restores the default on next use"""
    global _limiter
    _limiter = limiter


async def check_rate_limit(
    identifier: str,
    action: str = "api",
    *,
    limiter: Optional[Any] = None,
    now: Optional[float] = None,
) -> RateLimitResult:
    """
    Record a request for ``identifier`` under ``action`` and report whether
    it is within the limit.

    Unknown actions raise ``ValueError``. Backend errors are logged and the
    request is let through.
    """
    config = RATE_LIMITS.get(action)
    if config is None:
        raise ValueError(f"Unknown rate limit action: {action}")

    current_time = time.time() if now is None else now

    if not settings.rate_limit.ENABLED:
        return RateLimitResult(
            success=True,
            limit=config.max_requests,
            remaining=config.max_requests,
            reset=math.ceil(current_time + config.window_seconds),
        )

    key = f"{settings.rate_limit.KEY_PREFIX}:{config.prefix}:{identifier}"
    backend = limiter if limiter is not None else get_limiter()

    try:
        result = await backend.hit(key, config, current_time)
    except (RedisError, OSError) as e:
        logger.error("Rate limit check failed for %s, allowing request: %s", action, e)
        return RateLimitResult(
            success=True,
            limit=config.max_requests,
            remaining=config.max_requests,
            reset=math.ceil(current_time + config.window_seconds),
        )

    if not result.success:
        logger.warning(
            "Rate limit exceeded for %s on %s, retry in %ss",
            identifier,
            action,
            result.retry_after,
        )
    return result


async def enforce_rate_limit(
    identifier: str,
    action: str = "api",
    *,
    limiter: Optional[Any] = None,
    now: Optional[float] = None,
) -> RateLimitResult:
    """Like :func:`check_rate_limit` but raises ``RateLimitedError`` when blocked"""
    result = await check_rate_limit(identifier, action, limiter=limiter, now=now)
    if not result.success:
        raise RateLimitedError(
            retry_after=result.retry_after, action=action, headers=result.headers()
        )
    return result


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Client address from proxy headers, first hop of X-Forwarded-For wins"""
    lowered = {key.lower(): value for key, value in headers.items()}

    forwarded = lowered.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = lowered.get(header)
        if value and value.strip():
            return value.strip()

    return "unknown"
