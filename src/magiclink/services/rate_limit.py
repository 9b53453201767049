"""Sliding-window rate limiting for the auth endpoints.

A plugin contributes ``RateLimitRule``s; every request whose path a rule
matches is counted in that rule's bucket for the client's IP. Buckets live in
process memory, so limits are per app instance.
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Request

# Proxy headers consulted for the client address, most trusted first
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


@dataclass(frozen=True)
class RateLimitRule:
    """Allow ``max`` requests per ``window`` seconds on matching paths.

    All matching paths share one bucket per client.
    """

    name: str
    path_matcher: Callable[[str], bool]
    window: int
    max: int


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: int  # unix seconds


@dataclass
class _Bucket:
    window: int
    hits: deque[float] = field(default_factory=deque)

    def expire(self, now: float) -> None:
        while self.hits and self.hits[0] <= now - self.window:
            self.hits.popleft()


class InMemoryRateLimiter:
    """Counts recent hits per (rule, client) and rejects past the rule's max.

    Rejected requests are not recorded, so a client that keeps retrying is
    let back in once its oldest accepted hit leaves the window.
    """

    def __init__(self) -> None:
        self._buckets: dict[tuple[str, str], _Bucket] = {}
        self._lock = asyncio.Lock()

    async def check(self, identifier: str, rule: RateLimitRule) -> RateLimitResult:
        now = time.time()
        async with self._lock:
            bucket = self._buckets.setdefault((rule.name, identifier), _Bucket(rule.window))
            bucket.window = rule.window
            bucket.expire(now)

            if len(bucket.hits) >= rule.max:
                return RateLimitResult(
                    success=False,
                    limit=rule.max,
                    remaining=0,
                    reset=int(bucket.hits[0] + rule.window),
                )

            bucket.hits.append(now)
            return RateLimitResult(
                success=True,
                limit=rule.max,
                remaining=rule.max - len(bucket.hits),
                reset=int(now + rule.window),
            )

    def reset(self) -> None:
        self._buckets.clear()

    async def prune(self) -> int:
        """Drop buckets with no hits left in their window. Returns how many."""
        now = time.time()
        async with self._lock:
            for bucket in self._buckets.values():
                bucket.expire(now)
            empty = [key for key, bucket in self._buckets.items() if not bucket.hits]
            for key in empty:
                del self._buckets[key]
        return len(empty)


def get_client_ip(request: Request) -> str | None:
    """Client address, preferring what a fronting proxy reports."""
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            # x-forwarded-for lists the original client first
            return value.split(",")[0].strip()
    return request.client.host if request.client else None


def get_identifier(ip: str | None) -> str:
    return f"ip:{ip or 'unknown'}"


def match_rules(rules: list[RateLimitRule], path: str) -> list[RateLimitRule]:
    return [rule for rule in rules if rule.path_matcher(path)]


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """``X-RateLimit-*`` headers, plus ``Retry-After`` on rejection."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }
    if not result.success:
        headers["Retry-After"] = str(max(0, result.reset - int(time.time())))
    return headers
