"""Per-IP fixed-window rate limiting."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from fileconvert.config import RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW_SECONDS

logger = logging.getLogger("converter.ratelimit")

UNKNOWN_CLIENT = "unknown"
IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")
NAMESPACE = "fileconvert"


@dataclass(frozen=True)
class RateLimitRecord:
    count: int
    window_start: datetime


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int
    reset_time: datetime


def _utc(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class RateLimiter:
    """
    Fixed-window quota per client IP, counted in a `limits` memory store.

    A window opens with a client's first request and is dropped entirely once
    `window_seconds` have passed (hard reset, no sliding decay). The store
    expires counters with their window, so clients that go quiet do not
    accumulate. Rejected requests are never counted. State is per process.
    """

    def __init__(self, limit: int = RATE_LIMIT_REQUESTS, window_seconds: int = RATE_LIMIT_WINDOW_SECONDS):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(limit, window_seconds, namespace=NAMESPACE)
        self._storage = MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def _result(self, ip: str, allowed: bool) -> RateLimitResult:
        stats = self._strategy.get_window_stats(self._item, ip)
        return RateLimitResult(allowed, stats.remaining, self.limit, _utc(stats.reset_time))

    def check(self, ip: str) -> RateLimitResult:
        """Count one request for `ip` and say whether it is allowed."""
        if self._strategy.test(self._item, ip) and self._strategy.hit(self._item, ip):
            return self._result(ip, True)
        current = self.record(ip)
        logger.warning(
            "Rate limit exceeded for %s (%s requests since %s)",
            ip, current.count if current else 0, current.window_start.isoformat() if current else "-",
        )
        return self._result(ip, False)

    def record(self, ip: str) -> Optional[RateLimitRecord]:
        """Current window for `ip`, or None when it has no requests counted."""
        stats = self._strategy.get_window_stats(self._item, ip)
        count = self.limit - stats.remaining
        if count <= 0:
            return None
        start = _utc(stats.reset_time) - timedelta(seconds=self.window_seconds)
        return RateLimitRecord(count=count, window_start=start)

    def reset(self) -> None:
        self._storage.reset()


def get_client_ip(headers: Mapping[str, str], remote_addr: Optional[str] = None) -> str:
    """X-Forwarded-For (first hop), X-Real-IP, CF-Connecting-IP, then the socket peer."""
    for name in IP_HEADERS:
        value = headers.get(name)
        if value:
            ip = value.split(",")[0].strip()
            if ip:
                return ip
    return remote_addr or UNKNOWN_CLIENT


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
        logger.info("Rate limiter: %s requests per %ss", RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW_SECONDS)
    return _rate_limiter
