"""
Rate limiting.

Two layers:
- `RateLimiter`: per-key fixed-window counters for the auth, API and AI
  presets. Constructed once at startup and kept on app.state.
- `limiter`: slowapi's global per-client ceiling applied to every request
  by SlowAPIMiddleware.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import settings
from services.token_service import TokenService, TokenKind
from utils.cookies import ACCESS_COOKIE_NAME
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_ms: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float


AUTH_RATE_LIMIT = RateLimitConfig(max_requests=5, window_ms=60_000)
API_RATE_LIMIT = RateLimitConfig(max_requests=60, window_ms=60_000)
AI_RATE_LIMIT = RateLimitConfig(max_requests=10, window_ms=60_000)


class MemoryRateLimitStore:
    """In-process key -> RateLimitEntry map."""

    def __init__(self):
        self._entries: dict[str, RateLimitEntry] = {}

    def get(self, key: str) -> RateLimitEntry | None:
        return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def items(self) -> Iterator[tuple[str, RateLimitEntry]]:
        return iter(list(self._entries.items()))

    def __len__(self) -> int:
        return len(self._entries)


class RateLimiter:
    """
    Fixed-window counter keyed by an arbitrary identifier.

    Windows do not slide: a burst straddling a window boundary can admit
    close to twice max_requests in a short span.

    Args:
        store: key-value store for entries (default: in-memory)
        clock: returns the current time in seconds (default: time.time)
    """

    def __init__(self, store: MemoryRateLimitStore | None = None, clock: Callable[[], float] = time.time):
        self.store = store if store is not None else MemoryRateLimitStore()
        self.clock = clock
        self._lock = threading.Lock()

    def check(self, key: str, max_requests: int, window_ms: int) -> RateLimitResult:
        """
        Counts one request against `key`.

        Returns:
            RateLimitResult(allowed, remaining, reset_at); reset_at is a
            timestamp in seconds. Rejected requests are not counted.
        """
        with self._lock:
            now = self.clock()
            entry = self.store.get(key)

            if entry is None or now > entry.reset_at:
                reset_at = now + window_ms / 1000
                self.store.set(key, RateLimitEntry(count=1, reset_at=reset_at))
                return RateLimitResult(allowed=True, remaining=max_requests - 1, reset_at=reset_at)

            if entry.count >= max_requests:
                return RateLimitResult(allowed=False, remaining=0, reset_at=entry.reset_at)

            entry.count += 1
            self.store.set(key, entry)
            return RateLimitResult(
                allowed=True,
                remaining=max_requests - entry.count,
                reset_at=entry.reset_at
            )

    def check_config(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        return self.check(key, config.max_requests, config.window_ms)

    def sweep(self) -> int:
        """
        Drops entries whose window has elapsed. Returns how many were removed.
        """
        removed = 0
        with self._lock:
            now = self.clock()
            for key, entry in self.store.items():
                if now > entry.reset_at:
                    self.store.delete(key)
                    removed += 1
        return removed

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweeps forever every `interval_seconds`; cancel the task to stop."""
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.sweep()
            if removed:
                logger.debug("Rate limit sweep", extra={"removed": removed, "live_keys": len(self.store)})


def get_user_id(request: Request) -> str:
    """
    slowapi key: the authenticated user's ID when the access cookie verifies,
    otherwise the client address.
    """
    claims = TokenService.verify(request.cookies.get(ACCESS_COOKIE_NAME), TokenKind.ACCESS)
    if claims is not None:
        return f"user:{claims.user_id}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_user_id,
    default_limits=[settings.GLOBAL_RATE_LIMIT],
    enabled=not settings.is_testing
)
