# voicebridge/core/rate_limit.py
"""
Rate limiting for the HTTP boundary.

The conversation pipeline never sees this module: routers depend on a
``RateLimiter`` through FastAPI dependencies (see ``api/v1/deps.py``), so
a single-process deployment can use the in-memory sliding window below
and a multi-instance deployment can swap in a shared-store
implementation of the same ``check`` interface.
"""
import logging
import math
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    max_requests: int
    window_sec: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # Unix seconds when the oldest request leaves the window
    retry_after: int = 0  # Seconds to wait when not allowed

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


HOUR = 60 * 60
DAY = 24 * HOUR

POLICIES: Dict[str, RateLimitPolicy] = {
    "session_start": RateLimitPolicy("session_start", 15, DAY),
    "audio_processing": RateLimitPolicy("audio_processing", 50, HOUR),
    "tagging": RateLimitPolicy("tagging", 100, HOUR),
    "summary_generation": RateLimitPolicy("summary_generation", 10, DAY),
    "general": RateLimitPolicy("general", 200, HOUR),
}


class RateLimiter(ABC):
    """Rate limiter interface: ``check(key, policy) -> allow | deny + retry_after``."""

    @abstractmethod
    def check(self, key: str, policy: RateLimitPolicy) -> RateLimitDecision:
        pass

    def is_whitelisted(self, identifier: str) -> bool:
        return False


class InMemoryRateLimiter(RateLimiter):
    """
    Sliding-window limiter kept in process memory.

    Each key remembers the timestamps of its accepted requests; a request
    is allowed while fewer than ``max_requests`` fall inside the window.
    Rejected requests are not recorded. Keys whose window has fully
    expired are swept at most once per ``sweep_interval_sec``.
    """

    def __init__(
        self,
        whitelist: list[str] | None = None,
        clock: Callable[[], float] = time.time,
        sweep_interval_sec: float = 60.0,
    ):
        self._hits: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, float] = {}
        self._whitelist = set(whitelist or [])
        self._clock = clock
        self._sweep_interval_sec = sweep_interval_sec
        self._last_sweep = clock()

    def is_whitelisted(self, identifier: str) -> bool:
        return identifier in self._whitelist

    def check(self, key: str, policy: RateLimitPolicy) -> RateLimitDecision:
        now = self._clock()
        if now - self._last_sweep >= self._sweep_interval_sec:
            self.cleanup(now)

        hits = self._hits.setdefault(key, deque())
        self._windows[key] = policy.window_sec
        window_start = now - policy.window_sec
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= policy.max_requests:
            reset_at = hits[0] + policy.window_sec
            return RateLimitDecision(
                allowed=False,
                limit=policy.max_requests,
                remaining=0,
                reset_at=reset_at,
                retry_after=max(1, math.ceil(reset_at - now)),
            )

        hits.append(now)
        return RateLimitDecision(
            allowed=True,
            limit=policy.max_requests,
            remaining=policy.max_requests - len(hits),
            reset_at=hits[0] + policy.window_sec,
        )

    def cleanup(self, now: float | None = None) -> int:
        """Forget keys with no hit inside their window; returns how many were dropped."""
        now = self._clock() if now is None else now
        self._last_sweep = now
        expired = [
            key for key, hits in self._hits.items()
            if not hits or hits[-1] <= now - self._windows.get(key, 0)
        ]
        for key in expired:
            del self._hits[key]
            self._windows.pop(key, None)
        if expired:
            logger.debug("[RateLimit] dropped %d idle key(s)", len(expired))
        return len(expired)

    def tracked_keys(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()
        self._windows.clear()
