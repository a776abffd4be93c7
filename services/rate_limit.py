"""Process-local fixed-window rate limiting with injectable clock."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config.settings import Settings, settings as default_settings

SWEEP_THRESHOLD = 10_000


@dataclass
class RateLimitBucket:
    count: int
    reset_at: float


class RateLimiter:
    """Allow at most ``max_requests`` per ``window_s`` for each key.

    Buckets live in memory only and vanish on restart.
    """

    def __init__(
        self,
        max_requests: int,
        window_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = SWEEP_THRESHOLD,
    ) -> None:
        self.max_requests = max_requests
        self.window_s = window_s
        self._clock = clock
        self._sweep_threshold = sweep_threshold
        self._buckets: Dict[str, RateLimitBucket] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> bool:
        """Count a request for ``key``; False once the window's cap is exceeded."""

        now = self._clock()
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None or now > bucket.reset_at:
                if len(self._buckets) >= self._sweep_threshold:
                    self._sweep(now)
                self._buckets[key] = RateLimitBucket(count=1, reset_at=now + self.window_s)
                return True
            if bucket.count >= self.max_requests:
                return False
            bucket.count += 1
            return True

    def bucket(self, key: str) -> Optional[RateLimitBucket]:
        with self._lock:
            return self._buckets.get(key)

    def _sweep(self, now: float) -> None:
        expired = [key for key, bucket in self._buckets.items() if now > bucket.reset_at]
        for key in expired:
            del self._buckets[key]


class RateLimits:
    """The two independent tiers: participants and anonymous previews."""

    def __init__(self, participant: RateLimiter, preview: RateLimiter) -> None:
        self.participant = participant
        self.preview = preview

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None, *, clock: Callable[[], float] = time.monotonic) -> "RateLimits":
        cfg = cfg or default_settings
        return cls(
            participant=RateLimiter(cfg.RATE_LIMIT_MAX_REQUESTS, cfg.RATE_LIMIT_WINDOW_S, clock=clock),
            preview=RateLimiter(cfg.PREVIEW_RATE_LIMIT_MAX_REQUESTS, cfg.RATE_LIMIT_WINDOW_S, clock=clock),
        )


def preview_key(client_ip: Optional[str], conversation_id: str) -> str:
    return f"preview_{client_ip or 'unknown'}_{conversation_id[:20]}"


__all__ = ["RateLimitBucket", "RateLimiter", "RateLimits", "preview_key"]
