from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict
import math
import threading
import time

from Counsel.app.errors import AdmissionError
from Counsel.app.logging_utils import get_logger, safe_json


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float


@dataclass(frozen=True)
class Admission:
    allowed: bool
    retry_after_seconds: int = 0


class RateLimiter:
    """Fixed-window request counter keyed by client address.

    Entries live in memory only. Expired entries are dropped lazily once the
    store grows past ``high_water``; there is no background sweeper.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        high_water: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.high_water = high_water
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._logger = get_logger("guard.rate_limit")

    def admit(self, client_key: str) -> Admission:
        # The lock covers the whole read-check-write so concurrent requests
        # from one key cannot both see a fresh window.
        with self._lock:
            now = self._clock()
            if len(self._entries) > self.high_water:
                self._evict_expired(now)
            entry = self._entries.get(client_key)
            if entry is None or entry.window_reset_at <= now:
                self._entries[client_key] = RateLimitEntry(
                    count=1,
                    window_reset_at=now + self.window_seconds,
                )
                return Admission(allowed=True)
            if entry.count >= self.max_requests:
                retry_after = max(1, math.ceil(entry.window_reset_at - now))
                self._logger.info(
                    "rate_limited %s",
                    safe_json({"client": client_key, "retry_after": retry_after}),
                )
                return Admission(allowed=False, retry_after_seconds=retry_after)
            entry.count += 1
            return Admission(allowed=True)

    def enforce(self, client_key: str) -> None:
        admission = self.admit(client_key)
        if not admission.allowed:
            raise AdmissionError(admission.retry_after_seconds)

    def entry_for(self, client_key: str) -> RateLimitEntry | None:
        with self._lock:
            entry = self._entries.get(client_key)
            if entry is None:
                return None
            return RateLimitEntry(count=entry.count, window_reset_at=entry.window_reset_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict_expired(self, now: float) -> None:
        expired = [
            key for key, entry in self._entries.items() if entry.window_reset_at <= now
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            self._logger.debug(
                "rate_limit_evicted %s",
                safe_json({"evicted": len(expired), "remaining": len(self._entries)}),
            )
