"""
Login rate limiting with temporary lockout.

Rules (per identifier, usually the lower-cased email):
- The first attempt opens a window and is allowed.
- Attempts more than `window_seconds` after the previous one restart the count.
- Reaching `max_attempts` inside the window blocks the identifier for
  `block_seconds`, measured from the attempt that triggered the block.
- A successful login calls `clear` and forgets the identifier.
- Records idle for longer than both the window and the block are purged
  from the store at most once per `purge_interval` seconds.
"""
from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable, Optional

import structlog

from .stores import AttemptRecord, AttemptStore, InMemoryAttemptStore

logger = structlog.get_logger("trainwithus.identity_access.rate_limit")

MAX_ATTEMPTS = 5
WINDOW_SECONDS = 15 * 60
BLOCK_SECONDS = 60 * 60


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining_attempts: int
    reset_at: Optional[float] = None

    def retry_after(self, now: float) -> int:
        if self.reset_at is None:
            return 0
        return max(0, int(round(self.reset_at - now)))


class LoginRateLimiter:
    def __init__(
        self,
        store: AttemptStore | None = None,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        window_seconds: int = WINDOW_SECONDS,
        block_seconds: int = BLOCK_SECONDS,
        clock: Callable[[], float] = time.time,
        purge_interval: int = 60,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.store = store if store is not None else InMemoryAttemptStore()
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.block_seconds = block_seconds
        self._clock = clock
        self.purge_interval = purge_interval
        self._last_purge: Optional[float] = None

    def now(self) -> float:
        return self._clock()

    def _purge_stale(self, now: float) -> None:
        if self._last_purge is not None and now - self._last_purge < self.purge_interval:
            return
        self._last_purge = now
        removed = self.store.purge(now - max(self.window_seconds, self.block_seconds))
        if removed:
            logger.debug("login_attempts_purged", removed=removed)

    def _restart(self, identifier: str, now: float) -> RateLimitDecision:
        self.store.put(identifier, AttemptRecord(count=1, last_attempt=now))
        return RateLimitDecision(allowed=True, remaining_attempts=self.max_attempts - 1)

    def check(self, identifier: str) -> RateLimitDecision:
        """Record an attempt for `identifier` and decide whether it may proceed."""
        now = self.now()
        self._purge_stale(now)
        entry = self.store.get(identifier)
        if entry is None:
            return self._restart(identifier, now)

        elapsed = now - entry.last_attempt
        if entry.blocked:
            if elapsed > self.block_seconds:
                return self._restart(identifier, now)
            return RateLimitDecision(
                allowed=False, remaining_attempts=0, reset_at=entry.last_attempt + self.block_seconds
            )

        if elapsed > self.window_seconds:
            return self._restart(identifier, now)

        count = entry.count + 1
        blocked = count >= self.max_attempts
        self.store.put(identifier, AttemptRecord(count=count, last_attempt=now, blocked=blocked))
        if blocked:
            logger.warning("login_rate_limited", attempts=count, block_seconds=self.block_seconds)
            return RateLimitDecision(allowed=False, remaining_attempts=0, reset_at=now + self.block_seconds)
        return RateLimitDecision(allowed=True, remaining_attempts=self.max_attempts - count)

    def clear(self, identifier: str) -> None:
        self.store.delete(identifier)


__all__ = ["LoginRateLimiter", "RateLimitDecision", "MAX_ATTEMPTS", "WINDOW_SECONDS", "BLOCK_SECONDS"]
