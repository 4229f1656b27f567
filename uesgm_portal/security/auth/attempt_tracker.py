"""
Brute-force protection for login and PIN endpoints.

Failed attempts are counted per identifier (client IP or email) in a bounded
TTL cache. Each new failure restarts the entry's time-to-live, so an
identifier stays blocked until it has been quiet for the whole window.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from cachetools import TTLCache

from uesgm_portal.core.config import Settings
from uesgm_portal.utils.logger import get_logger

logger = get_logger(__name__)

LOGIN_DELAY_BASE_SECONDS = 0.5
LOGIN_DELAY_STEP_SECONDS = 0.3
LOGIN_DELAY_MAX_SECONDS = 5.0


class AttemptTracker:
    """
    Thread-safe failure counter keyed by identifier.

    Expired and never-seen identifiers both read as zero attempts. When the
    cache is full the least recently used identifier is evicted, which can
    forget a genuine attacker under memory pressure.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        ttl_seconds: float = 30 * 60,
        threshold: int = 5,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.ttl_seconds = ttl_seconds
        self._attempts: TTLCache = TTLCache(
            maxsize=max_entries, ttl=ttl_seconds, timer=timer
        )
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "AttemptTracker":
        return cls(
            max_entries=settings.LOGIN_ATTEMPT_MAX_ENTRIES,
            ttl_seconds=settings.LOGIN_ATTEMPT_TTL_SECONDS,
            threshold=settings.LOGIN_ATTEMPT_THRESHOLD,
        )

    def record_failure(self, identifier: str) -> int:
        """Count one more failure for `identifier` and return the new total."""
        with self._lock:
            count = self._attempts.get(identifier, 0) + 1
            self._attempts[identifier] = count
        if count == self.threshold:
            logger.warning("login_blocked", identifier=identifier, attempts=count)
        return count

    def reserve_attempt(self, identifier: str) -> Optional[int]:
        """
        Count an attempt for `identifier` before its credential is checked.

        Returns the new total, or None when the identifier has already used
        its `threshold` attempts. The check and the increment happen under
        one lock, so parallel requests cannot all see the same free slot.
        Call `reset` once the credential turns out to be valid.
        """
        with self._lock:
            count = self._attempts.get(identifier, 0)
            if count >= self.threshold:
                return None
            count += 1
            self._attempts[identifier] = count
        if count == self.threshold:
            logger.warning("login_blocked", identifier=identifier, attempts=count)
        return count

    def attempts(self, identifier: str) -> int:
        with self._lock:
            return self._attempts.get(identifier, 0)

    def is_blocked(self, identifier: str, threshold: Optional[int] = None) -> bool:
        limit = self.threshold if threshold is None else threshold
        return self.attempts(identifier) >= limit

    def reset(self, identifier: str) -> None:
        """Forget every failure for `identifier` (call after a successful login)."""
        with self._lock:
            self._attempts.pop(identifier, None)

    def __len__(self) -> int:
        with self._lock:
            self._attempts.expire()
            return len(self._attempts)


def login_delay_seconds(attempt_count: int) -> float:
    """Response delay applied to a failed login, growing with prior failures."""
    steps = max(0, attempt_count)
    delay = LOGIN_DELAY_BASE_SECONDS + steps * LOGIN_DELAY_STEP_SECONDS
    return min(delay, LOGIN_DELAY_MAX_SECONDS)
