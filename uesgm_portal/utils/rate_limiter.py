"""
In-process fixed-window rate limiting for the public contact form.

Each client IP gets a short-term window (5 messages per 10 minutes) and a
daily window (20 messages per day). Windows are kept in bounded TTL caches so
memory stays flat however many clients show up.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, field
from email.utils import formatdate
from typing import Callable, Dict, Optional

from cachetools import TTLCache

from uesgm_portal.core.config import Settings
from uesgm_portal.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    headers: Dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowLimiter:
    """Counts hits per key inside a window that opens on the first hit."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        max_keys: int = 1000,
        timer: Callable[[], float] = time.time,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._timer = timer
        self._windows: TTLCache = TTLCache(
            maxsize=max_keys, ttl=window_seconds, timer=timer
        )
        self._lock = threading.Lock()

    def hit(self, key: str) -> RateLimitResult:
        now = self._timer()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                window = _Window(count=1, reset_at=now + self.window_seconds)
                self._windows[key] = window
                allowed = True
            elif window.count >= self.limit:
                allowed = False
            else:
                window.count += 1
                allowed = True
            remaining = max(0, self.limit - window.count) if allowed else 0
            reset_at = window.reset_at

        return RateLimitResult(
            allowed=allowed, limit=self.limit, remaining=remaining, reset_at=reset_at
        )


class ContactRateLimiter:
    """Short-term plus daily quota for contact messages, keyed by client IP."""

    SHORT_TERM_MESSAGE = "Too many messages. Please try again in 10 minutes."
    DAILY_MESSAGE = "Daily limit reached. Please try again tomorrow."

    def __init__(
        self,
        short_term: FixedWindowLimiter,
        daily: FixedWindowLimiter,
        timer: Callable[[], float] = time.time,
    ) -> None:
        self.short_term = short_term
        self.daily = daily
        self._timer = timer

    @classmethod
    def from_settings(
        cls, settings: Settings, timer: Callable[[], float] = time.time
    ) -> "ContactRateLimiter":
        max_keys = settings.CONTACT_MAX_TRACKED_CLIENTS
        return cls(
            short_term=FixedWindowLimiter(
                settings.CONTACT_SHORT_TERM_LIMIT,
                settings.CONTACT_SHORT_TERM_WINDOW_SECONDS,
                max_keys=max_keys,
                timer=timer,
            ),
            daily=FixedWindowLimiter(
                settings.CONTACT_DAILY_LIMIT,
                settings.CONTACT_DAILY_WINDOW_SECONDS,
                max_keys=max_keys,
                timer=timer,
            ),
            timer=timer,
        )

    def check(self, client_ip: str) -> RateLimitResult:
        short = self.short_term.hit(f"contact:{client_ip}")
        daily = self.daily.hit(f"daily:{client_ip}")

        for result, message in (
            (short, self.SHORT_TERM_MESSAGE),
            (daily, self.DAILY_MESSAGE),
        ):
            if not result.allowed:
                retry_after = max(0, math.ceil(result.reset_at - self._timer()))
                result.message = message
                result.headers = {
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": formatdate(result.reset_at, usegmt=True),
                    "Retry-After": str(retry_after),
                }
                logger.info(
                    "contact_rate_limited",
                    client_ip=client_ip,
                    limit=result.limit,
                    retry_after=retry_after,
                )
                return result

        short.headers = {
            "X-RateLimit-Limit": str(short.limit),
            "X-RateLimit-Remaining": str(short.remaining),
            "X-RateLimit-Reset": formatdate(short.reset_at, usegmt=True),
        }
        return short
