import pytest

from uesgm_portal.core.config import Settings
from uesgm_portal.utils.rate_limiter import ContactRateLimiter, FixedWindowLimiter


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def test_fixed_window_counts_down(clock: FakeClock):
    limiter = FixedWindowLimiter(limit=3, window_seconds=60, timer=clock)
    results = [limiter.hit("ip") for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert all(r.reset_at == clock.now + 60 for r in results)


def test_fixed_window_reopens_after_reset(clock: FakeClock):
    limiter = FixedWindowLimiter(limit=1, window_seconds=60, timer=clock)
    assert limiter.hit("ip").allowed
    assert not limiter.hit("ip").allowed

    clock.now += 61

    assert limiter.hit("ip").allowed


def test_fixed_window_keys_are_independent(clock: FakeClock):
    limiter = FixedWindowLimiter(limit=1, window_seconds=60, timer=clock)
    assert limiter.hit("a").allowed
    assert limiter.hit("b").allowed


@pytest.fixture
def contact_limiter(clock: FakeClock) -> ContactRateLimiter:
    return ContactRateLimiter.from_settings(Settings(), timer=clock)


def test_contact_short_term_limit(contact_limiter: ContactRateLimiter, clock: FakeClock):
    for expected_remaining in (4, 3, 2, 1, 0):
        result = contact_limiter.check("203.0.113.7")
        assert result.allowed
        assert result.headers["X-RateLimit-Remaining"] == str(expected_remaining)

    blocked = contact_limiter.check("203.0.113.7")

    assert not blocked.allowed
    assert blocked.message == ContactRateLimiter.SHORT_TERM_MESSAGE
    assert blocked.headers["Retry-After"] == "600"
    assert blocked.headers["X-RateLimit-Limit"] == "5"
    assert blocked.headers["X-RateLimit-Reset"].endswith("GMT")


def test_contact_daily_limit(contact_limiter: ContactRateLimiter, clock: FakeClock):
    allowed = 0
    for _ in range(10):
        for _ in range(5):
            if contact_limiter.check("203.0.113.7").allowed:
                allowed += 1
        clock.now += 601

    assert allowed == 20
    blocked = contact_limiter.check("203.0.113.7")
    assert not blocked.allowed
    assert blocked.message == ContactRateLimiter.DAILY_MESSAGE
    assert blocked.headers["X-RateLimit-Limit"] == "20"


def test_contact_limits_are_per_ip(contact_limiter: ContactRateLimiter):
    for _ in range(6):
        contact_limiter.check("203.0.113.7")
    assert contact_limiter.check("198.51.100.1").allowed
