"""Tests for the sliding-window rate limiter."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from carik.core.ratelimit import RateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(max_requests=2, window=60, clock=clock)


class TestSlidingWindow:
    def test_allow_allow_reject(self, limiter, clock):
        assert limiter.check("u1").allowed
        clock.advance(0.3)
        assert limiter.check("u1").allowed
        clock.advance(0.3)
        assert not limiter.check("u1").allowed

    def test_allowed_again_after_window(self, limiter, clock):
        limiter.check("u1")
        limiter.check("u1")
        assert not limiter.check("u1")
        clock.advance(61)
        assert limiter.check("u1")

    def test_entry_expires_exactly_at_window(self, limiter, clock):
        limiter.check("u1")
        limiter.check("u1")
        clock.advance(60)
        assert limiter.check("u1")

    def test_retry_after_counts_from_oldest(self, limiter, clock):
        limiter.check("u1")
        clock.advance(10)
        limiter.check("u1")
        clock.advance(10)
        decision = limiter.check("u1")
        assert not decision.allowed
        assert decision.retry_after == pytest.approx(40.0)

    def test_rejection_not_recorded(self, limiter, clock):
        limiter.check("u1")
        limiter.check("u1")
        for _ in range(5):
            limiter.check("u1")
        assert limiter.count("u1") == 2
        # Oldest two expire, and no rejected request lingers behind them
        clock.advance(60)
        assert limiter.check("u1")
        assert limiter.check("u1")

    def test_window_slides(self, limiter, clock):
        limiter.check("u1")          # t=0
        clock.advance(30)
        limiter.check("u1")          # t=30
        clock.advance(31)            # t=61, first entry gone
        assert limiter.check("u1")
        assert not limiter.check("u1")

    def test_keys_independent(self, limiter):
        limiter.check("u1")
        limiter.check("u1")
        assert not limiter.check("u1")
        assert limiter.check("u2")

    def test_reset_single_key(self, limiter):
        limiter.check("u1")
        limiter.check("u1")
        limiter.check("u2")
        limiter.reset("u1")
        assert limiter.count("u1") == 0
        assert limiter.count("u2") == 1

    def test_reset_all(self, limiter):
        limiter.check("u1")
        limiter.check("u2")
        limiter.reset()
        assert limiter.count("u1") == 0
        assert limiter.count("u2") == 0

    def test_decision_truthiness(self, limiter):
        assert bool(limiter.check("u1")) is True


class TestEviction:
    def test_idle_keys_swept(self, clock):
        limiter = RateLimiter(max_requests=5, window=1, clock=clock, sweep_every=100)
        for i in range(1000):
            limiter.check(f"user{i}")
        assert limiter.tracked_keys() == 1000
        clock.advance(100)
        for _ in range(100):
            limiter.check("active")
        assert limiter.tracked_keys() == 1

    def test_sweep_keeps_live_keys(self, clock):
        limiter = RateLimiter(max_requests=5, window=60, clock=clock, sweep_every=1)
        limiter.check("old")
        clock.advance(30)
        limiter.check("recent")
        clock.advance(31)
        limiter.check("other")
        assert limiter.count("old") == 0
        assert limiter.count("recent") == 1
        assert limiter.tracked_keys() == 2

    def test_rejections_do_not_add_keys(self, clock):
        limiter = RateLimiter(max_requests=1, window=60, clock=clock)
        limiter.check("u1")
        assert not limiter.check("u1")
        assert limiter.tracked_keys() == 1


class TestValidation:
    def test_zero_requests_rejected(self):
        with pytest.raises(ValueError):
            RateLimiter(max_requests=0, window=60)

    def test_zero_window_rejected(self):
        with pytest.raises(ValueError):
            RateLimiter(max_requests=1, window=0)


class TestConcurrency:
    def test_never_exceeds_limit_under_contention(self):
        limiter = RateLimiter(max_requests=10, window=60)
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: limiter.check("shared").allowed, range(200)))
        assert sum(results) == 10
        assert limiter.count("shared") == 10

    def test_each_key_gets_its_own_quota(self):
        limiter = RateLimiter(max_requests=3, window=60)
        keys = [f"user{i % 5}" for i in range(100)]
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda k: (k, limiter.check(k).allowed), keys))
        allowed = {}
        for key, ok in results:
            allowed[key] = allowed.get(key, 0) + int(ok)
        assert allowed == {f"user{i}": 3 for i in range(5)}
