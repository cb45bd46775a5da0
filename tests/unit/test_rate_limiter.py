import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
import pytest
from middleware.rate_limiter import (RateLimiter, MemoryRateLimitStore, RateLimitConfig,
AUTH_RATE_LIMIT, API_RATE_LIMIT, AI_RATE_LIMIT)


@pytest.fixture
def limiter(fake_clock):
    return RateLimiter(clock=fake_clock)


def test_allows_requests_under_the_limit(limiter):
    result = limiter.check("test-user-1", 3, 60_000)

    assert result.allowed is True
    assert result.remaining == 2


def test_counts_down_then_blocks_then_resets(limiter, fake_clock):
    results = [limiter.check("test-user-2", 3, 60_000) for _ in range(3)]
    assert [r.allowed for r in results] == [True, True, True]
    assert [r.remaining for r in results] == [2, 1, 0]

    blocked = limiter.check("test-user-2", 3, 60_000)
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.reset_at == results[0].reset_at

    fake_clock.advance(60.001)

    after_reset = limiter.check("test-user-2", 3, 60_000)
    assert after_reset.allowed is True
    assert after_reset.remaining == 2
    assert after_reset.reset_at > results[0].reset_at


def test_rejected_requests_are_not_counted(limiter, fake_clock):
    limiter.check("key", 1, 60_000)
    for _ in range(5):
        assert limiter.check("key", 1, 60_000).allowed is False

    assert limiter.store.get("key").count == 1


def test_window_is_fixed_not_sliding(limiter, fake_clock):
    """A burst at the end of one window and the start of the next is admitted."""
    first = limiter.check("burst", 2, 1_000)
    fake_clock.advance(0.9)
    assert limiter.check("burst", 2, 1_000).allowed is True

    fake_clock.advance(0.2)
    assert limiter.check("burst", 2, 1_000).allowed is True
    assert limiter.check("burst", 2, 1_000).allowed is True
    assert limiter.check("burst", 2, 1_000).allowed is False
    assert first.allowed is True


def test_reset_at_is_window_end(limiter, fake_clock):
    result = limiter.check("test-user-5", 5, 60_000)

    assert result.reset_at == pytest.approx(fake_clock() + 60)


def test_different_keys_are_independent(limiter):
    assert limiter.check("user-a", 1, 60_000).allowed is True
    assert limiter.check("user-b", 1, 60_000).allowed is True

    assert limiter.check("user-a", 1, 60_000).allowed is False
    assert limiter.check("user-b", 1, 60_000).allowed is False
    assert limiter.check("user-c", 1, 60_000).allowed is True


def test_check_config(limiter):
    config = RateLimitConfig(max_requests=2, window_ms=60_000)

    assert limiter.check_config("cfg", config).remaining == 1
    assert limiter.check_config("cfg", config).remaining == 0
    assert limiter.check_config("cfg", config).allowed is False


def test_sweep_removes_only_expired_entries(limiter, fake_clock):
    limiter.check("old", 5, 1_000)
    fake_clock.advance(2)
    limiter.check("fresh", 5, 60_000)

    removed = limiter.sweep()

    assert removed == 1
    assert limiter.store.get("old") is None
    assert limiter.store.get("fresh") is not None


def test_injected_store_is_used(fake_clock):
    store = MemoryRateLimitStore()
    limiter = RateLimiter(store=store, clock=fake_clock)

    limiter.check("login:1.2.3.4", 5, 60_000)

    assert len(store) == 1
    assert store.get("login:1.2.3.4").count == 1


async def test_sweeper_task_runs_in_background(limiter, fake_clock):
    limiter.check("old", 5, 1_000)
    fake_clock.advance(2)

    task = asyncio.create_task(limiter.run_sweeper(0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(limiter.store) == 0


def test_presets():
    assert (AUTH_RATE_LIMIT.max_requests, AUTH_RATE_LIMIT.window_ms) == (5, 60_000)
    assert (API_RATE_LIMIT.max_requests, API_RATE_LIMIT.window_ms) == (60, 60_000)
    assert (AI_RATE_LIMIT.max_requests, AI_RATE_LIMIT.window_ms) == (10, 60_000)


def test_concurrent_checks_admit_exactly_the_limit():
    limiter = RateLimiter()
    start = threading.Barrier(20)

    def hammer():
        start.wait()
        return [limiter.check("shared-key", 50, 60_000).allowed for _ in range(10)]

    with ThreadPoolExecutor(max_workers=20) as pool:
        results = [allowed for batch in pool.map(lambda _: hammer(), range(20)) for allowed in batch]

    assert len(results) == 200
    assert results.count(True) == 50
    assert limiter.store.get("shared-key").count == 50
