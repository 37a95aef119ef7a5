"""RateLimiterのテスト"""

from delivery_distance.shared.http.rate_limiter import RateLimiter

from .fakes import FakeClock


def _limiter(clock: FakeClock, sleeps: list[float], **kwargs) -> RateLimiter:
    def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock.advance(seconds)

    return RateLimiter(clock=clock, sleep=sleep, **kwargs)


def test_first_call_does_not_sleep() -> None:
    sleeps: list[float] = []
    _limiter(FakeClock(), sleeps, min_interval=1.0).wait()

    assert sleeps == []


def test_sleeps_for_remaining_interval() -> None:
    clock = FakeClock()
    sleeps: list[float] = []
    limiter = _limiter(clock, sleeps, min_interval=1.0)

    limiter.wait()
    clock.advance(0.25)
    limiter.wait()

    assert sleeps == [0.75]


def test_no_sleep_after_interval_elapsed() -> None:
    clock = FakeClock()
    sleeps: list[float] = []
    limiter = _limiter(clock, sleeps, requests_per_second=4)

    limiter.wait()
    clock.advance(0.3)
    limiter.wait()

    assert limiter.min_interval == 0.25
    assert sleeps == []


def test_reset() -> None:
    clock = FakeClock()
    sleeps: list[float] = []
    limiter = _limiter(clock, sleeps, min_interval=1.0)

    limiter.wait()
    limiter.reset()
    limiter.wait()

    assert sleeps == []
