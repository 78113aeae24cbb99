import random

import pytest

from reconnecting_socket.backoff import BackoffScheduler
from reconnecting_socket.config import BackoffConfig
from reconnecting_socket.exceptions import BackoffInProgressError


def scheduler(fake_loop, **options):
    calls = []
    config = BackoffConfig(**{"randomization_factor": 0, **options})
    sched = BackoffScheduler(
        config,
        on_backoff=lambda n, d: calls.append(("backoff", n, d)),
        on_ready=lambda n, d: calls.append(("ready", n, d)),
        on_fail=lambda n: calls.append(("fail", n)),
        rng=random.Random(1),
        loop=fake_loop,
    )
    return sched, calls


def test_exponential_delays_double_up_to_cap():
    sched = BackoffScheduler(BackoffConfig(strategy="exponential", initial_delay=100, max_delay=1000))
    assert [sched.base_delay(k) for k in range(6)] == [100, 200, 400, 800, 1000, 1000]


def test_fibonacci_delays_follow_sequence():
    sched = BackoffScheduler(BackoffConfig(strategy="fibonacci", initial_delay=100, max_delay=1000))
    assert [sched.base_delay(k) for k in range(7)] == [100, 200, 300, 500, 800, 1000, 1000]


def test_large_attempt_numbers_stay_capped():
    for strategy in ("exponential", "fibonacci"):
        sched = BackoffScheduler(BackoffConfig(strategy=strategy, initial_delay=1, max_delay=20000))
        assert sched.base_delay(100000) == 20000


def test_jitter_stays_within_factor():
    sched = BackoffScheduler(BackoffConfig(randomization_factor=0.2), rng=random.Random(42))
    samples = [sched.jitter(1000) for _ in range(500)]
    assert all(800 <= s <= 1200 for s in samples)
    # both directions occur
    assert min(samples) < 1000 < max(samples)


def test_no_jitter_when_factor_is_zero():
    sched = BackoffScheduler(BackoffConfig(randomization_factor=0))
    assert sched.next_delay(2) == sched.base_delay(2)


def test_backoff_schedules_ready_after_delay(fake_loop):
    sched, calls = scheduler(fake_loop, strategy="exponential", initial_delay=100, max_delay=1000)

    assert sched.backoff() == 100
    assert sched.attempts == 1
    assert sched.pending
    assert calls == [("backoff", 1, 100)]

    assert fake_loop.fire() == pytest.approx(0.1)
    assert not sched.pending
    assert calls[-1] == ("ready", 1, 100)

    assert sched.backoff() == 200
    assert fake_loop.fire() == pytest.approx(0.2)
    assert sched.attempts == 2


def test_reset_cancels_timer_and_restarts_sequence(fake_loop):
    sched, calls = scheduler(fake_loop, strategy="exponential", initial_delay=100, max_delay=1000)
    sched.backoff()
    fake_loop.fire()
    sched.backoff()
    assert sched.pending

    sched.reset()
    assert sched.attempts == 0
    assert not sched.pending
    assert fake_loop.pending == []

    assert sched.backoff() == 100


def test_backoff_while_pending_is_rejected(fake_loop):
    sched, _ = scheduler(fake_loop)
    sched.backoff()
    with pytest.raises(BackoffInProgressError):
        sched.backoff()


def test_fail_after_reports_exhaustion_on_nth_failure(fake_loop):
    sched, calls = scheduler(fake_loop, fail_after=3)

    assert sched.backoff() is not None
    fake_loop.fire()
    assert sched.backoff() is not None
    fake_loop.fire()
    assert sched.backoff() is None

    assert calls[-1] == ("fail", 3)
    assert sched.attempts == 3
    assert sched.exhausted
    assert fake_loop.pending == []

    # no further growth once exhausted
    sched.backoff()
    assert sched.attempts == 3


def test_fail_after_one_fails_immediately(fake_loop):
    sched, calls = scheduler(fake_loop, fail_after=1)
    assert sched.backoff() is None
    assert calls == [("fail", 1)]


def test_backoff_uses_running_loop_by_default():
    sched = BackoffScheduler(BackoffConfig())
    with pytest.raises(RuntimeError):
        sched.backoff()
