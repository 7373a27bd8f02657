"""Tests for the in-memory replay guard."""

from __future__ import annotations

import threading
import time

import pytest

from pytotp.config import TOTPConfig
from pytotp.exceptions import InvalidConfigError, ReplayGuardClosedError
from pytotp.replay import InMemoryReplayGuard, ReplayGuard, retention_for


@pytest.fixture
def guard(manual_clock):
    # sweep interval far in the future so tests drive sweeps explicitly
    g = InMemoryReplayGuard(60, clock=manual_clock, sweep_interval=3600)
    yield g
    g.close()


def test_first_mark_wins(guard):
    assert guard.mark_used("alice:123456")
    assert not guard.mark_used("alice:123456")
    assert guard.mark_used("bob:123456")
    assert guard.size() == 2


def test_was_used_does_not_mark(guard):
    assert not guard.was_used("alice:123456")
    assert not guard.was_used("alice:123456")
    assert guard.mark_used("alice:123456")
    assert guard.was_used("alice:123456")


def test_empty_key_is_never_marked(guard):
    assert not guard.mark_used("")
    assert not guard.mark_used(None)
    assert not guard.was_used("")
    assert guard.size() == 0


def test_key_is_readmitted_after_retention(guard, manual_clock):
    assert guard.mark_used("alice:123456")
    manual_clock.advance(59)
    assert not guard.mark_used("alice:123456")
    assert guard.was_used("alice:123456")

    manual_clock.advance(2)
    assert not guard.was_used("alice:123456")
    assert guard.size() == 0
    assert guard.mark_used("alice:123456")
    assert not guard.mark_used("alice:123456")


def test_sweep_removes_only_expired_entries(guard, manual_clock):
    guard.mark_used("old")
    manual_clock.advance(45)
    guard.mark_used("new")
    manual_clock.advance(20)

    assert guard.sweep() == 1
    assert not guard.was_used("old")
    assert guard.was_used("new")
    assert guard.size() == 1


def test_clear(guard):
    guard.mark_used("a")
    guard.mark_used("b")
    guard.clear()
    assert guard.size() == 0
    assert guard.mark_used("a")


def test_concurrent_marking_has_single_winner(guard):
    callers = 32
    barrier = threading.Barrier(callers)
    results = []
    results_lock = threading.Lock()

    def race():
        barrier.wait()
        outcome = guard.mark_used("alice:654321")
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=race) for _ in range(callers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == callers
    assert results.count(True) == 1


def test_concurrent_marking_with_sweeps(guard, manual_clock):
    stop = threading.Event()

    def sweeper():
        while not stop.is_set():
            guard.sweep()

    sweeping = threading.Thread(target=sweeper)
    sweeping.start()
    try:
        winners = [guard.mark_used("key-{}".format(i)) for i in range(500)]
        repeats = [guard.mark_used("key-{}".format(i)) for i in range(500)]
    finally:
        stop.set()
        sweeping.join()

    assert all(winners)
    assert not any(repeats)
    assert guard.size() == 500


def test_closed_guard_rejects_marking(guard):
    guard.mark_used("alice:123456")
    guard.close()
    guard.close()

    assert guard.closed
    with pytest.raises(ReplayGuardClosedError):
        guard.mark_used("bob:123456")
    assert guard.was_used("alice:123456")
    assert guard.size() == 1


def test_close_stops_sweeper_thread():
    g = InMemoryReplayGuard(2, sweep_interval=0.01)
    sweeper = g._sweeper
    assert sweeper.is_alive()
    g.close()
    assert not sweeper.is_alive()


def test_background_sweep_runs(manual_clock):
    with InMemoryReplayGuard(10, clock=manual_clock, sweep_interval=0.01) as g:
        g.mark_used("stale")
        manual_clock.advance(11)
        for _ in range(200):
            if not g._entries:
                break
            time.sleep(0.01)
        assert not g._entries


def test_retention_covers_drift_window():
    config = TOTPConfig(period=30, allowed_drift=2)
    assert retention_for(config) == 30 * 5 + 30
    with InMemoryReplayGuard.for_config(config, margin=10) as g:
        assert g.retention == 160


def test_default_retention():
    with InMemoryReplayGuard.with_default_retention() as g:
        assert g.retention == 120


@pytest.mark.parametrize("retention", [0, -5, None])
def test_retention_must_be_positive(retention):
    with pytest.raises(InvalidConfigError):
        InMemoryReplayGuard(retention)


def test_in_memory_guard_is_a_replay_guard(guard):
    assert isinstance(guard, ReplayGuard)
