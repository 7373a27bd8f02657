"""
Replay protection: remembers which codes have already been accepted.

:class:`ReplayGuard` is the capability the facade depends on. Clustered
deployments are expected to back it with a shared store;
:class:`InMemoryReplayGuard` covers a single process.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

from .clock import Clock, SystemClock
from .config import DEFAULT_REPLAY_MARGIN_SECONDS, TOTPConfig
from .exceptions import InvalidConfigError, ReplayGuardClosedError

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 120.0
MIN_SWEEP_INTERVAL_SECONDS = 1.0


class ReplayGuard(ABC):
    """
    Tracks consumed codes. Keys are opaque strings, usually
    ``"identity:code"``.
    """

    @abstractmethod
    def mark_used(self, key: str) -> bool:
        """
        Records ``key`` as used.

        :returns: True only for the first live marking of ``key``; False if
            it was already marked and is still within retention
        """

    @abstractmethod
    def was_used(self, key: str) -> bool:
        """Reports whether ``key`` is marked, without marking it."""

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def size(self) -> int:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> ReplayGuard:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def retention_for(config: TOTPConfig, margin: float = DEFAULT_REPLAY_MARGIN_SECONDS) -> float:
    """
    How long a code must be remembered: a code accepted at one edge of the
    drift window stays valid until the window's far edge has passed.
    """
    return float(config.period * config.window_size + margin)


class InMemoryReplayGuard(ReplayGuard):
    """
    Thread-safe, time-expiring replay guard held in process memory.

    Entries map a key to the epoch time it was first accepted. A daemon
    thread removes expired entries every ``retention / 2`` seconds (at least
    one second); expiry is also checked on every call, so a stale entry
    never blocks reuse even if the sweep has not run yet.

    After :meth:`close`, :meth:`mark_used` raises
    :class:`ReplayGuardClosedError`; :meth:`was_used`, :meth:`size` and
    :meth:`clear` keep working against the entries still held.
    """

    def __init__(
        self,
        retention: float,
        clock: Clock | None = None,
        sweep_interval: float | None = None,
    ) -> None:
        if retention is None or retention <= 0:
            raise InvalidConfigError("replay retention must be positive")
        self._retention = float(retention)
        self._clock = clock or SystemClock()
        self._entries: dict[str, float] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._closed = False

        if sweep_interval is None:
            sweep_interval = max(self._retention / 2, MIN_SWEEP_INTERVAL_SECONDS)
        self._sweep_interval = sweep_interval

        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="pytotp-replay-guard-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.debug(
            "Replay guard started (retention=%.0fs, sweep every %.1fs)",
            self._retention, self._sweep_interval,
        )

    @classmethod
    def for_config(
        cls,
        config: TOTPConfig,
        margin: float = DEFAULT_REPLAY_MARGIN_SECONDS,
        clock: Clock | None = None,
    ) -> InMemoryReplayGuard:
        return cls(retention_for(config, margin), clock=clock)

    @classmethod
    def with_default_retention(cls, clock: Clock | None = None) -> InMemoryReplayGuard:
        return cls(DEFAULT_RETENTION_SECONDS, clock=clock)

    @property
    def retention(self) -> float:
        return self._retention

    @property
    def closed(self) -> bool:
        return self._closed

    def _expired(self, first_seen: float, now: float) -> bool:
        return now - first_seen > self._retention

    def mark_used(self, key: str) -> bool:
        if self._closed:
            raise ReplayGuardClosedError("replay guard has been closed")
        if not key:
            return False

        now = self._clock.timestamp()
        with self._lock:
            first_seen = self._entries.get(key)
            # insert if absent, or re-admit a key whose previous use has aged out
            if first_seen is None or self._expired(first_seen, now):
                self._entries[key] = now
                return True
        return False

    def was_used(self, key: str) -> bool:
        if not key:
            return False
        first_seen = self._entries.get(key)
        if first_seen is None:
            return False
        return not self._expired(first_seen, self._clock.timestamp())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        now = self._clock.timestamp()
        with self._lock:
            return sum(1 for first_seen in self._entries.values() if not self._expired(first_seen, now))

    def __len__(self) -> int:
        return self.size()

    def sweep(self) -> int:
        """
        Removes expired entries and returns how many were dropped.

        The lock is taken per key, not for the whole pass, and each entry is
        re-checked under the lock in case it was re-admitted meanwhile.
        """
        now = self._clock.timestamp()
        with self._lock:
            snapshot = list(self._entries.items())

        removed = 0
        for key, first_seen in snapshot:
            if not self._expired(first_seen, now):
                continue
            with self._lock:
                current = self._entries.get(key)
                if current is not None and self._expired(current, now):
                    del self._entries[key]
                    removed += 1
        if removed:
            logger.debug("Replay guard swept %d expired entries", removed)
        return removed

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.warning("Replay guard sweep failed", exc_info=True)

    def close(self) -> None:
        """Stops the sweeper thread. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._stop_event.set()
        if self._sweeper.is_alive() and self._sweeper is not threading.current_thread():
            self._sweeper.join(timeout=5)
        logger.debug("Replay guard closed with %d entries", len(self._entries))

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return "InMemoryReplayGuard(retention={:.0f}s, entries={}, {})".format(
            self._retention, len(self._entries), state
        )
