import datetime
import math
import time
from abc import ABC, abstractmethod
from typing import Union

Instant = Union[datetime.datetime, int, float]

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.UTC)
_ONE_SECOND = datetime.timedelta(seconds=1)


def epoch_seconds(instant: Instant) -> int:
    """
    Whole seconds since the Unix epoch. Naive datetimes are taken as UTC.
    """
    if isinstance(instant, datetime.datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=datetime.UTC)
        # timedelta floor division stays in integer microseconds
        return (instant - _EPOCH) // _ONE_SECOND
    return math.floor(instant)


def counter_for(instant: Instant, period: int) -> int:
    """
    The TOTP time step containing ``instant``: ``floor(epoch / period)``.
    """
    return epoch_seconds(instant) // period


class Clock(ABC):
    """
    Time source for code generation and verification.
    """

    @abstractmethod
    def now(self) -> datetime.datetime:
        pass

    def timestamp(self) -> float:
        return self.now().timestamp()

    def epoch_seconds(self) -> int:
        return epoch_seconds(self.now())

    def current_counter(self, period: int) -> int:
        return self.epoch_seconds() // period

    def seconds_remaining(self, period: int) -> int:
        """Seconds until the code for the current time step expires."""
        return period - self.epoch_seconds() % period


class SystemClock(Clock):
    def now(self) -> datetime.datetime:
        return datetime.datetime.now(datetime.UTC)

    def timestamp(self) -> float:
        return time.time()

    def __repr__(self) -> str:
        return "SystemClock()"


class FixedClock(Clock):
    """
    A clock frozen at one instant, for tests and for generating codes at a
    known time.
    """

    def __init__(self, instant: Instant) -> None:
        if isinstance(instant, datetime.datetime):
            if instant.tzinfo is None:
                instant = instant.replace(tzinfo=datetime.UTC)
            self._instant = self._epoch = instant
        else:
            # keep the number: fromtimestamp rounds to the nearest microsecond
            self._epoch = instant
            self._instant = datetime.datetime.fromtimestamp(instant, datetime.UTC)

    @classmethod
    def at_epoch(cls, seconds: Union[int, float]) -> "FixedClock":
        return cls(seconds)

    def now(self) -> datetime.datetime:
        return self._instant

    def timestamp(self) -> float:
        if isinstance(self._epoch, datetime.datetime):
            return self._epoch.timestamp()
        return float(self._epoch)

    def epoch_seconds(self) -> int:
        return epoch_seconds(self._epoch)

    def __repr__(self) -> str:
        return "FixedClock({})".format(self._instant.isoformat())
