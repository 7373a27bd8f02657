"""Shared fixtures: RFC 6238 seeds and a clock tests can move by hand."""

from __future__ import annotations

import datetime

import pytest

from pytotp import base32
from pytotp.clock import Clock

# RFC 6238 Appendix B seeds, one per algorithm
SHA1_SEED = b"12345678901234567890"
SHA256_SEED = b"12345678901234567890123456789012"
SHA512_SEED = b"1234567890123456789012345678901234567890123456789012345678901234"

SHA1_SECRET = base32.encode(SHA1_SEED)
SHA256_SECRET = base32.encode(SHA256_SEED)
SHA512_SECRET = base32.encode(SHA512_SEED)


class ManualClock(Clock):
    def __init__(self, epoch: float = 1_000_000_000.0) -> None:
        self.epoch = epoch

    def now(self) -> datetime.datetime:
        return datetime.datetime.fromtimestamp(self.epoch, datetime.UTC)

    def timestamp(self) -> float:
        return self.epoch

    def advance(self, seconds: float) -> None:
        self.epoch += seconds


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()
