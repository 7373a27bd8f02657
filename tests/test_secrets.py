"""Tests for secret generation helpers."""

from __future__ import annotations

import random

import pytest

import pytotp
from pytotp import Algorithm, base32


def test_random_base32_length_and_alphabet():
    secret = pytotp.random_base32()
    assert len(secret) == 32
    assert base32.is_valid(secret)
    assert pytotp.is_valid_secret(secret)


def test_random_base32_uses_given_generator():
    assert pytotp.random_base32(rng=random.Random(7)) == pytotp.random_base32(rng=random.Random(7))
    assert pytotp.random_base32() != pytotp.random_base32()


def test_random_base32_minimum_length():
    assert len(pytotp.random_base32(26)) == 26
    with pytest.raises(ValueError):
        pytotp.random_base32(25)


@pytest.mark.parametrize(
    "algorithm,length",
    [(Algorithm.SHA1, 32), (Algorithm.SHA256, 52), (Algorithm.SHA512, 103)],
)
def test_generate_secret_matches_recommended_key_size(algorithm, length):
    secret = pytotp.generate_secret(algorithm)
    assert len(secret) == length
    assert len(base32.decode(secret)) == algorithm.recommended_key_bytes


def test_generate_secret_explicit_size():
    rng = random.Random(1)
    secret = pytotp.generate_secret(num_bytes=16, rng=rng)
    assert len(base32.decode(secret)) == 16
    assert secret == pytotp.generate_secret(num_bytes=16, rng=random.Random(1))
    with pytest.raises(ValueError):
        pytotp.generate_secret(num_bytes=15)


def test_generated_secret_works_with_facade():
    secret = pytotp.generate_secret()
    totp = pytotp.TOTP(clock=pytotp.FixedClock(1_700_000_000))
    assert totp.verify(secret, totp.generate(secret))


def test_is_valid_secret():
    assert pytotp.is_valid_secret("A" * 26)
    assert not pytotp.is_valid_secret("A" * 25)
    assert not pytotp.is_valid_secret("A" * 25 + "1")
    assert not pytotp.is_valid_secret("")
    assert not pytotp.is_valid_secret(None)


def test_entropy_bits():
    assert pytotp.entropy_bits(26) == 130
    assert pytotp.entropy_bits(32) == 160


def test_generate_secret_encodes_and_zeroes_one_buffer(monkeypatch):
    seen = []
    real_encode = base32.encode

    def recording_encode(data, padding=False):
        seen.append(data)
        return real_encode(data, padding)

    monkeypatch.setattr(base32, "encode", recording_encode)
    secret = pytotp.generate_secret(num_bytes=20, rng=random.Random(3))

    assert len(seen) == 1
    assert isinstance(seen[0], bytearray)
    assert seen[0] == bytearray(20)
    assert secret != "A" * 32
