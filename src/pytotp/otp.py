"""
Code engine: RFC 4226 HOTP generation and RFC 6238 drift-window verification.

Everything here is a pure function of its arguments. Secrets are raw bytes
(usually the live buffer of a :class:`~pytotp.secure.SecureBytes`); the
Base32 form is handled by the facade.
"""
import struct
from typing import Iterator, Optional, Tuple, Union

from . import base32
from .algorithms import compute
from .clock import Clock, Instant, counter_for
from .config import TOTPConfig
from .exceptions import InvalidConfigError, InvalidSecretError
from .utils import is_valid_code_format, strings_equal

MIN_SECRET_BYTES = 16
# 26 Base32 characters carry 130 bits, the smallest count that decodes to 16 bytes
MIN_ENCODED_SECRET_LENGTH = 26
MAX_COUNTER = 2**64 - 1

BytesLike = Union[bytes, bytearray, memoryview]


def int_to_bytestring(i: int) -> bytes:
    """
    Turns a counter into the 8-byte big-endian string that is fed to the
    HMAC along with the secret.
    """
    if not 0 <= i <= MAX_COUNTER:
        raise InvalidConfigError("counter must be an unsigned 64-bit integer")
    return struct.pack(">Q", i)


def dynamic_truncate(digest: bytes) -> int:
    """
    RFC 4226 section 5.3: the low nibble of the last byte picks an offset,
    the four bytes at that offset form a big-endian integer with the top bit
    cleared.
    """
    offset = digest[-1] & 0x0F
    return (
        (digest[offset] & 0x7F) << 24
        | (digest[offset + 1] & 0xFF) << 16
        | (digest[offset + 2] & 0xFF) << 8
        | (digest[offset + 3] & 0xFF)
    )


def validate_secret(secret: Optional[BytesLike]) -> None:
    if secret is None:
        raise InvalidSecretError("secret cannot be None")
    if len(secret) < MIN_SECRET_BYTES:
        raise InvalidSecretError(
            "secret must be at least {} bytes, got {}".format(MIN_SECRET_BYTES, len(secret))
        )


def validate_encoded_secret(secret: Optional[str]) -> None:
    """
    Checks a Base32 secret before it is decoded: at least 26 characters once
    whitespace and padding are removed, and nothing outside the alphabet.
    """
    if secret is None or not secret.strip():
        raise InvalidSecretError("secret cannot be empty")
    if len(base32.clean(secret)) < MIN_ENCODED_SECRET_LENGTH:
        raise InvalidSecretError(
            "secret must be at least {} Base32 characters".format(MIN_ENCODED_SECRET_LENGTH)
        )
    if not base32.is_valid(secret):
        raise InvalidSecretError("secret contains invalid Base32 characters")


def generate_otp(secret: BytesLike, counter: int, config: TOTPConfig) -> str:
    """
    :param secret: raw key bytes, at least 16 of them
    :param counter: the HMAC counter, usually a TOTP time step
    :param config: algorithm and digit count
    :returns: the zero-padded code
    """
    validate_secret(secret)
    digest = compute(config.algorithm, secret, int_to_bytestring(counter))
    code = dynamic_truncate(digest) % 10**config.digits
    return str(code).zfill(config.digits)


def generate_at(secret: BytesLike, for_time: Instant, config: TOTPConfig) -> str:
    return generate_otp(secret, counter_for(for_time, config.period), config)


def generate_now(secret: BytesLike, config: TOTPConfig, clock: Clock) -> str:
    return generate_otp(secret, clock.current_counter(config.period), config)


def window_counters(current: int, drift: int) -> Iterator[Tuple[int, int]]:
    """
    Yields ``(offset, counter)`` for every offset from ``-drift`` to
    ``+drift`` in that order. Counters that would fall before the epoch are
    left out.
    """
    for offset in range(-drift, drift + 1):
        if current + offset >= 0:
            yield offset, current + offset


def verify_with_offset(secret: BytesLike, code: str, config: TOTPConfig, clock: Clock) -> Optional[int]:
    """
    Checks ``code`` against every time step in the drift window.

    Every step is generated and compared, matched or not, so the time taken
    does not reveal which step matched. If several steps produce the same
    code the last one in iteration order wins, i.e. the largest offset.

    :returns: the matching offset relative to the current step, or ``None``
    """
    validate_secret(secret)
    if not is_valid_code_format(code, config.digits):
        return None

    matched = None
    for offset, counter in window_counters(clock.current_counter(config.period), config.allowed_drift):
        if strings_equal(generate_otp(secret, counter, config), code):
            matched = offset
    return matched


def verify(secret: BytesLike, code: str, config: TOTPConfig, clock: Clock) -> bool:
    """
    True if ``code`` matches any time step within the allowed drift.

    A malformed code is simply not valid; no hashing is done for it.
    """
    return verify_with_offset(secret, code, config, clock) is not None
