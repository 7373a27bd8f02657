import random
import secrets
from typing import Optional

from . import base32, qr  # noqa:F401
from .algorithms import Algorithm as Algorithm
from .clock import Clock as Clock, FixedClock as FixedClock, SystemClock as SystemClock
from .config import TOTPConfig as TOTPConfig, TOTPSettings as TOTPSettings
from .exceptions import (
    ErrorKind as ErrorKind,
    HmacError as HmacError,
    InternalError as InternalError,
    InvalidCodeError as InvalidCodeError,
    InvalidConfigError as InvalidConfigError,
    InvalidSecretError as InvalidSecretError,
    QRCodeError as QRCodeError,
    ReplayGuardClosedError as ReplayGuardClosedError,
    SecretReleasedError as SecretReleasedError,
    TOTPError as TOTPError,
)
from .otp import MIN_ENCODED_SECRET_LENGTH, MIN_SECRET_BYTES
from .replay import InMemoryReplayGuard as InMemoryReplayGuard, ReplayGuard as ReplayGuard
from .secure import SecureBytes as SecureBytes
from .totp import TOTP as TOTP, VerificationResult as VerificationResult
from .utils import build_uri as build_uri


def random_base32(length: int = 32, rng: Optional[random.Random] = None) -> str:
    """
    Draws a Base32 secret of ``length`` characters.

    :param length: number of Base32 characters, at least 26 (130 bits)
    :param rng: the generator to draw from; a fresh ``secrets.SystemRandom``
        is used when omitted. Pass one explicitly to control the source.
    """
    # Note: the otpauth scheme does not use Base32 padding, so lengths that
    # are not a multiple of 8 are fine.
    if length < MIN_ENCODED_SECRET_LENGTH:
        raise ValueError("Secrets should be at least {} Base32 characters".format(MIN_ENCODED_SECRET_LENGTH))
    rng = rng or secrets.SystemRandom()
    return "".join(rng.choice(base32.ALPHABET) for _ in range(length))


def generate_secret(
    algorithm: Algorithm = Algorithm.SHA1,
    num_bytes: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Generates a secret of ``num_bytes`` random bytes, Base32 encoded without
    padding. Defaults to the algorithm's recommended key size (20, 32 or 64
    bytes).

    The bytes are drawn straight into a package-owned buffer, read in place
    by the encoder and zeroed once encoded. The returned Base32 string is an
    immutable ``str`` and cannot be cleared.
    """
    if num_bytes is None:
        num_bytes = Algorithm.from_name(algorithm).recommended_key_bytes
    if num_bytes < MIN_SECRET_BYTES:
        raise ValueError("Secrets should be at least {} bytes, got {}".format(MIN_SECRET_BYTES, num_bytes))
    rng = rng or secrets.SystemRandom()
    with SecureBytes.wrap(bytearray(num_bytes)) as raw:
        buf = raw.get_bytes()
        for i in range(num_bytes):
            buf[i] = rng.getrandbits(8)
        return base32.encode(buf)


def is_valid_secret(secret: Optional[str]) -> bool:
    """True if ``secret`` is usable: valid Base32 and at least 26 characters."""
    if not secret or not secret.strip() or not base32.is_valid(secret):
        return False
    return len(base32.clean(secret)) >= MIN_ENCODED_SECRET_LENGTH


def entropy_bits(length: int) -> int:
    """Bits of entropy carried by ``length`` Base32 characters."""
    return length * 5
