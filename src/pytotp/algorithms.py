"""
Supported HMAC algorithms and the keyed-hash provider.

The hash itself always comes from the standard library (``hmac`` over
``hashlib``); this module only maps algorithm identifiers to hashlib names
and turns failures into the package's error kinds.
"""
import hashlib
import hmac
import math
from enum import StrEnum
from types import MappingProxyType
from typing import Mapping, NamedTuple, Union

from .exceptions import HmacError, InvalidConfigError, InvalidSecretError


class Algorithm(StrEnum):
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @classmethod
    def from_name(cls, name: str) -> "Algorithm":
        """
        Looks up an algorithm by any of its usual spellings.

        ``"sha256"``, ``"SHA-256"`` and ``"HmacSHA256"`` all resolve to
        :attr:`Algorithm.SHA256`.
        """
        if isinstance(name, Algorithm):
            return name
        if not name or not name.strip():
            raise InvalidConfigError("algorithm name cannot be empty")
        normalized = name.strip().upper().replace("HMAC", "").replace("-", "").replace("_", "")
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidConfigError(
                "unknown algorithm {!r}, supported: {}".format(name, ", ".join(a.value for a in cls))
            ) from None

    @property
    def info(self) -> "AlgorithmInfo":
        return ALGORITHMS[self]

    @property
    def recommended_key_bytes(self) -> int:
        return self.info.key_bytes

    @property
    def recommended_secret_length(self) -> int:
        """Base32 characters needed to carry the recommended key size."""
        return math.ceil(self.info.key_bytes * 8 / 5)

    @property
    def otpauth_name(self) -> str:
        return self.value


class AlgorithmInfo(NamedTuple):
    hash_name: str
    key_bytes: int
    digest_size: int


ALGORITHMS: Mapping[Algorithm, AlgorithmInfo] = MappingProxyType(
    {
        Algorithm.SHA1: AlgorithmInfo("sha1", 20, 20),
        Algorithm.SHA256: AlgorithmInfo("sha256", 32, 32),
        Algorithm.SHA512: AlgorithmInfo("sha512", 64, 64),
    }
)

BytesLike = Union[bytes, bytearray, memoryview]


def is_available(algorithm: Union[Algorithm, str]) -> bool:
    try:
        hashlib.new(Algorithm.from_name(algorithm).info.hash_name)
    except (ValueError, InvalidConfigError):
        return False
    return True


def compute(algorithm: Union[Algorithm, str], key: BytesLike, message: BytesLike) -> bytes:
    """
    Computes ``HMAC(key, message)`` with the given algorithm.

    Stateless and safe to call from any number of threads. There are no
    retries: a primitive missing from the runtime is a deployment problem and
    surfaces immediately as :class:`InvalidConfigError`.

    :param algorithm: an :class:`Algorithm` or one of its names
    :param key: the raw secret, must not be empty
    :param message: the data to authenticate, must not be empty
    :returns: the digest
    """
    info = Algorithm.from_name(algorithm).info
    if key is None or len(key) == 0:
        raise InvalidSecretError("key cannot be empty")
    if message is None or len(message) == 0:
        raise InvalidConfigError("HMAC message cannot be empty")

    try:
        digestmod = hashlib.new(info.hash_name).name
    except ValueError:
        raise InvalidConfigError(
            "HMAC algorithm not available in this runtime: {}".format(info.hash_name)
        ) from None

    try:
        return hmac.new(key, message, digestmod).digest()
    except (TypeError, ValueError) as e:
        raise HmacError("HMAC computation failed ({})".format(type(e).__name__)) from e
