import datetime
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict

from . import base32, otp
from .clock import Clock, SystemClock
from .config import DEFAULT_REPLAY_MARGIN_SECONDS, TOTPConfig, TOTPSettings
from .exceptions import ErrorKind
from .replay import InMemoryReplayGuard, ReplayGuard, retention_for
from .secure import SecureBytes
from .utils import build_uri, is_valid_code_format

logger = logging.getLogger(__name__)

INVALID_FORMAT = "invalid code format"
MISMATCH = "code does not match"
REPLAYED = "code has already been used"


class VerificationResult(BaseModel):
    """
    Outcome of :meth:`TOTP.verify_with_details`.

    ``offset`` is the matched time step relative to the verifier's current
    step (negative: the code came from the past). ``error`` is only set when
    the candidate itself was malformed.
    """

    model_config = ConfigDict(frozen=True)

    valid: bool
    offset: Optional[int] = None
    reason: str = "valid"
    error: Optional[ErrorKind] = None

    @classmethod
    def accepted(cls, offset: int) -> "VerificationResult":
        return cls(valid=True, offset=offset)

    @classmethod
    def rejected(cls, reason: str, error: Optional[ErrorKind] = None) -> "VerificationResult":
        return cls(valid=False, reason=reason, error=error)

    def __bool__(self) -> bool:
        return self.valid

    def __str__(self) -> str:
        if self.valid:
            return "VerificationResult[valid, offset={}]".format(self.offset)
        return "VerificationResult[invalid: {}]".format(self.reason)


class TOTP(object):
    """
    Generates and verifies time-based codes for Base32 secrets.

    Secrets are decoded into a :class:`SecureBytes` that is zeroed as soon as
    the engine call returns, whether it succeeded or raised.
    """

    def __init__(
        self,
        config: Optional[TOTPConfig] = None,
        clock: Optional[Clock] = None,
        replay_guard: Optional[ReplayGuard] = None,
    ) -> None:
        """
        :param config: algorithm, digits, period and drift; defaults to
            SHA1, 6 digits, 30 seconds, one step of drift
        :param clock: time source, defaults to the system clock
        :param replay_guard: if given, each accepted code is marked used and
            a second acceptance is refused
        """
        self.config = config or TOTPConfig.default()
        self.clock = clock or SystemClock()
        self.replay_guard = replay_guard
        self._owns_guard = False

    @classmethod
    def with_replay_protection(
        cls,
        config: Optional[TOTPConfig] = None,
        clock: Optional[Clock] = None,
        retention: Optional[float] = None,
    ) -> "TOTP":
        """
        Builds a TOTP with its own :class:`InMemoryReplayGuard`, closed by
        :meth:`close`. Retention defaults to the drift window plus a margin.
        """
        config = config or TOTPConfig.default()
        if retention is None:
            guard = InMemoryReplayGuard.for_config(config, DEFAULT_REPLAY_MARGIN_SECONDS, clock=clock)
        else:
            guard = InMemoryReplayGuard(retention, clock=clock)
        totp = cls(config, clock, guard)
        totp._owns_guard = True
        return totp

    @classmethod
    def from_settings(cls, settings: Optional[TOTPSettings] = None, clock: Optional[Clock] = None) -> "TOTP":
        """
        Builds a TOTP from ``PYTOTP_*`` environment settings, with an owned
        replay guard when ``PYTOTP_REPLAY_PROTECTION`` is enabled.
        """
        settings = settings or TOTPSettings()
        config = settings.to_config()
        if not settings.replay_protection:
            return cls(config, clock)
        return cls.with_replay_protection(config, clock, retention_for(config, settings.replay_margin))

    @contextmanager
    def _secret(self, secret: str) -> Iterator[bytearray]:
        otp.validate_encoded_secret(secret)
        with SecureBytes.wrap(base32.decode(secret)) as key:
            yield key.get_bytes()

    def generate(self, secret: str) -> str:
        """
        Generate the code for the current time.

        :param secret: the Base32 secret
        :returns: OTP value
        """
        with self._secret(secret) as key:
            return otp.generate_now(key, self.config, self.clock)

    def generate_at(self, secret: str, for_time: Union[int, float, datetime.datetime]) -> str:
        """
        Accepts either a Unix timestamp or a datetime object.

        :param for_time: the time to generate an OTP for
        :returns: OTP value
        """
        if for_time is None:
            raise TypeError("for_time must not be None")
        with self._secret(secret) as key:
            return otp.generate_at(key, for_time, self.config)

    def generate_for_counter(self, secret: str, counter: int) -> str:
        with self._secret(secret) as key:
            return otp.generate_otp(key, counter, self.config)

    @staticmethod
    def replay_key(code: str, identity: Optional[str] = None) -> str:
        return "{}:{}".format(identity, code) if identity is not None else code

    def verify(self, secret: str, code: str, identity: Optional[str] = None) -> bool:
        """
        Verifies a code against the current time, within the allowed drift.

        A wrong or malformed code returns False; only a bad secret raises.

        :param secret: the Base32 secret
        :param code: the candidate code
        :param identity: scopes replay protection to one account
        :returns: True if verification succeeded, False otherwise
        """
        return self.verify_with_details(secret, code, identity).valid

    def verify_with_details(
        self, secret: str, code: str, identity: Optional[str] = None
    ) -> VerificationResult:
        otp.validate_encoded_secret(secret)
        if not is_valid_code_format(code, self.config.digits):
            return VerificationResult.rejected(INVALID_FORMAT, ErrorKind.INVALID_CODE)

        with self._secret(secret) as key:
            offset = otp.verify_with_offset(key, code, self.config, self.clock)

        if offset is None:
            logger.debug("TOTP verification failed: %s", MISMATCH)
            return VerificationResult.rejected(MISMATCH)

        if self.replay_guard is not None and not self.replay_guard.mark_used(self.replay_key(code, identity)):
            logger.debug("TOTP verification failed: %s", REPLAYED)
            return VerificationResult.rejected(REPLAYED)

        return VerificationResult.accepted(offset)

    def current_counter(self) -> int:
        return self.clock.current_counter(self.config.period)

    def seconds_remaining(self) -> int:
        return self.clock.seconds_remaining(self.config.period)

    def provisioning_uri(self, secret: str, name: str, issuer: str, **kwargs: str) -> str:
        """
        Returns the provisioning URI for this configuration, ready to be
        rendered as a QR code (see :mod:`pytotp.qr`).
        """
        return build_uri(secret, name=name, issuer=issuer, config=self.config, **kwargs)

    def close(self) -> None:
        if self._owns_guard and self.replay_guard is not None:
            self.replay_guard.close()

    def __enter__(self) -> "TOTP":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return "TOTP({}, clock={!r}, replay_guard={!r})".format(self.config, self.clock, self.replay_guard)
