"""Immutable TOTP configuration and environment-driven defaults."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .algorithms import Algorithm
from .exceptions import InvalidConfigError

MIN_DIGITS = 6
MAX_DIGITS = 8
MIN_PERIOD_SECONDS = 15
MAX_PERIOD_SECONDS = 120
MAX_DRIFT_STEPS = 5

DEFAULT_DIGITS = 6
DEFAULT_PERIOD_SECONDS = 30
DEFAULT_DRIFT_STEPS = 1
DEFAULT_REPLAY_MARGIN_SECONDS = 30


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"]) or "config"
        parts.append("{}: {}".format(field, item["msg"]))
    return "; ".join(parts)


class TOTPConfig(BaseModel):
    """
    Algorithm, code length, time step and drift tolerance.

    Validated once at construction and immutable afterwards, so one instance
    can be shared by every generator and verifier using it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    algorithm: Algorithm = Algorithm.SHA1
    digits: int = Field(default=DEFAULT_DIGITS, ge=MIN_DIGITS, le=MAX_DIGITS)
    period: int = Field(default=DEFAULT_PERIOD_SECONDS, ge=MIN_PERIOD_SECONDS, le=MAX_PERIOD_SECONDS)
    allowed_drift: int = Field(default=DEFAULT_DRIFT_STEPS, ge=0, le=MAX_DRIFT_STEPS)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidConfigError(_describe(e)) from e

    @field_validator("algorithm", mode="before")
    @classmethod
    def _parse_algorithm(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Algorithm.from_name(value)
        return value

    @classmethod
    def default(cls) -> TOTPConfig:
        return cls()

    @classmethod
    def sha256(cls) -> TOTPConfig:
        return cls(algorithm=Algorithm.SHA256)

    @classmethod
    def high_security(cls) -> TOTPConfig:
        return cls(algorithm=Algorithm.SHA512, digits=8)

    def replace(self, **changes: Any) -> TOTPConfig:
        """Returns a validated copy with ``changes`` applied."""
        return type(self)(**{**self.model_dump(), **changes})

    @property
    def window_size(self) -> int:
        """Number of time steps a verifier accepts: ``1 + 2 * allowed_drift``."""
        return 1 + 2 * self.allowed_drift

    def __str__(self) -> str:
        return "TOTPConfig[algorithm={}, digits={}, period={}s, drift={}]".format(
            self.algorithm, self.digits, self.period, self.allowed_drift
        )


class TOTPSettings(BaseSettings):
    """
    Deployment defaults read from ``PYTOTP_*`` environment variables or a
    ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="PYTOTP_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    algorithm: str = Algorithm.SHA1.value
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD_SECONDS
    allowed_drift: int = DEFAULT_DRIFT_STEPS

    # Replay protection
    replay_protection: bool = False
    replay_margin: int = DEFAULT_REPLAY_MARGIN_SECONDS

    def to_config(self) -> TOTPConfig:
        return TOTPConfig(
            algorithm=self.algorithm,
            digits=self.digits,
            period=self.period,
            allowed_drift=self.allowed_drift,
        )
