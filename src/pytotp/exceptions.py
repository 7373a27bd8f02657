from enum import StrEnum


class ErrorKind(StrEnum):
    INVALID_SECRET = "invalid_secret"
    INVALID_CODE = "invalid_code"
    INVALID_CONFIG = "invalid_config"
    HMAC_ERROR = "hmac_error"
    QR_GENERATION_ERROR = "qr_generation_error"
    INTERNAL_ERROR = "internal_error"
    GUARD_CLOSED = "guard_closed"


class TOTPError(Exception):
    """
    Base class for every error raised by this package.

    The ``kind`` attribute tags the failure so callers can dispatch on it
    (``match err.kind: ...``) instead of walking the class hierarchy.
    Messages only ever describe lengths, positions and ranges; they never
    carry secret material or full candidate codes.
    """

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    prefix: str = ""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(self.prefix + reason if self.prefix else reason)

    def __repr__(self) -> str:
        return "{}[{}]: {}".format(type(self).__name__, self.kind, self)


class InvalidSecretError(TOTPError, ValueError):
    kind = ErrorKind.INVALID_SECRET
    prefix = "Invalid secret: "


class InvalidCodeError(TOTPError, ValueError):
    kind = ErrorKind.INVALID_CODE
    prefix = "Invalid code: "


class InvalidConfigError(TOTPError, ValueError):
    kind = ErrorKind.INVALID_CONFIG
    prefix = "Invalid configuration: "


class HmacError(TOTPError):
    kind = ErrorKind.HMAC_ERROR


class QRCodeError(TOTPError):
    kind = ErrorKind.QR_GENERATION_ERROR


class InternalError(TOTPError):
    kind = ErrorKind.INTERNAL_ERROR


class SecretReleasedError(TOTPError, RuntimeError):
    """Raised when a released :class:`~pytotp.secure.SecureBytes` is read."""

    kind = ErrorKind.INTERNAL_ERROR


class ReplayGuardClosedError(TOTPError, RuntimeError):
    """Raised by ``mark_used`` once the guard has been closed."""

    kind = ErrorKind.GUARD_CLOSED
