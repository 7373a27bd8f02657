from hmac import compare_digest
from typing import Dict, Optional, Union
from urllib.parse import quote, urlencode, urlparse

from .algorithms import Algorithm
from .config import DEFAULT_DIGITS, DEFAULT_PERIOD_SECONDS, TOTPConfig
from .exceptions import InvalidConfigError, InvalidSecretError


def strings_equal(s1: str, s2: str) -> bool:
    """
    Timing-attack resistant string comparison.

    Normal comparison using == will short-circuit on the first mismatching
    character. This scans the whole string instead, though it still reveals
    whether the strings have the same length. Codes are ASCII digits, so no
    normalization is applied: anything else simply fails to match.
    """
    if s1 is None or s2 is None:
        return s1 is s2
    return compare_digest(s1.encode("utf-8"), s2.encode("utf-8"))


def is_valid_code_format(code: Optional[str], digits: int) -> bool:
    """
    True if ``code`` is exactly ``digits`` ASCII decimal characters.

    ``str.isdigit`` accepts fullwidth and other Unicode digits, so the range
    is checked explicitly.
    """
    if not isinstance(code, str) or len(code) != digits:
        return False
    return all("0" <= char <= "9" for char in code)


def build_uri(
    secret: str,
    name: str,
    issuer: str,
    config: Optional[TOTPConfig] = None,
    **kwargs: str,
) -> str:
    """
    Returns the ``otpauth://totp/`` provisioning URI for a secret. This can
    then be encoded in a QR Code and used to provision Google Authenticator
    or a compatible app.

    See also:
        https://github.com/google/google-authenticator/wiki/Key-Uri-Format

    :param secret: the Base32 secret
    :param name: name of the account
    :param issuer: the name of the OTP issuer; this will be the
        organization title of the OTP entry in Authenticator
    :param config: algorithm, digits and period; only non-default values
        are written to the URI
    :param kwargs: other query string parameters to include in the URI
    :returns: provisioning uri
    """
    if not secret or not secret.strip():
        raise InvalidSecretError("secret cannot be empty")
    if not name or not name.strip():
        raise InvalidConfigError("account name cannot be empty")
    if not issuer or not issuer.strip():
        raise InvalidConfigError("issuer cannot be empty")
    if ":" in name:
        raise InvalidConfigError("account name cannot contain ':'")

    config = config or TOTPConfig.default()

    url_args: Dict[str, Union[int, str]] = {
        "secret": "".join(secret.split()).upper(),
        "issuer": issuer,
    }
    if config.algorithm != Algorithm.SHA1:
        url_args["algorithm"] = config.algorithm.otpauth_name
    if config.digits != DEFAULT_DIGITS:
        url_args["digits"] = config.digits
    if config.period != DEFAULT_PERIOD_SECONDS:
        url_args["period"] = config.period

    for k, v in kwargs.items():
        if not isinstance(v, str):
            raise InvalidConfigError("all otpauth uri parameters must be strings")
        if k == "image":
            image_uri = urlparse(v)
            if image_uri.scheme != "https" or not image_uri.netloc or not image_uri.path:
                raise InvalidConfigError("image must be an https url")
        url_args[k] = v

    label = quote(issuer) + ":" + quote(name)
    return "otpauth://totp/{0}?{1}".format(label, urlencode(url_args).replace("+", "%20"))
