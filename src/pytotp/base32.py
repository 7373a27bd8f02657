"""
RFC 4648 Base32 codec for the textual form of OTP secrets.

Decoding is lenient in the ways authenticator apps need (case, whitespace,
optional ``=`` padding) and strict about the alphabet. It returns a mutable
``bytearray`` so the decoded key can be zeroed once it has been used.
"""
import re
from typing import Optional, Union

from .exceptions import InvalidSecretError

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

_DECODE_TABLE = {c: i for i, c in enumerate(ALPHABET)}
_DECODE_TABLE.update({c.lower(): i for c, i in list(_DECODE_TABLE.items()) if c.isalpha()})

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PADDING = re.compile(r"=+$")


def clean(encoded: str) -> str:
    """
    Strips whitespace anywhere in the string and ``=`` padding at the end.
    """
    return _TRAILING_PADDING.sub("", _WHITESPACE.sub("", encoded))


def encoded_length(input_bytes: int) -> int:
    """Number of Base32 characters (without padding) for ``input_bytes`` bytes."""
    return (input_bytes * 8 + 4) // 5


def decoded_length(encoded_chars: int) -> int:
    """Number of bytes produced by ``encoded_chars`` Base32 characters."""
    return encoded_chars * 5 // 8


def encode(data: Union[bytes, bytearray, memoryview], padding: bool = False) -> str:
    """
    Encodes binary data as uppercase Base32.

    :param data: the bytes to encode
    :param padding: pad the output with ``=`` to a multiple of 8 characters
    :returns: Base32 text
    """
    if data is None:
        raise TypeError("data must not be None")

    result = []
    buffer = 0
    bits_left = 0
    for byte in memoryview(data).cast("B"):
        buffer = ((buffer << 8) | byte) & 0xFFFF
        bits_left += 8
        while bits_left >= 5:
            result.append(ALPHABET[(buffer >> (bits_left - 5)) & 0x1F])
            bits_left -= 5

    if bits_left > 0:
        result.append(ALPHABET[(buffer << (5 - bits_left)) & 0x1F])

    if padding and len(result) % 8:
        result.append("=" * (8 - len(result) % 8))

    return "".join(result)


def decode(encoded: str) -> bytearray:
    """
    Decodes Base32 text into a fresh ``bytearray``.

    The caller owns the returned buffer and is expected to hand it to
    :meth:`pytotp.secure.SecureBytes.wrap` so it gets zeroed after use.

    :param encoded: Base32 text; case-insensitive, whitespace and trailing
        ``=`` padding are ignored
    :raises InvalidSecretError: on ``None`` or a character outside the alphabet
    """
    if encoded is None:
        raise InvalidSecretError("Base32 string cannot be None")

    cleaned = clean(encoded)
    result = bytearray(decoded_length(len(cleaned)))

    buffer = 0
    bits_left = 0
    index = 0
    for position, char in enumerate(cleaned):
        value = _DECODE_TABLE.get(char)
        if value is None:
            result[:] = bytes(len(result))
            raise InvalidSecretError("invalid Base32 character at position {}".format(position))
        buffer = ((buffer << 5) | value) & 0xFFFF
        bits_left += 5
        if bits_left >= 8:
            result[index] = (buffer >> (bits_left - 8)) & 0xFF
            index += 1
            bits_left -= 8

    return result


def is_valid(encoded: Optional[str]) -> bool:
    """
    Checks the alphabet without producing any output.
    """
    if not encoded:
        return False
    return all(char in _DECODE_TABLE for char in clean(encoded))
