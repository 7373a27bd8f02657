"""
QR codes for provisioning URIs.

Pixel rendering is delegated to ``qrcode`` (with Pillow); this module only
builds the URI, sizes the image and converts it to the usual outputs.
"""
import base64
import io
import os
from typing import Optional, Union

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError

from .config import TOTPConfig
from .exceptions import InvalidConfigError, QRCodeError
from .utils import build_uri

DEFAULT_SIZE = 250
MIN_SIZE = 100
MAX_SIZE = 1000

_FORMATS = {".jpg": "JPEG", ".jpeg": "JPEG", ".gif": "GIF"}


def _validate_size(size: int) -> None:
    if not MIN_SIZE <= size <= MAX_SIZE:
        raise InvalidConfigError("size must be between {} and {}, got {}".format(MIN_SIZE, MAX_SIZE, size))


def make_image(
    secret: str,
    name: str,
    issuer: str,
    size: int = DEFAULT_SIZE,
    config: Optional[TOTPConfig] = None,
) -> Image.Image:
    """
    Renders the provisioning URI as a square black-on-white image.

    :param size: edge length in pixels, 100 to 1000
    :returns: a Pillow image in RGB mode
    """
    _validate_size(size)
    uri = build_uri(secret, name=name, issuer=issuer, config=config)
    try:
        qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=2)
        qr.add_data(uri)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white").get_image()
        return img.convert("RGB").resize((size, size), Image.Resampling.NEAREST)
    except (ValueError, DataOverflowError) as e:
        raise QRCodeError("QR code generation failed") from e


def to_png_bytes(
    secret: str,
    name: str,
    issuer: str,
    size: int = DEFAULT_SIZE,
    config: Optional[TOTPConfig] = None,
) -> bytes:
    stream = io.BytesIO()
    try:
        make_image(secret, name, issuer, size, config).save(stream, format="PNG")
    except OSError as e:
        raise QRCodeError("QR code generation failed") from e
    return stream.getvalue()


def to_base64(
    secret: str,
    name: str,
    issuer: str,
    size: int = DEFAULT_SIZE,
    config: Optional[TOTPConfig] = None,
) -> str:
    return base64.b64encode(to_png_bytes(secret, name, issuer, size, config)).decode("ascii")


def to_data_uri(
    secret: str,
    name: str,
    issuer: str,
    size: int = DEFAULT_SIZE,
    config: Optional[TOTPConfig] = None,
) -> str:
    """A ``data:`` URI that can go straight into an ``<img src>``."""
    return "data:image/png;base64," + to_base64(secret, name, issuer, size, config)


def save(
    secret: str,
    name: str,
    issuer: str,
    path: Union[str, "os.PathLike[str]"],
    size: int = DEFAULT_SIZE,
    config: Optional[TOTPConfig] = None,
) -> None:
    """
    Writes the image to ``path``. The format follows the extension: JPEG
    and GIF are recognised, anything else is written as PNG.
    """
    image_format = _FORMATS.get(os.path.splitext(os.fspath(path))[1].lower(), "PNG")
    try:
        make_image(secret, name, issuer, size, config).save(path, format=image_format)
    except OSError as e:
        raise QRCodeError("QR code generation failed") from e
