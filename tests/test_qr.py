"""Tests for QR rendering of provisioning URIs."""

from __future__ import annotations

import base64

import pytest
from PIL import Image

from pytotp import qr
from pytotp.exceptions import InvalidConfigError, InvalidSecretError

SECRET = "JBSWY3DPEHPK3PXPJBSWY3DPEH"


def test_make_image_size():
    image = qr.make_image(SECRET, "alice@example.com", "Example", size=300)
    assert image.size == (300, 300)
    assert image.mode == "RGB"


def test_png_bytes():
    data = qr.to_png_bytes(SECRET, "alice@example.com", "Example")
    assert data.startswith(b"\x89PNG\r\n\x1a\n")


def test_data_uri():
    uri = qr.to_data_uri(SECRET, "alice@example.com", "Example")
    prefix = "data:image/png;base64,"
    assert uri.startswith(prefix)
    assert base64.b64decode(uri[len(prefix):]).startswith(b"\x89PNG")


def test_save_picks_format_from_extension(tmp_path):
    path = tmp_path / "enroll.jpg"
    qr.save(SECRET, "alice", "Example", path, size=120)
    with Image.open(path) as image:
        assert image.format == "JPEG"
        assert image.size == (120, 120)

    png_path = tmp_path / "enroll.img"
    qr.save(SECRET, "alice", "Example", png_path)
    with Image.open(png_path) as image:
        assert image.format == "PNG"


@pytest.mark.parametrize("size", [99, 1001])
def test_size_bounds(size):
    with pytest.raises(InvalidConfigError):
        qr.make_image(SECRET, "alice", "Example", size=size)


def test_invalid_uri_parameters():
    with pytest.raises(InvalidSecretError):
        qr.make_image("", "alice", "Example")


def test_qr_is_loaded_with_the_package():
    import pytotp

    assert pytotp.qr is qr
