"""Shared fixtures: small logo/photo files and a clean qrmaker logger per test."""

import io
import logging
import struct
import zlib

import numpy as np
import pytest
from PIL import Image

RED = (255, 0, 0, 255)


@pytest.fixture(autouse=True)
def reset_qrmaker_logging():
    """setup_logging() detaches the qrmaker logger; undo that between tests."""
    yield
    root = logging.getLogger("qrmaker")
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture
def red_logo(tmp_path):
    """Opaque 64x64 red PNG."""
    path = tmp_path / "logo.png"
    Image.new("RGBA", (64, 64), RED).save(path)
    return path


@pytest.fixture
def gradient_image() -> Image.Image:
    """Horizontal black-to-white ramp, 120x80."""
    ramp = np.tile(np.linspace(0, 255, 120, dtype=np.uint8), (80, 1))
    return Image.fromarray(ramp).convert("RGB")


@pytest.fixture
def gradient_bytes(gradient_image) -> bytes:
    buf = io.BytesIO()
    gradient_image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def gradient_file(tmp_path, gradient_image):
    path = tmp_path / "photo.jpg"
    gradient_image.save(path, format="JPEG")
    return path


@pytest.fixture
def corrupt_file(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n this is not really a png")
    return path


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)


@pytest.fixture
def bomb_file(tmp_path):
    """Tiny PNG whose header claims 60000x60000 pixels."""
    path = tmp_path / "bomb.png"
    path.write_bytes(
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", struct.pack(">IIBBBBB", 60000, 60000, 8, 0, 0, 0, 0))
        + _png_chunk(b"IDAT", zlib.compress(b""))
        + _png_chunk(b"IEND", b"")
    )
    return path
