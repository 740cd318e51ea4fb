"""Embed mode encoder: QArt codes via ``pyqart``.

pyqart picks data (and, unless ``only_data``, error-correction) bits so the
symbol's modules approach a binarized copy of the source image.  It reads
randomness from the global ``random`` module and reports progress with
``print``; both are contained here.
"""

import contextlib
import io
import random
from typing import Protocol

from PIL import Image, UnidentifiedImageError
from pyqart import QArtist, QrImagePrinter
from pyqart.art.source import QArtSourceImage
from pyqart.qr import QrPainterException, QrSpaceNotEnoughException

from qrmaker.errors import DecodeError
from qrmaker.generator import QUIET_ZONE
from qrmaker.logging import audit, get_logger, trace

log = get_logger("art")

# QArt codes are built at the lowest error-correction level (L)
QART_LEVEL = 0


class ArtisticEncoder(Protocol):
    """Call contract of an image-steered QR encoder.

    Returns PNG bytes, or ``None`` when the payload does not fit the
    requested version.
    """

    def encode(
        self,
        text: str,
        image_bytes: bytes,
        seed: int,
        version: int,
        scale: int,
        mask: int,
        dx: int,
        dy: int,
        rand_control: bool,
        dither: bool,
        only_data: bool,
        save_control: bool,
    ) -> bytes | None:
        ...


def decode_source(image_bytes: bytes) -> Image.Image:
    """Decode raw image bytes to a square grayscale image.

    Transparency is flattened onto white and the shorter side is padded
    with white, centered, so the whole picture reaches the symbol.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            rgba = img.convert("RGBA")
    except UnidentifiedImageError as exc:
        raise DecodeError("cannot identify source image format") from exc
    except Image.DecompressionBombError as exc:
        raise DecodeError(f"refusing to decode source image: {exc}") from exc
    except OSError as exc:
        raise DecodeError(f"cannot decode source image: {exc}") from exc

    side = max(rgba.size)
    square = Image.new("RGBA", (side, side), (255, 255, 255, 255))
    square.alpha_composite(rgba, dest=((side - rgba.width) // 2, (side - rgba.height) // 2))
    return square.convert("L")


def _window(offset: int) -> int | None:
    """pyqart wants a positive sampling half-width; anything else means its default."""
    return offset if offset > 0 else None


@contextlib.contextmanager
def _seeded(seed: int):
    """Seed the global ``random`` module for the block, then restore its state."""
    state = random.getstate()
    random.seed(seed)
    try:
        yield
    finally:
        random.setstate(state)


@contextlib.contextmanager
def _quiet():
    """Capture pyqart's progress output and forward it to the debug log."""
    buf = io.StringIO()
    try:
        with contextlib.redirect_stdout(buf):
            yield
    finally:
        for line in buf.getvalue().splitlines():
            if line.strip():
                log.debug("pyqart: %s", line.strip())


def _print_control(artist: QArtist, scale: int, border: int, dither: bool) -> Image.Image:
    """The binarized target the encoder steered toward, framed like the symbol."""
    args = artist.get_params()[0]
    target = artist.source.to_image(args, dither, artist.dy, artist.dx).convert("RGB")
    side = target.width * scale
    framed = Image.new("RGB", (side + 2 * border, side + 2 * border), (255, 255, 255))
    framed.paste(target.resize((side, side), Image.NEAREST), (border, border))
    return framed


class QArtEncoder:
    """Artistic encoder backed by pyqart's ``QArtist``."""

    def __init__(self, border_modules: int = QUIET_ZONE, level: int = QART_LEVEL):
        self.border_modules = border_modules
        self.level = level

    @trace
    def encode(
        self,
        text: str,
        image_bytes: bytes,
        seed: int,
        version: int,
        scale: int,
        mask: int,
        dx: int,
        dy: int,
        rand_control: bool,
        dither: bool,
        only_data: bool,
        save_control: bool,
    ) -> bytes | None:
        if scale < 1:
            raise ValueError(f"scale must be positive, got {scale}")

        gray = decode_source(image_bytes)
        png = io.BytesIO()
        gray.save(png, format="PNG")
        source = QArtSourceImage(io.BytesIO(png.getvalue()))
        border = self.border_modules * scale

        with _seeded(seed), _quiet():
            try:
                artist = QArtist(
                    text, source,
                    version=version, mask=mask, level=self.level,
                    dither=bool(dither), only_data=bool(only_data), rand=bool(rand_control),
                    dy=_window(dy), dx=_window(dx),
                )
            except (QrPainterException, QrSpaceNotEnoughException) as exc:
                audit("art.capacity_exceeded", logger=log,
                      data=text[:80], length=len(text), version=version, error=str(exc))
                return None

            if save_control:
                out = _print_control(artist, scale, border, bool(dither))
            else:
                out = QrImagePrinter.print(artist, point_width=scale, border_width=border)

        buf = io.BytesIO()
        out.save(buf, format="PNG")

        audit("art.encoded", logger=log,
              data=text[:80], version=version, mask=mask, seed=seed,
              dither=dither, rand=rand_control, only_data=only_data,
              control=save_control, image_px=f"{out.size[0]}x{out.size[1]}")
        return buf.getvalue()
