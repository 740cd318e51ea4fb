"""Overlay mode: composite a logo centered on a high-ECC QR code."""

import io
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from qrmaker.errors import DecodeError, FileIOError
from qrmaker.generator import QRCodeSymbolEncoder, QRSymbolEncoder
from qrmaker.logging import audit, get_logger, trace
from qrmaker.resample import resize_nearest

log = get_logger("overlay")

MIN_SIZE = 128
MIN_OVERLAY_PCT = 10
MAX_OVERLAY_PCT = 40

# The logo occludes a contiguous block of modules; only level H survives that.
OVERLAY_ECC = "H"


@dataclass(frozen=True)
class OverlayLayout:
    """Clamped output size and the centered square the logo occupies."""

    size: int
    overlay_pct: int

    @classmethod
    def from_request(cls, size: int, overlay_pct: int) -> "OverlayLayout":
        clamped_pct = min(max(overlay_pct, MIN_OVERLAY_PCT), MAX_OVERLAY_PCT)
        clamped_size = max(size, MIN_SIZE)
        if clamped_pct != overlay_pct:
            log.warning("overlay size %d%% clamped to %d%%", overlay_pct, clamped_pct)
        if clamped_size != size:
            log.warning("output size %dpx raised to %dpx", size, clamped_size)
        return cls(size=clamped_size, overlay_pct=clamped_pct)

    @property
    def overlay_px(self) -> int:
        return self.size * self.overlay_pct // 100

    @property
    def offset(self) -> int:
        return (self.size - self.overlay_px) // 2

    @property
    def box(self) -> tuple[int, int, int, int]:
        """(left, top, right, bottom) of the overlay region."""
        return (self.offset, self.offset, self.offset + self.overlay_px, self.offset + self.overlay_px)


@trace
def load_image(path: str | Path) -> Image.Image:
    """Decode an image file into RGBA, detecting the format from its content.

    The file handle is closed before returning, on success and on failure.
    """
    try:
        with open(path, "rb") as fh:
            with Image.open(fh) as img:
                return img.convert("RGBA")
    except UnidentifiedImageError as exc:
        raise DecodeError(f"cannot identify image format of {path}") from exc
    except Image.DecompressionBombError as exc:
        raise DecodeError(f"refusing to decode image {path}: {exc}") from exc
    except OSError as exc:
        # Pillow reports truncated/corrupt streams as OSError
        if isinstance(exc, (FileNotFoundError, PermissionError, IsADirectoryError)):
            raise FileIOError(f"cannot open overlay image {path}: {exc.strerror}") from exc
        raise DecodeError(f"cannot decode image {path}: {exc}") from exc


def composite(base: Image.Image, logo: Image.Image, layout: OverlayLayout) -> Image.Image:
    """Source-over ``logo`` onto a copy of ``base`` inside ``layout.box``."""
    result = base.convert("RGBA")  # always a copy, fully opaque
    resized = resize_nearest(logo.convert("RGBA"), (layout.overlay_px, layout.overlay_px))
    if layout.overlay_px > 0:
        result.alpha_composite(resized, dest=(layout.offset, layout.offset))
    return result


def to_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def compose_overlay(
    text: str,
    image_path: str | Path,
    size: int = 512,
    overlay_pct: int = 25,
    encoder: QRSymbolEncoder | None = None,
) -> bytes:
    """Generate an overlay-mode QR code and return it as PNG bytes.

    Args:
        text: Payload to encode.
        image_path: Logo image (PNG, JPEG, GIF, ... detected from content).
        size: Output width/height in pixels; raised to at least 128.
        overlay_pct: Logo width as a percentage of ``size``; clamped to 10-40.
        encoder: QR symbol encoder; defaults to the ``qrcode``-backed one.

    Raises:
        EncodingError: the payload cannot be encoded at level H.
        DecodeError: the logo is not a readable image.
        FileIOError: the logo file cannot be opened.
    """
    return render_overlay(text, image_path, OverlayLayout.from_request(size, overlay_pct), encoder)


@trace
def render_overlay(
    text: str,
    image_path: str | Path,
    layout: OverlayLayout,
    encoder: QRSymbolEncoder | None = None,
) -> bytes:
    """Overlay-mode QR code for an already clamped ``layout``, as PNG bytes."""
    encoder = encoder or QRCodeSymbolEncoder()

    symbol = encoder.render(text, layout.size, ecc=OVERLAY_ECC)
    logo = load_image(image_path)
    result = composite(symbol, logo, layout)

    audit("overlay.composited", logger=log,
          data=text[:80], size=f"{layout.size}x{layout.size}",
          overlay_pct=layout.overlay_pct, overlay_px=layout.overlay_px,
          offset=layout.offset, logo_src=f"{logo.size[0]}x{logo.size[1]}")
    return to_png(result)
