"""Scan verification: decode a generated QR code with pyzbar and OpenCV."""

import time
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image
from pyzbar.pyzbar import decode as pyzbar_decode

from qrmaker.logging import audit, get_logger, trace

log = get_logger("verify")


@dataclass
class ScanResult:
    """Result of a single scan attempt."""
    success: bool
    decoded_data: str | None = None
    decode_time_ms: float = 0.0
    decoder: str = ""
    error: str | None = None


def _scan(decoder: str, image: Image.Image, fn) -> ScanResult:
    start = time.perf_counter()
    try:
        data = fn(image)
    except Exception as e:  # decoder backends raise assorted native errors
        elapsed = (time.perf_counter() - start) * 1000
        audit("scan.error", logger=log, decoder=decoder, error=str(e), time_ms=round(elapsed, 1))
        return ScanResult(success=False, decode_time_ms=elapsed, decoder=decoder, error=str(e))

    elapsed = (time.perf_counter() - start) * 1000
    if data:
        audit("scan.verified", logger=log, decoder=decoder, success=True,
              time_ms=round(elapsed, 1), data=data[:80])
        return ScanResult(success=True, decoded_data=data, decode_time_ms=elapsed, decoder=decoder)
    audit("scan.verified", logger=log, decoder=decoder, success=False,
          time_ms=round(elapsed, 1), error="No QR code detected")
    return ScanResult(success=False, decode_time_ms=elapsed, decoder=decoder, error="No QR code detected")


def _decode_pyzbar(image: Image.Image) -> str | None:
    results = pyzbar_decode(image.convert("L"))
    if not results:
        return None
    return results[0].data.decode("utf-8", errors="replace")


def _decode_opencv(image: Image.Image) -> str | None:
    gray = cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2GRAY)
    data, _, _ = cv2.QRCodeDetector().detectAndDecode(gray)
    return data or None


@trace
def scan_pyzbar(image: Image.Image) -> ScanResult:
    """Scan a QR code using pyzbar (wraps ZBar)."""
    return _scan("pyzbar/zbar", image, _decode_pyzbar)


@trace
def scan_opencv(image: Image.Image) -> ScanResult:
    """Scan a QR code using OpenCV's built-in QR detector."""
    return _scan("opencv", image, _decode_opencv)


@trace
def verify(image: Image.Image, expected_data: str | None = None, prefix: bool = False) -> list[ScanResult]:
    """Run all available decoders on an image.

    Args:
        image: PIL Image containing a QR code.
        expected_data: If provided, a decode returning different text counts as a failure.
        prefix: Only require the decoded text to start with ``expected_data``
            (QArt codes carry a ``#<digits>`` fragment after the URL).

    Returns:
        One ScanResult per decoder.
    """
    results = [scan_pyzbar(image), scan_opencv(image)]
    if expected_data is not None:
        for r in results:
            if not r.success:
                continue
            matched = r.decoded_data.startswith(expected_data) if prefix else r.decoded_data == expected_data
            if not matched:
                r.success = False
                r.error = f"Data mismatch: expected {expected_data[:40]!r}, got {r.decoded_data[:40]!r}"
    return results
