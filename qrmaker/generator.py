"""QR symbol generation: the plain QR encoder behind overlay mode."""

from enum import Enum
from typing import Protocol

import numpy as np
import qrcode
import qrcode.constants
from PIL import Image
from qrcode.exceptions import DataOverflowError

from qrmaker.errors import EncodingError
from qrmaker.logging import audit, get_logger, trace

log = get_logger("generator")

# Quiet zone width in modules, as required by ISO/IEC 18004
QUIET_ZONE = 4


class ECCLevel(Enum):
    L = qrcode.constants.ERROR_CORRECT_L  # 7%
    M = qrcode.constants.ERROR_CORRECT_M  # 15%
    Q = qrcode.constants.ERROR_CORRECT_Q  # 25%
    H = qrcode.constants.ERROR_CORRECT_H  # 30%


class QRSymbolEncoder(Protocol):
    """Anything that can render a payload as a square QR raster."""

    def render(self, text: str, size: int, ecc: str = "H") -> Image.Image:
        ...


class QRCodeSymbolEncoder:
    """QR symbol encoder backed by the ``qrcode`` package.

    The symbol (with its quiet zone) is drawn at a whole number of pixels per
    module and centered on a white ``size x size`` canvas, so the returned
    image always has exactly the requested dimensions.
    """

    def __init__(self, border: int = QUIET_ZONE):
        self.border = border

    @trace
    def render(self, text: str, size: int, ecc: str = "H") -> Image.Image:
        level = ECCLevel[ecc.upper()]
        qr = qrcode.QRCode(
            version=None,
            error_correction=level.value,
            box_size=1,
            border=self.border,
        )
        qr.add_data(text)
        try:
            qr.make(fit=True)
        except DataOverflowError as exc:
            raise EncodingError(
                f"payload of {len(text)} characters does not fit a QR code at "
                f"error-correction level {level.name}"
            ) from exc

        matrix = np.array(qr.get_matrix(), dtype=bool)
        modules = matrix.shape[0]
        px_per_module = size // modules
        if px_per_module < 1:
            raise EncodingError(
                f"QR version {qr.version} needs at least {modules}px, "
                f"got size={size}; use a larger --size"
            )

        block = np.repeat(np.repeat(matrix, px_per_module, axis=0), px_per_module, axis=1)
        canvas = np.full((size, size), 255, dtype=np.uint8)
        offset = (size - block.shape[0]) // 2
        canvas[offset:offset + block.shape[0], offset:offset + block.shape[1]] = np.where(block, 0, 255)

        audit("qr.generated", logger=log,
              data=text[:80], version=qr.version, ecc=level.name,
              modules=f"{modules}x{modules}", px_per_module=px_per_module,
              image_px=f"{size}x{size}")
        return Image.fromarray(canvas).convert("RGBA")
