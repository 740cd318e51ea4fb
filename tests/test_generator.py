import numpy as np
import pytest

from qrmaker.errors import EncodingError
from qrmaker.generator import QRCodeSymbolEncoder

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)


class TestQRCodeSymbolEncoder:
    @pytest.mark.parametrize("size", [128, 333, 512])
    def test_exact_size_rgba(self, size):
        img = QRCodeSymbolEncoder().render("https://example.com", size)
        assert img.size == (size, size)
        assert img.mode == "RGBA"

    def test_module_layout(self):
        # "HELLO" fits version 1 at level H: 21 modules + 2*4 quiet zone = 29,
        # so a 290px canvas gives exactly 10px per module with no padding.
        img = np.asarray(QRCodeSymbolEncoder().render("HELLO", 290))
        assert tuple(img[5, 5]) == WHITE        # quiet zone
        assert tuple(img[45, 45]) == BLACK      # finder outer ring
        assert tuple(img[55, 55]) == WHITE      # finder white ring
        assert tuple(img[75, 75]) == BLACK      # finder core
        assert tuple(img[45, 245]) == BLACK     # top-right finder

    def test_only_black_and_white(self):
        img = np.asarray(QRCodeSymbolEncoder().render("https://example.com/a", 200))
        assert set(np.unique(img[..., 0])) <= {0, 255}
        assert (img[..., 3] == 255).all()

    def test_payload_too_long(self):
        with pytest.raises(EncodingError, match="level H"):
            QRCodeSymbolEncoder().render("x" * 3000, 512)

    def test_canvas_too_small_for_symbol(self):
        with pytest.raises(EncodingError, match="--size"):
            QRCodeSymbolEncoder().render("x" * 1000, 128)
