import pytest

from qrmaker.embed import EmbedParams, capacity_hint, embed_image, resolve_seed
from qrmaker.errors import CapacityError

URL = "https://example.com"


class RecordingEncoder:
    """Stand-in artistic encoder returning a canned result."""

    def __init__(self, result=b"\x89PNG fake"):
        self.result = result
        self.calls = []

    def encode(self, *args):
        self.calls.append(args)
        return self.result


class TestResolveSeed:
    def test_zero_uses_clock(self):
        assert resolve_seed(0, clock=lambda: 123456789) == 123456789

    @pytest.mark.parametrize("seed", [1, 42, -7, 2**62])
    def test_explicit_seed_kept(self, seed):
        assert resolve_seed(seed, clock=lambda: 0xDEAD) == seed


class TestEmbedImage:
    def test_marshals_all_parameters_in_order(self):
        encoder = RecordingEncoder()
        params = EmbedParams(seed=9, version=7, scale=5, mask=3, dx=1, dy=2,
                             rand_control=True, dither=True, only_data=True, save_control=True)
        out = embed_image(URL, b"img", params, encoder=encoder)
        assert out == b"\x89PNG fake"
        assert encoder.calls == [(URL, b"img", 9, 7, 5, 3, 1, 2, True, True, True, True)]

    def test_zero_seed_replaced_from_clock(self):
        encoder = RecordingEncoder()
        embed_image(URL, b"img", EmbedParams(seed=0), encoder=encoder, clock=lambda: 555)
        assert encoder.calls[0][2] == 555

    @pytest.mark.parametrize("result", [None, b""])
    def test_empty_result_is_capacity_error(self, result):
        with pytest.raises(CapacityError) as excinfo:
            embed_image(URL, b"img", EmbedParams(seed=1, version=3), encoder=RecordingEncoder(result))
        assert "--version 4" in excinfo.value.hint

    def test_real_encoder_reproducible_with_explicit_seed(self, gradient_bytes):
        params = EmbedParams(seed=2024, rand_control=True, dither=True)
        assert embed_image(URL, gradient_bytes, params) == embed_image(URL, gradient_bytes, params)

    def test_real_encoder_payload_too_long_for_version_1(self, gradient_bytes):
        long_url = "https://example.com/a/rather/long/path?with=query&and=more"
        with pytest.raises(CapacityError) as excinfo:
            embed_image(long_url, gradient_bytes, EmbedParams(seed=1, version=1))
        assert "version 1" in str(excinfo.value)
        assert "--version 2" in excinfo.value.hint


def test_capacity_hint_at_max_version():
    assert "shorten" in capacity_hint(8)
    assert "--version" not in capacity_hint(8)
