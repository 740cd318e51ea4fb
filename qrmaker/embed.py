"""Embed mode: hand invocation parameters to the artistic encoder."""

import time
from dataclasses import asdict, dataclass
from typing import Callable

from qrmaker.art import ArtisticEncoder, QArtEncoder
from qrmaker.errors import CapacityError
from qrmaker.logging import audit, get_logger, trace

log = get_logger("embed")

MIN_VERSION = 1
MAX_VERSION = 8


@dataclass(frozen=True)
class EmbedParams:
    """Everything the artistic encoder needs besides payload and image."""

    seed: int = 0
    version: int = 6
    scale: int = 8
    mask: int = 2
    dx: int = 4
    dy: int = 4
    rand_control: bool = False
    dither: bool = False
    only_data: bool = False
    save_control: bool = False


def resolve_seed(seed: int, clock: Callable[[], int] = time.time_ns) -> int:
    """0 means "pick one": derive a seed from ``clock``. Anything else is kept."""
    if seed == 0:
        return clock()
    return seed


def capacity_hint(version: int) -> str:
    if version < MAX_VERSION:
        return (f"Try a higher version (--version {version + 1} up to {MAX_VERSION}) "
                f"or a shorter URL")
    return f"Version {MAX_VERSION} is the largest supported; shorten the URL"


@trace
def embed_image(
    text: str,
    image_bytes: bytes,
    params: EmbedParams,
    encoder: ArtisticEncoder | None = None,
    clock: Callable[[], int] = time.time_ns,
) -> bytes:
    """Run the artistic encoder once and return its PNG bytes unchanged.

    Raises:
        CapacityError: the encoder produced nothing, which means the payload
            does not fit ``params.version``.
        DecodeError: ``image_bytes`` is not a readable image.
    """
    encoder = encoder or QArtEncoder()
    seed = resolve_seed(params.seed, clock)

    data = encoder.encode(
        text,
        image_bytes,
        seed,
        params.version,
        params.scale,
        params.mask,
        params.dx,
        params.dy,
        params.rand_control,
        params.dither,
        params.only_data,
        params.save_control,
    )
    if not data:
        raise CapacityError(
            f"failed to embed {len(text)} characters at version {params.version}",
            hint=capacity_hint(params.version),
        )

    audit("embed.done", logger=log, **{**asdict(params), "seed": seed}, bytes=len(data))
    return data
