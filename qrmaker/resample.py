"""Nearest-neighbour raster scaling.

Pillow's own ``Image.NEAREST`` samples pixel centres, which shifts the picked
source pixel by half a step.  Here the source index is the truncated
``dst * src_len // dst_len`` so every destination pixel maps onto the
top-left-aligned source grid, and repeated upscales stay blocky.
"""

import numpy as np
from PIL import Image


def nearest_indices(src_len: int, dst_len: int) -> np.ndarray:
    """Source index for each of ``dst_len`` destination positions."""
    return (np.arange(dst_len, dtype=np.int64) * src_len) // dst_len


def resize_nearest(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    """Return a new ``size`` image sampled from *image* without interpolation.

    All channels, alpha included, are copied verbatim. A zero width or height
    gives an empty image of that size. The source is never modified.
    """
    width, height = size
    if width <= 0 or height <= 0:
        return Image.new(image.mode, (max(width, 0), max(height, 0)))

    src = np.asarray(image)
    src_h, src_w = src.shape[:2]
    xs = nearest_indices(src_w, width)
    ys = nearest_indices(src_h, height)
    out = src[ys[:, None], xs[None, :]]
    return Image.fromarray(np.ascontiguousarray(out))
