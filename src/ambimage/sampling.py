import logging
import math
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

import numpy as np
import numpy.typing as npt

from ambimage.colors import RGB
from ambimage.config import Settings
from ambimage.utils import ImageLike, to_rgba

logger = logging.getLogger(__name__)

SIDES = ("left", "right")


@dataclass(frozen=True)
class PixelRegion:
    """
    Rectangular raw RGBA sample of an image.

    pixels is a (width*height, 4) uint8 array in row-major order.
    """
    width: int
    height: int
    pixels: npt.NDArray

    @classmethod
    def from_array(cls, arr: npt.NDArray) -> "PixelRegion":
        """Build from an (H,W,4) array."""
        h, w = arr.shape[:2]
        flat = np.ascontiguousarray(arr, dtype=np.uint8).reshape(h * w, 4)
        flat.flags.writeable = False
        return cls(width=int(w), height=int(h), pixels=flat)


class EdgeColors(NamedTuple):
    left: List[RGB]
    right: List[RGB]


class SnapshotBuffer:
    """
    Intermediate drawing surface the source image is copied into before
    sampling. One buffer is reused across calls; every draw replaces both
    its dimensions and its pixels.
    """

    def __init__(self) -> None:
        self.width = 0
        self.height = 0
        self._data = np.zeros((0, 0, 4), dtype=np.uint8)

    def draw(self, image: ImageLike) -> None:
        data = to_rgba(image)
        self.height, self.width = data.shape[:2]
        self._data = data

    def get_region(self, x: int, y: int, width: int, height: int) -> PixelRegion:
        """
        Copy out a rectangle, clamped to the buffer bounds.

        An origin left of/above the buffer is moved to 0 and the size
        shrinks to what actually lies inside.
        """
        x0 = min(max(int(x), 0), self.width)
        y0 = min(max(int(y), 0), self.height)
        x1 = min(max(int(x) + int(width), x0), self.width)
        y1 = min(max(int(y) + int(height), y0), self.height)
        return PixelRegion.from_array(self._data[y0:y1, x0:x1].copy())


def average_region_bands(region: PixelRegion, band_count: int) -> List[RGB]:
    """
    Reduce a region to band_count mean colours, top to bottom.

    The pixel buffer is cut into contiguous chunks of
    width * ceil(height / band_count) pixels; the last chunk ends at the
    buffer end. Means are per channel over the chunk's pixel count,
    rounded half-up. Alpha is ignored.

    A chunk starting past the end of the buffer (ceil can leave trailing
    bands empty) repeats the previous band's colour, or black if the region
    holds no pixels at all.
    """
    if band_count < 1:
        raise ValueError("average_region_bands: band_count must be >= 1")

    rgb = region.pixels[:, :3].astype(np.float64, copy=False)
    total = rgb.shape[0]
    block_height = math.ceil(region.height / band_count) if region.height else 0
    chunk = region.width * block_height

    result: List[RGB] = []
    for i in range(band_count):
        start = i * chunk
        stop = min((i + 1) * chunk, total)
        if stop <= start:
            result.append(result[-1] if result else (0, 0, 0))
            continue
        mean = np.floor(rgb[start:stop].mean(axis=0) + 0.5).astype(int)
        result.append((int(mean[0]), int(mean[1]), int(mean[2])))
    return result


def edge_origin(side: str, image_width: int, block_size: int) -> int:
    """x of the strip for a side; the right strip never starts left of 0."""
    if side == "left":
        return 0
    if side == "right":
        return max(0, image_width - block_size)
    raise ValueError("edge_origin: side must be 'left' or 'right', got %r" % (side,))


def sample_edges(
    image: ImageLike,
    settings: Settings,
    buffer: Optional[SnapshotBuffer] = None,
) -> EdgeColors:
    """
    Average colours along the left and right borders of an image.

    The image is snapshotted into buffer on every call (a fresh buffer if
    none is given), then a block_size-wide, full-height strip is taken from
    each side and reduced to settings.lamps bands.
    """
    if buffer is None:
        buffer = SnapshotBuffer()
    buffer.draw(image)

    w, h = buffer.width, buffer.height
    if settings.block_size > w:
        logger.debug(f"Edge strip {settings.block_size}px wider than image ({w}px), clamping")

    colors = {}
    for side in SIDES:
        x = edge_origin(side, w, settings.block_size)
        region = buffer.get_region(x, 0, settings.block_size, h)
        colors[side] = average_region_bands(region, settings.lamps)

    return EdgeColors(left=colors["left"], right=colors["right"])
