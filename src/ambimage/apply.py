from typing import List, Optional, Sequence, Tuple
import numpy as np
import numpy.typing as npt
from PIL import Image

from ambimage.colors import RGB
from ambimage.utils import ImageLike, as_image, to_rgba

Stop = Tuple[float, RGB]

def gradient_stops(colors: Sequence[RGB]) -> List[Stop]:
    """
    One colour stop per lamp at offset i / n.

    The last stop sits at (n-1)/n, not 1.0; the tail below it holds the last
    colour, which keeps successive renders visually continuous.
    """
    n = len(colors)
    return [(i / n, tuple(int(c) for c in color)) for i, color in enumerate(colors)]

def render_gradient(
    stops: Sequence[Stop],
    width: int,
    height: int,
) -> Image.Image:
    """
    Opaque vertical linear gradient running from y=0 to y=height.

    Rows are sampled at pixel centres. Above the first stop and below the
    last one the end colours are held, as a canvas gradient does.
    """
    if not stops:
        raise ValueError("render_gradient: at least one colour stop is required")
    w, h = int(width), int(height)

    offsets = np.array([s[0] for s in stops], dtype=np.float64)
    colors  = np.array([s[1] for s in stops], dtype=np.float64)  # (n,3)

    t = (np.arange(h, dtype=np.float64) + 0.5) / max(h, 1)
    column = np.stack([np.interp(t, offsets, colors[:, k]) for k in range(3)], axis=1)  # (h,3)

    out = np.empty((h, w, 4), dtype=np.uint8)
    out[..., :3] = np.clip(np.floor(column + 0.5), 0, 255).astype(np.uint8)[:, None, :]
    out[..., 3] = 255
    return as_image(out)

def composite_mask(
    gradient: Image.Image,
    mask: Optional[Image.Image],
) -> Image.Image:
    """
    Draw the mask, scaled to the gradient's size, over the gradient.

    The mask supplies the light's silhouette: its opaque parts cover the
    gradient, its transparent parts let the glow through.
    """
    base = gradient.convert("RGBA")
    if mask is None:
        return base
    m = mask.convert("RGBA")
    if m.size != base.size:
        m = m.resize(base.size, Image.Resampling.BILINEAR)
    return Image.alpha_composite(base, m)

def _blend(canvas: npt.NDArray, layer: Image.Image, x: int, opacity: float) -> None:
    # source-over of an RGBA layer at opacity, in place
    src = to_rgba(layer).astype(np.float32)
    h = min(src.shape[0], canvas.shape[0])
    w = min(src.shape[1], canvas.shape[1] - x)
    if h <= 0 or w <= 0:
        return
    src = src[:h, :w]
    alpha = (src[..., 3:4] / 255.0) * float(np.clip(opacity, 0.0, 1.0))
    dst = canvas[:h, x:x + w, :3]
    canvas[:h, x:x + w, :3] = src[..., :3] * alpha + dst * (1.0 - alpha)

def compose_preview(
    image: ImageLike,
    left=None,                  # LightSurface or None
    right=None,                 # LightSurface or None
    *,
    gap: int = 0,
    background: RGB = (0, 0, 0),
) -> Image.Image:
    """
    Lay the lights beside the image on a flat background.

    Each light is blended at its current opacity; the image sits between
    them, gap pixels from each. Returns an RGB image.
    """
    img = to_rgba(image)
    H, W = img.shape[:2]
    lw = left.image.width if left is not None else 0
    rw = right.image.width if right is not None else 0
    lh = left.image.height if left is not None else 0
    rh = right.image.height if right is not None else 0

    out_w = lw + W + rw + (gap if left is not None else 0) + (gap if right is not None else 0)
    out_h = max(H, lh, rh)
    canvas = np.empty((out_h, out_w, 3), dtype=np.float32)
    canvas[...] = np.asarray(background, dtype=np.float32)

    x = 0
    if left is not None:
        _blend(canvas, left.image, 0, left.opacity)
        x = lw + gap
    _blend(canvas, as_image(img), x, 1.0)
    if right is not None:
        _blend(canvas, right.image, x + W + gap, right.opacity)

    return Image.fromarray(np.clip(canvas + 0.5, 0, 255).astype(np.uint8))
