from typing import Tuple, Union
import numpy as np
import numpy.typing as npt
from PIL import Image

ImageLike = Union[Image.Image, npt.NDArray]

# --- RGBA conversion ---

def to_rgba(img: ImageLike) -> npt.NDArray:
    """
    Return an (H,W,4) uint8 RGBA copy of a Pillow image or array.
    (H,W)        -> gray, opaque
    (H,W,1)      -> squeeze, opaque
    (H,W,3) RGB  -> opaque alpha added
    (H,W,4) RGBA -> copied as-is
    Integer arrays are taken as 0..255, float arrays as 0..1 (scaled by 255).
    """
    if isinstance(img, Image.Image):
        return np.array(img.convert("RGBA"), dtype=np.uint8)

    arr = np.asarray(img)
    if arr.ndim == 3 and arr.shape[2] == 1:
        arr = arr[..., 0]
    if arr.ndim == 2:
        arr = np.repeat(arr[..., None], 3, axis=2)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError("to_rgba: expected (H,W), (H,W,1), (H,W,3) or (H,W,4), got %r" % (arr.shape,))

    if np.issubdtype(arr.dtype, np.floating):
        arr = np.round(np.clip(arr, 0.0, 1.0) * 255.0)
    else:
        arr = np.clip(arr, 0, 255)
    arr = arr.astype(np.uint8)

    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    return arr.copy()


def as_image(arr: npt.NDArray) -> Image.Image:
    """Wrap an (H,W,4) uint8 array as a Pillow RGBA image."""
    return Image.fromarray(np.ascontiguousarray(arr, dtype=np.uint8))


def image_size(img: ImageLike) -> Tuple[int, int]:
    """(width, height) of a Pillow image or (H,W[,C]) array."""
    if isinstance(img, Image.Image):
        return img.size
    shape = np.shape(img)
    return int(shape[1]), int(shape[0])
