# masks.py (3.8/3.9-friendly)
import logging
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import numpy as np
import numpy.typing as npt
from PIL import Image

from ambimage.utils import as_image

logger = logging.getLogger(__name__)

_RULE_RE = re.compile(r"\.([A-Za-z0-9_-]+)\s*\{([^}]*)\}")
_URL_RE = re.compile(r"^url\(['\"]?|['\"]?\)$")


def mask_class(side: str) -> str:
    """Style class that carries the mask for a side."""
    if side not in ("left", "right"):
        raise ValueError("mask_class: side must be 'left' or 'right', got %r" % (side,))
    return "ambilight-" + side


def strip_url(value: str) -> str:
    """url('masks/left.png') -> masks/left.png"""
    return _URL_RE.sub("", value.strip())


class StyleSheet:
    """
    Class-name -> properties lookup standing in for computed styles.

    Only the simplest rule form is understood: `.name { prop: value; }`.
    Later rules override earlier ones property by property.
    """

    def __init__(self, rules: Optional[Mapping[str, Mapping[str, str]]] = None) -> None:
        self._rules: Dict[str, Dict[str, str]] = {}
        for name, props in (rules or {}).items():
            self._rules[name] = {k.strip().lower(): str(v).strip() for k, v in props.items()}

    @classmethod
    def from_css(cls, text: str) -> "StyleSheet":
        rules: Dict[str, Dict[str, str]] = {}
        for name, body in _RULE_RE.findall(text):
            props = rules.setdefault(name, {})
            for decl in body.split(";"):
                if ":" not in decl:
                    continue
                key, value = decl.split(":", 1)
                props[key.strip().lower()] = value.strip()
        return cls(rules)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StyleSheet":
        return cls.from_css(Path(path).read_text(encoding="utf-8"))

    def get(self, class_name: str, prop: str) -> Optional[str]:
        return self._rules.get(class_name, {}).get(prop.lower())

    def background_image(self, class_name: str) -> Optional[str]:
        return self.get(class_name, "background-image")


def resolve_mask_url(stylesheet: StyleSheet, side: str) -> Optional[str]:
    """Mask location for a side, or None when the style names no image."""
    value = stylesheet.background_image(mask_class(side))
    if not value or value.strip().lower() == "none":
        return None
    return strip_url(value)


def load_mask(path: Union[str, Path]) -> Image.Image:
    """Open and fully decode a mask image as RGBA."""
    with Image.open(path) as im:
        im.load()
        mask = im.convert("RGBA")
    logger.debug(f"Loaded mask {path}: {mask.size}")
    return mask


def glow_intensity(
    width: int,
    height: int,
    side: str,
    core_radius: float = 0.15,      # fraction of width, flat full-intensity core
    half_life_radius: float = 0.35, # fraction of width past the core where intensity halves
    power: float = 2.0,             # tail steepness: 1=softer/longer, 2≈gaussian-ish, >2 sharper
    dtype = np.float32,
) -> npt.NDArray:
    """
    (H,W) glow intensity in [0,1] radiating from the edge facing the image.

    Flat-top profile with exact half-life from the core edge:
        I = 1                                          for r_eff <= R0
            2^{-((r_eff - R0)/H)^power}                otherwise
    The ellipse is stretched vertically so the glow spans the full height.
    """
    w, h = int(width), int(height)
    if side == "left":
        cx = float(w)       # image sits to the right of the left light
    elif side == "right":
        cx = 0.0
    else:
        raise ValueError("glow_intensity: side must be 'left' or 'right', got %r" % (side,))
    cy = h / 2.0

    yy, xx = np.mgrid[0:h, 0:w].astype(np.float32)
    dx = (xx + 0.5) - cx
    dy = (yy + 0.5) - cy

    stretch = max(h / 2.0, 1.0) / max(float(w), 1.0)
    r_eff = np.sqrt(dx ** 2 + (dy / stretch) ** 2)

    R0 = float(core_radius) * w
    H  = max(float(half_life_radius) * w, 1e-6)
    p  = max(float(power), 1e-6)

    dr = np.maximum(0.0, r_eff - R0)
    I = 2.0 ** (-(dr / H) ** p)
    I[r_eff <= R0] = 1.0
    return I.astype(dtype, copy=False)


def generate_mask(width: int, height: int, side: str, **kwargs) -> Image.Image:
    """
    Procedural mask for a side: black, opaque where there is no glow.

    Used when the style sheet names no mask image. kwargs go to
    glow_intensity.
    """
    I = glow_intensity(width, height, side, **kwargs)
    out = np.zeros(I.shape + (4,), dtype=np.uint8)
    out[..., 3] = np.clip(np.round(255.0 * (1.0 - I)), 0, 255).astype(np.uint8)
    return as_image(out)
