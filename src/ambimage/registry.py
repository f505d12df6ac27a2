"""
Per-image state kept between processing runs.

Each distinct image object (by identity, not by pixel equality) gets one
ImageAssets record holding its mask state and displayed lights per side.
"""

import enum
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from PIL import Image

from ambimage.colors import RGB

logger = logging.getLogger(__name__)


class MaskState(enum.Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    READY = "ready"


@dataclass
class SideState:
    """Mask load state and displayed light for one side of an image."""

    side: str
    mask_state: MaskState = MaskState.NOT_LOADED
    mask: Optional[Image.Image] = None
    surface: Optional[Any] = None  # LightSurface currently displayed
    pending: bool = False
    pending_colors: Optional[List[RGB]] = None

    def begin_load(self, colors: List[RGB]) -> None:
        self.mask_state = MaskState.LOADING
        self.pending = True
        self.pending_colors = list(colors)

    def defer(self, colors: List[RGB]) -> None:
        # request arrived mid-load: only the newest colours survive
        self.pending_colors = list(colors)

    def complete_load(self, mask: Image.Image) -> Optional[List[RGB]]:
        """
        Mark the mask ready. Returns the colours for the one deferred render,
        or None if nothing was waiting.
        """
        self.mask = mask
        self.mask_state = MaskState.READY
        colors = self.pending_colors if self.pending else None
        self.pending = False
        self.pending_colors = None
        return colors

    def fail_load(self) -> None:
        self.mask_state = MaskState.NOT_LOADED
        self.pending = False
        self.pending_colors = None


@dataclass
class ImageAssets:
    image_id: str
    image: Any
    sides: Dict[str, SideState] = field(
        default_factory=lambda: {"left": SideState("left"), "right": SideState("right")}
    )
    attached: List[Any] = field(default_factory=list)  # LightSurfaces on display

    def side(self, side: str) -> SideState:
        try:
            return self.sides[side]
        except KeyError:
            raise ValueError(f"Unknown side {side!r}, expected 'left' or 'right'") from None


class ImageRegistry:
    """
    Owns the identifier -> ImageAssets map and the identity index used to
    find an image's identifier in O(1).
    """

    def __init__(self, prefix: str = "ambi-") -> None:
        self._prefix = prefix
        self._counter = itertools.count()
        self._assets: Dict[str, ImageAssets] = {}
        self._by_identity: Dict[int, str] = {}
        self.processed: List[str] = []

    def next_id(self) -> str:
        return f"{self._prefix}{next(self._counter)}"

    def lookup(self, image: Any) -> Optional[str]:
        return self._by_identity.get(id(image))

    def prepare(self, image: Any) -> str:
        """Identifier for image, creating its assets record on first sight."""
        image_id = self.lookup(image)
        if image_id is None:
            image_id = self.next_id()
            # assets keep a reference to the image, so id(image) stays unique
            self._assets[image_id] = ImageAssets(image_id=image_id, image=image)
            self._by_identity[id(image)] = image_id
            logger.info(f"Registered image {image_id}")
        return image_id

    def assets(self, image_id: str) -> ImageAssets:
        try:
            return self._assets[image_id]
        except KeyError:
            raise KeyError(f"Image {image_id} not registered") from None

    def record_processed(self, image_id: str) -> None:
        self.processed.append(image_id)

    def __contains__(self, image_id: object) -> bool:
        return image_id in self._assets

    def __len__(self) -> int:
        return len(self._assets)
