"""
Ambient glow pipeline.

Samples an image's edge colours and renders a light beside each side:

    glow = Ambimage()
    image = await load_image("photo.jpg")
    glow.process(image)
    await glow.wait_idle()
    left, right = glow.lights(glow.registry.lookup(image))
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional, Tuple, Union

from PIL import Image

from ambimage.config import Settings, get_settings
from ambimage.lights import LightRenderer, LightSurface, MaskLoader
from ambimage.masks import StyleSheet, resolve_mask_url
from ambimage.registry import ImageRegistry, MaskState
from ambimage.sampling import SIDES, SnapshotBuffer, sample_edges

logger = logging.getLogger(__name__)


def _open_image(path: Union[str, Path]) -> Image.Image:
    with Image.open(path) as im:
        im.load()
        return im.convert("RGBA")


async def load_image(path: Union[str, Path]) -> Image.Image:
    """Open and fully decode an image without blocking the loop."""
    return await asyncio.to_thread(_open_image, path)


class Ambimage:
    """Entry point: process(image) samples and (re)draws both lights."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ImageRegistry] = None,
        stylesheet: Optional[StyleSheet] = None,
        loader: Optional[MaskLoader] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = registry if registry is not None else ImageRegistry()
        self.renderer = LightRenderer(self.settings, stylesheet, loader)
        self._buffer = SnapshotBuffer()

    def process(self, image: Any) -> str:
        """
        Sample the image's edges and request a light on each side.

        Safe to call repeatedly for the same image: the registry entry is
        reused, edges are re-sampled, and new lights fade in over old ones.
        Returns the image's identifier.
        """
        if self._needs_loop(image):
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                raise RuntimeError(
                    "Ambimage.process needs a running event loop to load masks or fade lights in"
                ) from None

        image_id = self.registry.prepare(image)
        self.registry.record_processed(image_id)
        assets = self.registry.assets(image_id)

        colors = sample_edges(image, self.settings, self._buffer)
        logger.debug(f"Sampled {image_id}: left={colors.left} right={colors.right}")

        for side in SIDES:
            self.renderer.request(assets, side, getattr(colors, side))
        return image_id

    def _needs_loop(self, image: Any) -> bool:
        if self.settings.fade_time > 0:
            return True
        image_id = self.registry.lookup(image)
        assets = self.registry.assets(image_id) if image_id is not None else None
        for side in SIDES:
            if assets is not None and assets.side(side).mask_state is not MaskState.NOT_LOADED:
                continue
            if resolve_mask_url(self.renderer.stylesheet, side) is not None:
                return True
        return False

    async def wait_idle(self) -> None:
        await self.renderer.wait_idle()

    def lights(self, image_id: str) -> Tuple[Optional[LightSurface], Optional[LightSurface]]:
        """(left, right) lights currently shown for an image."""
        assets = self.registry.assets(image_id)
        return assets.side("left").surface, assets.side("right").surface
