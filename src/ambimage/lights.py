"""
Light rendering: gradient + mask surfaces, mask loading and fade-in.

Everything here runs on one asyncio loop. Mask loads and fades are the
only things that complete later; neither can be cancelled, only
superseded by a newer render.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from PIL import Image

from ambimage.apply import composite_mask, gradient_stops, render_gradient
from ambimage.colors import RGB, adjust_color, rgb_string
from ambimage.config import Settings
from ambimage.masks import StyleSheet, generate_mask, load_mask, resolve_mask_url
from ambimage.registry import ImageAssets, MaskState
from ambimage.utils import image_size

logger = logging.getLogger(__name__)

MaskLoader = Callable[[str], Awaitable[Image.Image]]


async def load_mask_async(url: str) -> Image.Image:
    """Default mask loader: decode the file off the loop thread."""
    return await asyncio.to_thread(load_mask, url)


class LightSurface:
    """A rendered light and its display state."""

    def __init__(self, side: str, image: Image.Image) -> None:
        self.side = side
        self.image = image
        self.fade: Optional["Fade"] = None
        self._opacity = 0.0
        self._container: Optional[List["LightSurface"]] = None

    @property
    def opacity(self) -> float:
        if self.fade is not None and not self.fade.done:
            return self.fade.progress()
        return self._opacity

    @property
    def attached(self) -> bool:
        return self._container is not None

    def attach(self, container: List["LightSurface"]) -> None:
        container.append(self)
        self._container = container

    def detach(self) -> None:
        if self._container is not None:
            self._container.remove(self)
            self._container = None

    def __repr__(self) -> str:
        return f"LightSurface(side={self.side!r}, size={self.image.size}, opacity={self.opacity:.2f})"


class Fade:
    """
    Linear opacity 0 -> 1 over duration_ms.

    On completion the surface it replaced (if any) is detached.
    """

    def __init__(
        self,
        surface: LightSurface,
        duration_ms: float,
        previous: Optional[LightSurface] = None,
    ) -> None:
        self.surface = surface
        self.duration_ms = float(duration_ms)
        self.previous = previous
        self.done = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started = 0.0
        self._finished: Optional[asyncio.Future] = None
        surface.fade = self

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if self.duration_ms <= 0:
            self.finish()
            return
        self._loop = loop or asyncio.get_running_loop()
        self._started = self._loop.time()
        self._finished = self._loop.create_future()
        self._loop.call_later(self.duration_ms / 1000.0, self.finish)

    def progress(self, now: Optional[float] = None) -> float:
        if self.done:
            return 1.0
        if self._loop is None:
            return 0.0
        if now is None:
            now = self._loop.time()
        elapsed_ms = (now - self._started) * 1000.0
        return min(1.0, max(0.0, elapsed_ms / self.duration_ms))

    def finish(self) -> None:
        if self.done:
            return
        self.done = True
        self.surface._opacity = 1.0
        if self.previous is not None:
            self.previous.detach()
            logger.debug(f"Removed superseded {self.previous.side} light")
        if self._finished is not None and not self._finished.done():
            self._finished.set_result(None)

    async def wait(self) -> None:
        if self._finished is not None:
            await asyncio.shield(self._finished)


class LightRenderer:
    """
    Draws lights for image sides and tracks each side's mask state.

    Per side: NOT_LOADED -> LOADING -> READY. The first request starts the
    mask load; requests made while it loads are dropped (their colours
    replace the pending ones) and the load's completion renders once.
    """

    def __init__(
        self,
        settings: Settings,
        stylesheet: Optional[StyleSheet] = None,
        loader: Optional[MaskLoader] = None,
    ) -> None:
        self.settings = settings
        self.stylesheet = stylesheet or StyleSheet()
        self.loader = loader or load_mask_async
        self.render_count = 0
        self._tasks: Set[asyncio.Task] = set()
        self._fades: List[Fade] = []

    def request(self, assets: ImageAssets, side: str, colors: List[RGB]) -> bool:
        """Render now if the side's mask is ready. Returns whether it rendered."""
        state = assets.side(side)

        if state.mask_state is MaskState.READY:
            self.render(assets, side, colors)
            return True

        if state.mask_state is MaskState.LOADING:
            state.defer(colors)
            logger.debug(f"Mask for {assets.image_id}/{side} still loading, render deferred")
            return False

        url = resolve_mask_url(self.stylesheet, side)
        if url is None:
            state.begin_load(colors)
            width, height = self.light_size(assets)
            logger.debug(f"No mask styled for {side}, generating {width}x{height}")
            self._mask_loaded(assets, side, generate_mask(width, height, side))
            return True

        # raises before any state changes when no loop is running
        loop = asyncio.get_running_loop()
        state.begin_load(colors)
        task = loop.create_task(self._load(assets, side, url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return False

    async def _load(self, assets: ImageAssets, side: str, url: str) -> None:
        try:
            mask = await self.loader(url)
        except Exception:
            logger.exception(f"Failed to load {side} mask {url} for {assets.image_id}")
            assets.side(side).fail_load()
            return
        self._mask_loaded(assets, side, mask)

    def _mask_loaded(self, assets: ImageAssets, side: str, mask: Image.Image) -> None:
        colors = assets.side(side).complete_load(mask)
        if colors is not None:
            self.render(assets, side, colors)

    def light_size(self, assets: ImageAssets):
        _, height = image_size(assets.image)
        return self.settings.light_width, height

    def render(self, assets: ImageAssets, side: str, colors: List[RGB]) -> LightSurface:
        """Draw one light and start fading it in over the side's old one."""
        state = assets.side(side)
        s = self.settings

        adjusted = [adjust_color(c, s.saturation, s.brightness) for c in colors]
        width, height = self.light_size(assets)
        gradient = render_gradient(gradient_stops(adjusted), width, height)

        surface = LightSurface(side, composite_mask(gradient, state.mask))
        fade = Fade(surface, s.fade_time, state.surface)
        if s.fade_time > 0:
            # scheduling needs a running loop; fail before touching the side
            fade.start(asyncio.get_running_loop())
            self._fades = [f for f in self._fades if not f.done]
            self._fades.append(fade)

        surface.attach(assets.attached)
        state.surface = surface
        if s.fade_time <= 0:
            fade.start()

        self.render_count += 1
        logger.debug(
            f"Rendered {side} light for {assets.image_id}: "
            + " ".join(rgb_string(c) for c in adjusted)
        )
        return surface

    async def wait_idle(self) -> None:
        """Wait for pending mask loads and running fades."""
        while True:
            tasks = list(self._tasks)
            fades = [f for f in self._fades if not f.done]
            if not tasks and not fades:
                break
            if tasks:
                await asyncio.gather(*tasks)
            for fade in fades:
                await fade.wait()
        self._fades = []
