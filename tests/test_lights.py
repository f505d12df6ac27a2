"""
Tests for ambimage.lights: mask loading state machine, rendering and fades.
"""

import asyncio

import numpy as np
import pytest
from PIL import Image

from ambimage.config import Settings
from ambimage.lights import Fade, LightRenderer, LightSurface
from ambimage.masks import StyleSheet
from ambimage.registry import ImageAssets, MaskState

COLORS = [(100, 100, 110)] * 5

STYLED = StyleSheet(
    {
        "ambilight-left": {"background-image": "url('left.png')"},
        "ambilight-right": {"background-image": "url('right.png')"},
    }
)


def make_assets(height=30):
    return ImageAssets("ambi-0", image=Image.new("RGB", (50, height)))


class GatedLoader:
    """Mask loader that completes only when released"""

    def __init__(self):
        self.release = asyncio.Event()
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        await self.release.wait()
        return Image.new("RGBA", (4, 4), (0, 0, 0, 0))


class TestLightSurface:
    def test_attach_detach(self):
        container = []
        surface = LightSurface("left", Image.new("RGBA", (2, 2)))
        surface.attach(container)
        assert surface.attached
        assert container == [surface]
        surface.detach()
        assert not surface.attached
        assert container == []
        surface.detach()

    def test_starts_invisible(self):
        assert LightSurface("left", Image.new("RGBA", (2, 2))).opacity == 0.0


class TestFade:
    def test_instant_fade_removes_previous(self):
        container = []
        old = LightSurface("left", Image.new("RGBA", (2, 2)))
        new = LightSurface("left", Image.new("RGBA", (2, 2)))
        old.attach(container)
        new.attach(container)

        Fade(new, 0, previous=old).start()
        assert new.opacity == 1.0
        assert container == [new]

    @pytest.mark.asyncio
    async def test_linear_progress(self):
        surface = LightSurface("right", Image.new("RGBA", (2, 2)))
        fade = Fade(surface, 200)
        fade.start()
        now = asyncio.get_running_loop().time()
        assert fade.progress(now) < 0.5
        assert fade.progress(now + 0.1) == pytest.approx(0.5, abs=0.1)
        assert fade.progress(now + 1.0) == 1.0
        await fade.wait()
        assert fade.done
        assert surface.opacity == 1.0


class TestLightRenderer:
    """Tests for LightRenderer."""

    def test_generated_mask_renders_immediately(self, settings):
        renderer = LightRenderer(settings)
        assets = make_assets()
        assert renderer.request(assets, "left", COLORS)
        state = assets.side("left")
        assert state.mask_state is MaskState.READY
        assert state.surface.image.size == (20, 30)
        assert state.surface.opacity == 1.0
        assert renderer.render_count == 1

    def test_render_uses_adjusted_colors(self, settings):
        renderer = LightRenderer(settings)
        assets = make_assets()
        state = assets.side("left")
        state.mask = Image.new("RGBA", (1, 1), (0, 0, 0, 0))
        state.mask_state = MaskState.READY

        surface = renderer.render(assets, "left", COLORS)
        arr = np.asarray(surface.image)
        assert tuple(arr[0, 0, :3]) == (223, 223, 255)

    def test_new_render_replaces_old(self, settings):
        renderer = LightRenderer(settings)
        assets = make_assets()
        renderer.request(assets, "right", COLORS)
        first = assets.side("right").surface
        renderer.request(assets, "right", COLORS)
        second = assets.side("right").surface

        assert first is not second
        assert not first.attached
        assert assets.attached == [second]

    @pytest.mark.asyncio
    async def test_render_deferred_until_mask_loads(self, settings):
        loader = GatedLoader()
        renderer = LightRenderer(settings, STYLED, loader)
        assets = make_assets()

        assert not renderer.request(assets, "left", COLORS)
        assert not renderer.request(assets, "left", [(10, 200, 10)] * 5)
        await asyncio.sleep(0)
        assert renderer.render_count == 0
        assert assets.side("left").mask_state is MaskState.LOADING
        assert loader.calls == ["left.png"]

        loader.release.set()
        await renderer.wait_idle()
        assert renderer.render_count == 1
        assert assets.side("left").mask_state is MaskState.READY
        # the newest colours win
        top = np.asarray(assets.side("left").surface.image)[0, 0, :3]
        assert top[1] > top[0]

    @pytest.mark.asyncio
    async def test_failed_load_can_retry(self, settings):
        attempts = []

        async def flaky(url):
            attempts.append(url)
            if len(attempts) == 1:
                raise OSError("missing mask")
            return Image.new("RGBA", (4, 4))

        renderer = LightRenderer(settings, STYLED, flaky)
        assets = make_assets()

        renderer.request(assets, "right", COLORS)
        await renderer.wait_idle()
        assert assets.side("right").mask_state is MaskState.NOT_LOADED
        assert renderer.render_count == 0

        renderer.request(assets, "right", COLORS)
        await renderer.wait_idle()
        assert renderer.render_count == 1
        assert attempts == ["right.png", "right.png"]

    @pytest.mark.asyncio
    async def test_fade_removes_previous_on_completion(self):
        renderer = LightRenderer(Settings(fade_time=50, light_width=10))
        assets = make_assets()

        renderer.request(assets, "left", COLORS)
        first = assets.side("left").surface
        renderer.request(assets, "left", COLORS)
        second = assets.side("left").surface

        assert first.attached and second.attached
        assert second.opacity < 1.0

        await renderer.wait_idle()
        assert not first.attached
        assert second.attached
        assert second.opacity == 1.0


class TestRendererWithoutLoop:
    """Failures from a missing event loop leave the side as it was."""

    def test_styled_request_outside_loop_can_retry(self, settings):
        async def loader(url):
            return Image.new("RGBA", (4, 4))

        renderer = LightRenderer(settings, STYLED, loader)
        assets = make_assets()

        with pytest.raises(RuntimeError):
            renderer.request(assets, "left", COLORS)
        state = assets.side("left")
        assert state.mask_state is MaskState.NOT_LOADED
        assert not state.pending

        async def retry():
            renderer.request(assets, "left", COLORS)
            await renderer.wait_idle()

        asyncio.run(retry())
        assert renderer.render_count == 1
        assert state.mask_state is MaskState.READY
        assert state.surface is not None

    def test_fading_render_outside_loop_changes_nothing(self):
        renderer = LightRenderer(Settings(fade_time=400, light_width=10))
        assets = make_assets()
        state = assets.side("right")
        state.mask = Image.new("RGBA", (1, 1))
        state.mask_state = MaskState.READY

        with pytest.raises(RuntimeError):
            renderer.render(assets, "right", COLORS)
        assert state.surface is None
        assert assets.attached == []
        assert renderer.render_count == 0
