import asyncio
import io

import pytest
from PIL import Image

from Ai2Word.config import ConverterConfig
from Ai2Word.model import RenderedImage
from Ai2Word.state import Rasterizers, RenderState


def make_png(width: int = 120, height: int = 40) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


class FakeRasterizer:
    """Records every call and answers with a blank PNG, or with None when ``succeed`` is off."""

    def __init__(self, succeed: bool = True, width: int = 120, height: int = 40, delay: float = 0.0):
        self.succeed = succeed
        self.width = width
        self.height = height
        self.delay = delay
        self.diagram_calls = []
        self.formula_calls = []
        self.active = 0
        self.max_active = 0

    async def diagram(self, source):
        self.diagram_calls.append(source)
        return self._image()

    async def formula(self, source, display):
        self.formula_calls.append((source, display))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self._image()
        finally:
            self.active -= 1

    def _image(self):
        if not self.succeed:
            return None
        return RenderedImage(make_png(self.width, self.height), self.width, self.height)

    def rasterizers(self) -> Rasterizers:
        return Rasterizers(render_diagram=self.diagram, render_formula=self.formula)


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def fake_rasterizer() -> FakeRasterizer:
    return FakeRasterizer()


@pytest.fixture
def failing_rasterizer() -> FakeRasterizer:
    return FakeRasterizer(succeed=False)


@pytest.fixture
def state(fake_rasterizer) -> RenderState:
    return RenderState(config=ConverterConfig(), rasterizers=fake_rasterizer.rasterizers())


@pytest.fixture
def failing_state(failing_rasterizer) -> RenderState:
    return RenderState(config=ConverterConfig(), rasterizers=failing_rasterizer.rasterizers())


@pytest.fixture
def slow_rasterizer() -> FakeRasterizer:
    return FakeRasterizer(delay=0.05)


@pytest.fixture
def wide_rasterizer() -> FakeRasterizer:
    return FakeRasterizer(width=1200, height=600)
