"""Shared fixtures for rasterizer and interpreter tests."""

from pathlib import Path

import numpy as np
import pytest

from scanline3d.raster.canvas import Canvas
from scanline3d.raster.image import RasterImage
from scanline3d.utils.color import BLACK, WHITE


class RecordingCanvas(Canvas):
    """Canvas that records every plot call instead of storing pixels.

    Out-of-range coordinates are recorded too, so tests can check the raw
    output of the rasterizer.
    """

    def __init__(self, width: int = 100, height: int = 100):
        self._width = width
        self._height = height
        self._fg = WHITE
        self._bg = BLACK
        self.plots = []  # (x, y, depth, color)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def fg_color(self):
        return self._fg

    @fg_color.setter
    def fg_color(self, color):
        self._fg = color

    @property
    def bg_color(self):
        return self._bg

    @bg_color.setter
    def bg_color(self, color):
        self._bg = color

    def plot(self, x: int, y: int, depth: float) -> None:
        assert isinstance(x, int) and isinstance(y, int)
        self.plots.append((x, y, depth, self._fg))

    # Helpers --------------------------------------------------------------

    def pixels(self):
        return {(x, y) for x, y, _, _ in self.plots}

    def depth_at(self, x: int, y: int):
        return [d for px, py, d, _ in self.plots if (px, py) == (x, y)]

    def reset(self) -> None:
        self.plots = []


@pytest.fixture
def recorder():
    """100×100 recording canvas."""
    return RecordingCanvas()


@pytest.fixture
def image():
    """Small 50×50 raster image, white on black."""
    return RasterImage(50, 50)


@pytest.fixture
def rng():
    """Seeded generator for reproducible fill colors."""
    return np.random.default_rng(1234)


@pytest.fixture(scope="session")
def project_root():
    """Project root directory."""
    return Path(__file__).parent.parent
