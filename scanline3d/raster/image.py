"""Numpy-backed raster image: the concrete pixel sink.

Storage:
    - pixels: (H, W, 3) uint8, row 0 is the *top* of the picture
    - depth: (H, W) float64 record of the depth of the last write per pixel

Coordinates passed to plot() have their origin at the bottom-left corner
(+y up), so plot(x, y) writes row ``height - 1 - y``. Writes outside the
canvas are dropped silently; that is the only clipping performed.

The depth record is informational. plot() never compares against it, so
the image shows painter's-order results exactly as the rasterizer emits
them.

Encoding:
    - to_ppm_bytes(): binary PPM (P6) with the configured max value
    - save(): ``.ppm`` written directly, any other extension through Pillow
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

import numpy as np

from ..utils import fs
from ..utils.color import BLACK, RGB, WHITE, parse_color, scale_to_depth
from .canvas import Canvas

logger = logging.getLogger(__name__)


class RasterImage(Canvas):
    """Fixed-size RGB raster with a per-pixel depth record.

    Parameters
    ----------
    width, height : int
        Canvas dimensions in pixels
    max_color : int
        PPM channel maximum, default 255
    fg_color : RGB
        Initial drawing color, default white
    bg_color : RGB
        Background color used by clear(), default black
    """

    def __init__(
        self,
        width: int,
        height: int,
        max_color: int = 255,
        fg_color: RGB = WHITE,
        bg_color: RGB = BLACK
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas dimensions must be positive, got {width}x{height}")
        if not 1 <= max_color <= 255:
            raise ValueError(f"max_color must be in [1, 255], got {max_color}")
        self._width = int(width)
        self._height = int(height)
        self.max_color = int(max_color)
        self._fg = parse_color(fg_color)
        self._bg = parse_color(bg_color)

        self.pixels = np.empty((self._height, self._width, 3), dtype=np.uint8)
        self.depth = np.empty((self._height, self._width), dtype=np.float64)
        self.clear()

    @classmethod
    def from_config(cls, canvas_cfg) -> "RasterImage":
        """Build from a validators.CanvasSettings block."""
        return cls(canvas_cfg.width, canvas_cfg.height, canvas_cfg.max_color,
                   canvas_cfg.fg_color, canvas_cfg.bg_color)

    # ------------------------------------------------------------------
    # Canvas capability set
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def fg_color(self) -> RGB:
        return self._fg

    @fg_color.setter
    def fg_color(self, color: RGB) -> None:
        self._fg = parse_color(color)

    @property
    def bg_color(self) -> RGB:
        return self._bg

    @bg_color.setter
    def bg_color(self, color: RGB) -> None:
        self._bg = parse_color(color)

    def plot(self, x: int, y: int, depth: float) -> None:
        if 0 <= x < self._width and 0 <= y < self._height:
            row = self._height - 1 - y
            self.pixels[row, x] = scale_to_depth(self._fg, self.max_color)
            self.depth[row, x] = depth

    # ------------------------------------------------------------------
    # Buffer management
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Fill with the background color and reset the depth record."""
        self.pixels[:, :] = scale_to_depth(self._bg, self.max_color)
        self.depth.fill(-np.inf)

    def get_pixel(self, x: int, y: int) -> RGB:
        """Color at (x, y) in plot coordinates (bottom-left origin)."""
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self._width}x{self._height} canvas")
        return RGB(*(int(c) for c in self.pixels[self._height - 1 - y, x]))

    def painted_mask(self) -> np.ndarray:
        """(H, W) bool mask of pixels differing from the background, top row first."""
        bg = np.array(scale_to_depth(self._bg, self.max_color), dtype=np.uint8)
        return np.any(self.pixels != bg, axis=2)

    def to_array(self) -> np.ndarray:
        """Copy of the (H, W, 3) pixel rows, top row first."""
        return self.pixels.copy()

    def __eq__(self, other) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return (self.max_color == other.max_color
                and self.pixels.shape == other.pixels.shape
                and np.array_equal(self.pixels, other.pixels))

    def __repr__(self) -> str:
        return f"RasterImage({self._width}x{self._height}, max_color={self.max_color})"

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def to_ppm_bytes(self) -> bytes:
        """Binary PPM (P6) encoding of the current pixels."""
        header = f"P6\n{self._width} {self._height}\n{self.max_color}\n".encode('ascii')
        return header + self.pixels.tobytes()

    def write_bin_to_buf(self, stream: BinaryIO) -> None:
        """Write one P6 frame to an open binary stream (e.g. a process stdin)."""
        stream.write(self.to_ppm_bytes())

    def save(self, path: Union[str, Path], pil_kwargs: Optional[dict] = None) -> Path:
        """Persist the image; format follows the file extension.

        Raises
        ------
        RuntimeError
            If the file cannot be written
        """
        path = Path(path)
        if path.suffix.lower() == '.ppm':
            fs.atomic_write_bytes(path, self.to_ppm_bytes())
        else:
            pixels = self.pixels
            if self.max_color != 255:
                pixels = (pixels.astype(np.float64) * (255.0 / self.max_color)).round()
            fs.atomic_save_image(pixels, path, pil_kwargs)
        logger.info(f"Saved {self._width}x{self._height} image to {path}")
        return path
