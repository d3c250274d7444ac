"""Test the numpy raster image sink.

Tests for scanline3d.raster.image:
    - Bottom-left origin and silent clipping
    - Depth record is written, never tested
    - clear() / background color
    - PPM (P6) encoding and stream writing
    - save(): .ppm direct, .png through Pillow, max_color rescaling
    - Equality by pixel content

Run:
    pytest tests/test_image.py -v
"""

import io

import numpy as np
import pytest
from PIL import Image

from scanline3d.raster.image import RasterImage
from scanline3d.utils import validators
from scanline3d.utils.color import BLACK, RGB, WHITE


# ============================================================================
# PLOTTING
# ============================================================================

def test_plot_origin_is_bottom_left(image):
    """plot(0, 0) lands on the last buffer row."""
    image.plot(0, 0, 1.0)
    assert tuple(image.pixels[image.height - 1, 0]) == WHITE
    assert tuple(image.pixels[0, 0]) == BLACK
    assert image.get_pixel(0, 0) == WHITE


def test_plot_out_of_bounds_is_dropped(image):
    """Pixels outside the canvas are silently ignored."""
    before = image.to_array()
    for x, y in [(-1, 0), (0, -1), (50, 0), (0, 50), (1000, -1000)]:
        image.plot(x, y, 0.0)
    np.testing.assert_array_equal(image.to_array(), before)


def test_depth_record_keeps_last_write(image):
    """A farther write after a nearer one still wins: no z-test."""
    image.fg_color = RGB(10, 20, 30)
    image.plot(5, 5, 1.0)
    image.fg_color = RGB(40, 50, 60)
    image.plot(5, 5, -100.0)
    assert image.get_pixel(5, 5) == RGB(40, 50, 60)
    assert image.depth[image.height - 1 - 5, 5] == -100.0


def test_get_pixel_bounds(image):
    """get_pixel refuses coordinates outside the canvas."""
    with pytest.raises(IndexError):
        image.get_pixel(50, 0)


def test_clear_restores_background():
    """clear() repaints with bg_color and forgets depths."""
    img = RasterImage(10, 10, bg_color=RGB(253, 255, 186))
    img.plot(3, 3, 2.0)
    img.clear()
    assert img.get_pixel(3, 3) == RGB(253, 255, 186)
    assert np.all(np.isneginf(img.depth))
    assert not img.painted_mask().any()


def test_colors_accept_strings(image):
    """Color setters parse config-style strings."""
    image.fg_color = "#ff8000"
    assert image.fg_color == RGB(255, 128, 0)


@pytest.mark.parametrize("kwargs", [
    {'width': 0, 'height': 10},
    {'width': 10, 'height': -1},
    {'width': 10, 'height': 10, 'max_color': 0},
    {'width': 10, 'height': 10, 'max_color': 256},
])
def test_invalid_construction(kwargs):
    """Bad dimensions or channel maximum are rejected."""
    with pytest.raises(ValueError):
        RasterImage(**kwargs)


def test_from_config():
    """CanvasSettings map onto constructor arguments."""
    cfg = validators.CanvasSettings(width=30, height=20, max_color=100,
                                    fg_color="#00ff00", bg_color=[1, 2, 3])
    img = RasterImage.from_config(cfg)
    assert (img.width, img.height, img.max_color) == (30, 20, 100)
    assert img.fg_color == RGB(0, 255, 0)
    assert tuple(img.pixels[0, 0]) == (0, 1, 1)


# ============================================================================
# ENCODING AND SAVING
# ============================================================================

def test_ppm_bytes(image):
    """P6 header followed by raw rows, top row first."""
    image.plot(0, 49, 0.0)
    data = image.to_ppm_bytes()
    header = b"P6\n50 50\n255\n"
    assert data.startswith(header)
    assert len(data) == len(header) + 50 * 50 * 3
    assert data[len(header):len(header) + 3] == bytes(WHITE)


def test_write_bin_to_buf(image):
    """Stream output matches to_ppm_bytes()."""
    buf = io.BytesIO()
    image.write_bin_to_buf(buf)
    assert buf.getvalue() == image.to_ppm_bytes()


def test_save_ppm(tmp_path, image):
    """.ppm files are written directly."""
    image.plot(1, 1, 0.0)
    path = image.save(tmp_path / "frame.ppm")
    assert path.read_bytes() == image.to_ppm_bytes()
    assert not list(tmp_path.glob("*.tmp"))


def test_save_png_through_pillow(tmp_path, image):
    """Other extensions go through Pillow with the same orientation."""
    image.plot(0, 0, 0.0)
    image.save(tmp_path / "frame.png")
    with Image.open(tmp_path / "frame.png") as pil:
        assert pil.size == (50, 50)
        assert pil.getpixel((0, 49)) == WHITE
        assert pil.getpixel((0, 0)) == BLACK


def test_small_max_color(tmp_path):
    """Channel maximum below 255 scales stored values and PNG output."""
    img = RasterImage(4, 4, max_color=15)
    img.plot(0, 0, 0.0)
    assert tuple(img.pixels[3, 0]) == (15, 15, 15)
    assert img.to_ppm_bytes().startswith(b"P6\n4 4\n15\n")

    img.save(tmp_path / "small.png")
    with Image.open(tmp_path / "small.png") as pil:
        assert pil.getpixel((0, 3)) == (255, 255, 255)


def test_equality_by_content():
    """Images compare equal when their pixels match."""
    a, b = RasterImage(5, 5), RasterImage(5, 5)
    assert a == b
    a.plot(2, 2, 0.0)
    assert a != b
    b.plot(2, 2, 7.0)
    assert a == b
    assert a != RasterImage(5, 6)
