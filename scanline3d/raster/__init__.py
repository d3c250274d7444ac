"""Rasterization: abstract Canvas algorithms, RasterImage sink, export pipes."""

from . import canvas
from . import export
from . import image
from .canvas import Canvas
from .export import ExportError, FramePipe, display_image
from .image import RasterImage

__all__ = [
    'canvas',
    'export',
    'image',
    'Canvas',
    'RasterImage',
    'FramePipe',
    'ExportError',
    'display_image',
]
