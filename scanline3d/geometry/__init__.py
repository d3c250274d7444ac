"""Geometry data model: point matrices, transforms and shape generators.

Convenience imports:
    from scanline3d.geometry import GeometryMatrix, TransformStack, shapes
    from scanline3d.geometry.matrix import move, rotate, scale
"""

from . import matrix
from . import shapes
from . import stack
from .matrix import GeometryMatrix, GeometryMode, MalformedGeometryError
from .stack import StackUnderflowError, TransformStack

__all__ = [
    'matrix',
    'shapes',
    'stack',
    'GeometryMatrix',
    'GeometryMode',
    'MalformedGeometryError',
    'TransformStack',
    'StackUnderflowError',
]
