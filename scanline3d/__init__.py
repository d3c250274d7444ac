"""scanline3d: software 3D rendering engine.

Rasterizes lines, curves, boxes, spheres and tori into an RGB raster
through a stack of homogeneous coordinate transforms, driven by direct
calls or by line-oriented drawing scripts.

Architecture layers (strict one-way dependency):
    scripts/ → scanline3d/script/ → scanline3d/raster/ → scanline3d/geometry/ → scanline3d/utils/

Key invariants:
    - Points are columns of (4, N) float arrays with w == 1
    - Transforms are 4x4 arrays acting on column points
    - Raster origin is the bottom-left corner, +y up
    - YAML-only configs, validated by pydantic
"""

__version__ = "0.3.0"
