"""Abstract rasterizer: lines, scanlines, edge and polygon matrices.

Every algorithm here is written against a small capability set that a
concrete pixel sink must provide:

    plot(x, y, depth)      write one pixel in the current foreground color
    fg_color / bg_color    read/write colors
    width / height         immutable dimensions

Architecture:
    - draw_line: integer midpoint (Bresenham) stepping chosen by octant,
      z interpolated linearly along the stepped axis
    - draw_scanline: one horizontal row, z interpolated across x
    - render_edge_matrix: pairs of points → independent lines
    - render_polygon_matrix: back-face culling against the view vector
      <0, 0, 1>, boundary edges, then a scanline fill per triangle
    - *_with_stack: multiply by the transform stack top first

Invariants:
    - Pixel coordinates are rounded half away from zero; depth stays float
    - Both endpoints of a line are plotted; drawing p0→p1 or p1→p0 covers
      the same pixels
    - There is no frame-wide depth test. Occlusion between triangles comes
      only from culling and draw order (later triangles overwrite earlier
      ones), which is a known visual limitation of the fill
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from ..geometry.matrix import GeometryMatrix, GeometryMode, MalformedGeometryError
from ..geometry.stack import TransformStack
from ..utils.color import RGB, random_color

logger = logging.getLogger(__name__)

Point3 = Tuple[float, float, float]


def round_half_away(v: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(math.copysign(math.floor(abs(v) + 0.5), v))


def mapper(a0: float, a1: float, b0: float, b1: float) -> Callable[[float], float]:
    """Linear map sending [a0, a1] onto [b0, b1]."""
    ratio = (b1 - b0) / (a1 - a0)
    return lambda v: b0 + (v - a0) * ratio


def _span(dy: float) -> float:
    """Interpolation divisor for an edge; widened by one when nearly flat."""
    return dy + 1.0 if dy < 1.0 else dy


class Canvas(ABC):
    """Pixel sink with the rasterization algorithms built on ``plot``."""

    # ------------------------------------------------------------------
    # Capability set implemented by concrete sinks
    # ------------------------------------------------------------------

    @abstractmethod
    def plot(self, x: int, y: int, depth: float) -> None:
        """Write one pixel at (x, y) in the foreground color."""

    @property
    @abstractmethod
    def fg_color(self) -> RGB:
        ...

    @fg_color.setter
    @abstractmethod
    def fg_color(self, color: RGB) -> None:
        ...

    @property
    @abstractmethod
    def bg_color(self) -> RGB:
        ...

    @bg_color.setter
    @abstractmethod
    def bg_color(self, color: RGB) -> None:
        ...

    @property
    @abstractmethod
    def width(self) -> int:
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        ...

    # Output is optional: plain sinks (recorders, previews) only need plot()

    def clear(self) -> None:
        """Reset the sink to its background."""
        raise NotImplementedError(f"{type(self).__name__} cannot be cleared")

    def save(self, path, pil_kwargs: Optional[dict] = None):
        """Persist the current contents to ``path``."""
        raise NotImplementedError(f"{type(self).__name__} cannot be saved")

    def write_bin_to_buf(self, stream) -> None:
        """Write one binary frame to ``stream``."""
        raise NotImplementedError(f"{type(self).__name__} cannot be encoded as a frame")

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    def draw_line(self, p0: Sequence[float], p1: Sequence[float]) -> None:
        """Draw the segment p0 → p1, interpolating z along the path.

        Parameters
        ----------
        p0, p1 : Sequence[float]
            (x, y, z) endpoints in pixel space

        Notes
        -----
        Shallow lines step x and conditionally move y; steep lines step y
        from low to high and conditionally move x. The decision variable
        always moves by 2*|dy| / 2*dx so the rounding of half-pixel
        errors never distorts the slope.
        """
        if p0[0] > p1[0]:
            p0, p1 = p1, p0

        x0, y0 = round_half_away(p0[0]), round_half_away(p0[1])
        x1, y1 = round_half_away(p1[0]), round_half_away(p1[1])
        z0, z1 = float(p0[2]), float(p1[2])
        dz = z1 - z0

        dy, ndx = y1 - y0, -(x1 - x0)

        if dy == 0:
            # Horizontal (or a single point)
            step = dz / -ndx if ndx else 0.0
            z = z0
            for x in range(x0, x1 + 1):
                self.plot(x, y0, z)
                z += step
            return

        if ndx == 0:
            # Vertical, always iterate low → high
            if y0 > y1:
                y0, y1, z0, z1 = y1, y0, z1, z0
            step = (z1 - z0) / (y1 - y0)
            z = z0
            for y in range(y0, y1 + 1):
                self.plot(x0, y, z)
                z += step
            return

        ady = abs(dy)

        if ady < -ndx:
            # Octants 1 and 8: step x
            y_inc = 1 if dy > 0 else -1
            d = 2 * ady + ndx
            y = y0
            z = z0
            z_step = dz / -ndx
            for x in range(x0, x1 + 1):
                self.plot(x, y, z)
                if d > 0:
                    y += y_inc
                    d += 2 * ndx
                d += 2 * ady
                z += z_step
        else:
            # Octants 2 and 7: step y from the lower endpoint
            if dy > 0:
                x_inc, x, y_start, y_end, z = 1, x0, y0, y1, z0
            else:
                # Reflect: start from the right endpoint, walking x back
                x_inc, x, y_start, y_end, z = -1, x1, y1, y0, z1
            d = -2 * ndx - ady
            z_step = dz / dy
            for y in range(y_start, y_end + 1):
                self.plot(x, y, z)
                if d > 0:
                    x += x_inc
                    d -= 2 * ady
                d -= 2 * ndx
                z += z_step

    def draw_scanline(self, p0: Sequence[float], p1: Sequence[float]) -> None:
        """Draw a horizontal row between two points sharing the same y.

        Raises
        ------
        ValueError
            If the endpoints are on different rows
        """
        if p0[1] != p1[1]:
            raise ValueError(f"Scanline endpoints must share y, got {p0[1]} and {p1[1]}")
        if p0[0] > p1[0]:
            p0, p1 = p1, p0

        y = round_half_away(p0[1])
        x0, x1 = round_half_away(p0[0]), round_half_away(p1[0])
        z0, z1 = float(p0[2]), float(p1[2])
        step = (z1 - z0) / (x1 - x0) if x1 != x0 else 0.0

        z = z0
        for x in range(x0, x1 + 1):
            self.plot(x, y, z)
            z += step

    def draw_line_degrees(self, origin: Sequence[float], angle_degrees: float,
                          magnitude: float) -> Point3:
        """Draw from origin along an angle (counter-clockwise from +x).

        Returns
        -------
        Point3
            The far endpoint, for chaining segments
        """
        rad = math.radians(angle_degrees)
        x0, y0, z0 = origin
        end = (x0 + magnitude * math.cos(rad), y0 + magnitude * math.sin(rad), z0)
        self.draw_line((x0, y0, z0), end)
        return end

    # ------------------------------------------------------------------
    # Matrices
    # ------------------------------------------------------------------

    def render_edge_matrix(self, m: GeometryMatrix) -> int:
        """Draw every point pair of an edge matrix as a line.

        Returns
        -------
        int
            Number of lines drawn

        Raises
        ------
        MalformedGeometryError
            If the matrix is not in edge mode or has an odd point count
        """
        if m.mode is not GeometryMode.EDGE:
            raise MalformedGeometryError(f"Expected an edge matrix, got {m.mode.name.lower()}")
        count = 0
        for p0, p1 in m.groups():
            self.draw_line(p0, p1)
            count += 1
        return count

    def render_ndc_edges_n1to1(self, m: GeometryMatrix) -> int:
        """Draw edges given in normalized device coordinates [-1, 1]².

        x is mirrored, y is not, and z is replaced by 1/z before drawing.

        Raises
        ------
        MalformedGeometryError
            If the matrix is not in edge mode or has an odd point count
        """
        if m.mode is not GeometryMode.EDGE:
            raise MalformedGeometryError(f"Expected an edge matrix, got {m.mode.name.lower()}")
        map_x = mapper(-1.0, 1.0, 0.0, float(self.width))
        map_y = mapper(-1.0, 1.0, 0.0, float(self.height))

        def to_screen(p: Point3) -> Point3:
            x, y, z = p
            return map_x(-x), map_y(y), (1.0 / z if z != 0 else math.inf)

        count = 0
        for p0, p1 in m.groups():
            self.draw_line(to_screen(p0), to_screen(p1))
            count += 1
        return count

    def render_polygon_matrix(self, m: GeometryMatrix, fill: bool = True,
                              rng: Optional[np.random.Generator] = None) -> int:
        """Draw the front-facing triangles of a polygon matrix.

        Parameters
        ----------
        m : GeometryMatrix
            Polygon matrix in screen space
        fill : bool
            Scanline-fill each surviving triangle, default True
        rng : np.random.Generator, optional
            Source of the per-triangle fill colors

        Returns
        -------
        int
            Number of triangles that survived culling

        Raises
        ------
        MalformedGeometryError
            If the matrix is not in polygon mode or is not a whole number
            of triangles

        Notes
        -----
        A triangle is kept only when the z component of
        (p1 - p0) × (p2 - p0) is strictly positive, i.e. it is wound
        counter-clockwise as seen from +z. Edges use the foreground color;
        the fill uses a fresh random color so triangle boundaries stay
        visible. The foreground color is restored afterwards.
        """
        if m.mode is not GeometryMode.POLYGON:
            raise MalformedGeometryError(f"Expected a polygon matrix, got {m.mode.name.lower()}")
        triangles = list(m.groups())

        if fill and rng is None:
            rng = np.random.default_rng()

        edge_color = self.fg_color
        drawn = 0
        try:
            for p0, p1, p2 in triangles:
                a, b, c = np.asarray(p0), np.asarray(p1), np.asarray(p2)
                if np.cross(b - a, c - a)[2] <= 0:
                    continue
                drawn += 1

                self.fg_color = edge_color
                self.draw_line(p0, p1)
                self.draw_line(p1, p2)
                self.draw_line(p2, p0)

                if fill:
                    self.fg_color = random_color(rng)
                    self.scanline_fill(p0, p1, p2)
        finally:
            self.fg_color = edge_color

        logger.debug(f"Polygon render: {drawn}/{len(triangles)} triangles front-facing")
        return drawn

    def scanline_fill(self, p0: Point3, p1: Point3, p2: Point3) -> None:
        """Fill a triangle row by row in the current foreground color.

        Vertices are sorted into bottom/mid/top by y. The left boundary is
        interpolated along bottom → top; the right along bottom → mid until
        y reaches mid.y, then along mid → top. Rows start at bottom.y,
        advance by exactly 1 and stop before top.y.
        """
        bot, mid, top = sorted((p0, p1, p2), key=lambda p: p[1])

        span_bt = _span(top[1] - bot[1])
        span_bm = _span(mid[1] - bot[1])
        span_mt = _span(top[1] - mid[1])

        dx0, dz0 = (top[0] - bot[0]) / span_bt, (top[2] - bot[2]) / span_bt
        dx_bm, dz_bm = (mid[0] - bot[0]) / span_bm, (mid[2] - bot[2]) / span_bm
        dx_mt, dz_mt = (top[0] - mid[0]) / span_mt, (top[2] - mid[2]) / span_mt

        y = bot[1]
        while y < top[1]:
            t = y - bot[1]
            x0, z0 = bot[0] + t * dx0, bot[2] + t * dz0
            if y < mid[1]:
                x1, z1 = bot[0] + t * dx_bm, bot[2] + t * dz_bm
            else:
                u = y - mid[1]
                x1, z1 = mid[0] + u * dx_mt, mid[2] + u * dz_mt
            self.draw_scanline((x0, y, z0), (x1, y, z1))
            y += 1.0

    # ------------------------------------------------------------------
    # Stack-aware entry points
    # ------------------------------------------------------------------

    def render_edges_with_stack(self, stack: TransformStack, m: GeometryMatrix) -> int:
        """Render an edge matrix after mapping it through the stack top."""
        return self.render_edge_matrix(m.transform(stack.get_top()))

    def render_polygons_with_stack(self, stack: TransformStack, m: GeometryMatrix,
                                   fill: bool = True,
                                   rng: Optional[np.random.Generator] = None) -> int:
        """Render a polygon matrix after mapping it through the stack top."""
        return self.render_polygon_matrix(m.transform(stack.get_top()), fill=fill, rng=rng)
