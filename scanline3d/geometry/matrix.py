"""Geometry matrices and homogeneous transform factories.

A GeometryMatrix packs homogeneous points as the columns of a (4, N) float
array and carries a mode tag telling consumers how to group them:

    - EDGE: points taken two at a time, each pair an independent segment
    - POLYGON: points taken three at a time, vertex order defines winding

Transforms are (4, 4) float arrays acting on column points, so ``A @ B``
applied to a point performs B first, then A.

Lifecycle:
    created empty → appended to (raw edges/triangles or shape generators)
    → transform(top) produces a new matrix → rendered once → cleared

Invariants:
    - Every stored point has w == 1
    - Point count is a multiple of the mode's arity when consumed;
      a ragged matrix raises MalformedGeometryError, never truncated
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterator, Sequence, Tuple

import numpy as np

Point3 = Tuple[float, float, float]


class MalformedGeometryError(ValueError):
    """Raised when a matrix cannot be grouped by its mode's arity."""


class GeometryMode(Enum):
    """Grouping mode of a GeometryMatrix; the value is the arity."""
    EDGE = 2
    POLYGON = 3

    @property
    def arity(self) -> int:
        return self.value


class GeometryMatrix:
    """Ordered homogeneous points grouped into edges or triangles.

    Parameters
    ----------
    mode : GeometryMode
        Grouping mode (EDGE or POLYGON)
    points : np.ndarray, optional
        Initial (4, N) column points; copied

    Attributes
    ----------
    mode : GeometryMode
        Grouping mode, fixed for the matrix lifetime
    """

    def __init__(self, mode: GeometryMode, points: np.ndarray = None):
        self.mode = mode
        if points is None:
            self._points = np.zeros((4, 0), dtype=np.float64)
        else:
            points = np.asarray(points, dtype=np.float64)
            if points.ndim != 2 or points.shape[0] != 4:
                raise ValueError(f"Points must have shape (4, N), got {points.shape}")
            self._points = points.copy()

    @classmethod
    def edges(cls) -> "GeometryMatrix":
        """Empty edge matrix."""
        return cls(GeometryMode.EDGE)

    @classmethod
    def polygons(cls) -> "GeometryMatrix":
        """Empty polygon matrix."""
        return cls(GeometryMode.POLYGON)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def points(self) -> np.ndarray:
        """Read-only (4, N) view of the stored points."""
        view = self._points.view()
        view.flags.writeable = False
        return view

    def __len__(self) -> int:
        return self._points.shape[1]

    def __repr__(self) -> str:
        return f"GeometryMatrix({self.mode.name}, points={len(self)})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, GeometryMatrix):
            return NotImplemented
        return self.mode == other.mode and np.array_equal(self._points, other._points)

    def is_complete(self) -> bool:
        """True when the point count is a multiple of the mode's arity."""
        return len(self) % self.mode.arity == 0

    # ------------------------------------------------------------------
    # Appending
    # ------------------------------------------------------------------

    def append_point(self, x: float, y: float, z: float) -> None:
        """Append one raw point; grouping is only checked on consumption."""
        column = np.array([[x], [y], [z], [1.0]], dtype=np.float64)
        self._points = np.hstack([self._points, column])

    def append_edge(self, x0: float, y0: float, z0: float,
                    x1: float, y1: float, z1: float) -> None:
        """Append the segment (x0, y0, z0) → (x1, y1, z1)."""
        self.extend([(x0, y0, z0), (x1, y1, z1)])

    def append_triangle(self, p0: Sequence[float], p1: Sequence[float],
                        p2: Sequence[float]) -> None:
        """Append a triangle; (p0, p1, p2) counter-clockwise faces +z."""
        self.extend([p0, p1, p2])

    def extend(self, points) -> None:
        """Bulk append an (N, 3) or (N, 4) array of row points.

        Raises
        ------
        ValueError
            If the array is not (N, 3)/(N, 4) or a w coordinate is not 1
        """
        rows = np.asarray(points, dtype=np.float64)
        if rows.size == 0:
            return
        if rows.ndim != 2 or rows.shape[1] not in (3, 4):
            raise ValueError(f"Expected (N, 3) or (N, 4) points, got {rows.shape}")
        if rows.shape[1] == 3:
            rows = np.hstack([rows, np.ones((rows.shape[0], 1))])
        elif not np.allclose(rows[:, 3], 1.0):
            raise ValueError("Homogeneous points must have w == 1")
        self._points = np.hstack([self._points, rows.T])

    def clear(self) -> None:
        """Drop all points, keeping the mode."""
        self._points = np.zeros((4, 0), dtype=np.float64)

    # ------------------------------------------------------------------
    # Transforming / consuming
    # ------------------------------------------------------------------

    def transform(self, t: np.ndarray) -> "GeometryMatrix":
        """Return ``t @ self`` as a new matrix of the same mode.

        Points are renormalized so w == 1 after the multiplication.
        """
        t = np.asarray(t, dtype=np.float64)
        if t.shape != (4, 4):
            raise ValueError(f"Transform must be 4x4, got {t.shape}")
        out = t @ self._points
        if len(self) and not np.allclose(out[3], 1.0):
            out = out / out[3]
        return GeometryMatrix(self.mode, out)

    def groups(self) -> Iterator[Tuple[Point3, ...]]:
        """Yield consecutive xyz tuples of ``mode.arity`` points.

        Raises
        ------
        MalformedGeometryError
            If the point count is not a multiple of the arity
        """
        arity = self.mode.arity
        if not self.is_complete():
            raise MalformedGeometryError(
                f"{self.mode.name.lower()} matrix has {len(self)} points, "
                f"not a multiple of {arity}"
            )
        xyz = self._points[:3].T
        for i in range(0, len(self), arity):
            yield tuple(tuple(float(c) for c in xyz[i + k]) for k in range(arity))


# ============================================================================
# TRANSFORM FACTORIES
# ============================================================================

def identity() -> np.ndarray:
    """4x4 identity transform."""
    return np.eye(4, dtype=np.float64)


def scale(sx: float, sy: float, sz: float) -> np.ndarray:
    """Axis-aligned scale about the origin."""
    return np.diag([sx, sy, sz, 1.0]).astype(np.float64)


def move(tx: float, ty: float, tz: float) -> np.ndarray:
    """Translation by (tx, ty, tz)."""
    t = identity()
    t[:3, 3] = (tx, ty, tz)
    return t


def rotate_x(degrees: float) -> np.ndarray:
    """Counter-clockwise rotation about +x (y toward z)."""
    c, s = _cos_sin(degrees)
    return np.array([[1, 0, 0, 0],
                     [0, c, -s, 0],
                     [0, s, c, 0],
                     [0, 0, 0, 1]], dtype=np.float64)


def rotate_y(degrees: float) -> np.ndarray:
    """Counter-clockwise rotation about +y (z toward x)."""
    c, s = _cos_sin(degrees)
    return np.array([[c, 0, s, 0],
                     [0, 1, 0, 0],
                     [-s, 0, c, 0],
                     [0, 0, 0, 1]], dtype=np.float64)


def rotate_z(degrees: float) -> np.ndarray:
    """Counter-clockwise rotation about +z (x toward y)."""
    c, s = _cos_sin(degrees)
    return np.array([[c, -s, 0, 0],
                     [s, c, 0, 0],
                     [0, 0, 1, 0],
                     [0, 0, 0, 1]], dtype=np.float64)


_ROTATIONS = {'x': rotate_x, 'y': rotate_y, 'z': rotate_z}


def rotate(axis: str, degrees: float) -> np.ndarray:
    """Rotation about a named axis ('x', 'y' or 'z').

    Raises
    ------
    ValueError
        If axis is not one of x, y, z
    """
    try:
        return _ROTATIONS[axis.lower()](degrees)
    except KeyError:
        raise ValueError(f"Unknown rotation axis '{axis}', expected one of x, y, z") from None


def _cos_sin(degrees: float) -> Tuple[float, float]:
    rad = math.radians(degrees)
    return math.cos(rad), math.sin(rad)
