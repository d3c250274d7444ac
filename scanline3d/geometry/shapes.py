"""Shape generators feeding GeometryMatrix instances.

Edge generators (append segments to an EDGE matrix):
    - add_circle: circle in the z = cz plane
    - add_hermite: cubic Hermite curve from endpoints and tangents
    - add_bezier: cubic Bézier curve from four control points

Polygon generators (append triangles to a POLYGON matrix):
    - add_box: axis-aligned box, x → x+w, y → y−h, z → z−d from the origin corner
    - add_sphere: latitude/longitude tessellated sphere
    - add_torus: torus around the y axis

Invariants:
    - Edge generators append an even number of points
    - Polygon generators append whole triangles, wound counter-clockwise
      when seen from outside, so back-face culling keeps exactly the faces
      pointing toward +z
    - Zero-area triangles (sphere poles, flat boxes) are not emitted

Curves are planar (z = 0), matching the 2D control points of the script
format. Callers place them in 3D through the transform stack.
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

import numpy as np

from .matrix import GeometryMatrix, GeometryMode

logger = logging.getLogger(__name__)

Point2 = Tuple[float, float]

HERMITE_BASIS = np.array([[2, -2, 1, 1],
                          [-3, 3, -2, -1],
                          [0, 0, 1, 0],
                          [1, 0, 0, 0]], dtype=np.float64)

BEZIER_BASIS = np.array([[-1, 3, -3, 1],
                         [3, -6, 3, 0],
                         [-3, 3, 0, 0],
                         [1, 0, 0, 0]], dtype=np.float64)

_MIN_AREA = 1e-12


def _require_mode(m: GeometryMatrix, mode: GeometryMode, shape: str) -> None:
    if m.mode is not mode:
        raise ValueError(f"{shape} needs a {mode.name.lower()} matrix, got {m.mode.name.lower()}")


def _polyline_to_edges(points: np.ndarray) -> np.ndarray:
    """(K, 3) polyline → (2(K-1), 3) independent segment endpoints."""
    edges = np.empty((2 * (len(points) - 1), 3), dtype=np.float64)
    edges[0::2] = points[:-1]
    edges[1::2] = points[1:]
    return edges


# ============================================================================
# EDGE GENERATORS
# ============================================================================

def add_circle(m: GeometryMatrix, center: Sequence[float], r: float, steps: int = 100) -> None:
    """Append a circle of radius r around center, parallel to the xy plane."""
    _require_mode(m, GeometryMode.EDGE, "circle")
    if steps < 3:
        raise ValueError(f"Circle needs at least 3 steps, got {steps}")
    cx, cy, cz = center
    t = np.linspace(0.0, 2.0 * np.pi, steps + 1)
    pts = np.column_stack([cx + r * np.cos(t), cy + r * np.sin(t), np.full_like(t, cz)])
    # Close exactly on the first point despite floating error at 2π
    pts[-1] = pts[0]
    m.extend(_polyline_to_edges(pts))


def _add_cubic(m: GeometryMatrix, basis: np.ndarray, controls: np.ndarray, steps: int) -> None:
    if steps < 1:
        raise ValueError(f"Curve needs at least 1 step, got {steps}")
    coeffs = basis @ controls  # (4, 2): rows a, b, c, d
    t = np.linspace(0.0, 1.0, steps + 1)
    powers = np.column_stack([t ** 3, t ** 2, t, np.ones_like(t)])
    xy = powers @ coeffs
    pts = np.column_stack([xy, np.zeros(len(t))])
    m.extend(_polyline_to_edges(pts))


def add_hermite(m: GeometryMatrix, p0: Point2, p1: Point2, r0: Point2, r1: Point2,
                steps: int = 100) -> None:
    """Append a cubic Hermite curve from p0 to p1 with tangents r0, r1."""
    _require_mode(m, GeometryMode.EDGE, "hermite")
    _add_cubic(m, HERMITE_BASIS, np.array([p0, p1, r0, r1], dtype=np.float64), steps)


def add_bezier(m: GeometryMatrix, p0: Point2, p1: Point2, p2: Point2, p3: Point2,
               steps: int = 100) -> None:
    """Append a cubic Bézier curve with control points p0..p3."""
    _require_mode(m, GeometryMode.EDGE, "bezier")
    _add_cubic(m, BEZIER_BASIS, np.array([p0, p1, p2, p3], dtype=np.float64), steps)


# ============================================================================
# POLYGON GENERATORS
# ============================================================================

def _append_outward(m: GeometryMatrix, tris: np.ndarray, inside: np.ndarray) -> int:
    """Append triangles wound so their normals point away from ``inside``.

    Parameters
    ----------
    tris : np.ndarray
        (T, 3, 3) vertices
    inside : np.ndarray
        (T, 3) or (3,) points on the inner side of each triangle

    Returns
    -------
    int
        Number of triangles appended (zero-area ones are dropped)
    """
    a, b, c = tris[:, 0], tris[:, 1], tris[:, 2]
    normals = np.cross(b - a, c - a)
    keep = np.linalg.norm(normals, axis=1) > _MIN_AREA
    centroid = (a + b + c) / 3.0
    flip = np.einsum('ij,ij->i', normals, centroid - inside) < 0

    oriented = tris.copy()
    oriented[flip, 1] = tris[flip, 2]
    oriented[flip, 2] = tris[flip, 1]
    oriented = oriented[keep]

    m.extend(oriented.reshape(-1, 3))
    return int(keep.sum())


def _grid_triangles(grid: np.ndarray, wrap_rows: bool, wrap_cols: bool) -> Tuple[np.ndarray, np.ndarray]:
    """Split a (R, C, 3) parametric grid into two triangles per cell.

    Returns the (T, 3, 3) triangles and the (T, 2) row/column index of the
    cell that produced each one.
    """
    rows, cols = grid.shape[:2]
    row_ids = np.arange(rows if wrap_rows else rows - 1)
    col_ids = np.arange(cols if wrap_cols else cols - 1)
    i, j = np.meshgrid(row_ids, col_ids, indexing='ij')
    i, j = i.ravel(), j.ravel()
    i1 = (i + 1) % rows
    j1 = (j + 1) % cols

    p00, p10, p11, p01 = grid[i, j], grid[i1, j], grid[i1, j1], grid[i, j1]
    tris = np.concatenate([np.stack([p00, p10, p11], axis=1),
                           np.stack([p00, p11, p01], axis=1)])
    cells = np.concatenate([np.column_stack([i, j])] * 2)
    return tris, cells


def add_box(m: GeometryMatrix, origin: Sequence[float], width: float, height: float,
            depth: float) -> int:
    """Append the 12 triangles of a box.

    The origin is the front-top-left corner; the box spans x → x+width,
    y → y−height, z → z−depth.
    """
    _require_mode(m, GeometryMode.POLYGON, "box")
    x0, y0, z0 = origin
    x1, y1, z1 = x0 + width, y0 - height, z0 - depth
    # Corner index bits: 1 → x1, 2 → y1, 4 → z1
    corners = np.array([[x1 if k & 1 else x0, y1 if k & 2 else y0, z1 if k & 4 else z0]
                        for k in range(8)], dtype=np.float64)
    faces = [(0, 1, 3, 2), (4, 5, 7, 6),  # front, back
             (0, 1, 5, 4), (2, 3, 7, 6),  # top, bottom
             (0, 2, 6, 4), (1, 3, 7, 5)]  # left, right
    quads = corners[np.array(faces)]
    tris = np.concatenate([quads[:, [0, 1, 2]], quads[:, [0, 2, 3]]])
    center = corners.mean(axis=0)
    return _append_outward(m, tris, center)


def sphere_points(center: Sequence[float], r: float, steps: int = 20) -> np.ndarray:
    """(steps, steps + 1, 3) grid: rotations about x by longitudes of a semicircle."""
    cx, cy, cz = center
    phi = np.linspace(0.0, 2.0 * np.pi, steps, endpoint=False)[:, None]
    theta = np.linspace(0.0, np.pi, steps + 1)[None, :]
    x = cx + r * np.cos(theta) * np.ones_like(phi)
    y = cy + r * np.sin(theta) * np.cos(phi)
    z = cz + r * np.sin(theta) * np.sin(phi)
    return np.stack([x, y, z], axis=-1)


def add_sphere(m: GeometryMatrix, center: Sequence[float], r: float, steps: int = 20) -> int:
    """Append a tessellated sphere; returns the number of triangles added."""
    _require_mode(m, GeometryMode.POLYGON, "sphere")
    if steps < 3:
        raise ValueError(f"Sphere needs at least 3 steps, got {steps}")
    grid = sphere_points(center, r, steps)
    tris, _ = _grid_triangles(grid, wrap_rows=True, wrap_cols=False)
    return _append_outward(m, tris, np.asarray(center, dtype=np.float64))


def torus_points(center: Sequence[float], r1: float, r2: float, steps: int = 20) -> np.ndarray:
    """(steps, steps, 3) grid of a torus; r1 tube radius, r2 ring radius."""
    cx, cy, cz = center
    phi = np.linspace(0.0, 2.0 * np.pi, steps, endpoint=False)[:, None]
    theta = np.linspace(0.0, 2.0 * np.pi, steps, endpoint=False)[None, :]
    ring = r1 * np.cos(theta) + r2
    x = cx + np.cos(phi) * ring
    y = cy + r1 * np.sin(theta) * np.ones_like(phi)
    z = cz - np.sin(phi) * ring
    return np.stack([x, y, z], axis=-1)


def add_torus(m: GeometryMatrix, center: Sequence[float], r1: float, r2: float,
              steps: int = 20) -> int:
    """Append a tessellated torus around the y axis; returns triangles added."""
    _require_mode(m, GeometryMode.POLYGON, "torus")
    if steps < 3:
        raise ValueError(f"Torus needs at least 3 steps, got {steps}")
    cx, cy, cz = center
    grid = torus_points(center, r1, r2, steps)
    tris, cells = _grid_triangles(grid, wrap_rows=True, wrap_cols=True)

    # Inner reference: tube axis halfway between the cell's two longitudes
    phi_mid = (cells[:, 0] + 0.5) * (2.0 * np.pi / steps)
    inside = np.column_stack([cx + r2 * np.cos(phi_mid),
                              np.full_like(phi_mid, cy),
                              cz - r2 * np.sin(phi_mid)])
    return _append_outward(m, tris, inside)
