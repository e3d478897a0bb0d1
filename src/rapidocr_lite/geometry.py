"""Planar geometry used by the detection post-processing and the region sampler.

All functions take and return ``(N, 2)`` float arrays in image coordinates.
"""

from typing import Optional, Sequence, Tuple

import numpy as np
import pyclipper

# pyclipper works on integers; scale float coordinates before offsetting
_CLIPPER_SCALE = 1000.0
_HOMOGRAPHY_EPS = 1e-10


def _cross(o: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points) -> np.ndarray:
    """Andrew's monotone chain.

    Args:
        points: Point set (N, 2)

    Returns:
        Hull vertices in counter-clockwise order without the closing point.
        Inputs with two or fewer distinct points are returned unchanged.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(np.unique(pts, axis=0)) <= 2:
        return pts

    order = np.lexsort((pts[:, 1], pts[:, 0]))
    pts = pts[order]

    lower = []
    for p in pts:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)

    upper = []
    for p in pts[::-1]:
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)

    # last point of each chain is the first point of the other one
    return np.array(lower[:-1] + upper[:-1], dtype=np.float64)


def minimum_area_rectangle(points) -> np.ndarray:
    """Smallest-area enclosing rectangle of any orientation.

    Rotating-edge sweep over the convex hull: every hull edge is tried as the
    direction of one rectangle side and the hull is projected onto it and onto
    its normal.

    Args:
        points: Point set (N, 2), N >= 1

    Returns:
        Rectangle corners (4, 2) in cyclic order. One or two distinct input
        points give a zero-area rectangle.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) == 0:
        raise ValueError("minimum_area_rectangle() needs at least one point")

    hull = convex_hull(np.unique(pts, axis=0))
    if len(hull) == 1:
        return np.repeat(hull, 4, axis=0)
    if len(hull) == 2:
        return np.array([hull[0], hull[1], hull[1], hull[0]])

    best = None
    best_area = np.inf
    for i in range(len(hull)):
        origin = hull[i]
        edge = hull[(i + 1) % len(hull)] - origin
        length = np.hypot(edge[0], edge[1])
        if length == 0:
            continue
        u = edge / length
        v = np.array([-u[1], u[0]])

        rel = hull - origin
        proj_u = rel @ u
        proj_v = rel @ v
        area = (proj_u.max() - proj_u.min()) * (proj_v.max() - proj_v.min())
        if area < best_area:
            best_area = area
            best = (origin, u, v, proj_u.min(), proj_u.max(), proj_v.min(), proj_v.max())

    origin, u, v, u_min, u_max, v_min, v_max = best
    return np.array([
        origin + u * u_min + v * v_min,
        origin + u * u_max + v * v_min,
        origin + u * u_max + v * v_max,
        origin + u * u_min + v * v_max,
    ])


def rectangle_size(rect) -> Tuple[float, float]:
    """Return (width, height) of a rectangle given in cyclic corner order."""
    rect = np.asarray(rect, dtype=np.float64).reshape(4, 2)
    return (
        float(np.linalg.norm(rect[1] - rect[0])),
        float(np.linalg.norm(rect[2] - rect[1])),
    )


def polygon_area(points) -> float:
    """Signed shoelace area, positive for counter-clockwise vertices."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 3:
        return 0.0
    x, y = pts[:, 0], pts[:, 1]
    return float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)) / 2.0


def polygon_perimeter(points) -> float:
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 2:
        return 0.0
    return float(np.linalg.norm(np.roll(pts, -1, axis=0) - pts, axis=1).sum())


def offset_polygon(polygon, distance: float) -> Optional[np.ndarray]:
    """Grow (or shrink, for a negative distance) a polygon with round joins.

    Returns:
        First contour of the offset result, or None when it collapses.
    """
    pts = np.asarray(polygon, dtype=np.float64).reshape(-1, 2)
    offset = pyclipper.PyclipperOffset()
    offset.ArcTolerance = 0.25 * _CLIPPER_SCALE
    offset.AddPath(
        pyclipper.scale_to_clipper(pts.tolist(), _CLIPPER_SCALE),
        pyclipper.JT_ROUND,
        pyclipper.ET_CLOSEDPOLYGON,
    )
    solution = offset.Execute(distance * _CLIPPER_SCALE)
    if not solution:
        return None
    return np.array(pyclipper.scale_from_clipper(solution[0], _CLIPPER_SCALE), dtype=np.float64)


def unclip(box, unclip_ratio: float) -> Optional[np.ndarray]:
    """Expand a box by ``area * unclip_ratio / perimeter``."""
    perimeter = polygon_perimeter(box)
    if perimeter == 0:
        return None
    distance = abs(polygon_area(box)) * unclip_ratio / perimeter
    return offset_polygon(box, distance)


def solve_homography(
    p0: Sequence[float],
    p1: Sequence[float],
    p2: Sequence[float],
    p3: Sequence[float],
    width: float,
    height: float,
) -> np.ndarray:
    """Projective transform from a ``width x height`` rectangle onto a quad.

    (0, 0), (w, 0), (w, h) and (0, h) map to p0, p1, p2 and p3. The matrix
    maps destination pixels to source pixels, which is what pull-sampling
    needs.

    Returns:
        3x3 matrix with ``H[2, 2] == 1``; identity when the quad is degenerate.
    """
    x0, y0 = float(p0[0]), float(p0[1])
    x1, y1 = float(p1[0]), float(p1[1])
    x2, y2 = float(p2[0]), float(p2[1])
    x3, y3 = float(p3[0]), float(p3[1])

    dx1, dx2, dx3 = x1 - x2, x3 - x2, x0 - x1 + x2 - x3
    dy1, dy2, dy3 = y1 - y2, y3 - y2, y0 - y1 + y2 - y3

    det = dx1 * dy2 - dx2 * dy1
    if abs(det) < _HOMOGRAPHY_EPS or width == 0 or height == 0:
        return np.eye(3)

    g = (dx3 * dy2 - dx2 * dy3) / det
    h = (dx1 * dy3 - dx3 * dy1) / det

    # unit square -> quad
    square_to_quad = np.array([
        [x1 - x0 + g * x1, x3 - x0 + h * x3, x0],
        [y1 - y0 + g * y1, y3 - y0 + h * y3, y0],
        [g, h, 1.0],
    ])
    return square_to_quad @ np.diag([1.0 / width, 1.0 / height, 1.0])
