"""Unit tests for the planar geometry helpers."""

import numpy as np
import pytest

from rapidocr_lite.geometry import (
    convex_hull,
    minimum_area_rectangle,
    offset_polygon,
    polygon_area,
    polygon_perimeter,
    rectangle_size,
    solve_homography,
    unclip,
)


def _inside_or_on(hull, point, tol=1e-9):
    n = len(hull)
    for i in range(n):
        a, b = hull[i], hull[(i + 1) % n]
        cross = (b[0] - a[0]) * (point[1] - a[1]) - (b[1] - a[1]) * (point[0] - a[0])
        if cross < -tol:
            return False
    return True


def _apply(H, x, y):
    v = H @ np.array([x, y, 1.0])
    return v[:2] / v[2]


class TestConvexHull:
    """Monotone chain hull"""

    def test_square_with_interior_points(self):
        pts = [(0, 0), (4, 0), (4, 4), (0, 4), (2, 2), (1, 3), (3, 1)]
        hull = convex_hull(pts)
        assert len(hull) == 4
        assert {tuple(p) for p in hull} == {(0, 0), (4, 0), (4, 4), (0, 4)}

    def test_counter_clockwise(self):
        hull = convex_hull([(0, 0), (4, 0), (4, 4), (0, 4)])
        assert polygon_area(hull) > 0

    def test_collinear_points_dropped(self):
        hull = convex_hull([(0, 0), (1, 0), (2, 0), (2, 2), (0, 2)])
        assert (1.0, 0.0) not in {tuple(p) for p in hull}

    def test_contains_all_points(self):
        rng = np.random.default_rng(7)
        pts = rng.uniform(-50, 50, size=(200, 2))
        hull = convex_hull(pts)
        for p in pts:
            assert _inside_or_on(hull, p, tol=1e-6)

    def test_small_inputs_returned_unchanged(self):
        assert len(convex_hull([(1, 1)])) == 1
        assert len(convex_hull([(1, 1), (2, 2)])) == 2

    def test_duplicated_points_returned_unchanged(self):
        assert len(convex_hull([(3, 4)] * 3)) == 3
        out = convex_hull([(0, 0), (0, 0), (5, 0)])
        assert out.tolist() == [[0, 0], [0, 0], [5, 0]]


class TestMinimumAreaRectangle:
    """Rotating-edge minimum area rectangle"""

    def test_axis_aligned_rectangle(self):
        rect = minimum_area_rectangle([(10, 20), (110, 20), (110, 50), (10, 50)])
        w, h = rectangle_size(rect)
        assert sorted([w, h]) == pytest.approx([30.0, 100.0])
        assert {(round(x), round(y)) for x, y in rect} == {(10, 20), (110, 20), (110, 50), (10, 50)}

    def test_rotated_rectangle(self):
        theta = np.deg2rad(30)
        R = np.array([[np.cos(theta), -np.sin(theta)], [np.sin(theta), np.cos(theta)]])
        corners = np.array([(0, 0), (80, 0), (80, 20), (0, 20)], dtype=np.float64) @ R.T
        rect = minimum_area_rectangle(corners)
        w, h = rectangle_size(rect)
        assert sorted([w, h]) == pytest.approx([20.0, 80.0])

    def test_encloses_all_points(self):
        rng = np.random.default_rng(3)
        pts = rng.uniform(0, 100, size=(60, 2))
        rect = minimum_area_rectangle(pts)
        if polygon_area(rect) < 0:
            rect = rect[::-1]
        for p in pts:
            assert _inside_or_on(rect, p, tol=1e-6)

    def test_area_not_larger_than_bounding_box(self):
        pts = [(0, 0), (10, 10), (20, 0), (10, -10)]
        w, h = rectangle_size(minimum_area_rectangle(pts))
        assert w * h <= 400.0 + 1e-6

    def test_degenerate_inputs(self):
        single = minimum_area_rectangle([(3, 4)])
        assert single.shape == (4, 2)
        assert rectangle_size(single) == (0.0, 0.0)

        pair = minimum_area_rectangle([(0, 0), (5, 0)])
        assert min(rectangle_size(pair)) == 0.0

    def test_empty_input_raises(self):
        with pytest.raises(ValueError):
            minimum_area_rectangle(np.zeros((0, 2)))


class TestPolygonMeasures:
    def test_area_sign_follows_orientation(self):
        square = [(0, 0), (2, 0), (2, 2), (0, 2)]
        assert polygon_area(square) == pytest.approx(4.0)
        assert polygon_area(square[::-1]) == pytest.approx(-4.0)

    def test_perimeter(self):
        assert polygon_perimeter([(0, 0), (3, 0), (3, 4), (0, 4)]) == pytest.approx(14.0)


class TestOffsetPolygon:
    """Round-join polygon offsetting"""

    def test_growth_increases_area(self):
        square = [(0, 0), (100, 0), (100, 100), (0, 100)]
        grown = offset_polygon(square, 10)
        # square plus side strips plus four quarter circles
        expected = 100 * 100 + 4 * 100 * 10 + np.pi * 10 ** 2
        assert abs(polygon_area(grown)) == pytest.approx(expected, rel=0.01)

    def test_shrink_recovers_original(self):
        square = [(0, 0), (100, 0), (100, 100), (0, 100)]
        grown = offset_polygon(square, 10)
        back = offset_polygon(grown, -10)
        assert abs(polygon_area(back)) == pytest.approx(10000.0, rel=0.01)

    def test_collapse_returns_none(self):
        assert offset_polygon([(0, 0), (4, 0), (4, 4), (0, 4)], -10) is None

    def test_unclip_distance(self):
        box = [(0, 0), (100, 0), (100, 20), (0, 20)]
        expanded = unclip(box, 1.5)
        # distance = 2000 * 1.5 / 240 = 12.5
        xs, ys = expanded[:, 0], expanded[:, 1]
        assert xs.min() == pytest.approx(-12.5, abs=0.5)
        assert ys.max() == pytest.approx(32.5, abs=0.5)

    def test_unclip_degenerate_box(self):
        assert unclip([(1, 1), (1, 1), (1, 1), (1, 1)], 1.5) is None


class TestSolveHomography:
    """Rectangle to quadrilateral projective transform"""

    def test_maps_corners(self):
        quad = [(12, 5), (90, 15), (85, 60), (8, 50)]
        H = solve_homography(*quad, 100, 40)
        assert H[2, 2] == pytest.approx(1.0)
        for (x, y), target in zip([(0, 0), (100, 0), (100, 40), (0, 40)], quad):
            assert tuple(_apply(H, x, y)) == pytest.approx(target, abs=1e-6)

    def test_axis_aligned_is_translation_and_scale(self):
        H = solve_homography((10, 20), (60, 20), (60, 45), (10, 45), 50, 25)
        assert H == pytest.approx(np.array([[1, 0, 10], [0, 1, 20], [0, 0, 1]]), abs=1e-9)

    def test_degenerate_quad_gives_identity(self):
        H = solve_homography((0, 0), (10, 10), (20, 20), (30, 30), 10, 10)
        assert np.array_equal(H, np.eye(3))
