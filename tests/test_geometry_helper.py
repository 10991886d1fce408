"""Test the GeometryHelper class."""

import numpy as np
import pytest

from hole_mender.geometry_helper import GeometryHelper

SQUARE = [[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]]


@pytest.mark.parametrize(
    ("points", "expected_normal"),
    [
        (SQUARE, [0, 0, 1]),
        (SQUARE[::-1], [0, 0, -1]),
        ([[0, 0, 0], [0, 5, 0], [0, 5, 5], [0, 0, 5]], [1, 0, 0]),
        ([[0, 0, 0], [1, 0, 0], [0, 0, 1]], [0, -1, 0]),
        # Not planar, the normal averages the two halves
        ([[0, 0, 0], [1, 0, 0], [1, 1, 1], [0, 1, 0]], [-1 / 3, -1 / 3, 2 / 3]),
    ],
)
def test_polygon_normal(points: list[list[int]], expected_normal: list[float]) -> None:
    """Test GeometryHelper.polygon_normal."""
    expected = np.array(expected_normal) / np.linalg.norm(expected_normal)
    normal = GeometryHelper.polygon_normal(np.array(points, dtype=float))
    np.testing.assert_allclose(normal, expected, atol=1e-12)


def test_polygon_normal_without_area() -> None:
    """Test that collinear points get a unit normal perpendicular to the line."""
    points = np.array([[0, 0, 0], [1, 0, 0], [2, 0, 0], [3, 0, 0]], dtype=float)
    normal = GeometryHelper.polygon_normal(points)

    assert np.isclose(np.linalg.norm(normal), 1)
    assert np.isclose(normal @ [1, 0, 0], 0)


@pytest.mark.parametrize(
    "normal",
    [
        [0, 0, 1],
        [0, 0, -1],
        [1, 0, 0],
        [0, 1, 0],
        [1, 1, 1],
        [-3, 2, 0.5],
    ],
)
def test_plane_basis(normal: list[float]) -> None:
    """Test that the basis is orthonormal and right-handed."""
    n = np.array(normal, dtype=float) / np.linalg.norm(normal)
    u, v = GeometryHelper.plane_basis(n)

    assert np.isclose(np.linalg.norm(u), 1)
    assert np.isclose(np.linalg.norm(v), 1)
    assert np.isclose(u @ n, 0)
    assert np.isclose(v @ n, 0)
    np.testing.assert_allclose(np.cross(u, v), n, atol=1e-12)


@pytest.mark.parametrize(
    ("points", "normal", "expected_area"),
    [
        (SQUARE, [0, 0, 1], 1),
        (SQUARE, [0, 0, -1], -1),
        (SQUARE[::-1], [0, 0, 1], -1),
        ([[0, 0, 0], [0, 2, 0], [0, 2, 2], [0, 0, 2]], [1, 0, 0], 4),
    ],
)
def test_project_to_plane(
    points: list[list[int]],
    normal: list[int],
    expected_area: float,
) -> None:
    """Test that projecting keeps the area and the orientation about the normal."""
    projected = GeometryHelper.project_to_plane(
        np.array(points, dtype=float),
        np.array(normal, dtype=float),
    )

    assert projected.shape == (len(points), 2)
    assert np.isclose(GeometryHelper.signed_area(projected), expected_area)


@pytest.mark.parametrize(
    ("polygon", "expected"),
    [
        ([[0, 0], [1, 0], [1, 1], [0, 1]], 1),
        ([[0, 1], [1, 1], [1, 0], [0, 0]], -1),
        ([[0, 0], [4, 0], [0, 3]], 6),
        ([[0, 0], [1, 0], [2, 0]], 0),
    ],
)
def test_signed_area(polygon: list[list[int]], expected: float) -> None:
    """Test GeometryHelper.signed_area."""
    assert np.isclose(GeometryHelper.signed_area(np.array(polygon)), expected)


@pytest.mark.parametrize(
    ("origin", "a", "b", "expected"),
    [
        ([0, 0], [1, 0], [0, 1], 1),
        ([0, 0], [0, 1], [1, 0], -1),
        ([1, 1], [2, 1], [3, 1], 0),
        ([1, 1], [3, 1], [1, 4], 6),
    ],
)
def test_cross_2d(
    origin: list[int],
    a: list[int],
    b: list[int],
    expected: float,
) -> None:
    """Test GeometryHelper.cross_2d."""
    result = GeometryHelper.cross_2d(np.array(origin), np.array(a), np.array(b))
    assert np.isclose(result, expected)


@pytest.mark.parametrize(
    ("point", "expected"),
    [
        ([0.25, 0.25], True),
        ([0.5, 0.0], True),
        ([0.0, 0.0], True),
        ([0.6, 0.6], False),
        ([-0.1, 0.5], False),
        ([2.0, 2.0], False),
    ],
)
def test_point_in_triangle(point: list[float], *, expected: bool) -> None:
    """Test GeometryHelper.point_in_triangle, counting the edges as inside."""
    a, b, c = np.array([0.0, 0.0]), np.array([1.0, 0.0]), np.array([0.0, 1.0])
    assert GeometryHelper.point_in_triangle(np.array(point), a, b, c) is expected


def test_triangle_areas() -> None:
    """Test GeometryHelper.triangle_areas."""
    points = np.array([[0, 0, 0], [2, 0, 0], [0, 2, 0], [0, 0, 3]], dtype=float)
    triangles = np.array([[0, 1, 2], [0, 1, 3], [1, 2, 2]])

    areas = GeometryHelper.triangle_areas(points, triangles)

    np.testing.assert_allclose(areas, [2, 3, 0])
