"""Test rebuilding a surface from points by advancing a front."""

import numpy as np
import pytest
import trimesh
from numpy.typing import NDArray

from hole_mender.errors import ConfigurationError, InputError
from hole_mender.surface_reconstructor import SurfaceReconstructor


def sphere_points() -> NDArray[np.float64]:
    """Get the 162 points of a unit icosphere."""
    return np.array(trimesh.creation.icosphere(subdivisions=2).vertices)


def perimeters(points: NDArray, faces: NDArray) -> NDArray[np.float64]:
    """Get the perimeter of each face."""
    corners = points[faces]
    return np.linalg.norm(corners - np.roll(corners, 1, axis=1), axis=2).sum(axis=1)


def test_surface_reconstructor_init() -> None:
    """Test that the SurfaceReconstructor class can be initialized."""
    SurfaceReconstructor()
    SurfaceReconstructor(debug=True)


def test_reconstruct_sphere() -> None:
    """Test that the faces cover the sphere without non-manifold edges."""
    points = sphere_points()

    faces = SurfaceReconstructor().reconstruct(points)

    assert faces.shape[1] == 3  # noqa: PLR2004
    assert len(faces) > 100  # noqa: PLR2004
    mesh = trimesh.Trimesh(points, faces, process=False)
    # Each directed edge belongs to one face at most
    assert len(trimesh.grouping.unique_rows(mesh.edges)[0]) == len(mesh.edges)
    assert mesh.is_winding_consistent


@pytest.mark.parametrize("max_triangle_perimeter", [1.0, 1.5, 3.0])
def test_perimeter_bound(max_triangle_perimeter: float) -> None:
    """Test that no created triangle is longer around than the bound."""
    points = sphere_points()

    faces = SurfaceReconstructor().reconstruct(points, max_triangle_perimeter)

    assert len(faces) > 0
    assert perimeters(points, faces).max() <= max_triangle_perimeter


def test_perimeter_bound_below_every_edge() -> None:
    """Test that a bound shorter than any triangle creates no faces."""
    faces = SurfaceReconstructor().reconstruct(sphere_points(), 0.1)

    assert faces.shape == (0, 3)


def test_reconstruct_flat_points() -> None:
    """Test that points in a plane are still connected."""
    ys, xs = np.mgrid[0:5, 0:5]
    points = np.column_stack((xs.ravel(), ys.ravel(), np.zeros(25)))

    faces = SurfaceReconstructor().reconstruct(points, 4.0)

    assert len(faces) > 0
    assert perimeters(points, faces).max() <= 4.0  # noqa: PLR2004


@pytest.mark.parametrize("radius_ratio_bound", [0.0, -1.0])
def test_invalid_radius_ratio_bound(radius_ratio_bound: float) -> None:
    """Test that the radius ratio bound must be positive."""
    with pytest.raises(ConfigurationError, match="radius ratio bound"):
        SurfaceReconstructor().reconstruct(sphere_points(), 1.0, radius_ratio_bound)


def test_too_few_points() -> None:
    """Test that a surface needs at least four points."""
    with pytest.raises(InputError, match="fewer than 4 points"):
        SurfaceReconstructor().reconstruct(np.eye(3))
