"""Provides a class containing helper functions for geometry calculations."""

import numpy as np
from numpy.typing import NDArray


class GeometryHelper:
    """A class containing helper functions for geometry calculations."""

    @staticmethod
    def polygon_normal(points: NDArray) -> NDArray:
        """Compute the unit normal of a closed 3D polygon using Newell's method.

        The normal follows the right-hand rule with respect to the vertex order,
        so a polygon listed counter-clockwise when seen from above has an upward
        normal.

        Parameters
        ----------
        points : NDArray
            An (n, 3) array of polygon vertices in order.

        Returns
        -------
        NDArray
            The unit normal, or the best-fit plane normal if the polygon encloses
            no area.
        """
        following = np.roll(points, -1, axis=0)
        normal = np.cross(points, following).sum(axis=0)
        length = np.linalg.norm(normal)
        if length > 1e-12:  # noqa: PLR2004
            return normal / length

        # Fall back to the direction of least variance
        centered = points - points.mean(axis=0)
        return np.linalg.svd(centered)[2][-1]

    @staticmethod
    def plane_basis(normal: NDArray) -> tuple[NDArray, NDArray]:
        """Get two orthonormal vectors spanning the plane with the given normal.

        Parameters
        ----------
        normal : NDArray
            The unit normal of the plane.

        Returns
        -------
        u : NDArray
            The first in-plane direction.
        v : NDArray
            The second in-plane direction, such that ``u x v == normal``.
        """
        helper = np.eye(3)[np.argmin(np.abs(normal))]
        u = np.cross(helper, normal)
        u /= np.linalg.norm(u)
        v = np.cross(normal, u)
        return u, v

    @staticmethod
    def project_to_plane(points: NDArray, normal: NDArray) -> NDArray:
        """Project 3D points onto 2D coordinates of the plane with the given normal.

        Parameters
        ----------
        points : NDArray
            An (n, 3) array of points.
        normal : NDArray
            The unit normal of the plane.

        Returns
        -------
        NDArray
            An (n, 2) array of in-plane coordinates.
        """
        u, v = GeometryHelper.plane_basis(normal)
        centered = points - points.mean(axis=0)
        return np.column_stack([centered @ u, centered @ v])

    @staticmethod
    def signed_area(polygon: NDArray) -> float:
        """Compute the signed area of a 2D polygon.

        Parameters
        ----------
        polygon : NDArray
            An (n, 2) array of polygon vertices in order.

        Returns
        -------
        float
            Positive for counter-clockwise polygons, negative for clockwise ones.
        """
        x, y = polygon[:, 0], polygon[:, 1]
        return float(0.5 * np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))

    @staticmethod
    def cross_2d(origin: NDArray, a: NDArray, b: NDArray) -> float:
        """Compute the z component of ``(a - origin) x (b - origin)``."""
        return float(
            (a[0] - origin[0]) * (b[1] - origin[1])
            - (a[1] - origin[1]) * (b[0] - origin[0]),
        )

    @staticmethod
    def point_in_triangle(
        point: NDArray,
        a: NDArray,
        b: NDArray,
        c: NDArray,
    ) -> bool:
        """Check if a 2D point lies inside or on a counter-clockwise triangle.

        Parameters
        ----------
        point : NDArray
            The (x, y) coordinate of the test point.
        a : NDArray
            The first corner of the triangle.
        b : NDArray
            The second corner of the triangle.
        c : NDArray
            The third corner of the triangle.

        Returns
        -------
        bool
            Whether the point is inside the triangle or on its edges.
        """
        return (
            GeometryHelper.cross_2d(a, b, point) >= 0
            and GeometryHelper.cross_2d(b, c, point) >= 0
            and GeometryHelper.cross_2d(c, a, point) >= 0
        )

    @staticmethod
    def triangle_areas(points: NDArray, triangles: NDArray) -> NDArray:
        """Compute the area of each triangle.

        Parameters
        ----------
        points : NDArray
            An (n, 3) array of vertex positions.
        triangles : NDArray
            An (m, 3) array of vertex indices.

        Returns
        -------
        NDArray
            The (m,) areas.
        """
        corners = points[triangles]
        cross = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])
        return 0.5 * np.linalg.norm(cross, axis=1)
