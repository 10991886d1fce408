"""Provides the class that rebuilds a triangle surface from a set of points."""

import heapq
import logging
import math
from collections import defaultdict

import numpy as np
import scipy.spatial
from numpy.typing import NDArray

from hole_mender.errors import ConfigurationError, InputError

logging.basicConfig(format="%(message)s")

RADIUS_RATIO_BOUND = 5.0

# Half the angle of the wedge a new triangle may not fold into
BETA = 0.52

# The four triangles of a tetrahedron
TETRAHEDRON_FACETS = [[0, 1, 2], [0, 1, 3], [0, 2, 3], [1, 2, 3]]

MIN_POINTS = 4

Edge = tuple[int, int]


class SurfaceReconstructor:
    """The class for reconstructing a surface by advancing a front.

    The candidate triangles are the facets of the 3D Delaunay triangulation of
    the points. Starting from the candidate with the smallest circumradius, the
    surface grows one triangle at a time across its border edges, always taking
    the smallest candidate next. A candidate is refused when:

    - its perimeter exceeds the bound, when one is given
    - its circumradius is more than ``radius_ratio_bound`` times the one of
      the triangle it grows from
    - it folds back onto the triangle it grows from
    - it would make an edge or a vertex non-manifold

    When the front can no longer grow, a new surface is started from the
    smallest candidate whose points are all unused.
    """

    def __init__(self, *, debug: bool = False) -> None:
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def reconstruct(
        self,
        points: NDArray,
        max_triangle_perimeter: float = 0.0,
        radius_ratio_bound: float = RADIUS_RATIO_BOUND,
    ) -> NDArray[np.int64]:
        """Triangulate the surface through a set of points.

        Parameters
        ----------
        points : NDArray
            The (n, 3) points to connect.
        max_triangle_perimeter : float, optional
            The largest perimeter of a created triangle. A non-positive value
            does not limit the perimeter, by default 0.0
        radius_ratio_bound : float, optional
            How much larger than its neighbor a triangle may be. Larger values
            allow more, but less regular, triangles, by default 5.0

        Returns
        -------
        NDArray[np.int64]
            The (m, 3) faces, indexing into ``points``. Every face is oriented
            consistently with the faces it shares an edge with.

        Raises
        ------
        ConfigurationError
            If the radius ratio bound is not positive.
        InputError
            If there are too few points or they span no volume.
        """
        if radius_ratio_bound <= 0:
            msg = f"The radius ratio bound must be positive, got {radius_ratio_bound}"
            raise ConfigurationError(msg)
        points = np.asarray(points, dtype=np.float64)
        if len(points) < MIN_POINTS:
            msg = (
                f"Cannot reconstruct a surface from fewer than {MIN_POINTS} "
                f"points, got {len(points)}"
            )
            raise InputError(msg)

        facets, radii = self._candidates(points, max_triangle_perimeter)
        self.logger.debug("Found %d candidate triangles", len(facets))
        faces = self._advance(points, facets, radii, radius_ratio_bound)
        self.logger.debug(
            "Created %d triangles over %d of %d points",
            len(faces),
            len(np.unique(faces)),
            len(points),
        )
        return faces

    def _candidates(
        self,
        points: NDArray[np.float64],
        max_triangle_perimeter: float,
    ) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
        """Get the Delaunay facets that may be used and their circumradii.

        Parameters
        ----------
        points : NDArray[np.float64]
            The points to connect.
        max_triangle_perimeter : float
            The largest perimeter of a candidate, ignored if not positive.

        Returns
        -------
        facets : NDArray[np.int64]
            The (k, 3) candidate triangles with sorted vertex indices.
        radii : NDArray[np.float64]
            The circumradius of each candidate.
        """
        try:
            # Joggling the input keeps flat and co-spherical point sets usable
            delaunay = scipy.spatial.Delaunay(points, qhull_options="QJ")
        except scipy.spatial.QhullError as e:
            msg = "The points do not span a volume"
            raise InputError(msg) from e

        facets = delaunay.simplices[:, TETRAHEDRON_FACETS].reshape(-1, 3)
        facets = np.unique(np.sort(facets, axis=1), axis=0)

        corners = points[facets]
        sides = np.linalg.norm(corners - np.roll(corners, 1, axis=1), axis=2)
        doubled_areas = np.linalg.norm(
            np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0]),
            axis=1,
        )

        usable = doubled_areas > 0
        if max_triangle_perimeter > 0:
            usable &= sides.sum(axis=1) <= max_triangle_perimeter
        facets = facets[usable]
        # R = abc / (4 * area)
        radii = np.prod(sides[usable], axis=1) / (2 * doubled_areas[usable])
        return facets.astype(np.int64), radii

    def _advance(
        self,
        points: NDArray[np.float64],
        facets: NDArray[np.int64],
        radii: NDArray[np.float64],
        radius_ratio_bound: float,
    ) -> NDArray[np.int64]:
        """Grow surfaces across the candidate triangles, smallest first.

        Parameters
        ----------
        points : NDArray[np.float64]
            The points to connect.
        facets : NDArray[np.int64]
            The candidate triangles.
        radii : NDArray[np.float64]
            The circumradius of each candidate.
        radius_ratio_bound : float
            How much larger than its neighbor a triangle may be.

        Returns
        -------
        NDArray[np.int64]
            The created faces.
        """
        edge_facets: defaultdict[Edge, list[int]] = defaultdict(list)
        for index, (a, b, c) in enumerate(facets.tolist()):
            for edge in ((a, b), (a, c), (b, c)):
                edge_facets[edge].append(index)

        faces: list[tuple[int, int, int]] = []
        face_radii: list[float] = []
        normals: list[NDArray[np.float64]] = []
        # Directed edge to the face it belongs to
        directed: dict[Edge, int] = {}
        used_facets: set[int] = set()
        in_surface = np.zeros(len(points), dtype=bool)
        center = points.mean(axis=0)
        min_normal_dot = math.cos(math.pi - BETA)

        def add_face(facet: int, face: tuple[int, int, int]) -> None:
            a, b, c = face
            normal = np.cross(points[b] - points[a], points[c] - points[a])
            normals.append(normal / np.linalg.norm(normal))
            for edge in ((a, b), (b, c), (c, a)):
                directed[edge] = len(faces)
            faces.append(face)
            face_radii.append(radii[facet])
            used_facets.add(facet)
            in_surface[list(face)] = True

        def push_candidates(heap: list, face_index: int) -> None:
            a, b, c = faces[face_index]
            for u, v in ((a, b), (b, c), (c, a)):
                if (v, u) in directed:
                    continue
                for facet in edge_facets[(min(u, v), max(u, v))]:
                    if facet in used_facets:
                        continue
                    if radii[facet] > radius_ratio_bound * face_radii[face_index]:
                        continue
                    heapq.heappush(heap, (radii[facet], facet, u, v, face_index))

        def try_add(facet: int, u: int, v: int, face_index: int) -> bool:
            if facet in used_facets or (v, u) in directed:
                return False
            (c,) = set(facets[facet].tolist()) - {u, v}
            # Cross the border edge u -> v in the opposite direction
            face = (v, u, c)
            if any(edge in directed for edge in ((v, u), (u, c), (c, v))):
                return False
            if in_surface[c] and (c, u) not in directed and (v, c) not in directed:
                # Would pinch the surface at c
                return False
            normal = np.cross(points[u] - points[v], points[c] - points[v])
            normal /= np.linalg.norm(normal)
            if np.dot(normal, normals[face_index]) < min_normal_dot:
                return False
            add_face(facet, face)
            return True

        surfaces = 0
        for seed in np.argsort(radii, kind="stable").tolist():
            a, b, c = facets[seed].tolist()
            if in_surface[[a, b, c]].any():
                continue

            # Face the seed away from the middle of the points
            corners = points[[a, b, c]]
            normal = np.cross(corners[1] - corners[0], corners[2] - corners[0])
            if np.dot(normal, corners.mean(axis=0) - center) < 0:
                b, c = c, b
            add_face(seed, (a, b, c))
            surfaces += 1

            heap: list = []
            push_candidates(heap, len(faces) - 1)
            while heap:
                _, facet, u, v, face_index = heapq.heappop(heap)
                if try_add(facet, u, v, face_index):
                    push_candidates(heap, len(faces) - 1)

        self.logger.debug("Grew %d separate surfaces", surfaces)
        return np.array(faces, dtype=np.int64).reshape(-1, 3)
