"""Provides the class that triangulates, refines and fairs a single hole."""

import heapq
import logging
import math
from collections.abc import Set as AbstractSet
from dataclasses import dataclass, field

import numpy as np
import scipy.sparse
import scipy.sparse.linalg
from numpy.typing import NDArray

from hole_mender.errors import PatchError
from hole_mender.geometry_helper import GeometryHelper
from hole_mender.half_edge_mesh import HalfEdgeMesh

logging.basicConfig(format="%(message)s")

MIN_LOOP_EDGES = 3


@dataclass
class PatchResult:
    """The outcome of filling one hole.

    Attributes
    ----------
    new_vertices : NDArray[np.int64]
        The indices of the vertices added to the mesh.
    new_faces : NDArray[np.int64]
        The indices of the faces added to the mesh.
    converged : bool
        Whether fairing the patch converged. The patch is kept either way.
    """

    new_vertices: NDArray[np.int64] = field(
        default_factory=lambda: np.empty(0, dtype=np.int64),
    )
    new_faces: NDArray[np.int64] = field(
        default_factory=lambda: np.empty(0, dtype=np.int64),
    )
    converged: bool = True


class HolePatcher:
    """The class for closing a boundary loop with a smooth triangle patch.

    Filling happens in three steps:

    1. Triangulate the loop by ear clipping its projection onto the loop's
       average plane, falling back to a fan around the loop centroid.
    2. Refine the triangulation by repeatedly bisecting the longest interior
       edge until every interior edge is close to the boundary edge length.
    3. Fair the new vertices by solving a bi-Laplacian system, with the rest of
       the mesh held fixed.
    """

    def __init__(
        self,
        *,
        density: float = math.sqrt(2),
        max_refine_vertices: int = 50_000,
        fairing_tolerance: float = 1e-8,
        fairing_max_iterations: int = 2_000,
        debug: bool = False,
    ) -> None:
        self.density = density
        self.max_refine_vertices = max_refine_vertices
        self.fairing_tolerance = fairing_tolerance
        self.fairing_max_iterations = fairing_max_iterations
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def fill(self, mesh: HalfEdgeMesh, halfedge: int) -> PatchResult:
        """Triangulate, refine and fair the hole bordered by the given half-edge.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh to patch in place.
        halfedge : int
            Any boundary half-edge of the hole.

        Returns
        -------
        PatchResult
            The new vertices and faces and whether fairing converged.

        Raises
        ------
        PatchError
            If the loop has fewer than three edges or passes through the same
            vertex twice.
        """
        loop = list(mesh.loop_halfedges(halfedge))
        polygon = [mesh.source(h) for h in loop]
        if len(polygon) < MIN_LOOP_EDGES:
            msg = f"Loop {halfedge} has only {len(polygon)} edges"
            raise PatchError(msg)
        if len(set(polygon)) != len(polygon):
            msg = f"Loop {halfedge} passes through the same vertex more than once"
            raise PatchError(msg)

        # Pairs of loop vertices that already share an edge cannot be diagonals
        sources, targets = mesh.edges()
        mask = np.isin(sources, polygon) & np.isin(targets, polygon)
        local = {vertex: index for index, vertex in enumerate(polygon)}
        joined = {
            (local[a], local[b])
            for a, b in zip(sources[mask].tolist(), targets[mask].tolist())
        }

        points = mesh.vertices[polygon]
        triangles, extra_points = self.triangulate(points, joined)
        self.logger.debug(
            "Triangulated loop %d with %d edges into %d triangles",
            halfedge,
            len(polygon),
            len(triangles),
        )

        triangles, extra_points = self.refine(points, triangles, extra_points)
        self.logger.debug(
            "Refined loop %d to %d triangles and %d new vertices",
            halfedge,
            len(triangles),
            len(extra_points),
        )

        # Map local indices to mesh indices
        local_to_mesh = np.concatenate(
            [
                np.array(polygon, dtype=np.int64),
                mesh.n_vertices + np.arange(len(extra_points), dtype=np.int64),
            ],
        )
        new_vertices, new_faces = mesh.add_patch(
            loop,
            extra_points,
            local_to_mesh[triangles],
        )

        converged = self.fair(mesh, new_vertices)
        if not converged:
            self.logger.debug("Fairing of loop %d did not converge", halfedge)
        return PatchResult(new_vertices, new_faces, converged)

    def triangulate(
        self,
        points: NDArray,
        joined: AbstractSet[tuple[int, int]] = frozenset(),
    ) -> tuple[NDArray, NDArray]:
        """Triangulate a closed polygon.

        Parameters
        ----------
        points : NDArray
            An (n, 3) array of the polygon vertices in loop order.
        joined : AbstractSet[tuple[int, int]], optional
            Pairs of polygon indices that must not be connected by a diagonal,
            usually because the mesh already has that edge, by default none

        Returns
        -------
        triangles : NDArray
            An (m, 3) array of local vertex indices, oriented with the loop.
            Index ``n`` and above refer to the extra points.
        extra_points : NDArray
            A (k, 3) array of vertices added by the triangulation.
        """
        count = len(points)
        if count == MIN_LOOP_EDGES:
            return np.array([[0, 1, 2]], dtype=np.int64), np.empty((0, 3))

        triangles = self._ear_clip(points, joined)
        if triangles is not None:
            return triangles, np.empty((0, 3))

        self.logger.debug("Ear clipping failed, triangulating around the centroid")
        indices = np.arange(count, dtype=np.int64)
        fan = np.column_stack(
            [indices, np.roll(indices, -1), np.full(count, count, dtype=np.int64)],
        )
        return fan, points.mean(axis=0, keepdims=True)

    def refine(
        self,
        points: NDArray,
        triangles: NDArray,
        extra_points: NDArray,
    ) -> tuple[NDArray, NDArray]:
        """Bisect long interior edges until they match the boundary edge length.

        Boundary edges of the loop are never split, so the patch stays
        conforming with the rest of the mesh.

        Parameters
        ----------
        points : NDArray
            An (n, 3) array of the polygon vertices in loop order.
        triangles : NDArray
            An (m, 3) array of local vertex indices.
        extra_points : NDArray
            A (k, 3) array of vertices already added by the triangulation.

        Returns
        -------
        triangles : NDArray
            The refined triangles.
        extra_points : NDArray
            All vertices added by the triangulation and the refinement.
        """
        positions = [*points, *extra_points]
        boundary_lengths = np.linalg.norm(np.roll(points, -1, axis=0) - points, axis=1)
        limit = self.density * float(boundary_lengths.mean())

        faces = [list(map(int, t)) for t in triangles]
        edge_face: dict[tuple[int, int], int] = {}
        for index, face in enumerate(faces):
            for k in range(3):
                edge_face[(face[k], face[(k + 1) % 3])] = index

        def length(a: int, b: int) -> float:
            return float(np.linalg.norm(positions[a] - positions[b]))

        heap = [
            (-length(a, b), a, b)
            for (a, b) in edge_face
            if a < b and (b, a) in edge_face
        ]
        heapq.heapify(heap)

        while heap and len(positions) - len(points) < self.max_refine_vertices:
            negative_length, a, b = heapq.heappop(heap)
            if -negative_length <= limit:
                break
            if (a, b) not in edge_face:
                continue

            first = edge_face.pop((a, b))
            second = edge_face.pop((b, a))
            c = self._third_corner(faces[first], a, b)
            d = self._third_corner(faces[second], b, a)
            m = len(positions)
            positions.append((positions[a] + positions[b]) / 2)

            # (a, b, c) becomes (a, m, c) and (m, b, c)
            # (b, a, d) becomes (b, m, d) and (m, a, d)
            faces[first] = [a, m, c]
            faces[second] = [b, m, d]
            faces.append([m, b, c])
            faces.append([m, a, d])
            for index in (first, second, len(faces) - 2, len(faces) - 1):
                face = faces[index]
                for k in range(3):
                    edge_face[(face[k], face[(k + 1) % 3])] = index

            for x, y in ((a, m), (m, b), (m, c), (m, d)):
                low, high = min(x, y), max(x, y)
                heapq.heappush(heap, (-length(low, high), low, high))

        extra = np.array(positions[len(points) :], dtype=np.float64).reshape(-1, 3)
        return np.array(faces, dtype=np.int64), extra

    def fair(self, mesh: HalfEdgeMesh, vertices: NDArray) -> bool:
        """Move the given vertices to minimize the uniform bi-Laplacian energy.

        Every other vertex of the mesh is held fixed, which makes the patch meet
        the surrounding surface smoothly.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh containing the vertices.
        vertices : NDArray
            The indices of the vertices to move.

        Returns
        -------
        bool
            Whether the linear solve converged. The vertices are only moved when
            it did.
        """
        if len(vertices) == 0:
            return True

        laplacian = self._uniform_laplacian(mesh)
        rows = (laplacian[vertices] @ laplacian).tocsc()
        fixed = np.setdiff1d(np.arange(mesh.n_vertices), vertices)
        system = rows[:, vertices].tocsr()
        rhs = -(rows[:, fixed] @ mesh.vertices[fixed])

        solution = np.empty((len(vertices), 3))
        for axis in range(3):
            values, info = scipy.sparse.linalg.bicgstab(
                system,
                rhs[:, axis],
                x0=mesh.vertices[vertices, axis],
                rtol=self.fairing_tolerance,
                maxiter=self.fairing_max_iterations,
            )
            if info != 0 or not np.all(np.isfinite(values)):
                return False
            solution[:, axis] = values

        mesh.vertices[vertices] = solution
        return True

    def _ear_clip(
        self,
        points: NDArray,
        joined: AbstractSet[tuple[int, int]],
    ) -> NDArray | None:
        """Triangulate the polygon projected onto its average plane.

        Parameters
        ----------
        points : NDArray
            An (n, 3) array of the polygon vertices in loop order.
        joined : AbstractSet[tuple[int, int]]
            Pairs of polygon indices that must not be connected by a diagonal.

        Returns
        -------
        NDArray | None
            An (n - 2, 3) array of local vertex indices, or None if the
            projection is not a simple polygon or no ear avoids the joined
            pairs.
        """
        normal = GeometryHelper.polygon_normal(points)
        polygon = GeometryHelper.project_to_plane(points, normal)
        if GeometryHelper.signed_area(polygon) <= 0:
            return None

        remaining = list(range(len(points)))
        triangles = []
        while len(remaining) > MIN_LOOP_EDGES:
            for position in range(len(remaining)):
                previous = remaining[position - 1]
                current = remaining[position]
                following = remaining[(position + 1) % len(remaining)]
                if (previous, following) in joined:
                    continue
                if self._is_ear(polygon, remaining, previous, current, following):
                    triangles.append([previous, current, following])
                    del remaining[position]
                    break
            else:
                return None
        triangles.append(remaining)
        return np.array(triangles, dtype=np.int64)

    @staticmethod
    def _is_ear(
        polygon: NDArray,
        remaining: list[int],
        previous: int,
        current: int,
        following: int,
    ) -> bool:
        a, b, c = polygon[previous], polygon[current], polygon[following]
        if GeometryHelper.cross_2d(a, b, c) <= 0:
            return False
        return not any(
            GeometryHelper.point_in_triangle(polygon[other], a, b, c)
            for other in remaining
            if other not in (previous, current, following)
        )

    @staticmethod
    def _third_corner(face: list[int], a: int, b: int) -> int:
        return next(v for v in face if v not in (a, b))

    @staticmethod
    def _uniform_laplacian(mesh: HalfEdgeMesh) -> scipy.sparse.csr_matrix:
        """Build the uniform graph Laplacian ``D^-1 A - I`` of the mesh."""
        sources, targets = mesh.edges()
        n = mesh.n_vertices
        adjacency = scipy.sparse.coo_matrix(
            (np.ones(len(sources)), (sources, targets)),
            shape=(n, n),
        ).tocsr()
        degree = np.asarray(adjacency.sum(axis=1)).ravel()
        degree[degree == 0] = 1
        inverse_degree = scipy.sparse.diags(1.0 / degree)
        return (inverse_degree @ adjacency - scipy.sparse.identity(n)).tocsr()
