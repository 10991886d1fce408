"""Provides the geometry primitives used by the mesh repair tools."""

import logging
from typing import Protocol

import numpy as np
import scipy.sparse
import scipy.sparse.linalg
import trimesh
from numpy.typing import NDArray

from hole_mender.errors import ConfigurationError, InputError
from hole_mender.half_edge_mesh import HalfEdgeMesh
from hole_mender.hole_patcher import HolePatcher, PatchResult
from hole_mender.surface_reconstructor import RADIUS_RATIO_BOUND, SurfaceReconstructor

logging.basicConfig(format="%(message)s")


class GeometryService(Protocol):
    """The geometry primitives the repair pipeline depends on."""

    def fill(self, mesh: HalfEdgeMesh, halfedge: int) -> PatchResult:
        """Triangulate, refine and fair the hole bordered by the half-edge."""
        ...

    def simplify(self, mesh: trimesh.Trimesh, edge_keep_ratio: float) -> int:
        """Collapse edges in place and return the number of edges removed."""
        ...

    def smooth(
        self,
        mesh: trimesh.Trimesh,
        time: float,
        iterations: int,
        constrained_vertices: NDArray | None = None,
    ) -> None:
        """Smooth the shape of the mesh in place."""
        ...

    def reconstruct(
        self,
        points: NDArray,
        max_triangle_perimeter: float = 0.0,
        radius_ratio_bound: float = RADIUS_RATIO_BOUND,
    ) -> trimesh.Trimesh:
        """Build a triangle surface through the points."""
        ...


class TrimeshGeometryService:
    """The geometry primitives implemented with numpy, scipy and trimesh."""

    def __init__(
        self,
        patcher: HolePatcher | None = None,
        reconstructor: SurfaceReconstructor | None = None,
        *,
        debug: bool = False,
    ) -> None:
        self.patcher = patcher or HolePatcher(debug=debug)
        self.reconstructor = reconstructor or SurfaceReconstructor(debug=debug)
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def fill(self, mesh: HalfEdgeMesh, halfedge: int) -> PatchResult:
        """Triangulate, refine and fair the hole bordered by the half-edge.

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
        """
        return self.patcher.fill(mesh, halfedge)

    def simplify(self, mesh: trimesh.Trimesh, edge_keep_ratio: float) -> int:
        """Simplify the mesh in place by quadric edge collapse.

        Parameters
        ----------
        mesh : trimesh.Trimesh
            The triangle mesh to simplify.
        edge_keep_ratio : float
            The fraction of the edges to keep, in (0, 1].

        Returns
        -------
        int
            The number of edges removed.

        Raises
        ------
        ConfigurationError
            If the ratio is outside (0, 1].
        InputError
            If the mesh has no faces.
        """
        if not 0 < edge_keep_ratio <= 1:
            msg = f"The edge keep ratio must be in (0, 1], got {edge_keep_ratio}"
            raise ConfigurationError(msg)
        if len(mesh.faces) == 0:
            msg = "Cannot simplify a mesh without faces"
            raise InputError(msg)

        edges_before = len(mesh.edges_unique)
        face_count = max(int(round(edge_keep_ratio * len(mesh.faces))), 1)
        self.logger.debug(
            "Simplifying from %d to about %d faces",
            len(mesh.faces),
            face_count,
        )
        simplified = mesh.simplify_quadric_decimation(face_count=face_count)

        mesh.vertices = simplified.vertices
        mesh.faces = simplified.faces
        return edges_before - len(mesh.edges_unique)

    def smooth(
        self,
        mesh: trimesh.Trimesh,
        time: float,
        iterations: int,
        constrained_vertices: NDArray | None = None,
    ) -> None:
        """Smooth the mesh in place with implicit Laplacian steps.

        Each iteration solves ``(I - time * (L - I)) x' = x`` where ``L`` is the
        uniform averaging operator over vertex neighbors. Constrained vertices
        keep their positions.

        Parameters
        ----------
        mesh : trimesh.Trimesh
            The mesh to smooth.
        time : float
            The time step of each iteration. Larger values smooth more.
        iterations : int
            The number of implicit steps.
        constrained_vertices : NDArray | None, optional
            The indices of the vertices that must not move, by default None

        Raises
        ------
        ConfigurationError
            If the time step is negative or the iteration count is negative.
        """
        if time < 0 or iterations < 0:
            msg = (
                "The smoothing time and number of iterations must not be negative, "
                f"got {time} and {iterations}"
            )
            raise ConfigurationError(msg)
        if iterations == 0 or time == 0 or len(mesh.faces) == 0:
            return

        pinned = [] if constrained_vertices is None else list(constrained_vertices)
        averaging = trimesh.smoothing.laplacian_calculation(
            mesh,
            equal_weight=True,
            pinned_vertices=pinned,
        )
        n = len(mesh.vertices)
        system = (
            (1 + time) * scipy.sparse.identity(n) - time * averaging
        ).tocsc()

        vertices = np.array(mesh.vertices, dtype=np.float64)
        for iteration in range(iterations):
            vertices = scipy.sparse.linalg.spsolve(system, vertices)
            self.logger.debug("Finished smoothing iteration %d", iteration + 1)
        if pinned:
            vertices[pinned] = mesh.vertices[pinned]
        mesh.vertices = vertices

    def reconstruct(
        self,
        points: NDArray,
        max_triangle_perimeter: float = 0.0,
        radius_ratio_bound: float = RADIUS_RATIO_BOUND,
    ) -> trimesh.Trimesh:
        """Build a triangle surface through the points by advancing a front.

        Parameters
        ----------
        points : NDArray
            The (n, 3) points to connect.
        max_triangle_perimeter : float, optional
            The largest perimeter of a created triangle, not limited if not
            positive, by default 0.0
        radius_ratio_bound : float, optional
            How much larger than its neighbor a triangle may be, by default 5.0

        Returns
        -------
        trimesh.Trimesh
            A mesh with every point, in order, and the created faces. Points
            no triangle reaches are kept.
        """
        faces = self.reconstructor.reconstruct(
            points,
            max_triangle_perimeter,
            radius_ratio_bound,
        )
        return trimesh.Trimesh(vertices=points, faces=faces, process=False)
