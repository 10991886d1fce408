"""Provides the half-edge mesh used by the hole repair pipeline."""

import logging
from collections.abc import Iterator, Sequence

import numpy as np
import trimesh
from numpy.typing import NDArray

from hole_mender.errors import MeshTopologyError
from hole_mender.geometry_helper import GeometryHelper

logging.basicConfig(format="%(message)s")

NO_FACE = -1
NO_HALFEDGE = -1

Point = tuple[float, float, float]


class HalfEdgeMesh:
    """A triangle mesh stored as half-edge connectivity over index arenas.

    Every half-edge has exactly one opposite and one next half-edge. Half-edges
    whose face is ``NO_FACE`` are boundary half-edges and together they form the
    boundary loops (holes) of the mesh.

    The arenas are append-only: vertices, half-edges and faces keep their index
    for the lifetime of the mesh, so an index captured before a patch is added
    still refers to the same element afterwards.
    """

    def __init__(
        self,
        vertices: NDArray,
        faces: NDArray,
        *,
        vertex_colors: NDArray | None = None,
        face_colors: NDArray | None = None,
    ) -> None:
        self.vertices: NDArray[np.float64] = np.array(
            vertices,
            dtype=np.float64,
        ).reshape(-1, 3)
        faces = np.array(faces, dtype=np.int64)
        if faces.size == 0:
            faces = faces.reshape(0, 3)
        if faces.ndim != 2 or faces.shape[1] != 3:  # noqa: PLR2004
            msg = f"Only triangle meshes are supported, got faces shaped {faces.shape}"
            raise MeshTopologyError(msg)
        if faces.size and (faces.min() < 0 or faces.max() >= len(self.vertices)):
            msg = "Faces reference vertices that do not exist"
            raise MeshTopologyError(msg)
        self.faces: NDArray[np.int64] = faces

        self.vertex_colors = None if vertex_colors is None else np.array(vertex_colors)
        self.face_colors = None if face_colors is None else np.array(face_colors)

        self.target: NDArray[np.int64] = np.empty(0, dtype=np.int64)
        """The vertex each half-edge points to."""
        self.face: NDArray[np.int64] = np.empty(0, dtype=np.int64)
        """The face each half-edge belongs to, or ``NO_FACE`` on the boundary."""
        self.next: NDArray[np.int64] = np.empty(0, dtype=np.int64)
        """The next half-edge around the face or boundary loop."""
        self.opposite: NDArray[np.int64] = np.empty(0, dtype=np.int64)
        """The half-edge running the other way along the same edge."""
        self.face_halfedge: NDArray[np.int64] = np.empty(0, dtype=np.int64)
        """One half-edge of each face."""

        self._build_connectivity()

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh) -> "HalfEdgeMesh":
        """Build a half-edge mesh from a trimesh, carrying colors through.

        Parameters
        ----------
        mesh : trimesh.Trimesh
            The source mesh.

        Returns
        -------
        HalfEdgeMesh
            The half-edge mesh.
        """
        vertex_colors = None
        face_colors = None
        visual = getattr(mesh, "visual", None)
        if visual is not None and visual.kind == "vertex":
            vertex_colors = visual.vertex_colors
        elif visual is not None and visual.kind == "face":
            face_colors = visual.face_colors
        return cls(
            mesh.vertices,
            mesh.faces,
            vertex_colors=vertex_colors,
            face_colors=face_colors,
        )

    def to_trimesh(self) -> trimesh.Trimesh:
        """Convert the mesh back to a trimesh without reprocessing it.

        Returns
        -------
        trimesh.Trimesh
            A mesh with the same vertices, faces and colors.
        """
        return trimesh.Trimesh(
            vertices=self.vertices.copy(),
            faces=self.faces.copy(),
            vertex_colors=self.vertex_colors,
            face_colors=self.face_colors,
            process=False,
        )

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_halfedges(self) -> int:
        return len(self.target)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def is_closed(self) -> bool:
        """Whether the mesh has no boundary half-edges."""
        return not np.any(self.face == NO_FACE)

    def is_boundary(self, halfedge: int) -> bool:
        return self.face[halfedge] == NO_FACE

    def boundary_halfedges(self) -> NDArray[np.int64]:
        """Get the indices of all boundary half-edges.

        Returns
        -------
        NDArray[np.int64]
            The boundary half-edge indices in ascending order.
        """
        return np.flatnonzero(self.face == NO_FACE)

    def source(self, halfedge: int) -> int:
        """Get the vertex a half-edge starts from."""
        return int(self.target[self.opposite[halfedge]])

    def point(self, vertex: int) -> Point:
        x, y, z = self.vertices[vertex]
        return (float(x), float(y), float(z))

    def edges(self) -> tuple[NDArray[np.int64], NDArray[np.int64]]:
        """Get the directed (source, target) vertex pair of every half-edge.

        Returns
        -------
        sources : NDArray[np.int64]
            The source vertex of each half-edge.
        targets : NDArray[np.int64]
            The target vertex of each half-edge.
        """
        return self.target[self.opposite], self.target.copy()

    def loop_halfedges(self, halfedge: int) -> Iterator[int]:
        """Lazily walk the cycle of half-edges starting at the given half-edge.

        The walk follows the next relation, so starting from a boundary half-edge
        it visits the boundary loop the half-edge belongs to.

        Parameters
        ----------
        halfedge : int
            The half-edge to start from. It is yielded first.

        Yields
        ------
        int
            The half-edges of the cycle in order.

        Raises
        ------
        MeshTopologyError
            If the cycle does not return to the starting half-edge.
        """
        current = halfedge
        for _ in range(self.n_halfedges):
            yield current
            current = int(self.next[current])
            if current == halfedge:
                return
        msg = f"The cycle starting at half-edge {halfedge} does not close"
        raise MeshTopologyError(msg)

    def add_patch(
        self,
        loop: Sequence[int],
        points: NDArray,
        triangles: NDArray,
    ) -> tuple[NDArray[np.int64], NDArray[np.int64]]:
        """Close a boundary loop with a patch of new triangles.

        The boundary half-edges of the loop become half-edges of the new faces.
        Every other edge of the patch must appear in both directions so that no
        new boundary half-edges are created.

        Parameters
        ----------
        loop : Sequence[int]
            The boundary half-edges of the loop being closed.
        points : NDArray
            An (n, 3) array of new vertex positions. They receive the indices
            ``n_vertices`` to ``n_vertices + n - 1``.
        triangles : NDArray
            An (m, 3) array of triangles over existing and new vertex indices,
            oriented consistently with the loop.

        Returns
        -------
        new_vertices : NDArray[np.int64]
            The indices of the added vertices.
        new_faces : NDArray[np.int64]
            The indices of the added faces.

        Raises
        ------
        ValueError
            If the patch does not exactly close the loop.
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        triangles = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
        base_vertex = self.n_vertices
        base_halfedge = self.n_halfedges
        base_face = self.n_faces

        open_edges: dict[tuple[int, int], int] = {}
        for halfedge in loop:
            if not self.is_boundary(halfedge):
                msg = f"Half-edge {halfedge} is not a boundary half-edge"
                raise ValueError(msg)
            open_edges[(self.source(halfedge), int(self.target[halfedge]))] = halfedge

        created: dict[tuple[int, int], int] = {}
        new_target: list[int] = []
        face_of: dict[int, int] = {}
        next_of: dict[int, int] = {}
        face_halfedges: list[int] = []
        for offset, triangle in enumerate(triangles):
            corners = []
            for k in range(3):
                a, b = int(triangle[k]), int(triangle[(k + 1) % 3])
                if (a, b) in open_edges:
                    halfedge = open_edges.pop((a, b))
                elif (a, b) in created:
                    msg = f"Patch uses the edge ({a}, {b}) twice in the same direction"
                    raise ValueError(msg)
                else:
                    halfedge = base_halfedge + len(new_target)
                    created[(a, b)] = halfedge
                    new_target.append(b)
                corners.append(halfedge)
            for k in range(3):
                face_of[corners[k]] = base_face + offset
                next_of[corners[k]] = corners[(k + 1) % 3]
            face_halfedges.append(corners[0])

        if open_edges:
            msg = f"Patch leaves {len(open_edges)} edges of the loop open"
            raise ValueError(msg)

        new_opposite = []
        for a, b in created:
            if (b, a) not in created:
                msg = f"Patch edge ({a}, {b}) has no opposite"
                raise ValueError(msg)
            new_opposite.append(created[(b, a)])

        # Mutate only after the patch has been fully validated
        new_colors = self._patch_vertex_colors(loop, len(points))
        new_face_colors = self._patch_face_colors(loop, len(triangles))

        count = len(new_target)
        self.vertices = np.vstack([self.vertices, points])
        self.faces = np.vstack([self.faces, triangles])
        self.target = np.concatenate([self.target, np.array(new_target, np.int64)])
        self.opposite = np.concatenate(
            [self.opposite, np.array(new_opposite, dtype=np.int64)],
        )
        self.face = np.concatenate(
            [self.face, np.full(count, NO_FACE, dtype=np.int64)],
        )
        self.next = np.concatenate(
            [self.next, np.full(count, NO_HALFEDGE, dtype=np.int64)],
        )
        self.face_halfedge = np.concatenate(
            [self.face_halfedge, np.array(face_halfedges, dtype=np.int64)],
        )
        touched = np.array(list(face_of), dtype=np.int64)
        self.face[touched] = list(face_of.values())
        self.next[touched] = [next_of[h] for h in face_of]

        if new_colors is not None:
            self.vertex_colors = np.vstack([self.vertex_colors, new_colors])
        if new_face_colors is not None:
            self.face_colors = np.vstack([self.face_colors, new_face_colors])

        return (
            np.arange(base_vertex, self.n_vertices, dtype=np.int64),
            np.arange(base_face, self.n_faces, dtype=np.int64),
        )

    def validate(self) -> None:
        """Check the half-edge invariants.

        Raises
        ------
        MeshTopologyError
            If any opposite, next or face link is inconsistent.
        """
        halfedges = np.arange(self.n_halfedges)
        if np.any(self.opposite < 0) or np.any(self.next < 0):
            msg = "Mesh has half-edges without an opposite or next half-edge"
            raise MeshTopologyError(msg)
        if not np.array_equal(self.opposite[self.opposite], halfedges):
            msg = "Opposite half-edges are not paired"
            raise MeshTopologyError(msg)
        if np.any(self.opposite == halfedges):
            msg = "A half-edge is its own opposite"
            raise MeshTopologyError(msg)
        # The next half-edge starts where the current one ends
        if not np.array_equal(self.target[self.opposite[self.next]], self.target):
            msg = "Next half-edges are not connected"
            raise MeshTopologyError(msg)
        if not np.array_equal(self.face[self.next], self.face):
            msg = "Next half-edges belong to different faces"
            raise MeshTopologyError(msg)
        for index, halfedge in enumerate(self.face_halfedge):
            cycle = [int(self.target[h]) for h in self.loop_halfedges(int(halfedge))]
            if self.face[halfedge] != index or len(cycle) != 3:  # noqa: PLR2004
                msg = f"Face {index} is not a triangle of half-edges"
                raise MeshTopologyError(msg)

    def _build_connectivity(self) -> None:
        """Create the half-edges of every face and of every boundary edge.

        Raises
        ------
        MeshTopologyError
            If an edge is used twice in the same direction, which happens on
            non-manifold edges and on inconsistently oriented faces.
        MeshTopologyError
            If a face uses the same vertex twice.
        """
        n_faces = len(self.faces)
        n_vertices = len(self.vertices)
        if n_faces == 0:
            return
        halfedges = np.arange(3 * n_faces, dtype=np.int64)

        origin = self.faces.reshape(-1)
        target = np.roll(self.faces, -1, axis=1).reshape(-1)
        if np.any(origin == target):
            msg = "Mesh has degenerate faces that repeat a vertex"
            raise MeshTopologyError(msg)
        face = np.repeat(np.arange(n_faces, dtype=np.int64), 3)
        next_halfedge = np.roll(halfedges.reshape(-1, 3), -1, axis=1).reshape(-1)

        # Pair each directed edge with its reverse
        keys = origin * n_vertices + target
        sorter = np.argsort(keys, kind="stable")
        sorted_keys = keys[sorter]
        if np.any(sorted_keys[1:] == sorted_keys[:-1]):
            msg = (
                "Mesh has edges used twice in the same direction "
                "(non-manifold edges or inconsistent face orientation)"
            )
            raise MeshTopologyError(msg)
        reverse_keys = target * n_vertices + origin
        position = np.minimum(
            np.searchsorted(sorted_keys, reverse_keys),
            len(sorted_keys) - 1,
        )
        found = sorted_keys[position] == reverse_keys
        opposite = np.where(found, sorter[position], NO_HALFEDGE)

        # Every unpaired half-edge gets a boundary twin running the other way
        unpaired = np.flatnonzero(opposite == NO_HALFEDGE)
        boundary = np.arange(
            3 * n_faces,
            3 * n_faces + len(unpaired),
            dtype=np.int64,
        )
        opposite[unpaired] = boundary

        self.target = np.concatenate([target, origin[unpaired]])
        self.face = np.concatenate(
            [face, np.full(len(unpaired), NO_FACE, dtype=np.int64)],
        )
        self.opposite = np.concatenate([opposite, unpaired])
        self.next = np.concatenate(
            [next_halfedge, np.full(len(unpaired), NO_HALFEDGE, dtype=np.int64)],
        )
        self.face_halfedge = halfedges[::3].copy()
        if len(unpaired) == 0:
            return

        # Link each boundary half-edge to the one leaving its target vertex
        boundary_target = origin[unpaired]
        boundary_source = target[unpaired]
        outgoing = np.argsort(boundary_source, kind="stable")
        position = np.searchsorted(boundary_source[outgoing], boundary_target)
        self.next[boundary] = boundary[outgoing[position]]

        # Vertices where holes touch have several boundary half-edges leaving
        incoming_count = np.bincount(boundary_target, minlength=n_vertices)
        for vertex in np.flatnonzero(incoming_count > 1):
            self._link_bow_tie_vertex(int(vertex))

    def _link_bow_tie_vertex(self, vertex: int) -> None:
        """Link the boundary half-edges around a vertex where holes touch.

        Around the vertex normal, each hole fills the angle between a boundary
        half-edge entering the vertex and the first boundary half-edge leaving
        it in clockwise order. If the geometry does not give a one to one
        pairing, the boundary half-edges are linked by rotating through the
        face fans instead.

        Parameters
        ----------
        vertex : int
            A vertex with more than one incoming boundary half-edge.
        """
        on_boundary = self.face == NO_FACE
        incoming = np.flatnonzero(on_boundary & (self.target == vertex))
        outgoing = np.flatnonzero(
            on_boundary & (self.target[self.opposite] == vertex),
        )

        corners = self.vertices[self.faces[np.any(self.faces == vertex, axis=1)]]
        normal = np.cross(
            corners[:, 1] - corners[:, 0],
            corners[:, 2] - corners[:, 0],
        ).sum(axis=0)
        length = np.linalg.norm(normal)

        pairing = None
        if length > 1e-12:  # noqa: PLR2004
            u, v = GeometryHelper.plane_basis(normal / length)
            center = self.vertices[vertex]

            def angle(other: NDArray) -> NDArray:
                direction = self.vertices[other] - center
                return np.arctan2(direction @ v, direction @ u)

            incoming_angle = angle(self.target[self.opposite[incoming]])
            outgoing_angle = angle(self.target[outgoing])
            clockwise = (incoming_angle[:, None] - outgoing_angle[None, :]) % (
                2 * np.pi
            )
            choice = np.argmin(clockwise, axis=1)
            if len(np.unique(choice)) == len(outgoing) == len(incoming):
                pairing = outgoing[choice]

        if pairing is None:
            pairing = [self._next_boundary_halfedge(int(h)) for h in incoming]
        self.next[incoming] = pairing

    def _next_boundary_halfedge(self, halfedge: int) -> int:
        """Find the boundary half-edge at the other end of the entered face fan.

        The search rotates around the target vertex through the faces of the fan
        next to the boundary half-edge.

        Parameters
        ----------
        halfedge : int
            A boundary half-edge.

        Returns
        -------
        int
            The boundary half-edge leaving the target vertex on the same fan.

        Raises
        ------
        MeshTopologyError
            If the fan around the vertex does not reach a boundary half-edge.
        """
        current = int(self.opposite[halfedge])
        for _ in range(len(self.faces) + 1):
            previous = int(self.next[self.next[current]])
            candidate = int(self.opposite[previous])
            if self.face[candidate] == NO_FACE:
                return candidate
            current = candidate
        msg = f"Could not continue the boundary loop after half-edge {halfedge}"
        raise MeshTopologyError(msg)

    def _patch_vertex_colors(self, loop: Sequence[int], count: int) -> NDArray | None:
        """Average the loop vertex colors for the new patch vertices."""
        if self.vertex_colors is None:
            return None
        loop_colors = self.vertex_colors[self.target[list(loop)]]
        mean = np.round(loop_colors.mean(axis=0)).astype(self.vertex_colors.dtype)
        return np.tile(mean, (count, 1))

    def _patch_face_colors(self, loop: Sequence[int], count: int) -> NDArray | None:
        """Average the colors of the faces around the loop for the new faces."""
        if self.face_colors is None:
            return None
        neighbors = self.face[self.opposite[list(loop)]]
        mean = np.round(self.face_colors[neighbors].mean(axis=0)).astype(
            self.face_colors.dtype,
        )
        return np.tile(mean, (count, 1))
