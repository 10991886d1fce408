"""Provides synthetic meshes with known holes."""

import math
from collections.abc import Iterable

import numpy as np
import trimesh


class MeshFactory:
    """A class containing functions for creating meshes with known holes."""

    @staticmethod
    def grid(
        rows: int,
        cols: int,
        *,
        spacing: float = 1.0,
        holes: Iterable[tuple[int, int]] = (),
    ) -> trimesh.Trimesh:
        """Create a flat grid of squares in the XY plane facing +Z.

        Each square is split into two triangles. Removing squares that touch
        only at a corner creates holes meeting at a bow-tie vertex.

        Parameters
        ----------
        rows : int
            The number of squares along Y.
        cols : int
            The number of squares along X.
        spacing : float, optional
            The side length of each square, by default 1.0
        holes : Iterable[tuple[int, int]], optional
            The (row, col) of each square to leave out, by default ()

        Returns
        -------
        trimesh.Trimesh
            The grid mesh with vertex ``r * (cols + 1) + c`` at
            ``(c * spacing, r * spacing, 0)``.
        """
        ys, xs = np.mgrid[0 : rows + 1, 0 : cols + 1]
        vertices = np.column_stack(
            [xs.ravel() * spacing, ys.ravel() * spacing, np.zeros(xs.size)],
        )

        skip = set(holes)
        faces = []
        for r in range(rows):
            for c in range(cols):
                if (r, c) in skip:
                    continue
                v00 = r * (cols + 1) + c
                v01 = v00 + 1
                v10 = v00 + cols + 1
                v11 = v10 + 1
                faces.append([v00, v01, v11])
                faces.append([v00, v11, v10])
        return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)

    @staticmethod
    def bow_tie() -> trimesh.Trimesh:
        """Create a 4x4 grid with two square holes sharing one corner vertex.

        Returns
        -------
        trimesh.Trimesh
            The grid, whose holes meet at vertex 12 at ``(2, 2, 0)``.
        """
        return MeshFactory.grid(4, 4, holes=[(1, 1), (2, 2)])

    @staticmethod
    def open_box(
        directions: Iterable[tuple[int, int, int]] = ((0, 0, 1),),
    ) -> trimesh.Trimesh:
        """Create a unit cube with the sides facing the given directions removed.

        Parameters
        ----------
        directions : Iterable[tuple[int, int, int]], optional
            The outward normals of the sides to remove, by default the top side

        Returns
        -------
        trimesh.Trimesh
            The open box, with one four-edge hole per removed side.
        """
        mesh = trimesh.creation.box()
        keep = np.ones(len(mesh.faces), dtype=bool)
        normals = mesh.face_normals
        for direction in directions:
            keep &= normals @ np.asarray(direction, dtype=float) < 0.5  # noqa: PLR2004
        mesh.update_faces(keep)
        mesh.remove_unreferenced_vertices()
        return mesh

    @staticmethod
    def frustum_tube(
        top_count: int = 6,
        top_radius: float = 0.25,
        bottom_count: int = 200,
        bottom_radius: float = 5.0,
        height: float = 1.0,
    ) -> trimesh.Trimesh:
        """Create the side wall of a frustum, open at both ends.

        The two rings may have different numbers of vertices. They are zipped
        together by always advancing along the ring whose next vertex comes
        first in angle.

        Parameters
        ----------
        top_count : int, optional
            The number of vertices on the top ring, by default 6
        top_radius : float, optional
            The radius of the top ring, by default 0.25
        bottom_count : int, optional
            The number of vertices on the bottom ring, by default 200
        bottom_radius : float, optional
            The radius of the bottom ring, by default 5.0
        height : float, optional
            The height of the top ring above the bottom ring, by default 1.0

        Returns
        -------
        trimesh.Trimesh
            The tube, with an outward facing wall. Bottom ring vertices come
            first.
        """

        def ring(count: int, radius: float, z: float) -> np.ndarray:
            angles = 2 * math.pi * np.arange(count) / count
            return np.column_stack(
                [radius * np.cos(angles), radius * np.sin(angles), np.full(count, z)],
            )

        vertices = np.vstack(
            [
                ring(bottom_count, bottom_radius, 0.0),
                ring(top_count, top_radius, height),
            ],
        )

        def bottom(j: int) -> int:
            return j % bottom_count

        def top(i: int) -> int:
            return bottom_count + i % top_count

        faces = []
        i = j = 0
        while i < top_count or j < bottom_count:
            advance_bottom = j < bottom_count and (
                i == top_count or (j + 1) / bottom_count <= (i + 1) / top_count
            )
            if advance_bottom:
                faces.append([bottom(j), bottom(j + 1), top(i)])
                j += 1
            else:
                faces.append([bottom(j), top(i + 1), top(i)])
                i += 1
        return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
