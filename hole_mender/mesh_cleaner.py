"""Provides the cleanup of polygon soups and of small disconnected pieces."""

import logging
import math

import numpy as np
import trimesh
from numpy.typing import NDArray

from hole_mender.errors import InputError

logging.basicConfig(format="%(message)s")

# Faces meeting at a sharper angle than this belong to different components
MAX_COMPONENT_NORMAL_ANGLE = math.pi / 4


class MeshCleaner:
    """The class for cleaning up raw reconstructed meshes before hole filling."""

    def __init__(self, mesh: trimesh.Trimesh, *, debug: bool = False) -> None:
        self.mesh = mesh
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def repair_soup(self) -> trimesh.Trimesh:
        """Turn a polygon soup into a consistently oriented mesh in place.

        Duplicate points are merged, then faces that repeat a vertex or
        duplicate another face are removed along with the points no face uses.
        Finally the faces are flipped so that neighbors agree on orientation.

        Returns
        -------
        trimesh.Trimesh
            The repaired mesh.

        Raises
        ------
        InputError
            If the mesh has no points.
        """
        mesh = self.mesh
        if len(mesh.vertices) == 0:
            msg = "Cannot repair a mesh without points"
            raise InputError(msg)

        mesh.merge_vertices()
        mesh.update_faces(mesh.nondegenerate_faces())
        mesh.update_faces(mesh.unique_faces())
        mesh.remove_unreferenced_vertices()
        self.logger.debug(
            "After reparation, the soup has %d vertices and %d faces",
            len(mesh.vertices),
            len(mesh.faces),
        )

        trimesh.repair.fix_winding(mesh)
        return mesh

    def face_components(self) -> list[NDArray[np.int64]]:
        """Split the faces into smoothly connected components.

        Two faces sharing an edge are connected only when the angle between
        their normals is at most 45 degrees, so sharp creases split components.

        Returns
        -------
        list[NDArray[np.int64]]
            The face indices of each component, largest component first.
        """
        mesh = self.mesh
        if len(mesh.faces) == 0:
            return []

        smooth = mesh.face_adjacency_angles <= MAX_COMPONENT_NORMAL_ANGLE
        components = trimesh.graph.connected_components(
            mesh.face_adjacency[smooth],
            nodes=np.arange(len(mesh.faces)),
            min_len=1,
        )
        components = [np.sort(np.asarray(c, dtype=np.int64)) for c in components]
        # Ties are broken by the smallest face index to keep the order stable
        components.sort(key=lambda c: (-len(c), int(c[0])))
        self.logger.debug("The mesh has %d connected components", len(components))
        return components

    def remove_components(
        self,
        min_faces: int,
        num_keep: int,
    ) -> trimesh.Trimesh:
        """Remove small components in place.

        Parameters
        ----------
        min_faces : int
            Drop components with fewer faces than this. Ignored if not positive.
        num_keep : int
            Then keep only this many of the largest components. Ignored if not
            positive.

        Returns
        -------
        trimesh.Trimesh
            The filtered mesh, unchanged when neither filter is enabled.
        """
        if min_faces <= 0 and num_keep <= 0:
            self.logger.debug("No component filter enabled, keeping every face")
            return self.mesh

        components = self.face_components()
        if min_faces > 0:
            components = [c for c in components if len(c) >= min_faces]
        if num_keep > 0:
            components = components[:num_keep]

        keep = np.zeros(len(self.mesh.faces), dtype=bool)
        for component in components:
            keep[component] = True
        self.logger.debug(
            "Keeping %d components with %d of %d faces",
            len(components),
            int(keep.sum()),
            len(keep),
        )

        self.mesh.update_faces(keep)
        self.mesh.remove_unreferenced_vertices()
        return self.mesh
