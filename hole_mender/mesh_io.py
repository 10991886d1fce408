"""Provides reading and writing of meshes with trimesh."""

import logging
import struct
from collections.abc import Callable
from pathlib import Path

import numpy as np
import trimesh
from numpy.typing import NDArray

from hole_mender.errors import InputError, OutputError
from hole_mender.half_edge_mesh import HalfEdgeMesh

logging.basicConfig(format="%(message)s")

logger = logging.getLogger(__name__)

# Formats that store every triangle with its own copy of the vertices
SOUP_FORMATS = {"stl"}

# What the trimesh loaders raise on malformed files
PARSE_ERRORS = (
    ValueError,
    OSError,
    IndexError,
    KeyError,
    TypeError,
    AttributeError,
    struct.error,
)

# Enough significant digits to read back the exact same double
COORDINATE_FORMAT = "%.17g"

COLOR_CHANNELS = ("red", "green", "blue", "alpha")


class MeshIO:
    """A class containing functions for reading and writing mesh files."""

    @staticmethod
    def load(path: str | Path) -> trimesh.Trimesh:
        """Read a triangle mesh without reordering its vertices or faces.

        Formats that store a polygon soup have their duplicate points merged so
        that neighboring faces share vertices.

        Parameters
        ----------
        path : str | Path
            The mesh file to read. The format is inferred from the extension.

        Returns
        -------
        trimesh.Trimesh
            The mesh, with colors when the file has them.

        Raises
        ------
        InputError
            If the file does not exist, cannot be parsed, or has no points.
        """
        path = Path(path)
        mesh = MeshIO._read(path, trimesh.load_mesh)

        if not isinstance(mesh, trimesh.Trimesh) or len(mesh.vertices) == 0:
            msg = f"Input mesh has no points: {path}"
            raise InputError(msg)
        if len(mesh.faces) > 0 and mesh.faces.max() >= len(mesh.vertices):
            msg = f"Invalid input: {path} has faces with missing vertices"
            raise InputError(msg)

        if path.suffix.lower().lstrip(".") in SOUP_FORMATS:
            mesh.merge_vertices()
        logger.debug(
            "Read %s with %d vertices and %d faces",
            path,
            len(mesh.vertices),
            len(mesh.faces),
        )
        return mesh

    @staticmethod
    def load_points(path: str | Path) -> NDArray[np.float64]:
        """Read the points of a mesh or point cloud file, ignoring any faces.

        Parameters
        ----------
        path : str | Path
            The file to read. The format is inferred from the extension.

        Returns
        -------
        NDArray[np.float64]
            The (n, 3) points in file order.

        Raises
        ------
        InputError
            If the file does not exist, cannot be parsed, or has no points.
        """
        path = Path(path)
        geometry = MeshIO._read(path, trimesh.load)

        points = getattr(geometry, "vertices", None)
        if points is None or len(points) == 0:
            msg = f"Input mesh has no points: {path}"
            raise InputError(msg)
        logger.debug("Read %d points from %s", len(points), path)
        return np.array(points, dtype=np.float64)

    @staticmethod
    def load_half_edge(path: str | Path) -> HalfEdgeMesh:
        """Read a mesh file into a half-edge mesh.

        Parameters
        ----------
        path : str | Path
            The mesh file to read.

        Returns
        -------
        HalfEdgeMesh
            The half-edge mesh.

        Raises
        ------
        InputError
            If the file cannot be read.
        MeshTopologyError
            If the mesh has non-manifold edges or inconsistently oriented faces.
        """
        return HalfEdgeMesh.from_trimesh(MeshIO.load(path))

    @staticmethod
    def save(mesh: trimesh.Trimesh | HalfEdgeMesh, path: str | Path) -> None:
        """Write a mesh, overwriting any existing file.

        PLY files are written as ASCII with double precision coordinates and 17
        significant digits, so reading them back gives the exact same values.
        Other formats are written by trimesh.

        Parameters
        ----------
        mesh : trimesh.Trimesh | HalfEdgeMesh
            The mesh to write.
        path : str | Path
            The destination. The format is inferred from the extension.

        Raises
        ------
        OutputError
            If the destination cannot be written or the format is unknown.
        """
        path = Path(path)
        if isinstance(mesh, HalfEdgeMesh):
            mesh = mesh.to_trimesh()

        file_type = path.suffix.lower().lstrip(".")
        try:
            if file_type == "ply":
                MeshIO._write_ply(mesh, path)
            else:
                mesh.export(str(path), file_type=file_type)
        except (ValueError, OSError) as e:
            msg = f"Cannot write file: {path}"
            raise OutputError(msg) from e
        logger.debug("Wrote %s", path)

    @staticmethod
    def _read(
        path: Path,
        loader: Callable[..., trimesh.parent.Geometry],
    ) -> trimesh.parent.Geometry:
        if not path.is_file():
            msg = f"Cannot open file: {path}"
            raise InputError(msg)
        try:
            return loader(str(path), process=False)
        except PARSE_ERRORS as e:
            msg = f"Invalid input: {path}"
            raise InputError(msg) from e

    @staticmethod
    def _write_ply(mesh: trimesh.Trimesh, path: Path) -> None:
        """Write an ASCII PLY file with full precision vertex coordinates.

        Parameters
        ----------
        mesh : trimesh.Trimesh
            The mesh to write. Vertex or face colors are written as RGBA bytes.
        path : Path
            The destination.
        """
        kind = mesh.visual.kind
        vertex_colors = mesh.visual.vertex_colors if kind == "vertex" else None
        face_colors = mesh.visual.face_colors if kind == "face" else None

        header = [
            "ply",
            "format ascii 1.0",
            f"element vertex {len(mesh.vertices)}",
            "property double x",
            "property double y",
            "property double z",
        ]
        vertex_rows = np.asarray(mesh.vertices, dtype=np.float64)
        vertex_format = [COORDINATE_FORMAT] * 3
        if vertex_colors is not None:
            header += [f"property uchar {channel}" for channel in COLOR_CHANNELS]
            vertex_rows = np.column_stack((vertex_rows, vertex_colors))
            vertex_format += ["%d"] * len(COLOR_CHANNELS)

        header += [
            f"element face {len(mesh.faces)}",
            "property list uchar int vertex_indices",
        ]
        faces = np.asarray(mesh.faces, dtype=np.int64).reshape(-1, 3)
        face_rows = np.column_stack((np.full(len(faces), 3), faces))
        if face_colors is not None:
            header += [f"property uchar {channel}" for channel in COLOR_CHANNELS]
            face_rows = np.column_stack((face_rows, face_colors))
        header.append("end_header")

        with path.open("w") as file:
            file.write("\n".join(header) + "\n")
            if len(vertex_rows) > 0:
                np.savetxt(file, vertex_rows, fmt=vertex_format)
            if len(face_rows) > 0:
                np.savetxt(file, face_rows, fmt="%d")
