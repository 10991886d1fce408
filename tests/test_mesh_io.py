"""Test reading and writing mesh files."""

from pathlib import Path

import numpy as np
import pytest

from hole_mender.errors import InputError, OutputError
from hole_mender.half_edge_mesh import HalfEdgeMesh
from hole_mender.mesh_factory import MeshFactory
from hole_mender.mesh_io import MeshIO


def test_round_trip_ply(tmp_path: Path) -> None:
    """Test that a PLY file keeps the vertex and face order."""
    mesh = MeshFactory.bow_tie()
    path = tmp_path / "bow_tie.ply"

    MeshIO.save(mesh, path)
    loaded = MeshIO.load(path)

    np.testing.assert_array_equal(loaded.vertices, mesh.vertices)
    np.testing.assert_array_equal(loaded.faces, mesh.faces)


def test_ply_is_ascii(tmp_path: Path) -> None:
    """Test that PLY files are written as text."""
    path = tmp_path / "square.ply"

    MeshIO.save(MeshFactory.grid(1, 1), path)

    header = path.read_text().splitlines()
    assert header[0] == "ply"
    assert header[1].startswith("format ascii")


def test_stl_points_are_merged(tmp_path: Path) -> None:
    """Test that the polygon soup of an STL file shares its vertices."""
    path = tmp_path / "grid.stl"

    MeshIO.save(MeshFactory.grid(2, 2), path)
    loaded = MeshIO.load(path)

    assert len(loaded.vertices) == 9  # noqa: PLR2004
    assert len(loaded.faces) == 8  # noqa: PLR2004


def test_load_half_edge(tmp_path: Path) -> None:
    """Test reading straight into a half-edge mesh."""
    path = tmp_path / "frustum.ply"
    MeshIO.save(MeshFactory.frustum_tube(), path)

    mesh = MeshIO.load_half_edge(path)

    assert isinstance(mesh, HalfEdgeMesh)
    assert len(mesh.boundary_halfedges()) == 206  # noqa: PLR2004
    mesh.validate()


def test_save_half_edge_mesh(tmp_path: Path) -> None:
    """Test that half-edge meshes are converted before writing."""
    path = tmp_path / "box.obj"
    mesh = HalfEdgeMesh.from_trimesh(MeshFactory.open_box())

    MeshIO.save(mesh, path)

    assert len(MeshIO.load(path).faces) == mesh.n_faces


@pytest.mark.parametrize("name", ["missing.ply", "folder"])
def test_load_missing_file(tmp_path: Path, name: str) -> None:
    """Test that paths which are not files are rejected."""
    (tmp_path / "folder").mkdir()

    with pytest.raises(InputError, match="Cannot open file"):
        MeshIO.load(tmp_path / name)


@pytest.mark.parametrize("name", ["missing/out.ply", "out.unknown"])
def test_save_invalid_destination(tmp_path: Path, name: str) -> None:
    """Test that unwritable destinations and unknown formats are rejected."""
    with pytest.raises(OutputError, match="Cannot write file"):
        MeshIO.save(MeshFactory.grid(1, 1), tmp_path / name)


def test_ply_keeps_full_precision(tmp_path: Path) -> None:
    """Test that PLY coordinates read back as the exact same doubles."""
    mesh = MeshFactory.grid(1, 1)
    vertices = mesh.vertices.copy()
    vertices[3] = [0.12345678901234568, 1 / 3, 2 / 3]
    vertices[1, 0] = 1e-300
    mesh.vertices = vertices
    path = tmp_path / "square.ply"

    MeshIO.save(mesh, path)

    assert "property double x" in path.read_text()
    np.testing.assert_array_equal(MeshIO.load(path).vertices, vertices)


def test_ply_keeps_vertex_colors(tmp_path: Path) -> None:
    """Test that vertex colors are written as bytes next to the points."""
    mesh = MeshFactory.grid(1, 1)
    colors = np.array(
        [[255, 0, 0, 255], [0, 255, 0, 255], [0, 0, 255, 255], [10, 20, 30, 40]],
        dtype=np.uint8,
    )
    mesh.visual.vertex_colors = colors
    path = tmp_path / "square.ply"

    MeshIO.save(mesh, path)

    assert "property uchar red" in path.read_text()
    np.testing.assert_array_equal(MeshIO.load(path).visual.vertex_colors, colors)


@pytest.mark.parametrize(
    ("name", "content"),
    [
        ("corrupt.obj", "v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 7\n"),
        ("corrupt.ply", "not a mesh\n"),
    ],
)
def test_load_corrupt_file(tmp_path: Path, name: str, content: str) -> None:
    """Test that files the parsers cannot read are reported as invalid input."""
    path = tmp_path / name
    path.write_text(content)

    with pytest.raises(InputError):
        MeshIO.load(path)


def test_load_points(tmp_path: Path) -> None:
    """Test reading only the points of a mesh file."""
    path = tmp_path / "frustum.ply"
    mesh = MeshFactory.frustum_tube()
    MeshIO.save(mesh, path)

    points = MeshIO.load_points(path)

    np.testing.assert_array_equal(points, mesh.vertices)


def test_load_points_missing_file(tmp_path: Path) -> None:
    """Test that a missing point file is rejected."""
    with pytest.raises(InputError, match="Cannot open file"):
        MeshIO.load_points(tmp_path / "missing.ply")
