"""Test the HalfEdgeMesh class."""

import numpy as np
import pytest
import trimesh

from hole_mender.errors import InputError, MeshTopologyError
from hole_mender.half_edge_mesh import NO_FACE, HalfEdgeMesh
from hole_mender.mesh_factory import MeshFactory


def mesh_summary(mesh: HalfEdgeMesh) -> tuple[int, int, int]:
    """Get the number of vertices, faces and half-edges of a mesh."""
    return mesh.n_vertices, mesh.n_faces, mesh.n_halfedges


def test_half_edge_mesh_init() -> None:
    """Test that a closed mesh has three half-edges per face and no boundary."""
    mesh = HalfEdgeMesh.from_trimesh(trimesh.creation.box())

    assert mesh.n_vertices == 8  # noqa: PLR2004
    assert mesh.n_faces == 12  # noqa: PLR2004
    assert mesh.n_halfedges == 36  # noqa: PLR2004
    assert mesh.is_closed
    assert len(mesh.boundary_halfedges()) == 0
    mesh.validate()


def test_empty_mesh() -> None:
    """Test that a mesh without faces has no half-edges."""
    mesh = HalfEdgeMesh(np.zeros((3, 3)), np.empty((0, 3)))

    assert mesh.n_halfedges == 0
    assert mesh.n_faces == 0
    mesh.validate()


def test_square_connectivity(square: HalfEdgeMesh) -> None:
    """Test the half-edges created for two triangles sharing a diagonal."""
    assert mesh_summary(square) == (4, 2, 10)
    assert not square.is_closed

    # The shared diagonal 3 -> 0 and 0 -> 3 is paired
    assert square.opposite[2] == 3
    assert square.opposite[3] == 2
    np.testing.assert_array_equal(square.boundary_halfedges(), [6, 7, 8, 9])
    np.testing.assert_array_equal(square.face[6:], [NO_FACE] * 4)

    assert list(square.loop_halfedges(6)) == [6, 9, 8, 7]
    assert [square.source(h) for h in (6, 9, 8, 7)] == [1, 0, 2, 3]
    square.validate()


def test_edges(square: HalfEdgeMesh) -> None:
    """Test that every half-edge starts where its opposite ends."""
    sources, targets = square.edges()

    np.testing.assert_array_equal(sources[:6], [0, 1, 3, 0, 3, 2])
    np.testing.assert_array_equal(targets[:6], [1, 3, 0, 3, 2, 0])
    np.testing.assert_array_equal(sources, targets[square.opposite])


@pytest.mark.parametrize(
    ("vertices", "faces", "expected"),
    [
        (np.zeros((4, 3)), [[0, 1, 2, 3]], "Only triangle meshes"),
        (np.zeros((3, 3)), [[0, 1, 5]], "do not exist"),
        (np.zeros((3, 3)), [[0, 0, 1]], "repeat a vertex"),
        (np.eye(4)[:, :3], [[0, 1, 2], [0, 1, 3]], "twice in the same direction"),
        (
            np.eye(4)[:, :3],
            [[0, 1, 2], [1, 0, 3], [0, 1, 3]],
            "twice in the same direction",
        ),
    ],
)
def test_invalid_faces(
    vertices: np.ndarray,
    faces: list[list[int]],
    expected: str,
) -> None:
    """Test that meshes that cannot form half-edges are rejected."""
    with pytest.raises(MeshTopologyError, match=expected):
        HalfEdgeMesh(vertices, faces)


def test_topology_error_is_input_error() -> None:
    """Test that topology errors are reported as input errors."""
    assert issubclass(MeshTopologyError, InputError)
    assert issubclass(MeshTopologyError, ValueError)


def test_loop_halfedges_not_closing(square: HalfEdgeMesh) -> None:
    """Test that walking a broken cycle raises instead of looping forever."""
    square.next[9] = 9

    with pytest.raises(MeshTopologyError, match="does not close"):
        list(square.loop_halfedges(6))


def test_validate_detects_broken_opposite(square: HalfEdgeMesh) -> None:
    """Test that validate notices unpaired opposite half-edges."""
    square.opposite[0] = 1

    with pytest.raises(MeshTopologyError):
        square.validate()


def test_add_patch_closes_loop(square: HalfEdgeMesh) -> None:
    """Test that a patch over the boundary loop closes the mesh."""
    loop = list(square.loop_halfedges(6))
    new_vertices, new_faces = square.add_patch(
        loop,
        np.empty((0, 3)),
        [[1, 0, 2], [1, 2, 3]],
    )

    assert len(new_vertices) == 0
    np.testing.assert_array_equal(new_faces, [2, 3])
    assert square.is_closed
    assert square.n_halfedges == 12  # noqa: PLR2004
    # Boundary half-edges keep their index and join the new faces
    np.testing.assert_array_equal(square.face[loop], [2, 2, 3, 3])
    square.validate()


def test_add_patch_with_new_vertex_averages_colors() -> None:
    """Test that new vertices get the mean color of the loop."""
    colors = np.array(
        [
            [0, 0, 0, 255],
            [100, 100, 100, 255],
            [200, 200, 200, 255],
            [100, 100, 100, 255],
        ],
        dtype=np.uint8,
    )
    grid = MeshFactory.grid(1, 1)
    mesh = HalfEdgeMesh(grid.vertices, grid.faces, vertex_colors=colors)
    loop = list(mesh.loop_halfedges(6))

    new_vertices, new_faces = mesh.add_patch(
        loop,
        [[0.5, 0.5, 0.0]],
        [[1, 0, 4], [0, 2, 4], [2, 3, 4], [3, 1, 4]],
    )

    np.testing.assert_array_equal(new_vertices, [4])
    np.testing.assert_array_equal(new_faces, [2, 3, 4, 5])
    np.testing.assert_array_equal(mesh.vertex_colors[4], [100, 100, 100, 255])
    assert mesh.vertex_colors.shape == (5, 4)
    mesh.validate()


def test_add_patch_leaving_edges_open(square: HalfEdgeMesh) -> None:
    """Test that a partial patch is rejected without changing the mesh."""
    loop = list(square.loop_halfedges(6))

    with pytest.raises(ValueError, match="open"):
        square.add_patch(loop, np.empty((0, 3)), [[1, 0, 2]])

    assert mesh_summary(square) == (4, 2, 10)
    square.validate()


def test_add_patch_on_interior_halfedge(square: HalfEdgeMesh) -> None:
    """Test that only boundary half-edges can be patched."""
    with pytest.raises(ValueError, match="not a boundary half-edge"):
        square.add_patch([0, 1, 2], np.empty((0, 3)), [[0, 1, 3]])


def test_trimesh_round_trip() -> None:
    """Test that converting to a half-edge mesh and back keeps the geometry."""
    box = trimesh.creation.box()
    box.visual.face_colors = [255, 0, 0, 255]

    mesh = HalfEdgeMesh.from_trimesh(box)
    result = mesh.to_trimesh()

    assert mesh.face_colors is not None
    np.testing.assert_array_equal(result.vertices, box.vertices)
    np.testing.assert_array_equal(result.faces, box.faces)
    np.testing.assert_array_equal(result.visual.face_colors, box.visual.face_colors)
