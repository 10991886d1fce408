"""Test the cleanup of polygon soups and small components."""

import numpy as np
import pytest
import trimesh

from hole_mender.errors import InputError
from hole_mender.mesh_cleaner import MeshCleaner
from hole_mender.mesh_factory import MeshFactory


def soup() -> trimesh.Trimesh:
    """Create a 2x2 grid where every face has its own copies of its points.

    One face is flipped, one is repeated and one repeats a point.
    """
    grid = MeshFactory.grid(2, 2)
    faces = grid.faces.copy()
    faces[3] = faces[3, ::-1]
    faces = np.vstack([faces, faces[0], [faces[1, 0], faces[1, 0], faces[1, 1]]])
    vertices = grid.vertices[faces].reshape(-1, 3)
    return trimesh.Trimesh(
        vertices=vertices,
        faces=np.arange(len(vertices)).reshape(-1, 3),
        process=False,
    )


def pieces() -> trimesh.Trimesh:
    """Create three separate flat grids with 18, 8 and 2 faces."""
    small = MeshFactory.grid(1, 1)
    small.apply_translation([10, 0, 0])
    medium = MeshFactory.grid(2, 2)
    medium.apply_translation([0, 10, 0])
    return trimesh.util.concatenate([small, MeshFactory.grid(3, 3), medium])


def test_mesh_cleaner_init() -> None:
    """Test that the MeshCleaner class can be initialized."""
    MeshCleaner(MeshFactory.grid(1, 1))
    MeshCleaner(MeshFactory.grid(1, 1), debug=True)


def test_repair_soup() -> None:
    """Test that a soup becomes a shared, consistently oriented mesh."""
    mesh = soup()
    assert len(mesh.faces) == 10  # noqa: PLR2004

    MeshCleaner(mesh).repair_soup()

    assert len(mesh.vertices) == 9  # noqa: PLR2004
    assert len(mesh.faces) == 8  # noqa: PLR2004
    assert mesh.is_winding_consistent


def test_repair_soup_flipped_box_faces() -> None:
    """Test that faces flipped against their neighbors are turned back."""
    box = trimesh.creation.box()
    faces = box.faces.copy()
    faces[[0, 5, 7]] = faces[[0, 5, 7], ::-1]
    mesh = trimesh.Trimesh(vertices=box.vertices, faces=faces, process=False)
    assert not mesh.is_winding_consistent

    MeshCleaner(mesh).repair_soup()

    assert mesh.is_winding_consistent
    assert mesh.is_watertight


def test_repair_soup_without_points() -> None:
    """Test that an empty mesh cannot be repaired."""
    with pytest.raises(InputError, match="without points"):
        MeshCleaner(trimesh.Trimesh()).repair_soup()


def test_face_components_split_at_creases() -> None:
    """Test that the sides of a box are separate components."""
    components = MeshCleaner(trimesh.creation.box()).face_components()

    assert len(components) == 6  # noqa: PLR2004
    assert all(len(component) == 2 for component in components)  # noqa: PLR2004
    np.testing.assert_array_equal(np.sort(np.concatenate(components)), np.arange(12))


def test_face_components_order() -> None:
    """Test that components are returned largest first."""
    components = MeshCleaner(pieces()).face_components()

    assert [len(component) for component in components] == [18, 8, 2]
    # The small grid comes first in the concatenated mesh
    np.testing.assert_array_equal(components[2], [0, 1])


@pytest.mark.parametrize(
    ("min_faces", "num_keep", "expected_faces"),
    [
        (0, 0, 28),
        (-1, -1, 28),
        (3, 0, 26),
        (8, 0, 26),
        (9, 0, 18),
        (0, 1, 18),
        (0, 2, 26),
        (0, 5, 28),
        (3, 1, 18),
        (20, 0, 0),
    ],
)
def test_remove_components(
    min_faces: int,
    num_keep: int,
    expected_faces: int,
) -> None:
    """Test filtering components by size and by rank."""
    mesh = pieces()

    MeshCleaner(mesh).remove_components(min_faces, num_keep)

    assert len(mesh.faces) == expected_faces
    assert len(mesh.vertices) == len(np.unique(mesh.faces))
