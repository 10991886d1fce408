"""Configuration and shared meshes for pytest."""

import pytest

from hole_mender.half_edge_mesh import HalfEdgeMesh
from hole_mender.mesh_factory import MeshFactory


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add the --slow command line option.

    References
    ----------
    .. [1] https://docs.pytest.org/en/stable/example/simple.html#control-skipping-of-tests-according-to-command-line-option
    """
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Run tests that fill large holes",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Skip slow tests unless --slow is given."""
    if config.getoption("--slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def square() -> HalfEdgeMesh:
    """A single square made of two triangles, with one four-edge boundary."""
    return HalfEdgeMesh.from_trimesh(MeshFactory.grid(1, 1))


@pytest.fixture
def bow_tie() -> HalfEdgeMesh:
    """A grid with two square holes touching at vertex 12."""
    return HalfEdgeMesh.from_trimesh(MeshFactory.bow_tie())


@pytest.fixture
def frustum() -> HalfEdgeMesh:
    """A tube with a small six-edge hole and a wide 200-edge hole."""
    return HalfEdgeMesh.from_trimesh(MeshFactory.frustum_tube())
