"""Provides the extraction of boundary loops (holes) from a half-edge mesh."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

from hole_mender.half_edge_mesh import HalfEdgeMesh

logging.basicConfig(format="%(message)s")

ExtractionStrategy = Literal["cycle_first", "live_scan"]


@dataclass(frozen=True)
class BoundaryLoop:
    """A boundary loop identified by one of its boundary half-edges.

    Any half-edge of the cycle can act as the representative. Loops found by
    cycle-first extraction always use the smallest half-edge index of the cycle,
    which makes the representative canonical.
    """

    halfedge: int

    def halfedges(self, mesh: HalfEdgeMesh) -> Iterator[int]:
        """Lazily walk the boundary half-edges of this loop."""
        return mesh.loop_halfedges(self.halfedge)

    def vertices(self, mesh: HalfEdgeMesh) -> list[int]:
        """Get the target vertex of every half-edge of the loop, in order."""
        return [int(mesh.target[h]) for h in self.halfedges(mesh)]

    def canonical(self, mesh: HalfEdgeMesh) -> "BoundaryLoop":
        """Get the loop represented by the smallest half-edge of its cycle."""
        return BoundaryLoop(min(self.halfedges(mesh)))


class BoundaryLoopExtractor:
    """The class for enumerating the boundary loops of a half-edge mesh.

    Two strategies are supported:

    ``cycle_first``
        Group all boundary half-edges into cycles before anything else happens
        and return one canonical representative per cycle. This is the default.
    ``live_scan``
        Visit the half-edge indices that exist when the scan starts and report
        every half-edge that is still a boundary half-edge when it is reached.
        Filling a hole only turns boundary half-edges into interior ones and
        appends new interior half-edges, so the scan is stable under mutation.
        The same loop is reported once per boundary half-edge that remains, and
        callers must filter repeats with a ``DuplicateLoopGuard``.
    """

    def __init__(
        self,
        strategy: ExtractionStrategy = "cycle_first",
        *,
        debug: bool = False,
    ) -> None:
        if strategy not in ("cycle_first", "live_scan"):
            msg = f"Unknown boundary loop extraction strategy: {strategy}"
            raise ValueError(msg)
        self.strategy = strategy
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def loops(self, mesh: HalfEdgeMesh) -> Iterator[BoundaryLoop]:
        """Enumerate the boundary loops using the configured strategy.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh to search.

        Returns
        -------
        Iterator[BoundaryLoop]
            The discovered loops.
        """
        if self.strategy == "live_scan":
            return self.scan(mesh)
        return iter(self.extract(mesh))

    def extract(self, mesh: HalfEdgeMesh) -> list[BoundaryLoop]:
        """Group every boundary half-edge into its cycle.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh to search.

        Returns
        -------
        list[BoundaryLoop]
            One loop per boundary cycle, represented by the smallest half-edge
            index of the cycle. Empty when the mesh is closed.
        """
        visited: set[int] = set()
        loops = []
        # Ascending order makes the first half-edge met the smallest of its cycle
        for halfedge in mesh.boundary_halfedges().tolist():
            if halfedge in visited:
                continue
            cycle = list(mesh.loop_halfedges(halfedge))
            visited.update(cycle)
            loops.append(BoundaryLoop(halfedge))
            self.logger.debug(
                "Found boundary loop %d with %d edges",
                halfedge,
                len(cycle),
            )
        self.logger.debug("Found %d boundary loops", len(loops))
        return loops

    def scan(self, mesh: HalfEdgeMesh) -> Iterator[BoundaryLoop]:
        """Report boundary half-edges as loop discoveries while iterating.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh to search. It may be patched between two discoveries.

        Yields
        ------
        BoundaryLoop
            A loop represented by the boundary half-edge it was discovered from.
        """
        for halfedge in range(mesh.n_halfedges):
            if mesh.is_boundary(halfedge):
                yield BoundaryLoop(halfedge)
