"""Provides the guard against handling the same boundary loop twice."""

import logging
from typing import Literal

from hole_mender.boundary import BoundaryLoop
from hole_mender.half_edge_mesh import HalfEdgeMesh, Point

logging.basicConfig(format="%(message)s")

GuardMode = Literal["representative", "vertex"]


class DuplicateLoopGuard:
    """Remembers the boundary loops already judged during one repair run.

    ``representative`` mode
        Remembers every half-edge of each handled loop, so a loop is skipped
        when it is discovered again from any of its half-edges.
    ``vertex`` mode
        Remembers the points of each handled loop, so a loop is skipped when any
        of its points was already examined. This also skips distinct holes that
        touch a handled hole at a shared vertex.

    The examined set only grows and is scoped to one guard instance.
    """

    def __init__(self, mode: GuardMode = "representative") -> None:
        if mode not in ("representative", "vertex"):
            msg = f"Unknown duplicate loop guard mode: {mode}"
            raise ValueError(msg)
        self.mode = mode
        self.examined_halfedges: set[int] = set()
        self.examined_points: set[Point] = set()
        # The points of the last loop seen() walked without a match
        self._walked: tuple[int, list[Point]] | None = None

    def seen(self, mesh: HalfEdgeMesh, loop: BoundaryLoop) -> bool:
        """Check whether the loop was already handled.

        In vertex mode the walk stops at the first point that was already
        examined. When no point was, the walked points are kept so that
        ``record`` does not walk the loop again.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh containing the loop.
        loop : BoundaryLoop
            The newly discovered loop.

        Returns
        -------
        bool
            Whether the loop, or a point of it in vertex mode, was handled.
        """
        if self.mode == "representative":
            return loop.halfedge in self.examined_halfedges

        self._walked = None
        points = []
        for halfedge in loop.halfedges(mesh):
            point = mesh.point(mesh.target[halfedge])
            if point in self.examined_points:
                return True
            points.append(point)
        self._walked = (loop.halfedge, points)
        return False

    def record(self, mesh: HalfEdgeMesh, loop: BoundaryLoop) -> None:
        """Mark the loop as handled.

        Must be called before the loop is filled, while its half-edges still
        form a boundary cycle.
        """
        if self.mode == "representative":
            self.examined_halfedges.update(loop.halfedges(mesh))
            return

        if self._walked is not None and self._walked[0] == loop.halfedge:
            points = self._walked[1]
        else:
            points = [mesh.point(mesh.target[h]) for h in loop.halfedges(mesh)]
        self._walked = None
        self.examined_points.update(points)

    def __len__(self) -> int:
        if self.mode == "representative":
            return len(self.examined_halfedges)
        return len(self.examined_points)
