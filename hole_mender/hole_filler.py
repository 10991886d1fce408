"""Provides the class for selectively filling holes in a half-edge mesh."""

import logging
from dataclasses import dataclass

from hole_mender.boundary import BoundaryLoop, BoundaryLoopExtractor
from hole_mender.classifier import HoleClassifier, HoleThresholds
from hole_mender.errors import PatchError
from hole_mender.geometry_service import GeometryService, TrimeshGeometryService
from hole_mender.guard import DuplicateLoopGuard, GuardMode
from hole_mender.half_edge_mesh import HalfEdgeMesh
from hole_mender.hole_patcher import MIN_LOOP_EDGES

logging.basicConfig(format="%(message)s")


@dataclass
class RepairReport:
    """Counts of what happened to each discovered boundary loop.

    Attributes
    ----------
    filled : int
        Loops that were patched, whether or not fairing converged.
    rejected : int
        Loops larger than the thresholds.
    skipped : int
        Loops that had already been handled.
    degenerate : int
        Loops with fewer than three edges, which cannot be triangulated.
    failed : int
        Accepted loops the geometry service could not patch.
    not_converged : int
        Filled loops whose fairing did not converge.
    new_vertices : int
        The number of vertices added to the mesh.
    new_faces : int
        The number of faces added to the mesh.
    """

    filled: int = 0
    rejected: int = 0
    skipped: int = 0
    degenerate: int = 0
    failed: int = 0
    not_converged: int = 0
    new_vertices: int = 0
    new_faces: int = 0


class HoleFiller:
    """The class for filling the holes of a mesh that are small enough.

    Each discovered boundary loop is first checked against the duplicate loop
    guard and then classified. Accepted loops are patched in place by the
    geometry service. Patches whose fairing does not converge are kept. Every
    call to ``repair`` starts with an empty guard, so the same filler can be
    run again with other thresholds.
    """

    def __init__(
        self,
        mesh: HalfEdgeMesh,
        *,
        service: GeometryService | None = None,
        extractor: BoundaryLoopExtractor | None = None,
        guard_mode: GuardMode = "representative",
        debug: bool = False,
    ) -> None:
        self.mesh = mesh
        self.service = service or TrimeshGeometryService(debug=debug)
        self.extractor = extractor or BoundaryLoopExtractor(debug=debug)
        # Fail on an unknown mode before any run
        self.guard_mode = DuplicateLoopGuard(guard_mode).mode
        self.classifier = HoleClassifier(debug=debug)
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def repair(self, *, max_diameter: float, max_edge_count: int) -> RepairReport:
        """Fill every hole that is within the thresholds.

        Parameters
        ----------
        max_diameter : float
            The largest per-axis bounding box extent of a hole to fill. A
            non-positive value disables both thresholds.
        max_edge_count : int
            The largest number of boundary edges of a hole to fill. A
            non-positive value disables both thresholds.

        Returns
        -------
        RepairReport
            The outcome counts. ``filled`` is the number of holes filled.
        """
        thresholds = HoleThresholds(max_diameter, max_edge_count)
        if not thresholds.enabled:
            self.logger.debug("Thresholds disabled, every hole will be filled")

        # Loops handled in an earlier run must not be skipped
        guard = DuplicateLoopGuard(self.guard_mode)
        report = RepairReport()
        for loop in self.extractor.loops(self.mesh):
            self._handle_loop(loop, thresholds, guard, report)

        self.logger.debug(
            "Filled %d holes, rejected %d, skipped %d, degenerate %d, failed %d",
            report.filled,
            report.rejected,
            report.skipped,
            report.degenerate,
            report.failed,
        )
        if report.not_converged:
            self.logger.warning(
                "Fairing did not converge for %d of %d filled holes",
                report.not_converged,
                report.filled,
            )
        return report

    def _handle_loop(
        self,
        loop: BoundaryLoop,
        thresholds: HoleThresholds,
        guard: DuplicateLoopGuard,
        report: RepairReport,
    ) -> None:
        """Move one discovered loop through skip, reject or patch.

        Parameters
        ----------
        loop : BoundaryLoop
            The discovered loop.
        thresholds : HoleThresholds
            The largest hole that may be filled.
        guard : DuplicateLoopGuard
            The loops handled so far in this run.
        report : RepairReport
            The counts to update.
        """
        if not self.mesh.is_boundary(loop.halfedge):
            # Filled earlier in this run
            report.skipped += 1
            return
        if guard.seen(self.mesh, loop):
            self.logger.debug("Skipping already handled loop %d", loop.halfedge)
            report.skipped += 1
            return

        verdict = self.classifier.classify(self.mesh, loop, thresholds)
        guard.record(self.mesh, loop)
        if not verdict.accepted:
            report.rejected += 1
            return

        edge_count = sum(1 for _ in loop.halfedges(self.mesh))
        if edge_count < MIN_LOOP_EDGES:
            self.logger.debug(
                "Skipping degenerate loop %d with %d edges",
                loop.halfedge,
                edge_count,
            )
            report.degenerate += 1
            return

        try:
            result = self.service.fill(self.mesh, loop.halfedge)
        except PatchError as e:
            self.logger.warning("Could not fill loop %d: %s", loop.halfedge, e)
            report.failed += 1
            return

        report.filled += 1
        report.new_vertices += len(result.new_vertices)
        report.new_faces += len(result.new_faces)
        if not result.converged:
            report.not_converged += 1
        self.logger.debug(
            "Filled loop %d with %d faces and %d vertices (converged: %s)",
            loop.halfedge,
            len(result.new_faces),
            len(result.new_vertices),
            result.converged,
        )


def fill_holes(
    mesh: HalfEdgeMesh,
    max_diameter: float,
    max_edge_count: int,
    *,
    debug: bool = False,
) -> int:
    """Fill the holes of a mesh that are within the thresholds.

    Parameters
    ----------
    mesh : HalfEdgeMesh
        The mesh to repair in place.
    max_diameter : float
        The largest per-axis bounding box extent of a hole to fill.
    max_edge_count : int
        The largest number of boundary edges of a hole to fill.
    debug : bool, optional
        Whether to log every decision, by default False

    Returns
    -------
    int
        The number of holes filled.
    """
    filler = HoleFiller(mesh, debug=debug)
    report = filler.repair(max_diameter=max_diameter, max_edge_count=max_edge_count)
    return report.filled
