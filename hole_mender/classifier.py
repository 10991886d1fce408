"""Provides the classification of boundary loops by size."""

import logging
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from hole_mender.boundary import BoundaryLoop
from hole_mender.half_edge_mesh import HalfEdgeMesh, Point

logging.basicConfig(format="%(message)s")


class Verdict(Enum):
    """The outcome of classifying a boundary loop."""

    ACCEPT = "accept"
    TOO_MANY_EDGES = "too_many_edges"
    TOO_WIDE = "too_wide"

    @property
    def accepted(self) -> bool:
        return self is Verdict.ACCEPT


@dataclass(frozen=True)
class HoleThresholds:
    """The largest hole that may be filled.

    Attributes
    ----------
    max_diameter : float
        The largest per-axis bounding box extent of a fillable hole.
    max_edge_count : int
        The largest number of boundary edges of a fillable hole.
    """

    max_diameter: float
    max_edge_count: int

    @property
    def enabled(self) -> bool:
        """Whether the thresholds filter anything.

        A non-positive value for either threshold disables classification
        altogether and every hole is accepted.
        """
        return self.max_diameter > 0 and self.max_edge_count > 0


class AxisAlignedBox:
    """A running axis-aligned bounding box."""

    def __init__(self) -> None:
        self.minimum = np.full(3, math.inf)
        self.maximum = np.full(3, -math.inf)

    def extend(self, point: Point | NDArray) -> None:
        self.minimum = np.minimum(self.minimum, point)
        self.maximum = np.maximum(self.maximum, point)

    def extents(self) -> NDArray[np.float64]:
        """Get the size of the box along each axis.

        Returns
        -------
        NDArray[np.float64]
            The (x, y, z) extents, all zero for an empty box.
        """
        if np.any(self.minimum > self.maximum):
            return np.zeros(3)
        return self.maximum - self.minimum

    def exceeds(self, limit: float) -> bool:
        """Check whether the box is larger than the limit along any one axis."""
        return bool(np.any(self.extents() > limit))


class HoleClassifier:
    """The class for deciding whether a boundary loop is small enough to fill."""

    def __init__(self, *, debug: bool = False) -> None:
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    def classify(
        self,
        mesh: HalfEdgeMesh,
        loop: BoundaryLoop,
        thresholds: HoleThresholds,
    ) -> Verdict:
        """Classify a boundary loop against the thresholds.

        The loop is walked once while the edge count and the bounding box of the
        visited vertices grow. The walk stops as soon as either threshold is
        exceeded, so large holes are rejected without being fully traversed.
        Values equal to a threshold are accepted.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh containing the loop.
        loop : BoundaryLoop
            The loop to classify.
        thresholds : HoleThresholds
            The largest hole that may be filled.

        Returns
        -------
        Verdict
            ``Verdict.ACCEPT`` when the loop is within both thresholds or when
            the thresholds are disabled, otherwise the reason for rejection.
        """
        if not thresholds.enabled:
            self.logger.debug(
                "Thresholds disabled, accepting loop %d without classification",
                loop.halfedge,
            )
            return Verdict.ACCEPT

        box = AxisAlignedBox()
        edge_count = 0
        for halfedge in loop.halfedges(mesh):
            box.extend(mesh.vertices[mesh.target[halfedge]])
            edge_count += 1

            if edge_count > thresholds.max_edge_count:
                self.logger.debug(
                    "Rejecting loop %d: more than %d edges",
                    loop.halfedge,
                    thresholds.max_edge_count,
                )
                return Verdict.TOO_MANY_EDGES
            if box.exceeds(thresholds.max_diameter):
                self.logger.debug(
                    "Rejecting loop %d: extents %s exceed %s after %d edges",
                    loop.halfedge,
                    box.extents(),
                    thresholds.max_diameter,
                    edge_count,
                )
                return Verdict.TOO_WIDE

        self.logger.debug(
            "Accepting loop %d with %d edges and extents %s",
            loop.halfedge,
            edge_count,
            box.extents(),
        )
        return Verdict.ACCEPT

    @staticmethod
    def measure(
        mesh: HalfEdgeMesh,
        loop: BoundaryLoop,
    ) -> tuple[int, NDArray[np.float64]]:
        """Measure a whole loop without stopping early.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh containing the loop.
        loop : BoundaryLoop
            The loop to measure.

        Returns
        -------
        edge_count : int
            The number of boundary edges of the loop.
        extents : NDArray[np.float64]
            The (x, y, z) extents of the loop's bounding box.
        """
        points = mesh.vertices[loop.vertices(mesh)]
        return len(points), points.max(axis=0) - points.min(axis=0)
