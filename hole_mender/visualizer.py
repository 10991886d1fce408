"""Module for visualizing holes and patches using PyVista."""

from collections.abc import Sequence
from typing import Literal

import numpy as np
import pyvista as pv

from hole_mender.boundary import BoundaryLoop, BoundaryLoopExtractor
from hole_mender.classifier import HoleClassifier, HoleThresholds
from hole_mender.half_edge_mesh import HalfEdgeMesh


class Visualizer:
    """Class for visualizing holes and patches using PyVista."""

    @staticmethod
    def to_polydata(mesh: HalfEdgeMesh) -> pv.PolyData:
        """Convert a half-edge mesh to a PyVista surface."""
        cells = np.column_stack([np.full(mesh.n_faces, 3), mesh.faces]).ravel()
        return pv.PolyData(mesh.vertices.copy(), cells)

    @staticmethod
    def loop_polylines(
        mesh: HalfEdgeMesh,
        loops: Sequence[BoundaryLoop],
    ) -> pv.PolyData:
        """Build one closed polyline per boundary loop.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh containing the loops.
        loops : Sequence[BoundaryLoop]
            The loops to trace.

        Returns
        -------
        pv.PolyData
            The polylines over all mesh vertices, in the order of the loops.
        """
        polylines = pv.PolyData(mesh.vertices.copy())
        lines = []
        for loop in loops:
            vertices = loop.vertices(mesh)
            lines.append([len(vertices) + 1, *vertices, vertices[0]])
        if lines:
            polylines.lines = np.hstack(lines)
        return polylines

    @staticmethod
    def show_holes(
        mesh: HalfEdgeMesh,
        thresholds: HoleThresholds,
        *,
        highlight_faces: list[int] | None = None,
        opacity: float = 1.0,
        style: Literal["points", "wireframe", "surface"] = "surface",
    ) -> pv.Plotter:
        """Show the mesh with its holes colored by whether they would be filled.

        Holes within the thresholds are drawn in green and the others in red.

        Parameters
        ----------
        mesh : HalfEdgeMesh
            The mesh to show.
        thresholds : HoleThresholds
            The largest hole that may be filled.
        highlight_faces : list[int] | None, optional
            Faces to highlight, such as the faces of new patches, by default None
        opacity : float, optional
            The opacity of the surface, by default 1.0
        style : Literal["points", "wireframe", "surface"], optional
            How to draw the surface, by default "surface"

        Returns
        -------
        pv.Plotter
            The plotter after it was shown.
        """
        surface = Visualizer.to_polydata(mesh)
        plotter = pv.Plotter()
        plotter.add_mesh(surface, show_edges=True, style=style, opacity=opacity)

        if highlight_faces:
            unique_faces = np.unique(highlight_faces)
            plotter.add_mesh(
                surface.extract_cells(unique_faces),
                color="lightgreen",
                show_edges=True,
            )

        classifier = HoleClassifier()
        accepted, rejected = [], []
        for loop in BoundaryLoopExtractor().extract(mesh):
            verdict = classifier.classify(mesh, loop, thresholds)
            (accepted if verdict.accepted else rejected).append(loop)

        for loops, color in ((accepted, "#33FF33"), (rejected, "#FF5555")):
            if loops:
                plotter.add_mesh(
                    Visualizer.loop_polylines(mesh, loops),
                    render_lines_as_tubes=True,
                    color=color,
                    line_width=2.5,
                )

        plotter.show()
        return plotter
