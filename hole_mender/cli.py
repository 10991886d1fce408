"""Command line tools for repairing meshes.

Usage:
    fill_holes 1.0 50 input.ply output.ply
    simplify_mesh 0.5 input.ply output.ply
    smoothe_mesh 10 0.0001 0 input.ply output.ply
    rm_connected_components 1000 1 input.ply output.ply
    repair_mesh --input_mesh input.ply --output_mesh output.ply
    remesh --input_mesh input.ply --output_mesh output.ply --max_triangle_perimeter 0.1
"""

import argparse
import logging
import sys
from typing import NoReturn

import numpy as np
import trimesh

from hole_mender.boundary import BoundaryLoopExtractor
from hole_mender.errors import HoleMenderError
from hole_mender.geometry_service import TrimeshGeometryService
from hole_mender.hole_filler import HoleFiller
from hole_mender.mesh_cleaner import MeshCleaner
from hole_mender.mesh_io import MeshIO
from hole_mender.surface_reconstructor import RADIUS_RATIO_BOUND


class ArgumentParser(argparse.ArgumentParser):
    """An argument parser that exits with status 1 on invalid arguments."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _parser(prog: str, description: str) -> ArgumentParser:
    parser = ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every step of the repair",
    )
    return parser


def _configure_logging(*, verbose: bool) -> None:
    if verbose:
        logging.getLogger("hole_mender").setLevel(logging.DEBUG)


def _border_vertices(mesh: trimesh.Trimesh) -> np.ndarray:
    """Get the vertices on edges used by only one face."""
    edges = mesh.edges_sorted
    border = trimesh.grouping.group_rows(edges, require_count=1)
    return np.unique(edges[border])


def fill_holes(argv: list[str] | None = None) -> int:
    """Fill the holes no larger than the given diameter and number of edges."""
    parser = _parser("fill_holes", fill_holes.__doc__)
    parser.add_argument(
        "max_hole_diameter",
        type=float,
        help="Largest bounding box side of a hole to fill, 0 to fill every hole",
    )
    parser.add_argument(
        "max_num_hole_edges",
        type=int,
        help="Largest number of edges of a hole to fill, 0 to fill every hole",
    )
    parser.add_argument("input_mesh", help="The mesh to repair")
    parser.add_argument("output_mesh", help="Where to write the repaired mesh")
    parser.add_argument(
        "--strategy",
        choices=["cycle_first", "live_scan"],
        default="cycle_first",
        help="How boundary loops are discovered (default: cycle_first)",
    )
    parser.add_argument(
        "--guard",
        choices=["representative", "vertex"],
        default="representative",
        help="How already handled loops are recognized (default: representative)",
    )
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose)

    print(f"Reading mesh:       {args.input_mesh}")
    print(f"Max num hole edges: {args.max_num_hole_edges}")
    print(f"Max hole diameter:  {args.max_hole_diameter}")
    try:
        mesh = MeshIO.load_half_edge(args.input_mesh)
        filler = HoleFiller(
            mesh,
            service=TrimeshGeometryService(debug=args.verbose),
            extractor=BoundaryLoopExtractor(args.strategy, debug=args.verbose),
            guard_mode=args.guard,
            debug=args.verbose,
        )
        report = filler.repair(
            max_diameter=args.max_hole_diameter,
            max_edge_count=args.max_num_hole_edges,
        )
        print(f"{report.filled} holes have been filled")

        print(f"Writing output mesh: {args.output_mesh}")
        MeshIO.save(mesh, args.output_mesh)
    except HoleMenderError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def simplify_mesh(argv: list[str] | None = None) -> int:
    """Simplify a mesh keeping only the given fraction of its edges."""
    parser = _parser("simplify_mesh", simplify_mesh.__doc__)
    parser.add_argument(
        "edge_keep_ratio",
        type=float,
        help="The fraction of the edges to keep, in (0, 1]",
    )
    parser.add_argument("input_mesh", help="The mesh to simplify")
    parser.add_argument("output_mesh", help="Where to write the simplified mesh")
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose)

    print(f"Edge keep ratio: {args.edge_keep_ratio}")
    print(f"Reading mesh:       {args.input_mesh}")
    try:
        mesh = MeshIO.load(args.input_mesh)
        service = TrimeshGeometryService(debug=args.verbose)
        removed = service.simplify(mesh, args.edge_keep_ratio)
        print(f"Edges removed: {removed}.")
        print(f"Edges left: {len(mesh.edges_unique)}.")

        print(f"Writing output mesh: {args.output_mesh}")
        MeshIO.save(mesh, args.output_mesh)
    except HoleMenderError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def smoothe_mesh(argv: list[str] | None = None) -> int:
    """Smooth the shape of a mesh, keeping its border fixed unless asked."""
    parser = _parser("smoothe_mesh", smoothe_mesh.__doc__)
    parser.add_argument("num_iterations", type=int, help="Number of smoothing steps")
    parser.add_argument("smoothing_time", type=float, help="Time step of each step")
    parser.add_argument(
        "smoothe_boundary",
        type=int,
        help="Non-zero to also move the border vertices",
    )
    parser.add_argument("input_mesh", help="The mesh to smooth")
    parser.add_argument("output_mesh", help="Where to write the smoothed mesh")
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose)

    print(f"Reading mesh:         {args.input_mesh}")
    print(f"Number of iterations: {args.num_iterations}")
    print(f"Smoothing time:       {args.smoothing_time}")
    print(f"Smoothe boundary:     {args.smoothe_boundary}")
    try:
        mesh = MeshIO.load(args.input_mesh)
        constrained = (
            np.empty(0, dtype=np.int64)
            if args.smoothe_boundary
            else _border_vertices(mesh)
        )
        print(f"Constraining: {len(constrained)} border vertices.")

        service = TrimeshGeometryService(debug=args.verbose)
        service.smooth(
            mesh,
            args.smoothing_time,
            args.num_iterations,
            constrained_vertices=constrained,
        )

        print(f"Writing output mesh: {args.output_mesh}")
        MeshIO.save(mesh, args.output_mesh)
    except HoleMenderError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def rm_connected_components(argv: list[str] | None = None) -> int:
    """Remove small connected components from a mesh."""
    parser = _parser("rm_connected_components", rm_connected_components.__doc__)
    parser.add_argument(
        "num_min_faces_in_component",
        type=int,
        help="Drop components with fewer faces, ignored if not positive",
    )
    parser.add_argument(
        "num_components_to_keep",
        type=int,
        help="Keep only this many of the largest components, ignored if not positive",
    )
    parser.add_argument("input_mesh", help="The mesh to clean")
    parser.add_argument("output_mesh", help="Where to write the cleaned mesh")
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose)

    print(f"Reading mesh:               {args.input_mesh}")
    print(f"Min num faces in component: {args.num_min_faces_in_component}")
    print(f"Num components to keep:     {args.num_components_to_keep}")
    try:
        mesh = MeshIO.load(args.input_mesh)
        cleaner = MeshCleaner(mesh, debug=args.verbose)
        print(f"The mesh has {len(cleaner.face_components())} connected components.")
        cleaner.remove_components(
            args.num_min_faces_in_component,
            args.num_components_to_keep,
        )

        print(f"Writing output mesh: {args.output_mesh}")
        MeshIO.save(mesh, args.output_mesh)
    except HoleMenderError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def repair_mesh(argv: list[str] | None = None) -> int:
    """Repair a polygon soup into a consistently oriented mesh."""
    parser = _parser("repair_mesh", repair_mesh.__doc__)
    parser.add_argument("--input_mesh", required=True, help="The input mesh file")
    parser.add_argument("--output_mesh", required=True, help="The output mesh file")
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose)

    print(f"Reading {args.input_mesh}")
    try:
        mesh = MeshIO.load(args.input_mesh)
        MeshCleaner(mesh, debug=args.verbose).repair_soup()
        print(
            f"Mesh has {len(mesh.vertices)} vertices and {len(mesh.faces)} faces",
        )

        print(f"Writing: {args.output_mesh}")
        MeshIO.save(mesh, args.output_mesh)
    except HoleMenderError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def remesh(argv: list[str] | None = None) -> int:
    """Rebuild the surface through the points of a mesh by advancing a front."""
    parser = _parser("remesh", remesh.__doc__)
    parser.add_argument("--input_mesh", required=True, help="The input mesh file")
    parser.add_argument("--output_mesh", required=True, help="The output mesh file")
    parser.add_argument(
        "--max_triangle_perimeter",
        type=float,
        default=0.0,
        help="All created triangles have a perimeter no larger than this",
    )
    parser.add_argument(
        "--radius_ratio_bound",
        type=float,
        default=RADIUS_RATIO_BOUND,
        help="Larger values allow more, but less regular, triangles (default: 5.0)",
    )
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose)
    if args.max_triangle_perimeter <= 0:
        parser.error("The maximum triangle perimeter is not specified")
    if args.radius_ratio_bound <= 0:
        parser.error("The radius ratio bound must be positive")

    print(f"Reading: {args.input_mesh}")
    try:
        points = MeshIO.load_points(args.input_mesh)
        print(f"Read: {len(points)} points.")

        service = TrimeshGeometryService(debug=args.verbose)
        mesh = service.reconstruct(
            points,
            args.max_triangle_perimeter,
            args.radius_ratio_bound,
        )
        print(f"Created {len(mesh.faces)} faces")

        print(f"Writing: {args.output_mesh}")
        MeshIO.save(mesh, args.output_mesh)
    except HoleMenderError as e:
        print(e, file=sys.stderr)
        return 1
    return 0
