"""HoleMender: Selective Hole Filling for Reconstructed Surface Meshes."""

from .boundary import BoundaryLoop, BoundaryLoopExtractor
from .classifier import HoleClassifier, HoleThresholds, Verdict
from .geometry_helper import GeometryHelper
from .geometry_service import GeometryService, TrimeshGeometryService
from .guard import DuplicateLoopGuard
from .half_edge_mesh import HalfEdgeMesh
from .hole_filler import HoleFiller, RepairReport, fill_holes
from .hole_patcher import HolePatcher, PatchResult
from .mesh_cleaner import MeshCleaner
from .mesh_factory import MeshFactory
from .mesh_io import MeshIO
from .surface_reconstructor import SurfaceReconstructor

__all__ = [
    "BoundaryLoop",
    "BoundaryLoopExtractor",
    "DuplicateLoopGuard",
    "GeometryHelper",
    "GeometryService",
    "HalfEdgeMesh",
    "HoleClassifier",
    "HoleFiller",
    "HolePatcher",
    "HoleThresholds",
    "MeshCleaner",
    "MeshFactory",
    "MeshIO",
    "PatchResult",
    "RepairReport",
    "SurfaceReconstructor",
    "TrimeshGeometryService",
    "Verdict",
    "fill_holes",
]
