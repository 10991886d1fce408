from setuptools import find_packages, setup

setup(
    name="hole_mender",
    version="0.1.0",
    description="Selective hole filling for reconstructed surface meshes",
    packages=find_packages(include=["hole_mender", "hole_mender.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "scipy>=1.12",
        "trimesh",
        "fast-simplification",
        "pyvista",
        "networkx",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "fill_holes=hole_mender.cli:fill_holes",
            "simplify_mesh=hole_mender.cli:simplify_mesh",
            "smoothe_mesh=hole_mender.cli:smoothe_mesh",
            "rm_connected_components=hole_mender.cli:rm_connected_components",
            "repair_mesh=hole_mender.cli:repair_mesh",
            "remesh=hole_mender.cli:remesh",
        ],
    },
)
