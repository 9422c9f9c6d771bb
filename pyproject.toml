[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "deformslam"
version = "0.1.0"
description = "Geometry, statistics and two-view initialization utilities for monocular SLAM in deforming scenes"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "slam",
    "computer-vision",
    "essential-matrix",
    "triangulation",
    "dbscan",
    "monocular",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Image Processing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["deformslam"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
