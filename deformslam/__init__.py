"""Geometry, statistics, clustering, evaluation and two-view initialization utilities for monocular SLAM in deforming scenes."""

__version__ = "0.1.0"