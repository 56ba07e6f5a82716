"""Rao-Blackwellized particle-filter SLAM.

This package contains the building blocks of a FastSLAM 2.0 estimator:
- containers: Persistent (copy-on-write) landmark map
- estimators: Gaussians, unscented transform, weighted particle set
- models: Motion and observation models for a planar robot
- slam: SE(2) geometry, event log, result interface and the FastSLAM engine
"""

__version__ = "0.1.0"
