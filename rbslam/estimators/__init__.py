"""
State estimation primitives used by the SLAM engine.

Available components:
    - MultivariateNormal: Gaussian in Cholesky (square-root) form
    - Unscented transform and unscented measurement update
    - WeightedParticleSet: Generic weighted particle population
"""

from rbslam.estimators.gaussian import MultivariateNormal, psd_cholesky
from rbslam.estimators.unscented import (
    UnscentedParams,
    sigma_point_offsets,
    sigma_points,
    unscented_transform,
    unscented_update,
)
from rbslam.estimators.particle_set import WeightedParticleSet

__all__ = [
    # Gaussians
    "MultivariateNormal",
    "psd_cholesky",
    # Unscented transform
    "UnscentedParams",
    "sigma_point_offsets",
    "sigma_points",
    "unscented_transform",
    "unscented_update",
    # Particle filter
    "WeightedParticleSet",
]
