"""Configuration values for the FastSLAM engine.

Defaults:
    - 100 particles
    - Resample when N_eff < 0.75 N, warn about collapse when N_eff < 0.5 N
    - Per-particle trajectory history retained
    - Scaled unscented transform with α = 0.002, β = 2, κ = 0
"""

from dataclasses import dataclass
from typing import Optional

from rbslam.estimators.unscented import UnscentedParams


@dataclass
class FastSlamConfig:
    """
    FastSLAM 2.0 parameters.

    Attributes:
        num_particles: Target size of the particle population.
        resample_threshold: Resample when the effective sample size falls
            below ``resample_threshold * num_particles``.
        collapse_threshold: Report filter collapse when the effective sample
            size falls below ``collapse_threshold * num_particles``.
        keep_history: Keep a trajectory per particle (exact smoothed lineage,
            more memory). When False only one running trajectory of the best
            particle at each step is kept.
        ukf_alpha: Spread of unscented sigma points.
        ukf_beta: Unscented prior-knowledge parameter.
        ukf_kappa: Unscented secondary scaling parameter.
        seed: Random seed; None draws fresh entropy.
    """

    num_particles: int = 100
    resample_threshold: float = 0.75
    collapse_threshold: float = 0.5
    keep_history: bool = True
    ukf_alpha: float = 0.002
    ukf_beta: float = 2.0
    ukf_kappa: float = 0.0
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate parameter ranges."""
        if self.num_particles < 0:
            raise ValueError(f"num_particles must be non-negative, got {self.num_particles}")
        if not 0.0 <= self.resample_threshold <= 1.0:
            raise ValueError(
                f"resample_threshold must be in [0, 1], got {self.resample_threshold}"
            )
        if not 0.0 <= self.collapse_threshold <= 1.0:
            raise ValueError(
                f"collapse_threshold must be in [0, 1], got {self.collapse_threshold}"
            )
        if self.ukf_alpha <= 0:
            raise ValueError(f"ukf_alpha must be positive, got {self.ukf_alpha}")

    def unscented_params(self) -> UnscentedParams:
        return UnscentedParams(alpha=self.ukf_alpha, beta=self.ukf_beta, kappa=self.ukf_kappa)
