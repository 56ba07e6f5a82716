"""
Unscented transform primitives.

This module provides the stateless building blocks behind the Unscented
Kalman Filter, in the form the particle filter needs them: propagate a
Gaussian through a nonlinear function, and condition a Gaussian on a
measurement.

Implements:
    - Scaled sigma point generation χ₀ = x̂, χᵢ = x̂ ± √(n+λ) Lᵢ
    - Weighted reconstruction of mean, covariance and cross-covariance
    - Kalman-style correction K = P_xz S⁻¹, x̂⁺ = x̂ + K ν, P⁺ = P − K S Kᵀ

Sigma-point statistics are accumulated as deviations from the transformed
centre point, so a zero-covariance input yields exactly the transformed
mean and an exactly zero covariance.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional, Tuple

import numpy as np

from rbslam.estimators.gaussian import MultivariateNormal, psd_cholesky

Residual = Callable[[np.ndarray, np.ndarray], np.ndarray]
Normalizer = Callable[[np.ndarray], np.ndarray]


@lru_cache(maxsize=None)
def _sigma_weights(alpha: float, beta: float, kappa: float, n: int) -> Tuple[float, np.ndarray, np.ndarray]:
    lambda_ = alpha**2 * (n + kappa) - n

    # Weights for mean computation
    Wm = np.full(2 * n + 1, 1.0 / (2 * (n + lambda_)))
    Wm[0] = lambda_ / (n + lambda_)

    # Weights for covariance computation
    Wc = Wm.copy()
    Wc[0] = Wm[0] + (1 - alpha**2 + beta)

    Wm.setflags(write=False)
    Wc.setflags(write=False)
    return float(np.sqrt(n + lambda_)), Wm, Wc


@dataclass(frozen=True)
class UnscentedParams:
    """
    Shape parameters of the scaled unscented transform.

    Attributes:
        alpha: Spread of sigma points around the mean (typically 1e-3 <= alpha <= 1).
        beta: Prior knowledge of the distribution (2 is optimal for Gaussians).
        kappa: Secondary scaling parameter.
    """

    alpha: float = 0.002
    beta: float = 2.0
    kappa: float = 0.0

    def __post_init__(self) -> None:
        if self.alpha <= 0:
            raise ValueError(f"alpha must be positive, got {self.alpha}")

    def weights(self, n: int) -> Tuple[float, np.ndarray, np.ndarray]:
        """
        Sigma point scale and weights for an n-dimensional input.

        Returns:
            Tuple of (scale √(n+λ), Wm (2n+1,), Wc (2n+1,)). The arrays are
            shared and read-only.
        """
        # n + λ = α²(n + κ)
        if self.alpha**2 * (n + self.kappa) <= 0:
            raise ValueError(
                f"n + lambda must be positive (n={n}, alpha={self.alpha}, kappa={self.kappa})"
            )
        return _sigma_weights(self.alpha, self.beta, self.kappa, n)


def sigma_point_offsets(dist: MultivariateNormal, params: UnscentedParams) -> np.ndarray:
    """
    Offsets of the sigma points from the mean.

    Returns:
        Array (2n+1, n): row 0 is zero, rows 1..n are +√(n+λ) Lᵢ and rows
        n+1..2n are −√(n+λ) Lᵢ, where Lᵢ is the i-th column of the factor.
    """
    n = dist.dim
    scale, _, _ = params.weights(n)
    columns = scale * dist.chol_cov.T
    return np.vstack([np.zeros((1, n)), columns, -columns])


def sigma_points(dist: MultivariateNormal, params: UnscentedParams) -> np.ndarray:
    """Sigma points (2n+1, n) of ``dist``, one per row."""
    return dist.mean + sigma_point_offsets(dist, params)


def unscented_transform(
    params: UnscentedParams,
    func: Callable[[np.ndarray], np.ndarray],
    dist: MultivariateNormal,
    noise_chol: Optional[np.ndarray] = None,
    residual: Optional[Residual] = None,
    normalize: Optional[Normalizer] = None,
) -> Tuple[MultivariateNormal, np.ndarray]:
    """
    Propagate a Gaussian through a nonlinear function.

    Args:
        params: Unscented transform parameters.
        func: Function y = f(x) applied to every sigma point.
        dist: Input Gaussian over x.
        noise_chol: Optional factor of additive output noise.
        residual: Difference in output space, residual(a, b) = a ⊖ b.
            Defaults to plain subtraction.
        normalize: Optional map of the output mean back to its canonical
            range (e.g. angle wrapping).

    Returns:
        Tuple of (output Gaussian, cross-covariance P_xy (n_x × n_y)).
    """
    _, Wm, Wc = params.weights(dist.dim)
    offsets = sigma_point_offsets(dist, params)
    outputs = [np.asarray(func(dist.mean + offset), dtype=float).reshape(-1) for offset in offsets]

    diff = residual if residual is not None else np.subtract
    centre = outputs[0]
    deviations = np.array([diff(y, centre) for y in outputs])

    # Σ Wm = 1, so the mean is the centre plus the weighted mean deviation
    mean_shift = Wm @ deviations
    mean = centre + mean_shift
    if normalize is not None:
        mean = normalize(mean)

    spread = deviations - mean_shift
    covariance = (Wc[:, np.newaxis] * spread).T @ spread
    if noise_chol is not None:
        covariance = covariance + noise_chol @ noise_chol.T

    cross_covariance = (Wc[:, np.newaxis] * offsets).T @ spread

    return MultivariateNormal(mean, psd_cholesky(covariance)), cross_covariance


def unscented_update(
    params: UnscentedParams,
    observe: Callable[[np.ndarray], np.ndarray],
    prior: MultivariateNormal,
    observation: MultivariateNormal,
    residual: Optional[Residual] = None,
    normalize: Optional[Normalizer] = None,
) -> MultivariateNormal:
    """
    Condition a Gaussian on a measurement using the unscented transform.

    Args:
        params: Unscented transform parameters.
        observe: Measurement function z = h(x).
        prior: Gaussian over x before the measurement.
        observation: Measurement z, with its noise as the covariance.
        residual: Difference in measurement space (innovation).
        normalize: Optional normalisation of the posterior mean.

    Returns:
        Posterior Gaussian over x.
    """
    predicted, Pxz = unscented_transform(
        params, observe, prior, noise_chol=observation.chol_cov, residual=residual
    )

    # S is singular for noiseless, fully determined measurements
    S = predicted.covariance
    K = Pxz @ np.linalg.pinv(S)

    diff = residual if residual is not None else np.subtract
    innovation = diff(observation.mean, predicted.mean)

    mean = prior.mean + K @ innovation
    if normalize is not None:
        mean = normalize(mean)
    covariance = prior.covariance - K @ S @ K.T

    return MultivariateNormal(mean, psd_cholesky(covariance))
