"""
Multivariate normal distributions in Cholesky form.

Every Gaussian in the filter (poses, landmarks, controls, observations) is
stored as a mean vector and a lower-triangular factor L with P = L Lᵀ. The
factor is what the unscented transform needs to place sigma points, and
log-likelihoods are evaluated with a triangular solve instead of an
explicit inverse.

Zero (or otherwise singular) covariances are allowed. They arise naturally
for noiseless controls and observations, and are treated as point masses
along the degenerate directions.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from scipy.linalg import block_diag, qr, solve_triangular

_LOG_2PI = np.log(2.0 * np.pi)

# Standard deviations at or below this, relative to max(1, largest std),
# mark a direction as degenerate.
_STD_FLOOR = 1e-12

# A residual inside the null space of a singular covariance must be this
# small for the point mass to assign it non-zero density.
_POINT_MASS_ATOL = 1e-8


def psd_cholesky(P: np.ndarray) -> np.ndarray:
    """
    Lower-triangular factor L of a positive semi-definite matrix, L Lᵀ = P.

    Tries a plain Cholesky decomposition first. If P is singular or slightly
    indefinite (the scaled unscented transform can produce tiny negative
    eigenvalues through its negative centre weight), P is projected onto the
    PSD cone by clipping eigenvalues and the factor is recovered from the QR
    decomposition of the symmetric square root.

    Args:
        P: Symmetric matrix (n×n).

    Returns:
        Lower-triangular matrix (n×n) with a non-negative diagonal.
    """
    P = np.asarray(P, dtype=float)
    P = 0.5 * (P + P.T)

    try:
        return np.linalg.cholesky(P)
    except np.linalg.LinAlgError:
        pass

    eigenvalues, eigenvectors = np.linalg.eigh(P)
    root = np.sqrt(np.maximum(eigenvalues, 0.0))[:, np.newaxis] * eigenvectors.T

    # root.T @ root == P, so with root = Q R we get P = Rᵀ R and L = Rᵀ
    R = qr(root, mode="r")[0]
    L = R.T
    signs = np.where(np.diag(L) < 0, -1.0, 1.0)
    return L * signs[np.newaxis, :]


@dataclass
class MultivariateNormal:
    """
    Gaussian distribution N(mean, L Lᵀ).

    Attributes:
        mean: Mean vector (n,).
        chol_cov: Lower-triangular Cholesky factor of the covariance (n×n).
    """

    mean: np.ndarray
    chol_cov: np.ndarray

    def __post_init__(self) -> None:
        self.mean = np.asarray(self.mean, dtype=float).reshape(-1)
        self.chol_cov = np.asarray(self.chol_cov, dtype=float)
        n = self.mean.shape[0]
        if self.chol_cov.shape != (n, n):
            raise ValueError(
                f"chol_cov shape {self.chol_cov.shape} inconsistent with mean dimension {n}"
            )

    @classmethod
    def from_covariance(cls, mean: np.ndarray, covariance: np.ndarray) -> "MultivariateNormal":
        """Build from a full covariance matrix (may be singular)."""
        return cls(mean, psd_cholesky(covariance))

    @classmethod
    def from_std(cls, mean: np.ndarray, std: np.ndarray) -> "MultivariateNormal":
        """Build from independent per-component standard deviations."""
        std = np.asarray(std, dtype=float)
        if np.any(std < 0):
            raise ValueError("std must be non-negative")
        return cls(mean, np.diag(std))

    @classmethod
    def point_mass(cls, mean: np.ndarray) -> "MultivariateNormal":
        """Zero-covariance distribution concentrated at ``mean``."""
        mean = np.asarray(mean, dtype=float).reshape(-1)
        return cls(mean, np.zeros((mean.shape[0], mean.shape[0])))

    @classmethod
    def joint(cls, first: "MultivariateNormal", second: "MultivariateNormal") -> "MultivariateNormal":
        """
        Joint distribution of two independent Gaussians.

        The factor stays lower triangular, with zero cross-covariance blocks.
        """
        return cls(
            np.concatenate([first.mean, second.mean]),
            block_diag(first.chol_cov, second.chol_cov),
        )

    @property
    def dim(self) -> int:
        return self.mean.shape[0]

    @property
    def covariance(self) -> np.ndarray:
        return self.chol_cov @ self.chol_cov.T

    def marginal(self, count: int) -> "MultivariateNormal":
        """
        Marginal over the leading ``count`` components.

        For a lower-triangular factor the leading block of L is itself the
        factor of the leading covariance block, so no refactorisation is
        needed.
        """
        return MultivariateNormal(
            self.mean[:count].copy(), self.chol_cov[:count, :count].copy()
        )

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        """Draw one sample x = mean + L ε with ε ~ N(0, I)."""
        return self.mean + self.chol_cov @ rng.standard_normal(self.dim)

    def log_likelihood(
        self,
        x: np.ndarray,
        residual: Optional[Callable[[np.ndarray, np.ndarray], np.ndarray]] = None,
    ) -> float:
        """
        Log-density at ``x``.

        Args:
            x: Point at which to evaluate (n,).
            residual: Optional difference function r = residual(x, mean),
                used for components that live on a circle.

        Returns:
            log p(x). For a singular covariance the density is taken on the
            range space and is -inf if x leaves the support.
        """
        x = np.asarray(x, dtype=float)
        r = residual(x, self.mean) if residual is not None else x - self.mean

        diag = np.abs(np.diag(self.chol_cov))
        if self.dim == 0:
            return 0.0
        floor = _STD_FLOOR * max(1.0, diag.max())
        if np.all(diag > floor):
            y = solve_triangular(self.chol_cov, r, lower=True)
            return float(-0.5 * y @ y - np.sum(np.log(diag)) - 0.5 * self.dim * _LOG_2PI)

        # Singular covariance: Gaussian on the range space, point mass elsewhere
        eigenvalues, eigenvectors = np.linalg.eigh(self.covariance)
        projected = eigenvectors.T @ r
        support = eigenvalues > floor**2

        if np.any(np.abs(projected[~support]) > _POINT_MASS_ATOL):
            return -np.inf

        variances = eigenvalues[support]
        return float(
            -0.5 * np.sum(projected[support] ** 2 / variances)
            - 0.5 * np.sum(np.log(variances))
            - 0.5 * variances.shape[0] * _LOG_2PI
        )

    def copy(self) -> "MultivariateNormal":
        return MultivariateNormal(self.mean.copy(), self.chol_cov.copy())

    def __repr__(self) -> str:
        return f"MultivariateNormal(mean={self.mean}, std={np.sqrt(np.diag(self.covariance))})"
