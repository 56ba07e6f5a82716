"""
Unit tests for the unscented transform primitives.

Tests cover:
    - Sigma point weights and layout
    - Exactness for linear functions
    - Exact propagation of zero covariances
    - Unscented update against the linear Kalman filter
    - Angular residuals across the ±π discontinuity
"""

import unittest

import numpy as np
from numpy.testing import assert_allclose

from rbslam.estimators import (
    MultivariateNormal,
    UnscentedParams,
    sigma_point_offsets,
    sigma_points,
    unscented_transform,
    unscented_update,
)


def _wrapped_residual(a, b):
    d = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
    return np.arctan2(np.sin(d), np.cos(d))


class TestSigmaPoints(unittest.TestCase):
    """Scaled sigma point set."""

    def test_default_params(self):
        params = UnscentedParams()
        self.assertEqual((params.alpha, params.beta, params.kappa), (0.002, 2.0, 0.0))

    def test_invalid_alpha(self):
        with self.assertRaises(ValueError):
            UnscentedParams(alpha=0.0)

    def test_invalid_kappa_for_dimension(self):
        with self.assertRaises(ValueError):
            UnscentedParams(alpha=1.0, kappa=-3.0).weights(2)

    def test_mean_weights_sum_to_one(self):
        for params in [UnscentedParams(), UnscentedParams(alpha=0.5, kappa=1.0)]:
            for n in [1, 3, 5]:
                _, Wm, Wc = params.weights(n)
                self.assertEqual(Wm.shape, (2 * n + 1,))
                self.assertAlmostEqual(float(np.sum(Wm)), 1.0, places=6)
                self.assertAlmostEqual(float(Wc[0] - Wm[0]), 1 - params.alpha**2 + params.beta)

    def test_weights_are_read_only(self):
        _, Wm, _ = UnscentedParams().weights(3)
        with self.assertRaises(ValueError):
            Wm[0] = 0.0

    def test_layout(self):
        params = UnscentedParams(alpha=1.0)
        dist = MultivariateNormal.from_std(np.array([1.0, 2.0]), np.array([0.5, 2.0]))
        points = sigma_points(dist, params)
        scale, _, _ = params.weights(2)

        self.assertEqual(points.shape, (5, 2))
        assert_allclose(points[0], [1.0, 2.0])
        assert_allclose(points[1], [1.0 + scale * 0.5, 2.0])
        assert_allclose(points[2], [1.0, 2.0 + scale * 2.0])
        assert_allclose(points[3], [1.0 - scale * 0.5, 2.0])
        assert_allclose(points[4], [1.0, 2.0 - scale * 2.0])

    def test_zero_covariance_offsets_vanish(self):
        dist = MultivariateNormal.point_mass(np.array([1.0, 2.0, 3.0]))
        assert_allclose(sigma_point_offsets(dist, UnscentedParams()), 0.0)


class TestUnscentedTransform(unittest.TestCase):
    """Propagation through nonlinear functions."""

    def setUp(self):
        self.cov = np.array([[1.0, 0.2, 0.0], [0.2, 0.5, 0.1], [0.0, 0.1, 0.3]])
        self.dist = MultivariateNormal.from_covariance(np.array([1.0, -1.0, 0.5]), self.cov)
        self.A = np.array([[1.0, 2.0, 0.0], [0.0, -1.0, 3.0]])
        self.b = np.array([0.5, -0.5])

    def test_linear_function_is_exact(self):
        for params in [UnscentedParams(), UnscentedParams(alpha=1.0, kappa=0.0)]:
            out, Pxy = unscented_transform(params, lambda x: self.A @ x + self.b, self.dist)
            assert_allclose(out.mean, self.A @ self.dist.mean + self.b, atol=1e-8)
            assert_allclose(out.covariance, self.A @ self.cov @ self.A.T, rtol=1e-6, atol=1e-8)
            assert_allclose(Pxy, self.cov @ self.A.T, rtol=1e-6, atol=1e-8)

    def test_additive_noise(self):
        noise = np.diag([0.1, 0.2])
        out, _ = unscented_transform(
            UnscentedParams(), lambda x: self.A @ x, self.dist, noise_chol=noise
        )
        expected = self.A @ self.cov @ self.A.T + noise @ noise.T
        assert_allclose(out.covariance, expected, rtol=1e-6, atol=1e-8)

    def test_zero_covariance_is_exact(self):
        dist = MultivariateNormal.point_mass(np.array([2.0, 0.3]))

        def polar(x):
            return np.array([x[0] * np.cos(x[1]), x[0] * np.sin(x[1])])

        out, Pxy = unscented_transform(UnscentedParams(), polar, dist)
        assert_allclose(out.mean, polar(dist.mean), atol=0)
        assert_allclose(out.covariance, 0.0, atol=0)
        assert_allclose(Pxy, 0.0, atol=0)

    def test_polar_to_cartesian_mean(self):
        """Mean of a nonlinear map is close to the map of the mean for small spread."""
        dist = MultivariateNormal.from_std(np.array([10.0, 0.4]), np.array([0.01, 0.001]))

        def polar(x):
            return np.array([x[0] * np.cos(x[1]), x[0] * np.sin(x[1])])

        out, _ = unscented_transform(UnscentedParams(), polar, dist)
        assert_allclose(out.mean, polar(dist.mean), atol=1e-4)

    def test_angle_residual_across_pi(self):
        """Sigma points straddling ±π average to ±π, not to 0."""
        dist = MultivariateNormal.from_std(np.array([np.pi - 0.01]), np.array([0.05]))

        def wrap(x):
            return np.arctan2(np.sin(x), np.cos(x))

        out, _ = unscented_transform(
            UnscentedParams(alpha=1.0), wrap, dist, residual=_wrapped_residual, normalize=wrap
        )
        self.assertAlmostEqual(abs(float(out.mean[0])), np.pi - 0.01, places=6)
        assert_allclose(out.covariance, [[0.05**2]], rtol=1e-6)


class TestUnscentedUpdate(unittest.TestCase):
    """Measurement conditioning."""

    def test_linear_measurement_matches_kalman_filter(self):
        P = np.array([[2.0, 0.5], [0.5, 1.0]])
        prior = MultivariateNormal.from_covariance(np.array([1.0, 2.0]), P)
        H = np.array([[1.0, 1.0]])
        R = np.array([[0.25]])
        z = MultivariateNormal.from_covariance(np.array([3.5]), R)

        posterior = unscented_update(UnscentedParams(), lambda x: H @ x, prior, z)

        S = H @ P @ H.T + R
        K = P @ H.T @ np.linalg.inv(S)
        expected_mean = prior.mean + K @ (z.mean - H @ prior.mean)
        expected_cov = P - K @ S @ K.T

        assert_allclose(posterior.mean, expected_mean, rtol=1e-6)
        assert_allclose(posterior.covariance, expected_cov, rtol=1e-6, atol=1e-9)

    def test_noiseless_observation_of_point_mass(self):
        """S = 0: the prior is returned unchanged."""
        prior = MultivariateNormal.point_mass(np.array([1.0, 2.0]))
        z = MultivariateNormal.point_mass(np.array([3.0]))

        posterior = unscented_update(UnscentedParams(), lambda x: np.array([x[0] + x[1]]), prior, z)

        assert_allclose(posterior.mean, [1.0, 2.0], atol=0)
        assert_allclose(posterior.covariance, 0.0, atol=0)

    def test_update_shrinks_uncertainty(self):
        prior = MultivariateNormal.from_std(np.array([0.0, 0.0]), np.array([1.0, 1.0]))
        z = MultivariateNormal.from_std(np.array([5.0]), np.array([0.1]))

        def range_to_origin(x):
            return np.array([np.hypot(x[0] - 5.0, x[1])])

        posterior = unscented_update(UnscentedParams(), range_to_origin, prior, z)
        self.assertLess(np.trace(posterior.covariance), np.trace(prior.covariance))


if __name__ == "__main__":
    unittest.main()
