"""Unit tests for rbslam.models.measurement_models."""

import numpy as np
import pytest

from rbslam.estimators import MultivariateNormal, UnscentedParams, unscented_transform
from rbslam.models import RangeBearingModel, RangeOnlyModel


class TestRangeBearingModel:
    """Range-bearing observations of point landmarks."""

    def test_observe_landmark_ahead(self):
        model = RangeBearingModel()
        z = model.observe(np.array([1.0, 1.0, 0.0]), np.array([4.0, 5.0]))
        np.testing.assert_allclose(z, [5.0, np.arctan2(4.0, 3.0)], atol=1e-12)

    def test_observe_uses_robot_heading(self):
        model = RangeBearingModel()
        z = model.observe(np.array([0.0, 0.0, np.pi / 2]), np.array([0.0, 2.0]))
        np.testing.assert_allclose(z, [2.0, 0.0], atol=1e-12)

    def test_initialize_inverts_observe(self):
        model = RangeBearingModel()
        pose = np.array([2.0, -1.0, 2.5])
        landmark = np.array([-3.0, 4.0])
        z = model.observe(pose, landmark)
        np.testing.assert_allclose(model.initialize(pose, z), landmark, atol=1e-10)

    def test_joint_observe(self):
        model = RangeBearingModel()
        pose = np.array([0.5, 0.5, 0.3])
        landmark = np.array([2.0, 3.0])
        np.testing.assert_allclose(
            model.joint_observe(np.concatenate([pose, landmark])), model.observe(pose, landmark)
        )

    def test_residual_wraps_bearing(self):
        d = RangeBearingModel.residual(np.array([1.0, -np.pi + 0.05]), np.array([0.5, np.pi - 0.05]))
        np.testing.assert_allclose(d, [0.5, 0.1], atol=1e-12)

    def test_normalize(self):
        z = RangeBearingModel.normalize(np.array([2.0, 3 * np.pi / 2]))
        np.testing.assert_allclose(z, [2.0, -np.pi / 2], atol=1e-12)

    def test_observation_distribution(self):
        z = RangeBearingModel.observation(3.0, 0.2, r_std=0.1, bearing_std=0.02)
        np.testing.assert_allclose(z.mean, [3.0, 0.2])
        np.testing.assert_allclose(z.covariance, np.diag([0.01, 0.0004]), atol=1e-15)

    def test_validate_observation(self):
        model = RangeBearingModel()
        with pytest.raises(ValueError, match="observation dimension"):
            model.validate_observation(RangeOnlyModel.observation(1.0))

    def test_initialization_distribution_is_observation(self):
        z = RangeBearingModel.observation(3.0, 0.2, 0.1, 0.02)
        assert RangeBearingModel().initialization_distribution(z) is z

    def test_landmark_behind_robot_bearing_near_pi(self):
        """Unscented prediction of a landmark straight behind the robot."""
        model = RangeBearingModel()
        pose = MultivariateNormal.from_std(np.array([0.0, 0.0, 0.0]), np.array([0.0, 0.0, 0.05]))
        landmark = np.array([-5.0, 0.0])

        predicted, _ = unscented_transform(
            UnscentedParams(),
            lambda p: model.observe(p, landmark),
            pose,
            residual=model.residual,
            normalize=model.normalize,
        )
        assert np.isclose(predicted.mean[0], 5.0, atol=1e-6)
        assert np.isclose(abs(predicted.mean[1]), np.pi, atol=1e-6)
        assert np.isclose(predicted.covariance[1, 1], 0.05**2, rtol=1e-4)


class TestRangeOnlyModel:
    """Range-only observations with a bearing prior for initialisation."""

    def test_observe(self):
        model = RangeOnlyModel()
        z = model.observe(np.array([1.0, 2.0, 1.3]), np.array([4.0, 6.0]))
        np.testing.assert_allclose(z, [5.0])

    def test_negative_bearing_std_rejected(self):
        with pytest.raises(ValueError):
            RangeOnlyModel(bearing_std=-0.1)

    def test_initialization_distribution_adds_bearing(self):
        model = RangeOnlyModel(bearing_std=0.3)
        init = model.initialization_distribution(RangeOnlyModel.observation(4.0, 0.1))
        assert init.dim == 2
        np.testing.assert_allclose(init.mean, [4.0, 0.0])
        np.testing.assert_allclose(init.covariance, np.diag([0.01, 0.09]), atol=1e-15)

    def test_initialize_places_landmark_ahead(self):
        model = RangeOnlyModel()
        landmark = model.initialize(np.array([1.0, 1.0, np.pi / 2]), np.array([3.0, 0.0]))
        np.testing.assert_allclose(landmark, [1.0, 4.0], atol=1e-12)

    def test_initialized_landmark_is_at_observed_range(self):
        model = RangeOnlyModel()
        pose = np.array([0.5, -0.5, 0.7])
        landmark = model.initialize(pose, np.array([2.5, 0.4]))
        np.testing.assert_allclose(model.observe(pose, landmark), [2.5], atol=1e-12)
