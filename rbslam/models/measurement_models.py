"""
Landmark observation models for a planar robot.

An observation model predicts what the robot at a given pose would measure
of a landmark (``observe``), and inverts that for landmark initialisation
(``initialize``). Both directions are used through the unscented transform,
so the models themselves are plain deterministic functions.

Provides:
- RangeBearingModel: z = [range, bearing] in the robot frame
- RangeOnlyModel: z = [range]
"""

from abc import ABC, abstractmethod

import numpy as np

from rbslam.estimators.gaussian import MultivariateNormal
from rbslam.slam.se2 import se2_inverse_transform_point, se2_transform_point
from rbslam.utils.angles import angle_diff, wrap_angle


class ObservationModel(ABC):
    """
    Interface shared by all landmark observation models.

    Attributes:
        dim: Dimension of an observation.
        feature_dim: Dimension of a landmark (always 2 for point landmarks).
    """

    dim: int
    feature_dim: int = 2

    @abstractmethod
    def observe(self, pose: np.ndarray, landmark: np.ndarray) -> np.ndarray:
        """
        Predicted observation of ``landmark`` from ``pose``.

        Args:
            pose: Robot pose [x, y, yaw].
            landmark: Landmark position [x, y] in the global frame.

        Returns:
            Observation vector (dim,).
        """

    @abstractmethod
    def initialize(self, pose: np.ndarray, v: np.ndarray) -> np.ndarray:
        """
        Landmark position implied by an initialisation vector ``v``.

        ``v`` is drawn from ``initialization_distribution(observation)``.

        Returns:
            Landmark position [x, y] in the global frame.
        """

    def initialization_distribution(self, observation: MultivariateNormal) -> MultivariateNormal:
        """
        Distribution pushed through ``initialize`` to seed a new landmark.

        For invertible models this is the observation itself.
        """
        return observation

    @staticmethod
    def residual(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.asarray(a, dtype=float) - np.asarray(b, dtype=float)

    @staticmethod
    def normalize(z: np.ndarray) -> np.ndarray:
        return np.asarray(z, dtype=float)

    def joint_observe(self, state_feature: np.ndarray) -> np.ndarray:
        """Observation as a function of the stacked vector [pose, landmark]."""
        return self.observe(state_feature[:3], state_feature[3:])

    def validate_observation(self, observation: MultivariateNormal) -> None:
        if observation.dim != self.dim:
            raise ValueError(
                f"{type(self).__name__}: observation dimension must be {self.dim}, "
                f"got {observation.dim}"
            )


class RangeBearingModel(ObservationModel):
    """
    Range-bearing landmark sensor.

    Measurement: z = [r, θ] where
        r = ||l_local||,  θ = atan2(l_local_y, l_local_x)
    and l_local is the landmark expressed in the robot frame.

    Example:
        >>> model = RangeBearingModel()
        >>> z = model.observe(np.array([0.0, 0.0, np.pi / 2]), np.array([0.0, 2.0]))
        >>> np.allclose(z, [2.0, 0.0])
        True
    """

    dim = 2

    def observe(self, pose: np.ndarray, landmark: np.ndarray) -> np.ndarray:
        local = se2_inverse_transform_point(pose, landmark)
        return np.array([np.hypot(local[0], local[1]), np.arctan2(local[1], local[0])])

    def initialize(self, pose: np.ndarray, v: np.ndarray) -> np.ndarray:
        r, bearing = v
        return se2_transform_point(pose, np.array([r * np.cos(bearing), r * np.sin(bearing)]))

    @staticmethod
    def residual(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """
        Innovation with proper angle wrapping for the bearing component.
        """
        d = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
        d[1] = angle_diff(float(a[1]), float(b[1]))
        return d

    @staticmethod
    def normalize(z: np.ndarray) -> np.ndarray:
        z = np.array(z, dtype=float)
        z[1] = wrap_angle(float(z[1]))
        return z

    @staticmethod
    def observation(r: float, bearing: float, r_std: float = 0.0, bearing_std: float = 0.0) -> MultivariateNormal:
        """Observation distribution with independent range and bearing noise."""
        return MultivariateNormal.from_std(np.array([r, bearing]), np.array([r_std, bearing_std]))


class RangeOnlyModel(ObservationModel):
    """
    Range-only landmark sensor (e.g. radio beacons).

    Measurement: z = [r] with r the distance between robot and landmark.

    A single range does not determine a landmark position, so new landmarks
    are initialised from the augmented vector [r, θ] with a zero-mean bearing
    prior of standard deviation ``bearing_std``: the landmark is placed ahead
    of the robot with the lateral uncertainty that prior implies.

    Attributes:
        bearing_std: Bearing prior standard deviation used at initialisation.
    """

    dim = 1

    def __init__(self, bearing_std: float = np.pi / 2):
        if bearing_std < 0:
            raise ValueError(f"bearing_std must be non-negative, got {bearing_std}")
        self.bearing_std = bearing_std

    def observe(self, pose: np.ndarray, landmark: np.ndarray) -> np.ndarray:
        return np.array([np.hypot(landmark[0] - pose[0], landmark[1] - pose[1])])

    def initialize(self, pose: np.ndarray, v: np.ndarray) -> np.ndarray:
        r, bearing = v
        return se2_transform_point(pose, np.array([r * np.cos(bearing), r * np.sin(bearing)]))

    def initialization_distribution(self, observation: MultivariateNormal) -> MultivariateNormal:
        bearing_prior = MultivariateNormal(np.zeros(1), np.array([[self.bearing_std]]))
        return MultivariateNormal.joint(observation, bearing_prior)

    @staticmethod
    def observation(r: float, r_std: float = 0.0) -> MultivariateNormal:
        return MultivariateNormal.from_std(np.array([r]), np.array([r_std]))

    def __repr__(self) -> str:
        return f"RangeOnlyModel(bearing_std={self.bearing_std})"
