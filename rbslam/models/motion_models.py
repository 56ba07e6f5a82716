"""
Motion models (control models) for a planar robot.

A motion model maps the previous pose and a control vector to the new
pose. Controls arrive as Gaussians over the control vector; the filter
pushes that Gaussian through ``predict`` with the unscented transform, so
models only need to be correct for a single, noiseless control.

Provides:
- OdometryModel: control is the relative pose [dx, dy, dyaw]
- VelocityModel: control is [v, ω] held constant for dt seconds
"""

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from rbslam.estimators.gaussian import MultivariateNormal
from rbslam.slam.se2 import se2_compose, se2_difference, se2_normalize, se2_relative


class MotionModel(ABC):
    """
    Interface shared by all motion models.

    Attributes:
        control_dim: Dimension of the control vector.
        state_dim: Dimension of the pose vector (always 3 for SE(2)).
    """

    control_dim: int
    state_dim: int = 3

    @abstractmethod
    def predict(self, pose: np.ndarray, u: np.ndarray) -> np.ndarray:
        """
        Pose after applying control ``u`` from ``pose``.

        Args:
            pose: Previous pose [x, y, yaw].
            u: Control vector (control_dim,).

        Returns:
            New pose [x, y, yaw].
        """

    @staticmethod
    def residual(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Pose difference a ⊖ b (yaw wrapped)."""
        return se2_difference(a, b)

    @staticmethod
    def normalize(pose: np.ndarray) -> np.ndarray:
        return se2_normalize(pose)

    def validate_control(self, control: MultivariateNormal) -> None:
        if control.dim != self.control_dim:
            raise ValueError(
                f"{type(self).__name__}: control dimension must be {self.control_dim}, "
                f"got {control.dim}"
            )


class OdometryModel(MotionModel):
    """
    Relative-pose motion model.

    State: pose = [x, y, yaw]
    Control: u = [dx, dy, dyaw] in the robot frame
    Dynamics: pose_{k+1} = pose_k ⊕ u

    Example:
        >>> model = OdometryModel()
        >>> pose = model.predict(np.array([0.0, 0.0, np.pi / 2]), np.array([1.0, 0.0, 0.0]))
        >>> np.allclose(pose, [0.0, 1.0, np.pi / 2])
        True
    """

    control_dim = 3

    def predict(self, pose: np.ndarray, u: np.ndarray) -> np.ndarray:
        return se2_compose(pose, u)

    @staticmethod
    def control(
        dx: float, dy: float, dyaw: float, std: Sequence[float] = (0.0, 0.0, 0.0)
    ) -> MultivariateNormal:
        """
        Control distribution for a relative motion with independent noise.

        Args:
            dx, dy, dyaw: Relative motion in the robot frame.
            std: Standard deviations of [dx, dy, dyaw].
        """
        return MultivariateNormal.from_std(np.array([dx, dy, dyaw]), np.asarray(std, dtype=float))

    @classmethod
    def control_between(
        cls, p_from: np.ndarray, p_to: np.ndarray, std: Sequence[float] = (0.0, 0.0, 0.0)
    ) -> MultivariateNormal:
        """Control distribution that moves ``p_from`` onto ``p_to``."""
        dx, dy, dyaw = se2_relative(p_from, p_to)
        return cls.control(dx, dy, dyaw, std)


class VelocityModel(MotionModel):
    """
    Unicycle velocity motion model.

    Control: u = [v, ω] (forward speed in m/s, turn rate in rad/s), held
    constant for ``dt`` seconds. The pose moves along a circular arc:

        dx = v/ω · sin(ω dt),  dy = v/ω · (1 - cos(ω dt)),  dyaw = ω dt

    in the robot frame, degenerating to a straight line for ω → 0.

    Attributes:
        dt: Duration of one timestep in seconds.
    """

    control_dim = 2

    # Below this turn angle the arc is integrated as a straight segment
    STRAIGHT_LINE_EPS = 1e-9

    def __init__(self, dt: float = 1.0):
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")
        self.dt = dt

    def relative_motion(self, u: np.ndarray) -> np.ndarray:
        """Relative pose [dx, dy, dyaw] travelled under control u."""
        v, omega = np.asarray(u, dtype=float)
        dyaw = omega * self.dt

        if abs(dyaw) < self.STRAIGHT_LINE_EPS:
            return np.array([v * self.dt, 0.0, dyaw])

        radius = v / omega
        return np.array([radius * np.sin(dyaw), radius * (1.0 - np.cos(dyaw)), dyaw])

    def predict(self, pose: np.ndarray, u: np.ndarray) -> np.ndarray:
        return se2_compose(pose, self.relative_motion(u))

    @staticmethod
    def control(v: float, omega: float, v_std: float = 0.0, omega_std: float = 0.0) -> MultivariateNormal:
        """Control distribution with independent speed and turn-rate noise."""
        return MultivariateNormal.from_std(np.array([v, omega]), np.array([v_std, omega_std]))

    def __repr__(self) -> str:
        return f"VelocityModel(dt={self.dt})"
