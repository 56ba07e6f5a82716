"""Result interface shared by SLAM inference back ends.

Every engine exposes its current best estimate through ``SlamResult``, so
that evaluation and visualisation code (and other engines, for
initialisation) can query a trajectory and a landmark map without knowing
which algorithm produced them.
"""

from abc import ABC, abstractmethod
from typing import Callable

from rbslam.slam.trajectory import Trajectory
from rbslam.slam.types import Feature, FeatureId, FeatureMap, Pose, Timestep


class TimestepListener(ABC):
    """Receives a signal whenever a timestep has become available."""

    @abstractmethod
    def timestep(self, t: Timestep) -> None:
        """Advance to (or query up to) timestep ``t``."""


class SlamResult(TimestepListener):
    """Abstract base class for SLAM estimates."""

    @abstractmethod
    def current_timestep(self) -> Timestep:
        """Last timestep that has been fully processed."""

    @abstractmethod
    def get_state(self, t: Timestep) -> Pose:
        """Estimated pose at timestep ``t`` (0 <= t <= current_timestep())."""

    @abstractmethod
    def get_feature(self, feature_id: FeatureId) -> Feature:
        """Estimated position of a landmark that has been observed."""

    @abstractmethod
    def get_trajectory(self) -> Trajectory:
        """Estimated poses for timesteps 0..current_timestep()."""

    @abstractmethod
    def get_feature_map(self) -> FeatureMap:
        """Estimated positions of every observed landmark, by ascending id."""

    def get_initial_state(self) -> Pose:
        return self.get_state(0)


class _FunctionTimestepListener(TimestepListener):

    def __init__(self, func: Callable[[Timestep], None]):
        self.func = func

    def timestep(self, t: Timestep) -> None:
        self.func(t)


def make_timestep_listener(func: Callable[[Timestep], None]) -> TimestepListener:
    """Wrap a plain function ``func(t)`` as a TimestepListener."""
    return _FunctionTimestepListener(func)
