"""Planar landmark SLAM.

Main components:
    - se2_compose, se2_inverse, se2_relative: SE(2) operations
    - SlamData, SlamListener: Event log of controls and observations
    - SlamResult: Query interface shared by inference back ends
    - Trajectory, TrajectoryNode: Pose sequences and persistent lineages
    - FastSlam, FastSlamConfig: FastSLAM 2.0 particle filter

Example usage:
    >>> from rbslam.models import OdometryModel, RangeBearingModel
    >>> from rbslam.slam import FastSlam, FastSlamConfig, SlamData
    >>>
    >>> data = SlamData()
    >>> slam = FastSlam(OdometryModel(), RangeBearingModel(), FastSlamConfig(seed=0))
    >>> data.connect(slam)
    >>> data.add_observation(7, RangeBearingModel.observation(3.0, 0.2, 0.1, 0.02))
    >>> data.end_observation()
    >>> slam.get_feature_map().keys()
    dict_keys([7])
"""

from .config import FastSlamConfig
from .events import SlamData, SlamListener
from .fastslam import EstimateCache, FastSlam, Particle
from .interfaces import SlamResult, TimestepListener, make_timestep_listener
from .se2 import (
    se2_compose,
    se2_difference,
    se2_inverse,
    se2_inverse_transform_point,
    se2_normalize,
    se2_relative,
    se2_transform_point,
)
from .trajectory import Trajectory, TrajectoryNode
from .types import Feature, FeatureId, FeatureMap, ObservedFeature, Pose, Timestep

__all__ = [
    # Core types
    "Timestep",
    "FeatureId",
    "Pose",
    "Feature",
    "FeatureMap",
    "ObservedFeature",
    # SE(2) operations
    "se2_compose",
    "se2_inverse",
    "se2_relative",
    "se2_difference",
    "se2_normalize",
    "se2_transform_point",
    "se2_inverse_transform_point",
    # Trajectories
    "Trajectory",
    "TrajectoryNode",
    # Events and results
    "SlamData",
    "SlamListener",
    "SlamResult",
    "TimestepListener",
    "make_timestep_listener",
    # FastSLAM 2.0
    "FastSlam",
    "FastSlamConfig",
    "Particle",
    "EstimateCache",
]
