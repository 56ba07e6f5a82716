"""Type definitions shared by the SLAM event log and the inference engines.

Key types:
    - Timestep: Index of a filter step (0 is the initial pose)
    - FeatureId: Landmark identifier
    - Pose: SE(2) pose array [x, y, yaw]
    - FeatureMap: Landmark id -> position estimate
    - ObservedFeature: One landmark observation buffered for the next step
"""

from dataclasses import dataclass
from typing import Dict

import numpy as np

from rbslam.estimators.gaussian import MultivariateNormal

# Type aliases for clarity and documentation
Timestep = int
FeatureId = int
Pose = np.ndarray  # Shape (3,), [x, y, yaw]
Feature = np.ndarray  # Shape (2,), landmark position [x, y] (meters)
FeatureMap = Dict[FeatureId, Feature]


@dataclass(frozen=True)
class ObservedFeature:
    """
    A landmark observation made at the timestep currently being assembled.

    Attributes:
        feature_id: Landmark identifier.
        observation: Observation distribution (measured value as the mean,
            sensor noise as the covariance).
    """

    feature_id: FeatureId
    observation: MultivariateNormal

    def __post_init__(self) -> None:
        if self.feature_id < 0:
            raise ValueError(f"feature_id must be non-negative, got {self.feature_id}")
