"""
Motion and observation models for planar landmark SLAM.

Every model exposes the small capability set the filter relies on:
predict/compose for motion, observe/initialize (invert) for observations,
plus residual and normalize for components that live on a circle.
"""

from .motion_models import (
    MotionModel,
    OdometryModel,
    VelocityModel,
)

from .measurement_models import (
    ObservationModel,
    RangeBearingModel,
    RangeOnlyModel,
)

__all__ = [
    # Motion models
    'MotionModel',
    'OdometryModel',
    'VelocityModel',

    # Observation models
    'ObservationModel',
    'RangeBearingModel',
    'RangeOnlyModel',
]
