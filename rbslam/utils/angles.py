"""
Angles on the circle.

Headings and bearings are kept in [-π, π]. Any residual involving an angle
(pose yaw, landmark bearing) goes through ``angle_diff``, so sigma points
that straddle ±π differ by a small angle rather than by nearly 2π.
"""

from typing import Union

import numpy as np

AngleLike = Union[float, np.ndarray]


def wrap_angle_array(angles: np.ndarray) -> np.ndarray:
    """Element-wise wrap to [-π, π] via atan2(sin θ, cos θ)."""
    angles = np.asarray(angles, dtype=float)
    return np.arctan2(np.sin(angles), np.cos(angles))


def wrap_angle(angle: float) -> float:
    """
    Wrap a scalar angle to [-π, π].

    Example:
        >>> wrap_angle(3.5 * np.pi)  # 630° -> -90°
        -1.5707963267948966
    """
    return float(wrap_angle_array(angle))


def angle_diff(measured: AngleLike, predicted: AngleLike) -> AngleLike:
    """
    Shortest signed rotation taking ``predicted`` onto ``measured``.

    Scalars give a float; if either argument is an array the result is an
    array of the broadcast shape.

    Example:
        >>> round(angle_diff(np.pi - 0.1, -np.pi + 0.1), 12)
        -0.2
    """
    if np.ndim(measured) == 0 and np.ndim(predicted) == 0:
        return wrap_angle(float(measured) - float(predicted))
    return wrap_angle_array(np.asarray(measured, dtype=float) - np.asarray(predicted, dtype=float))
