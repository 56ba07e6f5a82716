"""SE(2) operations for planar SLAM (Special Euclidean Group in 2D).

Poses are NumPy arrays [x, y, yaw] of shape (3,); landmarks are points
[x, y] of shape (2,). The group operation is composition (p1 ⊕ p2), and a
pose acts on a point expressed in its local frame to give the point in the
global frame.

Key functions:
    - se2_compose: Compose two SE(2) poses (p1 ⊕ p2)
    - se2_inverse: Invert an SE(2) pose (p⁻¹)
    - se2_relative: Relative pose p_from⁻¹ ⊕ p_to
    - se2_difference: Vector difference with a wrapped yaw component
    - se2_transform_point: Local-frame point to the global frame
    - se2_inverse_transform_point: Global point into a pose's local frame
"""

import numpy as np

from rbslam.utils.angles import angle_diff, wrap_angle


def _as_pose(p: np.ndarray, name: str) -> np.ndarray:
    p = np.asarray(p, dtype=np.float64)
    if p.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {p.shape}")
    return p


def se2_compose(p1: np.ndarray, p2: np.ndarray) -> np.ndarray:
    """
    Compose two SE(2) poses: p_result = p1 ⊕ p2.

    The composition formula for SE(2):
        x_result = x1 + x2*cos(yaw1) - y2*sin(yaw1)
        y_result = y1 + x2*sin(yaw1) + y2*cos(yaw1)
        yaw_result = yaw1 + yaw2  (wrapped to [-π, π])

    Args:
        p1: First pose [x1, y1, yaw1].
        p2: Second pose [x2, y2, yaw2], expressed in the frame of p1.

    Returns:
        Composed pose as array [x, y, yaw] of shape (3,).

    Raises:
        ValueError: If poses do not have shape (3,).

    Examples:
        >>> p1 = np.array([0, 0, np.pi/2])  # 90° rotation
        >>> p2 = np.array([1, 0, 0])  # 1m forward
        >>> np.allclose(se2_compose(p1, p2), [0, 1, np.pi/2])
        True
    """
    x1, y1, yaw1 = _as_pose(p1, "p1")
    x2, y2, yaw2 = _as_pose(p2, "p2")

    cos_yaw1 = np.cos(yaw1)
    sin_yaw1 = np.sin(yaw1)

    x_result = x1 + x2 * cos_yaw1 - y2 * sin_yaw1
    y_result = y1 + x2 * sin_yaw1 + y2 * cos_yaw1
    yaw_result = wrap_angle(yaw1 + yaw2)

    return np.array([x_result, y_result, yaw_result], dtype=np.float64)


def se2_inverse(p: np.ndarray) -> np.ndarray:
    """
    Compute the inverse of an SE(2) pose: p_inv = p⁻¹.

    The inverse formula for SE(2):
        x_inv = -(x*cos(yaw) + y*sin(yaw))
        y_inv = -(-x*sin(yaw) + y*cos(yaw))
        yaw_inv = -yaw  (wrapped to [-π, π])

    Args:
        p: Pose to invert, array [x, y, yaw].

    Returns:
        Inverted pose as array [x, y, yaw] of shape (3,).

    Examples:
        >>> p = np.array([1, 2, np.pi/4])
        >>> np.allclose(se2_compose(p, se2_inverse(p)), [0, 0, 0])
        True
    """
    x, y, yaw = _as_pose(p, "p")

    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)

    x_inv = -(x * cos_yaw + y * sin_yaw)
    y_inv = -(-x * sin_yaw + y * cos_yaw)
    yaw_inv = wrap_angle(-yaw)

    return np.array([x_inv, y_inv, yaw_inv], dtype=np.float64)


def se2_relative(p_from: np.ndarray, p_to: np.ndarray) -> np.ndarray:
    """
    Compute relative pose between two global poses.

        p_relative = p_from⁻¹ ⊕ p_to

    so that se2_compose(p_from, p_relative) == p_to.
    """
    return se2_compose(se2_inverse(p_from), p_to)


def se2_difference(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    """
    Component-wise pose difference p - q with the yaw difference wrapped.

    This is the residual used for pose Gaussians: it is a plain vector
    difference in x and y, and the shortest signed angle in yaw.
    """
    p = np.asarray(p, dtype=np.float64)
    q = np.asarray(q, dtype=np.float64)
    d = p - q
    d[2] = angle_diff(float(p[2]), float(q[2]))
    return d


def se2_normalize(p: np.ndarray) -> np.ndarray:
    """Return a copy of the pose with yaw wrapped to [-π, π]."""
    p = np.array(p, dtype=np.float64)
    p[2] = wrap_angle(float(p[2]))
    return p


def se2_transform_point(p: np.ndarray, point: np.ndarray) -> np.ndarray:
    """
    Express a local-frame point in the global frame: p ⊕ point.

    Args:
        p: Pose [x, y, yaw].
        point: Point [px, py] in the local frame of p.

    Returns:
        Point [gx, gy] in the global frame.
    """
    x, y, yaw = _as_pose(p, "p")
    px, py = np.asarray(point, dtype=np.float64)
    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)
    return np.array(
        [x + px * cos_yaw - py * sin_yaw, y + px * sin_yaw + py * cos_yaw],
        dtype=np.float64,
    )


def se2_inverse_transform_point(p: np.ndarray, point: np.ndarray) -> np.ndarray:
    """
    Express a global point in the local frame of pose p: p⁻¹ ⊕ point.
    """
    x, y, yaw = _as_pose(p, "p")
    dx, dy = np.asarray(point, dtype=np.float64) - np.array([x, y])
    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)
    return np.array(
        [dx * cos_yaw + dy * sin_yaw, -dx * sin_yaw + dy * cos_yaw],
        dtype=np.float64,
    )
