"""Planar and spatial geometry helpers: angles, quaternions, poses and tag frames."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np

Quaternion = tuple[float, float, float, float]
"""Quaternion stored as (x, y, z, w)."""

IDENTITY_QUATERNION: Quaternion = (0.0, 0.0, 0.0, 1.0)


@dataclass(frozen=True)
class Pose:
    """A position with an orientation quaternion (x, y, z, w)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    orientation: Quaternion = IDENTITY_QUATERNION


@dataclass(frozen=True)
class Twist:
    """Linear and angular velocity components."""

    linear_x: float = 0.0
    linear_y: float = 0.0
    linear_z: float = 0.0
    angular_x: float = 0.0
    angular_y: float = 0.0
    angular_z: float = 0.0


@dataclass(frozen=True)
class Tag:
    """A detected fiducial tag and its pose."""

    id: int
    pose: Pose


def normalize_angle(angle: float) -> float:
    """Wrap an angle into the interval (-pi, pi]."""
    tau = 2.0 * math.pi
    wrapped = math.fmod(math.fmod(angle, tau) + tau, tau)
    if wrapped > math.pi:
        wrapped -= tau
    return wrapped


def shortest_angular_distance(source: float, target: float) -> float:
    """Signed smallest rotation that takes ``source`` to ``target``."""
    return normalize_angle(target - source)


def quaternion_from_yaw(yaw: float) -> Quaternion:
    """Quaternion for a rotation of ``yaw`` radians about the Z axis."""
    half = yaw / 2.0
    return (0.0, 0.0, math.sin(half), math.cos(half))


def _rotation_matrix(quaternion: Iterable[float]) -> np.ndarray:
    x, y, z, w = (float(c) for c in quaternion)
    norm = math.sqrt(x * x + y * y + z * z + w * w)
    if norm == 0.0:
        raise ValueError("quaternion has zero length")
    x, y, z, w = x / norm, y / norm, z / norm, w / norm
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
            [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
            [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
        ]
    )


def _euler_xyz(m: np.ndarray) -> tuple[float, float, float]:
    """Euler angles about X, Y, Z with the first angle in [0, pi]."""
    r0 = math.atan2(m[1, 2], m[2, 2])
    c2 = math.hypot(m[0, 0], m[0, 1])
    if r0 > 0:
        r0 -= math.pi
        r1 = math.atan2(m[0, 2], -c2)
    else:
        r1 = math.atan2(m[0, 2], c2)
    s1, c1 = math.sin(r0), math.cos(r0)
    r2 = math.atan2(s1 * m[2, 0] - c1 * m[1, 0], c1 * m[1, 1] - s1 * m[2, 1])
    return -r0, -r1, -r2


def yaw_from_quaternion(quaternion: Iterable[float]) -> float:
    """Third angle of the X-Y-Z Euler decomposition of ``quaternion``."""
    return _euler_xyz(_rotation_matrix(quaternion))[2]


def quaternion_to_matrix(quaternion: Iterable[float]) -> np.ndarray:
    """4x4 homogeneous transform holding the normalised rotation of ``quaternion``."""
    result = np.eye(4)
    result[:3, :3] = _rotation_matrix(quaternion)
    return result


def matrix_to_quaternion(matrix) -> Quaternion:
    """Quaternion (x, y, z, w) of the rotation block of a 3x3 or 4x4 matrix."""
    m = np.asarray(matrix, dtype=float)[:3, :3]
    trace = m[0, 0] + m[1, 1] + m[2, 2]
    if trace > 0:
        t = math.sqrt(trace + 1.0)
        w = 0.5 * t
        t = 0.5 / t
        return (
            (m[2, 1] - m[1, 2]) * t,
            (m[0, 2] - m[2, 0]) * t,
            (m[1, 0] - m[0, 1]) * t,
            w,
        )
    i = int(np.argmax(np.diag(m)))
    j = (i + 1) % 3
    k = (j + 1) % 3
    t = math.sqrt(m[i, i] - m[j, j] - m[k, k] + 1.0)
    q = [0.0, 0.0, 0.0]
    q[i] = 0.5 * t
    t = 0.5 / t
    w = (m[k, j] - m[j, k]) * t
    q[j] = (m[j, i] + m[i, j]) * t
    q[k] = (m[k, i] + m[i, k]) * t
    return (q[0], q[1], q[2], w)


def state_from_pose(pose: Pose) -> np.ndarray:
    """Planar state vector [x, y, yaw] of a pose."""
    return np.array([pose.x, pose.y, yaw_from_quaternion(pose.orientation)])


def optical_frame_transform() -> np.ndarray:
    """Transform from the camera optical frame to the conventional body frame."""
    roll = np.array(
        [
            [1.0, 0.0, 0.0, 0.0],
            [0.0, 0.0, 1.0, 0.0],
            [0.0, -1.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    yaw = np.array(
        [
            [0.0, 1.0, 0.0, 0.0],
            [-1.0, 0.0, 0.0, 0.0],
            [0.0, 0.0, 1.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    return yaw @ roll


def transform_tags(tags: Iterable[Tag], camera_to_base) -> list[Tag]:
    """Move tags seen in the camera optical frame into the robot base frame.

    ``camera_to_base`` is the 4x4 homogeneous transform of the camera link
    expressed in the base frame.
    """
    full = np.asarray(camera_to_base, dtype=float) @ optical_frame_transform()
    transformed = []
    for tag in tags:
        position = full @ np.array([tag.pose.x, tag.pose.y, tag.pose.z, 1.0])
        orientation = full @ quaternion_to_matrix(tag.pose.orientation)
        transformed.append(
            Tag(
                id=tag.id,
                pose=Pose(
                    x=float(position[0]),
                    y=float(position[1]),
                    z=float(position[2]),
                    orientation=matrix_to_quaternion(orientation),
                ),
            )
        )
    return transformed