"""Sensor likelihood models used to weight localisation particles."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable

from roverkit.geometry import Twist, shortest_angular_distance
from roverkit.particle import Particle

_TAG_HEIGHT = 0.05


def _two_value_covariance(covariance) -> tuple[float, float]:
    values = tuple(float(c) for c in covariance)
    if len(values) != 2:
        raise ValueError("covariance must hold exactly 2 values")
    if any(v <= 0 for v in values):
        raise ValueError("covariance values must be positive")
    return values  # type: ignore[return-value]


def _has_stamp(stamp: float | None) -> bool:
    # A stamp whose whole-second part is zero counts as never received.
    return stamp is not None and math.trunc(stamp) != 0


class SensorModel(ABC):
    """A measurement source that scores particles by negative log likelihood."""

    def __init__(self, covariance, timeout: float):
        self.covariance = _two_value_covariance(covariance)
        self.timeout = float(timeout)

    @abstractmethod
    def compute_log_prob(self, particle: Particle) -> float:
        """Mahalanobis-style squared error of the latest measurement for ``particle``."""

    def compute_log_normalizer(self) -> float:
        """Log of the Gaussian normalising constant for the two measured quantities."""
        c0, c1 = self.covariance
        return (
            math.log(math.sqrt((2 * math.pi) ** 2))
            + math.log(math.sqrt(c0))
            + math.log(math.sqrt(c1))
        )

    @abstractmethod
    def is_measurement_available(self, current_time: float) -> bool:
        """Whether a measurement recent enough to use is held."""


@dataclass(frozen=True)
class TagLocation:
    """Map position and facing of a localisation tag."""

    x: float = 0.0
    y: float = 0.0
    yaw: float = 0.0


@dataclass(frozen=True)
class TagMeasurement:
    """A tag id and its position measured in the robot body frame."""

    id: int
    x: float
    y: float
    z: float = 0.0


def _side(x_values, y_values, yaw, ids) -> dict[int, TagLocation]:
    return {i: TagLocation(x, y, yaw) for i, x, y in zip(ids, x_values, y_values)}


_ROW = (0.0, 0.11, 0.22, 0.33, -0.11, -0.22, -0.33)
_COLUMN = (0.0, 0.11, 0.22, 0.33, 0.44, 0.55, -0.11, -0.22, -0.33, -0.44, -0.55)

TAG_LOCATIONS: dict[int, TagLocation] = {
    **_side([0.6096] * 7, _ROW, -math.pi / 2, range(0, 7)),
    **_side(_COLUMN, [-0.381] * 11, math.pi, [7, 8, 9, 13, 14, 15, 16, 17, 18, 19, 20]),
    **_side([-0.6096] * 7, _ROW, math.pi / 2, range(21, 28)),
    **_side(_COLUMN, [0.381] * 11, 0.0, range(28, 39)),
}


class ArucoSensorModel(SensorModel):
    """Scores particles by range and bearing to known fiducial tags."""

    def __init__(self, covariance=(0.025, 0.025), timeout: float = 0.1):
        super().__init__(covariance, timeout)
        self.tags = dict(TAG_LOCATIONS)
        self._measurements: list[TagMeasurement] = []
        self._stamp: float | None = None

    def update_measurement(self, tags: Iterable[TagMeasurement], stamp: float) -> None:
        """Store the latest set of tag detections and their time stamp."""
        self._measurements = list(tags)
        self._stamp = float(stamp)

    def compute_log_prob(self, particle: Particle) -> float:
        log_prob = 0.0
        c0, c1 = self.covariance
        cos_yaw, sin_yaw = math.cos(particle.yaw), math.sin(particle.yaw)
        for tag in self._measurements:
            location = self.tags.get(tag.id)
            if location is None:
                continue
            x_diff = location.x - particle.x
            y_diff = location.y - particle.y
            body_x = x_diff * cos_yaw - y_diff * sin_yaw
            body_y = x_diff * sin_yaw + y_diff * cos_yaw

            expected_dist = math.sqrt(body_x**2 + body_y**2 + _TAG_HEIGHT**2)
            dist = math.sqrt(tag.x**2 + tag.y**2 + tag.z**2)
            log_prob += (expected_dist - dist) ** 2 / c0

            bearing = math.atan2(tag.y, tag.x)
            expected_bearing = math.atan2(body_y, body_x)
            angular_error = shortest_angular_distance(expected_bearing, bearing)
            log_prob += angular_error**2 / c1
        return log_prob

    def is_measurement_available(self, current_time: float) -> bool:
        if not _has_stamp(self._stamp) or not self._measurements:
            return False
        return current_time - self._stamp < self.timeout


class OdometrySensorModel(SensorModel):
    """Scores particles by how well their velocities match wheel odometry."""

    def __init__(self, covariance=(0.1, 0.1), timeout: float = 0.1):
        super().__init__(covariance, timeout)
        self._twist = Twist()
        self._stamp: float | None = None

    def update_measurement(self, twist: Twist, stamp: float) -> None:
        """Store the latest odometry twist and its time stamp."""
        self._twist = twist
        self._stamp = float(stamp)

    def compute_log_prob(self, particle: Particle) -> float:
        c0, c1 = self.covariance
        return (self._twist.linear_x - particle.x_vel) ** 2 / c0 + (
            self._twist.linear_z - particle.yaw_vel
        ) ** 2 / c1

    def is_measurement_available(self, current_time: float) -> bool:
        if not _has_stamp(self._stamp):
            return False
        return current_time - self._stamp < self.timeout