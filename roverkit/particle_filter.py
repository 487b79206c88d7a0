"""Particle filter that localises the robot from motion commands and sensor models."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Iterable, Protocol, Sequence

from roverkit.geometry import Twist, shortest_angular_distance
from roverkit.motion import MotionModel
from roverkit.particle import Particle
from roverkit.randomness import UniformRandomGenerator
from roverkit.sensors import ArucoSensorModel, OdometrySensorModel, SensorModel

logger = logging.getLogger(__name__)

Point = tuple[float, float]
Triangle = tuple[Point, Point, Point]

_TWO_OVER_PI = 2.0 / math.pi
_ONE_OVER_PI = 1.0 / math.pi
_MARKER_LENGTH = 0.1
_MARKER_HALF_WIDTH = 0.0125


class NoiseSource(Protocol):
    def sample(self) -> float: ...


@dataclass(frozen=True)
class InitialRange:
    """Rectangle that fresh particles are drawn from."""

    min_x: float = -0.6
    max_x: float = 0.6
    min_y: float = -0.3
    max_y: float = 0.3


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _float_div(numerator: float, denominator: float) -> float:
    """Division that follows floating-point rules instead of raising on zero."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


class ParticleFilterLocalizer:
    """Keeps a cloud of weighted pose hypotheses and resamples it from sensor evidence."""

    def __init__(
        self,
        sensor_models: Sequence[SensorModel] | None = None,
        motion_model: MotionModel | None = None,
        num_particles: int = 300,
        resample_threshold: float = 0.1,
        low_percentage_particles_to_drop: float = 0.1,
        initial_range: InitialRange = InitialRange(),
        resample_rate: float = 10.0,
        noise: NoiseSource | None = None,
    ):
        if num_particles < 1:
            raise ValueError("the filter needs at least one particle")
        if resample_rate <= 0:
            raise ValueError("resample rate must be positive")
        self.sensor_models: list[SensorModel] = (
            list(sensor_models)
            if sensor_models is not None
            else [ArucoSensorModel(), OdometrySensorModel()]
        )
        self.motion_model = motion_model if motion_model is not None else MotionModel()
        self.num_particles = int(num_particles)
        self.resample_threshold = float(resample_threshold)
        self.low_percentage_particles_to_drop = float(low_percentage_particles_to_drop)
        self.initial_range = initial_range
        self.resample_rate = float(resample_rate)
        self.noise = noise if noise is not None else UniformRandomGenerator()
        self.last_resample_time = 0.0
        self.search_weights: list[float] = []
        self.min_weight = 0.0
        self.max_weight = 0.0
        self.particles: list[Particle] = [
            self.generate_new_particle() for _ in range(self.num_particles)
        ]
        self.normalize_weights()

    def handle_command(self, command: Twist, current_time: float) -> None:
        """Propagate every particle with a velocity command received at ``current_time``."""
        self.motion_model.update_particles(self.particles, command, current_time)

    def generate_new_particle(self) -> Particle:
        """A particle drawn uniformly from the initial range, at rest."""
        r = self.initial_range
        x = r.min_x + self.noise.sample() * (r.max_x - r.min_x)
        y = r.min_y + self.noise.sample() * (r.max_y - r.min_y)
        yaw = self.noise.sample() * _TWO_OVER_PI - _ONE_OVER_PI
        return Particle(x=x, y=y, yaw=yaw, x_vel=0.0, yaw_vel=0.0)

    def normalize_weights(self) -> None:
        """Drop the lowest weights, rescale the rest to sum to one and rebuild the search table.

        When the surviving weight falls below the resample threshold the whole
        cloud is redrawn from the initial range.
        """
        index_to_drop = _round_half_away(
            self.low_percentage_particles_to_drop * self.num_particles
        )
        weights = sorted(p.weight for p in self.particles)
        if not 0 <= index_to_drop < len(weights):
            raise IndexError("low_percentage_particles_to_drop leaves no particle to keep")
        smallest_weight_to_allow = weights[index_to_drop]

        normalizer = 0.0
        for particle in self.particles:
            if particle.weight < smallest_weight_to_allow:
                particle.weight = 0.0
            normalizer += particle.weight

        if normalizer < self.resample_threshold:
            logger.info(
                "resampling particles from initial distribution since normalizer is low %f",
                normalizer / self.num_particles,
            )
            self.particles = [self.generate_new_particle() for _ in range(self.num_particles)]
            normalizer = float(self.num_particles)
        if normalizer == 0:
            logger.info("normalizer is zero")
            normalizer = 1.0

        self.search_weights = []
        running_sum = 0.0
        self.min_weight = 1.0
        self.max_weight = 0.0
        for particle in self.particles:
            if particle.weight > 0:
                particle.weight /= normalizer
            running_sum += particle.weight
            self.min_weight = min(self.min_weight, particle.weight)
            self.max_weight = max(self.max_weight, particle.weight)
            self.search_weights.append(running_sum)

    def calculate_estimate(self) -> Particle:
        """Weighted mean of the particles, averaging yaw on the unit circle."""
        estimate = sum((p.weighted() for p in self.particles), Particle())
        yaw_x = sum(math.cos(p.yaw) * p.weight for p in self.particles)
        yaw_y = sum(math.sin(p.yaw) * p.weight for p in self.particles)
        estimate.yaw = math.atan2(yaw_y, yaw_x)
        return estimate

    def calculate_covariance(self, estimate: Particle) -> Particle:
        """Unbiased weighted variance of each state component around ``estimate``."""
        cov = Particle()
        cov_normalizer = 0.0
        for p in self.particles:
            w = p.weight
            cov.x += (estimate.x - p.x) ** 2 * w
            cov.y += (estimate.y - p.y) ** 2 * w
            cov.yaw += shortest_angular_distance(p.yaw, estimate.yaw) ** 2 * w
            cov.x_vel += (estimate.x_vel - p.x_vel) ** 2 * w
            cov.yaw_vel += (estimate.yaw_vel - p.yaw_vel) ** 2 * w
            cov_normalizer += w**2
        divisor = 1 - cov_normalizer
        cov.x = _float_div(cov.x, divisor)
        cov.y = _float_div(cov.y, divisor)
        cov.yaw = _float_div(cov.yaw, divisor)
        cov.x_vel = _float_div(cov.x_vel, divisor)
        cov.yaw_vel = _float_div(cov.yaw_vel, divisor)
        return cov

    def _all_measurements_available(self, current_time: float) -> bool:
        return all(m.is_measurement_available(current_time) for m in self.sensor_models)

    def _search(self, target: float) -> int:
        n = self.num_particles
        left, right = 0, n - 1
        index = (left + right) // 2
        while left <= right:
            index = (left + right) // 2
            value = self.search_weights[index]
            if index == n - 1 or index == 0:
                break
            if self.search_weights[index - 1] <= target <= value:
                break
            if value < target:
                left = index + 1
            elif value > target:
                right = index - 1
            else:
                raise ValueError(f"Invalid search weights or value {value}")
        return index

    def resample_particles(self, current_time: float) -> bool:
        """Draw a new cloud in proportion to the particle weights.

        Returns False without changing anything when the motion model is idle,
        the last resample was too recent, or a sensor has no fresh measurement.
        """
        if not self.motion_model.is_enabled(current_time):
            logger.warning(
                "particle filter resample disabled since no velocity commands arrive; "
                "it will diverge easily"
            )
            return False
        if current_time - self.last_resample_time <= 1.0 / self.resample_rate:
            return False
        if not self._all_measurements_available(current_time):
            return False
        self.last_resample_time = current_time
        self.calculate_all_particle_weights(current_time)
        self.particles = [
            replace(self.particles[self._search(self.noise.sample())])
            for _ in range(self.num_particles)
        ]
        return True

    def calculate_all_particle_weights(self, current_time: float) -> None:
        """Weigh every particle against the sensors, then normalise."""
        for particle in self.particles:
            self.calculate_particle_weight(particle, current_time)
        self.normalize_weights()

    def calculate_particle_weight(self, particle: Particle, current_time: float) -> None:
        """Set ``particle.weight`` to its likelihood under all available sensors."""
        log_probability = 0.0
        for model in self.sensor_models:
            if model.is_measurement_available(current_time):
                log_probability += -0.5 * model.compute_log_prob(particle)
                log_probability -= model.compute_log_normalizer()
        try:
            particle.weight = math.exp(log_probability)
        except OverflowError:
            particle.weight = math.inf

    def update_state(self, current_time: float) -> tuple[Particle, Particle]:
        """Reweigh the particles and return the pose estimate and its covariance."""
        self.calculate_all_particle_weights(current_time)
        estimate = self.calculate_estimate()
        covariance = self.calculate_covariance(estimate)
        return estimate, covariance

    def particle_triangles(self) -> list[tuple[Triangle, float]]:
        """A heading triangle per particle with its weight relative to the heaviest one."""
        result = []
        for p in self.particles:
            front = (
                p.x + _MARKER_LENGTH * math.cos(p.yaw),
                p.y - _MARKER_LENGTH * math.sin(p.yaw),
            )
            right = (
                p.x + _MARKER_HALF_WIDTH * math.cos(p.yaw + math.pi / 2),
                p.y - _MARKER_HALF_WIDTH * math.sin(p.yaw + math.pi / 2),
            )
            left = (
                p.x + _MARKER_HALF_WIDTH * math.cos(p.yaw - math.pi / 2),
                p.y - _MARKER_HALF_WIDTH * math.sin(p.yaw - math.pi / 2),
            )
            result.append(((front, right, left), _float_div(p.weight, self.max_weight)))
        return result


def estimate_points(particles: Iterable[Particle]) -> list[Point]:
    """Planar positions of ``particles``."""
    return [(p.x, p.y) for p in particles]