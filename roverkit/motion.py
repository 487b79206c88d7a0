"""Noisy unicycle motion model that propagates localisation particles."""

from __future__ import annotations

import math
from typing import Iterable, Protocol

from roverkit.geometry import Twist, normalize_angle
from roverkit.particle import Particle
from roverkit.randomness import GaussianRandomGenerator

STALE_COMMAND_DT = 1.0
STALE_COMMAND_STEP = 0.01
ENABLE_WINDOW = 0.25


class NoiseSource(Protocol):
    def sample(self) -> float: ...


class MotionModel:
    """Advances particles from velocity commands with Gaussian process noise.

    ``sigmas`` holds the noise scales for x, y, yaw, forward velocity and yaw rate.
    """

    def __init__(
        self,
        sigmas=(0.05, 0.05, 0.2, 0.05, 0.05),
        noise: NoiseSource | None = None,
    ):
        values = tuple(float(s) for s in sigmas)
        if len(values) != 5:
            raise ValueError("motion sigmas must hold exactly 5 values")
        self.sigmas = Particle(
            x=values[0], y=values[1], yaw=values[2], x_vel=values[3], yaw_vel=values[4]
        )
        self.noise = noise if noise is not None else GaussianRandomGenerator()
        self.last_message_time = 0.0

    def _jitter(self, sigma: float, root_dt: float) -> float:
        return sigma * self.noise.sample() * root_dt

    def update_particle(self, particle: Particle, dt: float, command: Twist) -> None:
        """Move ``particle`` in place over ``dt`` seconds and apply ``command``."""
        root_dt = math.sqrt(dt)
        s = self.sigmas
        particle.x += math.cos(particle.yaw) * particle.x_vel * dt + self._jitter(s.x, root_dt)
        particle.y += -math.sin(particle.yaw) * particle.x_vel * dt + self._jitter(s.y, root_dt)
        particle.yaw += particle.yaw_vel * dt + self._jitter(s.yaw, root_dt)
        particle.x_vel = command.linear_x + self._jitter(s.x_vel, root_dt)
        particle.yaw_vel = -command.angular_z + self._jitter(s.yaw_vel, root_dt)
        particle.yaw = normalize_angle(particle.yaw)

    def update_particles(
        self, particles: Iterable[Particle], command: Twist, current_time: float
    ) -> None:
        """Move every particle by the time since the previous command."""
        dt = current_time - self.last_message_time
        if dt > STALE_COMMAND_DT:
            # a small step after a long gap helps the filter converge
            dt = STALE_COMMAND_STEP
        for particle in particles:
            self.update_particle(particle, dt, command)
        self.last_message_time = current_time

    def is_enabled(self, current_time: float) -> bool:
        """Whether a command arrived recently enough to trust the model."""
        return current_time - self.last_message_time < ENABLE_WINDOW