"""A weighted hypothesis of the robot's planar pose and body velocities."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass
class Particle:
    """Global position and yaw, body velocities and a normalised weight."""

    x: float = 0.0
    y: float = 0.0
    yaw: float = 0.0
    x_vel: float = 0.0
    yaw_vel: float = 0.0
    weight: float = 1.0

    def weighted(self) -> "Particle":
        """A copy whose state is scaled by the weight and whose weight is 1."""
        w = self.weight
        return Particle(
            x=self.x * w,
            y=self.y * w,
            yaw=self.yaw * w,
            x_vel=self.x_vel * w,
            yaw_vel=self.yaw_vel * w,
            weight=1.0,
        )

    def __add__(self, other: "Particle") -> "Particle":
        if not isinstance(other, Particle):
            return NotImplemented
        return replace(
            self,
            x=self.x + other.x,
            y=self.y + other.y,
            yaw=self.yaw + other.yaw,
            x_vel=self.x_vel + other.x_vel,
            yaw_vel=self.yaw_vel + other.yaw_vel,
            weight=self.weight + other.weight,
        )