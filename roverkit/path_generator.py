"""Figure-eight reference paths for exercising path-following controllers."""

from __future__ import annotations

import math
from typing import Iterator

from roverkit.geometry import Pose, quaternion_from_yaw


class LemniscatePathGenerator:
    """Builds a Gerono lemniscate traced forward, then traced back offset in y.

    The forward pass holds ``point_count`` poses. The return pass holds
    ``point_count - 1`` poses, faces the opposite way and sits ``return_offset``
    lower in y.
    """

    scale = 0.5
    return_offset = 0.1

    def __init__(self, point_count: int = 20):
        if point_count < 1:
            raise ValueError("point count must be at least 1")
        self.point_count = int(point_count)

    def build_path(self) -> list[Pose]:
        """Return the poses of the full out-and-back figure eight."""
        delta = 2 * math.pi / self.point_count
        forward = list(self._trace(0.0, delta, self.point_count))
        end = self.point_count * delta if forward else 0.0
        t = 0.0
        for _ in range(self.point_count):
            t += delta
        end = t
        backward = list(self._trace(end - delta, -delta, self.point_count - 1))
        return forward + backward

    def _trace(self, t: float, delta: float, count: int) -> Iterator[Pose]:
        for _ in range(count):
            yield self._point_at(t, reverse=delta < 0)
            t += delta

    def _point_at(self, t: float, reverse: bool) -> Pose:
        s = self.scale
        x = s * math.sin(t)
        y = s * math.sin(t) * math.cos(t)
        dx = s * math.cos(t)
        dy = s * math.cos(t) * math.cos(t) - s * math.sin(t) * math.sin(t)
        yaw = math.atan2(dy, dx)
        if reverse:
            yaw += math.pi
            y -= self.return_offset
        return Pose(x=x, y=y, orientation=quaternion_from_yaw(yaw))