"""Hill climbing over an elevation field by sampling a circle around the robot."""

from __future__ import annotations

import math
from typing import Callable, Iterator

Position = tuple[float, float]
ElevationSampler = Callable[[Position], "float | None"]
Navigate = Callable[[Position], bool]


class ElevationError(RuntimeError):
    """Raised when an elevation sample cannot be obtained."""


class NavigationError(RuntimeError):
    """Raised when the robot fails to reach a goal."""


def sample_circle(center, radius: float, count: int) -> Iterator[Position]:
    """Yield points on a circle, stepping the angle by 2*pi/count from zero."""
    if count < 1:
        raise ValueError("sample count must be at least 1")
    cx, cy = center
    step = 2 * math.pi / count
    angle = 0.0
    while angle < 2 * math.pi:
        yield (radius * math.cos(angle) + cx, radius * math.sin(angle) + cy)
        angle += step


def _sample(sample_elevation: ElevationSampler, position: Position) -> float:
    elevation = sample_elevation(position)
    if elevation is None:
        raise ElevationError("Elevation server reported failure.")
    return float(elevation)


def pick_next_goal_position(
    current_position,
    current_elevation: float,
    sample_elevation: ElevationSampler,
    search_radius: float = 0.1,
    sample_count: int = 8,
):
    """Return the highest sample point, or ``current_position`` if none is higher."""
    samples = list(sample_circle(current_position, search_radius, sample_count))
    elevations = [_sample(sample_elevation, p) for p in samples]
    best = max(range(len(samples)), key=elevations.__getitem__)
    if elevations[best] <= current_elevation:
        return current_position
    return samples[best]


class PeakFinder:
    """Drives toward higher ground until no neighbouring sample is higher."""

    def __init__(
        self,
        sample_elevation: ElevationSampler,
        navigate: Navigate,
        search_radius: float = 0.1,
        sample_count: int = 8,
    ):
        self.sample_elevation = sample_elevation
        self.navigate = navigate
        self.search_radius = search_radius
        self.sample_count = sample_count

    def climb(self, start_position, max_steps: int | None = None) -> Position:
        """Climb from ``start_position`` and return where the robot stops.

        Stops at a peak, or after ``max_steps`` moves when a limit is given.
        """
        position = tuple(start_position)
        steps = 0
        while max_steps is None or steps < max_steps:
            elevation = _sample(self.sample_elevation, position)
            goal = pick_next_goal_position(
                position, elevation, self.sample_elevation, self.search_radius, self.sample_count
            )
            if goal == position:
                return position
            if not self.navigate(goal):
                raise NavigationError("Navigation failed!")
            position = goal
            steps += 1
        return position