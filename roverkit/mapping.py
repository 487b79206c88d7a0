"""Log-odds occupancy mapping from local obstacle grids."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Iterable

Point = tuple[float, float]
ToMap = Callable[[Point], Point]

UNKNOWN = -1
OCCUPIED = 100


def to_log_odds(prob: float) -> float:
    """Log odds of a probability strictly between 0 and 1."""
    if not 0.0 < prob < 1.0:
        raise ValueError("probability must lie strictly between 0 and 1")
    return math.log(prob / (1.0 - prob))


def from_log_odds(log_odds: float) -> float:
    """Probability for a log-odds value."""
    return 1.0 - (1.0 / (1.0 + math.exp(log_odds)))


@dataclass
class OccupancyGrid:
    """Row-major grid of cells, ``resolution`` metres wide, starting at the origin."""

    width: int
    height: int
    resolution: float
    origin_x: float = 0.0
    origin_y: float = 0.0
    data: list[int] = field(default_factory=list)

    def is_in_bounds(self, x: float, y: float) -> bool:
        """Whether a point lies on the grid; the far edges are exclusive."""
        return (
            self.origin_x <= x < self.origin_x + self.width * self.resolution
            and self.origin_y <= y < self.origin_y + self.height * self.resolution
        )


class OccupancyMapper:
    """Accumulates obstacle evidence into a map centred on the origin.

    ``width`` and ``height`` are in metres, ``resolution`` in metres per cell.
    """

    def __init__(
        self,
        width: float = 1.2192,
        height: float = 0.762,
        resolution: float = 0.01,
        distance_coefficient: float = 0.01,
        hit_probability: float = 0.7,
        miss_probability: float = 0.3,
    ):
        if resolution <= 0:
            raise ValueError("resolution must be positive")
        if width <= 0 or height <= 0:
            raise ValueError("map dimensions must be positive")
        self.info = OccupancyGrid(
            width=int(width / resolution),
            height=int(height / resolution),
            resolution=float(resolution),
            origin_x=-width / 2.0,
            origin_y=-height / 2.0,
        )
        self.distance_coefficient = float(distance_coefficient)
        self.hit_log_odds = to_log_odds(hit_probability)
        self.miss_log_odds = to_log_odds(miss_probability)
        self._low = to_log_odds(0.01)
        self._high = to_log_odds(0.99)
        self._data = [0.0] * (self.info.width * self.info.height)

    @property
    def map_data(self) -> list[float]:
        """Log-odds value of every cell, row by row."""
        return list(self._data)

    def add_obstacles(
        self, obstacles: OccupancyGrid, robot_location: Iterable[float], to_map: ToMap
    ) -> None:
        """Fold a local obstacle grid into the map.

        ``to_map`` moves a point from the obstacle grid's frame into the map
        frame. Unknown cells and cells that land off the map are ignored.
        """
        robot = tuple(float(c) for c in robot_location)
        for y in range(obstacles.height):
            for x in range(obstacles.width):
                value = obstacles.data[x + y * obstacles.width]
                if value == UNKNOWN:
                    continue
                local = (
                    x * obstacles.resolution + obstacles.origin_x,
                    y * obstacles.resolution + obstacles.origin_y,
                )
                map_x, map_y = to_map(local)
                if not self.info.is_in_bounds(map_x, map_y):
                    continue
                self.update_probability(robot, (map_x, map_y), value == OCCUPIED)

    def update_probability(
        self, robot_location, map_location, obstacle_detected: bool
    ) -> None:
        """Add distance-weighted hit or miss evidence to the cell under ``map_location``."""
        rx, ry = robot_location
        mx, my = map_location
        cell_x = int((mx - self.info.origin_x) / self.info.resolution)
        cell_y = int((my - self.info.origin_y) / self.info.resolution)
        index = self.map_data_index(cell_x, cell_y)
        distance = math.hypot(rx - mx, ry - my)
        evidence = math.exp(-self.distance_coefficient * distance)
        evidence *= self.hit_log_odds if obstacle_detected else self.miss_log_odds
        updated = self._data[index] + evidence
        self._data[index] = min(max(updated, self._low), self._high)

    def map_data_index(self, cell_x: int, cell_y: int) -> int:
        """Position of a cell in the row-major data."""
        if not 0 <= cell_x < self.info.width or not 0 <= cell_y < self.info.height:
            raise IndexError(f"cell ({cell_x}, {cell_y}) is outside the map")
        return cell_x + cell_y * self.info.width

    def to_occupancy_grid(self) -> OccupancyGrid:
        """The map as percentages of occupancy probability."""
        info = self.info
        return OccupancyGrid(
            width=info.width,
            height=info.height,
            resolution=info.resolution,
            origin_x=info.origin_x,
            origin_y=info.origin_y,
            data=[int(from_log_odds(v) * 100) for v in self._data],
        )