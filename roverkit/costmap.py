"""A 2-D grid costmap and the cell helpers the path planner relies on."""

from __future__ import annotations

import math
from typing import Iterable, Iterator

import numpy as np

FREE_SPACE = 0
LETHAL_OBSTACLE = 254
NO_INFORMATION = 255

Cell = tuple[int, int]


class Costmap:
    """Grid of byte costs laid over the plane starting at (origin_x, origin_y)."""

    def __init__(
        self,
        width: int,
        height: int,
        resolution: float,
        origin_x: float = 0.0,
        origin_y: float = 0.0,
    ):
        if width <= 0 or height <= 0:
            raise ValueError("costmap dimensions must be positive")
        if resolution <= 0:
            raise ValueError("resolution must be positive")
        self.size_x = int(width)
        self.size_y = int(height)
        self.resolution = float(resolution)
        self.origin_x = float(origin_x)
        self.origin_y = float(origin_y)
        self._costs = np.full((self.size_y, self.size_x), FREE_SPACE, dtype=np.uint8)

    def world_to_map_no_bounds(self, wx: float, wy: float) -> Cell:
        """Cell holding a world point, truncating toward zero and without bounds checks."""
        mx = int((wx - self.origin_x) / self.resolution)
        my = int((wy - self.origin_y) / self.resolution)
        return mx, my

    def in_bounds(self, mx: int, my: int) -> bool:
        return 0 <= mx < self.size_x and 0 <= my < self.size_y

    def _check(self, mx: int, my: int) -> None:
        if not self.in_bounds(mx, my):
            raise IndexError(f"cell ({mx}, {my}) is outside the costmap")

    def cost(self, mx: int, my: int) -> int:
        """Cost stored in a cell."""
        self._check(mx, my)
        return int(self._costs[my, mx])

    def set_cost(self, mx: int, my: int, cost: int) -> None:
        """Store a cost (0-255) in a cell."""
        self._check(mx, my)
        if not 0 <= cost <= 255:
            raise ValueError("cost must lie in 0..255")
        self._costs[my, mx] = cost

    def convex_fill_cells(self, polygon: Iterable[Cell]) -> list[Cell]:
        """All cells covered by a convex polygon given by its corner cells."""
        corners = [(int(x), int(y)) for x, y in polygon]
        if len(corners) < 3:
            raise ValueError("a polygon needs at least three points")
        spans: dict[int, tuple[int, int]] = {}
        for x, y in _outline(corners):
            low, high = spans.get(x, (y, y))
            spans[x] = (min(low, y), max(high, y))
        return [
            (x, y)
            for x in sorted(spans)
            for y in range(spans[x][0], spans[x][1] + 1)
        ]


def _line(x0: int, y0: int, x1: int, y1: int) -> Iterator[Cell]:
    dx = abs(x1 - x0)
    dy = -abs(y1 - y0)
    sx = 1 if x1 >= x0 else -1
    sy = 1 if y1 >= y0 else -1
    err = dx + dy
    while True:
        yield x0, y0
        if x0 == x1 and y0 == y1:
            return
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0 += sx
        if e2 <= dx:
            err += dx
            y0 += sy


def _outline(corners: list[Cell]) -> Iterator[Cell]:
    for (x0, y0), (x1, y1) in zip(corners, corners[1:] + corners[:1]):
        yield from _line(x0, y0, x1, y1)


def polygon_for_circle(
    costmap: Costmap, center, radius: float, resolution: int = 20
) -> list[Cell]:
    """Cells of ``resolution`` points spaced evenly on a circle, starting at angle zero."""
    cx, cy = center
    step = 2 * math.pi / resolution
    return [
        costmap.world_to_map_no_bounds(
            radius * math.cos(i * step) + cx, radius * math.sin(i * step) + cy
        )
        for i in range(resolution)
    ]


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def point_key(point) -> tuple[int, int]:
    """Hashable key identifying a point to the nearest thousandth."""
    x, y = point
    return _round_half_away(x * 1000), _round_half_away(y * 1000)