"""A* search over a regular grid of planar points, checked against a costmap."""

from __future__ import annotations

import heapq
import itertools
import math
from typing import Iterable

from roverkit.costmap import LETHAL_OBSTACLE, Costmap, point_key, polygon_for_circle
from roverkit.geometry import IDENTITY_QUATERNION, Pose, Quaternion, quaternion_from_yaw

Point = tuple[float, float]


class PlanningError(RuntimeError):
    """Raised when no collision-free path can be planned."""


class AStarPathPlanner:
    """Plans paths on a grid of points spaced ``grid_size`` apart."""

    def __init__(
        self,
        costmap: Costmap,
        goal_threshold: float = 0.015,
        grid_size: float = 0.01,
        collision_radius: float = 0.08,
    ):
        if grid_size <= 0:
            raise ValueError("grid size must be positive")
        self.costmap = costmap
        self.goal_threshold = goal_threshold
        self.grid_size = grid_size
        self.collision_radius = collision_radius
        self._goal: Point = (0.0, 0.0)
        self._expanded: dict[tuple[int, int], Point] = {}

    @property
    def expanded(self) -> list[Point]:
        """Points expanded by the most recent search."""
        return list(self._expanded.values())

    def plan(self, start, goal) -> list[Point]:
        """Return a list of points from ``start`` to within reach of ``goal``."""
        start = (float(start[0]), float(start[1]))
        goal = (float(goal[0]), float(goal[1]))
        if self.is_point_in_collision(goal):
            raise PlanningError("Provided goal position would cause a collision")
        if self.is_point_in_collision(start):
            raise PlanningError(
                f"Starting position ({start[0]:f}, {start[1]:f}) is currently in a collision"
            )

        self._expanded = {}
        self._goal = goal
        order = itertools.count()
        frontier = [(self._heuristic(start), next(order), [start])]

        while frontier:
            cost, _, path = heapq.heappop(frontier)
            last = path[-1]
            key = point_key(last)
            if key in self._expanded:
                continue
            self._expanded[key] = last
            if self._is_goal(last):
                return path
            base = cost - self._heuristic(last)
            for neighbor in self.adjacent_points(last):
                new_cost = base + math.dist(last, neighbor) + self._heuristic(neighbor)
                heapq.heappush(frontier, (new_cost, next(order), path + [neighbor]))

        raise PlanningError("No path found after exhausting search space.")

    def adjacent_points(self, point) -> list[Point]:
        """The collision-free grid neighbours of ``point`` in all eight directions."""
        x, y = point
        steps = (-self.grid_size, 0.0, self.grid_size)
        neighbors = []
        for dx in steps:
            for dy in steps:
                if abs(dx) <= 1e-4 and abs(dy) <= 1e-4:
                    continue
                neighbor = (x + dx, y + dy)
                if not self.is_point_in_collision(neighbor):
                    neighbors.append(neighbor)
        return neighbors

    def is_point_in_collision(self, point) -> bool:
        """Whether a robot disc centred at ``point`` overlaps a lethal cell.

        Cells outside the costmap are treated as empty.
        """
        polygon = polygon_for_circle(self.costmap, point, self.collision_radius)
        return any(
            self.costmap.in_bounds(mx, my)
            and self.costmap.cost(mx, my) == LETHAL_OBSTACLE
            for mx, my in self.costmap.convex_fill_cells(polygon)
        )

    def _heuristic(self, point: Point) -> float:
        return math.dist(point, self._goal)

    def _is_goal(self, point: Point) -> bool:
        return math.dist(point, self._goal) < self.goal_threshold


def path_to_poses(
    points: Iterable,
    start_point,
    start_orientation: Quaternion = IDENTITY_QUATERNION,
) -> list[Pose]:
    """Turn planned points into poses heading along the path.

    Each pose faces away from the point before it; the first pose keeps
    ``start_orientation``.
    """
    poses = []
    prev = (float(start_point[0]), float(start_point[1]))
    for x, y in points:
        heading = math.atan2(y - prev[1], x - prev[0])
        poses.append(Pose(x=float(x), y=float(y), orientation=quaternion_from_yaw(heading)))
        prev = (x, y)
    if poses:
        first = poses[0]
        poses[0] = Pose(x=first.x, y=first.y, orientation=tuple(start_orientation))
    return poses