import math

import pytest

from roverkit.astar import AStarPathPlanner, PlanningError, path_to_poses
from roverkit.costmap import LETHAL_OBSTACLE, Costmap, point_key
from roverkit.geometry import quaternion_from_yaw

GRID = 0.05


def make_costmap():
    return Costmap(40, 40, 0.05, -1.0, -1.0)


def make_planner(costmap):
    return AStarPathPlanner(costmap, goal_threshold=0.03, grid_size=GRID, collision_radius=0.08)


def assert_connected(path):
    for a, b in zip(path, path[1:]):
        assert math.dist(a, b) <= GRID * math.sqrt(2) + 1e-9


def test_plan_on_empty_map_reaches_goal():
    planner = make_planner(make_costmap())
    path = planner.plan((0.0, 0.0), (0.2, 0.1))
    assert path[0] == (0.0, 0.0)
    assert math.dist(path[-1], (0.2, 0.1)) < 0.03
    assert_connected(path)


def test_plan_on_empty_map_is_shortest_in_steps():
    planner = make_planner(make_costmap())
    path = planner.plan((0.0, 0.0), (0.2, 0.0))
    assert len(path) == 5


def test_expanded_holds_start_after_plan():
    planner = make_planner(make_costmap())
    planner.plan((0.0, 0.0), (0.1, 0.0))
    keys = {point_key(p) for p in planner.expanded}
    assert point_key((0.0, 0.0)) in keys


def test_plan_goes_around_wall():
    costmap = make_costmap()
    for my in range(10, 31):
        costmap.set_cost(24, my, LETHAL_OBSTACLE)
    planner = make_planner(costmap)
    path = planner.plan((0.0, 0.0), (0.5, 0.0))
    assert math.dist(path[-1], (0.5, 0.0)) < 0.03
    assert_connected(path)
    assert not any(planner.is_point_in_collision(p) for p in path)
    assert max(abs(y) for _, y in path) > 0.5


def test_goal_in_collision_raises():
    costmap = make_costmap()
    costmap.set_cost(30, 20, LETHAL_OBSTACLE)
    planner = make_planner(costmap)
    with pytest.raises(PlanningError, match="goal"):
        planner.plan((0.0, 0.0), (0.525, 0.025))


def test_start_in_collision_raises():
    costmap = make_costmap()
    costmap.set_cost(20, 20, LETHAL_OBSTACLE)
    planner = make_planner(costmap)
    with pytest.raises(PlanningError, match="Starting position"):
        planner.plan((0.025, 0.025), (0.5, 0.5))


def test_enclosed_start_exhausts_search():
    costmap = make_costmap()
    for mx in range(12, 29):
        for my in range(12, 29):
            if max(abs(mx - 20), abs(my - 20)) == 8:
                costmap.set_cost(mx, my, LETHAL_OBSTACLE)
    planner = make_planner(costmap)
    with pytest.raises(PlanningError, match="No path"):
        planner.plan((0.025, 0.025), (0.8, 0.8))
    assert planner.expanded
    assert all(abs(x) < 0.45 and abs(y) < 0.45 for x, y in planner.expanded)


def test_adjacent_points_on_empty_map():
    planner = make_planner(make_costmap())
    neighbors = planner.adjacent_points((0.0, 0.0))
    assert len(neighbors) == 8
    assert (0.0, 0.0) not in neighbors
    assert all(0 < math.dist(n, (0.0, 0.0)) <= GRID * math.sqrt(2) + 1e-9 for n in neighbors)


def test_adjacent_points_skip_collisions():
    costmap = make_costmap()
    costmap.set_cost(23, 20, LETHAL_OBSTACLE)
    planner = make_planner(costmap)
    neighbors = planner.adjacent_points((0.025, 0.025))
    assert len(neighbors) < 8
    assert not any(planner.is_point_in_collision(n) for n in neighbors)


def test_is_point_in_collision_ignores_out_of_bounds():
    planner = make_planner(make_costmap())
    assert planner.is_point_in_collision((5.0, 5.0)) is False


def test_path_to_poses_headings():
    start_orientation = (0.0, 0.0, 0.6, 0.8)
    poses = path_to_poses([(1.0, 0.0), (1.0, 1.0)], (0.0, 0.0), start_orientation)
    assert [(p.x, p.y) for p in poses] == [(1.0, 0.0), (1.0, 1.0)]
    assert poses[0].orientation == start_orientation
    assert poses[1].orientation == pytest.approx(quaternion_from_yaw(math.pi / 2))


def test_path_to_poses_empty():
    assert path_to_poses([], (0.0, 0.0)) == []