# roverkit

Algorithms for a small differential-drive rover, written as plain Python on
top of numpy. Every piece works on ordinary values: arrays, tuples,
dataclasses and callables. It needs no middleware, so each piece can be used
and tested on its own.

## What is inside

| Module | Purpose |
| --- | --- |
| `roverkit.geometry` | Angle helpers (`normalize_angle`, `shortest_angular_distance`), quaternion conversions, `Pose`/`Twist`/`Tag`, `transform_tags` from the camera optical frame to the base frame |
| `roverkit.peak_finder` | Hill climbing over an elevation function (`PeakFinder`, `pick_next_goal_position`) |
| `roverkit.costmap` | Grid `Costmap` with `convex_fill_cells` and `polygon_for_circle` |
| `roverkit.astar` | `AStarPathPlanner` on a costmap, with `path_to_poses` |
| `roverkit.path_generator` | `LemniscatePathGenerator`, a figure-eight test path |
| `roverkit.trajectory` | Time-based state interpolation along a path (`Trajectory`) |
| `roverkit.lqr` | Iterative LQR path tracker (`LqrController`) |
| `roverkit.pid` | Body-frame PID path tracker (`PidController`, `Gains`) |
| `roverkit.particle`, `roverkit.randomness`, `roverkit.sensors`, `roverkit.motion`, `roverkit.particle_filter` | Particle-filter localization (`ParticleFilterLocalizer`, `ArucoSensorModel`, `OdometrySensorModel`, `MotionModel`) |
| `roverkit.mapping` | Log-odds occupancy mapping (`OccupancyMapper`, `OccupancyGrid`) |
| `roverkit.obstacles` | Colour thresholding and ground-plane reprojection to an occupancy grid (`detect_obstacles`) |

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

Plan a path around an obstacle:

```python
from roverkit.costmap import Costmap, LETHAL_OBSTACLE
from roverkit.astar import AStarPathPlanner, path_to_poses

costmap = Costmap(width=100, height=100, resolution=0.01, origin_x=-0.5, origin_y=-0.5)
costmap.set_cost(50, 50, LETHAL_OBSTACLE)

planner = AStarPathPlanner(costmap, goal_threshold=0.015, grid_size=0.01, collision_radius=0.08)
path = planner.plan((-0.3, 0.0), (0.3, 0.0))
poses = path_to_poses(path, (-0.3, 0.0))
```

Follow a figure-eight with the LQR tracker:

```python
from roverkit.geometry import state_from_pose
from roverkit.lqr import LqrController
from roverkit.path_generator import LemniscatePathGenerator

states = [state_from_pose(p) for p in LemniscatePathGenerator(20).build_path()]
controller = LqrController()
controller.set_plan(states, start_time=0.0)
command = controller.compute_velocity_command([0.0, 0.0, 0.0], stamp=0.5)
print(command.linear_x, command.angular_z)
```

Climb to the highest nearby point:

```python
from roverkit.peak_finder import PeakFinder

finder = PeakFinder(
    sample_elevation=lambda p: -(p[0] ** 2 + p[1] ** 2),
    navigate=lambda goal: True,
    search_radius=0.1,
    sample_count=8,
)
peak = finder.climb((1.0, 1.0), max_steps=100)
```

Localize with a particle filter:

```python
from roverkit.geometry import Twist
from roverkit.particle_filter import ParticleFilterLocalizer

localizer = ParticleFilterLocalizer(num_particles=300)
localizer.handle_command(Twist(linear_x=0.1), current_time=1.0)
estimate, covariance = localizer.update_state(current_time=1.0)
```

## Errors

Errors are raised as exceptions: `PlanningError` when no path exists or the
start or goal collides, `ElevationError` when an elevation sample is missing
and `NavigationError` when a move fails in the peak finder, and `ValueError`
or `IndexError` for bad parameters and cells outside a grid.

## What it does not do

- It has no Kalman filter and no tracker for a single target's position.
- It runs no nodes, timers, message transport or frame lookups. Time stamps,
  sensor readings and frame transforms are passed in by the caller, and
  results are returned rather than published.
- It provides no command-line program.