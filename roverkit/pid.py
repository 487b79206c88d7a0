"""Body-frame PID trajectory tracking for a differential-drive robot."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from roverkit.geometry import Twist, shortest_angular_distance
from roverkit.trajectory import Trajectory

COMMAND_LIMIT = 2.0


def _clamp(value: float, low: float, high: float) -> float:
    if value < low:
        return low
    if value > high:
        return high
    return value


@dataclass(frozen=True)
class Gains:
    """Proportional, integral and derivative gains."""

    p: float = 1.0
    i: float = 0.0
    d: float = 0.0


def compute_pid(error: float, error_delta: float, integral_error: float, gains: Gains) -> float:
    """Weighted sum of the error, its rate of change and its integral."""
    return gains.p * error + gains.d * error_delta + gains.i * integral_error


class PidController:
    """Tracks a trajectory with separate PID loops on body x, body y and yaw errors."""

    def __init__(
        self,
        time_between_states: float = 3.0,
        bx: Gains = Gains(),
        by: Gains = Gains(),
        yaw: Gains = Gains(),
        integral_max=(1.0, 1.0, 1.0),
    ):
        if len(integral_max) != 3:
            raise ValueError("Incorrect integral_max size.")
        self.time_between_states = float(time_between_states)
        self.bx = bx
        self.by = by
        self.yaw = yaw
        self.integral_max = np.asarray(integral_max, dtype=float)
        self._prev_error = np.zeros(3)
        self._integral_error = np.zeros(3)
        self._prev_time: float | None = None
        self._trajectory: Trajectory | None = None

    @property
    def integral_error(self) -> np.ndarray:
        return self._integral_error.copy()

    def set_plan(self, states, start_time: float) -> None:
        """Follow ``states`` from ``start_time`` and clear the loop history."""
        self._trajectory = Trajectory(states, self.time_between_states, start_time)
        self._prev_error = np.zeros(3)
        self._integral_error = np.zeros(3)
        self._prev_time = None

    def compute_error(self, state, target_state, dt: float) -> tuple[np.ndarray, np.ndarray]:
        """Body-frame error and its rate; accumulates the integral term.

        Returns ``(error, error_delta)``.
        """
        state = np.asarray(state, dtype=float)
        target_state = np.asarray(target_state, dtype=float)
        c, s = math.cos(state[2]), math.sin(state[2])
        rotation = np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])
        error = target_state - state
        error[2] = shortest_angular_distance(state[2], target_state[2])
        error = rotation.T @ error
        error_delta = (error - self._prev_error) / dt
        self._integral_error = self._integral_error + error_delta * dt
        return error, error_delta

    def compute_velocity_command(self, state, stamp: float, now: float) -> Twist:
        """Velocity command for a robot at ``state`` measured at ``stamp``.

        The first call after a plan only records ``now`` and returns a zero
        command so that later calls have a time step.
        """
        if self._prev_time is None:
            self._prev_time = now
            return Twist()
        if self._trajectory is None:
            raise RuntimeError("no plan has been set")

        target_state = self._trajectory.interpolate(stamp)
        dt = now - self._prev_time
        error, error_delta = self.compute_error(state, target_state, dt)
        self._integral_error = np.clip(
            self._integral_error, -self.integral_max, self.integral_max
        )
        integral = self._integral_error

        bx_pid = compute_pid(error[0], error_delta[0], integral[0], self.bx)
        by_pid = compute_pid(error[1], error_delta[1], integral[1], self.by)
        yaw_pid = compute_pid(error[2], error_delta[2], integral[2], self.yaw)

        self._prev_time = now
        return Twist(
            linear_x=_clamp(float(bx_pid), -COMMAND_LIMIT, COMMAND_LIMIT),
            angular_z=_clamp(float(yaw_pid + by_pid), -COMMAND_LIMIT, COMMAND_LIMIT),
        )