"""Iterative LQR trajectory tracking for a unicycle robot."""

from __future__ import annotations

import math

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


class LqrController:
    """Tracks a trajectory by linearising unicycle dynamics over a receding horizon."""

    def __init__(
        self,
        horizon: float = 1.0,
        dt: float = 0.1,
        time_between_states: float = 3.0,
        iterations: int = 1,
        q=(1.0, 1.0, 0.3),
        qf=(10.0, 10.0, 0.1),
        r=(0.1, 0.05),
    ):
        if dt <= 0:
            raise ValueError("dt must be positive")
        steps = int(horizon / dt)
        if steps < 1:
            raise ValueError("horizon must span at least one step")
        if len(q) != 3:
            raise ValueError("incorrect size Q, must be 3 values")
        if len(qf) != 3:
            raise ValueError("incorrect size Qf, must be 3 values")
        if len(r) != 2:
            raise ValueError("incorrect size R, must be 2 values")
        self.horizon = float(horizon)
        self.dt = float(dt)
        self.time_between_states = float(time_between_states)
        self.iterations = int(iterations)
        self.q = np.diag(np.asarray(q, dtype=float))
        self.qf = np.diag(np.asarray(qf, dtype=float))
        self.r = np.diag(np.asarray(r, dtype=float))
        self._steps = steps
        self._prev_u = np.zeros((steps, 2))
        self._prev_x = np.zeros((steps, 3))
        self._s = np.zeros((steps, 3, 3))
        self._trajectory: Trajectory | None = None

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def predicted_states(self) -> np.ndarray:
        """States the controller expects over the horizon."""
        return self._prev_x.copy()

    @property
    def controls(self) -> np.ndarray:
        return self._prev_u.copy()

    @property
    def cost_to_go(self) -> np.ndarray:
        """Riccati matrices, one per horizon step."""
        return self._s.copy()

    def set_plan(self, states, start_time: float) -> None:
        """Follow ``states`` starting at ``start_time``."""
        self._trajectory = Trajectory(states, self.time_between_states, start_time)
        self.reset_states(np.zeros(3))

    def reset_states(self, init_state) -> None:
        """Seed the horizon by rolling out unit controls from ``init_state``."""
        self._prev_x[0] = np.asarray(init_state, dtype=float)
        self._prev_u = np.ones((self._steps, 2))
        for t in range(1, self._steps):
            self._prev_x[t] = self.compute_next_state(self._prev_x[t - 1], self._prev_u[t])

    def compute_a_matrix(self, x, u) -> np.ndarray:
        a = np.eye(3)
        a[0, 2] = -u[0] * math.sin(x[2]) * self.dt
        a[1, 2] = u[0] * math.cos(x[2]) * self.dt
        return a

    def compute_b_matrix(self, x) -> np.ndarray:
        b = np.zeros((3, 2))
        b[0, 0] = math.cos(x[2]) * self.dt
        b[1, 0] = math.sin(x[2]) * self.dt
        b[2, 1] = self.dt
        return b

    def compute_next_state(self, x, u) -> np.ndarray:
        return np.array(
            [
                x[0] + u[0] * math.cos(x[2]) * self.dt,
                x[1] + u[0] * math.sin(x[2]) * self.dt,
                x[2] + u[1] * self.dt,
            ]
        )

    def _gain(self, a, b, s) -> np.ndarray:
        return np.linalg.inv(self.r + b.T @ s @ b) @ b.T @ s @ a

    def compute_riccati(self) -> None:
        """Backward pass of the Riccati recursion along the predicted states."""
        self._s[-1] = self.qf
        for t in range(self._steps - 2, -1, -1):
            last_s = self._s[t + 1]
            a = self.compute_a_matrix(self._prev_x[t], self._prev_u[t])
            b = self.compute_b_matrix(self._prev_x[t])
            k = self._gain(a, b, last_s)
            self._s[t] = a.T @ last_s @ a - (a.T @ last_s @ b) @ k + self.q

    def forward_pass(self, init_x, current_time: float) -> None:
        """Roll the feedback policy forward from ``init_x``, updating states and controls."""
        trajectory = self._require_plan()
        cur_x = np.asarray(init_x, dtype=float)
        for t in range(self._steps):
            a = self.compute_a_matrix(cur_x, self._prev_u[t])
            b = self.compute_b_matrix(self._prev_x[t])
            k = self._gain(a, b, self._s[t])
            target = trajectory.interpolate(current_time + self.dt * t)
            error = cur_x - target
            error[2] = shortest_angular_distance(target[2], cur_x[2])
            u_star = -k @ error
            self._prev_x[t] = cur_x
            self._prev_u[t] = u_star
            cur_x = self.compute_next_state(cur_x, u_star)

    def compute_velocity_command(self, state, stamp: float) -> Twist:
        """Velocity command for a robot at ``state`` measured at time ``stamp``."""
        self._require_plan()
        state = np.asarray(state, dtype=float)
        for _ in range(self.iterations):
            self.compute_riccati()
            self.forward_pass(state, stamp)
        u = self._prev_u[0]
        return Twist(
            linear_x=_clamp(float(u[0]), -COMMAND_LIMIT, COMMAND_LIMIT),
            angular_z=_clamp(float(u[1]), -COMMAND_LIMIT, COMMAND_LIMIT),
        )

    def _require_plan(self) -> Trajectory:
        if self._trajectory is None:
            raise RuntimeError("no plan has been set")
        return self._trajectory