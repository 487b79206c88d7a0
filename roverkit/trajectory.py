"""Time-parameterised reference trajectories of planar states."""

from __future__ import annotations

import math

import numpy as np

from roverkit.geometry import normalize_angle, shortest_angular_distance


class Trajectory:
    """States [x, y, yaw] spaced ``time_between_states`` seconds apart from ``start_time``."""

    def __init__(self, states, time_between_states: float = 3.0, start_time: float = 0.0):
        array = np.array(states, dtype=float)
        if array.ndim != 2 or array.shape[0] == 0 or array.shape[1] != 3:
            raise ValueError("a trajectory needs at least one [x, y, yaw] state")
        if time_between_states <= 0:
            raise ValueError("time between states must be positive")
        self._states = array
        self.time_between_states = float(time_between_states)
        self.start_time = float(start_time)

    def __len__(self) -> int:
        return len(self._states)

    @property
    def states(self) -> np.ndarray:
        return self._states.copy()

    def interpolate(self, time: float) -> np.ndarray:
        """Reference state at ``time``, blending yaw across the +-pi seam."""
        states = self._states
        spacing = self.time_between_states
        if time > self.start_time + spacing * len(states):
            return states[-1].copy()
        if time < self.start_time:
            return states[0].copy()

        rel_time = time - self.start_time
        lower = int(math.floor(rel_time / spacing))
        alpha = (rel_time - lower * spacing) / spacing
        last = len(states) - 1
        low = states[min(lower, last)]
        high = states[min(lower + 1, last)]

        result = (1 - alpha) * low + alpha * high
        crosses = (low[2] > 0 > high[2]) or (low[2] < 0 < high[2])
        if crosses and abs(low[2]) > math.pi / 2 and abs(high[2]) > math.pi / 2:
            diff = shortest_angular_distance(low[2], high[2])
            result[2] = normalize_angle(low[2] + alpha * diff)
        return result