"""Seeded random sources for particle generation and motion noise."""

from __future__ import annotations

import random

RANDOM_SEED = 100


class UniformRandomGenerator:
    """Uniform samples in [0, 1) from a seeded generator."""

    def __init__(self, seed: int = RANDOM_SEED):
        self._rng = random.Random(seed)

    def sample(self) -> float:
        return self._rng.random()


class GaussianRandomGenerator:
    """Standard normal samples from a seeded generator."""

    def __init__(self, seed: int = RANDOM_SEED):
        self._rng = random.Random(seed)

    def sample(self) -> float:
        return self._rng.gauss(0.0, 1.0)