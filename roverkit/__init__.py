"""Path planning, trajectory tracking, particle-filter localization, occupancy mapping
and colour-based obstacle detection for a small ground rover."""

__version__ = "0.1.0"