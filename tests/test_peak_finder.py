import math

import pytest

from roverkit.peak_finder import (
    ElevationError,
    NavigationError,
    PeakFinder,
    pick_next_goal_position,
    sample_circle,
)


def hill(peak):
    px, py = peak

    def elevation(position):
        x, y = position
        return -((x - px) ** 2) - (y - py) ** 2

    return elevation


def test_sample_circle_points_on_circle():
    center = (1.0, -2.0)
    points = list(sample_circle(center, 0.3, 8))
    assert len(points) == 8
    for x, y in points:
        assert math.hypot(x - center[0], y - center[1]) == pytest.approx(0.3)
    assert points[0] == pytest.approx((1.3, -2.0))


def test_sample_circle_distinct_angles():
    points = list(sample_circle((0.0, 0.0), 1.0, 6))
    angles = sorted(round(math.atan2(y, x), 6) for x, y in points)
    assert len(set(angles)) == len(points)


def test_sample_circle_rejects_zero_count():
    with pytest.raises(ValueError):
        list(sample_circle((0.0, 0.0), 1.0, 0))


def test_pick_moves_to_highest_sample():
    field = hill((0.0, 1.0))
    current = (0.0, 0.0)
    goal = pick_next_goal_position(current, field(current), field, 0.1, 8)
    samples = list(sample_circle(current, 0.1, 8))
    assert goal in samples
    assert field(goal) == max(field(p) for p in samples)
    assert field(goal) > field(current)


def test_pick_stays_at_peak():
    field = hill((0.0, 0.0))
    current = (0.0, 0.0)
    assert pick_next_goal_position(current, field(current), field, 0.1, 8) is current


def test_pick_ties_choose_first_sample():
    current = (2.0, 3.0)
    goal = pick_next_goal_position(current, 0.0, lambda p: 1.0, 0.5, 4)
    assert goal == list(sample_circle(current, 0.5, 4))[0]


def test_pick_equal_elevation_is_not_higher():
    current = (0.0, 0.0)
    assert pick_next_goal_position(current, 1.0, lambda p: 1.0, 0.5, 4) is current


def test_pick_reports_sampler_failure():
    with pytest.raises(ElevationError):
        pick_next_goal_position((0.0, 0.0), 0.0, lambda p: None, 0.1, 8)


def test_climb_reaches_peak():
    visited = []

    def navigate(goal):
        visited.append(goal)
        return True

    finder = PeakFinder(hill((0.5, 0.0)), navigate, search_radius=0.1, sample_count=8)
    final = finder.climb((0.0, 0.0))
    assert final == pytest.approx((0.5, 0.0))
    assert len(visited) == 5
    assert visited[-1] == final


def test_climb_respects_step_limit():
    finder = PeakFinder(hill((0.5, 0.0)), lambda goal: True, search_radius=0.1, sample_count=8)
    final = finder.climb((0.0, 0.0), max_steps=1)
    assert final == pytest.approx((0.1, 0.0))


def test_climb_navigation_failure():
    finder = PeakFinder(hill((1.0, 1.0)), lambda goal: False)
    with pytest.raises(NavigationError):
        finder.climb((0.0, 0.0))


def test_climb_elevation_failure():
    finder = PeakFinder(lambda p: None, lambda goal: True)
    with pytest.raises(ElevationError):
        finder.climb((0.0, 0.0))


def test_climb_at_peak_does_not_move():
    calls = []
    finder = PeakFinder(hill((0.0, 0.0)), lambda goal: calls.append(goal) or True)
    assert finder.climb((0.0, 0.0)) == (0.0, 0.0)
    assert calls == []