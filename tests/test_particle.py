import pytest

from roverkit.particle import Particle


def test_default_weight_is_one():
    assert Particle().weight == 1.0
    assert Particle().x == 0.0


def test_weighted_scales_state_and_resets_weight():
    p = Particle(x=2.0, y=-4.0, yaw=0.6, x_vel=3.0, yaw_vel=-1.5, weight=0.25)
    w = p.weighted()
    assert w.x == pytest.approx(p.x * p.weight)
    assert w.y == pytest.approx(p.y * p.weight)
    assert w.yaw == pytest.approx(p.yaw * p.weight)
    assert w.x_vel == pytest.approx(p.x_vel * p.weight)
    assert w.yaw_vel == pytest.approx(p.yaw_vel * p.weight)
    assert w.weight == 1.0


def test_weighted_leaves_original_unchanged():
    p = Particle(x=2.0, weight=0.5)
    p.weighted()
    assert p == Particle(x=2.0, weight=0.5)


def test_add_sums_every_field():
    a = Particle(x=1.0, y=2.0, yaw=0.1, x_vel=0.5, yaw_vel=0.2, weight=0.3)
    b = Particle(x=-3.0, y=0.5, yaw=0.4, x_vel=1.5, yaw_vel=-0.2, weight=0.7)
    s = a + b
    assert s.x == pytest.approx(a.x + b.x)
    assert s.y == pytest.approx(a.y + b.y)
    assert s.yaw == pytest.approx(a.yaw + b.yaw)
    assert s.x_vel == pytest.approx(a.x_vel + b.x_vel)
    assert s.yaw_vel == pytest.approx(a.yaw_vel + b.yaw_vel)
    assert s.weight == pytest.approx(a.weight + b.weight)


def test_sum_of_weighted_with_unit_weights_is_mean_times_count():
    particles = [Particle(x=float(i), weight=1.0 / 4) for i in range(4)]
    total = sum((p.weighted() for p in particles), Particle(weight=0.0))
    assert total.x == pytest.approx(sum(p.x for p in particles) / 4)
    assert total.weight == pytest.approx(len(particles))


def test_add_with_non_particle_raises():
    with pytest.raises(TypeError):
        Particle() + 1.0