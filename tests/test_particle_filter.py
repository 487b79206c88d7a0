import itertools
import math

import pytest

from roverkit.geometry import Twist
from roverkit.motion import MotionModel
from roverkit.particle import Particle
from roverkit.particle_filter import InitialRange, ParticleFilterLocalizer
from roverkit.sensors import SensorModel


class ConstantNoise:
    def __init__(self, value):
        self.value = value

    def sample(self):
        return self.value


class CycleNoise:
    def __init__(self, values):
        self._values = itertools.cycle(values)

    def sample(self):
        return next(self._values)


class StubSensor(SensorModel):
    """Prefers particles near x == 0; available only when told so."""

    def __init__(self, available=True):
        super().__init__((1.0, 1.0), 0.1)
        self.available = available

    def compute_log_prob(self, particle):
        return (particle.x * 10) ** 2

    def compute_log_normalizer(self):
        return 0.0

    def is_measurement_available(self, current_time):
        return self.available


def make_filter(sensors=None, num_particles=10, noise=None, **kwargs):
    return ParticleFilterLocalizer(
        sensor_models=sensors if sensors is not None else [StubSensor()],
        motion_model=MotionModel(sigmas=(0, 0, 0, 0, 0), noise=ConstantNoise(0.0)),
        num_particles=num_particles,
        noise=noise if noise is not None else CycleNoise([0.1, 0.3, 0.5, 0.7, 0.9]),
        **kwargs,
    )


def test_generate_new_particle_at_lower_corner():
    pf = make_filter(noise=ConstantNoise(0.0), initial_range=InitialRange(-1.0, 2.0, -3.0, 4.0))
    p = pf.generate_new_particle()
    assert p.x == pytest.approx(-1.0)
    assert p.y == pytest.approx(-3.0)
    assert p.yaw == pytest.approx(-1.0 / math.pi)
    assert p.x_vel == 0.0 and p.yaw_vel == 0.0


def test_initial_particles_stay_in_range():
    pf = make_filter(num_particles=20)
    assert len(pf.particles) == 20
    for p in pf.particles:
        assert -0.6 <= p.x <= 0.6
        assert -0.3 <= p.y <= 0.3


def test_initial_weights_normalised():
    pf = make_filter(num_particles=10)
    assert sum(p.weight for p in pf.particles) == pytest.approx(1.0)
    assert pf.search_weights[-1] == pytest.approx(1.0)
    assert pf.search_weights == sorted(pf.search_weights)


def test_normalize_drops_lowest_weight():
    pf = make_filter(num_particles=10)
    for i, p in enumerate(pf.particles):
        p.weight = float(i + 1)
    pf.normalize_weights()
    assert pf.particles[0].weight == 0.0
    assert sum(p.weight for p in pf.particles) == pytest.approx(1.0)
    assert pf.min_weight == 0.0
    assert pf.max_weight == pytest.approx(pf.particles[-1].weight)


def test_low_normalizer_redraws_particles():
    pf = make_filter(num_particles=10)
    for p in pf.particles:
        p.weight = 1e-6
    pf.normalize_weights()
    assert all(p.weight == pytest.approx(0.1) for p in pf.particles)


def test_drop_everything_raises():
    with pytest.raises(IndexError):
        make_filter(num_particles=10, low_percentage_particles_to_drop=1.0)


def test_zero_particles_rejected():
    with pytest.raises(ValueError):
        make_filter(num_particles=0)


def test_estimate_is_weighted_mean():
    pf = make_filter(num_particles=4)
    pf.particles = [
        Particle(x=float(i), y=-float(i), yaw=0.0, weight=0.25) for i in range(4)
    ]
    estimate = pf.calculate_estimate()
    assert estimate.x == pytest.approx(sum(range(4)) / 4)
    assert estimate.y == pytest.approx(-sum(range(4)) / 4)
    assert estimate.yaw == pytest.approx(0.0)


def test_estimate_yaw_averages_across_seam():
    pf = make_filter(num_particles=2)
    pf.particles = [Particle(yaw=3.0, weight=0.5), Particle(yaw=-3.0, weight=0.5)]
    estimate = pf.calculate_estimate()
    assert abs(estimate.yaw) > 3.0


def test_covariance_zero_for_identical_particles():
    pf = make_filter(num_particles=4)
    pf.particles = [Particle(x=0.2, y=0.1, yaw=0.5, weight=0.25) for _ in range(4)]
    cov = pf.calculate_covariance(pf.calculate_estimate())
    assert cov.x == pytest.approx(0.0)
    assert cov.y == pytest.approx(0.0)
    assert cov.yaw == pytest.approx(0.0)


def test_covariance_nonnegative():
    pf = make_filter(num_particles=10)
    cov = pf.calculate_covariance(pf.calculate_estimate())
    assert cov.x >= 0 and cov.y >= 0 and cov.yaw >= 0


def test_particle_weight_from_sensors():
    pf = make_filter(sensors=[StubSensor(), StubSensor(available=False)])
    particle = Particle(x=0.0)
    pf.calculate_particle_weight(particle, 0.0)
    assert particle.weight == pytest.approx(1.0)


def test_handle_command_sets_velocity():
    pf = make_filter()
    pf.handle_command(Twist(linear_x=0.4, angular_z=0.2), 10.0)
    assert all(p.x_vel == pytest.approx(0.4) for p in pf.particles)
    assert all(p.yaw_vel == pytest.approx(-0.2) for p in pf.particles)


def test_resample_disabled_without_commands():
    pf = make_filter()
    before = list(pf.particles)
    assert pf.resample_particles(10.0) is False
    assert pf.particles == before


def test_resample_skipped_when_sensor_missing():
    pf = make_filter(sensors=[StubSensor(available=False)])
    pf.handle_command(Twist(), 10.0)
    assert pf.resample_particles(10.1) is False


def test_resample_draws_from_existing_particles():
    pf = make_filter(num_particles=10)
    pf.handle_command(Twist(), 10.0)
    originals = {(p.x, p.y, p.yaw) for p in pf.particles}
    assert pf.resample_particles(10.1) is True
    assert len(pf.particles) == 10
    assert all((p.x, p.y, p.yaw) in originals for p in pf.particles)
    assert len({id(p) for p in pf.particles}) == 10
    assert pf.last_resample_time == 10.1


def test_resample_rate_limited():
    pf = make_filter(num_particles=10)
    pf.handle_command(Twist(), 10.0)
    assert pf.resample_particles(10.1) is True
    pf.handle_command(Twist(), 10.12)
    assert pf.resample_particles(10.15) is False


def test_update_state_returns_estimate_in_range():
    pf = make_filter(num_particles=10)
    estimate, covariance = pf.update_state(0.0)
    assert -0.6 <= estimate.x <= 0.6
    assert covariance.x >= 0


def test_particle_triangles():
    pf = make_filter(num_particles=10)
    triangles = pf.particle_triangles()
    assert len(triangles) == 10
    assert max(intensity for _, intensity in triangles) == pytest.approx(1.0)
    for (front, _, _), p in zip((t for t, _ in triangles), pf.particles):
        assert math.dist(front, (p.x, p.y)) == pytest.approx(0.1)