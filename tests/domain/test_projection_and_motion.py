# tests/domain/test_projection_and_motion.py
import numpy as np
import pytest

from mapmatch.domain.distributions.gaussian import Frame, MultivariateGaussian
from mapmatch.domain.entities.geography import Point, RoadSegment
from mapmatch.domain.estimators.motion import ConstantVelocityPredictor
from mapmatch.domain.estimators.projection import (
    ground_state_to_road,
    ground_to_road,
    road_state_to_ground,
    road_to_ground,
)
from mapmatch.domain.paths.motion_state import GroundState, RoadState
from mapmatch.domain.paths.path import NULL_EDGE, PathEdge

DIAGONAL = RoadSegment(7, Point(0.0, 0.0), Point(30.0, 40.0))  # 50 m, tangent (0.6, 0.8)


def _predictor(dt=2.0):
    return ConstantVelocityPredictor(
        dt_s=dt, on_road_accel_var=0.5, off_road_accel_var=(0.5, 2.0), obs_cov=(9.0, 16.0)
    )


def test_road_to_ground_uses_edge_offset():
    belief = MultivariateGaussian([110.0, 5.0], np.diag([4.0, 1.0]), Frame.ROAD)
    g = road_to_ground(belief, PathEdge(DIAGONAL, 100.0))
    assert g.frame is Frame.GROUND
    assert g.mean.tolist() == pytest.approx([6.0, 3.0, 8.0, 4.0])
    assert g.position_covariance == pytest.approx(4.0 * np.outer([0.6, 0.8], [0.6, 0.8]))


def test_ground_to_road_clamps_to_segment():
    ground = MultivariateGaussian([60.0, 3.0, 80.0, 4.0], np.eye(4), Frame.GROUND)
    road = ground_to_road(ground, DIAGONAL, offset=20.0)
    assert road.mean.tolist() == pytest.approx([70.0, 5.0])
    assert road.covariance == pytest.approx(np.eye(2))


def test_projection_rejects_wrong_frames_and_null_edge():
    road = MultivariateGaussian([1.0, 1.0], np.eye(2), Frame.ROAD)
    with pytest.raises(ValueError):
        road_to_ground(road, NULL_EDGE)
    with pytest.raises(TypeError):
        ground_to_road(road, DIAGONAL)


def test_state_round_trip_on_segment():
    g = road_state_to_ground(RoadState(25.0, 10.0), PathEdge(DIAGONAL, 0.0))
    assert (g.x, g.vx, g.y, g.vy) == pytest.approx((15.0, 6.0, 20.0, 8.0))
    assert ground_state_to_road(g, DIAGONAL).vector == pytest.approx([25.0, 10.0])
    off = ground_state_to_road(GroundState(-5.0, -6.0, 0.0, 0.0), DIAGONAL)
    assert off.distance == 0.0 and off.velocity == pytest.approx(-3.6)


def test_predict_is_constant_velocity():
    p = _predictor(dt=2.0)
    road = p.predict(MultivariateGaussian([10.0, 3.0], np.zeros((2, 2)), Frame.ROAD))
    assert road.mean.tolist() == pytest.approx([16.0, 3.0])
    # white-acceleration covariance: q * [[dt^4/4, dt^3/2], [dt^3/2, dt^2]]
    assert road.covariance == pytest.approx(0.5 * np.array([[4.0, 4.0], [4.0, 4.0]]))
    ground = p.predict(MultivariateGaussian([0.0, 1.0, 0.0, -2.0], np.zeros((4, 4)), Frame.GROUND))
    assert ground.mean.tolist() == pytest.approx([2.0, 1.0, -4.0, -2.0])
    assert ground.covariance[2:, 2:] == pytest.approx(2.0 * np.array([[4.0, 4.0], [4.0, 4.0]]))


def test_road_noise_keeps_state_forward():
    p = _predictor(dt=2.0)
    rng = np.random.default_rng(0)
    for _ in range(200):
        noisy = p.inject_process_noise(np.array([0.1, 0.1]), Frame.ROAD, rng)
        assert noisy[0] >= 0.0 and noisy[1] >= 0.0


def test_observation_distribution_adds_gps_noise():
    p = _predictor()
    road = MultivariateGaussian([25.0, 10.0], np.diag([4.0, 1.0]), Frame.ROAD)
    obs = p.observation_distribution(road, PathEdge(DIAGONAL, 0.0))
    assert obs.frame is Frame.OBSERVATION
    assert obs.mean.tolist() == pytest.approx([15.0, 20.0])
    expected = 4.0 * np.outer([0.6, 0.8], [0.6, 0.8]) + np.diag([9.0, 16.0])
    assert obs.covariance == pytest.approx(expected)


def test_non_positive_step_rejected():
    with pytest.raises(ValueError):
        _predictor(dt=0.0)
