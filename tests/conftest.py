# tests/conftest.py
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import numpy as np
import pytest

from mapmatch.config.models import InitialParametersModel
from mapmatch.domain.distributions.edge_transition import EdgeTransitionProbs
from mapmatch.domain.distributions.gaussian import Frame, TruncatedRoadGaussian
from mapmatch.domain.distributions.path_state_dist import PathStateDistribution
from mapmatch.domain.entities.geography import Point
from mapmatch.domain.entities.observation import GpsObservation
from mapmatch.domain.graph.network_graph import NetworkRoadGraph
from mapmatch.domain.paths.motion_state import RoadState
from mapmatch.domain.paths.path import PathEdge
from mapmatch.domain.paths.path_state import PathState
from mapmatch.domain.state import BayesianParameter, VehicleState, VehicleStateFactory
from mapmatch.runtime.hooks import NoopHooks

T0 = datetime(2025, 1, 1, 8, 0, 0, tzinfo=UTC)


def make_obs(x: float, y: float, dt_s: float = 0.0, vehicle_id: str = "bus-1") -> GpsObservation:
    return GpsObservation(vehicle_id, T0 + timedelta(seconds=dt_s), Point(x, y))


class RecordingHooks(NoopHooks):
    def __init__(self):
        self.calls: list[tuple[str, dict]] = []

    def initial_particles(self, **kw):
        self.calls.append(("initial_particles", kw))

    def offroad_fallback(self, **kw):
        self.calls.append(("offroad_fallback", kw))

    def step(self, **kw):
        self.calls.append(("step", kw))

    def record(self, rec):
        self.calls.append(("record", {"rec": rec}))

    def error(self, **kw):
        self.calls.append(("error", kw))

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


# ---------- Fixtures


@pytest.fixture
def params() -> InitialParametersModel:
    return InitialParametersModel(initial_obs_freq=10.0)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(7)


@pytest.fixture
def two_segment_network() -> NetworkRoadGraph:
    # 0 --(id 0, 30 m)--> 1 --(id 1, 40 m)--> 2
    return NetworkRoadGraph.from_edges([(0.0, 0.0), (30.0, 0.0), (70.0, 0.0)], [(0, 1), (1, 2)])


@pytest.fixture
def dead_end_network() -> NetworkRoadGraph:
    # one 50 m segment with nothing after it
    return NetworkRoadGraph.from_edges([(0.0, 0.0), (50.0, 0.0)], [(0, 1)])


@pytest.fixture
def fork_network() -> NetworkRoadGraph:
    # 0 -> 1 then forks to 2 (id 1) and 3 (id 2)
    return NetworkRoadGraph.from_edges(
        [(0.0, 0.0), (30.0, 0.0), (70.0, 0.0), (30.0, 40.0)], [(0, 1), (1, 2), (1, 3)]
    )


@pytest.fixture
def force():
    """Replace a state's transition probabilities, e.g. to force on- or off-road."""

    def _force(
        state: VehicleState, edge_motion=(0.0, 1.0), free_motion=(0.0, 1.0)
    ) -> VehicleState:
        probs = EdgeTransitionProbs(edge_motion, free_motion)
        p = state.edge_transition_param
        return replace(
            state,
            edge_transition_param=BayesianParameter(
                probs, replace(p.conditional, probs=probs), p.prior
            ),
        )

    return _force


@pytest.fixture
def on_road_state():
    """A state on ``segment`` with a chosen edge-relative distance and speed."""

    def _make(
        factory: VehicleStateFactory, obs: GpsObservation, segment, distance, velocity
    ) -> VehicleState:
        s = factory.create_initial_state(obs, PathEdge(segment, 0.0))
        prior = TruncatedRoadGaussian([distance, velocity], np.diag([1.0, 0.1]), Frame.ROAD)
        path = s.path_state.path
        return replace(
            s,
            motion_state_param=replace(s.motion_state_param, prior=prior),
            path_state_param=BayesianParameter(
                PathState(path, RoadState(distance, velocity)),
                None,
                PathStateDistribution(path, prior),
            ),
        )

    return _make


@pytest.fixture
def obs():
    return make_obs


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()
