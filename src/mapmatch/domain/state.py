# mapmatch/domain/state.py
from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace
from typing import Generic, TypeVar

import numpy as np

from mapmatch.app.protocols import MotionPredictor, RoadNetwork
from mapmatch.config.models import InitialParametersModel
from mapmatch.domain.distributions.edge_transition import (
    EdgeTransitionDistribution,
    EdgeTransitionPrior,
    EdgeTransitionProbs,
)
from mapmatch.domain.distributions.gaussian import Frame, MultivariateGaussian, TruncatedRoadGaussian
from mapmatch.domain.distributions.path_state_dist import PathStateDistribution
from mapmatch.domain.entities.observation import GpsObservation
from mapmatch.domain.estimators.motion import ConstantVelocityPredictor
from mapmatch.domain.estimators.projection import ground_to_road
from mapmatch.domain.paths.path import NULL_PATH, Path, PathEdge
from mapmatch.domain.paths.path_state import PathState

V = TypeVar("V")
C = TypeVar("C")
P = TypeVar("P")


@dataclass(frozen=True, eq=False)
class BayesianParameter(Generic[V, C, P]):
    """Point estimate, the distribution it was drawn from, and its prior."""

    value: V
    conditional: C
    prior: P


MotionStateParam = BayesianParameter[np.ndarray, MultivariateGaussian, MultivariateGaussian]
PathStateParam = BayesianParameter[PathState, None, PathStateDistribution]
EdgeTransitionParam = BayesianParameter[
    EdgeTransitionProbs, EdgeTransitionDistribution, EdgeTransitionPrior
]


@dataclass(frozen=True, eq=False)
class VehicleState:
    """
    One particle. Never modified in place: the updater derives a new state
    with ``dataclasses.replace``. ``parent`` and ``index`` are slots in a
    ``ParticleHistory``.
    """

    observation: GpsObservation
    motion_state_param: MotionStateParam
    path_state_param: PathStateParam
    edge_transition_param: EdgeTransitionParam
    parent: int | None = None
    index: int | None = None

    @property
    def path_state(self) -> PathState:
        return self.path_state_param.value

    @property
    def edge(self) -> PathEdge:
        return self.path_state.edge

    @property
    def is_on_road(self) -> bool:
        return self.path_state.is_on_road


class ParticleHistory:
    """Append-only arena of particles; lineage is followed by index."""

    def __init__(self):
        self._states: list[VehicleState] = []

    def __len__(self) -> int:
        return len(self._states)

    def __getitem__(self, idx: int) -> VehicleState:
        return self._states[idx]

    def register(self, state: VehicleState) -> VehicleState:
        if state.index is not None and state.index < len(self._states):
            if self._states[state.index] is state:
                return state
        stored = replace(state, index=len(self._states))
        self._states.append(stored)
        return stored

    def parent_of(self, state: VehicleState) -> VehicleState | None:
        return None if state.parent is None else self._states[state.parent]

    def lineage(self, state: VehicleState) -> Iterator[VehicleState]:
        """Ancestors of ``state``, nearest first."""
        cur = self.parent_of(state)
        while cur is not None:
            yield cur
            cur = self.parent_of(cur)


PredictorFactory = Callable[[InitialParametersModel, float], MotionPredictor]


class VehicleStateFactory:
    def __init__(
        self,
        params: InitialParametersModel,
        network: RoadNetwork,
        predictor_factory: PredictorFactory = ConstantVelocityPredictor.from_parameters,
    ):
        self.params, self.network, self.predictor_factory = params, network, predictor_factory

    def ground_prior(self, obs: GpsObservation) -> MultivariateGaussian:
        ox, oy = self.params.obs_cov
        vv = self.params.initial_velocity_var
        return MultivariateGaussian(
            [obs.point.x, 0.0, obs.point.y, 0.0], np.diag([ox, vv, oy, vv]), Frame.GROUND
        )

    def edge_transition_prior(self) -> EdgeTransitionPrior:
        return EdgeTransitionPrior(self.params.edge_motion_prior, self.params.free_motion_prior)

    def create_initial_state(self, obs: GpsObservation, path_edge: PathEdge) -> VehicleState:
        """State anchored on ``path_edge`` (distance 0 of a one-edge path) or off-road."""
        p = self.params
        ground = self.ground_prior(obs)
        if path_edge.is_null:
            path, belief = NULL_PATH, ground
        else:
            path = Path.from_segments([path_edge.segment])
            belief = ground_to_road(ground, path_edge.segment)
        prior = TruncatedRoadGaussian(belief.mean, belief.covariance, belief.frame, p.max_speed_mps)
        path_state = PathState.from_belief(path, prior)

        predictor = self.predictor_factory(p, p.initial_obs_freq)
        obs_dist = predictor.observation_distribution(prior, path_state.edge)

        trans_prior = self.edge_transition_prior()
        probs = trans_prior.mean()
        return VehicleState(
            observation=obs,
            motion_state_param=BayesianParameter(obs_dist.mean, obs_dist, prior),
            path_state_param=BayesianParameter(
                path_state, None, PathStateDistribution(path, prior)
            ),
            edge_transition_param=BayesianParameter(
                probs,
                EdgeTransitionDistribution.for_path_state(
                    self.network, path_state, probs, np.diag(p.obs_cov)
                ),
                trans_prior,
            ),
        )
