"""Bootstrap state-transition engine.

New particle states are produced by predicting motion, sampling an on/off
road indicator, and sampling a concrete path consistent with the predicted
distance. Weighting is left to the surrounding filter.
"""

import math
from dataclasses import replace

import numpy as np

from mapmatch.app.protocols import MotionPredictor, RoadNetwork
from mapmatch.config.models import InitialParametersModel
from mapmatch.domain.distributions.counted import CountedDistribution, LogWeightedSet
from mapmatch.domain.distributions.edge_transition import EdgeTransitionDistribution
from mapmatch.domain.distributions.gaussian import Frame, MultivariateGaussian, TruncatedRoadGaussian
from mapmatch.domain.distributions.path_state_dist import PathStateDistribution
from mapmatch.domain.entities.observation import GpsObservation
from mapmatch.domain.estimators.motion import ConstantVelocityPredictor
from mapmatch.domain.estimators.projection import ground_to_road, road_to_ground
from mapmatch.domain.paths.enumerate import GraphPath, enumerate_paths
from mapmatch.domain.paths.path import NULL_EDGE, NULL_PATH, Path, PathEdge
from mapmatch.domain.paths.path_state import PathState
from mapmatch.domain.state import (
    BayesianParameter,
    ParticleHistory,
    PredictorFactory,
    VehicleState,
    VehicleStateFactory,
)
from mapmatch.runtime.hooks import FilterHooks, NoopHooks


class BootstrapUpdater:
    def __init__(
        self,
        initial_observation: GpsObservation,
        network: RoadNetwork,
        params: InitialParametersModel,
        rng: np.random.Generator,
        *,
        history: ParticleHistory | None = None,
        hooks: FilterHooks | None = None,
        predictor_factory: PredictorFactory = ConstantVelocityPredictor.from_parameters,
    ):
        self.initial_observation = initial_observation
        self.observation = initial_observation  # the observation being assimilated
        self.network, self.params, self.rng = network, params, rng
        self.history = history if history is not None else ParticleHistory()
        self.hooks = hooks or NoopHooks()
        self.predictor_factory = predictor_factory
        self.factory = VehicleStateFactory(params, network, predictor_factory)
        # noise added by the last transition; diagnostics only
        self.sampled_transition_error: np.ndarray | None = None

    def compute_log_likelihood(self, particle: VehicleState, observation: GpsObservation) -> float:
        return particle.motion_state_param.conditional.log_evaluate(observation.vector)

    # ------------------- Initial population ----------------------------

    def create_initial_particles(self, count: int) -> CountedDistribution[VehicleState]:
        """
        Draw ``count`` particles, each from the null state plus one state per
        nearby edge, weighted by the likelihood of the initial observation.
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        obs = self.initial_observation
        null_state = self.factory.create_initial_state(obs, NULL_EDGE)
        prior = null_state.motion_state_param.prior
        edges = self.network.nearby_segments(prior.position_mean, prior.position_covariance)

        null_log_weight = null_state.edge_transition_param.conditional.log_evaluate(
            None
        ) + self.compute_log_likelihood(null_state, obs)
        if not math.isfinite(null_log_weight) and not edges:
            raise RuntimeError("off-road is impossible and there are no edges to be on")

        candidates: LogWeightedSet[VehicleState] = LogWeightedSet()
        candidates.add(null_state, null_log_weight)
        for seg in edges:
            state = self.factory.create_initial_state(obs, PathEdge(seg, 0.0))
            log_weight = state.edge_transition_param.conditional.log_evaluate(
                seg
            ) + self.compute_log_likelihood(state, obs)
            candidates.add(state, log_weight)

        self.hooks.initial_particles(
            vehicle_id=obs.vehicle_id,
            count=count,
            nearby=len(edges),
            null_log_weight=null_log_weight,
        )

        out: CountedDistribution[VehicleState] = CountedDistribution()
        registered: dict[int, VehicleState] = {}
        for _ in range(count):
            drawn = candidates.sample(self.rng)
            if id(drawn) not in registered:
                registered[id(drawn)] = self.history.register(drawn)
            out.increment(registered[id(drawn)])
        return out

    # ------------------- Transition ----------------------------

    def _predict_noisy(
        self, predictor: MotionPredictor, prior: MultivariateGaussian
    ) -> MultivariateGaussian:
        predicted = predictor.predict(prior)
        noisy = predictor.inject_process_noise(predicted.mean, predicted.frame, self.rng)
        self.sampled_transition_error = noisy - predicted.mean
        return predicted.with_mean(noisy)

    def _choose_path(self, paths: list[GraphPath]) -> GraphPath:
        n = len(paths)
        if n == 1:
            return paths[0]
        if self.params.legacy_path_choice:
            return paths[int(self.rng.integers(n - 1))]
        return paths[int(self.rng.integers(n))]

    def _follow_road(
        self, predicted: MultivariateGaussian, current: PathEdge
    ) -> tuple[MultivariateGaussian, Path]:
        """Sample a path from ``current`` covering the predicted distance, or leave the road."""
        distance = float(predicted.mean[0])
        paths = enumerate_paths(self.network, current.segment, distance)
        if not paths:
            # the network can't carry us that far; continue off-road
            self.hooks.offroad_fallback(
                vehicle_id=self.observation.vehicle_id,
                segment_id=current.segment.segment_id,
                projected_distance=distance,
            )
            return road_to_ground(predicted, PathEdge(current.segment, 0.0)), NULL_PATH

        path = Path.from_segments(self._choose_path(paths).segments)
        if path.first_edge.segment != current.segment:
            raise RuntimeError(
                f"sampled path starts on {path.first_edge.segment.segment_id}, "
                f"expected {current.segment.segment_id}"
            )
        if not path.last_edge.contains(distance):
            raise RuntimeError(
                f"sampled path ends at {path.total_length_m}, "
                f"its last edge does not hold distance {distance}"
            )
        return predicted, path

    def update(self, previous: VehicleState) -> VehicleState:
        p = self.params
        # fixed nominal step; observation gaps do not stretch the path search
        predictor = self.predictor_factory(p, p.initial_obs_freq)
        path_state = previous.path_state
        current = path_state.edge
        if current != path_state.path.last_edge:
            raise RuntimeError("current edge is not the last edge of the particle's path")

        predicted = self._predict_noisy(predictor, previous.motion_state_param.prior)
        # this updater's road dynamics are forward-only
        if predicted.frame is Frame.ROAD and predicted.mean[0] < 0.0:
            raise RuntimeError(f"backward on-road motion predicted: {predicted.mean}")

        transition = previous.edge_transition_param.conditional.with_current_edge(current.segment)
        if current.is_null:
            transition = transition.with_motion_state(predicted.mean)
        # decides on/off road (and, from off-road, the entry edge) once per step
        sampled = transition.sample(self.rng)

        if sampled is None:
            if not current.is_null:
                # re-predict from the last ground-frame state; the road projection no longer applies
                anchor = MultivariateGaussian(
                    path_state.ground_state().vector, np.zeros((4, 4)), Frame.GROUND
                )
                predicted = self._predict_noisy(predictor, anchor)
            new_path = NULL_PATH
        elif current.is_null:
            predicted = ground_to_road(predicted, sampled)
            new_path = Path.from_segments([sampled])
        else:
            predicted, new_path = self._follow_road(predicted, current)

        new_path_state = PathState.from_belief(new_path, predicted)
        model_cov = (
            predictor.road_model_covariance()
            if new_path_state.is_on_road
            else predictor.ground_model_covariance()
        )
        # edge-relative so distance along the path doesn't accumulate step to step
        edge_belief = TruncatedRoadGaussian.from_state(
            new_path_state.edge_state, model_cov, p.max_speed_mps
        )
        obs_dist = predictor.observation_distribution(predicted, new_path_state.edge)
        path_belief = TruncatedRoadGaussian.from_state(
            new_path_state.motion_state, model_cov, p.max_speed_mps
        )

        prev_edge_param = previous.edge_transition_param
        parent = self.history.register(previous)
        updated = replace(
            previous,
            observation=self.observation,
            motion_state_param=BayesianParameter(obs_dist.mean, obs_dist, edge_belief),
            path_state_param=BayesianParameter(
                new_path_state, None, PathStateDistribution(new_path, path_belief)
            ),
            edge_transition_param=BayesianParameter(
                prev_edge_param.value,
                EdgeTransitionDistribution.for_path_state(
                    self.network,
                    new_path_state,
                    transition.probs,
                    transition.position_covariance,
                ),
                prev_edge_param.prior,
            ),
            parent=parent.index,
            index=None,
        )
        return self.history.register(updated)
