from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

from mapmatch.domain.entities.geography import RoadSegment

if TYPE_CHECKING:
    from mapmatch.domain.distributions.gaussian import Frame, MultivariateGaussian
    from mapmatch.domain.paths.path import PathEdge


# ------------- Collaborators of the particle engine --------------------
@runtime_checkable
class RoadNetwork(Protocol):
    """
    Responsibilities:
      • Find segments near a ground-frame position belief.
      • Answer forward adjacency between segments (legal travel only).
    Units: meters for coordinates and lengths.
    """

    def nearby_segments(self, mean: np.ndarray, covariance: np.ndarray) -> list[RoadSegment]: ...
    def outgoing_adjacent(self, segment: RoadSegment) -> list[RoadSegment]: ...


@runtime_checkable
class MotionPredictor(Protocol):
    """
    Responsibilities:
      • Project a motion-state belief one step forward (road or ground frame).
      • Inject sampled process noise into a predicted mean.
      • Map a motion-state belief to the distribution of the next observation.
    """

    def predict(self, prior: "MultivariateGaussian") -> "MultivariateGaussian": ...
    def inject_process_noise(
        self, mean: np.ndarray, frame: "Frame", rng: np.random.Generator
    ) -> np.ndarray: ...
    def observation_distribution(
        self, predicted: "MultivariateGaussian", edge: "PathEdge"
    ) -> "MultivariateGaussian": ...
    def road_model_covariance(self) -> np.ndarray: ...
    def ground_model_covariance(self) -> np.ndarray: ...
