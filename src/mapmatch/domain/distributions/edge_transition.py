import math
from dataclasses import dataclass, replace

import numpy as np

from mapmatch.app.protocols import RoadNetwork
from mapmatch.domain.distributions.gaussian import GROUND_POSITION, frozen_array
from mapmatch.domain.entities.geography import RoadSegment
from mapmatch.domain.paths.path_state import PathState

OFF, ON = 0, 1


def _probs(p) -> np.ndarray:
    p = np.asarray(p, dtype=np.float64).reshape(2)
    if np.any(p < 0) or not math.isclose(float(p.sum()), 1.0, rel_tol=1e-9):
        raise ValueError(f"transition probabilities must be a distribution, got {p}")
    return frozen_array(p)


@dataclass(frozen=True, eq=False)
class EdgeTransitionProbs:
    """On/off-road transition probabilities, each as [P(off), P(on)]."""

    edge_motion: np.ndarray  # given currently on an edge
    free_motion: np.ndarray  # given currently off-road

    def __post_init__(self):
        object.__setattr__(self, "edge_motion", _probs(self.edge_motion))
        object.__setattr__(self, "free_motion", _probs(self.free_motion))


@dataclass(frozen=True, eq=False)
class EdgeTransitionPrior:
    """Independent Dirichlet priors over the two transition vectors."""

    edge_motion_alpha: np.ndarray
    free_motion_alpha: np.ndarray

    def __post_init__(self):
        for name in ("edge_motion_alpha", "free_motion_alpha"):
            a = frozen_array(getattr(self, name), (2,))
            if np.any(a <= 0):
                raise ValueError(f"{name} must be positive, got {a}")
            object.__setattr__(self, name, a)

    def mean(self) -> EdgeTransitionProbs:
        return EdgeTransitionProbs(
            self.edge_motion_alpha / self.edge_motion_alpha.sum(),
            self.free_motion_alpha / self.free_motion_alpha.sum(),
        )


@dataclass(frozen=True, eq=False)
class EdgeTransitionDistribution:
    """
    Distribution over the next edge: the null edge (None) or a road segment.

    On an edge, candidates are the current segment and its outgoing
    neighbours. Off-road, candidates are the segments near ``motion_state``
    (a ground-frame mean), searched with ``position_covariance``.
    """

    network: RoadNetwork
    current_edge: RoadSegment | None
    probs: EdgeTransitionProbs
    position_covariance: np.ndarray
    motion_state: np.ndarray | None = None

    @classmethod
    def for_path_state(
        cls,
        network: RoadNetwork,
        path_state: PathState,
        probs: EdgeTransitionProbs,
        position_covariance,
    ) -> "EdgeTransitionDistribution":
        motion = None if path_state.is_on_road else path_state.motion_state.vector
        return cls(
            network, path_state.edge.segment, probs, frozen_array(position_covariance), motion
        )

    def with_current_edge(self, edge: RoadSegment | None) -> "EdgeTransitionDistribution":
        return replace(self, current_edge=edge)

    def with_motion_state(self, mean) -> "EdgeTransitionDistribution":
        return replace(self, motion_state=frozen_array(mean, (4,)))

    @property
    def on_road(self) -> bool:
        return self.current_edge is not None

    def _context(self) -> np.ndarray:
        return self.probs.edge_motion if self.on_road else self.probs.free_motion

    def candidates(self) -> list[RoadSegment]:
        if self.on_road:
            return [self.current_edge, *self.network.outgoing_adjacent(self.current_edge)]
        if self.motion_state is None:
            raise RuntimeError("off-road edge transitions need the current motion state")
        return self.network.nearby_segments(
            self.motion_state[GROUND_POSITION], self.position_covariance
        )

    def sample(self, rng: np.random.Generator) -> RoadSegment | None:
        cands = self.candidates()
        if rng.random() < self._context()[OFF] or not cands:
            return None
        return cands[int(rng.integers(len(cands)))]

    def log_evaluate(self, to: RoadSegment | None) -> float:
        p = self._context()
        with np.errstate(divide="ignore"):
            if to is None:
                return float(np.log(p[OFF]))
            if to not in self.candidates():
                return -np.inf
            return float(np.log(p[ON]))
