from dataclasses import dataclass, replace
from enum import Enum

import numpy as np
from scipy.stats import multivariate_normal

from mapmatch.domain.paths.motion_state import GroundState, MotionState, RoadState


class Frame(Enum):
    GROUND = "ground"  # [x, vx, y, vy]
    ROAD = "road"  # [distance, velocity]
    OBSERVATION = "observation"  # [x, y]


_DIMS = {Frame.GROUND: 4, Frame.ROAD: 2, Frame.OBSERVATION: 2}

# position rows of a ground-frame vector
GROUND_POSITION = [0, 2]


def frozen_array(a, shape=None) -> np.ndarray:
    out = np.array(a, dtype=np.float64)
    if shape is not None:
        out = out.reshape(shape)
    out.setflags(write=False)
    return out


@dataclass(frozen=True, eq=False)
class MultivariateGaussian:
    mean: np.ndarray
    covariance: np.ndarray
    frame: Frame

    def __post_init__(self):
        n = _DIMS[self.frame]
        object.__setattr__(self, "mean", frozen_array(self.mean, (n,)))
        object.__setattr__(self, "covariance", frozen_array(self.covariance, (n, n)))

    @property
    def dim(self) -> int:
        return _DIMS[self.frame]

    def log_evaluate(self, x) -> float:
        return float(
            multivariate_normal.logpdf(
                np.asarray(x, dtype=np.float64), self.mean, self.covariance, allow_singular=True
            )
        )

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        return rng.multivariate_normal(self.mean, self.covariance)

    def with_mean(self, mean) -> "MultivariateGaussian":
        return replace(self, mean=mean)

    def state(self) -> MotionState:
        if self.frame is Frame.GROUND:
            return GroundState.from_vector(self.mean)
        if self.frame is Frame.ROAD:
            return RoadState.from_vector(self.mean)
        raise TypeError(f"{self.frame} beliefs carry no motion state")

    # ground-frame helpers
    @property
    def position_mean(self) -> np.ndarray:
        self._require(Frame.GROUND)
        return self.mean[GROUND_POSITION]

    @property
    def position_covariance(self) -> np.ndarray:
        self._require(Frame.GROUND)
        return self.covariance[np.ix_(GROUND_POSITION, GROUND_POSITION)]

    def _require(self, frame: Frame) -> None:
        if self.frame is not frame:
            raise TypeError(f"expected a {frame.value} belief, got {self.frame.value}")


@dataclass(frozen=True, eq=False)
class TruncatedRoadGaussian(MultivariateGaussian):
    """
    Gaussian whose mean is clamped to the feasible motion domain: on road,
    non-negative distance and velocity in [0, max_speed]; off road, each
    velocity component within +-max_speed.
    """

    max_speed_mps: float = np.inf

    def __post_init__(self):
        super().__post_init__()
        m = self.mean.copy()
        if self.frame is Frame.ROAD:
            m[0] = max(m[0], 0.0)
            m[1] = min(max(m[1], 0.0), self.max_speed_mps)
        elif self.frame is Frame.GROUND:
            m[[1, 3]] = np.clip(m[[1, 3]], -self.max_speed_mps, self.max_speed_mps)
        else:
            raise TypeError("observation beliefs cannot be truncated")
        object.__setattr__(self, "mean", frozen_array(m))

    @classmethod
    def from_state(
        cls, state: MotionState, covariance, max_speed_mps: float = np.inf
    ) -> "TruncatedRoadGaussian":
        frame = Frame.GROUND if isinstance(state, GroundState) else Frame.ROAD
        return cls(state.vector, covariance, frame, max_speed_mps)
