from dataclasses import dataclass

from mapmatch.domain.distributions.gaussian import Frame, MultivariateGaussian
from mapmatch.domain.paths.path import Path
from mapmatch.domain.paths.path_state import PathState


@dataclass(frozen=True, eq=False)
class PathStateDistribution:
    """Belief over path-relative motion, conditioned on a fixed path."""

    path: Path
    motion_distribution: MultivariateGaussian

    def __post_init__(self):
        want = Frame.GROUND if self.path.is_null else Frame.ROAD
        if self.motion_distribution.frame is not want:
            raise ValueError(
                f"{want.value} motion belief required, got {self.motion_distribution.frame.value}"
            )

    @property
    def mean(self) -> PathState:
        return PathState.from_belief(self.path, self.motion_distribution)

    def log_evaluate(self, path_state: PathState) -> float:
        if path_state.path != self.path:
            return float("-inf")
        return self.motion_distribution.log_evaluate(path_state.motion_state.vector)
