from dataclasses import dataclass

from mapmatch.domain.distributions.gaussian import Frame, MultivariateGaussian
from mapmatch.domain.estimators.projection import road_state_to_ground
from mapmatch.domain.paths.motion_state import GroundState, MotionState, RoadState
from mapmatch.domain.paths.path import NULL_EDGE, Path, PathEdge


@dataclass(frozen=True)
class PathState:
    """A path plus the vehicle's motion relative to it."""

    path: Path
    motion_state: MotionState

    def __post_init__(self):
        if self.path.is_null and not isinstance(self.motion_state, GroundState):
            raise ValueError("off-road path states need a ground-frame motion state")
        if not self.path.is_null and not isinstance(self.motion_state, RoadState):
            raise ValueError("on-road path states need a path-relative motion state")

    @classmethod
    def from_belief(cls, path: Path, belief: MultivariateGaussian) -> "PathState":
        want = Frame.GROUND if path.is_null else Frame.ROAD
        if belief.frame is not want:
            raise ValueError(f"{want.value} belief required for this path, got {belief.frame.value}")
        return cls(path, belief.state())

    @property
    def is_on_road(self) -> bool:
        return not self.path.is_null

    @property
    def edge(self) -> PathEdge:
        if self.path.is_null:
            return NULL_EDGE
        return self.path.edge_at(self.motion_state.distance)

    @property
    def edge_state(self) -> MotionState:
        """Motion relative to the current edge instead of the path start."""
        if self.path.is_null:
            return self.motion_state
        return RoadState(self.motion_state.distance - self.edge.offset, self.motion_state.velocity)

    def ground_state(self) -> GroundState:
        if self.path.is_null:
            return self.motion_state
        return road_state_to_ground(self.motion_state, self.edge)
