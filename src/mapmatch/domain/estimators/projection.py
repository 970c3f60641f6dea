"""Conversions between path-relative road beliefs and ground-frame beliefs.

Road vectors are ``[distance, velocity]`` measured along a path; ground
vectors are ``[x, vx, y, vy]``. A road belief on a ``PathEdge`` is located by
subtracting the edge's offset from the path distance.
"""

import numpy as np

from mapmatch.domain.distributions.gaussian import Frame, MultivariateGaussian
from mapmatch.domain.entities.geography import RoadSegment
from mapmatch.domain.paths.motion_state import GroundState, RoadState
from mapmatch.domain.paths.path import PathEdge


def _projection(seg: RoadSegment) -> np.ndarray:
    # d(ground)/d(edge-relative road state)
    tx, ty = seg.tangent
    return np.array([[tx, 0.0], [0.0, tx], [ty, 0.0], [0.0, ty]])


def _origin(seg: RoadSegment) -> np.ndarray:
    return np.array([seg.start.x, 0.0, seg.start.y, 0.0])


def _on_edge(edge: PathEdge) -> RoadSegment:
    if edge.is_null:
        raise ValueError("cannot project onto the null edge")
    return edge.segment


def road_to_ground(belief: MultivariateGaussian, edge: PathEdge) -> MultivariateGaussian:
    if belief.frame is not Frame.ROAD:
        raise TypeError(f"expected a road belief, got {belief.frame.value}")
    seg = _on_edge(edge)
    P = _projection(seg)
    local = belief.mean - np.array([edge.offset, 0.0])
    return MultivariateGaussian(
        P @ local + _origin(seg), P @ belief.covariance @ P.T, Frame.GROUND
    )


def ground_to_road(
    belief: MultivariateGaussian, segment: RoadSegment, offset: float = 0.0
) -> MultivariateGaussian:
    """Project onto ``segment`` placed at ``offset`` within its path; position clamps to the segment."""
    if belief.frame is not Frame.GROUND:
        raise TypeError(f"expected a ground belief, got {belief.frame.value}")
    state = ground_state_to_road(GroundState.from_vector(belief.mean), segment, offset)
    P = _projection(segment)
    P_inv = P.T / float(np.sum(np.square(segment.tangent)))
    return MultivariateGaussian(state.vector, P_inv @ belief.covariance @ P_inv.T, Frame.ROAD)


def road_state_to_ground(state: RoadState, edge: PathEdge) -> GroundState:
    seg = _on_edge(edge)
    tx, ty = seg.tangent
    p = seg.point_at(state.distance - edge.offset)
    return GroundState(p.x, state.velocity * tx, p.y, state.velocity * ty)


def ground_state_to_road(state: GroundState, segment: RoadSegment, offset: float = 0.0) -> RoadState:
    tx, ty = segment.tangent
    u = segment.project(state.position)
    v = (state.vx * tx + state.vy * ty) / (tx * tx + ty * ty)
    return RoadState(offset + u, v)
