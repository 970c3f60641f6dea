import math
from collections.abc import Iterable
from dataclasses import dataclass

from mapmatch.domain.entities.geography import RoadSegment

ON_EDGE_TOL_M = 1e-6


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


@dataclass(frozen=True, eq=False)
class PathEdge:
    """A segment placed at a cumulative distance offset within a Path."""

    segment: RoadSegment | None  # None => the null (off-road) edge
    offset: float = 0.0

    def __eq__(self, other):
        if not isinstance(other, PathEdge):
            return NotImplemented
        return self.segment == other.segment and _sign(self.offset) == _sign(other.offset)

    def __hash__(self):
        return hash((self.segment, _sign(self.offset)))

    @property
    def is_null(self) -> bool:
        return self.segment is None

    @property
    def length_m(self) -> float:
        return 0.0 if self.segment is None else self.segment.length_m

    @property
    def end_offset(self) -> float:
        return self.offset + self.length_m

    def contains(self, distance: float) -> bool:
        if self.is_null:
            return False
        return self.offset - ON_EDGE_TOL_M <= distance <= self.end_offset + ON_EDGE_TOL_M


NULL_EDGE = PathEdge(None)


@dataclass(frozen=True)
class Path:
    edges: tuple[PathEdge, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "edges", tuple(self.edges))
        for prev, nxt in zip(self.edges, self.edges[1:]):
            if prev.is_null or nxt.is_null:
                raise ValueError("null edge inside a non-null path")
            if not math.isclose(prev.end_offset, nxt.offset, abs_tol=ON_EDGE_TOL_M):
                raise ValueError(
                    f"non-contiguous path: segment {nxt.segment.segment_id} at offset "
                    f"{nxt.offset} after {prev.segment.segment_id} ending at {prev.end_offset}"
                )

    @classmethod
    def from_segments(cls, segments: Iterable[RoadSegment]) -> "Path":
        edges, distance = [], 0.0
        for seg in segments:
            edges.append(PathEdge(seg, distance))
            distance += seg.length_m
        return cls(tuple(edges))

    @property
    def is_null(self) -> bool:
        return not self.edges

    @property
    def total_length_m(self) -> float:
        return sum(e.length_m for e in self.edges)

    @property
    def first_edge(self) -> PathEdge:
        return self.edges[0] if self.edges else NULL_EDGE

    @property
    def last_edge(self) -> PathEdge:
        return self.edges[-1] if self.edges else NULL_EDGE

    @property
    def segments(self) -> list[RoadSegment]:
        return [e.segment for e in self.edges]

    def edge_at(self, distance: float) -> PathEdge:
        """Last edge that starts at or before ``distance`` (first edge for negatives)."""
        if self.is_null:
            return NULL_EDGE
        for e in reversed(self.edges):
            if e.offset - ON_EDGE_TOL_M <= distance:
                return e
        return self.edges[0]


NULL_PATH = Path()
