from mapmatch.app.protocols import RoadNetwork
from mapmatch.domain.entities.geography import RoadSegment

# Longest travel distance a single path search may cover.
MAX_SEARCH_LENGTH_M = 1000.0


class GraphPath:
    """Mutable accumulator of segments used while searching."""

    def __init__(self, start: "RoadSegment | GraphPath"):
        if isinstance(start, GraphPath):
            self.segments, self.length_m = list(start.segments), start.length_m
        else:
            self.segments, self.length_m = [start], start.length_m

    def add(self, seg: RoadSegment) -> None:
        self.segments.append(seg)
        self.length_m += seg.length_m

    @property
    def last(self) -> RoadSegment:
        return self.segments[-1]

    def __repr__(self):
        ids = [s.segment_id for s in self.segments]
        return f"GraphPath({ids}, length_m={self.length_m:g})"


def enumerate_paths(
    network: RoadNetwork, start: RoadSegment, remaining_m: float
) -> list[GraphPath]:
    """
    All forward extensions of ``start`` whose cumulative length reaches
    ``remaining_m``. Branches that dead-end first are dropped, so the result
    is empty when the distance cannot be covered.
    """
    if not remaining_m < MAX_SEARCH_LENGTH_M:
        raise ValueError(
            f"path search length {remaining_m} exceeds limit {MAX_SEARCH_LENGTH_M}"
        )
    return _extend(network, GraphPath(start), remaining_m)


def _extend(network: RoadNetwork, path: GraphPath, remaining_m: float) -> list[GraphPath]:
    last = path.last
    if last.length_m >= remaining_m or remaining_m <= 0.0:
        return [path]
    out: list[GraphPath] = []
    for seg in network.outgoing_adjacent(last):
        branch = GraphPath(path)
        branch.add(seg)
        out.extend(_extend(network, branch, remaining_m - last.length_m))
    return out
