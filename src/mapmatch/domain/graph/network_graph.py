import math
from collections.abc import Iterable, Sequence

import networkx as nx
import numpy as np

from mapmatch.app.protocols import RoadNetwork
from mapmatch.domain.entities.geography import Point, RoadSegment


class NetworkRoadGraph(RoadNetwork):
    """
    Directed road graph over networkx. Nodes carry ``pos`` (x, y) and every
    edge carries its ``segment``. Segment ids are unique across the graph.
    """

    def __init__(
        self,
        graph: nx.DiGraph,
        *,
        search_sigmas: float = 3.0,
        min_search_radius_m: float = 0.0,
    ):
        self.G = graph
        self.search_sigmas, self.min_search_radius_m = search_sigmas, min_search_radius_m
        self._by_id: dict[int, tuple] = {}
        for u, v, seg in self.G.edges(data="segment"):
            if seg is None:
                raise ValueError(f"edge ({u}, {v}) has no 'segment' attribute")
            if seg.segment_id in self._by_id:
                raise ValueError(f"duplicate segment id {seg.segment_id}")
            self._by_id[seg.segment_id] = (u, v)

        segs = self.segments
        self._ids = [s.segment_id for s in segs]
        self._starts = np.array([(s.start.x, s.start.y) for s in segs], dtype=np.float64)
        self._ends = np.array([(s.end.x, s.end.y) for s in segs], dtype=np.float64)
        self._segs = segs

    # ---------------- Builders -----------------------

    @classmethod
    def from_edges(
        cls,
        node_positions: Sequence[tuple[float, float]],
        edges: Iterable[tuple[int, int]],
        lengths: Sequence[float] | None = None,
        **kw,
    ) -> "NetworkRoadGraph":
        """Edge ids follow the order of ``edges``; lengths default to the chord."""
        G = nx.DiGraph()
        for n, (x, y) in enumerate(node_positions):
            G.add_node(n, pos=(float(x), float(y)))
        for edge_id, (u, v) in enumerate(edges):
            length = lengths[edge_id] if lengths is not None else 0.0
            G.add_edge(u, v, segment=_make_segment(G, u, v, edge_id, length))
        return cls(G, **kw)

    @classmethod
    def from_networkx(cls, graph: nx.DiGraph, **kw) -> "NetworkRoadGraph":
        """Wrap a preprocessed graph (node ``pos``, optional ``edge_id``/``length_m``)."""
        G = nx.DiGraph()
        G.add_nodes_from(graph.nodes(data=True))
        for edge_id, (u, v, data) in enumerate(graph.edges(data=True)):
            seg = _make_segment(
                graph, u, v, data.get("edge_id", edge_id), data.get("length_m", 0.0)
            )
            G.add_edge(u, v, **{**data, "segment": seg})
        return cls(G, **kw)

    # ---------------- Queries -----------------------

    @property
    def segments(self) -> list[RoadSegment]:
        return sorted(
            (seg for _, _, seg in self.G.edges(data="segment")), key=lambda s: s.segment_id
        )

    def segment(self, segment_id: int) -> RoadSegment:
        u, v = self._by_id[segment_id]
        return self.G.edges[u, v]["segment"]

    def outgoing_adjacent(self, segment: RoadSegment) -> list[RoadSegment]:
        _, v = self._by_id[segment.segment_id]
        return sorted(
            (seg for _, _, seg in self.G.out_edges(v, data="segment")),
            key=lambda s: s.segment_id,
        )

    def search_radius_m(self, covariance: np.ndarray) -> float:
        cov = np.asarray(covariance, dtype=np.float64)
        sigma = math.sqrt(max(float(np.max(np.linalg.eigvalsh(cov))), 0.0))
        return max(self.min_search_radius_m, self.search_sigmas * sigma)

    def nearby_segments(self, mean: np.ndarray, covariance: np.ndarray) -> list[RoadSegment]:
        if not self._segs:
            return []
        p = np.asarray(mean, dtype=np.float64)[:2]
        radius = self.search_radius_m(covariance)
        # point-to-chord distance for every segment at once
        d = self._ends - self._starts
        t = np.einsum("ij,ij->i", p - self._starts, d) / np.einsum("ij,ij->i", d, d)
        closest = self._starts + np.clip(t, 0.0, 1.0)[:, None] * d
        dist = np.hypot(*(closest - p).T)
        return [self._segs[i] for i in np.flatnonzero(dist <= radius)]


def _make_segment(G: nx.DiGraph, u, v, edge_id: int, length_m: float) -> RoadSegment:
    try:
        pu, pv = G.nodes[u]["pos"], G.nodes[v]["pos"]
    except KeyError:
        raise ValueError(f"nodes of edge ({u}, {v}) need a 'pos' attribute")
    return RoadSegment(
        segment_id=int(edge_id),
        start=Point(float(pu[0]), float(pu[1])),
        end=Point(float(pv[0]), float(pv[1])),
        length_m=float(length_m or 0.0),
    )
