# tests/domain/test_network_graph.py
import networkx as nx
import numpy as np
import pytest

from mapmatch.app.protocols import RoadNetwork
from mapmatch.domain.graph.network_graph import NetworkRoadGraph


def test_builds_segments_in_edge_order(two_segment_network):
    assert isinstance(two_segment_network, RoadNetwork)
    assert [s.segment_id for s in two_segment_network.segments] == [0, 1]
    assert two_segment_network.segment(1).length_m == pytest.approx(40.0)


def test_outgoing_adjacency_is_sorted(fork_network):
    seg0 = fork_network.segment(0)
    assert [s.segment_id for s in fork_network.outgoing_adjacent(seg0)] == [1, 2]
    assert fork_network.outgoing_adjacent(fork_network.segment(2)) == []


def test_nearby_segments_respects_search_radius(fork_network):
    cov = np.diag([25.0, 4.0])  # 3 sigma along the worst axis => 15 m
    assert fork_network.search_radius_m(cov) == pytest.approx(15.0)
    near = fork_network.nearby_segments(np.array([50.0, 10.0]), cov)
    assert [s.segment_id for s in near] == [1]
    near = fork_network.nearby_segments(np.array([30.0, 5.0]), cov)
    assert [s.segment_id for s in near] == [0, 1, 2]
    assert fork_network.nearby_segments(np.array([500.0, 500.0]), cov) == []


def test_minimum_search_radius():
    net = NetworkRoadGraph.from_edges([(0.0, 0.0), (10.0, 0.0)], [(0, 1)], min_search_radius_m=50.0)
    assert [s.segment_id for s in net.nearby_segments(np.array([5.0, 40.0]), np.eye(2))] == [0]


def test_from_networkx_reads_ids_and_lengths():
    G = nx.DiGraph()
    G.add_node("a", pos=(0.0, 0.0))
    G.add_node("b", pos=(100.0, 0.0))
    G.add_edge("a", "b", edge_id=42, length_m=120.0, name="Main St")
    net = NetworkRoadGraph.from_networkx(G)
    seg = net.segment(42)
    assert seg.length_m == pytest.approx(120.0)
    assert seg.chord_m == pytest.approx(100.0)
    assert net.G.edges["a", "b"]["name"] == "Main St"


def test_duplicate_segment_ids_rejected():
    G = nx.DiGraph()
    for n, x in enumerate([0.0, 10.0, 20.0]):
        G.add_node(n, pos=(x, 0.0))
    G.add_edge(0, 1, edge_id=1)
    G.add_edge(1, 2, edge_id=1)
    with pytest.raises(ValueError):
        NetworkRoadGraph.from_networkx(G)


def test_nodes_need_positions():
    G = nx.DiGraph()
    G.add_edge(0, 1)
    with pytest.raises(ValueError):
        NetworkRoadGraph.from_networkx(G)
