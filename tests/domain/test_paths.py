# tests/domain/test_paths.py
import pytest

from mapmatch.domain.entities.geography import Point, RoadSegment
from mapmatch.domain.paths.motion_state import GroundState, RoadState
from mapmatch.domain.paths.path import NULL_EDGE, NULL_PATH, Path, PathEdge
from mapmatch.domain.paths.path_state import PathState

A = RoadSegment(1, Point(0.0, 0.0), Point(30.0, 0.0))
B = RoadSegment(2, Point(30.0, 0.0), Point(30.0, 40.0))


def test_segment_defaults_to_chord_length_and_compares_by_id():
    assert A.length_m == pytest.approx(30.0)
    assert A == RoadSegment(1, Point(5.0, 5.0), Point(9.0, 9.0))
    with pytest.raises(ValueError):
        RoadSegment(3, Point(1.0, 1.0), Point(1.0, 1.0))


def test_segment_projection_clamps():
    assert A.project(Point(12.0, 7.0)) == pytest.approx(12.0)
    assert A.project(Point(-10.0, 0.0)) == 0.0
    assert A.project(Point(99.0, 0.0)) == pytest.approx(30.0)
    assert A.point_at(12.0) == Point(12.0, 0.0)


def test_path_edge_equality_uses_segment_and_offset_sign():
    assert PathEdge(A, 0.0) == PathEdge(A, 0.0)
    assert PathEdge(A, 10.0) == PathEdge(A, 55.0)
    assert PathEdge(A, 0.0) != PathEdge(A, 10.0)
    assert PathEdge(A, 10.0) != PathEdge(B, 10.0)
    assert len({PathEdge(A, 3.0), PathEdge(A, 4.0)}) == 1
    assert NULL_EDGE.is_null and NULL_EDGE == PathEdge(None)


def test_path_from_segments_accumulates_offsets():
    p = Path.from_segments([A, B])
    assert [e.offset for e in p.edges] == [0.0, 30.0]
    assert p.total_length_m == pytest.approx(70.0)
    assert p.first_edge.segment == A and p.last_edge.segment == B
    assert p.last_edge.contains(50.0) and not p.last_edge.contains(29.0)


def test_path_rejects_gaps():
    with pytest.raises(ValueError):
        Path((PathEdge(A, 0.0), PathEdge(B, 45.0)))


def test_edge_at():
    p = Path.from_segments([A, B])
    assert p.edge_at(10.0).segment == A
    assert p.edge_at(31.0).segment == B
    assert p.edge_at(-3.0).segment == A
    assert NULL_PATH.edge_at(5.0) is NULL_EDGE


def test_path_state_frames_must_match_path():
    with pytest.raises(ValueError):
        PathState(NULL_PATH, RoadState(1.0, 1.0))
    with pytest.raises(ValueError):
        PathState(Path.from_segments([A]), GroundState(0.0, 0.0, 0.0, 0.0))


def test_path_state_edge_relative_and_ground_views():
    ps = PathState(Path.from_segments([A, B]), RoadState(40.0, 2.0))
    assert ps.is_on_road
    assert ps.edge.segment == B
    assert ps.edge_state == RoadState(10.0, 2.0)
    g = ps.ground_state()
    assert (g.x, g.y) == pytest.approx((30.0, 10.0))
    assert (g.vx, g.vy) == pytest.approx((0.0, 2.0))


def test_off_road_path_state():
    gs = GroundState(1.0, 2.0, 3.0, 4.0)
    ps = PathState(NULL_PATH, gs)
    assert not ps.is_on_road
    assert ps.edge is NULL_EDGE
    assert ps.edge_state is gs and ps.ground_state() is gs
    assert gs.vector.shape == (4,)
