import math
from dataclasses import dataclass, field


# Core geometry types used by the road network and projections
@dataclass(frozen=True)
class Point:
    x: float  # meters in projected CRS
    y: float


@dataclass(frozen=True)
class RoadSegment:
    """
    One directed piece of road geometry. Identity is the segment id; the
    geometry is owned by the road network and never copied into paths.
    """

    segment_id: int
    start: Point = field(compare=False)
    end: Point = field(compare=False)
    length_m: float = field(default=0.0, compare=False)  # 0 => chord length

    def __post_init__(self):
        if self.start == self.end:
            raise ValueError(f"segment {self.segment_id} has zero-length geometry")
        if not self.length_m:
            object.__setattr__(self, "length_m", self.chord_m)
        if self.length_m <= 0:
            raise ValueError(f"segment {self.segment_id} length must be > 0")

    @property
    def chord_m(self) -> float:
        return math.hypot(self.end.x - self.start.x, self.end.y - self.start.y)

    @property
    def tangent(self) -> tuple[float, float]:
        """d(position)/d(arc length); unit-length when length_m equals the chord."""
        return (
            (self.end.x - self.start.x) / self.length_m,
            (self.end.y - self.start.y) / self.length_m,
        )

    def point_at(self, u: float) -> Point:
        tx, ty = self.tangent
        return Point(self.start.x + u * tx, self.start.y + u * ty)

    def project(self, p: Point) -> float:
        """Arc length of the closest point on the segment, clamped to [0, length_m]."""
        tx, ty = self.tangent
        u = ((p.x - self.start.x) * tx + (p.y - self.start.y) * ty) / (tx * tx + ty * ty)
        return min(max(u, 0.0), self.length_m)
