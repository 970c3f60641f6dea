from dataclasses import dataclass

import numpy as np

from mapmatch.domain.entities.geography import Point


# Off-road: ground frame, [x, vx, y, vy]
@dataclass(frozen=True)
class GroundState:
    x: float
    vx: float
    y: float
    vy: float

    @property
    def vector(self) -> np.ndarray:
        return np.array([self.x, self.vx, self.y, self.vy], dtype=np.float64)

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    @classmethod
    def from_vector(cls, v) -> "GroundState":
        x, vx, y, vy = (float(c) for c in v)
        return cls(x, vx, y, vy)


# On-road: path-relative, [distance along path, velocity]
@dataclass(frozen=True)
class RoadState:
    distance: float
    velocity: float

    @property
    def vector(self) -> np.ndarray:
        return np.array([self.distance, self.velocity], dtype=np.float64)

    @classmethod
    def from_vector(cls, v) -> "RoadState":
        distance, velocity = (float(c) for c in v)
        return cls(distance, velocity)


MotionState = GroundState | RoadState
