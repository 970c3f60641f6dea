from dataclasses import dataclass
from datetime import datetime

import numpy as np

from mapmatch.domain.entities.geography import Point


@dataclass(frozen=True)
class GpsObservation:
    vehicle_id: str
    timestamp: datetime
    point: Point  # already projected to the network CRS

    @property
    def vector(self) -> np.ndarray:
        return np.array([self.point.x, self.point.y], dtype=np.float64)
