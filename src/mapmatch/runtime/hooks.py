# runtime/hooks.py
from typing import Protocol


class FilterHooks(Protocol):
    def initial_particles(self, *, vehicle_id, count, nearby, null_log_weight): ...
    def offroad_fallback(self, *, vehicle_id, segment_id, projected_distance): ...
    def step(self, *, vehicle_id, particles, distinct, on_road, ms): ...
    def record(self, rec): ...
    def error(self, *, vehicle_id, reason: str, **kw): ...


class NoopHooks:
    def initial_particles(self, **_):
        pass

    def offroad_fallback(self, **_):
        pass

    def step(self, **_):
        pass

    def record(self, *_):
        pass

    def error(self, **_):
        pass
