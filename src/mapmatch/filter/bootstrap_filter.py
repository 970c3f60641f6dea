import time

import numpy as np

from mapmatch.domain.distributions.counted import CountedDistribution, LogWeightedSet
from mapmatch.domain.entities.observation import GpsObservation
from mapmatch.domain.state import VehicleState
from mapmatch.runtime.hooks import FilterHooks, NoopHooks
from mapmatch.updater.bootstrap import BootstrapUpdater


class BootstrapFilter:
    """
    Sequential importance resampling around a ``BootstrapUpdater``: every
    particle is advanced, weighted by the new observation, and the population
    is redrawn with replacement.
    """

    def __init__(
        self,
        updater: BootstrapUpdater,
        num_particles: int,
        rng: np.random.Generator,
        hooks: FilterHooks | None = None,
    ):
        self.updater, self.num_particles, self.rng = updater, num_particles, rng
        self.hooks = hooks or NoopHooks()

    def create_initial_particles(self) -> CountedDistribution[VehicleState]:
        return self.updater.create_initial_particles(self.num_particles)

    def update(
        self, population: CountedDistribution[VehicleState], observation: GpsObservation
    ) -> CountedDistribution[VehicleState]:
        t0 = time.perf_counter()
        self.updater.observation = observation
        weighted: LogWeightedSet[VehicleState] = LogWeightedSet()
        for particle in population:
            nxt = self.updater.update(particle)
            weighted.add(nxt, self.updater.compute_log_likelihood(nxt, observation))

        out = weighted.resample(self.rng, self.num_particles)

        self.hooks.step(
            vehicle_id=observation.vehicle_id,
            particles=out.total_count,
            distinct=len(out.support()),
            on_road=sum(n for s, n in out.items() if s.is_on_road),
            ms=(time.perf_counter() - t0) * 1000,
        )
        return out
