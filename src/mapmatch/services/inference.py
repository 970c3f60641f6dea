"""Per-vehicle inference instances and the service that routes observations to them."""

import threading
from collections import defaultdict
from dataclasses import dataclass

import numpy as np

from mapmatch.app.protocols import RoadNetwork
from mapmatch.config.models import InitialParametersModel
from mapmatch.domain.distributions.counted import CountedDistribution
from mapmatch.domain.entities.observation import GpsObservation
from mapmatch.domain.state import ParticleHistory, VehicleState
from mapmatch.filter.bootstrap_filter import BootstrapFilter
from mapmatch.runtime.hooks import FilterHooks, NoopHooks
from mapmatch.runtime.rng import RNGRegistry
from mapmatch.updater.bootstrap import BootstrapUpdater


@dataclass(frozen=True)
class InferenceResultRecord:
    vehicle_id: str
    time: str  # ISO-8601
    observed_x: float
    observed_y: float
    inferred_x: float
    inferred_y: float
    on_road: bool
    segment_id: int | None
    particles: int
    records_processed: int

    @classmethod
    def create(cls, obs: GpsObservation, instance: "InferenceInstance") -> "InferenceResultRecord":
        best = instance.best_state()
        x, y = (float(c) for c in best.motion_state_param.value)
        seg = best.edge.segment
        return cls(
            vehicle_id=obs.vehicle_id,
            time=obs.timestamp.isoformat(),
            observed_x=obs.point.x,
            observed_y=obs.point.y,
            inferred_x=x,
            inferred_y=y,
            on_road=best.is_on_road,
            segment_id=None if seg is None else seg.segment_id,
            particles=instance.population.total_count,
            records_processed=instance.records_processed,
        )


class InferenceInstance:
    """Filter state for one vehicle. Updates for the same vehicle are serialised."""

    def __init__(
        self,
        vehicle_id: str,
        *,
        network: RoadNetwork,
        params: InitialParametersModel,
        rng: np.random.Generator,
        hooks: FilterHooks | None = None,
    ):
        self.vehicle_id = vehicle_id
        self.network, self.params, self.rng = network, params, rng
        self.hooks = hooks or NoopHooks()
        self.history = ParticleHistory()
        self.filter: BootstrapFilter | None = None
        self.population: CountedDistribution[VehicleState] | None = None
        self.records_processed = 0
        self._lock = threading.Lock()

    def update(self, obs: GpsObservation) -> CountedDistribution[VehicleState]:
        if obs.vehicle_id != self.vehicle_id:
            raise ValueError(f"observation for {obs.vehicle_id!r} sent to {self.vehicle_id!r}")
        with self._lock:
            if self.filter is None:
                updater = BootstrapUpdater(
                    obs, self.network, self.params, self.rng, history=self.history, hooks=self.hooks
                )
                pf = BootstrapFilter(updater, self.params.num_particles, self.rng, hooks=self.hooks)
                # a rejected first fix leaves the instance waiting for the next one
                self.population = pf.create_initial_particles()
                self.filter = pf
            else:
                self.population = self.filter.update(self.population, obs)
            self.records_processed += 1
            return self.population

    def best_state(self) -> VehicleState:
        if self.population is None:
            raise RuntimeError(f"no observations processed for {self.vehicle_id!r}")
        return self.population.mode()


class InferenceService:
    """
    Routes observations to per-vehicle instances and keeps the trace of
    inference results for each vehicle.
    """

    def __init__(
        self,
        *,
        network: RoadNetwork,
        params: InitialParametersModel,
        rng_registry: RNGRegistry,
        hooks: FilterHooks | None = None,
    ):
        self.network, self.params, self.rng_registry = network, params, rng_registry
        self.hooks = hooks or NoopHooks()
        self._instances: dict[str, InferenceInstance] = {}
        self._traces: dict[str, list[InferenceResultRecord]] = defaultdict(list)
        self._lock = threading.Lock()

    def get_instance(self, vehicle_id: str) -> InferenceInstance:
        with self._lock:
            inst = self._instances.get(vehicle_id)
            if inst is None:
                inst = InferenceInstance(
                    vehicle_id,
                    network=self.network,
                    params=self.params,
                    rng=self.rng_registry.vehicle(vehicle_id),
                    hooks=self.hooks,
                )
                self._instances[vehicle_id] = inst
            return inst

    def process_record(self, obs: GpsObservation) -> InferenceResultRecord:
        inst = self.get_instance(obs.vehicle_id)
        try:
            inst.update(obs)
        except (RuntimeError, ValueError) as exc:
            self.hooks.error(vehicle_id=obs.vehicle_id, reason=type(exc).__name__, error=str(exc))
            raise
        rec = InferenceResultRecord.create(obs, inst)
        self._traces[obs.vehicle_id].append(rec)
        self.hooks.record(rec)
        return rec

    def add_simulation_records(
        self, name: str, results: list[InferenceResultRecord]
    ) -> InferenceInstance:
        """Register a precomputed trace under ``name``; its instance holds no particles."""
        with self._lock:
            self._traces[name].extend(results)
            inst = InferenceInstance(
                name,
                network=self.network,
                params=self.params,
                rng=self.rng_registry.vehicle(name),
                hooks=self.hooks,
            )
            inst.records_processed = len(results)
            self._instances[name] = inst
            return inst

    def trace_results(self, vehicle_id: str) -> list[InferenceResultRecord]:
        return list(self._traces.get(vehicle_id, ()))

    def instances(self) -> list[InferenceInstance]:
        return list(self._instances.values())

    def remove(self, vehicle_id: str) -> None:
        with self._lock:
            self._instances.pop(vehicle_id, None)
            self._traces.pop(vehicle_id, None)

    def clear(self) -> None:
        with self._lock:
            self._instances.clear()
            self._traces.clear()
