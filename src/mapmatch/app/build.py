# mapmatch/app/build.py
from collections.abc import Mapping
from dataclasses import dataclass

import networkx as nx

from mapmatch.app.protocols import RoadNetwork
from mapmatch.config.models import GraphByPath, TrackingModel
from mapmatch.domain.graph.network_graph import NetworkRoadGraph
from mapmatch.io.filter_logging import FilterLogging
from mapmatch.io.recorder import JsonlSink, Recorder, Sink
from mapmatch.runtime.hooks import NoopHooks
from mapmatch.runtime.resources import load_graph_from_path
from mapmatch.runtime.rng import RNGRegistry
from mapmatch.services.inference import InferenceService


@dataclass
class App:
    model: TrackingModel
    rng: RNGRegistry
    network: RoadNetwork
    recorder: Recorder
    service: InferenceService


def resolve_network(ref: GraphByPath | None, model: TrackingModel) -> NetworkRoadGraph:
    if ref is None:
        raise ValueError("No road network provided: pass network= or set graph in the config")
    g = load_graph_from_path(ref.file, ref.fmt)
    if g is None:
        if ref.must_exist:
            raise FileNotFoundError(ref.file)
        g = nx.DiGraph()
    return NetworkRoadGraph.from_networkx(
        g,
        search_sigmas=model.params.search_sigmas,
        min_search_radius_m=model.params.min_search_radius_m,
    )


def build(
    cfg: TrackingModel | Mapping,
    *,
    network: RoadNetwork | None = None,
    sinks: tuple[Sink, ...] = (),
    use_logging: bool = True,
) -> App:
    # 0) Validate config
    model = cfg if isinstance(cfg, TrackingModel) else TrackingModel.model_validate(cfg)

    # 1) RNG & road network
    rng_registry = RNGRegistry(model.seed, scenario=model.name)
    network = network if network is not None else resolve_network(model.graph, model)

    # 2) Recorder + hooks
    recorder = Recorder(*(sinks or (JsonlSink(),)))
    hooks = (
        FilterLogging(
            run_id=model.run_id,
            recorder=recorder,
            level=model.log.level,
            debug=model.log.debug,
            sample_every=model.log.sample_every,
        )
        if use_logging
        else NoopHooks()
    )

    # 3) Service
    service = InferenceService(
        network=network, params=model.params, rng_registry=rng_registry, hooks=hooks
    )
    return App(model, rng_registry, network, recorder, service)
