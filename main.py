# main.py
import argparse
import json
from datetime import datetime

from mapmatch.app.build import build
from mapmatch.domain.entities.geography import Point
from mapmatch.domain.entities.observation import GpsObservation


def read_observations(path: str):
    # one JSON object per line: {"vehicle_id", "time" (ISO-8601), "x", "y"}
    with open(path) as f:
        for line in f:
            if not line.strip():
                continue
            row = json.loads(line)
            yield GpsObservation(
                vehicle_id=str(row["vehicle_id"]),
                timestamp=datetime.fromisoformat(row["time"]),
                point=Point(float(row["x"]), float(row["y"])),
            )


def run(config_path: str, observations_path: str) -> int:
    with open(config_path) as f:
        app = build(json.load(f))
    n = 0
    for obs in read_observations(observations_path):
        app.service.process_record(obs)  # records are written by the recorder sinks
        n += 1
    return n


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Replay GPS observations through the map-matching filter")
    ap.add_argument("config", help="TrackingModel JSON (needs a graph reference)")
    ap.add_argument("observations", help="JSONL observations, in time order per vehicle")
    args = ap.parse_args()
    run(args.config, args.observations)
