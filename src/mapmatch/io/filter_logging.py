# io/filter_logging.py
import json
import logging
import sys
from dataclasses import asdict, is_dataclass

from mapmatch.io.recorder import Recorder
from mapmatch.runtime.hooks import NoopHooks


def _default_json_logger(name="mapmatch", level="INFO"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(sys.stdout)

        class _JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                payload = {
                    "level": record.levelname,
                    "msg": record.getMessage(),
                    "logger": record.name,
                }
                extra = getattr(record, "extra", None)
                if isinstance(extra, dict):
                    payload.update(extra)
                return json.dumps(payload, default=str)

        h.setFormatter(_JsonFormatter())
        logger.addHandler(h)
    logger.setLevel(level)
    return logger


class FilterLogging(NoopHooks):
    """
    Structured logs for the filter: population creation and per-step
    summaries at INFO, off-road fallbacks at DEBUG (sampled), failures at ERROR.
    Inference records also go to the recorder, if one is attached.
    """

    def __init__(
        self,
        run_id: str = "local",
        level: str = "INFO",
        debug: bool = False,
        sample_every: int = 1000,
        logger: logging.Logger | None = None,
        recorder: Recorder | None = None,
    ):
        self.run_id, self.debug, self.sample_every = run_id, debug, max(1, sample_every)
        self.recorder = recorder
        self.log = logger or _default_json_logger(level=level)
        self._fallbacks = 0

    def _emit(self, level: str, msg: str, **extra):
        self.log.log(
            getattr(logging, level), msg, extra={"extra": {"run_id": self.run_id, **extra}}
        )

    # --------------- filter lifecycle -----------------------------

    def initial_particles(self, *, vehicle_id, count, nearby, null_log_weight):
        self._emit(
            "INFO",
            "initial_particles",
            vehicle_id=vehicle_id,
            count=count,
            nearby=nearby,
            null_log_weight=null_log_weight,
        )

    def offroad_fallback(self, *, vehicle_id, segment_id, projected_distance):
        self._fallbacks += 1
        if self.debug and (self._fallbacks % self.sample_every) == 0:
            self._emit(
                "DEBUG",
                "offroad_fallback",
                vehicle_id=vehicle_id,
                segment_id=segment_id,
                projected_distance=projected_distance,
                fallbacks=self._fallbacks,
            )

    def step(self, *, vehicle_id, particles, distinct, on_road, ms):
        self._emit(
            "INFO",
            "step",
            vehicle_id=vehicle_id,
            particles=particles,
            distinct=distinct,
            on_road=on_road,
            ms=round(ms, 3),
        )

    def error(self, *, vehicle_id, reason: str, **kw):
        self._emit("ERROR", "filter_error", vehicle_id=vehicle_id, reason=reason, **kw)

    # ------------- Inference records --------------------------

    def record(self, rec):
        if self.debug:
            self._emit("DEBUG", "record", **(asdict(rec) if is_dataclass(rec) else {"rec": rec}))
        if self.recorder:
            self.recorder.emit(rec)
