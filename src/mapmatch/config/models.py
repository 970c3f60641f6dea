import os
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PositivePair = tuple[Annotated[float, Field(gt=0)], Annotated[float, Field(gt=0)]]


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    sample_every: int = Field(default=1, ge=1)


# ----------------- FILTER PARAMETERS ---------------------


class InitialParametersModel(BaseModel):
    """
    Priors and tuning passed through to the motion predictor, the state
    factory and the edge-transition model. Units: meters, seconds.
    """

    model_config = ConfigDict(extra="forbid")

    obs_cov: PositivePair = (100.0, 100.0)  # m^2, GPS error per axis
    on_road_state_cov: float = Field(default=6.25e-4, gt=0)  # (m/s^2)^2 along the road
    off_road_state_cov: PositivePair = (6.25e-4, 6.25e-4)  # (m/s^2)^2 per ground axis
    edge_motion_prior: PositivePair = (1.0, 20.0)  # Dirichlet [off, on] given on-road
    free_motion_prior: PositivePair = (5.0, 5.0)  # Dirichlet [off, on] given off-road
    initial_velocity_var: float = Field(default=25.0, gt=0)  # (m/s)^2
    max_speed_mps: float = Field(default=30.0, gt=0)
    num_particles: int = Field(default=25, ge=1)
    initial_obs_freq: float = Field(default=30.0, gt=0)  # seconds between observations
    search_sigmas: float = Field(default=3.0, gt=0)
    min_search_radius_m: float = Field(default=0.0, ge=0)
    legacy_path_choice: bool = False  # draw path index from [0, n-1) like older runs


class GraphByPath(BaseModel):
    model_config = ConfigDict(extra="forbid")
    by: Literal["path"] = "path"
    file: str
    fmt: Literal["pickle"] = "pickle"
    must_exist: bool = True

    @field_validator("file")
    @classmethod
    def _expand(cls, v: str) -> str:
        return os.path.expandvars(os.path.expanduser(v))


# ------------------------------------------------------------------


class TrackingModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    run_id: str = "local"
    seed: int = 0
    params: InitialParametersModel = Field(default_factory=InitialParametersModel)
    log: LogModel = LogModel()
    graph: GraphByPath | None = None

    @model_validator(mode="after")
    def _check_search(self):
        p = self.params
        # bounds one step of travel; the search also spans the start of the current segment
        if p.max_speed_mps * p.initial_obs_freq >= 1000.0:
            raise ValueError(
                "max_speed_mps * initial_obs_freq must stay below the 1000 m path search limit"
            )
        return self
