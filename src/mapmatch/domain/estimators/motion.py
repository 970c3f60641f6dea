import numpy as np

from mapmatch.app.protocols import MotionPredictor
from mapmatch.config.models import InitialParametersModel
from mapmatch.domain.distributions.gaussian import Frame, MultivariateGaussian
from mapmatch.domain.estimators.projection import road_to_ground
from mapmatch.domain.paths.path import PathEdge

# Bound on redraws when road noise must keep the state forward-feasible.
MAX_NOISE_RESAMPLE_TRIES = int(1e6)

# ground [x, vx, y, vy] -> observed [x, y]
OBSERVATION_MATRIX = np.array([[1.0, 0.0, 0.0, 0.0], [0.0, 0.0, 1.0, 0.0]])


class ConstantVelocityPredictor(MotionPredictor):
    """
    Constant-velocity dynamics driven by white acceleration noise.
    Road state is [distance, velocity]; ground state is [x, vx, y, vy].
    """

    def __init__(
        self,
        *,
        dt_s: float,
        on_road_accel_var: float,
        off_road_accel_var: tuple[float, float],
        obs_cov: tuple[float, float],
    ):
        if dt_s <= 0:
            raise ValueError(f"dt_s must be > 0, got {dt_s}")
        self.dt = float(dt_s)
        self._accel_cov = {
            Frame.ROAD: np.array([[float(on_road_accel_var)]]),
            Frame.GROUND: np.diag(np.asarray(off_road_accel_var, dtype=np.float64)),
        }
        self.obs_cov = np.diag(np.asarray(obs_cov, dtype=np.float64))

    @classmethod
    def from_parameters(cls, params: InitialParametersModel, dt_s: float):
        return cls(
            dt_s=dt_s,
            on_road_accel_var=params.on_road_state_cov,
            off_road_accel_var=params.off_road_state_cov,
            obs_cov=params.obs_cov,
        )

    # --------------- Model matrices -----------------------------

    def transition(self, frame: Frame) -> np.ndarray:
        g = np.array([[1.0, self.dt], [0.0, 1.0]])
        if frame is Frame.ROAD:
            return g
        if frame is Frame.GROUND:
            return np.kron(np.eye(2), g)
        raise TypeError(f"no dynamics for {frame.value} beliefs")

    def noise_loading(self, frame: Frame) -> np.ndarray:
        gamma = np.array([[self.dt**2 / 2.0], [self.dt]])
        if frame is Frame.ROAD:
            return gamma
        if frame is Frame.GROUND:
            return np.kron(np.eye(2), gamma)
        raise TypeError(f"no dynamics for {frame.value} beliefs")

    def _model_covariance(self, frame: Frame) -> np.ndarray:
        gamma = self.noise_loading(frame)
        return gamma @ self._accel_cov[frame] @ gamma.T

    def road_model_covariance(self) -> np.ndarray:
        return self._model_covariance(Frame.ROAD)

    def ground_model_covariance(self) -> np.ndarray:
        return self._model_covariance(Frame.GROUND)

    # --------------------------------------------------------

    def predict(self, prior: MultivariateGaussian) -> MultivariateGaussian:
        G = self.transition(prior.frame)
        return MultivariateGaussian(
            G @ prior.mean,
            G @ prior.covariance @ G.T + self._model_covariance(prior.frame),
            prior.frame,
        )

    def inject_process_noise(
        self, mean: np.ndarray, frame: Frame, rng: np.random.Generator
    ) -> np.ndarray:
        gamma, cov = self.noise_loading(frame), self._accel_cov[frame]
        mean = np.asarray(mean, dtype=np.float64)
        if frame is Frame.GROUND:
            return mean + gamma @ rng.multivariate_normal(np.zeros(2), cov)
        # road dynamics are forward-only: redraw until distance and velocity are >= 0
        sd = float(np.sqrt(cov[0, 0]))
        for _ in range(MAX_NOISE_RESAMPLE_TRIES):
            noisy = mean + gamma[:, 0] * rng.normal(0.0, sd)
            if noisy[0] >= 0.0 and noisy[1] >= 0.0:
                return noisy
        raise RuntimeError(
            f"no forward-feasible road noise after {MAX_NOISE_RESAMPLE_TRIES} draws from {mean}"
        )

    def observation_distribution(
        self, predicted: MultivariateGaussian, edge: PathEdge
    ) -> MultivariateGaussian:
        ground = road_to_ground(predicted, edge) if predicted.frame is Frame.ROAD else predicted
        O = OBSERVATION_MATRIX
        return MultivariateGaussian(
            O @ ground.mean, O @ ground.covariance @ O.T + self.obs_cov, Frame.OBSERVATION
        )
