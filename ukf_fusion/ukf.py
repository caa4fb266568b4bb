"""
UKF-Fusion - Unscented Kalman Filter for Laser/Radar Fusion
============================================================
Tracks one object with a CTRV state [px, py, v, yaw, yaw_rate] from
asynchronous laser (Cartesian) and radar (polar) measurements.

Cycle per measurement:
    1. first measurement  -> seed x from it, P = I, no predict/update
    2. every later one    -> predict(dt), then the sensor's unscented update

Angle residuals are wrapped to (-pi, pi] at four places: the predicted
state covariance (yaw), the innovation covariance (bearing), the cross
covariance (yaw and bearing) and the innovation itself (bearing).

Example:
    >>> ukf = UnscentedKalmanFilter(FilterConfig(std_a=1.5, std_yawdd=0.57))
    >>> for meas in measurements:
    ...     ukf.process_measurement(meas)
    ...     print(ukf.get_current_state())
"""

import logging
from typing import Optional

import numpy as np
from numpy.linalg import LinAlgError
from scipy.linalg import solve

from .config import FilterConfig
from .coords import PX, PY, YAW, normalize_angle, polar_to_cartesian
from .measurement import MeasurementPackage, SensorType
from .metrics import compute_nis
from .motion import (
    N_X, N_SIGMA, NumericalPreconditionError,
    augment_state, compute_weights, ctrv_transition,
    generate_augmented_sigma_points, recombine,
)
from .sensors import ObservationModel, build_observation_models

logger = logging.getLogger(__name__)


class UnscentedKalmanFilter:
    """Augmented-state UKF with a CTRV motion model.

    Attributes:
        config: Immutable noise model and sensor flags
        x: State estimate [px, py, v, yaw, yaw_rate]
        P: 5x5 state covariance
        Xsig_pred: 5x15 predicted sigma points of the last prediction
        weights: Sigma point weights (read-only)
        time_us: Timestamp of the last processed measurement [us]
        nis_laser / nis_radar: NIS of the last update per sensor
    """

    def __init__(self, config: Optional[FilterConfig] = None):
        self.config = config or FilterConfig()
        self.is_initialized = False

        self.x = np.zeros(N_X)
        self.P = np.eye(N_X)
        self.Xsig_pred = np.zeros((N_X, N_SIGMA))
        self.weights = compute_weights()
        self.time_us = 0

        self._models = build_observation_models(self.config)
        self._noise_variances = self.config.process_noise_variances()

        self.nis_laser: Optional[float] = None
        self.nis_radar: Optional[float] = None
        self.last_nis: Optional[float] = None

    @property
    def use_laser(self) -> bool:
        return self.config.use_laser

    @property
    def use_radar(self) -> bool:
        return self.config.use_radar

    # ===== ORCHESTRATION =====

    def process_measurement(self, meas_package: MeasurementPackage) -> None:
        """Initialize on the first measurement, otherwise predict then update."""
        if not self.is_initialized:
            self._initialize(meas_package)
            return

        dt = meas_package.elapsed_seconds(self.time_us)
        self.time_us = meas_package.timestamp

        self.predict(dt)

        if meas_package.sensor_type is SensorType.RADAR:
            if self.use_radar:
                self.update_radar(meas_package)
            else:
                logger.debug("radar disabled, skipping update at t=%d", meas_package.timestamp)
        elif meas_package.sensor_type is SensorType.LASER:
            if self.use_laser:
                self.update_lidar(meas_package)
            else:
                logger.debug("laser disabled, skipping update at t=%d", meas_package.timestamp)

    def _initialize(self, meas_package: MeasurementPackage) -> None:
        z = meas_package.raw_measurements
        if meas_package.sensor_type is SensorType.RADAR:
            position, speed = polar_to_cartesian(z[0], z[1], z[2])
            x = np.array([position[0], position[1], speed, 0.0, 0.0])
        else:
            x = np.array([z[0], z[1], 0.0, 0.0, 0.0])

        # Keep the first position off the origin
        eps = self.config.epsilon
        if abs(x[PX]) < eps and abs(x[PY]) < eps:
            x[PX] = eps
            x[PY] = eps

        self.x = x
        self.P = np.eye(N_X)
        self.time_us = meas_package.timestamp
        self.is_initialized = True
        logger.debug("initialized from %s at t=%d: x=%s",
                     meas_package.sensor_type.name, self.time_us, self.x)

    # ===== PREDICTION =====

    def predict(self, delta_t: float) -> None:
        """Propagate the belief ``delta_t`` seconds through the CTRV model.

        Raises:
            NumericalPreconditionError: augmented covariance not positive definite.
        """
        x_aug, P_aug = augment_state(self.x, self.P, self._noise_variances)
        try:
            Xsig_aug = generate_augmented_sigma_points(x_aug, P_aug)
        except NumericalPreconditionError:
            logger.error("Cholesky factorization failed at t=%d, P=%s", self.time_us, self.P)
            raise

        Xsig_pred = ctrv_transition(Xsig_aug, delta_t, self.config.epsilon)
        self.x, self.P = recombine(Xsig_pred, self.weights)
        self.Xsig_pred = Xsig_pred

    # ===== UPDATE =====

    def update_lidar(self, meas_package: MeasurementPackage) -> None:
        """Update with a laser [px, py] measurement."""
        self.nis_laser = self._update_ukf(meas_package, self._models[SensorType.LASER])

    def update_radar(self, meas_package: MeasurementPackage) -> None:
        """Update with a radar [rho, phi, rho_dot] measurement."""
        self.nis_radar = self._update_ukf(meas_package, self._models[SensorType.RADAR])

    def _update_ukf(self, meas_package: MeasurementPackage, model: ObservationModel) -> float:
        """Unscented update shared by both sensors. Returns the NIS.

        Raises:
            NumericalPreconditionError: innovation covariance S is singular.
        """
        weights = self.weights
        Zsig = model.project(self.Xsig_pred)
        z_pred = Zsig @ weights

        z_diff = model.residual(Zsig, z_pred[:, np.newaxis])
        S = (weights * z_diff) @ z_diff.T + model.noise_covariance

        x_diff = self.Xsig_pred - self.x[:, np.newaxis]
        x_diff[YAW] = normalize_angle(x_diff[YAW])
        Tc = (weights * x_diff) @ z_diff.T

        # K = Tc S^-1  <=>  S^T K^T = Tc^T
        try:
            K = solve(S.T, Tc.T).T
        except (LinAlgError, ValueError) as exc:
            logger.error("innovation covariance is singular at t=%d, S=%s",
                         meas_package.timestamp, S)
            raise NumericalPreconditionError("innovation covariance is not invertible") from exc

        y = model.residual(meas_package.raw_measurements, z_pred)

        self.x = self.x + K @ y
        P = self.P - K @ S @ K.T
        self.P = 0.5 * (P + P.T)

        self.last_nis = compute_nis(y, S)
        return self.last_nis

    # ===== ACCESSORS =====

    def get_current_state(self) -> np.ndarray:
        """Return a copy of the 5-element state vector."""
        return self.x.copy()
