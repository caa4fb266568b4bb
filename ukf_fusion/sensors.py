"""
UKF-Fusion Observation Models
==============================
Map predicted sigma points (5 x N) into a sensor's measurement space.

    LaserModel : z = [px, py]                                  (linear)
    RadarModel : z = [sqrt(px^2 + py^2),
                      atan2(py, px),
                      (px*v*cos(yaw) + py*v*sin(yaw)) / rho]   (nonlinear)

Each model also carries its fixed measurement noise covariance and the
index of its angular component (wrapped in every residual), so the shared
unscented update never branches on the sensor type.
"""

from typing import Dict, Optional

import numpy as np

from .config import FilterConfig
from .coords import PX, PY, V, YAW, PHI, normalize_angle
from .measurement import SensorType


class ObservationModel:
    """Base for the two sensor observation models."""

    sensor_type: SensorType
    dim_z: int
    angle_index: Optional[int] = None

    def __init__(self, noise_covariance: np.ndarray):
        R = np.array(noise_covariance, dtype=np.float64)
        if R.shape != (self.dim_z, self.dim_z):
            raise ValueError(
                f"{type(self).__name__} noise covariance must be "
                f"{self.dim_z}x{self.dim_z}, got {R.shape}")
        R.setflags(write=False)
        self.noise_covariance = R

    def project(self, Xsig_pred: np.ndarray) -> np.ndarray:
        """(5, N) sigma points -> (dim_z, N) measurement sigma points."""
        raise NotImplementedError

    def residual(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """a - b with the angular row (if any) wrapped. Broadcasts over columns."""
        diff = np.array(a - b, dtype=np.float64)
        if self.angle_index is not None:
            diff[self.angle_index] = normalize_angle(diff[self.angle_index])
        return diff


class LaserModel(ObservationModel):
    sensor_type = SensorType.LASER
    dim_z = 2

    def project(self, Xsig_pred: np.ndarray) -> np.ndarray:
        return Xsig_pred[PX:PY + 1].copy()


class RadarModel(ObservationModel):
    sensor_type = SensorType.RADAR
    dim_z = 3
    angle_index = PHI

    def __init__(self, noise_covariance: np.ndarray, min_range: float = 1e-3):
        super().__init__(noise_covariance)
        self.min_range = min_range

    def project(self, Xsig_pred: np.ndarray) -> np.ndarray:
        px = Xsig_pred[PX]
        py = Xsig_pred[PY]
        v = Xsig_pred[V]
        yaw = Xsig_pred[YAW]
        vx = v * np.cos(yaw)
        vy = v * np.sin(yaw)

        rho = np.sqrt(px**2 + py**2)
        phi = np.arctan2(py, px)
        # Clamp the divisor only; rho itself stays the true range
        rho_dot = (px * vx + py * vy) / np.maximum(rho, self.min_range)
        return np.vstack([rho, phi, rho_dot])


def build_observation_models(config: FilterConfig) -> Dict[SensorType, ObservationModel]:
    """One model per sensor type, noise taken from ``config``."""
    return {
        SensorType.LASER: LaserModel(config.laser_noise()),
        SensorType.RADAR: RadarModel(config.radar_noise(), min_range=config.epsilon),
    }
