"""UKF-Fusion: laser/radar sensor fusion with an unscented Kalman filter.

CTRV state [px, py, v, yaw, yaw_rate], augmented sigma points, nonlinear
radar and linear laser updates.

Quick Start::

    from ukf_fusion import UnscentedKalmanFilter, FilterConfig, MeasurementPackage
    ukf = UnscentedKalmanFilter(FilterConfig.from_yaml("config/ukf_fusion.yaml"))
    for meas in measurements:
        ukf.process_measurement(meas)
        px, py, v, yaw, yaw_rate = ukf.x
"""

__version__ = "1.0.0"

from .config import FilterConfig
from .coords import (
    normalize_angle,
    polar_to_cartesian,
    cartesian_to_polar,
    state_to_cartesian,
)
from .measurement import MeasurementPackage, SensorType
from .motion import (
    NumericalPreconditionError,
    augment_state,
    compute_weights,
    ctrv_transition,
    generate_augmented_sigma_points,
    recombine,
)
from .sensors import ObservationModel, LaserModel, RadarModel, build_observation_models
from .ukf import UnscentedKalmanFilter
from .metrics import calculate_rmse, compute_nis
from .datasets import ScenarioStep, SyntheticScenarioGenerator

__all__ = [
    "__version__",
    # Filter
    "UnscentedKalmanFilter", "FilterConfig", "NumericalPreconditionError",
    # Measurements
    "MeasurementPackage", "SensorType",
    # Prediction math
    "augment_state", "compute_weights", "ctrv_transition",
    "generate_augmented_sigma_points", "recombine",
    # Observation models
    "ObservationModel", "LaserModel", "RadarModel", "build_observation_models",
    # Geometry
    "normalize_angle", "polar_to_cartesian", "cartesian_to_polar", "state_to_cartesian",
    # Metrics
    "calculate_rmse", "compute_nis",
    # Scenarios
    "ScenarioStep", "SyntheticScenarioGenerator",
]
