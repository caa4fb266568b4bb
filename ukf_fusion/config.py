"""
UKF-Fusion Filter Configuration
================================
Immutable noise and sensor-selection parameters, fixed at filter
construction. Values can be given in code, as a mapping, or in a YAML file:

    std_a: 1.5          # longitudinal acceleration noise [m/s^2]
    std_yawdd: 0.57     # yaw acceleration noise [rad/s^2]
    std_laspx: 0.15     # laser x noise [m]
    std_laspy: 0.15     # laser y noise [m]
    std_radr: 0.3       # radar range noise [m]
    std_radphi: 0.03    # radar bearing noise [rad]
    std_radrd: 0.3      # radar range-rate noise [m/s]
    use_laser: true
    use_radar: true
    epsilon: 0.001      # threshold for yaw-rate / range / origin guards
"""

from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import numpy as np
import yaml


_STD_FIELDS = (
    "std_a", "std_yawdd",
    "std_laspx", "std_laspy",
    "std_radr", "std_radphi", "std_radrd",
)


@dataclass(frozen=True)
class FilterConfig:
    """Process and measurement noise model plus per-sensor enable flags.

    Attributes:
        std_a: Process noise std, longitudinal acceleration [m/s^2]
        std_yawdd: Process noise std, yaw acceleration [rad/s^2]
        std_laspx: Laser measurement noise std, x [m]
        std_laspy: Laser measurement noise std, y [m]
        std_radr: Radar measurement noise std, range [m]
        std_radphi: Radar measurement noise std, bearing [rad]
        std_radrd: Radar measurement noise std, range rate [m/s]
        use_laser: If False, laser measurements are ignored after init
        use_radar: If False, radar measurements are ignored after init
        epsilon: Small-value guard for yaw rate, range and the origin
    """
    std_a: float = 1.5
    std_yawdd: float = 0.57
    std_laspx: float = 0.15
    std_laspy: float = 0.15
    std_radr: float = 0.3
    std_radphi: float = 0.03
    std_radrd: float = 0.3
    use_laser: bool = True
    use_radar: bool = True
    epsilon: float = 1e-3

    def __post_init__(self):
        for name in _STD_FIELDS:
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0.0:
                raise ValueError(f"{name} must be a positive finite number, got {value!r}")
        if not np.isfinite(self.epsilon) or self.epsilon <= 0.0:
            raise ValueError(f"epsilon must be a positive finite number, got {self.epsilon!r}")

    # ===== NOISE MATRICES =====

    def process_noise_variances(self) -> np.ndarray:
        """[std_a^2, std_yawdd^2] for the augmented covariance diagonal."""
        return np.array([self.std_a**2, self.std_yawdd**2])

    def laser_noise(self) -> np.ndarray:
        """2x2 laser measurement noise covariance."""
        return np.diag([self.std_laspx**2, self.std_laspy**2])

    def radar_noise(self) -> np.ndarray:
        """3x3 radar measurement noise covariance."""
        return np.diag([self.std_radr**2, self.std_radphi**2, self.std_radrd**2])

    # ===== LOADERS =====

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "FilterConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown filter configuration keys: {', '.join(unknown)}")
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            if key.startswith("use_"):
                if not isinstance(value, bool):
                    raise ValueError(f"{key} must be true or false, got {value!r}")
                kwargs[key] = value
            else:
                kwargs[key] = float(value)
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "FilterConfig":
        """Load a configuration file. An empty file gives the defaults."""
        with open(path, 'r') as f:
            values = yaml.safe_load(f)
        if values is None:
            return cls()
        if not isinstance(values, Mapping):
            raise ValueError(f"{path}: expected a mapping at the top level")
        return cls.from_dict(values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
