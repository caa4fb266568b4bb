"""
UKF-Fusion Measurement Records
===============================
Timestamped measurement packages from the two supported sensors:

    LASER : [px, py] Cartesian position
    RADAR : [rho, phi, rho_dot] range, bearing, range rate

Timestamps are integer microseconds, delivered in non-decreasing order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

import numpy as np


US_PER_SECOND = 1_000_000.0


class SensorType(Enum):
    """Supported sensor measurement types."""
    LASER = "laser"   # [px, py]
    RADAR = "radar"   # [rho, phi, rho_dot]

    @property
    def dim_z(self) -> int:
        return 2 if self is SensorType.LASER else 3

    @classmethod
    def parse(cls, value: Union[str, "SensorType"]) -> "SensorType":
        """Accept an enum member, its value, or the 'L'/'R' log tags."""
        if isinstance(value, cls):
            return value
        tag = str(value).strip().lower()
        aliases = {"l": cls.LASER, "lidar": cls.LASER, "r": cls.RADAR}
        if tag in aliases:
            return aliases[tag]
        try:
            return cls(tag)
        except ValueError:
            raise ValueError(f"Unknown sensor type: {value!r}") from None


@dataclass(frozen=True, eq=False)
class MeasurementPackage:
    """A single measurement from one sensor.

    Attributes:
        sensor_type: Which sensor produced this measurement
        raw_measurements: Measurement vector, length 2 (laser) or 3 (radar)
        timestamp: Measurement time [us]
    """
    sensor_type: SensorType
    raw_measurements: np.ndarray = field(repr=False)
    timestamp: int = 0

    def __post_init__(self):
        sensor_type = SensorType.parse(self.sensor_type)
        z = np.array(self.raw_measurements, dtype=np.float64).reshape(-1)
        if z.shape[0] != sensor_type.dim_z:
            raise ValueError(
                f"{sensor_type.name} measurement needs {sensor_type.dim_z} values, "
                f"got {z.shape[0]}")
        z.setflags(write=False)
        # frozen dataclass: bypass __setattr__ for the normalised fields
        object.__setattr__(self, "sensor_type", sensor_type)
        object.__setattr__(self, "raw_measurements", z)
        object.__setattr__(self, "timestamp", int(self.timestamp))

    @classmethod
    def laser(cls, px: float, py: float, timestamp: int) -> "MeasurementPackage":
        return cls(SensorType.LASER, np.array([px, py]), timestamp)

    @classmethod
    def radar(cls, rho: float, phi: float, rho_dot: float, timestamp: int) -> "MeasurementPackage":
        return cls(SensorType.RADAR, np.array([rho, phi, rho_dot]), timestamp)

    def elapsed_seconds(self, previous_timestamp: int) -> float:
        """Time since ``previous_timestamp`` in seconds."""
        return (self.timestamp - previous_timestamp) / US_PER_SECOND
