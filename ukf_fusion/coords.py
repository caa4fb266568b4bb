"""
UKF-Fusion Geometry Helpers
============================
Angle wrapping and the polar/Cartesian conversions shared by the filter,
the observation models and the scoring utilities.

State convention (CTRV):
    x = [px, py, v, yaw, yaw_rate]
    px, py   position [m]
    v        speed magnitude along the heading [m/s]
    yaw      heading [rad], counter-clockwise from +x
    yaw_rate heading rate [rad/s]

Radar convention:
    z = [rho, phi, rho_dot]
    rho      range from the sensor origin [m]
    phi      bearing [rad], atan2(py, px)
    rho_dot  range rate [m/s]
"""

import numpy as np
from typing import Tuple

TWO_PI = 2.0 * np.pi

# ===== STATE INDICES =====
PX, PY, V, YAW, YAW_RATE = 0, 1, 2, 3, 4
RHO, PHI, RHO_DOT = 0, 1, 2


# ===== ANGLES =====

def normalize_angle(angle):
    """Wrap an angle (scalar or array) into (-pi, pi].

    The result is idempotent and 2*pi periodic:
        normalize_angle(normalize_angle(a)) == normalize_angle(a)
        normalize_angle(a + 2*pi*k) == normalize_angle(a)
    """
    angle = np.asarray(angle, dtype=np.float64)
    in_range = (angle > -np.pi) & (angle <= np.pi)
    wrapped = np.where(in_range, angle, np.pi - np.mod(np.pi - angle, TWO_PI))
    if wrapped.ndim == 0:
        return float(wrapped)
    return wrapped


# ===== POLAR <-> CARTESIAN =====

def polar_to_cartesian(rho: float, phi: float, rho_dot: float = 0.0) -> Tuple[np.ndarray, float]:
    """Radar polar measurement to Cartesian position and speed magnitude.

    The range rate is projected along the bearing, so the returned speed is
    only the radial component of the true velocity:
        vx = rho_dot * cos(phi), vy = rho_dot * sin(phi), v = |(vx, vy)|

    Returns:
        Tuple: (position [px, py], speed v)
    """
    cos_phi = np.cos(phi)
    sin_phi = np.sin(phi)
    position = np.array([rho * cos_phi, rho * sin_phi])
    vx = rho_dot * cos_phi
    vy = rho_dot * sin_phi
    return position, float(np.sqrt(vx**2 + vy**2))


def cartesian_to_polar(px: float, py: float, vx: float, vy: float,
                       min_range: float = 1e-3) -> np.ndarray:
    """Cartesian position/velocity to radar polar [rho, phi, rho_dot].

    The range-rate divisor is clamped to ``min_range`` near the origin.
    """
    rho = np.sqrt(px**2 + py**2)
    phi = np.arctan2(py, px)
    rho_dot = (px * vx + py * vy) / max(rho, min_range)
    return np.array([rho, phi, rho_dot])


def state_to_cartesian(x: np.ndarray) -> np.ndarray:
    """CTRV state [px, py, v, yaw, yaw_rate] to [px, py, vx, vy] for scoring."""
    x = np.asarray(x, dtype=np.float64)
    v, yaw = x[V], x[YAW]
    return np.array([x[PX], x[PY], v * np.cos(yaw), v * np.sin(yaw)])
