"""
UKF-Fusion Prediction Math
===========================
Augmented sigma points and the constant turn-rate and velocity (CTRV)
process model.

Augmented state (n_aug = 7):
    x_aug = [px, py, v, yaw, yaw_rate, nu_a, nu_yawdd]
    P_aug = diag(P, std_a^2, std_yawdd^2)

Sigma points are stored column-wise: an (n, 2*n_aug + 1) matrix.

CTRV, for |yaw_rate| > eps:
    px' = px + v/yaw_rate * ( sin(yaw + yaw_rate*dt) - sin(yaw))
    py' = py + v/yaw_rate * (-cos(yaw + yaw_rate*dt) + cos(yaw))
otherwise (straight line):
    px' = px + v*dt*cos(yaw)
    py' = py + v*dt*sin(yaw)
and always
    v' = v,  yaw' = yaw + yaw_rate*dt,  yaw_rate' = yaw_rate
plus the noise terms
    px'       += 0.5*nu_a*dt^2*cos(yaw)
    py'       += 0.5*nu_a*dt^2*sin(yaw)
    v'        += nu_a*dt
    yaw'      += 0.5*nu_yawdd*dt^2
    yaw_rate' += nu_yawdd*dt

Reference: Julier & Uhlmann (2004), Wan & van der Merwe (2000).
"""

from typing import Tuple

import numpy as np
from numpy.linalg import LinAlgError
from scipy.linalg import block_diag, cholesky

from .coords import normalize_angle, YAW

N_X = 5
N_AUG = 7
N_SIGMA = 2 * N_AUG + 1


class NumericalPreconditionError(RuntimeError):
    """Covariance lost positive definiteness or S could not be inverted."""


def spread_parameter(n_aug: int = N_AUG) -> float:
    """lambda = 3 - n_aug."""
    return 3.0 - n_aug


def compute_weights(n_aug: int = N_AUG) -> np.ndarray:
    """Sigma point weights; read-only, sums to 1."""
    lambda_ = spread_parameter(n_aug)
    weights = np.full(2 * n_aug + 1, 0.5 / (lambda_ + n_aug))
    weights[0] = lambda_ / (lambda_ + n_aug)
    weights.setflags(write=False)
    return weights


def augment_state(x: np.ndarray, P: np.ndarray,
                  noise_variances: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Stack the process noise onto the state. Returns new arrays."""
    x_aug = np.concatenate([x, np.zeros(len(noise_variances))])
    P_aug = block_diag(P, np.diag(noise_variances))
    return x_aug, P_aug


def generate_augmented_sigma_points(x_aug: np.ndarray, P_aug: np.ndarray) -> np.ndarray:
    """2*n_aug + 1 sigma points from the lower Cholesky factor of P_aug.

    Raises:
        NumericalPreconditionError: P_aug is not positive definite.
    """
    n_aug = len(x_aug)
    try:
        L = cholesky(P_aug, lower=True)
    except (LinAlgError, ValueError) as exc:
        raise NumericalPreconditionError(
            "augmented covariance is not positive definite") from exc

    scaled_L = np.sqrt(spread_parameter(n_aug) + n_aug) * L
    Xsig_aug = np.empty((n_aug, 2 * n_aug + 1))
    Xsig_aug[:, 0] = x_aug
    Xsig_aug[:, 1:n_aug + 1] = x_aug[:, np.newaxis] + scaled_L
    Xsig_aug[:, n_aug + 1:] = x_aug[:, np.newaxis] - scaled_L
    return Xsig_aug


def ctrv_transition(Xsig_aug: np.ndarray, dt: float, epsilon: float = 1e-3) -> np.ndarray:
    """Propagate augmented sigma points through CTRV over ``dt`` seconds.

    Args:
        Xsig_aug: (7, N) augmented sigma points
        dt: Elapsed time [s]
        epsilon: Yaw rates at or below this magnitude use the straight-line branch

    Returns:
        (5, N) predicted sigma points
    """
    px, py, v, yaw, yawd, nu_a, nu_yawdd = Xsig_aug
    dt2 = dt * dt

    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)
    yaw_p = yaw + yawd * dt

    turning = np.abs(yawd) > epsilon
    safe_yawd = np.where(turning, yawd, 1.0)
    v_over_yawd = v / safe_yawd
    px_p = np.where(turning,
                    px + v_over_yawd * (np.sin(yaw_p) - sin_yaw),
                    px + v * dt * cos_yaw)
    py_p = np.where(turning,
                    py + v_over_yawd * (cos_yaw - np.cos(yaw_p)),
                    py + v * dt * sin_yaw)

    # Process noise
    px_p = px_p + 0.5 * nu_a * dt2 * cos_yaw
    py_p = py_p + 0.5 * nu_a * dt2 * sin_yaw
    v_p = v + nu_a * dt
    yaw_p = yaw_p + 0.5 * nu_yawdd * dt2
    yawd_p = yawd + nu_yawdd * dt

    return np.vstack([px_p, py_p, v_p, yaw_p, yawd_p])


def recombine(Xsig_pred: np.ndarray, weights: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Weighted mean and covariance of predicted sigma points.

    Yaw differences are wrapped before the outer products.
    """
    x = Xsig_pred @ weights
    x_diff = Xsig_pred - x[:, np.newaxis]
    x_diff[YAW] = normalize_angle(x_diff[YAW])
    P = (weights * x_diff) @ x_diff.T
    return x, 0.5 * (P + P.T)
