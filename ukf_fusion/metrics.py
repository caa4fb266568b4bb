"""
UKF-Fusion Metrics
===================
Accuracy and consistency measures for filter output.

    calculate_rmse : per-component RMSE of [px, py, vx, vy] estimates
    compute_nis    : normalized innovation squared, y^T S^-1 y
"""

import warnings
from typing import Sequence

import numpy as np
from numpy.linalg import LinAlgError
from scipy.linalg import solve

RMSE_DIM = 4


def calculate_rmse(estimations: Sequence[np.ndarray],
                   ground_truth: Sequence[np.ndarray]) -> np.ndarray:
    """Root-mean-square error per component.

    Args:
        estimations: Sequence of [px, py, vx, vy] estimates
        ground_truth: Sequence of [px, py, vx, vy] truths, same length

    Returns:
        np.ndarray: RMSE of length 4. All zeros (with a RuntimeWarning) when
        the inputs are empty or their lengths differ.
    """
    if len(estimations) == 0 or len(estimations) != len(ground_truth):
        warnings.warn("invalid estimation or ground truth data", RuntimeWarning, stacklevel=2)
        return np.zeros(RMSE_DIM)

    est = np.asarray(estimations, dtype=np.float64).reshape(len(estimations), -1)
    gt = np.asarray(ground_truth, dtype=np.float64).reshape(len(ground_truth), -1)
    residuals = est[:, :RMSE_DIM] - gt[:, :RMSE_DIM]
    return np.sqrt(np.mean(residuals**2, axis=0))


def compute_nis(innovation: np.ndarray, S: np.ndarray) -> float:
    """Normalized Innovation Squared.

    NIS = y^T S^{-1} y where y is innovation, S is innovation covariance.
    For a consistent filter: E[NIS] = nz (measurement dimension).
    """
    try:
        return float(innovation @ solve(S, innovation, assume_a='pos'))
    except LinAlgError:
        return float('inf')
