"""
UKF-Fusion - Filter Test Suite
===============================
Initialization, predict/update cycle, sensor enable flags, numerical
failure handling and end-to-end convergence on synthetic scenarios.

Run with: pytest tests/ -v
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ukf_fusion import (
    UnscentedKalmanFilter, FilterConfig, MeasurementPackage, SensorType,
    LaserModel, NumericalPreconditionError, SyntheticScenarioGenerator,
    calculate_rmse, normalize_angle, state_to_cartesian,
)

T0 = 1_477_010_443_000_000


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ukf():
    return UnscentedKalmanFilter()


@pytest.fixture
def initialized_ukf():
    f = UnscentedKalmanFilter()
    f.process_measurement(MeasurementPackage.laser(1.0, 1.0, T0))
    return f


def assert_valid_covariance(P):
    assert P.shape == (5, 5)
    assert np.all(np.isfinite(P))
    assert_allclose(P, P.T, atol=1e-12)
    assert np.linalg.eigvalsh(P).min() > -1e-8


# =============================================================================
# INITIALIZATION
# =============================================================================

class TestInitialization:
    """First measurement seeds the state and returns."""

    def test_starts_uninitialized(self, ukf):
        assert not ukf.is_initialized
        assert ukf.Xsig_pred.shape == (5, 15)

    def test_laser_init(self, ukf):
        ukf.process_measurement(MeasurementPackage.laser(1.0, 2.0, T0))
        assert ukf.is_initialized
        assert_allclose(ukf.x, [1.0, 2.0, 0.0, 0.0, 0.0])
        assert_allclose(ukf.P, np.eye(5))
        assert ukf.time_us == T0

    def test_radar_init_on_axis(self, ukf):
        ukf.process_measurement(MeasurementPackage.radar(5.0, 0.0, 0.0, T0))
        assert_allclose(ukf.x, [5.0, 0.0, 0.0, 0.0, 0.0], atol=1e-12)

    def test_radar_init_converts_polar(self, ukf):
        ukf.process_measurement(MeasurementPackage.radar(2.0, np.pi / 2, -1.5, T0))
        assert_allclose(ukf.x, [0.0, 2.0, 1.5, 0.0, 0.0], atol=1e-12)

    def test_origin_is_clamped(self, ukf):
        ukf.process_measurement(MeasurementPackage.laser(0.0, 0.0, T0))
        assert_allclose(ukf.x[:2], [1e-3, 1e-3])

    def test_first_call_does_not_predict(self, ukf):
        ukf.process_measurement(MeasurementPackage.laser(1.0, 1.0, T0))
        assert np.all(ukf.Xsig_pred == 0.0)
        assert ukf.nis_laser is None

    def test_disabled_sensor_still_initializes(self):
        f = UnscentedKalmanFilter(FilterConfig(use_radar=False))
        f.process_measurement(MeasurementPackage.radar(5.0, 0.0, 0.0, T0))
        assert f.is_initialized
        assert_allclose(f.x, [5.0, 0.0, 0.0, 0.0, 0.0], atol=1e-12)

    def test_weights(self, ukf):
        assert ukf.weights.shape == (15,)
        assert ukf.weights.sum() == pytest.approx(1.0)
        assert ukf.weights[0] == pytest.approx(-4.0 / 3.0)
        assert_allclose(ukf.weights[1:], 1.0 / 6.0)


# =============================================================================
# PREDICT / UPDATE CYCLE
# =============================================================================

class TestCycle:
    """Second and later measurements run predict then update."""

    def test_two_laser_measurements(self, initialized_ukf):
        f = initialized_ukf
        f.process_measurement(MeasurementPackage.laser(1.1, 1.05, T0 + 100_000))

        assert f.time_us == T0 + 100_000
        assert not np.all(f.Xsig_pred == 0.0)
        assert np.all(np.isfinite(f.x))
        assert 0.0 < f.x[2] < 1.0
        assert -np.pi <= f.x[3] <= np.pi
        # Position moves toward the measurement
        assert 1.0 < f.x[0] < 1.1
        assert 1.0 < f.x[1] < 1.05
        assert f.P[0, 0] < 1.0
        assert_valid_covariance(f.P)

    def test_laser_update_records_nis(self, initialized_ukf):
        f = initialized_ukf
        f.process_measurement(MeasurementPackage.laser(1.1, 1.05, T0 + 100_000))
        assert f.nis_laser is not None
        assert f.nis_laser >= 0.0
        assert f.last_nis == f.nis_laser
        assert f.nis_radar is None

    def test_radar_update(self, initialized_ukf):
        f = initialized_ukf
        rho = np.hypot(1.1, 1.05)
        f.process_measurement(MeasurementPackage.radar(rho, np.arctan2(1.05, 1.1), 0.5, T0 + 100_000))
        assert np.all(np.isfinite(f.x))
        assert f.nis_radar is not None and np.isfinite(f.nis_radar)
        assert_valid_covariance(f.P)

    def test_disabled_laser_only_predicts(self):
        cfg = FilterConfig(use_laser=False)
        f = UnscentedKalmanFilter(cfg)
        ref = UnscentedKalmanFilter(cfg)
        for filt in (f, ref):
            filt.process_measurement(MeasurementPackage.radar(5.0, 0.3, 1.0, T0))

        f.process_measurement(MeasurementPackage.laser(7.0, 3.0, T0 + 100_000))
        ref.predict(0.1)

        assert f.time_us == T0 + 100_000
        assert_allclose(f.x, ref.x)
        assert_allclose(f.P, ref.P)
        assert f.nis_laser is None

    def test_zero_dt_prediction_keeps_mean(self, initialized_ukf):
        f = initialized_ukf
        x_before = f.x.copy()
        f.predict(0.0)
        assert_allclose(f.x, x_before, atol=1e-12)
        assert_allclose(f.P, np.eye(5), atol=1e-12)

    def test_get_current_state_is_copy(self, initialized_ukf):
        state = initialized_ukf.get_current_state()
        state[0] = 99.0
        assert initialized_ukf.x[0] == pytest.approx(1.0)


# =============================================================================
# NUMERICAL FAILURES
# =============================================================================

class TestNumericalFailures:
    """Broken covariances fail fast instead of poisoning the state."""

    def test_non_positive_definite_covariance_raises(self, initialized_ukf):
        f = initialized_ukf
        f.P = -np.eye(5)
        x_before = f.x.copy()
        with pytest.raises(NumericalPreconditionError):
            f.process_measurement(MeasurementPackage.laser(1.1, 1.05, T0 + 100_000))
        assert_allclose(f.x, x_before)
        assert np.all(f.Xsig_pred == 0.0)

    def test_singular_innovation_covariance_raises(self, ukf):
        meas = MeasurementPackage.laser(0.0, 0.0, T0)
        with pytest.raises(NumericalPreconditionError):
            ukf._update_ukf(meas, LaserModel(np.zeros((2, 2))))

    def test_error_is_runtime_error(self):
        assert issubclass(NumericalPreconditionError, RuntimeError)


# =============================================================================
# SCENARIOS
# =============================================================================

class TestScenarios:
    """End-to-end runs on synthetic CTRV targets."""

    def test_laser_only_straight_line_converges(self):
        heading = np.arctan2(0.05, 0.1)
        speed = np.hypot(0.1, 0.05) / 0.1
        gen = SyntheticScenarioGenerator(noise=False)
        steps = gen.run(np.array([1.0, 1.0, speed, heading, 0.0]), n_steps=200,
                        dt_us=100_000, sensors="laser")

        f = UnscentedKalmanFilter()
        for step in steps:
            f.process_measurement(step.measurement)

        truth = steps[-1].ground_truth
        est = state_to_cartesian(f.x)
        assert_allclose(est[:2], truth[:2], atol=0.05)
        assert_allclose(est[2:], truth[2:], atol=0.1)
        if f.x[2] > 0:
            assert abs(normalize_angle(f.x[3] - heading)) < 0.1

    def test_covariance_stays_valid_through_turn(self):
        gen = SyntheticScenarioGenerator(seed=7)
        steps = gen.constant_turn(n_steps=300)
        # Heading passes +pi during the run
        assert steps[-1].true_state[3] > np.pi

        f = UnscentedKalmanFilter()
        for step in steps:
            f.process_measurement(step.measurement)
            assert_valid_covariance(f.P)

    def test_mixed_sensor_accuracy(self):
        gen = SyntheticScenarioGenerator(seed=42)
        steps = gen.constant_turn(n_steps=300)

        f = UnscentedKalmanFilter()
        estimations, ground_truth = [], []
        for step in steps:
            f.process_measurement(step.measurement)
            estimations.append(state_to_cartesian(f.x))
            ground_truth.append(step.ground_truth)

        # Skip the convergence transient
        rmse = calculate_rmse(estimations[150:], ground_truth[150:])
        assert rmse.shape == (4,)
        assert np.all(rmse[:2] < 0.3)
        assert np.all(rmse[2:] < 1.0)

    def test_laser_only_and_radar_only_flags(self):
        steps = SyntheticScenarioGenerator(seed=3).straight_line(n_steps=100)
        for cfg in (FilterConfig(use_radar=False), FilterConfig(use_laser=False)):
            f = UnscentedKalmanFilter(cfg)
            for step in steps:
                f.process_measurement(step.measurement)
            assert np.all(np.isfinite(f.x))
            assert_valid_covariance(f.P)
        assert steps[1].measurement.sensor_type is SensorType.RADAR
