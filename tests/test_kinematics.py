"""Tests for the integrating, legacy and impulse strategies."""
import math

import numpy as np
import pytest

from conftest import at, feed
from velocity_tracker.tracker import VelocityTracker
from velocity_tracker.tracking.bitset import PointerIdBits
from velocity_tracker.tracking.estimator import Position
from velocity_tracker.tracking.impulse import calculate_impulse_velocity, kinetic_energy_to_velocity
from velocity_tracker.tracking.integrating import FILTER_TIME_CONSTANT, IntegratingVelocityTrackerStrategy
from velocity_tracker.tracking.strategy import Strategy


class TestIntegrating:
    def test_invalid_degree(self):
        with pytest.raises(ValueError):
            IntegratingVelocityTrackerStrategy(3)

    def test_first_sample_is_at_rest(self):
        tracker = VelocityTracker(Strategy.INT1)
        feed(tracker, 0, [(0, 10, 20)])
        ok, estimator = tracker.get_estimator(0)
        assert ok
        assert estimator.degree == 1
        assert estimator.confidence == 1.0
        assert estimator.velocity() == (0.0, 0.0)
        assert (estimator.x_coeff[0], estimator.y_coeff[0]) == (10.0, 20.0)

    def test_blends_velocity_change(self):
        tracker = VelocityTracker(Strategy.INT1)
        feed(tracker, 0, [(0, 0, 0), (10, 10, 0), (20, 30, 0)])
        # First step measures 1000/s outright, second measures 2000/s and blends.
        alpha = 0.010 / (FILTER_TIME_CONSTANT + 0.010)
        ok, vx, _ = tracker.get_velocity(0)
        assert ok
        assert vx == pytest.approx(1000.0 + (2000.0 - 1000.0) * alpha)

    def test_degree_two_tracks_acceleration(self):
        tracker = VelocityTracker(Strategy.INT2)
        feed(tracker, 0, [(0, 0, 0), (10, 10, 0), (20, 30, 0), (30, 60, 0)])
        ok, estimator = tracker.get_estimator(0)
        assert ok
        assert estimator.degree == 2
        assert estimator.x_coeff[2] > 0
        assert estimator.x_coeff[1] > 1000.0

    def test_close_updates_ignored(self):
        tracker = VelocityTracker(Strategy.INT1)
        feed(tracker, 0, [(0, 0, 0), (10, 10, 0), (11, 500, 0)])
        ok, estimator = tracker.get_estimator(0)
        assert estimator.velocity()[0] == pytest.approx(1000.0)
        assert estimator.time == at(10)

    def test_non_monotonic_time_reinitializes(self, caplog):
        tracker = VelocityTracker(Strategy.INT1)
        feed(tracker, 0, [(0, 0, 0), (10, 10, 0), (5, 40, 0)])
        ok, estimator = tracker.get_estimator(0)
        assert ok
        assert estimator.velocity() == (0.0, 0.0)
        assert estimator.x_coeff[0] == 40.0
        assert "non-monotonic" in caplog.text

    def test_missing_pointer_loses_state(self):
        strategy = IntegratingVelocityTrackerStrategy(1)
        strategy.add_movement(at(0), PointerIdBits.of([0, 1]), [Position(0, 0), Position(0, 0)])
        strategy.add_movement(at(10), PointerIdBits.of([1]), [Position(10, 0)])
        assert not strategy.get_estimator(0)[0]
        assert strategy.get_estimator(1)[1].velocity()[0] == pytest.approx(1000.0)


class TestLegacy:
    def test_close_samples_give_no_velocity(self):
        tracker = VelocityTracker(Strategy.LEGACY)
        feed(tracker, 0, [(0, 0, 0), (5, 50, 7)])
        ok, estimator = tracker.get_estimator(0)
        assert ok
        assert estimator.degree == 0
        assert estimator.confidence == 0.0
        assert not np.any(estimator.x_coeff)
        assert not np.any(estimator.y_coeff)
        assert tracker.get_velocity(0) == (False, 0.0, 0.0)

    def test_burst_does_not_overestimate(self):
        tracker = VelocityTracker(Strategy.LEGACY)
        # A burst sample 1 ms after the first would read 5000/s on its own.
        feed(tracker, 0, [(0, 0, 0), (1, 5, 0), (16, 16, 0), (32, 32, 0)])
        ok, vx, _ = tracker.get_velocity(0)
        assert ok
        assert vx == pytest.approx(1000.0)

    def test_duration_weighted_average(self):
        tracker = VelocityTracker(Strategy.LEGACY)
        feed(tracker, 0, [(0, 0, 0), (10, 20, 0), (30, 30, 0)])
        # 2000/s over 10 ms and 1000/s over 30 ms.
        expected = (2000.0 * 10 + 1000.0 * 30) / 40
        ok, vx, _ = tracker.get_velocity(0)
        assert ok
        assert vx == pytest.approx(expected)

    def test_identical_times_are_kept(self):
        tracker = VelocityTracker(Strategy.LEGACY)
        feed(tracker, 0, [(0, 0, 0), (20, 20, 0), (20, 20, 0)])
        assert len(tracker.strategy.history) == 3
        assert tracker.get_velocity(0)[1] == pytest.approx(1000.0)


class TestImpulse:
    def test_kinetic_energy_round_trip(self):
        assert kinetic_energy_to_velocity(0.0) == 0.0
        assert kinetic_energy_to_velocity(2.0) == pytest.approx(2.0)
        assert kinetic_energy_to_velocity(-2.0) == pytest.approx(-2.0)

    def test_two_samples_is_slope(self):
        assert calculate_impulse_velocity([at(10), at(0)], [20.0, 10.0]) == pytest.approx(1000.0)

    def test_identical_times_warn(self, caplog):
        assert calculate_impulse_velocity([at(0), at(0)], [5.0, 0.0]) == 0.0
        assert "identical time stamps" in caplog.text

    def test_identical_interval_skipped(self, caplog):
        v = calculate_impulse_velocity([at(20), at(10), at(10), at(0)], [20.0, 10.0, 10.0, 0.0])
        assert v == pytest.approx(1000.0)
        assert "skipping sample" in caplog.text

    def test_direction_reversal_follows_recent_motion(self):
        tracker = VelocityTracker(Strategy.IMPULSE)
        feed(tracker, 0, [(0, 0, 0), (10, 10, 0), (20, 20, 0), (30, 10, 0), (40, 0, 0)])
        ok, vx, _ = tracker.get_velocity(0)
        assert ok
        assert vx < 0

    def test_single_sample_fails(self):
        tracker = VelocityTracker(Strategy.IMPULSE)
        feed(tracker, 0, [(0, 5, 5)])
        ok, estimator = tracker.get_estimator(0)
        assert not ok
        assert estimator.degree == 0

    def test_irregular_spacing(self):
        samples = [(0, 0, 0), (3, 3, 0), (20, 20, 0), (24, 24, 0), (40, 40, 0)]
        tracker = VelocityTracker(Strategy.IMPULSE)
        feed(tracker, 0, samples)
        _, vx, _ = tracker.get_velocity(0)
        assert math.isclose(vx, 1000.0, rel_tol=1e-6)
