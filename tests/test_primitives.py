"""Tests for the pointer id set, movement history and estimator."""
import numpy as np
import pytest

from velocity_tracker.tracking.bitset import PointerIdBits
from velocity_tracker.tracking.estimator import Estimator, Position
from velocity_tracker.tracking.history import MovementHistory, collect_track, make_movement


class TestPointerIdBits:
    def test_basic_operations(self):
        bits = PointerIdBits.of([5, 0, 3])
        assert list(bits) == [0, 3, 5]
        assert bits.count() == 3
        assert bits.has_bit(3) and not bits.has_bit(4)
        assert 5 in bits and 32 not in bits
        assert [bits.index_of_bit(n) for n in bits] == [0, 1, 2]

    def test_set_algebra(self):
        a = PointerIdBits.of([1, 2])
        b = PointerIdBits.of([2, 9])
        assert list(a.union(b)) == [1, 2, 9]
        assert list(a.intersection(b)) == [2]
        assert list(a.difference(b)) == [1]

    def test_empty(self):
        bits = PointerIdBits()
        assert bits.is_empty()
        assert not bits
        assert len(bits) == 0
        assert list(bits) == []

    @pytest.mark.parametrize("bad", [-1, 32, 100])
    def test_out_of_range(self, bad):
        with pytest.raises(ValueError):
            PointerIdBits.of([bad])
        with pytest.raises(ValueError):
            PointerIdBits().has_bit(bad)

    def test_mask_too_wide(self):
        with pytest.raises(ValueError):
            PointerIdBits(1 << 32)


class TestMovementHistory:
    def _movement(self, t, x=0.0):
        return make_movement(t, PointerIdBits.of([0]), [Position(x, 0.0)])

    def test_wraparound_evicts_oldest(self):
        history = MovementHistory(capacity=3)
        for t in range(5):
            history.append(self._movement(t))
        assert len(history) == 3
        assert [m.event_time for m in history.as_list()] == [2, 3, 4]
        assert [m.event_time for m in history.newest_first()] == [4, 3, 2]
        assert history.newest().event_time == 4

    def test_head_wraps_to_start(self):
        history = MovementHistory(capacity=2)
        history.append(self._movement(0))
        history.append(self._movement(1))
        assert history.head == 1
        history.append(self._movement(2))
        assert history.head == 0
        assert [m.event_time for m in history.newest_first()] == [2, 1]

    def test_replace_newest(self):
        history = MovementHistory(capacity=4)
        history.replace_newest(self._movement(0))
        history.append(self._movement(1, x=1.0))
        history.replace_newest(self._movement(1, x=9.0))
        assert len(history) == 2
        assert history.newest().get_position(0).x == 9.0

    def test_clear(self):
        history = MovementHistory(capacity=4)
        history.append(self._movement(0))
        history.clear()
        assert len(history) == 0
        assert history.newest() is None

    def test_remove_pointers(self):
        history = MovementHistory(capacity=4)
        history.append(make_movement(0, PointerIdBits.of([1, 4]), [(1.0, 1.0), (4.0, 4.0)]))
        history.append(make_movement(1, PointerIdBits.of([4]), [(5.0, 5.0)]))
        history.remove_pointers(PointerIdBits.of([1]))
        oldest, newest = history.as_list()
        assert list(oldest.id_bits) == [4]
        assert oldest.get_position(4) == Position(4.0, 4.0)
        assert newest.get_position(4) == Position(5.0, 5.0)

    def test_positions_must_match_ids(self):
        with pytest.raises(ValueError):
            make_movement(0, PointerIdBits.of([0, 1]), [(0.0, 0.0)])

    def test_collect_track_respects_horizon(self):
        history = MovementHistory(capacity=10)
        for t in (0, 40, 80, 120):
            history.append(self._movement(t, x=float(t)))
        track = collect_track(history, 0, horizon=80)
        assert [t for t, _ in track] == [120, 80, 40]

    def test_collect_track_stops_at_gap(self):
        history = MovementHistory(capacity=10)
        history.append(self._movement(0))
        history.append(make_movement(10, PointerIdBits.of([1]), [Position(0.0, 0.0)]))
        history.append(self._movement(20, x=20.0))
        history.append(self._movement(30, x=30.0))
        track = collect_track(history, 0, horizon=100)
        assert [t for t, _ in track] == [30, 20]


class TestEstimator:
    def test_defaults_are_cleared(self):
        estimator = Estimator()
        assert estimator.degree == 0
        assert estimator.confidence == 0.0
        assert estimator.x_coeff.shape == (5,)
        assert not np.any(estimator.y_coeff)

    def test_clear(self):
        estimator = Estimator(time=5, degree=2, confidence=0.5)
        estimator.x_coeff[1] = 3.0
        assert estimator != Estimator()
        estimator.clear()
        assert estimator == Estimator()

    def test_polynomial_evaluation(self):
        estimator = Estimator(time=0, degree=2)
        estimator.x_coeff[:3] = [1.0, 2.0, 3.0]
        estimator.y_coeff[:2] = [-1.0, 4.0]
        assert estimator.position_at(1_000_000_000) == pytest.approx((6.0, 3.0))
        assert estimator.velocity_at(1_000_000_000) == pytest.approx((8.0, 4.0))
        assert estimator.velocity() == (2.0, 4.0)
