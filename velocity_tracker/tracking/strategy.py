"""Velocity tracker strategy contract and selector."""
from __future__ import annotations

import abc
import enum
import logging
from collections.abc import Sequence

from velocity_tracker.tracking.bitset import PointerIdBits
from velocity_tracker.tracking.estimator import Estimator, Position
from velocity_tracker.tracking.history import MovementHistory, make_movement

logger = logging.getLogger(__name__)


class Strategy(enum.IntEnum):
    """Available velocity tracker algorithms."""

    DEFAULT = -1
    IMPULSE = 0
    LSQ1 = 1
    LSQ2 = 2
    LSQ3 = 3
    WLSQ2_DELTA = 4
    WLSQ2_CENTRAL = 5
    WLSQ2_RECENT = 6
    INT1 = 7
    INT2 = 8
    LEGACY = 9

    @classmethod
    def from_name(cls, name: str) -> Strategy:
        """Look up a strategy by case-insensitive name, e.g. ``"lsq2"``."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            msg = f"Unknown velocity tracker strategy {name!r}"
            raise ValueError(msg) from None


class VelocityTrackerStrategy(abc.ABC):
    """Implements a particular velocity tracker algorithm."""

    @abc.abstractmethod
    def clear(self) -> None:
        """Forget every pointer."""

    @abc.abstractmethod
    def clear_pointers(self, id_bits: PointerIdBits) -> None:
        """Forget the given pointers only."""

    @abc.abstractmethod
    def add_movement(self, event_time: int, id_bits: PointerIdBits, positions: Sequence[Position]) -> None:
        """Record positions of the pointers in ``id_bits`` at ``event_time`` (ns)."""

    @abc.abstractmethod
    def get_estimator(self, pointer_id: int) -> tuple[bool, Estimator]:
        """Estimate the pointer's motion; ``(False, cleared)`` without data."""


class BufferedVelocityTrackerStrategy(VelocityTrackerStrategy):
    """Base for strategies that fit over a shared movement history."""

    HORIZON = 100 * 1_000_000
    HISTORY_SIZE = 20
    # Replace instead of append when the new sample has the newest sample's time.
    MERGE_EQUAL_TIMES = True

    def __init__(self) -> None:
        """Initialize the history."""
        self.history = MovementHistory(self.HISTORY_SIZE)

    def clear(self) -> None:
        """Forget every pointer."""
        self.history.clear()

    def clear_pointers(self, id_bits: PointerIdBits) -> None:
        """Remove the pointers from every retained movement."""
        self.history.remove_pointers(id_bits)

    def add_movement(self, event_time: int, id_bits: PointerIdBits, positions: Sequence[Position]) -> None:
        """Store the movement in the history."""
        movement = make_movement(event_time, id_bits, positions)
        newest = self.history.newest()
        if self.MERGE_EQUAL_TIMES and newest is not None and newest.event_time == movement.event_time:
            self.history.replace_newest(movement)
        else:
            if newest is not None and movement.event_time < newest.event_time:
                logger.warning(
                    "Out-of-order movement at %d (newest %d), starting a fresh sequence",
                    movement.event_time,
                    newest.event_time,
                )
            self.history.append(movement)
