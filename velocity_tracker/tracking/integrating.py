"""Velocity tracker that integrates kinematic state with an IIR filter."""
from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from velocity_tracker.tracking.bitset import PointerIdBits
from velocity_tracker.tracking.estimator import (
    MAX_POINTER_ID,
    NANOS_PER_MS,
    SECONDS_PER_NANO,
    Estimator,
    Position,
)
from velocity_tracker.tracking.strategy import VelocityTrackerStrategy

logger = logging.getLogger(__name__)

# Updates closer together than this are ignored.
MIN_TIME_DELTA = 2 * NANOS_PER_MS
# Filter time constant in seconds.
FILTER_TIME_CONSTANT = 0.010

# State columns
X, Y, VX, VY, AX, AY = range(6)


class IntegratingVelocityTrackerStrategy(VelocityTrackerStrategy):
    """Kinematic state estimator, one state row per pointer id.

    Degree 1 tracks position and velocity; degree 2 also tracks acceleration.
    Each update measures the velocity over the elapsed time and blends it into
    the stored state with ``alpha = dt / (FILTER_TIME_CONSTANT + dt)``.
    """

    def __init__(self, degree: int) -> None:
        """Initialize the strategy; degree must be 1 or 2."""
        if degree not in (1, 2):
            msg = f"Integrating degree must be 1 or 2, got {degree}"
            raise ValueError(msg)
        self.degree = degree
        #State is: [x, y, vx, vy, ax, ay]
        self.state = np.zeros((MAX_POINTER_ID + 1, 6), dtype=np.float64)
        self.update_time = np.zeros(MAX_POINTER_ID + 1, dtype=np.int64)
        # Number of derivatives measured so far (0 right after initialization).
        self.state_degree = np.zeros(MAX_POINTER_ID + 1, dtype=np.int8)
        self.pointer_id_bits = PointerIdBits()

    def clear(self) -> None:
        """Forget every pointer."""
        self.pointer_id_bits = PointerIdBits()

    def clear_pointers(self, id_bits: PointerIdBits) -> None:
        """Forget the given pointers only."""
        self.pointer_id_bits = self.pointer_id_bits.difference(id_bits)

    def add_movement(self, event_time: int, id_bits: PointerIdBits, positions: Sequence[Position]) -> None:
        """Update or initialize the state of every pointer in the movement."""
        if len(positions) != id_bits.count():
            msg = f"Expected {id_bits.count()} positions for {id_bits!r}, got {len(positions)}"
            raise ValueError(msg)
        for pointer_id, position in zip(id_bits, positions):
            if self.pointer_id_bits.has_bit(pointer_id):
                self.update_state(pointer_id, int(event_time), float(position[0]), float(position[1]))
            else:
                self.init_state(pointer_id, int(event_time), float(position[0]), float(position[1]))
        # Pointers missing from this movement start over next time they appear.
        self.pointer_id_bits = id_bits

    def init_state(self, pointer_id: int, event_time: int, x: float, y: float) -> None:
        """Set the state to a stationary pointer at the given position."""
        self.state[pointer_id] = 0.0
        self.state[pointer_id, X] = x
        self.state[pointer_id, Y] = y
        self.update_time[pointer_id] = event_time
        self.state_degree[pointer_id] = 0

    def update_state(self, pointer_id: int, event_time: int, x: float, y: float) -> None:
        """Blend a new position into the pointer's state."""
        elapsed = event_time - int(self.update_time[pointer_id])
        if elapsed <= 0:
            logger.warning(
                "Pointer %d: non-monotonic time %d after %d, reinitializing",
                pointer_id, event_time, int(self.update_time[pointer_id]),
            )
            self.init_state(pointer_id, event_time, x, y)
            return
        if elapsed < MIN_TIME_DELTA:
            return

        s = self.state[pointer_id]
        dt = elapsed * SECONDS_PER_NANO
        self.update_time[pointer_id] = event_time
        vel = np.array([(x - s[X]) / dt, (y - s[Y]) / dt])

        if self.state_degree[pointer_id] == 0:
            s[VX:VY + 1] = vel
            self.state_degree[pointer_id] = 1
        else:
            alpha = dt / (FILTER_TIME_CONSTANT + dt)
            if self.degree == 1:
                s[VX:VY + 1] += (vel - s[VX:VY + 1]) * alpha
            else:
                accel = (vel - s[VX:VY + 1]) / dt
                if self.state_degree[pointer_id] == 1:
                    s[AX:AY + 1] = accel
                    self.state_degree[pointer_id] = 2
                else:
                    s[AX:AY + 1] += (accel - s[AX:AY + 1]) * alpha
                s[VX:VY + 1] += (s[AX:AY + 1] * dt) * alpha
        s[X] = x
        s[Y] = y

    def get_estimator(self, pointer_id: int) -> tuple[bool, Estimator]:
        """Report the stored kinematic state."""
        estimator = Estimator()
        if not self.pointer_id_bits.has_bit(pointer_id):
            return False, estimator
        s = self.state[pointer_id]
        estimator.time = int(self.update_time[pointer_id])
        estimator.degree = self.degree
        estimator.confidence = 1.0
        estimator.x_coeff[0] = s[X]
        estimator.y_coeff[0] = s[Y]
        estimator.x_coeff[1] = s[VX]
        estimator.y_coeff[1] = s[VY]
        if self.degree == 2:  # noqa: PLR2004
            estimator.x_coeff[2] = s[AX] / 2
            estimator.y_coeff[2] = s[AY] / 2
        return True, estimator
