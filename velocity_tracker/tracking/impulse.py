"""Velocity tracker based on the impulse imparted by each interval.

The pointer is modelled as a unit mass. Every interval between consecutive
samples changes its velocity, and the work done to reach that velocity is
accumulated as kinetic energy ``E = v**2 / 2`` (signed). Converting the final
energy back into a velocity gives a single estimate in which each interval
counts in proportion to the momentum change it caused, instead of every
interval counting equally as in a plain average of slopes.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from velocity_tracker.tracking.estimator import NANOS_PER_MS, SECONDS_PER_NANO, Estimator
from velocity_tracker.tracking.history import collect_track
from velocity_tracker.tracking.strategy import BufferedVelocityTrackerStrategy

logger = logging.getLogger(__name__)

SQRT2 = math.sqrt(2.0)


def kinetic_energy_to_velocity(work: float) -> float:
    """Velocity of a unit mass holding the given signed kinetic energy."""
    return math.copysign(math.sqrt(abs(work)) * SQRT2, work)


def calculate_impulse_velocity(t: Sequence[int], x: Sequence[float]) -> float:
    """Estimate the velocity along one axis.

    ``t`` (nanoseconds) and ``x`` are in reverse time order, newest first.
    """
    count = len(t)
    if count < 2:  # noqa: PLR2004
        return 0.0
    if count == 2:  # noqa: PLR2004
        if t[1] == t[0]:
            logger.warning("Events have identical time stamps t=%d, setting velocity = 0", t[0])
            return 0.0
        return (x[1] - x[0]) / (SECONDS_PER_NANO * (t[1] - t[0]))

    work = 0.0
    # Start with the oldest interval and move forward in time.
    for i in range(count - 1, 0, -1):
        if t[i] == t[i - 1]:
            logger.warning("Events have identical time stamps t=%d, skipping sample", t[i])
            continue
        v_prev = kinetic_energy_to_velocity(work)
        v_curr = (x[i] - x[i - 1]) / (SECONDS_PER_NANO * (t[i] - t[i - 1]))
        work += (v_curr - v_prev) * abs(v_curr)
        if i == count - 1:
            # The pointer starts at rest, so only half the first interval's work counts.
            work *= 0.5
    return kinetic_energy_to_velocity(work)


class ImpulseVelocityTrackerStrategy(BufferedVelocityTrackerStrategy):
    """Velocity tracker that accumulates per-interval impulses."""

    HORIZON = 100 * NANOS_PER_MS
    HISTORY_SIZE = 20

    def get_estimator(self, pointer_id: int) -> tuple[bool, Estimator]:
        """Estimate a single velocity from the pointer's recent track."""
        estimator = Estimator()
        track = collect_track(self.history, pointer_id, self.HORIZON)
        if len(track) < 2:  # noqa: PLR2004
            return False, estimator

        times = [event_time for event_time, _ in track]
        estimator.time = times[0]
        estimator.x_coeff[0] = track[0][1].x
        estimator.y_coeff[0] = track[0][1].y
        estimator.x_coeff[1] = calculate_impulse_velocity(times, [p.x for _, p in track])
        estimator.y_coeff[1] = calculate_impulse_velocity(times, [p.y for _, p in track])
        estimator.degree = 1
        estimator.confidence = 1.0
        logger.debug("Pointer %d: impulse velocity over %d samples", pointer_id, len(track))
        return True, estimator
