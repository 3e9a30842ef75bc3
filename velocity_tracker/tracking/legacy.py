"""Pairwise velocity averaging, the tracker used before regression fitting."""
from __future__ import annotations

import logging

from velocity_tracker.tracking.estimator import NANOS_PER_MS, NANOS_PER_SECOND, Estimator
from velocity_tracker.tracking.history import collect_track
from velocity_tracker.tracking.strategy import BufferedVelocityTrackerStrategy

logger = logging.getLogger(__name__)


class LegacyVelocityTrackerStrategy(BufferedVelocityTrackerStrategy):
    """Duration-weighted average of velocities measured from the oldest sample.

    Samples sometimes arrive in bursts only a fraction of a millisecond apart,
    which would overestimate the velocity, so pairs closer than
    ``MIN_DURATION`` are skipped.
    """

    HORIZON = 200 * NANOS_PER_MS
    HISTORY_SIZE = 20
    MIN_DURATION = 10 * NANOS_PER_MS
    MERGE_EQUAL_TIMES = False

    def get_estimator(self, pointer_id: int) -> tuple[bool, Estimator]:
        """Average velocities over the pointer's recent track."""
        estimator = Estimator()
        track = collect_track(self.history, pointer_id, self.HORIZON, allow_equal_times=True)
        if not track:
            return False, estimator

        newest_time, newest_position = track[0]
        oldest_time, oldest_position = track[-1]
        accum_vx = 0.0
        accum_vy = 0.0
        last_duration = 0
        samples_used = 0
        # Oldest to newest, skipping the oldest sample itself.
        for event_time, position in reversed(track[:-1]):
            duration = event_time - oldest_time
            if duration < self.MIN_DURATION:
                continue
            scale = NANOS_PER_SECOND / duration
            vx = (position.x - oldest_position.x) * scale
            vy = (position.y - oldest_position.y) * scale
            accum_vx = (accum_vx * last_duration + vx * duration) / (duration + last_duration)
            accum_vy = (accum_vy * last_duration + vy * duration) / (duration + last_duration)
            last_duration = duration
            samples_used += 1

        # Without a qualifying pair the estimator stays cleared at degree 0.
        if samples_used:
            estimator.time = newest_time
            estimator.x_coeff[0] = newest_position.x
            estimator.y_coeff[0] = newest_position.y
            estimator.x_coeff[1] = accum_vx
            estimator.y_coeff[1] = accum_vy
            estimator.degree = 1
            estimator.confidence = 1.0
        logger.debug("Pointer %d: %d velocity pairs over %d samples", pointer_id, samples_used, len(track))
        return True, estimator
