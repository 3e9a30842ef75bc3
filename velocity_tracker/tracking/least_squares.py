"""Velocity tracker based on weighted least-squares polynomial regression."""
from __future__ import annotations

import enum
import logging

import numpy as np

from velocity_tracker.tracking.estimator import MAX_DEGREE, NANOS_PER_MS, SECONDS_PER_NANO, Estimator
from velocity_tracker.tracking.history import collect_track
from velocity_tracker.tracking.strategy import BufferedVelocityTrackerStrategy

logger = logging.getLogger(__name__)

# Below this, a column of the weighted design matrix is treated as linearly dependent.
SINGULAR_TOLERANCE = 1e-6


class Weighting(enum.Enum):
    """Per-sample weighting policy."""

    # All data points are equally reliable.
    NONE = "none"
    # Points clustered together in time are weighted less.
    DELTA = "delta"
    # Points within a central age window are weighted more than the youngest and oldest.
    CENTRAL = "central"
    # Points older than a certain age are weighted less.
    RECENT = "recent"


def choose_weight(weighting: Weighting, ages_ms: np.ndarray, index: int) -> float:
    """Weight of sample ``index`` in a newest-first track of ages in milliseconds."""
    if weighting is Weighting.DELTA:
        #   delta  0ms: 0.5
        #   delta 10ms: 1.0
        if index == 0:
            return 1.0
        delta_ms = float(ages_ms[index] - ages_ms[index - 1])
        if delta_ms < 0:
            return 0.5
        if delta_ms < 10:  # noqa: PLR2004
            return 0.5 + delta_ms * 0.05
        return 1.0
    if weighting is Weighting.CENTRAL:
        #   age  0ms: 0.5
        #   age 10ms: 1.0
        #   age 50ms: 1.0
        #   age 60ms: 0.5
        age_ms = float(ages_ms[index])
        if age_ms < 0:
            return 0.5
        if age_ms < 10:  # noqa: PLR2004
            return 0.5 + age_ms * 0.05
        if age_ms < 50:  # noqa: PLR2004
            return 1.0
        if age_ms < 60:  # noqa: PLR2004
            return 0.5 + (60 - age_ms) * 0.05
        return 0.5
    if weighting is Weighting.RECENT:
        #   age   0ms: 1.0
        #   age  50ms: 1.0
        #   age 100ms: 0.5
        age_ms = float(ages_ms[index])
        if age_ms < 50:  # noqa: PLR2004
            return 1.0
        if age_ms < 100:  # noqa: PLR2004
            return 0.5 + (100 - age_ms) * 0.01
        return 0.5
    return 1.0


def solve_least_squares(
    t: np.ndarray,
    y: np.ndarray,
    w: np.ndarray,
    n: int,
) -> tuple[np.ndarray, float] | None:
    """Fit ``y ~ sum(b[k] * t**k, k < n)`` minimizing the weighted squared error.

    The weighted Vandermonde matrix is factored with a QR decomposition and
    ``R b = Q^T W y`` is solved by back substitution. Returns the coefficients
    and the weighted coefficient of determination, or None when the design
    matrix is rank deficient.
    """
    a = w[:, np.newaxis] * np.power(t[:, np.newaxis], np.arange(n))
    q, r = np.linalg.qr(a)
    diag = np.abs(np.diag(r))
    if diag.size < n or diag.min() < SINGULAR_TOLERANCE:
        return None
    b = np.linalg.solve(r, q.T @ (w * y))

    # 1 - SSerr / SStot with both sums weighted; a constant signal is fully explained.
    fitted = np.power(t[:, np.newaxis], np.arange(n)) @ b
    w2 = w * w
    sserr = float(np.sum(w2 * (y - fitted) ** 2))
    sstot = float(np.sum(w2 * (y - y.mean()) ** 2))
    det = 1.0 - sserr / sstot if sstot > SINGULAR_TOLERANCE else 1.0
    return b, min(1.0, max(0.0, det))


class LeastSquaresVelocityTrackerStrategy(BufferedVelocityTrackerStrategy):
    """Velocity tracker algorithm based on least-squares polynomial regression."""

    # Sample horizon. Kept short to react to quick changes in direction.
    HORIZON = 100 * NANOS_PER_MS
    HISTORY_SIZE = 20

    def __init__(self, degree: int, weighting: Weighting = Weighting.NONE) -> None:
        """Initialize the strategy; degree must be in [0, 4]."""
        if not 0 <= degree <= MAX_DEGREE:
            msg = f"Least-squares degree must be in [0, {MAX_DEGREE}], got {degree}"
            raise ValueError(msg)
        super().__init__()
        self.degree = degree
        self.weighting = weighting

    def get_estimator(self, pointer_id: int) -> tuple[bool, Estimator]:
        """Fit the pointer's recent track."""
        estimator = Estimator()
        track = collect_track(self.history, pointer_id, self.HORIZON)
        if not track:
            return False, estimator

        newest_time = track[0][0]
        m = len(track)
        ages_ns = np.array([newest_time - event_time for event_time, _ in track], dtype=np.float64)
        xs = np.array([p.x for _, p in track], dtype=np.float64)
        ys = np.array([p.y for _, p in track], dtype=np.float64)
        weights = np.array(
            [choose_weight(self.weighting, ages_ns / NANOS_PER_MS, i) for i in range(m)],
            dtype=np.float64,
        )
        # Solve in horizon units (t in [-1, 0]) and rescale coefficients to seconds.
        scale = self.HORIZON * SECONDS_PER_NANO
        t = -ages_ns * SECONDS_PER_NANO / scale

        estimator.time = newest_time
        degree = min(self.degree, m - 1)
        while degree >= 1:
            n = degree + 1
            fit_x = solve_least_squares(t, xs, weights, n)
            fit_y = solve_least_squares(t, ys, weights, n) if fit_x is not None else None
            if fit_x is not None and fit_y is not None:
                to_seconds = scale ** -np.arange(n)
                estimator.x_coeff[:n] = fit_x[0] * to_seconds
                estimator.y_coeff[:n] = fit_y[0] * to_seconds
                estimator.degree = degree
                estimator.confidence = fit_x[1] * fit_y[1]
                logger.debug(
                    "Pointer %d: degree %d fit over %d samples, confidence %.3f",
                    pointer_id, degree, m, estimator.confidence,
                )
                return True, estimator
            logger.debug("Pointer %d: degree %d fit is singular, lowering degree", pointer_id, degree)
            degree -= 1

        # No usable motion model, but the current position is known.
        estimator.x_coeff[0] = xs[0]
        estimator.y_coeff[0] = ys[0]
        return True, estimator
