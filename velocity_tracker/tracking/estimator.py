"""Estimator snapshot returned by the velocity strategies."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np

MAX_DEGREE = 4
MAX_POINTER_ID = 31
MAX_POINTERS = 16

NANOS_PER_MS = 1_000_000
NANOS_PER_SECOND = 1_000_000_000
SECONDS_PER_NANO = 1e-9


class Position(NamedTuple):
    """Pointer position in input units."""

    x: float
    y: float


def _zero_coeffs() -> np.ndarray:
    return np.zeros(MAX_DEGREE + 1, dtype=np.float64)


@dataclass
class Estimator:
    """Polynomial motion model for one pointer.

    Coefficient k multiplies ``t**k`` where ``t`` is measured in seconds
    relative to ``time`` (nanoseconds). Index 1 is therefore the velocity in
    position units per second.
    """

    time: int = 0
    x_coeff: np.ndarray = field(default_factory=_zero_coeffs)
    y_coeff: np.ndarray = field(default_factory=_zero_coeffs)
    degree: int = 0
    confidence: float = 0.0

    def clear(self) -> None:
        """Reset to the no-information state."""
        self.time = 0
        self.degree = 0
        self.confidence = 0.0
        self.x_coeff[:] = 0.0
        self.y_coeff[:] = 0.0

    def velocity(self) -> tuple[float, float]:
        """Get the velocity at the time base."""
        return float(self.x_coeff[1]), float(self.y_coeff[1])

    def _elapsed(self, event_time: int) -> float:
        return (event_time - self.time) * SECONDS_PER_NANO

    def position_at(self, event_time: int) -> Position:
        """Evaluate the position polynomial at an absolute time in nanoseconds."""
        t = self._elapsed(event_time)
        powers = t ** np.arange(MAX_DEGREE + 1)
        return Position(float(self.x_coeff @ powers), float(self.y_coeff @ powers))

    def velocity_at(self, event_time: int) -> tuple[float, float]:
        """Evaluate the first derivative at an absolute time in nanoseconds."""
        t = self._elapsed(event_time)
        k = np.arange(1, MAX_DEGREE + 1)
        powers = k * t ** (k - 1)
        return float(self.x_coeff[1:] @ powers), float(self.y_coeff[1:] @ powers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Estimator):
            return NotImplemented
        return (
            self.time == other.time
            and self.degree == other.degree
            and self.confidence == other.confidence
            and np.array_equal(self.x_coeff, other.x_coeff)
            and np.array_equal(self.y_coeff, other.y_coeff)
        )
