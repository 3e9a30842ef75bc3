"""Velocity tracker: per-pointer motion estimation over a pluggable strategy."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from velocity_tracker.calibration import TrackerSettings, resolve_strategy
from velocity_tracker.events import MotionAction, MotionEvent
from velocity_tracker.tracking.bitset import PointerIdBits, check_pointer_id
from velocity_tracker.tracking.estimator import MAX_POINTERS, Estimator, Position
from velocity_tracker.tracking.impulse import ImpulseVelocityTrackerStrategy
from velocity_tracker.tracking.integrating import IntegratingVelocityTrackerStrategy
from velocity_tracker.tracking.least_squares import LeastSquaresVelocityTrackerStrategy, Weighting
from velocity_tracker.tracking.legacy import LegacyVelocityTrackerStrategy
from velocity_tracker.tracking.strategy import Strategy, VelocityTrackerStrategy

logger = logging.getLogger(__name__)


def create_strategy(strategy: Strategy) -> VelocityTrackerStrategy | None:
    """Instantiate a concrete strategy, or None if it is not one."""
    if strategy is Strategy.IMPULSE:
        return ImpulseVelocityTrackerStrategy()
    if strategy is Strategy.LSQ1:
        return LeastSquaresVelocityTrackerStrategy(1)
    if strategy is Strategy.LSQ2:
        return LeastSquaresVelocityTrackerStrategy(2)
    if strategy is Strategy.LSQ3:
        return LeastSquaresVelocityTrackerStrategy(3)
    if strategy is Strategy.WLSQ2_DELTA:
        return LeastSquaresVelocityTrackerStrategy(2, Weighting.DELTA)
    if strategy is Strategy.WLSQ2_CENTRAL:
        return LeastSquaresVelocityTrackerStrategy(2, Weighting.CENTRAL)
    if strategy is Strategy.WLSQ2_RECENT:
        return LeastSquaresVelocityTrackerStrategy(2, Weighting.RECENT)
    if strategy is Strategy.INT1:
        return IntegratingVelocityTrackerStrategy(1)
    if strategy is Strategy.INT2:
        return IntegratingVelocityTrackerStrategy(2)
    if strategy is Strategy.LEGACY:
        return LegacyVelocityTrackerStrategy()
    return None


def _parse_strategy(strategy: Strategy | str | int) -> Strategy | None:
    if isinstance(strategy, Strategy):
        return strategy
    if isinstance(strategy, str):
        try:
            return Strategy.from_name(strategy)
        except ValueError:
            return None
    if isinstance(strategy, int) and not isinstance(strategy, bool):
        try:
            return Strategy(strategy)
        except ValueError:
            return None
    msg = f"Strategy must be a Strategy, name or int, got {type(strategy).__name__}"
    raise TypeError(msg)


class VelocityTracker:
    """Calculates the velocity of pointer movements over time.

    Feed samples with :meth:`add_movement` (or whole events with
    :meth:`add_movement_event`) and query :meth:`get_velocity` or
    :meth:`get_estimator` per pointer id. Not thread safe; confine an
    instance to one input-processing thread.
    """

    def __init__(
        self,
        strategy: Strategy | str | int = Strategy.DEFAULT,
        settings: TrackerSettings | None = None,
    ) -> None:
        """Initialize the tracker, falling back to the default strategy if needed."""
        self.settings = settings or TrackerSettings()
        self.last_event_time = 0
        self.current_pointer_id_bits = PointerIdBits()
        self.active_pointer_id = -1
        # Ids of the current set in the order they were introduced, newest last.
        self._introduced: list[int] = []

        requested = _parse_strategy(strategy)
        self.strategy_id = resolve_strategy(requested, self.settings) if requested is not None else None
        impl = create_strategy(self.strategy_id) if self.strategy_id is not None else None
        if impl is None:
            fallback = resolve_strategy(Strategy.DEFAULT, self.settings)
            logger.warning("Unrecognized velocity tracker strategy %r, using %s", strategy, fallback.name)
            self.strategy_id = fallback
            impl = create_strategy(fallback)
            if impl is None:
                msg = f"Default strategy must be a concrete strategy, got {fallback.name}"
                raise ValueError(msg)
        self.strategy = impl
        logger.debug("Velocity tracker using strategy %s", self.strategy_id.name)

    def clear(self) -> None:
        """Reset the tracker state for every pointer."""
        self._set_current_pointers(PointerIdBits())
        self.strategy.clear()

    def clear_pointers(self, id_bits: PointerIdBits | Iterable[int]) -> None:
        """Reset the tracker state for specific pointers.

        Call this when a pointer id is about to be reused by a different
        physical pointer.
        """
        id_bits = _as_bits(id_bits)
        self._set_current_pointers(self.current_pointer_id_bits.difference(id_bits))
        self.strategy.clear_pointers(id_bits)

    def _set_current_pointers(self, id_bits: PointerIdBits) -> None:
        """Record the current id set; the most recently introduced id is active."""
        introduced = id_bits.difference(self.current_pointer_id_bits)
        self._introduced = [n for n in self._introduced if n in id_bits]
        self._introduced.extend(introduced)
        self.current_pointer_id_bits = id_bits
        self.active_pointer_id = self._introduced[-1] if self._introduced else -1

    def add_movement(
        self,
        event_time: int,
        id_bits: PointerIdBits | Iterable[int],
        positions: Sequence[Position | tuple[float, float]],
    ) -> None:
        """Add positions for a set of pointers, ordered by ascending id."""
        id_bits = _as_bits(id_bits)
        if len(positions) != id_bits.count():
            msg = f"Expected {id_bits.count()} positions for {id_bits!r}, got {len(positions)}"
            raise ValueError(msg)
        positions = [Position(float(p[0]), float(p[1])) for p in positions]
        if id_bits.count() > MAX_POINTERS:
            logger.debug("Tracking only the first %d of %d pointers", MAX_POINTERS, id_bits.count())
            positions = positions[:MAX_POINTERS]
            id_bits = PointerIdBits.of(list(id_bits)[:MAX_POINTERS])

        event_time = int(event_time)
        if (
            not self.current_pointer_id_bits.intersection(id_bits).is_empty()
            and event_time >= self.last_event_time + self.settings.assume_stopped_time
        ):
            # No movement for too long; assume every pointer has stopped.
            logger.debug("No movement for %d ns, assuming pointers stopped", event_time - self.last_event_time)
            self.strategy.clear()

        self.last_event_time = event_time
        self._set_current_pointers(id_bits)

        self.strategy.add_movement(event_time, id_bits, positions)
        logger.debug("Movement at %d for %r: %s", event_time, id_bits, positions)

    def add_movement_event(self, event: MotionEvent) -> None:
        """Add every sample of an event, historical samples first."""
        if event.action in (MotionAction.DOWN, MotionAction.HOVER_ENTER):
            # A new gesture starts.
            self.clear()
        elif event.action is MotionAction.POINTER_DOWN:
            # The new pointer may reuse an id that belonged to another pointer.
            self.clear_pointers(PointerIdBits.of([event.action_pointer_id]))
        elif event.action not in (MotionAction.MOVE, MotionAction.HOVER_MOVE):
            # Ups and cancels carry no new movement information.
            return

        for event_time, id_bits, positions in event.samples():
            self.add_movement(event_time, id_bits, positions)

    def get_velocity(self, pointer_id: int) -> tuple[bool, float, float]:
        """Get the pointer's velocity in position units per second.

        Returns ``(False, 0.0, 0.0)`` when there is not enough movement
        information.
        """
        ok, estimator = self.get_estimator(pointer_id)
        if ok and estimator.degree >= 1:
            vx, vy = estimator.velocity()
            return True, vx, vy
        return False, 0.0, 0.0

    def get_estimator(self, pointer_id: int) -> tuple[bool, Estimator]:
        """Get an estimator of the pointer's recent movement.

        Returns ``(False, cleared estimator)`` when nothing is known about the
        pointer.
        """
        check_pointer_id(pointer_id)
        ok, estimator = self.strategy.get_estimator(pointer_id)
        if not ok:
            estimator.clear()
        return ok, estimator

    def get_active_pointer_id(self) -> int:
        """Get the active pointer id, or -1 if none."""
        return self.active_pointer_id

    def get_current_pointer_id_bits(self) -> PointerIdBits:
        """Get the pointer ids of the most recent movement."""
        return self.current_pointer_id_bits


def _as_bits(id_bits: PointerIdBits | Iterable[int]) -> PointerIdBits:
    if isinstance(id_bits, PointerIdBits):
        return id_bits
    return PointerIdBits.of(id_bits)
