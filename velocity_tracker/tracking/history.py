"""Fixed-capacity movement history shared by the buffered strategies."""
from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from velocity_tracker.tracking.bitset import PointerIdBits
from velocity_tracker.tracking.estimator import Position


@dataclass(frozen=True)
class Movement:
    """One sample: event time, ids present and their positions by ascending id."""

    event_time: int
    id_bits: PointerIdBits
    positions: tuple[Position, ...]

    def get_position(self, pointer_id: int) -> Position:
        """Get the position of a pointer present in this sample."""
        return self.positions[self.id_bits.index_of_bit(pointer_id)]

    def without(self, id_bits: PointerIdBits) -> Movement:
        """Return a copy with the given pointers removed."""
        remaining = self.id_bits.difference(id_bits)
        if remaining == self.id_bits:
            return self
        positions = tuple(self.get_position(n) for n in remaining)
        return Movement(self.event_time, remaining, positions)


class MovementHistory:
    """Ring buffer of movements.

    ``head`` is the slot of the newest movement; ``count`` the number of
    occupied slots. Appending past capacity overwrites the oldest slot.
    """

    def __init__(self, capacity: int = 20) -> None:
        """Initialize the history."""
        if capacity < 1:
            msg = f"History capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self.capacity = capacity
        self._slots: list[Movement | None] = [None] * capacity
        self.head = capacity - 1
        self.count = 0

    def clear(self) -> None:
        """Drop every movement."""
        self._slots = [None] * self.capacity
        self.head = self.capacity - 1
        self.count = 0

    def __len__(self) -> int:
        return self.count

    def newest(self) -> Movement | None:
        """Get the newest movement, if any."""
        if not self.count:
            return None
        return self._slots[self.head]

    def append(self, movement: Movement) -> None:
        """Store a movement in the next slot, evicting the oldest when full."""
        self.head = (self.head + 1) % self.capacity
        self._slots[self.head] = movement
        self.count = min(self.count + 1, self.capacity)

    def replace_newest(self, movement: Movement) -> None:
        """Overwrite the newest slot, or append when empty."""
        if not self.count:
            self.append(movement)
            return
        self._slots[self.head] = movement

    def remove_pointers(self, id_bits: PointerIdBits) -> None:
        """Remove the given pointers from every retained movement."""
        for i, movement in enumerate(self._slots):
            if movement is not None:
                self._slots[i] = movement.without(id_bits)

    def newest_first(self) -> Iterator[Movement]:
        """Iterate retained movements from newest to oldest."""
        index = self.head
        for _ in range(self.count):
            movement = self._slots[index]
            if movement is not None:
                yield movement
            index = (index - 1) % self.capacity

    def as_list(self) -> list[Movement]:
        """Return retained movements from oldest to newest."""
        return list(self.newest_first())[::-1]


def make_movement(event_time: int, id_bits: PointerIdBits, positions: Sequence[Position]) -> Movement:
    """Build a movement, checking that positions line up with the ids."""
    if len(positions) != id_bits.count():
        msg = f"Expected {id_bits.count()} positions for {id_bits!r}, got {len(positions)}"
        raise ValueError(msg)
    return Movement(int(event_time), id_bits, tuple(Position(float(p[0]), float(p[1])) for p in positions))


def collect_track(
    history: MovementHistory,
    pointer_id: int,
    horizon: int,
    allow_equal_times: bool = False,  # noqa: FBT001, FBT002
) -> list[tuple[int, Position]]:
    """Gather the pointer's contiguous recent track, newest first.

    Walking back from the newest movement, stops at the first movement that
    lacks the pointer, is older than ``horizon`` nanoseconds relative to the
    newest movement, or is not strictly older than the movement after it
    (an out-of-order timestamp starts a fresh sequence). With
    ``allow_equal_times`` movements sharing a timestamp are kept.
    """
    track: list[tuple[int, Position]] = []
    newest = history.newest()
    if newest is None:
        return track
    last_time: int | None = None
    for movement in history.newest_first():
        if not movement.id_bits.has_bit(pointer_id):
            break
        if newest.event_time - movement.event_time > horizon:
            break
        if last_time is not None and (
            movement.event_time > last_time
            or (movement.event_time == last_time and not allow_equal_times)
        ):
            break
        track.append((movement.event_time, movement.get_position(pointer_id)))
        last_time = movement.event_time
    return track
