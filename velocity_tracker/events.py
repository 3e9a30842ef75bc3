"""Motion events: a batch of pointer samples delivered together."""
from __future__ import annotations

import enum
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from velocity_tracker.tracking.bitset import PointerIdBits
from velocity_tracker.tracking.estimator import Position


class MotionAction(enum.Enum):
    """What happened to the pointers in an event."""

    DOWN = "down"
    UP = "up"
    MOVE = "move"
    CANCEL = "cancel"
    POINTER_DOWN = "pointer_down"
    POINTER_UP = "pointer_up"
    HOVER_ENTER = "hover_enter"
    HOVER_MOVE = "hover_move"
    HOVER_EXIT = "hover_exit"


@dataclass(frozen=True)
class HistoricalSample:
    """Positions of every event pointer at an earlier time."""

    event_time: int
    positions: tuple[Position, ...]


@dataclass
class MotionEvent:
    """Event carrying the final sample plus older samples batched with it.

    ``pointer_ids`` lists the event's pointers in the order used by
    ``positions`` and by every historical sample; ``action_index`` selects the
    pointer a POINTER_DOWN or POINTER_UP refers to.
    """

    action: MotionAction
    event_time: int
    pointer_ids: Sequence[int]
    positions: Sequence[Position]
    history: list[HistoricalSample] = field(default_factory=list)
    action_index: int = 0

    def __post_init__(self) -> None:
        """Validate that every sample covers every pointer."""
        n = len(self.pointer_ids)
        if len(set(self.pointer_ids)) != n:
            msg = f"Duplicate pointer ids in event: {list(self.pointer_ids)}"
            raise ValueError(msg)
        if len(self.positions) != n or any(len(h.positions) != n for h in self.history):
            msg = f"Every sample must carry {n} positions"
            raise ValueError(msg)
        if n and not 0 <= self.action_index < n:
            msg = f"Action index {self.action_index} out of range for {n} pointers"
            raise ValueError(msg)

    @property
    def id_bits(self) -> PointerIdBits:
        """Pointer ids present in the event."""
        return PointerIdBits.of(self.pointer_ids)

    @property
    def action_pointer_id(self) -> int:
        """Id of the pointer the action refers to."""
        return int(self.pointer_ids[self.action_index])

    def add_historical(self, event_time: int, positions: Sequence[Position]) -> None:
        """Append an older sample; samples must be added oldest first."""
        if len(positions) != len(self.pointer_ids):
            msg = f"Every sample must carry {len(self.pointer_ids)} positions"
            raise ValueError(msg)
        self.history.append(HistoricalSample(int(event_time), tuple(Position(*p) for p in positions)))

    def samples(self) -> Iterator[tuple[int, PointerIdBits, list[Position]]]:
        """Yield ``(event_time, id_bits, positions)`` oldest first, final sample last.

        Positions are reordered by ascending pointer id.
        """
        order = sorted(range(len(self.pointer_ids)), key=lambda i: self.pointer_ids[i])
        id_bits = self.id_bits
        for h in self.history:
            yield h.event_time, id_bits, [Position(*h.positions[i]) for i in order]
        yield int(self.event_time), id_bits, [Position(*self.positions[i]) for i in order]
