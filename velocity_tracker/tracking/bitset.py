"""Pointer id set backed by a 32-bit mask."""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

MAX_BIT = 31
_MASK = 0xFFFFFFFF


def check_pointer_id(n: int) -> int:
    """Return the id if it is a valid pointer id, else raise ValueError."""
    if not 0 <= n <= MAX_BIT:
        msg = f"Pointer id {n} out of range [0, {MAX_BIT}]"
        raise ValueError(msg)
    return n


@dataclass(frozen=True)
class PointerIdBits:
    """Immutable set of pointer ids in [0, 31], id = bit index."""

    value: int = 0

    def __post_init__(self) -> None:
        """Validate the mask."""
        if self.value & ~_MASK:
            msg = f"Pointer id mask {self.value:#x} does not fit in 32 bits"
            raise ValueError(msg)

    @classmethod
    def of(cls, ids: Iterable[int]) -> PointerIdBits:
        """Build a set from pointer ids."""
        value = 0
        for n in ids:
            value |= 1 << check_pointer_id(int(n))
        return cls(value)

    def has_bit(self, n: int) -> bool:
        """Return True if the id is in the set."""
        return bool(self.value & (1 << check_pointer_id(n)))

    def is_empty(self) -> bool:
        """Return True if no id is set."""
        return self.value == 0

    def count(self) -> int:
        """Return the number of ids in the set."""
        return bin(self.value).count("1")

    def index_of_bit(self, n: int) -> int:
        """Return the position of the id among the set ids in ascending order."""
        return bin(self.value & ((1 << check_pointer_id(n)) - 1)).count("1")

    def union(self, other: PointerIdBits) -> PointerIdBits:
        """Return ids present in either set."""
        return PointerIdBits(self.value | other.value)

    def intersection(self, other: PointerIdBits) -> PointerIdBits:
        """Return ids present in both sets."""
        return PointerIdBits(self.value & other.value)

    def difference(self, other: PointerIdBits) -> PointerIdBits:
        """Return ids of this set that are not in other."""
        return PointerIdBits(self.value & ~other.value)

    def __iter__(self) -> Iterator[int]:
        """Iterate ids in ascending order."""
        value = self.value
        while value:
            low = value & -value
            yield low.bit_length() - 1
            value ^= low

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, n: object) -> bool:
        return isinstance(n, int) and 0 <= n <= MAX_BIT and bool(self.value & (1 << n))

    def __bool__(self) -> bool:
        return self.value != 0

    def __repr__(self) -> str:
        return f"PointerIdBits({list(self)})"
