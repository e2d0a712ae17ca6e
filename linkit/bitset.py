"""Fixed-size set of small non-negative integers backed by a Python int."""

from __future__ import annotations


class Bitset:
    """A fixed-capacity bitset used to track which operations are linearized."""

    __slots__ = ("_size", "_bits")

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"bitset size must be non-negative, got {size}")
        self._size = size
        self._bits = 0

    @property
    def size(self) -> int:
        """Number of positions the bitset can hold."""
        return self._size

    def _check(self, pos: int) -> None:
        if not 0 <= pos < self._size:
            raise IndexError(f"bit position {pos} out of range for size {self._size}")

    def clone(self) -> Bitset:
        """Return an independent copy."""
        other = Bitset(self._size)
        other._bits = self._bits
        return other

    def set(self, pos: int) -> Bitset:
        """Set the bit at ``pos`` and return this bitset."""
        self._check(pos)
        self._bits |= 1 << pos
        return self

    def clear(self, pos: int) -> Bitset:
        """Clear the bit at ``pos`` and return this bitset."""
        self._check(pos)
        self._bits &= ~(1 << pos)
        return self

    def get(self, pos: int) -> bool:
        """Whether the bit at ``pos`` is set."""
        self._check(pos)
        return bool(self._bits >> pos & 1)

    def popcount(self) -> int:
        """Number of set bits."""
        return self._bits.bit_count()

    def __contains__(self, pos: object) -> bool:
        return isinstance(pos, int) and 0 <= pos < self._size and bool(self._bits >> pos & 1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bitset):
            return NotImplemented
        return self._size == other._size and self._bits == other._bits

    def __hash__(self) -> int:
        return hash((self._size, self._bits))

    def __repr__(self) -> str:
        members = [i for i in range(self._size) if self._bits >> i & 1]
        return f"Bitset(size={self._size}, bits={members})"