"""Classical register and the conditions that read it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Sequence, Tuple, Union

from qsimkit.errors import IndexOutOfRangeError, InvalidSizeError, InvalidTargetError


def _check_slots(slots: Iterable[int], n_bits: Optional[int] = None) -> Tuple[int, ...]:
    checked = tuple(int(s) for s in slots)
    if not checked:
        raise InvalidTargetError("Classical slot list must not be empty.")
    for s in checked:
        if s < 0 or (n_bits is not None and s >= n_bits):
            bound = "" if n_bits is None else f" for {n_bits} classical bit(s)"
            raise IndexOutOfRangeError(f"classical slot {s} out of range{bound}")
    if len(set(checked)) != len(checked):
        raise InvalidTargetError(
            f"Classical slot list {checked} contains duplicates."
        )
    return checked


@dataclass(frozen=True)
class Condition:
    """
    Predicate over classical register slots.

    The condition holds when the bits in ``slots``, read with ``slots[0]``
    as the least significant bit, spell the integer ``value``. A slot that
    was never written reads as 0, as in :meth:`ClassicalRegister.value`.
    """

    slots: Tuple[int, ...]
    value: int

    def __post_init__(self) -> None:
        """Validate slots and value."""
        object.__setattr__(self, "slots", _check_slots(self.slots))
        object.__setattr__(self, "value", int(self.value))
        if self.value < 0 or self.value >= (1 << len(self.slots)):
            raise ValueError(
                f"Condition value {self.value} does not fit in "
                f"{len(self.slots)} classical bit(s)"
            )

    @classmethod
    def on(cls, slots: Union[int, Sequence[int]], value: int) -> "Condition":
        """Build a condition from a single slot or a slot list."""
        if isinstance(slots, int):
            slots = (slots,)
        return cls(tuple(slots), value)

    def is_satisfied(self, register: "ClassicalRegister") -> bool:
        """Evaluate the condition against a register snapshot."""
        return register.value(self.slots) == self.value

    def __str__(self) -> str:
        return f"c{list(self.slots)} == {self.value}"


class ClassicalRegister:
    """
    Bits recorded by measurements during one execution run.

    Slots start out unrecorded; only measurement steps write them.

    Parameters
    ----------
    n_bits:
        Number of slots.
    """

    def __init__(self, n_bits: int) -> None:
        if n_bits < 0:
            raise InvalidSizeError(f"n_bits must be >= 0, got {n_bits}")
        self._n_bits = int(n_bits)
        self._bits: Dict[int, int] = {}

    @property
    def n_bits(self) -> int:
        return self._n_bits

    def _check_slot(self, slot: int) -> int:
        slot = int(slot)
        if slot < 0 or slot >= self._n_bits:
            raise IndexOutOfRangeError(
                f"classical slot {slot} out of range [0, {self._n_bits})"
            )
        return slot

    def record(self, slot: int, bit: int) -> None:
        """Write ``bit`` (0 or 1) into ``slot``, replacing any earlier value."""
        slot = self._check_slot(slot)
        if bit not in (0, 1):
            raise ValueError(f"bit must be 0 or 1, got {bit!r}")
        self._bits[slot] = int(bit)

    def get(self, slot: int) -> Optional[int]:
        """Return the bit in ``slot``, or None if it was never written."""
        return self._bits.get(self._check_slot(slot))

    def is_recorded(self, slot: int) -> bool:
        return self._check_slot(slot) in self._bits

    def value(self, slots: Optional[Sequence[int]] = None) -> int:
        """
        Integer formed from ``slots`` (default: all), first slot least significant.

        Unrecorded slots read as 0.
        """
        if slots is None:
            slots = range(self._n_bits)
        word = 0
        for position, slot in enumerate(slots):
            word |= self._bits.get(self._check_slot(slot), 0) << position
        return word

    def as_dict(self) -> Dict[int, int]:
        """Return the recorded slots as a ``slot -> bit`` dict."""
        return dict(sorted(self._bits.items()))

    def copy(self) -> "ClassicalRegister":
        new = ClassicalRegister(self._n_bits)
        new._bits = dict(self._bits)
        return new

    def __iter__(self) -> Iterator[Optional[int]]:
        """Iterate over all slots in order, yielding None for unrecorded ones."""
        return (self._bits.get(s) for s in range(self._n_bits))

    def __len__(self) -> int:
        return self._n_bits

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClassicalRegister):
            return NotImplemented
        return self._n_bits == other._n_bits and self._bits == other._bits

    def __repr__(self) -> str:
        bits = "".join(
            "-" if b is None else str(b) for b in reversed(list(self))
        )
        return f"ClassicalRegister(n_bits={self._n_bits}, bits='{bits}')"


__all__ = [
    "ClassicalRegister",
    "Condition",
]
