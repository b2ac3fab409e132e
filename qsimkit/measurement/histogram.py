"""Histogram of classical register values over repeated runs."""

from __future__ import annotations

import threading
from typing import Dict, Hashable, List, Mapping, Optional, Tuple, TypeVar

import torch

K = TypeVar("K", bound=Hashable)


def counts_to_probs(
    counts: Mapping[K, int],
) -> Dict[K, float]:
    """
    Convert integer counts into a probability distribution.

    Parameters
    ----------
    counts:
        Mapping from outcome (integer value or bitstring) to non-negative
        integer count.

    Returns
    -------
    Dict
        Mapping from outcome to probability, summing to 1.0.
    """
    total = sum(counts.values())
    if total <= 0:
        raise ValueError("Total count must be positive.")
    return {k: v / float(total) for k, v in counts.items()}


class Histogram:
    """
    Thread-safe counts of classical register values.

    Keys are integers formed from the recorded classical bits with slot 0
    as the least significant bit. Several worker threads may record into
    the same histogram, or build private histograms and :meth:`merge` them.

    Parameters
    ----------
    n_bits:
        Width of the classical register; fixes the length of
        :meth:`as_vector` and of the keys of :meth:`as_strings`.
    counts:
        Optional initial counts.
    """

    def __init__(self, n_bits: int, counts: Optional[Mapping[int, int]] = None):
        if n_bits < 0:
            raise ValueError(f"n_bits must be >= 0, got {n_bits}")
        self._n_bits = int(n_bits)
        self._counts: Dict[int, int] = {}
        self._lock = threading.Lock()
        if counts:
            for value, count in counts.items():
                self.record(value, count)

    @property
    def n_bits(self) -> int:
        return self._n_bits

    @property
    def total(self) -> int:
        """Total number of recorded runs."""
        with self._lock:
            return sum(self._counts.values())

    def _check_value(self, value: int) -> int:
        value = int(value)
        if value < 0 or value >= (1 << self._n_bits):
            raise ValueError(
                f"value {value} does not fit in {self._n_bits} classical bit(s)"
            )
        return value

    def record(self, value: int, count: int = 1) -> None:
        """Add ``count`` occurrences of register value ``value``."""
        value = self._check_value(value)
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        if count == 0:
            return
        with self._lock:
            self._counts[value] = self._counts.get(value, 0) + count

    def merge(self, other: "Histogram") -> None:
        """Add all counts of ``other`` into this histogram."""
        if other.n_bits != self._n_bits:
            raise ValueError(
                f"Cannot merge a {other.n_bits}-bit histogram into a "
                f"{self._n_bits}-bit one."
            )
        incoming = other.counts()
        with self._lock:
            for value, count in incoming.items():
                self._counts[value] = self._counts.get(value, 0) + count

    def counts(self) -> Dict[int, int]:
        """Return a copy of the counts, ordered by register value."""
        with self._lock:
            return dict(sorted(self._counts.items()))

    def count(self, value: int) -> int:
        """Return the number of runs that ended with register value ``value``."""
        with self._lock:
            return self._counts.get(int(value), 0)

    def as_strings(self) -> Dict[str, int]:
        """
        Return counts keyed by bitstring.

        The rightmost character is slot 0, so the string reads like the
        binary form of the integer key.
        """
        if self._n_bits == 0:
            total = self.total
            return {"": total} if total else {}
        return {
            format(value, f"0{self._n_bits}b"): count
            for value, count in self.counts().items()
        }

    def as_vector(self) -> torch.Tensor:
        """Return a dense int64 tensor of length ``2**n_bits`` with the counts."""
        vector = torch.zeros(1 << self._n_bits, dtype=torch.int64)
        for value, count in self.counts().items():
            vector[value] = count
        return vector

    def probabilities(self) -> Dict[int, float]:
        """Return relative frequencies keyed by register value."""
        return counts_to_probs(self.counts())

    def most_common(self, n: Optional[int] = None) -> List[Tuple[int, int]]:
        """
        Return ``(value, count)`` pairs, most frequent first.

        Ties are ordered by ascending register value.
        """
        ordered = sorted(self.counts().items(), key=lambda item: (-item[1], item[0]))
        return ordered if n is None else ordered[:n]

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)

    def __contains__(self, value: object) -> bool:
        with self._lock:
            return value in self._counts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Histogram):
            return NotImplemented
        return self._n_bits == other.n_bits and self.counts() == other.counts()

    def __repr__(self) -> str:
        return f"Histogram(n_bits={self._n_bits}, counts={self.counts()})"


__all__ = [
    "Histogram",
    "counts_to_probs",
]
