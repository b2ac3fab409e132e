"""Measurement and sampling on an :class:`AmplitudeStore`.

A measurement of qubits ``q_0 .. q_{k-1}`` computes the marginal outcome
distribution, draws one uniform number from the run's generator, selects
the outcome whose cumulative interval contains the draw, and collapses the
store onto it. Outcome integers are read with ``qubits[0]`` as the least
significant bit, matching the classical register layout.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple, Union

import numpy as np
import torch

from qsimkit.backend.apply import validate_targets
from qsimkit.core.device import Device, resolve_device
from qsimkit.gates.gate import Gate
from qsimkit.logging import get_logger

if TYPE_CHECKING:
    from qsimkit.backend.statevector import AmplitudeStore

logger = get_logger(__name__)


class Basis(enum.Enum):
    """
    Measurement basis.

    ``X`` and ``Y`` measurements rotate each qubit into the computational
    basis first (H, respectively S† followed by H) and measure in Z. The
    rotation stays applied afterwards.
    """

    Z = "z"
    X = "x"
    Y = "y"

    @classmethod
    def coerce(cls, basis: Union["Basis", str]) -> "Basis":
        """Accept a :class:`Basis` or its letter ("x", "Y", ...)."""
        if isinstance(basis, cls):
            return basis
        try:
            return cls(str(basis).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown measurement basis {basis!r}; expected one of "
                f"{[b.name for b in cls]}."
            ) from None


_BASIS_CHANGE = {
    Basis.Z: (),
    Basis.X: (Gate.named("H"),),
    Basis.Y: (Gate.named("SDG"), Gate.named("H")),
}


@dataclass(frozen=True)
class MeasurementOutcome:
    """
    Result of measuring (or peeking at) a list of qubits.

    Attributes
    ----------
    qubits:
        Measured qubit indices, in the order given.
    value:
        Outcome integer; bit ``i`` is the result for ``qubits[i]``.
    bits:
        Per-qubit results, ``bits[i]`` belongs to ``qubits[i]``.
    probability:
        Probability the outcome had just before it was selected.
    """

    qubits: Tuple[int, ...]
    value: int
    bits: Tuple[int, ...]
    probability: float

    def bit(self, qubit: int) -> int:
        """Return the measured bit of ``qubit``."""
        try:
            return self.bits[self.qubits.index(qubit)]
        except ValueError:
            raise KeyError(f"qubit {qubit} was not measured") from None


def make_generator(
    seed: Optional[int] = None,
    device: Device | torch.device | str | None = None,
) -> torch.Generator:
    """
    Create a torch.Generator for one execution run.

    Args:
        seed: Integer seed. If None, the generator is seeded
            non-deterministically.
        device: Device of the generator. Defaults to CPU.
    """
    qdevice = resolve_device(device)
    generator = torch.Generator(device=qdevice.as_torch_device())
    if seed is None:
        generator.seed()
    else:
        generator.manual_seed(int(seed))
    return generator


def uniform_draw(generator: torch.Generator) -> float:
    """Draw one float64 uniformly from ``[0, 1)``."""
    sample = torch.rand(
        1, generator=generator, dtype=torch.float64, device=generator.device
    )
    return float(sample.item())


def select_outcome(
    probabilities: Union[torch.Tensor, np.ndarray, Sequence[float]],
    draw: float,
    min_probability: float = 0.0,
) -> int:
    """
    Select an outcome by cumulative-interval search.

    Outcome ``j`` owns the interval ``[p_0 + ... + p_{j-1}, p_0 + ... + p_j)``
    and is selected when ``draw`` falls into it. Outcomes whose probability
    is at most ``min_probability`` own an empty interval and are never
    selected. A draw past the last interval, which can only happen through
    floating-point round-off, selects the last selectable outcome.

    Parameters
    ----------
    probabilities:
        Non-negative outcome probabilities in ascending outcome order.
    draw:
        Uniform number in ``[0, 1)``.
    min_probability:
        Probabilities at or below this value count as zero. Measurements
        pass ``config.zero_probability_atol`` so the selected outcome can
        always be collapsed onto.

    Returns
    -------
    int
        Index of the selected outcome.

    Raises
    ------
    ValueError
        If ``draw`` is outside ``[0, 1)``, or the probabilities are empty,
        negative or all zero.
    """
    if not 0.0 <= draw < 1.0:
        raise ValueError(f"draw must lie in [0, 1), got {draw}")

    if isinstance(probabilities, torch.Tensor):
        probs = probabilities.detach().to(dtype=torch.float64, device="cpu")
    else:
        probs = torch.as_tensor(np.asarray(probabilities, dtype=np.float64))
    probs = probs.reshape(-1)

    if probs.numel() == 0:
        raise ValueError("probabilities must not be empty.")
    if torch.any(probs < 0.0):
        raise ValueError("probabilities contain negative values.")
    if not torch.any(probs > 0.0):
        raise ValueError("probabilities are all zero.")

    selectable = probs > min_probability
    candidates = torch.nonzero(selectable).reshape(-1)
    if candidates.numel() == 0:
        raise ValueError(
            f"no outcome has probability above {min_probability:.1e}."
        )

    cumulative = torch.cumsum(torch.where(selectable, probs, 0.0), dim=0)
    index = int(
        torch.searchsorted(
            cumulative, torch.tensor([draw], dtype=torch.float64), right=True
        ).item()
    )
    if index >= probs.numel():
        return int(candidates[-1].item())
    return index


def _rotate_to_basis(
    store: "AmplitudeStore", targets: Sequence[int], basis: Basis
) -> None:
    for gate in _BASIS_CHANGE[basis]:
        for q in targets:
            store.apply_gate(gate, (q,))


def _bits_of(value: int, width: int) -> Tuple[int, ...]:
    return tuple((value >> i) & 1 for i in range(width))


def measure(
    store: "AmplitudeStore",
    qubits: Sequence[int],
    generator: torch.Generator,
    basis: Union[Basis, str] = Basis.Z,
) -> MeasurementOutcome:
    """
    Measure ``qubits`` and collapse the store onto the observed outcome.

    Exactly one uniform number is drawn from ``generator`` per call, so a
    seeded generator makes the whole run reproducible.
    """
    basis = Basis.coerce(basis)
    targets = validate_targets(qubits, store.n_qubits)
    _rotate_to_basis(store, targets, basis)

    probs = store.probability_of(targets)
    value = select_outcome(
        probs, uniform_draw(generator), store.config.zero_probability_atol
    )
    probability = store.collapse(targets, value)

    outcome = MeasurementOutcome(
        qubits=targets,
        value=value,
        bits=_bits_of(value, len(targets)),
        probability=probability,
    )
    logger.debug(
        "Measured qubits %s in %s basis: value=%d (p=%.6f)",
        targets,
        basis.name,
        value,
        probability,
    )
    return outcome


def peek(
    store: "AmplitudeStore",
    qubits: Sequence[int],
    generator: torch.Generator,
) -> MeasurementOutcome:
    """
    Sample an outcome for ``qubits`` without collapsing the store.

    This has no physical counterpart; it is useful to inspect intermediate
    states of a simulation without disturbing them.
    """
    targets = validate_targets(qubits, store.n_qubits)
    probs = store.probability_of(targets)
    value = select_outcome(
        probs, uniform_draw(generator), store.config.zero_probability_atol
    )
    return MeasurementOutcome(
        qubits=targets,
        value=value,
        bits=_bits_of(value, len(targets)),
        probability=float(probs[value].item()),
    )


def reset_qubits(
    store: "AmplitudeStore",
    qubits: Sequence[int],
    generator: torch.Generator,
) -> MeasurementOutcome:
    """
    Return ``qubits`` to |0⟩.

    The qubits are measured, and every one found in |1⟩ is flipped with an
    X gate. Entangled partners are collapsed as by any measurement.
    """
    outcome = measure(store, qubits, generator)
    flip = Gate.named("X")
    for q, bit in zip(outcome.qubits, outcome.bits):
        if bit:
            store.apply_gate(flip, (q,))
    return outcome


__all__ = [
    "Basis",
    "MeasurementOutcome",
    "make_generator",
    "uniform_draw",
    "select_outcome",
    "measure",
    "peek",
    "reset_qubits",
]
