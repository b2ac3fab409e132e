"""Circuit IR: an ordered list of gate, measurement and control steps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from qsimkit.backend.apply import validate_targets
from qsimkit.errors import ArityMismatchError, IndexOutOfRangeError, InvalidSizeError
from qsimkit.gates.gate import Gate, GateLike, resolve_gate
from qsimkit.measurement.sampling import Basis

from .register import Condition, _check_slots

QubitArg = Union[int, Sequence[int]]


@dataclass(frozen=True)
class GateStep:
    """
    Application of ``gate`` to ``qubits``.

    Attributes
    ----------
    gate:
        The gate to apply.
    qubits:
        Target qubit indices; ``len(qubits) == gate.arity``. The first one
        is the most significant bit of the gate matrix index, so for
        controlled gates the controls come first.
    condition:
        Optional classical condition; the step is skipped when it does not
        hold.
    """

    gate: Gate
    qubits: Tuple[int, ...]
    condition: Optional[Condition] = None


@dataclass(frozen=True)
class MeasureStep:
    """
    Measurement of ``qubits`` in ``basis``.

    When ``cbits`` is given, the bit of ``qubits[i]`` is written into
    classical slot ``cbits[i]``; otherwise the measurement only collapses
    the state.
    """

    qubits: Tuple[int, ...]
    cbits: Optional[Tuple[int, ...]] = None
    basis: Basis = Basis.Z


@dataclass(frozen=True)
class PeekStep:
    """Non-collapsing sample of ``qubits`` into ``cbits``."""

    qubits: Tuple[int, ...]
    cbits: Tuple[int, ...]


@dataclass(frozen=True)
class ResetStep:
    """Return ``qubits`` to |0⟩."""

    qubits: Tuple[int, ...]


@dataclass(frozen=True)
class BarrierStep:
    """Scheduling barrier; has no effect on the state."""

    qubits: Tuple[int, ...]


Step = Union[GateStep, MeasureStep, PeekStep, ResetStep, BarrierStep]


def _as_qubits(qubits: QubitArg) -> Tuple[int, ...]:
    if isinstance(qubits, int):
        return (qubits,)
    return tuple(int(q) for q in qubits)


class QuantumCircuit:
    """
    Ordered list of steps on ``n_qubits`` qubits and ``n_cbits`` classical bits.

    Every ``add_*`` method validates its arguments against the circuit's
    registers before appending, so a rejected step leaves the circuit
    unchanged and an accepted one cannot fail validation at execution time.
    Builder methods return the circuit itself to allow chaining::

        qc = QuantumCircuit(2, 2).h(0).cx(0, 1).measure_all()

    Execution engines read :attr:`steps` and never modify the circuit.
    """

    def __init__(self, n_qubits: int, n_cbits: int = 0) -> None:
        """Initialize a QuantumCircuit."""
        if n_qubits <= 0:
            raise InvalidSizeError(
                f"QuantumCircuit requires n_qubits >= 1, got {n_qubits}."
            )
        if n_cbits < 0:
            raise InvalidSizeError(
                f"QuantumCircuit requires n_cbits >= 0, got {n_cbits}."
            )

        self._n_qubits = int(n_qubits)
        self._n_cbits = int(n_cbits)
        self._steps: List[Step] = []

    @property
    def n_qubits(self) -> int:
        """Return the number of qubits in this circuit."""
        return self._n_qubits

    @property
    def n_cbits(self) -> int:
        """Return the number of classical bits in this circuit."""
        return self._n_cbits

    @property
    def steps(self) -> Tuple[Step, ...]:
        """Return a read-only tuple of all steps."""
        return tuple(self._steps)

    def _targets(self, qubits: QubitArg) -> Tuple[int, ...]:
        return validate_targets(_as_qubits(qubits), self._n_qubits)

    def _slots(self, cbits: QubitArg) -> Tuple[int, ...]:
        return _check_slots(_as_qubits(cbits), self._n_cbits)

    def add_gate(
        self,
        gate: GateLike,
        qubits: QubitArg,
        params: Optional[Sequence[float]] = None,
        condition: Optional[Condition] = None,
    ) -> "QuantumCircuit":
        """
        Append a gate application to the circuit.

        Parameters
        ----------
        gate:
            A :class:`Gate`, a gate name such as "H", "CX" or "RX", or a
            unitary matrix.
        qubits:
            Target qubit index or indices (0-based). Their number must equal
            the gate's arity.
        params:
            Numeric parameters for parametrised named gates.
        condition:
            Optional :class:`Condition` on previously measured classical bits.

        Raises
        ------
        IndexOutOfRangeError, InvalidTargetError, ArityMismatchError
            If the targets do not fit the circuit or the gate.
        ValueError
            For unknown gate names or wrong parameter counts.
        """
        resolved = resolve_gate(gate, params)
        targets = self._targets(qubits)
        if resolved.arity != len(targets):
            raise ArityMismatchError(
                f"Gate {resolved.description} acts on {resolved.arity} qubit(s) "
                f"but {len(targets)} target(s) were given: {targets}."
            )
        if condition is not None:
            for slot in condition.slots:
                if slot >= self._n_cbits:
                    raise IndexOutOfRangeError(
                        f"Condition slot {slot} out of range for "
                        f"{self._n_cbits} classical bit(s)."
                    )

        self._steps.append(GateStep(gate=resolved, qubits=targets, condition=condition))
        return self

    def add_conditional_gate(
        self,
        slots: QubitArg,
        value: int,
        gate: GateLike,
        qubits: QubitArg,
        params: Optional[Sequence[float]] = None,
    ) -> "QuantumCircuit":
        """
        Append a gate that only runs when classical ``slots`` hold ``value``.

        ``slots[0]`` is the least significant bit of ``value``.
        """
        condition = Condition.on(_as_qubits(slots), value)
        return self.add_gate(gate, qubits, params=params, condition=condition)

    def measure(
        self,
        qubits: QubitArg,
        cbits: Optional[QubitArg] = None,
        basis: Union[Basis, str] = Basis.Z,
    ) -> "QuantumCircuit":
        """
        Append a measurement of ``qubits``.

        Parameters
        ----------
        qubits:
            Qubit index or indices to measure.
        cbits:
            Classical slots receiving the bits, one per qubit. If None the
            measurement only collapses the state.
        basis:
            Measurement basis; X and Y measurements leave their basis change
            applied.
        """
        targets = self._targets(qubits)
        slots: Optional[Tuple[int, ...]] = None
        if cbits is not None:
            slots = self._slots(cbits)
            if len(slots) != len(targets):
                raise ValueError(
                    f"measure got {len(targets)} qubit(s) but {len(slots)} "
                    f"classical slot(s)."
                )
        self._steps.append(
            MeasureStep(qubits=targets, cbits=slots, basis=Basis.coerce(basis))
        )
        return self

    def measure_all(
        self,
        cbits: Optional[Sequence[int]] = None,
        basis: Union[Basis, str] = Basis.Z,
    ) -> "QuantumCircuit":
        """Measure every qubit; qubit ``i`` goes to ``cbits[i]`` (default slot ``i``)."""
        if cbits is None:
            cbits = range(self._n_qubits)
        return self.measure(range(self._n_qubits), cbits, basis=basis)

    def peek(self, qubits: QubitArg, cbits: QubitArg) -> "QuantumCircuit":
        """Append a non-collapsing sample of ``qubits`` into ``cbits``."""
        targets = self._targets(qubits)
        slots = self._slots(cbits)
        if len(slots) != len(targets):
            raise ValueError(
                f"peek got {len(targets)} qubit(s) but {len(slots)} "
                f"classical slot(s)."
            )
        self._steps.append(PeekStep(qubits=targets, cbits=slots))
        return self

    def peek_all(self, cbits: Optional[Sequence[int]] = None) -> "QuantumCircuit":
        """Peek at every qubit; qubit ``i`` goes to ``cbits[i]`` (default slot ``i``)."""
        if cbits is None:
            cbits = range(self._n_qubits)
        return self.peek(range(self._n_qubits), cbits)

    def reset(self, qubits: QubitArg) -> "QuantumCircuit":
        """Append a reset of ``qubits`` to |0⟩."""
        self._steps.append(ResetStep(qubits=self._targets(qubits)))
        return self

    def reset_all(self) -> "QuantumCircuit":
        """Append a reset of the whole register to |0...0⟩."""
        return self.reset(range(self._n_qubits))

    def barrier(self, qubits: Optional[QubitArg] = None) -> "QuantumCircuit":
        """Append a barrier on ``qubits`` (default: all qubits)."""
        if qubits is None:
            qubits = range(self._n_qubits)
        self._steps.append(BarrierStep(qubits=self._targets(qubits)))
        return self

    # Shorthands for the standard gate library

    def i(self, q: int) -> "QuantumCircuit":
        return self.add_gate("I", q)

    def h(self, q: int) -> "QuantumCircuit":
        return self.add_gate("H", q)

    def x(self, q: int) -> "QuantumCircuit":
        return self.add_gate("X", q)

    def y(self, q: int) -> "QuantumCircuit":
        return self.add_gate("Y", q)

    def z(self, q: int) -> "QuantumCircuit":
        return self.add_gate("Z", q)

    def s(self, q: int) -> "QuantumCircuit":
        return self.add_gate("S", q)

    def sdg(self, q: int) -> "QuantumCircuit":
        return self.add_gate("SDG", q)

    def t(self, q: int) -> "QuantumCircuit":
        return self.add_gate("T", q)

    def tdg(self, q: int) -> "QuantumCircuit":
        return self.add_gate("TDG", q)

    def rx(self, theta: float, q: int) -> "QuantumCircuit":
        return self.add_gate("RX", q, params=(theta,))

    def ry(self, theta: float, q: int) -> "QuantumCircuit":
        return self.add_gate("RY", q, params=(theta,))

    def rz(self, theta: float, q: int) -> "QuantumCircuit":
        return self.add_gate("RZ", q, params=(theta,))

    def u1(self, lam: float, q: int) -> "QuantumCircuit":
        return self.add_gate("U1", q, params=(lam,))

    def u2(self, phi: float, lam: float, q: int) -> "QuantumCircuit":
        return self.add_gate("U2", q, params=(phi, lam))

    def u3(self, theta: float, phi: float, lam: float, q: int) -> "QuantumCircuit":
        return self.add_gate("U3", q, params=(theta, phi, lam))

    def cx(self, control: int, target: int) -> "QuantumCircuit":
        return self.add_gate("CX", (control, target))

    def cy(self, control: int, target: int) -> "QuantumCircuit":
        return self.add_gate("CY", (control, target))

    def cz(self, control: int, target: int) -> "QuantumCircuit":
        return self.add_gate("CZ", (control, target))

    def ch(self, control: int, target: int) -> "QuantumCircuit":
        return self.add_gate("CH", (control, target))

    def swap(self, q0: int, q1: int) -> "QuantumCircuit":
        return self.add_gate("SWAP", (q0, q1))

    def ccx(self, c0: int, c1: int, target: int) -> "QuantumCircuit":
        return self.add_gate("CCX", (c0, c1, target))

    def ccz(self, c0: int, c1: int, target: int) -> "QuantumCircuit":
        return self.add_gate("CCZ", (c0, c1, target))

    def copy(self) -> "QuantumCircuit":
        """Return a copy of this circuit. Steps are immutable and shared."""
        new = QuantumCircuit(self._n_qubits, self._n_cbits)
        new._steps.extend(self._steps)
        return new

    def __iter__(self) -> Iterator[Step]:
        return iter(tuple(self._steps))

    def __len__(self) -> int:
        """Return the number of steps in this circuit."""
        return len(self._steps)

    def num_gates(self) -> int:
        """Return the number of gate steps in this circuit."""
        return sum(1 for step in self._steps if isinstance(step, GateStep))

    def gate_counts(self) -> Dict[str, int]:
        """Return a dictionary mapping gate names to their counts."""
        counts: Dict[str, int] = {}
        for step in self._steps:
            if isinstance(step, GateStep):
                counts[step.gate.name] = counts.get(step.gate.name, 0) + 1
        return counts

    def measured_slots(self) -> Tuple[int, ...]:
        """Return the sorted classical slots written by measure or peek steps."""
        slots = set()
        for step in self._steps:
            if isinstance(step, (MeasureStep, PeekStep)) and step.cbits:
                slots.update(step.cbits)
        return tuple(sorted(slots))

    def depth(self) -> int:
        """
        Estimate the circuit depth as the minimum number of sequential layers
        required if steps that act on disjoint qubits can be run in parallel.

        Barriers add no layer but align the qubits they span.
        """
        qubit_layer = [0] * self._n_qubits
        max_layer = 0

        for step in self._steps:
            earliest = max(qubit_layer[q] for q in step.qubits)
            if isinstance(step, BarrierStep):
                for q in step.qubits:
                    qubit_layer[q] = earliest
                continue

            layer = earliest + 1
            for q in step.qubits:
                qubit_layer[q] = layer
            max_layer = max(max_layer, layer)

        return max_layer

    def __repr__(self) -> str:
        return (
            f"QuantumCircuit(n_qubits={self._n_qubits}, n_cbits={self._n_cbits}, "
            f"steps={len(self._steps)})"
        )


__all__ = [
    "GateStep",
    "MeasureStep",
    "PeekStep",
    "ResetStep",
    "BarrierStep",
    "Step",
    "QuantumCircuit",
]
