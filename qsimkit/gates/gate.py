"""Gate values.

A :class:`Gate` is a tagged variant: either a named member of the standard
gate library (``GateKind.NAMED``, matrix derived on demand from its name
and float parameters) or an explicit unitary matrix (``GateKind.MATRIX``,
validated once at construction). Both resolve to a ``2**k x 2**k`` tensor
through :meth:`Gate.matrix`.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np
import torch

from qsimkit.config import SimulatorConfig, resolve_config
from qsimkit.errors import NonUnitaryGateError

from . import standard


class GateKind(enum.Enum):
    """Variant tag of a :class:`Gate`."""

    NAMED = "named"
    MATRIX = "matrix"


@dataclass(frozen=True)
class NamedGateSpec:
    """Arity, parameter count and matrix factory of a named gate."""

    arity: int
    n_params: int
    factory: Callable[..., torch.Tensor]


NAMED_GATES: Dict[str, NamedGateSpec] = {
    "I": NamedGateSpec(1, 0, standard.I),
    "X": NamedGateSpec(1, 0, standard.X),
    "Y": NamedGateSpec(1, 0, standard.Y),
    "Z": NamedGateSpec(1, 0, standard.Z),
    "H": NamedGateSpec(1, 0, standard.H),
    "S": NamedGateSpec(1, 0, standard.S),
    "SDG": NamedGateSpec(1, 0, standard.Sdg),
    "T": NamedGateSpec(1, 0, standard.T),
    "TDG": NamedGateSpec(1, 0, standard.Tdg),
    "RX": NamedGateSpec(1, 1, standard.RX),
    "RY": NamedGateSpec(1, 1, standard.RY),
    "RZ": NamedGateSpec(1, 1, standard.RZ),
    "U1": NamedGateSpec(1, 1, standard.U1),
    "U2": NamedGateSpec(1, 2, standard.U2),
    "U3": NamedGateSpec(1, 3, standard.U3),
    "CX": NamedGateSpec(2, 0, standard.CX),
    "CY": NamedGateSpec(2, 0, standard.CY),
    "CZ": NamedGateSpec(2, 0, standard.CZ),
    "CH": NamedGateSpec(2, 0, standard.CH),
    "SWAP": NamedGateSpec(2, 0, standard.SWAP),
    "CCX": NamedGateSpec(3, 0, standard.CCX),
    "CCZ": NamedGateSpec(3, 0, standard.CCZ),
}

GATE_ALIASES: Dict[str, str] = {
    "ID": "I",
    "CNOT": "CX",
    "TOFFOLI": "CCX",
    "P": "U1",
}

MatrixLike = Union[torch.Tensor, np.ndarray, Sequence[Sequence[complex]]]


def canonical_gate_name(name: str) -> str:
    """Return the registry key for a gate name (case-insensitive, aliases resolved)."""
    key = name.strip().upper()
    return GATE_ALIASES.get(key, key)


def _as_matrix(matrix: MatrixLike) -> torch.Tensor:
    if isinstance(matrix, torch.Tensor):
        tensor = matrix.detach()
    else:
        tensor = torch.as_tensor(np.asarray(matrix, dtype=np.complex128))
    return tensor.to(dtype=torch.complex128, device=torch.device("cpu")).clone()


def _precision_floor(matrix: MatrixLike) -> float:
    """Smallest unitarity tolerance the input's own precision can meet."""
    if isinstance(matrix, torch.Tensor):
        if matrix.is_complex() or matrix.is_floating_point():
            return 16.0 * torch.finfo(matrix.dtype).eps
        return 16.0 * torch.finfo(torch.float64).eps
    dtype = np.asarray(matrix).dtype
    if dtype.kind not in "fc":
        dtype = np.dtype(np.float64)
    return 16.0 * float(np.finfo(dtype).eps)


def _arity_of_dimension(dim: int) -> Optional[int]:
    if dim < 2 or dim & (dim - 1) != 0:
        return None
    return dim.bit_length() - 1


@dataclass(frozen=True, eq=False)
class Gate:
    """
    A unitary transformation on a fixed number of qubit lines.

    Use :meth:`named`, :meth:`from_matrix`, :meth:`controlled` or
    :meth:`kron` to construct gates; the constructors validate their input
    so an existing ``Gate`` is always well formed.

    Attributes
    ----------
    kind:
        Variant tag.
    name:
        Canonical gate name ("H", "CX", "RX", ...) or a user label for
        matrix gates.
    arity:
        Number of qubit lines the gate acts on.
    params:
        Float parameters of a named parametrised family, empty otherwise.
    """

    kind: GateKind
    name: str
    arity: int
    params: Tuple[float, ...] = ()
    _matrix: Optional[torch.Tensor] = field(default=None, repr=False)

    @classmethod
    def named(cls, name: str, *params: float) -> "Gate":
        """
        Create a gate from the standard library.

        Raises
        ------
        ValueError
            If the name is unknown or the number of parameters is wrong.
        NonUnitaryGateError
            If a parameter is NaN or infinite.
        """
        key = canonical_gate_name(name)
        spec = NAMED_GATES.get(key)
        if spec is None:
            raise ValueError(
                f"Unsupported gate name {name!r}. "
                f"Supported gates: {', '.join(sorted(NAMED_GATES))}."
            )
        if len(params) != spec.n_params:
            raise ValueError(
                f"Gate {key} requires exactly {spec.n_params} parameter(s), "
                f"got {len(params)}."
            )
        if not all(math.isfinite(float(p)) for p in params):
            raise NonUnitaryGateError(
                f"Gate {key} parameters must be finite, got {tuple(params)}."
            )
        return cls(
            kind=GateKind.NAMED,
            name=key,
            arity=spec.arity,
            params=tuple(float(p) for p in params),
        )

    @classmethod
    def from_matrix(
        cls,
        matrix: MatrixLike,
        name: str = "U",
        config: Optional[SimulatorConfig] = None,
        atol: Optional[float] = None,
    ) -> "Gate":
        """
        Create a gate from an explicit unitary matrix.

        The arity is derived from the matrix size, which must be ``2**k``
        for some ``k >= 1``. The matrix is copied, so later changes to the
        caller's array do not affect the gate.

        Raises
        ------
        NonUnitaryGateError
            If the matrix is not square with a power-of-two size, or not
            unitary within ``atol``. The default is ``config.unitarity_atol``,
            widened to 16 machine epsilons of the input dtype so single
            precision matrices are judged at their own precision.
        """
        tensor = _as_matrix(matrix)
        if tensor.dim() != 2 or tensor.shape[0] != tensor.shape[1]:
            raise NonUnitaryGateError(
                f"Gate matrix must be square, got shape {tuple(tensor.shape)}."
            )
        arity = _arity_of_dimension(tensor.shape[0])
        if arity is None:
            raise NonUnitaryGateError(
                f"Gate matrix size must be a power of 2 (>= 2), "
                f"got {tensor.shape[0]}."
            )

        if atol is None:
            atol = max(resolve_config(config).unitarity_atol, _precision_floor(matrix))
        if not standard.is_unitary(tensor, atol=atol):
            raise NonUnitaryGateError(
                f"Matrix for gate {name!r} is not unitary within tolerance {atol}."
            )
        return cls(kind=GateKind.MATRIX, name=name, arity=arity, _matrix=tensor)

    @classmethod
    def controlled(cls, base: "Gate", n_controls: int = 1) -> "Gate":
        """Controlled version of ``base``; the controls precede its targets."""
        matrix = standard.controlled(base.matrix(), n_controls=n_controls)
        return cls(
            kind=GateKind.MATRIX,
            name="C" * n_controls + base.description,
            arity=base.arity + n_controls,
            _matrix=matrix,
        )

    @classmethod
    def kron(cls, first: "Gate", second: "Gate") -> "Gate":
        """Gate applying ``first`` and ``second`` side by side on disjoint qubits."""
        return cls(
            kind=GateKind.MATRIX,
            name=f"{first.description}⊗{second.description}",
            arity=first.arity + second.arity,
            _matrix=standard.kron(first.matrix(), second.matrix()),
        )

    @property
    def dim(self) -> int:
        """Size of the gate matrix, ``2**arity``."""
        return 1 << self.arity

    @property
    def is_identity(self) -> bool:
        """True for the named identity gate, which can be skipped exactly."""
        return self.kind is GateKind.NAMED and self.name == "I"

    @property
    def description(self) -> str:
        """Short label such as ``"H"`` or ``"RX(0.5000)"``."""
        if not self.params:
            return self.name
        args = ", ".join(f"{p:.4f}" for p in self.params)
        return f"{self.name}({args})"

    def matrix(
        self,
        dtype: torch.dtype | None = None,
        device: torch.device | None = None,
    ) -> torch.Tensor:
        """
        Resolve the ``2**arity x 2**arity`` matrix of this gate.

        Args:
            dtype: Complex dtype. Defaults to torch.complex128.
            device: PyTorch device. Defaults to CPU.
        """
        if dtype is None:
            dtype = torch.complex128
        if device is None:
            device = torch.device("cpu")

        if self.kind is GateKind.NAMED:
            spec = NAMED_GATES[self.name]
            return spec.factory(*self.params, dtype=dtype, device=device)
        return self._matrix.to(dtype=dtype, device=device)

    def __repr__(self) -> str:
        """Return a string representation of the gate."""
        return f"Gate({self.description}, arity={self.arity}, kind={self.kind.value})"


GateLike = Union[Gate, str, torch.Tensor, np.ndarray]


def resolve_gate(
    gate: GateLike,
    params: Optional[Sequence[float]] = None,
    config: Optional[SimulatorConfig] = None,
) -> Gate:
    """
    Turn a gate name, a matrix or a :class:`Gate` into a :class:`Gate`.

    ``params`` is only accepted together with a gate name.
    """
    if isinstance(gate, Gate):
        if params:
            raise ValueError("params can only be given together with a gate name.")
        return gate
    if isinstance(gate, str):
        return Gate.named(gate, *(params or ()))
    if isinstance(gate, (torch.Tensor, np.ndarray)):
        if params:
            raise ValueError("params can only be given together with a gate name.")
        return Gate.from_matrix(gate, config=config)
    raise TypeError(
        f"gate must be a Gate, a gate name or a matrix, got {type(gate).__name__}"
    )
