"""Quantum gate matrices and gate values."""

from .gate import (
    GATE_ALIASES,
    NAMED_GATES,
    Gate,
    GateKind,
    NamedGateSpec,
    canonical_gate_name,
    resolve_gate,
)
from .standard import (
    CCX,
    CCZ,
    CH,
    CX,
    CY,
    CZ,
    RX,
    RY,
    RZ,
    SWAP,
    U1,
    U2,
    U3,
    H,
    I,
    S,
    Sdg,
    T,
    Tdg,
    X,
    Y,
    Z,
    controlled,
    is_unitary,
    kron,
)

__all__ = [
    "Gate",
    "GateKind",
    "NamedGateSpec",
    "NAMED_GATES",
    "GATE_ALIASES",
    "canonical_gate_name",
    "resolve_gate",
    "I",
    "X",
    "Y",
    "Z",
    "H",
    "S",
    "Sdg",
    "T",
    "Tdg",
    "RX",
    "RY",
    "RZ",
    "U1",
    "U2",
    "U3",
    "CX",
    "CY",
    "CZ",
    "CH",
    "SWAP",
    "CCX",
    "CCZ",
    "controlled",
    "kron",
    "is_unitary",
]
