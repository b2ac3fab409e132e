"""Circuit IR for quantum circuits."""

from .core import (
    BarrierStep,
    GateStep,
    MeasureStep,
    PeekStep,
    QuantumCircuit,
    ResetStep,
    Step,
)
from .register import ClassicalRegister, Condition

__all__ = [
    "QuantumCircuit",
    "GateStep",
    "MeasureStep",
    "PeekStep",
    "ResetStep",
    "BarrierStep",
    "Step",
    "ClassicalRegister",
    "Condition",
]
