"""Backend implementations for statevector simulation."""

from .apply import (
    apply_gate,
    apply_local_transform,
    infer_num_qubits,
    validate_targets,
)
from .statevector import AmplitudeStore, zero_state

__all__ = [
    "AmplitudeStore",
    "zero_state",
    "apply_gate",
    "apply_local_transform",
    "infer_num_qubits",
    "validate_targets",
]
