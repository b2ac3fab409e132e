"""qsimkit - a PyTorch-native quantum statevector simulator."""

__version__ = "0.1.0"

# Backend operations
from .backend import (
    AmplitudeStore,
    apply_gate,
    apply_local_transform,
    infer_num_qubits,
    validate_targets,
    zero_state,
)

# Circuit IR
from .circuit import (
    BarrierStep,
    ClassicalRegister,
    Condition,
    GateStep,
    MeasureStep,
    PeekStep,
    QuantumCircuit,
    ResetStep,
)

# Configuration
from .config import (
    SimulatorConfig,
    config_context,
    get_config,
    set_config,
)
from .core import Device, default_device, device

# Diagnostics
from .diagnostics import (
    assert_normalized,
    check_normalization,
    debug_atol,
    debug_context,
    fidelity,
    is_debug_enabled,
    set_debug_enabled,
    state_norm,
    total_probability,
)

# Execution
from .engine import ExecutionResult, Executor, ShotsResult, run, run_shots

# Errors
from .errors import (
    ArityMismatchError,
    IndexOutOfRangeError,
    InvalidSizeError,
    InvalidTargetError,
    NonUnitaryGateError,
    NormalizationDriftError,
    NormalizationDriftWarning,
    QsimkitError,
    ZeroProbabilityOutcomeError,
)

# Gates
from .gates import Gate, GateKind, resolve_gate

# Logging
from .logging import configure_logging, get_logger, set_log_level

# Measurement
from .measurement import (
    Basis,
    Histogram,
    MeasurementOutcome,
    counts_to_probs,
    make_generator,
    measure,
    peek,
    reset_qubits,
    select_outcome,
    uniform_draw,
)

__all__ = [
    "__version__",
    # Backend
    "AmplitudeStore",
    "zero_state",
    "apply_gate",
    "apply_local_transform",
    "infer_num_qubits",
    "validate_targets",
    # Circuit
    "QuantumCircuit",
    "GateStep",
    "MeasureStep",
    "PeekStep",
    "ResetStep",
    "BarrierStep",
    "ClassicalRegister",
    "Condition",
    # Config
    "SimulatorConfig",
    "get_config",
    "set_config",
    "config_context",
    "Device",
    "device",
    "default_device",
    # Diagnostics
    "total_probability",
    "state_norm",
    "assert_normalized",
    "check_normalization",
    "fidelity",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    "debug_atol",
    # Execution
    "Executor",
    "ExecutionResult",
    "ShotsResult",
    "run",
    "run_shots",
    # Errors
    "QsimkitError",
    "InvalidSizeError",
    "IndexOutOfRangeError",
    "InvalidTargetError",
    "ArityMismatchError",
    "NonUnitaryGateError",
    "ZeroProbabilityOutcomeError",
    "NormalizationDriftError",
    "NormalizationDriftWarning",
    # Gates
    "Gate",
    "GateKind",
    "resolve_gate",
    # Logging
    "get_logger",
    "set_log_level",
    "configure_logging",
    # Measurement
    "Basis",
    "MeasurementOutcome",
    "make_generator",
    "uniform_draw",
    "select_outcome",
    "measure",
    "peek",
    "reset_qubits",
    "Histogram",
    "counts_to_probs",
]
