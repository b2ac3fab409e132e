"""Measurement, sampling and histogram utilities."""

from .histogram import Histogram, counts_to_probs
from .sampling import (
    Basis,
    MeasurementOutcome,
    make_generator,
    measure,
    peek,
    reset_qubits,
    select_outcome,
    uniform_draw,
)

__all__ = [
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
