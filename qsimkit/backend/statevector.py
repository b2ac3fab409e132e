"""Statevector storage for pure quantum states.

:class:`AmplitudeStore` owns the complex amplitude vector of one register.
The vector is a single contiguous tensor that is only ever mutated in
place, through :meth:`AmplitudeStore.apply_local_transform`,
:meth:`AmplitudeStore.collapse` and the reset/renormalize helpers.

Conventions
-----------
* Qubit 0 is the least significant bit of the basis index.
* Gate matrices: the first target qubit is the most significant bit of the
  matrix row/column index.
* Outcomes: in :meth:`probability_of` and :meth:`collapse`, the outcome
  integer is read with the first listed qubit as its least significant bit,
  so measuring ``range(n_qubits)`` yields the basis index itself.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np
import torch

from qsimkit.config import SimulatorConfig, resolve_config
from qsimkit.core.device import Device, resolve_device
from qsimkit.diagnostics import check_normalization, total_probability
from qsimkit.errors import (
    IndexOutOfRangeError,
    InvalidSizeError,
    NormalizationDriftError,
    ZeroProbabilityOutcomeError,
)
from qsimkit.gates.gate import Gate
from qsimkit.logging import get_logger
from qsimkit.backend.apply import (
    apply_gate,
    apply_local_transform,
    infer_num_qubits,
    validate_targets,
)

logger = get_logger(__name__)


def zero_state(
    n_qubits: int,
    device: Device | torch.device | str | None = None,
    dtype: torch.dtype | None = None,
) -> torch.Tensor:
    """
    Create the all-zero basis state |0...0⟩ for n_qubits.

    Args:
        n_qubits: Number of qubits. Must be >= 1.
        device: Device to allocate on. Can be Device, str, torch.device, or None.
        dtype: Complex dtype. Defaults to torch.complex128.

    Returns:
        A complex tensor of shape (2**n_qubits,) with amplitude 1 at index 0.

    Raises:
        InvalidSizeError: If n_qubits < 1.
    """
    if n_qubits < 1:
        raise InvalidSizeError(f"n_qubits must be >= 1, got {n_qubits}")

    qdevice = resolve_device(device)
    if dtype is None:
        dtype = qdevice.complex_dtype

    state = torch.zeros(2**n_qubits, dtype=dtype, device=qdevice.as_torch_device())
    state[0] = 1.0 + 0.0j
    return state


def _check_register_size(n_qubits: int, config: SimulatorConfig) -> int:
    if isinstance(n_qubits, bool) or not isinstance(n_qubits, (int, np.integer)):
        raise InvalidSizeError(
            f"n_qubits must be an integer, got {type(n_qubits).__name__}"
        )
    n_qubits = int(n_qubits)
    if n_qubits < 1:
        raise InvalidSizeError(f"n_qubits must be >= 1, got {n_qubits}")
    if n_qubits > config.max_qubits:
        raise InvalidSizeError(
            f"n_qubits={n_qubits} exceeds the configured maximum of "
            f"{config.max_qubits} qubits"
        )
    return n_qubits


class AmplitudeStore:
    """
    Exclusively owned amplitude vector of an ``n_qubits`` register.

    A new store holds |0...0⟩. The store is not thread-safe; each execution
    run owns its own instance.

    Parameters
    ----------
    n_qubits:
        Register size, ``1 <= n_qubits <= config.max_qubits``.
    device:
        Device on which the amplitudes live. Defaults to CPU.
    dtype:
        Complex dtype. Defaults to ``config.complex_dtype``.
    config:
        Simulator configuration. Defaults to the process-wide config.

    Raises
    ------
    InvalidSizeError
        If ``n_qubits`` is not a positive integer within the configured
        maximum.
    """

    def __init__(
        self,
        n_qubits: int,
        device: Device | torch.device | str | None = None,
        dtype: torch.dtype | None = None,
        config: Optional[SimulatorConfig] = None,
    ) -> None:
        self._config = resolve_config(config)
        self._n_qubits = _check_register_size(n_qubits, self._config)
        self._device = resolve_device(device)
        if dtype is None:
            dtype = self._config.complex_dtype
        self._data = zero_state(self._n_qubits, device=self._device, dtype=dtype)

    @classmethod
    def from_amplitudes(
        cls,
        amplitudes: torch.Tensor | np.ndarray | Sequence[complex],
        device: Device | torch.device | str | None = None,
        dtype: torch.dtype | None = None,
        config: Optional[SimulatorConfig] = None,
    ) -> "AmplitudeStore":
        """
        Build a store holding a copy of an explicit, normalized statevector.

        Raises
        ------
        InvalidSizeError
            If the vector is not 1D with a power-of-two length, or is larger
            than the configured maximum.
        NormalizationDriftError
            If the total probability differs from 1 by more than
            ``config.atol``.
        """
        cfg = resolve_config(config)
        qdevice = resolve_device(device)
        if dtype is None:
            dtype = cfg.complex_dtype

        if isinstance(amplitudes, torch.Tensor):
            data = amplitudes.detach()
        else:
            data = torch.as_tensor(np.asarray(amplitudes, dtype=np.complex128))
        data = data.to(dtype=dtype, device=qdevice.as_torch_device()).clone()

        n_qubits = _check_register_size(infer_num_qubits(data), cfg)
        deviation = abs(float(total_probability(data).item()) - 1.0)
        if deviation > cfg.atol:
            raise NormalizationDriftError(
                f"Initial amplitudes are not normalized: total probability "
                f"deviates from 1 by {deviation:.3e} (tolerance {cfg.atol:.1e})."
            )

        store = cls.__new__(cls)
        store._config = cfg
        store._n_qubits = n_qubits
        store._device = qdevice
        store._data = data.contiguous()
        return store

    @property
    def n_qubits(self) -> int:
        """Number of qubits in the register."""
        return self._n_qubits

    @property
    def dim(self) -> int:
        """Length of the amplitude vector, ``2**n_qubits``."""
        return self._data.shape[0]

    @property
    def dtype(self) -> torch.dtype:
        """Complex dtype of the amplitudes."""
        return self._data.dtype

    @property
    def device(self) -> torch.device:
        """Torch device holding the amplitudes."""
        return self._data.device

    @property
    def config(self) -> SimulatorConfig:
        """Configuration this store validates against."""
        return self._config

    def amplitude_at(self, basis_index: int) -> complex:
        """
        Return the amplitude of basis state ``basis_index``.

        Raises
        ------
        IndexOutOfRangeError
            If ``basis_index`` is outside ``[0, 2**n_qubits)``.
        """
        index = int(basis_index)
        if index < 0 or index >= self.dim:
            raise IndexOutOfRangeError(
                f"basis index {index} out of range [0, {self.dim})"
            )
        return complex(self._data[index].item())

    def amplitudes(self) -> torch.Tensor:
        """Return a copy of the amplitude vector."""
        return self._data.clone()

    def probabilities(self) -> torch.Tensor:
        """Return ``|a_i|^2`` for every basis state as a float64 tensor."""
        return (self._data.abs() ** 2).to(torch.float64)

    def apply_local_transform(
        self, qubits: Sequence[int], matrix: torch.Tensor
    ) -> None:
        """
        Apply a ``2**k x 2**k`` unitary to qubit lines ``qubits`` in place.

        See :func:`qsimkit.backend.apply.apply_local_transform`. A failed
        validation leaves the amplitudes untouched.
        """
        apply_local_transform(
            self._data,
            qubits,
            matrix,
            n_qubits=self._n_qubits,
            workers=self._config.apply_workers,
            parallel_threshold=self._config.apply_parallel_threshold,
        )

    def apply_gate(self, gate: Gate, qubits: Sequence[int]) -> None:
        """Apply a :class:`Gate` to qubit lines ``qubits`` in place."""
        apply_gate(
            self._data,
            gate,
            qubits,
            n_qubits=self._n_qubits,
            workers=self._config.apply_workers,
            parallel_threshold=self._config.apply_parallel_threshold,
        )

    def probability_of(self, qubits: Sequence[int]) -> torch.Tensor:
        """
        Marginal outcome distribution of a qubit subset.

        Args:
            qubits: Distinct qubit indices. ``qubits[0]`` is the least
                significant bit of the outcome index.

        Returns:
            A float64 tensor of length ``2**len(qubits)``; entry ``j`` is the
            total probability of the basis states whose bits on ``qubits``
            spell ``j``.
        """
        targets = validate_targets(qubits, self._n_qubits)
        k = len(targets)
        # Last listed qubit goes to the front so it becomes the MSB.
        axes = [self._n_qubits - 1 - q for q in reversed(targets)]
        probs = self.probabilities().view([2] * self._n_qubits)
        moved = probs.movedim(axes, list(range(k)))
        return moved.reshape(1 << k, -1).sum(dim=1)

    def _outcome_mask(self, targets: Sequence[int], outcome: int) -> torch.Tensor:
        indices = torch.arange(self.dim, device=self._data.device)
        mask = torch.ones(self.dim, dtype=torch.bool, device=self._data.device)
        for position, q in enumerate(targets):
            bit = (outcome >> position) & 1
            mask &= ((indices >> q) & 1) == bit
        return mask

    def collapse(self, qubits: Sequence[int], outcome: int) -> float:
        """
        Project onto ``outcome`` for ``qubits`` and renormalize, in place.

        Args:
            qubits: Distinct qubit indices (``qubits[0]`` is the outcome LSB).
            outcome: Integer in ``[0, 2**len(qubits))``.

        Returns:
            The probability the outcome had before the collapse.

        Raises:
            IndexOutOfRangeError: If ``outcome`` does not fit in the subset.
            ZeroProbabilityOutcomeError: If the outcome's probability is at
                or below ``config.zero_probability_atol``.
        """
        targets = validate_targets(qubits, self._n_qubits)
        outcome = int(outcome)
        if outcome < 0 or outcome >= (1 << len(targets)):
            raise IndexOutOfRangeError(
                f"outcome {outcome} out of range [0, {1 << len(targets)}) "
                f"for qubits {targets}"
            )

        mask = self._outcome_mask(targets, outcome)
        probability = float(self.probabilities()[mask].sum().item())
        if probability <= self._config.zero_probability_atol:
            raise ZeroProbabilityOutcomeError(
                f"Cannot collapse qubits {targets} onto outcome {outcome}: "
                f"its probability is {probability:.3e}."
            )

        self._data[~mask] = 0.0
        self._data.mul_(1.0 / math.sqrt(probability))
        logger.debug(
            "Collapsed qubits %s onto outcome %d (p=%.6f)",
            targets,
            outcome,
            probability,
        )
        return probability

    def norm(self) -> float:
        """Return the L2 norm of the amplitude vector."""
        return math.sqrt(float(total_probability(self._data).item()))

    def check_normalized(
        self, context: Optional[str] = None, mode: Optional[str] = None
    ) -> float:
        """
        Check normalization against ``config.atol``.

        Args:
            context: Label for the drift message.
            mode: "ignore", "warn" or "error"; defaults to
                ``config.norm_check``.

        Returns:
            The absolute deviation of the total probability from 1.
        """
        if mode is None:
            mode = self._config.norm_check
        return check_normalization(
            self._data, atol=self._config.atol, mode=mode, context=context
        )

    def renormalize(self) -> None:
        """Rescale the amplitudes to unit norm, in place."""
        norm = self.norm()
        if norm == 0.0 or not math.isfinite(norm):
            raise ZeroProbabilityOutcomeError(
                f"Cannot renormalize a state with norm {norm}."
            )
        self._data.mul_(1.0 / norm)

    def reset_all(self) -> None:
        """Return the register to |0...0⟩, in place."""
        self._data.zero_()
        self._data[0] = 1.0 + 0.0j

    def copy(self) -> "AmplitudeStore":
        """Return an independent store with the same amplitudes."""
        store = AmplitudeStore.__new__(AmplitudeStore)
        store._config = self._config
        store._n_qubits = self._n_qubits
        store._device = self._device
        store._data = self._data.clone()
        return store

    def __repr__(self) -> str:
        """Return a string representation of the store."""
        return (
            f"AmplitudeStore(n_qubits={self._n_qubits}, dtype={self.dtype}, "
            f"device={self.device})"
        )


__all__ = [
    "AmplitudeStore",
    "zero_state",
]
