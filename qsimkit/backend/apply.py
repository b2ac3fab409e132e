"""Local gate application on a statevector buffer.

Applying a ``k``-qubit gate never builds the ``2**N x 2**N`` operator.
The amplitude buffer is viewed as an ``N``-axis tensor of size 2 per axis,
the target axes are moved to the front (in the caller's order) and the
result is flattened to a ``(2**k, 2**(N-k))`` block. Each column of that
block is one group of ``2**k`` amplitudes that differ only in the target
bits; left-multiplying the block by the gate matrix updates every group at
once, and the result is scattered back into the same buffer.

Convention: qubit 0 is the least significant bit of the basis index, and
the first qubit of the target list is the most significant bit of the
gate's row/column index.
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence, Tuple

import torch

from qsimkit.diagnostics import assert_normalized, debug_atol, is_debug_enabled
from qsimkit.errors import (
    ArityMismatchError,
    IndexOutOfRangeError,
    InvalidSizeError,
    InvalidTargetError,
)
from qsimkit.gates.gate import Gate
from qsimkit.logging import get_logger

logger = get_logger(__name__)


def infer_num_qubits(state: torch.Tensor) -> int:
    """
    Infer the number of qubits from a 1D statevector of length 2**n.

    Raises
    ------
    InvalidSizeError
        If state is not 1D or its length is not a power of 2 (>= 2).
    """
    if state.dim() != 1:
        raise InvalidSizeError(
            f"Statevector must be a 1D tensor, got shape {tuple(state.shape)}."
        )
    dim = state.shape[0]
    if dim < 2 or dim & (dim - 1) != 0:
        raise InvalidSizeError(
            f"Statevector length must be a power of 2 (>= 2), got {dim}."
        )
    return dim.bit_length() - 1


def validate_targets(qubits: Sequence[int], n_qubits: int) -> Tuple[int, ...]:
    """
    Check a target list against a register of ``n_qubits`` lines.

    The order of ``qubits`` is preserved.

    Raises
    ------
    InvalidTargetError
        If the list is empty or contains duplicates.
    IndexOutOfRangeError
        If an index lies outside ``[0, n_qubits)``.
    """
    targets = tuple(int(q) for q in qubits)
    if not targets:
        raise InvalidTargetError("Target list must name at least one qubit.")
    for q in targets:
        if q < 0 or q >= n_qubits:
            raise IndexOutOfRangeError(
                f"qubit index {q} out of range [0, {n_qubits})"
            )
    if len(set(targets)) != len(targets):
        raise InvalidTargetError(
            f"Target list {targets} contains duplicate qubit indices."
        )
    return targets


def _column_chunks(n_columns: int, workers: int) -> list[tuple[int, int]]:
    size = math.ceil(n_columns / workers)
    return [(lo, min(lo + size, n_columns)) for lo in range(0, n_columns, size)]


def _apply_to_groups(
    matrix: torch.Tensor,
    groups: torch.Tensor,
    workers: int,
    parallel_threshold: int,
) -> torch.Tensor:
    """Multiply every amplitude group (column) by ``matrix``."""
    n_columns = groups.shape[1]
    if workers <= 1 or n_columns < parallel_threshold:
        return matrix @ groups

    # Columns are disjoint, so chunks need no synchronisation.
    updated = torch.empty_like(groups)

    def work(bounds: tuple[int, int]) -> None:
        lo, hi = bounds
        updated[:, lo:hi] = matrix @ groups[:, lo:hi]

    chunks = _column_chunks(n_columns, workers)
    logger.debug(
        "Applying %dx%d matrix to %d groups in %d chunks",
        matrix.shape[0],
        matrix.shape[1],
        n_columns,
        len(chunks),
    )
    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(work, chunks))
    return updated


def apply_local_transform(
    state: torch.Tensor,
    qubits: Sequence[int],
    matrix: torch.Tensor,
    n_qubits: int | None = None,
    workers: int = 1,
    parallel_threshold: int = 1 << 14,
) -> torch.Tensor:
    """
    Apply a ``k``-qubit unitary to the given qubit lines, in place.

    Args:
        state: Contiguous 1D complex statevector of length 2**n_qubits. It
            is modified in place.
        qubits: Target qubit indices; order decides which line maps to which
            bit of the matrix index (first = most significant).
        matrix: Gate matrix of shape (2**k, 2**k) with k = len(qubits).
        n_qubits: Number of qubits. If None, inferred from the state length.
        workers: Threads used to process amplitude groups.
        parallel_threshold: Minimum number of groups before threads are used.

    Returns:
        ``state`` itself, after the update.

    Raises:
        InvalidTargetError: Empty or duplicate target list.
        IndexOutOfRangeError: Target index outside the register.
        ArityMismatchError: Matrix size does not match the number of targets.

    All validation happens before the buffer is touched.
    """
    if not torch.is_complex(state):
        raise ValueError(f"state must be complex dtype, got {state.dtype}")
    if not state.is_contiguous():
        raise ValueError("state must be contiguous to be updated in place")

    inferred = infer_num_qubits(state)
    if n_qubits is None:
        n_qubits = inferred
    elif n_qubits != inferred:
        raise InvalidSizeError(
            f"state dimension {state.shape[0]} does not match "
            f"2**n_qubits = {2**n_qubits}"
        )

    targets = validate_targets(qubits, n_qubits)
    k = len(targets)
    dim_k = 1 << k
    if matrix.dim() != 2 or tuple(matrix.shape) != (dim_k, dim_k):
        raise ArityMismatchError(
            f"Gate matrix of shape {tuple(matrix.shape)} cannot act on "
            f"{k} qubit(s) {targets}; expected ({dim_k}, {dim_k})."
        )

    matrix = matrix.to(dtype=state.dtype, device=state.device)

    # Axis 0 of the tensor view is qubit n_qubits - 1 (the MSB).
    axes = [n_qubits - 1 - q for q in targets]
    moved = state.view([2] * n_qubits).movedim(axes, list(range(k)))
    groups = moved.reshape(dim_k, -1)

    updated = _apply_to_groups(matrix, groups, workers, parallel_threshold)
    moved.copy_(updated.reshape(moved.shape))

    if is_debug_enabled():
        assert_normalized(state, atol=debug_atol())

    return state


def apply_gate(
    state: torch.Tensor,
    gate: Gate,
    qubits: Sequence[int],
    n_qubits: int | None = None,
    workers: int = 1,
    parallel_threshold: int = 1 << 14,
) -> torch.Tensor:
    """
    Apply a :class:`Gate` to the given qubits of ``state``, in place.

    The named identity gate is validated and then skipped, so it leaves the
    amplitudes bit-for-bit unchanged.
    """
    if n_qubits is None:
        n_qubits = infer_num_qubits(state)
    targets = validate_targets(qubits, n_qubits)
    if gate.arity != len(targets):
        raise ArityMismatchError(
            f"Gate {gate.description} acts on {gate.arity} qubit(s) but "
            f"{len(targets)} target(s) were given: {targets}."
        )
    if gate.is_identity:
        return state

    matrix = gate.matrix(dtype=state.dtype, device=state.device)
    return apply_local_transform(
        state,
        targets,
        matrix,
        n_qubits=n_qubits,
        workers=workers,
        parallel_threshold=parallel_threshold,
    )
