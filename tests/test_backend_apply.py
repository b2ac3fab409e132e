"""Tests for local gate application."""

import math

import pytest
import torch

from qsimkit.backend.apply import (
    apply_gate,
    apply_local_transform,
    infer_num_qubits,
    validate_targets,
)
from qsimkit.backend.statevector import zero_state
from qsimkit.errors import (
    ArityMismatchError,
    IndexOutOfRangeError,
    InvalidSizeError,
    InvalidTargetError,
)
from qsimkit.gates import Gate
from qsimkit.gates import standard as stdgates


def random_state(n_qubits: int, generator: torch.Generator) -> torch.Tensor:
    """Return a random normalized complex128 statevector."""
    dim = 1 << n_qubits
    real = torch.randn(dim, generator=generator, dtype=torch.float64)
    imag = torch.randn(dim, generator=generator, dtype=torch.float64)
    state = torch.complex(real, imag)
    return state / torch.linalg.vector_norm(state)


def random_unitary(k: int, generator: torch.Generator) -> torch.Tensor:
    """Return a random 2**k x 2**k unitary from a QR decomposition."""
    dim = 1 << k
    real = torch.randn(dim, dim, generator=generator, dtype=torch.float64)
    imag = torch.randn(dim, dim, generator=generator, dtype=torch.float64)
    q, _ = torch.linalg.qr(torch.complex(real, imag))
    return q


def dense_operator(n_qubits: int, qubits, matrix: torch.Tensor) -> torch.Tensor:
    """Build the full 2**n x 2**n operator by explicit index bookkeeping."""
    dim = 1 << n_qubits
    k = len(qubits)
    op = torch.zeros(dim, dim, dtype=torch.complex128)
    for col in range(dim):
        local_col = 0
        for q in qubits:
            local_col = (local_col << 1) | ((col >> q) & 1)
        rest = col
        for q in qubits:
            rest &= ~(1 << q)
        for local_row in range(1 << k):
            row = rest
            for pos, q in enumerate(qubits):
                bit = (local_row >> (k - 1 - pos)) & 1
                row |= bit << q
            op[row, col] = matrix[local_row, local_col]
    return op


class TestValidation:
    """Tests for target and size validation."""

    def test_infer_num_qubits(self):
        assert infer_num_qubits(torch.zeros(8, dtype=torch.complex128)) == 3

    @pytest.mark.parametrize("length", [0, 1, 3, 6])
    def test_infer_num_qubits_rejects_bad_length(self, length):
        with pytest.raises(InvalidSizeError, match="power of 2"):
            infer_num_qubits(torch.zeros(length, dtype=torch.complex128))

    def test_infer_num_qubits_rejects_2d(self):
        with pytest.raises(InvalidSizeError, match="1D"):
            infer_num_qubits(torch.zeros(2, 2, dtype=torch.complex128))

    def test_validate_targets_preserves_order(self):
        assert validate_targets([2, 0], 3) == (2, 0)

    def test_validate_targets_errors(self):
        with pytest.raises(InvalidTargetError, match="at least one"):
            validate_targets([], 2)
        with pytest.raises(InvalidTargetError, match="duplicate"):
            validate_targets([1, 1], 2)
        with pytest.raises(IndexOutOfRangeError, match="out of range"):
            validate_targets([2], 2)
        with pytest.raises(IndexOutOfRangeError):
            validate_targets([-1], 2)


class TestSingleQubit:
    """Single-qubit gates on small registers."""

    def test_x_on_zero_gives_one(self):
        state = zero_state(1)
        apply_local_transform(state, [0], stdgates.X())
        assert torch.equal(state, torch.tensor([0, 1], dtype=torch.complex128))

    def test_x_on_qubit_one_sets_bit_one(self):
        state = zero_state(3)
        apply_local_transform(state, [1], stdgates.X())
        assert state[2].item() == 1.0
        assert (state != 0).sum().item() == 1

    def test_hadamard(self):
        state = zero_state(1)
        apply_local_transform(state, [0], stdgates.H())
        s = 1.0 / math.sqrt(2.0)
        assert torch.allclose(state, torch.tensor([s, s], dtype=torch.complex128))

    def test_returns_same_buffer(self):
        state = zero_state(2)
        out = apply_local_transform(state, [0], stdgates.H())
        assert out is state


class TestMultiQubit:
    """Target ordering and agreement with the dense operator."""

    def test_bell_state(self):
        state = zero_state(2)
        apply_local_transform(state, [0], stdgates.H())
        apply_local_transform(state, [0, 1], stdgates.CX())
        s = 1.0 / math.sqrt(2.0)
        expected = torch.tensor([s, 0, 0, s], dtype=torch.complex128)
        assert torch.allclose(state, expected)

    def test_first_target_is_control(self):
        # |q1 q0> = |01>: qubit 0 set. CX on [0, 1] flips qubit 1.
        state = zero_state(2)
        apply_local_transform(state, [0], stdgates.X())
        apply_local_transform(state, [0, 1], stdgates.CX())
        assert state[3].item() == 1.0

        # CX on [1, 0] uses qubit 1 as control, which is 0: no flip.
        state = zero_state(2)
        apply_local_transform(state, [0], stdgates.X())
        apply_local_transform(state, [1, 0], stdgates.CX())
        assert state[1].item() == 1.0

    @pytest.mark.parametrize(
        "qubits", [[0], [3], [0, 1], [1, 0], [3, 1], [0, 2, 3], [3, 0, 1], [2, 1, 0, 3]]
    )
    def test_matches_dense_operator(self, qubits, torch_rng):
        n_qubits = 4
        state = random_state(n_qubits, torch_rng)
        matrix = random_unitary(len(qubits), torch_rng)
        expected = dense_operator(n_qubits, qubits, matrix) @ state

        apply_local_transform(state, qubits, matrix)
        assert torch.allclose(state, expected, atol=1e-12)

    def test_locality(self, torch_rng):
        """Marginals of untouched qubits are unchanged by a local gate."""
        from qsimkit.backend.statevector import AmplitudeStore

        store = AmplitudeStore.from_amplitudes(random_state(4, torch_rng))
        before = store.probability_of([0, 3])
        store.apply_local_transform([1, 2], random_unitary(2, torch_rng))
        after = store.probability_of([0, 3])
        assert torch.allclose(before, after, atol=1e-12)

    def test_normalization_preserved(self, torch_rng):
        state = random_state(5, torch_rng)
        for _ in range(50):
            k = int(torch.randint(1, 4, (1,), generator=torch_rng).item())
            qubits = torch.randperm(5, generator=torch_rng)[:k].tolist()
            apply_local_transform(state, qubits, random_unitary(k, torch_rng))
        total = (state.abs() ** 2).sum().item()
        assert abs(total - 1.0) < 1e-10

    def test_deterministic(self, torch_rng):
        state = random_state(3, torch_rng)
        matrix = random_unitary(2, torch_rng)
        a = apply_local_transform(state.clone(), [2, 0], matrix)
        b = apply_local_transform(state.clone(), [2, 0], matrix)
        assert torch.equal(a, b)


class TestErrors:
    """Validation happens before the buffer is touched."""

    def test_arity_mismatch_leaves_state_unchanged(self):
        state = zero_state(2)
        apply_local_transform(state, [0], stdgates.H())
        before = state.clone()
        with pytest.raises(ArityMismatchError, match="expected \\(4, 4\\)"):
            apply_local_transform(state, [0, 1], stdgates.H())
        assert torch.equal(state, before)

    def test_out_of_range_leaves_state_unchanged(self):
        state = zero_state(2)
        before = state.clone()
        with pytest.raises(IndexOutOfRangeError):
            apply_local_transform(state, [2], stdgates.X())
        assert torch.equal(state, before)

    def test_duplicate_targets(self):
        with pytest.raises(InvalidTargetError):
            apply_local_transform(zero_state(2), [1, 1], stdgates.CX())

    def test_real_state_rejected(self):
        with pytest.raises(ValueError, match="complex dtype"):
            apply_local_transform(torch.zeros(2), [0], stdgates.X())

    def test_n_qubits_mismatch(self):
        with pytest.raises(InvalidSizeError, match="does not match"):
            apply_local_transform(zero_state(2), [0], stdgates.X(), n_qubits=3)


class TestApplyGate:
    """Tests for apply_gate with Gate values."""

    def test_named_gate(self):
        state = zero_state(2)
        apply_gate(state, Gate.named("X"), [1])
        assert state[2].item() == 1.0

    def test_identity_is_exact(self, torch_rng):
        state = random_state(3, torch_rng)
        before = state.clone()
        apply_gate(state, Gate.named("I"), [1])
        assert torch.equal(state, before)

    def test_arity_checked_against_gate(self):
        with pytest.raises(ArityMismatchError, match="acts on 2 qubit"):
            apply_gate(zero_state(2), Gate.named("CX"), [0])

    def test_complex64_state(self):
        state = zero_state(1, dtype=torch.complex64)
        apply_gate(state, Gate.named("H"), [0])
        assert state.dtype == torch.complex64
        assert abs(state[1].item() - 1.0 / math.sqrt(2.0)) < 1e-6


class TestThreadedApplication:
    """Group chunking across worker threads gives the same result."""

    @pytest.mark.parametrize("workers", [2, 3, 8])
    def test_threaded_matches_sequential(self, workers, torch_rng):
        state = random_state(6, torch_rng)
        matrix = random_unitary(2, torch_rng)

        sequential = apply_local_transform(state.clone(), [4, 1], matrix)
        threaded = apply_local_transform(
            state.clone(), [4, 1], matrix, workers=workers, parallel_threshold=1
        )
        assert torch.allclose(sequential, threaded, atol=1e-14)
