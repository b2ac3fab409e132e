"""Tests for the amplitude store."""

import math

import numpy as np
import pytest
import torch

from qsimkit.backend.statevector import AmplitudeStore, zero_state
from qsimkit.config import SimulatorConfig
from qsimkit.errors import (
    IndexOutOfRangeError,
    InvalidSizeError,
    NormalizationDriftError,
    NormalizationDriftWarning,
    ZeroProbabilityOutcomeError,
)
from qsimkit.gates import Gate
from qsimkit.gates import standard as stdgates


def bell_store() -> AmplitudeStore:
    store = AmplitudeStore(2)
    store.apply_gate(Gate.named("H"), [0])
    store.apply_gate(Gate.named("CX"), [0, 1])
    return store


class TestZeroState:
    """Tests for zero_state function."""

    def test_zero_state_shape_and_dtype(self):
        state = zero_state(n_qubits=2)
        assert state.shape == (4,)
        assert state.dtype == torch.complex128

    def test_zero_state_amplitude(self):
        state = zero_state(n_qubits=2)
        assert state[0].item() == 1.0
        assert torch.all(state[1:] == 0)

    def test_zero_state_invalid_n_qubits(self):
        with pytest.raises(InvalidSizeError, match="n_qubits must be >= 1"):
            zero_state(n_qubits=0)

    def test_zero_state_device_parameter(self):
        state = zero_state(n_qubits=1, device="sv_cpu")
        assert state.device.type == "cpu"


class TestConstruction:
    """Tests for AmplitudeStore construction."""

    @pytest.mark.parametrize("n_qubits", [1, 2, 5])
    def test_new_store_is_all_zero_basis_state(self, n_qubits):
        store = AmplitudeStore(n_qubits)
        assert store.n_qubits == n_qubits
        assert store.dim == 2**n_qubits
        assert store.amplitude_at(0) == 1.0
        for index in range(1, store.dim):
            assert store.amplitude_at(index) == 0.0

    @pytest.mark.parametrize("n_qubits", [0, -1])
    def test_rejects_non_positive_size(self, n_qubits):
        with pytest.raises(InvalidSizeError, match="n_qubits must be >= 1"):
            AmplitudeStore(n_qubits)

    def test_rejects_size_beyond_capacity(self):
        with pytest.raises(InvalidSizeError, match="exceeds the configured maximum"):
            AmplitudeStore(4, config=SimulatorConfig(max_qubits=3))

    def test_rejects_non_integer_size(self):
        with pytest.raises(InvalidSizeError, match="must be an integer"):
            AmplitudeStore(2.0)

    def test_dtype_from_config(self):
        store = AmplitudeStore(1, config=SimulatorConfig(complex_dtype=torch.complex64))
        assert store.dtype == torch.complex64

    def test_from_amplitudes(self):
        s = 1.0 / math.sqrt(2.0)
        store = AmplitudeStore.from_amplitudes([s, 0.0, 0.0, -s])
        assert store.n_qubits == 2
        assert store.amplitude_at(3) == pytest.approx(-s)

    def test_from_amplitudes_copies(self):
        source = torch.tensor([1.0, 0.0], dtype=torch.complex128)
        store = AmplitudeStore.from_amplitudes(source)
        source[0] = 0.0
        assert store.amplitude_at(0) == 1.0

    def test_from_amplitudes_rejects_unnormalized(self):
        with pytest.raises(NormalizationDriftError, match="not normalized"):
            AmplitudeStore.from_amplitudes([1.0, 1.0])

    def test_from_amplitudes_rejects_bad_length(self):
        with pytest.raises(InvalidSizeError, match="power of 2"):
            AmplitudeStore.from_amplitudes([1.0, 0.0, 0.0])


class TestAccessors:
    """Tests for read-only accessors."""

    def test_amplitude_at_out_of_range(self):
        store = AmplitudeStore(2)
        with pytest.raises(IndexOutOfRangeError, match="basis index 4"):
            store.amplitude_at(4)
        with pytest.raises(IndexOutOfRangeError):
            store.amplitude_at(-1)

    def test_amplitudes_returns_copy(self):
        store = AmplitudeStore(1)
        amps = store.amplitudes()
        amps[0] = 0.0
        assert store.amplitude_at(0) == 1.0

    def test_copy_is_independent(self):
        store = bell_store()
        clone = store.copy()
        clone.apply_gate(Gate.named("X"), [0])
        assert store.amplitude_at(1) == 0.0
        assert clone.amplitude_at(1) != 0.0

    def test_norm(self):
        assert bell_store().norm() == pytest.approx(1.0)


class TestProbabilityOf:
    """Tests for marginal probabilities."""

    def test_full_register_gives_basis_probabilities(self, torch_rng):
        real = torch.randn(8, generator=torch_rng, dtype=torch.float64)
        state = torch.complex(real, torch.zeros_like(real))
        store = AmplitudeStore.from_amplitudes(state / torch.linalg.vector_norm(state))
        assert torch.allclose(store.probability_of([0, 1, 2]), store.probabilities())

    def test_first_qubit_is_least_significant(self):
        store = AmplitudeStore(3)
        store.apply_gate(Gate.named("X"), [2])
        # Qubit 2 set, qubit 0 clear: outcome bits (q2, q0) -> value 0b01.
        probs = store.probability_of([2, 0])
        assert probs.tolist() == [0.0, 1.0, 0.0, 0.0]
        probs = store.probability_of([0, 2])
        assert probs.tolist() == [0.0, 0.0, 1.0, 0.0]

    def test_bell_marginals(self):
        store = bell_store()
        assert torch.allclose(
            store.probability_of([0]), torch.tensor([0.5, 0.5], dtype=torch.float64)
        )
        joint = store.probability_of([0, 1])
        assert torch.allclose(
            joint, torch.tensor([0.5, 0.0, 0.0, 0.5], dtype=torch.float64)
        )

    def test_sums_to_one(self):
        store = AmplitudeStore(4)
        for q in range(4):
            store.apply_gate(Gate.named("RY", float(q) + 0.3), [q])
        probs = store.probability_of([3, 1])
        assert probs.shape == (4,)
        assert probs.sum().item() == pytest.approx(1.0)


class TestCollapse:
    """Tests for collapse."""

    def test_collapse_bell_state(self):
        store = bell_store()
        p = store.collapse([0], 1)
        assert p == pytest.approx(0.5)
        assert store.amplitude_at(3) == pytest.approx(1.0)
        assert store.amplitude_at(0) == 0.0
        assert store.norm() == pytest.approx(1.0)

    def test_collapse_is_idempotent(self):
        store = bell_store()
        store.collapse([1], 0)
        before = store.amplitudes()
        assert store.collapse([1], 0) == pytest.approx(1.0)
        assert torch.allclose(store.amplitudes(), before)

    def test_collapse_multi_qubit_outcome(self):
        store = AmplitudeStore(3)
        for q in range(3):
            store.apply_gate(Gate.named("H"), [q])
        p = store.collapse([2, 0], 0b01)
        assert p == pytest.approx(0.25)
        # Qubit 2 = 1, qubit 0 = 0; qubit 1 free.
        for index in range(8):
            expected = 1.0 / math.sqrt(2.0) if index in (4, 6) else 0.0
            assert abs(store.amplitude_at(index)) == pytest.approx(expected)

    def test_zero_probability_outcome(self):
        store = AmplitudeStore(1)
        with pytest.raises(ZeroProbabilityOutcomeError, match="probability"):
            store.collapse([0], 1)
        assert store.amplitude_at(0) == 1.0

    def test_outcome_out_of_range(self):
        with pytest.raises(IndexOutOfRangeError, match="outcome 4"):
            AmplitudeStore(2).collapse([0, 1], 4)


class TestNormalization:
    """Tests for normalization checks and reset."""

    def test_check_normalized_clean_state(self):
        assert bell_store().check_normalized(mode="error") < 1e-12

    def test_check_normalized_modes(self):
        store = AmplitudeStore(1)
        store.apply_local_transform([0], 1.001 * stdgates.I())
        with pytest.warns(NormalizationDriftWarning):
            store.check_normalized(context="after scaling", mode="warn")
        with pytest.raises(NormalizationDriftError, match="after scaling"):
            store.check_normalized(context="after scaling", mode="error")

    def test_check_normalized_uses_config_mode(self):
        store = AmplitudeStore(1, config=SimulatorConfig(norm_check="error"))
        store.apply_local_transform([0], 1.001 * stdgates.I())
        with pytest.raises(NormalizationDriftError):
            store.check_normalized()

    def test_renormalize(self):
        store = AmplitudeStore(1)
        store.apply_local_transform([0], 3.0 * stdgates.H())
        store.renormalize()
        assert store.norm() == pytest.approx(1.0)
        assert store.amplitude_at(1) == pytest.approx(1.0 / math.sqrt(2.0))

    def test_reset_all(self):
        store = bell_store()
        store.reset_all()
        assert store.amplitude_at(0) == 1.0
        assert torch.count_nonzero(store.probabilities()).item() == 1

    def test_repr(self):
        assert "n_qubits=3" in repr(AmplitudeStore(3))


def test_from_numpy_array():
    store = AmplitudeStore.from_amplitudes(np.array([0.0, 1.0j]))
    assert store.amplitude_at(1) == 1.0j
