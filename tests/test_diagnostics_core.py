"""Tests for core diagnostic functions."""

import math
import warnings

import pytest
import torch

from qsimkit.diagnostics import (
    assert_normalized,
    check_normalization,
    fidelity,
    state_norm,
    total_probability,
)
from qsimkit.errors import NormalizationDriftError, NormalizationDriftWarning


def test_state_norm_and_assert_normalized() -> None:
    """Test state_norm and assert_normalized on normalized states."""
    state = torch.tensor([1.0, 0.0], dtype=torch.complex128)
    n = state_norm(state)
    assert n.shape == ()
    assert torch.allclose(n, torch.tensor(1.0, dtype=torch.float64))

    assert_normalized(state, atol=1e-9)


def test_total_probability_batched() -> None:
    inv_sqrt2 = 1.0 / math.sqrt(2.0)
    states = torch.tensor(
        [[1.0, 0.0], [0.0, 1.0j], [inv_sqrt2, -inv_sqrt2]],
        dtype=torch.complex128,
    )
    totals = total_probability(states)
    assert totals.shape == (3,)
    assert torch.allclose(totals, torch.ones(3, dtype=torch.float64))


def test_assert_normalized_raises_for_non_unit_state() -> None:
    state = torch.tensor([2.0, 0.0], dtype=torch.complex128)
    with pytest.raises(NormalizationDriftError, match="not normalized"):
        assert_normalized(state, atol=1e-6)


def test_assert_normalized_non_finite() -> None:
    state = torch.tensor([float("inf"), 0.0], dtype=torch.complex128)
    with pytest.raises(NormalizationDriftError, match="non-finite"):
        assert_normalized(state, atol=1e-6)


class TestCheckNormalization:
    """Tests for the strictness-driven normalization check."""

    drifted = torch.tensor([1.0 + 1e-4, 0.0], dtype=torch.complex128)

    def test_within_tolerance_returns_deviation(self):
        state = torch.tensor([1.0, 0.0], dtype=torch.complex128)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            deviation = check_normalization(state, atol=1e-9, mode="error")
        assert deviation == pytest.approx(0.0, abs=1e-15)

    def test_ignore_mode(self):
        deviation = check_normalization(self.drifted, atol=1e-9, mode="ignore")
        assert deviation == pytest.approx(2e-4, rel=1e-3)

    def test_warn_mode(self):
        with pytest.warns(NormalizationDriftWarning, match="after step 3"):
            check_normalization(
                self.drifted, atol=1e-9, mode="warn", context="after step 3"
            )

    def test_error_mode(self):
        with pytest.raises(NormalizationDriftError, match="Normalization drift"):
            check_normalization(self.drifted, atol=1e-9, mode="error")

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown normalization check mode"):
            check_normalization(self.drifted, atol=1e-9, mode="loud")


def test_fidelity_pure_states() -> None:
    """Test fidelity for pure statevectors."""
    zero = torch.tensor([1.0, 0.0], dtype=torch.complex128)
    one = torch.tensor([0.0, 1.0], dtype=torch.complex128)
    assert fidelity(zero, zero).item() == pytest.approx(1.0)
    assert fidelity(zero, one).item() == pytest.approx(0.0)

    inv_sqrt2 = 1.0 / math.sqrt(2.0)
    plus = torch.tensor([inv_sqrt2, inv_sqrt2], dtype=torch.complex128)
    minus = torch.tensor([inv_sqrt2, -inv_sqrt2], dtype=torch.complex128)
    assert fidelity(plus, minus).item() == pytest.approx(0.0, abs=1e-12)
    assert fidelity(plus, zero).item() == pytest.approx(0.5)


def test_fidelity_ignores_global_phase() -> None:
    state = torch.tensor([0.6, 0.8j], dtype=torch.complex128)
    assert fidelity(state, 1j * state).item() == pytest.approx(1.0)


def test_fidelity_shape_mismatch() -> None:
    """Test that fidelity raises on shape mismatch."""
    state_a = torch.tensor([1.0, 0.0], dtype=torch.complex128)
    state_b = torch.tensor([1.0, 0.0, 0.0, 0.0], dtype=torch.complex128)
    with pytest.raises(ValueError, match="same shape"):
        fidelity(state_a, state_b)
