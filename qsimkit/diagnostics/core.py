"""Core diagnostic functions for statevectors."""

from __future__ import annotations

import warnings
from typing import Optional

import torch

from qsimkit.errors import NormalizationDriftError, NormalizationDriftWarning
from qsimkit.logging import get_logger

logger = get_logger(__name__)


def total_probability(state: torch.Tensor) -> torch.Tensor:
    """
    Compute the sum of squared amplitude magnitudes of a statevector.

    Parameters
    ----------
    state:
        Complex tensor with shape (..., dim).

    Returns
    -------
    torch.Tensor
        Real tensor with shape (...) holding ``sum_i |state[i]|^2``.

    Raises
    ------
    ValueError
        If state has fewer than 1 dimension.
    """
    if state.dim() < 1:
        raise ValueError(
            "total_probability expects a tensor with at least 1 dimension."
        )
    return (state.conj() * state).sum(dim=-1).real


def state_norm(state: torch.Tensor) -> torch.Tensor:
    """
    Compute the L2 norm of a statevector.

    Parameters
    ----------
    state:
        Complex tensor with shape (..., dim).

    Returns
    -------
    torch.Tensor
        Real tensor with shape (...) giving the norm for each batch
        element.
    """
    return torch.sqrt(total_probability(state))


def assert_normalized(
    state: torch.Tensor,
    atol: float = 1e-9,
) -> None:
    """
    Assert that the total probability of a statevector is 1 within ``atol``.

    Raises
    ------
    NormalizationDriftError
        If the state is not normalized within the tolerance or contains
        non-finite values.
    """
    totals = total_probability(state)
    if not torch.all(torch.isfinite(totals)):
        raise NormalizationDriftError("State norm contains non-finite values.")

    deviation = (totals - 1.0).abs().max().item()
    if deviation > atol:
        raise NormalizationDriftError(
            f"State is not normalized within tolerance {atol}. "
            f"Total probability found: {totals.detach().cpu().tolist()}"
        )


def check_normalization(
    state: torch.Tensor,
    atol: float,
    mode: str = "warn",
    context: Optional[str] = None,
) -> float:
    """
    Check normalization and react according to ``mode``.

    Parameters
    ----------
    state:
        Complex statevector tensor (dim,).
    atol:
        Allowed deviation of the total probability from 1.
    mode:
        "ignore" returns the deviation without acting on it, "warn" emits
        a :class:`NormalizationDriftWarning`, "error" raises
        :class:`NormalizationDriftError`.
    context:
        Optional label included in the message (e.g. "after step 12").

    Returns
    -------
    float
        The absolute deviation ``|sum |a_i|^2 - 1|``.
    """
    deviation = abs(float(total_probability(state).item()) - 1.0)
    if mode == "ignore" or deviation <= atol:
        return deviation

    where = f" {context}" if context else ""
    message = (
        f"Normalization drift{where}: total probability deviates from 1 "
        f"by {deviation:.3e} (tolerance {atol:.1e})."
    )
    if mode == "error":
        raise NormalizationDriftError(message)
    if mode == "warn":
        logger.warning(message)
        warnings.warn(message, NormalizationDriftWarning, stacklevel=2)
        return deviation
    raise ValueError(f"Unknown normalization check mode {mode!r}.")


def fidelity(
    state_a: torch.Tensor,
    state_b: torch.Tensor,
) -> torch.Tensor:
    """
    Compute the fidelity ``|<a|b>|^2`` between two pure statevectors.

    Raises
    ------
    ValueError
        If state shapes do not match.
    """
    if state_a.shape != state_b.shape:
        raise ValueError("fidelity expects tensors with the same shape.")
    if state_a.dim() < 1:
        raise ValueError("fidelity expects at least 1D tensors for pure states.")

    inner = (state_a.conj() * state_b).sum(dim=-1)
    return (inner.abs()) ** 2
