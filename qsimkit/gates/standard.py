"""Standard quantum gate matrices.

Every function returns a fresh complex tensor. For gates acting on more
than one qubit, the first qubit of the target list is the most significant
bit of the matrix row/column index, so ``CX`` applied to ``[c, t]`` uses
``c`` as control and ``t`` as target.
"""

from __future__ import annotations

import cmath
import math

import torch


def _defaults(
    dtype: torch.dtype | None, device: torch.device | None
) -> tuple[torch.dtype, torch.device]:
    if dtype is None:
        dtype = torch.complex128
    if device is None:
        device = torch.device("cpu")
    return dtype, device


def I(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """
    Identity gate (single-qubit).

    Args:
        dtype: Complex dtype for the gate matrix. Defaults to torch.complex128.
        device: PyTorch device. Defaults to torch.device("cpu").

    Returns:
        A (2, 2) complex tensor representing the identity gate.
    """
    dtype, device = _defaults(dtype, device)
    return torch.eye(2, dtype=dtype, device=device)


def X(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """
    Pauli-X gate (bit-flip, NOT gate).

    Args:
        dtype: Complex dtype for the gate matrix. Defaults to torch.complex128.
        device: PyTorch device. Defaults to torch.device("cpu").

    Returns:
        A (2, 2) complex tensor representing the X gate.
    """
    dtype, device = _defaults(dtype, device)
    return torch.tensor([[0.0, 1.0], [1.0, 0.0]], dtype=dtype, device=device)


def Y(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """Pauli-Y gate."""
    dtype, device = _defaults(dtype, device)
    return torch.tensor([[0.0, -1.0j], [1.0j, 0.0]], dtype=dtype, device=device)


def Z(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """Pauli-Z gate (phase-flip)."""
    dtype, device = _defaults(dtype, device)
    return torch.tensor([[1.0, 0.0], [0.0, -1.0]], dtype=dtype, device=device)


def H(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """
    Hadamard gate.

    Matrix form:
        1/√2 [[1, 1],
              [1, -1]]
    """
    dtype, device = _defaults(dtype, device)
    sqrt2_inv = 1.0 / math.sqrt(2.0)
    return torch.tensor(
        [[sqrt2_inv, sqrt2_inv], [sqrt2_inv, -sqrt2_inv]], dtype=dtype, device=device
    )


def S(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """S gate (phase gate, √Z)."""
    dtype, device = _defaults(dtype, device)
    return torch.tensor([[1.0, 0.0], [0.0, 1.0j]], dtype=dtype, device=device)


def Sdg(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """S† gate, the inverse of S."""
    dtype, device = _defaults(dtype, device)
    return torch.tensor([[1.0, 0.0], [0.0, -1.0j]], dtype=dtype, device=device)


def T(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """T gate (π/8 gate, √S)."""
    dtype, device = _defaults(dtype, device)
    exp_i_pi_4 = cmath.exp(1.0j * math.pi / 4.0)
    return torch.tensor([[1.0, 0.0], [0.0, exp_i_pi_4]], dtype=dtype, device=device)


def Tdg(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """T† gate, the inverse of T."""
    dtype, device = _defaults(dtype, device)
    exp_mi_pi_4 = cmath.exp(-1.0j * math.pi / 4.0)
    return torch.tensor([[1.0, 0.0], [0.0, exp_mi_pi_4]], dtype=dtype, device=device)


def RX(
    theta: float,
    dtype: torch.dtype | None = None,
    device: torch.device | None = None,
) -> torch.Tensor:
    """
    Rotation gate around X-axis: RX(θ) = exp(-iθX/2).

    Matrix form:
        [[cos(θ/2), -i sin(θ/2)],
         [-i sin(θ/2), cos(θ/2)]]
    """
    dtype, device = _defaults(dtype, device)
    half_theta = float(theta) / 2.0
    cos_half = math.cos(half_theta)
    sin_half = math.sin(half_theta)
    return torch.tensor(
        [[cos_half, -1.0j * sin_half], [-1.0j * sin_half, cos_half]],
        dtype=dtype,
        device=device,
    )


def RY(
    theta: float,
    dtype: torch.dtype | None = None,
    device: torch.device | None = None,
) -> torch.Tensor:
    """
    Rotation gate around Y-axis: RY(θ) = exp(-iθY/2).

    Matrix form:
        [[cos(θ/2), -sin(θ/2)],
         [sin(θ/2), cos(θ/2)]]
    """
    dtype, device = _defaults(dtype, device)
    half_theta = float(theta) / 2.0
    cos_half = math.cos(half_theta)
    sin_half = math.sin(half_theta)
    return torch.tensor(
        [[cos_half, -sin_half], [sin_half, cos_half]],
        dtype=dtype,
        device=device,
    )


def RZ(
    theta: float,
    dtype: torch.dtype | None = None,
    device: torch.device | None = None,
) -> torch.Tensor:
    """
    Rotation gate around Z-axis: RZ(θ) = exp(-iθZ/2).

    Matrix form:
        [[exp(-iθ/2), 0],
         [0, exp(iθ/2)]]
    """
    dtype, device = _defaults(dtype, device)
    half_theta = float(theta) / 2.0
    return torch.tensor(
        [[cmath.exp(-1.0j * half_theta), 0.0], [0.0, cmath.exp(1.0j * half_theta)]],
        dtype=dtype,
        device=device,
    )


def U1(
    lam: float,
    dtype: torch.dtype | None = None,
    device: torch.device | None = None,
) -> torch.Tensor:
    """
    Phase gate U1(λ) = diag(1, exp(iλ)).

    Equal to RZ(λ) up to a global phase.
    """
    dtype, device = _defaults(dtype, device)
    return torch.tensor(
        [[1.0, 0.0], [0.0, cmath.exp(1.0j * float(lam))]],
        dtype=dtype,
        device=device,
    )


def U2(
    phi: float,
    lam: float,
    dtype: torch.dtype | None = None,
    device: torch.device | None = None,
) -> torch.Tensor:
    """
    U2(φ, λ) = U3(π/2, φ, λ).

    Matrix form:
        1/√2 [[1, -exp(iλ)],
              [exp(iφ), exp(i(φ+λ))]]
    """
    dtype, device = _defaults(dtype, device)
    sqrt2_inv = 1.0 / math.sqrt(2.0)
    phi = float(phi)
    lam = float(lam)
    return torch.tensor(
        [
            [sqrt2_inv, -sqrt2_inv * cmath.exp(1.0j * lam)],
            [sqrt2_inv * cmath.exp(1.0j * phi), sqrt2_inv * cmath.exp(1.0j * (phi + lam))],
        ],
        dtype=dtype,
        device=device,
    )


def U3(
    theta: float,
    phi: float,
    lam: float,
    dtype: torch.dtype | None = None,
    device: torch.device | None = None,
) -> torch.Tensor:
    """
    Universal single-qubit gate U3(θ, φ, λ).

    Matrix form:
        [[cos(θ/2), -exp(iλ) sin(θ/2)],
         [exp(iφ) sin(θ/2), exp(i(φ+λ)) cos(θ/2)]]
    """
    dtype, device = _defaults(dtype, device)
    half_theta = float(theta) / 2.0
    c = math.cos(half_theta)
    s = math.sin(half_theta)
    phi = float(phi)
    lam = float(lam)
    return torch.tensor(
        [
            [c, -cmath.exp(1.0j * lam) * s],
            [cmath.exp(1.0j * phi) * s, cmath.exp(1.0j * (phi + lam)) * c],
        ],
        dtype=dtype,
        device=device,
    )


def controlled(matrix: torch.Tensor, n_controls: int = 1) -> torch.Tensor:
    """
    Build the controlled version of a gate matrix.

    The control qubits come first in the target list (most significant
    bits), so the result is the identity except for the bottom-right block,
    which holds ``matrix``.

    Args:
        matrix: Square gate matrix of shape (d, d).
        n_controls: Number of control qubits (>= 1).

    Returns:
        A (2**n_controls * d, 2**n_controls * d) tensor.
    """
    if n_controls < 1:
        raise ValueError(f"n_controls must be >= 1, got {n_controls}")
    if matrix.dim() != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"matrix must be square, got shape {tuple(matrix.shape)}")

    d = matrix.shape[0]
    size = (2**n_controls) * d
    result = torch.eye(size, dtype=matrix.dtype, device=matrix.device)
    result[size - d :, size - d :] = matrix
    return result


def CX(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """
    CX gate (controlled-NOT). First qubit is the control, second the target.

    |00⟩ -> |00⟩, |01⟩ -> |01⟩, |10⟩ -> |11⟩, |11⟩ -> |10⟩
    """
    return controlled(X(dtype=dtype, device=device))


def CY(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """Controlled-Y gate. First qubit is the control."""
    return controlled(Y(dtype=dtype, device=device))


def CZ(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """Controlled-Z gate. Symmetric in its two qubits."""
    return controlled(Z(dtype=dtype, device=device))


def CH(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """Controlled-Hadamard gate. First qubit is the control."""
    return controlled(H(dtype=dtype, device=device))


def SWAP(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """SWAP gate, exchanging the states of its two qubits."""
    dtype, device = _defaults(dtype, device)
    return torch.tensor(
        [
            [1.0, 0.0, 0.0, 0.0],
            [0.0, 0.0, 1.0, 0.0],
            [0.0, 1.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ],
        dtype=dtype,
        device=device,
    )


def CCX(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """Toffoli gate. The first two qubits are controls, the third the target."""
    return controlled(X(dtype=dtype, device=device), n_controls=2)


def CCZ(dtype: torch.dtype | None = None, device: torch.device | None = None) -> torch.Tensor:
    """Doubly-controlled Z gate."""
    return controlled(Z(dtype=dtype, device=device), n_controls=2)


def kron(first: torch.Tensor, second: torch.Tensor) -> torch.Tensor:
    """
    Kronecker product of two gate matrices acting on disjoint qubits.

    ``first`` acts on the leading qubits of the combined target list and
    ``second`` on the remaining ones.
    """
    return torch.kron(first, second)


def is_unitary(matrix: torch.Tensor, atol: float = 1e-8) -> bool:
    """
    Check if a matrix is unitary within a given tolerance.

    A matrix U is unitary if U†U = I, where U† is the conjugate transpose.

    Args:
        matrix: Tensor of shape (..., n, n) representing one or more matrices.
        atol: Absolute tolerance for the check.

    Returns:
        True if the matrix is unitary (within tolerance), False otherwise.
    """
    if matrix.dim() < 2 or matrix.shape[-1] != matrix.shape[-2]:
        return False
    if not torch.all(torch.isfinite(torch.view_as_real(matrix.to(torch.complex128)))):
        return False

    adjoint = matrix.conj().transpose(-1, -2)
    product = torch.matmul(adjoint, matrix)

    n = matrix.shape[-1]
    identity = torch.eye(n, dtype=matrix.dtype, device=matrix.device)
    if product.ndim > 2:
        identity = identity.expand(product.shape)

    diff = torch.abs(product - identity)
    return bool(torch.all(diff <= atol).item())
