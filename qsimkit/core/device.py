"""Simulation devices: where amplitude buffers and gate matrices live."""

from __future__ import annotations

from dataclasses import dataclass

import torch

_CPU = "sv_cpu"
_CUDA = "sv_cuda"


@dataclass(frozen=True)
class Device:
    """
    A named statevector device backed by a PyTorch device.

    Attributes
    ----------
    name:
        Logical name, ``"sv_cpu"`` or ``"sv_cuda"`` (optionally
        ``"sv_cuda:<index>"``).
    torch_device:
        Device holding the tensors.
    complex_dtype:
        Amplitude dtype used when a store is created without one.
    """

    name: str
    torch_device: torch.device
    complex_dtype: torch.dtype = torch.complex128

    def as_torch_device(self) -> torch.device:
        return self.torch_device


def _cuda_device(index: int | None) -> Device:
    if not torch.cuda.is_available():
        raise RuntimeError(
            "CUDA device requested but torch.cuda.is_available() is False"
        )
    if index is None:
        return Device(name=_CUDA, torch_device=torch.device("cuda"))
    if index >= torch.cuda.device_count():
        raise ValueError(
            f"CUDA device index {index} out of range; "
            f"{torch.cuda.device_count()} device(s) visible"
        )
    return Device(name=f"{_CUDA}:{index}", torch_device=torch.device("cuda", index))


def device(name: str) -> Device:
    """
    Look up a device by name.

    ``"sv_cpu"`` is always available. ``"sv_cuda"`` and ``"sv_cuda:<index>"``
    require a visible CUDA device and raise RuntimeError otherwise.
    """
    base, _, index = name.partition(":")
    if base == _CPU and not index:
        return Device(name=_CPU, torch_device=torch.device("cpu"))
    if base == _CUDA:
        if index and not index.isdigit():
            raise ValueError(f"Invalid CUDA device index in {name!r}")
        return _cuda_device(int(index) if index else None)
    raise ValueError(
        f"Unsupported device name: {name!r}. Supported devices: {[_CPU, _CUDA]}"
    )


def default_device() -> Device:
    """Return the CPU statevector device."""
    return device(_CPU)


def resolve_device(dev: Device | torch.device | str | None) -> Device:
    """
    Normalise the device argument accepted across the public API.

    Args:
        dev: Device, device name, torch.device, or None for the default.

    Raises:
        TypeError: If ``dev`` has an unsupported type.
        ValueError: If a torch.device of an unsupported type is given.
    """
    if dev is None:
        return default_device()
    if isinstance(dev, Device):
        return dev
    if isinstance(dev, str):
        return device(dev)
    if isinstance(dev, torch.device):
        if dev.type == "cpu":
            return default_device()
        if dev.type == "cuda":
            return _cuda_device(dev.index)
        raise ValueError(
            f"Unsupported torch.device type: {dev.type}. "
            "Only 'cpu' and 'cuda' are supported."
        )
    raise TypeError(
        f"device must be Device, str, torch.device, or None, got {type(dev)}"
    )
