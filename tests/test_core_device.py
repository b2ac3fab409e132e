"""Tests for the device abstraction."""

import pytest
import torch

from qsimkit.core.device import Device, default_device, device, resolve_device


class TestDevice:
    """Tests for Device class."""

    def test_device_creation(self):
        dev = Device(
            name="test",
            torch_device=torch.device("cpu"),
            complex_dtype=torch.complex64,
        )
        assert dev.name == "test"
        assert dev.as_torch_device() == torch.device("cpu")
        assert dev.complex_dtype == torch.complex64

    def test_default_complex_dtype(self):
        dev = Device(name="sv_cpu", torch_device=torch.device("cpu"))
        assert dev.complex_dtype == torch.complex128

    def test_device_repr(self):
        repr_str = repr(default_device())
        assert "sv_cpu" in repr_str
        assert "cpu" in repr_str


class TestDeviceFactory:
    """Tests for device() and default_device()."""

    def test_sv_cpu(self):
        dev = device("sv_cpu")
        assert dev.name == "sv_cpu"
        assert dev.as_torch_device().type == "cpu"

    def test_default_device_is_cpu(self):
        assert default_device().name == "sv_cpu"

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unsupported device name"):
            device("tpu")

    @pytest.mark.skipif(torch.cuda.is_available(), reason="CUDA is available")
    def test_sv_cuda_without_cuda(self):
        with pytest.raises(RuntimeError, match="CUDA"):
            device("sv_cuda")


class TestResolveDevice:
    """Tests for resolve_device."""

    def test_none_gives_default(self):
        assert resolve_device(None).name == "sv_cpu"

    def test_device_passthrough(self):
        dev = default_device()
        assert resolve_device(dev) is dev

    def test_name_and_torch_device(self):
        assert resolve_device("sv_cpu").name == "sv_cpu"
        assert resolve_device(torch.device("cpu")).name == "sv_cpu"

    def test_unsupported_torch_device(self):
        with pytest.raises(ValueError, match="Unsupported torch.device type"):
            resolve_device(torch.device("meta"))

    def test_wrong_type(self):
        with pytest.raises(TypeError, match="device must be"):
            resolve_device(3)

    def test_devices_compare_by_value(self):
        assert device("sv_cpu") == default_device()

    def test_invalid_cuda_index(self):
        with pytest.raises(ValueError, match="Invalid CUDA device index"):
            device("sv_cuda:x")

    def test_cpu_with_index_rejected(self):
        with pytest.raises(ValueError, match="Unsupported device name"):
            device("sv_cpu:0")
