"""Shared fixtures for qsimkit tests.

Every test gets deterministic numpy and torch generators, seeded from the
``TEST_RNG_SEED`` environment variable (default 0), and runs against the
default simulator configuration with debug mode off.
"""

import os

import numpy as np
import pytest
import torch

from qsimkit.config import SimulatorConfig, config_context, get_config, set_config
from qsimkit.diagnostics import debug_atol, is_debug_enabled, set_debug_enabled
from qsimkit.measurement import make_generator


def _test_seed() -> int:
    return int(os.environ.get("TEST_RNG_SEED", "0"))


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Seeded numpy generator for building random test states and unitaries."""
    return np.random.default_rng(_test_seed())


@pytest.fixture(scope="function")
def torch_rng() -> torch.Generator:
    """Seeded torch generator on the default device."""
    return make_generator(_test_seed())


@pytest.fixture(scope="function")
def strict_config() -> SimulatorConfig:
    """Process-wide config that raises on normalization drift."""
    with config_context(norm_check="error") as cfg:
        yield cfg


@pytest.fixture(scope="function", autouse=True)
def isolate_global_state() -> None:
    """Seed the global RNGs and restore config and debug mode after each test."""
    np.random.seed(_test_seed())
    torch.manual_seed(_test_seed())

    config = get_config()
    debug = (is_debug_enabled(), debug_atol())
    yield
    set_config(config)
    set_debug_enabled(*debug)
