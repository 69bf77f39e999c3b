"""
Shared fixtures for the Fourier test harness test suite.
"""

import pytest

from fourier_harness.config_manager import ConfigurationManager, reset_config

# Runs the accelerated kernels on the NumPy substrate so tests need no CUDA device
CPU_CONFIG = """
[pipeline]
signal_length = 64
signal_length_2d = 8

[signal]
random_seed = 1234

[backends]
accelerated_device = "cpu"
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep default config files out of the repository and reset global state."""
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_config(tmp_path):
    """Factory writing a TOML file and loading it into a ConfigurationManager."""

    def _make(content: str = CPU_CONFIG, name: str = "test_config.toml") -> ConfigurationManager:
        config_file = tmp_path / name
        config_file.write_text(content)
        return ConfigurationManager(str(config_file), create_default=False)

    return _make


@pytest.fixture
def cpu_config(make_config):
    """Small-signal configuration with the accelerated backend on the CPU substrate."""
    return make_config()


@pytest.fixture
def cpu_config_text():
    """TOML text of the small-signal CPU configuration, for tests that amend it."""
    return CPU_CONFIG
