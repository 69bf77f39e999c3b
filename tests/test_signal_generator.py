"""
Tests for synthetic signal generation.
"""

import numpy as np
import pytest

from fourier_harness.error_handling import InvariantViolationError
from fourier_harness.models import SignalDescriptor, SignalType, allocate_buffer
from fourier_harness.signal_generator import (
    SignalGenerator,
    saw_wave,
    sinc_wave,
    sine_wave,
    square_wave,
    sweep_frequency,
)

N = 1024


class TestWaveforms:
    """Test cases for the closed-form waveform functions."""

    def test_sweep_frequency(self):
        assert sweep_frequency(0.0) == pytest.approx(4.0)
        assert sweep_frequency(np.pi / 2) == pytest.approx(8.0)

    def test_square_at_time_zero(self):
        values = square_wave(np.arange(N, dtype=float), N, 0.0)

        assert values[0] == pytest.approx(0.5)
        assert values[255] == pytest.approx(0.5)
        assert values[256] == pytest.approx(-0.5)
        assert values[511] == pytest.approx(-0.5)
        assert values[512] == pytest.approx(0.5)
        assert set(np.round(values, 12)) == {0.5, -0.5}

    def test_square_scrolls_with_time(self):
        positions = np.arange(N, dtype=float)
        # 50 samples per second: after 1s position 206 shows what 256 showed at t=0
        shifted = square_wave(positions, N, 1.0) - 0.5 * np.sin(1.0)
        assert shifted[206] == pytest.approx(-0.5)
        assert shifted[205] == pytest.approx(0.5)

    def test_sine_at_time_zero(self):
        values = sine_wave(np.arange(N, dtype=float), N, 0.0)
        assert values[0] == pytest.approx(1.0)
        # k(0) = 4 full periods over N samples
        assert values[N // 4] == pytest.approx(1.0)
        assert values[N // 8] == pytest.approx(-1.0)

    def test_saw_ramp(self):
        values = saw_wave(np.arange(N, dtype=float), N, 0.0)
        assert values[0] == pytest.approx(-0.5)
        assert values[64] == pytest.approx(0.0)
        assert values[128] == pytest.approx(-0.5)

    @pytest.mark.parametrize("time", [0.0, 0.7, 3.0, -2.0])
    def test_sinc_limit_value_at_center(self, time):
        values = sinc_wave(np.arange(N, dtype=float), N, time)
        assert values[N // 2] == 1.0
        assert np.all(np.isfinite(values))

    def test_sinc_symmetry(self):
        values = sinc_wave(np.arange(N, dtype=float), N, 0.3)
        np.testing.assert_allclose(values[N // 2 - 100], values[N // 2 + 100])


class TestSignalGenerator:
    """Test cases for SignalGenerator."""

    @pytest.fixture
    def generator(self):
        return SignalGenerator(seed=42)

    def test_generate_overwrites_in_place(self, generator):
        buffer = allocate_buffer(N)
        result = generator.generate(buffer, SignalDescriptor(SignalType.SQUARE, 0.0))

        assert result is buffer
        assert buffer[0] == pytest.approx(0.5 + 0j)

    def test_imaginary_part_zeroed(self, generator):
        buffer = allocate_buffer(N)
        buffer[:] = 3.0 + 7.0j

        generator.generate(buffer, SignalDescriptor(SignalType.SINE, 1.25))

        assert np.all(buffer.imag == 0.0)

    def test_random_range_and_seed(self):
        first = SignalGenerator(seed=7).generate(
            allocate_buffer(N), SignalDescriptor(SignalType.RANDOM)
        )
        second = SignalGenerator(seed=7).generate(
            allocate_buffer(N), SignalDescriptor(SignalType.RANDOM)
        )

        assert np.all(first.real >= 0.0)
        assert np.all(first.real < 1.0)
        np.testing.assert_array_equal(first, second)

    def test_random_changes_each_tick(self, generator):
        buffer = allocate_buffer(N)
        first = generator.generate(buffer, SignalDescriptor(SignalType.RANDOM)).copy()
        second = generator.generate(buffer, SignalDescriptor(SignalType.RANDOM))
        assert not np.array_equal(first, second)

    def test_custom_random_range(self):
        generator = SignalGenerator(random_low=-1.0, random_high=1.0, seed=3)
        values = generator.generate(allocate_buffer(N), SignalDescriptor(SignalType.RANDOM))
        assert values.real.min() < 0.0 < values.real.max()

    def test_invalid_random_range(self):
        with pytest.raises(ValueError):
            SignalGenerator(random_low=1.0, random_high=1.0)

    def test_two_dimensional_separable(self, generator):
        n = 16
        buffer = allocate_buffer((n, n))
        generator.generate(buffer, SignalDescriptor(SignalType.SQUARE, 0.0))

        axis = square_wave(np.arange(n, dtype=float), n, 0.0)
        np.testing.assert_allclose(buffer.real, np.outer(axis, axis))
        assert buffer[0, 0] == pytest.approx(0.25)

    def test_two_dimensional_scales(self):
        n = 16
        generator = SignalGenerator(scale_u=2.0, scale_v=0.5)
        buffer = allocate_buffer((n, n))
        generator.generate(buffer, SignalDescriptor(SignalType.SINE, 0.4))

        positions = np.arange(n, dtype=float)
        columns = sine_wave(positions * 2.0, n, 0.4)
        rows = sine_wave(positions * 0.5, n, 0.4)
        np.testing.assert_allclose(buffer.real, np.outer(rows, columns))

    def test_two_dimensional_sinc_center(self, generator):
        n = 16
        buffer = allocate_buffer((n, n))
        generator.generate(buffer, SignalDescriptor(SignalType.SINC, 2.0))
        assert buffer[n // 2, n // 2] == 1.0

    def test_two_dimensional_random(self, generator):
        buffer = allocate_buffer((16, 16))
        generator.generate(buffer, SignalDescriptor(SignalType.RANDOM))
        # Independent cells, not a rank-one outer product
        assert np.linalg.matrix_rank(buffer.real) > 1

    def test_rejects_real_buffer(self, generator):
        with pytest.raises(InvariantViolationError):
            generator.generate(np.zeros(N), SignalDescriptor())

    def test_from_config(self, cpu_config):
        generator = SignalGenerator.from_config(cpu_config)
        expected = SignalGenerator(seed=1234).generate(
            allocate_buffer(8), SignalDescriptor(SignalType.RANDOM)
        )
        actual = generator.generate(allocate_buffer(8), SignalDescriptor(SignalType.RANDOM))
        np.testing.assert_array_equal(actual, expected)
