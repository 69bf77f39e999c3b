"""
Tests for core data models.
"""

from dataclasses import FrozenInstanceError

import numpy as np
import pytest

from fourier_harness.models import (
    BUFFER_DTYPE,
    DiscrepancyMetric,
    FilterDescriptor,
    FilterType,
    SignalDescriptor,
    SignalType,
    TickResult,
    allocate_buffer,
)
from fourier_harness.validation import ValidationError


class TestAllocateBuffer:
    """Test cases for buffer allocation."""

    def test_one_dimensional(self):
        buffer = allocate_buffer(1024)
        assert buffer.shape == (1024,)
        assert buffer.dtype == BUFFER_DTYPE
        assert np.all(buffer == 0)

    def test_two_dimensional(self):
        buffer = allocate_buffer((16, 16))
        assert buffer.shape == (16, 16)
        assert np.iscomplexobj(buffer)


class TestSignalDescriptor:
    """Test cases for SignalDescriptor."""

    def test_defaults(self):
        descriptor = SignalDescriptor()
        assert descriptor.signal_type is SignalType.SQUARE
        assert descriptor.time == 0.0

    def test_string_signal_type_is_coerced(self):
        descriptor = SignalDescriptor("sinc", 1.5)
        assert descriptor.signal_type is SignalType.SINC

    def test_unknown_signal_type(self):
        with pytest.raises(ValidationError, match="Unknown signal type"):
            SignalDescriptor("triangle")

    @pytest.mark.parametrize("bad_time", [float("nan"), float("inf"), "now"])
    def test_non_finite_time_rejected(self, bad_time):
        with pytest.raises(ValidationError, match="time must be a finite number"):
            SignalDescriptor(SignalType.SINE, bad_time)

    def test_at_returns_copy(self):
        descriptor = SignalDescriptor(SignalType.SAW, 0.0)
        later = descriptor.at(2.0)
        assert later.signal_type is SignalType.SAW
        assert later.time == 2.0
        assert descriptor.time == 0.0


class TestFilterDescriptor:
    """Test cases for FilterDescriptor."""

    def test_defaults(self):
        descriptor = FilterDescriptor()
        assert descriptor.filter_type is FilterType.NONE
        assert descriptor.inverted is False

    def test_string_filter_type_is_coerced(self):
        descriptor = FilterDescriptor("cut_short", inverted=True)
        assert descriptor.filter_type is FilterType.CUT_SHORT
        assert descriptor.inverted is True

    def test_unknown_filter_type(self):
        with pytest.raises(ValidationError, match="Unknown filter type"):
            FilterDescriptor("bandpass")

    def test_frozen(self):
        descriptor = FilterDescriptor(FilterType.EXP)
        with pytest.raises(FrozenInstanceError):
            descriptor.inverted = True


class TestDiscrepancyMetric:
    """Test cases for DiscrepancyMetric."""

    def test_total_and_tolerance(self):
        metric = DiscrepancyMetric(1e-12, 3e-12)
        assert metric.total == pytest.approx(4e-12)
        assert metric.is_within(1e-11)
        assert not metric.is_within(2e-12)

    def test_negative_sums_rejected(self):
        with pytest.raises(ValueError):
            DiscrepancyMetric(-1.0, 0.0)

    def test_label_format(self):
        assert str(DiscrepancyMetric(0.0, 0.0)) == "SqDiff = 0 , 0"
        assert str(DiscrepancyMetric(1.23456e-5, 2.0)) == "SqDiff = 1.23e-05 , 2"


class TestTickResult:
    """Test cases for TickResult."""

    def _make_result(self, n=8):
        signal = allocate_buffer(n)
        signal.real = np.arange(n)
        spectrum = np.fft.fft(signal) / n
        return TickResult(
            time=0.5,
            input_signal=signal,
            spectrum=spectrum,
            reconstructed_signal=signal.copy(),
            backend_spectra={"reference": spectrum},
            primary_backend="reference",
        )

    def test_signal_length(self):
        assert self._make_result(8).signal_length == 8

    def test_centered_spectrum_puts_dc_in_middle(self):
        result = self._make_result(8)
        centered = result.centered_spectrum
        assert centered[4] == result.spectrum[0]
        assert centered[0] == result.spectrum[4]

    def test_snapshot_is_independent(self):
        result = self._make_result(8)
        snapshot = result.snapshot()

        result.input_signal[:] = 0
        result.backend_spectra["reference"][:] = 0

        assert snapshot.input_signal[3] == 3
        assert np.any(snapshot.backend_spectra["reference"] != 0)
        assert snapshot.primary_backend == "reference"
