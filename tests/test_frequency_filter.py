"""
Tests for frequency-domain filtering and index mappings.
"""

import numpy as np
import pytest

from fourier_harness.error_handling import InvariantViolationError
from fourier_harness.frequency_filter import (
    FrequencyFilter,
    center_spectrum,
    centered_frequency,
    centered_index,
    inverted_signed_frequency,
    signed_frequency,
)
from fourier_harness.models import FilterDescriptor, FilterType, allocate_buffer

N = 1024


def impulse(index, n=N):
    spectrum = allocate_buffer(n)
    spectrum[index] = 1.0
    return spectrum


class TestIndexMappings:
    """Test cases for index to signed-frequency conversions."""

    @pytest.mark.parametrize(
        "index, frequency", [(0, 0), (1, 1), (511, 511), (512, -512), (513, -511), (1023, -1)]
    )
    def test_signed_frequency(self, index, frequency):
        assert signed_frequency(index, N) == frequency

    @pytest.mark.parametrize("position, frequency", [(0, -512), (512, 0), (1023, 511)])
    def test_centered_frequency(self, position, frequency):
        assert centered_frequency(position, N) == frequency

    def test_centered_index_matches_signed_frequency(self):
        positions = np.arange(N)
        raw = centered_index(positions, N)
        np.testing.assert_array_equal(signed_frequency(raw, N), centered_frequency(positions, N))
        assert centered_index(512, N) == 0
        assert centered_index(0, N) == 512

    @pytest.mark.parametrize("index, frequency", [(0, -512), (1, 511), (512, 0), (1023, -511)])
    def test_inverted_signed_frequency(self, index, frequency):
        assert inverted_signed_frequency(index, N) == frequency

    def test_mappings_are_bijections(self):
        indices = np.arange(N)
        expected = np.arange(-N // 2, N // 2)
        np.testing.assert_array_equal(np.sort(signed_frequency(indices, N)), expected)
        np.testing.assert_array_equal(np.sort(inverted_signed_frequency(indices, N)), expected)

    def test_center_spectrum(self):
        spectrum = np.arange(16, dtype=complex)
        np.testing.assert_array_equal(center_spectrum(spectrum), np.fft.fftshift(spectrum))

        grid = np.arange(64, dtype=complex).reshape(8, 8)
        np.testing.assert_array_equal(center_spectrum(grid), np.fft.fftshift(grid))


class TestFilterCoefficients:
    """Test cases for the filter coefficient curves."""

    @pytest.fixture
    def frequency_filter(self):
        return FrequencyFilter()

    @pytest.mark.parametrize(
        "filter_type, threshold",
        [
            (FilterType.CUT_SHORT, 64),
            (FilterType.CUT_MEDIUM, 128),
            (FilterType.CUT_LARGE, 256),
        ],
    )
    def test_cut_thresholds(self, frequency_filter, filter_type, threshold):
        coefficients = frequency_filter.coefficients(N, filter_type)
        frequencies = signed_frequency(np.arange(N), N)

        assert set(np.unique(coefficients)) == {0.0, 1.0}
        assert np.count_nonzero(coefficients) == 2 * threshold + 1
        assert np.all(coefficients[np.abs(frequencies) > threshold] == 0.0)
        assert np.all(coefficients[np.abs(frequencies) <= threshold] == 1.0)

    def test_none_is_all_ones(self, frequency_filter):
        np.testing.assert_array_equal(frequency_filter.coefficients(N, FilterType.NONE), 1.0)

    def test_closed_forms(self, frequency_filter):
        exp = frequency_filter.coefficient_function(FilterType.EXP)
        gaussian = frequency_filter.coefficient_function(FilterType.GAUSSIAN)
        inverse = frequency_filter.coefficient_function(FilterType.INVERSE)

        assert exp(0, 100) == pytest.approx(np.exp(-1.0))
        assert gaussian(0, 10) == pytest.approx(np.exp(-0.5))
        assert inverse(0, 3) == pytest.approx(1.0)
        assert inverse(0, 7) == pytest.approx(0.5)

    @pytest.mark.parametrize(
        "filter_type", [FilterType.EXP, FilterType.GAUSSIAN, FilterType.INVERSE]
    )
    def test_tapers_are_monotonic(self, frequency_filter, filter_type):
        magnitudes = np.arange(0, N // 2 + 1)
        values = np.asarray(
            frequency_filter.coefficient_function(filter_type)(magnitudes, magnitudes)
        )

        assert values[0] == pytest.approx(1.0)
        assert np.all(np.diff(values) <= 0.0)
        assert np.all((values >= 0.0) & (values <= 1.0))
        # Symmetric in the sign of the frequency
        np.testing.assert_allclose(
            frequency_filter.coefficient_function(filter_type)(magnitudes, -magnitudes), values
        )

    def test_inverted_convention_differs_at_boundaries(self, frequency_filter):
        forward = frequency_filter.coefficients(N, FilterType.CUT_SHORT)
        inverted = frequency_filter.coefficients(N, FilterType.CUT_SHORT, inverted=True)

        assert forward[0] == 1.0
        assert inverted[0] == 0.0
        assert inverted[512] == 1.0
        assert not np.array_equal(forward, inverted)
        assert np.count_nonzero(forward) == np.count_nonzero(inverted)

    def test_from_config(self, make_config):
        config_manager = make_config("[filter]\ncut_short = 10\nexp_rate = 0.5\n")
        frequency_filter = FrequencyFilter.from_config(config_manager)

        assert frequency_filter.cut_short == 10
        assert frequency_filter.exp_rate == pytest.approx(0.5)
        assert np.count_nonzero(frequency_filter.coefficients(N, FilterType.CUT_SHORT)) == 21

    def test_from_config_two_dimensional(self, make_config):
        config_manager = make_config("[filter]\ncut_short = 10\nexp_rate = 0.5\n")
        frequency_filter = FrequencyFilter.from_config(config_manager, dimensionality=2)

        assert (frequency_filter.cut_large, frequency_filter.cut_medium) == (4, 2)
        assert frequency_filter.cut_short == 1
        assert frequency_filter.exp_rate == pytest.approx(0.5)
        coefficients = frequency_filter.coefficients(16, FilterType.CUT_MEDIUM)
        assert np.count_nonzero(coefficients) == 5


class TestFilterApply:
    """Test cases for applying filters to spectra."""

    @pytest.fixture
    def frequency_filter(self):
        return FrequencyFilter()

    def test_none_leaves_spectrum_untouched(self, frequency_filter):
        rng = np.random.default_rng(0)
        spectrum = rng.standard_normal(N) + 1j * rng.standard_normal(N)
        original = spectrum.copy()

        result = frequency_filter.apply(spectrum, FilterDescriptor(FilterType.NONE))

        assert result is spectrum
        np.testing.assert_array_equal(spectrum, original)

    @pytest.mark.parametrize(
        "filter_type", [FilterType.CUT_SHORT, FilterType.CUT_MEDIUM, FilterType.CUT_LARGE]
    )
    def test_dc_impulse_passes_cut_filters(self, frequency_filter, filter_type):
        spectrum = impulse(0)
        frequency_filter.apply(spectrum, FilterDescriptor(filter_type))
        assert spectrum[0] == 1.0
        assert np.count_nonzero(spectrum) == 1

    def test_high_frequency_impulse(self, frequency_filter):
        short = impulse(200)
        frequency_filter.apply(short, FilterDescriptor(FilterType.CUT_SHORT))
        assert np.all(short == 0)

        large = impulse(200)
        frequency_filter.apply(large, FilterDescriptor(FilterType.CUT_LARGE))
        assert large[200] == 1.0

    def test_negative_frequency_impulse(self, frequency_filter):
        spectrum = impulse(N - 50)
        frequency_filter.apply(spectrum, FilterDescriptor(FilterType.CUT_SHORT))
        assert spectrum[N - 50] == 1.0

    def test_complex_values_scaled_by_real_coefficient(self, frequency_filter):
        spectrum = allocate_buffer(N)
        spectrum[100] = 2.0 - 3.0j
        frequency_filter.apply(spectrum, FilterDescriptor(FilterType.EXP))
        assert spectrum[100] == pytest.approx((2.0 - 3.0j) * np.exp(-1.0))

    def test_inverted_override(self, frequency_filter):
        spectrum = impulse(0)
        frequency_filter.apply(spectrum, FilterDescriptor(FilterType.CUT_SHORT), inverted=True)
        assert spectrum[0] == 0.0

    def test_two_dimensional_separable(self):
        frequency_filter = FrequencyFilter(cut_short=2)
        spectrum = np.ones((16, 16), dtype=complex)

        frequency_filter.apply(spectrum, FilterDescriptor(FilterType.CUT_SHORT))

        axis = frequency_filter.coefficients(16, FilterType.CUT_SHORT)
        np.testing.assert_array_equal(spectrum.real, np.outer(axis, axis))
        assert np.count_nonzero(spectrum) == 25

    def test_rejects_real_buffer(self, frequency_filter):
        with pytest.raises(InvariantViolationError):
            frequency_filter.apply(np.ones(N), FilterDescriptor(FilterType.EXP))
