"""
Frequency-domain filtering with circular index semantics.

Spectra are stored in natural FFT order. Two index-to-frequency conventions
are supported and they differ at the boundary indices:

* forward:  ``f = ((i + N/2) mod N) - N/2`` (index 0 is DC)
* inverted: ``f = ((N - i) mod N) - N/2``, used when the roles of the forward
  and backward spectra are swapped.

The display layout is separate: position ``p`` shows raw index
``(p + N/2) mod N``, whose signed frequency is ``p - N/2``.
"""

import logging
from typing import Callable, Dict, Optional

import numpy as np

from .models import FilterDescriptor, FilterType
from .validation import ConfigValidator

logger = logging.getLogger(__name__)


def signed_frequency(index, n: int):
    """Signed frequency of raw spectrum index ``index`` (forward convention)."""
    half = n // 2
    return np.mod(np.add(index, half), n) - half


def inverted_signed_frequency(index, n: int):
    """Signed frequency of raw index ``index`` under the inverted convention."""
    half = n // 2
    return np.mod(np.subtract(n, index), n) - half


def centered_index(position, n: int):
    """Raw spectrum index shown at display position ``position``."""
    return np.mod(np.add(position, n // 2), n)


def centered_frequency(position, n: int):
    """Signed frequency shown at display position ``position`` (DC at ``n/2``)."""
    return np.subtract(position, n // 2)


def center_spectrum(spectrum: np.ndarray) -> np.ndarray:
    """Reorder a natural-order spectrum for display, DC at the centre of every axis."""
    result = spectrum
    for axis in range(spectrum.ndim):
        n = spectrum.shape[axis]
        result = np.take(result, centered_index(np.arange(n), n), axis=axis)
    return result


class FrequencyFilter:
    """Maps signed frequencies to real attenuation coefficients and applies them."""

    def __init__(
        self,
        cut_large: int = 256,
        cut_medium: int = 128,
        cut_short: int = 64,
        exp_rate: float = 0.01,
        gaussian_rate: float = 0.005,
        inverse_gain: float = 4.0,
    ):
        """Initialize frequency filter.

        Args:
            cut_large: Cut-off magnitude for CUT_LARGE
            cut_medium: Cut-off magnitude for CUT_MEDIUM
            cut_short: Cut-off magnitude for CUT_SHORT
            exp_rate: Decay rate of EXP, ``exp(-rate |f|)``
            gaussian_rate: Decay rate of GAUSSIAN, ``exp(-rate f^2)``
            inverse_gain: Gain of INVERSE, ``min(1, gain / (1 + |f|))``
        """
        self.cut_large = cut_large
        self.cut_medium = cut_medium
        self.cut_short = cut_short
        self.exp_rate = exp_rate
        self.gaussian_rate = gaussian_rate
        self.inverse_gain = inverse_gain

        self._functions: Dict[FilterType, Callable] = {
            FilterType.NONE: lambda i, f: np.ones(np.shape(f)),
            FilterType.CUT_LARGE: lambda i, f: self._cut(f, self.cut_large),
            FilterType.CUT_MEDIUM: lambda i, f: self._cut(f, self.cut_medium),
            FilterType.CUT_SHORT: lambda i, f: self._cut(f, self.cut_short),
            FilterType.EXP: lambda i, f: np.exp(-self.exp_rate * np.abs(f)),
            FilterType.GAUSSIAN: lambda i, f: np.exp(
                -self.gaussian_rate * np.square(np.asarray(f, dtype=np.float64))
            ),
            FilterType.INVERSE: lambda i, f: np.minimum(
                1.0, self.inverse_gain / (1.0 + np.abs(f))
            ),
        }

    @classmethod
    def from_config(cls, config_manager, dimensionality: int = 1) -> "FrequencyFilter":
        """Create a filter from ``[filter]``, with ``[filter_2d]`` cut-offs for 2-D."""
        return cls(**config_manager.get_filter_config(dimensionality))

    @staticmethod
    def _cut(frequency, threshold: int) -> np.ndarray:
        return np.where(np.abs(frequency) > threshold, 0.0, 1.0)

    def coefficient_function(self, filter_type: FilterType) -> Callable:
        """The ``(index, signed_frequency) -> coefficient`` function of a filter."""
        return self._functions[FilterType(filter_type)]

    def coefficients(self, n: int, filter_type: FilterType, inverted: bool = False) -> np.ndarray:
        """Coefficient for every raw index of a length-``n`` axis."""
        indices = np.arange(n)
        if inverted:
            frequencies = inverted_signed_frequency(indices, n)
        else:
            frequencies = signed_frequency(indices, n)
        return np.asarray(
            self.coefficient_function(filter_type)(indices, frequencies), dtype=np.float64
        )

    def apply(
        self,
        spectrum: np.ndarray,
        descriptor: FilterDescriptor,
        inverted: Optional[bool] = None,
    ) -> np.ndarray:
        """Scale every spectrum sample by its real filter coefficient, in place.

        Args:
            spectrum: 1-D or 2-D complex spectrum in natural order
            descriptor: Filter kind and default index convention
            inverted: Override ``descriptor.inverted`` when not None

        Returns:
            The same (mutated) spectrum
        """
        ConfigValidator.validate_buffer(spectrum, "spectrum")
        if descriptor.filter_type is FilterType.NONE:
            return spectrum

        use_inverted = descriptor.inverted if inverted is None else inverted
        n = spectrum.shape[0]
        axis_coefficients = self.coefficients(n, descriptor.filter_type, use_inverted)

        if spectrum.ndim == 1:
            spectrum *= axis_coefficients
        else:
            spectrum *= np.outer(axis_coefficients, axis_coefficients)

        logger.debug(
            f"Applied {descriptor.filter_type.value} filter "
            f"(inverted={use_inverted}, passed={np.count_nonzero(axis_coefficients)}/{n})"
        )
        return spectrum
