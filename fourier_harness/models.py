"""
Core data models for the Fourier test harness.

This module defines the descriptors that select waveforms and filters, the
discrepancy metric reported by cross-validation, and the per-tick result
handed to the presentation layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union

import numpy as np

BUFFER_DTYPE = np.complex128


class SignalType(Enum):
    """Waveform families produced by the signal generator."""

    SQUARE = "square"
    SINE = "sine"
    SAW = "saw"
    SINC = "sinc"
    RANDOM = "random"


class FilterType(Enum):
    """Frequency-domain filters applied between forward and inverse transforms."""

    NONE = "none"
    CUT_LARGE = "cut_large"
    CUT_MEDIUM = "cut_medium"
    CUT_SHORT = "cut_short"
    EXP = "exp"
    GAUSSIAN = "gaussian"
    INVERSE = "inverse"


def allocate_buffer(shape: Union[int, Tuple[int, ...]]) -> np.ndarray:
    """Allocate a zeroed complex signal buffer.

    Buffers are allocated once per pipeline and overwritten in place on every
    tick.

    Args:
        shape: ``N`` for a 1-D buffer or ``(N, N)`` for a 2-D buffer

    Returns:
        Zero-initialized complex128 array
    """
    return np.zeros(shape, dtype=BUFFER_DTYPE)


@dataclass
class SignalDescriptor:
    """Selects the waveform family and the time at which it is evaluated.

    Attributes:
        signal_type: Waveform family
        time: Continuous time parameter in seconds, advanced externally
    """

    signal_type: SignalType = SignalType.SQUARE
    time: float = 0.0

    def __post_init__(self):
        """Validate descriptor parameters after initialization."""
        from .validation import ConfigValidator, ValidationError

        if not isinstance(self.signal_type, SignalType):
            try:
                self.signal_type = SignalType(self.signal_type)
            except ValueError:
                raise ValidationError(f"Unknown signal type: {self.signal_type!r}")
        ConfigValidator.validate_time(self.time)

    def at(self, time: float) -> "SignalDescriptor":
        """Return a copy of this descriptor evaluated at ``time``."""
        return SignalDescriptor(self.signal_type, time)


@dataclass(frozen=True)
class FilterDescriptor:
    """Selects the filter kind and the index convention used to evaluate it.

    Attributes:
        filter_type: Filter kind
        inverted: Use the inverted frequency mapping (forward/backward roles swapped)
    """

    filter_type: FilterType = FilterType.NONE
    inverted: bool = False

    def __post_init__(self):
        from .validation import ValidationError

        if not isinstance(self.filter_type, FilterType):
            try:
                object.__setattr__(self, "filter_type", FilterType(self.filter_type))
            except ValueError:
                raise ValidationError(f"Unknown filter type: {self.filter_type!r}")


@dataclass(frozen=True)
class DiscrepancyMetric:
    """Squared-error comparison between two buffers of equal shape.

    Attributes:
        sum_sq_diff_real: Sum over samples of the squared real-part difference
        sum_sq_diff_imag: Sum over samples of the squared imaginary-part difference
    """

    sum_sq_diff_real: float
    sum_sq_diff_imag: float

    def __post_init__(self):
        if self.sum_sq_diff_real < 0 or self.sum_sq_diff_imag < 0:
            raise ValueError("Discrepancy sums must be non-negative")

    @property
    def total(self) -> float:
        return self.sum_sq_diff_real + self.sum_sq_diff_imag

    def is_within(self, epsilon: float) -> bool:
        """True if both sums are no larger than ``epsilon``."""
        return self.sum_sq_diff_real <= epsilon and self.sum_sq_diff_imag <= epsilon

    def __str__(self) -> str:
        return f"SqDiff = {self.sum_sq_diff_real:.3g} , {self.sum_sq_diff_imag:.3g}"


@dataclass
class TickResult:
    """Output of one orchestration tick.

    The arrays are the pipeline's own buffers and are overwritten on the next
    tick; call ``snapshot()`` to keep a copy.

    Attributes:
        time: Time the tick was evaluated at
        input_signal: Generated input signal
        spectrum: Spectrum after optional filtering, in natural FFT order
        reconstructed_signal: Inverse transform of ``spectrum``
        discrepancy: Primary cross-backend comparison, None with a single backend
        discrepancies: Every comparison made this tick, keyed by (backend, backend)
        backend_spectra: Unfiltered spectrum produced by each active backend
        primary_backend: Name of the backend used for the inverse transform
    """

    time: float
    input_signal: np.ndarray
    spectrum: np.ndarray
    reconstructed_signal: np.ndarray
    discrepancy: Optional[DiscrepancyMetric] = None
    discrepancies: Dict[Tuple[str, str], DiscrepancyMetric] = field(default_factory=dict)
    backend_spectra: Dict[str, np.ndarray] = field(default_factory=dict)
    primary_backend: str = ""

    @property
    def signal_length(self) -> int:
        return self.input_signal.shape[0]

    @property
    def centered_spectrum(self) -> np.ndarray:
        """Spectrum reordered for display with DC at position N/2."""
        from .frequency_filter import center_spectrum

        return center_spectrum(self.spectrum)

    def snapshot(self) -> "TickResult":
        """Deep copy of this result, independent of the pipeline buffers."""
        return TickResult(
            time=self.time,
            input_signal=self.input_signal.copy(),
            spectrum=self.spectrum.copy(),
            reconstructed_signal=self.reconstructed_signal.copy(),
            discrepancy=self.discrepancy,
            discrepancies=dict(self.discrepancies),
            backend_spectra={name: s.copy() for name, s in self.backend_spectra.items()},
            primary_backend=self.primary_backend,
        )
