"""
Synthetic test signals for the spectral pipeline.

Each waveform family is a closed-form function of the sample position, the
signal length and a time parameter, except RANDOM which draws independent
uniform samples. Signals are real: the imaginary part of the buffer is zeroed.
"""

import logging
from typing import Optional

import numpy as np

from .models import SignalDescriptor, SignalType
from .validation import ConfigValidator

logger = logging.getLogger(__name__)

# Samples per second the square and sawtooth patterns scroll by
SCROLL_SPEED = 50.0
SAW_PERIOD = 128.0


def sweep_frequency(time: float) -> float:
    """Time-varying frequency multiplier ``k(t) = 4 (1 + sin t)``."""
    return 4.0 * (1.0 + np.sin(time))


def square_wave(positions: np.ndarray, n: int, time: float) -> np.ndarray:
    phase = np.mod(positions + SCROLL_SPEED * time, n / 2.0)
    return 0.5 * np.sin(time) + np.where(phase < n / 4.0, 0.5, -0.5)


def sine_wave(positions: np.ndarray, n: int, time: float) -> np.ndarray:
    return np.cos(sweep_frequency(time) * 2.0 * np.pi * positions / n)


def saw_wave(positions: np.ndarray, n: int, time: float) -> np.ndarray:
    ramp = np.mod((positions + SCROLL_SPEED * time) / SAW_PERIOD, 1.0)
    return 0.5 * np.sin(time) + ramp - 0.5


def sinc_wave(positions: np.ndarray, n: int, time: float) -> np.ndarray:
    """Symmetric sinc centred on ``n/2``; the limit value 1 is used where the argument is 0."""
    a = sweep_frequency(time) * 2.0 * np.pi * (positions - n / 2.0) * 2.0 / n
    return np.divide(np.sin(a), a, out=np.ones_like(a, dtype=np.float64), where=a != 0.0)


WAVEFORMS = {
    SignalType.SQUARE: square_wave,
    SignalType.SINE: sine_wave,
    SignalType.SAW: saw_wave,
    SignalType.SINC: sinc_wave,
}


class SignalGenerator:
    """Fills complex signal buffers with synthetic test signals."""

    def __init__(
        self,
        scale_u: float = 1.0,
        scale_v: float = 1.0,
        random_low: float = 0.0,
        random_high: float = 1.0,
        seed: Optional[int] = None,
    ):
        """Initialize signal generator.

        Args:
            scale_u: Position scale along the column axis of 2-D signals
            scale_v: Position scale along the row axis of 2-D signals
            random_low: Lower bound of the RANDOM uniform distribution
            random_high: Upper bound (exclusive) of the RANDOM distribution
            seed: Seed for the RANDOM generator (fresh entropy if None)
        """
        if random_high <= random_low:
            raise ValueError("random_high must be greater than random_low")
        self.scale_u = scale_u
        self.scale_v = scale_v
        self.random_low = random_low
        self.random_high = random_high
        self._rng = np.random.default_rng(seed)

    @classmethod
    def from_config(cls, config_manager) -> "SignalGenerator":
        """Create a generator from the ``[signal]`` configuration section."""
        signal_config = config_manager.get_signal_config()
        return cls(
            scale_u=signal_config["scale_u"],
            scale_v=signal_config["scale_v"],
            random_low=signal_config["random_low"],
            random_high=signal_config["random_high"],
            seed=signal_config["random_seed"],
        )

    def waveform(self, signal_type: SignalType, positions: np.ndarray, n: int, time: float):
        """Evaluate a waveform at the given (possibly fractional) sample positions."""
        if signal_type is SignalType.RANDOM:
            return self._rng.uniform(self.random_low, self.random_high, size=np.shape(positions))
        return WAVEFORMS[signal_type](np.asarray(positions, dtype=np.float64), n, time)

    def generate(self, buffer: np.ndarray, descriptor: SignalDescriptor) -> np.ndarray:
        """Overwrite ``buffer`` in place with the descriptor's waveform.

        Args:
            buffer: 1-D ``(N,)`` or 2-D ``(N, N)`` complex buffer
            descriptor: Waveform family and time

        Returns:
            The same buffer
        """
        ConfigValidator.validate_buffer(buffer, "signal buffer")
        n = buffer.shape[0]
        positions = np.arange(n, dtype=np.float64)

        if buffer.ndim == 1:
            values = self.waveform(descriptor.signal_type, positions, n, descriptor.time)
        elif descriptor.signal_type is SignalType.RANDOM:
            values = self._rng.uniform(self.random_low, self.random_high, size=buffer.shape)
        else:
            # Separable product: columns vary with scale_u, rows with scale_v
            columns = self.waveform(
                descriptor.signal_type, positions * self.scale_u, n, descriptor.time
            )
            rows = self.waveform(
                descriptor.signal_type, positions * self.scale_v, n, descriptor.time
            )
            values = np.outer(rows, columns)

        buffer.real = values
        buffer.imag = 0.0
        return buffer
