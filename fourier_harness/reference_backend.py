"""
Sequential CPU reference transform.

Iterative radix-2 Cooley-Tukey for power-of-two lengths and a direct DFT for
other lengths, written as plain element-by-element arithmetic so that it can
serve as an independent check on the vectorised and library backends.
"""

import cmath
import logging
import math
from typing import List

import numpy as np

from .models import BUFFER_DTYPE
from .transform_backend import Normalization, TransformBackend
from .validation import ConfigValidator

logger = logging.getLogger(__name__)


def bit_reverse_indices(n: int) -> List[int]:
    """Bit-reversal permutation of ``range(n)`` for power-of-two ``n``."""
    bits = n.bit_length() - 1
    indices = []
    for i in range(n):
        reversed_i = 0
        value = i
        for _ in range(bits):
            reversed_i = (reversed_i << 1) | (value & 1)
            value >>= 1
        indices.append(reversed_i)
    return indices


def fft_radix2(samples: np.ndarray, sign: int) -> np.ndarray:
    """Unscaled radix-2 FFT with twiddle exponent ``sign * 2*pi*i/N``.

    Args:
        samples: 1-D complex array with power-of-two length
        sign: -1 for the forward transform, +1 for the inverse

    Returns:
        New array with the transform in natural order
    """
    n = len(samples)
    values = [complex(samples[j]) for j in bit_reverse_indices(n)]

    size = 2
    while size <= n:
        half = size // 2
        angle = sign * 2.0 * math.pi / size
        twiddles = [cmath.exp(1j * angle * k) for k in range(half)]
        for start in range(0, n, size):
            for k in range(half):
                a = values[start + k]
                b = values[start + k + half] * twiddles[k]
                values[start + k] = a + b
                values[start + k + half] = a - b
        size *= 2

    return np.array(values, dtype=BUFFER_DTYPE)


def dft_direct(samples: np.ndarray, sign: int) -> np.ndarray:
    """Unscaled O(N^2) DFT, one output bin at a time."""
    n = len(samples)
    j = np.arange(n)
    out = np.empty(n, dtype=BUFFER_DTYPE)
    for k in range(n):
        out[k] = np.dot(samples, np.exp(sign * 2j * np.pi * k * j / n))
    return out


class ReferenceBackend(TransformBackend):
    """Sequential CPU transform, always available.

    Native normalization is ``BACKWARD``: forward unscaled, inverse divided by N.
    """

    name = "reference"
    native_normalization = Normalization.BACKWARD

    def __init__(self, check_finite: bool = True):
        super().__init__(check_finite=check_finite)
        logger.info("Reference backend ready (sequential CPU radix-2 / direct DFT)")

    def _transform_1d(self, samples: np.ndarray, sign: int) -> np.ndarray:
        if ConfigValidator.is_power_of_two(len(samples)):
            return fft_radix2(samples, sign)
        return dft_direct(samples, sign)

    def _transform(self, data: np.ndarray, sign: int) -> np.ndarray:
        if data.ndim == 1:
            return self._transform_1d(data, sign)

        # Separable 2-D transform: rows, then columns
        result = np.empty_like(data, dtype=BUFFER_DTYPE)
        for row in range(data.shape[0]):
            result[row, :] = self._transform_1d(data[row, :], sign)
        for col in range(data.shape[1]):
            result[:, col] = self._transform_1d(result[:, col], sign)
        return result

    def _forward_native(self, signal: np.ndarray) -> np.ndarray:
        return self._transform(signal, -1)

    def _inverse_native(self, spectrum: np.ndarray) -> np.ndarray:
        return self._transform(spectrum, +1) / spectrum.size
