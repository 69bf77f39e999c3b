"""
Transform backend capability shared by every DFT implementation.

Backends differ in execution substrate and in the scale factor they natively
apply to forward and inverse output. Each backend declares its native
``Normalization``; this base class converts results to the package-wide
canonical convention so that spectra from different backends can be compared
directly.
"""

import logging
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import numpy as np

from .error_handling import ComputationError
from .models import BUFFER_DTYPE
from .validation import ConfigValidator

logger = logging.getLogger(__name__)


class Normalization(Enum):
    """Scale conventions for a forward/inverse transform pair.

    ``n`` in the scale methods is the total number of elements transformed
    (``N`` for 1-D, ``N * N`` for 2-D).
    """

    NONE = "none"  # forward 1, inverse 1
    BACKWARD = "backward"  # forward 1, inverse 1/N
    FORWARD = "forward"  # forward 1/N, inverse 1
    ORTHO = "ortho"  # forward 1/sqrt(N), inverse 1/sqrt(N)

    def forward_scale(self, n: int) -> float:
        if self is Normalization.FORWARD:
            return 1.0 / n
        if self is Normalization.ORTHO:
            return 1.0 / math.sqrt(n)
        return 1.0

    def inverse_scale(self, n: int) -> float:
        if self is Normalization.BACKWARD:
            return 1.0 / n
        if self is Normalization.ORTHO:
            return 1.0 / math.sqrt(n)
        return 1.0


# Forward output divided by N, inverse unscaled
CANONICAL_NORMALIZATION = Normalization.FORWARD


class BackendKind(Enum):
    """Available transform backend variants."""

    REFERENCE = "reference"
    ACCELERATED = "accelerated"
    EXTERNAL = "external"


class TransformBackend(ABC):
    """Forward/inverse discrete Fourier transform over a complex buffer.

    Subclasses implement ``_forward_native`` and ``_inverse_native`` in their
    own normalization; ``forward`` and ``inverse`` return canonical results.
    Two-dimensional buffers are transformed over both axes.
    """

    name = "backend"
    native_normalization = Normalization.BACKWARD

    def __init__(self, check_finite: bool = True):
        self.check_finite = check_finite
        self._closed = False

    @property
    def is_available(self) -> bool:
        return not self._closed

    @abstractmethod
    def _forward_native(self, signal: np.ndarray) -> np.ndarray:
        """Forward transform in the backend's native normalization."""

    @abstractmethod
    def _inverse_native(self, spectrum: np.ndarray) -> np.ndarray:
        """Inverse transform in the backend's native normalization."""

    def forward_correction(self, n: int) -> float:
        """Factor converting native forward output to the canonical scale."""
        native = self.native_normalization.forward_scale(n)
        return CANONICAL_NORMALIZATION.forward_scale(n) / native

    def inverse_correction(self, n: int) -> float:
        """Factor converting native inverse output to the canonical scale."""
        native = self.native_normalization.inverse_scale(n)
        return CANONICAL_NORMALIZATION.inverse_scale(n) / native

    def forward(self, signal: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Compute the canonical forward transform of ``signal``.

        Args:
            signal: 1-D or square 2-D complex buffer
            out: Optional buffer of the same shape receiving the result

        Returns:
            Spectrum in natural (non-centered) order; ``out`` when given
        """
        return self._run(signal, out, self._forward_native, self.forward_correction, "forward")

    def inverse(self, spectrum: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Compute the canonical inverse transform of ``spectrum``.

        Args:
            spectrum: 1-D or square 2-D complex buffer in natural order
            out: Optional buffer of the same shape receiving the result

        Returns:
            Reconstructed signal; ``out`` when given
        """
        return self._run(spectrum, out, self._inverse_native, self.inverse_correction, "inverse")

    def round_trip(self, signal: np.ndarray) -> np.ndarray:
        """Return ``inverse(forward(signal))``."""
        return self.inverse(self.forward(signal))

    def _run(self, data, out, native_op, correction, operation: str) -> np.ndarray:
        if self._closed:
            raise RuntimeError(f"Backend '{self.name}' has been closed")

        ConfigValidator.validate_buffer(data, "input")
        if out is not None:
            ConfigValidator.validate_buffer(out, "out")
            ConfigValidator.validate_matching_shapes(data, out)

        result = native_op(np.asarray(data, dtype=BUFFER_DTYPE))
        factor = correction(data.size)
        if factor != 1.0:
            result = result * factor

        if self.check_finite and not np.all(np.isfinite(result)):
            raise ComputationError(
                f"{operation} transform produced non-finite values", backend=self.name
            )

        if out is None:
            return np.asarray(result, dtype=BUFFER_DTYPE)
        out[...] = result
        return out

    def describe(self) -> dict:
        """Summary of this backend for diagnostics."""
        return {
            "name": self.name,
            "native_normalization": self.native_normalization.value,
            "available": self.is_available,
        }

    def close(self) -> None:
        """Release backend resources. Safe to call more than once."""
        if not self._closed:
            self._release()
            self._closed = True
            logger.debug(f"Backend '{self.name}' closed")

    def _release(self) -> None:
        """Subclass hook releasing owned resources."""

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with automatic cleanup."""
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(normalization={self.native_normalization.value})"


def create_backend(kind, **kwargs) -> TransformBackend:
    """Construct a backend of the given kind.

    Args:
        kind: ``BackendKind`` or its string value
        **kwargs: Passed to the backend constructor

    Returns:
        New backend instance

    Raises:
        BackendUnavailableError: If the backend's substrate or library is missing
    """
    kind = BackendKind(kind)

    if kind is BackendKind.REFERENCE:
        from .reference_backend import ReferenceBackend

        return ReferenceBackend(**kwargs)
    if kind is BackendKind.ACCELERATED:
        from .gpu_backend import AcceleratedBackend

        return AcceleratedBackend(**kwargs)

    from .external_backend import ExternalReferenceBackend

    return ExternalReferenceBackend(**kwargs)
