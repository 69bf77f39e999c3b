"""
External ground-truth transform backed by SciPy's FFT.

The library is used with a declared ``norm`` so that the harness exercises
its normalization correction against a third convention.
"""

import logging

import numpy as np

from .error_handling import BackendUnavailableError
from .transform_backend import Normalization, TransformBackend

logger = logging.getLogger(__name__)

# Try to import SciPy, report the backend as unavailable if it is missing
try:
    import scipy
    import scipy.fft as sp_fft

    SCIPY_AVAILABLE = True
except ImportError:
    scipy = None
    sp_fft = None
    SCIPY_AVAILABLE = False


class ExternalReferenceBackend(TransformBackend):
    """Classic library FFT used as ground truth."""

    name = "external"

    def __init__(self, norm: str = "ortho", workers: int = 1, check_finite: bool = True):
        """Initialize the external backend.

        Args:
            norm: SciPy normalization mode ('backward', 'ortho' or 'forward')
            workers: Worker threads SciPy may use for a single transform
            check_finite: Reject non-finite transform output

        Raises:
            BackendUnavailableError: If SciPy cannot be imported
            ValueError: If ``norm`` is not a SciPy normalization mode
        """
        if not SCIPY_AVAILABLE:
            raise BackendUnavailableError(
                "SciPy not available. Install scipy to compare against a reference library.",
                backend=self.name,
            )

        self.native_normalization = Normalization(norm)
        if self.native_normalization is Normalization.NONE:
            raise ValueError("SciPy has no unnormalized transform pair; use backward/ortho/forward")

        super().__init__(check_finite=check_finite)
        self.norm = norm
        self.workers = workers
        logger.info(f"External backend ready (scipy {scipy.__version__}, norm={norm})")

    def _forward_native(self, signal: np.ndarray) -> np.ndarray:
        return sp_fft.fftn(signal, norm=self.norm, workers=self.workers)

    def _inverse_native(self, spectrum: np.ndarray) -> np.ndarray:
        return sp_fft.ifftn(spectrum, norm=self.norm, workers=self.workers)

    def describe(self) -> dict:
        info = super().describe()
        info["library"] = f"scipy {scipy.__version__}"
        return info
