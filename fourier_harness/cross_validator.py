"""
Cross-backend agreement checks.

The validator reports raw squared differences between two buffers. It never
rescales its inputs: callers comparing data produced under different
normalization conventions convert them first with ``rescale``.
"""

import logging
from collections import deque
from itertools import combinations
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from .models import DiscrepancyMetric
from .transform_backend import Normalization, TransformBackend
from .validation import ConfigValidator

logger = logging.getLogger(__name__)


def rescale(
    spectrum: np.ndarray, from_norm: Normalization, to_norm: Normalization
) -> np.ndarray:
    """Convert a forward-transform output between normalization conventions.

    Args:
        spectrum: Spectrum produced under ``from_norm``
        from_norm: Convention the spectrum was produced with
        to_norm: Target convention

    Returns:
        New rescaled array
    """
    n = spectrum.size
    return spectrum * (to_norm.forward_scale(n) / from_norm.forward_scale(n))


class CrossValidator:
    """Scores agreement between buffers produced by different backends."""

    def __init__(self, tolerance: float = 1e-9, history_size: int = 1000):
        """Initialize cross validator.

        Args:
            tolerance: Largest per-component sum accepted by ``agrees``
            history_size: Number of recent metrics kept for statistics
        """
        self.tolerance = tolerance
        self._history = deque(maxlen=history_size)

    @classmethod
    def from_config(cls, config_manager) -> "CrossValidator":
        """Create a validator from the ``[validation]`` configuration section."""
        validation_config = config_manager.get_validation_config()
        return cls(
            tolerance=validation_config["tolerance"],
            history_size=validation_config["history_size"],
        )

    def compare(self, a: np.ndarray, b: np.ndarray) -> DiscrepancyMetric:
        """Sum the squared real and imaginary differences of ``a - b``.

        Raises:
            InvariantViolationError: If the buffers differ in shape
        """
        ConfigValidator.validate_matching_shapes(a, b)
        diff = np.asarray(a) - np.asarray(b)
        metric = DiscrepancyMetric(
            sum_sq_diff_real=float(np.sum(np.square(diff.real))),
            sum_sq_diff_imag=float(np.sum(np.square(diff.imag))),
        )
        self._history.append(metric)
        return metric

    def agrees(self, metric: DiscrepancyMetric, tolerance: Optional[float] = None) -> bool:
        return metric.is_within(self.tolerance if tolerance is None else tolerance)

    def check_round_trip(self, backend: TransformBackend, signal: np.ndarray) -> DiscrepancyMetric:
        """Discrepancy between ``signal`` and ``inverse(forward(signal))``."""
        return self.compare(backend.round_trip(signal), signal)

    def compare_backends(
        self, backends: Iterable[TransformBackend], signal: np.ndarray
    ) -> Dict[Tuple[str, str], DiscrepancyMetric]:
        """Forward-transform ``signal`` on every backend and compare each pair.

        Returns:
            Mapping of ``(name_a, name_b)`` to the discrepancy of their spectra
        """
        spectra = {backend.name: backend.forward(signal) for backend in backends}
        results = {}
        for name_a, name_b in combinations(spectra, 2):
            metric = self.compare(spectra[name_a], spectra[name_b])
            results[(name_a, name_b)] = metric
            logger.debug(f"{name_a} vs {name_b}: {metric}")
        return results

    def get_statistics(self) -> dict:
        """Summary of the recent comparison history."""
        if not self._history:
            return {"count": 0, "max_total": 0.0, "mean_total": 0.0}
        totals = np.array([metric.total for metric in self._history])
        return {
            "count": len(totals),
            "max_total": float(totals.max()),
            "mean_total": float(totals.mean()),
        }

    def clear_history(self) -> None:
        self._history.clear()
