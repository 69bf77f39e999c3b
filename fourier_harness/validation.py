"""
Input validation for pipeline configuration and buffer contracts.

Configuration checks raise ``ValidationError``; buffer contract checks raise
``InvariantViolationError`` because a mismatch there is a defect in the caller,
not a runtime condition.
"""

import math
import numbers

import numpy as np

from .error_handling import InvariantViolationError


class ValidationError(Exception):
    """Custom exception for configuration validation errors."""

    pass


class ConfigValidator:
    """Validator class for pipeline parameters and buffer contracts."""

    MIN_SIGNAL_LENGTH = 2
    MAX_SIGNAL_LENGTH = 1 << 20
    SUPPORTED_DIMENSIONALITIES = (1, 2)

    @classmethod
    def validate_signal_length(cls, signal_length: int) -> None:
        """Validate a per-axis signal length.

        Raises:
            ValidationError: If the length is not an even integer in range
        """
        if isinstance(signal_length, bool) or not isinstance(signal_length, (int, np.integer)):
            raise ValidationError("signal_length must be an integer")
        if signal_length < cls.MIN_SIGNAL_LENGTH:
            raise ValidationError(f"signal_length must be >= {cls.MIN_SIGNAL_LENGTH}")
        if signal_length > cls.MAX_SIGNAL_LENGTH:
            raise ValidationError(f"signal_length must be <= {cls.MAX_SIGNAL_LENGTH}")
        # The signed-frequency mapping centres on N/2
        if signal_length % 2 != 0:
            raise ValidationError("signal_length must be even")

    @classmethod
    def validate_dimensionality(cls, dimensionality: int) -> None:
        """Validate the pipeline dimensionality (1 or 2)."""
        if dimensionality not in cls.SUPPORTED_DIMENSIONALITIES:
            raise ValidationError(
                f"dimensionality must be one of {cls.SUPPORTED_DIMENSIONALITIES}, "
                f"got {dimensionality}"
            )

    @classmethod
    def validate_time(cls, time: float) -> None:
        if isinstance(time, bool) or not isinstance(time, numbers.Real) or not math.isfinite(time):
            raise ValidationError(f"time must be a finite number, got {time!r}")

    @staticmethod
    def is_power_of_two(n: int) -> bool:
        return n > 0 and (n & (n - 1)) == 0

    @classmethod
    def validate_buffer(cls, buffer: np.ndarray, name: str = "buffer") -> None:
        """Check that ``buffer`` is a 1-D or square 2-D complex array.

        Raises:
            InvariantViolationError: If the buffer breaks the contract
        """
        if not isinstance(buffer, np.ndarray):
            raise InvariantViolationError(
                f"{name} must be a numpy array, got {type(buffer).__name__}"
            )
        if buffer.ndim not in cls.SUPPORTED_DIMENSIONALITIES:
            raise InvariantViolationError(
                f"{name} must be 1-D or 2-D, got {buffer.ndim}-D",
                expected=cls.SUPPORTED_DIMENSIONALITIES,
                actual=buffer.ndim,
            )
        if buffer.ndim == 2 and buffer.shape[0] != buffer.shape[1]:
            raise InvariantViolationError(
                f"{name} must be square, got shape {buffer.shape}", actual=buffer.shape
            )
        if not np.iscomplexobj(buffer):
            raise InvariantViolationError(f"{name} must be complex, got dtype {buffer.dtype}")

    @classmethod
    def validate_matching_shapes(cls, a: np.ndarray, b: np.ndarray) -> None:
        """Check that two buffers have the same shape.

        Raises:
            InvariantViolationError: If shapes differ
        """
        if np.shape(a) != np.shape(b):
            raise InvariantViolationError(
                f"Buffer shapes differ: {np.shape(a)} vs {np.shape(b)}",
                expected=np.shape(a),
                actual=np.shape(b),
            )
