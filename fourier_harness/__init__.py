"""
Fourier Test Harness Package

A cross-validation harness that runs synthetic signals through several
interchangeable FFT backends (a pure-Python reference, a CuPy-accelerated
radix-2 implementation and SciPy), filters the spectrum and checks that every
backend and the forward/inverse round trip agree.
"""

from .config_manager import ConfigurationError, ConfigurationManager, get_config
from .cross_validator import CrossValidator, rescale
from .error_handling import (
    BackendUnavailableError,
    ComputationError,
    ErrorHandler,
    HarnessError,
    InvariantViolationError,
    PipelineStateError,
)
from .external_backend import ExternalReferenceBackend
from .frequency_filter import FrequencyFilter, center_spectrum, signed_frequency
from .gpu_backend import AcceleratedBackend, ExecutionContext
from .models import (
    DiscrepancyMetric,
    FilterDescriptor,
    FilterType,
    SignalDescriptor,
    SignalType,
    TickResult,
)
from .orchestrator import (
    FourierTestHarness,
    PipelineState,
    SpectralPipeline,
    create_harness,
    quick_validate,
)
from .reference_backend import ReferenceBackend
from .signal_generator import SignalGenerator
from .transform_backend import BackendKind, Normalization, TransformBackend, create_backend
from .validation import ConfigValidator

__version__ = "0.1.0"
__all__ = [
    # Core data models
    "SignalType",
    "FilterType",
    "SignalDescriptor",
    "FilterDescriptor",
    "DiscrepancyMetric",
    "TickResult",
    # Validation and configuration
    "ConfigValidator",
    "ConfigurationManager",
    "ConfigurationError",
    "get_config",
    # Errors
    "ErrorHandler",
    "HarnessError",
    "BackendUnavailableError",
    "InvariantViolationError",
    "PipelineStateError",
    "ComputationError",
    # Transform backends
    "TransformBackend",
    "BackendKind",
    "Normalization",
    "create_backend",
    "ReferenceBackend",
    "ExecutionContext",
    "AcceleratedBackend",
    "ExternalReferenceBackend",
    # Pipeline stages
    "SignalGenerator",
    "FrequencyFilter",
    "signed_frequency",
    "center_spectrum",
    "CrossValidator",
    "rescale",
    # Main interface (primary API)
    "PipelineState",
    "SpectralPipeline",
    "FourierTestHarness",
    "create_harness",
    "quick_validate",
]
