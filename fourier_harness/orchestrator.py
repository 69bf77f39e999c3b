"""
Test orchestrator driving the spectral pipeline once per tick.

A ``SpectralPipeline`` runs one full cycle per tick for a fixed signal length
and dimensionality: generate, forward-transform on every active backend,
cross-validate, filter, inverse-transform. ``FourierTestHarness`` owns one
independent pipeline per dimensionality and is the entry point used by a
presentation layer.
"""

import logging
import time
from contextlib import ExitStack
from enum import Enum
from typing import Dict, List, Optional, Union

import numpy as np

from .config_manager import ConfigurationManager, configure_logging, get_config
from .cross_validator import CrossValidator
from .error_handling import (
    BackendUnavailableError,
    ComputationError,
    ErrorHandler,
    PipelineStateError,
    create_error_context,
)
from .external_backend import ExternalReferenceBackend
from .frequency_filter import FrequencyFilter
from .gpu_backend import AcceleratedBackend, ExecutionContext
from .models import (
    FilterDescriptor,
    FilterType,
    SignalDescriptor,
    SignalType,
    TickResult,
    allocate_buffer,
)
from .reference_backend import ReferenceBackend
from .signal_generator import SignalGenerator
from .transform_backend import BackendKind, TransformBackend
from .validation import ConfigValidator

logger = logging.getLogger(__name__)

# Order in which other backends are compared against the primary one
COMPARISON_PREFERENCE = (
    BackendKind.ACCELERATED.value,
    BackendKind.EXTERNAL.value,
    BackendKind.REFERENCE.value,
)


class PipelineState(Enum):
    """Lifecycle of a spectral pipeline."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RUNNING_TICK = "running_tick"
    DISPOSED = "disposed"


class SpectralPipeline:
    """One generate/transform/filter/inverse/validate cycle per tick.

    Buffers are allocated once at setup and overwritten on every tick. Signal
    length and dimensionality are fixed once the pipeline leaves the
    UNINITIALIZED state; signal and filter selectors may change at any time and
    are read at the start of the next tick.
    """

    def __init__(
        self,
        dimensionality: int = 1,
        signal_length: Optional[int] = None,
        config_manager: Optional[ConfigurationManager] = None,
        config_file: Optional[str] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        """Initialize spectral pipeline.

        Args:
            dimensionality: 1 for an N-sample signal, 2 for an N x N grid
            signal_length: Samples per axis (loads from config if None)
            config_manager: Configuration to use (global config if None)
            config_file: Path to configuration file when ``config_manager`` is None
            error_handler: Shared error handler (a private one if None)
        """
        self.config_manager = config_manager or get_config(config_file)
        self._error_handler = error_handler or ErrorHandler()

        pipeline_config = self.config_manager.get_pipeline_config()
        if signal_length is None:
            signal_length = pipeline_config[
                "signal_length" if dimensionality == 1 else "signal_length_2d"
            ]

        self._state = PipelineState.UNINITIALIZED
        self._dimensionality = 1
        self._signal_length = 0
        self.set_dimensionality(dimensionality)
        self.set_signal_length(signal_length)

        self._signal_type = SignalType(pipeline_config["default_signal"])
        self._filter_descriptor = FilterDescriptor(
            FilterType(pipeline_config["default_filter"]), pipeline_config["inverted"]
        )

        self.generator = SignalGenerator.from_config(self.config_manager)
        self.validator = CrossValidator.from_config(self.config_manager)
        self._log_tick_metrics = self.config_manager.get_logging_config()["log_tick_metrics"]

        self._backends: Dict[str, TransformBackend] = {}
        self._primary: Optional[str] = None
        self._exit_stack: Optional[ExitStack] = None

        self._input: Optional[np.ndarray] = None
        self._spectrum: Optional[np.ndarray] = None
        self._reconstructed: Optional[np.ndarray] = None
        self._backend_spectra: Dict[str, np.ndarray] = {}

    # -- configuration -------------------------------------------------------

    def _require_state(self, *states: PipelineState) -> None:
        if self._state not in states:
            raise PipelineStateError(
                f"Operation not allowed in state {self._state.value}", state=self._state.value
            )

    def set_signal_length(self, n: int) -> None:
        """Set samples per axis. Only allowed before setup."""
        self._require_state(PipelineState.UNINITIALIZED)
        ConfigValidator.validate_signal_length(n)
        self._signal_length = int(n)

    def set_dimensionality(self, dimensionality: int) -> None:
        """Set 1-D or 2-D operation and rebuild the filter for it. Only allowed before setup."""
        self._require_state(PipelineState.UNINITIALIZED)
        ConfigValidator.validate_dimensionality(dimensionality)
        self._dimensionality = dimensionality
        self.filter = FrequencyFilter.from_config(self.config_manager, dimensionality)

    def set_signal_descriptor(
        self, descriptor: Union[SignalDescriptor, SignalType, str]
    ) -> None:
        """Select the waveform generated from the next tick on.

        The descriptor's time is ignored: each tick supplies its own.
        """
        self._require_state(PipelineState.UNINITIALIZED, PipelineState.READY)
        if isinstance(descriptor, SignalDescriptor):
            self._signal_type = descriptor.signal_type
        else:
            self._signal_type = SignalType(descriptor)

    def set_filter_descriptor(
        self,
        descriptor: Union[FilterDescriptor, FilterType, str],
        inverted: Optional[bool] = None,
    ) -> None:
        """Select the filter and index convention applied from the next tick on.

        ``inverted`` overrides the descriptor's own flag when given; for a bare
        filter type it defaults to False.
        """
        self._require_state(PipelineState.UNINITIALIZED, PipelineState.READY)
        if isinstance(descriptor, FilterDescriptor):
            filter_type = descriptor.filter_type
            if inverted is None:
                inverted = descriptor.inverted
        else:
            filter_type = FilterType(descriptor)
        self._filter_descriptor = FilterDescriptor(filter_type, bool(inverted))

    # -- lifecycle -----------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def signal_length(self) -> int:
        return self._signal_length

    @property
    def dimensionality(self) -> int:
        return self._dimensionality

    @property
    def shape(self) -> tuple:
        return (self._signal_length,) * self._dimensionality

    @property
    def active_backends(self) -> List[str]:
        """Names of the backends taking part in each tick, in acquisition order."""
        return list(self._backends)

    @property
    def primary_backend(self) -> Optional[str]:
        return self._primary

    @property
    def signal_descriptor(self) -> SignalDescriptor:
        return SignalDescriptor(self._signal_type)

    @property
    def filter_descriptor(self) -> FilterDescriptor:
        return self._filter_descriptor

    def setup(self) -> "SpectralPipeline":
        """Allocate buffers and acquire backends. UNINITIALIZED -> READY."""
        self._require_state(PipelineState.UNINITIALIZED)

        self._input = allocate_buffer(self.shape)
        self._spectrum = allocate_buffer(self.shape)
        self._reconstructed = allocate_buffer(self.shape)

        stack = ExitStack()
        try:
            self._acquire_backends(stack)
        except BaseException:
            stack.close()
            self._backends.clear()
            raise
        self._exit_stack = stack

        self._backend_spectra = {name: allocate_buffer(self.shape) for name in self._backends}
        self._primary = self._select_primary()
        self._state = PipelineState.READY

        logger.info(
            f"{self._dimensionality}-D pipeline ready: shape={self.shape}, "
            f"backends={self.active_backends}, primary={self._primary}"
        )
        return self

    def _acquire_backends(self, stack: ExitStack) -> None:
        """Acquire backends in order; ``stack`` releases them in reverse."""
        backends_config = self.config_manager.get_backends_config()
        check_finite = self.config_manager.get_validation_config()["check_finite"]

        if backends_config["enable_accelerated"]:
            try:
                with ExitStack() as group:
                    context = group.enter_context(
                        ExecutionContext(backends_config["accelerated_device"])
                    )
                    backend = group.enter_context(
                        AcceleratedBackend(
                            context,
                            signal_length=self._signal_length,
                            dimensionality=self._dimensionality,
                            check_finite=check_finite,
                        )
                    )
                    # Backend first, then its context, when the pipeline tears down
                    stack.enter_context(group.pop_all())
                self._backends[backend.name] = backend
            except BackendUnavailableError as e:
                self._report_unavailable(BackendKind.ACCELERATED.value, e)

        self._backends[BackendKind.REFERENCE.value] = stack.enter_context(
            ReferenceBackend(check_finite=check_finite)
        )

        if backends_config["enable_external"]:
            try:
                backend = ExternalReferenceBackend(
                    norm=backends_config["external_norm"], check_finite=check_finite
                )
                self._backends[backend.name] = stack.enter_context(backend)
            except BackendUnavailableError as e:
                self._report_unavailable(BackendKind.EXTERNAL.value, e)

    def _report_unavailable(self, name: str, error: BackendUnavailableError) -> None:
        context = create_error_context(
            "backend_setup",
            "SpectralPipeline",
            backend=name,
            dimensionality=self._dimensionality,
            signal_length=self._signal_length,
        )
        report = self._error_handler.report_once(f"backend_unavailable:{name}", error, context)
        if report is None:
            logger.info(f"Backend '{name}' unavailable for {self._dimensionality}-D pipeline")

    def _select_primary(self) -> str:
        pipeline_config = self.config_manager.get_pipeline_config()
        requested = pipeline_config[f"primary_backend_{self._dimensionality}d"]
        if requested in self._backends:
            return requested
        logger.warning(
            f"Primary backend '{requested}' unavailable for {self._dimensionality}-D pipeline, "
            f"using '{BackendKind.REFERENCE.value}'"
        )
        return BackendKind.REFERENCE.value

    # -- tick ----------------------------------------------------------------

    def tick(self, current_time: float) -> TickResult:
        """Run one full pipeline cycle at ``current_time``.

        Returns:
            TickResult referencing the pipeline's buffers

        Raises:
            PipelineStateError: If the pipeline has been shut down
            InvariantViolationError: On a buffer contract fault
            ComputationError: If a backend produced non-finite output
        """
        if self._state is PipelineState.UNINITIALIZED:
            self.setup()
        self._require_state(PipelineState.READY)

        self._state = PipelineState.RUNNING_TICK
        try:
            return self._run_tick(current_time)
        except ComputationError as e:
            context = create_error_context(
                "tick", "SpectralPipeline", time=current_time, backend=e.backend
            )
            self._error_handler.handle_error(e, context)
            raise
        finally:
            self._state = PipelineState.READY

    def _run_tick(self, current_time: float) -> TickResult:
        descriptor = SignalDescriptor(self._signal_type, current_time)
        current_time = float(current_time)
        filter_descriptor = self._filter_descriptor

        self.generator.generate(self._input, descriptor)

        for name, backend in self._backends.items():
            backend.forward(self._input, out=self._backend_spectra[name])

        primary_spectrum = self._backend_spectra[self._primary]
        discrepancies = {}
        for name in COMPARISON_PREFERENCE:
            if name != self._primary and name in self._backend_spectra:
                discrepancies[(self._primary, name)] = self.validator.compare(
                    primary_spectrum, self._backend_spectra[name]
                )
        discrepancy = next(iter(discrepancies.values()), None)

        accelerated = BackendKind.ACCELERATED.value
        if filter_descriptor.inverted and accelerated in self._backend_spectra:
            self._spectrum[...] = self._backend_spectra[accelerated]
        else:
            self._spectrum[...] = primary_spectrum

        self.filter.apply(self._spectrum, filter_descriptor)
        self._backends[self._primary].inverse(self._spectrum, out=self._reconstructed)

        if self._log_tick_metrics:
            logger.debug(
                f"[{self._dimensionality}-D t={current_time:.3f}] "
                f"{self._signal_type.value}/{filter_descriptor.filter_type.value}: "
                f"{discrepancy if discrepancy is not None else 'single backend'}"
            )

        return TickResult(
            time=current_time,
            input_signal=self._input,
            spectrum=self._spectrum,
            reconstructed_signal=self._reconstructed,
            discrepancy=discrepancy,
            discrepancies=discrepancies,
            backend_spectra=dict(self._backend_spectra),
            primary_backend=self._primary,
        )

    # -- teardown ------------------------------------------------------------

    def shutdown(self) -> None:
        """Release backend resources in reverse acquisition order. Idempotent."""
        if self._state is PipelineState.DISPOSED:
            return
        self._require_state(PipelineState.UNINITIALIZED, PipelineState.READY)

        if self._exit_stack is not None:
            self._exit_stack.close()
            self._exit_stack = None
        self._backends.clear()
        self._backend_spectra.clear()
        self._state = PipelineState.DISPOSED
        logger.info(f"{self._dimensionality}-D pipeline shut down")

    def get_pipeline_info(self) -> dict:
        return {
            "state": self._state.value,
            "dimensionality": self._dimensionality,
            "signal_length": self._signal_length,
            "signal": self._signal_type.value,
            "filter": self._filter_descriptor.filter_type.value,
            "inverted": self._filter_descriptor.inverted,
            "primary_backend": self._primary,
            "backends": [backend.describe() for backend in self._backends.values()],
            "validation": self.validator.get_statistics(),
        }

    def __enter__(self):
        """Context manager entry."""
        if self._state is PipelineState.UNINITIALIZED:
            self.setup()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with automatic cleanup."""
        self.shutdown()

    def __repr__(self) -> str:
        return (
            f"SpectralPipeline(dimensionality={self._dimensionality}, "
            f"signal_length={self._signal_length}, state={self._state.value})"
        )


class FourierTestHarness:
    """Independent 1-D and 2-D spectral pipelines sharing one configuration."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        config_manager: Optional[ConfigurationManager] = None,
        create_default_config: bool = True,
    ):
        """Initialize the harness.

        Args:
            config_file: Path to configuration file (uses fourier.toml if None)
            config_manager: Configuration to use instead of loading ``config_file``
            create_default_config: Create default config file if it doesn't exist
        """
        self.config_manager = config_manager or get_config(config_file, create_default_config)
        configure_logging(self.config_manager)

        self.error_handler = ErrorHandler()
        self.pipelines: Dict[int, SpectralPipeline] = {
            dimensionality: SpectralPipeline(
                dimensionality,
                config_manager=self.config_manager,
                error_handler=self.error_handler,
            )
            for dimensionality in ConfigValidator.SUPPORTED_DIMENSIONALITIES
        }
        self._start_time = time.monotonic()

        logger.info(f"FourierTestHarness initialized from {self.config_manager.config_file}")

    def pipeline(self, dimensionality: int) -> SpectralPipeline:
        ConfigValidator.validate_dimensionality(dimensionality)
        return self.pipelines[dimensionality]

    def elapsed_time(self) -> float:
        """Seconds since the harness was created."""
        return time.monotonic() - self._start_time

    def setup(self) -> "FourierTestHarness":
        """Set up every pipeline that is not yet initialized."""
        for pipeline in self.pipelines.values():
            if pipeline.state is PipelineState.UNINITIALIZED:
                pipeline.setup()
        return self

    def tick(self, dimensionality: int = 1, current_time: Optional[float] = None) -> TickResult:
        """Run one tick of a pipeline; uses the elapsed time if ``current_time`` is None."""
        if current_time is None:
            current_time = self.elapsed_time()
        return self.pipeline(dimensionality).tick(current_time)

    def run(
        self,
        num_ticks: int,
        time_step: float = 1.0 / 60.0,
        dimensionality: int = 1,
        start_time: float = 0.0,
    ) -> List[TickResult]:
        """Run consecutive ticks at fixed time steps.

        Returns:
            Snapshot of every tick's result
        """
        if num_ticks < 0:
            raise ValueError("num_ticks must be non-negative")
        pipeline = self.pipeline(dimensionality)
        return [
            pipeline.tick(start_time + step * time_step).snapshot() for step in range(num_ticks)
        ]

    def get_system_info(self) -> dict:
        return {
            "configuration": self.config_manager.to_dict(),
            "pipelines": {d: p.get_pipeline_info() for d, p in self.pipelines.items()},
            "errors": self.error_handler.get_error_statistics(),
        }

    def shutdown(self) -> None:
        """Shut down the 2-D pipeline, then the 1-D pipeline. Idempotent.

        Every pipeline is shut down even if an earlier one raises.
        """
        with ExitStack() as stack:
            # Callbacks run last-in first-out: register 1-D first
            for dimensionality in sorted(self.pipelines):
                stack.callback(self.pipelines[dimensionality].shutdown)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with automatic cleanup."""
        self.shutdown()

    def __repr__(self) -> str:
        return (
            f"FourierTestHarness(1d={self.pipelines[1].signal_length}, "
            f"2d={self.pipelines[2].signal_length}, "
            f"config='{self.config_manager.config_file}')"
        )


# Convenience functions for quick access
def create_harness(config_file: Optional[str] = None, **kwargs) -> FourierTestHarness:
    """Create a FourierTestHarness with default settings.

    Args:
        config_file: Path to configuration file
        **kwargs: Additional arguments passed to FourierTestHarness

    Returns:
        Initialized FourierTestHarness instance
    """
    return FourierTestHarness(config_file=config_file, **kwargs)


def quick_validate(
    signal_type: Union[SignalType, str] = SignalType.SQUARE,
    num_ticks: int = 1,
    time_step: float = 0.1,
    config_file: Optional[str] = None,
) -> dict:
    """Run unfiltered 1-D ticks and report cross-backend and round-trip agreement.

    Args:
        signal_type: Waveform to test with
        num_ticks: Number of ticks to run
        time_step: Seconds between ticks
        config_file: Path to configuration file

    Returns:
        Dictionary with per-tick discrepancies and the worst round-trip error
    """
    with create_harness(config_file) as harness:
        pipeline = harness.pipeline(1)
        pipeline.set_signal_descriptor(signal_type)
        pipeline.set_filter_descriptor(FilterType.NONE, inverted=False)

        ticks = []
        worst_round_trip = 0.0
        agrees = True
        for result in harness.run(num_ticks, time_step):
            round_trip = pipeline.validator.compare(
                result.reconstructed_signal, result.input_signal
            )
            worst_round_trip = max(worst_round_trip, round_trip.total)
            agrees = agrees and all(
                pipeline.validator.agrees(metric) for metric in result.discrepancies.values()
            )
            ticks.append(
                {
                    "time": result.time,
                    "discrepancies": {
                        f"{a}/{b}": metric.total for (a, b), metric in result.discrepancies.items()
                    },
                    "round_trip": round_trip.total,
                }
            )

        return {
            "backends": pipeline.active_backends,
            "primary_backend": pipeline.primary_backend,
            "ticks": ticks,
            "worst_round_trip": worst_round_trip,
            "agrees": agrees,
        }
