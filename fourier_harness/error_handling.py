"""
Centralized error handling for the Fourier test harness.

This module classifies the faults the spectral pipeline can meet, records
them as reports with recovery actions, and provides the one-time diagnostic
used when a transform backend is unavailable at setup.
"""

import logging
import sys
import traceback
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

import numpy as np

logger = logging.getLogger(__name__)

try:
    import cupy as cp

    CUPY_AVAILABLE = True
except ImportError:
    cp = None
    CUPY_AVAILABLE = False


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""

    BACKEND_UNAVAILABLE = "backend_unavailable"
    CONFIGURATION_ERROR = "configuration_error"
    INVARIANT_VIOLATION = "invariant_violation"
    COMPUTATION_ERROR = "computation_error"
    SYSTEM_ERROR = "system_error"


@dataclass
class ErrorContext:
    """Context information for error handling."""

    operation: str
    component: str
    parameters: Dict[str, Any]
    timestamp: datetime
    system_info: Dict[str, Any]


@dataclass
class ErrorReport:
    """Record of one handled error."""

    error_id: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    context: ErrorContext
    traceback_info: str
    recovery_actions: List[str]
    fallback_used: bool
    diagnostic_data: Dict[str, Any]


class HarnessError(Exception):
    """Base exception class for harness errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM_ERROR,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context
        self.timestamp = datetime.now()


class BackendUnavailableError(HarnessError):
    """A transform backend's execution substrate or library cannot be used.

    This is a configuration fault: it is reported once at setup and the
    backend is left out of the active set.
    """

    def __init__(
        self, message: str, backend: str = "", severity: ErrorSeverity = ErrorSeverity.HIGH
    ):
        super().__init__(message, ErrorCategory.BACKEND_UNAVAILABLE, severity)
        self.backend = backend


class InvariantViolationError(HarnessError):
    """A programming-contract fault, e.g. buffers of mismatched shape."""

    def __init__(self, message: str, expected: Any = None, actual: Any = None):
        super().__init__(message, ErrorCategory.INVARIANT_VIOLATION, ErrorSeverity.CRITICAL)
        self.expected = expected
        self.actual = actual


class PipelineStateError(HarnessError):
    """Operation not permitted in the pipeline's current state."""

    def __init__(self, message: str, state: str = ""):
        super().__init__(message, ErrorCategory.CONFIGURATION_ERROR, ErrorSeverity.MEDIUM)
        self.state = state


class ComputationError(HarnessError):
    """A transform produced non-finite output."""

    def __init__(
        self, message: str, backend: str = "", severity: ErrorSeverity = ErrorSeverity.HIGH
    ):
        super().__init__(message, ErrorCategory.COMPUTATION_ERROR, severity)
        self.backend = backend


class ErrorHandler:
    """Centralized error reporting and recovery bookkeeping."""

    def __init__(self, enable_fallbacks: bool = True):
        """Initialize error handler.

        Args:
            enable_fallbacks: Enable automatic fallback strategies
        """
        self.enable_fallbacks = enable_fallbacks
        self.error_history: List[ErrorReport] = []
        self.fallback_strategies: Dict[ErrorCategory, Callable] = {}
        self._reported_keys: Set[str] = set()
        self.recovery_statistics = {
            "total_errors": 0,
            "successful_recoveries": 0,
            "fallback_activations": 0,
            "critical_failures": 0,
        }

        self._register_default_fallbacks()

    def _register_default_fallbacks(self) -> None:
        """Register default fallback strategies for different error categories."""
        self.fallback_strategies[ErrorCategory.BACKEND_UNAVAILABLE] = (
            self._backend_unavailable_strategy
        )
        self.fallback_strategies[ErrorCategory.COMPUTATION_ERROR] = self._computation_strategy

    def handle_error(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None,
        attempt_recovery: bool = True,
    ) -> ErrorReport:
        """Handle an error with reporting and recovery bookkeeping.

        Args:
            error: Exception that occurred
            context: Context information about the error
            attempt_recovery: Whether to run the category's fallback strategy

        Returns:
            ErrorReport with handling results
        """
        error_id = f"ERR_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{len(self.error_history):04d}"

        category, severity = self._classify_error(error)

        report = ErrorReport(
            error_id=error_id,
            category=category,
            severity=severity,
            message=str(error),
            context=context or self._create_default_context(),
            traceback_info=traceback.format_exc(),
            recovery_actions=[],
            fallback_used=False,
            diagnostic_data={},
        )

        self.recovery_statistics["total_errors"] += 1
        if severity == ErrorSeverity.CRITICAL:
            self.recovery_statistics["critical_failures"] += 1

        if attempt_recovery and self.enable_fallbacks and category in self.fallback_strategies:
            recovery_result = self.fallback_strategies[category](error, report)
            if recovery_result and recovery_result.get("success"):
                report.fallback_used = True
                report.recovery_actions.extend(recovery_result.get("actions", []))
                report.diagnostic_data.update(recovery_result.get("diagnostic_data", {}))
                self.recovery_statistics["successful_recoveries"] += 1
                self.recovery_statistics["fallback_activations"] += 1

        self._log_error(report)

        self.error_history.append(report)
        if len(self.error_history) > 1000:
            self.error_history = self.error_history[-500:]

        return report

    def report_once(
        self, key: str, error: Exception, context: Optional[ErrorContext] = None
    ) -> Optional[ErrorReport]:
        """Handle an error only the first time ``key`` is seen.

        Configuration faults are diagnosed once per run, not on every tick.

        Returns:
            The new ErrorReport, or None if ``key`` was already reported
        """
        if key in self._reported_keys:
            logger.debug(f"Suppressing repeated diagnostic for {key}")
            return None
        self._reported_keys.add(key)
        return self.handle_error(error, context)

    def _classify_error(self, error: Exception) -> tuple:
        """Classify error by category and severity."""
        if isinstance(error, HarnessError):
            return error.category, error.severity

        error_str = str(error).lower()

        if any(keyword in error_str for keyword in ["cuda", "cupy", "gpu", "device"]):
            return ErrorCategory.BACKEND_UNAVAILABLE, ErrorSeverity.HIGH

        if any(keyword in error_str for keyword in ["nan", "inf", "overflow", "underflow"]):
            return ErrorCategory.COMPUTATION_ERROR, ErrorSeverity.MEDIUM

        if any(keyword in error_str for keyword in ["config", "parameter", "validation"]):
            return ErrorCategory.CONFIGURATION_ERROR, ErrorSeverity.MEDIUM

        if isinstance(error, (SystemExit, KeyboardInterrupt)):
            return ErrorCategory.SYSTEM_ERROR, ErrorSeverity.CRITICAL

        return ErrorCategory.SYSTEM_ERROR, ErrorSeverity.MEDIUM

    def _create_default_context(self) -> ErrorContext:
        return ErrorContext(
            operation="unknown",
            component="unknown",
            parameters={},
            timestamp=datetime.now(),
            system_info=self._get_system_info(),
        )

    def _get_system_info(self) -> Dict[str, Any]:
        """Get system information for error context."""
        return {
            "python_version": sys.version,
            "platform": sys.platform,
            "cupy_available": CUPY_AVAILABLE,
            "numpy_version": np.__version__,
        }

    def _log_error(self, report: ErrorReport) -> None:
        log_message = f"[{report.error_id}] {report.category.value.upper()}: {report.message}"

        if report.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif report.severity == ErrorSeverity.HIGH:
            logger.error(log_message)
        elif report.severity == ErrorSeverity.MEDIUM:
            logger.warning(log_message)
        else:
            logger.info(log_message)

        if report.fallback_used:
            for action in report.recovery_actions:
                logger.info(f"[{report.error_id}] {action}")

    def _backend_unavailable_strategy(
        self, error: Exception, report: ErrorReport
    ) -> Dict[str, Any]:
        """Drop the backend from the active set; the run continues degraded."""
        backend = getattr(error, "backend", "") or report.context.parameters.get("backend", "")
        actions = [f"Backend '{backend or 'unknown'}' removed from active set for this run"]

        if CUPY_AVAILABLE and backend == "accelerated":
            try:
                cp.get_default_memory_pool().free_all_blocks()
                actions.append("GPU memory pool cleared")
            except Exception as cleanup_error:
                actions.append(f"GPU cleanup failed: {cleanup_error}")

        return {
            "success": True,
            "actions": actions,
            "diagnostic_data": {"degraded_backend": backend},
        }

    def _computation_strategy(self, error: Exception, report: ErrorReport) -> Dict[str, Any]:
        """Computation faults are recorded only; the tick still fails."""
        return {
            "success": False,
            "actions": ["Inspect input signal for non-finite samples"],
            "diagnostic_data": {"backend": getattr(error, "backend", "")},
        }

    def register_fallback_strategy(self, category: ErrorCategory, strategy: Callable) -> None:
        """Register a custom fallback strategy.

        Args:
            category: Error category to handle
            strategy: Callable that takes (error, report) and returns recovery dict
        """
        self.fallback_strategies[category] = strategy
        logger.info(f"Registered custom fallback strategy for {category.value}")

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get error handling statistics."""
        stats = self.recovery_statistics.copy()

        if stats["total_errors"] > 0:
            stats["recovery_rate"] = stats["successful_recoveries"] / stats["total_errors"]
        else:
            stats["recovery_rate"] = 0.0

        category_counts: Dict[str, int] = {}
        for report in self.error_history:
            category_counts[report.category.value] = (
                category_counts.get(report.category.value, 0) + 1
            )
        stats["category_breakdown"] = category_counts

        return stats

    def generate_diagnostic_report(self, include_traceback: bool = False) -> str:
        """Generate a plain-text diagnostic report.

        Args:
            include_traceback: Include full traceback information

        Returns:
            Formatted diagnostic report
        """
        report = []
        report.append("=" * 80)
        report.append("FOURIER TEST HARNESS - DIAGNOSTIC REPORT")
        report.append("=" * 80)
        report.append(f"Generated: {datetime.now().isoformat()}")
        report.append("")

        stats = self.get_error_statistics()
        report.append("ERROR STATISTICS:")
        report.append(f"  Total Errors: {stats['total_errors']}")
        report.append(f"  Successful Recoveries: {stats['successful_recoveries']}")
        report.append(f"  Critical Failures: {stats['critical_failures']}")
        report.append(f"  Recovery Rate: {stats['recovery_rate']:.2%}")
        report.append("")

        if stats["category_breakdown"]:
            report.append("ERROR CATEGORIES:")
            for category, count in stats["category_breakdown"].items():
                report.append(f"  {category}: {count}")
            report.append("")

        recent_errors = self.error_history[-10:]
        if recent_errors:
            report.append("RECENT ERRORS (last 10):")
            for error_report in recent_errors:
                category = error_report.category.value
                report.append(f"  [{error_report.error_id}] {category}: {error_report.message}")
                for action in error_report.recovery_actions:
                    report.append(f"    -> {action}")
                if include_traceback and error_report.traceback_info:
                    report.append(f"    Traceback: {error_report.traceback_info}")
            report.append("")

        system_info = self._get_system_info()
        report.append("SYSTEM INFORMATION:")
        report.append(f"  Python Version: {system_info['python_version']}")
        report.append(f"  Platform: {system_info['platform']}")
        report.append(f"  CuPy Available: {system_info['cupy_available']}")
        report.append(f"  NumPy Version: {system_info['numpy_version']}")
        report.append("=" * 80)

        return "\n".join(report)

    def clear_error_history(self) -> None:
        """Clear error history, one-time keys and statistics."""
        self.error_history.clear()
        self._reported_keys.clear()
        self.recovery_statistics = {
            "total_errors": 0,
            "successful_recoveries": 0,
            "fallback_activations": 0,
            "critical_failures": 0,
        }


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def create_error_context(operation: str, component: str, **parameters) -> ErrorContext:
    """Create error context for error handling.

    Args:
        operation: Name of the operation being performed
        component: Name of the component where error occurred
        **parameters: Additional parameters to include in context

    Returns:
        ErrorContext object
    """
    return ErrorContext(
        operation=operation,
        component=component,
        parameters=parameters,
        timestamp=datetime.now(),
        system_info=get_error_handler()._get_system_info(),
    )
