"""
Tests for error handling and one-time diagnostics.
"""

import pytest

from fourier_harness.error_handling import (
    BackendUnavailableError,
    ComputationError,
    ErrorCategory,
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    HarnessError,
    InvariantViolationError,
    PipelineStateError,
    create_error_context,
    get_error_handler,
)


class TestHarnessErrors:
    """Test cases for the exception hierarchy."""

    def test_backend_unavailable(self):
        error = BackendUnavailableError("no CUDA", backend="accelerated")
        assert isinstance(error, HarnessError)
        assert error.category is ErrorCategory.BACKEND_UNAVAILABLE
        assert error.severity is ErrorSeverity.HIGH
        assert error.backend == "accelerated"
        assert str(error) == "no CUDA"

    def test_invariant_violation_is_critical(self):
        error = InvariantViolationError("shape mismatch", expected=(8,), actual=(4,))
        assert error.category is ErrorCategory.INVARIANT_VIOLATION
        assert error.severity is ErrorSeverity.CRITICAL
        assert error.expected == (8,)

    def test_pipeline_state_error(self):
        error = PipelineStateError("not allowed", state="disposed")
        assert error.category is ErrorCategory.CONFIGURATION_ERROR
        assert error.state == "disposed"

    def test_computation_error(self):
        error = ComputationError("NaN in output", backend="external")
        assert error.category is ErrorCategory.COMPUTATION_ERROR
        assert error.backend == "external"


class TestErrorHandler:
    """Test cases for ErrorHandler."""

    @pytest.fixture
    def handler(self):
        return ErrorHandler()

    def test_backend_unavailable_recovery(self, handler):
        """An unavailable backend is recorded as a successful degradation."""
        error = BackendUnavailableError("CuPy missing", backend="external")
        context = create_error_context("backend_setup", "SpectralPipeline", backend="external")

        report = handler.handle_error(error, context)

        assert report.category is ErrorCategory.BACKEND_UNAVAILABLE
        assert report.fallback_used
        assert any("removed from active set" in action for action in report.recovery_actions)
        assert report.diagnostic_data["degraded_backend"] == "external"
        assert report.context.parameters["backend"] == "external"

    def test_computation_error_not_recovered(self, handler):
        report = handler.handle_error(ComputationError("inf", backend="reference"))

        assert not report.fallback_used
        assert handler.get_error_statistics()["successful_recoveries"] == 0

    def test_recovery_disabled(self):
        handler = ErrorHandler(enable_fallbacks=False)
        report = handler.handle_error(BackendUnavailableError("gone", backend="external"))
        assert not report.fallback_used

    @pytest.mark.parametrize(
        "message, category",
        [
            ("CUDA driver version is insufficient", ErrorCategory.BACKEND_UNAVAILABLE),
            ("result contains NaN", ErrorCategory.COMPUTATION_ERROR),
            ("bad config value", ErrorCategory.CONFIGURATION_ERROR),
            ("something else", ErrorCategory.SYSTEM_ERROR),
        ],
    )
    def test_classification_of_plain_exceptions(self, handler, message, category):
        report = handler.handle_error(RuntimeError(message))
        assert report.category is category

    def test_default_context(self, handler):
        report = handler.handle_error(ValueError("oops"))
        assert isinstance(report.context, ErrorContext)
        assert report.context.operation == "unknown"
        assert "numpy_version" in report.context.system_info

    def test_report_once(self, handler):
        """The same key is diagnosed only the first time."""
        error = BackendUnavailableError("no device", backend="accelerated")

        first = handler.report_once("backend_unavailable:accelerated", error)
        second = handler.report_once("backend_unavailable:accelerated", error)
        other = handler.report_once("backend_unavailable:external", error)

        assert first is not None
        assert second is None
        assert other is not None
        assert handler.get_error_statistics()["total_errors"] == 2

    def test_statistics(self, handler):
        handler.handle_error(BackendUnavailableError("a", backend="accelerated"))
        handler.handle_error(InvariantViolationError("b"))

        stats = handler.get_error_statistics()

        assert stats["total_errors"] == 2
        assert stats["critical_failures"] == 1
        assert stats["recovery_rate"] == pytest.approx(0.5)
        assert stats["category_breakdown"] == {
            "backend_unavailable": 1,
            "invariant_violation": 1,
        }

    def test_custom_fallback_strategy(self, handler):
        handler.register_fallback_strategy(
            ErrorCategory.COMPUTATION_ERROR,
            lambda error, report: {"success": True, "actions": ["retried"]},
        )
        report = handler.handle_error(ComputationError("nan"))
        assert report.fallback_used
        assert report.recovery_actions == ["retried"]

    def test_diagnostic_report(self, handler):
        handler.handle_error(BackendUnavailableError("no scipy", backend="external"))

        text = handler.generate_diagnostic_report()

        assert "FOURIER TEST HARNESS - DIAGNOSTIC REPORT" in text
        assert "Total Errors: 1" in text
        assert "no scipy" in text
        assert "removed from active set" in text

    def test_clear_error_history(self, handler):
        error = BackendUnavailableError("x", backend="accelerated")
        handler.report_once("key", error)
        handler.clear_error_history()

        assert handler.get_error_statistics()["total_errors"] == 0
        assert handler.report_once("key", error) is not None


class TestModuleHelpers:
    """Test cases for module-level helpers."""

    def test_global_error_handler(self):
        assert get_error_handler() is get_error_handler()

    def test_create_error_context(self):
        context = create_error_context("tick", "SpectralPipeline", time=1.5)
        assert context.operation == "tick"
        assert context.component == "SpectralPipeline"
        assert context.parameters == {"time": 1.5}
