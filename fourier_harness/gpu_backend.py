"""
Accelerated transform backend with CuPy integration.

This module provides the execution context that owns the device (buffer
allocation, host/device transfer and blocking kernel dispatch) and the
accelerated backend that runs a vectorised radix-2 Stockham FFT on it. A
``"cpu"`` context backed by NumPy runs the same kernels on the host; it is
selected explicitly and never substituted for a failed GPU.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from .error_handling import BackendUnavailableError, InvariantViolationError
from .models import BUFFER_DTYPE
from .transform_backend import Normalization, TransformBackend
from .validation import ConfigValidator

# Try to import CuPy, fall back gracefully if not available
try:
    import cupy as cp

    CUPY_AVAILABLE = True
except ImportError:
    cp = None
    CUPY_AVAILABLE = False

logger = logging.getLogger(__name__)

DEVICES = ("gpu", "cpu")


class ExecutionContext:
    """Device handle shared by accelerated backends.

    All work submitted through ``run_kernel`` goes to a single logical queue and
    the call blocks until the results are available, so a tick never observes
    a half-finished transform.
    """

    def __init__(self, device: str = "gpu", device_id: Optional[int] = None):
        """Initialize execution context.

        Args:
            device: 'gpu' for CuPy on a CUDA device, 'cpu' for the NumPy substrate
            device_id: CUDA device ordinal (current device if None)
        """
        if device not in DEVICES:
            raise ValueError(f"device must be one of {DEVICES}, got {device!r}")
        self.device = device
        self._device_id = device_id
        self._memory_pool = None
        self._acquired = False
        self.xp = None

    @property
    def is_acquired(self) -> bool:
        return self._acquired

    @property
    def is_gpu(self) -> bool:
        return self.device == "gpu"

    def acquire(self) -> "ExecutionContext":
        """Initialize the device and check it is usable.

        Raises:
            BackendUnavailableError: If CuPy or a CUDA device is unavailable
        """
        if self._acquired:
            return self

        if self.is_gpu:
            self._initialize_gpu()
            self.xp = cp
        else:
            self.xp = np

        self._acquired = True
        logger.info(f"Execution context acquired on {self.device_info['device_name']}")
        return self

    def _initialize_gpu(self) -> None:
        if not CUPY_AVAILABLE:
            raise BackendUnavailableError(
                "CuPy not available. Install cupy-cuda12x for GPU acceleration.",
                backend="accelerated",
            )

        try:
            device_count = cp.cuda.runtime.getDeviceCount()
        except Exception as e:
            raise BackendUnavailableError(
                f"CUDA runtime unavailable: {e}", backend="accelerated"
            ) from e
        if device_count == 0:
            raise BackendUnavailableError("No CUDA devices found", backend="accelerated")

        try:
            if self._device_id is not None:
                cp.cuda.Device(self._device_id).use()
            self._device_id = cp.cuda.Device().id

            # Test basic GPU operation
            result = cp.sum(cp.array([1, 2, 3]))
            if int(result.get()) != 6:
                raise BackendUnavailableError(
                    "GPU computation test failed", backend="accelerated"
                )

            self._memory_pool = cp.get_default_memory_pool()

            mem_info = cp.cuda.Device().mem_info
            if mem_info[0] < 100 * 1024 * 1024:
                logger.warning(f"Low GPU memory available: {mem_info[0] / 1024**2:.1f} MB")
        except BackendUnavailableError:
            raise
        except Exception as e:
            raise BackendUnavailableError(
                f"GPU initialization failed: {e}", backend="accelerated"
            ) from e

    def _require_acquired(self) -> None:
        if not self._acquired:
            raise RuntimeError("Execution context is not acquired")

    def allocate(self, shape: Tuple[int, ...], dtype: Any = BUFFER_DTYPE):
        """Allocate a zeroed device buffer."""
        self._require_acquired()
        return self.xp.zeros(shape, dtype=dtype)

    def to_device(self, array: np.ndarray):
        """Transfer a host array to the device."""
        self._require_acquired()
        return self.xp.asarray(array)

    def to_host(self, array) -> np.ndarray:
        """Transfer a device array back to the host."""
        if self.is_gpu and hasattr(array, "get"):
            return array.get()
        return np.asarray(array)

    def run_kernel(self, kernel: Callable, *args, **kwargs):
        """Run ``kernel(xp, *args, **kwargs)`` and wait for it to complete."""
        self._require_acquired()
        result = kernel(self.xp, *args, **kwargs)
        self.synchronize()
        return result

    def synchronize(self) -> None:
        if self.is_gpu and self._acquired:
            cp.cuda.Stream.null.synchronize()

    @property
    def device_info(self) -> dict:
        """Get information about the current compute device."""
        if self.is_gpu and self._acquired:
            device = cp.cuda.Device(self._device_id)
            return {
                "backend": "GPU",
                "device_id": self._device_id,
                "device_name": f"CUDA device {self._device_id}",
                "memory_total": device.mem_info[1],
                "memory_free": device.mem_info[0],
                "compute_capability": device.compute_capability,
            }
        return {
            "backend": "CPU",
            "device_name": "CPU",
            "memory_total": None,
            "memory_free": None,
        }

    def get_memory_info(self) -> dict:
        """Get current memory usage information."""
        if self.is_gpu and self._memory_pool is not None:
            return {
                "backend": "GPU",
                "used_bytes": self._memory_pool.used_bytes(),
                "total_bytes": self._memory_pool.total_bytes(),
                "free_bytes": cp.cuda.Device().mem_info[0],
            }
        return {"backend": "CPU", "used_bytes": None, "total_bytes": None, "free_bytes": None}

    def release(self) -> None:
        """Free pooled device memory and release the device. Idempotent."""
        if not self._acquired:
            return
        if self.is_gpu:
            try:
                self.synchronize()
                if self._memory_pool is not None:
                    self._memory_pool.free_all_blocks()
            except Exception as e:
                logger.warning(f"GPU memory cleanup failed: {e}")
        self._memory_pool = None
        self._acquired = False
        self.xp = None
        logger.info(f"Execution context released ({self.device})")

    def __enter__(self):
        """Context manager entry."""
        return self.acquire()

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with automatic cleanup."""
        self.release()


def _load_kernel(xp, dst, host_data):
    dst[...] = xp.asarray(host_data)


def _butterfly_kernel(xp, src, dst, m: int, sign: int):
    """One Stockham radix-2 pass.

    ``src`` holds ``m``-point transforms of the interleaved subsequences as shape
    ``(batch, m, L)``; ``dst`` receives the ``2m``-point transforms as
    ``(batch, 2m, L/2)``.
    """
    half = src.shape[2] // 2
    even = src[:, :, :half]
    odd = src[:, :, half:]
    twiddle = xp.exp(sign * 1j * xp.pi * xp.arange(m) / m)[None, :, None]
    product = twiddle * odd
    dst[:, :m, :] = even + product
    dst[:, m:, :] = even - product


def _transpose_kernel(xp, src, dst):
    dst[...] = src.T


class AcceleratedBackend(TransformBackend):
    """Vectorised radix-2 FFT dispatched through an execution context.

    Native normalization is ``NONE``: forward and inverse differ only in the
    sign of the twiddle exponent. Lengths must be powers of two.
    """

    name = "accelerated"
    native_normalization = Normalization.NONE

    def __init__(
        self,
        context: Optional[ExecutionContext] = None,
        signal_length: Optional[int] = None,
        dimensionality: int = 1,
        device: str = "gpu",
        check_finite: bool = True,
    ):
        """Initialize accelerated backend.

        Args:
            context: Acquired execution context; a private one is created if None
            signal_length: Per-axis length to validate and pre-allocate buffers for
            dimensionality: Number of axes of the buffers to pre-allocate for (1 or 2)
            device: Device for the private context when ``context`` is None
            check_finite: Reject non-finite transform output

        Raises:
            BackendUnavailableError: If the device is unusable or the length is
                not a power of two
        """
        super().__init__(check_finite=check_finite)

        if signal_length is not None and not ConfigValidator.is_power_of_two(signal_length):
            raise BackendUnavailableError(
                f"Accelerated FFT requires a power-of-two length, got {signal_length}",
                backend=self.name,
            )

        self._owns_context = context is None
        self.context = context or ExecutionContext(device)
        if not self.context.is_acquired:
            self.context.acquire()

        self._buffers: Dict[int, tuple] = {}
        if signal_length is not None:
            try:
                self._ping_pong(signal_length**dimensionality)
            except BaseException:
                if self._owns_context:
                    self.context.release()
                raise

        logger.info(
            f"Accelerated backend ready on {self.context.device_info['backend']} "
            f"(signal_length={signal_length})"
        )

    def _ping_pong(self, size: int) -> tuple:
        if size not in self._buffers:
            self._buffers[size] = (self.context.allocate((size,)), self.context.allocate((size,)))
        return self._buffers[size]

    def _transform_rows(self, src, dst, rows: int, n: int, sign: int):
        """FFT of every row of flat ``src``; returns ``(result, scratch)`` buffers."""
        m = 1
        while m < n:
            self.context.run_kernel(
                _butterfly_kernel,
                src.reshape(rows, m, n // m),
                dst.reshape(rows, 2 * m, n // (2 * m)),
                m,
                sign,
            )
            src, dst = dst, src
            m *= 2
        return src, dst

    def _transform(self, data: np.ndarray, sign: int) -> np.ndarray:
        n = data.shape[-1]
        if not ConfigValidator.is_power_of_two(n):
            raise InvariantViolationError(
                f"Accelerated FFT requires a power-of-two length, got {n}", actual=n
            )

        rows = data.size // n
        src, dst = self._ping_pong(data.size)
        self.context.run_kernel(_load_kernel, src, data.reshape(-1))

        src, dst = self._transform_rows(src, dst, rows, n, sign)

        if data.ndim == 2:
            # Columns: transpose, transform rows again, transpose back
            self.context.run_kernel(_transpose_kernel, src.reshape(n, n), dst.reshape(n, n))
            src, dst = dst, src
            src, dst = self._transform_rows(src, dst, rows, n, sign)
            self.context.run_kernel(_transpose_kernel, src.reshape(n, n), dst.reshape(n, n))
            src, dst = dst, src

        return self.context.to_host(src).reshape(data.shape).copy()

    def _forward_native(self, signal: np.ndarray) -> np.ndarray:
        return self._transform(signal, -1)

    def _inverse_native(self, spectrum: np.ndarray) -> np.ndarray:
        return self._transform(spectrum, +1)

    def describe(self) -> dict:
        info = super().describe()
        info["device"] = self.context.device_info if self.context.is_acquired else None
        return info

    def _release(self) -> None:
        self._buffers.clear()
        if self._owns_context:
            self.context.release()
