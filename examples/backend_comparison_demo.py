#!/usr/bin/env python3
"""
Transform Backend Comparison

This example runs the same signals through every transform backend, times
them, and cross-validates their spectra and round trips. The accelerated
backend uses CuPy when a CUDA device is present and the NumPy substrate
otherwise.
"""

import time

import numpy as np

from fourier_harness import (
    AcceleratedBackend,
    BackendUnavailableError,
    CrossValidator,
    ExecutionContext,
    ExternalReferenceBackend,
    ReferenceBackend,
    SignalDescriptor,
    SignalGenerator,
    SignalType,
)
from fourier_harness.gpu_backend import CUPY_AVAILABLE
from fourier_harness.models import allocate_buffer


def open_backends(context, signal_length, dimensionality):
    backends = [ReferenceBackend()]
    try:
        backends.append(AcceleratedBackend(context, signal_length, dimensionality))
    except BackendUnavailableError as e:
        print(f"   accelerated unavailable: {e}")
    try:
        backends.append(ExternalReferenceBackend())
    except BackendUnavailableError as e:
        print(f"   external unavailable: {e}")
    return backends


def demonstrate_backends():
    """Compare every available backend on 1-D and 2-D signals."""
    print("=== Fourier Test Harness Backend Comparison ===\n")

    device = "gpu" if CUPY_AVAILABLE else "cpu"
    generator = SignalGenerator(seed=7)
    validator = CrossValidator()

    with ExecutionContext(device) as context:
        info = context.device_info
        print(f"1. Execution context: {info['backend']} ({info['device_name']})\n")

        for dimensionality, n in ((1, 1024), (2, 16)):
            shape = (n,) * dimensionality
            print(f"2. {dimensionality}-D signals, shape {shape}")
            backends = open_backends(context, n, dimensionality)

            for signal_type in (SignalType.SQUARE, SignalType.SINC, SignalType.RANDOM):
                signal = generator.generate(
                    allocate_buffer(shape), SignalDescriptor(signal_type, time=0.25)
                )
                print(f"   {signal_type.value}:")

                for backend in backends:
                    start_time = time.time()
                    backend.forward(signal)
                    elapsed = (time.time() - start_time) * 1000
                    round_trip = validator.check_round_trip(backend, signal)
                    print(f"     {backend.name:<12} {elapsed:8.2f} ms   round trip {round_trip}")

                for (a, b), metric in validator.compare_backends(backends, signal).items():
                    status = "agree" if validator.agrees(metric) else "DIFFER"
                    print(f"     {a} vs {b}: {metric} ({status})")

            for backend in backends:
                backend.close()
            print()

    stats = validator.get_statistics()
    print(
        f"3. {stats['count']} comparisons, worst total {stats['max_total']:.3g}, "
        f"mean total {stats['mean_total']:.3g}"
    )
    print(f"   numpy {np.__version__}, CuPy available: {CUPY_AVAILABLE}")


if __name__ == "__main__":
    demonstrate_backends()
