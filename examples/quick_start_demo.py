#!/usr/bin/env python3
"""
Quick start demonstration of the Fourier Test Harness.

Runs synthetic signals through every available FFT backend, filters the
spectrum and reports how closely the backends and the round trip agree.

Run with: uv run python examples/quick_start_demo.py
"""

from fourier_harness import FilterType, FourierTestHarness, SignalType, quick_validate


def quick_start_example():
    """Demonstrate the quickest way to use the harness."""
    print("Fourier Test Harness - Quick Start")
    print("=" * 50)

    # Method 1: convenience function
    print("\n1. Using quick_validate:")

    report = quick_validate(SignalType.SQUARE, num_ticks=3)
    print(f"✓ Active backends: {', '.join(report['backends'])}")
    print(f"✓ Primary backend: {report['primary_backend']}")
    for tick in report["ticks"]:
        pairs = ", ".join(f"{pair}={total:.3g}" for pair, total in tick["discrepancies"].items())
        print(f"  t={tick['time']:.2f}  {pairs or 'single backend'}")
    print(f"✓ Worst round-trip error: {report['worst_round_trip']:.3g}")
    print(f"✓ Backends agree: {report['agrees']}")

    # Method 2: harness with explicit pipelines
    print("\n2. Using the harness:")

    with FourierTestHarness() as harness:
        one_d = harness.pipeline(1)
        one_d.set_signal_descriptor(SignalType.SINC)
        one_d.set_filter_descriptor(FilterType.CUT_MEDIUM)
        result = harness.tick(1, current_time=0.5)
        print(f"✓ 1-D {result.signal_length}-point sinc, cut_medium filter")
        print(f"  {result.discrepancy or 'single backend'}")

        two_d = harness.pipeline(2)
        two_d.set_signal_descriptor(SignalType.SINE)
        result = harness.tick(2, current_time=0.5)
        n = result.signal_length
        print(f"✓ 2-D {n}x{n} sine on {result.primary_backend}")
        print(f"  {result.discrepancy or 'single backend'}")

        print("\n" + harness.error_handler.generate_diagnostic_report())

    print("\nNext steps:")
    print("• Edit fourier.toml to change lengths, filters or backends")
    print("• Set backends.accelerated_device = 'cpu' to run the radix-2 kernels without CUDA")


if __name__ == "__main__":
    quick_start_example()
