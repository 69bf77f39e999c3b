#!/usr/bin/env python3
"""
Setup script for Fourier Test Harness using UV.

This script helps set up the development environment and run common tasks.
"""

import subprocess
import sys

PACKAGE = "fourier_harness"
SOURCES = [f"{PACKAGE}/", "tests/", "examples/"]


def run_command(cmd: list[str], description: str) -> bool:
    """Run a command and return success status."""
    print(f"Running: {description}")
    print(f"Command: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, check=True, capture_output=True, text=True)
        if result.stdout:
            print(result.stdout)
        return True
    except subprocess.CalledProcessError as e:
        print(f"Error: {e}")
        if e.stdout:
            print(e.stdout)
        if e.stderr:
            print(f"Stderr: {e.stderr}")
        return False


def setup_environment():
    """Set up the development environment."""
    print("Setting up Fourier Test Harness development environment...")

    try:
        subprocess.run(["uv", "--version"], check=True, capture_output=True)
        print("✓ UV is installed")
    except (subprocess.CalledProcessError, FileNotFoundError):
        print("✗ UV is not installed. Please install UV first:")
        print("  curl -LsSf https://astral.sh/uv/install.sh | sh")
        return False

    if not run_command(["uv", "venv"], "Creating virtual environment"):
        return False

    if not run_command(
        ["uv", "pip", "install", "-e", ".[dev]"], "Installing package in development mode"
    ):
        return False

    print("\n✓ Environment setup complete!")
    print("\nNext steps:")
    print("  1. Activate the virtual environment: source .venv/bin/activate")
    print("  2. Run tests: uv run pytest")
    print("  3. Cross-check the backends: python scripts/setup.py validate")
    print("  4. GPU backend (optional): uv pip install -e .[gpu]")

    return True


def run_tests():
    """Run the test suite."""
    print("Running test suite...")

    commands = [
        (["uv", "run", "pytest", "-v"], "Running tests"),
        (
            ["uv", "run", "pytest", f"--cov={PACKAGE}", "--cov-report=term-missing"],
            "Running tests with coverage",
        ),
    ]

    for cmd, desc in commands:
        if not run_command(cmd, desc):
            return False

    return True


def run_quality_checks():
    """Run code quality checks."""
    print("Running code quality checks...")

    commands = [
        (["uv", "run", "black", "--check", *SOURCES], "Checking code formatting"),
        (["uv", "run", "isort", "--check-only", *SOURCES], "Checking import sorting"),
        (["uv", "run", "flake8", *SOURCES], "Running linter"),
        (["uv", "run", "mypy", f"{PACKAGE}/"], "Running type checker"),
    ]

    all_passed = True
    for cmd, desc in commands:
        if not run_command(cmd, desc):
            all_passed = False

    return all_passed


def format_code():
    """Format code using black and isort."""
    print("Formatting code...")

    commands = [
        (["uv", "run", "black", *SOURCES], "Formatting code with black"),
        (["uv", "run", "isort", *SOURCES], "Sorting imports with isort"),
    ]

    for cmd, desc in commands:
        if not run_command(cmd, desc):
            return False

    print("✓ Code formatting complete!")
    return True


def run_validation():
    """Run a few 1-D ticks through every available backend and report agreement."""
    print("Cross-validating transform backends...")
    return run_command(
        ["uv", "run", "python", "examples/quick_start_demo.py"], "Running quick validation"
    )


def main():
    """Main entry point."""
    if len(sys.argv) < 2:
        print("Usage: python scripts/setup.py <command>")
        print("Commands:")
        print("  setup    - Set up development environment")
        print("  test     - Run test suite")
        print("  check    - Run code quality checks")
        print("  format   - Format code")
        print("  validate - Cross-validate the transform backends")
        return

    command = sys.argv[1]

    if command == "setup":
        ok = setup_environment()
    elif command == "test":
        ok = run_tests()
    elif command == "check":
        ok = run_quality_checks()
    elif command == "format":
        ok = format_code()
    elif command == "validate":
        ok = run_validation()
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
