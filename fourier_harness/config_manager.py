"""
Configuration management using Dynaconf for centralized parameter handling.

This module loads harness parameters from a TOML file (optionally overridden by
``FOURIER_`` environment variables), validates them and exposes typed
section getters.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

try:
    from dynaconf import Dynaconf

    DYNACONF_AVAILABLE = True
except ImportError:
    DYNACONF_AVAILABLE = False
    Dynaconf = None

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "fourier_harness"

BACKEND_NAMES = ("reference", "accelerated", "external")
EXTERNAL_NORMS = ("backward", "ortho", "forward")


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


class ConfigurationManager:
    """Centralized configuration manager using Dynaconf."""

    def __init__(self, config_file: Optional[str] = None, create_default: bool = True):
        """Initialize configuration manager.

        Args:
            config_file: Path to configuration file (defaults to fourier.toml)
            create_default: Whether to create default config if file doesn't exist
        """
        if not DYNACONF_AVAILABLE:
            raise ConfigurationError(
                "Dynaconf is not available. Install it with: pip install dynaconf"
            )

        self.config_file = str(config_file or "fourier.toml")
        self.config_path = Path(self.config_file)

        if not self.config_path.exists() and create_default:
            self._create_default_config()

        try:
            self.settings = Dynaconf(
                settings_files=[self.config_file],
                envvar_prefix="FOURIER",
            )
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")

        self._validate_configuration()

        logger.info(f"Configuration loaded from {self.config_file}")

    def _create_default_config(self) -> None:
        """Create a default configuration file."""
        default_config = """# Fourier Test Harness Configuration

[pipeline]
# Samples per axis; 1-D pipelines use signal_length, 2-D pipelines an N x N grid
signal_length = 1024
signal_length_2d = 16
# Backend whose spectrum is filtered and inverse-transformed
primary_backend_1d = "reference"     # reference, accelerated, external
primary_backend_2d = "accelerated"
default_signal = "square"            # square, sine, saw, sinc, random
# none, cut_large, cut_medium, cut_short, exp, gaussian, inverse
default_filter = "none"
inverted = false

[signal]
scale_u = 1.0
scale_v = 1.0
random_low = 0.0
random_high = 1.0
# random_seed = 42

[filter]
# Cut-off thresholds in signed-frequency units
cut_large = 256
cut_medium = 128
cut_short = 64
exp_rate = 0.01
gaussian_rate = 0.005
inverse_gain = 4.0

[filter_2d]
# Cut-off thresholds for the 2-D grid; the other filter parameters come from [filter]
cut_large = 4
cut_medium = 2
cut_short = 1

[backends]
enable_accelerated = true
enable_external = true
accelerated_device = "gpu"           # gpu (CuPy) or cpu (numpy substrate)
external_norm = "ortho"              # backward, ortho, forward

[validation]
tolerance = 1e-9
history_size = 1000
check_finite = true

[logging]
level = "INFO"
log_tick_metrics = false
"""

        with open(self.config_path, "w") as f:
            f.write(default_config)

        logger.info(f"Created default configuration file: {self.config_file}")

    def _validate_configuration(self) -> None:
        """Validate configuration parameters."""
        from .validation import ConfigValidator, ValidationError

        errors = []

        try:
            pipeline = self.get_pipeline_config()
            for key in ("signal_length", "signal_length_2d"):
                try:
                    ConfigValidator.validate_signal_length(pipeline[key])
                except ValidationError as e:
                    errors.append(f"pipeline.{key}: {e}")

            for key in ("primary_backend_1d", "primary_backend_2d"):
                if pipeline[key] not in BACKEND_NAMES:
                    errors.append(f"pipeline.{key} must be one of {BACKEND_NAMES}")

            from .models import FilterType, SignalType

            try:
                SignalType(pipeline["default_signal"])
            except ValueError:
                errors.append(f"pipeline.default_signal unknown: {pipeline['default_signal']}")
            try:
                FilterType(pipeline["default_filter"])
            except ValueError:
                errors.append(f"pipeline.default_filter unknown: {pipeline['default_filter']}")
        except Exception as e:
            errors.append(f"Error validating pipeline configuration: {e}")

        try:
            signal = self.get_signal_config()
            if signal["random_high"] <= signal["random_low"]:
                errors.append("signal.random_high must be greater than signal.random_low")
            if signal["scale_u"] <= 0 or signal["scale_v"] <= 0:
                errors.append("signal.scale_u and signal.scale_v must be positive")
        except Exception as e:
            errors.append(f"Error validating signal configuration: {e}")

        try:
            flt = self.get_filter_config()
            flt_2d = self.get_filter_config(dimensionality=2)
            for key in ("cut_large", "cut_medium", "cut_short"):
                if flt[key] < 0:
                    errors.append(f"filter.{key} must be non-negative")
                if flt_2d[key] < 0:
                    errors.append(f"filter_2d.{key} must be non-negative")
            for key in ("exp_rate", "gaussian_rate", "inverse_gain"):
                if flt[key] <= 0:
                    errors.append(f"filter.{key} must be positive")
        except Exception as e:
            errors.append(f"Error validating filter configuration: {e}")

        try:
            backends = self.get_backends_config()
            if backends["accelerated_device"] not in ("gpu", "cpu"):
                errors.append("backends.accelerated_device must be 'gpu' or 'cpu'")
            if backends["external_norm"] not in EXTERNAL_NORMS:
                errors.append(f"backends.external_norm must be one of {EXTERNAL_NORMS}")
        except Exception as e:
            errors.append(f"Error validating backends configuration: {e}")

        try:
            validation = self.get_validation_config()
            if validation["tolerance"] < 0:
                errors.append("validation.tolerance must be non-negative")
            if validation["history_size"] <= 0:
                errors.append("validation.history_size must be positive")
        except Exception as e:
            errors.append(f"Error validating validation configuration: {e}")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(
                f"  - {error}" for error in errors
            )
            raise ConfigurationError(error_msg)

    def get_pipeline_config(self) -> Dict[str, Any]:
        """Get pipeline configuration parameters.

        Returns:
            Dictionary with pipeline configuration
        """
        return {
            "signal_length": int(self.settings.get("pipeline.signal_length", 1024)),
            "signal_length_2d": int(self.settings.get("pipeline.signal_length_2d", 16)),
            "primary_backend_1d": str(
                self.settings.get("pipeline.primary_backend_1d", "reference")
            ),
            "primary_backend_2d": str(
                self.settings.get("pipeline.primary_backend_2d", "accelerated")
            ),
            "default_signal": str(self.settings.get("pipeline.default_signal", "square")),
            "default_filter": str(self.settings.get("pipeline.default_filter", "none")),
            "inverted": bool(self.settings.get("pipeline.inverted", False)),
        }

    def get_signal_config(self) -> Dict[str, Any]:
        """Get signal generator configuration parameters.

        Returns:
            Dictionary with signal configuration
        """
        seed = self.settings.get("signal.random_seed", None)
        return {
            "scale_u": float(self.settings.get("signal.scale_u", 1.0)),
            "scale_v": float(self.settings.get("signal.scale_v", 1.0)),
            "random_low": float(self.settings.get("signal.random_low", 0.0)),
            "random_high": float(self.settings.get("signal.random_high", 1.0)),
            "random_seed": None if seed is None else int(seed),
        }

    def get_filter_config(self, dimensionality: int = 1) -> Dict[str, Any]:
        """Get frequency filter configuration parameters.

        Cut-off thresholds come from ``[filter_2d]`` when ``dimensionality`` is 2,
        since the 2-D grid spans far fewer frequencies than a 1-D signal.

        Args:
            dimensionality: Pipeline dimensionality the filter is built for

        Returns:
            Dictionary with filter configuration
        """
        if dimensionality == 2:
            section, cut_defaults = "filter_2d", (4, 2, 1)
        else:
            section, cut_defaults = "filter", (256, 128, 64)
        return {
            "cut_large": int(self.settings.get(f"{section}.cut_large", cut_defaults[0])),
            "cut_medium": int(self.settings.get(f"{section}.cut_medium", cut_defaults[1])),
            "cut_short": int(self.settings.get(f"{section}.cut_short", cut_defaults[2])),
            "exp_rate": float(self.settings.get("filter.exp_rate", 0.01)),
            "gaussian_rate": float(self.settings.get("filter.gaussian_rate", 0.005)),
            "inverse_gain": float(self.settings.get("filter.inverse_gain", 4.0)),
        }

    def get_backends_config(self) -> Dict[str, Any]:
        """Get transform backend configuration parameters.

        Returns:
            Dictionary with backend configuration
        """
        return {
            "enable_accelerated": bool(self.settings.get("backends.enable_accelerated", True)),
            "enable_external": bool(self.settings.get("backends.enable_external", True)),
            "accelerated_device": str(self.settings.get("backends.accelerated_device", "gpu")),
            "external_norm": str(self.settings.get("backends.external_norm", "ortho")),
        }

    def get_validation_config(self) -> Dict[str, Any]:
        """Get cross-validation configuration parameters.

        Returns:
            Dictionary with validation configuration
        """
        return {
            "tolerance": float(self.settings.get("validation.tolerance", 1e-9)),
            "history_size": int(self.settings.get("validation.history_size", 1000)),
            "check_finite": bool(self.settings.get("validation.check_finite", True)),
        }

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration parameters.

        Returns:
            Dictionary with logging configuration
        """
        return {
            "level": str(self.settings.get("logging.level", "INFO")),
            "log_tick_metrics": bool(self.settings.get("logging.log_tick_metrics", False)),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key.

        Args:
            key: Configuration key (supports dot notation, e.g., 'pipeline.signal_length')
            default: Default value if key is not found

        Returns:
            Configuration value
        """
        return self.settings.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        self.settings.set(key, value)

    def reload(self) -> None:
        """Reload configuration from file."""
        try:
            self.settings.reload()
            self._validate_configuration()
            logger.info("Configuration reloaded successfully")
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to reload configuration: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        return {
            "pipeline": self.get_pipeline_config(),
            "signal": self.get_signal_config(),
            "filter": self.get_filter_config(),
            "filter_2d": self.get_filter_config(dimensionality=2),
            "backends": self.get_backends_config(),
            "validation": self.get_validation_config(),
            "logging": self.get_logging_config(),
        }

    def __repr__(self) -> str:
        """String representation of ConfigurationManager."""
        return f"ConfigurationManager(config_file='{self.config_file}')"


def configure_logging(config_manager: ConfigurationManager) -> None:
    """Apply the ``[logging]`` section to the package logger."""
    level_name = config_manager.get_logging_config()["level"].upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown logging level: {level_name}")
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


# Global configuration instance
_global_config: Optional[ConfigurationManager] = None


def get_config(
    config_file: Optional[str] = None, create_default: bool = True
) -> ConfigurationManager:
    """Get global configuration instance.

    Args:
        config_file: Path to configuration file
        create_default: Whether to create default config if file doesn't exist

    Returns:
        ConfigurationManager instance
    """
    global _global_config

    if _global_config is None or config_file is not None:
        _global_config = ConfigurationManager(config_file, create_default)

    return _global_config


def reload_config() -> None:
    """Reload global configuration."""
    if _global_config is not None:
        _global_config.reload()


def reset_config() -> None:
    """Reset global configuration (force reload on next access)."""
    global _global_config
    _global_config = None
