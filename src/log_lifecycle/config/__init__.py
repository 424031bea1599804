"""Configuration management for log lifecycle runs."""

from .models import DEFAULT_REGIONS, RunConfig
from .parser import ConfigValidationError, build_config, load_config

__all__ = [
    "DEFAULT_REGIONS",
    "RunConfig",
    "ConfigValidationError",
    "build_config",
    "load_config",
]
