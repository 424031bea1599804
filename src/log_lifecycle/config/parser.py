"""YAML configuration loading for log lifecycle runs."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from log_lifecycle.config.models import ENV_FIELDS, RunConfig
from log_lifecycle.utils.errors import ConfigurationError

_ENV_NAMES = {name: variable for variable, name in ENV_FIELDS.items()}


class ConfigValidationError(ConfigurationError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, errors: Optional[List[Dict]] = None):
        super().__init__(message, suggestions=["Fix the listed settings and re-run"])
        self.errors = errors or []

    def __str__(self) -> str:
        """Format validation errors for display."""
        if not self.errors:
            return self.message

        error_lines = [self.message, ""]
        for error in self.errors:
            location = " -> ".join(str(loc) for loc in error.get("loc", []))
            msg = error.get("msg", "Unknown error")
            error_lines.append(f"  • {location}: {msg}")

        return "\n".join(error_lines)


def build_config(data: Dict[str, Any], source: str = "configuration") -> RunConfig:
    """Validate a mapping into a RunConfig.

    Args:
        data: Field values
        source: Where the values came from, used in error messages and
            locations (``environment`` reports variable names)

    Raises:
        ConfigValidationError: listing every invalid field
    """
    try:
        return RunConfig(**data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = list(error["loc"])
            if source == "environment" and loc and loc[0] in _ENV_NAMES:
                loc[0] = _ENV_NAMES[loc[0]]
            errors.append({"loc": [source] + loc, "msg": error["msg"]})
        raise ConfigValidationError(
            f"Configuration validation failed with {len(errors)} error(s)", errors
        ) from e


def load_config(config_path: str) -> RunConfig:
    """Load and validate configuration from a YAML file.

    Keys are the RunConfig field names (``filter``, ``desired_state``,
    ``regions``, ...).

    Raises:
        ConfigValidationError: If the file is not valid YAML or a value is invalid
        FileNotFoundError: If the file doesn't exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Failed to parse YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigValidationError(
            "Configuration validation failed with 1 error(s)",
            [{"loc": [str(path)], "msg": "Top level must be a mapping"}],
        )
    return build_config(data, source=path.name)
