"""
YAML simulation config loader with validation.

Loads simulation YAML files and validates them against the Pydantic schema.
Relative paths in a config (the output directory) are resolved against the
config file's own directory, so a run writes to the same place whatever the
working directory is.
"""

from pathlib import Path
from typing import Union

import yaml
from pydantic import ValidationError

from gscm.config.schema import SimulationConfig


class ConfigLoadError(Exception):
    """Error loading or parsing a simulation config file."""

    pass


class ConfigLoader:
    """Load and validate simulation configs from YAML files."""

    def __init__(self, config_path: Union[str, Path]):
        """
        Initialize loader with path to config file.

        Args:
            config_path: Path to simulation YAML file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigLoadError(f"Config file not found: {config_path}")
        if not self.config_path.is_file():
            raise ConfigLoadError(f"Not a file: {config_path}")

    def load(self) -> SimulationConfig:
        """
        Load and validate config from YAML file.

        Returns:
            Validated SimulationConfig object

        Raises:
            ConfigLoadError: If file cannot be parsed or validation fails
        """
        raw_data = self.load_raw()

        if not isinstance(raw_data, dict):
            raise ConfigLoadError("Config file must contain a YAML mapping")

        try:
            config = SimulationConfig.model_validate(raw_data)
        except ValidationError as e:
            errors = []
            for error in e.errors():
                loc = ".".join(str(x) for x in error["loc"])
                errors.append(f"  {loc}: {error['msg']}")
            error_msg = "\n".join(errors)
            raise ConfigLoadError(f"Config validation failed:\n{error_msg}") from e

        return self._resolve_paths(config)

    def _resolve_paths(self, config: SimulationConfig) -> SimulationConfig:
        """Make a relative output directory relative to the config file, not the CWD."""
        output_dir = Path(config.output.directory).expanduser()
        if not output_dir.is_absolute():
            output_dir = self.config_path.parent / output_dir
        config.output.directory = str(output_dir)
        return config

    def load_raw(self) -> dict:
        """
        Load raw YAML data without validation.

        Raises:
            ConfigLoadError: If the YAML cannot be parsed
        """
        try:
            with open(self.config_path) as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"YAML parse error: {e}") from e


def load_config(path: Union[str, Path]) -> SimulationConfig:
    """
    Convenience function to load a simulation config from file.

    Args:
        path: Path to simulation YAML file

    Returns:
        Validated SimulationConfig object
    """
    return ConfigLoader(path).load()
