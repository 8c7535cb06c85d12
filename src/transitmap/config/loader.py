"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
Minimal configs only need: project, service.base_url, modes
"""

import os
import re
from importlib.resources import files
from pathlib import Path
from typing import Any

import yaml

from transitmap.config.settings import PipelineConfig

DEFAULT_CONFIG = "mbta.yaml"


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _parse_yaml(text: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML: {e}"
        raise ValueError(msg) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Config must be a mapping, got {type(data).__name__}"
        raise ValueError(msg)
    return _process_config_values(data)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        return _parse_yaml(f.read())


def build_config(data: dict[str, Any]) -> PipelineConfig:
    """
    Validate a merged config mapping.

    Args:
        data: Parsed and merged configuration.

    Returns:
        Fully validated PipelineConfig instance.
    """
    if not data.get("project"):
        msg = "Config must specify 'project' name"
        raise ValueError(msg)

    if not data.get("service", {}).get("base_url"):
        msg = "Config must specify 'service.base_url'"
        raise ValueError(msg)

    if not data.get("modes"):
        msg = "Config must define at least one entry under 'modes'"
        raise ValueError(msg)

    return PipelineConfig.model_validate(data)


def default_config_data() -> dict[str, Any]:
    """Raw mapping of the packaged MBTA configuration."""
    resource = files("transitmap.config").joinpath("defaults", DEFAULT_CONFIG)
    return _parse_yaml(resource.read_text(encoding="utf-8"))


def default_config() -> PipelineConfig:
    """Packaged MBTA configuration (MassDOT GTFS_Systemwide MapServer)."""
    return build_config(default_config_data())


def load_config(
    config_path: Path | None = None,
    base_path: Path | None = None,
) -> PipelineConfig:
    """
    Load pipeline configuration from YAML file(s).

    Without a config path the packaged MBTA configuration is returned.
    A config file is merged over its base: an explicit base_path, else a
    base.yaml next to the config file, else nothing.

    Args:
        config_path: Path to the main configuration file.
        base_path: Optional path to base configuration for inheritance.

    Returns:
        Fully validated PipelineConfig instance.
    """
    if config_path is None:
        return default_config()

    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        potential_base = config_path.parent / "base.yaml"
        base_data = (
            load_yaml(potential_base)
            if potential_base.exists() and potential_base != config_path
            else {}
        )

    main_data = load_yaml(config_path)
    merged = _deep_merge(base_data, main_data)

    return build_config(merged)
