"""Build configuration files.

Helpers for loading build configurations from YAML or JSON files and
writing them back out.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from iso_creator.builds.models import BuildConfig


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the content is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the content is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def load_build_config(path: Path) -> BuildConfig:
    """Load and validate a build configuration (YAML or JSON).

    The format is chosen by extension: .yaml/.yml or .json.

    Args:
        path: Path to the configuration file.

    Returns:
        Validated BuildConfig.

    Raises:
        ValueError: If the extension is not supported.
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the data does not match the model.
    """
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = load_yaml(path)
    elif suffix == ".json":
        data = load_json(path)
    else:
        raise ValueError(
            f"Unsupported file extension: {suffix}. Use .yaml, .yml, or .json"
        )
    return BuildConfig.model_validate(data)


def build_config_to_yaml(config: BuildConfig) -> str:
    """Serialize a build configuration to YAML."""
    data = config.model_dump(mode="json", exclude_defaults=True)
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


__all__ = ["build_config_to_yaml", "load_build_config", "load_json", "load_yaml"]
