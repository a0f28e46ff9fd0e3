"""Build options file loading.

This module provides helpers for loading build options from YAML or JSON
files so that a project can keep its build configuration under version
control instead of repeating CLI flags.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from container_build.schema import BuildOptions

YAML_SUFFIXES = {".yaml", ".yml"}
JSON_SUFFIXES = {".json"}


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary.

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

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed JSON content as a dictionary.

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


def load_options_data(path: Path) -> dict[str, Any]:
    """Load raw option data from a file, choosing the parser by suffix.

    Raises:
        ValueError: If the file extension is not supported.
    """
    suffix = path.suffix.lower()
    if suffix in YAML_SUFFIXES:
        return load_yaml(path)
    if suffix in JSON_SUFFIXES:
        return load_json(path)
    raise ValueError(f"Unsupported options file format: {path.suffix or path.name}")


def load_options(path: Path, overrides: dict[str, Any] | None = None) -> BuildOptions:
    """Load and validate build options from a YAML or JSON file.

    Args:
        path: Path to the options file.
        overrides: Values that replace those read from the file (CLI flags).

    Returns:
        Validated BuildOptions instance.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If data does not match the schema.
        ValueError: If the file format is unsupported or malformed.
    """
    data = load_options_data(path)
    if overrides:
        data.update(overrides)
    return BuildOptions.model_validate(data)


__all__ = ["load_json", "load_options", "load_options_data", "load_yaml"]
