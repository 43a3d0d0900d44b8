"""Project configuration file loading and merging.

The project configuration lives in ``dataform.json`` at the project root
(``dataform.yaml`` is accepted when no JSON file exists). It is read
synchronously, deep-merged with the request's override and validated before
any worker is spawned.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
import yaml

from warehouse_compiler.errors import ConfigFileError
from warehouse_compiler.validation import validate_project_config

if TYPE_CHECKING:
    from warehouse_compiler.models import CompileRequest

logger = structlog.get_logger(__name__)

PROJECT_CONFIG_FILES: tuple[str, ...] = ("dataform.json", "dataform.yaml")
"""Candidate project configuration files, in lookup order."""


def find_project_config_file(project_dir: Path | str) -> Path:
    """Locate the project configuration file.

    Raises:
        ConfigFileError: If none of PROJECT_CONFIG_FILES exists.
    """
    project_dir = Path(project_dir)
    for name in PROJECT_CONFIG_FILES:
        candidate = project_dir / name
        if candidate.is_file():
            return candidate

    missing = project_dir / PROJECT_CONFIG_FILES[0]
    raise ConfigFileError(
        "Unable to read project configuration",
        file_path=str(missing),
        cause=FileNotFoundError(f"No such file: {missing}"),
    )


def load_project_config(project_dir: Path | str) -> dict[str, Any]:
    """Read and parse the project configuration file.

    Args:
        project_dir: Project root directory.

    Returns:
        Parsed configuration mapping. An empty YAML document yields ``{}``.

    Raises:
        ConfigFileError: If the file is missing, unreadable, unparsable, or
            does not contain a mapping. The underlying error is the cause.
    """
    path = find_project_config_file(project_dir)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(
            "Unable to read project configuration", file_path=str(path), cause=e
        ) from e

    try:
        data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigFileError(
            "Unable to parse project configuration", file_path=str(path), cause=e
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigFileError(
            "Project configuration must be a mapping",
            file_path=str(path),
            cause=TypeError(f"expected an object, got {type(data).__name__}"),
        )

    logger.debug("project_config_loaded", file_path=str(path), keys=sorted(data))
    return data


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` over ``base``.

    Nested mappings are merged key by key, lists are concatenated and any other
    override value replaces the base value. Neither input is modified.

    Example:
        >>> deep_merge({"vars": {"a": 1}, "tags": ["x"]}, {"vars": {"b": 2}, "tags": ["y"]})
        {'vars': {'a': 1, 'b': 2}, 'tags': ['x', 'y']}
    """
    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        elif isinstance(current, list) and isinstance(value, list):
            merged[key] = current + copy.deepcopy(value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def resolve_project_config(request: CompileRequest) -> dict[str, Any]:
    """Load, merge and validate the project configuration of a request.

    Args:
        request: Compile request naming the project directory and override.

    Returns:
        The merged, validated configuration.

    Raises:
        ConfigFileError: If the configuration file cannot be read or parsed.
        InvalidConfigError: If the merged configuration is invalid.
    """
    config = deep_merge(load_project_config(request.project_dir), request.effective_override())
    validate_project_config(config)
    return config
