"""Project configuration validation.

Checks a flat project configuration before any worker is spawned. Rules are
applied in a fixed order and the first failing rule determines the error:

1. ``warehouse`` (when set) must be a supported warehouse.
2. Naming affix properties (when present) must be simple identifiers.
3. Mandatory properties must be present.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from warehouse_compiler.errors import InvalidConfigError

VALID_WAREHOUSES: tuple[str, ...] = (
    "bigquery",
    "postgres",
    "presto",
    "redshift",
    "snowflake",
    "sqldatawarehouse",
)

# Properties that may only hold alphanumerics, underscores or hyphens.
SIMPLE_CHECK_PROPS: tuple[str, ...] = (
    "assertionSchema",
    "databaseSuffix",
    "schemaSuffix",
    "tablePrefix",
    "defaultSchema",
)

MANDATORY_PROPS: tuple[str, ...] = ("warehouse", "defaultSchema")

SIMPLE_VALUE_PATTERN = re.compile(r"[A-Za-z0-9_\-]*")


def _check_warehouse(config: Mapping[str, Any]) -> None:
    warehouse = config.get("warehouse")
    if warehouse and warehouse not in VALID_WAREHOUSES:
        raise InvalidConfigError(
            f"Invalid value on property warehouse: {warehouse}. "
            f"Should be one of: {', '.join(VALID_WAREHOUSES)}.",
            field="warehouse",
            value=warehouse,
        )


def _check_simple_props(config: Mapping[str, Any]) -> None:
    for prop in SIMPLE_CHECK_PROPS:
        if prop not in config:
            continue
        value = config[prop]
        if not SIMPLE_VALUE_PATTERN.fullmatch(str(value)):
            raise InvalidConfigError(
                f"Invalid value on property {prop}: {value}. Should only contain "
                "alphanumeric characters, underscores and/or hyphens.",
                field=prop,
                value=value,
            )


def _check_mandatory_props(config: Mapping[str, Any]) -> None:
    for prop in MANDATORY_PROPS:
        if prop not in config:
            raise InvalidConfigError(f"Missing mandatory property: {prop}.", field=prop)


def validate_project_config(config: Mapping[str, Any]) -> None:
    """Validate a project configuration.

    Pure and deterministic: the mapping is never modified.

    Args:
        config: Flat mapping of project property names to values.

    Raises:
        InvalidConfigError: If any rule fails. The error names the offending
            property.

    Example:
        >>> validate_project_config({"warehouse": "bigquery", "defaultSchema": "df"})
        >>> validate_project_config({"warehouse": "bigquery"})
        Traceback (most recent call last):
        ...
        InvalidConfigError: Missing mandatory property: defaultSchema.
    """
    _check_warehouse(config)
    _check_simple_props(config)
    _check_mandatory_props(config)
