"""Schema validation for wavex input and output documents.

Schemas are loaded exclusively from the installed ``wavex_schemas``
package, so validation does not depend on the working directory.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib.resources import files
from typing import Any

from jsonschema.validators import Draft202012Validator

SCHEMA_SUFFIX = ".schema.json"


@dataclass(frozen=True)
class SchemaRegistry:
    """Registry of available schemas from package data.

    Attributes:
        available: Sorted tuple of canonical schema names (without suffix)
    """

    available: tuple[str, ...] = ()

    def __init__(self) -> None:
        found = [
            item.name[: -len(SCHEMA_SUFFIX)]
            for item in files("wavex_schemas").iterdir()
            if item.name.endswith(SCHEMA_SUFFIX)
        ]
        object.__setattr__(self, "available", tuple(sorted(found)))

    def get_json(self, name: str) -> dict[str, Any]:
        """Load schema as parsed JSON dictionary.

        Raises:
            KeyError: If schema not found (lists available schemas)
            ValueError: If schema JSON is malformed
        """
        canonical_name = name.removesuffix(SCHEMA_SUFFIX)
        if canonical_name not in self.available:
            raise KeyError(
                f"Schema '{canonical_name}' not found in wavex package data. "
                f"Available schemas: {', '.join(self.available) or 'none'}"
            )

        text = (files("wavex_schemas") / f"{canonical_name}{SCHEMA_SUFFIX}").read_text(encoding="utf-8")
        try:
            schema: dict[str, Any] = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Schema '{canonical_name}' contains invalid JSON: {e}") from e
        return schema


_registry: SchemaRegistry | None = None


def get_registry() -> SchemaRegistry:
    """Get global schema registry instance (singleton)."""
    global _registry
    if _registry is None:
        _registry = SchemaRegistry()
    return _registry


def validate_data(
    data: Any,
    schema_name: str,
    strict: bool = True,
) -> tuple[bool, list[str]]:
    """Validate data against a schema from package data.

    Args:
        data: Parsed JSON/YAML document
        schema_name: Name of schema to validate against
        strict: If True, raise on validation errors; if False, return error list

    Returns:
        Tuple of (is_valid, error_messages)

    Raises:
        KeyError: If schema not found in package data
        ValueError: If validation fails and strict=True
    """
    schema = get_registry().get_json(schema_name)
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])

    if errors:
        error_messages = [
            f"{'.'.join(str(p) for p in e.path)}: {e.message}" if e.path else e.message
            for e in errors
        ]

        if strict:
            raise ValueError(
                f"Schema validation failed for '{schema_name}':\n"
                + "\n".join(f"  - {msg}" for msg in error_messages)
            )

        return False, error_messages

    return True, []
