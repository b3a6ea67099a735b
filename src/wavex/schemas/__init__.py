"""Packaged JSON Schema validation."""

from wavex.schemas.validator import SchemaRegistry, get_registry, validate_data

__all__ = ["SchemaRegistry", "get_registry", "validate_data"]
