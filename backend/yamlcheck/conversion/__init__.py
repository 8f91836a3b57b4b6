"""Standalone YAML/JSON conversion and JSON Schema checks."""

from yamlcheck.conversion.converter import json_to_yaml, load_yaml, yaml_to_json
from yamlcheck.conversion.schema import (
    SchemaValidationIssue,
    SchemaValidationResult,
    schema_validate_yaml,
)

__all__ = [
    "yaml_to_json",
    "json_to_yaml",
    "load_yaml",
    "schema_validate_yaml",
    "SchemaValidationResult",
    "SchemaValidationIssue",
]
