"""JSON Schema validation of YAML documents."""

from typing import Any, Optional

import jsonschema
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel

from yamlcheck.conversion.converter import load_yaml
from yamlcheck.errors import ParseError


class SchemaValidationIssue(BaseModel):
    """One schema violation. instance_path is a JSON pointer ('' for the root)."""

    instance_path: Optional[str] = None
    message: Optional[str] = None
    keyword: Optional[str] = None


class SchemaValidationResult(BaseModel):
    ok: bool
    errors: list[SchemaValidationIssue] = []


def _pointer(path) -> str:
    return "".join(f"/{part}" for part in path)


def schema_validate_yaml(text: str, schema: Any) -> SchemaValidationResult:
    """Validate a YAML document against a JSON Schema, collecting all errors."""
    try:
        data = load_yaml(text)
    except ParseError as e:
        return SchemaValidationResult(
            ok=False,
            errors=[SchemaValidationIssue(message=e.message, keyword="parse")],
        )

    try:
        validator_cls = jsonschema.validators.validator_for(schema)
        validator_cls.check_schema(schema)
    except (SchemaError, TypeError) as e:
        message = e.message if isinstance(e, SchemaError) else str(e)
        return SchemaValidationResult(
            ok=False,
            errors=[SchemaValidationIssue(message=message, keyword="schema-compile")],
        )

    validator = validator_cls(schema)
    violations = sorted(validator.iter_errors(data), key=lambda err: [str(part) for part in err.absolute_path])
    if not violations:
        return SchemaValidationResult(ok=True)

    return SchemaValidationResult(
        ok=False,
        errors=[
            SchemaValidationIssue(
                instance_path=_pointer(err.absolute_path),
                message=err.message,
                keyword=str(err.validator),
            )
            for err in violations
        ],
    )
