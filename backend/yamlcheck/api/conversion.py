"""Conversion endpoints - YAML/JSON conversion and JSON Schema checks."""

from fastapi import APIRouter, Depends, HTTPException

from yamlcheck.api.rate_limit import enforce_rate_limit
from yamlcheck.conversion import SchemaValidationResult, json_to_yaml, schema_validate_yaml, yaml_to_json
from yamlcheck.errors import ParseError
from yamlcheck.models.requests import ConvertRequest, SchemaValidateRequest
from yamlcheck.models.responses import ConvertResponse

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])


@router.post("/convert", response_model=ConvertResponse, response_model_exclude_none=True)
async def convert(body: ConvertRequest):
    """YAML in → JSON out, or JSON in → YAML out."""
    if (body.yaml is None) == (body.json_text is None):
        raise HTTPException(status_code=400, detail="Provide exactly one of 'yaml' or 'json'")

    try:
        if body.yaml is not None:
            return ConvertResponse(json_text=yaml_to_json(body.yaml))
        return ConvertResponse(yaml=json_to_yaml(body.json_text))
    except ParseError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": e.message, "line": e.line, "column": e.column},
        )


@router.post("/schema-validate", response_model=SchemaValidationResult)
async def schema_validate(body: SchemaValidateRequest):
    """Check a YAML document against a JSON Schema. Problems are reported, not raised."""
    return schema_validate_yaml(body.yaml, body.schema_)
