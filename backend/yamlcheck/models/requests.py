"""API request models."""

from pydantic import BaseModel, Field
from typing import Any, Optional

from yamlcheck.validators.input_guard import DEFAULT_YAML_MIME
from yamlcheck.validators.models import Provider


class ValidateOptions(BaseModel):
    """Optional per-request tool settings. Unset values fall back to server settings."""

    spectral_ruleset_path: Optional[str] = None
    yamllint_config_path: Optional[str] = None
    assume_cloudformation: bool = False
    assume_azure_pipelines: bool = False
    provider: Optional[Provider] = Field(
        default=None,
        description="Skip provider detection. Wins over the assume_* flags",
    )
    tools: Optional[list[str]] = Field(
        default=None,
        description="Run exactly these tools (yamllint, spectral, cfn-lint) instead of auto-selection",
    )
    allow_anchors: bool = False
    allowed_tags: list[str] = Field(default_factory=list)


class ValidateRequest(BaseModel):
    """Request to validate one YAML document."""

    yaml: str = Field(
        ...,
        description="YAML document text",
        examples=["apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: demo\n"],
    )
    filename: str = "document.yaml"
    mime_type: str = DEFAULT_YAML_MIME
    options: ValidateOptions = Field(default_factory=ValidateOptions)


class ConvertRequest(BaseModel):
    """Convert YAML to JSON or JSON to YAML. Exactly one of the fields is set."""

    yaml: Optional[str] = None
    json_text: Optional[str] = Field(default=None, alias="json")

    model_config = {"populate_by_name": True}


class SchemaValidateRequest(BaseModel):
    """Validate a YAML document against a JSON Schema."""

    yaml: str
    schema_: dict[str, Any] = Field(..., alias="schema")

    model_config = {"populate_by_name": True}


class SuggestRequest(BaseModel):
    """Ask the provider analyzer for suggestions about a document."""

    yaml: str
    provider: Optional[Provider] = None


class ApplySuggestionsRequest(SuggestRequest):
    """Apply suggestions by their index in the /suggest response."""

    indexes: list[int] = Field(default_factory=list)
