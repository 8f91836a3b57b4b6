"""Validation endpoint - one YAML document through the engine."""

from fastapi import APIRouter, Depends, Request

from yamlcheck.api.rate_limit import enforce_rate_limit
from yamlcheck.models.requests import ValidateRequest
from yamlcheck.validators.models import ToolConfig, ValidationOutcome

router = APIRouter()


@router.post("/validate", response_model=ValidationOutcome, dependencies=[Depends(enforce_rate_limit)])
async def validate_document(body: ValidateRequest, request: Request):
    """Validate a YAML document.

    Guard rejections, parse errors and tool failures all come back as a
    200 response with ok=false. Unknown tool names are a 422.
    """
    options = body.options
    return await request.app.state.engine.validate_yaml(
        body.yaml,
        filename=body.filename,
        mime_type=body.mime_type,
        tool_config=ToolConfig(
            spectral_ruleset_path=options.spectral_ruleset_path,
            yamllint_config_path=options.yamllint_config_path,
            assume_cloudformation=options.assume_cloudformation,
            assume_azure_pipelines=options.assume_azure_pipelines,
            provider=options.provider,
        ),
        tools=options.tools,
        allow_anchors=options.allow_anchors,
        allowed_tags=tuple(options.allowed_tags),
    )
