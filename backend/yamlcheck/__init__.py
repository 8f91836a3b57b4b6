"""yamlcheck - guarded, cached, concurrency-bounded YAML validation.

Usage:
    import yamlcheck

    outcome = await yamlcheck.validate_yaml(text, filename="app.yaml")
    report = await yamlcheck.validate_directory("./manifests", spectral_ruleset_path=".spectral.yaml")

    # Repeated calls: share one engine so its result cache and concurrency gate apply
    engine = yamlcheck.ValidationEngine()
    for text in documents:
        outcome = await yamlcheck.validate_yaml(text, engine=engine)
"""

from pathlib import Path
from typing import Optional, Union

__version__ = "1.0.0"

# The engine goes first: it pulls in config, errors, services and validators in dependency order
from yamlcheck.validators.engine import ValidationEngine
from yamlcheck.validators.batch import DirectoryBatch
from yamlcheck.validators.input_guard import DEFAULT_YAML_MIME
from yamlcheck.validators.models import (
    BatchEntry,
    BatchReport,
    Message,
    ProviderSummary,
    Severity,
    Suggestion,
    SuggestionReport,
    ToolConfig,
    ValidationOutcome,
    ValidationRequest,
)
from yamlcheck.errors import (
    CacheCorruption,
    GuardRejection,
    InvalidExtension,
    InvalidMimeType,
    ParseError,
    ToolError,
    ToolLaunchError,
    ToolTimeout,
    YamlCheckError,
)
from yamlcheck.conversion import (
    SchemaValidationIssue,
    SchemaValidationResult,
    json_to_yaml,
    schema_validate_yaml,
    yaml_to_json,
)
from yamlcheck.services.tool_runner import ToolRunner
from yamlcheck.validators.detect import detect_provider
from yamlcheck.validators.suggest import apply_suggestions, suggest


def _engine_for(engine: Optional[ValidationEngine], tool_runner: Optional[ToolRunner]) -> ValidationEngine:
    if engine is not None:
        if tool_runner is not None:
            raise ValueError("Pass tool_runner to the ValidationEngine, not alongside engine")
        return engine
    return ValidationEngine(runner=tool_runner)


async def validate_yaml(
    content: str,
    *,
    filename: str = "document.yaml",
    mime_type: Optional[str] = DEFAULT_YAML_MIME,
    tool_runner: Optional[ToolRunner] = None,
    spectral_ruleset_path: Optional[str] = None,
    yamllint_config_path: Optional[str] = None,
    assume_cloudformation: bool = False,
    assume_azure_pipelines: bool = False,
    provider: Optional[str] = None,
    tools: Optional[list[str]] = None,
    engine: Optional[ValidationEngine] = None,
) -> ValidationOutcome:
    """Validate one YAML document.

    Each call without ``engine`` builds a fresh ValidationEngine: its result
    cache and concurrency gate live only for that call, so nothing is reused
    and concurrent calls are not bounded together. Pass one long-lived engine
    to share both. ``tool_runner`` only applies to the engine built here and
    is an error alongside ``engine``.
    """
    return await _engine_for(engine, tool_runner).validate_yaml(
        content,
        filename=filename,
        mime_type=mime_type,
        tool_config=ToolConfig(
            spectral_ruleset_path=spectral_ruleset_path,
            yamllint_config_path=yamllint_config_path,
            assume_cloudformation=assume_cloudformation,
            assume_azure_pipelines=assume_azure_pipelines,
            provider=provider,
        ),
        tools=tools,
    )


async def validate_directory(
    root: Union[str, Path],
    *,
    tool_runner: Optional[ToolRunner] = None,
    spectral_ruleset_path: Optional[str] = None,
    yamllint_config_path: Optional[str] = None,
    assume_cloudformation: bool = False,
    assume_azure_pipelines: bool = False,
    provider: Optional[str] = None,
    tools: Optional[list[str]] = None,
    engine: Optional[ValidationEngine] = None,
) -> BatchReport:
    """Validate every .yaml/.yml file under root and return the batch report.

    Files in one call share an engine. Separate calls without ``engine`` do
    not, exactly as for validate_yaml.
    """
    return await _engine_for(engine, tool_runner).validate_directory(
        root,
        tool_config=ToolConfig(
            spectral_ruleset_path=spectral_ruleset_path,
            yamllint_config_path=yamllint_config_path,
            assume_cloudformation=assume_cloudformation,
            assume_azure_pipelines=assume_azure_pipelines,
            provider=provider,
        ),
        tools=tools,
    )


__all__ = [
    "__version__",
    "ValidationEngine",
    "DirectoryBatch",
    "validate_yaml",
    "validate_directory",
    "yaml_to_json",
    "json_to_yaml",
    "schema_validate_yaml",
    "detect_provider",
    "suggest",
    "apply_suggestions",
    "SchemaValidationIssue",
    "SchemaValidationResult",
    "BatchEntry",
    "BatchReport",
    "Message",
    "Severity",
    "ToolConfig",
    "ProviderSummary",
    "Suggestion",
    "SuggestionReport",
    "ToolRunner",
    "ValidationOutcome",
    "ValidationRequest",
    "YamlCheckError",
    "GuardRejection",
    "InvalidExtension",
    "InvalidMimeType",
    "ParseError",
    "ToolError",
    "ToolLaunchError",
    "ToolTimeout",
    "CacheCorruption",
]
