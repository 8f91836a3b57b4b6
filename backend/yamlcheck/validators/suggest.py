"""Provider suggestions - analyze a document and apply selected fixes.

Usage:
    report = suggest(text)                        # provider detected
    fixed = apply_suggestions(text, [0, 2])       # indexes into report.suggestions
"""

from typing import Any, Iterable, Optional

import structlog

from yamlcheck.config import Settings, get_settings
from yamlcheck.conversion.converter import StrictSafeLoader, dump_yaml, load_yaml
from yamlcheck.validators.azure_pipelines import AzurePipelinesAnalyzer, load_azure_schema
from yamlcheck.validators.base import BaseAnalyzer
from yamlcheck.validators.cfn_spec import CfnSpecAnalyzer, CloudFormationLoader, load_resource_types
from yamlcheck.validators.detect import detect_provider
from yamlcheck.validators.models import SuggestionReport

logger = structlog.get_logger()


def analyzer_for(provider: str, settings: Optional[Settings] = None) -> Optional[BaseAnalyzer]:
    """The analyzer for a provider, or None for generic YAML."""
    settings = settings or get_settings()
    if provider == "aws":
        return CfnSpecAnalyzer(load_resource_types(settings.CFN_SPEC_PATH or None))
    if provider == "azure":
        return AzurePipelinesAnalyzer(load_azure_schema(settings.AZURE_PIPELINES_SCHEMA_PATH or None))
    return None


def load_for_provider(content: str, provider: str) -> Any:
    """Parse content; CloudFormation templates may use short-form intrinsics.

    Raises:
        ParseError: content is not a single valid YAML document
    """
    loader_cls = CloudFormationLoader if provider == "aws" else StrictSafeLoader
    return load_yaml(content, loader_cls)


def suggest(
    content: str,
    provider: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> SuggestionReport:
    """Run the provider analyzer over a document.

    Args:
        content: YAML document text
        provider: 'aws', 'azure' or 'generic'; detected when None

    Raises:
        ParseError: the document doesn't parse
    """
    resolved = detect_provider(content, provider)
    analyzer = analyzer_for(resolved, settings)
    if analyzer is None:
        return SuggestionReport(provider="generic")

    analysis = analyzer.analyze(load_for_provider(content, resolved))
    logger.debug(
        "suggestions_ready",
        provider=resolved,
        suggestions=len(analysis.suggestions),
        messages=len(analysis.messages),
    )
    return SuggestionReport(
        provider=resolved,
        suggestions=analysis.suggestions,
        messages=analysis.messages,
    )


def apply_suggestions(
    content: str,
    indexes: Iterable[int],
    provider: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> str:
    """Apply the fixes of the selected suggestions and re-serialize the document.

    Indexes refer to suggest(content).suggestions. Out-of-range indexes and
    advice-only suggestions are ignored. Generic documents, and selections
    that apply nothing, come back unchanged. Otherwise the document is
    re-emitted: comments are dropped and CloudFormation short-form
    intrinsics are written in long form.

    Raises:
        ParseError: the document doesn't parse
    """
    resolved = detect_provider(content, provider)
    analyzer = analyzer_for(resolved, settings)
    if analyzer is None:
        return content

    selected = list(indexes)
    doc = load_for_provider(content, resolved)
    suggestions = analyzer.analyze(doc).suggestions
    applied = 0
    for index in selected:
        if 0 <= index < len(suggestions) and suggestions[index].fix is not None:
            suggestions[index].fix(doc)
            applied += 1

    logger.info("suggestions_applied", provider=resolved, requested=len(selected), applied=applied)
    if not applied:
        return content
    return dump_yaml(doc)
