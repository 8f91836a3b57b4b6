"""YAML validators - guard, preflight, external tools and the engine that runs them.

Usage:
    from yamlcheck.validators import ValidationEngine

    engine = ValidationEngine()
    outcome = await engine.validate_yaml(text, filename="a.yaml", mime_type="application/yaml")
    if not outcome.ok:
        # Show outcome.messages to the user
"""

from yamlcheck.validators.engine import ValidationEngine
from yamlcheck.validators.batch import DirectoryBatch, discover_yaml_files
from yamlcheck.validators.detect import detect_provider
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
from yamlcheck.validators.suggest import apply_suggestions, suggest

__all__ = [
    "ValidationEngine",
    "DirectoryBatch",
    "discover_yaml_files",
    "detect_provider",
    "suggest",
    "apply_suggestions",
    "BatchEntry",
    "BatchReport",
    "Message",
    "ProviderSummary",
    "Severity",
    "Suggestion",
    "SuggestionReport",
    "ToolConfig",
    "ValidationOutcome",
    "ValidationRequest",
]
