"""Validation models - messages, requests, outcomes, and batch reports.

All models are immutable: an outcome handed back from the cache is the very
object that was stored, so nothing downstream may mutate it.
"""

from enum import Enum
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, Field, computed_field


class Severity(str, Enum):
    """Message severity levels."""

    ERROR = "error"      # Document is invalid
    WARNING = "warning"  # Worth fixing, not blocking
    INFO = "info"        # Informational (skipped tools, notes)


# Pseudo-sources for messages that don't come from an external tool
GUARD_SOURCE = "guard"
PARSER_SOURCE = "parser"


class Message(BaseModel):
    """A single finding about a document."""

    source: str
    severity: Severity
    message: str
    line: Optional[int] = None       # 1-based
    column: Optional[int] = None     # 1-based
    path: Optional[str] = None
    rule_id: Optional[str] = None
    suggestion: Optional[str] = None

    model_config = {"frozen": True, "use_enum_values": True}

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


Provider = Literal["aws", "azure", "generic"]


class ToolConfig(BaseModel):
    """Per-request tool configuration. Empty fields fall back to settings."""

    spectral_ruleset_path: Optional[str] = None
    yamllint_config_path: Optional[str] = None
    assume_cloudformation: bool = False
    assume_azure_pipelines: bool = False
    provider: Optional[Provider] = None  # aws, azure or generic; detected when unset

    model_config = {"frozen": True}


class ValidationRequest(BaseModel):
    """One document to validate. Created per call, never mutated."""

    content: str
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    tool_config: ToolConfig = Field(default_factory=ToolConfig)
    tools: Optional[tuple[str, ...]] = None  # explicit tool selection
    allow_anchors: bool = False
    allowed_tags: tuple[str, ...] = ()

    model_config = {"frozen": True}


class InvocationSpec(BaseModel):
    """What a Tool Runner should execute.

    ``args`` may contain DOCUMENT_PLACEHOLDER; runners that need a real file
    write ``document`` to a temporary .yaml file and substitute its path.
    """

    tool: str
    command: str
    args: tuple[str, ...] = ()
    stdin: Optional[str] = None
    document: Optional[str] = None
    timeout_seconds: float = 10.0
    cwd: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]


DOCUMENT_PLACEHOLDER = "{document}"


class ToolInvocationResult(BaseModel):
    """Raw result of one tool run."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    model_config = {"frozen": True}


class ProviderSources(BaseModel):
    """Where the checks for a document came from. Unset when not in play."""

    azure_schema_path: Optional[str] = None
    cfn_spec_path: Optional[str] = None
    spectral_ruleset_path: Optional[str] = None
    cfn_lint_command: Optional[str] = None

    model_config = {"frozen": True}


class ProviderSummary(BaseModel):
    """Detected provider and the sources used for it."""

    provider: Provider
    sources: ProviderSources = Field(default_factory=ProviderSources)

    model_config = {"frozen": True}


class ValidationOutcome(BaseModel):
    """Result of validating one document."""

    ok: bool
    messages: tuple[Message, ...] = ()
    tools: tuple[str, ...] = ()
    provider_summary: Optional[ProviderSummary] = None  # set once tools have run

    model_config = {"frozen": True}

    @classmethod
    def build(
        cls,
        messages: list[Message],
        tools: list[str],
        tools_succeeded: bool = True,
        provider_summary: Optional[ProviderSummary] = None,
    ) -> "ValidationOutcome":
        """Aggregate messages from all tools into an outcome.

        ok is True only if every tool succeeded and nothing is error-severity.
        """
        ok = tools_succeeded and not any(m.is_error for m in messages)
        return cls(
            ok=ok,
            messages=tuple(messages),
            tools=tuple(tools),
            provider_summary=provider_summary,
        )

    @classmethod
    def rejected(
        cls,
        message: str,
        source: str = GUARD_SOURCE,
        path: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> "ValidationOutcome":
        """Build a failed outcome carrying a single error message."""
        return cls(
            ok=False,
            messages=(
                Message(
                    source=source,
                    severity=Severity.ERROR,
                    message=message,
                    path=path,
                    suggestion=suggestion,
                ),
            ),
        )

    def summary(self) -> dict[str, dict[str, int]]:
        """Count messages by source and severity."""
        counts: dict[str, dict[str, int]] = {}
        for msg in self.messages:
            bucket = counts.setdefault(msg.source, {"errors": 0, "warnings": 0, "infos": 0})
            if msg.severity == Severity.ERROR:
                bucket["errors"] += 1
            elif msg.severity == Severity.WARNING:
                bucket["warnings"] += 1
            else:
                bucket["infos"] += 1
        return counts


class BatchEntry(BaseModel):
    """Outcome for one file in a directory run."""

    path: str
    outcome: ValidationOutcome

    model_config = {"frozen": True}


class BatchReport(BaseModel):
    """Aggregated per-file results of a directory run, sorted by path."""

    root: str
    entries: tuple[BatchEntry, ...] = ()

    model_config = {"frozen": True}

    @computed_field
    @property
    def ok(self) -> bool:
        return all(entry.outcome.ok for entry in self.entries)

    def summary(self) -> dict[str, int]:
        passed = sum(1 for entry in self.entries if entry.outcome.ok)
        return {
            "files": len(self.entries),
            "passed": passed,
            "failed": len(self.entries) - passed,
        }


SuggestionKind = Literal["add", "rename", "type"]


class Suggestion(BaseModel):
    """A proposed edit to a document, addressed by a dotted path.

    ``fix`` applies the edit to the parsed document in place; suggestions
    without one are advice only. It never leaves the process.
    """

    path: str
    message: str
    kind: SuggestionKind
    fix: Optional[Callable[[Any], None]] = Field(default=None, exclude=True, repr=False)

    model_config = {"frozen": True}

    @property
    def fixable(self) -> bool:
        return self.fix is not None


class Analysis(BaseModel):
    """Suggestions and messages from a provider analyzer."""

    suggestions: tuple[Suggestion, ...] = ()
    messages: tuple[Message, ...] = ()

    model_config = {"frozen": True}


class SuggestionReport(BaseModel):
    """Response of suggest(): provider plus its analyzer output."""

    provider: Provider
    suggestions: tuple[Suggestion, ...] = ()
    messages: tuple[Message, ...] = ()

    model_config = {"frozen": True}
