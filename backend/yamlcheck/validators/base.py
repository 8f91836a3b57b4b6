"""Base tool and analyzer - abstract classes implementing the Strategy Pattern.

Each tool knows how to build a command line for one external validator and
how to read that validator's output back into Messages. Running the command
is the Tool Runner's job, so tools stay independently testable. Analyzers
are the in-process counterpart for provider-specific checks.
"""

import difflib
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from yamlcheck.services.tool_runner import ToolRunner
from yamlcheck.validators.models import (
    Analysis,
    InvocationSpec,
    Message,
    Severity,
    ToolConfig,
    ToolInvocationResult,
    ValidationRequest,
)


class BaseTool(ABC):
    """Abstract base for all external validation tools.

    Contract:
        - build_invocation() is pure: same request + config → same spec
        - parse_output() never raises; unreadable output becomes a warning
        - succeeded() decides whether the exit code counts as a pass
    """

    def __init__(self, command: str, runner: Optional[ToolRunner] = None):
        self.command = command
        # Optional per-tool runner; the engine's runner is used otherwise
        self.runner = runner

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name, used as the message source and in fingerprints."""
        ...

    @property
    def identity(self) -> str:
        return f"{self.name}:{self.command}"

    def applies_to(self, request: ValidationRequest, config: ToolConfig) -> bool:
        """Whether the tool runs when the caller did not pick tools explicitly."""
        return True

    def unavailable_reason(self, config: ToolConfig) -> Optional[str]:
        """Why the tool cannot run with this config, or None if it can."""
        return None

    @abstractmethod
    def build_invocation(
        self,
        request: ValidationRequest,
        config: ToolConfig,
        timeout_seconds: float,
    ) -> InvocationSpec:
        ...

    @abstractmethod
    def parse_output(self, result: ToolInvocationResult) -> list[Message]:
        ...

    def succeeded(self, result: ToolInvocationResult) -> bool:
        return result.exit_code == 0

    # ── Helper Methods ──

    def _message(
        self,
        severity: Severity,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        rule_id: Optional[str] = None,
        path: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> Message:
        """Convenience method to create a Message from this tool."""
        return Message(
            source=self.name,
            severity=severity,
            message=message,
            line=line,
            column=column,
            rule_id=rule_id,
            path=path,
            suggestion=suggestion,
        )

    @staticmethod
    def _level(value: str) -> Severity:
        """Map a tool's textual level ('Error', 'warning', ...) to a Severity."""
        text = (value or "").lower()
        if text.startswith("err"):
            return Severity.ERROR
        if text.startswith("warn"):
            return Severity.WARNING
        return Severity.INFO

    @staticmethod
    def _snippet(text: str, limit: int = 200) -> str:
        """First non-empty line of output, trimmed, for failure messages."""
        for line in text.splitlines():
            if line.strip():
                return line.strip()[:limit]
        return ""


class BaseAnalyzer(ABC):
    """Abstract base for in-process provider analyzers.

    Analyzers work on the parsed document rather than on a tool's output.
    They report warnings and propose Suggestions; fixes run on a document
    the caller parsed, never on the cached original.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Analyzer name, used as the message source."""
        ...

    @abstractmethod
    def analyze(self, doc: Any) -> Analysis:
        ...

    # ── Helper Methods ──

    def _warning(self, message: str, path: Optional[str] = None) -> Message:
        return Message(source=self.name, severity=Severity.WARNING, message=message, path=path)

    @staticmethod
    def _best_guess(target: str, candidates: Iterable[str]) -> Optional[str]:
        """Closest candidate to target, ignoring case, or None if nothing is close."""
        by_lower = {c.lower(): c for c in candidates}
        matches = difflib.get_close_matches(target.lower(), list(by_lower), n=1, cutoff=0.6)
        return by_lower[matches[0]] if matches else None
