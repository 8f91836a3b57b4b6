"""Spectral - ruleset-driven linting (OpenAPI, AsyncAPI, custom rules)."""

import json
from typing import Optional

from yamlcheck.validators.base import BaseTool
from yamlcheck.validators.models import (
    DOCUMENT_PLACEHOLDER,
    InvocationSpec,
    Message,
    Severity,
    ToolConfig,
    ToolInvocationResult,
    ValidationRequest,
)

# Spectral's numeric severities: 0 error, 1 warn, 2 info, 3 hint
SPECTRAL_SEVERITY = {0: Severity.ERROR, 1: Severity.WARNING}


class SpectralTool(BaseTool):
    """Runs `spectral lint` against a temp copy of the document. Needs a ruleset."""

    @property
    def name(self) -> str:
        return "spectral"

    def applies_to(self, request: ValidationRequest, config: ToolConfig) -> bool:
        return bool(config.spectral_ruleset_path)

    def unavailable_reason(self, config: ToolConfig) -> Optional[str]:
        if not config.spectral_ruleset_path:
            return "spectral requires a ruleset path; skipped"
        return None

    def build_invocation(
        self,
        request: ValidationRequest,
        config: ToolConfig,
        timeout_seconds: float,
    ) -> InvocationSpec:
        return InvocationSpec(
            tool=self.name,
            command=self.command,
            args=(
                "lint", DOCUMENT_PLACEHOLDER,
                "--ruleset", config.spectral_ruleset_path or "",
                "--format", "json",
            ),
            document=request.content,
            timeout_seconds=timeout_seconds,
        )

    def parse_output(self, result: ToolInvocationResult) -> list[Message]:
        if not result.stdout.strip():
            return []
        try:
            findings = json.loads(result.stdout)
        except json.JSONDecodeError:
            return [self._message(Severity.WARNING, "Failed to parse spectral JSON output")]
        if not isinstance(findings, list):
            return [self._message(Severity.WARNING, "Unexpected spectral output shape")]

        messages = []
        for finding in findings:
            if not isinstance(finding, dict):
                continue
            start = (finding.get("range") or {}).get("start") or {}
            line = start.get("line")
            character = start.get("character")
            path = finding.get("path") or []
            messages.append(self._message(
                severity=SPECTRAL_SEVERITY.get(finding.get("severity"), Severity.INFO),
                message=str(finding.get("message", "")),
                line=line + 1 if isinstance(line, int) else None,
                column=character + 1 if isinstance(character, int) else None,
                rule_id=finding.get("code"),
                path=".".join(str(part) for part in path) or None,
            ))
        return messages
