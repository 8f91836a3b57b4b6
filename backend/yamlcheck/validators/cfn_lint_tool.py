"""cfn-lint - AWS CloudFormation template checks."""

import json
from typing import Optional

from yamlcheck.services.tool_runner import ToolRunner
from yamlcheck.validators.base import BaseTool
from yamlcheck.validators.detect import is_likely_cloudformation
from yamlcheck.validators.models import (
    DOCUMENT_PLACEHOLDER,
    InvocationSpec,
    Message,
    Severity,
    ToolConfig,
    ToolInvocationResult,
    ValidationRequest,
)

# cfn-lint exit code bits: 1 runtime failure, 2 errors, 4 warnings, 8 informational
FAILURE_BITS = 0b0011


class CfnLintTool(BaseTool):
    """Runs cfn-lint on CloudFormation-looking documents."""

    def __init__(self, command: str, runner: Optional[ToolRunner] = None, enabled: bool = True):
        super().__init__(command, runner)
        self.enabled = enabled

    @property
    def name(self) -> str:
        return "cfn-lint"

    def applies_to(self, request: ValidationRequest, config: ToolConfig) -> bool:
        if not self.enabled:
            return False
        if config.provider is not None:
            return config.provider == "aws"
        return config.assume_cloudformation or is_likely_cloudformation(request.content)

    def build_invocation(
        self,
        request: ValidationRequest,
        config: ToolConfig,
        timeout_seconds: float,
    ) -> InvocationSpec:
        return InvocationSpec(
            tool=self.name,
            command=self.command,
            args=("--format", "json", DOCUMENT_PLACEHOLDER),
            document=request.content,
            timeout_seconds=timeout_seconds,
        )

    def succeeded(self, result: ToolInvocationResult) -> bool:
        return result.exit_code >= 0 and not result.exit_code & FAILURE_BITS

    def parse_output(self, result: ToolInvocationResult) -> list[Message]:
        if not result.stdout.strip():
            return []
        try:
            findings = json.loads(result.stdout)
        except json.JSONDecodeError:
            return [self._message(Severity.WARNING, "Failed to parse cfn-lint JSON output")]
        if not isinstance(findings, list):
            return [self._message(Severity.WARNING, "Unexpected cfn-lint output shape")]

        messages = []
        for finding in findings:
            if not isinstance(finding, dict):
                continue
            start = (finding.get("Location") or {}).get("Start") or {}
            rule = finding.get("Rule") or {}
            messages.append(self._message(
                severity=self._level(str(finding.get("Level", ""))),
                message=str(finding.get("Message", "")),
                line=start.get("LineNumber", start.get("Line")),
                column=start.get("ColumnNumber", start.get("Column")),
                rule_id=rule.get("Id"),
            ))
        return messages
