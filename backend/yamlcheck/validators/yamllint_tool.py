"""yamllint - general YAML style and syntax linting."""

import re

from yamlcheck.validators.base import BaseTool
from yamlcheck.validators.models import (
    InvocationSpec,
    Message,
    ToolConfig,
    ToolInvocationResult,
    ValidationRequest,
)

# stdin:12:3: [error] wrong indentation: expected 2 but found 4 (indentation)
PARSABLE_LINE = re.compile(
    r"^(?:<stdin>|[^:]+):(\d+):(\d+):\s*\[(\w+)\]\s*(.*?)\s*(?:\(([^)]+)\))?$"
)


class YamllintTool(BaseTool):
    """Runs yamllint in parsable mode, document on stdin."""

    @property
    def name(self) -> str:
        return "yamllint"

    def build_invocation(
        self,
        request: ValidationRequest,
        config: ToolConfig,
        timeout_seconds: float,
    ) -> InvocationSpec:
        args = ["-f", "parsable"]
        if config.yamllint_config_path:
            args += ["-c", config.yamllint_config_path]
        args.append("-")
        return InvocationSpec(
            tool=self.name,
            command=self.command,
            args=tuple(args),
            stdin=request.content,
            timeout_seconds=timeout_seconds,
        )

    def parse_output(self, result: ToolInvocationResult) -> list[Message]:
        messages = []
        for line in result.stdout.splitlines():
            match = PARSABLE_LINE.match(line.strip())
            if not match:
                continue
            messages.append(self._message(
                severity=self._level(match.group(3)),
                message=match.group(4),
                line=int(match.group(1)),
                column=int(match.group(2)),
                rule_id=match.group(5),
            ))
        return messages
