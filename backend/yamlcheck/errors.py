"""Error taxonomy for the validation engine.

Everything here is recovered inside the engine and turned into
ValidationOutcome messages. Only programmer errors (bad batch root, unknown
tool names) escape to callers, and those use the builtin exception types.
"""

from typing import Optional


class YamlCheckError(Exception):
    """Base class for all engine errors."""


class GuardRejection(YamlCheckError):
    """Input Guard refused the filename/MIME combination."""

    reason = "rejected"


class InvalidExtension(GuardRejection):
    reason = "invalid_extension"


class InvalidMimeType(GuardRejection):
    reason = "invalid_mime_type"


class ParseError(YamlCheckError, ValueError):
    """Malformed YAML or JSON, with a 1-based position hint when known."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column


class ToolError(YamlCheckError):
    """A validation tool could not be run to completion."""

    def __init__(self, tool: str, message: str):
        super().__init__(message)
        self.tool = tool
        self.message = message


class ToolLaunchError(ToolError):
    """The tool binary is missing or could not be started."""


class ToolTimeout(ToolError):
    """The tool did not finish within its time budget and was killed."""

    def __init__(self, tool: str, timeout_seconds: float):
        super().__init__(tool, f"{tool} timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class CacheCorruption(YamlCheckError):
    """A cache entry failed its shape check."""
