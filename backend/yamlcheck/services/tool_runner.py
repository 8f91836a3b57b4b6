"""Tool runners - execute one validation tool and capture its result.

The engine only knows the ToolRunner interface. SubprocessToolRunner spawns
real processes; CannedToolRunner replays configured results for tests and
dry runs.
"""

import asyncio
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Optional

import structlog

from yamlcheck.errors import ToolLaunchError, ToolTimeout
from yamlcheck.validators.models import (
    DOCUMENT_PLACEHOLDER,
    InvocationSpec,
    ToolInvocationResult,
)

logger = structlog.get_logger()


class ToolRunner(ABC):
    """Capability: run a tool invocation and return exit code plus output.

    Contract:
        - Returns a ToolInvocationResult for any tool that ran to completion,
          whatever its exit code
        - Raises ToolLaunchError if the tool could not be started
        - Raises ToolTimeout if it did not finish within spec.timeout_seconds
    """

    @abstractmethod
    async def run(self, spec: InvocationSpec) -> ToolInvocationResult:
        ...


class SubprocessToolRunner(ToolRunner):
    """Runs tools as child processes with asyncio."""

    async def run(self, spec: InvocationSpec) -> ToolInvocationResult:
        temp_path = None
        args = list(spec.args)
        if DOCUMENT_PLACEHOLDER in args:
            temp_path = self._write_document(spec.document or spec.stdin or "")
            args = [temp_path if arg == DOCUMENT_PLACEHOLDER else arg for arg in args]

        try:
            return await self._execute(spec, [spec.command, *args])
        finally:
            if temp_path:
                try:
                    os.unlink(temp_path)
                except OSError as e:
                    logger.warning("temp_file_cleanup_failed", path=temp_path, error=str(e))

    @staticmethod
    def _write_document(content: str) -> str:
        fd, path = tempfile.mkstemp(prefix="yamlcheck-", suffix=".yaml")
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        return path

    async def _execute(self, spec: InvocationSpec, argv: list[str]) -> ToolInvocationResult:
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if spec.stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=spec.cwd,
            )
        except OSError as e:
            raise ToolLaunchError(spec.tool, f"{spec.command} could not be started: {e}") from e

        stdin_bytes = spec.stdin.encode("utf-8") if spec.stdin is not None else None
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(stdin_bytes),
                timeout=spec.timeout_seconds,
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            logger.warning("tool_timeout", tool=spec.tool, timeout_seconds=spec.timeout_seconds)
            raise ToolTimeout(spec.tool, spec.timeout_seconds)
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        return ToolInvocationResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                return
        await process.wait()


class CannedToolRunner(ToolRunner):
    """Test double: answers every invocation from a table, never spawns anything.

    Args:
        results: Result per tool name (falls back to ``default``)
        errors: Exception to raise per tool name
        default: Result for tools not in ``results``
        delay_seconds: Simulated run time, to make overlap observable
    """

    def __init__(
        self,
        results: Optional[dict[str, ToolInvocationResult]] = None,
        errors: Optional[dict[str, Exception]] = None,
        default: Optional[ToolInvocationResult] = None,
        delay_seconds: float = 0.0,
    ):
        self.results = dict(results or {})
        self.errors = dict(errors or {})
        self.default = default or ToolInvocationResult(exit_code=0)
        self.delay_seconds = delay_seconds
        self.calls: list[InvocationSpec] = []
        self.active = 0
        self.peak_active = 0

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def run(self, spec: InvocationSpec) -> ToolInvocationResult:
        self.calls.append(spec)
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            error = self.errors.get(spec.tool)
            if error is not None:
                raise error
            return self.results.get(spec.tool, self.default)
        finally:
            self.active -= 1
