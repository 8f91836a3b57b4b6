"""Directory Batch Orchestrator - validates every YAML file under a root.

All files go through the same engine, so they share its cache and its
concurrency gate. Results are written into slots pre-allocated by discovery
index; the report order never depends on completion order.
"""

import asyncio
import os
import time
from pathlib import Path
from typing import Optional, Union

import structlog

from yamlcheck.validators.input_guard import has_yaml_extension, infer_mime_type
from yamlcheck.validators.models import (
    BatchEntry,
    BatchReport,
    ToolConfig,
    ValidationOutcome,
)

logger = structlog.get_logger()


def discover_yaml_files(root: Union[str, Path]) -> list[Path]:
    """Recursively find .yaml/.yml files under root, sorted by path.

    Raises:
        FileNotFoundError: root does not exist
        NotADirectoryError: root is not a directory
    """
    root = Path(root)
    if not root.exists():
        raise FileNotFoundError(f"Directory not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    found = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            if has_yaml_extension(name):
                found.append(Path(dirpath) / name)
    return sorted(found)


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class DirectoryBatch:
    """One directory run against an engine."""

    def __init__(
        self,
        engine,
        root: Union[str, Path],
        tool_config: Optional[ToolConfig] = None,
        tools: Optional[list[str]] = None,
    ):
        self.engine = engine
        self.root = Path(root)
        self.tool_config = tool_config or ToolConfig()
        self.tools = tools
        self.files: list[Path] = []
        self._slots: list[Optional[ValidationOutcome]] = []
        self._next_index = 0

    async def run(self) -> BatchReport:
        """Validate every discovered file and return the full report.

        On cancellation no new files are started; partial_report() still
        returns whatever completed.
        """
        start_time = time.perf_counter()
        self.engine.check_tool_names(self.tools)
        self.files = discover_yaml_files(self.root)
        self._slots = [None] * len(self.files)
        self._next_index = 0

        worker_count = min(len(self.files), self.engine.gate.capacity)
        await asyncio.gather(*(self._worker() for _ in range(worker_count)))

        report = self.partial_report()
        summary = report.summary()
        logger.info(
            "batch_complete",
            root=str(self.root),
            files=summary["files"],
            failed=summary["failed"],
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return report

    def partial_report(self) -> BatchReport:
        """Report of the files that have an outcome so far, in discovery order."""
        entries = [
            BatchEntry(path=str(path), outcome=outcome)
            for path, outcome in zip(self.files, self._slots)
            if outcome is not None
        ]
        return BatchReport(root=str(self.root), entries=tuple(entries))

    async def _worker(self) -> None:
        while self._next_index < len(self.files):
            index = self._next_index
            self._next_index += 1
            self._slots[index] = await self._validate_file(self.files[index])

    async def _validate_file(self, path: Path) -> ValidationOutcome:
        try:
            content = await asyncio.to_thread(_read_text, path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("batch_file_unreadable", path=str(path), error=str(e))
            return ValidationOutcome.rejected(f"Could not read file: {e}", path=str(path))

        try:
            return await self.engine.validate_yaml(
                content,
                filename=str(path),
                mime_type=infer_mime_type(path.name),
                tool_config=self.tool_config,
                tools=self.tools,
            )
        except Exception as e:
            logger.error("batch_file_failed", path=str(path), error=str(e), error_type=type(e).__name__)
            # One bad file must not abort the batch
            return ValidationOutcome.rejected(f"Validation failed unexpectedly: {e}", path=str(path))
