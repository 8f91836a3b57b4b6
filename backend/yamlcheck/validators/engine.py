"""Validation Engine - guards, caches, and runs external tools for YAML documents.

This is the main entry point for validation. Each engine owns one result
cache and one concurrency gate, shared by every validation that goes through
it (single documents and directory batches alike).

Usage:
    engine = ValidationEngine()
    outcome = await engine.validate_yaml(text, filename="a.yaml", mime_type="application/yaml")
    report = await engine.validate_directory("./manifests")
"""

import asyncio
import time
from pathlib import Path
from typing import Optional, Union

import structlog

from yamlcheck.config import Settings, get_settings
from yamlcheck.conversion.converter import load_yaml
from yamlcheck.errors import GuardRejection, ParseError, ToolLaunchError, ToolTimeout
from yamlcheck.services.concurrency_gate import ConcurrencyGate
from yamlcheck.services.result_cache import ResultCache, fingerprint
from yamlcheck.services.tool_runner import SubprocessToolRunner, ToolRunner
from yamlcheck.validators.azure_pipelines import AZURE_SOURCE, AzurePipelinesAnalyzer, load_azure_schema
from yamlcheck.validators.base import BaseTool
from yamlcheck.validators.batch import DirectoryBatch
from yamlcheck.validators.detect import CFN_INTRINSIC_TAGS, detect_provider
from yamlcheck.validators.input_guard import REJECTION_SUGGESTIONS, check_input
from yamlcheck.validators.models import (
    BatchReport,
    Message,
    ProviderSources,
    ProviderSummary,
    Severity,
    ToolConfig,
    ValidationOutcome,
    ValidationRequest,
)
from yamlcheck.validators.preflight import check_content, parse_check

# Import all tools
from yamlcheck.validators.yamllint_tool import YamllintTool
from yamlcheck.validators.spectral_tool import SpectralTool
from yamlcheck.validators.cfn_lint_tool import CfnLintTool

logger = structlog.get_logger()


class ValidationEngine:
    """Orchestrates guards, cache, gate and tools for one document at a time.

    Design principles:
        - At most one tool run per fingerprint while the cache holds it
        - Never more than gate.capacity tool phases in flight
        - Every failure becomes an ok=False outcome with a message
        - Observable: logs every validation run with timing
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runner: Optional[ToolRunner] = None,
        tools: Optional[list[BaseTool]] = None,
        cache: Optional[ResultCache] = None,
        gate: Optional[ConcurrencyGate] = None,
    ):
        """Create an engine with a fresh cache and gate unless given ones.

        Args:
            settings: Configuration; defaults to the environment settings.
            runner: Tool Runner used by tools that don't carry their own.
            tools: Tool chain; defaults to yamllint, spectral and cfn-lint.
            cache: Result cache to use instead of a new one.
            gate: Concurrency gate to use instead of a new one.
        """
        self.settings = settings or get_settings()
        self.runner = runner or SubprocessToolRunner()
        self.tools = tools if tools is not None else self._default_tools(self.settings)
        self.cache = cache if cache is not None else ResultCache()
        self.gate = gate or ConcurrencyGate(self.settings.YAML_CONCURRENCY)
        self._inflight: dict[str, asyncio.Future] = {}

    @staticmethod
    def _default_tools(settings: Settings) -> list[BaseTool]:
        """Create the default tool chain in execution order."""
        return [
            YamllintTool(settings.YAMLLINT_COMMAND),    # General YAML lint, always runs
            SpectralTool(settings.SPECTRAL_COMMAND),    # Only with a ruleset
            CfnLintTool(settings.CFN_LINT_COMMAND, enabled=not settings.DISABLE_CFN_LINT),
        ]

    # ── Public API ──

    async def validate_yaml(
        self,
        content: str,
        *,
        filename: Optional[str],
        mime_type: Optional[str],
        tool_config: Optional[ToolConfig] = None,
        tools: Optional[list[str]] = None,
        allow_anchors: bool = False,
        allowed_tags: tuple[str, ...] = (),
    ) -> ValidationOutcome:
        """Validate one document through the full pipeline."""
        request = ValidationRequest(
            content=content,
            filename=filename,
            mime_type=mime_type,
            tool_config=tool_config or ToolConfig(),
            tools=tuple(tools) if tools is not None else None,
            allow_anchors=allow_anchors,
            allowed_tags=tuple(allowed_tags),
        )
        return await self.validate(request)

    async def validate(self, request: ValidationRequest) -> ValidationOutcome:
        """Run the pipeline for one request.

        Args:
            request: The document plus how to validate it

        Returns:
            ValidationOutcome (cached object on a hit)

        Raises:
            ValueError: if request.tools names a tool this engine doesn't have
        """
        start_time = time.perf_counter()

        try:
            check_input(request.filename, request.mime_type)
        except GuardRejection as e:
            logger.info("input_rejected", filename=request.filename, reason=e.reason)
            return ValidationOutcome.rejected(
                str(e),
                path=request.filename,
                suggestion=REJECTION_SUGGESTIONS.get(type(e)),
            )

        config = self.resolve_config(request.tool_config, request.content)
        allowed_tags = set(request.allowed_tags)
        if config.provider == "aws":
            allowed_tags |= CFN_INTRINSIC_TAGS

        issues = check_content(
            request.content,
            filename=request.filename,
            max_bytes=self.settings.MAX_BYTES,
            max_lines=self.settings.MAX_LINES,
            allow_anchors=request.allow_anchors,
            allowed_tags=allowed_tags,
        ) or parse_check(request.content, request.filename)
        if issues:
            logger.info("preflight_failed", filename=request.filename, issues=len(issues))
            return ValidationOutcome.build(issues, tools=[])

        selected = self.select_tools(request, config)
        key = fingerprint(request.content, self._fingerprint_config(config), [t.identity for t in selected])

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache_hit", filename=request.filename, key=key[:12])
            return cached

        outcome = await self._compute_once(key, request, config, selected)

        logger.info(
            "validation_complete",
            filename=request.filename,
            ok=outcome.ok,
            tools=list(outcome.tools),
            messages=len(outcome.messages),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return outcome

    async def validate_directory(
        self,
        root: Union[str, Path],
        tool_config: Optional[ToolConfig] = None,
        tools: Optional[list[str]] = None,
    ) -> BatchReport:
        """Validate every .yaml/.yml file under root. See DirectoryBatch."""
        batch = DirectoryBatch(self, root, tool_config=tool_config, tools=tools)
        return await batch.run()

    def reset_cache(self) -> None:
        self.cache.reset()

    def add_tool(self, tool: BaseTool) -> None:
        """Add a custom tool to the chain."""
        self.tools.append(tool)

    def remove_tool(self, tool_name: str) -> None:
        """Remove a tool by name."""
        self.tools = [t for t in self.tools if t.name != tool_name]

    # ── Pipeline steps ──

    def resolve_config(self, config: ToolConfig, content: str) -> ToolConfig:
        """Fill unset fields from settings and settle the provider.

        An explicit provider wins, then the assume_* flags, then detection.
        """
        provider = config.provider
        if provider is None:
            if config.assume_cloudformation:
                provider = "aws"
            elif config.assume_azure_pipelines:
                provider = "azure"
            else:
                provider = detect_provider(content)
        return ToolConfig(
            spectral_ruleset_path=config.spectral_ruleset_path or self.settings.SPECTRAL_RULESET or None,
            yamllint_config_path=config.yamllint_config_path or self.settings.YAMLLINT_CONFIG or None,
            assume_cloudformation=config.assume_cloudformation,
            assume_azure_pipelines=config.assume_azure_pipelines,
            provider=provider,
        )

    def _fingerprint_config(self, config: ToolConfig) -> dict:
        return {
            **config.model_dump(),
            "strict_tools": self.settings.STRICT_TOOLS,
        }

    def check_tool_names(self, names: Optional[list[str]]) -> None:
        """Raise ValueError for tool names this engine doesn't know."""
        if names is None:
            return
        known = {t.name for t in self.tools}
        unknown = [n for n in names if n not in known]
        if unknown:
            raise ValueError(f"Unknown tool(s): {', '.join(unknown)}. Available: {', '.join(sorted(known))}")

    def select_tools(self, request: ValidationRequest, config: ToolConfig) -> list[BaseTool]:
        """Explicit selection runs exactly the named tools; otherwise each tool decides."""
        if request.tools is not None:
            self.check_tool_names(list(request.tools))
            wanted = set(request.tools)
            return [t for t in self.tools if t.name in wanted]
        return [t for t in self.tools if t.applies_to(request, config)]

    async def _compute_once(
        self,
        key: str,
        request: ValidationRequest,
        config: ToolConfig,
        selected: list[BaseTool],
    ) -> ValidationOutcome:
        """Run tools for a cache miss, sharing the work with identical concurrent requests.

        Duplicates wait on the first caller's future. That future resolves to
        None if the first caller fails or is cancelled, and the waiter then
        computes on its own.
        """
        while key in self._inflight:
            pending = self._inflight[key]
            outcome = await asyncio.shield(pending)
            if outcome is not None:
                logger.debug("inflight_shared", filename=request.filename, key=key[:12])
                return outcome

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        outcome = None
        try:
            outcome = await self._run_tools(request, config, selected)
            self.cache.put(key, outcome)
            return outcome
        finally:
            del self._inflight[key]
            if not future.done():
                future.set_result(outcome)

    async def _run_tools(
        self,
        request: ValidationRequest,
        config: ToolConfig,
        selected: list[BaseTool],
    ) -> ValidationOutcome:
        messages: list[Message] = []
        invoked: list[str] = []
        all_succeeded = True
        timings: dict[str, float] = {}

        async with self.gate.slot():
            for tool in selected:
                reason = tool.unavailable_reason(config)
                if reason:
                    messages.append(tool._message(Severity.INFO, reason))
                    continue

                t_start = time.perf_counter()
                try:
                    tool_messages, succeeded = await self._invoke(tool, request, config)
                finally:
                    timings[tool.name] = round((time.perf_counter() - t_start) * 1000, 2)
                invoked.append(tool.name)
                messages.extend(tool_messages)
                all_succeeded = all_succeeded and succeeded

        logger.debug("tools_finished", filename=request.filename, tool_timings=timings)
        if config.provider == "azure":
            messages.extend(self._analyze_azure(request))

        return ValidationOutcome.build(
            messages,
            tools=invoked,
            tools_succeeded=all_succeeded,
            provider_summary=self._provider_summary(config, selected, invoked),
        )

    def _analyze_azure(self, request: ValidationRequest) -> list[Message]:
        """Azure Pipelines structure checks; in-process, so outside the gate."""
        analyzer = AzurePipelinesAnalyzer(load_azure_schema(self.settings.AZURE_PIPELINES_SCHEMA_PATH or None))
        try:
            doc = load_yaml(request.content)
        except ParseError as e:
            logger.info("azure_analysis_skipped", filename=request.filename, error=e.message)
            return [Message(
                source=AZURE_SOURCE,
                severity=Severity.INFO,
                message=f"Azure analyzer could not load the document; skipped: {e.message}",
            )]
        return list(analyzer.analyze(doc).messages)

    def _provider_summary(
        self,
        config: ToolConfig,
        selected: list[BaseTool],
        invoked: list[str],
    ) -> ProviderSummary:
        cfn_lint = next((t for t in selected if t.name == "cfn-lint" and t.name in invoked), None)
        return ProviderSummary(
            provider=config.provider or "generic",
            sources=ProviderSources(
                azure_schema_path=_existing_file(self.settings.AZURE_PIPELINES_SCHEMA_PATH),
                cfn_spec_path=_existing_file(self.settings.CFN_SPEC_PATH),
                spectral_ruleset_path=config.spectral_ruleset_path,
                cfn_lint_command=cfn_lint.command if cfn_lint else None,
            ),
        )

    async def _invoke(
        self,
        tool: BaseTool,
        request: ValidationRequest,
        config: ToolConfig,
    ) -> tuple[list[Message], bool]:
        """Run one tool and translate whatever happens into (messages, succeeded)."""
        spec = tool.build_invocation(request, config, self.settings.TOOL_TIMEOUT_SECONDS)
        runner = tool.runner or self.runner

        try:
            result = await runner.run(spec)
        except ToolTimeout as e:
            logger.warning("tool_timeout", tool=tool.name, timeout_seconds=e.timeout_seconds)
            return [tool._message(Severity.ERROR, e.message,
                                  suggestion="Simplify the document or raise TOOL_TIMEOUT_SECONDS")], False
        except ToolLaunchError as e:
            logger.warning("tool_unavailable", tool=tool.name, error=e.message)
            if self.settings.STRICT_TOOLS:
                return [tool._message(Severity.ERROR, f"{tool.name} could not be launched: {e.message}")], False
            return [tool._message(Severity.INFO, f"{tool.name} not available; skipped")], True
        except Exception as e:
            logger.error("tool_failed", tool=tool.name, error=str(e), error_type=type(e).__name__)
            # Don't let one broken tool kill the whole pipeline
            return [tool._message(Severity.ERROR, f"Tool '{tool.name}' crashed: {e}")], False

        try:
            messages = tool.parse_output(result)
        except Exception as e:
            logger.error("tool_output_unreadable", tool=tool.name, error=str(e))
            messages = [tool._message(Severity.WARNING, f"Could not interpret {tool.name} output: {e}")]

        succeeded = tool.succeeded(result)
        if not succeeded and not any(m.is_error for m in messages):
            detail = tool._snippet(result.stderr) or tool._snippet(result.stdout)
            text = f"{tool.name} exited with code {result.exit_code}"
            messages.append(tool._message(Severity.ERROR, f"{text}: {detail}" if detail else text))
        return messages, succeeded


def _existing_file(path: str) -> Optional[str]:
    return path if path and Path(path).is_file() else None
