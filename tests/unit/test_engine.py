"""
Tests for the single-document validation pipeline.
"""

import asyncio

import pytest

from yamlcheck.errors import ToolLaunchError, ToolTimeout
from yamlcheck.services.concurrency_gate import ConcurrencyGate
from yamlcheck.services.tool_runner import CannedToolRunner
from yamlcheck.validators.engine import ValidationEngine
from yamlcheck.validators.models import Severity, ToolConfig, ToolInvocationResult


async def _validate(engine, content, filename="doc.yaml", mime_type="application/yaml", **kwargs):
    return await engine.validate_yaml(content, filename=filename, mime_type=mime_type, **kwargs)


class TestInputGuard:
    """Rejected input never reaches the cache or a tool."""

    @pytest.mark.asyncio
    async def test_bad_extension_fails_fast(self, engine, canned_runner, sample_yaml):
        outcome = await _validate(engine, sample_yaml, filename="doc.txt")

        assert not outcome.ok
        assert len(outcome.messages) == 1
        assert outcome.messages[0].source == "guard"
        assert outcome.messages[0].suggestion
        assert canned_runner.call_count == 0
        assert len(engine.cache) == 0

    @pytest.mark.asyncio
    async def test_bad_mime_fails_fast(self, engine, canned_runner, sample_yaml):
        outcome = await _validate(engine, sample_yaml, mime_type="text/plain")

        assert not outcome.ok
        assert "Unsupported MIME type" in outcome.messages[0].message
        assert canned_runner.call_count == 0

    @pytest.mark.asyncio
    async def test_valid_pair_reaches_tools(self, engine, canned_runner, sample_yaml):
        outcome = await _validate(engine, sample_yaml, mime_type="text/yaml; charset=utf-8")

        assert outcome.ok
        assert outcome.tools == ("yamllint",)
        assert canned_runner.call_count == 1


class TestPreflight:
    """Content problems stop the pipeline before tools and cache."""

    @pytest.mark.asyncio
    async def test_syntax_error(self, engine, canned_runner):
        outcome = await _validate(engine, "key: [unclosed\n")

        assert not outcome.ok
        assert outcome.messages[0].source == "parser"
        assert outcome.messages[0].line is not None
        assert canned_runner.call_count == 0
        assert len(engine.cache) == 0

    @pytest.mark.asyncio
    async def test_anchors_blocked_unless_allowed(self, engine, canned_runner):
        content = "base: &base\n  a: 1\nother: *base\n"

        blocked = await _validate(engine, content)
        allowed = await _validate(engine, content, allow_anchors=True)

        assert not blocked.ok
        assert allowed.ok
        assert canned_runner.call_count == 1

    @pytest.mark.asyncio
    async def test_size_limit_from_settings(self, settings, canned_runner):
        small = ValidationEngine(settings.model_copy(update={"MAX_BYTES": 10}), runner=canned_runner)
        outcome = await _validate(small, "name: much-too-long\n")

        assert not outcome.ok
        assert "max size of 10 bytes" in outcome.messages[0].message


class TestCaching:
    """At most one computation per fingerprint."""

    @pytest.mark.asyncio
    async def test_cache_idempotence(self, engine, canned_runner, sample_yaml):
        first = await _validate(engine, sample_yaml)
        second = await _validate(engine, sample_yaml)

        assert second is first
        assert canned_runner.call_count == 1
        assert engine.cache.stats.hits == 1

    @pytest.mark.asyncio
    async def test_config_change_misses(self, engine, canned_runner, sample_yaml):
        await _validate(engine, sample_yaml)
        await _validate(engine, sample_yaml, tool_config=ToolConfig(yamllint_config_path="strict.yaml"))

        assert canned_runner.call_count == 2
        assert len(engine.cache) == 2

    @pytest.mark.asyncio
    async def test_filename_does_not_change_fingerprint(self, engine, canned_runner, sample_yaml):
        await _validate(engine, sample_yaml, filename="a.yaml")
        await _validate(engine, sample_yaml, filename="b.yml")

        assert canned_runner.call_count == 1

    @pytest.mark.asyncio
    async def test_tool_failures_are_cached(self, settings, sample_yaml):
        runner = CannedToolRunner(errors={"yamllint": ToolTimeout("yamllint", 2.0)})
        engine = ValidationEngine(settings, runner=runner)

        first = await _validate(engine, sample_yaml)
        second = await _validate(engine, sample_yaml)

        assert not first.ok
        assert second is first
        assert runner.call_count == 1

    @pytest.mark.asyncio
    async def test_reset_cache(self, engine, canned_runner, sample_yaml):
        await _validate(engine, sample_yaml)
        engine.reset_cache()
        await _validate(engine, sample_yaml)

        assert canned_runner.call_count == 2

    @pytest.mark.asyncio
    async def test_engines_do_not_share_state(self, settings, sample_yaml):
        runner = CannedToolRunner()
        one = ValidationEngine(settings, runner=runner)
        two = ValidationEngine(settings, runner=runner)

        await _validate(one, sample_yaml)
        await _validate(two, sample_yaml)

        assert runner.call_count == 2
        assert one.cache is not two.cache
        assert one.gate is not two.gate


class TestToolFailures:
    """Every tool failure becomes outcome content."""

    @pytest.mark.asyncio
    async def test_tool_messages_are_collected(self, settings, sample_yaml, yamllint_error):
        runner = CannedToolRunner(results={"yamllint": yamllint_error})
        engine = ValidationEngine(settings, runner=runner)

        outcome = await _validate(engine, sample_yaml)

        assert not outcome.ok
        assert [m.severity for m in outcome.messages] == [Severity.WARNING, Severity.ERROR]
        assert outcome.summary() == {"yamllint": {"errors": 1, "warnings": 1, "infos": 0}}

    @pytest.mark.asyncio
    async def test_warnings_only_is_ok(self, settings, sample_yaml):
        result = ToolInvocationResult(
            exit_code=0,
            stdout="<stdin>:1:1: [warning] missing document start \"---\" (document-start)\n",
        )
        engine = ValidationEngine(settings, runner=CannedToolRunner(results={"yamllint": result}))

        outcome = await _validate(engine, sample_yaml)

        assert outcome.ok
        assert len(outcome.messages) == 1

    @pytest.mark.asyncio
    async def test_timeout(self, settings, sample_yaml):
        runner = CannedToolRunner(errors={"yamllint": ToolTimeout("yamllint", 2.0)})
        outcome = await _validate(ValidationEngine(settings, runner=runner), sample_yaml)

        assert not outcome.ok
        assert outcome.messages[0].message == "yamllint timed out after 2s"
        assert outcome.tools == ("yamllint",)

    @pytest.mark.asyncio
    async def test_missing_tool_is_skipped(self, settings, sample_yaml):
        runner = CannedToolRunner(errors={"yamllint": ToolLaunchError("yamllint", "not found")})
        outcome = await _validate(ValidationEngine(settings, runner=runner), sample_yaml)

        assert outcome.ok
        assert outcome.messages[0].severity == Severity.INFO
        assert outcome.messages[0].message == "yamllint not available; skipped"

    @pytest.mark.asyncio
    async def test_missing_tool_fails_in_strict_mode(self, settings, sample_yaml):
        strict = settings.model_copy(update={"STRICT_TOOLS": True})
        runner = CannedToolRunner(errors={"yamllint": ToolLaunchError("yamllint", "not found")})
        outcome = await _validate(ValidationEngine(strict, runner=runner), sample_yaml)

        assert not outcome.ok
        assert outcome.messages[0].is_error

    @pytest.mark.asyncio
    async def test_crash_does_not_stop_other_tools(self, settings, cfn_template):
        runner = CannedToolRunner(errors={"yamllint": RuntimeError("boom")})
        outcome = await _validate(ValidationEngine(settings, runner=runner), cfn_template)

        assert not outcome.ok
        assert outcome.tools == ("yamllint", "cfn-lint")
        assert outcome.messages[0].message == "Tool 'yamllint' crashed: boom"
        assert runner.call_count == 2

    @pytest.mark.asyncio
    async def test_failed_exit_without_messages(self, settings, sample_yaml):
        result = ToolInvocationResult(exit_code=2, stderr="invalid config\nmore detail\n")
        runner = CannedToolRunner(results={"yamllint": result})
        outcome = await _validate(ValidationEngine(settings, runner=runner), sample_yaml)

        assert not outcome.ok
        assert outcome.messages[-1].message == "yamllint exited with code 2: invalid config"


class TestToolSelection:
    """Auto-selection, explicit selection and settings fallbacks."""

    @pytest.mark.asyncio
    async def test_cloudformation_adds_cfn_lint(self, engine, canned_runner, cfn_template):
        outcome = await _validate(engine, cfn_template)

        assert outcome.tools == ("yamllint", "cfn-lint")
        assert [spec.tool for spec in canned_runner.calls] == ["yamllint", "cfn-lint"]

    @pytest.mark.asyncio
    async def test_spectral_runs_with_ruleset(self, engine, canned_runner, sample_yaml):
        outcome = await _validate(engine, sample_yaml, tool_config=ToolConfig(spectral_ruleset_path="rules.yaml"))

        assert outcome.tools == ("yamllint", "spectral")
        assert "rules.yaml" in canned_runner.calls[1].args

    @pytest.mark.asyncio
    async def test_ruleset_from_settings(self, settings, canned_runner, sample_yaml):
        configured = settings.model_copy(update={"SPECTRAL_RULESET": "/etc/rules.yaml"})
        outcome = await _validate(ValidationEngine(configured, runner=canned_runner), sample_yaml)

        assert "spectral" in outcome.tools

    @pytest.mark.asyncio
    async def test_explicit_spectral_without_ruleset(self, engine, canned_runner, sample_yaml):
        outcome = await _validate(engine, sample_yaml, tools=["spectral"])

        assert outcome.ok
        assert outcome.tools == ()
        assert outcome.messages[0].message == "spectral requires a ruleset path; skipped"
        assert canned_runner.call_count == 0

    @pytest.mark.asyncio
    async def test_explicit_selection_skips_detection(self, engine, canned_runner, sample_yaml):
        outcome = await _validate(engine, sample_yaml, tools=["cfn-lint"])

        assert outcome.tools == ("cfn-lint",)

    @pytest.mark.asyncio
    async def test_unknown_tool_is_an_error(self, engine, sample_yaml):
        with pytest.raises(ValueError, match="Unknown tool"):
            await _validate(engine, sample_yaml, tools=["kubeval"])

    def test_remove_tool(self, engine):
        engine.remove_tool("cfn-lint")
        assert [t.name for t in engine.tools] == ["yamllint", "spectral"]

    def test_add_tool_appends_to_chain(self, engine):
        tool = engine.tools[0]
        engine.remove_tool("yamllint")
        engine.add_tool(tool)
        assert [t.name for t in engine.tools] == ["spectral", "cfn-lint", "yamllint"]


class TestConcurrency:
    """Gate bound, in-flight sharing and cancellation."""

    @pytest.mark.asyncio
    async def test_tool_runs_bounded_by_gate(self, settings):
        runner = CannedToolRunner(delay_seconds=0.02)
        engine = ValidationEngine(settings, runner=runner, gate=ConcurrencyGate(2))

        outcomes = await asyncio.gather(*(
            _validate(engine, f"item: {i}\n") for i in range(8)
        ))

        assert all(o.ok for o in outcomes)
        assert runner.call_count == 8
        assert runner.peak_active <= 2
        assert engine.gate.peak == 2
        assert engine.gate.in_use == 0

    @pytest.mark.asyncio
    async def test_identical_concurrent_requests_share_one_run(self, settings, sample_yaml):
        runner = CannedToolRunner(delay_seconds=0.05)
        engine = ValidationEngine(settings, runner=runner)

        outcomes = await asyncio.gather(*(_validate(engine, sample_yaml) for _ in range(5)))

        assert runner.call_count == 1
        assert all(o is outcomes[0] for o in outcomes)

    @pytest.mark.asyncio
    async def test_cancel_releases_permit_and_skips_cache(self, settings, sample_yaml):
        runner = CannedToolRunner(delay_seconds=5)
        engine = ValidationEngine(settings, runner=runner)

        task = asyncio.create_task(_validate(engine, sample_yaml))
        while runner.active == 0:
            await asyncio.sleep(0.005)
        assert engine.gate.in_use == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert engine.gate.in_use == 0
        assert len(engine.cache) == 0
        assert engine._inflight == {}

    @pytest.mark.asyncio
    async def test_waiter_recomputes_after_first_caller_cancelled(self, settings, sample_yaml):
        runner = CannedToolRunner(delay_seconds=0.2)
        engine = ValidationEngine(settings, runner=runner)

        first = asyncio.create_task(_validate(engine, sample_yaml))
        while runner.active == 0:
            await asyncio.sleep(0.005)
        second = asyncio.create_task(_validate(engine, sample_yaml))
        await asyncio.sleep(0.01)

        first.cancel()
        outcome = await asyncio.wait_for(second, timeout=2)

        assert outcome.ok
        assert runner.call_count == 2
        assert len(engine.cache) == 1


class TestProviders:
    """Provider resolution, CloudFormation intrinsics and the Azure analyzer."""

    SHORT_FORM_TEMPLATE = (
        "Resources:\n"
        "  Bucket:\n"
        "    Type: AWS::S3::Bucket\n"
        "    Properties:\n"
        "      BucketName: !Ref Name\n"
        "      Arn: !GetAtt Other.Arn\n"
    )

    AZURE_PIPELINE = "trigger:\n- main\nsteps:\n  - scirpt: echo hi\n  - task: 123\n"

    @pytest.mark.asyncio
    async def test_short_form_template_reaches_cfn_lint(self, engine, canned_runner):
        outcome = await _validate(engine, self.SHORT_FORM_TEMPLATE)

        assert outcome.ok
        assert outcome.tools == ("yamllint", "cfn-lint")
        assert [spec.tool for spec in canned_runner.calls] == ["yamllint", "cfn-lint"]
        assert outcome.provider_summary.provider == "aws"
        assert outcome.provider_summary.sources.cfn_lint_command == "cfn-lint"

    @pytest.mark.asyncio
    async def test_intrinsic_tags_still_rejected_for_generic_yaml(self, engine, canned_runner):
        outcome = await _validate(engine, "name: !Ref Other\n")

        assert not outcome.ok
        assert "Custom YAML tags are not allowed: !Ref" in outcome.messages[0].message
        assert canned_runner.call_count == 0

    @pytest.mark.asyncio
    async def test_assume_cloudformation_allows_intrinsics(self, engine):
        outcome = await _validate(engine, "Value: !Sub '${Env}-x'\n",
                                  tool_config=ToolConfig(assume_cloudformation=True))

        assert outcome.ok
        assert "cfn-lint" in outcome.tools

    @pytest.mark.asyncio
    async def test_non_intrinsic_tag_rejected_in_template(self, engine):
        outcome = await _validate(engine, self.SHORT_FORM_TEMPLATE + "      Extra: !Shell rm\n")

        assert not outcome.ok
        assert outcome.messages[0].message == "Custom YAML tags are not allowed: !Shell"

    @pytest.mark.asyncio
    async def test_azure_pipeline_gets_schema_warnings(self, engine, canned_runner):
        outcome = await _validate(engine, self.AZURE_PIPELINE)

        azure = [m for m in outcome.messages if m.source == "azure-schema"]
        assert outcome.ok
        assert outcome.tools == ("yamllint",)
        assert outcome.provider_summary.provider == "azure"
        assert [m.message for m in azure] == [
            "Unknown step key scirpt (suggest: script)",
            "task should be a string identifier like AzureCLI@2",
        ]
        assert all(m.severity == Severity.WARNING for m in azure)

    @pytest.mark.asyncio
    async def test_generic_provider_suppresses_azure_analysis(self, engine):
        outcome = await _validate(engine, self.AZURE_PIPELINE, tool_config=ToolConfig(provider="generic"))

        assert not any(m.source == "azure-schema" for m in outcome.messages)
        assert outcome.provider_summary.provider == "generic"

    @pytest.mark.asyncio
    async def test_assume_azure_forces_analysis(self, engine):
        content = "name: build\nsteps:\n  - scirpt: echo hi\n"
        outcome = await _validate(engine, content, tool_config=ToolConfig(assume_azure_pipelines=True))

        assert outcome.provider_summary.provider == "azure"
        assert any(m.source == "azure-schema" for m in outcome.messages)

    @pytest.mark.asyncio
    async def test_generic_summary_sources(self, engine, sample_yaml):
        outcome = await _validate(engine, sample_yaml, tool_config=ToolConfig(spectral_ruleset_path="rules.yaml"))

        summary = outcome.provider_summary
        assert summary.provider == "generic"
        assert summary.sources.spectral_ruleset_path == "rules.yaml"
        assert summary.sources.cfn_lint_command is None
        assert summary.sources.azure_schema_path is None

    @pytest.mark.asyncio
    async def test_rejected_outcomes_have_no_summary(self, engine, sample_yaml):
        outcome = await _validate(engine, sample_yaml, filename="doc.txt")
        assert outcome.provider_summary is None
