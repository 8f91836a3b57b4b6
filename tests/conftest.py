"""
Pytest configuration and shared fixtures.
"""

import pytest
import structlog

from yamlcheck.config import Settings
from yamlcheck.services.tool_runner import CannedToolRunner
from yamlcheck.validators.engine import ValidationEngine
from yamlcheck.validators.models import ToolInvocationResult


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop any logging config bound to a captured stream by the previous test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings():
    """Isolated settings: no .env file, small gate, short timeouts."""
    return Settings(
        _env_file=None,
        YAML_CONCURRENCY=2,
        TOOL_TIMEOUT_SECONDS=2.0,
        SPECTRAL_RULESET="",
        YAMLLINT_CONFIG="",
        STRICT_TOOLS=False,
        DISABLE_CFN_LINT=False,
    )


@pytest.fixture
def canned_runner():
    """Runner that reports a clean pass for every tool."""
    return CannedToolRunner()


@pytest.fixture
def engine(settings, canned_runner):
    """Engine with its own cache and gate, backed by the canned runner."""
    return ValidationEngine(settings, runner=canned_runner)


@pytest.fixture
def sample_yaml():
    """A small, valid Kubernetes-style document."""
    return """apiVersion: v1
kind: ConfigMap
metadata:
  name: demo
data:
  greeting: hello
"""


@pytest.fixture
def cfn_template():
    """A CloudFormation template in long-form intrinsic syntax."""
    return """AWSTemplateFormatVersion: "2010-09-09"
Resources:
  Bucket:
    Type: AWS::S3::Bucket
    Properties:
      BucketName:
        Fn::Sub: "${AWS::StackName}-logs"
"""


@pytest.fixture
def yamllint_error():
    """yamllint parsable output with one error and one warning."""
    return ToolInvocationResult(
        exit_code=1,
        stdout=(
            "<stdin>:1:1: [warning] missing document start \"---\" (document-start)\n"
            "<stdin>:4:3: [error] wrong indentation: expected 2 but found 4 (indentation)\n"
        ),
    )
