"""Provider detection - cheap heuristics about what kind of YAML this is.

Detection works on the composed node tree, so CloudFormation short-form
intrinsics (!Ref, !Sub) never need a constructor.
"""

import re
from typing import Optional

import yaml

PROVIDERS = ("aws", "azure", "generic")

CFN_INTRINSIC_FUNCTIONS = (
    "And", "Base64", "Cidr", "Condition", "Equals", "FindInMap", "GetAtt",
    "GetAZs", "If", "ImportValue", "Join", "Not", "Or", "Ref", "Select",
    "Split", "Sub", "Transform",
)
CFN_INTRINSIC_TAGS = frozenset(f"!{name}" for name in CFN_INTRINSIC_FUNCTIONS)

# Fallback when the document doesn't compose at all
CFN_TOP_LEVEL = re.compile(r"^(AWSTemplateFormatVersion|Resources)\s*:", re.MULTILINE)

AZURE_CONTAINER_KEYS = frozenset({"steps", "jobs", "stages"})
AZURE_MARKER_KEYS = frozenset({"trigger", "pr", "pool", "extends", "stages"})
AZURE_STEP_KEYS = frozenset({"script", "bash", "powershell", "pwsh", "task", "checkout"})


def _root_mapping(content: str) -> Optional[dict[str, yaml.Node]]:
    """Top-level scalar keys of a single-document mapping, or None."""
    try:
        root = yaml.compose(content, Loader=yaml.SafeLoader)
    except yaml.YAMLError:
        return None
    if not isinstance(root, yaml.MappingNode):
        return {}
    return {
        key.value: value
        for key, value in root.value
        if isinstance(key, yaml.ScalarNode)
    }


def is_likely_cloudformation(content: str) -> bool:
    root = _root_mapping(content)
    if root is None:
        return bool(CFN_TOP_LEVEL.search(content))
    version = root.get("AWSTemplateFormatVersion")
    if isinstance(version, yaml.ScalarNode) and version.value:
        return True
    return isinstance(root.get("Resources"), yaml.MappingNode)


def is_likely_azure_pipelines(content: str) -> bool:
    """A pipeline has steps, jobs or stages plus an Azure-only key or step kind."""
    root = _root_mapping(content)
    if not root or not AZURE_CONTAINER_KEYS & root.keys():
        return False
    if AZURE_MARKER_KEYS & root.keys():
        return True

    steps = root.get("steps")
    if not isinstance(steps, yaml.SequenceNode):
        return False
    for step in steps.value:
        if isinstance(step, yaml.MappingNode):
            keys = {k.value for k, _ in step.value if isinstance(k, yaml.ScalarNode)}
            if keys & AZURE_STEP_KEYS:
                return True
    return False


def detect_provider(content: str, override: Optional[str] = None) -> str:
    """'aws' for CloudFormation, 'azure' for Azure Pipelines, 'generic' otherwise.

    A known override wins over detection.
    """
    if override in PROVIDERS:
        return override
    if is_likely_cloudformation(content):
        return "aws"
    if is_likely_azure_pipelines(content):
        return "azure"
    return "generic"
