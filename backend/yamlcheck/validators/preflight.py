"""Content preflight - size, line, anchor and tag guards plus a safe parse check.

Runs after the Input Guard and before fingerprinting. Nothing here touches
the cache or starts a tool.
"""

from typing import Iterable, Optional

import yaml

from yamlcheck.conversion.converter import MERGE_TAG, check_alias_expansion, yaml_parse_error
from yamlcheck.validators.models import Message, PARSER_SOURCE, Severity


def _issue(message: str, suggestion: str, filename: Optional[str] = None, **extra) -> Message:
    return Message(
        source=PARSER_SOURCE,
        severity=Severity.ERROR,
        message=message,
        suggestion=suggestion,
        path=filename,
        **extra,
    )


def _tag_text(handle: Optional[str], suffix: str) -> Optional[str]:
    """Tag as written: '!Ref', '!!str', '!<tag:x>'. None for the bare '!' tag."""
    if handle is None:
        return None if suffix == "!" else f"!<{suffix}>"
    return f"{handle}{suffix}"


def scan_markers(content: str) -> tuple[bool, list[str]]:
    """Tokenize the document and report (uses anchors or aliases, explicit tags).

    Only real tokens count, so '&', '*' and '!' inside scalars and comments
    are ignored. Scanning stops at the first syntax error; parse_check
    reports that error.
    """
    uses_anchors = False
    tags: list[str] = []
    try:
        for token in yaml.scan(content, Loader=yaml.SafeLoader):
            if isinstance(token, (yaml.AnchorToken, yaml.AliasToken)):
                uses_anchors = True
            elif isinstance(token, yaml.TagToken):
                tag = _tag_text(*token.value)
                if tag:
                    tags.append(tag)
    except yaml.YAMLError:
        pass
    return uses_anchors, tags


def find_custom_tags(content: str) -> list[str]:
    """Explicit tag tokens used in the document, in order of appearance."""
    return scan_markers(content)[1]


def check_content(
    content: str,
    *,
    filename: Optional[str] = None,
    max_bytes: int,
    max_lines: int,
    allow_anchors: bool = False,
    allowed_tags: Iterable[str] = (),
) -> list[Message]:
    """Return preflight violations; an empty list means the content may proceed."""
    issues: list[Message] = []

    byte_len = len(content.encode("utf-8"))
    if byte_len > max_bytes:
        issues.append(_issue(
            f"YAML exceeds max size of {max_bytes} bytes ({byte_len} bytes)",
            "Split the file or reduce content size",
            filename,
        ))

    line_count = len(content.splitlines())
    if line_count > max_lines:
        issues.append(_issue(
            f"YAML exceeds max lines of {max_lines} ({line_count} lines)",
            "Split the file or reduce line count",
            filename,
        ))

    uses_anchors, tags = scan_markers(content)
    if not allow_anchors and uses_anchors:
        issues.append(_issue(
            "YAML anchors or aliases are not allowed for security reasons",
            "Inline values instead of using &anchor/*alias",
            filename,
        ))

    allowed = set(allowed_tags)
    disallowed = [tag for tag in tags if tag not in allowed]
    if disallowed:
        issues.append(_issue(
            f"Custom YAML tags are not allowed: {', '.join(sorted(set(disallowed)))}",
            "Remove tag prefixes like !! or !<tag>",
            filename,
        ))

    return issues


def _duplicate_keys(root: yaml.Node) -> list[tuple[str, yaml.Node]]:
    """Find repeated scalar keys in every mapping reachable from root."""
    found = []
    visited: set[int] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if id(node) in visited:
            continue
        visited.add(id(node))
        if isinstance(node, yaml.MappingNode):
            seen = set()
            for key_node, value_node in node.value:
                if isinstance(key_node, yaml.ScalarNode) and key_node.tag != MERGE_TAG:
                    key = (key_node.tag, key_node.value)
                    if key in seen:
                        found.append((key_node.value, key_node))
                    seen.add(key)
                stack.extend((key_node, value_node))
        elif isinstance(node, yaml.SequenceNode):
            stack.extend(node.value)
    return found


def parse_check(content: str, filename: Optional[str] = None) -> list[Message]:
    """Compose every document in the stream and report syntax errors and duplicate keys.

    Composition resolves structure only: tags are not constructed and aliases
    are never expanded, so hostile documents stay cheap to check. Documents
    whose aliases would expand too far downstream are reported here.
    """
    try:
        documents = list(yaml.compose_all(content, Loader=yaml.SafeLoader))
        for document in documents:
            if document is not None:
                check_alias_expansion(document)
    except yaml.YAMLError as e:
        err = yaml_parse_error(e)
        return [_issue(err.message, "Fix the YAML syntax at the reported position", filename,
                       line=err.line, column=err.column)]

    issues = []
    for document in documents:
        if document is None:
            continue
        for key, key_node in _duplicate_keys(document):
            issues.append(_issue(
                f"Duplicate key '{key}'",
                "Mapping keys must be unique",
                filename,
                line=key_node.start_mark.line + 1,
                column=key_node.start_mark.column + 1,
            ))
    return issues
