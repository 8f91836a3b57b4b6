"""YAML ↔ JSON conversion.

Mapping key order is preserved in both directions. Anchors and aliases are
expanded on the way to JSON, which has no way to express them. Expansion is
bounded: a document whose aliases would expand past MAX_ALIAS_NODES nodes is
refused before anything is constructed.
"""

import json
from typing import Any

import yaml

from yamlcheck.errors import ParseError

MERGE_TAG = "tag:yaml.org,2002:merge"

# Extra nodes alias expansion may add to a document
MAX_ALIAS_NODES = 10_000


class StrictSafeLoader(yaml.SafeLoader):
    """SafeLoader that refuses duplicate mapping keys."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            # Merge keys may repeat and are resolved by flatten_mapping
            if key_node.tag == MERGE_TAG:
                continue
            key = self.construct_object(key_node, deep=deep)
            try:
                duplicate = key in seen
            except TypeError:
                # Unhashable keys are rejected by the base implementation
                break
            if duplicate:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def check_alias_expansion(root: yaml.Node, limit: int = MAX_ALIAS_NODES) -> int:
    """Count the nodes aliases add to a composed document; raise past limit.

    The composer hands back the anchored node itself for every alias, so a
    node reached a second time is an alias use. Sizes are memoized, which
    keeps the walk linear in the composed graph however large the expansion.

    Raises:
        yaml.constructor.ConstructorError: expansion over limit, or an alias
            inside the node it refers to
    """
    sizes: dict[int, int] = {}
    active: set[int] = set()
    added = 0

    def size(node: yaml.Node) -> int:
        nonlocal added
        key = id(node)
        if key in active:
            raise yaml.constructor.ConstructorError(
                None, None, "found recursive alias", node.start_mark,
            )
        if key in sizes:
            added += sizes[key]
            if added > limit:
                raise yaml.constructor.ConstructorError(
                    None, None,
                    f"alias expansion exceeds {limit} nodes; "
                    "excessive aliasing indicates a resource exhaustion attack",
                    node.start_mark,
                )
            return sizes[key]

        active.add(key)
        total = 1
        if isinstance(node, yaml.MappingNode):
            for key_node, value_node in node.value:
                total += size(key_node) + size(value_node)
        elif isinstance(node, yaml.SequenceNode):
            for item in node.value:
                total += size(item)
        active.discard(key)
        sizes[key] = total
        return total

    size(root)
    return added


def yaml_parse_error(exc: yaml.YAMLError) -> ParseError:
    """Translate a PyYAML error into a ParseError with a 1-based position."""
    mark = getattr(exc, "problem_mark", None) or getattr(exc, "context_mark", None)
    if mark is None:
        return ParseError(f"Invalid YAML: {exc}")
    return ParseError(f"Invalid YAML: {exc}", line=mark.line + 1, column=mark.column + 1)


def load_yaml(text: str, loader_cls: type = StrictSafeLoader) -> Any:
    """Parse a single YAML document, checking alias expansion before construction."""
    loader = loader_cls(text)
    try:
        node = loader.get_single_node()
        if node is None:
            return None
        check_alias_expansion(node)
        return loader.construct_document(node)
    except yaml.YAMLError as e:
        raise yaml_parse_error(e) from e
    finally:
        loader.dispose()


def yaml_to_json(text: str) -> str:
    """Convert a YAML document to 2-space indented JSON text."""
    data = load_yaml(text)
    # default=str keeps timestamps and dates representable
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def json_to_yaml(text: str) -> str:
    """Convert JSON text to a block-style YAML document."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e.msg}", line=e.lineno, column=e.colno) from e
    return dump_yaml(data)


def dump_yaml(data: Any) -> str:
    """Block-style YAML with key order kept."""
    return yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
