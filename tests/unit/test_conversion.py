"""
Tests for YAML/JSON conversion and JSON Schema validation.
"""

import json

import pytest

from yamlcheck.conversion import json_to_yaml, load_yaml, schema_validate_yaml, yaml_to_json
from yamlcheck.errors import ParseError


class TestYamlToJson:
    """YAML in, 2-space JSON out."""

    def test_basic_mapping(self):
        assert yaml_to_json("a: 1\nb: [x, y]\n") == '{\n  "a": 1,\n  "b": [\n    "x",\n    "y"\n  ]\n}'

    def test_key_order_preserved(self):
        result = json.loads(yaml_to_json("zeta: 1\nalpha: 2\nmid: 3\n"))
        assert list(result) == ["zeta", "alpha", "mid"]

    def test_dates_become_strings(self):
        assert json.loads(yaml_to_json("when: 2024-05-01\n")) == {"when": "2024-05-01"}

    def test_unicode_kept(self):
        assert "héllo" in yaml_to_json("greeting: héllo\n")

    def test_invalid_yaml_raises_parse_error(self):
        with pytest.raises(ParseError) as exc:
            yaml_to_json("a: [1, 2\n")
        assert exc.value.message.startswith("Invalid YAML:")
        assert exc.value.line is not None

    def test_duplicate_keys_rejected(self):
        with pytest.raises(ParseError) as exc:
            load_yaml("a: 1\na: 2\n")
        assert "duplicate key" in exc.value.message

    def test_parse_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            yaml_to_json("key: 'unterminated\n")

    def test_anchor_alias_and_merge_key_expand(self):
        content = "base: &b\n  a: 1\n  c: 0\nchild:\n  <<: *b\n  c: 2\ncopy: *b\n"
        assert json.loads(yaml_to_json(content)) == {
            "base": {"a": 1, "c": 0},
            "child": {"a": 1, "c": 2},
            "copy": {"a": 1, "c": 0},
        }

    def test_merge_key_list(self):
        content = "x: &x {a: 1}\ny: &y {b: 2}\nz:\n  <<: [*x, *y]\n"
        assert json.loads(yaml_to_json(content))["z"] == {"a": 1, "b": 2}

    def test_duplicate_key_next_to_merge_key_rejected(self):
        with pytest.raises(ParseError, match="duplicate key"):
            load_yaml("b: &b {a: 1}\nc:\n  <<: *b\n  k: 1\n  k: 2\n")

    def test_exponential_alias_expansion_refused(self):
        lines = ["l0: &l0 [x, x, x, x, x, x, x, x, x, x]"]
        for level in range(1, 7):
            refs = ", ".join([f"*l{level - 1}"] * 10)
            lines.append(f"l{level}: &l{level} [{refs}]")
        content = "\n".join(lines) + "\n"
        assert len(content) < 400

        with pytest.raises(ParseError, match="alias expansion exceeds"):
            yaml_to_json(content)

    def test_recursive_alias_refused(self):
        with pytest.raises(ParseError, match="recursive alias"):
            yaml_to_json("a: &a [1, *a]\n")

    def test_modest_alias_use_allowed(self):
        content = "defaults: &d {retries: 3}\n" + "".join(f"svc{i}: *d\n" for i in range(50))
        assert json.loads(yaml_to_json(content))["svc49"] == {"retries": 3}


class TestJsonToYaml:
    """JSON in, block-style YAML out."""

    def test_basic_object(self):
        assert json_to_yaml('{"name": "demo", "ports": [80, 443]}') == "name: demo\nports:\n- 80\n- 443\n"

    def test_key_order_preserved(self):
        assert json_to_yaml('{"b": 1, "a": 2}') == "b: 1\na: 2\n"

    def test_invalid_json_position(self):
        with pytest.raises(ParseError) as exc:
            json_to_yaml('{"a": 1,\n "b": }')
        assert exc.value.message.startswith("Invalid JSON:")
        assert exc.value.line == 2

    def test_round_trip_preserves_data(self, sample_yaml):
        expected = load_yaml(sample_yaml)
        assert load_yaml(json_to_yaml(yaml_to_json(sample_yaml))) == expected


class TestSchemaValidate:
    """JSON Schema checks report problems instead of raising."""

    SCHEMA = {
        "type": "object",
        "required": ["name"],
        "properties": {
            "name": {"type": "string"},
            "replicas": {"type": "integer", "minimum": 1},
        },
    }

    def test_valid_document(self):
        result = schema_validate_yaml("name: api\nreplicas: 2\n", self.SCHEMA)
        assert result.ok
        assert result.errors == []

    def test_collects_all_errors(self):
        result = schema_validate_yaml("replicas: 0\n", self.SCHEMA)
        assert not result.ok
        keywords = sorted(issue.keyword for issue in result.errors)
        assert keywords == ["minimum", "required"]

    def test_instance_path_pointer(self):
        result = schema_validate_yaml("name: api\nreplicas: two\n", self.SCHEMA)
        assert [issue.instance_path for issue in result.errors] == ["/replicas"]

    def test_parse_failure(self):
        result = schema_validate_yaml("name: [api\n", self.SCHEMA)
        assert not result.ok
        assert result.errors[0].keyword == "parse"

    def test_bad_schema(self):
        result = schema_validate_yaml("name: api\n", {"type": "not-a-type"})
        assert not result.ok
        assert result.errors[0].keyword == "schema-compile"
