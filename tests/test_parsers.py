"""
Tests for the tolerant tokenizer, object tree and cursor context.

Run with: pytest tests/test_parsers.py -v
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config import get_default_metamodel_path
from models import DocumentKind, Position, TextRange, TokenKind
from ontology import read_metamodel
from parsers import (
    ArrayNode,
    ObjectNode,
    context_at,
    iter_objects,
    parse_tree,
    token_at,
    token_range,
    tokenize,
)
from utils import classify_document, offset_at, position_at


# --- Fixtures ---


@pytest.fixture(scope="module")
def metamodel():
    return read_metamodel(get_default_metamodel_path())


def cursor(text: str, marker: str) -> int:
    """Offset just after the first occurrence of marker."""
    return text.index(marker) + len(marker)


# --- Tokenizer Tests ---


class TestTokenize:
    def test_kinds(self):
        kinds = [t.kind for t in tokenize('{"a": [1, true, "x"]}')]
        assert kinds == [
            TokenKind.OPEN_BRACE, TokenKind.KEY, TokenKind.COLON, TokenKind.OPEN_BRACKET,
            TokenKind.NUMBER, TokenKind.COMMA, TokenKind.LITERAL, TokenKind.COMMA,
            TokenKind.STRING, TokenKind.CLOSE_BRACKET, TokenKind.CLOSE_BRACE,
        ]

    def test_key_after_comma(self):
        tokens = tokenize('{"a": "b", "c": "d"}')
        assert [t.value for t in tokens if t.kind is TokenKind.KEY] == ["a", "c"]
        assert [t.value for t in tokens if t.kind is TokenKind.STRING] == ["b", "d"]

    def test_offsets(self):
        text = '{ "name" : "x" }'
        key = tokenize(text)[1]
        assert (key.start, key.end) == (2, 8)
        assert text[key.start:key.end] == '"name"'

    def test_escapes_are_decoded(self):
        tokens = tokenize(r'{"a": "say \"hi\""}')
        assert tokens[3].value == 'say "hi"'

    def test_unterminated_string_at_end(self):
        text = '{"@type": "Inter'
        last = tokenize(text)[-1]
        assert last.kind is TokenKind.STRING
        assert last.closed is False
        assert last.value == "Inter"
        assert last.end == len(text)

    def test_unterminated_string_stops_at_newline(self):
        text = '{"a": "b\n}'
        tokens = tokenize(text)
        assert tokens[3].closed is False
        assert tokens[3].end == text.index("\n")
        assert tokens[-1].kind is TokenKind.CLOSE_BRACE

    def test_garbage_never_raises(self):
        tokens = tokenize('}]{"a": @ foo')
        kinds = [t.kind for t in tokens]
        assert kinds == [
            TokenKind.CLOSE_BRACE, TokenKind.CLOSE_BRACKET, TokenKind.OPEN_BRACE,
            TokenKind.KEY, TokenKind.COLON, TokenKind.INVALID, TokenKind.INVALID,
        ]

    def test_empty(self):
        assert tokenize("") == []
        assert tokenize("   \n ") == []


# --- Tree Tests ---


class TestParseTree:
    def test_incomplete_document(self):
        text = '{"a": {"b": 1}, "c": ['
        root = parse_tree(tokenize(text))
        assert isinstance(root, ObjectNode)
        assert root.keys() == ["a", "c"]
        assert isinstance(root.member("c").value, ArrayNode)
        assert root.end == len(text)

    def test_mismatched_closer(self):
        text = '{"a": [1}'
        root = parse_tree(tokenize(text))
        assert root.keys() == ["a"]
        array = root.member("a").value
        assert array.end == text.index("}")
        assert root.end == len(text)

    def test_declared_type(self):
        root = parse_tree(tokenize('{"@type": ["Telemetry", "SemanticType/Temperature"]}'))
        assert root.declared_type() == ["Telemetry", "SemanticType/Temperature"]
        assert parse_tree(tokenize('{"@type": 3}')).declared_type() is None
        assert parse_tree(tokenize('{"@type": ""}')).declared_type() is None

    def test_iter_objects_outermost_first(self):
        text = '{"a": [{"b": {}}], "c": {}}'
        starts = [node.start for node in iter_objects(parse_tree(tokenize(text)))]
        assert starts == [0, text.index('{"b"'), text.index("{}"), text.rindex("{}")]

    def test_deep_nesting(self):
        depth = 5000
        text = "[" * depth + "]" * depth
        node = parse_tree(tokenize(text))
        for level in range(depth - 1):
            assert node.range == TextRange(start=level, end=len(text) - level)
            node = node.items[0]
        assert node.items == []
        objects = list(iter_objects(parse_tree(tokenize('{"a": ' * depth))))
        assert len(objects) == depth
        assert [o.start for o in objects[:2]] == [0, len('{"a": ')]

    def test_no_container(self):
        assert parse_tree(tokenize('"just a string"')) is None
        assert parse_tree([]) is None


# --- Cursor Tests ---


class TestTokenRange:
    def test_open_string_owns_its_end(self):
        text = '{"@type": "Inter'
        tokens = tokenize(text)
        assert token_at(tokens, len(text)).value == "Inter"
        assert token_range(tokens, len(text)) == TextRange(start=text.index('"Inter'), end=len(text))

    def test_closed_string_end_is_outside(self):
        tokens = tokenize('{"a"}')
        assert token_at(tokens, 4) is None
        assert token_range(tokens, 4) == TextRange(start=4, end=4)

    def test_inside_quotes(self):
        text = '{"@context": ""}'
        tokens = tokenize(text)
        offset = cursor(text, '"@context": "')
        assert token_range(tokens, offset) == TextRange(start=offset - 1, end=offset + 1)


class TestContextAt:
    def test_key_position_in_array_element(self, metamodel):
        text = '{"@type": "Interface", "contents": [{"@type": "Telemetry", }]}'
        offset = cursor(text, '"Telemetry", ')
        context = context_at(tokenize(text), offset, DocumentKind.INTERFACE, metamodel)
        assert context.key_path == ["contents", 0]
        assert context.is_value_position is False
        assert context.current_key is None
        assert context.resolved_type == "Telemetry"
        assert context.sibling_properties == frozenset({"@type"})
        assert context.parent_property == "contents"
        assert context.container == "object"

    def test_after_completed_value_is_key_position(self, metamodel):
        text = '{"@type": "Interface"}'
        context = context_at(tokenize(text), len(text) - 1, DocumentKind.INTERFACE, metamodel)
        assert context.is_value_position is False
        assert context.resolved_type == "Interface"

    def test_value_position(self, metamodel):
        text = '{"@type": "Interface", "contents": [{"@type": ""}]}'
        offset = cursor(text, '[{"@type": "')
        context = context_at(tokenize(text), offset, DocumentKind.INTERFACE, metamodel)
        assert context.is_value_position is True
        assert context.current_key == "@type"
        assert context.parent_property == "contents"
        assert context.sibling_properties == frozenset({"@type"})

    def test_value_position_before_any_text(self, metamodel):
        text = '{"@type": }'
        context = context_at(tokenize(text), len(text) - 1, DocumentKind.INTERFACE, metamodel)
        assert context.is_value_position is True
        assert context.current_key == "@type"

    def test_array_element_position(self, metamodel):
        text = '{"@type": "Interface", "contents": [ ]}'
        offset = cursor(text, "[")
        context = context_at(tokenize(text), offset, DocumentKind.INTERFACE, metamodel)
        assert context.container == "array"
        assert context.is_value_position is True
        assert context.current_key == "contents"
        assert context.key_path == ["contents"]

    def test_type_inferred_from_single_range(self, metamodel):
        text = '{"@type": "Interface", "contents": [{"@type": "Command", "request": { }}]}'
        offset = cursor(text, '"request": {')
        context = context_at(tokenize(text), offset, DocumentKind.INTERFACE, metamodel)
        assert context.resolved_type == "CommandPayload"
        assert context.key_path == ["contents", 0, "request"]

    def test_polymorphic_range_is_not_inferred(self, metamodel):
        text = '{"@type": "Interface", "contents": [{ }]}'
        offset = cursor(text, "[{")
        context = context_at(tokenize(text), offset, DocumentKind.INTERFACE, metamodel)
        assert context.resolved_type is None

    def test_untyped_root(self, metamodel):
        context = context_at(tokenize("{}"), 1, DocumentKind.CAPABILITY_MODEL, metamodel)
        assert context.resolved_type is None
        assert context.context_kind is DocumentKind.CAPABILITY_MODEL
        assert context.key_path == []

    def test_inline_interface_switches_context(self, metamodel):
        text = '{"@type": "CapabilityModel", "implements": [{"name": "x", "schema": {"@type": "Interface", }}]}'
        offset = cursor(text, '"Interface", ')
        context = context_at(tokenize(text), offset, DocumentKind.CAPABILITY_MODEL, metamodel)
        assert context.context_kind is DocumentKind.INTERFACE
        assert context.resolved_type == "Interface"
        assert context.key_path == ["implements", 0, "schema"]

    def test_interface_instance_is_inferred(self, metamodel):
        text = '{"@type": "CapabilityModel", "implements": [{ }]}'
        offset = cursor(text, "[{")
        context = context_at(tokenize(text), offset, DocumentKind.CAPABILITY_MODEL, metamodel)
        assert context.context_kind is DocumentKind.CAPABILITY_MODEL
        assert context.resolved_type == "InterfaceInstance"

    def test_closed_sibling_container(self, metamodel):
        text = '{"@type": "Interface", "contents": [], }'
        offset = cursor(text, "[], ")
        context = context_at(tokenize(text), offset, DocumentKind.INTERFACE, metamodel)
        assert context.is_value_position is False
        assert context.sibling_properties == frozenset({"@type", "contents"})

    def test_outside_any_container(self, metamodel):
        context = context_at(tokenize(""), 0, DocumentKind.INTERFACE, metamodel)
        assert context.container is None
        assert context.key_path == []

    def test_broken_document(self, metamodel):
        text = '}}{"a": [[{'
        context = context_at(tokenize(text), len(text), DocumentKind.INTERFACE, metamodel)
        assert context.container == "object"
        assert context.key_path == ["a", 0, 0]

    def test_deep_nesting(self, metamodel):
        text = "[" * 3000
        context = context_at(tokenize(text), 1500, DocumentKind.INTERFACE, metamodel)
        assert context.container == "array"
        assert context.key_path == [0] * 1499

    def test_key_after_missing_comma(self, metamodel):
        text = '{"@type": "Interface", "contents": [{"@type": "Telemetry", "name": "t" "unit": }]}'
        offset = cursor(text, '"unit": ')
        context = context_at(tokenize(text), offset, DocumentKind.INTERFACE, metamodel)
        assert context.is_value_position is True
        assert context.current_key == "unit"
        assert "unit" in context.sibling_properties


# --- Utility Tests ---


class TestClassifyDocument:
    @pytest.mark.parametrize("uri,expected", [
        ("file:///work/thermostat.interface.json", DocumentKind.INTERFACE),
        ("/work/Thermostat.Interface.JSON", DocumentKind.INTERFACE),
        ("file:///work/device.capabilitymodel.json", DocumentKind.CAPABILITY_MODEL),
        ("file:///work/my%20device.capabilitymodel.json", DocumentKind.CAPABILITY_MODEL),
        ("file:///work/package.json", None),
        ("file:///work/thermostat.interface.json.bak", None),
    ])
    def test_classify(self, uri, expected):
        assert classify_document(uri) == expected


class TestPositions:
    def test_offset_and_position(self):
        text = '{\n  "a": 1\n}'
        offset = text.index('"a"')
        assert position_at(text, offset) == Position(line=1, character=2)
        assert offset_at(text, Position(line=1, character=2)) == offset

    def test_clamping(self):
        text = "ab\ncd"
        assert offset_at(text, Position(line=0, character=10)) == 2
        assert offset_at(text, Position(line=5, character=0)) == len(text)
        assert position_at(text, 100) == Position(line=1, character=2)
