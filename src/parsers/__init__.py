"""Structural parsing of metamodel JSON documents."""

from parsers.cursor import context_at, token_at, token_range
from parsers.structure import (
    ArrayNode,
    Member,
    ObjectNode,
    ScalarNode,
    context_kind_of,
    iter_objects,
    parse_tree,
    resolve_object_type,
)
from parsers.tokenizer import tokenize

__all__ = [
    # Tokenizing
    "tokenize",
    # Object tree
    "parse_tree",
    "iter_objects",
    "ObjectNode",
    "ArrayNode",
    "ScalarNode",
    "Member",
    # Type resolution
    "context_kind_of",
    "resolve_object_type",
    # Cursor context
    "context_at",
    "token_at",
    "token_range",
]
