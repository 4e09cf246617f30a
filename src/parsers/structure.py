"""Tolerant object tree over a token stream, and type resolution of its objects."""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from models import ROOT_KINDS, DocumentKind, TextRange, Token, TokenKind
from ontology import MetaModel


@dataclass
class ScalarNode:
    token: Token

    @property
    def range(self) -> TextRange:
        return TextRange(start=self.token.start, end=self.token.end)


@dataclass
class Member:
    key: Token
    colon: Optional[Token] = None
    value: Optional["Node"] = None


@dataclass
class ObjectNode:
    start: int
    end: int = -1
    members: list[Member] = field(default_factory=list)

    @property
    def range(self) -> TextRange:
        return TextRange(start=self.start, end=self.end)

    def keys(self) -> list[str]:
        return [m.key.value for m in self.members]

    def member(self, key: str) -> Optional[Member]:
        for m in self.members:
            if m.key.value == key:
                return m
        return None

    def declared_type(self) -> Optional[Union[str, list[str]]]:
        """The "@type" value as written, when it is a string or list of strings."""
        m = self.member("@type")
        if m is None or m.value is None:
            return None
        if isinstance(m.value, ScalarNode):
            if m.value.token.kind is TokenKind.STRING and m.value.token.value:
                return m.value.token.value
            return None
        if isinstance(m.value, ArrayNode):
            names = [
                item.token.value for item in m.value.items
                if isinstance(item, ScalarNode) and item.token.kind is TokenKind.STRING and item.token.value
            ]
            return names or None
        return None


@dataclass
class ArrayNode:
    start: int
    end: int = -1
    items: list["Node"] = field(default_factory=list)

    @property
    def range(self) -> TextRange:
        return TextRange(start=self.start, end=self.end)


Node = Union[ObjectNode, ArrayNode, ScalarNode]

_SCALARS = (TokenKind.KEY, TokenKind.STRING, TokenKind.NUMBER, TokenKind.LITERAL)


class _TreeBuilder:
    """Builds the tree with an explicit stack of open containers; every step consumes or closes."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0
        self.eof = tokens[-1].end if tokens else 0
        self.stack: list[Union[ObjectNode, ArrayNode]] = []

    def peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def open(self) -> Union[ObjectNode, ArrayNode]:
        token = self.advance()
        node = ObjectNode(start=token.start) if token.kind is TokenKind.OPEN_BRACE else ArrayNode(start=token.start)
        self.stack.append(node)
        return node

    def close(self, end: int) -> None:
        self.stack.pop().end = end

    def value(self) -> Optional[Node]:
        """Start the value at the current token; containers are filled in by later steps."""
        token = self.peek()
        if token is None:
            return None
        if token.kind in (TokenKind.OPEN_BRACE, TokenKind.OPEN_BRACKET):
            return self.open()
        if token.kind in _SCALARS:
            return ScalarNode(self.advance())
        return None

    def build(self) -> Optional[Node]:
        root = self.value()
        while self.stack:
            token = self.peek()
            if token is None:
                self.close(self.eof)
            elif isinstance(self.stack[-1], ObjectNode):
                self.object_step(self.stack[-1], token)
            else:
                self.array_step(self.stack[-1], token)
        return root

    def object_step(self, node: ObjectNode, token: Token) -> None:
        if token.kind is TokenKind.CLOSE_BRACE:
            self.close(self.advance().end)
        elif token.kind is TokenKind.CLOSE_BRACKET:
            self.close(token.start)
        elif token.kind in (TokenKind.KEY, TokenKind.STRING):
            member = Member(key=self.advance())
            node.members.append(member)
            if self.peek() is not None and self.peek().kind is TokenKind.COLON:
                member.colon = self.advance()
                member.value = self.value()
        elif token.kind in (TokenKind.OPEN_BRACE, TokenKind.OPEN_BRACKET):
            # A container without a key is parsed and dropped
            self.open()
        else:
            self.advance()

    def array_step(self, node: ArrayNode, token: Token) -> None:
        if token.kind is TokenKind.CLOSE_BRACKET:
            self.close(self.advance().end)
        elif token.kind is TokenKind.CLOSE_BRACE:
            self.close(token.start)
        elif token.kind is TokenKind.COMMA:
            self.advance()
        else:
            item = self.value()
            if item is None:
                self.advance()
            else:
                node.items.append(item)


def parse_tree(tokens: list[Token]) -> Optional[Union[ObjectNode, ArrayNode]]:
    """Build the document's object tree; None when there is no top-level container."""
    root = _TreeBuilder(tokens).build()
    return root if isinstance(root, (ObjectNode, ArrayNode)) else None


def _children(node: Optional[Node]) -> list[Node]:
    """Direct child values of a container, in document order."""
    if isinstance(node, ObjectNode):
        return [m.value for m in node.members if m.value is not None]
    if isinstance(node, ArrayNode):
        return list(node.items)
    return []


def iter_objects(node: Optional[Node]) -> Iterator[ObjectNode]:
    """Every object in the tree, outermost first."""
    pending = [node]
    while pending:
        current = pending.pop()
        if isinstance(current, ObjectNode):
            yield current
        pending.extend(reversed(_children(current)))


def context_kind_of(declared: Optional[Union[str, list[str]]], inherited: DocumentKind) -> DocumentKind:
    """An object typed as a root kind switches the ontology context for its subtree."""
    names = [declared] if isinstance(declared, str) else (declared or [])
    for name in names:
        if name in ROOT_KINDS:
            return DocumentKind(name)
    return inherited


def resolve_object_type(
    node: Optional[ObjectNode],
    property_key: Optional[str],
    kind: DocumentKind,
    metamodel: MetaModel,
) -> Optional[Union[str, list[str]]]:
    """
    Resolve the type(s) of an object.

    An explicit "@type" wins. Otherwise the property holding the object decides
    when its range narrows to exactly one concrete type that is not a root kind.
    """
    declared = node.declared_type() if node is not None else None
    if declared:
        return declared
    if not property_key:
        return None
    resolver = metamodel.context(kind).resolver
    types = resolver.types_from_id(resolver.id_from_short_name(property_key))
    if len(types) == 1 and types[0] not in ROOT_KINDS:
        return types[0]
    return None
