"""Cursor context: where in the document structure an offset sits."""

from dataclasses import dataclass
from typing import Optional, Union

from models import CursorContext, DocumentKind, TextRange, Token, TokenKind
from ontology import MetaModel
from parsers.structure import ObjectNode, context_kind_of, iter_objects, parse_tree, resolve_object_type


@dataclass
class _Frame:
    container: str
    start: int
    owner: Optional[Union[str, int]] = None
    property_key: Optional[str] = None
    pending_key: Optional[str] = None
    after_colon: bool = False
    index: int = 0


def token_at(tokens: list[Token], offset: int) -> Optional[Token]:
    """The token strictly containing offset; an open string also owns its end."""
    for token in tokens:
        if token.start >= offset:
            break
        if offset < token.end or (token.is_string and not token.closed and offset == token.end):
            return token
    return None


def token_range(tokens: list[Token], offset: int) -> TextRange:
    """Span a completion at offset replaces: the quoted string under the cursor, else nothing."""
    token = token_at(tokens, offset)
    if token is not None and token.is_string:
        return TextRange(start=token.start, end=token.end)
    return TextRange(start=offset, end=offset)


def _pop_until(frames: list[_Frame], container: str) -> None:
    for depth in range(len(frames) - 1, -1, -1):
        if frames[depth].container == container:
            del frames[depth:]
            return


def _open_frames(tokens: list[Token], offset: int, cursor_token: Optional[Token]) -> list[_Frame]:
    """Replay the tokens before offset, keeping the containers still open there."""
    frames: list[_Frame] = []
    for token in tokens:
        if token is cursor_token or token.start >= offset:
            break
        top = frames[-1] if frames else None
        kind = token.kind

        if kind in (TokenKind.OPEN_BRACE, TokenKind.OPEN_BRACKET):
            owner: Optional[Union[str, int]] = None
            property_key = None
            if top is not None and top.container == "object" and top.after_colon:
                owner = property_key = top.pending_key
            elif top is not None and top.container == "array":
                owner = top.index
                property_key = top.property_key
            container = "object" if kind is TokenKind.OPEN_BRACE else "array"
            frames.append(_Frame(container, token.start, owner, property_key))
        elif kind in (TokenKind.CLOSE_BRACE, TokenKind.CLOSE_BRACKET):
            _pop_until(frames, "object" if kind is TokenKind.CLOSE_BRACE else "array")
            if frames and frames[-1].container == "object":
                frames[-1].after_colon = False
        elif top is None:
            continue
        elif top.container == "object":
            if kind is TokenKind.KEY:
                top.pending_key = token.value
                top.after_colon = False
            elif kind is TokenKind.COLON:
                top.after_colon = True
            elif kind is TokenKind.STRING and not top.after_colon:
                # A key that follows a value without a comma
                top.pending_key = token.value
            elif kind in (TokenKind.STRING, TokenKind.NUMBER, TokenKind.LITERAL):
                # A complete value: the next thing typed is another key
                top.after_colon = False
            elif kind is TokenKind.COMMA:
                top.pending_key = None
                top.after_colon = False
        elif kind is TokenKind.COMMA:
            top.index += 1
    return frames


def context_at(
    tokens: list[Token],
    offset: int,
    document_kind: DocumentKind,
    metamodel: MetaModel,
) -> CursorContext:
    """
    Derive the CursorContext at offset.

    Works on any token stream, including syntactically broken documents; the
    result is best effort and never raises.
    """
    cursor_token = token_at(tokens, offset)
    frames = _open_frames(tokens, offset, cursor_token)
    if not frames:
        return CursorContext(offset=offset, context_kind=document_kind)

    objects = {node.start: node for node in iter_objects(parse_tree(tokens))}

    # Walk the open objects from the root inwards to follow context switches
    kind = document_kind
    resolved = None
    parent_property = None
    enclosing: Optional[ObjectNode] = None
    for frame in frames:
        if frame.container != "object":
            continue
        enclosing = objects.get(frame.start)
        declared = enclosing.declared_type() if enclosing is not None else None
        kind = context_kind_of(declared, kind)
        resolved = resolve_object_type(enclosing, frame.property_key, kind, metamodel)
        parent_property = frame.property_key

    top = frames[-1]
    if top.container == "object":
        is_value = top.after_colon
        current_key = top.pending_key if top.after_colon else None
    else:
        is_value = True
        current_key = top.property_key

    siblings = frozenset(
        m.key.value for m in (enclosing.members if enclosing is not None else [])
        if m.key is not cursor_token
    )

    return CursorContext(
        offset=offset,
        key_path=[f.owner for f in frames[1:] if f.owner is not None],
        is_value_position=is_value,
        current_key=current_key,
        sibling_properties=siblings,
        resolved_type=resolved,
        parent_property=parent_property,
        context_kind=kind,
        container=top.container,
    )
