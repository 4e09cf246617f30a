"""Loose JSON tokenizer that tolerates documents in the middle of an edit."""

import json
import re

from models import Token, TokenKind

_WHITESPACE = re.compile(r"\s+")
_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_WORD = re.compile(r"[A-Za-z_$][\w$]*")

_PUNCTUATION = {
    "{": TokenKind.OPEN_BRACE,
    "}": TokenKind.CLOSE_BRACE,
    "[": TokenKind.OPEN_BRACKET,
    "]": TokenKind.CLOSE_BRACKET,
    ":": TokenKind.COLON,
    ",": TokenKind.COMMA,
}

_LITERALS = {"true", "false", "null"}


def _scan_string(text: str, start: int) -> tuple[int, bool]:
    """Return (end, closed) for the string starting at text[start] == '"'.

    An unterminated string stops at the line break (or end of text).
    """
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i + 1, True
        if ch in "\r\n":
            return i, False
        i += 1
    return n, False


def _decode(raw: str, closed: bool) -> str:
    inner = raw[1:-1] if closed else raw[1:]
    try:
        return json.loads(f'"{inner}"')
    except json.JSONDecodeError:
        return inner


def _pop_until(stack: list[list], kind: str) -> None:
    """Pop up to and including the nearest frame of this kind, if any."""
    for depth in range(len(stack) - 1, -1, -1):
        if stack[depth][0] == kind:
            del stack[depth:]
            return


def tokenize(text: str) -> list[Token]:
    """
    Split JSON text into tokens with offsets.

    Strings in key slots of an object become KEY tokens, all other strings are
    STRING tokens. Unmatched closers, trailing commas and unknown characters
    never stop tokenization.
    """
    tokens: list[Token] = []
    # Each frame is [container, expecting_key]
    stack: list[list] = []
    i = 0
    n = len(text)

    while i < n:
        ws = _WHITESPACE.match(text, i)
        if ws:
            i = ws.end()
            continue

        ch = text[i]
        top = stack[-1] if stack else None

        if ch in _PUNCTUATION:
            kind = _PUNCTUATION[ch]
            tokens.append(Token(kind=kind, start=i, end=i + 1, text=ch))
            if kind is TokenKind.OPEN_BRACE:
                stack.append(["object", True])
            elif kind is TokenKind.OPEN_BRACKET:
                stack.append(["array", False])
            elif kind is TokenKind.CLOSE_BRACE:
                _pop_until(stack, "object")
            elif kind is TokenKind.CLOSE_BRACKET:
                _pop_until(stack, "array")
            elif top is not None and top[0] == "object":
                top[1] = kind is TokenKind.COMMA
            i += 1
            continue

        if ch == '"':
            end, closed = _scan_string(text, i)
            raw = text[i:end]
            is_key = top is not None and top[0] == "object" and top[1]
            tokens.append(Token(
                kind=TokenKind.KEY if is_key else TokenKind.STRING,
                start=i,
                end=end,
                text=raw,
                value=_decode(raw, closed),
                closed=closed,
            ))
            i = end
            continue

        number = _NUMBER.match(text, i)
        if number:
            tokens.append(Token(kind=TokenKind.NUMBER, start=i, end=number.end(), text=number.group()))
            i = number.end()
            continue

        word = _WORD.match(text, i)
        if word:
            kind = TokenKind.LITERAL if word.group() in _LITERALS else TokenKind.INVALID
            tokens.append(Token(kind=kind, start=i, end=word.end(), text=word.group()))
            i = word.end()
            continue

        tokens.append(Token(kind=TokenKind.INVALID, start=i, end=i + 1, text=ch))
        i += 1

    return tokens
