"""
Utilities shared by the MCP tools: document classification and offset/position mapping.
"""

import re
from typing import Optional
from urllib.parse import unquote, urlparse

from models import (
    CandidateItem,
    Diagnostic,
    DocumentKind,
    EditorCandidate,
    EditorDiagnostic,
    EditorRange,
    Position,
    TextRange,
)

# Files the metamodel tooling understands
METAMODEL_FILE_PATTERN = re.compile(r"\.(interface|capabilitymodel)\.json$", re.IGNORECASE)


def uri_to_path(uri: str) -> str:
    """Strip a file:// scheme so classification works on URIs and plain paths alike."""
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return uri


def classify_document(uri: str) -> Optional[DocumentKind]:
    """
    Document kind from the file name suffix.

    '*.interface.json' is an Interface, any other metamodel file is a
    CapabilityModel; everything else is not a metamodel document.
    """
    path = uri_to_path(uri)
    match = METAMODEL_FILE_PATTERN.search(path)
    if not match:
        return None
    if match.group(1).lower() == "interface":
        return DocumentKind.INTERFACE
    return DocumentKind.CAPABILITY_MODEL


def offset_at(text: str, position: Position) -> int:
    """Offset of a zero-based line/character position, clamped to the text."""
    lines = text.splitlines(keepends=True)
    if position.line < 0:
        return 0
    if position.line >= len(lines):
        return len(text)
    offset = sum(len(line) for line in lines[:position.line])
    line = lines[position.line].rstrip("\r\n")
    return offset + max(0, min(position.character, len(line)))


def position_at(text: str, offset: int) -> Position:
    """Zero-based line/character position of an offset, clamped to the text."""
    offset = max(0, min(offset, len(text)))
    before = text[:offset]
    line = before.count("\n")
    character = offset - (before.rfind("\n") + 1)
    return Position(line=line, character=character)


def to_editor_range(text: str, range: TextRange) -> EditorRange:
    return EditorRange(start=position_at(text, range.start), end=position_at(text, range.end))


def to_editor_candidate(text: str, item: CandidateItem) -> EditorCandidate:
    return EditorCandidate(
        label=item.label,
        insert_text=item.insert_text,
        range=to_editor_range(text, item.insert_range),
        kind=item.kind,
        required=item.required,
        range_type=item.range_type,
    )


def to_editor_diagnostic(text: str, diagnostic: Diagnostic) -> EditorDiagnostic:
    return EditorDiagnostic(
        range=to_editor_range(text, diagnostic.range),
        message=diagnostic.message,
        code=diagnostic.code,
        severity=diagnostic.severity,
        property_name=diagnostic.property_name,
    )
