#!/usr/bin/env python3
"""
dt-mcp: The Digital Twin metamodel MCP server

Provides hover documentation, completions and diagnostics for Digital Twin
Interface (*.interface.json) and CapabilityModel (*.capabilitymodel.json)
documents, driven by the metamodel ontology graph.

Environment variables:
    METAMODEL_PATH: Metamodel triple file (default: bundled ontology/metamodel.json)
    DEBOUNCE_DELAY: Revalidation delay after an edit in seconds (default: 0.5)
    LOG_LEVEL: Logging level (default: INFO)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.shared.exceptions import McpError
from mcp.types import ErrorData

from cache import cache
from completion import complete as complete_at
from config import configure_logging, get_metamodel_path, settings
from hover import hover as hover_at
from models import DocumentKind, EditorCandidate, EditorDiagnostic, Position
from ontology import MetaModel, read_metamodel_async
from session import DocumentManager
from utils import classify_document, offset_at, to_editor_candidate, to_editor_diagnostic

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    metamodel: MetaModel
    documents: DocumentManager


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Load the metamodel once; no tool is served before it is available."""
    path = get_metamodel_path()
    metamodel = await read_metamodel_async(path)
    logger.info("Metamodel loaded from %s", path)
    documents = DocumentManager(metamodel, cache=cache, delay=settings.debounce_delay)
    try:
        yield AppContext(metamodel=metamodel, documents=documents)
    finally:
        await documents.aclose()


mcp = FastMCP(
    "dt-mcp",
    instructions="""Digital Twin metamodel MCP Server - Language intelligence for Interface and CapabilityModel JSON documents.

Tools:
- hover(uri, text, line, character) → Documentation of the key or value under the cursor
- complete(uri, text, line, character) → Completion candidates with the range they replace
- validate(uri, text) → Diagnostics for the whole document
- open_document / change_document / activate_document / close_document → Document lifecycle
- list_diagnostics(uri) / clear_diagnostics(uri) → Stored diagnostics of a document""",
    lifespan=lifespan,
)


# --- Helper Functions ---


def _app(ctx: Context) -> AppContext:
    return ctx.request_context.lifespan_context


def _document_kind(uri: str) -> DocumentKind:
    """Classify a document or reject it as invalid params."""
    kind = classify_document(uri)
    if kind is None:
        raise McpError(
            ErrorData(
                code=-32602,
                message=f"'{uri}' is not a metamodel document. Expected *.interface.json or *.capabilitymodel.json",
            )
        )
    return kind


def _diagnostics_for(text: str, diagnostics) -> list[EditorDiagnostic]:
    return [to_editor_diagnostic(text, d) for d in diagnostics]


# --- Tools ---


@mcp.tool()
async def hover(uri: str, text: str, line: int, character: int, ctx: Context) -> str:
    """
    Get documentation for the key or string value at a position.

    Args:
        uri: Document URI or path (e.g., 'file:///work/thermostat.interface.json')
        text: Full document text
        line: Zero-based line of the cursor
        character: Zero-based character of the cursor

    Returns:
        Documentation text, or an empty string when nothing is known.
    """
    kind = _document_kind(uri)
    app = _app(ctx)
    tokens = app.documents.tokens(uri, text)
    offset = offset_at(text, Position(line=line, character=character))
    return hover_at(text, offset, kind, app.metamodel, tokens=tokens) or ""


@mcp.tool()
async def complete(uri: str, text: str, line: int, character: int, ctx: Context) -> list[EditorCandidate]:
    """
    Get completion candidates at a position.

    Args:
        uri: Document URI or path
        text: Full document text
        line: Zero-based line of the cursor
        character: Zero-based character of the cursor

    Returns:
        Candidates in ontology declaration order, each with the range it replaces.
    """
    kind = _document_kind(uri)
    app = _app(ctx)
    tokens = app.documents.tokens(uri, text)
    offset = offset_at(text, Position(line=line, character=character))
    items = complete_at(text, offset, kind, app.metamodel, tokens=tokens)
    return [to_editor_candidate(text, item) for item in items]


@mcp.tool()
async def validate(uri: str, text: str, ctx: Context) -> list[EditorDiagnostic]:
    """
    Validate a document and store its diagnostics.

    Args:
        uri: Document URI or path
        text: Full document text

    Returns:
        All diagnostics of the document.
    """
    _document_kind(uri)
    documents = _app(ctx).documents
    return _diagnostics_for(text, documents.activate(uri, text))


@mcp.tool()
async def open_document(uri: str, text: str, ctx: Context) -> list[EditorDiagnostic]:
    """
    Start tracking a document; it is validated immediately.

    Args:
        uri: Document URI or path
        text: Full document text
    """
    _document_kind(uri)
    return _diagnostics_for(text, _app(ctx).documents.open(uri, text))


@mcp.tool()
async def change_document(uri: str, text: str, ctx: Context) -> str:
    """
    Report an edit; revalidation runs once edits pause for DEBOUNCE_DELAY seconds.

    Args:
        uri: Document URI or path
        text: Full document text after the edit
    """
    _document_kind(uri)
    documents = _app(ctx).documents
    documents.change(uri, text)
    return f"Revalidation of {uri} scheduled in {documents.delay}s"


@mcp.tool()
async def activate_document(uri: str, ctx: Context, text: Optional[str] = None) -> list[EditorDiagnostic]:
    """
    Report that a document became the active editor; it is revalidated now.

    Args:
        uri: Document URI or path
        text: Full document text, required if the document was not opened before
    """
    if classify_document(uri) is None:
        return []
    documents = _app(ctx).documents
    diagnostics = documents.activate(uri, text)
    return _diagnostics_for(documents.validated_text(uri) or "", diagnostics)


@mcp.tool()
async def close_document(uri: str, ctx: Context) -> str:
    """
    Stop tracking a document and drop its diagnostics.

    Args:
        uri: Document URI or path
    """
    _app(ctx).documents.close(uri)
    return f"Closed {uri}"


@mcp.tool()
async def list_diagnostics(uri: str, ctx: Context) -> list[EditorDiagnostic]:
    """
    Get the stored diagnostics of a document (empty for closed or unknown documents).

    Args:
        uri: Document URI or path
    """
    documents = _app(ctx).documents
    text = documents.validated_text(uri)
    if text is None:
        return []
    return _diagnostics_for(text, documents.diagnostics.get(uri))


@mcp.tool()
async def clear_diagnostics(uri: str, ctx: Context) -> str:
    """
    Drop the stored diagnostics of a document without closing it.

    Args:
        uri: Document URI or path
    """
    _app(ctx).documents.diagnostics.delete(uri)
    return f"Cleared diagnostics for {uri}"


def run() -> None:
    configure_logging()
    mcp.run()


if __name__ == "__main__":
    run()
