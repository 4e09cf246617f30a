"""
Per-document validation lifecycle.

Each open document moves through
    UNOPENED -> PENDING (debounced revalidation armed) -> VALIDATED -> CLOSED
and owns at most one pending revalidation task at any time.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from cache import DocumentCache
from diagnostics import DiagnosticCollection, validate
from models import Diagnostic, DocumentKind, Token
from ontology import MetaModel
from parsers import tokenize
from utils import classify_document

logger = logging.getLogger(__name__)


class DocumentState(str, Enum):
    UNOPENED = "unopened"
    PENDING = "pending"
    VALIDATED = "validated"
    CLOSED = "closed"


@dataclass
class _OpenDocument:
    kind: DocumentKind
    text: str
    state: DocumentState = DocumentState.PENDING
    task: Optional[asyncio.Task] = None
    validated_text: Optional[str] = None


class DocumentManager:
    """
    Tracks open metamodel documents and keeps their diagnostics current.

    Methods that schedule work must be called from the running event loop.
    Documents whose names are not metamodel files are ignored.
    """

    def __init__(
        self,
        metamodel: MetaModel,
        diagnostics: Optional[DiagnosticCollection] = None,
        cache: Optional[DocumentCache] = None,
        delay: float = 0.5,
    ):
        self.metamodel = metamodel
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollection()
        self.cache = cache if cache is not None else DocumentCache()
        self.delay = delay
        self._documents: dict[str, _OpenDocument] = {}
        self._closed: set[str] = set()

    def state(self, uri: str) -> DocumentState:
        document = self._documents.get(uri)
        if document is not None:
            return document.state
        return DocumentState.CLOSED if uri in self._closed else DocumentState.UNOPENED

    def validated_text(self, uri: str) -> Optional[str]:
        """Text the stored diagnostics of uri were computed from."""
        document = self._documents.get(uri)
        return document.validated_text if document is not None else None

    def tokens(self, uri: str, text: str) -> Sequence[Token]:
        """Tokens of text; only documents that are open keep a cached snapshot."""
        if uri in self._documents:
            return self.cache.snapshot(uri, text).tokens
        return tokenize(text)

    def is_pending(self, uri: str) -> bool:
        document = self._documents.get(uri)
        return document is not None and document.task is not None and not document.task.done()

    def _validate(self, uri: str) -> list[Diagnostic]:
        document = self._documents[uri]
        snapshot = self.cache.snapshot(uri, document.text)
        diagnostics = validate(snapshot.text, document.kind, self.metamodel, tokens=snapshot.tokens)
        self.diagnostics.set(uri, diagnostics)
        document.validated_text = snapshot.text
        document.state = DocumentState.VALIDATED
        logger.info("Validated %s: %d diagnostics", uri, len(diagnostics))
        return diagnostics

    def _cancel_pending(self, document: _OpenDocument) -> None:
        if document.task is not None and not document.task.done():
            document.task.cancel()
        document.task = None

    async def _revalidate_later(self, uri: str) -> None:
        await asyncio.sleep(self.delay)
        document = self._documents.get(uri)
        if document is None:
            return
        document.task = None
        self._validate(uri)

    def open(self, uri: str, text: str) -> list[Diagnostic]:
        """Start tracking a document and validate it immediately."""
        kind = classify_document(uri)
        if kind is None:
            logger.debug("Ignoring non-metamodel document %s", uri)
            return []
        existing = self._documents.get(uri)
        if existing is not None:
            self._cancel_pending(existing)
        self._closed.discard(uri)
        self._documents[uri] = _OpenDocument(kind=kind, text=text)
        return self._validate(uri)

    def change(self, uri: str, text: str) -> None:
        """Record an edit and re-arm the single debounced revalidation."""
        document = self._documents.get(uri)
        if document is None:
            if classify_document(uri) is None:
                return
            self.open(uri, text)
            return
        document.text = text
        self._cancel_pending(document)
        document.state = DocumentState.PENDING
        document.task = asyncio.get_running_loop().create_task(self._revalidate_later(uri))

    def activate(self, uri: str, text: Optional[str] = None) -> list[Diagnostic]:
        """The document became the active editor: revalidate now."""
        document = self._documents.get(uri)
        if document is None:
            return self.open(uri, text) if text is not None else []
        if text is not None:
            document.text = text
        self._cancel_pending(document)
        return self._validate(uri)

    def close(self, uri: str) -> None:
        """Forget a document: cancel pending work and drop its diagnostics."""
        document = self._documents.pop(uri, None)
        if document is not None:
            self._cancel_pending(document)
            self._closed.add(uri)
        self.diagnostics.delete(uri)
        self.cache.delete(uri)

    async def wait_pending(self, uri: str) -> None:
        """Wait until the document has no pending revalidation."""
        while True:
            document = self._documents.get(uri)
            if document is None or document.task is None or document.task.done():
                return
            await asyncio.wait({document.task})

    async def aclose(self) -> None:
        """Cancel every pending revalidation."""
        tasks = []
        for document in self._documents.values():
            if document.task is not None and not document.task.done():
                tasks.append(document.task)
                document.task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
