"""In-memory cache of tokenized document snapshots."""

from dataclasses import dataclass
from typing import Optional

from models import Token
from parsers import tokenize


@dataclass(frozen=True)
class DocumentSnapshot:
    """One version of a document's text and its token stream."""
    uri: str
    text: str
    tokens: tuple[Token, ...]


class DocumentCache:
    """One snapshot per open document, replaced wholesale when the text changes."""

    def __init__(self):
        self._store: dict[str, DocumentSnapshot] = {}

    def get(self, uri: str) -> Optional[DocumentSnapshot]:
        return self._store.get(uri)

    def snapshot(self, uri: str, text: str) -> DocumentSnapshot:
        """Return the cached snapshot for this exact text, tokenizing on a miss."""
        cached = self.get(uri)
        if cached is not None and cached.text == text:
            return cached
        snapshot = DocumentSnapshot(uri=uri, text=text, tokens=tuple(tokenize(text)))
        self._store[uri] = snapshot
        return snapshot

    def delete(self, uri: str) -> None:
        self._store.pop(uri, None)


cache = DocumentCache()
