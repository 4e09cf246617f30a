"""Hover text for the identifier under the cursor."""

from typing import Optional

from models import DocumentKind, Token
from ontology import MetaModel
from parsers import context_at, token_at, tokenize

RESERVED_HOVER_TEXT = {
    "@id": "An identifier for Digital Twin capability model or interface.",
    "@type": "The type of Digital Twin meta model object.",
    "@context": "The context for Digital Twin capability model or interface.",
    "@value": "The literal value of a Digital Twin meta model object.",
}


def hover(
    text: str,
    offset: int,
    document_kind: DocumentKind,
    metamodel: MetaModel,
    tokens: Optional[list[Token]] = None,
) -> Optional[str]:
    """Documentation for the key or string value at offset, if the ontology has any."""
    if tokens is None:
        tokens = tokenize(text)
    token = token_at(tokens, offset)
    if token is None or not token.is_string or not token.value:
        return None
    if token.value in RESERVED_HOVER_TEXT:
        return RESERVED_HOVER_TEXT[token.value]

    context = context_at(tokens, offset, document_kind, metamodel)
    resolver = metamodel.context(context.context_kind).resolver
    return resolver.comment_from_id(resolver.id_from_short_name(token.value))
