"""Completion candidates for a cursor position in a metamodel document."""

import json
import logging
from typing import Optional

from models import (
    ROOT_KINDS,
    CandidateItem,
    CandidateKind,
    CursorContext,
    DocumentKind,
    TextRange,
    Token,
    TypedProperty,
)
from ontology import MetaModel
from parsers import context_at, token_range, tokenize

logger = logging.getLogger(__name__)


def value_candidates(context: CursorContext, metamodel: MetaModel) -> list[str]:
    """Literal values admissible for the key the cursor is the value of."""
    ontology = metamodel.context(context.context_kind)
    resolver = ontology.resolver
    key = context.current_key

    if key == "@context":
        return [ontology.context_uri]
    if key == "@type":
        if not context.parent_property:
            # Context kind first, then the other root kind
            others = [k.value for k in DocumentKind if k is not context.context_kind]
            return [context.context_kind.value] + others
        return resolver.types_from_id(resolver.id_from_short_name(context.parent_property))
    return resolver.string_values_from_short_name(key)


def property_candidates(context: CursorContext, metamodel: MetaModel) -> list[TypedProperty]:
    """Keys that may still be added to the enclosing object."""
    types = context.resolved_types
    present = context.sibling_properties
    if not types:
        return [] if "@type" in present else [TypedProperty(label="@type", required=True)]

    resolver = metamodel.context(context.context_kind).resolver
    is_root = any(t in ROOT_KINDS for t in types)

    result: list[TypedProperty] = []
    if is_root and "@context" not in present:
        result.append(TypedProperty(label="@context", required=True))
    result.extend(p for p in resolver.typed_properties_from_type(types) if p.label not in present)
    if is_root and "@id" not in present:
        result.append(TypedProperty(label="@id", required=True, range_type="string"))
    return result


def _dedup(items: list[CandidateItem]) -> list[CandidateItem]:
    seen: set[str] = set()
    unique = []
    for item in items:
        if item.label not in seen:
            seen.add(item.label)
            unique.append(item)
    return unique


def complete(
    text: str,
    offset: int,
    document_kind: DocumentKind,
    metamodel: MetaModel,
    tokens: Optional[list[Token]] = None,
) -> list[CandidateItem]:
    """
    Completion candidates at offset.

    Candidates come in graph declaration order, deduplicated by label. Each one
    replaces the quoted string under the cursor (or inserts at the cursor).
    An empty list means there is nothing to suggest.
    """
    if tokens is None:
        tokens = tokenize(text)
    context = context_at(tokens, offset, document_kind, metamodel)
    if context.container is None:
        return []
    insert_range: TextRange = token_range(tokens, offset)

    if context.is_value_position:
        items = [
            CandidateItem(
                label=value,
                insert_text=json.dumps(value),
                insert_range=insert_range,
                kind=CandidateKind.VALUE,
            )
            for value in value_candidates(context, metamodel)
        ]
    else:
        items = [
            CandidateItem(
                label=prop.label,
                insert_text=json.dumps(prop.label),
                insert_range=insert_range,
                kind=CandidateKind.PROPERTY,
                required=prop.required,
                range_type=prop.range_type,
            )
            for prop in property_candidates(context, metamodel)
        ]

    logger.debug("%d candidates at offset %d (key path %s)", len(items), offset, context.key_path)
    return _dedup(items)
