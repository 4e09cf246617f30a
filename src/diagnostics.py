"""Schema validation of metamodel documents and the per-document diagnostic store."""

import logging
from typing import Optional

from models import (
    ROOT_KINDS,
    Diagnostic,
    DiagnosticCode,
    DocumentKind,
    Severity,
    TextRange,
    Token,
    TokenKind,
)
from ontology import MetaModel
from parsers import (
    ArrayNode,
    ObjectNode,
    ScalarNode,
    context_kind_of,
    parse_tree,
    resolve_object_type,
    tokenize,
)

logger = logging.getLogger(__name__)

RESERVED_KEYS = frozenset({"@id", "@type", "@context", "@value"})

# Keys every root document object must carry, beyond what the graph declares
ROOT_REQUIRED_KEYS = ("@context", "@id", "@type")


def _key_range(token: Token) -> TextRange:
    return TextRange(start=token.start, end=token.end)


class _Validator:
    def __init__(self, metamodel: MetaModel):
        self.metamodel = metamodel
        self.diagnostics: list[Diagnostic] = []

    def report(self, code: DiagnosticCode, range: TextRange, message: str, property_name: Optional[str] = None):
        self.diagnostics.append(
            Diagnostic(range=range, message=message, code=code, severity=Severity.ERROR, property_name=property_name)
        )

    def walk(self, root, document_kind: DocumentKind) -> None:
        """Check every object, outermost first, without recursing per nesting level."""
        pending = [(root, None, document_kind)]
        while pending:
            node, property_key, kind = pending.pop()
            if isinstance(node, ArrayNode):
                pending.extend((item, property_key, kind) for item in reversed(node.items))
            elif isinstance(node, ObjectNode):
                kind = context_kind_of(node.declared_type(), kind)
                resolved = resolve_object_type(node, property_key, kind, self.metamodel)
                if resolved is None and node is root:
                    # The file name decides the type of an untyped document root
                    resolved = kind.value
                self.check_object(node, resolved, kind)
                pending.extend((m.value, m.key.value, kind) for m in reversed(node.members))

    def check_object(self, node: ObjectNode, resolved, kind: DocumentKind) -> None:
        seen: set[str] = set()
        for m in node.members:
            if m.key.value in seen:
                self.report(
                    DiagnosticCode.DUPLICATE_PROPERTY,
                    _key_range(m.key),
                    f"Duplicate property '{m.key.value}'.",
                    m.key.value,
                )
            seen.add(m.key.value)

        if not resolved:
            return
        ontology = self.metamodel.context(kind)
        resolver = ontology.resolver
        names = [resolved] if isinstance(resolved, str) else list(resolved)

        type_member = node.member("@type")
        known = []
        for name in names:
            if resolver.is_known_type(name):
                known.append(name)
            elif type_member is not None and type_member.value is not None:
                self.report(
                    DiagnosticCode.UNKNOWN_TYPE,
                    type_member.value.range,
                    f"Unknown type '{name}'.",
                    "@type",
                )
        if not known:
            return

        type_label = ", ".join(known)
        properties = resolver.typed_properties_from_type(known)
        allowed = {p.label for p in properties}
        is_root = any(name in ROOT_KINDS for name in known)

        for m in node.members:
            label = m.key.value
            if label in RESERVED_KEYS:
                continue
            if label not in allowed:
                self.report(
                    DiagnosticCode.UNKNOWN_PROPERTY,
                    _key_range(m.key),
                    f"Property '{label}' is not allowed on {type_label}.",
                    label,
                )
                continue
            self.check_value(m.value, resolver.string_values_from_short_name(label), label)

        context_member = node.member("@context")
        if is_root and context_member is not None:
            self.check_value(context_member.value, [ontology.context_uri], "@context")

        required = [p.label for p in properties if p.required]
        if is_root:
            required = list(ROOT_REQUIRED_KEYS) + required
        for label in required:
            if label not in seen:
                self.report(
                    DiagnosticCode.MISSING_REQUIRED_PROPERTY,
                    node.range,
                    f"Missing required property '{label}' on {type_label}.",
                    label,
                )

    def check_value(self, value, admissible: list[str], label: str) -> None:
        if not admissible or not isinstance(value, ScalarNode):
            return
        if value.token.kind is TokenKind.STRING and value.token.value not in admissible:
            self.report(
                DiagnosticCode.INVALID_VALUE,
                value.range,
                f"Invalid value '{value.token.value}' for '{label}'. Allowed: {', '.join(admissible)}",
                label,
            )


def validate(
    text: str,
    document_kind: DocumentKind,
    metamodel: MetaModel,
    tokens: Optional[list[Token]] = None,
) -> list[Diagnostic]:
    """All diagnostics for the document, in document order of the objects."""
    if tokens is None:
        tokens = tokenize(text)
    validator = _Validator(metamodel)
    validator.walk(parse_tree(tokens), document_kind)
    logger.debug("Validated %s document: %d diagnostics", document_kind.value, len(validator.diagnostics))
    return validator.diagnostics


class DiagnosticCollection:
    """Diagnostic sets keyed by document id, each replaced as a whole."""

    def __init__(self):
        self._store: dict[str, tuple[Diagnostic, ...]] = {}

    def set(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        self._store[uri] = tuple(diagnostics)

    def get(self, uri: str) -> list[Diagnostic]:
        return list(self._store.get(uri, ()))

    def delete(self, uri: str) -> None:
        self._store.pop(uri, None)
