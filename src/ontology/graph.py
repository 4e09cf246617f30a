"""Ontology graph backed by rdflib, with declaration order preserved."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from rdflib import RDF, RDFS, XSD, Graph, Literal, Namespace, URIRef
from rdflib.term import Node

logger = logging.getLogger(__name__)

DTMM = Namespace("http://azureiot.com/v0/metamodel#")

# Standard namespace prefixes usable in triple records
NAMESPACES = {
    "xsd": str(XSD),
    "rdf": str(RDF),
    "rdfs": str(RDFS),
    "dtmm": str(DTMM),
}

# Predicates whose object must be declared in the same graph
_REFERENCE_PREDICATES = (RDFS.subClassOf, RDFS.domain, DTMM.requiredBy)


class GraphLoadError(Exception):
    """Raised when ontology triples are missing or malformed."""


def _local_name(uri: str) -> str:
    """Extract the local name from a URI (after # or last /)."""
    return uri.split("#")[-1] if "#" in uri else uri.rstrip("/").split("/")[-1]


def _expand(term: str, namespaces: Mapping[str, str]) -> str:
    """Expand a CURIE such as 'rdfs:range' against the known prefixes."""
    if "://" in term or term.startswith("urn:"):
        return term
    prefix, sep, local = term.partition(":")
    if not sep:
        raise GraphLoadError(f"Term '{term}' is neither an IRI nor a CURIE")
    if prefix not in namespaces:
        raise GraphLoadError(f"Unknown prefix '{prefix}' in '{term}'")
    return namespaces[prefix] + local


def _record_fields(record: Any) -> tuple[Any, Any, Any]:
    """Accept {subject, predicate, object} mappings or [s, p, o] sequences."""
    if isinstance(record, Mapping):
        fields = (record.get("subject"), record.get("predicate"), record.get("object"))
    elif isinstance(record, (list, tuple)) and len(record) == 3:
        fields = tuple(record)
    else:
        raise GraphLoadError(f"Malformed triple record: {record!r}")
    if any(field is None or field == "" for field in fields):
        raise GraphLoadError(f"Triple record is missing a subject, predicate or object: {record!r}")
    return fields


class OntologyGraph:
    """
    Read-only triple store for one metamodel context.

    All queries are total: unknown identifiers give empty results, never errors.
    Results are ordered by first appearance in the triple source.
    """

    def __init__(self, graph: Graph, ranks: dict[tuple[Node, Node, Node], int]):
        self._graph = graph
        self._ranks = ranks
        self._subject_ranks: dict[URIRef, int] = {}
        for (s, _, _), rank in sorted(ranks.items(), key=lambda item: item[1]):
            self._subject_ranks.setdefault(s, rank)
        self._short_names: dict[str, list[str]] = {}
        for subject in self._subject_ranks:
            self._short_names.setdefault(_local_name(str(subject)), []).append(str(subject))

    @classmethod
    def load(
        cls,
        triple_source: Iterable[Any],
        namespaces: Optional[Mapping[str, str]] = None,
    ) -> "OntologyGraph":
        """Build a graph from subject/predicate/object records."""
        prefixes = {**NAMESPACES, **(namespaces or {})}
        graph = Graph()
        for prefix, ns in prefixes.items():
            graph.bind(prefix, ns)

        ranks: dict[tuple[Node, Node, Node], int] = {}
        for record in triple_source:
            s, p, o = _record_fields(record)
            subject = URIRef(_expand(str(s), prefixes))
            predicate = URIRef(_expand(str(p), prefixes))
            if isinstance(o, Mapping):
                if "@value" not in o:
                    raise GraphLoadError(f"Literal object without '@value': {record!r}")
                obj: Node = Literal(o["@value"])
            else:
                obj = URIRef(_expand(str(o), prefixes))
            triple = (subject, predicate, obj)
            if triple not in ranks:
                ranks[triple] = len(ranks)
                graph.add(triple)

        if not ranks:
            raise GraphLoadError("Triple source is empty")

        _check_references(graph)
        logger.debug("Loaded %d triples", len(ranks))
        return cls(graph, ranks)

    def __len__(self) -> int:
        return len(self._graph)

    # --- Ordering helpers ---

    def _ordered_objects(self, subject: Optional[Node], predicate: Node) -> list[Node]:
        triples = sorted(self._graph.triples((subject, predicate, None)), key=self._ranks.__getitem__)
        return [o for _, _, o in triples]

    def _ordered_subjects(self, predicate: Node, obj: Node) -> list[Node]:
        triples = sorted(self._graph.triples((None, predicate, obj)), key=self._ranks.__getitem__)
        return [s for s, _, _ in triples]

    def rank(self, id: str) -> int:
        """Declaration position of a subject; unknown ids sort last."""
        return self._subject_ranks.get(URIRef(id), len(self._ranks))

    # --- Lookup primitives ---

    def subjects(self) -> list[str]:
        """All declared subjects in declaration order."""
        return [str(s) for s in self._subject_ranks]

    def contains(self, id: str) -> bool:
        return URIRef(id) in self._subject_ranks

    def short_name_of(self, id: str) -> str:
        return _local_name(id)

    def ids_for_short_name(self, short_name: str) -> list[str]:
        """Every subject whose local name equals short_name, first declared first."""
        return list(self._short_names.get(short_name, []))

    def types_of(self, id: str) -> list[str]:
        """Declared rdf:type values of an id."""
        return [str(o) for o in self._ordered_objects(URIRef(id), RDF.type)]

    def supertypes_of(self, type_id: str) -> list[str]:
        return [str(o) for o in self._ordered_objects(URIRef(type_id), RDFS.subClassOf)]

    def subtypes_of(self, type_id: str) -> list[str]:
        return [str(s) for s in self._ordered_subjects(RDFS.subClassOf, URIRef(type_id))]

    def properties_of(self, type_id: str) -> list[str]:
        """Properties whose domain is exactly type_id (no inheritance)."""
        return [str(s) for s in self._ordered_subjects(RDFS.domain, URIRef(type_id))]

    def range_of(self, property_id: str) -> list[str]:
        return [str(o) for o in self._ordered_objects(URIRef(property_id), RDFS.range)]

    def is_required(self, property_id: str, type_id: str) -> bool:
        return (URIRef(property_id), DTMM.requiredBy, URIRef(type_id)) in self._graph

    def enum_values_of(self, property_id: str) -> list[str]:
        return [str(o) for o in self._ordered_objects(URIRef(property_id), DTMM.enumValue)]

    def comment_of(self, id: str) -> Optional[str]:
        comments = self._ordered_objects(URIRef(id), RDFS.comment)
        return str(comments[0]) if comments else None


def _check_references(graph: Graph) -> None:
    """Reject references to subjects the graph never declares."""
    declared = set(graph.subjects())
    for predicate in _REFERENCE_PREDICATES:
        for s, _, o in graph.triples((None, predicate, None)):
            if o not in declared:
                raise GraphLoadError(f"Dangling reference: {s} {predicate} {o}")
    for s, _, o in graph.triples((None, RDFS.range, None)):
        if o not in declared and not str(o).startswith(str(XSD)):
            raise GraphLoadError(f"Dangling range: {s} rdfs:range {o}")
    for s, _, _ in graph.triples((None, DTMM.requiredBy, None)):
        if (s, RDFS.domain, None) not in graph:
            raise GraphLoadError(f"Required property {s} has no rdfs:domain")
