"""Ontology graph, resolver and contexts for Digital Twin metamodel documents."""

from ontology.context import (
    CONTEXT_URIS,
    MetaModel,
    MetaModelNotFoundError,
    OntologyContext,
    load_metamodel,
    read_metamodel,
    read_metamodel_async,
)
from ontology.graph import DTMM, NAMESPACES, GraphLoadError, OntologyGraph
from ontology.resolver import OntologyResolver

__all__ = [
    # Graph
    "DTMM",
    "NAMESPACES",
    "GraphLoadError",
    "OntologyGraph",
    # Resolution
    "OntologyResolver",
    # Contexts
    "CONTEXT_URIS",
    "MetaModel",
    "MetaModelNotFoundError",
    "OntologyContext",
    "load_metamodel",
    "read_metamodel",
    "read_metamodel_async",
]
