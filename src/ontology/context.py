"""Ontology contexts for the two metamodel document kinds."""

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from models import DocumentKind
from ontology.graph import GraphLoadError, OntologyGraph
from ontology.resolver import OntologyResolver

logger = logging.getLogger(__name__)

CONTEXT_URIS = {
    DocumentKind.INTERFACE: "http://azureiot.com/v0/contexts/Interface.json",
    DocumentKind.CAPABILITY_MODEL: "http://azureiot.com/v0/contexts/CapabilityModel.json",
}


class MetaModelNotFoundError(GraphLoadError):
    """Raised when the metamodel file does not exist."""


@dataclass(frozen=True)
class OntologyContext:
    """One document kind's graph, resolver and fixed @context URI."""

    kind: DocumentKind
    context_uri: str
    graph: OntologyGraph
    resolver: OntologyResolver = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "resolver", OntologyResolver(self.graph))


@dataclass(frozen=True)
class MetaModel:
    """Both ontology contexts; built once and shared read-only."""

    interface: OntologyContext
    capability_model: OntologyContext

    def context(self, kind: DocumentKind) -> OntologyContext:
        if kind is DocumentKind.INTERFACE:
            return self.interface
        return self.capability_model


def load_metamodel(data: Mapping[str, Any]) -> MetaModel:
    """
    Build a MetaModel from an in-memory triple source.

    Expected shape:
        {
            "namespaces": {"dt": "http://..."},
            "contexts": {
                "Interface": {"triples": [[s, p, o], ...]},
                "CapabilityModel": {"triples": [...]}
            }
        }
    """
    if not isinstance(data, Mapping):
        raise GraphLoadError("Metamodel source must be a JSON object")
    namespaces = data.get("namespaces") or {}
    contexts = data.get("contexts")
    if not isinstance(contexts, Mapping):
        raise GraphLoadError("Metamodel source has no 'contexts' object")

    loaded = {}
    for kind in DocumentKind:
        entry = contexts.get(kind.value)
        if not isinstance(entry, Mapping) or "triples" not in entry:
            raise GraphLoadError(f"Metamodel source has no triples for {kind.value}")
        try:
            graph = OntologyGraph.load(entry["triples"], namespaces)
        except GraphLoadError as e:
            raise GraphLoadError(f"{kind.value}: {e}") from e
        loaded[kind] = OntologyContext(kind=kind, context_uri=CONTEXT_URIS[kind], graph=graph)
        logger.info("Loaded %s ontology with %d triples", kind.value, len(graph))

    return MetaModel(
        interface=loaded[DocumentKind.INTERFACE],
        capability_model=loaded[DocumentKind.CAPABILITY_MODEL],
    )


def read_metamodel(path: Path) -> MetaModel:
    """Load a MetaModel from a JSON file."""
    if not path.exists():
        raise MetaModelNotFoundError(f"Metamodel file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise GraphLoadError(f"Invalid JSON in {path}: {e}") from e
    return load_metamodel(data)


async def read_metamodel_async(path: Path) -> MetaModel:
    """Load a MetaModel without blocking the event loop."""
    return await asyncio.to_thread(read_metamodel, path)
