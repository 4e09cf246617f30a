"""Name, type and property resolution over one ontology graph."""

import logging
from typing import Optional, Union

from rdflib import RDFS, XSD

from models import TypedProperty
from ontology.graph import OntologyGraph

logger = logging.getLogger(__name__)


class OntologyResolver:
    """
    Resolves document short names against an OntologyGraph.

    Types are exchanged as short names (the strings documents carry in
    "@type"); full IRIs are accepted anywhere a short name is. Every lookup is
    total: a miss returns None or an empty list.
    """

    def __init__(self, graph: OntologyGraph):
        self.graph = graph

    def id_from_short_name(self, short_name: Optional[str]) -> Optional[str]:
        """Resolve a short name to its id; the first declared id wins on ambiguity."""
        if not short_name:
            return None
        if self.graph.contains(short_name):
            return short_name
        ids = self.graph.ids_for_short_name(short_name)
        if len(ids) > 1:
            logger.debug("Short name '%s' is ambiguous, using %s", short_name, ids[0])
        return ids[0] if ids else None

    def _is_class(self, id: str) -> bool:
        return str(RDFS.Class) in self.graph.types_of(id)

    def _concrete_types(self, type_id: str, seen: set[str]) -> list[str]:
        """Leaf subtypes of type_id in declaration order, or type_id itself."""
        if type_id in seen:
            return []
        seen.add(type_id)
        subtypes = self.graph.subtypes_of(type_id)
        if not subtypes:
            return [type_id]
        result: list[str] = []
        for subtype in subtypes:
            result.extend(self._concrete_types(subtype, seen))
        return result

    def _lineage(self, type_id: str) -> list[str]:
        """type_id followed by all of its supertypes, nearest first."""
        lineage = [type_id]
        for current in lineage:
            for parent in self.graph.supertypes_of(current):
                if parent not in lineage:
                    lineage.append(parent)
        return lineage

    def types_from_id(self, id: Optional[str]) -> list[str]:
        """
        Concrete types an id may take.

        For a property these are the concrete types of its range; for a class,
        the class's own concrete types. Datatype ranges contribute nothing.
        """
        if not id:
            return []
        ranges = self.graph.range_of(id)
        if ranges:
            targets = [r for r in ranges if not r.startswith(str(XSD))]
        elif self._is_class(id):
            targets = [id]
        else:
            return []

        seen: set[str] = set()
        names: list[str] = []
        for target in targets:
            for type_id in self._concrete_types(target, seen):
                name = self.graph.short_name_of(type_id)
                if name not in names:
                    names.append(name)
        return names

    def typed_properties_from_type(self, type_names: Union[str, list[str], None]) -> list[TypedProperty]:
        """
        Properties allowed on the given type(s), inherited ones included, in
        declaration order.

        With several types the property sets are merged: a label seen more than
        once keeps a single entry, required if any type requires it, with the
        first declared range type.
        """
        if not type_names:
            return []
        if isinstance(type_names, str):
            type_names = [type_names]

        merged: dict[str, TypedProperty] = {}
        for name in type_names:
            type_id = self.id_from_short_name(name)
            if type_id is None:
                continue
            lineage = self._lineage(type_id)
            property_ids = {p for ancestor in lineage for p in self.graph.properties_of(ancestor)}
            for property_id in sorted(property_ids, key=self.graph.rank):
                label = self.graph.short_name_of(property_id)
                required = any(self.graph.is_required(property_id, t) for t in lineage)
                ranges = self.graph.range_of(property_id)
                range_type = self.graph.short_name_of(ranges[0]) if ranges else None

                existing = merged.get(label)
                if existing is None:
                    merged[label] = TypedProperty(label=label, required=required, range_type=range_type)
                else:
                    merged[label] = TypedProperty(
                        label=label,
                        required=existing.required or required,
                        range_type=existing.range_type or range_type,
                    )
        return list(merged.values())

    def string_values_from_short_name(self, key: Optional[str]) -> list[str]:
        """Admissible literal values of the property named key."""
        property_id = self.id_from_short_name(key)
        if property_id is None:
            return []
        return self.graph.enum_values_of(property_id)

    def comment_from_id(self, id: Optional[str]) -> Optional[str]:
        if not id:
            return None
        return self.graph.comment_of(id)

    def is_known_type(self, name: Optional[str]) -> bool:
        type_id = self.id_from_short_name(name)
        return type_id is not None and self._is_class(type_id)
