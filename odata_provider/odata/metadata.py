"""
odata_provider.odata.metadata - OData $metadata parsing
========================================================

Builds the schema catalog: a case-insensitive mapping from resource name
to entity set, restricted to entity types with exactly one key property.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Tuple
import logging
import xml.etree.ElementTree as ET

from odata_provider.core.errors import SchemaError

logger = logging.getLogger("odata_provider.metadata")

# Conventional identity field name of the generic contract
IDENTITY_FIELD = "id"


@dataclass(frozen=True)
class EntityProperty:
    """A scalar property of an entity type."""
    name: str
    type: str


@dataclass(frozen=True)
class EntityType:
    """
    An entity type with a single scalar key.

    Attributes
    ----------
    name : str
        Unqualified type name
    namespace : str
        Schema namespace the type was declared in
    properties : tuple of EntityProperty
        Declared scalar properties, in document order
    key : EntityProperty
        The key property
    navigation_properties : tuple of str
        Names of declared navigation properties
    """
    name: str
    namespace: str
    properties: Tuple[EntityProperty, ...]
    key: EntityProperty
    navigation_properties: Tuple[str, ...] = ()

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}"

    def find_property(self, name: str) -> Optional[EntityProperty]:
        for p in self.properties:
            if p.name == name:
                return p
        return None


@dataclass(frozen=True)
class EntitySet:
    """An addressable resource: display name, URL segment and record shape."""
    name: str
    url_segment: str
    entity_type: EntityType


def _strip_ns(tag: str) -> str:
    """Strip XML namespace from a tag name."""
    return tag.split("}", 1)[-1] if "}" in tag else tag


def _children(node: ET.Element, local: str) -> Iterator[ET.Element]:
    for c in node:
        if _strip_ns(c.tag) == local:
            yield c


def _parse_entity_type(node: ET.Element, namespace: str) -> Optional[EntityType]:
    name = node.attrib.get("Name")
    if not name:
        return None

    props: List[EntityProperty] = []
    for p in _children(node, "Property"):
        pname = p.attrib.get("Name")
        if pname:
            props.append(EntityProperty(pname, p.attrib.get("Type", "Edm.String")))

    refs: List[str] = []
    for key in _children(node, "Key"):
        refs.extend(r.attrib.get("Name", "") for r in _children(key, "PropertyRef"))

    if len(refs) != 1:
        logger.debug("Skipping %s.%s: %d key properties", namespace, name, len(refs))
        return None

    key = next((p for p in props if p.name == refs[0]), None)
    if key is None:
        logger.debug("Skipping %s.%s: key %r is not a declared property", namespace, name, refs[0])
        return None

    navs = tuple(
        n.attrib["Name"] for n in _children(node, "NavigationProperty") if n.attrib.get("Name")
    )
    return EntityType(name, namespace, tuple(props), key, navs)


class SchemaCatalog(Mapping[str, EntitySet]):
    """
    Immutable, case-insensitive catalog of addressable entity sets.

    Keys are lower-cased resource names. Use ``get_set`` (or ``[]``) for
    lookups; both normalize the resource name first. ``get_set`` raises
    SchemaError for unknown resources, ``[]`` raises KeyError.

    Examples
    --------
    >>> catalog = SchemaCatalog.discover(xml_text)
    >>> catalog.get_set("Customers").url_segment
    'Customers'
    >>> catalog.get_set("customers").entity_type.key.name
    'CustomerID'
    """

    def __init__(self, entity_sets: Mapping[str, EntitySet]):
        self._sets: Dict[str, EntitySet] = {
            k.lower(): v for k, v in entity_sets.items()
        }

    @staticmethod
    def normalize(resource: str) -> str:
        return resource.strip().lower()

    @classmethod
    def discover(cls, xml_text: str) -> "SchemaCatalog":
        """
        Parse a CSDL $metadata document into a catalog.

        Entity types without a key, or with a compound key, are dropped,
        and so are entity sets referencing them.

        Raises
        ------
        SchemaError
            If the document is not well-formed XML
        """
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise SchemaError(f"Invalid $metadata document: {e}") from e

        types: Dict[str, EntityType] = {}
        containers: List[ET.Element] = []
        for schema in root.iter():
            if _strip_ns(schema.tag) != "Schema":
                continue
            namespace = schema.attrib.get("Namespace", "")
            alias = schema.attrib.get("Alias")
            for node in _children(schema, "EntityType"):
                et = _parse_entity_type(node, namespace)
                if et is None:
                    continue
                types[et.qualified_name] = et
                if alias:
                    types[f"{alias}.{et.name}"] = et
            containers.extend(_children(schema, "EntityContainer"))

        sets: Dict[str, EntitySet] = {}
        for container in containers:
            for node in _children(container, "EntitySet"):
                es_name = node.attrib.get("Name")
                et_full = node.attrib.get("EntityType", "")
                if not es_name:
                    continue
                et = types.get(et_full)
                if et is None:
                    logger.debug("Skipping entity set %s: unsupported type %s", es_name, et_full)
                    continue
                sets[es_name.lower()] = EntitySet(es_name, es_name, et)

        logger.info("Discovered %d entity sets (%d supported types)", len(sets), len(types))
        return cls(sets)

    # ---------------- lookups ----------------

    def get_set(self, resource: str) -> EntitySet:
        """
        Resolve a resource name to its entity set.

        Raises
        ------
        SchemaError
            If the resource is unknown or unsupported
        """
        es = self._sets.get(self.normalize(resource))
        if es is None:
            raise SchemaError(f"Unknown or unsupported resource: {resource}")
        return es

    def __getitem__(self, resource: str) -> EntitySet:
        return self._sets[self.normalize(resource)]

    def __contains__(self, resource: object) -> bool:
        return isinstance(resource, str) and self.normalize(resource) in self._sets

    def __iter__(self) -> Iterator[str]:
        return iter(self._sets)

    def __len__(self) -> int:
        return len(self._sets)

    def resources(self) -> List[str]:
        """Display names of all supported entity sets, in document order."""
        return [es.name for es in self._sets.values()]

    def key_map(self) -> Dict[str, str]:
        """Resources whose key property is not named ``id``, mapped to that key."""
        return {
            k: es.entity_type.key.name
            for k, es in self._sets.items()
            if es.entity_type.key.name != IDENTITY_FIELD
        }
