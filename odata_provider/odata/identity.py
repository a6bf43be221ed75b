"""
odata_provider.odata.identity - Identity field aliasing
========================================================

The generic contract addresses every record through an ``id`` field.
Resources whose key property has another name (``CustomerID``) get that
value copied into ``id`` on the way out, and the synthetic ``id`` removed
from write bodies on the way in.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from odata_provider.odata.metadata import IDENTITY_FIELD, SchemaCatalog


class IdentityFieldMapper:
    """
    Rewrites the identity field at the provider boundary.

    Parameters
    ----------
    key_map : mapping
        Lower-cased resource name -> real key property name, only for
        resources whose key is not ``id``

    Examples
    --------
    >>> m = IdentityFieldMapper({"customers": "CustomerID"})
    >>> m.to_caller("Customers", {"CustomerID": "ALFKI"})
    {'CustomerID': 'ALFKI', 'id': 'ALFKI'}
    """

    def __init__(self, key_map: Mapping[str, str]) -> None:
        self.key_map = MappingProxyType({k.lower(): v for k, v in key_map.items()})

    @classmethod
    def from_catalog(cls, catalog: SchemaCatalog) -> "IdentityFieldMapper":
        return cls(catalog.key_map())

    def key_for(self, resource: str) -> Optional[str]:
        return self.key_map.get(SchemaCatalog.normalize(resource))

    def to_caller(self, resource: str, record: Dict[str, Any]) -> Dict[str, Any]:
        key = self.key_for(resource)
        if key is None or not isinstance(record, dict) or key not in record:
            return record
        out = dict(record)
        out[IDENTITY_FIELD] = record[key]
        return out

    def many_to_caller(self, resource: str, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [self.to_caller(resource, r) for r in records]

    def to_server(self, resource: str, data: Dict[str, Any]) -> Dict[str, Any]:
        key = self.key_for(resource)
        if key is None or IDENTITY_FIELD not in data:
            return data
        return {k: v for k, v in data.items() if k != IDENTITY_FIELD}
