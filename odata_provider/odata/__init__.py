"""
odata_provider.odata - Schema discovery and OData translation
==============================================================

- SchemaCatalog: $metadata parsing into addressable entity sets
- encode_key / key_segment: literal vs. quoted key tokens
- QueryTranslator: generic operations to OData requests
- classify: response classification into Success / Failure
- IdentityFieldMapper: ``id`` aliasing for non-``id`` keys

"""

from odata_provider.odata.metadata import (
    EntityProperty,
    EntitySet,
    EntityType,
    SchemaCatalog,
)
from odata_provider.odata.keys import encode_key, escape_odata_literal, key_segment
from odata_provider.odata.query import ODataQuery, ODataRequest, SortOrder
from odata_provider.odata.params import (
    CreateParams,
    Expand,
    FilterOn,
    ListParams,
    Pagination,
    ReferenceParams,
    Sort,
)
from odata_provider.odata.responses import (
    DeleteManyResult,
    Failure,
    ListResult,
    ManyResult,
    RecordError,
    RecordResult,
    Success,
    classify,
)
from odata_provider.odata.translator import QueryTranslator
from odata_provider.odata.identity import IdentityFieldMapper

__all__ = [
    "EntityProperty",
    "EntitySet",
    "EntityType",
    "SchemaCatalog",
    "encode_key",
    "escape_odata_literal",
    "key_segment",
    "ODataQuery",
    "ODataRequest",
    "SortOrder",
    "CreateParams",
    "Expand",
    "FilterOn",
    "ListParams",
    "Pagination",
    "ReferenceParams",
    "Sort",
    "DeleteManyResult",
    "Failure",
    "ListResult",
    "ManyResult",
    "RecordError",
    "RecordResult",
    "Success",
    "classify",
    "QueryTranslator",
    "IdentityFieldMapper",
]
