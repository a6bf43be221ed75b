"""
OData Data Provider (odata_provider)
====================================

A metadata-driven data provider that maps a generic CRUD/list contract
(pagination, sorting, filtering, related resources) onto OData v4.

Usage
-----
>>> import asyncio
>>> from odata_provider import ConnectionContext, ListParams, Pagination, Sort
>>>
>>> with ConnectionContext("https://services.odata.org/V4/Northwind/Northwind.svc/") as conn:
...     provider = conn.get_provider()
...     page = asyncio.run(provider.get_list(
...         "customers",
...         ListParams(Pagination(2, 10), Sort("CompanyName", "DESC"), {"City": "Berlin"}),
...     ))

Subpackages
-----------
- odata_provider.core: Session, configuration and errors
- odata_provider.odata: Schema catalog, key encoding, translation, responses
- odata_provider.api: Optional FastAPI REST gateway

"""

__version__ = "0.1.0"

from odata_provider.core.errors import (
    ODataProviderError,
    ODataServerError,
    ODataTransportError,
    InvalidKeyError,
    SchemaError,
    UnsupportedOperationError,
)
from odata_provider.core.session import ODataAuth, ODataConfig, ODataSession
from odata_provider.core.connection import ConnectionContext

from odata_provider.odata import (
    CreateParams,
    ListParams,
    Pagination,
    ReferenceParams,
    SchemaCatalog,
    Sort,
    SortOrder,
)
from odata_provider.provider import ODataDataProvider

__all__ = [
    "__version__",
    # Core
    "ODataAuth",
    "ODataConfig",
    "ODataSession",
    "ConnectionContext",
    # Errors
    "ODataProviderError",
    "ODataServerError",
    "ODataTransportError",
    "InvalidKeyError",
    "SchemaError",
    "UnsupportedOperationError",
    # Provider
    "ODataDataProvider",
    "SchemaCatalog",
    "CreateParams",
    "ListParams",
    "Pagination",
    "ReferenceParams",
    "Sort",
    "SortOrder",
]
