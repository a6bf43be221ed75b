"""
odata_provider.core - Core connectivity, configuration and errors
==================================================================

- ODataAuth: Authentication configuration (none, basic or bearer token)
- ODataConfig: Full connection configuration
- ODataSession: Low-level HTTP session with retry
- ConnectionContext: Environment-driven connection manager
- Error types raised by the provider

"""

from odata_provider.core.errors import (
    ODataProviderError,
    ODataServerError,
    ODataTransportError,
    InvalidKeyError,
    SchemaError,
    UnsupportedOperationError,
)
from odata_provider.core.session import (
    ODataAuth,
    ODataConfig,
    ODataSession,
    TransportResponse,
)
from odata_provider.core.connection import ConnectionContext

__all__ = [
    "ODataAuth",
    "ODataConfig",
    "ODataSession",
    "TransportResponse",
    "ConnectionContext",
    "ODataProviderError",
    "ODataServerError",
    "ODataTransportError",
    "InvalidKeyError",
    "SchemaError",
    "UnsupportedOperationError",
]
