"""
odata_provider.core.errors - Provider error types
==================================================

Every failure surfaced by the provider derives from ODataProviderError:

- ODataTransportError: the service answered with a non-2xx status
- ODataServerError: 2xx status, but the body carries an OData error envelope
- UnsupportedOperationError: the operation is not offered (update_many)
- SchemaError: the resource is unknown/unsupported, or $metadata is unusable
- InvalidKeyError: a key value does not fit its declared type
"""

from __future__ import annotations

from typing import Optional


class ODataProviderError(RuntimeError):
    """Base class for all provider errors."""


class ODataTransportError(ODataProviderError):
    """
    Raised when the OData service returns a non-2xx status.

    Attributes
    ----------
    status : int
        HTTP status code
    message : str
        Server-supplied status message, or an operation default
    body : str
        Raw response body
    url : str or None
        The URL that was called, when known
    """

    def __init__(
        self,
        status: int,
        message: str,
        body: str = "",
        url: Optional[str] = None,
    ):
        snippet = (body or "")[:1200]
        where = f" for {url}" if url else ""
        super().__init__(f"OData transport error {status}{where}: {message} {snippet}".rstrip())
        self.status = status
        self.message = message
        self.body = body or ""
        self.url = url


class ODataServerError(ODataProviderError):
    """Raised when a 2xx response carries ``{"error": {"message": ...}}``."""

    def __init__(self, message: str, status: int = 200, body: str = ""):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body or ""


class UnsupportedOperationError(ODataProviderError):
    """Raised for operations this provider does not implement."""

    def __init__(self, operation: str):
        super().__init__(f"{operation} is not implemented")
        self.operation = operation


class SchemaError(ODataProviderError):
    """Raised when a resource cannot be resolved against the schema catalog."""


class InvalidKeyError(ODataProviderError, ValueError):
    """Raised when a key value does not match its declared integer/GUID type."""

    def __init__(self, value: object, type_name: str):
        super().__init__(f"Invalid {type_name} key: {value!r}")
        self.value = value
        self.type_name = type_name
