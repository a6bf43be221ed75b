"""
odata_provider.api.gateway - FastAPI Data Provider Gateway
===========================================================

Optional REST API exposing the generic data-provider contract of one
OData service.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from odata_provider import __version__
from odata_provider.core.connection import ConnectionContext
from odata_provider.core.errors import (
    InvalidKeyError,
    ODataProviderError,
    ODataServerError,
    ODataTransportError,
    SchemaError,
    UnsupportedOperationError,
)
from odata_provider.odata.params import (
    CreateParams,
    ListParams,
    Pagination,
    ReferenceParams,
    Sort,
)
from odata_provider.odata.responses import RecordError
from odata_provider.provider import ODataDataProvider
from odata_provider.api.models import (
    CreateRequest,
    DeleteManyResponse,
    ErrorDetail,
    ListResponse,
    ManyResponse,
    RecordResponse,
    ResourcesResponse,
    EXAMPLE_ID,
)

logger = logging.getLogger("odata_provider.api")


class ODataGateway:
    """
    Configuration and provider factory for the API gateway.

    Reads configuration from environment variables by default. A ready
    provider may be injected instead (tests, embedding).
    """

    def __init__(
        self,
        service_url: Optional[str] = None,
        api_key: Optional[str] = None,
        max_per_page: int = 500,
        provider: Optional[ODataDataProvider] = None,
    ):
        self.service_url = service_url or os.environ.get("ODATA_SERVICE_URL", "")
        self.api_key = api_key if api_key is not None else os.environ.get("ODATA_API_KEY", "")
        self.max_per_page = max_per_page
        self._provider = provider
        self._conn: Optional[ConnectionContext] = None

    def validate(self) -> None:
        """Validate configuration. Raises RuntimeError if invalid."""
        if self._provider is None and not self.service_url:
            raise RuntimeError("Missing ODATA_SERVICE_URL environment variable")
        if not self.api_key:
            raise RuntimeError("Missing ODATA_API_KEY - required for security")

    def get_provider(self) -> ODataDataProvider:
        """Get or create the provider; the first call fetches $metadata."""
        if self._provider is None:
            self._conn = ConnectionContext(self.service_url)
            self._provider = self._conn.get_provider()
        return self._provider

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


def _error_kind(e: Exception) -> str:
    if isinstance(e, InvalidKeyError):
        return "key"
    if isinstance(e, ODataTransportError):
        return "transport"
    if isinstance(e, ODataServerError):
        return "server"
    if isinstance(e, SchemaError):
        return "schema"
    if isinstance(e, UnsupportedOperationError):
        return "unsupported"
    if isinstance(e, ODataProviderError):
        return "provider"
    # raised by the transport itself (connection reset, timeout)
    return "network"


def error_detail(e: Exception) -> ErrorDetail:
    return ErrorDetail(
        kind=_error_kind(e),
        message=getattr(e, "message", None) or str(e),
        status=getattr(e, "status", None),
        body=getattr(e, "body", None),
    )


def to_http_exception(e: ODataProviderError) -> HTTPException:
    """Map a provider error to the gateway's HTTP status."""
    detail = error_detail(e).model_dump()
    if isinstance(e, InvalidKeyError):
        return HTTPException(status_code=400, detail=detail)
    if isinstance(e, SchemaError):
        return HTTPException(status_code=404, detail=detail)
    if isinstance(e, UnsupportedOperationError):
        return HTTPException(status_code=501, detail=detail)
    if isinstance(e, ODataTransportError) and 400 <= e.status < 600:
        return HTTPException(status_code=e.status, detail=detail)
    return HTTPException(status_code=502, detail=detail)


def _parse_filter(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="filter must be a JSON object")
    if not isinstance(value, dict):
        raise HTTPException(status_code=400, detail="filter must be a JSON object")
    return value


def _record_error(err: RecordError) -> Dict[str, Any]:
    return {"id": err.id, "error": error_detail(err.error).model_dump()}


def create_app(
    gateway: Optional[ODataGateway] = None,
    validate_on_startup: bool = True,
) -> FastAPI:
    """
    Create the FastAPI application.

    Parameters
    ----------
    gateway : ODataGateway, optional
        Custom gateway configuration. If None, reads from environment.
    validate_on_startup : bool
        If True, validate configuration on startup.

    Returns
    -------
    FastAPI
        Configured FastAPI application
    """
    gw = gateway or ODataGateway()

    if validate_on_startup:
        try:
            gw.validate()
        except RuntimeError as e:
            # Allow app creation without validation for testing
            logger.warning("Gateway configuration incomplete: %s", e)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        gw.close()

    app = FastAPI(
        lifespan=lifespan,
        title="OData Data Provider Gateway",
        description="""
## OData Data Provider Gateway

Generic list/CRUD endpoints over one OData v4 service. Resources are the
entity sets discovered from the service's `$metadata`, addressed
case-insensitively.

### Authentication
Include your API key in the `x-api-key` header.
        """,
        version=__version__,
        openapi_tags=[
            {"name": "Discovery", "description": "Discovered resources"},
            {"name": "Read", "description": "List and fetch records"},
            {"name": "Write", "description": "Create, update and delete records"},
        ],
    )
    app.state.gateway = gw

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Dependencies
    # -------------------------------------------------------------------------

    def require_api_key(x_api_key: str = Header(...)) -> None:
        if gw.api_key and x_api_key != gw.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    def provider() -> ODataDataProvider:
        return gw.get_provider()

    def pagination_dep(
        page: int = Query(default=1, ge=1),
        per_page: int = Query(default=25, ge=1),
    ) -> Pagination:
        return Pagination(page, min(per_page, gw.max_per_page))

    def sort_dep(
        sort: str = Query(..., description="Field to order by", examples=["CompanyName"]),
        order: str = Query(default="ASC", description="ASC or DESC"),
    ) -> Sort:
        try:
            return Sort(sort, order)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    @app.get("/health")
    def health() -> Dict[str, Any]:
        """Health check endpoint."""
        return {"ok": True, "version": __version__}

    @app.get("/resources", response_model=ResourcesResponse, tags=["Discovery"])
    def list_resources(
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> ResourcesResponse:
        """Display names of all addressable resources."""
        return ResourcesResponse(resources=p.get_resources())

    # fixed segments are declared before /{resource}/{id} and take precedence
    @app.get("/{resource}/many", response_model=ManyResponse, tags=["Read"])
    async def get_many(
        resource: str,
        ids: List[str] = Query(..., examples=[["ALFKI", "ANATR"]]),
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> ManyResponse:
        """Fetch several records; failed ids carry an error in their slot."""
        try:
            result = await p.get_many(resource, ids)
        except ODataProviderError as e:
            raise to_http_exception(e)
        return ManyResponse(data=[
            _record_error(r) if isinstance(r, RecordError) else r
            for r in result.records
        ])

    @app.get("/{resource}/reference", response_model=ListResponse, tags=["Read"])
    async def get_many_reference(
        resource: str,
        target: str = Query(..., examples=["CustomerID"]),
        id: Optional[str] = Query(default=None, examples=[EXAMPLE_ID]),
        parent: Optional[str] = Query(default=None, description="Parent resource; selects $expand"),
        filter: Optional[str] = Query(default=None, description="JSON object of Contains filters"),
        page: Pagination = Depends(pagination_dep),
        order: Sort = Depends(sort_dep),
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> ListResponse:
        """Records of a resource related to one entity."""
        params = ReferenceParams(
            target=target,
            id=id,
            pagination=page,
            sort=order,
            filter=_parse_filter(filter),
            parent=parent,
        )
        try:
            result = await p.get_many_reference(resource, params)
        except ODataProviderError as e:
            raise to_http_exception(e)
        return ListResponse(data=result.records, total=result.total)

    @app.get("/{resource}", response_model=ListResponse, tags=["Read"])
    async def get_list(
        resource: str,
        filter: Optional[str] = Query(default=None, description="JSON object of Contains filters"),
        id: Optional[str] = Query(default=None, description="Parent id, with related"),
        related: Optional[str] = Query(default=None, description="Navigation collection, with id"),
        page: Pagination = Depends(pagination_dep),
        order: Sort = Depends(sort_dep),
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> ListResponse:
        """One page of records, with the total count."""
        try:
            params = ListParams(page, order, _parse_filter(filter), id, related)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        try:
            result = await p.get_list(resource, params)
        except ODataProviderError as e:
            raise to_http_exception(e)
        return ListResponse(data=result.records, total=result.total)

    @app.get("/{resource}/{id}", response_model=RecordResponse, tags=["Read"])
    async def get_one(
        resource: str,
        id: str,
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> RecordResponse:
        """
        Fetch one record by key.

        The fixed segments ``many`` and ``reference`` are routed to the batch
        and reference endpoints; a record whose key is literally one of
        them is reachable through ``GET /{resource}/many?ids=...`` instead.
        """
        try:
            result = await p.get_one(resource, id)
        except ODataProviderError as e:
            raise to_http_exception(e)
        return RecordResponse(data=result.record)

    @app.post("/{resource}", response_model=RecordResponse, tags=["Write"])
    async def create(
        resource: str,
        req: CreateRequest,
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> RecordResponse:
        try:
            result = await p.create(resource, CreateParams(req.data, req.id, req.related))
        except ODataProviderError as e:
            raise to_http_exception(e)
        return RecordResponse(data=result.record)

    @app.patch("/{resource}/{id}", response_model=RecordResponse, tags=["Write"])
    async def update(
        resource: str,
        id: str,
        data: Dict[str, Any],
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> RecordResponse:
        """Partial update of one record."""
        try:
            result = await p.update(resource, id, data)
        except ODataProviderError as e:
            raise to_http_exception(e)
        return RecordResponse(data=result.record)

    @app.patch("/{resource}", tags=["Write"])
    async def update_many(
        resource: str,
        data: Dict[str, Any],
        ids: List[str] = Query(default=[]),
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> Dict[str, Any]:
        """Not supported; always answers 501."""
        try:
            await p.update_many(resource, ids, data)
        except ODataProviderError as e:
            raise to_http_exception(e)
        return {"data": ids}

    @app.delete("/{resource}/{id}", response_model=RecordResponse, tags=["Write"])
    async def delete(
        resource: str,
        id: str,
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> RecordResponse:
        try:
            result = await p.delete(resource, id)
        except ODataProviderError as e:
            raise to_http_exception(e)
        return RecordResponse(data=result.record)

    @app.delete("/{resource}", response_model=DeleteManyResponse, tags=["Write"])
    async def delete_many(
        resource: str,
        ids: List[str] = Query(..., examples=[[EXAMPLE_ID]]),
        _: None = Depends(require_api_key),
        p: ODataDataProvider = Depends(provider),
    ) -> DeleteManyResponse:
        """Delete several records; ids that failed are listed in failures."""
        try:
            result = await p.delete_many(resource, ids)
        except ODataProviderError as e:
            raise to_http_exception(e)
        return DeleteManyResponse(
            data=result.ids,
            failures=[_record_error(f) for f in result.failures],
        )

    return app
