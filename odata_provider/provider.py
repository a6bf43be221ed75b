"""
odata_provider.provider - Generic data provider over OData v4
==============================================================

The asynchronous facade of the package: every generic operation is
translated into OData requests, executed through the session, classified
and returned as a typed result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from odata_provider.core.errors import UnsupportedOperationError
from odata_provider.core.session import ODataSession, TransportResponse
from odata_provider.odata.identity import IdentityFieldMapper
from odata_provider.odata.metadata import SchemaCatalog
from odata_provider.odata.params import CreateParams, Expand, ListParams, ReferenceParams
from odata_provider.odata.query import ODataRequest
from odata_provider.odata.responses import (
    DeleteManyResult,
    Failure,
    ListResult,
    ManyResult,
    Outcome,
    RecordError,
    RecordResult,
    Success,
    classify,
    to_expanded_result,
    to_list_result,
    unwrap,
)
from odata_provider.odata.translator import QueryTranslator

logger = logging.getLogger("odata_provider.provider")

# Async hook returning extra headers for each operation
OptionsHook = Callable[[], Awaitable[Optional[Dict[str, str]]]]


class ODataDataProvider:
    """
    Generic CRUD/list provider backed by an OData v4 service.

    The service's $metadata is fetched and parsed once, in the constructor,
    unless a catalog is supplied.

    Parameters
    ----------
    sess : ODataSession
        Transport used for every request
    catalog : SchemaCatalog, optional
        Pre-built schema catalog; skips $metadata discovery
    options : callable, optional
        Async callable returning extra request headers (e.g. a fresh
        bearer token), awaited once per operation

    Examples
    --------
    >>> with ODataSession(cfg) as sess:
    ...     provider = ODataDataProvider(sess)
    ...     page = asyncio.run(provider.get_list(
    ...         "Customers",
    ...         ListParams(Pagination(1, 10), Sort("CompanyName")),
    ...     ))
    ...     page.total
    91
    """

    def __init__(
        self,
        sess: ODataSession,
        *,
        catalog: Optional[SchemaCatalog] = None,
        options: Optional[OptionsHook] = None,
    ) -> None:
        self.sess = sess
        self.options = options
        self.catalog = catalog if catalog is not None else SchemaCatalog.discover(
            sess.get_text("$metadata")
        )
        self.translator = QueryTranslator(self.catalog)
        self.identity = IdentityFieldMapper.from_catalog(self.catalog)

    # ---------------- helpers ----------------

    async def _headers(self) -> Optional[Dict[str, str]]:
        if self.options is None:
            return None
        return await self.options()

    async def _send(
        self,
        request: ODataRequest,
        headers: Optional[Dict[str, str]],
        default_message: str,
    ) -> Outcome:
        r: TransportResponse = await asyncio.to_thread(
            self.sess.send, request, extra_headers=headers
        )
        return classify(
            r.status_code,
            r.text,
            reason=r.reason,
            default_message=default_message,
            url=r.url,
        )

    async def _settle_all(
        self,
        build: Callable[[str, Any], ODataRequest],
        resource: str,
        ids: Sequence[Any],
        headers: Optional[Dict[str, str]],
        default_message: str,
    ) -> List[Union[Success, RecordError]]:
        """
        One request per id, run concurrently; returns once all have settled.

        Each slot is either a Success or the RecordError of that id, whether
        the request was rejected, classified as a failure or raised (invalid
        key, connection error, timeout).
        """
        self.catalog.get_set(resource)

        async def one(rid: Any) -> Outcome:
            return await self._send(build(resource, rid), headers, default_message)

        settled = await asyncio.gather(*(one(rid) for rid in ids), return_exceptions=True)

        slots: List[Union[Success, RecordError]] = []
        for rid, outcome in zip(ids, settled):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, Failure):
                slots.append(RecordError(rid, outcome.to_exception()))
            elif isinstance(outcome, Exception):
                slots.append(RecordError(rid, outcome))
            else:
                slots.append(outcome)
        return slots

    def _records_resource(self, resource: str, related: Optional[str]) -> Optional[str]:
        # records listed under resource(id)/related belong to the related set
        if related is None:
            return resource
        return related if related in self.catalog else None

    def _to_caller(self, resource: Optional[str], records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if resource is None:
            return records
        return self.identity.many_to_caller(resource, records)

    # ---------------- reads ----------------

    async def get_list(self, resource: str, params: ListParams) -> ListResult:
        request = self.translator.get_list(resource, params)
        outcome = await self._send(request, await self._headers(), "getList error")
        result = to_list_result(unwrap(outcome))
        result.records = self._to_caller(
            self._records_resource(resource, params.related), result.records
        )
        return result

    async def get_one(self, resource: str, id: Any) -> RecordResult:
        request = self.translator.get_one(resource, id)
        outcome = await self._send(request, await self._headers(), "getOne error")
        return RecordResult(self.identity.to_caller(resource, unwrap(outcome)))

    async def get_many(self, resource: str, ids: Sequence[Any]) -> ManyResult:
        """
        Fetch several records concurrently.

        A failing id does not fail the batch: its slot holds a RecordError.
        """
        headers = await self._headers()
        outcomes = await self._settle_all(
            self.translator.get_one, resource, ids, headers, "getMany error"
        )

        records: List[Any] = []
        for rid, outcome in zip(ids, outcomes):
            if isinstance(outcome, RecordError):
                logger.warning("getMany %s(%s) failed: %s", resource, rid, outcome.error)
                records.append(outcome)
            else:
                records.append(self.identity.to_caller(resource, outcome.payload))
        return ManyResult(records)

    async def get_many_reference(self, resource: str, params: ReferenceParams) -> ListResult:
        """
        Fetch the records of ``resource`` related to one entity.

        With a parent, the parent entity is fetched with ``target``
        expanded and the expanded collection's length is the total.
        Without one, ``resource`` is filtered on ``target eq id`` and the
        server-reported count is the total. No id, no request.
        """
        request = self.translator.get_many_reference(resource, params)
        if request is None:
            return ListResult([], 0)

        outcome = await self._send(request, await self._headers(), "getManyReference error")
        payload = unwrap(outcome)
        strategy = params.strategy
        if isinstance(strategy, Expand):
            result = to_expanded_result(payload, strategy.target)
        else:
            result = to_list_result(payload)
        result.records = self._to_caller(
            resource if resource in self.catalog else None, result.records
        )
        return result

    # ---------------- writes ----------------

    async def create(self, resource: str, params: CreateParams) -> RecordResult:
        target = self._records_resource(resource, params.related if params.id is not None else None)
        data = self.identity.to_server(target, params.data) if target else params.data
        request = self.translator.create(
            resource, CreateParams(data, params.id, params.related)
        )
        outcome = await self._send(request, await self._headers(), "create error")
        record = unwrap(outcome) or dict(data)
        return RecordResult(self.identity.to_caller(target, record) if target else record)

    async def update(self, resource: str, id: Any, data: Dict[str, Any]) -> RecordResult:
        """Partial update (PATCH). A 204 reply yields the submitted data."""
        es = self.catalog.get_set(resource)
        body = self.identity.to_server(resource, data)
        request = self.translator.update(resource, id, body)
        outcome = await self._send(request, await self._headers(), "update error")
        record = unwrap(outcome) or {**body, es.entity_type.key.name: id}
        return RecordResult(self.identity.to_caller(resource, record))

    async def update_many(self, resource: str, ids: Sequence[Any], data: Dict[str, Any]) -> List[Any]:
        raise UnsupportedOperationError("updateMany")

    async def delete(self, resource: str, id: Any) -> RecordResult:
        """Delete one record. A 204 reply yields a record holding only the key."""
        es = self.catalog.get_set(resource)
        request = self.translator.delete(resource, id)
        outcome = await self._send(request, await self._headers(), "delete error")
        record = unwrap(outcome) or {es.entity_type.key.name: id}
        return RecordResult(self.identity.to_caller(resource, record))

    async def delete_many(self, resource: str, ids: Sequence[Any]) -> DeleteManyResult:
        """
        Delete several records concurrently.

        Only successfully deleted ids are returned in ``ids``; the others
        are reported in ``failures``.
        """
        headers = await self._headers()
        outcomes = await self._settle_all(
            self.translator.delete, resource, ids, headers, "deleteMany error"
        )

        result = DeleteManyResult([])
        for rid, outcome in zip(ids, outcomes):
            if isinstance(outcome, RecordError):
                logger.warning("deleteMany %s(%s) failed: %s", resource, rid, outcome.error)
                result.failures.append(outcome)
            else:
                result.ids.append(rid)
        return result

    # ---------------- discovery ----------------

    def get_resources(self) -> List[str]:
        """Display names of all addressable resources."""
        return self.catalog.resources()

