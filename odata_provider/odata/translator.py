"""
odata_provider.odata.translator - Generic operation to OData translation
=========================================================================

Turns the generic CRUD/list contract into OData v4 request descriptions,
using the schema catalog to resolve URL segments and encode keys.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from odata_provider.odata.keys import encode_key, key_segment, quote_literal
from odata_provider.odata.metadata import SchemaCatalog
from odata_provider.odata.params import (
    CreateParams,
    Expand,
    ListParams,
    Pagination,
    ReferenceParams,
    Sort,
)
from odata_provider.odata.query import ODataQuery, ODataRequest


def contains_clause(field_name: str, value: Any) -> str:
    """``Contains(City,'Berlin')``"""
    return f"Contains({field_name},{quote_literal(value)})"


class QueryTranslator:
    """
    Builds OData requests for each generic operation.

    Parameters
    ----------
    catalog : SchemaCatalog
        Discovered entity sets; every resource is resolved through it

    Examples
    --------
    >>> t = QueryTranslator(catalog)
    >>> t.get_one("customers", "ALFKI").path
    "Customers('ALFKI')"
    """

    def __init__(self, catalog: SchemaCatalog) -> None:
        self.catalog = catalog

    # ---------------- shared steps ----------------

    def entity_path(self, resource: str, id: Any) -> str:
        return key_segment(self.catalog.get_set(resource), id)

    def _apply_filter(self, q: ODataQuery, filter: Mapping[str, Any]) -> ODataQuery:
        for name, value in filter.items():
            q.filter(contains_clause(name, value))
        return q

    def _apply_window(self, q: ODataQuery, pagination: Pagination, sort: Sort) -> ODataQuery:
        return (
            q.orderby(sort.field, sort.order)
            .skip(pagination.skip)
            .top(pagination.top)
            .count()
        )

    # ---------------- reads ----------------

    def get_list(self, resource: str, params: ListParams) -> ODataRequest:
        if params.related is not None:
            q = ODataQuery(self.entity_path(resource, params.id)).resource(params.related)
        else:
            q = ODataQuery(self.catalog.get_set(resource).url_segment)
        self._apply_filter(q, params.filter)
        return self._apply_window(q, params.pagination, params.sort).get()

    def get_one(self, resource: str, id: Any) -> ODataRequest:
        return ODataQuery(self.entity_path(resource, id)).get()

    def get_many_reference(
        self,
        resource: str,
        params: ReferenceParams,
    ) -> Optional[ODataRequest]:
        """
        Build the request for ``get_many_reference``.

        Returns None when no scoping id is given; nothing needs fetching.
        """
        if params.id is None or params.id == "":
            return None

        strategy = params.strategy
        if isinstance(strategy, Expand):
            return (
                ODataQuery(self.entity_path(strategy.parent, params.id))
                .expand(strategy.target)
                .get()
            )

        es = self.catalog.get_set(resource)
        q = ODataQuery(es.url_segment).filter(
            f"{strategy.target} eq {encode_key(es, strategy.target, params.id)}"
        )
        self._apply_filter(q, params.extra_filter)
        return self._apply_window(q, params.pagination, params.sort).get()

    # ---------------- writes ----------------

    def create(self, resource: str, params: CreateParams) -> ODataRequest:
        if params.related and params.id is not None:
            q = ODataQuery(self.entity_path(resource, params.id)).resource(params.related)
        else:
            q = ODataQuery(self.catalog.get_set(resource).url_segment)
        return q.post(params.data)

    def update(self, resource: str, id: Any, data: Dict[str, Any]) -> ODataRequest:
        return ODataQuery(self.entity_path(resource, id)).patch(data)

    def delete(self, resource: str, id: Any) -> ODataRequest:
        return ODataQuery(self.entity_path(resource, id)).delete()
