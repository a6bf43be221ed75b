"""
odata_provider.odata.query - OData request builder
===================================================

A small fluent builder producing request descriptions (method, path,
query options, body) for the session to execute.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Union[str, "SortOrder"]) -> "SortOrder":
        if isinstance(value, SortOrder):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Sort order must be ASC or DESC, got {value!r}") from None


@dataclass(frozen=True)
class ODataRequest:
    """
    Description of one OData HTTP request.

    Attributes
    ----------
    method : str
        HTTP method
    path : str
        Path relative to the service root, e.g. "Customers('ALFKI')/Orders"
    params : dict
        System query options ($filter, $orderby, ...)
    body : dict, optional
        JSON body for POST/PATCH
    """
    method: str
    path: str
    params: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None


def _join_csv(items: Sequence[str]) -> str:
    """Join items as comma-separated values, stripping whitespace."""
    return ",".join([s.strip() for s in items if s and s.strip()])


class ODataQuery:
    """
    Fluent builder for OData v4 requests.

    Filters added through ``filter`` are combined with ``and``.

    Examples
    --------
    >>> req = (
    ...     ODataQuery("Customers")
    ...     .filter("Contains(City,'Berlin')")
    ...     .orderby("CompanyName", "asc")
    ...     .skip(20)
    ...     .top(10)
    ...     .count()
    ...     .get()
    ... )
    >>> req.params["$skip"]
    '20'
    """

    def __init__(self, path: str = "") -> None:
        self._segments: List[str] = [path] if path else []
        self._filters: List[str] = []
        self._orderby: List[str] = []
        self._expand: List[str] = []
        self._skip: Optional[int] = None
        self._top: Optional[int] = None
        self._count = False

    def resource(self, segment: str) -> "ODataQuery":
        """Append a path segment (entity set, keyed entity, or navigation property)."""
        self._segments.append(segment.strip("/"))
        return self

    def filter(self, expr: str) -> "ODataQuery":
        self._filters.append(expr)
        return self

    def orderby(self, field_name: str, order: Union[str, SortOrder] = SortOrder.ASC) -> "ODataQuery":
        self._orderby.append(f"{field_name} {SortOrder.parse(order).value}")
        return self

    def expand(self, navigation: str) -> "ODataQuery":
        self._expand.append(navigation)
        return self

    def skip(self, n: int) -> "ODataQuery":
        self._skip = int(n)
        return self

    def top(self, n: int) -> "ODataQuery":
        self._top = int(n)
        return self

    def count(self, enabled: bool = True) -> "ODataQuery":
        self._count = enabled
        return self

    @property
    def path(self) -> str:
        return "/".join(self._segments)

    def params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self._filters:
            params["$filter"] = " and ".join(self._filters)
        if self._orderby:
            params["$orderby"] = _join_csv(self._orderby)
        if self._expand:
            params["$expand"] = _join_csv(self._expand)
        if self._skip is not None:
            params["$skip"] = str(self._skip)
        if self._top is not None:
            params["$top"] = str(self._top)
        if self._count:
            params["$count"] = "true"
        return params

    # ---------------- terminal ops ----------------

    def build(self, method: str, body: Optional[Dict[str, Any]] = None) -> ODataRequest:
        return ODataRequest(method.upper(), self.path, self.params(), body)

    def get(self) -> ODataRequest:
        return self.build("GET")

    def post(self, body: Dict[str, Any]) -> ODataRequest:
        return self.build("POST", dict(body))

    def patch(self, body: Dict[str, Any]) -> ODataRequest:
        return self.build("PATCH", dict(body))

    def delete(self) -> ODataRequest:
        return self.build("DELETE")
