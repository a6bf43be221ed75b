"""
odata_provider.odata.params - Generic operation parameters
===========================================================

Input types of the generic data-provider contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from odata_provider.odata.query import SortOrder

# Filter key selecting the expansion strategy in get_many_reference
PARENT_MARKER = "parent"


@dataclass(frozen=True)
class Pagination:
    """1-based page number and page size."""
    page: int = 1
    per_page: int = 25

    def __post_init__(self) -> None:
        if int(self.page) < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if int(self.per_page) < 1:
            raise ValueError(f"per_page must be >= 1, got {self.per_page}")

    @property
    def skip(self) -> int:
        return (int(self.page) - 1) * int(self.per_page)

    @property
    def top(self) -> int:
        return int(self.per_page)


@dataclass(frozen=True)
class Sort:
    field: str
    order: SortOrder = SortOrder.ASC

    def __post_init__(self) -> None:
        # accept "ASC"/"DESC" strings
        object.__setattr__(self, "order", SortOrder.parse(self.order))


@dataclass(frozen=True)
class ListParams:
    """
    Parameters of ``get_list``.

    ``id`` and ``related`` together list a navigation collection under one
    entity, e.g. ``Customers('ALFKI')/Orders``.
    """
    pagination: Pagination
    sort: Sort
    filter: Dict[str, Any] = field(default_factory=dict)
    id: Any = None
    related: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.id is None) != (self.related is None):
            raise ValueError("id and related must be given together")


@dataclass(frozen=True)
class Expand:
    """Fetch ``target`` inline under ``parent(id)`` via $expand."""
    parent: str
    target: str


@dataclass(frozen=True)
class FilterOn:
    """Filter the resource on ``target eq id``."""
    target: str


ReferenceStrategy = Union[Expand, FilterOn]


@dataclass(frozen=True)
class ReferenceParams:
    """
    Parameters of ``get_many_reference``.

    A ``parent`` entry in ``filter`` (or the ``parent`` argument) selects
    the expansion strategy; otherwise the resource is filtered on the
    ``target`` foreign key.
    """
    target: str
    id: Any
    pagination: Pagination
    sort: Sort
    filter: Dict[str, Any] = field(default_factory=dict)
    parent: Optional[str] = None

    @property
    def strategy(self) -> ReferenceStrategy:
        parent = self.parent or self.filter.get(PARENT_MARKER)
        if parent:
            return Expand(str(parent), self.target)
        return FilterOn(self.target)

    @property
    def extra_filter(self) -> Dict[str, Any]:
        """Filter entries other than the parent marker."""
        return {k: v for k, v in self.filter.items() if k != PARENT_MARKER}


@dataclass(frozen=True)
class CreateParams:
    """
    Parameters of ``create``.

    With ``id`` and ``related`` the record is created in the navigation
    collection ``resource(id)/related``.
    """
    data: Dict[str, Any]
    id: Any = None
    related: Optional[str] = None
