"""
odata_provider.api.models - Pydantic models for API requests/responses
=======================================================================
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# Example key (public Northwind v4 service)
EXAMPLE_ID = "ALFKI"


class ErrorDetail(BaseModel):
    """A provider error, flattened for JSON."""

    kind: str = Field(description="transport, server, schema, key, unsupported or network")
    message: str
    status: Optional[int] = None
    body: Optional[str] = None


class RecordErrorModel(BaseModel):
    """Failed slot of a batch operation."""

    id: Any
    error: ErrorDetail


class CreateRequest(BaseModel):
    """Request body for POST /{resource}."""

    data: Dict[str, Any] = Field(
        description="Attributes of the new record",
        json_schema_extra={"example": {"CustomerID": "NEWCO", "CompanyName": "New Co"}},
    )
    id: Optional[Any] = Field(
        default=None,
        description="Parent id, to create under resource(id)/related",
    )
    related: Optional[str] = Field(
        default=None,
        description="Navigation property of the parent to create in",
        json_schema_extra={"example": "Orders"},
    )


class ListResponse(BaseModel):
    data: List[Dict[str, Any]]
    total: int


class RecordResponse(BaseModel):
    data: Dict[str, Any]


class ManyResponse(BaseModel):
    """Aligned with the requested ids; failed slots carry an error."""

    data: List[Any]


class DeleteManyResponse(BaseModel):
    data: List[Any] = Field(description="Ids deleted successfully")
    failures: List[RecordErrorModel] = Field(default_factory=list)


class ResourcesResponse(BaseModel):
    resources: List[str]
