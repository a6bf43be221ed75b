"""
odata_provider.odata.responses - Response classification and results
=====================================================================

Classifies raw responses into Success or Failure, unwraps the OData error
envelope and the inline count, and defines the typed operation results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import json

from odata_provider.core.errors import (
    ODataProviderError,
    ODataServerError,
    ODataTransportError,
)

TRANSPORT = "transport"
SERVER = "server"

COUNT_FIELD = "@odata.count"


@dataclass(frozen=True)
class Success:
    payload: Dict[str, Any]


@dataclass(frozen=True)
class Failure:
    """
    A classified failure.

    Attributes
    ----------
    kind : str
        "transport" (non-2xx) or "server" (OData error envelope)
    message : str
        Status message or the envelope's message
    status : int
        HTTP status code
    body : str
        Raw response body
    """
    kind: str
    message: str
    status: int
    body: str = ""
    url: Optional[str] = None

    def to_exception(self) -> ODataProviderError:
        if self.kind == TRANSPORT:
            return ODataTransportError(self.status, self.message, self.body, self.url)
        return ODataServerError(self.message, self.status, self.body)


Outcome = Union[Success, Failure]


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------

@dataclass
class ListResult:
    records: List[Dict[str, Any]]
    total: int


@dataclass
class RecordResult:
    record: Dict[str, Any]


@dataclass
class RecordError:
    """Failed slot of a batch operation; ``error`` may also be a network exception."""
    id: Any
    error: Exception


@dataclass
class ManyResult:
    """Records aligned with the requested ids; failed slots hold RecordError."""
    records: List[Union[Dict[str, Any], RecordError]]

    @property
    def errors(self) -> List[RecordError]:
        return [r for r in self.records if isinstance(r, RecordError)]


@dataclass
class DeleteManyResult:
    """Ids deleted successfully, plus the failures that were not."""
    ids: List[Any]
    failures: List[RecordError] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _envelope_message(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    err = payload.get("error")
    if not err:
        return None
    if not isinstance(err, dict):
        return str(err)
    message = err.get("message")
    if isinstance(message, dict):
        # OData v2 / SAP: {"message": {"lang": "en", "value": "..."}}
        message = message.get("value")
    if message:
        return str(message)
    return json.dumps(err)


def classify(
    status_code: int,
    body: str,
    *,
    reason: Optional[str] = None,
    default_message: str = "request error",
    url: Optional[str] = None,
) -> Outcome:
    """
    Classify a raw response.

    1. Non-2xx status: transport failure with the status message, or
       ``default_message`` when the server sent none.
    2. 2xx with a truthy ``error`` member (``{"error": {"message": ...}}``
       or any other non-empty value): server failure.
    3. Otherwise success; an empty body yields an empty payload.
    """
    if not 200 <= status_code < 300:
        return Failure(TRANSPORT, reason or default_message, status_code, body, url)

    if not body or not body.strip():
        return Success({})

    try:
        payload = json.loads(body)
    except ValueError:
        return Failure(SERVER, "Response body is not valid JSON", status_code, body, url)

    message = _envelope_message(payload)
    if message is not None:
        return Failure(SERVER, message, status_code, body, url)
    if not isinstance(payload, dict):
        return Success({"value": payload})
    return Success(payload)


def unwrap(outcome: Outcome) -> Dict[str, Any]:
    """Return the payload of a Success, raise the error of a Failure."""
    if isinstance(outcome, Failure):
        raise outcome.to_exception()
    return outcome.payload


# ---------------------------------------------------------------------------
# Payload shapers
# ---------------------------------------------------------------------------

def to_list_result(payload: Dict[str, Any]) -> ListResult:
    """``{"value": [...], "@odata.count": n}`` -> ListResult."""
    records = list(payload.get("value") or [])
    total = payload.get(COUNT_FIELD)
    return ListResult(records, int(total) if total is not None else len(records))


def to_expanded_result(payload: Dict[str, Any], target: str) -> ListResult:
    """The expanded navigation collection; its length is the total."""
    records = list(payload.get(target) or [])
    return ListResult(records, len(records))
