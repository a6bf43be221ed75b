"""
odata_provider.core.session - OData HTTP Session Management
============================================================

Low-level session handling for OData v4 services with:
- Anonymous, Basic and Bearer token authentication
- Automatic retry with exponential backoff
- Raw responses for every status code (classification happens upstream)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Union
import json
import logging
import time

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from odata_provider.core.errors import ODataTransportError

if TYPE_CHECKING:
    from odata_provider.odata.query import ODataRequest


@dataclass
class ODataAuth:
    """
    Authentication configuration for an OData service.

    Parameters
    ----------
    kind : str
        One of "none", "basic" or "bearer"
    value : tuple or str, optional
        For basic: (username, password) tuple
        For bearer: access token string

    Examples
    --------
    >>> auth = ODataAuth("basic", ("USER", "PASSWORD"))
    >>> auth = ODataAuth("bearer", "eyJ...")
    >>> auth = ODataAuth("none")
    """
    kind: str  # "none" | "basic" | "bearer"
    value: Union[Tuple[str, str], str, None] = None


@dataclass
class ODataConfig:
    """
    Connection configuration for an OData v4 service.

    Parameters
    ----------
    service_url : str
        Service root, e.g. "https://services.odata.org/V4/Northwind/Northwind.svc/"
    auth : ODataAuth
        Authentication configuration
    timeout : float
        Request timeout in seconds (default: 60.0)
    retries : int
        Number of retry attempts (default: 3)
    backoff : float
        Backoff factor for retries (default: 0.5)
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    user_agent : str
        User-Agent header value
    """
    service_url: str
    auth: ODataAuth
    timeout: float = 60.0
    retries: int = 3
    backoff: float = 0.5
    verify: Union[bool, str] = True
    user_agent: str = "odata-provider/0.1"


@dataclass(frozen=True)
class TransportResponse:
    """Raw outcome of one HTTP exchange."""
    status_code: int
    reason: Optional[str]
    text: str
    url: str = ""


class ODataSession:
    """
    Low-level HTTP session for an OData v4 service.

    Handles authentication, retries and URL assembly. Use as a context
    manager for automatic cleanup.

    Parameters
    ----------
    cfg : ODataConfig
        Connection configuration

    Examples
    --------
    >>> cfg = ODataConfig("https://host/odata/", ODataAuth("none"))
    >>> with ODataSession(cfg) as sess:
    ...     xml = sess.get_text("$metadata")
    """

    def __init__(self, cfg: ODataConfig) -> None:
        self.cfg = cfg
        self.base = cfg.service_url.rstrip("/") + "/"
        self.timeout = float(cfg.timeout)
        self.verify = cfg.verify
        self.logger = logging.getLogger("odata_provider.http")

        self.session = self._build_session()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "ODataSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- auth/session ----------------

    def _build_session(self) -> Session:
        sess = requests.Session()

        if self.cfg.auth.kind == "basic":
            sess.auth = self.cfg.auth.value  # type: ignore[assignment]
        elif self.cfg.auth.kind == "bearer":
            sess.headers.update({"Authorization": f"Bearer {self.cfg.auth.value}"})
        elif self.cfg.auth.kind != "none":
            raise ValueError("auth.kind must be 'none', 'basic' or 'bearer'")

        sess.headers.update({
            "Accept": "application/json",
            "OData-Version": "4.0",
            "OData-MaxVersion": "4.0",
            "User-Agent": self.cfg.user_agent,
        })

        retry = Retry(
            total=self.cfg.retries,
            backoff_factor=self.cfg.backoff,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET", "HEAD", "OPTIONS", "POST", "PATCH", "DELETE"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=20, pool_maxsize=50)
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess

    # ---------------- helpers ----------------

    def _url(self, path: str) -> str:
        return f"{self.base}{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        data: Optional[str] = None,
    ) -> requests.Response:
        t0 = time.perf_counter()
        r = self.session.request(
            method=method,
            url=url,
            params=params,
            headers=headers,
            data=data,
            timeout=self.timeout,
            verify=self.verify,
        )
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug("%s %s -> %s %sms", method.upper(), url, r.status_code, round(dt, 1))
        return r

    # ---------------- public ops ----------------

    def send(
        self,
        request: "ODataRequest",
        *,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> TransportResponse:
        """
        Execute a translated request and return the raw response.

        HTTP error statuses are returned, not raised.

        Parameters
        ----------
        request : ODataRequest
            Method, path, query parameters and optional JSON body
        extra_headers : dict, optional
            Additional HTTP headers for this request only

        Returns
        -------
        TransportResponse
        """
        url = self._url(request.path)
        headers: Dict[str, str] = {}
        data: Optional[str] = None
        if request.body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(request.body, separators=(",", ":"))
        if extra_headers:
            headers.update(extra_headers)

        r = self._request(
            request.method,
            url,
            params=dict(request.params) or None,
            headers=headers,
            data=data,
        )
        return TransportResponse(
            status_code=r.status_code,
            reason=r.reason,
            text=r.text,
            url=r.url or url,
        )

    def get_text(
        self,
        path: str,
        *,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Execute a GET request and return the raw text response.

        Used for $metadata, which returns XML.

        Raises
        ------
        ODataTransportError
            If the service answers with a non-2xx status
        """
        url = self._url(path)
        headers = {"Accept": "application/xml"}
        if extra_headers:
            headers.update(extra_headers)

        r = self._request("GET", url, headers=headers)
        if not 200 <= r.status_code < 300:
            raise ODataTransportError(r.status_code, r.reason or "metadata error", r.text, url)
        return r.text

    def describe(self) -> Dict[str, Any]:
        """Connection summary without secrets."""
        return {
            "service_url": self.base,
            "auth": self.cfg.auth.kind,
            "timeout": self.timeout,
            "retries": self.cfg.retries,
        }
