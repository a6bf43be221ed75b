"""
odata_provider.core.connection - High-level connection management
==================================================================

Resolves connection settings from arguments or the environment and
builds the session and data provider from them.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Optional

from odata_provider.core.session import ODataAuth, ODataConfig, ODataSession

if TYPE_CHECKING:
    from odata_provider.provider import ODataDataProvider, OptionsHook


class ConnectionContext:
    """
    High-level connection manager for one OData service.

    Parameters
    ----------
    service_url : str, optional
        OData service root. Falls back to ODATA_SERVICE_URL env var.
    user : str, optional
        Username for basic auth. Falls back to ODATA_USER env var.
    password : str, optional
        Password for basic auth. Falls back to ODATA_PASS env var.
    bearer_token : str, optional
        Bearer token. Falls back to ODATA_BEARER_TOKEN env var.
    verify : bool, optional
        SSL verification. Falls back to ODATA_VERIFY_TLS env var.
    timeout : float, optional
        Request timeout in seconds. Falls back to ODATA_TIMEOUT (60).
    retries : int, optional
        Retry attempts. Falls back to ODATA_RETRIES (3).
    backoff : float, optional
        Retry backoff factor. Falls back to ODATA_BACKOFF (0.5).

    Without credentials the service is accessed anonymously.

    Examples
    --------
    >>> with ConnectionContext("https://services.odata.org/V4/Northwind/Northwind.svc/") as conn:
    ...     provider = conn.get_provider()
    ...     provider.get_resources()[:3]
    ['Categories', 'CustomerDemographics', 'Customers']
    """

    def __init__(
        self,
        service_url: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        bearer_token: Optional[str] = None,
        verify: Optional[bool] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        backoff: Optional[float] = None,
    ) -> None:
        self._service_url = (service_url or os.environ.get("ODATA_SERVICE_URL", "")).rstrip("/") + "/"
        self._user = user or os.environ.get("ODATA_USER", "")
        self._password = password or os.environ.get("ODATA_PASS", "")
        self._bearer_token = bearer_token or os.environ.get("ODATA_BEARER_TOKEN", "")

        if verify is not None:
            self._verify = verify
        else:
            self._verify = os.environ.get("ODATA_VERIFY_TLS", "true").lower() != "false"

        self._timeout = timeout if timeout is not None else float(os.environ.get("ODATA_TIMEOUT", "60"))
        self._retries = retries if retries is not None else int(os.environ.get("ODATA_RETRIES", "3"))
        self._backoff = backoff if backoff is not None else float(os.environ.get("ODATA_BACKOFF", "0.5"))

        if not self._service_url or self._service_url == "/":
            raise ValueError(
                "Missing service_url. Set ODATA_SERVICE_URL environment variable "
                "or pass service_url parameter."
            )
        if bool(self._user) != bool(self._password):
            raise ValueError("Basic auth needs both ODATA_USER and ODATA_PASS.")

        self._session: Optional[ODataSession] = None
        self._provider: Optional["ODataDataProvider"] = None

    @property
    def session(self) -> ODataSession:
        """Get or create the underlying OData session."""
        if self._session is None:
            self._session = self._build_session()
        return self._session

    def _auth(self) -> ODataAuth:
        if self._bearer_token:
            return ODataAuth("bearer", self._bearer_token)
        if self._user:
            return ODataAuth("basic", (self._user, self._password))
        return ODataAuth("none")

    def _build_session(self) -> ODataSession:
        cfg = ODataConfig(
            service_url=self._service_url,
            auth=self._auth(),
            verify=self._verify,
            timeout=self._timeout,
            retries=self._retries,
            backoff=self._backoff,
        )
        return ODataSession(cfg)

    def get_provider(self, options: Optional["OptionsHook"] = None) -> "ODataDataProvider":
        """
        Get the data provider for this service.

        The first call fetches $metadata; later calls reuse the provider.
        """
        # Import here to avoid circular imports
        from odata_provider.provider import ODataDataProvider
        if self._provider is None:
            self._provider = ODataDataProvider(self.session, options=options)
        return self._provider

    def close(self) -> None:
        """Close the connection."""
        if self._session is not None:
            self._session.close()
            self._session = None
        self._provider = None

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def service_url(self) -> str:
        """The configured service root."""
        return self._service_url
