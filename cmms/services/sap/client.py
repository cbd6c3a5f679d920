"""HTTP client for the SAP PM OData gateway.

Provides:
- Bearer token authentication against ``/auth/token``
- Automatic re-authentication before a call when the token is missing or
  within five minutes of expiry
- A single in-flight token refresh shared by concurrent callers
- Typed errors carrying the request path and HTTP status

Usage:
    session = SapSession()
    async with SapClient(
        base_url="https://sap.example.com",
        client_id="cmms",
        username="svc-cmms",
        password="...",
        session=session,
    ) as client:
        payload = await client.get("/API_EQUIPMENT/Equipment('EQP-1042')")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from cmms.config import settings
from cmms.services.sap import endpoints

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_SECONDS = 3600
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)


class SapError(Exception):
    """Base exception for SAP client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        path: str | None = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.path = path
        self.response = response


class SapConfigurationError(SapError):
    """SAP connection settings are incomplete."""


class SapAuthenticationError(SapError):
    """Credential exchange failed or returned a malformed response."""


class SapRequestError(SapError):
    """Transport or HTTP failure on a gateway request."""


class SapNotFoundError(SapRequestError):
    """Entity not found (404)."""


@dataclass
class SapSession:
    """Bearer token state shared by every client built on it."""

    token: str | None = None
    expires_at: datetime | None = None
    _refresh: asyncio.Future | None = field(default=None, init=False, repr=False, compare=False)

    def is_expired(self, now: datetime | None = None) -> bool:
        if not self.token or self.expires_at is None:
            return True
        now = now or datetime.now(UTC)
        return self.expires_at - now < TOKEN_REFRESH_MARGIN

    def store(self, token: str, expires_in: int) -> None:
        self.token = token
        self.expires_at = datetime.now(UTC) + timedelta(seconds=expires_in)

    def clear(self) -> None:
        self.token = None
        self.expires_at = None

    async def ensure(self, authenticate: Callable[[], Awaitable[None]]) -> None:
        """Make sure a usable token is held, authenticating at most once at a time.

        Callers that observe an expired token while a refresh is already
        running await that refresh instead of starting their own. A failed
        refresh is raised to every waiting caller.
        """
        if not self.is_expired():
            return
        refresh = self._refresh
        if refresh is None or refresh.done():
            refresh = asyncio.ensure_future(authenticate())
            self._refresh = refresh
            refresh.add_done_callback(self._refresh_finished)
        await asyncio.shield(refresh)

    def _refresh_finished(self, refresh: asyncio.Future) -> None:
        if self._refresh is refresh:
            self._refresh = None
        if not refresh.cancelled():
            # mark retrieved; waiters already received it
            refresh.exception()


def _coerce_ttl(value: Any) -> int:
    try:
        ttl = int(value)
    except (TypeError, ValueError):
        return DEFAULT_TOKEN_TTL_SECONDS
    return ttl if ttl > 0 else DEFAULT_TOKEN_TTL_SECONDS


def _error_message(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, dict):
            return message.get("value")
        if message:
            return str(message)
    return data.get("message") or data.get("detail")


class SapClient:
    """
    Async HTTP client for the SAP PM OData gateway.

    Attributes:
        base_url: SAP host URL (e.g., https://sap.example.com)
        gateway: OData gateway prefix prepended to every entity path
        timeout: Per-request timeout in seconds
        session: Token state, injected so several clients can share it
    """

    DEFAULT_TIMEOUT = 30.0
    DEFAULT_GATEWAY = "/sap/opu/odata/sap"

    def __init__(
        self,
        base_url: str,
        client_id: str,
        username: str,
        password: str,
        gateway: str = DEFAULT_GATEWAY,
        timeout: float = DEFAULT_TIMEOUT,
        session: SapSession | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.gateway = "/" + gateway.strip("/") if gateway.strip("/") else ""
        self.client_id = client_id
        self.username = username
        self.password = password
        self.timeout = timeout
        self.session = session if session is not None else SapSession()
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "User-Agent": "CMMS-SAP-Sync/1.0",
                },
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def authenticate(self) -> None:
        """Exchange the configured credentials for a bearer token.

        Raises:
            SapAuthenticationError: On transport failure, HTTP error, or a
                response without ``access_token``.
        """
        payload = {
            "client_id": self.client_id,
            "username": self.username,
            "password": self.password,
            "grant_type": "password",
        }
        try:
            response = await self._get_client().post(endpoints.AUTH_TOKEN, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise SapAuthenticationError(
                f"Failed to authenticate with SAP: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                path=endpoints.AUTH_TOKEN,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise SapAuthenticationError(
                f"Failed to authenticate with SAP: {e}",
                path=endpoints.AUTH_TOKEN,
            ) from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise SapAuthenticationError(
                "Authentication failed: invalid response from SAP",
                path=endpoints.AUTH_TOKEN,
                response=data,
            )
        self.session.store(str(token), _coerce_ttl(data.get("expires_in")))
        logger.info("sap_authenticated expires_at=%s", self.session.expires_at.isoformat())

    async def _before_request(self) -> None:
        """Pre-call hook: authenticate first when the held token is unusable."""
        await self.session.ensure(self.authenticate)

    def _handle_response(self, response: httpx.Response, path: str) -> Any:
        status_code = response.status_code

        if status_code == 404:
            raise SapNotFoundError(f"Resource not found: {path}", status_code=404, path=path)

        if status_code >= 400:
            try:
                data = response.json() if response.content else None
            except ValueError:
                data = None
            if status_code == 401:
                # Token revoked server-side; force a fresh login on the next call.
                self.session.clear()
            error_msg = _error_message(data) or response.text
            logger.warning("sap_api_error status=%s path=%s", status_code, path)
            raise SapRequestError(
                f"API error ({status_code}): {error_msg}",
                status_code=status_code,
                path=path,
                response=data,
            )

        if status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise SapRequestError(
                f"Invalid JSON response from {path}",
                status_code=status_code,
                path=path,
            ) from e

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json_data: dict | None = None,
    ) -> Any:
        """
        Make an authenticated gateway request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: Entity path relative to the gateway
            params: Query parameters (e.g. ``$filter``)
            json_data: JSON body for POST/PUT

        Returns:
            Parsed JSON response, or None for an empty body
        """
        await self._before_request()
        try:
            response = await self._get_client().request(
                method,
                f"{self.gateway}{path}",
                params=params,
                json=json_data,
                headers={"Authorization": f"Bearer {self.session.token}"},
            )
        except httpx.TimeoutException as e:
            raise SapRequestError(f"Request timeout: {e}", path=path) from e
        except httpx.RequestError as e:
            raise SapRequestError(f"Request failed: {e}", path=path) from e
        return self._handle_response(response, path)

    async def get(self, path: str, params: dict | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, body: dict) -> Any:
        return await self._request("POST", path, json_data=body)

    async def put(self, path: str, body: dict) -> Any:
        return await self._request("PUT", path, json_data=body)

    async def delete(self, path: str) -> Any:
        return await self._request("DELETE", path)

    async def test_connection(self) -> bool:
        """Test gateway reachability and authentication."""
        try:
            await self.get(endpoints.EQUIPMENT, params={"$top": 1})
            return True
        except SapError as e:
            logger.error("SAP connection test failed: %s", e)
            return False


def build_sap_client(
    session: SapSession | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> SapClient:
    """Build a client from application settings.

    Raises:
        SapConfigurationError: If the base URL or any credential is missing.
    """
    missing = [
        name
        for name, value in (
            ("SAP_API_URL", settings.sap_api_url),
            ("SAP_CLIENT_ID", settings.sap_client_id),
            ("SAP_API_USERNAME", settings.sap_username),
            ("SAP_API_PASSWORD", settings.sap_password),
        )
        if not value
    ]
    if missing:
        raise SapConfigurationError(f"SAP integration not configured (missing {', '.join(missing)})")
    return SapClient(
        base_url=settings.sap_api_url,
        client_id=settings.sap_client_id,
        username=settings.sap_username,
        password=settings.sap_password,
        gateway=settings.sap_gateway,
        timeout=settings.sap_timeout_seconds,
        session=session,
        http_client=http_client,
    )
