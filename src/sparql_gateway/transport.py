"""
HTTP transport for the triple store REST protocol.

One call performs one HTTP exchange:
- attaches a Basic ``Authorization`` header when credentials are given
- invokes the not-authorized callback on 401/403, once per exchange
- raises RemoteError / TransportError on non-2xx responses
- decodes JSON, text or bytes bodies on success

GatewayTransport wraps ``httpx.Client``; AsyncGatewayTransport wraps
``httpx.AsyncClient``. Both share the header and response helpers below.
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Callable, Mapping, Optional, Tuple

import httpx

from sparql_gateway.config import DEFAULT_TIMEOUT_SECONDS
from sparql_gateway.errors import (
    AUTH_FAILURE_STATUSES,
    DecodeError,
    RemoteError,
    TransportError,
)

logger = logging.getLogger(__name__)

Credentials = Tuple[str, str]
Body = Optional[str | bytes]

CONTENT_SPARQL_QUERY = "application/sparql-query"
CONTENT_SPARQL_UPDATE = "application/sparql-update"
ACCEPT_JSON = "application/json"


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def build_headers(
    headers: Optional[Mapping[str, str]] = None,
    credentials: Optional[Credentials] = None,
) -> dict[str, str]:
    """Copy ``headers`` and add Basic auth when ``credentials`` are given."""
    result = dict(headers or {})
    if credentials:
        result["Authorization"] = basic_auth_header(*credentials)
    return result


def error_from_response(response: httpx.Response) -> RemoteError | TransportError:
    """Classify a non-success response; prefer the server's JSON message."""
    message = None
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("message"), str) and data["message"]:
        message = data["message"]
    if message is not None:
        return RemoteError(message, response.status_code)
    return TransportError(response.status_code)


def decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise DecodeError(
            f"Invalid JSON from {response.request.method} {response.request.url}: {e}"
        ) from e


class _TransportBase:
    """State and response checks shared by the sync and async transports."""

    def __init__(
        self,
        on_not_authorized: Optional[Callable[[], None]] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.on_not_authorized = on_not_authorized
        self.timeout = timeout

    def check_auth(self, response: httpx.Response) -> bool:
        """Invoke the not-authorized callback on 401/403. Returns False in that case."""
        if response.status_code in AUTH_FAILURE_STATUSES:
            logger.warning(
                f"Not authorized: {response.request.method} {response.request.url} "
                f"-> {response.status_code}"
            )
            if self.on_not_authorized is not None:
                self.on_not_authorized()
            return False
        return True

    def _finish(self, response: httpx.Response) -> httpx.Response:
        logger.debug(
            f"{response.request.method} {response.request.url} -> {response.status_code}"
        )
        self.check_auth(response)
        if not response.is_success:
            raise error_from_response(response)
        return response

    @staticmethod
    def _network_error(method: str, url: str, error: httpx.HTTPError) -> TransportError:
        logger.warning(f"{method} {url} failed: {error}")
        return TransportError(None, f"Request to {url} failed: {error}")


class GatewayTransport(_TransportBase):
    """
    Blocking transport over ``httpx.Client``.

    Usage:
        transport = GatewayTransport(on_not_authorized=prompt_login)
        data = transport.request_json("GET", url, headers={"Accept": "application/json"})
    """

    def __init__(
        self,
        on_not_authorized: Optional[Callable[[], None]] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(on_not_authorized, timeout)
        self._client = httpx.Client(timeout=timeout, transport=http_transport)

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        credentials: Optional[Credentials] = None,
        params: Optional[Mapping[str, Any]] = None,
        content: Body = None,
    ) -> httpx.Response:
        try:
            response = self._client.request(
                method,
                url,
                headers=build_headers(headers, credentials),
                params=params,
                content=content,
            )
        except httpx.HTTPError as e:
            raise self._network_error(method, url, e) from e
        return self._finish(response)

    def request_json(self, method: str, url: str, **kwargs) -> Any:
        return decode_json(self.request(method, url, **kwargs))

    def request_text(self, method: str, url: str, **kwargs) -> str:
        return self.request(method, url, **kwargs).text

    def request_bytes(self, method: str, url: str, **kwargs) -> bytes:
        return self.request(method, url, **kwargs).content

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GatewayTransport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class AsyncGatewayTransport(_TransportBase):
    """Non-blocking transport over ``httpx.AsyncClient``."""

    def __init__(
        self,
        on_not_authorized: Optional[Callable[[], None]] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(on_not_authorized, timeout)
        self._client = httpx.AsyncClient(timeout=timeout, transport=http_transport)

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        credentials: Optional[Credentials] = None,
        params: Optional[Mapping[str, Any]] = None,
        content: Body = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                url,
                headers=build_headers(headers, credentials),
                params=params,
                content=content,
            )
        except httpx.HTTPError as e:
            raise self._network_error(method, url, e) from e
        return self._finish(response)

    async def request_json(self, method: str, url: str, **kwargs) -> Any:
        return decode_json(await self.request(method, url, **kwargs))

    async def request_text(self, method: str, url: str, **kwargs) -> str:
        return (await self.request(method, url, **kwargs)).text

    async def request_bytes(self, method: str, url: str, **kwargs) -> bytes:
        return (await self.request(method, url, **kwargs)).content

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncGatewayTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
