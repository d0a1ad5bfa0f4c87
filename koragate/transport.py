"""
Kora Gate SDK - HTTP transport.

A transport performs exactly one HTTP exchange and never raises for network
problems: it returns a TransportFailure instead, so the classifier sees every
way a call can end. There is no retry loop at this layer.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx

logger = logging.getLogger("koragate.transport")


@dataclass
class TransportResult:
    """An HTTP response. ``body`` is the decoded JSON, or None if it was not JSON."""

    status_code: int
    body: Any = None
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_json(self) -> bool:
        return self.body is not None


@dataclass
class TransportFailure:
    """The service could not be reached (refused, timeout, DNS, broken connection)."""

    reason: str
    detail: str = ""


SendResult = Union[TransportResult, TransportFailure]


def _failure_reason(exc: httpx.TransportError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"
    if isinstance(exc, httpx.ConnectError):
        return "connection_error"
    if isinstance(exc, httpx.NetworkError):
        return "network_error"
    return "transport_error"


def _to_result(response: httpx.Response) -> TransportResult:
    body: Any = None
    if response.content:
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
    return TransportResult(
        status_code=response.status_code,
        body=body,
        text=response.text if response.content else "",
        headers=dict(response.headers),
    )


class Transport(ABC):
    """Synchronous transport capability."""

    @abstractmethod
    def send(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> SendResult:
        """Perform one request."""

    def close(self) -> None:
        pass


class AsyncTransport(ABC):
    """Asynchronous transport capability."""

    @abstractmethod
    async def send(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> SendResult:
        """Perform one request."""

    async def aclose(self) -> None:
        pass


class HttpxTransport(Transport):
    """Transport backed by ``httpx.Client``."""

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> SendResult:
        try:
            response = self._client.request(method, url, headers=headers, content=body)
        except httpx.TransportError as e:
            reason = _failure_reason(e)
            logger.warning("%s %s failed: %s (%s)", method, url, reason, e)
            return TransportFailure(reason=reason, detail=str(e) or type(e).__name__)
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return _to_result(response)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class AsyncHttpxTransport(AsyncTransport):
    """Transport backed by ``httpx.AsyncClient``."""

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> SendResult:
        try:
            response = await self._client.request(method, url, headers=headers, content=body)
        except httpx.TransportError as e:
            reason = _failure_reason(e)
            logger.warning("%s %s failed: %s (%s)", method, url, reason, e)
            return TransportFailure(reason=reason, detail=str(e) or type(e).__name__)
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return _to_result(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
