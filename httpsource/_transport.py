from __future__ import annotations

import abc
import typing as t

import httpx

from httpsource._cancellation import CancellationController
from httpsource._headers import Headers
from httpsource._models import Request, Response

__all__ = ("AsyncBaseTransport", "AsyncHttpxTransport")

# headers that describe the wire encoding of a body we hand out already decoded
DECODED_BODY_HEADERS = ("content-encoding", "transfer-encoding")


class AsyncBaseTransport(abc.ABC):
    """
    Sends one request and returns the complete response.

    Implementations return 4xx/5xx responses normally; they raise only for
    failures that produced no response. The data source enforces the timeout
    and cancellation on top; ``timeout`` and ``token`` are passed so the
    transport can apply them to its own I/O as well.
    """

    @abc.abstractmethod
    async def execute(self, request: Request, *, timeout: float, token: CancellationController) -> Response:
        raise NotImplementedError()

    async def aclose(self) -> None:
        return None


class AsyncHttpxTransport(AsyncBaseTransport):
    """
    Transport backed by :class:`httpx.AsyncClient`.

    Either pass a configured ``client`` (its lifetime stays with the caller
    unless ``owns_client=True``) or keyword arguments for a new one.
    """

    def __init__(self, client: t.Optional[httpx.AsyncClient] = None, owns_client: bool = False, **client_kwargs: t.Any) -> None:
        if client is None:
            client = httpx.AsyncClient(**client_kwargs)
            owns_client = True
        self._client = client
        self._owns_client = owns_client

    async def execute(self, request: Request, *, timeout: float, token: CancellationController) -> Response:
        token.raise_if_cancelled()
        httpx_response = await self._client.request(
            request.method,
            request.url,
            headers=request.headers.multi_items(),
            content=request.content,
            timeout=timeout,
        )
        token.raise_if_cancelled()
        return _httpx_to_internal(httpx_response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _httpx_to_internal(value: httpx.Response) -> Response:
    content = value.content
    headers = Headers([(key, val) for key, val in value.headers.multi_items() if key.lower() not in DECODED_BODY_HEADERS])
    if "content-length" in headers:
        headers["content-length"] = str(len(content))
    return Response(status_code=value.status_code, headers=headers, content=content)
