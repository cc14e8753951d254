from __future__ import annotations

import json
import logging
import typing as tp
from dataclasses import dataclass, field, replace
from functools import partial

import anyio

from httpsource._cache import AsyncCacheProxy
from httpsource._cancellation import CancellationController
from httpsource._exceptions import RequestError, error_from_response, error_from_transport
from httpsource._headers import Headers
from httpsource._hooks import Hooks
from httpsource._lfu_cache import LFUCache
from httpsource._models import Body, CacheStatus, QueryParams, Request, RequestOptions, Response
from httpsource._spec import CacheOptions, forbids_reuse, request_bypasses_store
from httpsource._storages import AsyncBaseStore
from httpsource._transport import AsyncBaseTransport, AsyncHttpxTransport
from httpsource._utils import maybe_await

logger = logging.getLogger("httpsource.datasource")

__all__ = ("AsyncHTTPDataSource", "RequestDefaults", "DEFAULT_TIMEOUT")

DEFAULT_TIMEOUT = 30.0


@dataclass
class RequestDefaults:
    """
    Values applied to every request of a data source.

    Call-site arguments win over these: headers and query parameters are
    merged by name, ``timeout`` and ``cache_options`` are replaced.
    """

    headers: tp.Mapping[str, str] = field(default_factory=dict)
    query: QueryParams = field(default_factory=dict)
    timeout: tp.Optional[float] = None
    cache_options: CacheOptions = field(default_factory=CacheOptions)


class AsyncHTTPDataSource:
    """
    A client for one remote HTTP API with RFC 9111 caching.

    Every call builds fresh :class:`RequestOptions`, lets the
    ``on_before_request`` hook adjust them, then serves the response from
    the per-instance memo, the injected store or the network, in that
    order. 4xx and 5xx responses raise :class:`RequestError`.

    Args:
        base_url: Prefix joined with every request path.
        defaults: Headers, query parameters, timeout and cache policy used
            by every request.
        hooks: Request, cache key and error hooks.
        transport: Sends the requests. Defaults to an
            :class:`AsyncHttpxTransport` owned by this data source.
        memoize: Whether successful GET responses are kept for the lifetime
            of the instance.
        memoize_capacity: Maximum number of memoised responses.

    Example:
        ```python
        async with AsyncHTTPDataSource("https://api.example.com") as source:
            source.initialize(cache=AsyncInMemoryStore())
            response = await source.get("/users/1")
            print(response.body)
        ```
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        defaults: tp.Optional[RequestDefaults] = None,
        hooks: tp.Optional[Hooks] = None,
        transport: tp.Optional[AsyncBaseTransport] = None,
        memoize: bool = True,
        memoize_capacity: int = 128,
    ) -> None:
        self.base_url = base_url
        self.defaults = defaults or RequestDefaults()
        self.hooks = hooks or Hooks()
        self._owns_transport = transport is None
        self._transport = transport or AsyncHttpxTransport()
        self._memo: tp.Optional[LFUCache[str, Response]] = LFUCache(memoize_capacity) if memoize else None
        self._controller = CancellationController()
        self.context: tp.Any = None
        self.store: tp.Optional[AsyncBaseStore] = None

    def initialize(self, context: tp.Any = None, cache: tp.Optional[AsyncBaseStore] = None) -> None:
        """
        Attach the host's per-request context and the shared store.

        Either may be omitted. Without a store every request goes to the
        network, though successful GETs are still memoised.
        """
        self.context = context
        self.store = cache

    @property
    def cancelled(self) -> bool:
        return self._controller.cancelled

    def abort(self) -> None:
        """
        Cancel every in-flight request and refuse all later ones.

        Affected calls raise a ``CANCELLED`` :class:`RequestError`.
        """
        self._controller.abort()

    async def get(
        self,
        path: str,
        *,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
        query: tp.Optional[QueryParams] = None,
        timeout: tp.Optional[float] = None,
        cache_options: tp.Optional[CacheOptions] = None,
    ) -> Response:
        return await self.request(
            "GET", path, headers=headers, query=query, timeout=timeout, cache_options=cache_options
        )

    async def head(
        self,
        path: str,
        *,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
        query: tp.Optional[QueryParams] = None,
        timeout: tp.Optional[float] = None,
        cache_options: tp.Optional[CacheOptions] = None,
    ) -> Response:
        return await self.request(
            "HEAD", path, headers=headers, query=query, timeout=timeout, cache_options=cache_options
        )

    async def options(
        self,
        path: str,
        *,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
        query: tp.Optional[QueryParams] = None,
        timeout: tp.Optional[float] = None,
    ) -> Response:
        return await self.request("OPTIONS", path, headers=headers, query=query, timeout=timeout)

    async def delete(
        self,
        path: str,
        *,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
        query: tp.Optional[QueryParams] = None,
        body: Body = None,
        timeout: tp.Optional[float] = None,
    ) -> Response:
        return await self.request("DELETE", path, headers=headers, query=query, body=body, timeout=timeout)

    async def post(
        self,
        path: str,
        *,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
        query: tp.Optional[QueryParams] = None,
        body: Body = None,
        timeout: tp.Optional[float] = None,
    ) -> Response:
        return await self.request("POST", path, headers=headers, query=query, body=body, timeout=timeout)

    async def put(
        self,
        path: str,
        *,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
        query: tp.Optional[QueryParams] = None,
        body: Body = None,
        timeout: tp.Optional[float] = None,
    ) -> Response:
        return await self.request("PUT", path, headers=headers, query=query, body=body, timeout=timeout)

    async def patch(
        self,
        path: str,
        *,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
        query: tp.Optional[QueryParams] = None,
        body: Body = None,
        timeout: tp.Optional[float] = None,
    ) -> Response:
        return await self.request("PATCH", path, headers=headers, query=query, body=body, timeout=timeout)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: tp.Optional[tp.Mapping[str, str]] = None,
        query: tp.Optional[QueryParams] = None,
        body: Body = None,
        timeout: tp.Optional[float] = None,
        cache_options: tp.Optional[CacheOptions] = None,
    ) -> Response:
        options = self._build_options(method, path, headers, query, body, timeout, cache_options)
        try:
            return await self._dispatch(options)
        except Exception as exc:
            if isinstance(exc, RequestError) and exc.request is None:
                exc.request = options
            await self._report_error(exc, options)
            raise

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> "AsyncHTTPDataSource":
        return self

    async def __aexit__(self, *args: tp.Any) -> None:
        await self.aclose()

    def _build_options(
        self,
        method: str,
        path: str,
        headers: tp.Optional[tp.Mapping[str, str]],
        query: tp.Optional[QueryParams],
        body: Body,
        timeout: tp.Optional[float],
        cache_options: tp.Optional[CacheOptions],
    ) -> RequestOptions:
        merged_headers = Headers(self.defaults.headers)
        if headers:
            merged_headers.update(headers)

        # hooks may mutate the options, so they get their own cache policy
        cache_options = cache_options or self.defaults.cache_options
        cache_options = replace(cache_options, supported_methods=list(cache_options.supported_methods))

        return RequestOptions(
            method=method.upper(),
            path=path,
            base_url=self.base_url,
            headers=merged_headers,
            query={**self.defaults.query, **(query or {})},
            body=body,
            timeout=self._resolve_timeout(timeout),
            cache_options=cache_options,
            context=self.context,
        )

    def _resolve_timeout(self, timeout: tp.Optional[float]) -> float:
        if timeout is not None:
            return timeout
        if self.defaults.timeout is not None:
            return self.defaults.timeout
        return DEFAULT_TIMEOUT

    async def _dispatch(self, options: RequestOptions) -> Response:
        self._controller.raise_if_cancelled()
        await maybe_await(self.hooks.on_before_request(options))
        # abort() may have been called while an async hook was pending
        self._controller.raise_if_cancelled()

        key_generator = self.hooks.on_cache_key_calculation
        key = key_generator(options) if key_generator is not None else None

        request = build_request(options)
        cache_options = options.cache_options or self.defaults.cache_options

        memo_key = None
        if key is not None and self._memo is not None and request.method == "GET":
            if not request_bypasses_store(request, cache_options):
                memo_key = key

        if memo_key is not None and self._memo is not None and memo_key in self._memo:
            logger.debug(f"Serving {memo_key!r} from the request memo")
            return replace(self._memo.get(memo_key), cache_status=CacheStatus.MEMOIZED)

        timeout = self._resolve_timeout(options.timeout)
        send_request = partial(self._send, options=options, timeout=timeout)

        with self._controller.scope():
            if key is None:
                logger.debug(f"No cache key for {request.method} {request.url}, bypassing the store")
                response = replace(await send_request(request), cache_status=CacheStatus.BYPASS)
            else:
                proxy = AsyncCacheProxy(
                    send_request,
                    storage=self.store,
                    token=self._controller,
                    on_store_error=partial(self._report_error, options=options),
                )
                response = await proxy.handle_request(request, key, cache_options)

        if not response.is_success:
            raise error_from_response(response, options)

        if memo_key is not None and self._memo is not None and not forbids_reuse(response, cache_options):
            self._memo.put(memo_key, response)

        return response

    async def _send(self, request: Request, *, options: RequestOptions, timeout: float) -> Response:
        with anyio.move_on_after(timeout) as timeout_scope:
            try:
                return await self._transport.execute(request, timeout=timeout, token=self._controller)
            except RequestError:
                raise
            except Exception as exc:
                raise error_from_transport(exc, timeout, request=options, wire_request=request) from exc

        assert timeout_scope.cancelled_caught
        raise RequestError.timeout(timeout, request=options)

    async def _report_error(self, error: Exception, options: tp.Optional[RequestOptions]) -> None:
        try:
            await maybe_await(self.hooks.on_request_error(error, options))
        except Exception:
            logger.exception("The request error hook failed")


def build_request(options: RequestOptions) -> Request:
    """
    Turn request options into the immutable request handed to the transport.

    JSON-able bodies are encoded and get an ``application/json`` content type
    unless one is already set.
    """
    headers = Headers(options.headers)
    body = options.body
    content: tp.Optional[bytes]

    if body is None:
        content = None
    elif isinstance(body, bytes):
        content = body
    elif isinstance(body, str):
        content = body.encode("utf-8")
    else:
        if "content-type" not in headers:
            headers["content-type"] = "application/json"
        content = json.dumps(body).encode("utf-8")

    return Request(method=options.method.upper(), url=options.url, headers=headers, content=content)
