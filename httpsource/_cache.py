from __future__ import annotations

import logging
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from typing_extensions import assert_never

from httpsource._cancellation import CancellationController
from httpsource._exceptions import ErrorKind, RequestError
from httpsource._models import CacheEntry, CacheStatus, Request, Response
from httpsource._packing import pack_entry, unpack_entry
from httpsource._spec import (
    AnyState,
    BypassStore,
    CacheMiss,
    CacheOptions,
    CouldNotBeStored,
    FromCache,
    IdleClient,
    InvalidateEntry,
    NeedRevalidation,
    NeedToBeUpdated,
    StaleOnError,
    StoreAndUse,
    request_bypasses_store,
)
from httpsource._storages import AsyncBaseStore

logger = logging.getLogger("httpsource.cache")

# failures a stale entry may stand in for under stale-if-error
NETWORK_FAILURE_KINDS = frozenset([ErrorKind.TRANSPORT, ErrorKind.TIMEOUT])


class AsyncCacheProxy:
    """
    Drives the cache state machine for one request at a time.

    The proxy knows nothing about HTTP clients: it sends requests through
    ``request_sender`` and reads and writes packed entries through
    ``storage``. Store failures never fail the request: a failed read counts
    as a miss, a failed write or delete is reported to ``on_store_error``.

    Args:
        request_sender: Coroutine function sending a request. It returns
            responses of any status and raises :class:`RequestError` for
            failures without a response.
        storage: Store for packed entries. Without one every request is a miss.
        token: Cancellation token checked around every store operation.
        on_store_error: Coroutine function receiving store failures.
    """

    def __init__(
        self,
        request_sender: Callable[[Request], Awaitable[Response]],
        storage: Optional[AsyncBaseStore],
        token: CancellationController,
        on_store_error: Optional[Callable[[Exception], Awaitable[None]]] = None,
    ) -> None:
        self.send_request = request_sender
        self.storage = storage
        self.token = token
        self.on_store_error = on_store_error

    async def handle_request(self, request: Request, key: str, options: CacheOptions) -> Response:
        state: AnyState = IdleClient(options=options)

        while state:
            logger.debug(f"Handling state: {state.__class__.__name__}")
            if isinstance(state, IdleClient):
                state = await self._handle_idle_state(state, request, key)
            elif isinstance(state, (BypassStore, CacheMiss)):
                state = state.next(await self.send_request(state.request))
            elif isinstance(state, StoreAndUse):
                return await self._handle_store_and_use(state, key)
            elif isinstance(state, CouldNotBeStored):
                return replace(state.response, cache_status=state.status)
            elif isinstance(state, NeedRevalidation):
                state = await self._handle_revalidation(state)
            elif isinstance(state, NeedToBeUpdated):
                await self._save_entry(key, state.entry)
                state = state.next()
            elif isinstance(state, InvalidateEntry):
                await self._delete_entry(key)
                state = state.next()
            elif isinstance(state, FromCache):
                return replace(state.entry.response, cache_status=state.status)
            elif isinstance(state, StaleOnError):
                return replace(state.entry.response, cache_status=CacheStatus.STALE)
            else:
                assert_never(state)

        raise RuntimeError("Unreachable")

    async def _handle_idle_state(self, state: IdleClient, request: Request, key: str) -> AnyState:
        if request_bypasses_store(request, state.options):
            return BypassStore(request=request, options=state.options)
        return state.next(request, await self._load_entry(key))

    async def _handle_store_and_use(self, state: StoreAndUse, key: str) -> Response:
        if self.storage is None:
            return replace(state.entry.response, cache_status=CacheStatus.MISS)
        if not await self._save_entry(key, state.entry):
            return replace(state.entry.response, cache_status=CacheStatus.MISS)
        return state.entry.response

    async def _handle_revalidation(self, state: NeedRevalidation) -> AnyState:
        try:
            revalidation_response = await self.send_request(state.request)
        except RequestError as exc:
            if exc.kind not in NETWORK_FAILURE_KINDS:
                raise
            stale = state.next_on_error()
            if stale is None:
                raise
            logger.debug(f"Revalidation failed ({exc.kind.name}), serving the stored response")
            return stale
        return state.next(revalidation_response)

    async def _load_entry(self, key: str) -> Optional[CacheEntry]:
        if self.storage is None:
            return None

        self.token.raise_if_cancelled()
        try:
            value = await self.storage.get(key)
        except Exception as exc:
            logger.warning(f"Failed to read {key!r} from the store, treating it as a miss: {exc!r}")
            await self._report(exc)
            return None
        self.token.raise_if_cancelled()

        if value is None:
            return None

        try:
            return unpack_entry(value)
        except ValueError as exc:
            logger.warning(f"Ignoring an unreadable store value for {key!r}: {exc}")
            return None

    async def _save_entry(self, key: str, entry: CacheEntry) -> bool:
        if self.storage is None:
            return False

        self.token.raise_if_cancelled()
        try:
            await self.storage.set(key, pack_entry(entry), entry.time_to_live())
        except Exception as exc:
            logger.warning(f"Failed to write {key!r} to the store: {exc!r}")
            await self._report(exc)
            return False
        self.token.raise_if_cancelled()
        return True

    async def _delete_entry(self, key: str) -> None:
        if self.storage is None:
            return

        self.token.raise_if_cancelled()
        try:
            await self.storage.delete(key)
        except Exception as exc:
            logger.warning(f"Failed to delete {key!r} from the store: {exc!r}")
            await self._report(exc)
        self.token.raise_if_cancelled()

    async def _report(self, exc: Exception) -> None:
        if self.on_store_error is not None:
            await self.on_store_error(exc)
