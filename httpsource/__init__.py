from httpsource._cache import AsyncCacheProxy as AsyncCacheProxy
from httpsource._cancellation import CancellationController as CancellationController
from httpsource._datasource import (
    DEFAULT_TIMEOUT as DEFAULT_TIMEOUT,
    AsyncHTTPDataSource as AsyncHTTPDataSource,
    RequestDefaults as RequestDefaults,
)
from httpsource._exceptions import ErrorKind as ErrorKind, RequestError as RequestError
from httpsource._headers import CacheControl as CacheControl, Headers as Headers, parse_cache_control
from httpsource._hooks import Hooks as Hooks
from httpsource._keygen import KeyGenerator as KeyGenerator, generate_key as generate_key
from httpsource._models import (
    CacheEntry as CacheEntry,
    CacheStatus as CacheStatus,
    Request as Request,
    RequestOptions as RequestOptions,
    Response as Response,
)
from httpsource._packing import UnpackError as UnpackError, pack_entry as pack_entry, unpack_entry as unpack_entry
from httpsource._spec import (
    AnyState as AnyState,
    BypassStore as BypassStore,
    CacheMiss as CacheMiss,
    CacheOptions as CacheOptions,
    CouldNotBeStored as CouldNotBeStored,
    FromCache as FromCache,
    IdleClient as IdleClient,
    InvalidateEntry as InvalidateEntry,
    NeedRevalidation as NeedRevalidation,
    NeedToBeUpdated as NeedToBeUpdated,
    StaleOnError as StaleOnError,
    State as State,
    StoreAndUse as StoreAndUse,
)
from httpsource._storages import (
    AsyncBaseStore as AsyncBaseStore,
    AsyncInMemoryStore as AsyncInMemoryStore,
    AsyncRedisStore as AsyncRedisStore,
)
from httpsource._transport import AsyncBaseTransport as AsyncBaseTransport, AsyncHttpxTransport as AsyncHttpxTransport

__all__ = (
    ## Data source
    "AsyncHTTPDataSource",
    "RequestDefaults",
    "DEFAULT_TIMEOUT",
    "Hooks",
    ## States
    "AnyState",
    "IdleClient",
    "BypassStore",
    "CacheMiss",
    "FromCache",
    "NeedRevalidation",
    "NeedToBeUpdated",
    "InvalidateEntry",
    "StaleOnError",
    "State",
    "StoreAndUse",
    "CouldNotBeStored",
    "CacheOptions",
    "AsyncCacheProxy",
    ## Models
    "Request",
    "RequestOptions",
    "Response",
    "CacheEntry",
    "CacheStatus",
    "pack_entry",
    "unpack_entry",
    "UnpackError",
    ## Headers
    "Headers",
    "CacheControl",
    "parse_cache_control",
    ## Keys
    "KeyGenerator",
    "generate_key",
    ## Errors
    "ErrorKind",
    "RequestError",
    "CancellationController",
    ## Storages
    "AsyncBaseStore",
    "AsyncInMemoryStore",
    "AsyncRedisStore",
    ## Transports
    "AsyncBaseTransport",
    "AsyncHttpxTransport",
)
