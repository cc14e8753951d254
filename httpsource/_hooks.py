from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from httpsource._keygen import KeyGenerator, generate_key
from httpsource._models import RequestOptions

BeforeRequestHook = Callable[[RequestOptions], Union[None, Awaitable[None]]]
RequestErrorHook = Callable[[Exception, Optional[RequestOptions]], Union[None, Awaitable[None]]]


def before_request_noop(options: RequestOptions) -> None:
    return None


def request_error_noop(error: Exception, options: Optional[RequestOptions]) -> None:
    return None


@dataclass
class Hooks:
    """
    Extension points invoked by a data source at fixed points of a request.

    on_before_request:
        Called with the freshly built :class:`RequestOptions` before the cache
        key is computed. May mutate the options and may be a coroutine
        function.
    on_cache_key_calculation:
        Pure function mapping options to a cache key. Returning the same key
        for different requests makes them share one cache slot. ``None``
        disables caching and memoisation.
    on_request_error:
        Called with every error before it reaches the caller, together with
        the request options when they exist. Store failures are reported here
        too, without failing the request. May be a coroutine function; its own
        failures are logged and never replace the original error.
    """

    on_before_request: BeforeRequestHook = before_request_noop
    on_cache_key_calculation: Optional[KeyGenerator] = generate_key
    on_request_error: RequestErrorHook = request_error_noop
