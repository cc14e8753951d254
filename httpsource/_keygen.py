from __future__ import annotations

from typing import Callable

from httpsource._models import RequestOptions

KeyGenerator = Callable[[RequestOptions], str]


def generate_key(options: RequestOptions) -> str:
    """
    Default cache key: the upper-cased method and the normalised absolute URL.

    >>> generate_key(RequestOptions(method="get", base_url="https://API.example.com", path="/users", query={"a": 1}))
    'GET:https://api.example.com/users?a=1'
    """
    return f"{options.method.upper()}:{options.url}"
