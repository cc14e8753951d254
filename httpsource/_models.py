from __future__ import annotations

import enum
import json
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

import httpx

from httpsource._headers import Headers, parse_cache_control

if TYPE_CHECKING:
    from httpsource._spec import CacheOptions

Body = Union[bytes, str, Mapping[str, Any], list, None]
QueryParams = Mapping[str, Any]


class CacheStatus(str, enum.Enum):
    """How a response was produced."""

    MISS = "miss"
    """Fetched from the origin and not stored."""

    STORED = "stored"
    """Fetched from the origin and written to the store."""

    BYPASS = "bypass"
    """Fetched from the origin without consulting the store."""

    HIT = "hit"
    """Served from a fresh stored entry."""

    MEMOIZED = "memoized"
    """Served from the data source's own request memo."""

    REVALIDATED = "revalidated"
    """Served from a stored entry the origin confirmed with a 304."""

    STALE = "stale"
    """Served from an expired stored entry because the origin failed (stale-if-error)."""


FROM_CACHE_STATUSES = frozenset([CacheStatus.HIT, CacheStatus.MEMOIZED, CacheStatus.REVALIDATED, CacheStatus.STALE])


@dataclass
class RequestOptions:
    """
    Mutable description of one call.

    A fresh instance is built for every request and handed to the
    ``on_before_request`` hook, which may change anything on it before the
    cache key is computed and the request is sent.
    """

    method: str
    path: str
    base_url: str = ""
    headers: Headers = field(default_factory=Headers)
    query: dict[str, Any] = field(default_factory=dict)
    body: Body = None
    timeout: Optional[float] = None
    cache_options: Optional[CacheOptions] = None
    context: Any = None

    @property
    def url(self) -> str:
        url = httpx.URL(self.base_url).join(self.path) if self.base_url else httpx.URL(self.path)
        if self.query:
            url = url.copy_merge_params(self.query)
        return str(url)


@dataclass(frozen=True)
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    content: Optional[bytes] = None


@dataclass(frozen=True)
class Response:
    status_code: int
    headers: Headers = field(default_factory=Headers)
    content: bytes = b""
    cache_status: CacheStatus = CacheStatus.MISS

    @property
    def is_from_cache(self) -> bool:
        return self.cache_status in FROM_CACHE_STATUSES

    @property
    def reason_phrase(self) -> str:
        return httpx.codes.get_reason_phrase(self.status_code)

    @property
    def is_success(self) -> bool:
        return self.status_code < 400

    @property
    def text(self) -> str:
        return self._as_httpx().text

    def json(self) -> Any:
        return self._as_httpx().json()

    @property
    def body(self) -> Any:
        """The JSON-decoded body for JSON content types, the text otherwise, ``None`` when empty."""
        if not self.content:
            return None
        content_type = self.headers.get("content-type", "")
        if "json" in content_type.lower():
            try:
                return self.json()
            except json.JSONDecodeError:
                return self.text
        return self.text

    def _as_httpx(self) -> httpx.Response:
        return httpx.Response(self.status_code, headers=self.headers.multi_items(), content=self.content)


@dataclass
class CacheEntry:
    """
    A stored response plus everything needed to judge its freshness offline.

    ``stored_at`` is the epoch time the response was received or last
    revalidated, ``initial_age`` the value of its ``Age`` header at that time.
    """

    request: Request
    response: Response
    freshness_lifetime: float
    stored_at: float = field(default_factory=time.time)
    initial_age: float = 0

    @property
    def etag(self) -> Optional[str]:
        return self.response.headers.get("etag")

    @property
    def last_modified(self) -> Optional[str]:
        return self.response.headers.get("last-modified")

    def age(self, now: Optional[float] = None) -> float:
        now = time.time() if now is None else now
        return max(0.0, now - self.stored_at) + self.initial_age

    def is_fresh(self, now: Optional[float] = None) -> bool:
        return self.age(now) < self.freshness_lifetime

    def stale_if_error_window(self) -> int:
        return parse_cache_control(self.response.headers.get("cache-control")).stale_if_error or 0

    def time_to_live(self, now: Optional[float] = None) -> Optional[float]:
        """
        How long a store should keep this entry, or ``None`` for no limit.

        The entry stays useful until it is fresh no more and neither
        ``stale-if-error`` nor ``stale-while-revalidate`` can extend it.
        """
        cache_control = parse_cache_control(self.response.headers.get("cache-control"))
        remaining = self.freshness_lifetime - self.age(now)
        extension = max(cache_control.stale_if_error or 0, cache_control.stale_while_revalidate or 0)
        ttl = max(0.0, remaining, remaining + extension)
        return ttl or None
