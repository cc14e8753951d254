from __future__ import annotations

from typing import Any, cast

import msgpack

from httpsource._headers import Headers
from httpsource._models import CacheEntry, CacheStatus, Request, Response

__all__ = ("pack_entry", "unpack_entry", "UnpackError")

PACKING_VERSION = 1


class UnpackError(ValueError):
    """The stored value is not a cache entry this version can read."""


def pack_entry(entry: CacheEntry) -> bytes:
    return cast(
        bytes,
        msgpack.packb(
            {
                "version": PACKING_VERSION,
                "request": {
                    "method": entry.request.method,
                    "url": entry.request.url,
                    "headers": entry.request.headers.multi_items(),
                },
                "response": {
                    "status_code": entry.response.status_code,
                    "headers": entry.response.headers.multi_items(),
                    "content": entry.response.content,
                },
                "meta": {
                    "stored_at": entry.stored_at,
                    "freshness_lifetime": entry.freshness_lifetime,
                    "initial_age": entry.initial_age,
                },
            },
            use_bin_type=True,
        ),
    )


def unpack_entry(value: Any) -> CacheEntry:
    if not isinstance(value, (bytes, bytearray)):
        raise UnpackError(f"Expected bytes, got {type(value).__name__}")

    try:
        data = msgpack.unpackb(value, raw=False)
    except (ValueError, TypeError, msgpack.UnpackException) as exc:
        raise UnpackError("Stored value is not a valid cache entry") from exc

    if not isinstance(data, dict) or data.get("version") != PACKING_VERSION:
        raise UnpackError("Stored value has an unsupported format")

    try:
        request_data = data["request"]
        response_data = data["response"]
        meta = data["meta"]
        return CacheEntry(
            request=Request(
                method=request_data["method"],
                url=request_data["url"],
                headers=Headers([tuple(item) for item in request_data["headers"]]),
            ),
            response=Response(
                status_code=response_data["status_code"],
                headers=Headers([tuple(item) for item in response_data["headers"]]),
                content=response_data["content"],
                cache_status=CacheStatus.HIT,
            ),
            freshness_lifetime=meta["freshness_lifetime"],
            stored_at=meta["stored_at"],
            initial_age=meta["initial_age"],
        )
    except (KeyError, TypeError) as exc:
        raise UnpackError("Stored value is missing cache entry fields") from exc
