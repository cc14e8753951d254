from __future__ import annotations

import calendar
import inspect
import typing as tp
from email.utils import parsedate_tz

T = tp.TypeVar("T")


def parse_date(date: str) -> tp.Optional[int]:
    parsed = parsedate_tz(date)
    if parsed is None:
        return None
    timestamp = calendar.timegm(parsed[:6])
    if parsed[9] is not None:
        timestamp -= parsed[9]
    return timestamp


async def maybe_await(value: tp.Union[T, tp.Awaitable[T]]) -> T:
    """Await ``value`` if a hook returned an awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await tp.cast(tp.Awaitable[T], value)
    return tp.cast(T, value)
