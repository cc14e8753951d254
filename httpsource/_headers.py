"""
Header containers and the Cache-Control parser.

Token rules follow RFC 9110 Section 5.6.2, quoted strings follow
RFC 9110 Section 5.6.4 and the directive set follows RFC 9111 Section 5.2
plus the RFC 5861 extensions (stale-if-error, stale-while-revalidate).
"""

from __future__ import annotations

from typing import (
    Any,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    Union,
)

HeaderValue = Union[str, List[str]]

MAX_DELTA_SECONDS = 2147483647


def is_token(c: str) -> bool:
    if not c:
        return False
    b = ord(c)
    if b > 127 or b <= 31 or b == 127:
        return False
    return c not in '()<>@,;:\\"/[]?={} \t'


def is_qd_text(c: str) -> bool:
    if not c:
        return False

    b = ord(c)
    return (
        b == 0x09  # HTAB
        or b == 0x20  # SP
        or b == 0x21  # !
        or (0x23 <= b <= 0x5B)  # skips "
        or (0x5D <= b <= 0x7E)  # skips \
        or b >= 0x80
    )


def http_unquote(raw: str) -> Tuple[int, str]:
    """
    Unquote an HTTP quoted-string.

    Returns the number of characters consumed (including both quotes) and the
    unquoted value, or ``(-1, "")`` when the string is not properly terminated.

    Examples:
        >>> http_unquote('"hello" rest')
        (7, 'hello')
        >>> http_unquote('"say \\\\"hi\\\\""')
        (12, 'say "hi"')
    """
    if not raw or raw[0] != '"':
        return -1, ""

    buf: List[str] = []
    i = 1

    while i < len(raw):
        c = raw[i]

        if c == '"':
            return i + 1, "".join(buf)

        if c == "\\":
            if i + 1 >= len(raw):
                return -1, ""
            escaped = raw[i + 1]
            buf.append(escaped if escaped == "\t" or ord(escaped) >= 0x20 else "?")
            i += 2
            continue

        buf.append(c if is_qd_text(c) else "?")
        i += 1

    return -1, ""


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive, multi-valued header mapping.

    Reading a key joins repeated values with ``", "``; assigning a key
    replaces every previous value. Use ``add`` to append a value.
    """

    def __init__(self, headers: Optional[Union[Mapping[str, HeaderValue], Iterable[Tuple[str, str]]]] = None) -> None:
        self._headers: dict[str, List[str]] = {}
        if headers is None:
            return
        if isinstance(headers, Headers):
            self._headers = {key: values[:] for key, values in headers._headers.items()}
            return
        items = headers.items() if isinstance(headers, Mapping) else headers
        for key, value in items:
            if isinstance(value, str):
                self.add(key, value)
            else:
                for item in value:
                    self.add(key, item)

    def add(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(key.lower(), None)

    def multi_items(self) -> List[Tuple[str, str]]:
        return [(key, value) for key, values in self._headers.items() for value in values]

    def copy(self) -> "Headers":
        return Headers(self)

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers[key.lower()] = [value]

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers


class Vary:
    def __init__(self, values: List[str]) -> None:
        self.values = values

    @classmethod
    def from_value(cls, vary_value: str) -> "Vary":
        return cls([name.strip().lower() for name in vary_value.split(",") if name.strip()])


class CacheControl:
    """
    Parsed Cache-Control directives.

    Directives that may carry a list of field names (``no-cache`` and
    ``private``) are either ``True`` or the list of names. Unknown directives
    are kept in ``extensions`` in their ``token`` or ``token=value`` form.
    """

    def __init__(self) -> None:
        self.max_age: Optional[int] = None
        self.s_maxage: Optional[int] = None
        self.max_stale: Optional[int] = None
        self.min_fresh: Optional[int] = None

        self.no_store: bool = False
        self.no_transform: bool = False
        self.only_if_cached: bool = False
        self.must_revalidate: bool = False
        self.must_understand: bool = False
        self.proxy_revalidate: bool = False
        self.public: bool = False
        self.immutable: bool = False

        self.no_cache: Union[bool, List[str]] = False
        self.private: Union[bool, List[str]] = False

        # RFC 5861
        self.stale_if_error: Optional[int] = None
        self.stale_while_revalidate: Optional[int] = None

        self.extensions: List[str] = []

    def has_extension(self, name: str) -> bool:
        return any(ext == name or ext.startswith(f"{name}=") for ext in self.extensions)


def parse_int_value(value: str) -> Optional[int]:
    try:
        val = int(value)
    except (ValueError, OverflowError):
        return None
    return min(val, MAX_DELTA_SECONDS) if val >= 0 else None


def parse_field_names(value: str) -> List[str]:
    fields = []
    for name in value.split(","):
        name = name.strip()
        if name:
            fields.append("-".join(word.capitalize() for word in name.split("-")))
    return fields


def handle_directive_with_value(cc: CacheControl, token: str, value: str) -> None:
    if token == "max-age":
        cc.max_age = parse_int_value(value)
    elif token == "s-maxage":
        cc.s_maxage = parse_int_value(value)
    elif token == "max-stale":
        cc.max_stale = parse_int_value(value)
    elif token == "min-fresh":
        cc.min_fresh = parse_int_value(value)
    elif token == "stale-if-error":
        cc.stale_if_error = parse_int_value(value)
    elif token == "stale-while-revalidate":
        cc.stale_while_revalidate = parse_int_value(value)
    elif token == "no-cache":
        cc.no_cache = parse_field_names(value)
    elif token == "private":
        cc.private = parse_field_names(value)
    else:
        cc.extensions.append(f"{token}={value}")


def handle_directive_without_value(cc: CacheControl, token: str) -> None:
    flags = {
        "no-store": "no_store",
        "no-transform": "no_transform",
        "only-if-cached": "only_if_cached",
        "must-revalidate": "must_revalidate",
        "must-understand": "must_understand",
        "proxy-revalidate": "proxy_revalidate",
        "public": "public",
        "immutable": "immutable",
        "no-cache": "no_cache",
        "private": "private",
    }
    if token in flags:
        setattr(cc, flags[token], True)
    elif token == "max-stale":
        # a bare max-stale accepts a stale response of any age
        cc.max_stale = MAX_DELTA_SECONDS
    else:
        cc.extensions.append(token)


def parse(value: str) -> CacheControl:
    cc = CacheControl()
    i = 0
    length = len(value)

    while i < length:
        while i < length and value[i] in (" ", "\t", ","):
            i += 1
        if i >= length:
            break

        j = i
        while j < length and is_token(value[j]):
            j += 1

        if j == i:
            i += 1
            continue

        token = value[i:j].lower()
        token_has_fields = token in ("no-cache", "private")

        while j < length and value[j] in (" ", "\t"):
            j += 1

        if j >= length or value[j] != "=":
            handle_directive_without_value(cc, token)
            i = j
            continue

        k = j + 1
        while k < length and value[k] in (" ", "\t"):
            k += 1

        if k >= length:
            i = k
            continue

        if value[k] == '"':
            eaten, result = http_unquote(value[k:])
            if eaten == -1:
                i = k + 1
                continue
            i = k + eaten
            handle_directive_with_value(cc, token, result)
            continue

        z = k
        stops = (" ", "\t") if token_has_fields else (" ", "\t", ",")
        while z < length and value[z] not in stops:
            z += 1

        result = value[k:z].rstrip(",")
        i = z
        handle_directive_with_value(cc, token, result)

    return cc


def parse_cache_control(value: Optional[str]) -> CacheControl:
    """
    Parse a request or response Cache-Control header value.

    Examples:
        >>> cc = parse_cache_control("public, max-age=60, stale-if-error=200")
        >>> cc.public, cc.max_age, cc.stale_if_error
        (True, 60, 200)
        >>> parse_cache_control('no-cache="Set-Cookie"').no_cache
        ['Set-Cookie']
    """
    if not value:
        return CacheControl()
    return parse(value)
