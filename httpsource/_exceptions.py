from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Optional

import httpx

if TYPE_CHECKING:
    from httpsource._models import Request, RequestOptions, Response

__all__ = ("ErrorKind", "RequestError", "error_from_response", "error_from_transport")


class ErrorKind(str, enum.Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    HTTP_ERROR = "http_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSPORT = "transport"


STATUS_KINDS = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.UNAUTHENTICATED,
    403: ErrorKind.FORBIDDEN,
}


class RequestError(Exception):
    """
    The single failure type raised by a data source.

    Inspect ``kind`` to tell failures apart. HTTP status failures carry the
    ``response`` and ``status_code``; transport failures carry the
    underlying exception in ``cause`` (also chained as ``__cause__``).
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        request: Optional[RequestOptions] = None,
        response: Optional[Response] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.request = request
        self.response = response
        self.cause = cause

    def __repr__(self) -> str:
        return f"RequestError(kind={self.kind.name}, message={self.message!r})"

    @classmethod
    def cancelled(cls, request: Optional[RequestOptions] = None) -> "RequestError":
        return cls(ErrorKind.CANCELLED, "Request was cancelled", request=request)

    @classmethod
    def timeout(cls, seconds: float, request: Optional[RequestOptions] = None) -> "RequestError":
        return cls(ErrorKind.TIMEOUT, f"Timeout awaiting response for {round(seconds * 1000)}ms", request=request)


def error_from_response(response: Response, request: Optional[RequestOptions] = None) -> RequestError:
    """
    Classify a 4xx/5xx response.

    >>> error_from_response(Response(401)).message
    'Response code 401 (Unauthorized)'
    """
    return RequestError(
        STATUS_KINDS.get(response.status_code, ErrorKind.HTTP_ERROR),
        f"Response code {response.status_code} ({response.reason_phrase})",
        status_code=response.status_code,
        request=request,
        response=response,
    )


def error_from_transport(
    exc: Exception, timeout: float, request: Optional[RequestOptions] = None, wire_request: Optional[Request] = None
) -> RequestError:
    if isinstance(exc, RequestError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        error = RequestError.timeout(timeout, request=request)
        error.cause = exc
        return error
    target = f" for {wire_request.method} {wire_request.url}" if wire_request is not None else ""
    return RequestError(ErrorKind.TRANSPORT, f"{str(exc) or type(exc).__name__}{target}", request=request, cause=exc)
