from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Set

import anyio

from httpsource._exceptions import RequestError

logger = logging.getLogger("httpsource.cancellation")

__all__ = ("CancellationController",)


class CancellationController:
    """
    Instance-wide cancellation token.

    Every request dispatched by a data source runs its I/O inside
    :meth:`scope`, which registers an :class:`anyio.CancelScope` with the
    controller. :meth:`abort` cancels all registered scopes at once and
    makes every later :meth:`scope` or :meth:`raise_if_cancelled` call fail
    with a ``CANCELLED`` :class:`RequestError`. Aborting is permanent.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._scopes: Set[anyio.CancelScope] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def in_flight(self) -> int:
        return len(self._scopes)

    def abort(self) -> None:
        if not self._cancelled:
            logger.debug(f"Aborting {len(self._scopes)} in-flight request(s)")
        self._cancelled = True
        for scope in list(self._scopes):
            scope.cancel()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestError.cancelled()

    @contextmanager
    def scope(self) -> Iterator[anyio.CancelScope]:
        """
        Run a block of I/O that :meth:`abort` can interrupt.

        The block fails with ``CANCELLED`` whenever abort was called while it
        ran, even if the block itself managed to finish or failed for another
        reason such as a timeout.
        """
        self.raise_if_cancelled()
        cancel_scope = anyio.CancelScope()
        self._scopes.add(cancel_scope)
        try:
            with cancel_scope:
                yield cancel_scope
        except RequestError:
            if not cancel_scope.cancel_called:
                raise
        finally:
            self._scopes.discard(cancel_scope)

        if cancel_scope.cancel_called:
            raise RequestError.cancelled()
