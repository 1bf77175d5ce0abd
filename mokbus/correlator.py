"""
Request/response correlation.

Inbound lines carry no request identifier, so the client remembers which
kinds of request are outstanding and interprets each line as the response
to one of them. The correlator keeps at most one ActiveRequest per
RequestKind. Kinds are independent: arming one kind never clears another,
and re-arming a kind cancels only that kind's previous timer.

When more than one kind is outstanding, a line is routed to the first
active kind in DISPATCH_ORDER:

    SINGLE_RANGE -> OCTAL_RANGE -> QUAD_RANGE -> QUAD_WRITE -> SCAN

Each armed kind owns a timer. If it fires before the kind is cleared, the
kind is dropped and the timeout callback receives a TimeoutError naming it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from mokbus.exceptions import TimeoutError
from mokbus.protocol.constants import DEFAULT_TIMEOUTS, DISPATCH_ORDER, RequestKind

logger = logging.getLogger(__name__)

TimeoutCallback = Callable[[TimeoutError], None]


@dataclass
class ActiveRequest:
    """
    An outstanding request of one kind.

    Attributes:
        kind: Request kind.
        timeout: Timeout in seconds.
        generation: Increments each time the kind is armed; stale timer
            callbacks compare against it.
        armed_at: Monotonic time when the request was armed.
        handle: Pending timer handle.
    """

    kind: RequestKind
    timeout: float
    generation: int
    armed_at: float = field(default_factory=time.monotonic)
    handle: asyncio.TimerHandle | None = field(default=None, repr=False)

    @property
    def elapsed(self) -> float:
        """Seconds since the request was armed."""
        return time.monotonic() - self.armed_at


class RequestCorrelator:
    """
    Per-kind wait state with cancellable timeouts.

    Timers are scheduled on the running event loop, so arm() must be
    called from within a coroutine or a loop callback.

    Example:
        >>> correlator = RequestCorrelator(on_timeout=print)
        >>> correlator.arm(RequestKind.SINGLE_RANGE)
        >>> correlator.route()
        <RequestKind.SINGLE_RANGE: 1>
        >>> correlator.clear(RequestKind.SINGLE_RANGE)
        True
    """

    def __init__(
        self,
        timeouts: Mapping[RequestKind, float] | None = None,
        on_timeout: TimeoutCallback | None = None,
    ) -> None:
        """
        Initialize the correlator.

        Args:
            timeouts: Timeout per kind in seconds; missing kinds use
                DEFAULT_TIMEOUTS.
            on_timeout: Called with a TimeoutError when a kind expires.
        """
        self._timeouts = {**DEFAULT_TIMEOUTS, **(timeouts or {})}
        self._on_timeout = on_timeout
        self._active: dict[RequestKind, ActiveRequest] = {}
        self._generations: dict[RequestKind, int] = {}

    @property
    def active_kinds(self) -> tuple[RequestKind, ...]:
        """Outstanding kinds in dispatch order."""
        return tuple(kind for kind in DISPATCH_ORDER if kind in self._active)

    @property
    def is_idle(self) -> bool:
        """Check if no request of any kind is outstanding."""
        return not self._active

    def timeout_for(self, kind: RequestKind) -> float:
        """Get the configured timeout for a kind."""
        return self._timeouts[kind]

    def set_timeout_callback(self, callback: TimeoutCallback | None) -> None:
        """Replace the timeout callback."""
        self._on_timeout = callback

    def is_awaiting(self, kind: RequestKind) -> bool:
        """Check if a request of the given kind is outstanding."""
        return kind in self._active

    def get(self, kind: RequestKind) -> ActiveRequest | None:
        """Get the outstanding request of a kind, if any."""
        return self._active.get(kind)

    def arm(self, kind: RequestKind, timeout: float | None = None) -> ActiveRequest:
        """
        Mark a kind as outstanding and start its timeout timer.

        A previous request of the same kind is replaced and its timer
        cancelled. Other kinds are left untouched.

        Args:
            kind: Request kind.
            timeout: Override timeout in seconds.

        Returns:
            The new ActiveRequest.
        """
        loop = asyncio.get_running_loop()
        self._cancel_timer(kind)

        effective_timeout = timeout if timeout is not None else self._timeouts[kind]
        generation = self._generations.get(kind, 0) + 1
        self._generations[kind] = generation

        request = ActiveRequest(kind=kind, timeout=effective_timeout, generation=generation)
        request.handle = loop.call_later(effective_timeout, self._expire, kind, generation)
        self._active[kind] = request

        logger.debug("Awaiting %s (timeout %.1fs)", kind.name, effective_timeout)
        return request

    def clear(self, kind: RequestKind) -> bool:
        """
        Stop waiting for a kind.

        Args:
            kind: Request kind.

        Returns:
            True if the kind was outstanding, False otherwise.
        """
        request = self._active.pop(kind, None)
        if request is None:
            return False

        if request.handle is not None:
            request.handle.cancel()
        logger.debug("Cleared %s after %.2fs", kind.name, request.elapsed)
        return True

    def route(self) -> RequestKind | None:
        """
        Pick the kind an inbound line should be interpreted as.

        Returns:
            First outstanding kind in dispatch order, or None if idle.
        """
        for kind in DISPATCH_ORDER:
            if kind in self._active:
                return kind
        return None

    def cancel_all(self) -> None:
        """Clear every outstanding kind without raising timeouts."""
        for kind in list(self._active):
            self.clear(kind)

    def _cancel_timer(self, kind: RequestKind) -> None:
        request = self._active.pop(kind, None)
        if request is not None and request.handle is not None:
            request.handle.cancel()

    def _expire(self, kind: RequestKind, generation: int) -> None:
        request = self._active.get(kind)
        if request is None or request.generation != generation:
            # Cleared or re-armed after this timer was scheduled
            return

        del self._active[kind]
        logger.warning("%s timed out after %.1fs", kind.name, request.timeout)

        if self._on_timeout is not None:
            self._on_timeout(
                TimeoutError(
                    f"No response to {kind.name.lower()} request",
                    kind=kind,
                    timeout_seconds=request.timeout,
                )
            )

    def __repr__(self) -> str:
        names = ", ".join(kind.name for kind in self.active_kinds) or "idle"
        return f"RequestCorrelator({names})"
