"""Cancellation context passed down to downloads and child processes."""

from __future__ import annotations

import threading
import time

CANCELED = "canceled"
DEADLINE_EXCEEDED = "deadline exceeded"


class CancelContext:
    """Cancel flag with an optional monotonic deadline.

    Child contexts created with :meth:`with_timeout` observe the parent's
    cancellation; canceling a child does not cancel the parent.
    """

    def __init__(
        self,
        *,
        deadline: float | None = None,
        parent: CancelContext | None = None,
    ) -> None:
        self._event = threading.Event()
        self._deadline = deadline
        self._parent = parent

    @classmethod
    def background(cls) -> CancelContext:
        """Context that is only canceled explicitly."""
        return cls()

    def with_timeout(self, seconds: float) -> CancelContext:
        return CancelContext(deadline=time.monotonic() + seconds, parent=self)

    def cancel(self) -> None:
        self._event.set()

    @property
    def reason(self) -> str | None:
        """``None`` while active, else why the context ended."""
        if self._event.is_set():
            return CANCELED
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DEADLINE_EXCEEDED
        if self._parent is not None:
            return self._parent.reason
        return None

    def cancelled(self) -> bool:
        return self.reason is not None

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``, waking early on explicit cancel."""
        if self._deadline is not None:
            seconds = max(0.0, min(seconds, self._deadline - time.monotonic()))
        self._event.wait(seconds)
        return self.cancelled()
