"""
Request context passed explicitly through volume operations.

A context carries an optional deadline, a cancellation flag and a chain of
immutable values (for example the request id used to correlate log lines
with the request that triggered them). Children inherit the deadline,
cancellation and values of their parent.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Optional

REQUEST_ID = "request_id"


class RequestContext:
    """Deadline, cancellation and values for a single request."""

    def __init__(
        self,
        parent: Optional["RequestContext"] = None,
        deadline: Optional[float] = None,
        key: Optional[str] = None,
        value: Any = None,
    ):
        self._parent = parent
        self._deadline = deadline
        self._key = key
        self._value = value
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "RequestContext":
        """Return an empty context that never expires."""
        return cls()

    @property
    def deadline(self) -> Optional[float]:
        """Earliest deadline (``time.monotonic()`` based) of this context or its parents."""
        parent_deadline = self._parent.deadline if self._parent else None
        if self._deadline is None:
            return parent_deadline
        if parent_deadline is None:
            return self._deadline
        return min(self._deadline, parent_deadline)

    def with_deadline(self, deadline: float) -> "RequestContext":
        return RequestContext(parent=self, deadline=deadline)

    def with_timeout(self, seconds: float) -> "RequestContext":
        return self.with_deadline(time.monotonic() + seconds)

    def with_value(self, key: str, value: Any) -> "RequestContext":
        return RequestContext(parent=self, key=key, value=value)

    def value(self, key: str) -> Any:
        """Return the innermost value stored under ``key``, or None."""
        ctx: Optional[RequestContext] = self
        while ctx is not None:
            if ctx._key == key:
                return ctx._value
            ctx = ctx._parent
        return None

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._cancelled.set()

    def done(self) -> bool:
        """Return True once the context is cancelled or past its deadline."""
        if self._cancelled.is_set():
            return True
        deadline = self._deadline
        if deadline is not None and time.monotonic() >= deadline:
            return True
        return self._parent.done() if self._parent else False

    def __repr__(self) -> str:
        return f"RequestContext(request_id={self.value(REQUEST_ID)!r}, deadline={self.deadline!r})"
