"""Cooperative cancellation and deadlines for lifecycle calls."""

import logging
import threading
import time
from typing import Optional

from .errors import CancelledError, DeadlineExceededError, RunnerError

logger = logging.getLogger(__name__)


class RunContext:
    """
    Cancellation scope passed through every remote call.

    A context is done once cancel() is called or its deadline passes.
    Signal handlers only call cancel(); the watch loop and the API helpers
    poll error() between blocking calls.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = threading.Event()
        self._reason: Optional[str] = None
        self._deadline = None
        if timeout is not None:
            self._deadline = time.monotonic() + max(timeout, 0.0)

    @classmethod
    def background(cls) -> "RunContext":
        """Root context with no deadline."""
        return cls()

    @classmethod
    def for_cleanup(cls, timeout: float) -> "RunContext":
        """
        Context for cleanup work with its own time budget.

        It shares nothing with the lifecycle context, so neither a signal
        nor the overall deadline can stop deletion once it has started.
        """
        return cls(timeout=timeout)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._cancelled.is_set():
            self._reason = reason
            logger.debug(f"Context cancelled: {reason or 'no reason given'}")
        self._cancelled.set()

    def done(self) -> bool:
        return self.error() is not None

    def error(self) -> Optional[RunnerError]:
        """Return the error describing why the context ended, or None."""
        if self._cancelled.is_set():
            return CancelledError(f"context canceled: {self._reason}" if self._reason else "context canceled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceededError()
        return None

    def raise_if_done(self) -> None:
        err = self.error()
        if err is not None:
            raise err

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None when unbounded."""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def request_timeout(self, default: Optional[float] = None) -> Optional[float]:
        """Value for the client's _request_timeout bounded by the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return default
        if default is None:
            return max(remaining, 1.0)
        return max(min(default, remaining), 1.0)
