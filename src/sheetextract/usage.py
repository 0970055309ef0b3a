"""Token usage aggregation across concurrent model calls."""

from __future__ import annotations

import threading

from sheetextract.typing.models import TokenUsage


class UsageAccumulator:
    """Additive usage counter shared by the page tasks of one request.

    Updates are serialized with a lock; page tasks may run on any thread.
    """

    def __init__(self) -> None:
        """Initialize an empty accumulator."""
        self._lock = threading.Lock()
        self._usage = TokenUsage()

    def add(self, usage: TokenUsage | None) -> None:
        """Add one call's usage.

        Args:
            usage (TokenUsage | None): Usage of a completed call. None is ignored.
        """
        if usage is None:
            return
        with self._lock:
            self._usage = self._usage + usage

    @property
    def total(self) -> TokenUsage:
        """Return the usage accumulated so far."""
        with self._lock:
            return self._usage
