"""Metrics port definition (interface)."""

from __future__ import annotations

from typing import Protocol

from snapshot_relay.ports.snapshot import TickOutcome

__all__ = ["MetricsPort"]


class MetricsPort(Protocol):
    """Interface for recording tick outcomes.

    Implementations must be async-safe and non-blocking.
    Core calls update() after each tick; presentation layers call
    __str__() to render summaries.
    """

    def update(self, outcome: TickOutcome, /) -> None:
        """Record a finished tick.

        Args:
            outcome: The tick outcome to record.
        """
        ...

    def __str__(self) -> str:
        """Return concise textual summary for humans."""
        ...
